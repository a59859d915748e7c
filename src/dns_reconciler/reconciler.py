"""Batch convergence of desired records against a provider.

For each desired spec, in input order: create it when absent, update it when
it differs, leave it alone when identical. Per-item failures are logged and
reported in the result; they never abort the rest of the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from dns_reconciler.errors import DNSReconcilerError, PartialUpdateFailure, ValidationError
from dns_reconciler.providers.base import DNSProvider
from dns_reconciler.records import (
    TYPE_SPECIFIC_FIELDS,
    DesiredRecordSpec,
    DNSRecord,
    RecordKey,
    normalize_content,
)

logger = logging.getLogger(__name__)


class Action(Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    EXISTS = "already-exists"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class RecordOutcome:
    """What happened to one desired spec."""

    spec: DesiredRecordSpec
    action: Action
    record: Optional[DNSRecord] = None
    error: Optional[Exception] = None
    changes: Tuple[str, ...] = ()


@dataclass
class ReconcileResult:
    provider: str
    outcomes: List[RecordOutcome] = field(default_factory=list)

    def _with(self, *actions: Action) -> List[RecordOutcome]:
        return [o for o in self.outcomes if o.action in actions]

    @property
    def created(self) -> List[DesiredRecordSpec]:
        return [o.spec for o in self._with(Action.CREATED)]

    @property
    def updated(self) -> List[DesiredRecordSpec]:
        return [o.spec for o in self._with(Action.UPDATED)]

    @property
    def applied(self) -> List[DesiredRecordSpec]:
        """Specs that were successfully created or updated, in input order."""
        return [o.spec for o in self._with(Action.CREATED, Action.UPDATED)]

    @property
    def unchanged(self) -> List[DesiredRecordSpec]:
        return [o.spec for o in self._with(Action.UNCHANGED, Action.EXISTS)]

    @property
    def skipped(self) -> List[DesiredRecordSpec]:
        return [o.spec for o in self._with(Action.SKIPPED)]

    @property
    def failed(self) -> List[RecordOutcome]:
        return self._with(Action.FAILED)

    def summary(self) -> str:
        counts = [
            (len(self._with(action)), action.value)
            for action in Action
        ]
        parts = [f"{count} {label}" for count, label in counts if count]
        return ", ".join(parts) if parts else "nothing to do"


def record_changes(existing: DNSRecord, desired: DesiredRecordSpec) -> List[str]:
    """Names of the fields where ``existing`` differs from ``desired``.

    TTL and the type-specific fields only count when the desired spec sets them.
    """
    changes: List[str] = []
    if normalize_content(existing.type, existing.content) != normalize_content(
        desired.type, desired.content
    ):
        changes.append("content")
    if desired.ttl is not None and existing.ttl != desired.ttl:
        changes.append("ttl")
    for name in TYPE_SPECIFIC_FIELDS:
        wanted = getattr(desired, name)
        if wanted is not None and getattr(existing, name) != wanted:
            changes.append(name)
    return changes


class Reconciler:
    """Applies the minimal set of mutations to make providers match desired specs."""

    def converge(
        self, provider: DNSProvider, specs: Iterable[DesiredRecordSpec]
    ) -> ReconcileResult:
        specs = list(specs)
        result = ReconcileResult(provider=provider.name)

        # One freshness check per batch; lookups below read the snapshot.
        refresh_error: Optional[DNSReconcilerError] = None
        if any(spec.manage for spec in specs):
            try:
                provider.ensure_fresh()
            except DNSReconcilerError as e:
                refresh_error = e
                logger.error(f"Failed to refresh {provider.name} records: {e}")

        seen: Set[RecordKey] = set()
        for spec in specs:
            if not spec.manage:
                logger.debug(f"Skipping unmanaged {spec.type} record {spec.name}")
                result.outcomes.append(RecordOutcome(spec, Action.SKIPPED))
            elif refresh_error is not None:
                result.outcomes.append(RecordOutcome(spec, Action.FAILED, error=refresh_error))
            else:
                result.outcomes.append(self._converge_one(provider, spec, seen))

        logger.info(f"{provider.name}: {result.summary()}")
        return result

    def converge_all(
        self, batches: Iterable[Tuple[DNSProvider, Sequence[DesiredRecordSpec]]]
    ) -> List[ReconcileResult]:
        """Converge each provider's batch in turn."""
        return [self.converge(provider, specs) for provider, specs in batches]

    def _converge_one(
        self, provider: DNSProvider, spec: DesiredRecordSpec, seen: Set[RecordKey]
    ) -> RecordOutcome:
        try:
            desired = provider.validate_record(spec)
            if desired.key in seen:
                raise ValidationError(
                    f"Duplicate desired {desired.type} record {desired.name} in the same batch"
                )
            seen.add(desired.key)

            existing = provider.find_record(desired)
            if existing is None:
                logger.info(f"Creating {provider.name} {desired.type} record for {desired.name}")
                created = provider.create_record(desired)
                if created is None:
                    return RecordOutcome(spec, Action.EXISTS)
                return RecordOutcome(spec, Action.CREATED, record=created)

            field_changes = record_changes(existing, desired)
            changes = field_changes + provider.option_changes(existing, desired)
            if not changes:
                logger.debug(f"{desired.type} record {desired.name} is up to date")
                return RecordOutcome(spec, Action.UNCHANGED, record=existing)

            for name in field_changes:
                logger.debug(
                    f"Record {desired.name} {name}: "
                    f"{getattr(existing, name)} -> {getattr(desired, name)}"
                )
            logger.info(
                f"Updating {provider.name} {desired.type} record for {desired.name} "
                f"({', '.join(changes)})"
            )
            updated = provider.update_record(existing.id, desired)
            return RecordOutcome(spec, Action.UPDATED, record=updated, changes=tuple(changes))

        except PartialUpdateFailure as e:
            logger.error(
                f"Partial update of {spec.type} record {spec.name}: old record deleted, "
                f"new record not created: {e.cause}"
            )
            return RecordOutcome(spec, Action.FAILED, error=e)
        except DNSReconcilerError as e:
            logger.error(f"Failed to process {spec.type} record {spec.name}: {e}")
            return RecordOutcome(spec, Action.FAILED, error=e)
