"""DNS provider interface.

Concrete providers implement a handful of backend primitives; this base class
turns them into the uniform capability set the reconciler relies on (cache
ownership, validation before any network call, update strategy, no-op
handling).
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, FrozenSet, List, Optional

import requests

from dns_reconciler.cache import RecordCache
from dns_reconciler.errors import (
    DNSReconcilerError,
    InitializationError,
    NetworkError,
    PartialUpdateFailure,
    ProviderAPIError,
)
from dns_reconciler.records import (
    MULTI_VALUE_TYPES,
    DesiredRecordSpec,
    DNSRecord,
    normalize_content,
)
from dns_reconciler.validation import validate_record

logger = logging.getLogger(__name__)

ALREADY_EXISTS_MARKERS = ("already exists",)
NOT_FOUND_MARKERS = ("not found", "does not exist")


class UpdateStrategy(Enum):
    """How a provider changes an existing record."""

    NATIVE = "native"
    DELETE_THEN_CREATE = "delete-then-create"


def matches_any(message: str, markers: tuple) -> bool:
    text = (message or "").lower()
    return any(marker in text for marker in markers)


class DNSProvider(ABC):
    """Abstract base class for DNS providers."""

    update_strategy: UpdateStrategy = UpdateStrategy.NATIVE
    supported_types: FrozenSet[str] = frozenset()
    minimum_ttl: int = 1
    default_ttl: int = 3600

    def __init__(
        self,
        zone: str,
        timeout_seconds: float = 10.0,
        cache_staleness_seconds: float = 3600.0,
        session: Optional[requests.Session] = None,
    ):
        self.zone = (zone or "").strip().rstrip(".")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self.cache = RecordCache(self._fetch_records, cache_staleness_seconds)

    # -------------------------------------------------------------------------
    # Backend primitives
    # -------------------------------------------------------------------------

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name for logging."""
        pass

    @abstractmethod
    def _check_config(self) -> None:
        """Raise ConfigurationError when credentials or zone are missing."""
        pass

    @abstractmethod
    def _fetch_records(self) -> List[DNSRecord]:
        """Full list of the zone's records from the backend."""
        pass

    @abstractmethod
    def _create(self, record: DNSRecord, options: dict) -> Optional[DNSRecord]:
        """Create ``record``. Return None if the backend says it already exists."""
        pass

    @abstractmethod
    def _delete(self, record: DNSRecord) -> bool:
        """Delete ``record``. Return False if the backend says it is not there."""
        pass

    def _update(self, existing: DNSRecord, record: DNSRecord, options: dict) -> DNSRecord:
        raise NotImplementedError(f"{self.name} has no native update")

    def _prepare(self) -> None:
        """Hook for lookups that must happen before the first refresh."""

    # -------------------------------------------------------------------------
    # HTTP helpers
    # -------------------------------------------------------------------------

    def _send(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        try:
            return getattr(self._session, method)(url, timeout=self._timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"{self.name} request to {url} failed: {e}") from e

    def _json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ProviderAPIError(
                f"{self.name} returned a non-JSON response (HTTP {response.status_code})",
                provider=self.name,
            ) from e

    # -------------------------------------------------------------------------
    # Capability interface
    # -------------------------------------------------------------------------

    def init(self) -> None:
        """Make the provider ready by validating config and warming the cache.

        Raises:
            ConfigurationError: credentials or zone are missing.
            InitializationError: the first refresh failed.
        """
        self._check_config()
        try:
            self._prepare()
            self.cache.refresh()
        except InitializationError:
            raise
        except DNSReconcilerError as e:
            raise InitializationError(f"{self.name} initialization failed: {e}") from e
        logger.info(f"{self.name} provider initialized for zone: {self.zone}")

    def get_minimum_ttl(self) -> int:
        return self.minimum_ttl

    def supports_record_type(self, record_type: str) -> bool:
        return (record_type or "").upper() in self.supported_types

    def validate_record(self, spec: DesiredRecordSpec) -> DesiredRecordSpec:
        """Validate ``spec`` and return it with provider defaults applied."""
        return validate_record(spec, self.zone)

    def option_changes(self, existing: DNSRecord, spec: DesiredRecordSpec) -> List[str]:
        """Names of backend options set on ``spec`` that ``existing`` does not match."""
        return []

    def list_records(self, type: Optional[str] = None, name: Optional[str] = None) -> List[DNSRecord]:
        return self.cache.get(type=type, name=name)

    def ensure_fresh(self) -> None:
        """Refresh the cache only if it is stale or empty."""
        self.cache.get()

    def find_record(self, spec: DesiredRecordSpec) -> Optional[DNSRecord]:
        """Look up the cached record sharing ``spec``'s identity key.

        Never refreshes. For single-valued types an exact content match wins
        over the first record with the same name and type.
        """
        candidates = [r for r in self.cache.snapshot() if r.key == spec.key]
        if not candidates:
            return None
        if spec.type.upper() not in MULTI_VALUE_TYPES:
            wanted = normalize_content(spec.type, spec.content)
            for record in candidates:
                if normalize_content(record.type, record.content) == wanted:
                    return record
        return candidates[0]

    def get_record(self, record_id: str) -> Optional[DNSRecord]:
        for record in self.cache.snapshot():
            if record.id == record_id:
                return record
        return None

    def create_record(self, spec: DesiredRecordSpec) -> Optional[DNSRecord]:
        """Create the record described by ``spec``.

        Returns the canonical record, or None when the backend reports it
        already exists (nothing was changed).
        """
        spec = self.validate_record(spec)
        created = self._create(spec.to_record(self.default_ttl), dict(spec.options))
        if created is None:
            logger.debug(f"Record already exists: {spec.name} ({spec.type})")
            # Our snapshot missed it; let the next read reload.
            self.cache.invalidate()
            return None
        self.cache.upsert(created)
        logger.info(f"Created {created.type} record: {created.name} -> {created.content}")
        return created

    def update_record(self, record_id: str, spec: DesiredRecordSpec) -> Optional[DNSRecord]:
        """Replace the cached record ``record_id`` with ``spec``.

        Same return contract as ``create_record``. On providers without a
        native update this is delete-then-create; if the create fails after
        the delete went through, PartialUpdateFailure is raised.
        """
        spec = self.validate_record(spec)
        existing = self.get_record(record_id)
        if existing is None:
            raise ProviderAPIError(
                f"{self.name}: record {record_id} is not in the cache", provider=self.name
            )
        options = dict(spec.options)

        if self.update_strategy is UpdateStrategy.NATIVE:
            updated = self._update(existing, spec.to_record(self.default_ttl, existing.id), options)
            self.cache.remove(existing)
            self.cache.upsert(updated)
            logger.info(
                f"Updated {updated.type} record: {updated.name} "
                f"({existing.content} -> {updated.content})"
            )
            return updated

        if not self._delete(existing):
            logger.debug(f"Record {existing.name} ({existing.type}) was already gone before update")
        self.cache.remove(existing)

        try:
            created = self._create(spec.to_record(self.default_ttl), options)
        except DNSReconcilerError as e:
            raise PartialUpdateFailure(existing, e, provider=self.name) from e

        if created is None:
            self.cache.invalidate()
            return None
        self.cache.upsert(created)
        logger.info(
            f"Updated {created.type} record: {created.name} "
            f"({existing.content} -> {created.content})"
        )
        return created

    def delete_record(self, record_id: str) -> bool:
        """Delete the cached record ``record_id``. False means nothing was there."""
        record = self.get_record(record_id)
        if record is None:
            logger.debug(f"Record {record_id} not found in cache; nothing to delete")
            return False
        deleted = self._delete(record)
        self.cache.remove(record)
        if not deleted:
            logger.debug(f"Record not found for deletion: {record.name} ({record.type})")
            return False
        logger.info(f"Deleted {record.type} record: {record.name} -> {record.content}")
        return True
