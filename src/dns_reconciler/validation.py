"""Type-specific record validation shared by every provider."""

from __future__ import annotations

import dataclasses
import ipaddress
from typing import Any, Dict

from dns_reconciler.errors import ValidationError
from dns_reconciler.records import DesiredRecordSpec, normalize_name

# Filled in by the adapter when the caller leaves them unset.
SERVER_SIDE_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "MX": {"priority": 10},
    "SRV": {"priority": 10, "weight": 10, "port": 80},
    "CAA": {"flags": 0, "tag": "issue"},
}


def is_valid_ipv4(value: str) -> bool:
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def is_valid_ipv6(value: str) -> bool:
    try:
        ipaddress.IPv6Address(value)
    except ValueError:
        return False
    return True


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_record(spec: DesiredRecordSpec, zone: str) -> DesiredRecordSpec:
    """Check ``spec`` and return a copy with server-side defaults applied.

    Raises:
        ValidationError: the record can never be accepted as given.
    """
    if not spec.name or not spec.type or not spec.content:
        raise ValidationError("Record name, type, and content are required")

    record_type = spec.type.strip().upper()
    label = f"{record_type} record {spec.name}"

    if spec.ttl is not None and (not _is_int(spec.ttl) or spec.ttl <= 0):
        raise ValidationError(f"{label}: TTL must be a positive integer, got {spec.ttl!r}")

    if record_type == "A" and not is_valid_ipv4(spec.content):
        raise ValidationError(f"{label}: invalid IPv4 address '{spec.content}'")

    if record_type == "AAAA" and not is_valid_ipv6(spec.content):
        raise ValidationError(f"{label}: invalid IPv6 address '{spec.content}'")

    if record_type == "CNAME" and zone and normalize_name(spec.name) == normalize_name(zone):
        raise ValidationError(
            f"{label}: CNAME records cannot be created at the zone apex; use A or ANAME instead"
        )

    for field_name in ("priority", "weight", "port", "flags"):
        value = getattr(spec, field_name)
        if value is not None and (not _is_int(value) or value < 0):
            raise ValidationError(
                f"{label}: {field_name} must be a non-negative integer, got {value!r}"
            )

    if spec.port is not None and spec.port > 65535:
        raise ValidationError(f"{label}: port {spec.port} is out of range")

    if spec.flags is not None and spec.flags > 255:
        raise ValidationError(f"{label}: CAA flags {spec.flags} is out of range")

    changes: Dict[str, Any] = {"type": record_type}
    for field_name, default in SERVER_SIDE_DEFAULTS.get(record_type, {}).items():
        if getattr(spec, field_name) is None:
            changes[field_name] = default

    return dataclasses.replace(spec, **changes)
