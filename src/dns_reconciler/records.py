"""Canonical DNS record model.

Every provider converts its wire format to and from these types, so the
reconciler never sees backend-specific field names.
"""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

# =============================================================================
# Record Types
# =============================================================================

SINGLE_VALUE_TYPES = frozenset({"A", "AAAA", "CNAME", "MX", "NS", "PTR"})

# A zone may hold several of these under one name, told apart by content.
MULTI_VALUE_TYPES = frozenset({"TXT", "SRV", "CAA"})

HOSTNAME_CONTENT_TYPES = frozenset({"CNAME", "ANAME", "DNAME", "MX", "NS", "PTR", "SRV"})

TYPE_SPECIFIC_FIELDS = ("priority", "weight", "port", "flags", "tag")

RecordKey = Tuple[str, ...]


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class DNSRecord:
    """A record as it exists on a backend."""

    name: str
    type: str
    content: str
    ttl: int
    priority: Optional[int] = None
    weight: Optional[int] = None
    port: Optional[int] = None
    flags: Optional[int] = None
    tag: Optional[str] = None
    id: str = ""
    native: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False, repr=False)

    @property
    def key(self) -> RecordKey:
        return record_key(self.name, self.type, self.content)

    def to_dict(self) -> Dict[str, Any]:
        """Return the canonical JSON shape, omitting unset type-specific fields."""
        data: Dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "content": self.content,
            "ttl": self.ttl,
        }
        for name in TYPE_SPECIFIC_FIELDS:
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data


@dataclass(frozen=True)
class DesiredRecordSpec:
    """A record we want to exist. Specs with ``manage=False`` are left alone."""

    name: str
    type: str
    content: str
    ttl: Optional[int] = None
    priority: Optional[int] = None
    weight: Optional[int] = None
    port: Optional[int] = None
    flags: Optional[int] = None
    tag: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)
    manage: bool = True

    @property
    def key(self) -> RecordKey:
        return record_key(self.name, self.type, self.content)

    def to_record(self, default_ttl: int, record_id: str = "") -> DNSRecord:
        """Build the record this spec describes, falling back to ``default_ttl``."""
        return DNSRecord(
            name=self.name,
            type=self.type,
            content=self.content,
            ttl=self.ttl if self.ttl is not None else default_ttl,
            priority=self.priority,
            weight=self.weight,
            port=self.port,
            flags=self.flags,
            tag=self.tag,
            id=record_id,
        )


# =============================================================================
# Identity & Normalization
# =============================================================================


def normalize_name(name: str) -> str:
    return (name or "").strip().rstrip(".").lower()


def normalize_content(record_type: str, content: str) -> str:
    """Return the form of ``content`` used for comparisons."""
    value = (content or "").strip()
    record_type = (record_type or "").upper()
    if record_type == "AAAA":
        try:
            return ipaddress.IPv6Address(value).compressed
        except ValueError:
            return value.lower()
    if record_type in HOSTNAME_CONTENT_TYPES:
        return value.rstrip(".").lower()
    return value


def record_key(name: str, record_type: str, content: str = "") -> RecordKey:
    """Identity key: ``(name, type)``, plus content for multi-value types."""
    record_type = (record_type or "").upper()
    if record_type in MULTI_VALUE_TYPES:
        return (normalize_name(name), record_type, normalize_content(record_type, content))
    return (normalize_name(name), record_type)


def qualify_name(name: str, zone: str) -> str:
    """Turn a zone-relative name into a fully-qualified one.

    ``@`` and the zone itself map to the zone, a bare label gets the zone
    appended, anything else is already qualified (or belongs elsewhere).
    """
    name = (name or "").strip().rstrip(".")
    zone = (zone or "").strip().rstrip(".")
    if not zone:
        return name
    if name in ("", "@") or name.lower() == zone.lower():
        return zone
    if name.lower().endswith(f".{zone.lower()}"):
        return name
    if "." not in name:
        return f"{name}.{zone}"
    return name
