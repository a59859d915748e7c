"""Stateless mapping between canonical records and provider wire formats."""

from __future__ import annotations

import json
from typing import Any, Dict, Mapping, Optional

from dns_reconciler.records import DNSRecord, qualify_name

# =============================================================================
# Technitium
# =============================================================================

TECHNITIUM_CONTENT_FIELDS: Dict[str, str] = {
    "A": "ipAddress",
    "AAAA": "ipAddress",
    "CNAME": "cname",
    "ANAME": "cname",
    "TXT": "text",
    "MX": "mailExchange",
    "SRV": "target",
    "CAA": "value",
    "NS": "nameServer",
    "PTR": "ptrName",
}

# Unknown and extension types carry their content here verbatim.
GENERIC_CONTENT_FIELD = "rdata"

TECHNITIUM_DEFAULT_TTL = 300


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def technitium_id(name: str, record_type: str, content: str) -> str:
    """Technitium has no record ids; records are addressed by their data."""
    return f"{name}/{record_type.upper()}/{content}"


def to_technitium(record: DNSRecord) -> Dict[str, Any]:
    """Convert a canonical record to Technitium's ``{name, type, ttl, rData}``."""
    record_type = record.type.upper()
    rdata: Dict[str, Any] = {
        TECHNITIUM_CONTENT_FIELDS.get(record_type, GENERIC_CONTENT_FIELD): record.content
    }

    if record_type == "MX" and record.priority is not None:
        rdata["preference"] = record.priority
    elif record_type == "SRV":
        for name in ("priority", "weight", "port"):
            if getattr(record, name) is not None:
                rdata[name] = getattr(record, name)
    elif record_type == "CAA":
        if record.flags is not None:
            rdata["flags"] = record.flags
        if record.tag is not None:
            rdata["tag"] = record.tag

    return {"name": record.name, "type": record_type, "ttl": record.ttl, "rData": rdata}


def technitium_params(record: DNSRecord) -> Dict[str, str]:
    """Flatten a record into the form parameters of the add/delete endpoints."""
    wire = to_technitium(record)
    params = {"domain": wire["name"], "type": wire["type"], "ttl": str(wire["ttl"])}
    params.update({key: str(value) for key, value in wire["rData"].items()})
    return params


def _technitium_content(record_type: str, rdata: Any) -> str:
    if rdata is None:
        return ""
    if not isinstance(rdata, dict):
        return str(rdata)

    value = rdata.get(TECHNITIUM_CONTENT_FIELDS.get(record_type, GENERIC_CONTENT_FIELD))
    if value is None and record_type == "MX":
        value = rdata.get("exchange")
    if value is None:
        # Unstructured payload: keep everything, deterministically.
        return json.dumps(rdata, sort_keys=True)
    return str(value)


def from_technitium(raw: Mapping[str, Any], zone: str) -> DNSRecord:
    """Convert a record from Technitium's list response to canonical form."""
    record_type = str(raw.get("type") or "").upper()
    rdata = raw.get("rData")
    fields: Dict[str, Any] = rdata if isinstance(rdata, dict) else {}

    name = qualify_name(str(raw.get("name") or ""), zone)
    content = _technitium_content(record_type, rdata)
    ttl = _int_or_none(raw.get("ttl")) or TECHNITIUM_DEFAULT_TTL

    priority = weight = port = flags = None
    tag: Optional[str] = None
    if record_type == "MX":
        priority = _int_or_none(fields.get("preference"))
    elif record_type == "SRV":
        priority = _int_or_none(fields.get("priority"))
        weight = _int_or_none(fields.get("weight"))
        port = _int_or_none(fields.get("port"))
    elif record_type == "CAA":
        flags = _int_or_none(fields.get("flags"))
        tag = fields.get("tag")

    return DNSRecord(
        name=name,
        type=record_type,
        content=content,
        ttl=ttl,
        priority=priority,
        weight=weight,
        port=port,
        flags=flags,
        tag=tag,
        id=technitium_id(name, record_type, content),
        native=dict(raw),
    )


# =============================================================================
# Cloudflare
# =============================================================================

CLOUDFLARE_PROXIABLE_TYPES = frozenset({"A", "AAAA", "CNAME"})


def to_cloudflare(record: DNSRecord, options: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Convert a canonical record to a Cloudflare ``dns_records`` request body."""
    record_type = record.type.upper()
    body: Dict[str, Any] = {"type": record_type, "name": record.name, "ttl": record.ttl}

    if record_type == "SRV":
        body["data"] = {
            "priority": record.priority,
            "weight": record.weight,
            "port": record.port,
            "target": record.content,
        }
    elif record_type == "CAA":
        body["data"] = {"flags": record.flags, "tag": record.tag, "value": record.content}
    else:
        body["content"] = record.content

    if record_type == "MX":
        body["priority"] = record.priority

    if options and "proxied" in options and record_type in CLOUDFLARE_PROXIABLE_TYPES:
        body["proxied"] = bool(options["proxied"])

    return body


def from_cloudflare(raw: Mapping[str, Any]) -> DNSRecord:
    """Convert a Cloudflare ``dns_records`` result entry to canonical form."""
    record_type = str(raw.get("type") or "").upper()
    data = raw.get("data") if isinstance(raw.get("data"), dict) else {}
    content = raw.get("content")

    priority = weight = port = flags = None
    tag: Optional[str] = None
    if record_type == "MX":
        priority = _int_or_none(raw.get("priority"))
    elif record_type == "SRV":
        priority = _int_or_none(data.get("priority", raw.get("priority")))
        weight = _int_or_none(data.get("weight"))
        port = _int_or_none(data.get("port"))
        if data.get("target") is not None:
            content = data["target"]
        elif isinstance(content, str) and len(content.split()) == 3:
            # "weight port target"
            weight_str, port_str, content = content.split()
            weight, port = _int_or_none(weight_str), _int_or_none(port_str)
    elif record_type == "CAA":
        flags = _int_or_none(data.get("flags"))
        tag = data.get("tag")
        if data.get("value") is not None:
            content = data["value"]

    if content is None:
        content = json.dumps(data, sort_keys=True) if data else ""

    return DNSRecord(
        name=str(raw.get("name") or ""),
        type=record_type,
        content=str(content),
        ttl=_int_or_none(raw.get("ttl")) or 1,
        priority=priority,
        weight=weight,
        port=port,
        flags=flags,
        tag=tag,
        id=str(raw.get("id") or ""),
        native=dict(raw),
    )
