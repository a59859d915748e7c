"""Desired record loading and defaulting.

Desired records come from YAML files:

    records:
      - name: app                # relative names get the zone appended
        type: A                  # default: DNS_DEFAULT_TYPE
        content: 203.0.113.10    # default: per-type default or public IP
        ttl: 300
      - name: www
        type: CNAME              # content defaults to the zone
      - name: legacy
        type: A
        content: 198.51.100.7
        manage: false            # left alone by the reconciler

Keys other than the record fields are passed through as backend options
(for example ``proxied`` on Cloudflare or ``ptr`` on Technitium).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import yaml

from dns_reconciler.config import Settings, parse_bool
from dns_reconciler.records import TYPE_SPECIFIC_FIELDS, DesiredRecordSpec, qualify_name

if TYPE_CHECKING:
    from dns_reconciler.public_ip import PublicIPResolver

logger = logging.getLogger(__name__)

RECORD_KEYS = frozenset({"name", "hostname", "type", "content", "ttl", "manage", *TYPE_SPECIFIC_FIELDS})


def find_config_files(config_path: str) -> List[str]:
    """Find all .yaml/.yml files in a directory, or return the single file.

    Args:
        config_path: Path to a records file or directory

    Returns:
        List of file paths (excluding .template files)
    """
    path = Path(config_path)

    if path.is_file():
        return [str(path)]

    if path.is_dir():
        files = sorted([*path.glob("*.yaml"), *path.glob("*.yml")])
        return [str(f) for f in files if not f.name.endswith(".template")]

    return []


def load_record_items(config_path: str) -> List[Dict[str, Any]]:
    """Read the raw ``records`` entries from every YAML file under ``config_path``."""
    items: List[Dict[str, Any]] = []
    for config_file in find_config_files(config_path):
        try:
            with open(config_file, "r") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load records from {config_file}: {e}")
            continue

        if not isinstance(data, dict) or "records" not in data:
            logger.warning(f"Records file {config_file} missing 'records' key")
            continue

        for item in data["records"] or []:
            if not isinstance(item, dict):
                logger.debug(f"Skipping non-dict record entry in {config_file}: {item}")
                continue
            items.append(item)
    return items


def _coerce_int(value: Any, default: Optional[int]) -> Any:
    # Unparseable values are kept as-is so validation reports them per record.
    if value is None or value == "":
        return default
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return value


def build_spec(
    item: Dict[str, Any],
    settings: Settings,
    resolver: Optional["PublicIPResolver"] = None,
) -> DesiredRecordSpec:
    """Turn one raw record entry into a desired spec with defaults applied."""
    record_type = str(item.get("type") or settings.default_type).strip().upper()
    defaults = settings.defaults_for(record_type)
    name = qualify_name(str(item.get("name") or item.get("hostname") or ""), settings.zone)

    content = item.get("content")
    if content is None or str(content).strip() == "":
        content = defaults.content
        if not content and resolver is not None:
            if record_type == "A":
                content = resolver.resolve() or ""
            elif record_type == "AAAA":
                content = resolver.resolve_ipv6() or ""

    options = {k: v for k, v in item.items() if k not in RECORD_KEYS}
    if "proxied" in options:
        options["proxied"] = parse_bool(options["proxied"], default=False)
    elif defaults.proxied is not None:
        options["proxied"] = defaults.proxied

    return DesiredRecordSpec(
        name=name,
        type=record_type,
        content=str(content).strip(),
        ttl=_coerce_int(item.get("ttl"), defaults.ttl),
        priority=_coerce_int(item.get("priority"), defaults.priority),
        weight=_coerce_int(item.get("weight"), defaults.weight),
        port=_coerce_int(item.get("port"), defaults.port),
        flags=_coerce_int(item.get("flags"), defaults.flags),
        tag=item.get("tag") or defaults.tag,
        options=options,
        manage=parse_bool(item.get("manage"), default=settings.default_manage),
    )


def load_desired_records(
    config_path: str,
    settings: Settings,
    resolver: Optional["PublicIPResolver"] = None,
) -> List[DesiredRecordSpec]:
    specs = [build_spec(item, settings, resolver) for item in load_record_items(config_path)]
    logger.debug(f"Loaded {len(specs)} desired record(s) from {config_path}")
    return specs
