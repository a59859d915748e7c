"""Environment-driven configuration.

Environment variables:

    Provider Selection:
        DNS_PROVIDER               "technitium" or "cloudflare" (default: technitium)

    Technitium DNS Provider:
        TECHNITIUM_URL             Technitium DNS Server base URL
        TECHNITIUM_TOKEN           API token (or TECHNITIUM_TOKEN_FILE)
        TECHNITIUM_ZONE            Zone to manage, e.g. example.com

    Cloudflare DNS Provider:
        CLOUDFLARE_TOKEN           API token (or CLOUDFLARE_TOKEN_FILE)
        CLOUDFLARE_ZONE            Zone name, e.g. example.com
        CLOUDFLARE_ZONE_ID         Zone id (optional, looked up by name when unset)

    Timing:
        API_TIMEOUT_SECONDS        Timeout for every outbound call (default: 10)
        DNS_CACHE_REFRESH_SECONDS  Record cache staleness threshold (default: 3600)
        IP_REFRESH_SECONDS         Public IP refresh interval, 0 disables (default: 3600)

    Public IP:
        PUBLIC_IP                  Fixed public IPv4, skips the lookup services
        PUBLIC_IPV6                Fixed public IPv6, skips the lookup service

    Record defaults:
        DNS_DEFAULT_TYPE           Record type when a record omits it (default: CNAME)
        DNS_DEFAULT_CONTENT        Default content (default: the zone)
        DNS_DEFAULT_TTL            Default TTL (default: provider specific)
        DNS_DEFAULT_MANAGE         Manage records unless they say otherwise (default: true)
        DNS_DEFAULT_PROXIED        Proxy A/AAAA/CNAME records through Cloudflare (default: true)
        DNS_DEFAULT_<TYPE>_PROXIED Per-type override for A, AAAA and CNAME
        DNS_DEFAULT_<TYPE>_CONTENT / DNS_DEFAULT_<TYPE>_TTL
        DNS_DEFAULT_MX_PRIORITY, DNS_DEFAULT_SRV_PRIORITY, DNS_DEFAULT_SRV_WEIGHT,
        DNS_DEFAULT_SRV_PORT, DNS_DEFAULT_CAA_FLAGS, DNS_DEFAULT_CAA_TAG

    Runtime:
        RECORDS_PATH               YAML file or directory of desired records
                                   (default: /config/records.yaml)
        SYNC_MODE                  "once" or "watch" (polling loop) (default: watch)
        POLL_INTERVAL_SECONDS      Poll interval in watch mode (default: 60)
        LOG_LEVEL                  DEBUG, INFO, WARNING, ERROR (default: INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from dns_reconciler.errors import ConfigurationError

PROVIDER_DEFAULT_TTL = {"technitium": 3600, "cloudflare": 1}

SYNC_MODES = ("once", "watch")


# =============================================================================
# Environment Parsing
# =============================================================================


def parse_bool(value: Any, *, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_str(env: Mapping[str, str], name: str, default: str = "") -> str:
    value = env.get(name)
    if value is None or not value.strip():
        return default
    return value.strip()


def _get_int(env: Mapping[str, str], name: str, default: int) -> int:
    value = _get_str(env, name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{value}'")


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    value = _get_str(env, name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{value}'")


def _get_secret(env: Mapping[str, str], name: str) -> str:
    """Read ``name`` directly, or from the file named by ``<name>_FILE``."""
    value = _get_str(env, name)
    if value:
        return value
    path = _get_str(env, f"{name}_FILE")
    if not path:
        return ""
    try:
        return Path(path).read_text("utf-8").strip()
    except OSError as e:
        raise ConfigurationError(f"Failed to read {name}_FILE {path}: {e}")


# =============================================================================
# Settings
# =============================================================================


@dataclass(frozen=True)
class TypeDefaults:
    """Default values applied to desired records of one type."""

    content: str = ""
    ttl: Optional[int] = None
    priority: Optional[int] = None
    weight: Optional[int] = None
    port: Optional[int] = None
    flags: Optional[int] = None
    tag: Optional[str] = None
    proxied: Optional[bool] = None


@dataclass(frozen=True)
class Settings:
    dns_provider: str = "technitium"

    technitium_url: str = ""
    technitium_token: str = ""
    technitium_zone: str = ""

    cloudflare_token: str = ""
    cloudflare_zone: str = ""
    cloudflare_zone_id: str = ""

    api_timeout_seconds: float = 10.0
    cache_refresh_seconds: float = 3600.0
    ip_refresh_seconds: float = 3600.0

    public_ip: str = ""
    public_ipv6: str = ""

    default_type: str = "CNAME"
    default_content: str = ""
    default_ttl: int = 3600
    default_manage: bool = True
    default_proxied: bool = True
    record_defaults: Dict[str, TypeDefaults] = field(default_factory=dict)

    records_path: str = "/config/records.yaml"
    sync_mode: str = "watch"
    poll_interval_seconds: int = 60
    log_level: str = "INFO"

    @property
    def zone(self) -> str:
        """The zone managed by the selected provider."""
        if self.dns_provider == "cloudflare":
            return self.cloudflare_zone
        if self.dns_provider == "technitium":
            return self.technitium_zone
        return ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        dns_provider = _get_str(env, "DNS_PROVIDER", "technitium").lower()
        technitium_zone = _get_str(env, "TECHNITIUM_ZONE")
        cloudflare_zone = _get_str(env, "CLOUDFLARE_ZONE")
        zone = cloudflare_zone if dns_provider == "cloudflare" else technitium_zone

        default_ttl = _get_int(env, "DNS_DEFAULT_TTL", PROVIDER_DEFAULT_TTL.get(dns_provider, 1))
        default_content = _get_str(env, "DNS_DEFAULT_CONTENT", zone)
        default_proxied = parse_bool(env.get("DNS_DEFAULT_PROXIED"), default=True)

        return cls(
            dns_provider=dns_provider,
            technitium_url=_get_str(env, "TECHNITIUM_URL"),
            technitium_token=_get_secret(env, "TECHNITIUM_TOKEN"),
            technitium_zone=technitium_zone,
            cloudflare_token=_get_secret(env, "CLOUDFLARE_TOKEN"),
            cloudflare_zone=cloudflare_zone,
            cloudflare_zone_id=_get_str(env, "CLOUDFLARE_ZONE_ID"),
            api_timeout_seconds=_get_float(env, "API_TIMEOUT_SECONDS", 10.0),
            cache_refresh_seconds=_get_float(env, "DNS_CACHE_REFRESH_SECONDS", 3600.0),
            ip_refresh_seconds=_get_float(env, "IP_REFRESH_SECONDS", 3600.0),
            public_ip=_get_str(env, "PUBLIC_IP"),
            public_ipv6=_get_str(env, "PUBLIC_IPV6"),
            default_type=_get_str(env, "DNS_DEFAULT_TYPE", "CNAME").upper(),
            default_content=default_content,
            default_ttl=default_ttl,
            default_manage=parse_bool(env.get("DNS_DEFAULT_MANAGE"), default=True),
            default_proxied=default_proxied,
            record_defaults=_record_defaults(env, default_ttl, default_content, default_proxied),
            records_path=_get_str(env, "RECORDS_PATH", "/config/records.yaml"),
            sync_mode=_get_str(env, "SYNC_MODE", "watch").lower(),
            poll_interval_seconds=_get_int(env, "POLL_INTERVAL_SECONDS", 60),
            log_level=_get_str(env, "LOG_LEVEL", "INFO").upper(),
        )

    def defaults_for(self, record_type: str) -> TypeDefaults:
        return self.record_defaults.get(
            record_type.upper(),
            TypeDefaults(content=self.default_content, ttl=self.default_ttl),
        )

    def validate(self) -> List[str]:
        """Return a list of configuration errors; empty when usable."""
        errors: List[str] = []

        if self.dns_provider == "technitium":
            for name, value in (
                ("TECHNITIUM_URL", self.technitium_url),
                ("TECHNITIUM_TOKEN", self.technitium_token),
                ("TECHNITIUM_ZONE", self.technitium_zone),
            ):
                if not value:
                    errors.append(f"{name} is required when DNS_PROVIDER=technitium")
        elif self.dns_provider == "cloudflare":
            if not self.cloudflare_token:
                errors.append("CLOUDFLARE_TOKEN is required when DNS_PROVIDER=cloudflare")
            if not self.cloudflare_zone:
                errors.append("CLOUDFLARE_ZONE is required when DNS_PROVIDER=cloudflare")
        else:
            errors.append(
                f"Unsupported DNS_PROVIDER: {self.dns_provider}. Supported: technitium, cloudflare"
            )

        if self.sync_mode not in SYNC_MODES:
            errors.append(f"Invalid SYNC_MODE: {self.sync_mode}. Use 'once' or 'watch'")

        return errors


def _record_defaults(
    env: Mapping[str, str], default_ttl: int, default_content: str, default_proxied: bool
) -> Dict[str, TypeDefaults]:
    def ttl(record_type: str) -> int:
        return _get_int(env, f"DNS_DEFAULT_{record_type}_TTL", default_ttl)

    def content(record_type: str, default: str = "") -> str:
        return _get_str(env, f"DNS_DEFAULT_{record_type}_CONTENT", default)

    def proxied(record_type: str) -> bool:
        return parse_bool(env.get(f"DNS_DEFAULT_{record_type}_PROXIED"), default=default_proxied)

    # A/AAAA content falls back to the discovered public address at build time.
    return {
        "A": TypeDefaults(content=content("A"), ttl=ttl("A"), proxied=proxied("A")),
        "AAAA": TypeDefaults(content=content("AAAA"), ttl=ttl("AAAA"), proxied=proxied("AAAA")),
        "CNAME": TypeDefaults(
            content=content("CNAME", default_content), ttl=ttl("CNAME"), proxied=proxied("CNAME")
        ),
        "MX": TypeDefaults(
            content=content("MX"),
            ttl=ttl("MX"),
            priority=_get_int(env, "DNS_DEFAULT_MX_PRIORITY", 10),
        ),
        "TXT": TypeDefaults(content=content("TXT"), ttl=ttl("TXT")),
        "SRV": TypeDefaults(
            content=content("SRV"),
            ttl=ttl("SRV"),
            priority=_get_int(env, "DNS_DEFAULT_SRV_PRIORITY", 1),
            weight=_get_int(env, "DNS_DEFAULT_SRV_WEIGHT", 1),
            port=_get_int(env, "DNS_DEFAULT_SRV_PORT", 80),
        ),
        "CAA": TypeDefaults(
            content=content("CAA"),
            ttl=ttl("CAA"),
            flags=_get_int(env, "DNS_DEFAULT_CAA_FLAGS", 0),
            tag=_get_str(env, "DNS_DEFAULT_CAA_TAG", "issue"),
        ),
    }
