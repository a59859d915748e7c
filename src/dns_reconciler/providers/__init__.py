"""DNS provider adapters and the provider registry."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dns_reconciler.errors import ConfigurationError
from dns_reconciler.providers.base import DNSProvider, UpdateStrategy
from dns_reconciler.providers.cloudflare import CloudflareProvider
from dns_reconciler.providers.technitium import TechnitiumProvider

if TYPE_CHECKING:
    from dns_reconciler.config import Settings

SUPPORTED_PROVIDERS = ("technitium", "cloudflare")


def create_dns_provider(settings: "Settings") -> DNSProvider:
    """Factory function to create the configured DNS provider."""
    if settings.dns_provider == "technitium":
        return TechnitiumProvider(
            url=settings.technitium_url,
            token=settings.technitium_token,
            zone=settings.technitium_zone,
            timeout_seconds=settings.api_timeout_seconds,
            cache_staleness_seconds=settings.cache_refresh_seconds,
        )
    if settings.dns_provider == "cloudflare":
        return CloudflareProvider(
            token=settings.cloudflare_token,
            zone=settings.cloudflare_zone,
            zone_id=settings.cloudflare_zone_id,
            timeout_seconds=settings.api_timeout_seconds,
            cache_staleness_seconds=settings.cache_refresh_seconds,
        )
    raise ConfigurationError(
        f"Unsupported DNS provider: '{settings.dns_provider}'. "
        f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
    )


__all__ = [
    "CloudflareProvider",
    "DNSProvider",
    "SUPPORTED_PROVIDERS",
    "TechnitiumProvider",
    "UpdateStrategy",
    "create_dns_provider",
]
