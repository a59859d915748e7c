#!/usr/bin/env python3
"""dns-reconciler - keep DNS records converged with a desired record set

Reads desired records from YAML, fills in defaults (including the host's
public IP for A/AAAA records) and converges them onto a DNS provider,
creating missing records and updating changed ones. Unchanged records cost
no API calls.

Supported DNS Providers:
    - technitium: Technitium DNS Server (self-hosted)
    - cloudflare: Cloudflare DNS

See ``dns_reconciler.config`` for the environment variables.
"""

from __future__ import annotations

import logging
import sys
import time
from typing import Optional

from dns_reconciler.config import Settings
from dns_reconciler.desired import find_config_files, load_desired_records
from dns_reconciler.errors import ConfigurationError, InitializationError
from dns_reconciler.providers import DNSProvider, create_dns_provider
from dns_reconciler.public_ip import PublicIPResolver
from dns_reconciler.reconciler import ReconcileResult, Reconciler

logger = logging.getLogger("dns_reconciler")

MIN_POLL_INTERVAL_SECONDS = 5


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def sync_once(
    settings: Settings,
    provider: DNSProvider,
    reconciler: Reconciler,
    resolver: Optional[PublicIPResolver] = None,
) -> ReconcileResult:
    """Load the desired records and converge them once."""
    specs = load_desired_records(settings.records_path, settings, resolver)
    result = reconciler.converge(provider, specs)
    for outcome in result.failed:
        logger.warning(
            f"Record {outcome.spec.name} ({outcome.spec.type}) not converged: {outcome.error}"
        )
    return result


def main() -> None:
    """Main entry point."""
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        setup_logging("INFO")
        logger.error(f"Configuration validation failed: {e}")
        sys.exit(1)

    setup_logging(settings.log_level)
    logger.info(f"dns-reconciler: {settings.records_path} -> {settings.dns_provider}")

    errors = settings.validate()
    if errors:
        for error in errors:
            logger.error(error)
        logger.error("Configuration validation failed")
        sys.exit(1)

    provider = create_dns_provider(settings)
    try:
        provider.init()
    except InitializationError as e:
        logger.error(f"Cannot initialize {provider.name}: {e}. Exiting.")
        sys.exit(1)

    resolver = PublicIPResolver(
        refresh_interval=settings.ip_refresh_seconds,
        static_ipv4=settings.public_ip,
        static_ipv6=settings.public_ipv6,
    )
    resolver.refresh()
    resolver.start()

    logger.info(f"DNS Provider: {provider.name} (zone {provider.zone})")
    logger.info(f"Update strategy: {provider.update_strategy.value}")
    logger.info(f"Sync mode: {settings.sync_mode}")
    if settings.sync_mode == "watch":
        logger.info(f"Poll interval: {settings.poll_interval_seconds}s")
        logger.info(f"Records files: {len(find_config_files(settings.records_path))}")

    reconciler = Reconciler()

    try:
        if settings.sync_mode == "once":
            result = sync_once(settings, provider, reconciler, resolver)
            if result.failed:
                sys.exit(1)
            return

        while True:
            sync_once(settings, provider, reconciler, resolver)
            time.sleep(max(MIN_POLL_INTERVAL_SECONDS, settings.poll_interval_seconds))

    except KeyboardInterrupt:
        logger.info("Shutting down gracefully...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    finally:
        resolver.stop(timeout=1)


if __name__ == "__main__":
    main()
