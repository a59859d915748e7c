"""Cloudflare DNS provider (v4 REST API)."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from dns_reconciler.converters import CLOUDFLARE_PROXIABLE_TYPES, from_cloudflare, to_cloudflare
from dns_reconciler.errors import ConfigurationError, InitializationError, ProviderAPIError
from dns_reconciler.providers.base import (
    ALREADY_EXISTS_MARKERS,
    NOT_FOUND_MARKERS,
    DNSProvider,
    UpdateStrategy,
    matches_any,
)
from dns_reconciler.records import DesiredRecordSpec, DNSRecord

logger = logging.getLogger(__name__)

CLOUDFLARE_API_URL = "https://api.cloudflare.com/client/v4"
PAGE_SIZE = 100


class CloudflareProvider(DNSProvider):
    """Cloudflare supports in-place updates via PUT."""

    update_strategy = UpdateStrategy.NATIVE
    supported_types = frozenset(
        {
            "A", "AAAA", "CNAME", "MX", "TXT", "NS", "PTR", "SRV", "CAA",
            "HTTPS", "SVCB", "CERT", "DNSKEY", "DS", "LOC", "NAPTR", "SMIMEA",
            "SSHFP", "TLSA", "URI",
        }
    )
    # 1 means "automatic".
    minimum_ttl = 1
    default_ttl = 1

    def __init__(
        self,
        token: str,
        zone: str,
        zone_id: str = "",
        api_url: str = CLOUDFLARE_API_URL,
        timeout_seconds: float = 10.0,
        cache_staleness_seconds: float = 3600.0,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(
            zone,
            timeout_seconds=timeout_seconds,
            cache_staleness_seconds=cache_staleness_seconds,
            session=session,
        )
        self._token = token
        self._zone_id = zone_id
        self._api_url = api_url.rstrip("/")
        self._session.headers.update(
            {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}
        )

    @property
    def name(self) -> str:
        return "Cloudflare"

    @property
    def zone_id(self) -> str:
        return self._zone_id

    def _check_config(self) -> None:
        if not self._token:
            raise ConfigurationError("CLOUDFLARE_TOKEN is required for the Cloudflare provider")
        if not self.zone:
            raise ConfigurationError("CLOUDFLARE_ZONE is required for the Cloudflare provider")

    def _call(self, method: str, path: str, **kwargs: Any) -> Tuple[bool, Dict[str, Any], str]:
        """Issue a request and unpack Cloudflare's ``{success, errors, result}`` envelope."""
        response = self._send(method, f"{self._api_url}{path}", **kwargs)
        data = self._json(response)
        if not isinstance(data, dict):
            raise ProviderAPIError(
                f"Unexpected response format from {self.name}: "
                f"expected object, got {type(data).__name__}",
                provider=self.name,
            )
        if data.get("success"):
            return True, data, ""
        errors = data.get("errors") or []
        message = "; ".join(
            str(e.get("message") if isinstance(e, dict) else e) for e in errors
        ) or f"HTTP {response.status_code}"
        return False, data, message

    def _prepare(self) -> None:
        if self._zone_id:
            return
        ok, data, message = self._call("get", "/zones", params={"name": self.zone})
        if not ok:
            raise ProviderAPIError(
                f"Cloudflare API error looking up zone {self.zone}: {message}",
                provider=self.name,
            )
        zones = data.get("result") or []
        if not zones:
            raise InitializationError(f"Cloudflare zone not found: {self.zone}")
        zone_id = zones[0].get("id") if isinstance(zones[0], dict) else None
        if not zone_id:
            raise InitializationError(f"Cloudflare zone lookup for {self.zone} returned no id")
        self._zone_id = str(zone_id)
        logger.debug(f"Resolved Cloudflare zone {self.zone} to id {self._zone_id}")

    def validate_record(self, spec: DesiredRecordSpec) -> DesiredRecordSpec:
        spec = super().validate_record(spec)
        # Cloudflare pins proxied records to automatic TTL.
        if spec.options.get("proxied") and spec.ttl not in (None, 1):
            spec = dataclasses.replace(spec, ttl=1)
        return spec

    def _fetch_records(self) -> List[DNSRecord]:
        records: List[DNSRecord] = []
        page = 1
        while True:
            ok, data, message = self._call(
                "get",
                f"/zones/{self._zone_id}/dns_records",
                params={"page": page, "per_page": PAGE_SIZE},
            )
            if not ok:
                raise ProviderAPIError(
                    f"Cloudflare API error listing {self.zone}: {message}", provider=self.name
                )
            for raw in data.get("result") or []:
                if not isinstance(raw, dict) or not raw.get("type"):
                    logger.warning(f"Skipping malformed record: {raw}")
                    continue
                records.append(from_cloudflare(raw))

            total_pages = int((data.get("result_info") or {}).get("total_pages") or 1)
            if page >= total_pages:
                break
            page += 1

        logger.debug(f"Fetched {len(records)} records from {self.name}")
        return records

    def option_changes(self, existing: DNSRecord, spec: DesiredRecordSpec) -> List[str]:
        if "proxied" not in spec.options or existing.type not in CLOUDFLARE_PROXIABLE_TYPES:
            return []
        current = bool((existing.native or {}).get("proxied", False))
        return [] if current == bool(spec.options["proxied"]) else ["proxied"]

    def _from_result(self, data: Dict[str, Any], record: DNSRecord, body: Dict[str, Any]) -> DNSRecord:
        result = data.get("result")
        if isinstance(result, dict) and result.get("type"):
            return from_cloudflare(result)
        # No echo from the API; keep what we sent so proxied is still known.
        return dataclasses.replace(record, native=body)

    def _create(self, record: DNSRecord, options: dict) -> Optional[DNSRecord]:
        body = to_cloudflare(record, options)
        ok, data, message = self._call(
            "post",
            f"/zones/{self._zone_id}/dns_records",
            json=body,
        )
        if not ok:
            if matches_any(message, ALREADY_EXISTS_MARKERS):
                return None
            raise ProviderAPIError(
                f"Cloudflare API error creating {record.type} record {record.name}: {message}",
                provider=self.name,
            )
        return self._from_result(data, record, body)

    def _update(self, existing: DNSRecord, record: DNSRecord, options: dict) -> DNSRecord:
        body = to_cloudflare(record, options)
        ok, data, message = self._call(
            "put",
            f"/zones/{self._zone_id}/dns_records/{existing.id}",
            json=body,
        )
        if not ok:
            raise ProviderAPIError(
                f"Cloudflare API error updating {record.type} record {record.name}: {message}",
                provider=self.name,
            )
        return self._from_result(data, record, body)

    def _delete(self, record: DNSRecord) -> bool:
        ok, _, message = self._call("delete", f"/zones/{self._zone_id}/dns_records/{record.id}")
        if not ok:
            if matches_any(message, NOT_FOUND_MARKERS):
                return False
            raise ProviderAPIError(
                f"Cloudflare API error deleting {record.type} record {record.name}: {message}",
                provider=self.name,
            )
        return True
