"""Technitium DNS Server provider (self-hosted HTTP API)."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

import requests

from dns_reconciler.converters import (
    from_technitium,
    technitium_id,
    technitium_params,
    to_technitium,
)
from dns_reconciler.errors import ConfigurationError, ProviderAPIError
from dns_reconciler.providers.base import (
    ALREADY_EXISTS_MARKERS,
    NOT_FOUND_MARKERS,
    DNSProvider,
    UpdateStrategy,
    matches_any,
)
from dns_reconciler.records import DNSRecord

logger = logging.getLogger(__name__)


class TechnitiumProvider(DNSProvider):
    """Technitium has no update call, so updates are delete + create."""

    update_strategy = UpdateStrategy.DELETE_THEN_CREATE
    supported_types = frozenset(
        {
            "A", "AAAA", "CNAME", "MX", "TXT", "NS", "PTR", "SRV", "CAA",
            "ANAME", "DNAME", "SSHFP", "TLSA", "SVCB", "HTTPS", "URI", "DS",
        }
    )
    minimum_ttl = 1
    default_ttl = 3600

    def __init__(
        self,
        url: str,
        token: str,
        zone: str,
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
        self._url = (url or "").rstrip("/")
        self._token = token

    @property
    def name(self) -> str:
        return "Technitium"

    def _check_config(self) -> None:
        missing = [
            var
            for var, value in (
                ("TECHNITIUM_URL", self._url),
                ("TECHNITIUM_TOKEN", self._token),
                ("TECHNITIUM_ZONE", self.zone),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Technitium provider requires {', '.join(missing)}"
            )

    def _envelope(self, response: requests.Response) -> Dict[str, Any]:
        data = self._json(response)
        if not isinstance(data, dict):
            raise ProviderAPIError(
                f"Unexpected response format from {self.name}: "
                f"expected object, got {type(data).__name__}",
                provider=self.name,
            )
        return data

    def _error_message(self, data: Dict[str, Any]) -> str:
        return str(data.get("errorMessage") or data.get("status") or "unknown error")

    def _fetch_records(self) -> List[DNSRecord]:
        response = self._send(
            "get",
            f"{self._url}/api/zones/records/get",
            params={
                "token": self._token,
                "domain": self.zone,
                "zone": self.zone,
                "listAll": "true",
            },
        )
        data = self._envelope(response)
        if data.get("status") != "ok":
            raise ProviderAPIError(
                f"Technitium API error listing {self.zone}: {self._error_message(data)}",
                provider=self.name,
            )

        body = data.get("response") or {}
        raw_records = (body.get("records") or []) if isinstance(body, dict) else None
        if not isinstance(raw_records, list):
            raise ProviderAPIError(
                f"Unexpected record list format from {self.name} for {self.zone}",
                provider=self.name,
            )

        records = []
        for raw in raw_records:
            if not isinstance(raw, dict) or not raw.get("type"):
                logger.warning(f"Skipping malformed record: {raw}")
                continue
            records.append(from_technitium(raw, self.zone))
        logger.debug(f"Fetched {len(records)} records from {self.name}")
        return records

    def _create(self, record: DNSRecord, options: dict) -> Optional[DNSRecord]:
        params = technitium_params(record)
        params.update({"token": self._token, "zone": self.zone, "overwrite": "false"})
        if record.type in ("A", "AAAA") and options.get("ptr"):
            params["ptr"] = "true"

        response = self._send("post", f"{self._url}/api/zones/records/add", data=params)
        data = self._envelope(response)
        if data.get("status") != "ok":
            message = self._error_message(data)
            if matches_any(message, ALREADY_EXISTS_MARKERS):
                return None
            raise ProviderAPIError(
                f"Technitium API error creating {record.type} record {record.name}: {message}",
                provider=self.name,
            )

        # Technitium identifies records by their data, so the id is derived.
        return replace(
            record,
            id=technitium_id(record.name, record.type, record.content),
            native=to_technitium(record),
        )

    def _delete(self, record: DNSRecord) -> bool:
        params = technitium_params(record)
        params.pop("ttl", None)
        params.update({"token": self._token, "zone": self.zone})

        response = self._send("post", f"{self._url}/api/zones/records/delete", data=params)
        data = self._envelope(response)
        if data.get("status") != "ok":
            message = self._error_message(data)
            if matches_any(message, NOT_FOUND_MARKERS):
                return False
            raise ProviderAPIError(
                f"Technitium API error deleting {record.type} record {record.name}: {message}",
                provider=self.name,
            )
        return True
