"""Public IP discovery used as default content for A and AAAA records."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import requests

from dns_reconciler.errors import NetworkError
from dns_reconciler.validation import is_valid_ipv4, is_valid_ipv6

logger = logging.getLogger(__name__)

IPV4_SERVICES = ("https://api.ipify.org", "https://ifconfig.me/ip")
IPV6_SERVICE = "https://api6.ipify.org"


@dataclass(frozen=True)
class PublicAddresses:
    ipv4: Optional[str] = None
    ipv6: Optional[str] = None
    last_check: Optional[float] = None


class PublicIPResolver:
    """Caches the host's public addresses and refreshes them single-flight.

    Concurrent callers that arrive while a refresh is running wait on that
    refresh's future instead of starting their own lookups.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        ipv4_urls: Sequence[str] = IPV4_SERVICES,
        ipv6_url: str = IPV6_SERVICE,
        refresh_interval: float = 3600.0,
        timeout_seconds: float = 5.0,
        static_ipv4: str = "",
        static_ipv6: str = "",
        on_change: Optional[Callable[[str, str], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._session = session or requests.Session()
        self._ipv4_urls = tuple(ipv4_urls)
        self._ipv6_url = ipv6_url
        self.refresh_interval = refresh_interval
        self._timeout = timeout_seconds
        self._static_ipv4 = static_ipv4.strip()
        self._static_ipv6 = static_ipv6.strip()
        self._on_change = on_change
        self._clock = clock

        self._state = PublicAddresses()
        self._lock = threading.Lock()
        self._inflight: Optional[Future] = None
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def addresses(self) -> PublicAddresses:
        return self._state

    def _is_fresh(self) -> bool:
        last_check = self._state.last_check
        return last_check is not None and self._clock() - last_check < self.refresh_interval

    def resolve(self, force: bool = False) -> Optional[str]:
        """Public IPv4, from cache when fresh. May be None if never discovered."""
        observed = self._state
        if not force and observed.ipv4 and self._is_fresh():
            return observed.ipv4
        return self._refresh(None if force else observed).ipv4

    def resolve_ipv6(self) -> Optional[str]:
        """Public IPv6. Within the refresh interval a missing address stays missing."""
        observed = self._state
        if self._is_fresh():
            return observed.ipv6
        return self._refresh(observed).ipv6

    def refresh(self) -> PublicAddresses:
        """Look up both addresses, or join the lookup already in flight."""
        return self._refresh(None)

    def _refresh(self, observed: Optional[PublicAddresses]) -> PublicAddresses:
        # ``observed`` is the state the caller decided was too old. If another
        # lookup has finished since, its result is returned instead.
        with self._lock:
            future = self._inflight
            if future is None and observed is not None and self._state is not observed:
                return self._state
            leader = future is None
            if leader:
                future = self._inflight = Future()

        if not leader:
            logger.debug("Public IP update already in progress, waiting...")
            return future.result()

        try:
            addresses = self._lookup()
            future.set_result(addresses)
            return addresses
        except Exception as e:
            future.set_exception(e)
            raise
        finally:
            with self._lock:
                self._inflight = None

    # -------------------------------------------------------------------------
    # Periodic refresh
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Refresh in a background thread every ``refresh_interval`` seconds."""
        if self.refresh_interval <= 0:
            return
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._refresh_loop, name="PublicIPRefresher", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _refresh_loop(self) -> None:
        while not self._stop_event.wait(self.refresh_interval):
            try:
                self.resolve(force=True)
            except Exception:
                logger.warning("Periodic public IP refresh failed", exc_info=True)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def _get_text(self, url: str) -> str:
        try:
            response = self._session.get(url, timeout=self._timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"{url}: {e}") from e
        return response.text.strip()

    def _fetch_ipv4(self) -> Optional[str]:
        for url in self._ipv4_urls:
            try:
                address = self._get_text(url)
            except NetworkError as e:
                logger.warning(f"Public IPv4 lookup failed: {e}")
                continue
            if is_valid_ipv4(address):
                return address
            logger.warning(f"Public IPv4 lookup via {url} returned an invalid address: {address!r}")
        logger.error("Failed to fetch public IPv4 address from all services")
        return None

    def _fetch_ipv6(self) -> Optional[str]:
        try:
            address = self._get_text(self._ipv6_url)
        except NetworkError as e:
            logger.debug(f"Failed to fetch public IPv6 address (normal without IPv6): {e}")
            return None
        if not is_valid_ipv6(address):
            logger.debug(f"Public IPv6 lookup returned an invalid address: {address!r}")
            return None
        return address

    def _lookup(self) -> PublicAddresses:
        previous = self._state
        ipv4 = self._static_ipv4 or self._fetch_ipv4() or previous.ipv4
        # IPv6 is best effort; a failed lookup means no IPv6 right now.
        ipv6 = self._static_ipv6 or self._fetch_ipv6()

        self._state = PublicAddresses(ipv4=ipv4, ipv6=ipv6, last_check=self._clock())

        if ipv4 and ipv4 != previous.ipv4:
            logger.info(f"Public IPv4: {ipv4}")
            self._notify("ipv4", ipv4)
        if ipv6 and ipv6 != previous.ipv6:
            logger.info(f"Public IPv6: {ipv6}")
            self._notify("ipv6", ipv6)
        return self._state

    def _notify(self, family: str, address: str) -> None:
        if self._on_change is not None:
            self._on_change(family, address)
