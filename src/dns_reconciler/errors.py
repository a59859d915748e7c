"""Exception hierarchy shared by providers, the reconciler and the CLI."""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from dns_reconciler.records import DNSRecord


class DNSReconcilerError(Exception):
    """Base class for all errors raised by this package."""


class InitializationError(DNSReconcilerError):
    """A provider could not be made ready. Fatal at startup."""


class ConfigurationError(InitializationError):
    """Required credentials, zone or provider selection are missing or invalid."""


class ValidationError(DNSReconcilerError):
    """A record was rejected before any network call was made."""


class ProviderAPIError(DNSReconcilerError):
    """The backend answered with an error that is not a known no-op."""

    def __init__(self, message: str, provider: str = ""):
        super().__init__(message)
        self.provider = provider


class PartialUpdateFailure(ProviderAPIError):
    """Delete succeeded but the re-create failed; the record is now absent."""

    def __init__(
        self,
        deleted: "DNSRecord",
        cause: Exception,
        provider: str = "",
    ):
        super().__init__(
            f"{deleted.type} record {deleted.name} was deleted but could not be "
            f"re-created: {cause}",
            provider=provider,
        )
        self.deleted = deleted
        self.cause: Optional[Exception] = cause


class NetworkError(DNSReconcilerError):
    """Timeout or connection failure talking to a backend or lookup service."""
