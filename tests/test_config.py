"""Unit tests for environment configuration and the provider factory."""

from pathlib import Path

import pytest

from dns_reconciler.config import Settings, parse_bool
from dns_reconciler.errors import ConfigurationError
from dns_reconciler.providers import CloudflareProvider, TechnitiumProvider, create_dns_provider

TECHNITIUM_ENV = {
    "TECHNITIUM_URL": "http://technitium.local:5380",
    "TECHNITIUM_TOKEN": "secret",
    "TECHNITIUM_ZONE": "example.com",
}


# =============================================================================
# Boolean Parsing Tests
# =============================================================================


def test_parse_bool_true_values() -> None:
    """'true', '1', 'yes', 'y', 'on', and True all return True."""
    for val in ["true", "TRUE", "1", "yes", "y", "on", True]:
        assert parse_bool(val) is True, f"Expected True for {val!r}"


def test_parse_bool_false_values() -> None:
    for val in ["false", "0", "no", "off", "maybe", False]:
        assert parse_bool(val) is False, f"Expected False for {val!r}"


def test_parse_bool_none_uses_default() -> None:
    assert parse_bool(None, default=True) is True
    assert parse_bool(None, default=False) is False


# =============================================================================
# Settings.from_env
# =============================================================================


class TestSettingsFromEnv:
    """Tests for reading settings from the environment."""

    def test_defaults(self) -> None:
        settings = Settings.from_env(TECHNITIUM_ENV)

        assert settings.dns_provider == "technitium"
        assert settings.zone == "example.com"
        assert settings.default_type == "CNAME"
        assert settings.default_content == "example.com"
        assert settings.default_ttl == 3600
        assert settings.sync_mode == "watch"
        assert settings.cache_refresh_seconds == 3600.0
        assert settings.validate() == []

    def test_cloudflare_default_ttl_is_automatic(self) -> None:
        settings = Settings.from_env(
            {"DNS_PROVIDER": "Cloudflare", "CLOUDFLARE_TOKEN": "t", "CLOUDFLARE_ZONE": "example.org"}
        )

        assert settings.dns_provider == "cloudflare"
        assert settings.zone == "example.org"
        assert settings.default_ttl == 1
        assert settings.defaults_for("cname").content == "example.org"

    def test_type_defaults(self) -> None:
        settings = Settings.from_env(
            {**TECHNITIUM_ENV, "DNS_DEFAULT_A_TTL": "120", "DNS_DEFAULT_SRV_PORT": "443"}
        )

        assert settings.defaults_for("A").ttl == 120
        assert settings.defaults_for("A").content == ""
        srv = settings.defaults_for("SRV")
        assert (srv.priority, srv.weight, srv.port) == (1, 1, 443)
        assert settings.defaults_for("MX").priority == 10
        assert settings.defaults_for("CAA").tag == "issue"
        assert settings.defaults_for("SSHFP").ttl == 3600

    def test_proxied_defaults(self) -> None:
        settings = Settings.from_env(TECHNITIUM_ENV)

        assert settings.default_proxied is True
        assert [settings.defaults_for(t).proxied for t in ("A", "AAAA", "CNAME")] == [True] * 3
        assert settings.defaults_for("MX").proxied is None

    def test_proxied_per_type_override(self) -> None:
        settings = Settings.from_env(
            {**TECHNITIUM_ENV, "DNS_DEFAULT_PROXIED": "false", "DNS_DEFAULT_CNAME_PROXIED": "true"}
        )

        assert settings.default_proxied is False
        assert settings.defaults_for("A").proxied is False
        assert settings.defaults_for("CNAME").proxied is True

    def test_token_from_file(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        token_file.write_text("from-file\n", encoding="utf-8")
        env = {**TECHNITIUM_ENV, "TECHNITIUM_TOKEN": "", "TECHNITIUM_TOKEN_FILE": str(token_file)}

        assert Settings.from_env(env).technitium_token == "from-file"

    def test_unreadable_token_file(self, tmp_path: Path) -> None:
        env = {"CLOUDFLARE_TOKEN_FILE": str(tmp_path / "missing")}

        with pytest.raises(ConfigurationError, match="CLOUDFLARE_TOKEN_FILE"):
            Settings.from_env(env)

    def test_bad_integer(self) -> None:
        with pytest.raises(ConfigurationError, match="POLL_INTERVAL_SECONDS"):
            Settings.from_env({**TECHNITIUM_ENV, "POLL_INTERVAL_SECONDS": "soon"})

    def test_bad_number(self) -> None:
        with pytest.raises(ConfigurationError, match="API_TIMEOUT_SECONDS"):
            Settings.from_env({**TECHNITIUM_ENV, "API_TIMEOUT_SECONDS": "fast"})


class TestSettingsValidate:
    """validate() reports every problem at once."""

    def test_missing_technitium_settings(self) -> None:
        errors = Settings.from_env({}).validate()

        assert errors == [
            "TECHNITIUM_URL is required when DNS_PROVIDER=technitium",
            "TECHNITIUM_TOKEN is required when DNS_PROVIDER=technitium",
            "TECHNITIUM_ZONE is required when DNS_PROVIDER=technitium",
        ]

    def test_missing_cloudflare_zone(self) -> None:
        errors = Settings.from_env({"DNS_PROVIDER": "cloudflare", "CLOUDFLARE_TOKEN": "t"}).validate()

        assert errors == ["CLOUDFLARE_ZONE is required when DNS_PROVIDER=cloudflare"]

    def test_unknown_provider_and_mode(self) -> None:
        errors = Settings.from_env({"DNS_PROVIDER": "route53", "SYNC_MODE": "sometimes"}).validate()

        assert any("Unsupported DNS_PROVIDER" in e for e in errors)
        assert any("Invalid SYNC_MODE" in e for e in errors)


# =============================================================================
# Provider Factory
# =============================================================================


class TestCreateDNSProvider:
    """create_dns_provider builds the selected backend."""

    def test_technitium(self) -> None:
        provider = create_dns_provider(Settings.from_env({**TECHNITIUM_ENV, "API_TIMEOUT_SECONDS": "3"}))

        assert isinstance(provider, TechnitiumProvider)
        assert provider.zone == "example.com"
        assert provider._timeout == 3.0

    def test_cloudflare(self) -> None:
        settings = Settings.from_env(
            {
                "DNS_PROVIDER": "cloudflare",
                "CLOUDFLARE_TOKEN": "t",
                "CLOUDFLARE_ZONE": "example.org",
                "CLOUDFLARE_ZONE_ID": "zone-1",
                "DNS_CACHE_REFRESH_SECONDS": "30",
            }
        )

        provider = create_dns_provider(settings)

        assert isinstance(provider, CloudflareProvider)
        assert provider.zone_id == "zone-1"
        assert provider.cache.staleness_seconds == 30.0

    def test_unsupported_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="Unsupported DNS provider"):
            create_dns_provider(Settings(dns_provider="route53"))
