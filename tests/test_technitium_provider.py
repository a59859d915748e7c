"""Unit tests for TechnitiumProvider."""

from typing import Any, Dict, List
from unittest.mock import MagicMock, patch

import pytest
import requests

from dns_reconciler.errors import (
    ConfigurationError,
    InitializationError,
    NetworkError,
    PartialUpdateFailure,
    ProviderAPIError,
    ValidationError,
)
from dns_reconciler.providers import TechnitiumProvider, UpdateStrategy
from dns_reconciler.records import DesiredRecordSpec

URL = "http://technitium.local:5380"


def respond(payload: Any) -> MagicMock:
    response = MagicMock()
    response.status_code = 200
    response.json.return_value = payload
    return response


def ok(**response: Any) -> MagicMock:
    return respond({"status": "ok", "response": response})


def error(message: str) -> MagicMock:
    return respond({"status": "error", "errorMessage": message})


def listing(records: List[Dict[str, Any]]) -> MagicMock:
    return ok(zone={"name": "example.com"}, records=records)


def a_record(name: str = "app.example.com", ip: str = "1.2.3.4", ttl: int = 300) -> Dict[str, Any]:
    return {"name": name, "type": "A", "ttl": ttl, "rData": {"ipAddress": ip}}


@pytest.fixture
def provider() -> TechnitiumProvider:
    return TechnitiumProvider(url=URL + "/", token="secret", zone="example.com")


def init_with(provider: TechnitiumProvider, records: List[Dict[str, Any]]) -> None:
    with patch.object(provider._session, "get") as mock_get:
        mock_get.return_value = listing(records)
        provider.init()


# =============================================================================
# Initialization
# =============================================================================


class TestTechnitiumInit:
    """Tests for provider initialization."""

    def test_capabilities(self, provider: TechnitiumProvider) -> None:
        assert provider.update_strategy is UpdateStrategy.DELETE_THEN_CREATE
        assert provider.get_minimum_ttl() == 1
        assert provider.supports_record_type("caa")
        assert not provider.supports_record_type("BOGUS")

    def test_missing_config_raises_configuration_error(self) -> None:
        provider = TechnitiumProvider(url="", token="", zone="example.com")

        with patch.object(provider._session, "get") as mock_get:
            with pytest.raises(ConfigurationError, match="TECHNITIUM_URL, TECHNITIUM_TOKEN"):
                provider.init()
            mock_get.assert_not_called()

    def test_init_lists_zone_records(self, provider: TechnitiumProvider) -> None:
        with patch.object(provider._session, "get") as mock_get:
            mock_get.return_value = listing([a_record()])

            provider.init()

            mock_get.assert_called_once_with(
                f"{URL}/api/zones/records/get",
                timeout=10.0,
                params={
                    "token": "secret",
                    "domain": "example.com",
                    "zone": "example.com",
                    "listAll": "true",
                },
            )
        assert len(provider.cache) == 1

    def test_api_error_during_init_is_initialization_error(self, provider: TechnitiumProvider) -> None:
        with patch.object(provider._session, "get") as mock_get:
            mock_get.return_value = error("Invalid token or session expired.")

            with pytest.raises(InitializationError, match="Invalid token"):
                provider.init()

    def test_unreachable_server_is_initialization_error(self, provider: TechnitiumProvider) -> None:
        with patch.object(provider._session, "get") as mock_get:
            mock_get.side_effect = requests.exceptions.ConnectionError("Connection refused")

            with pytest.raises(InitializationError, match="Connection refused"):
                provider.init()


# =============================================================================
# Reads
# =============================================================================


class TestTechnitiumListRecords:
    """Tests for cached reads."""

    def test_list_records_uses_cache(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [a_record(), {"name": "example.com", "type": "TXT", "ttl": 60, "rData": {"text": "hello"}}])

        with patch.object(provider._session, "get") as mock_get:
            records = provider.list_records(type="A")
            mock_get.assert_not_called()

        assert [r.content for r in records] == ["1.2.3.4"]

    def test_malformed_entries_are_skipped(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [a_record(), "garbage", {"name": "x.example.com"}])
        assert len(provider.cache) == 1

    def test_non_json_response_is_provider_error(self, provider: TechnitiumProvider) -> None:
        with patch.object(provider._session, "get") as mock_get:
            response = MagicMock()
            response.status_code = 502
            response.json.side_effect = ValueError("not json")
            mock_get.return_value = response

            with pytest.raises(ProviderAPIError, match="HTTP 502"):
                provider.cache.refresh()

    def test_malformed_response_body_is_provider_error(self, provider: TechnitiumProvider) -> None:
        with patch.object(provider._session, "get") as mock_get:
            mock_get.return_value = respond({"status": "ok", "response": "maintenance"})

            with pytest.raises(ProviderAPIError, match="Unexpected record list format"):
                provider.cache.refresh()

    def test_malformed_record_list_fails_initialization(self, provider: TechnitiumProvider) -> None:
        with patch.object(provider._session, "get") as mock_get:
            mock_get.return_value = ok(records={"app.example.com": "1.2.3.4"})

            with pytest.raises(InitializationError):
                provider.init()

    def test_connection_error_is_network_error(self, provider: TechnitiumProvider) -> None:
        with patch.object(provider._session, "get") as mock_get:
            mock_get.side_effect = requests.exceptions.Timeout("timed out")

            with pytest.raises(NetworkError):
                provider.cache.refresh()


# =============================================================================
# Writes
# =============================================================================


class TestTechnitiumCreate:
    """Tests for record creation."""

    def test_create_posts_flat_params(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [])
        spec = DesiredRecordSpec(name="app.example.com", type="A", content="1.2.3.4", ttl=300)

        with patch.object(provider._session, "post") as mock_post:
            mock_post.return_value = ok()

            record = provider.create_record(spec)

            mock_post.assert_called_once_with(
                f"{URL}/api/zones/records/add",
                timeout=10.0,
                data={
                    "domain": "app.example.com",
                    "type": "A",
                    "ttl": "300",
                    "ipAddress": "1.2.3.4",
                    "token": "secret",
                    "zone": "example.com",
                    "overwrite": "false",
                },
            )
        assert record.id == "app.example.com/A/1.2.3.4"
        assert provider.find_record(spec) == record

    def test_create_uses_default_ttl_and_ptr_option(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [])
        spec = DesiredRecordSpec(
            name="app.example.com", type="A", content="1.2.3.4", options={"ptr": True}
        )

        with patch.object(provider._session, "post") as mock_post:
            mock_post.return_value = ok()
            record = provider.create_record(spec)
            sent = mock_post.call_args.kwargs["data"]

        assert sent["ttl"] == "3600"
        assert sent["ptr"] == "true"
        assert record.ttl == 3600

    def test_already_exists_is_a_noop(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [])
        spec = DesiredRecordSpec(name="app.example.com", type="A", content="1.2.3.4")

        with patch.object(provider._session, "post") as mock_post:
            mock_post.return_value = error("Cannot add record: record already exists.")

            assert provider.create_record(spec) is None
        assert provider.cache.is_stale()

    def test_other_api_error_raises(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [])
        spec = DesiredRecordSpec(name="app.example.com", type="A", content="1.2.3.4")

        with patch.object(provider._session, "post") as mock_post:
            mock_post.return_value = error("Zone is disabled.")

            with pytest.raises(ProviderAPIError, match="Zone is disabled"):
                provider.create_record(spec)

    def test_invalid_record_makes_no_request(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [])
        spec = DesiredRecordSpec(name="app.example.com", type="A", content="999.1.1.1")

        with patch.object(provider._session, "post") as mock_post:
            with pytest.raises(ValidationError):
                provider.create_record(spec)
            mock_post.assert_not_called()


class TestTechnitiumUpdate:
    """Updates are delete-then-create."""

    def test_update_deletes_then_creates(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [a_record()])
        existing = provider.list_records(type="A")[0]
        spec = DesiredRecordSpec(name="app.example.com", type="A", content="5.6.7.8", ttl=300)

        with patch.object(provider._session, "post") as mock_post:
            mock_post.side_effect = [ok(), ok()]

            updated = provider.update_record(existing.id, spec)

            urls = [c.args[0] for c in mock_post.call_args_list]
            assert urls == [f"{URL}/api/zones/records/delete", f"{URL}/api/zones/records/add"]
            delete_params = mock_post.call_args_list[0].kwargs["data"]
            assert delete_params["ipAddress"] == "1.2.3.4"
            assert "ttl" not in delete_params

        assert updated.content == "5.6.7.8"
        contents = [r.content for r in provider.cache.snapshot()]
        assert contents == ["5.6.7.8"]

    def test_create_failure_after_delete_is_partial(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [a_record()])
        existing = provider.list_records(type="A")[0]
        spec = DesiredRecordSpec(name="app.example.com", type="A", content="5.6.7.8")

        with patch.object(provider._session, "post") as mock_post:
            mock_post.side_effect = [ok(), error("Internal server error")]

            with pytest.raises(PartialUpdateFailure) as excinfo:
                provider.update_record(existing.id, spec)

        assert excinfo.value.deleted == existing
        assert isinstance(excinfo.value.cause, ProviderAPIError)
        assert provider.cache.snapshot() == []

    def test_update_unknown_id_raises(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [])
        spec = DesiredRecordSpec(name="app.example.com", type="A", content="5.6.7.8")

        with pytest.raises(ProviderAPIError, match="not in the cache"):
            provider.update_record("app.example.com/A/1.2.3.4", spec)


class TestTechnitiumDelete:
    """Tests for record deletion."""

    def test_delete_record(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [a_record()])
        record_id = provider.list_records()[0].id

        with patch.object(provider._session, "post") as mock_post:
            mock_post.return_value = ok()
            assert provider.delete_record(record_id) is True

        assert provider.cache.snapshot() == []

    def test_not_found_is_a_noop(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [a_record()])
        record_id = provider.list_records()[0].id

        with patch.object(provider._session, "post") as mock_post:
            mock_post.return_value = error("No such record does not exist in zone.")
            assert provider.delete_record(record_id) is False

    def test_unknown_id_makes_no_request(self, provider: TechnitiumProvider) -> None:
        init_with(provider, [])

        with patch.object(provider._session, "post") as mock_post:
            assert provider.delete_record("missing") is False
            mock_post.assert_not_called()
