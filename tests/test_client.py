"""
Unit tests for the core HTTP client and the SDK operations.

The network is replaced by the fake_server fixture; no request leaves the process.
"""

import urllib.error

import pytest

from textql_cli.config import ConfigStore
from textql_cli.core.client import APIClient, APIError, ValidationError
from textql_cli.core.types import (
    DEFAULT_CRON_STRING,
    STATUS_INACTIVE,
    Connector,
    Playbook,
    UpdatePlaybookRequest,
)
from textql_cli.sdk import TextQLClient

CONNECTORS = [
    {"id": 213, "name": "Postgres-Prod", "type": "POSTGRES", "status": "ACTIVE", "createdAt": "2024-01-01"},
    {"id": 42, "name": "MySQL", "type": "MYSQL", "status": "ACTIVE"},
]


@pytest.fixture
def client(config_path) -> TextQLClient:
    return TextQLClient(api_key="test-key", base_url="https://textql.test")


def _update_request(**overrides) -> UpdatePlaybookRequest:
    fields = {
        "playbook_id": "weekly-users",
        "prompt": "SELECT COUNT(*) FROM users",
        "name": "Weekly Users",
        "email_addresses": ["a@example.com", "b@example.com"],
        "connector_id": 213,
        "cron_string": "0 8 * * 1",
    }
    fields.update(overrides)
    return UpdatePlaybookRequest(**fields)


# =============================================================================
# Transport
# =============================================================================


class TestTransport:
    """Request shape and error normalization."""

    def test_request_headers_and_url(self, client, fake_server):
        fake_server.respond("CreatePlaybook", {"playbook": {"id": "p1"}})

        result = client.playbooks.create("p1")

        assert result.success
        assert result.data == {"playbook": {"id": "p1"}}
        sent = fake_server.requests[0]
        assert sent["method"] == "POST"
        assert sent["url"] == (
            "https://textql.test/rpc/public/textql.rpc.public.playbook.PlaybookService/CreatePlaybook"
        )
        assert sent["headers"]["Authorization"] == "ApiKey test-key"
        assert sent["headers"]["Content-type"] == "application/json"
        assert sent["json"] == {"playbook": {"id": "p1"}}

    def test_no_timeout_configured_by_default(self, client, fake_server):
        fake_server.respond("GetConnectors", {"connectors": []})
        client.connectors.get()
        assert fake_server.requests[0]["timeout"] is None

    def test_structured_error_body(self, client, fake_server):
        fake_server.respond(
            "CreatePlaybook",
            {"code": "already_exists", "message": "playbook p1 already exists"},
            status=409,
        )

        result = client.playbooks.create("p1")

        assert not result.success
        assert result.error.message == "playbook p1 already exists"
        assert result.error.code == "already_exists"
        assert result.error.status == 409

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (b"<html>Bad Gateway</html>", "<html>Bad Gateway</html>"),
            (b"", "HTTP 502: Error"),
            (b"[1, 2, 3]", "[1, 2, 3]"),
            (b'{"unexpected": true}', '{"unexpected": true}'),
            (b'{"error": {"message": "nested"}}', "nested"),
        ],
    )
    def test_unstructured_error_body_still_has_message(self, client, fake_server, raw, expected):
        fake_server.respond("GetConnectors", status=502, raw=raw)

        result = client.connectors.get()

        assert not result.success
        assert result.error.message == expected
        assert result.error.status == 502

    def test_connection_error(self, client, fake_server):
        fake_server.respond("GetConnectors", exc=urllib.error.URLError("Name or service not known"))

        result = client.connectors.get()

        assert not result.success
        assert result.error.message == "Connection error: Name or service not known"
        assert result.error.status is None

    def test_socket_error(self, client, fake_server):
        fake_server.respond("GetConnectors", exc=ConnectionResetError("connection reset by peer"))

        result = client.connectors.get()

        assert not result.success
        assert result.error.message.startswith("Connection error:")

    def test_base_url_without_scheme(self, config_path, fake_server):
        client = TextQLClient(api_key="k", base_url="app.textql.com")

        result = client.connectors.get()

        assert not result.success
        assert result.error.message.startswith("Invalid request: unknown url type")
        assert fake_server.requests == []

    @pytest.mark.parametrize(
        "exc",
        [
            ValueError("Invalid header value b'ApiKey bad\\nkey'"),
            UnicodeEncodeError("latin-1", "ApiKey clé-☃", 11, 12, "ordinal not in range(256)"),
        ],
    )
    def test_unsendable_api_key(self, client, fake_server, exc):
        fake_server.respond("GetConnectors", exc=exc)

        result = client.connectors.get()

        assert not result.success
        assert result.error.message.startswith("Invalid request:")

    def test_invalid_json_on_success(self, client, fake_server):
        fake_server.respond("GetConnectors", raw=b"not json")

        result = client.connectors.get()

        assert not result.success
        assert result.error.message.startswith("Invalid JSON response")

    def test_empty_success_body(self, client, fake_server):
        fake_server.respond("CreatePlaybook", raw=b"")
        result = client.playbooks.create("p1")
        assert result.success
        assert result.data == {}

    def test_api_client_requires_key(self):
        with pytest.raises(ValidationError):
            APIClient(api_key="")

    def test_base_url_trailing_slash(self):
        client = APIClient(api_key="k", base_url="https://x.test/")
        assert client.base_url == "https://x.test"
        assert client._build_url("/rpc/x") == "https://x.test/rpc/x"


# =============================================================================
# Client construction
# =============================================================================


class TestClientConstruction:
    def test_missing_api_key(self, config_path):
        with pytest.raises(ValidationError, match="No API key"):
            TextQLClient()

    def test_key_and_base_url_from_config(self, write_settings, fake_server):
        write_settings({"apiKey": "stored-key", "baseUrl": "https://eu.textql.test"})
        fake_server.respond("GetConnectors", {"connectors": []})

        client = TextQLClient()
        client.connectors.get()

        assert client.base_url == "https://eu.textql.test"
        assert fake_server.requests[0]["headers"]["Authorization"] == "ApiKey stored-key"

    def test_key_from_env(self, config_path, monkeypatch):
        monkeypatch.setenv("TEXTQL_API_KEY", "env-key")
        client = TextQLClient(config=ConfigStore())
        assert client._client.api_key == "env-key"


# =============================================================================
# Playbooks
# =============================================================================


class TestPlaybooks:
    def test_update_sends_full_record(self, client, fake_server):
        fake_server.respond("UpdatePlaybook", {"playbook": {"id": "srv-1", "playbookId": "weekly-users"}})

        result = client.playbooks.update(_update_request(status=STATUS_INACTIVE))

        assert result.success
        assert isinstance(result.data, Playbook)
        assert result.data.id == "srv-1"
        assert fake_server.requests[0]["json"] == {
            "prompt": "SELECT COUNT(*) FROM users",
            "name": "Weekly Users",
            "playbookId": "weekly-users",
            "emailAddresses": ["a@example.com", "b@example.com"],
            "status": "STATUS_INACTIVE",
            "paradigmType": "TYPE_SQL",
            "paradigmOptions": {"connectorId": 213},
            "triggerType": "TRIGGER_TYPE_CRON",
            "cronString": "0 8 * * 1",
        }

    def test_update_empty_response_echoes_request(self, client, fake_server):
        fake_server.respond("UpdatePlaybook", raw=b"{}")

        result = client.playbooks.update(_update_request())

        assert result.success
        assert result.data.playbook_id == "weekly-users"
        assert result.data.connector_id == 213

    def test_update_rejects_unknown_status(self, client, fake_server):
        result = client.playbooks.update(_update_request(status="STATUS_PAUSED"))

        assert not result.success
        assert result.error.code == "invalid_argument"
        assert fake_server.requests == []

    def test_create_complete(self, client, fake_server):
        fake_server.respond("CreatePlaybook", {"playbook": {"id": "weekly-users"}})
        fake_server.respond("UpdatePlaybook", {"id": "weekly-users", "name": "Weekly Users"})

        result = client.playbooks.create_complete(
            playbook_id="weekly-users",
            prompt="SELECT COUNT(*) FROM users",
            name="Weekly Users",
            email_addresses=["a@example.com"],
            connector_id=213,
        )

        assert result.success
        assert result.data.name == "Weekly Users"
        assert [r["rpc"] for r in fake_server.requests] == ["CreatePlaybook", "UpdatePlaybook"]
        update_body = fake_server.calls("UpdatePlaybook")[0]["json"]
        assert update_body["cronString"] == DEFAULT_CRON_STRING
        assert update_body["status"] == "STATUS_ACTIVE"
        assert update_body["paradigmType"] == "TYPE_SQL"
        assert update_body["triggerType"] == "TRIGGER_TYPE_CRON"

    def test_create_failure_skips_update(self, client, fake_server):
        fake_server.respond("CreatePlaybook", {"message": "permission denied"}, status=403)
        fake_server.respond("UpdatePlaybook", {})

        result = client.playbooks.create_complete(
            playbook_id="p1",
            prompt="SELECT 1",
            name="P1",
            email_addresses=["a@example.com"],
            connector_id=1,
        )

        assert not result.success
        assert result.error.message == "permission denied"
        assert result.error.status == 403
        assert fake_server.calls("UpdatePlaybook") == []

    def test_update_failure_is_returned(self, client, fake_server):
        fake_server.respond("CreatePlaybook", {"playbook": {"id": "p1"}})
        fake_server.respond("UpdatePlaybook", {"message": "invalid cron"}, status=400)

        result = client.playbooks.create_complete(
            playbook_id="p1",
            prompt="SELECT 1",
            name="P1",
            email_addresses=["a@example.com"],
            connector_id=1,
            cron_string="not a cron",
        )

        assert not result.success
        assert result.error.message == "invalid cron"

    def test_create_complete_requires_emails(self, client, fake_server):
        result = client.playbooks.create_complete(
            playbook_id="p1",
            prompt="SELECT 1",
            name="P1",
            email_addresses=[],
            connector_id=1,
        )

        assert not result.success
        assert result.error.code == "invalid_argument"
        assert fake_server.requests == []

    def test_composite_matches_manual_two_step(self, client, fake_server):
        fake_server.respond("CreatePlaybook", {"playbook": {"id": "p1"}})
        fake_server.respond("UpdatePlaybook", {})
        params = {
            "playbook_id": "p1",
            "prompt": "SELECT 1",
            "name": "P1",
            "email_addresses": ["a@example.com"],
            "connector_id": 7,
            "cron_string": "0 9 * * *",
        }

        client.playbooks.create_complete(**params)
        composite_body = fake_server.calls("UpdatePlaybook")[0]["json"]

        fake_server.requests.clear()
        client.create_playbook("p1")
        client.update_playbook(UpdatePlaybookRequest(**params))
        manual_body = fake_server.calls("UpdatePlaybook")[0]["json"]

        assert manual_body == composite_body


# =============================================================================
# Connectors
# =============================================================================


class TestConnectors:
    def test_get(self, client, fake_server):
        fake_server.respond("GetConnectors", {"connectors": CONNECTORS})

        result = client.get_connectors()

        assert result.success
        assert fake_server.requests[0]["json"] == {}
        assert result.data[0] == Connector(
            id=213, name="Postgres-Prod", type="POSTGRES", status="ACTIVE", created_at="2024-01-01"
        )

    def test_list_keeps_service_order(self, client, fake_server):
        fake_server.respond("GetConnectors", {"connectors": list(reversed(CONNECTORS))})
        assert [c.id for c in client.list_connectors()] == [42, 213]

    def test_list_missing_key_is_empty(self, client, fake_server):
        fake_server.respond("GetConnectors", {})
        assert client.connectors.list() == []

    def test_list_raises_on_failure(self, client, fake_server):
        fake_server.respond("GetConnectors", {"message": "unauthenticated"}, status=401)

        with pytest.raises(APIError) as exc_info:
            client.connectors.list()

        assert exc_info.value.message == "unauthenticated"
        assert exc_info.value.status == 401

    @pytest.mark.parametrize("name", ["postgres", "POSTGRES", "gres-pr"])
    def test_find_by_name(self, client, fake_server, name):
        fake_server.respond("GetConnectors", {"connectors": CONNECTORS})
        assert client.find_connector_by_name(name).id == 213

    def test_find_by_name_first_match_wins(self, client, fake_server):
        fake_server.respond("GetConnectors", {"connectors": CONNECTORS})
        # "s" appears in both names
        assert client.connectors.find_by_name("s").name == "Postgres-Prod"

    def test_find_by_name_no_match(self, client, fake_server):
        fake_server.respond("GetConnectors", {"connectors": CONNECTORS})
        assert client.connectors.find_by_name("snowflake") is None

    def test_find_by_name_raises_when_listing_fails(self, client, fake_server):
        fake_server.respond("GetConnectors", exc=urllib.error.URLError("connection refused"))

        with pytest.raises(APIError, match="connection refused"):
            client.connectors.find_by_name("postgres")
