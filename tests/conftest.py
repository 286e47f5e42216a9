"""Pytest configuration - loads .env for the live smoke suite and fakes the network for unit tests."""

import io
import json
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any

import pytest
from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)


class FakeResponse:
    """Stands in for the object returned by urlopen()."""

    def __init__(self, body: bytes):
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc: Any) -> bool:
        return False


class FakeServer:
    """
    Replacement for urllib.request.urlopen.

    Routes are keyed by RPC method name (the last path segment). Every request
    is recorded so tests can assert on what was (or was not) sent.
    """

    def __init__(self):
        self.requests: list[dict[str, Any]] = []
        self.routes: dict[str, dict[str, Any]] = {}

    def respond(
        self,
        rpc: str,
        body: Any = None,
        status: int = 200,
        raw: bytes | None = None,
        exc: Exception | None = None,
    ) -> None:
        self.routes[rpc] = {"body": body, "status": status, "raw": raw, "exc": exc}

    def __call__(self, req: urllib.request.Request, timeout: float | None = None) -> FakeResponse:
        rpc = req.full_url.rsplit("/", 1)[-1]
        self.requests.append(
            {
                "rpc": rpc,
                "url": req.full_url,
                "method": req.get_method(),
                "headers": dict(req.header_items()),
                "json": json.loads(req.data) if req.data else None,
                "timeout": timeout,
            }
        )

        route = self.routes.get(rpc)
        if route is None:
            raise AssertionError(f"unexpected request to {rpc}")
        if route["exc"] is not None:
            raise route["exc"]

        payload = route["raw"] if route["raw"] is not None else json.dumps(route["body"] or {}).encode()
        if route["status"] >= 400:
            raise urllib.error.HTTPError(req.full_url, route["status"], "Error", {}, io.BytesIO(payload))
        return FakeResponse(payload)

    def calls(self, rpc: str) -> list[dict[str, Any]]:
        return [r for r in self.requests if r["rpc"] == rpc]


@pytest.fixture
def fake_server(monkeypatch) -> FakeServer:
    server = FakeServer()
    monkeypatch.setattr(urllib.request, "urlopen", server)
    return server


@pytest.fixture
def config_path(tmp_path, monkeypatch) -> Path:
    """Point the settings file at a temp location and clear the API key env var."""
    path = tmp_path / "textql" / "config.json"
    monkeypatch.setenv("TEXTQL_CONFIG_PATH", str(path))
    monkeypatch.delenv("TEXTQL_API_KEY", raising=False)
    return path


@pytest.fixture
def write_settings(config_path):
    """Write a raw settings record to the isolated config file."""

    def _write(settings: dict[str, Any]) -> Path:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(settings))
        return config_path

    return _write
