"""
Persisted CLI settings.

Settings live in a flat JSON object (``~/.textql/config.json`` by default)
with the optional keys ``apiKey``, ``baseUrl``, ``defaultConnectorId`` and
``defaultCronString``. Every setter rewrites the whole file.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from textql_cli.core.client import DEFAULT_BASE_URL, ConfigError
from textql_cli.core.types import DEFAULT_CRON_STRING

logger = logging.getLogger(__name__)

API_KEY_ENV = "TEXTQL_API_KEY"
CONFIG_PATH_ENV = "TEXTQL_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path.home() / ".textql" / "config.json"

# Sources consulted for the API key, first non-empty wins
API_KEY_PRECEDENCE = ("config file", API_KEY_ENV)


def default_config_path() -> Path:
    """Settings file location, honouring TEXTQL_CONFIG_PATH."""
    override = (os.environ.get(CONFIG_PATH_ENV) or "").strip()
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONFIG_PATH


def mask_secret(value: str) -> str:
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"


class ConfigStore:
    """Read and write the settings file."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path).expanduser() if path else default_config_path()

    def load(self) -> dict[str, Any]:
        """
        Load the settings record.

        A missing file is an empty record. An unreadable or malformed file is
        logged and also treated as empty.
        """
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to load config file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config file %s: expected a JSON object", self.path)
            return {}
        return data

    def save(self, settings: dict[str, Any]) -> None:
        """Overwrite the settings file with ``settings``."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(settings, indent=2) + "\n", encoding="utf-8")
            os.chmod(self.path, 0o600)
        except OSError as e:
            raise ConfigError(f"Failed to save config: {e}", details={"path": str(self.path)}) from e
        logger.debug("Saved config to %s", self.path)

    def _set(self, key: str, value: Any) -> None:
        settings = self.load()
        settings[key] = value
        self.save(settings)

    # =========================================================================
    # Setters
    # =========================================================================

    def set_api_key(self, api_key: str) -> None:
        self._set("apiKey", api_key)

    def set_base_url(self, base_url: str) -> None:
        self._set("baseUrl", base_url)

    def set_default_connector_id(self, connector_id: int) -> None:
        self._set("defaultConnectorId", connector_id)

    def set_default_cron_string(self, cron_string: str) -> None:
        self._set("defaultCronString", cron_string)

    # =========================================================================
    # Getters
    # =========================================================================

    def get_api_key(self) -> str | None:
        """
        Resolve the API key.

        Follows API_KEY_PRECEDENCE: a key stored in the config file wins over
        the TEXTQL_API_KEY environment variable.
        """
        stored = self.load().get("apiKey")
        if stored:
            return str(stored)
        env_key = (os.environ.get(API_KEY_ENV) or "").strip()
        return env_key or None

    def get_base_url(self) -> str:
        return self.load().get("baseUrl") or DEFAULT_BASE_URL

    def get_default_connector_id(self) -> int | None:
        value = self.load().get("defaultConnectorId")
        if value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric defaultConnectorId %r", value)
            return None

    def get_default_cron_string(self) -> str:
        return self.load().get("defaultCronString") or DEFAULT_CRON_STRING

    def masked(self) -> dict[str, Any]:
        """Settings suitable for display, with the API key masked."""
        settings = self.load()
        if settings.get("apiKey"):
            settings["apiKey"] = mask_secret(str(settings["apiKey"]))
        return settings
