"""
Core HTTP client for the TextQL public RPC API.

Handles authentication, request/response encoding, and normalizes every
failure into a Result instead of raising.
"""

import http.client
import json
import logging
import urllib.error
import urllib.request
from typing import Any

from textql_cli.core.types import ErrorInfo, Result

logger = logging.getLogger(__name__)

# Configuration
DEFAULT_BASE_URL = "https://app.textql.com"


class CLIError(Exception):
    """Base error class for CLI errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result: dict[str, Any] = {"error": self.message}
        if self.details:
            result["details"] = self.details
        return result


class APIError(CLIError):
    """API error with status code, service error code and message."""

    def __init__(
        self,
        message: str,
        status: int = 0,
        code: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.status = status
        self.code = code

    @classmethod
    def from_error_info(cls, error: ErrorInfo, prefix: str = "") -> "APIError":
        """Build from a failed Result's error."""
        message = f"{prefix}: {error.message}" if prefix else error.message
        return cls(message, status=error.status or 0, code=error.code)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON output."""
        result = super().to_dict()
        if self.status:
            result["status"] = self.status
        if self.code:
            result["code"] = self.code
        return result


class ValidationError(CLIError):
    """Validation error for local input/data issues (not API errors)."""


class ConfigError(CLIError):
    """The settings file could not be written."""


def _error_from_http(e: urllib.error.HTTPError) -> ErrorInfo:
    """Turn a non-2xx response into an ErrorInfo with a non-empty message."""
    try:
        error_body = e.read().decode("utf-8", errors="replace")
    except OSError:
        error_body = ""

    fallback = error_body.strip() or f"HTTP {e.code}: {e.reason}"

    try:
        error_data = json.loads(error_body)
    except json.JSONDecodeError:
        return ErrorInfo(fallback, status=e.code)

    if not isinstance(error_data, dict):
        return ErrorInfo(fallback, status=e.code)

    # Handle {"message": "..."}, {"error": "..."} and {"error": {"message": "..."}}
    message = error_data.get("message")
    error_field = error_data.get("error")
    if not message and isinstance(error_field, str):
        message = error_field
    elif not message and isinstance(error_field, dict):
        message = error_field.get("message")

    code = error_data.get("code")
    status = error_data.get("status")
    return ErrorInfo(
        message=str(message) if message else fallback,
        code=str(code) if code is not None else None,
        status=status if isinstance(status, int) else e.code,
    )


class APIClient:
    """
    Low-level HTTP client for the TextQL public RPC API.

    Every RPC is a JSON POST. Failures of any kind come back as a failed
    Result; nothing is retried.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        """
        Initialize the API client.

        Args:
            api_key: TextQL API key
            base_url: API base URL (defaults to the production origin)
            timeout: Socket timeout in seconds; None leaves the library default

        """
        if not api_key:
            raise ValidationError("API key required")
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout

    def _build_url(self, path: str) -> str:
        """Build full URL from path."""
        return f"{self.base_url}{path}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"ApiKey {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _make_request(
        self,
        method: str,
        path: str,
        data: dict | None = None,
    ) -> Result[dict[str, Any]]:
        """
        Make an HTTP request to the API.

        Args:
            method: HTTP method
            path: API path (e.g., /rpc/public/.../GetConnectors)
            data: Request body, JSON-encoded when not None

        Returns:
            Result wrapping the parsed JSON response, or the normalized error

        """
        url = self._build_url(path)
        body = json.dumps(data).encode("utf-8") if data is not None else None
        logger.debug("%s %s", method, url)

        try:
            req = urllib.request.Request(url, data=body, headers=self._headers(), method=method)
            if self.timeout is not None:
                response_cm = urllib.request.urlopen(req, timeout=self.timeout)
            else:
                response_cm = urllib.request.urlopen(req)
            with response_cm as response:
                response_data = response.read().decode("utf-8", errors="replace")

        except urllib.error.HTTPError as e:
            error = _error_from_http(e)
            logger.warning("%s %s failed with HTTP %s: %s", method, url, e.code, error.message)
            return Result.fail(error)

        except urllib.error.URLError as e:
            logger.warning("%s %s failed: %s", method, url, e.reason)
            return Result.fail(ErrorInfo(f"Connection error: {e.reason}"))

        except TimeoutError:
            logger.warning("%s %s timed out", method, url)
            return Result.fail(ErrorInfo("Connection error: request timed out"))

        except (http.client.HTTPException, OSError) as e:
            logger.warning("%s %s failed: %s", method, url, e)
            return Result.fail(ErrorInfo(f"Connection error: {str(e) or type(e).__name__}"))

        except ValueError as e:
            # Malformed base URL, or an API key that is not a valid header value
            logger.warning("%s %s could not be sent: %s", method, url, e)
            return Result.fail(ErrorInfo(f"Invalid request: {e}"))

        if not response_data.strip():
            return Result.ok({})

        try:
            parsed = json.loads(response_data)
        except json.JSONDecodeError as e:
            logger.warning("%s %s returned invalid JSON: %s", method, url, e)
            return Result.fail(ErrorInfo(f"Invalid JSON response: {e}"))

        if not isinstance(parsed, dict):
            return Result.fail(ErrorInfo("Invalid JSON response: expected an object"))
        return Result.ok(parsed)

    # =========================================================================
    # HTTP Methods
    # =========================================================================

    def post(self, path: str, data: dict | None = None) -> Result[dict[str, Any]]:
        """Make a POST request. RPC endpoints always take a JSON body."""
        return self._make_request("POST", path, data if data is not None else {})
