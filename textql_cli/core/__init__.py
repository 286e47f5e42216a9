"""
Core layer - Wire types and HTTP client.

This layer provides:
- Typed dataclasses for the playbook and connector RPC records
- Low-level HTTP client with auth and Result-based error handling
"""

from textql_cli.core.client import APIClient, APIError, CLIError, ConfigError, ValidationError
from textql_cli.core.types import (
    Connector,
    ErrorInfo,
    Playbook,
    Result,
    UpdatePlaybookRequest,
)

__all__ = [
    "APIClient",
    "APIError",
    "CLIError",
    "ConfigError",
    "Connector",
    "ErrorInfo",
    "Playbook",
    "Result",
    "UpdatePlaybookRequest",
    "ValidationError",
]
