"""
Core types for the TextQL public RPC API.

These dataclasses mirror the JSON records exchanged with the playbook and
connector services. Wire names are camelCase; attributes are snake_case.
"""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

# =============================================================================
# Enum values
# =============================================================================


STATUS_ACTIVE = "STATUS_ACTIVE"
STATUS_INACTIVE = "STATUS_INACTIVE"
PLAYBOOK_STATUSES = (STATUS_ACTIVE, STATUS_INACTIVE)

PARADIGM_TYPE_SQL = "TYPE_SQL"
TRIGGER_TYPE_CRON = "TRIGGER_TYPE_CRON"

DEFAULT_CRON_STRING = "0 13 * * *"  # daily at 13:00


# =============================================================================
# Result Types
# =============================================================================


T = TypeVar("T")


@dataclass
class ErrorInfo:
    """Structured error returned by the service or synthesized by the client."""

    message: str
    code: str | None = None
    status: int | None = None


@dataclass
class Result(Generic[T]):
    """
    Outcome of a single API operation.

    Either ``success`` is True and ``data`` holds the payload, or it is False
    and ``error`` describes what went wrong.
    """

    success: bool
    data: T | None = None
    error: ErrorInfo | None = None

    @classmethod
    def ok(cls, data: T) -> "Result[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: ErrorInfo) -> "Result[T]":
        return cls(success=False, error=error)


# =============================================================================
# Playbook Types
# =============================================================================


@dataclass
class UpdatePlaybookRequest:
    """Full-replace payload for UpdatePlaybook. Every field is sent."""

    playbook_id: str
    prompt: str
    name: str
    email_addresses: list[str]
    connector_id: int
    cron_string: str = DEFAULT_CRON_STRING
    status: str = STATUS_ACTIVE
    paradigm_type: str = PARADIGM_TYPE_SQL
    trigger_type: str = TRIGGER_TYPE_CRON

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for API request."""
        return {
            "prompt": self.prompt,
            "name": self.name,
            "playbookId": self.playbook_id,
            "emailAddresses": list(self.email_addresses),
            "status": self.status,
            "paradigmType": self.paradigm_type,
            "paradigmOptions": {"connectorId": self.connector_id},
            "triggerType": self.trigger_type,
            "cronString": self.cron_string,
        }


@dataclass
class Playbook:
    """A scheduled SQL playbook."""

    id: str
    playbook_id: str = ""
    prompt: str = ""
    name: str = ""
    email_addresses: list[str] = field(default_factory=list)
    status: str = STATUS_ACTIVE
    paradigm_type: str = PARADIGM_TYPE_SQL
    connector_id: int | None = None
    trigger_type: str = TRIGGER_TYPE_CRON
    cron_string: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Playbook":
        """Create from API response dict."""
        # UpdatePlaybook may answer with the record itself or wrapped in {"playbook": ...}
        if isinstance(data.get("playbook"), dict):
            data = data["playbook"]

        options = data.get("paradigmOptions") or {}
        connector_id = options.get("connectorId")

        return cls(
            id=str(data.get("id") or data.get("playbookId") or ""),
            playbook_id=data.get("playbookId") or data.get("id") or "",
            prompt=data.get("prompt") or "",
            name=data.get("name") or "",
            email_addresses=list(data.get("emailAddresses") or []),
            status=data.get("status") or STATUS_ACTIVE,
            paradigm_type=data.get("paradigmType") or PARADIGM_TYPE_SQL,
            connector_id=int(connector_id) if connector_id is not None else None,
            trigger_type=data.get("triggerType") or TRIGGER_TYPE_CRON,
            cron_string=data.get("cronString") or "",
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire form."""
        return {
            "id": self.id,
            "playbookId": self.playbook_id,
            "prompt": self.prompt,
            "name": self.name,
            "emailAddresses": list(self.email_addresses),
            "status": self.status,
            "paradigmType": self.paradigm_type,
            "paradigmOptions": {"connectorId": self.connector_id},
            "triggerType": self.trigger_type,
            "cronString": self.cron_string,
        }


# =============================================================================
# Connector Types
# =============================================================================


@dataclass
class Connector:
    """A registered data source. Read-only from the client's point of view."""

    id: int
    name: str
    type: str = ""
    status: str = ""
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Connector":
        """Create from API response dict."""
        return cls(
            id=int(data["id"]),
            name=data.get("name") or "",
            type=data.get("type") or "",
            status=data.get("status") or "",
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase wire form."""
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "status": self.status,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
