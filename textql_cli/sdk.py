"""
TextQL SDK - High-level client for playbooks and connectors.

This layer provides a typed interface over the core APIClient. Playbook and
connector RPCs return a Result; ``connectors.list`` and
``connectors.find_by_name`` raise APIError instead, so callers can use the
connector list directly.
"""

import logging

from textql_cli.config import API_KEY_ENV, ConfigStore
from textql_cli.core.client import APIClient, APIError, ValidationError
from textql_cli.core.types import (
    DEFAULT_CRON_STRING,
    PLAYBOOK_STATUSES,
    STATUS_ACTIVE,
    Connector,
    ErrorInfo,
    Playbook,
    Result,
    UpdatePlaybookRequest,
)

logger = logging.getLogger(__name__)

PLAYBOOK_SERVICE = "/rpc/public/textql.rpc.public.playbook.PlaybookService"
CONNECTOR_SERVICE = "/rpc/public/textql.rpc.public.connector.ConnectorService"


def _invalid_argument(message: str) -> ErrorInfo:
    return ErrorInfo(message, code="invalid_argument")


class TextQLClient:
    """
    High-level TextQL API client.

    Example:
        client = TextQLClient()

        connector = client.connectors.find_by_name("postgres")
        result = client.playbooks.create_complete(
            playbook_id="weekly-active-users",
            prompt="SELECT COUNT(*) FROM users",
            name="Weekly Active Users",
            email_addresses=["analyst@company.com"],
            connector_id=connector.id,
        )
        if not result.success:
            print(result.error.message)

    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        config: ConfigStore | None = None,
    ):
        """
        Initialize the TextQL client.

        Args:
            api_key: TextQL API key (or config file apiKey, or TEXTQL_API_KEY env var)
            base_url: API base URL (or config file baseUrl)
            timeout: Socket timeout in seconds; None leaves the library default
            config: Settings store used to fill in missing arguments

        Raises:
            ValidationError: If no API key can be resolved

        """
        config = config or ConfigStore()
        api_key = api_key or config.get_api_key()
        if not api_key:
            raise ValidationError(
                "No API key found. Set it with 'textql config set-api-key <key>' "
                f"or the {API_KEY_ENV} environment variable"
            )

        self._client = APIClient(
            api_key=api_key,
            base_url=base_url or config.get_base_url(),
            timeout=timeout,
        )

        # Sub-clients for different services
        self.playbooks = PlaybookOperations(self._client)
        self.connectors = ConnectorOperations(self._client)

    @property
    def base_url(self) -> str:
        return self._client.base_url

    # Flat aliases for the operation groups

    def create_playbook(self, playbook_id: str) -> Result[dict]:
        return self.playbooks.create(playbook_id)

    def update_playbook(self, request: UpdatePlaybookRequest) -> Result[Playbook]:
        return self.playbooks.update(request)

    def create_complete_playbook(self, **params) -> Result[Playbook]:
        return self.playbooks.create_complete(**params)

    def get_connectors(self) -> Result[list[Connector]]:
        return self.connectors.get()

    def list_connectors(self) -> list[Connector]:
        return self.connectors.list()

    def find_connector_by_name(self, name: str) -> Connector | None:
        return self.connectors.find_by_name(name)


# =============================================================================
# Playbook Operations
# =============================================================================


class PlaybookOperations:
    """Operations on playbooks."""

    def __init__(self, client: APIClient):
        self._client = client

    def create(self, playbook_id: str) -> Result[dict]:
        """
        Create a bare playbook shell.

        Args:
            playbook_id: Caller-chosen playbook ID

        Returns:
            Result with the raw response (``{"playbook": {"id": ...}}``)

        """
        return self._client.post(f"{PLAYBOOK_SERVICE}/CreatePlaybook", {"playbook": {"id": playbook_id}})

    def update(self, request: UpdatePlaybookRequest) -> Result[Playbook]:
        """
        Replace the configuration of an existing playbook.

        This is a full overwrite: every field of ``request`` is sent, and the
        server's current values are not consulted.

        Args:
            request: The complete playbook configuration

        Returns:
            Result with the updated Playbook

        """
        if request.status not in PLAYBOOK_STATUSES:
            return Result.fail(
                _invalid_argument(f"Invalid status {request.status!r}, expected one of {', '.join(PLAYBOOK_STATUSES)}")
            )

        result = self._client.post(f"{PLAYBOOK_SERVICE}/UpdatePlaybook", request.to_dict())
        if not result.success:
            return Result.fail(result.error)

        data = result.data or {}
        # The service may answer with an empty body; fall back to what was sent
        if not data:
            data = request.to_dict()
        try:
            return Result.ok(Playbook.from_dict(data))
        except (TypeError, ValueError) as e:
            return Result.fail(ErrorInfo(f"Invalid playbook in response: {e}"))

    def create_complete(
        self,
        playbook_id: str,
        prompt: str,
        name: str,
        email_addresses: list[str],
        connector_id: int,
        cron_string: str | None = None,
        status: str = STATUS_ACTIVE,
    ) -> Result[Playbook]:
        """
        Create a playbook and configure it in one call.

        Runs CreatePlaybook, then UpdatePlaybook with the full configuration.
        If creation fails its error is returned and no update is attempted.

        Args:
            playbook_id: Caller-chosen playbook ID
            prompt: SQL query or instruction
            name: Display name
            email_addresses: Notification recipients (at least one)
            connector_id: Connector the query runs against
            cron_string: 5-field cron schedule (defaults to daily at 13:00)
            status: STATUS_ACTIVE or STATUS_INACTIVE

        Returns:
            Result of the update step, or the failure that stopped the workflow

        """
        if not email_addresses:
            return Result.fail(_invalid_argument("At least one email address is required"))
        if status not in PLAYBOOK_STATUSES:
            return Result.fail(
                _invalid_argument(f"Invalid status {status!r}, expected one of {', '.join(PLAYBOOK_STATUSES)}")
            )

        created = self.create(playbook_id)
        if not created.success:
            logger.warning("Playbook %s was not created, skipping configuration", playbook_id)
            return Result.fail(created.error)

        request = UpdatePlaybookRequest(
            playbook_id=playbook_id,
            prompt=prompt,
            name=name,
            email_addresses=list(email_addresses),
            connector_id=connector_id,
            cron_string=cron_string or DEFAULT_CRON_STRING,
            status=status,
        )
        return self.update(request)


# =============================================================================
# Connector Operations
# =============================================================================


class ConnectorOperations:
    """Operations on data connectors (read-only)."""

    def __init__(self, client: APIClient):
        self._client = client

    def get(self) -> Result[list[Connector]]:
        """
        Fetch all connectors visible to the API key.

        Returns:
            Result with the connectors in service order

        """
        result = self._client.post(f"{CONNECTOR_SERVICE}/GetConnectors", {})
        if not result.success:
            return Result.fail(result.error)

        raw = (result.data or {}).get("connectors") or []
        try:
            connectors = [Connector.from_dict(c) for c in raw]
        except (KeyError, TypeError, ValueError) as e:
            return Result.fail(ErrorInfo(f"Invalid connector in response: {e}"))
        return Result.ok(connectors)

    def list(self) -> list[Connector]:
        """
        List all connectors.

        Returns:
            Connectors in service order

        Raises:
            APIError: If the connectors could not be fetched

        """
        result = self.get()
        if not result.success:
            error = result.error or ErrorInfo("Failed to fetch connectors")
            raise APIError.from_error_info(error)
        return result.data or []

    def find_by_name(self, name: str) -> Connector | None:
        """
        Find the first connector whose name contains ``name``, ignoring case.

        Args:
            name: Substring to look for

        Returns:
            The first match in service order, or None

        Raises:
            APIError: If the connectors could not be fetched

        """
        needle = name.lower()
        for connector in self.list():
            if needle in connector.name.lower():
                return connector
        return None
