"""
TextQL CLI - Command-line interface for TextQL playbooks.

This layer provides the user-facing commands, using the SDK layer for all
API operations and ConfigStore for persisted settings. It handles:
- Argument parsing
- Lazy client construction (no API key, no network)
- TTY detection for human vs machine output
- Error rendering and exit codes
"""

import argparse
import json
import logging
import sys
from typing import Any

from textql_cli import __version__
from textql_cli.config import API_KEY_ENV, ConfigStore
from textql_cli.core.client import APIError, CLIError, ValidationError
from textql_cli.core.types import (
    DEFAULT_CRON_STRING,
    PLAYBOOK_STATUSES,
    STATUS_ACTIVE,
    UpdatePlaybookRequest,
)
from textql_cli.sdk import TextQLClient

logger = logging.getLogger(__name__)

# Fallbacks used by `update` for fields that were not given
UPDATE_DEFAULT_PROMPT = "SELECT 1;"
UPDATE_DEFAULT_NAME = "Updated Playbook"
UPDATE_DEFAULT_EMAILS = ["admin@example.com"]

# =============================================================================
# Output Helpers
# =============================================================================


def is_tty() -> bool:
    """Check if stdout is a TTY (human) or pipe (LLM/machine)."""
    return sys.stdout.isatty()


def json_output(data: Any) -> None:
    """Print JSON output."""
    indent = 2 if is_tty() else None
    print(json.dumps(data, indent=indent, default=str))


def error_output(error: CLIError) -> None:
    """Print error and exit."""
    json_output(error.to_dict())
    sys.exit(1)


def success_output(data: Any) -> None:
    """Print success output."""
    json_output(data)


def usage_error(parser: argparse.ArgumentParser) -> None:
    """Print help for an incomplete command and exit non-zero."""
    parser.print_help(sys.stderr)
    sys.exit(1)


def table_output(
    headers: list[str],
    rows: list[list[str]],
    widths: list[int],
) -> None:
    """Print a formatted table for human output."""
    header_line = "  ".join(h.ljust(w) for h, w in zip(headers, widths))
    print(header_line)
    print("-" * len(header_line))

    for row in rows:
        print("  ".join(str(v)[:w].ljust(w) for v, w in zip(row, widths)))


# =============================================================================
# Argument Helpers
# =============================================================================


def parse_emails(raw: str) -> list[str]:
    """Split a comma-separated email list, dropping blanks."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def status_arg(value: str) -> str:
    """Accept STATUS_ACTIVE / STATUS_INACTIVE, or the short ACTIVE / INACTIVE."""
    status = value.strip().upper()
    if not status.startswith("STATUS_"):
        status = f"STATUS_{status}"
    if status not in PLAYBOOK_STATUSES:
        raise argparse.ArgumentTypeError(f"invalid status {value!r} (choose from {', '.join(PLAYBOOK_STATUSES)})")
    return status


class Context:
    """Per-invocation state: the settings store and a lazily built client."""

    def __init__(self, config: ConfigStore):
        self.config = config
        self._client: TextQLClient | None = None

    @property
    def client(self) -> TextQLClient:
        """
        Build the API client on first use.

        Raises:
            ValidationError: If no API key is configured

        """
        if self._client is None:
            self._client = TextQLClient(config=self.config)
        return self._client

    def resolve_connector_id(self, connector_id: int | None) -> int:
        """Use the given connector, else the persisted default."""
        if connector_id is None:
            connector_id = self.config.get_default_connector_id()
        if connector_id is None:
            raise ValidationError(
                "No connector ID provided and no default set. Use --connector=<id> "
                "or set a default with: textql config set-connector <id>"
            )
        return connector_id

    def resolve_cron_string(self, cron_string: str | None) -> str:
        return cron_string or self.config.get_default_cron_string()


# =============================================================================
# Config Commands
# =============================================================================


def cmd_config_set_api_key(ctx: Context, args: argparse.Namespace) -> None:
    """Persist the API key."""
    try:
        ctx.config.set_api_key(args.key)
        success_output({"success": True, "message": "API key saved"})
    except CLIError as e:
        error_output(e)


def cmd_config_set_connector(ctx: Context, args: argparse.Namespace) -> None:
    """Persist the default connector ID."""
    try:
        ctx.config.set_default_connector_id(args.connector_id)
        success_output({"success": True, "message": f"Default connector ID set to {args.connector_id}"})
    except CLIError as e:
        error_output(e)


def cmd_config_set_cron(ctx: Context, args: argparse.Namespace) -> None:
    """Persist the default cron schedule."""
    try:
        ctx.config.set_default_cron_string(args.cron_string)
        success_output({"success": True, "message": f"Default cron string set to {args.cron_string}"})
    except CLIError as e:
        error_output(e)


def cmd_config_set_base_url(ctx: Context, args: argparse.Namespace) -> None:
    """Persist an API base URL override."""
    try:
        ctx.config.set_base_url(args.base_url)
        success_output({"success": True, "message": f"Base URL set to {args.base_url}"})
    except CLIError as e:
        error_output(e)


def cmd_config_show(ctx: Context, _args: argparse.Namespace) -> None:
    """Show the persisted settings (API key masked)."""
    success_output({"path": str(ctx.config.path), "config": ctx.config.masked()})


# =============================================================================
# Connector Commands
# =============================================================================


def cmd_connectors(ctx: Context, args: argparse.Namespace) -> None:
    """List connectors, or look one up by name."""
    try:
        if args.search:
            connector = ctx.client.connectors.find_by_name(args.search)
            if connector is None:
                raise ValidationError(f"No connector matching {args.search!r}")
            connectors = [connector]
        else:
            connectors = ctx.client.connectors.list()

        if is_tty():
            if not connectors:
                print("No connectors found.")
                return

            table_output(
                ["ID", "Name", "Type", "Status"],
                [[str(c.id), c.name, c.type, c.status] for c in connectors],
                [8, 40, 16, 16],
            )
        else:
            success_output({"data": [c.to_dict() for c in connectors]})
    except APIError as e:
        error_output(APIError(f"Failed to fetch connectors: {e.message}", status=e.status, code=e.code))
    except CLIError as e:
        error_output(e)


# =============================================================================
# Playbook Commands
# =============================================================================


def cmd_create(ctx: Context, args: argparse.Namespace) -> None:
    """Create and configure a playbook."""
    try:
        client = ctx.client
        emails = parse_emails(args.emails)
        if not emails:
            raise ValidationError("--emails must contain at least one address")
        connector_id = ctx.resolve_connector_id(args.connector)

        result = client.playbooks.create_complete(
            playbook_id=args.id,
            prompt=args.prompt,
            name=args.name,
            email_addresses=emails,
            connector_id=connector_id,
            cron_string=ctx.resolve_cron_string(args.cron),
            status=args.status or STATUS_ACTIVE,
        )
        if not result.success:
            raise APIError.from_error_info(result.error, prefix="Failed to create playbook")

        success_output({"success": True, "message": "Playbook created", "playbook": result.data.to_dict()})
    except CLIError as e:
        error_output(e)


def cmd_update(ctx: Context, args: argparse.Namespace) -> None:
    """Overwrite a playbook's configuration."""
    try:
        client = ctx.client
        connector_id = ctx.resolve_connector_id(args.connector)

        defaulted = [
            flag
            for flag, value in (
                ("prompt", args.prompt),
                ("name", args.name),
                ("emails", args.emails),
                ("status", args.status),
            )
            if value is None
        ]
        if defaulted:
            logger.warning(
                "update replaces the whole playbook; %s reset to local defaults",
                ", ".join(defaulted),
            )

        request = UpdatePlaybookRequest(
            playbook_id=args.id,
            prompt=args.prompt or UPDATE_DEFAULT_PROMPT,
            name=args.name or UPDATE_DEFAULT_NAME,
            email_addresses=parse_emails(args.emails) if args.emails else list(UPDATE_DEFAULT_EMAILS),
            connector_id=connector_id,
            cron_string=ctx.resolve_cron_string(args.cron),
            status=args.status or STATUS_ACTIVE,
        )

        result = client.playbooks.update(request)
        if not result.success:
            raise APIError.from_error_info(result.error, prefix="Failed to update playbook")

        success_output({"success": True, "message": "Playbook updated", "playbook": result.data.to_dict()})
    except CLIError as e:
        error_output(e)


# =============================================================================
# Main CLI
# =============================================================================


def _add_playbook_flags(parser: argparse.ArgumentParser, required: bool) -> None:
    """Flags shared by create and update. Only --id is required on update."""
    parser.add_argument("--id", required=True, help="Playbook ID")
    parser.add_argument("--prompt", required=required, help="SQL query or instruction")
    parser.add_argument("--name", required=required, help="Human-readable name")
    parser.add_argument("--emails", required=required, help="Comma-separated email addresses")
    parser.add_argument("--connector", type=int, help="Connector ID (uses the configured default if omitted)")
    parser.add_argument("--cron", help=f'Cron schedule (configured default, else "{DEFAULT_CRON_STRING}")')
    parser.add_argument("--status", type=status_arg, help="STATUS_ACTIVE or STATUS_INACTIVE")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="textql",
        description="TextQL CLI - Manage TextQL playbooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  textql config set-api-key your-api-key-here
  textql connectors
  textql config set-connector 213
  textql create --id=my-playbook-123 --prompt="SELECT * FROM users" \\
      --name="Weekly Active Users" --emails=admin@company.com,analyst@company.com
  textql update --id=my-playbook-123 --status=STATUS_INACTIVE

Note: update replaces the whole playbook. Fields you omit are reset to
local defaults, not kept from the server.

Environment:
  {API_KEY_ENV}    API key, used when the config file has none
""",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="Settings file (default: ~/.textql/config.json)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log requests to stderr")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ========== Config ==========
    config = subparsers.add_parser("config", help="Manage configuration")
    config.set_defaults(func=lambda _c, _a: usage_error(config))
    config_sub = config.add_subparsers(dest="subcommand")

    c_key = config_sub.add_parser("set-api-key", help="Set API key")
    c_key.add_argument("key", help="TextQL API key")
    c_key.set_defaults(func=cmd_config_set_api_key)

    c_connector = config_sub.add_parser("set-connector", help="Set default connector ID")
    c_connector.add_argument("connector_id", type=int, help="Connector ID")
    c_connector.set_defaults(func=cmd_config_set_connector)

    c_cron = config_sub.add_parser("set-cron", help="Set default cron string")
    c_cron.add_argument("cron_string", help='Cron schedule, e.g. "0 13 * * *"')
    c_cron.set_defaults(func=cmd_config_set_cron)

    c_url = config_sub.add_parser("set-base-url", help="Set API base URL")
    c_url.add_argument("base_url", help="e.g. https://app.textql.com")
    c_url.set_defaults(func=cmd_config_set_base_url)

    c_show = config_sub.add_parser("show", help="Show current configuration")
    c_show.set_defaults(func=cmd_config_show)

    # ========== Connectors ==========
    connectors = subparsers.add_parser("connectors", help="List available connectors")
    connectors.add_argument("--search", "-s", help="Show the first connector whose name contains this text")
    connectors.set_defaults(func=cmd_connectors)

    # ========== Playbooks ==========
    create = subparsers.add_parser("create", help="Create a new playbook")
    _add_playbook_flags(create, required=True)
    create.set_defaults(func=cmd_create)

    update = subparsers.add_parser("update", help="Update an existing playbook (full replace)")
    _add_playbook_flags(update, required=False)
    update.set_defaults(func=cmd_update)

    # ========== Help ==========
    help_cmd = subparsers.add_parser("help", help="Show this help message")
    help_cmd.set_defaults(func=lambda _c, _a: parser.print_help())

    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(0)

    configure_logging(args.verbose)

    ctx = Context(ConfigStore(args.config))

    # Run command (all subparsers have default funcs that print help)
    args.func(ctx, args)


if __name__ == "__main__":
    main()
