#!/usr/bin/env python3
"""
Create and then update a scheduled playbook with the TextQL SDK.

Uses the API key from `textql config set-api-key` or TEXTQL_API_KEY.

    python examples/playbook_usage.py
"""

import json
import sys
import time

from textql_cli import TextQLClient
from textql_cli.core.client import APIError, ValidationError
from textql_cli.core.types import STATUS_ACTIVE, UpdatePlaybookRequest

DAILY_SALES = """
SELECT DATE(created_at) AS date, COUNT(*) AS orders, SUM(total_amount) AS revenue
FROM orders
WHERE created_at >= CURRENT_DATE - INTERVAL '1 day'
GROUP BY DATE(created_at)
"""


def main() -> int:
    try:
        client = TextQLClient()
    except ValidationError as e:
        print(e.message, file=sys.stderr)
        return 1

    # Prefer a Postgres connector, else whatever the workspace lists first
    try:
        connector = client.connectors.find_by_name("postgres")
        if connector is None:
            connectors = client.connectors.list()
            connector = connectors[0] if connectors else None
    except APIError as e:
        print(f"Failed to fetch connectors: {e.message}", file=sys.stderr)
        return 1

    if connector is None:
        print("No connectors found. Add a database connection in TextQL first.", file=sys.stderr)
        return 1
    print(f"Using connector: {connector.name} (ID: {connector.id})")

    playbook_id = f"daily-sales-{int(time.time())}"
    result = client.playbooks.create_complete(
        playbook_id=playbook_id,
        prompt=DAILY_SALES.strip(),
        name="Daily Sales Report",
        email_addresses=["sales@company.com"],
        connector_id=connector.id,
        cron_string="0 8 * * *",
    )
    if not result.success:
        print(f"Failed to create playbook: {result.error.message}", file=sys.stderr)
        return 1
    print(json.dumps(result.data.to_dict(), indent=2))

    # Update replaces the whole record, so every field is restated
    result = client.playbooks.update(
        UpdatePlaybookRequest(
            playbook_id=playbook_id,
            prompt=DAILY_SALES.strip(),
            name="Daily Sales Report",
            email_addresses=["sales@company.com", "finance@company.com"],
            connector_id=connector.id,
            cron_string="0 7 * * 1-5",
            status=STATUS_ACTIVE,
        )
    )
    if not result.success:
        print(f"Failed to update playbook: {result.error.message}", file=sys.stderr)
        return 1
    print(f"Updated {playbook_id}: now sent to {', '.join(result.data.email_addresses)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
