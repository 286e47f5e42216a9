"""
TextQL CLI - Three-layer client for TextQL playbooks.

Layers:
- core: Wire types and the HTTP client
- sdk: High-level TextQLClient with playbook and connector operations
- cli: Command-line interface (`textql`)
"""

from textql_cli.config import ConfigStore
from textql_cli.sdk import TextQLClient

__version__ = "0.1.0"
__all__ = ["ConfigStore", "TextQLClient"]
