"""CLI run logging module for sqlschema.

Provides database logging for CLI command runs to help with
debugging and auditing.
"""

from sqlschema.logging.cli_db import CLIRunDatabase, get_default_cli_db_path
from sqlschema.logging.cli_service import (
    CLIRunLogger,
    get_cli_logger,
    log_cli_run,
    redact_url,
)

__all__ = [
    "CLIRunDatabase",
    "get_default_cli_db_path",
    "CLIRunLogger",
    "get_cli_logger",
    "log_cli_run",
    "redact_url",
]
