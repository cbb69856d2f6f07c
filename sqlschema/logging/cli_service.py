"""CLI run logging service for sqlschema.

Provides a high-level interface for logging CLI command runs,
including automatic context capture and error handling.
"""

import logging
import os
import sys
import time
import traceback
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit, urlunsplit

from sqlschema.logging.cli_db import CLIRunDatabase

logger = logging.getLogger(__name__)

# Global logger instance
_cli_logger: Optional["CLIRunLogger"] = None


def get_cli_logger() -> "CLIRunLogger":
    """Get or create the global CLI logger instance."""
    global _cli_logger
    if _cli_logger is None:
        from sqlschema.config import settings

        _cli_logger = CLIRunLogger(
            db_path=settings.cli_logging_db_path,
            enabled=settings.cli_logging_enabled,
            retention_days=settings.cli_logging_retention_days,
        )
    return _cli_logger


def redact_url(url: Optional[str]) -> Optional[str]:
    """Replace the password of a database URL with ``***``."""
    if not url:
        return url
    parts = urlsplit(url)
    if parts.password is None:
        return url
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return urlunsplit(parts._replace(netloc=netloc))


@dataclass
class RunContext:
    """Context for a CLI run."""

    run_id: str
    command: str
    subcommand: Optional[str] = None
    dialect: Optional[str] = None
    database_url: Optional[str] = None
    schema_filter: Optional[str] = None
    arguments: Dict[str, Any] = field(default_factory=dict)
    start_time: float = field(default_factory=time.time)

    # Results that get populated during the run
    schemas_count: int = 0
    tables_count: int = 0
    columns_count: int = 0
    relations_count: int = 0
    statements_generated: int = 0


class CLIRunLogger:
    """High-level logger for CLI runs.

    Example usage:
        logger = get_cli_logger()

        with logger.log_run(
            command="schema",
            subcommand="describe",
            dialect="pgsql",
            database_url="postgresql://app@localhost/app",
        ) as ctx:
            ctx.tables_count = 1
            ctx.relations_count = 4

            # If error occurs, it's automatically logged
    """

    def __init__(self, db_path: Optional[str] = None, enabled: bool = True, retention_days: int = 30):
        """Initialize the CLI run logger.

        Args:
            db_path: Path to the SQLite database. If None, uses default.
            enabled: Whether logging is enabled.
            retention_days: Runs older than this are deleted on startup.
        """
        self.enabled = enabled
        self._db: Optional[CLIRunDatabase] = None
        self._db_path = db_path

        if self.enabled:
            try:
                self._db = CLIRunDatabase(db_path)
                self._db.initialize()
                # Clean up old logs on initialization
                self._db.cleanup_old_runs(retention_days)
            except Exception as e:
                logger.warning("Failed to initialize CLI logging: %s", e)
                self.enabled = False

    @property
    def db(self) -> Optional[CLIRunDatabase]:
        """Get the database instance."""
        return self._db

    def _get_environment_info(self) -> Dict[str, str]:
        return {
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
            "package_version": self._get_package_version(),
            "working_directory": os.getcwd(),
        }

    def _get_package_version(self) -> str:
        try:
            from importlib.metadata import version
            return version("sqlschema")
        except Exception:
            return "unknown"

    @contextmanager
    def log_run(
        self,
        command: str,
        subcommand: Optional[str] = None,
        dialect: Optional[str] = None,
        database_url: Optional[str] = None,
        schema_filter: Optional[str] = None,
        arguments: Optional[Dict[str, Any]] = None,
    ):
        """Context manager for logging a CLI run.

        Args:
            command: Main command (e.g., 'schema')
            subcommand: Subcommand (e.g., 'describe')
            dialect: Canonical dialect name
            database_url: Database URL; the password is never stored
            schema_filter: Schema filter
            arguments: All command arguments

        Yields:
            RunContext that can be updated during the run
        """
        run_id = str(uuid.uuid4())[:8]
        database_url = redact_url(database_url)
        ctx = RunContext(
            run_id=run_id,
            command=command,
            subcommand=subcommand,
            dialect=dialect,
            database_url=database_url,
            schema_filter=schema_filter,
            arguments=arguments or {},
        )

        if not self.enabled or self._db is None:
            yield ctx
            return

        try:
            env_info = self._get_environment_info()
            self._db.insert_run(
                run_id=run_id,
                command=command,
                subcommand=subcommand,
                dialect=dialect,
                database_url=database_url,
                schema_filter=schema_filter,
                arguments=arguments,
                python_version=env_info["python_version"],
                package_version=env_info["package_version"],
                working_directory=env_info["working_directory"],
            )
        except Exception as e:
            logger.warning("Failed to log run start: %s", e)

        try:
            yield ctx

            self._update_run_results(ctx)

            duration_ms = int((time.time() - ctx.start_time) * 1000)
            self._db.update_success(run_id, duration_ms)

            logger.debug("CLI run %s completed successfully in %dms", run_id, duration_ms)

        except Exception as e:
            duration_ms = int((time.time() - ctx.start_time) * 1000)
            try:
                self._db.update_error(
                    run_id=run_id,
                    error_message=str(e),
                    error_type=type(e).__name__,
                    error_code=getattr(e, "code", None),
                    error_traceback=traceback.format_exc(),
                    duration_ms=duration_ms,
                )
            except Exception as log_err:
                logger.warning("Failed to log run error: %s", log_err)

            logger.debug("CLI run %s failed after %dms: %s", run_id, duration_ms, str(e))

            # Re-raise the original exception
            raise

    def _update_run_results(self, ctx: RunContext) -> None:
        """Update the run entry with collected results."""
        if not self._db:
            return

        try:
            if ctx.tables_count > 0:
                self._db.update_discovery_results(
                    run_id=ctx.run_id,
                    schemas_count=ctx.schemas_count,
                    tables_count=ctx.tables_count,
                    columns_count=ctx.columns_count,
                    relations_count=ctx.relations_count,
                )

            if ctx.statements_generated > 0:
                self._db.update_generation_results(
                    run_id=ctx.run_id,
                    statements_generated=ctx.statements_generated,
                )

        except Exception as e:
            logger.warning("Failed to update run results: %s", e)

    def query_runs(
        self,
        command: Optional[str] = None,
        status: Optional[str] = None,
        dialect: Optional[str] = None,
        since_hours: int = 24,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """Query CLI runs with optional filters."""
        if not self.enabled or not self._db:
            return []

        return self._db.query_runs(
            command=command,
            status=status,
            dialect=dialect,
            since_hours=since_hours,
            limit=limit,
        )

    def get_stats(self, since_hours: int = 24) -> Dict[str, Any]:
        if not self.enabled or not self._db:
            return {"error": "Logging not enabled"}

        return self._db.get_stats(since_hours=since_hours)

    def get_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        if not self.enabled or not self._db:
            return None

        return self._db.get_run_by_id(run_id)


def log_cli_run(
    command: str,
    subcommand: Optional[str] = None,
    dialect: Optional[str] = None,
    database_url: Optional[str] = None,
    schema_filter: Optional[str] = None,
    arguments: Optional[Dict[str, Any]] = None,
):
    """Convenience function to get a logging context manager.

    Example:
        with log_cli_run("schema", "tables", "sqlite", "sqlite:///app.db") as ctx:
            ctx.tables_count = 17
    """
    return get_cli_logger().log_run(
        command=command,
        subcommand=subcommand,
        dialect=dialect,
        database_url=database_url,
        schema_filter=schema_filter,
        arguments=arguments,
    )
