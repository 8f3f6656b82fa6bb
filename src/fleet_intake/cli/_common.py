"""Shared setup for CLI commands."""

import json
import logging
from pathlib import Path
from typing import Any, Dict

import typer
from rich.logging import RichHandler

from fleet_intake.cli._console import console, emit_json, print_err, wants_json
from fleet_intake.config.settings import IntakeSettings, get_settings, load_settings
from fleet_intake.errors import IntakeError
from fleet_intake.startup import ensure_initialized
from fleet_intake.storage.database import Database
from fleet_intake.tenancy.context import TenantContext, TenantScope
from fleet_intake.tenancy.impersonation import CallerIdentity

logger = logging.getLogger(__name__)

CLI_USER_ID = "cli"

NOISY_LOGGERS = ("openai", "httpx", "httpcore", "sqlalchemy.engine")


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Route log records to stderr through Rich; third-party chatter stays at WARNING."""
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    root = logging.getLogger()
    root.handlers[:] = [
        RichHandler(console=console, show_path=False, markup=True, rich_tracebacks=True)
    ]
    root.setLevel(level)
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)


def prepare(ctx: typer.Context) -> IntakeSettings:
    """Load .env, configure logging and return settings (--config file if given)."""
    ensure_initialized()
    setup_logging(verbose=ctx.obj["verbose"], quiet=ctx.obj["quiet"])
    try:
        if ctx.obj.get("config"):
            return load_settings(Path(ctx.obj["config"]))
        return get_settings()
    except ValueError as e:
        print_err(str(e))
        raise SystemExit(1)


def resolve_scope(ctx: typer.Context, settings: IntakeSettings) -> TenantScope:
    """Resolve the tenant from --tenant or the configured home tenant."""
    caller = CallerIdentity(user_id=CLI_USER_ID, home_tenant_id=settings.home_tenant_id)
    return TenantContext(caller=caller, explicit_tenant_id=ctx.obj.get("tenant")).resolve()


def open_database(settings: IntakeSettings) -> Database:
    return Database.from_settings(settings)


def fail(error: IntakeError, ctx: typer.Context) -> None:
    """Report an intake error and exit with status 1."""
    if wants_json(ctx):
        emit_json(error.to_dict())
    else:
        print_err(f"{error.message} [dim]({error.error_type})[/dim]")
    raise SystemExit(1)


def read_json_file(path: Path) -> Dict[str, Any]:
    """Read a JSON object from a file, exiting with an error if it is invalid."""
    if not path.exists():
        print_err(f"File not found: {path}")
        raise SystemExit(1)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        print_err(f"Invalid JSON in {path}: {e}")
        raise SystemExit(1)
    if not isinstance(data, dict):
        print_err(f"{path} must contain a JSON object")
        raise SystemExit(1)
    return data
