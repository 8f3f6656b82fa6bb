"""CLI package: Typer-based command-line interface.

Usage:
    fleet-intake --help
    python -m fleet_intake.cli work-orders --help
"""

from fleet_intake.cli._app import app

# Register command modules (side-effect imports)
import fleet_intake.cli.cmd_tenants  # noqa: F401
import fleet_intake.cli.cmd_intake  # noqa: F401
import fleet_intake.cli.cmd_work_orders  # noqa: F401

__all__ = ["app"]
