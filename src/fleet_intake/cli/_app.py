"""Root Typer application; global options land in ``ctx.obj``."""

from pathlib import Path

import typer

app = typer.Typer(
    help="Turn work order PDFs into reviewed fleet maintenance records.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)


@app.callback()
def main(
    ctx: typer.Context,
    tenant: str = typer.Option(None, "--tenant", "-t", help="Act for this tenant id instead of the home tenant"),
    config: Path = typer.Option(None, "--config", help="Settings YAML (default: ./fleet_intake.yaml)"),
    json_output: bool = typer.Option(False, "--json", help="Write results as JSON to stdout"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only warnings and errors"),
):
    ctx.obj = {
        "tenant": tenant,
        "config": config,
        "json": json_output,
        "verbose": verbose,
        "quiet": quiet,
    }
