"""Where CLI output goes.

Logs, status marks and human-readable tables are written to stderr. With
``--json`` the only thing on stdout is the JSON document, so
``fleet-intake --json work-orders list | jq`` works.
"""

import json

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console(stderr=True)
stdout_console = Console()

_MARKS = {"ok": "[green]✓[/green]", "err": "[red]✗[/red]", "warn": "[yellow]![/yellow]"}


def _mark(kind: str, msg: str) -> None:
    console.print(f"{_MARKS[kind]} {msg}")


def print_ok(msg: str) -> None:
    _mark("ok", msg)


def print_err(msg: str) -> None:
    _mark("err", msg)


def print_warn(msg: str) -> None:
    _mark("warn", msg)


def wants_json(ctx: typer.Context) -> bool:
    return bool(ctx.obj and ctx.obj.get("json"))


def emit_json(data) -> None:
    stdout_console.print_json(data=data, default=str)


def output_result(data: dict, *, ctx: typer.Context, title: str = "") -> None:
    if wants_json(ctx):
        emit_json(data)
        return
    body = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    console.print(Panel(body, title=title, border_style="blue") if title else body)


def output_table(rows: list[dict], *, ctx: typer.Context, title: str = "", columns: list[str] | None = None) -> None:
    """Rows as a JSON array, or a Rich table limited to ``columns``."""
    if wants_json(ctx):
        emit_json(rows)
        return
    if not rows:
        console.print(f"[dim]{title + ': ' if title else ''}nothing to show[/dim]")
        return

    names = columns or list(rows[0])
    table = Table(title=title)
    for name in names:
        table.add_column(name, overflow="fold")
    for row in rows:
        table.add_row(*("" if row.get(name) is None else str(row[name]) for name in names))
    console.print(table)
