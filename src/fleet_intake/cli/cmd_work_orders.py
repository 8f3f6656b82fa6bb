"""Work order and truck history commands."""

from datetime import datetime
from pathlib import Path

import typer

from fleet_intake.cli._app import app
from fleet_intake.cli._common import fail, open_database, prepare, read_json_file, resolve_scope
from fleet_intake.cli._console import output_result, output_table, print_ok, wants_json
from fleet_intake.errors import IntakeError
from fleet_intake.pipeline.status import WorkOrderLifecycle
from fleet_intake.query.work_orders import WorkOrderQuery

work_orders_app = typer.Typer(no_args_is_help=True, help="List, edit and advance work orders.")
app.add_typer(work_orders_app, name="work-orders")

trucks_app = typer.Typer(no_args_is_help=True, help="Truck maintenance history.")
app.add_typer(trucks_app, name="trucks")

LIST_COLUMNS = ["id", "status", "work_order_number", "customer_name", "extracted_vin", "created_at"]


def _report_status(ctx: typer.Context, view) -> None:
    if wants_json(ctx):
        output_result(view.model_dump(mode="json"), ctx=ctx)
    else:
        print_ok(f"Work order {view.id} is {view.status.value}")


def _fmt_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


@work_orders_app.command("list", help="List work orders, newest first.")
def list_cmd(
    ctx: typer.Context,
    status: str = typer.Option(
        None, "--status", "-s", help="draft, in_progress, completed, a stored status, or all"
    ),
    date_from: str = typer.Option(None, "--from", help="Created on or after (YYYY-MM-DD)"),
    date_to: str = typer.Option(None, "--to", help="Created on or before (YYYY-MM-DD)"),
):
    settings = prepare(ctx)
    try:
        scope = resolve_scope(ctx, settings)
        date_range = (date_from, date_to) if (date_from or date_to) else None
        views = WorkOrderQuery(open_database(settings)).list(
            scope, status_filter=status, date_range=date_range
        )
    except IntakeError as e:
        fail(e, ctx)
    except ValueError as e:
        raise typer.BadParameter(str(e))

    if ctx.obj["json"]:
        output_table([view.model_dump(mode="json") for view in views], ctx=ctx)
        return
    rows = [
        {**view.model_dump(mode="json", include=set(LIST_COLUMNS)), "created_at": _fmt_time(view.created_at)}
        for view in views
    ]
    output_table(rows, ctx=ctx, title=f"Work orders ({len(rows)})", columns=LIST_COLUMNS)


@work_orders_app.command("show", help="Show one work order.")
def show_cmd(ctx: typer.Context, work_order_id: str = typer.Argument(...)):
    settings = prepare(ctx)
    try:
        view = WorkOrderQuery(open_database(settings)).get(resolve_scope(ctx, settings), work_order_id)
    except IntakeError as e:
        fail(e, ctx)
    output_result(view.model_dump(mode="json"), ctx=ctx, title=f"Work order {work_order_id}")


@work_orders_app.command("mark-reviewed", help="Apply reviewer edits (JSON file) and mark reviewed.")
def mark_reviewed_cmd(
    ctx: typer.Context,
    work_order_id: str = typer.Argument(...),
    edits_file: Path = typer.Option(None, "--edits", help="JSON object of field edits"),
):
    settings = prepare(ctx)
    edits = read_json_file(edits_file) if edits_file else {}
    try:
        view = WorkOrderLifecycle(open_database(settings)).mark_reviewed(
            resolve_scope(ctx, settings), work_order_id, edits
        )
    except IntakeError as e:
        fail(e, ctx)
    _report_status(ctx, view)


@work_orders_app.command("link", help="Link a work order to a truck and/or customer.")
def link_cmd(
    ctx: typer.Context,
    work_order_id: str = typer.Argument(...),
    truck_id: str = typer.Option(None, "--truck"),
    customer_id: str = typer.Option(None, "--customer"),
):
    if truck_id is None and customer_id is None:
        raise typer.BadParameter("Pass --truck and/or --customer")
    settings = prepare(ctx)
    try:
        view = WorkOrderLifecycle(open_database(settings)).link(
            resolve_scope(ctx, settings), work_order_id, truck_id=truck_id, customer_id=customer_id
        )
    except IntakeError as e:
        fail(e, ctx)
    _report_status(ctx, view)


@work_orders_app.command("complete", help="Mark a work order completed (locks it).")
def complete_cmd(ctx: typer.Context, work_order_id: str = typer.Argument(...)):
    settings = prepare(ctx)
    try:
        view = WorkOrderLifecycle(open_database(settings)).complete(
            resolve_scope(ctx, settings), work_order_id
        )
    except IntakeError as e:
        fail(e, ctx)
    _report_status(ctx, view)


@trucks_app.command("history", help="Maintenance history of a truck.")
def history_cmd(
    ctx: typer.Context,
    truck_id: str = typer.Argument(...),
    summary: bool = typer.Option(False, "--summary", help="Latest record per category"),
):
    settings = prepare(ctx)
    query = WorkOrderQuery(open_database(settings))
    try:
        scope = resolve_scope(ctx, settings)
        if summary:
            rows = [entry.model_dump(mode="json") for entry in query.maintenance_summary(scope, truck_id)]
        else:
            rows = [
                record.model_dump(
                    mode="json",
                    include={"service_date", "service_type", "labor_hours", "odometer_at_service", "description"},
                )
                for record in query.maintenance_history(scope, truck_id)
            ]
    except IntakeError as e:
        fail(e, ctx)
    output_table(rows, ctx=ctx, title=f"Truck {truck_id}")
