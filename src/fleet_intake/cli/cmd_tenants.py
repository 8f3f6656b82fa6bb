"""Store setup commands: schema creation and tenant registration."""

import typer
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from fleet_intake.cli._app import app
from fleet_intake.cli._common import open_database, prepare
from fleet_intake.cli._console import output_result, output_table, print_err, print_ok
from fleet_intake.storage.models import Tenant

tenants_app = typer.Typer(no_args_is_help=True, help="Manage tenants.")
app.add_typer(tenants_app, name="tenants")


@app.command("init-db", help="Create the database schema.")
def init_db_cmd(
    ctx: typer.Context,
    drop: bool = typer.Option(False, "--drop", help="Drop all tables first (destroys data)"),
):
    settings = prepare(ctx)
    database = open_database(settings)
    try:
        database.create_all(drop_all=drop)
    except SQLAlchemyError as e:
        print_err(f"Schema creation failed: {e}")
        raise SystemExit(1)
    print_ok(f"Schema ready: {database.engine.url.render_as_string(hide_password=True)}")


@tenants_app.command("add", help="Register a tenant.")
def tenants_add(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Display name"),
    tenant_id: str = typer.Option(None, "--id", help="Tenant id (default: generated)"),
):
    settings = prepare(ctx)
    database = open_database(settings)
    try:
        with database.session_scope() as session:
            tenant = Tenant(name=name)
            if tenant_id:
                tenant.id = tenant_id
            session.add(tenant)
            session.flush()
            created = {"id": tenant.id, "name": tenant.name}
    except SQLAlchemyError as e:
        print_err(f"Could not add tenant: {e}")
        raise SystemExit(1)

    if ctx.obj["json"]:
        output_result(created, ctx=ctx)
    else:
        print_ok(f"Tenant {created['name']} added with id {created['id']}")


@tenants_app.command("list", help="List tenants.")
def tenants_list(ctx: typer.Context):
    settings = prepare(ctx)
    with open_database(settings).session_scope() as session:
        rows = [
            {"id": tenant.id, "name": tenant.name}
            for tenant in session.execute(select(Tenant).order_by(Tenant.name)).scalars()
        ]
    output_table(rows, ctx=ctx, title="Tenants")
