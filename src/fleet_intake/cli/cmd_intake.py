"""Intake commands: ingest a PDF, review a candidate, commit it."""

import json
from pathlib import Path

import typer
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from fleet_intake.cli._app import app
from fleet_intake.cli._common import fail, open_database, prepare, read_json_file, resolve_scope
from fleet_intake.cli._console import console, output_result, output_table, print_ok, print_warn
from fleet_intake.errors import IntakeError
from fleet_intake.extraction.openai_candidate import OpenAICandidateExtractor
from fleet_intake.ingestion import DocumentTextExtractor
from fleet_intake.pipeline.commit import CommitPipeline
from fleet_intake.pipeline.intake import IntakeService
from fleet_intake.review.validator import ReviewValidator


def _issue_rows(report) -> list[dict]:
    return [
        {"field": issue.field, "message": issue.message, "blocking": issue.blocking}
        for issue in report.issues
    ]


@app.command("ingest", help="Extract a candidate work order from a PDF.")
def ingest_cmd(
    ctx: typer.Context,
    pdf: Path = typer.Argument(..., exists=True, dir_okay=False, help="Work order PDF"),
    output: Path = typer.Option(None, "-o", "--output", help="Write the candidate JSON to this file"),
):
    """Read the PDF text and ask the extraction service for a candidate."""
    settings = prepare(ctx)

    try:
        scope = resolve_scope(ctx, settings)
        service = IntakeService(
            DocumentTextExtractor.from_settings(settings),
            OpenAICandidateExtractor.from_settings(settings),
        )
        if ctx.obj["json"] or ctx.obj["quiet"]:
            candidate = service.ingest(pdf, scope)
        else:
            with Progress(
                TextColumn("{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
                transient=True,
            ) as progress:
                task = progress.add_task(f"Reading {pdf.name}", total=100)
                candidate = service.ingest(
                    pdf, scope, on_progress=lambda value: progress.update(task, completed=value)
                )
    except IntakeError as e:
        fail(e, ctx)

    data = candidate.model_dump(mode="json")
    if output:
        output.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        if not ctx.obj["quiet"]:
            print_ok(f"Candidate written to {output}")

    report = ReviewValidator().review(candidate)
    if not ctx.obj["json"] and not report.commit_ready:
        print_warn("Candidate needs review before it can be committed")

    if not output or ctx.obj["json"]:
        output_result(data, ctx=ctx, title=f"Candidate ({candidate.confidence.value} confidence)")


@app.command("review", help="Validate a candidate JSON file and list issues.")
def review_cmd(
    ctx: typer.Context,
    candidate_file: Path = typer.Argument(..., help="Candidate JSON (from ingest)"),
):
    """Run the review rules without committing anything."""
    prepare(ctx)
    data = read_json_file(candidate_file)

    try:
        report = ReviewValidator().review(data)
    except IntakeError as e:
        fail(e, ctx)

    if ctx.obj["json"]:
        output_result(
            {
                "commit_ready": report.commit_ready,
                "confidence": report.confidence.value,
                "issues": _issue_rows(report),
                "normalized": report.normalized,
            },
            ctx=ctx,
        )
        return

    output_table(_issue_rows(report), ctx=ctx, title="Review issues")
    if report.commit_ready:
        print_ok(f"Ready to commit ({report.confidence.value} confidence)")
    else:
        print_warn("Blocking issues must be fixed before commit")


@app.command("commit", help="Finalize a reviewed candidate and write it to the store.")
def commit_cmd(
    ctx: typer.Context,
    candidate_file: Path = typer.Argument(..., help="Reviewed candidate JSON"),
    idempotency_key: str = typer.Option(
        None, "--idempotency-key", help="Retry key (default: derived from the document hash and reviewed content)"
    ),
):
    """Commit trucks, customers, the work order and maintenance records."""
    settings = prepare(ctx)
    data = read_json_file(candidate_file)

    try:
        scope = resolve_scope(ctx, settings)
        reviewed = ReviewValidator().finalize(data)
        pipeline = CommitPipeline.from_settings(open_database(settings), settings)
        result = pipeline.commit(reviewed, scope, idempotency_key=idempotency_key)
    except IntakeError as e:
        fail(e, ctx)

    if not ctx.obj["json"] and not ctx.obj["quiet"]:
        verb = "Reused" if result.replayed else "Committed"
        print_ok(f"{verb} work order {result.work_order_id}")
    output_result(result.model_dump(mode="json"), ctx=ctx, title="Commit result")
