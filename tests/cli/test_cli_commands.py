"""CLI tests for the store, commit and work order commands."""

import json

import pytest
from typer.testing import CliRunner

from fleet_intake import startup
from fleet_intake.cli import app

VIN = "1FTFW1ET1EKE12345"

CANDIDATE = {
    "truck": {"vin": VIN.lower(), "year": "2019", "odometer": "412,000 mi"},
    "customer": {"name": "ACME Logistics", "location": "Dallas, TX"},
    "work_order": {
        "work_order_number": "WO-1001",
        "date": "03/18/2024",
        "complaint": "Brakes grinding",
        "correction": "Replaced front pads",
    },
    "service_categories": {"brakes": True},
    "labor_hours": "1.5",
    "confidence": "high",
    "document_sha256": "ef" * 32,
}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def workspace(tmp_path, monkeypatch, runner):
    """Working directory with an initialized store and tenant T1."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("FLEET_INTAKE_DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    startup.reset_initialization()

    result = runner.invoke(app, ["--quiet", "init-db"])
    assert result.exit_code == 0, result.output
    result = runner.invoke(app, ["--json", "--quiet", "tenants", "add", "Tenant One Diesel", "--id", "T1"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {"id": "T1", "name": "Tenant One Diesel"}
    return tmp_path


def write_candidate(directory, data=None, name="candidate.json"):
    path = directory / name
    path.write_text(json.dumps(data or CANDIDATE), encoding="utf-8")
    return path


def invoke_json(runner, *args):
    return runner.invoke(app, ["--json", "--quiet", "--tenant", "T1", *args])


class TestCommitCommand:
    def test_commit_then_list(self, runner, workspace):
        path = write_candidate(workspace)

        result = invoke_json(runner, "commit", str(path))

        assert result.exit_code == 0, result.output
        committed = json.loads(result.stdout)
        assert committed["truck_auto_created"] is True
        assert committed["replayed"] is False
        assert len(committed["maintenance_record_ids"]) == 1

        result = invoke_json(runner, "work-orders", "list")

        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [row["id"] for row in rows] == [committed["work_order_id"]]
        assert rows[0]["status"] == "extracted"
        assert rows[0]["extracted_vin"] == VIN

    def test_recommit_replays(self, runner, workspace):
        path = write_candidate(workspace)
        first = json.loads(invoke_json(runner, "commit", str(path)).stdout)

        result = invoke_json(runner, "commit", str(path))

        assert result.exit_code == 0, result.output
        again = json.loads(result.stdout)
        assert again["replayed"] is True
        assert again["work_order_id"] == first["work_order_id"]

    def test_corrected_candidate_commits_as_new(self, runner, workspace):
        first = json.loads(invoke_json(runner, "commit", str(write_candidate(workspace))).stdout)
        corrected = {**CANDIDATE, "truck": {**CANDIDATE["truck"], "year": "2021"}}

        result = invoke_json(runner, "commit", str(write_candidate(workspace, corrected, "corrected.json")))

        assert result.exit_code == 0, result.output
        again = json.loads(result.stdout)
        assert again["replayed"] is False
        assert again["work_order_id"] != first["work_order_id"]
        assert again["truck_id"] == first["truck_id"]
        assert again["truck_auto_created"] is False

    def test_explicit_key_conflict_fails(self, runner, workspace):
        invoke_json(runner, "commit", str(write_candidate(workspace)), "--idempotency-key", "upload-1")
        corrected = {**CANDIDATE, "labor_hours": "2.0"}

        result = invoke_json(
            runner, "commit", str(write_candidate(workspace, corrected, "corrected.json")),
            "--idempotency-key", "upload-1",
        )

        assert result.exit_code == 1
        assert json.loads(result.stdout)["error_type"] == "idempotency_conflict"

    def test_blocking_issue_fails(self, runner, workspace):
        path = write_candidate(workspace, {**CANDIDATE, "truck": {"vin": "SHORT"}})

        result = invoke_json(runner, "commit", str(path))

        assert result.exit_code == 1
        error = json.loads(result.stdout)
        assert error["error_type"] == "validation_failed"
        assert error["issues"][0]["field"] == "truck.vin"

    def test_without_tenant_fails(self, runner, workspace):
        path = write_candidate(workspace)

        result = runner.invoke(app, ["--json", "--quiet", "commit", str(path)])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["error_type"] == "no_tenant"

    def test_unknown_tenant_fails(self, runner, workspace):
        path = write_candidate(workspace)

        result = runner.invoke(app, ["--json", "--quiet", "--tenant", "T9", "commit", str(path)])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["error_type"] == "no_tenant"


class TestReviewCommand:
    def test_reports_issues(self, runner, workspace):
        path = write_candidate(workspace, {**CANDIDATE, "truck": {"vin": None}, "confidence": "low"})

        result = invoke_json(runner, "review", str(path))

        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["commit_ready"] is False
        assert {issue["field"] for issue in report["issues"]} == {"truck.vin", "confidence"}


class TestWorkOrderCommands:
    def test_lifecycle_and_history(self, runner, workspace):
        committed = json.loads(invoke_json(runner, "commit", str(write_candidate(workspace))).stdout)
        work_order_id = committed["work_order_id"]
        edits = workspace / "edits.json"
        edits.write_text(json.dumps({"cause": "Worn front pads"}), encoding="utf-8")

        result = invoke_json(runner, "work-orders", "mark-reviewed", work_order_id, "--edits", str(edits))
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["cause"] == "Worn front pads"

        result = invoke_json(runner, "work-orders", "complete", work_order_id)
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["status"] == "completed"

        result = invoke_json(runner, "work-orders", "complete", work_order_id)
        assert result.exit_code == 1
        assert json.loads(result.stdout)["error_type"] == "work_order_locked"

        rows = json.loads(invoke_json(runner, "work-orders", "list", "--status", "completed").stdout)
        assert [row["id"] for row in rows] == [work_order_id]

        summary = json.loads(invoke_json(runner, "trucks", "history", committed["truck_id"], "--summary").stdout)
        assert summary[0]["service_category"] == "brakes"
        assert summary[0]["last_odometer"] == 412000
