"""Unit tests for the work order status state machine."""

from datetime import date

import pytest

from fleet_intake.errors import (
    NotFoundError,
    StatusTransitionError,
    ValidationError,
    WorkOrderLockedError,
)
from fleet_intake.pipeline import CommitPipeline, WorkOrderLifecycle
from fleet_intake.pipeline.status import check_transition
from fleet_intake.schemas.records import WorkOrderStatus
from fleet_intake.storage.models import WorkOrder

OTHER_VIN = "3AKJGLDR5HSHF1234"


@pytest.fixture
def lifecycle(database):
    return WorkOrderLifecycle(database)


@pytest.fixture
def committed(database, make_reviewed, scope_t1):
    return CommitPipeline(database).commit(
        make_reviewed(work_order={"complaint": "Brakes grinding"}), scope_t1
    )


def stored(database, work_order_id):
    with database.session_scope() as session:
        return session.get(WorkOrder, work_order_id)


class TestCheckTransition:
    @pytest.mark.parametrize("current,target", [
        (WorkOrderStatus.EXTRACTED, WorkOrderStatus.REVIEWED),
        (WorkOrderStatus.EXTRACTED, WorkOrderStatus.COMPLETED),
        (WorkOrderStatus.REVIEWED, WorkOrderStatus.LINKED),
        (WorkOrderStatus.LINKED, WorkOrderStatus.LINKED),
    ])
    def test_forward_allowed(self, current, target):
        check_transition(current, target)

    def test_backward_refused(self):
        with pytest.raises(StatusTransitionError):
            check_transition(WorkOrderStatus.LINKED, WorkOrderStatus.REVIEWED)

    def test_completed_is_locked(self):
        with pytest.raises(WorkOrderLockedError):
            check_transition(WorkOrderStatus.COMPLETED, WorkOrderStatus.COMPLETED)


class TestMarkReviewed:
    def test_applies_edits(self, lifecycle, committed, database, scope_t1):
        view = lifecycle.mark_reviewed(scope_t1, committed.work_order_id, {
            "work_order_number": " WO-77 ",
            "work_order_date": "03/18/2024",
            "fault_codes": "p0420, spn 3251",
            "labor_hours": "2.5 hrs",
        })

        assert view.status == WorkOrderStatus.REVIEWED
        assert view.work_order_number == "WO-77"
        assert view.work_order_date == date(2024, 3, 18)
        assert view.fault_codes == ["P0420", "SPN 3251"]
        assert view.labor_hours == 2.5
        assert view.complaint == "Brakes grinding"
        assert stored(database, committed.work_order_id).status == "reviewed"

    def test_unknown_field_rejected(self, lifecycle, committed, scope_t1):
        with pytest.raises(ValidationError):
            lifecycle.mark_reviewed(scope_t1, committed.work_order_id, {"status": "completed"})

    def test_linked_order_stays_linked(self, lifecycle, committed, scope_t1):
        lifecycle.link(scope_t1, committed.work_order_id, truck_id=committed.truck_id)

        view = lifecycle.mark_reviewed(scope_t1, committed.work_order_id, {"cause": "Worn pads"})

        assert view.status == WorkOrderStatus.LINKED
        assert view.cause == "Worn pads"

    def test_other_tenant_cannot_see_order(self, lifecycle, committed, scope_t2):
        with pytest.raises(NotFoundError):
            lifecycle.mark_reviewed(scope_t2, committed.work_order_id)


class TestLink:
    def test_links_truck_and_customer(self, lifecycle, database, make_reviewed, committed, scope_t1):
        other = CommitPipeline(database).commit(
            make_reviewed(truck={"vin": OTHER_VIN}, customer={"name": "ACME Logistics"}), scope_t1
        )

        view = lifecycle.link(
            scope_t1, committed.work_order_id, truck_id=other.truck_id, customer_id=other.customer_id
        )

        assert view.status == WorkOrderStatus.LINKED
        assert view.truck_id == other.truck_id
        assert view.customer_id == other.customer_id
        assert view.is_linked

    def test_requires_a_target(self, lifecycle, committed, scope_t1):
        with pytest.raises(ValueError):
            lifecycle.link(scope_t1, committed.work_order_id)

    def test_truck_from_other_tenant_refused(self, lifecycle, database, make_reviewed, committed, scope_t1, scope_t2):
        foreign = CommitPipeline(database).commit(make_reviewed(truck={"vin": OTHER_VIN}), scope_t2)

        with pytest.raises(NotFoundError):
            lifecycle.link(scope_t1, committed.work_order_id, truck_id=foreign.truck_id)

        assert stored(database, committed.work_order_id).status == "extracted"


class TestComplete:
    def test_complete_locks_order(self, lifecycle, committed, scope_t1):
        view = lifecycle.complete(scope_t1, committed.work_order_id)
        assert view.status == WorkOrderStatus.COMPLETED

        with pytest.raises(WorkOrderLockedError):
            lifecycle.mark_reviewed(scope_t1, committed.work_order_id, {"cause": "late edit"})
        with pytest.raises(WorkOrderLockedError):
            lifecycle.link(scope_t1, committed.work_order_id, truck_id=committed.truck_id)
        with pytest.raises(WorkOrderLockedError):
            lifecycle.complete(scope_t1, committed.work_order_id)

    def test_locked_edit_leaves_row_untouched(self, lifecycle, committed, database, scope_t1):
        lifecycle.complete(scope_t1, committed.work_order_id)

        with pytest.raises(WorkOrderLockedError):
            lifecycle.mark_reviewed(scope_t1, committed.work_order_id, {"cause": "late edit"})

        assert stored(database, committed.work_order_id).cause is None


class TestTransition:
    def test_backward_transition_refused(self, lifecycle, committed, scope_t1):
        lifecycle.link(scope_t1, committed.work_order_id, truck_id=committed.truck_id)

        with pytest.raises(StatusTransitionError):
            lifecycle.transition(scope_t1, committed.work_order_id, WorkOrderStatus.REVIEWED)

    def test_accepts_status_value(self, lifecycle, committed, scope_t1):
        view = lifecycle.transition(scope_t1, committed.work_order_id, "reviewed")

        assert view.status == WorkOrderStatus.REVIEWED

    @pytest.mark.parametrize("ui_value,expected", [
        ("complete", WorkOrderStatus.COMPLETED),
        ("in_progress", WorkOrderStatus.REVIEWED),
        ("Completed ", WorkOrderStatus.COMPLETED),
    ])
    def test_accepts_ui_status_value(self, lifecycle, committed, scope_t1, database, ui_value, expected):
        view = lifecycle.transition(scope_t1, committed.work_order_id, ui_value)

        assert view.status == expected
        assert stored(database, committed.work_order_id).status == expected.value

    def test_unknown_status_value(self, lifecycle, committed, scope_t1):
        with pytest.raises(StatusTransitionError):
            lifecycle.transition(scope_t1, committed.work_order_id, "archived")
