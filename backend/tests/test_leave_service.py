"""
Leave request tests: validation, overlap detection and single decision.
"""

from datetime import date, datetime

import pytest

from backoffice.errors import ConflictError, InvalidStateTransitionError, ValidationError
from backoffice.models.leave import LEAVE_APPROVED, LEAVE_PENDING, LEAVE_REJECTED
from backoffice.services.leave_service import LeaveOverlapValidator, LeaveService, count_days


@pytest.fixture
def leaves(db_session, clock):
    clock.set(datetime(2025, 6, 1, 8, 0, 0))
    return LeaveService(db_session, clock=clock)


def apply(leaves, from_date, to_date, employee_ref="emp-1", leave_type="Vacation"):
    return leaves.apply_leave(
        employee_ref=employee_ref,
        leave_type=leave_type,
        from_date=from_date,
        to_date=to_date,
        reason="Family trip",
    )


def test_count_days_is_inclusive():
    assert count_days(date(2025, 6, 10), date(2025, 6, 10)) == 1
    assert count_days(date(2025, 6, 10), date(2025, 6, 14)) == 5


def test_apply_creates_pending_request(leaves):
    leave = apply(leaves, "2025-06-10", "2025-06-14")

    assert leave.status == LEAVE_PENDING
    assert leave.number_of_days == 5
    assert leave.from_date == date(2025, 6, 10)


def test_overlapping_request_conflicts(leaves):
    apply(leaves, "2025-06-10", "2025-06-14")
    with pytest.raises(ConflictError):
        apply(leaves, "2025-06-14", "2025-06-20", leave_type="Casual Leave")


def test_contained_request_conflicts(leaves):
    apply(leaves, "2025-06-10", "2025-06-20")
    with pytest.raises(ConflictError):
        apply(leaves, "2025-06-12", "2025-06-13")


def test_adjacent_request_is_accepted(leaves):
    apply(leaves, "2025-06-10", "2025-06-14")
    leave = apply(leaves, "2025-06-15", "2025-06-19")
    assert leave.number_of_days == 5


def test_rejected_request_still_blocks_its_dates(leaves):
    first = apply(leaves, "2025-06-10", "2025-06-14")
    leaves.decide(first, status=LEAVE_REJECTED, approved_by="admin-1")

    with pytest.raises(ConflictError):
        apply(leaves, "2025-06-10", "2025-06-14")


def test_other_employees_do_not_conflict(leaves):
    apply(leaves, "2025-06-10", "2025-06-14")
    leave = apply(leaves, "2025-06-10", "2025-06-14", employee_ref="emp-2")
    assert leave.employee_ref == "emp-2"


def test_overlap_validator_directly(leaves, db_session):
    apply(leaves, "2025-06-10", "2025-06-14")
    validator = LeaveOverlapValidator(db_session)

    assert validator.check_overlap("emp-1", date(2025, 6, 1), date(2025, 6, 10)) is True
    assert validator.check_overlap("emp-1", date(2025, 6, 15), date(2025, 6, 16)) is False


def test_reversed_range_rejected(leaves):
    with pytest.raises(ValidationError):
        apply(leaves, "2025-06-14", "2025-06-10")


def test_past_start_rejected(leaves):
    with pytest.raises(ValidationError):
        apply(leaves, "2025-05-30", "2025-06-02")


def test_today_is_not_past(leaves):
    assert apply(leaves, "2025-06-01", "2025-06-01").number_of_days == 1


def test_unknown_leave_type_rejected(leaves):
    with pytest.raises(ValidationError):
        apply(leaves, "2025-06-10", "2025-06-14", leave_type="Sabbatical")


def test_approve_once(leaves, clock):
    leave = apply(leaves, "2025-06-10", "2025-06-14")
    leaves.decide(leave, status=LEAVE_APPROVED, approved_by="admin-1", comments="Enjoy")

    assert leave.status == LEAVE_APPROVED
    assert leave.approved_by == "admin-1"
    assert leave.decided_at == clock()
    assert leave.comments == "Enjoy"

    with pytest.raises(InvalidStateTransitionError) as excinfo:
        leaves.decide(leave, status=LEAVE_REJECTED, approved_by="admin-1")
    assert "already been approved" in str(excinfo.value)


def test_decision_must_be_approve_or_reject(leaves):
    leave = apply(leaves, "2025-06-10", "2025-06-14")
    with pytest.raises(ValidationError):
        leaves.decide(leave, status=LEAVE_PENDING, approved_by="admin-1")
