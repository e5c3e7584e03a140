# Overview: Service-layer operations for leave requests; overlap validation and approval.

"""
Leave Requests

RULES:
1. A request covers [from_date, to_date], both days inclusive.
2. from_date may not be in the past; to_date may not precede from_date.
3. An employee's requests never overlap. Every existing request counts,
   whatever its status: a Rejected request still blocks its dates.
4. A request is decided (Approved/Rejected) exactly once.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import exists, select

from ..errors import ConflictError, InvalidStateTransitionError, NotFoundError, ValidationError
from ..models import LeaveRequest
from ..models.leave import LEAVE_APPROVED, LEAVE_PENDING, LEAVE_REJECTED, LEAVE_TYPES
from ..time_utils import Clock, utcnow
from ..validation import optional_text, require_choice, require_text
from ..validation import to_date as coerce_date


DECISION_STATUSES = (LEAVE_APPROVED, LEAVE_REJECTED)


def count_days(from_date: date, to_date: date) -> int:
    return (to_date - from_date).days + 1


class LeaveOverlapValidator:
    def __init__(self, session):
        self.session = session

    def check_overlap(self, employee_ref: str, from_date: date, to_date: date) -> bool:
        """
        True if any existing request of the employee shares a day with the range.

        [a1, b1] and [a2, b2] overlap iff a1 <= b2 and a2 <= b1.
        """
        return bool(self.session.execute(
            select(exists().where(
                LeaveRequest.employee_ref == employee_ref,
                LeaveRequest.from_date <= to_date,
                LeaveRequest.to_date >= from_date,
            ))
        ).scalar())


class LeaveService:
    def __init__(self, session, validator: LeaveOverlapValidator | None = None, *, clock: Clock = utcnow):
        self.session = session
        self.validator = validator or LeaveOverlapValidator(session)
        self.clock = clock

    def apply_leave(
        self,
        *,
        employee_ref: str,
        leave_type: str,
        from_date,
        to_date,
        reason: str,
    ) -> LeaveRequest:
        """
        Create a Pending leave request.

        Raises:
            ValidationError: bad type, missing reason, reversed or past range
            ConflictError: overlaps an existing request of the employee
        """
        employee_ref = require_text(employee_ref, "employee_ref")
        leave_type = require_choice(leave_type, LEAVE_TYPES, "leave_type")
        reason = require_text(reason, "reason")
        start = coerce_date(from_date, "from_date")
        end = coerce_date(to_date, "to_date")
        if start is None or end is None:
            raise ValidationError("from_date and to_date are required")

        if start > end:
            raise ValidationError("End date must be after start date")
        if start < self.clock().date():
            raise ValidationError("Leave cannot start in the past")

        if self.validator.check_overlap(employee_ref, start, end):
            raise ConflictError("Leave request overlaps an existing request")

        leave = LeaveRequest(
            employee_ref=employee_ref,
            leave_type=leave_type,
            from_date=start,
            to_date=end,
            number_of_days=count_days(start, end),
            reason=reason,
            status=LEAVE_PENDING,
            created_at=self.clock(),
        )
        self.session.add(leave)
        self.session.flush()
        return leave

    def decide(self, leave: LeaveRequest, *, status: str, approved_by: str, comments: str | None = None) -> LeaveRequest:
        """
        Approve or reject a Pending request.

        Raises:
            ValidationError: status is not Approved/Rejected
            InvalidStateTransitionError: already decided
        """
        require_choice(status, DECISION_STATUSES, "status")
        approved_by = require_text(approved_by, "approved_by")
        if leave.status != LEAVE_PENDING:
            raise InvalidStateTransitionError(
                f"Leave request has already been {leave.status.lower()}"
            )

        leave.status = status
        leave.approved_by = approved_by
        leave.decided_at = self.clock()
        if comments:
            leave.comments = optional_text(comments, "comments")
        self.session.flush()
        return leave

    def get(self, leave_id: int) -> LeaveRequest:
        leave = self.session.get(LeaveRequest, leave_id)
        if not leave:
            raise NotFoundError("Leave request not found")
        return leave
