# Overview: Service-layer operations for attendance; punch in/out and hours/status derivation.

"""
Attendance Lifecycle

WHY: Employees punch in and out once per day. A session is OPEN until the
punch-out; only one open session per employee may exist at a time, tracked
by employee rather than by date since a shift can run past midnight.

On punch-out, total_hours and status are derived together:
    < 4h      -> Absent
    4h - <8h  -> Half-Day
    >= 8h     -> Present

NOTE: "Absent" here means a completed but short session. A day with no
punch at all has no log; no-show detection is not done here.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import AttendanceLog
from ..models.timekeeping import ATTENDANCE_ABSENT, ATTENDANCE_HALF_DAY, ATTENDANCE_PRESENT
from ..time_utils import Clock, utcnow
from ..validation import optional_text, quantize, require_text


HALF_DAY_HOURS = Decimal("4")
FULL_DAY_HOURS = Decimal("8")
SECONDS_PER_HOUR = Decimal("3600")


def derive_status(total_hours: Decimal) -> str:
    if total_hours < HALF_DAY_HOURS:
        return ATTENDANCE_ABSENT
    if total_hours < FULL_DAY_HOURS:
        return ATTENDANCE_HALF_DAY
    return ATTENDANCE_PRESENT


class AttendanceLifecycle:
    def __init__(self, session, *, clock: Clock = utcnow):
        self.session = session
        self.clock = clock

    def current_session(self, employee_ref: str) -> AttendanceLog | None:
        return self.session.execute(
            select(AttendanceLog)
            .where(AttendanceLog.employee_ref == employee_ref, AttendanceLog.punch_out.is_(None))
            .order_by(AttendanceLog.punch_in.desc())
        ).scalars().first()

    def check_in(self, employee_ref: str, *, comments: str | None = None) -> AttendanceLog:
        """
        Open a session for the employee.

        Raises:
            ConflictError: a session is already open, or today already has a log
        """
        employee_ref = require_text(employee_ref, "employee_ref")
        if self.current_session(employee_ref):
            raise ConflictError("Employee is already punched in")

        now = self.clock()
        today = now.date()
        if self._logged_today(employee_ref, today):
            raise ConflictError("Attendance already recorded for today")

        log = AttendanceLog(
            employee_ref=employee_ref,
            date=today,
            punch_in=now,
            punch_out=None,
            total_hours=Decimal("0.00"),
            status=ATTENDANCE_PRESENT,
            comments=optional_text(comments, "comments"),
        )
        savepoint = self.session.begin_nested()
        try:
            self.session.add(log)
            self.session.flush()
            savepoint.commit()
        except IntegrityError:
            # Lost a race with a concurrent punch-in for the same day
            savepoint.rollback()
            raise ConflictError("Attendance already recorded for today")
        return log

    def _logged_today(self, employee_ref: str, today) -> bool:
        return self.session.execute(
            select(AttendanceLog.id).where(
                AttendanceLog.employee_ref == employee_ref,
                AttendanceLog.date == today,
            )
        ).first() is not None

    def check_out(self, employee_ref: str) -> AttendanceLog:
        """
        Close the employee's open session and derive hours/status.

        Raises:
            NotFoundError: no open session
        """
        log = self.current_session(employee_ref)
        if not log:
            raise NotFoundError("No open attendance session for this employee")

        log.punch_out = self.clock()
        self.apply(log)
        self.session.flush()
        return log

    def apply(self, log: AttendanceLog) -> AttendanceLog:
        """Recompute total_hours and status from punch_in/punch_out, as one step."""
        if log.punch_out is None:
            return log
        if log.punch_out < log.punch_in:
            raise ValidationError("punch_out cannot be before punch_in")

        elapsed = Decimal(str((log.punch_out - log.punch_in).total_seconds()))
        total_hours = quantize(elapsed / SECONDS_PER_HOUR)

        log.total_hours = total_hours
        log.status = derive_status(total_hours)
        return log

    def status(self, employee_ref: str) -> dict:
        log = self.current_session(employee_ref)
        if not log:
            return {"status": "CHECKED_OUT", "log": None}
        return {"status": "CHECKED_IN", "log": log.to_dict()}
