from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


ATTENDANCE_PRESENT = "Present"
ATTENDANCE_HALF_DAY = "Half-Day"
ATTENDANCE_ABSENT = "Absent"
ATTENDANCE_STATUSES = (ATTENDANCE_PRESENT, ATTENDANCE_ABSENT, ATTENDANCE_HALF_DAY)


class AttendanceLog(db.Model):
    """
    One punch-in/punch-out session per employee per day.

    LIFECYCLE:
    - OPEN: punch_out is null (the session may run past midnight)
    - CLOSED: punch_out set; total_hours and status derived together

    total_hours and status are never written directly; see
    AttendanceLifecycle.apply.
    """
    __tablename__ = "attendance_logs"
    __table_args__ = (
        db.UniqueConstraint("employee_ref", "date", name="uq_attendance_employee_date"),
        db.Index("ix_attendance_date", "date"),
        db.Index("ix_attendance_employee_open", "employee_ref", "punch_out"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_ref = db.Column(db.String(64), nullable=False)

    # Calendar day of the punch-in
    date = db.Column(db.Date, nullable=False)

    punch_in = db.Column(db.DateTime(timezone=True), nullable=False)
    punch_out = db.Column(db.DateTime(timezone=True), nullable=True)

    total_hours = db.Column(db.Numeric(6, 2), nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default=ATTENDANCE_PRESENT)

    comments = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_open(self) -> bool:
        return self.punch_out is None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_ref": self.employee_ref,
            "date": to_iso_date(self.date),
            "punch_in": to_utc_z(self.punch_in),
            "punch_out": to_utc_z(self.punch_out) if self.punch_out else None,
            "total_hours": str(self.total_hours) if self.total_hours is not None else None,
            "status": self.status,
            "is_open": self.is_open,
            "comments": self.comments,
            "version_id": self.version_id,
        }
