from __future__ import annotations

from ..extensions import db
from ..time_utils import to_iso_date, to_utc_z


LEAVE_MEDICAL = "Medical Leave"
LEAVE_CASUAL = "Casual Leave"
LEAVE_VACATION = "Vacation"
LEAVE_TYPES = (LEAVE_MEDICAL, LEAVE_CASUAL, LEAVE_VACATION)

LEAVE_PENDING = "Pending"
LEAVE_APPROVED = "Approved"
LEAVE_REJECTED = "Rejected"
LEAVE_STATUSES = (LEAVE_PENDING, LEAVE_APPROVED, LEAVE_REJECTED)


class LeaveRequest(db.Model):
    """
    Employee leave request over an inclusive date range.

    LIFECYCLE:
    - Pending -> Approved | Rejected, decided exactly once

    RULES:
    - number_of_days = (to_date - from_date).days + 1
    - No two requests of one employee may overlap, whatever their status
    """
    __tablename__ = "leave_requests"
    __table_args__ = (
        db.Index("ix_leave_requests_employee_ref", "employee_ref"),
        db.CheckConstraint("to_date >= from_date", name="ck_leave_requests_range"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    employee_ref = db.Column(db.String(64), nullable=False)
    leave_type = db.Column(db.String(32), nullable=False)

    from_date = db.Column(db.Date, nullable=False)
    to_date = db.Column(db.Date, nullable=False)
    number_of_days = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.Text, nullable=False)
    # Approver's note
    comments = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default=LEAVE_PENDING, index=True)
    approved_by = db.Column(db.String(64), nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "employee_ref": self.employee_ref,
            "leave_type": self.leave_type,
            "from_date": to_iso_date(self.from_date),
            "to_date": to_iso_date(self.to_date),
            "number_of_days": self.number_of_days,
            "reason": self.reason,
            "comments": self.comments,
            "status": self.status,
            "approved_by": self.approved_by,
            "decided_at": to_utc_z(self.decided_at) if self.decided_at else None,
            "created_at": to_utc_z(self.created_at),
        }
