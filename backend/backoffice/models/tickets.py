from __future__ import annotations

import uuid

from sqlalchemy import event

from ..errors import InvalidStateTransitionError
from ..extensions import db
from ..time_utils import to_utc_z


TICKET_PENDING = "Pending"
TICKET_IN_PROGRESS = "In Progress"
TICKET_RESOLVED = "Resolved"
TICKET_CLOSED = "Closed"
TICKET_STATUSES = (TICKET_PENDING, TICKET_IN_PROGRESS, TICKET_RESOLVED, TICKET_CLOSED)

PRIORITY_LOW = "Low"
PRIORITY_MEDIUM = "Medium"
PRIORITY_HIGH = "High"
TICKET_PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH)


class Ticket(db.Model):
    """
    Client support ticket.

    STATUS: Pending, In Progress, Resolved, Closed. No transition graph;
    any status may follow any other.

    CLIENT RESOLUTION: client_resolved/client_resolved_at are toggled by the
    owning client only and are independent of the official status.
    client_resolved_at is set iff client_resolved is true.

    COMMENTS: append-only, ordered by position (append order).
    """
    __tablename__ = "tickets"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_tickets_code"),
        db.Index("ix_tickets_client_status", "client_ref", "status"),
        db.Index("ix_tickets_priority", "priority"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable code (e.g., "T014")
    code = db.Column(db.String(16), nullable=False)

    client_ref = db.Column(db.String(64), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    priority = db.Column(db.String(16), nullable=False, default=PRIORITY_MEDIUM)
    status = db.Column(db.String(16), nullable=False, default=TICKET_PENDING)
    assigned_employee_ref = db.Column(db.String(64), nullable=True, index=True)

    client_resolved = db.Column(db.Boolean, nullable=False, default=False)
    client_resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    comments = db.relationship(
        "TicketComment",
        back_populates="ticket",
        order_by="TicketComment.position",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, *, include_comments: bool = True) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "client_ref": self.client_ref,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "assigned_employee_ref": self.assigned_employee_ref,
            "client_resolved": self.client_resolved,
            "client_resolved_at": to_utc_z(self.client_resolved_at) if self.client_resolved_at else None,
            "comment_count": len(self.comments),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
            "version_id": self.version_id,
        }
        if include_comments:
            data["comments"] = [c.to_dict() for c in self.comments]
        return data


def new_comment_id() -> str:
    return uuid.uuid4().hex


class TicketComment(db.Model):
    """
    A comment on a ticket. Immutable once written.

    The id is generated when the comment is appended, not by the database,
    so callers get it back before the row is flushed.
    """
    __tablename__ = "ticket_comments"
    __table_args__ = (
        db.UniqueConstraint("ticket_id", "position", name="uq_ticket_comments_position"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_comment_id)
    ticket_id = db.Column(db.Integer, db.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)
    text = db.Column(db.Text, nullable=False)
    author_ref = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    ticket = db.relationship("Ticket", back_populates="comments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "author_ref": self.author_ref,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(TicketComment, "before_update")
def _refuse_comment_edits(mapper, connection, target):
    raise InvalidStateTransitionError("Ticket comments cannot be modified")
