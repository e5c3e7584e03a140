# Overview: Service-layer operations for support tickets; status, comments, and client resolution.

"""
Ticket Lifecycle

Official status (Pending, In Progress, Resolved, Closed) has no transition
graph: staff may move a ticket to any status. Two facets ride alongside it:

- client resolution: the owning client may mark/unmark a ticket resolved.
  Each toggle leaves a system comment on the thread.
- comments: append-only thread, each entry immutable once written.

A client may delete its own ticket only while nobody is working on it
(Pending) or after it is Closed.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select

from ..errors import InvalidStateTransitionError, NotFoundError, ValidationError
from ..models import Ticket, TicketComment
from ..models.tickets import (
    PRIORITY_MEDIUM,
    TICKET_CLOSED,
    TICKET_PENDING,
    TICKET_PRIORITIES,
    TICKET_RESOLVED,
    TICKET_STATUSES,
    new_comment_id,
)
from ..time_utils import Clock, utcnow
from ..validation import require_choice, require_text
from .code_service import CodeGenerator


CLIENT_RESOLVED_TEXT = "Client marked this ticket as resolved"
CLIENT_UNRESOLVED_TEXT = "Client unmarked this ticket as resolved"

# Statuses in which the owning client may delete the ticket
CLIENT_DELETABLE_STATUSES = {TICKET_PENDING, TICKET_CLOSED}

TIMELINE_PREVIEW_CHARS = 50


def status_comment_text(status: str) -> str:
    return f'Status updated to "{status}"'


class TicketLifecycle:
    def __init__(self, session, codes: CodeGenerator | None = None, *, clock: Clock = utcnow):
        self.session = session
        self.codes = codes or CodeGenerator(session)
        self.clock = clock

    def create(
        self,
        *,
        client_ref: str,
        title: str,
        description: str,
        priority: str | None = None,
    ) -> Ticket:
        ticket = Ticket(
            client_ref=require_text(client_ref, "client_ref"),
            title=require_text(title, "title"),
            description=require_text(description, "description"),
            priority=require_choice(priority or PRIORITY_MEDIUM, TICKET_PRIORITIES, "priority"),
            status=TICKET_PENDING,
            client_resolved=False,
            created_at=self.clock(),
        )
        ticket.code = self.codes.next_ticket_code()

        self.session.add(ticket)
        self.session.flush()
        return ticket

    def update(
        self,
        ticket: Ticket,
        *,
        status: str | None = None,
        priority: str | None = None,
        assigned_employee_ref: str | None = None,
        comment: str | None = None,
        actor_ref: str | None = None,
    ) -> Ticket:
        """
        Staff-side update. All arguments are optional; only the ones given change.

        A status change is recorded on the thread as a system comment by the actor.
        """
        # Validate everything before touching the ticket
        if status is not None:
            require_choice(status, TICKET_STATUSES, "status")
        if priority is not None:
            require_choice(priority, TICKET_PRIORITIES, "priority")
        if (status is not None or comment) and not actor_ref:
            raise ValidationError("actor_ref is required to change status or comment")
        if comment is not None and (not isinstance(comment, str) or not comment.strip()):
            raise ValidationError("Comment text is required")

        if priority is not None:
            ticket.priority = priority
        if assigned_employee_ref:
            ticket.assigned_employee_ref = assigned_employee_ref

        if status is not None and status != ticket.status:
            ticket.status = status
            self._append(ticket, actor_ref, status_comment_text(status))

        if comment:
            self._append(ticket, actor_ref, comment.strip())

        ticket.updated_at = self.clock()
        self.session.flush()
        return ticket

    def add_comment(self, ticket: Ticket, author_ref: str, text: str) -> TicketComment:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("Comment text is required")
        author_ref = require_text(author_ref, "author_ref")

        comment = self._append(ticket, author_ref, text.strip())
        ticket.updated_at = comment.created_at
        self.session.flush()
        return comment

    def set_client_resolved(self, ticket: Ticket, client_ref: str, resolved: bool) -> Ticket:
        """
        Client-side resolution toggle, independent of official status.

        Raises:
            NotFoundError: the ticket does not belong to this client
        """
        if not isinstance(resolved, bool):
            raise ValidationError("resolved must be a boolean")
        self._require_owner(ticket, client_ref)

        if ticket.client_resolved == resolved:
            return ticket

        now = self.clock()
        ticket.client_resolved = resolved
        ticket.client_resolved_at = now if resolved else None
        self._append(ticket, client_ref, CLIENT_RESOLVED_TEXT if resolved else CLIENT_UNRESOLVED_TEXT, now=now)
        ticket.updated_at = now
        self.session.flush()
        return ticket

    def delete(self, ticket: Ticket, *, client_ref: str | None = None) -> None:
        """Delete a ticket. With ``client_ref`` the client-side guard applies."""
        if client_ref is not None:
            self._require_owner(ticket, client_ref)
            if ticket.status not in CLIENT_DELETABLE_STATUSES:
                raise InvalidStateTransitionError(
                    f"Tickets that are {ticket.status} cannot be deleted"
                )
        self.session.delete(ticket)
        self.session.flush()

    def get(self, ticket_id: int) -> Ticket:
        ticket = self.session.get(Ticket, ticket_id)
        if not ticket:
            raise NotFoundError("Ticket not found")
        return ticket

    def get_by_code(self, code: str) -> Ticket:
        ticket = self.session.execute(select(Ticket).where(Ticket.code == code)).scalar_one_or_none()
        if not ticket:
            raise NotFoundError("Ticket not found")
        return ticket

    def timeline(self, ticket: Ticket) -> list[dict]:
        """
        Key events of a ticket in chronological order.

        Events: creation, assignment, client resolution, resolution/closure,
        and a summary of comment activity.
        """
        events = [
            {
                "type": "creation",
                "title": "Ticket Created",
                "date": ticket.created_at,
                "data": {"code": ticket.code, "title": ticket.title, "priority": ticket.priority},
            }
        ]

        if ticket.assigned_employee_ref:
            # No separate assignment timestamp is kept
            events.append({
                "type": "assignment",
                "title": "Ticket Assigned",
                "date": ticket.created_at,
                "data": {"assignee_ref": ticket.assigned_employee_ref},
            })

        if ticket.client_resolved and ticket.client_resolved_at:
            events.append({
                "type": "client_resolution",
                "title": "Marked as Resolved by Client",
                "date": ticket.client_resolved_at,
                "data": {"resolved_by_client": True},
            })

        if ticket.status in (TICKET_RESOLVED, TICKET_CLOSED):
            marker = status_comment_text(ticket.status)
            status_comment = next((c for c in reversed(ticket.comments) if c.text == marker), None)
            events.append({
                "type": "resolution",
                "title": f"Ticket {ticket.status}",
                "date": status_comment.created_at if status_comment else self.clock(),
                "data": {"status": ticket.status},
            })

        if ticket.comments:
            latest = max(ticket.comments, key=lambda c: (c.created_at, c.position))
            preview = latest.text[:TIMELINE_PREVIEW_CHARS]
            if len(latest.text) > TIMELINE_PREVIEW_CHARS:
                preview += "..."
            events.append({
                "type": "comments",
                "title": "Comment Activity",
                "date": latest.created_at,
                "data": {
                    "total_comments": len(ticket.comments),
                    "latest_comment": {
                        "text": preview,
                        "date": latest.created_at,
                        "author_ref": latest.author_ref,
                    },
                },
            })

        events.sort(key=lambda e: e["date"])
        return events

    def _require_owner(self, ticket: Ticket, client_ref: str) -> None:
        if not client_ref or ticket.client_ref != client_ref:
            raise NotFoundError("Ticket not found")

    def _append(self, ticket: Ticket, author_ref: str, text: str, *, now: datetime | None = None) -> TicketComment:
        position = max((c.position for c in ticket.comments), default=-1) + 1
        comment = TicketComment(
            id=new_comment_id(),
            position=position,
            text=text,
            author_ref=author_ref,
            created_at=now or self.clock(),
        )
        ticket.comments.append(comment)
        return comment
