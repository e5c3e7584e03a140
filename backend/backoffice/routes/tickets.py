# Overview: Flask API routes for support tickets; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_principal
from ..errors import BackofficeError, NotFoundError
from ..extensions import db
from ..principals import KIND_ADMIN, KIND_CLIENT, KIND_EMPLOYEE
from ..services.code_service import CodeGenerator
from ..services.ticket_service import TicketLifecycle
from ..time_utils import to_utc_z
from ..validation import json_object


tickets_bp = Blueprint("tickets", __name__, url_prefix="/api/tickets")


def _lifecycle() -> TicketLifecycle:
    codes = CodeGenerator(db.session, max_attempts=current_app.config["CODE_ALLOCATION_ATTEMPTS"])
    return TicketLifecycle(db.session, codes, clock=current_app.config["CLOCK"])


def _visible_ticket(lifecycle: TicketLifecycle, code: str):
    """Load by code; clients only ever see their own tickets."""
    ticket = lifecycle.get_by_code(code)
    if g.principal.kind == KIND_CLIENT and ticket.client_ref != g.principal.ref:
        raise NotFoundError("Ticket not found")
    return ticket


@tickets_bp.post("/")
@require_principal(KIND_CLIENT)
def create_ticket_route():
    data = json_object(request.get_json(silent=True))
    lifecycle = _lifecycle()
    try:
        ticket = lifecycle.create(
            client_ref=g.principal.ref,
            title=data.get("title"),
            description=data.get("description"),
            priority=data.get("priority"),
        )
        db.session.commit()
        return jsonify({"ticket": ticket.to_dict()}), 201
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create ticket")
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.get("/<code>")
@require_principal()
def get_ticket_route(code: str):
    ticket = _visible_ticket(_lifecycle(), code)
    return jsonify({"ticket": ticket.to_dict()})


@tickets_bp.patch("/<code>")
@require_principal(KIND_ADMIN, KIND_EMPLOYEE)
def update_ticket_route(code: str):
    data = json_object(request.get_json(silent=True))
    lifecycle = _lifecycle()
    try:
        ticket = lifecycle.update(
            lifecycle.get_by_code(code),
            status=data.get("status"),
            priority=data.get("priority"),
            assigned_employee_ref=data.get("assigned_employee_ref"),
            comment=data.get("comment"),
            actor_ref=g.principal.ref,
        )
        db.session.commit()
        return jsonify({"ticket": ticket.to_dict()})
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update ticket")
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.post("/<code>/comments")
@require_principal()
def add_comment_route(code: str):
    data = json_object(request.get_json(silent=True))
    lifecycle = _lifecycle()
    try:
        ticket = _visible_ticket(lifecycle, code)
        comment = lifecycle.add_comment(ticket, g.principal.ref, data.get("text"))
        db.session.commit()
        return jsonify({
            "ticket_code": ticket.code,
            "comment": comment.to_dict(),
            "author_name": g.principal.display_name,
            "comment_count": len(ticket.comments),
        }), 201
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to add ticket comment")
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.post("/<code>/client-resolution")
@require_principal(KIND_CLIENT)
def client_resolution_route(code: str):
    data = json_object(request.get_json(silent=True))
    lifecycle = _lifecycle()
    try:
        ticket = lifecycle.set_client_resolved(
            lifecycle.get_by_code(code), g.principal.ref, data.get("resolved")
        )
        db.session.commit()
        return jsonify({"ticket": ticket.to_dict()})
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update client resolution")
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.delete("/<code>")
@require_principal(KIND_ADMIN, KIND_CLIENT)
def delete_ticket_route(code: str):
    lifecycle = _lifecycle()
    client_ref = g.principal.ref if g.principal.kind == KIND_CLIENT else None
    try:
        lifecycle.delete(lifecycle.get_by_code(code), client_ref=client_ref)
        db.session.commit()
        return jsonify({"deleted": code})
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete ticket")
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.get("/<code>/timeline")
@require_principal(KIND_ADMIN)
def ticket_timeline_route(code: str):
    lifecycle = _lifecycle()
    ticket = lifecycle.get_by_code(code)
    events = lifecycle.timeline(ticket)
    for event in events:
        event["date"] = to_utc_z(event["date"])
        latest = event["data"].get("latest_comment")
        if latest:
            latest["date"] = to_utc_z(latest["date"])
    return jsonify({
        "ticket_code": ticket.code,
        "title": ticket.title,
        "status": ticket.status,
        "priority": ticket.priority,
        "client_resolved": ticket.client_resolved,
        "timeline": events,
    })
