# Overview: Flask API routes for leave requests; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_principal
from ..errors import BackofficeError, NotFoundError
from ..extensions import db
from ..principals import KIND_ADMIN, KIND_EMPLOYEE
from ..services.leave_service import LeaveService
from ..validation import json_object


leaves_bp = Blueprint("leaves", __name__, url_prefix="/api/leaves")


def _service() -> LeaveService:
    return LeaveService(db.session, clock=current_app.config["CLOCK"])


@leaves_bp.post("/")
@require_principal(KIND_EMPLOYEE)
def apply_leave_route():
    data = json_object(request.get_json(silent=True))
    try:
        leave = _service().apply_leave(
            employee_ref=g.principal.ref,
            leave_type=data.get("leave_type"),
            from_date=data.get("from_date"),
            to_date=data.get("to_date"),
            reason=data.get("reason"),
        )
        db.session.commit()
        return jsonify({"leave": leave.to_dict()}), 201
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to apply for leave")
        return jsonify({"error": "Internal server error"}), 500


@leaves_bp.get("/<int:leave_id>")
@require_principal(KIND_ADMIN, KIND_EMPLOYEE)
def get_leave_route(leave_id: int):
    leave = _service().get(leave_id)
    if g.principal.kind == KIND_EMPLOYEE and leave.employee_ref != g.principal.ref:
        raise NotFoundError("Leave request not found")
    return jsonify({"leave": leave.to_dict()})


@leaves_bp.post("/<int:leave_id>/decision")
@require_principal(KIND_ADMIN)
def decide_leave_route(leave_id: int):
    data = json_object(request.get_json(silent=True))
    service = _service()
    try:
        leave = service.decide(
            service.get(leave_id),
            status=data.get("status"),
            approved_by=g.principal.ref,
            comments=data.get("comments"),
        )
        db.session.commit()
        return jsonify({"leave": leave.to_dict()})
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to decide leave request")
        return jsonify({"error": "Internal server error"}), 500
