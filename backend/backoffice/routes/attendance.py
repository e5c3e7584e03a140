# Overview: Flask API routes for attendance punch in/out; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_principal
from ..errors import BackofficeError
from ..extensions import db
from ..principals import KIND_EMPLOYEE
from ..services.timekeeping_service import AttendanceLifecycle
from ..validation import json_object


attendance_bp = Blueprint("attendance", __name__, url_prefix="/api/attendance")


def _lifecycle() -> AttendanceLifecycle:
    return AttendanceLifecycle(db.session, clock=current_app.config["CLOCK"])


@attendance_bp.post("/punch-in")
@require_principal(KIND_EMPLOYEE)
def punch_in_route():
    data = json_object(request.get_json(silent=True))
    try:
        log = _lifecycle().check_in(g.principal.ref, comments=data.get("comments"))
        db.session.commit()
        return jsonify({"log": log.to_dict()}), 201
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to punch in")
        return jsonify({"error": "Internal server error"}), 500


@attendance_bp.post("/punch-out")
@require_principal(KIND_EMPLOYEE)
def punch_out_route():
    try:
        log = _lifecycle().check_out(g.principal.ref)
        db.session.commit()
        return jsonify({"log": log.to_dict()})
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to punch out")
        return jsonify({"error": "Internal server error"}), 500


@attendance_bp.get("/status")
@require_principal(KIND_EMPLOYEE)
def attendance_status_route():
    return jsonify(_lifecycle().status(g.principal.ref))
