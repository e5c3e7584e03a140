# Overview: Flask API routes for invoices; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_principal
from ..errors import BackofficeError, NotFoundError
from ..extensions import db
from ..principals import KIND_ADMIN, KIND_CLIENT
from ..services.code_service import CodeGenerator
from ..services.invoice_service import InvoiceLifecycle
from ..validation import json_object


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def _lifecycle() -> InvoiceLifecycle:
    codes = CodeGenerator(db.session, max_attempts=current_app.config["CODE_ALLOCATION_ATTEMPTS"])
    return InvoiceLifecycle(db.session, codes, clock=current_app.config["CLOCK"])


def _payload(lifecycle: InvoiceLifecycle, invoice) -> dict:
    return invoice.to_dict(status=lifecycle.effective_status(invoice))


@invoices_bp.post("/")
@require_principal(KIND_ADMIN)
def create_invoice_route():
    data = json_object(request.get_json(silent=True))
    lifecycle = _lifecycle()
    try:
        invoice = lifecycle.create(
            client_ref=data.get("client_ref"),
            project_ref=data.get("project_ref"),
            items=data.get("items"),
            tax_rate=data.get("tax_rate"),
            due_date=data.get("due_date"),
            invoice_date=data.get("invoice_date"),
            description=data.get("description"),
            terms=data.get("terms"),
            created_by=g.principal.ref,
        )
        db.session.commit()
        return jsonify({"invoice": _payload(lifecycle, invoice)}), 201
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<code>")
@require_principal(KIND_ADMIN, KIND_CLIENT)
def get_invoice_route(code: str):
    lifecycle = _lifecycle()
    invoice = lifecycle.get_by_code(code)
    if g.principal.kind == KIND_CLIENT and (invoice.client_ref != g.principal.ref or not invoice.is_visible):
        raise NotFoundError("Invoice not found")
    return jsonify({"invoice": _payload(lifecycle, invoice)})


@invoices_bp.patch("/<code>")
@require_principal(KIND_ADMIN)
def update_invoice_route(code: str):
    data = json_object(request.get_json(silent=True))
    lifecycle = _lifecycle()
    try:
        invoice = lifecycle.update(lifecycle.get_by_code(code), data)
        db.session.commit()
        return jsonify({"invoice": _payload(lifecycle, invoice)})
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<code>/pay")
@require_principal(KIND_ADMIN)
def pay_invoice_route(code: str):
    data = json_object(request.get_json(silent=True))
    lifecycle = _lifecycle()
    try:
        invoice = lifecycle.mark_paid(lifecycle.get_by_code(code), data.get("payment_date"))
        db.session.commit()
        return jsonify({"invoice": _payload(lifecycle, invoice)})
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to mark invoice paid")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.delete("/<code>")
@require_principal(KIND_ADMIN)
def delete_invoice_route(code: str):
    lifecycle = _lifecycle()
    try:
        lifecycle.delete(lifecycle.get_by_code(code))
        db.session.commit()
        return jsonify({"deleted": code})
    except BackofficeError:
        raise
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to delete invoice")
        return jsonify({"error": "Internal server error"}), 500
