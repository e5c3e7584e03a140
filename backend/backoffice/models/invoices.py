from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


INVOICE_PENDING = "Pending"
INVOICE_PAID = "Paid"
INVOICE_OVERDUE = "Overdue"
INVOICE_STATUSES = (INVOICE_PENDING, INVOICE_PAID, INVOICE_OVERDUE)

SERVICE_HOURLY = "hourly"
SERVICE_FIXED = "fixed"
SERVICE_SUBSCRIPTION = "subscription"
SERVICE_TYPES = (SERVICE_HOURLY, SERVICE_FIXED, SERVICE_SUBSCRIPTION)


def _money(value):
    return str(value) if value is not None else None


class Invoice(db.Model):
    """
    Client invoice with line items.

    LIFECYCLE:
    - Pending: issued, awaiting payment
    - Overdue: Pending past due_date (derived, also reported at read time)
    - Paid: explicit transition only; sets payment_date; cannot be deleted

    DERIVED FIELDS (never set directly, see InvoiceLifecycle.prepare):
    - item.total, subtotal, tax_amount, total_amount
    - code ("INV-2024-007"), assigned once at creation
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_invoices_code"),
        db.Index("ix_invoices_client_ref", "client_ref"),
        db.Index("ix_invoices_status", "status"),
        db.Index("ix_invoices_due_date", "due_date"),
        db.Index("ix_invoices_is_visible", "is_visible"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable invoice number (e.g., "INV-2024-007")
    code = db.Column(db.String(32), nullable=False)

    # Opaque references owned by the CRM side
    client_ref = db.Column(db.String(64), nullable=False)
    project_ref = db.Column(db.String(64), nullable=True)

    # Totals
    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_rate = db.Column(db.Numeric(5, 2), nullable=True)  # percent, 0-100
    tax_amount = db.Column(db.Numeric(12, 2), nullable=True)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=INVOICE_PENDING)  # Pending, Paid, Overdue

    description = db.Column(db.String(1000), nullable=True)
    terms = db.Column(db.String(2000), nullable=True)

    invoice_date = db.Column(db.DateTime(timezone=True), nullable=False)
    due_date = db.Column(db.DateTime(timezone=True), nullable=False)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=True)

    # Soft hide from client-facing listings
    is_visible = db.Column(db.Boolean, nullable=False, default=True)

    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.position",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, *, status: str | None = None) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "client_ref": self.client_ref,
            "project_ref": self.project_ref,
            "items": [item.to_dict() for item in self.items],
            "subtotal": _money(self.subtotal),
            "tax_rate": _money(self.tax_rate),
            "tax_amount": _money(self.tax_amount),
            "total_amount": _money(self.total_amount),
            "status": status or self.status,
            "description": self.description,
            "terms": self.terms,
            "invoice_date": to_utc_z(self.invoice_date),
            "due_date": to_utc_z(self.due_date),
            "payment_date": to_utc_z(self.payment_date) if self.payment_date else None,
            "is_visible": self.is_visible,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
            "version_id": self.version_id,
        }


class InvoiceItem(db.Model):
    """
    One billable line on an invoice.

    total = hours * rate_per_hour        (hourly)
    total = fixed_price * quantity       (fixed, subscription)
    """
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.Index("ix_invoice_items_invoice", "invoice_id", "position"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    service_name = db.Column(db.String(255), nullable=False)
    service_type = db.Column(db.String(16), nullable=False)  # hourly, fixed, subscription

    hours = db.Column(db.Numeric(10, 2), nullable=True)
    rate_per_hour = db.Column(db.Numeric(12, 2), nullable=True)
    fixed_price = db.Column(db.Numeric(12, 2), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    description = db.Column(db.Text, nullable=True)
    service_period_start = db.Column(db.DateTime(timezone=True), nullable=True)
    service_period_end = db.Column(db.DateTime(timezone=True), nullable=True)

    invoice = db.relationship("Invoice", back_populates="items")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "service_name": self.service_name,
            "service_type": self.service_type,
            "hours": _money(self.hours),
            "rate_per_hour": _money(self.rate_per_hour),
            "fixed_price": _money(self.fixed_price),
            "quantity": self.quantity,
            "total": _money(self.total),
            "description": self.description,
            "service_period_start": to_utc_z(self.service_period_start) if self.service_period_start else None,
            "service_period_end": to_utc_z(self.service_period_end) if self.service_period_end else None,
        }
