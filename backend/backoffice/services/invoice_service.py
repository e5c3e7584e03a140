# Overview: Service-layer operations for invoices; totals, overdue derivation, and payment lifecycle.

"""
Invoice Lifecycle

STATE MACHINE:
    Pending -> Overdue   (automatic once due_date has passed)
    Pending | Overdue -> Paid   (explicit update only)

RULES:
1. item.total, subtotal, tax_amount and total_amount are derived. Every
   create/update path ends in prepare(), which recomputes all of them.
2. Overdue is also derived at read time (effective_status), so an invoice
   nobody touched since its due date still reports Overdue.
3. payment_date is only ever set by the transition to Paid.
4. Paid is terminal: it cannot be left and the invoice cannot be deleted.
5. code is assigned once, on first prepare(), and never reassigned.

Services flush but do not commit; the caller owns the transaction so the
counter bump and the invoice insert commit together.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable

from sqlalchemy import select, update

from ..errors import InvalidStateTransitionError, NotFoundError, ValidationError
from ..models import Invoice, InvoiceItem
from ..models.invoices import (
    INVOICE_OVERDUE,
    INVOICE_PAID,
    INVOICE_PENDING,
    INVOICE_STATUSES,
    SERVICE_HOURLY,
    SERVICE_TYPES,
)
from ..time_utils import Clock, utcnow
from ..validation import (
    optional_text,
    quantize,
    require_choice,
    require_positive,
    require_text,
    to_datetime,
    to_decimal,
    to_int,
)
from .code_service import CodeGenerator


# Fields a caller may change through update()
UPDATABLE_FIELDS = {
    "items",
    "tax_rate",
    "status",
    "due_date",
    "payment_date",
    "project_ref",
    "description",
    "terms",
    "is_visible",
}

MAX_TAX_RATE = Decimal("100")


def effective_status(invoice: Invoice, now: datetime) -> str:
    """Status as of ``now``: a Pending invoice past its due date reads as Overdue."""
    if invoice.status == INVOICE_PENDING and invoice.due_date is not None and invoice.due_date < now:
        return INVOICE_OVERDUE
    return invoice.status


def item_total(item: InvoiceItem) -> Decimal:
    """
    Line total for one item.

    Raises:
        ValidationError: a required amount is missing or not positive
    """
    if item.service_type == SERVICE_HOURLY:
        hours = require_positive(item.hours, "hours")
        rate = require_positive(item.rate_per_hour, "rate_per_hour")
        return quantize(hours * rate)

    price = require_positive(item.fixed_price, "fixed_price")
    quantity = item.quantity if item.quantity is not None else 1
    if quantity < 1:
        raise ValidationError("quantity must be at least 1")
    return quantize(price * quantity)


def build_item(data: dict, position: int) -> InvoiceItem:
    """Validate one raw item payload and build the (not yet totalled) InvoiceItem."""
    if not isinstance(data, dict):
        raise ValidationError("Each item must be an object")

    service_name = require_text(data.get("service_name"), "service_name")
    service_type = require_choice(data.get("service_type"), SERVICE_TYPES, "service_type")

    item = InvoiceItem(
        position=position,
        service_name=service_name,
        service_type=service_type,
        description=optional_text(data.get("description"), "description"),
        service_period_start=to_datetime(data.get("service_period_start"), "service_period_start"),
        service_period_end=to_datetime(data.get("service_period_end"), "service_period_end"),
    )

    if service_type == SERVICE_HOURLY:
        if data.get("hours") is None or data.get("rate_per_hour") is None:
            raise ValidationError("Hourly services require hours and rate_per_hour")
        item.hours = require_positive(data["hours"], "hours")
        item.rate_per_hour = require_positive(data["rate_per_hour"], "rate_per_hour")
        item.quantity = 1
    else:
        if data.get("fixed_price") is None:
            raise ValidationError("Fixed and subscription services require fixed_price")
        item.fixed_price = require_positive(data["fixed_price"], "fixed_price")
        quantity = to_int(data.get("quantity"), "quantity")
        item.quantity = 1 if quantity is None else quantity
        if item.quantity < 1:
            raise ValidationError("quantity must be at least 1")

    if (
        item.service_period_start
        and item.service_period_end
        and item.service_period_end < item.service_period_start
    ):
        raise ValidationError("service_period_end must not be before service_period_start")

    return item


def build_items(items: Any) -> list[InvoiceItem]:
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("At least one item is required")
    return [build_item(data, position) for position, data in enumerate(items)]


def _tax_rate(value: Any) -> Decimal | None:
    rate = to_decimal(value, "tax_rate")
    if rate is None:
        return None
    if rate < 0 or rate > MAX_TAX_RATE:
        raise ValidationError("tax_rate must be between 0 and 100")
    return quantize(rate)


class InvoiceLifecycle:
    def __init__(self, session, codes: CodeGenerator | None = None, *, clock: Clock = utcnow):
        self.session = session
        self.codes = codes or CodeGenerator(session)
        self.clock = clock

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def prepare(self, invoice: Invoice) -> Invoice:
        """
        Recompute every derived field and assign the code on first call.

        Safe to call repeatedly: values are quantised to cents, so a second
        call on an unchanged invoice yields identical numbers.
        """
        if not invoice.items:
            raise ValidationError("At least one item is required")
        if invoice.status not in INVOICE_STATUSES:
            raise ValidationError(
                f"Invalid status '{invoice.status}'. Must be one of: {', '.join(INVOICE_STATUSES)}"
            )
        if invoice.due_date is None:
            raise ValidationError("due_date is required")

        now = self.clock()

        subtotal = Decimal("0")
        for item in invoice.items:
            item.total = item_total(item)
            subtotal += item.total
        invoice.subtotal = quantize(subtotal)

        if invoice.tax_rate is not None:
            invoice.tax_amount = quantize(invoice.subtotal * Decimal(invoice.tax_rate) / 100)
        else:
            invoice.tax_amount = None

        invoice.total_amount = quantize(invoice.subtotal + (invoice.tax_amount or 0))

        invoice.status = effective_status(invoice, now)

        if not invoice.code:
            invoice.code = self.codes.next_invoice_code(now)

        return invoice

    def effective_status(self, invoice: Invoice) -> str:
        return effective_status(invoice, self.clock())

    def refresh_overdue(self, invoice: Invoice) -> bool:
        """Persist the Overdue transition if it is due. Returns True if the status changed."""
        status = self.effective_status(invoice)
        if status == invoice.status:
            return False
        invoice.status = status
        invoice.updated_at = self.clock()
        self.session.flush()
        return True

    def mark_overdue_invoices(self) -> int:
        """Bulk sweep: flip every Pending invoice past its due date to Overdue."""
        now = self.clock()
        stmt = (
            update(Invoice)
            .where(Invoice.status == INVOICE_PENDING, Invoice.due_date < now)
            .values(status=INVOICE_OVERDUE, updated_at=now, version_id=Invoice.version_id + 1)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        # Loaded instances may still hold the old status/version
        self.session.expire_all()
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create(
        self,
        *,
        client_ref: str,
        items: Iterable[dict],
        due_date: Any,
        created_by: str,
        project_ref: str | None = None,
        tax_rate: Any = None,
        invoice_date: Any = None,
        description: str | None = None,
        terms: str | None = None,
    ) -> Invoice:
        client_ref = require_text(client_ref, "client_ref")
        created_by = require_text(created_by, "created_by")
        due = to_datetime(due_date, "due_date")
        if due is None:
            raise ValidationError("due_date is required")

        now = self.clock()
        invoice = Invoice(
            client_ref=client_ref,
            project_ref=project_ref or None,
            items=build_items(items),
            tax_rate=_tax_rate(tax_rate),
            status=INVOICE_PENDING,
            invoice_date=to_datetime(invoice_date, "invoice_date") or now,
            due_date=due,
            description=optional_text(description, "description", max_length=1000),
            terms=optional_text(terms, "terms", max_length=2000),
            is_visible=True,
            created_by=created_by,
            created_at=now,
        )

        self.prepare(invoice)
        self.session.add(invoice)
        self.session.flush()
        return invoice

    def update(self, invoice: Invoice, changes: dict) -> Invoice:
        """
        Apply a partial update and re-derive.

        Raises:
            ValidationError: not an object, unknown field, bad value, payment_date outside a Paid transition
            InvalidStateTransitionError: attempt to move a Paid invoice to another status
        """
        if not isinstance(changes, dict):
            raise ValidationError("changes must be an object")
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        now = self.clock()
        current_status = effective_status(invoice, now)
        new_status = current_status
        if changes.get("status") is not None:
            new_status = require_choice(changes["status"], INVOICE_STATUSES, "status")

        if current_status == INVOICE_PAID and new_status != INVOICE_PAID:
            raise InvalidStateTransitionError("Paid invoices cannot change status")

        paying = new_status == INVOICE_PAID and current_status != INVOICE_PAID
        payment_date = to_datetime(changes.get("payment_date"), "payment_date")
        if payment_date is not None and not paying:
            raise ValidationError("payment_date can only be set when marking the invoice Paid")

        if "items" in changes:
            invoice.items = build_items(changes["items"])
        if "tax_rate" in changes:
            invoice.tax_rate = _tax_rate(changes["tax_rate"])
        if "due_date" in changes:
            due = to_datetime(changes["due_date"], "due_date")
            if due is None:
                raise ValidationError("due_date is required")
            invoice.due_date = due
        if "project_ref" in changes:
            invoice.project_ref = changes["project_ref"] or None
        if "description" in changes:
            invoice.description = optional_text(changes["description"], "description", max_length=1000)
        if "terms" in changes:
            invoice.terms = optional_text(changes["terms"], "terms", max_length=2000)
        if "is_visible" in changes:
            if not isinstance(changes["is_visible"], bool):
                raise ValidationError("is_visible must be a boolean")
            invoice.is_visible = changes["is_visible"]

        invoice.status = new_status
        if paying:
            invoice.payment_date = payment_date or invoice.payment_date or now

        invoice.updated_at = now
        self.prepare(invoice)
        self.session.flush()
        return invoice

    def mark_paid(self, invoice: Invoice, payment_date: Any = None) -> Invoice:
        changes: dict = {"status": INVOICE_PAID}
        if payment_date is not None:
            changes["payment_date"] = payment_date
        return self.update(invoice, changes)

    def delete(self, invoice: Invoice) -> None:
        if effective_status(invoice, self.clock()) == INVOICE_PAID:
            raise InvalidStateTransitionError("Paid invoices cannot be deleted")
        self.session.delete(invoice)
        self.session.flush()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get(self, invoice_id: int) -> Invoice:
        invoice = self.session.get(Invoice, invoice_id)
        if not invoice:
            raise NotFoundError("Invoice not found")
        return invoice

    def get_by_code(self, code: str) -> Invoice:
        invoice = self.session.execute(select(Invoice).where(Invoice.code == code)).scalar_one_or_none()
        if not invoice:
            raise NotFoundError("Invoice not found")
        return invoice
