"""
Invoice lifecycle tests.

Covers derived totals, read-time Overdue, the Paid transition and the
delete guard.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from backoffice.errors import InvalidStateTransitionError, NotFoundError, ValidationError
from backoffice.models import Invoice
from backoffice.models.invoices import INVOICE_OVERDUE, INVOICE_PAID, INVOICE_PENDING
from backoffice.services.invoice_service import InvoiceLifecycle


HOURLY = {"service_name": "Consulting", "service_type": "hourly", "hours": "10", "rate_per_hour": "90"}
FIXED = {"service_name": "Setup", "service_type": "fixed", "fixed_price": "150.50", "quantity": 2}


@pytest.fixture
def lifecycle(db_session, clock):
    return InvoiceLifecycle(db_session, clock=clock)


def create_invoice(lifecycle, clock, **kwargs):
    params = {
        "client_ref": "client-1",
        "items": [HOURLY],
        "due_date": clock() + timedelta(days=30),
        "created_by": "admin-1",
        "tax_rate": "10",
    }
    params.update(kwargs)
    return lifecycle.create(**params)


def test_totals_are_derived(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock)

    assert invoice.code == "INV-2024-001"
    assert invoice.items[0].total == Decimal("900.00")
    assert invoice.subtotal == Decimal("900.00")
    assert invoice.tax_amount == Decimal("90.00")
    assert invoice.total_amount == Decimal("990.00")
    assert invoice.status == INVOICE_PENDING


def test_fixed_items_multiply_by_quantity(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock, items=[HOURLY, FIXED], tax_rate=None)

    assert invoice.items[1].total == Decimal("301.00")
    assert invoice.subtotal == Decimal("1201.00")
    assert invoice.tax_amount is None
    assert invoice.total_amount == Decimal("1201.00")


def test_tax_rounds_half_up(lifecycle, clock):
    item = {"service_name": "Hosting", "service_type": "subscription", "fixed_price": "0.25"}
    invoice = create_invoice(lifecycle, clock, items=[item], tax_rate="10")

    # 0.025 -> 0.03
    assert invoice.tax_amount == Decimal("0.03")
    assert invoice.total_amount == Decimal("0.28")


def test_prepare_is_idempotent(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock, items=[HOURLY, FIXED])
    before = (invoice.code, invoice.subtotal, invoice.tax_amount, invoice.total_amount, invoice.status)

    lifecycle.prepare(invoice)
    lifecycle.prepare(invoice)

    assert (invoice.code, invoice.subtotal, invoice.tax_amount, invoice.total_amount, invoice.status) == before


def test_invoice_requires_items(lifecycle, clock):
    with pytest.raises(ValidationError):
        create_invoice(lifecycle, clock, items=[])


@pytest.mark.parametrize("item", [
    {"service_name": "Consulting", "service_type": "hourly", "hours": "0", "rate_per_hour": "90"},
    {"service_name": "Consulting", "service_type": "hourly", "hours": "5"},
    {"service_name": "Setup", "service_type": "fixed", "fixed_price": "-1"},
    {"service_name": "Setup", "service_type": "fixed", "fixed_price": "10", "quantity": 0},
    {"service_name": "Setup", "service_type": "barter", "fixed_price": "10"},
])
def test_invalid_items_rejected(lifecycle, clock, item):
    with pytest.raises(ValidationError):
        create_invoice(lifecycle, clock, items=[item])


def test_tax_rate_out_of_range(lifecycle, clock):
    with pytest.raises(ValidationError):
        create_invoice(lifecycle, clock, tax_rate="120")


def test_overdue_is_derived_at_read_time(lifecycle, clock, db_session):
    invoice = create_invoice(lifecycle, clock, due_date=clock() + timedelta(days=1))
    db_session.commit()

    clock.advance(days=2)

    assert invoice.status == INVOICE_PENDING
    assert lifecycle.effective_status(invoice) == INVOICE_OVERDUE
    assert invoice.to_dict(status=lifecycle.effective_status(invoice))["status"] == INVOICE_OVERDUE


def test_past_due_date_is_overdue_on_create(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock, due_date=clock() - timedelta(days=1))
    assert invoice.status == INVOICE_OVERDUE


def test_refresh_overdue_persists_transition(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock, due_date=clock() + timedelta(hours=1))
    clock.advance(hours=2)

    assert lifecycle.refresh_overdue(invoice) is True
    assert invoice.status == INVOICE_OVERDUE
    assert lifecycle.refresh_overdue(invoice) is False


def test_mark_overdue_sweep(lifecycle, clock, db_session):
    late = create_invoice(lifecycle, clock, due_date=clock() + timedelta(days=1))
    create_invoice(lifecycle, clock, due_date=clock() + timedelta(days=60))
    paid = create_invoice(lifecycle, clock, due_date=clock() + timedelta(days=1))
    lifecycle.mark_paid(paid)
    db_session.commit()
    late_id = late.id

    clock.advance(days=5)

    assert lifecycle.mark_overdue_invoices() == 1
    db_session.commit()
    assert db_session.get(Invoice, late_id).status == INVOICE_OVERDUE


def test_mark_paid_sets_payment_date(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock)
    clock.advance(days=3)

    lifecycle.mark_paid(invoice)

    assert invoice.status == INVOICE_PAID
    assert invoice.payment_date == clock()


def test_overdue_invoice_can_be_paid(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock, due_date=clock() + timedelta(days=1))
    clock.advance(days=10)

    lifecycle.mark_paid(invoice, payment_date="2024-03-20T12:00:00Z")

    assert invoice.status == INVOICE_PAID
    assert invoice.payment_date == datetime(2024, 3, 20, 12, 0, 0)


def test_payment_date_only_with_paid_transition(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock)
    with pytest.raises(ValidationError):
        lifecycle.update(invoice, {"payment_date": "2024-03-20"})


def test_paid_is_terminal(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock)
    lifecycle.mark_paid(invoice)

    with pytest.raises(InvalidStateTransitionError):
        lifecycle.update(invoice, {"status": INVOICE_PENDING})


def test_update_recomputes_totals(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock)
    lifecycle.update(invoice, {"items": [FIXED], "tax_rate": "5"})

    assert invoice.subtotal == Decimal("301.00")
    assert invoice.tax_amount == Decimal("15.05")
    assert invoice.total_amount == Decimal("316.05")
    assert invoice.code == "INV-2024-001"


def test_update_rejects_unknown_fields(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock)
    with pytest.raises(ValidationError):
        lifecycle.update(invoice, {"code": "INV-1999-999"})


def test_paid_invoice_cannot_be_deleted(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock)
    lifecycle.mark_paid(invoice)

    with pytest.raises(InvalidStateTransitionError):
        lifecycle.delete(invoice)


def test_pending_invoice_can_be_deleted(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock)
    code = invoice.code
    lifecycle.delete(invoice)

    with pytest.raises(NotFoundError):
        lifecycle.get_by_code(code)


def test_deleted_code_is_not_reissued(lifecycle, clock):
    first = create_invoice(lifecycle, clock)
    lifecycle.delete(first)

    assert create_invoice(lifecycle, clock).code == "INV-2024-002"


def test_aware_due_date_is_normalized_to_utc(lifecycle, clock):
    due = datetime(2024, 4, 1, 12, 0, 0, tzinfo=timezone(timedelta(hours=2)))
    invoice = create_invoice(lifecycle, clock, due_date=due)

    assert invoice.due_date == datetime(2024, 4, 1, 10, 0, 0)
    assert invoice.due_date.tzinfo is None
    assert invoice.status == INVOICE_PENDING


def test_aware_payment_date_is_normalized_to_utc(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock)
    lifecycle.mark_paid(invoice, datetime(2024, 3, 20, 9, 30, 0, tzinfo=timezone.utc))

    assert invoice.payment_date == datetime(2024, 3, 20, 9, 30, 0)


def test_update_rejects_unknown_status(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock)
    with pytest.raises(ValidationError):
        lifecycle.update(invoice, {"status": "Bogus"})
    assert invoice.status == INVOICE_PENDING


def test_update_requires_an_object(lifecycle, clock):
    invoice = create_invoice(lifecycle, clock)
    with pytest.raises(ValidationError):
        lifecycle.update(invoice, ["status"])
