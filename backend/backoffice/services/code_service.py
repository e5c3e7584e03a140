# Overview: Formats sequence values into unique human-readable invoice and ticket codes.

"""
Code Generator

Allocates a value, formats it, and checks that no stored entity already
carries the resulting code before handing it out. The check guards against
a counter that fell behind the stored codes (restored backup, manual reset,
a write that stored a code but lost its counter bump). On a collision the
loop allocates again; after ``max_attempts`` it gives up.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy import exists, select
from sqlalchemy.exc import SQLAlchemyError

from ..errors import AllocationExhaustedError, StorageError
from ..models import Invoice, Ticket
from ..models.sequences import UNSCOPED_PERIOD
from .sequence_service import SequenceAllocator

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10

INVOICE_SERIES = "invoice"
TICKET_SERIES = "ticket"


def zero_pad(value: int, width: int = 3) -> str:
    """Pad to at least ``width`` digits; longer values are kept whole."""
    return f"{value:0{width}d}"


def format_invoice_code(period: int, value: int) -> str:
    return f"INV-{period}-{zero_pad(value)}"


def format_ticket_code(period: int, value: int) -> str:
    return f"T{zero_pad(value)}"


class CodeGenerator:
    def __init__(
        self,
        session,
        allocator: SequenceAllocator | None = None,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.session = session
        self.allocator = allocator or SequenceAllocator(session)
        self.max_attempts = max_attempts

    def generate_code(
        self,
        series: str,
        period: int,
        formatter: Callable[[int, int], str],
        exists_fn: Callable[[str], bool],
    ) -> str:
        """
        Allocate-format-verify loop.

        Args:
            series: counter series ("invoice", "ticket")
            period: counter period (year, or UNSCOPED_PERIOD)
            formatter: (period, value) -> candidate code
            exists_fn: candidate code -> True if already taken

        Raises:
            AllocationExhaustedError: no free code within max_attempts
        """
        last_error: StorageError | None = None
        # The entity being coded may already sit in the session without its code
        with self.session.no_autoflush:
            for attempt in range(1, self.max_attempts + 1):
                try:
                    value = self.allocator.allocate(series, period)
                    candidate = formatter(period, value)
                    taken = exists_fn(candidate)
                except StorageError as exc:
                    last_error = exc
                    logger.warning("Allocation attempt %d for %s/%s failed: %s", attempt, series, period, exc)
                    continue

                if not taken:
                    return candidate

                logger.warning(
                    "Code %s already in use (attempt %d/%d); counter %s/%s is behind stored codes",
                    candidate, attempt, self.max_attempts, series, period,
                )

        logger.error(
            "Could not generate a unique %s code after %d attempts", series, self.max_attempts
        )
        exc = AllocationExhaustedError(
            f"Could not generate a unique {series} code after {self.max_attempts} attempts",
            details={"series": series, "period": period},
        )
        if last_error is not None:
            raise exc from last_error
        raise exc

    def next_invoice_code(self, now: datetime) -> str:
        return self.generate_code(
            INVOICE_SERIES,
            now.year,
            format_invoice_code,
            lambda code: self._code_taken(Invoice.code, code),
        )

    def next_ticket_code(self) -> str:
        return self.generate_code(
            TICKET_SERIES,
            UNSCOPED_PERIOD,
            format_ticket_code,
            lambda code: self._code_taken(Ticket.code, code),
        )

    def _code_taken(self, column, code: str) -> bool:
        try:
            return bool(self.session.execute(select(exists().where(column == code))).scalar())
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not check whether code {code} is taken: {exc}") from exc
