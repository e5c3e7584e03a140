# Overview: Atomic (series, period) counters backing invoice numbers and ticket codes.

"""
Sequence Allocator

WHY: Two requests creating invoices at the same moment must never be handed
the same number. The counter row is bumped with ONE statement that both
increments and returns the new value, so the database serializes concurrent
callers on the row; there is no read-then-write window.

The increment runs inside the caller's transaction. On a transactional store
the counter bump and the entity insert therefore commit (or roll back)
together.
"""

from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import StorageError, ValidationError
from ..models import Counter
from ..models.sequences import UNSCOPED_PERIOD
from .concurrency import run_with_retry


# Dialects with INSERT ... ON CONFLICT DO UPDATE ... RETURNING
_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class SequenceAllocator:
    """Issues monotonically increasing integers per (series, period)."""

    def __init__(self, session, *, retry_attempts: int = 3):
        self.session = session
        self.retry_attempts = retry_attempts

    def allocate(self, series: str, period: int = UNSCOPED_PERIOD) -> int:
        """
        Atomically increment the (series, period) counter and return the new value.

        The row is created with value 1 on first use.

        Raises:
            ValidationError: series is empty
            StorageError: the increment could not be executed after retries
        """
        if not series:
            raise ValidationError("series is required")
        if period is None:
            period = UNSCOPED_PERIOD

        try:
            return run_with_retry(
                self.session,
                lambda: self._increment(series, period),
                attempts=self.retry_attempts,
            )
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not allocate next value for {series}/{period}: {exc}") from exc

    def current(self, series: str, period: int = UNSCOPED_PERIOD) -> int:
        """Last value handed out for (series, period); 0 if none yet."""
        value = self.session.execute(
            select(Counter.value).where(Counter.series == series, Counter.period == period)
        ).scalar()
        return value or 0

    def _increment(self, series: str, period: int) -> int:
        dialect = self.session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is not None:
            return self._upsert(insert, series, period)
        return self._update_then_insert(series, period)

    def _upsert(self, insert, series: str, period: int) -> int:
        stmt = insert(Counter).values(series=series, period=period, value=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Counter.series, Counter.period],
            set_={"value": Counter.value + 1, "updated_at": func.now()},
        ).returning(Counter.value)
        return self.session.execute(stmt).scalar_one()

    def _update_then_insert(self, series: str, period: int) -> int:
        """
        Fallback for dialects without upsert: bump the row if it exists,
        otherwise insert it, and if another writer inserted first, bump again.
        """
        stmt = (
            update(Counter)
            .where(Counter.series == series, Counter.period == period)
            .values(value=Counter.value + 1)
        )

        result = self.session.execute(stmt)
        if result.rowcount:
            return self._read_locked(series, period)

        savepoint = self.session.begin_nested()
        try:
            self.session.add(Counter(series=series, period=period, value=1))
            self.session.flush()
            savepoint.commit()
            return 1
        except IntegrityError:
            savepoint.rollback()
            result = self.session.execute(stmt)
            if not result.rowcount:
                raise
            return self._read_locked(series, period)

    def _read_locked(self, series: str, period: int) -> int:
        # Same transaction as the UPDATE, which still holds the row lock
        return self.session.execute(
            select(Counter.value).where(Counter.series == series, Counter.period == period)
        ).scalar_one()
