from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


# Period used by series that never reset (ticket codes)
UNSCOPED_PERIOD = 0


class Counter(db.Model):
    """
    Atomic per-(series, period) sequence counter.

    WHY: Invoice numbers and ticket codes are human-readable and must never
    be issued twice. The counter row is the single serialization point for
    concurrent allocations.

    INVARIANTS:
    - One row per (series, period); created lazily on first allocation.
    - value only ever increases. Rows are never deleted, so a code is never
      reissued even if the entity that carried it is removed.
    """
    __tablename__ = "counters"
    __table_args__ = (
        db.UniqueConstraint("series", "period", name="uq_counters_series_period"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    series = db.Column(db.String(32), nullable=False)
    # Calendar year for yearly series, UNSCOPED_PERIOD otherwise
    period = db.Column(db.Integer, nullable=False, default=UNSCOPED_PERIOD)
    # Last value handed out (0 = nothing issued yet)
    value = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "series": self.series,
            "period": self.period,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }
