"""
ReportWindow -- closed time interval for earnings reports.

Responsibility:
    Normalizes caller-supplied report bounds into a pair of UTC datetimes
    that can be compared against ``Job.payment_date``.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Bound rules:
    - Both bounds are required.
    - ``date`` (or a date-only ISO string): start means 00:00:00 of that day,
      end means the last microsecond of that day, so a window of
      [2024-01-01, 2024-01-01] covers the whole day.
    - ``datetime`` (or an ISO timestamp): used as-is; naive values are UTC.
    - start must not be after end.

Failure modes:
    - InvalidDateRangeError for missing, unparseable, or reversed bounds.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone

from ledger_kernel.exceptions import InvalidDateRangeError

_END_OF_DAY = time(23, 59, 59, 999999)


@dataclass(frozen=True)
class ReportWindow:
    """Inclusive [start, end] interval on payment_date, both in UTC."""

    start: datetime
    end: datetime

    @classmethod
    def from_bounds(cls, start: object, end: object) -> ReportWindow:
        """
        Build a window from raw bounds.

        Args:
            start: date, datetime, or ISO-8601 string.
            end: date, datetime, or ISO-8601 string.

        Returns:
            A normalized ReportWindow.

        Raises:
            InvalidDateRangeError: If a bound is missing, unparseable, or
                start is after end.
        """
        start_at = _normalize(start, end_of_day=False, raw_start=start, raw_end=end)
        end_at = _normalize(end, end_of_day=True, raw_start=start, raw_end=end)
        if start_at > end_at:
            raise InvalidDateRangeError(
                str(start), str(end), "start must not be after end"
            )
        return cls(start=start_at, end=end_at)

    def describe(self) -> tuple[str, str]:
        return self.start.isoformat(), self.end.isoformat()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _normalize(
    value: object,
    end_of_day: bool,
    raw_start: object,
    raw_end: object,
) -> datetime:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidDateRangeError(
            str(raw_start), str(raw_end), "both start and end are required"
        )

    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                value = date.fromisoformat(text)
            else:
                value = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidDateRangeError(
                str(raw_start), str(raw_end), f"cannot parse '{text}'"
            ) from None

    # datetime is a subclass of date; check it first
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime.combine(
            value, _END_OF_DAY if end_of_day else time.min, tzinfo=timezone.utc
        )

    raise InvalidDateRangeError(
        str(raw_start), str(raw_end), f"unsupported bound type {type(value).__name__}"
    )
