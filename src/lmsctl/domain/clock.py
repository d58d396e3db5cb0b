"""Clock and date formatting utilities.

Timestamps are naive local datetimes truncated to whole seconds, which is
the precision every backend can store. Loan records built from
:meth:`Clock.now` therefore round-trip exactly through CSV and SQL.
"""

from __future__ import annotations

from datetime import datetime, timedelta

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class Clock:
    """Wall clock and date helpers consumed by services and backends."""

    def now(self) -> datetime:
        """Current local time, whole seconds."""
        return datetime.now().replace(microsecond=0)

    def today(self) -> datetime:
        """Local midnight of the current day."""
        return self.now().replace(hour=0, minute=0, second=0)

    @staticmethod
    def add_days(ts: datetime, days: int) -> datetime:
        return ts + timedelta(days=days)

    @staticmethod
    def format_date(ts: datetime, fmt: str = DATE_FORMAT) -> str:
        return ts.strftime(fmt)

    @staticmethod
    def format_datetime(ts: datetime, fmt: str = DATETIME_FORMAT) -> str:
        return ts.strftime(fmt)

    @staticmethod
    def parse_date(text: str, fmt: str = DATETIME_FORMAT) -> datetime | None:
        """Parse *text* with *fmt*. Returns None if it does not match."""
        try:
            return datetime.strptime(text.strip(), fmt)
        except ValueError:
            return None
