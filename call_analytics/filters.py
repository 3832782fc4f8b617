"""Date window selection for statistics requests."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from loguru import logger

from .constants import VOLUME_ALL_LOOKBACK_DAYS, LogMessage, Period

_TRAILING_DAYS: dict[str, int] = {
    Period.LAST_7_DAYS: 7,
    Period.LAST_30_DAYS: 30,
}


def to_date(value: date | datetime | str | None) -> date | None:
    """Calendar date of an upload timestamp.

    Accepts dates, datetimes and ISO 8601 strings (a trailing 'Z' is allowed).

    Returns:
        date | None: The calendar date, or None if the value cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()
    except ValueError:
        return None


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar-date window; an open bound does not restrict.

    Attributes:
        start: First included date, or None for no lower bound.
        end: Last included date, or None for no upper bound.
    """

    start: date | None = None
    end: date | None = None

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def __call__(self, value: date | datetime | str | None) -> bool:
        if self.is_unbounded:
            return True
        day = to_date(value)
        if day is None:
            return False
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


def build_date_filter(
    period: str | None,
    start_date: str | None = None,
    end_date: str | None = None,
    *,
    today: date | None = None,
    volume: bool = False,
) -> DateWindow:
    """Translate a period selector into a date window.

    - "today": the current calendar day.
    - "7d" / "30d": from that many days before today onwards.
    - "custom": start_date..end_date inclusive; both are required, otherwise
      nothing is filtered.
    - "all": nothing is filtered, except for volume views which look back
      VOLUME_ALL_LOOKBACK_DAYS days to bound the size of the series.
    - anything else: nothing is filtered.

    Args:
        period: Period selector.
        start_date: Custom window start, "YYYY-MM-DD".
        end_date: Custom window end, "YYYY-MM-DD".
        today: Reference date, defaults to the current date.
        volume: Whether the window selects rows for a volume series.

    Returns:
        DateWindow: Predicate over upload dates.
    """
    today = today or date.today()

    if period == Period.CUSTOM:
        if not (start_date and end_date):
            return DateWindow()
        try:
            return DateWindow(
                start=date.fromisoformat(start_date), end=date.fromisoformat(end_date)
            )
        except ValueError:
            logger.warning(LogMessage.CUSTOM_DATES_INVALID.format(start_date, end_date))
            return DateWindow()

    if period in _TRAILING_DAYS:
        return DateWindow(start=today - timedelta(days=_TRAILING_DAYS[period]))

    if period == Period.TODAY:
        return DateWindow(start=today, end=today)

    if period == Period.ALL:
        if volume:
            return DateWindow(start=today - timedelta(days=VOLUME_ALL_LOOKBACK_DAYS))
        return DateWindow()

    if period:
        logger.debug(LogMessage.UNKNOWN_PERIOD.format(period))
    return DateWindow()
