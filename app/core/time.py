"""Time handling utilities."""
from datetime import datetime, date
from typing import NamedTuple, Optional, Tuple
import calendar


class YearMonth(NamedTuple):
    """Immutable year-month pair for budget periods."""
    year: int
    month: int

    def __str__(self) -> str:
        return f"{self.year}-{self.month:02d}"

    @classmethod
    def current(cls, now: Optional[datetime] = None) -> 'YearMonth':
        """Get current year-month."""
        now = now or datetime.utcnow()
        return cls(now.year, now.month)

    def to_date(self) -> date:
        """Convert to first day of the month."""
        return date(self.year, self.month, 1)

    def last_day(self) -> date:
        """Get last day of the month."""
        last_day = calendar.monthrange(self.year, self.month)[1]
        return date(self.year, self.month, last_day)

    def next_month(self) -> 'YearMonth':
        """Get next month."""
        if self.month == 12:
            return YearMonth(self.year + 1, 1)
        return YearMonth(self.year, self.month + 1)

    def prev_month(self) -> 'YearMonth':
        """Get previous month."""
        if self.month == 1:
            return YearMonth(self.year - 1, 12)
        return YearMonth(self.year, self.month - 1)

    def start(self) -> datetime:
        """Start of the month as a naive UTC datetime."""
        return datetime.combine(self.to_date(), datetime.min.time())

    def end(self) -> datetime:
        """Exclusive end: start of the following month."""
        return self.next_month().start()


# Income history filters
PERIOD_ALL = 'all'
PERIOD_CURRENT = 'current'
PERIOD_LAST = 'last'
PERIOD_LAST3 = 'last3'
PERIODS = (PERIOD_ALL, PERIOD_CURRENT, PERIOD_LAST, PERIOD_LAST3)

PERIOD_LABELS = {
    PERIOD_ALL: 'Все время',
    PERIOD_CURRENT: 'Текущий месяц',
    PERIOD_LAST: 'Прошлый месяц',
    PERIOD_LAST3: 'Последние 3 месяца',
}


def period_bounds(period: str, now: Optional[datetime] = None) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Return [start, end) datetimes for a history period; None means open."""
    current = YearMonth.current(now)

    if period == PERIOD_CURRENT:
        return current.start(), current.end()
    if period == PERIOD_LAST:
        last = current.prev_month()
        return last.start(), last.end()
    if period == PERIOD_LAST3:
        three_back = current.prev_month().prev_month().prev_month()
        return three_back.start(), None
    if period == PERIOD_ALL:
        return None, None

    raise ValueError(f"Unknown period: {period}")


def format_day_ru(d: date) -> str:
    """'5 марта 2025'."""
    months_genitive = [
        'января', 'февраля', 'марта', 'апреля', 'мая', 'июня',
        'июля', 'августа', 'сентября', 'октября', 'ноября', 'декабря'
    ]
    return f"{d.day} {months_genitive[d.month - 1]} {d.year}"
