from datetime import date, datetime, time, timedelta
from typing import Optional

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"


class DateTimeUtils:
    """Clock and date formatting helpers.

    Services take an instance instead of calling datetime.now() directly so that
    tests can pin "now" and "today".
    """

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> datetime:
        """Local midnight of the current day."""
        return datetime.combine(date.today(), time.min)

    @staticmethod
    def add_days(value: datetime, days: int) -> datetime:
        return value + timedelta(days=days)

    @staticmethod
    def format_datetime(value: datetime, fmt: str = DATETIME_FORMAT) -> str:
        return value.strftime(fmt)

    @staticmethod
    def format_date(value: datetime, fmt: str = DATE_FORMAT) -> str:
        return value.strftime(fmt)

    @staticmethod
    def parse_datetime(text: Optional[str], fmt: str = DATETIME_FORMAT) -> Optional[datetime]:
        """Parse text with fmt. Returns None instead of raising when the text does not match."""
        if not text:
            return None
        try:
            return datetime.strptime(text, fmt)
        except (ValueError, TypeError):
            return None
