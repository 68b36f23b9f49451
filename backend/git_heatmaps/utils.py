from datetime import date, datetime, timedelta, timezone
from typing import Iterator

MIN_YEAR = 2000


def parse_day(day_str: str) -> date:
    return datetime.strptime(day_str, "%Y-%m-%d").date()


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from start to end, inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def day_span(start: date, end: date) -> int:
    return (end - start).days + 1


def one_year_before(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:
        # Feb 29 has no counterpart in the previous year
        return day.replace(year=day.year - 1, day=28)


def parse_period(period: str = "pastyear", today: date | None = None) -> tuple[date, date]:
    """Parse period string into start and end days."""
    today = today or datetime.now(timezone.utc).date()
    if period == "pastyear":
        # Rolling year that ends today, 365 or 366 days long
        return one_year_before(today) + timedelta(days=1), today
    elif period == "pastmonth":
        return today - timedelta(days=30), today
    elif period == "pastweek":
        return today - timedelta(days=7), today
    elif period.isdigit() and len(period) == 4:
        year = int(period)
        if year < MIN_YEAR or year > today.year:
            raise ValueError(f'Invalid year "{period}". Must be a year between {MIN_YEAR} and {today.year}.')
        return date(year, 1, 1), date(year, 12, 31)
    else:
        raise ValueError("Invalid period. Use YYYY, 'pastyear', 'pastmonth', or 'pastweek'.")
