from datetime import timedelta

SATURDAY = 5
SUNDAY = 6


def is_weekend(day) -> bool:
    return day.weekday() in (SATURDAY, SUNDAY)


def add_business_days(start, days: int):
    """
    Advance `start` one calendar day at a time, counting only Monday-Friday,
    until `days` business days have been added. `days == 0` returns `start`.
    Works for both date and datetime; the time of day is preserved.
    """
    if days < 0:
        raise ValueError("days must be non-negative")

    current = start
    added = 0
    while added < days:
        current = current + timedelta(days=1)
        if not is_weekend(current):
            added += 1
    return current
