# =======================================================================================
# gatekeeper/utils/clock.py - Wall Clock
# =======================================================================================
from datetime import date, datetime


def now() -> datetime:
    """Current local wall-clock time; all validity windows are checked against it."""
    return datetime.now().replace(microsecond=0)


def today() -> date:
    return now().date()
