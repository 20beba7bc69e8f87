"""
Stats aggregation - synthetic baseline for the public counter.

The public counter shows a baseline that grows by a fixed amount per
day since launch plus the real number of verified registrations.
"""

from datetime import date, datetime, timezone

from .ports import Stats

FAKE_BASE_COUNT = 2847
FAKE_BASE_EPOCH = date(2024, 12, 1)
FAKE_DAILY_INCREMENT = 35


def generate_fake_base_count(now: datetime | None = None) -> int:
    """
    Compute the synthetic baseline for ``now``.

    baseline + whole days since the epoch * daily increment. Days before
    the epoch count as zero so the value never drops below the baseline.
    """
    now = now or datetime.now(timezone.utc)
    days = max((now.date() - FAKE_BASE_EPOCH).days, 0)
    return FAKE_BASE_COUNT + days * FAKE_DAILY_INCREMENT


def advance_fake_base_count(stored: int | None, now: datetime | None = None) -> tuple[int, bool]:
    """
    Return the floor to report and whether it must be persisted.

    A stored value is only ever raised, never lowered.
    """
    current = generate_fake_base_count(now)
    if stored is None or stored < current:
        return current, True
    return stored, False


def build_stats(registered: int, pending: int, fake_base_count: int | None) -> Stats:
    return Stats(
        total_registered=registered,
        total_pending=pending,
        total=registered + pending,
        fake_base_count=fake_base_count,
    )
