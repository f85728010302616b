"""Period boundaries for the league.

Every boundary is derived from one global reference instant, a fixed period
length and a fixed UTC offset, so the API, the worker and any client agree on
the current period without storing or exchanging it.
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

from wordleague.league.tiers import ConfigurationError

ONE_DAY = timedelta(days=1)
ONE_HOUR = timedelta(hours=1)


def ensure_utc(dt: datetime) -> datetime:
    """Normalise to aware UTC. Naive values are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _check_period_args(
    now: datetime, reference: datetime, period_length_hours: int, utc_offset_hours: int,
) -> None:
    if now.tzinfo is None or reference.tzinfo is None:
        raise ConfigurationError("period_start needs timezone-aware datetimes")
    if period_length_hours <= 0 or period_length_hours % 24:
        raise ConfigurationError(
            f"period length must be a positive whole number of days, got {period_length_hours}h"
        )
    if not -12 <= utc_offset_hours <= 14:
        raise ConfigurationError(f"UTC offset out of range: {utc_offset_hours}")


def period_start(
    now: datetime,
    reference: datetime,
    period_length_hours: int,
    utc_offset_hours: int,
) -> datetime:
    """Start of the period containing `now`, as an aware UTC datetime.

    Days are counted in the offset frame: `now` is shifted by the offset,
    truncated to its calendar day and compared with the shifted reference.
    """
    _check_period_args(now, reference, period_length_hours, utc_offset_hours)

    offset = timedelta(hours=utc_offset_hours)
    local_now = now.astimezone(timezone.utc).replace(tzinfo=None) + offset
    local_day = datetime.combine(local_now.date(), time.min)
    local_reference = reference.astimezone(timezone.utc).replace(tzinfo=None) + offset

    period_days = period_length_hours // 24
    days_since_reference = (local_day - local_reference) // ONE_DAY
    start_day_index = (days_since_reference // period_days) * period_days

    local_start = local_reference + start_day_index * ONE_DAY
    return (local_start - offset).replace(tzinfo=timezone.utc)


def period_end(start: datetime, period_length_hours: int) -> datetime:
    """Exclusive end of the period beginning at `start`."""
    return start + timedelta(hours=period_length_hours)


def hours_elapsed(now: datetime, start: datetime, cap_hours: int) -> int:
    """Whole hours since `start`, clamped to [0, cap_hours]."""
    whole_hours = int((ensure_utc(now) - ensure_utc(start)) // ONE_HOUR)
    return max(0, min(cap_hours, whole_hours))


def time_remaining(now: datetime, start: datetime, period_length_hours: int) -> timedelta:
    """Time left until the period beginning at `start` ends (never negative)."""
    remaining = period_end(ensure_utc(start), period_length_hours) - ensure_utc(now)
    return max(remaining, timedelta(0))


def daily_window_due(now: datetime, window_start: datetime | None, window_hours: int = 24) -> bool:
    """True when a full daily window has elapsed since the stored window start."""
    if window_start is None:
        return True
    return ensure_utc(now) - ensure_utc(window_start) >= timedelta(hours=window_hours)
