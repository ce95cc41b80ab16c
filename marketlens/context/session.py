"""
Session and time context.

New York civil time is derived from a fixed offset: UTC-4 from April through
October, UTC-5 otherwise. This approximates US daylight saving without a tz
database, so session windows can shift by an hour around the March and
November transitions.

Kill zones (New York time, end exclusive):
- London: 02:00 - 05:00
- New York: 07:00 - 10:00
"""

from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional, Sequence, Tuple

from marketlens.indicators.candles import Candle

LONDON_KZ_HOURS = (2, 5)
NY_KZ_HOURS = (7, 10)
MIDNIGHT_OPEN_HOUR = 0
LONDON_OPEN_HOUR = 2
NY_OPEN_HOUR = 7


def as_utc(when: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


def ny_offset_hours(when: datetime) -> int:
    """Hours New York lags UTC at ``when`` (4 in summer, 5 in winter)."""
    month = as_utc(when).month
    return 4 if 3 < month < 11 else 5


def to_ny(when: datetime) -> datetime:
    """Convert to a New York wall-clock datetime with a fixed-offset tzinfo."""
    utc = as_utc(when)
    offset = ny_offset_hours(utc)
    return utc.astimezone(timezone(timedelta(hours=-offset)))


def ts_to_ny(ts: int) -> datetime:
    return to_ny(datetime.fromtimestamp(ts, tz=timezone.utc))


def ny_date(ts: int) -> date:
    """New York calendar day of a unix timestamp."""
    return ts_to_ny(ts).date()


def ny_midnight_ts(now: datetime) -> int:
    """Unix seconds of 00:00 New York on the day of ``now``."""
    ny_now = to_ny(now)
    midnight = ny_now.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp())


def _between(hour: int, window: Tuple[int, int]) -> bool:
    return window[0] <= hour < window[1]


def is_london_kill_zone(ny_hour: int) -> bool:
    return _between(ny_hour, LONDON_KZ_HOURS)


def is_ny_kill_zone(ny_hour: int) -> bool:
    return _between(ny_hour, NY_KZ_HOURS)


@dataclass
class TimeContext:
    """Session flags and key intraday opens for the current New York day."""
    ny_time: str
    is_london_kz: bool
    is_ny_kz: bool
    midnight_open: Optional[float] = None
    london_open: Optional[float] = None
    ny_open: Optional[float] = None

    @property
    def in_kill_zone(self) -> bool:
        return self.is_london_kz or self.is_ny_kz

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def detect_time_context(now: datetime, candles: Sequence[Candle]) -> TimeContext:
    """
    Build the session context for ``now``.

    The key opens are the opens of the first candle printed in the 00:xx,
    02:xx and 07:xx New York hours of the current New York day.

    Args:
        now: Evaluation time (naive values are read as UTC)
        candles: Intraday candles, ascending

    Returns:
        TimeContext
    """
    ny_now = to_ny(now)
    today = ny_now.date()

    opens: Dict[int, float] = {}
    for candle in candles:
        ny_candle = ts_to_ny(candle.time)
        if ny_candle.date() != today:
            continue
        if ny_candle.hour in (MIDNIGHT_OPEN_HOUR, LONDON_OPEN_HOUR, NY_OPEN_HOUR):
            opens.setdefault(ny_candle.hour, candle.open)

    return TimeContext(
        ny_time=ny_now.strftime("%H:%M"),
        is_london_kz=is_london_kill_zone(ny_now.hour),
        is_ny_kz=is_ny_kill_zone(ny_now.hour),
        midnight_open=opens.get(MIDNIGHT_OPEN_HOUR),
        london_open=opens.get(LONDON_OPEN_HOUR),
        ny_open=opens.get(NY_OPEN_HOUR),
    )


def find_midnight_open(candles: Sequence[Candle], now: datetime) -> Optional[Tuple[float, int]]:
    """
    Locate the New York midnight open for the day of ``now``.

    Prefers the candle stamped exactly at 00:00 NY; otherwise falls back to the
    first candle of the NY day.

    Returns:
        (open price, candle time) or None when no candle printed today
    """
    midnight_ts = ny_midnight_ts(now)
    next_midnight_ts = midnight_ts + 24 * 3600
    todays = [c for c in candles if midnight_ts <= c.time < next_midnight_ts]
    if not todays:
        return None
    for candle in todays:
        if candle.time == midnight_ts:
            return candle.open, candle.time
    first = todays[0]
    return first.open, first.time
