"""
Reference levels: daily/weekly ranges, previous-day extremes, sweeps of
those extremes, true week open and the daily range expansion (TRE) state.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from marketlens.context.session import to_ny, ts_to_ny
from marketlens.indicators.candles import Candle
from marketlens.schemas.base import RangePosition

logger = logging.getLogger(__name__)

TRE_LOOKBACK_DAYS = 5
TRE_COMPRESSED = 0.5
TRE_EXPANDED = 1.0
WEEK_OPEN_HOUR = 18  # Sunday 18:00 New York


@dataclass
class PDRange:
    """Daily and weekly dealing ranges with price location"""
    daily_high: float
    daily_low: float
    daily_eq: float
    weekly_high: float
    weekly_low: float
    weekly_eq: float
    position: RangePosition

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["position"] = self.position.value
        return data


@dataclass
class SweepEvent:
    level: str  # PDH or PDL
    price: float
    time: int
    type: str  # SWEEP_HIGH or SWEEP_LOW
    reclaimed: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TREState:
    """Today's range against the trailing average daily range"""
    current_range: float
    average_range: float
    ratio: float
    state: str  # COMPRESSED / NORMAL / EXPANDED

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def detect_pd_ranges(price: float, daily: Sequence[Candle]) -> PDRange:
    """
    Daily range from the last daily candle; weekly range from the last six.

    Args:
        price: Current price
        daily: Daily candles, ascending (the last one may be developing)

    Returns:
        PDRange (all zeros and EQUILIBRIUM without daily data)
    """
    if not daily:
        return PDRange(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, RangePosition.EQUILIBRIUM)

    today = daily[-1]
    d_eq = (today.high + today.low) / 2
    week = daily[-(TRE_LOOKBACK_DAYS + 1):]
    w_high = max(c.high for c in week)
    w_low = min(c.low for c in week)

    if price > d_eq:
        position = RangePosition.PREMIUM
    elif price < d_eq:
        position = RangePosition.DISCOUNT
    else:
        position = RangePosition.EQUILIBRIUM

    return PDRange(
        daily_high=today.high,
        daily_low=today.low,
        daily_eq=d_eq,
        weekly_high=w_high,
        weekly_low=w_low,
        weekly_eq=(w_high + w_low) / 2,
        position=position,
    )


def previous_day_levels(
    daily: Sequence[Candle],
    now: datetime,
    intraday: Sequence[Candle] = ()
) -> Tuple[Optional[float], Optional[float]]:
    """
    PDH/PDL of the last completed New York day before ``now``.

    The daily feed wins unless it is missing or older than the last prior
    session found in ``intraday``; then the extremes of that session's
    intraday candles are used instead.

    Args:
        daily: Daily candles, ascending
        now: Evaluation time
        intraday: Intraday candles used as the fallback source

    Returns:
        (pdh, pdl), or (None, None) without a completed day in either feed
    """
    today = to_ny(now).date()
    completed = [c for c in daily if ts_to_ny(c.time).date() < today]
    prior_sessions = [ts_to_ny(c.time).date() for c in intraday if ts_to_ny(c.time).date() < today]
    last_session = max(prior_sessions, default=None)

    if completed:
        daily_session = ts_to_ny(completed[-1].time).date()
        if last_session is None or daily_session >= last_session:
            return completed[-1].high, completed[-1].low

    if last_session is None:
        return None, None

    session = [c for c in intraday if ts_to_ny(c.time).date() == last_session]
    logger.debug("PDH/PDL from %d intraday candles of %s", len(session), last_session)
    return max(c.high for c in session), min(c.low for c in session)


def true_day_open(
    daily: Sequence[Candle],
    intraday: Sequence[Candle],
    now: datetime
) -> Optional[float]:
    """
    Open of the current New York day.

    Taken from today's daily bar when the daily feed has one, otherwise from
    the first intraday candle of today.
    """
    today = to_ny(now).date()
    if daily and ts_to_ny(daily[-1].time).date() == today:
        return daily[-1].open
    first = next((c for c in intraday if ts_to_ny(c.time).date() == today), None)
    return first.open if first is not None else None


def detect_sweeps(
    candles: Sequence[Candle],
    pdh: Optional[float],
    pdl: Optional[float],
    now: datetime
) -> List[SweepEvent]:
    """
    Find today's sweeps of the previous-day high and low.

    A level is swept when any candle of the current New York day trades
    through it; it counts as reclaimed when the latest close is back inside.
    """
    if not candles:
        return []

    today = to_ny(now).date()
    todays = [c for c in candles if ts_to_ny(c.time).date() == today]
    price = candles[-1].close
    sweeps = []

    if pdh:
        breach = next((c for c in todays if c.high > pdh), None)
        if breach is not None:
            sweeps.append(SweepEvent("PDH", pdh, breach.time, "SWEEP_HIGH", price < pdh))
    if pdl:
        breach = next((c for c in todays if c.low < pdl), None)
        if breach is not None:
            sweeps.append(SweepEvent("PDL", pdl, breach.time, "SWEEP_LOW", price > pdl))
    return sweeps


def detect_tre(daily: Sequence[Candle]) -> TREState:
    """
    Compare today's range with the mean range of the five prior days.

    Ratio below 0.5 is COMPRESSED, above 1.0 EXPANDED.
    """
    if len(daily) < TRE_LOOKBACK_DAYS + 1:
        return TREState(0.0, 0.0, 0.0, "NORMAL")

    prior = daily[-(TRE_LOOKBACK_DAYS + 1):-1]
    average = sum(c.high - c.low for c in prior) / TRE_LOOKBACK_DAYS
    current = daily[-1].high - daily[-1].low
    ratio = current / average if average > 0 else 0.0

    if ratio < TRE_COMPRESSED:
        state = "COMPRESSED"
    elif ratio > TRE_EXPANDED:
        state = "EXPANDED"
    else:
        state = "NORMAL"
    return TREState(current, average, ratio, state)


def week_open_ts(now: datetime) -> int:
    """Unix seconds of the most recent Sunday 18:00 New York."""
    ny_now = to_ny(now)
    # Monday is 0, Sunday is 6
    days_back = (ny_now.weekday() + 1) % 7
    anchor = (ny_now - timedelta(days=days_back)).replace(
        hour=WEEK_OPEN_HOUR, minute=0, second=0, microsecond=0)
    if anchor > ny_now:
        anchor -= timedelta(days=7)
    return int(anchor.timestamp())


def true_week_open(candles: Sequence[Candle], now: datetime) -> Optional[float]:
    """Open of the first candle at or after the current week's open."""
    start = week_open_ts(now)
    first = next((c for c in candles if c.time >= start), None)
    return first.open if first is not None else None
