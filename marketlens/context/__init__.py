# MarketLens Context Module
"""
Session clock, daily/weekly levels and the USD macro context.

This module provides:
- detect_time_context: New York clock, kill zones and key opens
- detect_pd_ranges / detect_sweeps / detect_tre: previous-day and weekly levels
- true_day_open / true_week_open: session anchors for the true-open signal
- analyze_usd_context: DXY trend and confidence modifier
"""

from .levels import (
    PDRange,
    SweepEvent,
    TREState,
    detect_pd_ranges,
    detect_sweeps,
    detect_tre,
    previous_day_levels,
    true_day_open,
    true_week_open,
    week_open_ts,
)
from .macro import MacroEvent, USDContext, analyze_usd_context, neutral_usd_context
from .session import (
    TimeContext,
    as_utc,
    detect_time_context,
    find_midnight_open,
    is_london_kill_zone,
    is_ny_kill_zone,
    ny_date,
    ny_midnight_ts,
    to_ny,
)

__all__ = [
    "PDRange",
    "SweepEvent",
    "TREState",
    "detect_pd_ranges",
    "detect_sweeps",
    "detect_tre",
    "previous_day_levels",
    "true_day_open",
    "true_week_open",
    "week_open_ts",
    "MacroEvent",
    "USDContext",
    "analyze_usd_context",
    "neutral_usd_context",
    "TimeContext",
    "as_utc",
    "detect_time_context",
    "find_midnight_open",
    "is_london_kill_zone",
    "is_ny_kill_zone",
    "ny_date",
    "ny_midnight_ts",
    "to_ny",
]
