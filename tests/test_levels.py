"""
Unit tests for reference levels (PD ranges, PDH/PDL, sweeps, TRE, day and week open)
"""

from datetime import datetime, timezone

import pytest

from conftest import BASE_DT, DAY, M15, NY_MIDNIGHT, candles_from_ohlc
from marketlens.context.levels import (
    detect_pd_ranges,
    detect_sweeps,
    detect_tre,
    previous_day_levels,
    true_day_open,
    true_week_open,
    week_open_ts,
)
from marketlens.schemas.base import RangePosition

DAILY_ROWS = [
    (100.0, 110.0, 90.0, 105.0),
    (105.0, 112.0, 98.0, 100.0),
    (100.0, 108.0, 96.0, 104.0),
    (104.0, 115.0, 100.0, 110.0),
    (110.0, 118.0, 104.0, 116.0),
    (116.0, 120.0, 110.0, 112.0),  # yesterday
    (112.0, 114.0, 108.0, 113.0),  # today, developing
]


def daily_candles(rows=DAILY_ROWS):
    return candles_from_ohlc(rows, start=NY_MIDNIGHT - (len(rows) - 1) * DAY, step=DAY)


def intraday_candles(today=True):
    """Sixteen M15 bars from 20:00 New York yesterday, then sixteen from midnight."""
    rows = [(100.0, 106.0, 95.0, 100.0)] * 16
    rows[5] = (100.0, 107.0, 96.0, 101.0)
    rows[9] = (100.0, 104.0, 94.0, 99.0)
    if today:
        rows += [(101.0, 102.0, 99.0, 100.0)] * 16
    return candles_from_ohlc(rows, start=NY_MIDNIGHT - 4 * 3600, step=M15)


class TestPDRanges:
    def test_empty(self):
        pd_range = detect_pd_ranges(100.0, [])
        assert pd_range.position == RangePosition.EQUILIBRIUM
        assert pd_range.daily_high == 0.0

    def test_daily_and_weekly_ranges(self):
        pd_range = detect_pd_ranges(113.0, daily_candles())
        assert pd_range.daily_high == 114.0
        assert pd_range.daily_low == 108.0
        assert pd_range.daily_eq == 111.0
        # Weekly window is the last six daily candles
        assert pd_range.weekly_high == 120.0
        assert pd_range.weekly_low == 96.0
        assert pd_range.weekly_eq == 108.0

    @pytest.mark.parametrize("price,position", [
        (113.0, RangePosition.PREMIUM),
        (109.0, RangePosition.DISCOUNT),
        (111.0, RangePosition.EQUILIBRIUM),
    ])
    def test_position(self, price, position):
        assert detect_pd_ranges(price, daily_candles()).position == position

    def test_to_dict(self):
        assert detect_pd_ranges(113.0, daily_candles()).to_dict()["position"] == "PREMIUM"


class TestPreviousDay:
    def test_last_completed_day(self):
        assert previous_day_levels(daily_candles(), BASE_DT) == (120.0, 110.0)

    def test_no_completed_day(self):
        first_day = datetime.fromtimestamp(NY_MIDNIGHT - 6 * DAY + 3600, tz=timezone.utc)
        assert previous_day_levels(daily_candles(), first_day) == (None, None)

    def test_intraday_fallback_without_daily(self):
        assert previous_day_levels([], BASE_DT, intraday_candles()) == (107.0, 94.0)

    def test_intraday_fallback_when_daily_is_stale(self):
        # last completed daily bar is two sessions old
        stale = candles_from_ohlc(DAILY_ROWS[:5], start=NY_MIDNIGHT - 6 * DAY, step=DAY)
        assert previous_day_levels(stale, BASE_DT, intraday_candles()) == (107.0, 94.0)

    def test_current_daily_wins_over_intraday(self):
        assert previous_day_levels(daily_candles(), BASE_DT, intraday_candles()) == (120.0, 110.0)

    def test_no_prior_session_anywhere(self):
        today_only = intraday_candles()[16:]
        assert previous_day_levels([], BASE_DT, today_only) == (None, None)


class TestDayOpen:
    def test_daily_bar_for_today(self):
        assert true_day_open(daily_candles(), intraday_candles(), BASE_DT) == 112.0

    def test_first_intraday_open_without_daily(self):
        assert true_day_open([], intraday_candles(), BASE_DT) == 101.0

    def test_daily_without_today_falls_back(self):
        assert true_day_open(daily_candles()[:-1], intraday_candles(), BASE_DT) == 101.0

    def test_no_candles_today(self):
        assert true_day_open([], intraday_candles(today=False), BASE_DT) is None


class TestSweeps:
    def test_reclaimed_high_sweep(self):
        candles = candles_from_ohlc([
            (115.0, 125.0, 114.0, 115.0),  # yesterday, ignored
            (115.0, 116.0, 114.0, 115.0),
            (115.0, 121.0, 114.0, 119.0),  # trades through PDH
            (119.0, 119.5, 117.0, 118.0),
        ], start=NY_MIDNIGHT - M15, step=M15)
        sweeps = detect_sweeps(candles, 120.0, 110.0, BASE_DT)
        assert len(sweeps) == 1
        assert sweeps[0].level == "PDH"
        assert sweeps[0].type == "SWEEP_HIGH"
        assert sweeps[0].time == NY_MIDNIGHT + M15
        assert sweeps[0].reclaimed

    def test_unreclaimed_low_sweep(self):
        candles = candles_from_ohlc([
            (112.0, 113.0, 111.0, 111.5),
            (111.5, 112.0, 109.0, 109.5),
        ], start=NY_MIDNIGHT, step=M15)
        sweeps = detect_sweeps(candles, 120.0, 110.0, BASE_DT)
        assert [s.level for s in sweeps] == ["PDL"]
        assert not sweeps[0].reclaimed

    def test_no_levels(self):
        candles = candles_from_ohlc([(112.0, 113.0, 111.0, 111.5)], start=NY_MIDNIGHT)
        assert detect_sweeps(candles, None, None, BASE_DT) == []


class TestTRE:
    def test_needs_six_days(self):
        tre = detect_tre(daily_candles()[:4])
        assert tre.state == "NORMAL"
        assert tre.average_range == 0.0

    def test_compressed(self):
        tre = detect_tre(daily_candles())
        assert tre.average_range == pytest.approx(13.0)
        assert tre.current_range == pytest.approx(6.0)
        assert tre.state == "COMPRESSED"

    def test_expanded(self):
        rows = DAILY_ROWS[:-1] + [(112.0, 130.0, 108.0, 125.0)]
        assert detect_tre(daily_candles(rows)).state == "EXPANDED"


class TestWeekOpen:
    def test_monday_anchors_to_sunday_evening(self):
        expected = int(datetime(2024, 6, 9, 22, 0, tzinfo=timezone.utc).timestamp())
        assert week_open_ts(BASE_DT) == expected

    def test_sunday_before_open_uses_previous_week(self):
        now = datetime(2024, 6, 9, 21, 0, tzinfo=timezone.utc)  # Sunday 17:00 NY
        expected = int(datetime(2024, 6, 2, 22, 0, tzinfo=timezone.utc).timestamp())
        assert week_open_ts(now) == expected

    def test_true_week_open(self):
        start = week_open_ts(BASE_DT) - 3600
        candles = candles_from_ohlc([(100.0 + i, 101.0 + i, 99.0 + i, 100.0 + i) for i in range(8)],
                                    start=start, step=M15)
        assert true_week_open(candles, BASE_DT) == 104.0

    def test_no_candles_after_open(self):
        assert true_week_open([], BASE_DT) is None
