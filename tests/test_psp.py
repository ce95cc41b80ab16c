"""
Tests for the Precision Swing Point state machine.

The fixture walks a LONG setup through all four stages:
sweep (bar 23) -> displacement (peak bar 26) -> pullback (bar 28) -> continuation (bar 30).
"""

import pytest

from conftest import M15, candles_from_ohlc, psp_long_rows
from marketlens.indicators.psp import (
    PSPChecklist,
    PSPConstants,
    detect_psp,
    empty_psp,
    resolve_psp_expiry,
)
from marketlens.schemas.base import Direction, PSPState


def now_after(candles, minutes=1):
    return (candles[-1].time + minutes * 60) * 1000


def mirror(rows, pivot=200.0):
    """Reflect OHLC rows around ``pivot`` to turn a LONG setup into a SHORT one."""
    return [(pivot - o, pivot - l, pivot - h, pivot - c) for o, h, l, c in rows]


class TestPSPStages:
    def test_confirmed_long(self, psp_long_candles):
        result = detect_psp(psp_long_candles, now_after(psp_long_candles))

        assert result.state == PSPState.CONFIRMED
        assert result.direction == Direction.LONG
        assert result.score == 100
        assert result.checklist == PSPChecklist(True, True, True, True)
        assert result.checklist.missing() == []

    def test_levels(self, psp_long_candles):
        levels = detect_psp(psp_long_candles, now_after(psp_long_candles)).levels

        assert levels.swing == 97.0
        assert levels.sweep_extreme == 95.5
        assert levels.invalidation == 95.5
        assert levels.displacement_extreme == 104.0
        # 50-79% retracement of the 95.5 -> 104 leg
        assert levels.entry_high == pytest.approx(104 - 0.5 * 8.5)
        assert levels.entry_low == pytest.approx(104 - 0.79 * 8.5)

    def test_debug_trace_is_typed(self, psp_long_candles):
        debug = detect_psp(psp_long_candles, now_after(psp_long_candles)).debug

        assert debug.swing_index == 20
        assert debug.sweep_index == 23
        assert debug.peak_index == 26
        assert debug.touch_index == 28
        assert debug.continuation_index == 30
        assert debug.atr > 0
        assert debug.sweep_threshold == pytest.approx(max(PSPConstants.SWEEP_ATR * debug.atr, 1.0))
        assert not debug.invalidated

    def test_forming_without_continuation(self, psp_long_candles):
        candles = psp_long_candles[:29]
        result = detect_psp(candles, now_after(candles))

        assert result.state == PSPState.FORMING
        assert result.score == 80
        assert result.checklist.pullback
        assert result.checklist.missing() == ["continuation"]

    def test_re_breach_invalidates(self):
        rows = psp_long_rows()
        rows[27] = (103.5, 103.7, 95.0, 96.0)
        candles = candles_from_ohlc(rows)
        result = detect_psp(candles, now_after(candles))

        assert result.state == PSPState.NONE
        assert result.score == 0
        assert result.debug.invalidated

    def test_short_is_mirror_of_long(self):
        candles = candles_from_ohlc(mirror(psp_long_rows()))
        result = detect_psp(candles, now_after(candles))

        assert result.state == PSPState.CONFIRMED
        assert result.direction == Direction.SHORT
        assert result.levels.swing == pytest.approx(103.0)
        assert result.levels.invalidation == pytest.approx(104.5)

    def test_sweep_outside_recency_window_is_ignored(self, psp_long_candles):
        result = detect_psp(psp_long_candles, now_after(psp_long_candles), recency_bars=5)
        assert result.state == PSPState.NONE


class TestPSPDegradation:
    def test_insufficient_data(self, psp_long_candles):
        result = detect_psp(psp_long_candles[:PSPConstants.MIN_CANDLES - 1], 0)
        assert result.state == PSPState.NONE
        assert result.direction == Direction.NEUTRAL
        assert result.debug.factors == ["Insufficient data"]

    def test_flat_market_has_no_setup(self, flat_candles):
        result = detect_psp(flat_candles, now_after(flat_candles))
        assert result.state == PSPState.NONE
        assert result.score == 0

    def test_empty_psp_lists_every_stage_missing(self):
        result = empty_psp("M15", "No PSP setup")
        assert result.meta.tf == "M15"
        assert result.debug.missing == ["sweep", "displacement", "pullback", "continuation"]


class TestPSPExpiry:
    def test_meta_timestamps(self, psp_long_candles):
        now_ms = now_after(psp_long_candles)
        result = detect_psp(psp_long_candles, now_ms, tf="M5")
        sweep_ms = psp_long_candles[23].time * 1000

        assert result.meta.tf == "M5"
        assert result.meta.detected_at_ms == sweep_ms
        assert result.meta.expires_at_ms == sweep_ms + 3 * 3600 * 1000
        assert result.meta.age_minutes == (now_ms - sweep_ms) // 60000

    def test_expired_setup_reads_as_none(self, psp_long_candles):
        sweep_ms = psp_long_candles[23].time * 1000
        result = detect_psp(psp_long_candles, sweep_ms + 3 * 3600 * 1000)

        assert result.state == PSPState.NONE
        assert result.score == 0
        assert result.debug.expired
        # The trace survives expiry
        assert result.checklist.continuation
        assert result.direction == Direction.LONG

    def test_resolve_is_noop_before_expiry(self, psp_long_candles):
        now_ms = now_after(psp_long_candles)
        result = detect_psp(psp_long_candles, now_ms)
        assert resolve_psp_expiry(result, now_ms) is result

    def test_custom_ttl(self, psp_long_candles):
        sweep_ms = psp_long_candles[23].time * 1000
        result = detect_psp(psp_long_candles, sweep_ms + 8 * M15 * 1000, ttl_hours=1)
        assert result.state == PSPState.NONE
