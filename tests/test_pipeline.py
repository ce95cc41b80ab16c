"""
End-to-end tests for the analysis pipeline
"""

import json
from datetime import datetime, timezone

import pytest

from conftest import (
    DAY,
    NY_MIDNIGHT,
    SMT_PRIMARY_HIGHS,
    SMT_REFERENCE_HIGHS,
    UPTREND_PIVOTS,
    candles_from_ohlc,
    rows_from_highs,
    zigzag_candles,
)
from marketlens.config import EngineConfig
from marketlens.pipeline import AnalysisInputs, analyze
from marketlens.schemas.base import (
    BlockType,
    DataSource,
    DataStatus,
    Direction,
    Polarity,
    ScenarioState,
    SignalStatus,
    StructureType,
)

DAILY_ROWS = [
    (100.0, 110.0, 90.0, 105.0),
    (105.0, 112.0, 98.0, 100.0),
    (100.0, 108.0, 96.0, 104.0),
    (104.0, 115.0, 100.0, 110.0),
    (110.0, 118.0, 104.0, 116.0),
    (116.0, 120.0, 110.0, 112.0),
    (112.0, 131.0, 99.0, 130.0),
]


@pytest.fixture
def intraday():
    # 5-minute bars from 00:00 New York; the session ends inside the London kill zone
    return zigzag_candles(UPTREND_PIVOTS, bars_per_leg=8, start=NY_MIDNIGHT, step=300)


@pytest.fixture
def daily():
    return candles_from_ohlc(DAILY_ROWS, start=NY_MIDNIGHT - 6 * DAY, step=DAY)


def now_after(candles, seconds=60):
    return datetime.fromtimestamp(candles[-1].time + seconds, tz=timezone.utc)


class TestAnalyze:
    def test_requires_candles(self):
        with pytest.raises(ValueError, match="No intraday candles"):
            analyze(AnalysisInputs(symbol="MNQ", candles=[]), None, datetime.now(timezone.utc))

    def test_full_snapshot(self, intraday, daily):
        inputs = AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily,
                                references={"MES": intraday})
        result = analyze(inputs, EngineConfig(), now_after(intraday))

        assert result.price == intraday[-1].close
        assert result.timestamp == (intraday[-1].time + 60) * 1000
        assert result.structure.type == StructureType.UP_TREND
        assert result.smt == []
        assert result.time_context.midnight_open == 100.0
        assert result.time_context.is_london_kz
        assert (result.pdh, result.pdl) == (120.0, 110.0)
        assert result.buffered_bias == Direction.LONG
        assert result.usd_context.trend == "NEUTRAL"
        assert set(result.signals) == {"PSP", "BIAS", "STRUCTURE", "VALUE_ZONE", "LIQUIDITY", "SMT", "SESSION"}
        assert result.signals["BIAS"].direction == Direction.LONG

    def test_reliability_caps_confluence(self, intraday, daily):
        inputs = AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily)
        result = analyze(inputs, None, now_after(intraday))
        assert result.reliability.data_status == DataStatus.OK
        assert result.reliability.final_score == min(result.confluence.score_pct, 74)

    def test_focus_guard(self, intraday, daily):
        result = analyze(AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily), None, now_after(intraday))
        actionable = [s for s in result.scenarios if s.state == ScenarioState.ACTIONABLE]
        assert len(actionable) <= 1
        if result.scenarios:
            assert result.primary_scenario is result.scenarios[0]

    def test_delayed_feed(self, intraday, daily):
        inputs = AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily, data_source=DataSource.BROKER)
        result = analyze(inputs, None, now_after(intraday, seconds=600))
        assert result.reliability.data_status == DataStatus.DELAYED
        assert "Feed delayed" in result.confluence.factors

    def test_closed_market_turns_signals_off(self, intraday, daily):
        inputs = AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily, market_status="CLOSED")
        result = analyze(inputs, None, now_after(intraday))
        assert result.reliability.data_status == DataStatus.CLOSED
        assert result.signals["BIAS"].status == SignalStatus.OFF
        assert result.signals["VALUE_ZONE"].status == SignalStatus.OFF

    def test_custom_weights(self, intraday, daily):
        config = EngineConfig(confluence_weights={"PSP": 0, "BIAS": 1, "STRUCTURE": 0, "VALUE_ZONE": 0,
                                                  "LIQUIDITY": 0, "SMT": 0, "SESSION": 0})
        result = analyze(AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily), config,
                         now_after(intraday))
        assert result.confluence.max_raw == 1
        assert result.confluence.score_pct == 100
        assert result.confluence.suggestion == "LONG"

    def test_dxy_context(self, intraday, daily):
        dxy = zigzag_candles([104.0, 103.0, 103.6, 102.4, 103.0, 101.8], bars_per_leg=8,
                             start=NY_MIDNIGHT, step=300)
        inputs = AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily, dxy=dxy)
        result = analyze(inputs, None, now_after(intraday))
        assert result.usd_context.price == dxy[-1].close
        assert result.usd_context.open_state == "BELOW"

    def test_to_dict_is_json_ready(self, intraday, daily):
        result = analyze(AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily), None, now_after(intraday))
        data = json.loads(json.dumps(result.to_dict()))
        assert data["symbol"] == "MNQ"
        assert data["buffered_bias"] == "LONG"
        assert data["reliability"]["data_status"] == "OK"
        assert "suggestion" in data["confluence"]
        assert data["day_open"] == 112.0
        assert data["true_open"]["debug"]["kind"] == "true_open"
        assert data["order_blocks"][0]["type"] == "ORDER_BLOCK"
        assert data["breaker_blocks"][0]["type"] == "BREAKER"


def smt_pair():
    # flat lead-in bars form no swings
    lead = [100.5] * 40
    primary = candles_from_ohlc(rows_from_highs(lead + SMT_PRIMARY_HIGHS), start=NY_MIDNIGHT, step=300)
    reference = candles_from_ohlc(rows_from_highs(lead + SMT_REFERENCE_HIGHS), start=NY_MIDNIGHT, step=300)
    return primary, reference


class TestSMTSwingWidth:
    def test_divergence_found_on_two_bar_swings(self):
        primary, reference = smt_pair()
        inputs = AnalysisInputs(symbol="MNQ", candles=primary, references={"MES": reference})
        result = analyze(inputs, None, now_after(primary))
        assert len(result.smt) == 1
        assert result.smt[0].type == Polarity.BEARISH
        assert result.smt[0].reference_symbol == "MES"
        assert result.signals["SMT"].direction == Direction.SHORT

    def test_configured_width_reaches_pipeline(self):
        primary, reference = smt_pair()
        inputs = AnalysisInputs(symbol="MNQ", candles=primary, references={"MES": reference})
        result = analyze(inputs, EngineConfig(smt_swing_bars=3), now_after(primary))
        assert result.smt == []


class TestDayOpenAndBlocks:
    def test_day_open_prefers_daily_bar(self, intraday, daily):
        result = analyze(AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily), None, now_after(intraday))
        assert result.day_open == 112.0
        assert result.time_context.midnight_open == 100.0
        assert "Above Day Open" in result.bias.factors

    def test_day_open_from_intraday_without_daily(self, intraday):
        result = analyze(AnalysisInputs(symbol="MNQ", candles=intraday), None, now_after(intraday))
        assert result.day_open == 100.0
        assert (result.pdh, result.pdl) == (None, None)

    def test_blocks_exposed(self, intraday, daily):
        config = EngineConfig()
        result = analyze(AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily), config,
                         now_after(intraday))
        assert [b.type for b in result.order_blocks] == [BlockType.ORDER_BLOCK]
        assert [b.type for b in result.breaker_blocks] == [BlockType.BREAKER]
        assert result.order_blocks[0].direction == Polarity.BULLISH
        assert result.order_blocks[0].timeframe == config.timeframe
        assert result.order_blocks[0].is_active

    def test_true_open_reported_outside_confluence(self, intraday, daily):
        result = analyze(AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily), None, now_after(intraday))
        assert result.true_open.status == SignalStatus.OK
        assert result.true_open.direction == Direction.LONG
        assert result.true_open.debug.alignment == "ALIGNED_BULL"
        assert result.true_open.score == 95
        assert "TRUE_OPEN" not in result.signals

    def test_true_open_off_when_closed(self, intraday, daily):
        inputs = AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily, market_status="CLOSED")
        result = analyze(inputs, None, now_after(intraday))
        assert result.true_open.status == SignalStatus.OFF
