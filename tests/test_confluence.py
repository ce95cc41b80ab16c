"""
Unit tests for the weighted confluence aggregator
"""

import pytest

from marketlens.schemas.base import ConfluenceLevel, Direction, SignalStatus, Suggestion
from marketlens.schemas.signals import IndicatorSignal
from marketlens.signals.confluence import (
    DEFAULT_WEIGHTS,
    ConfluenceInputs,
    calculate_confluence,
    confluence_level,
    contributes,
)


def sig(direction=Direction.NEUTRAL, score=0, status=SignalStatus.OK) -> IndicatorSignal:
    return IndicatorSignal(status=status, direction=direction, score=score)


def inputs(**overrides) -> ConfluenceInputs:
    signals = dict(
        psp=sig(status=SignalStatus.OFF),
        bias=sig(),
        structure=sig(),
        value_zone=sig(),
        liquidity=sig(),
        smt=sig(),
        session=sig(score=80),
    )
    signals.update(overrides)
    return ConfluenceInputs(**signals)


class TestContribution:
    def test_live_directional_scored_signal(self):
        assert contributes(sig(Direction.LONG, 50))

    @pytest.mark.parametrize("signal", [
        sig(Direction.LONG, 50, SignalStatus.OFF),
        sig(Direction.LONG, 0),
        sig(Direction.NEUTRAL, 80),
    ])
    def test_non_contributing(self, signal):
        assert not contributes(signal)

    def test_warn_still_contributes(self):
        assert contributes(sig(Direction.SHORT, 40, SignalStatus.WARN))


class TestConfluenceLevel:
    @pytest.mark.parametrize("pct,level", [
        (34, ConfluenceLevel.NO_TRADE),
        (35, ConfluenceLevel.WEAK),
        (54, ConfluenceLevel.WEAK),
        (55, ConfluenceLevel.GOOD),
        (74, ConfluenceLevel.GOOD),
        (75, ConfluenceLevel.STRONG),
    ])
    def test_thresholds(self, pct, level):
        assert confluence_level(pct) == level


class TestCalculateConfluence:
    def test_full_long_alignment(self):
        long = sig(Direction.LONG, 80)
        result = calculate_confluence(inputs(psp=long, bias=long, structure=long, value_zone=long,
                                             liquidity=long, smt=long))
        assert result.raw == 11
        assert result.max_raw == 12
        assert result.score_pct == 92
        assert result.level == ConfluenceLevel.STRONG
        assert result.suggestion == Suggestion.LONG
        assert result.status == SignalStatus.OK
        assert result.contributors == ["PSP", "BIAS", "STRUCTURE", "VALUE_ZONE", "LIQUIDITY", "SMT"]
        assert result.factors[0] == "+3 PSP LONG"
        assert result.factors[-1] == "+0 SESSION"

    def test_bias_picks_direction_without_psp(self):
        result = calculate_confluence(inputs(bias=sig(Direction.SHORT, 70),
                                             structure=sig(Direction.SHORT, 70)))
        assert result.suggestion == Suggestion.SHORT
        assert result.score_pct == 33

    def test_psp_outranks_bias(self):
        result = calculate_confluence(inputs(psp=sig(Direction.LONG, 90), bias=sig(Direction.SHORT, 70)))
        assert result.suggestion == Suggestion.LONG

    def test_lower_weights_never_pick_direction(self):
        result = calculate_confluence(inputs(structure=sig(Direction.LONG, 70),
                                             value_zone=sig(Direction.LONG, 80),
                                             smt=sig(Direction.LONG, 75)))
        assert result.raw == 5
        assert result.score_pct == 42
        assert result.level == ConfluenceLevel.WEAK
        assert result.suggestion == Suggestion.NO_TRADE

    def test_no_trade_level_warns(self):
        result = calculate_confluence(inputs())
        assert result.score_pct == 0
        assert result.level == ConfluenceLevel.NO_TRADE
        assert result.status == SignalStatus.WARN

    def test_off_hours_session_warns(self):
        long = sig(Direction.LONG, 80)
        result = calculate_confluence(inputs(psp=long, bias=long, structure=long, session=sig(score=20)))
        assert result.level == ConfluenceLevel.GOOD
        assert result.status == SignalStatus.WARN
        assert "Session Off-Hours" in result.factors

    def test_delayed_feed_warns(self):
        long = sig(Direction.LONG, 80)
        result = calculate_confluence(inputs(psp=long, bias=long, structure=long), feed_delayed=True)
        assert result.status == SignalStatus.WARN
        assert "Feed delayed" in result.factors

    def test_custom_weights(self):
        result = calculate_confluence(inputs(psp=sig(Direction.LONG, 90)),
                                      weights={"PSP": 5, "BIAS": 5})
        assert result.max_raw == 10
        assert result.score_pct == 50
        assert result.level == ConfluenceLevel.WEAK

    def test_default_weights_total(self):
        assert sum(DEFAULT_WEIGHTS.values()) == 12
