"""
Unit tests for the scenario confidence scorecard
"""

from dataclasses import replace

import pytest

from marketlens.context.macro import neutral_usd_context
from marketlens.context.session import TimeContext
from marketlens.indicators.regime import MarketRegime
from marketlens.indicators.technical import MarketStateFlags, MarketStateResult, TechnicalSnapshot
from marketlens.scenarios.scorecard import ScoreContext, build_scorecard, key_opens_bias, rating_for
from marketlens.schemas.base import (
    BiasAlignment,
    Direction,
    MarketState,
    Rating,
    RegimeState,
    ScoreCategory,
    StructureType,
)


def context(**overrides) -> ScoreContext:
    values = dict(
        direction=Direction.LONG,
        rr=2.0,
        price=100.0,
        structure_type=StructureType.UP_TREND,
        bias_alignment=BiasAlignment.ALIGNED,
    )
    values.update(overrides)
    return ScoreContext(**values)


def labels(card):
    return [c.label for c in card.components]


def kill_zone(**opens) -> TimeContext:
    return TimeContext(ny_time="09:00", is_london_kz=False, is_ny_kz=True, **opens)


class TestRating:
    @pytest.mark.parametrize("total,rating", [
        (75, Rating.A_PLUS), (74, Rating.A), (50, Rating.A), (49, Rating.B), (25, Rating.B), (24, Rating.C),
    ])
    def test_thresholds(self, total, rating):
        assert rating_for(total) == rating


class TestScorecard:
    def test_aligned_long_in_kill_zone(self):
        card = build_scorecard(context(rr=3.5, vwap=99.0, time_context=kill_zone()))
        assert labels(card) == ["Trend Alignment", "Structure Support", "High R:R",
                                "Active Session", "VWAP Context"]
        assert card.total == 65
        assert card.rating == Rating.A

    def test_total_is_sum_of_components(self):
        card = build_scorecard(context(rr=1.0, is_psp=True, is_fvg=True,
                                       regime=MarketRegime(RegimeState.CHOPPY, 90, "chop")))
        assert card.total == sum(c.points for c in card.components)

    def test_contrarian_short(self):
        card = build_scorecard(context(direction=Direction.SHORT, rr=1.0,
                                       bias_alignment=BiasAlignment.CONTRARIAN))
        assert labels(card) == ["Counter-Trend", "Structure Conflict", "Low R:R"]
        assert card.total == -30
        assert card.rating == Rating.C

    def test_psp_and_fvg_confluence(self):
        card = build_scorecard(context(is_psp=True, is_fvg=True))
        assert card.total == 70
        assert "PSP Confluence" in card.factors
        fvg = next(c for c in card.components if c.label == "FVG Confluence")
        assert fvg.category == ScoreCategory.LIQUIDITY

    def test_neutral_bias_is_not_a_factor(self):
        card = build_scorecard(context(bias_alignment=BiasAlignment.NEUTRAL))
        assert "Neutral Bias" in labels(card)
        assert "Neutral Bias" not in card.factors


class TestMacroAndConflict:
    def test_strong_dollar_conflicts_with_long_trend(self):
        usd = replace(neutral_usd_context(), confidence_modifier=7)
        card = build_scorecard(context(usd_context=usd))
        usd_component = next(c for c in card.components if c.label == "USD Macro")
        assert usd_component.points == -7
        assert usd_component.reason == "USD Headwinds"
        assert card.conflict is not None
        assert card.conflict.reason == "Intraday Trend (Bullish) conflicts with Macro (Bearish)"
        assert card.conflict.dominant_layer == ScoreCategory.TREND
        assert card.components[-1].label == "Trend/Macro Conflict"
        assert card.components[-1].points == -10
        assert card.total == 25 + 20 - 7 - 10

    def test_strong_dollar_supports_short(self):
        usd = replace(neutral_usd_context(), confidence_modifier=7)
        card = build_scorecard(context(direction=Direction.SHORT, structure_type=StructureType.DOWN_TREND,
                                       usd_context=usd))
        assert next(c for c in card.components if c.label == "USD Macro").points == 7
        assert card.conflict is None

    @pytest.mark.parametrize("relevance,expected", [(0.4, True), (0.2, False)])
    def test_usd_relevance_scaling(self, relevance, expected):
        usd = replace(neutral_usd_context(), confidence_modifier=7)
        card = build_scorecard(context(usd_context=usd, usd_relevance=relevance))
        assert ("USD Macro" in labels(card)) is expected

    def test_choppy_regime(self):
        card = build_scorecard(context(regime=MarketRegime(RegimeState.CHOPPY, 90, "chop")))
        assert "Choppy Regime" in labels(card)
        assert card.conflict.detected

    def test_ranging_regime(self):
        card = build_scorecard(context(regime=MarketRegime(RegimeState.RANGING, 50, "Weak Trend")))
        assert next(c for c in card.components if c.label == "Ranging Regime").points == -5

    def test_trend_bonus_only_when_aligned(self):
        trending = MarketRegime(RegimeState.TRENDING, 80, "trend")
        assert "Trend Bonus" in labels(build_scorecard(context(regime=trending)))
        contrarian = context(regime=trending, bias_alignment=BiasAlignment.CONTRARIAN)
        assert "Trend Bonus" not in labels(build_scorecard(contrarian))


class TestTechnicalComponents:
    @pytest.fixture
    def overbought(self):
        flags = MarketStateFlags(price_above_vwap=True, outside_vwap_upper=True,
                                 macd_bullish=True, mfi_overbought=True)
        return TechnicalSnapshot(None, None, None, None, MarketStateResult(MarketState.OVERBOUGHT, flags))

    def test_long_fights_momentum(self, overbought):
        card = build_scorecard(context(technical=overbought))
        assert "MACD" in labels(card)
        overbought_component = next(c for c in card.components if c.label == "Overbought")
        assert overbought_component.points == -15

    def test_short_fades_extreme(self, overbought):
        card = build_scorecard(context(direction=Direction.SHORT, technical=overbought))
        assert "MFI" in labels(card)
        assert "Band Rejection" in labels(card)
        assert "MACD" not in labels(card)


class TestKeyOpens:
    def test_all_opens_below_price(self):
        score, alignment = key_opens_bias(100.0, kill_zone(midnight_open=99.0, london_open=98.0, ny_open=97.0))
        assert score == 20
        assert alignment == "STRONG_BULLISH"

    def test_partial_agreement(self):
        score, alignment = key_opens_bias(100.0, kill_zone(midnight_open=99.0, london_open=98.0))
        assert score == 10
        assert alignment == "BULLISH"

    def test_mixed_opens(self):
        assert key_opens_bias(100.0, kill_zone(midnight_open=99.0, london_open=101.0)) == (0, "NEUTRAL")

    def test_no_context(self):
        assert key_opens_bias(100.0, None) == (0, "NEUTRAL")

    def test_scored_by_direction(self):
        opens = kill_zone(midnight_open=99.0, london_open=98.0, ny_open=97.0)
        long_card = build_scorecard(context(time_context=opens))
        short_card = build_scorecard(context(direction=Direction.SHORT, time_context=opens))
        assert next(c for c in long_card.components if c.label == "Key Opens").points == 20
        assert next(c for c in short_card.components if c.label == "Key Opens Conflict").points == -20
        assert long_card.key_opens_alignment == "STRONG_BULLISH"
