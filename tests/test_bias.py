"""
Unit tests for composite and buffered bias
"""

import pytest

from conftest import M1, NY_MIDNIGHT, candles_from_closes
from marketlens.indicators.smart_money import FVG, SMTDivergence
from marketlens.indicators.technical import EMASnapshot
from marketlens.risk.bias import (
    calculate_buffered_bias,
    calculate_composite_bias,
    iter_buffered_bias,
    label_for_score,
)
from marketlens.schemas.base import BiasLabel, Direction, Polarity


def smt(polarity: Polarity) -> SMTDivergence:
    return SMTDivergence(polarity, "MES", 0, "test divergence")


class TestCompositeBias:
    def test_every_bullish_factor(self):
        bias = calculate_composite_bias(
            price=110.0, vwap=100.0, day_open=100.0, pdh=105.0, pdl=95.0,
            emas=EMASnapshot(ema20=105.0, ema50=100.0, ema200=90.0),
            smts=[smt(Polarity.BULLISH)],
            fvgs=[FVG(top=112.0, bottom=108.0, time=0, type=Polarity.BULLISH, index=1)],
        )
        assert bias.score == 85
        assert bias.label == BiasLabel.STRONG_BULLISH
        assert bias.direction == Direction.LONG
        assert "Support (Bull FVG)" in bias.factors

    def test_every_bearish_factor(self):
        bias = calculate_composite_bias(
            price=90.0, vwap=100.0, day_open=100.0, pdh=105.0, pdl=95.0,
            emas=EMASnapshot(ema20=95.0, ema50=100.0, ema200=110.0),
            smts=[smt(Polarity.BEARISH)],
            fvgs=[FVG(top=92.0, bottom=88.0, time=0, type=Polarity.BEARISH, index=1)],
        )
        assert bias.score == -85
        assert bias.label == BiasLabel.STRONG_BEARISH
        assert bias.direction == Direction.SHORT

    def test_no_inputs_is_neutral(self):
        bias = calculate_composite_bias(100.0, None, None, None, None, None, [], [])
        assert bias.score == 0
        assert bias.label == BiasLabel.NEUTRAL
        assert bias.factors == []
        assert bias.direction == Direction.NEUTRAL

    def test_incomplete_emas_ignored(self):
        bias = calculate_composite_bias(100.0, None, None, None, None,
                                        EMASnapshot(ema20=99.0, ema50=98.0), [], [])
        assert bias.score == 0

    def test_price_at_vwap_counts_as_below(self):
        bias = calculate_composite_bias(100.0, 100.0, None, None, None, None, [], [])
        assert bias.score == -15
        assert bias.factors == ["Below VWAP"]

    @pytest.mark.parametrize("score,label", [
        (40, BiasLabel.STRONG_BULLISH),
        (39, BiasLabel.BULLISH),
        (10, BiasLabel.BULLISH),
        (9, BiasLabel.NEUTRAL),
        (-9, BiasLabel.NEUTRAL),
        (-10, BiasLabel.BEARISH),
        (-40, BiasLabel.STRONG_BEARISH),
    ])
    def test_label_thresholds(self, score, label):
        assert label_for_score(score) == label

    def test_to_dict(self):
        data = calculate_composite_bias(110.0, 100.0, None, None, None, None, [], []).to_dict()
        assert data == {"score": 15, "label": "BULLISH", "factors": ["Above VWAP"]}


class TestBufferedBias:
    def _candles(self, closes):
        # The first close prints one minute before midnight and is ignored
        return candles_from_closes([50.0] + closes, start=NY_MIDNIGHT - M1, step=M1)

    def test_hysteresis(self):
        candles = self._candles([100.5, 99.5, 98.5, 100.5, 101.5])
        steps = list(iter_buffered_bias(candles, 100.0, NY_MIDNIGHT, buffer=1.0))
        assert steps == [Direction.LONG, Direction.LONG, Direction.SHORT, Direction.SHORT, Direction.LONG]
        assert calculate_buffered_bias(candles, 100.0, NY_MIDNIGHT) == Direction.LONG

    def test_seed_below_open(self):
        candles = self._candles([99.8])
        assert calculate_buffered_bias(candles, 100.0, NY_MIDNIGHT) == Direction.SHORT

    def test_wider_buffer_holds_bias(self):
        candles = self._candles([100.5, 98.5])
        assert calculate_buffered_bias(candles, 100.0, NY_MIDNIGHT, buffer=2.0) == Direction.LONG

    def test_neutral_without_open(self):
        candles = self._candles([101.5])
        assert calculate_buffered_bias(candles, None, NY_MIDNIGHT) == Direction.NEUTRAL

    def test_neutral_without_session_candles(self):
        candles = candles_from_closes([101.0, 102.0], start=NY_MIDNIGHT - 600)
        assert calculate_buffered_bias(candles, 100.0, NY_MIDNIGHT) == Direction.NEUTRAL
