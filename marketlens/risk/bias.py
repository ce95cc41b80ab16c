"""
Directional Bias

Two independent bias readings:

- Composite bias: a signed score summing independent contributions (VWAP,
  day open, previous-day extremes, EMA stack, SMT divergences, FVG
  containment), labelled at +/-10 and +/-40.
- Buffered bias: a hysteresis reducer around the New York midnight open. A
  close must clear the open by ``buffer`` points before the bias flips, so
  chop inside the band never flaps the reading.

Usage:
    bias = calculate_composite_bias(price, vwap, day_open, pdh, pdl, emas, smts, fvgs)
    print(bias.label, bias.score)

    mode = calculate_buffered_bias(candles, midnight_open, midnight_ts, buffer=1.0)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence

from marketlens.indicators.candles import Candle
from marketlens.indicators.smart_money import FVG, SMTDivergence
from marketlens.indicators.technical import EMASnapshot
from marketlens.schemas.base import BiasLabel, Direction, Polarity


class BiasWeights:
    """Point contributions of the composite bias"""
    VWAP = 15
    DAY_OPEN = 15
    PREV_DAY_EXTREME = 10
    EMA200 = 10
    EMA_CROSS = 5
    SMT = 20
    FVG = 10

    STRONG = 40
    MILD = 10


@dataclass
class CompositeBias:
    score: int
    label: BiasLabel
    factors: List[str] = field(default_factory=list)

    @property
    def direction(self) -> Direction:
        if self.label.is_bullish:
            return Direction.LONG
        if self.label.is_bearish:
            return Direction.SHORT
        return Direction.NEUTRAL

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "label": self.label.value, "factors": list(self.factors)}


def label_for_score(score: int) -> BiasLabel:
    if score >= BiasWeights.STRONG:
        return BiasLabel.STRONG_BULLISH
    if score >= BiasWeights.MILD:
        return BiasLabel.BULLISH
    if score <= -BiasWeights.STRONG:
        return BiasLabel.STRONG_BEARISH
    if score <= -BiasWeights.MILD:
        return BiasLabel.BEARISH
    return BiasLabel.NEUTRAL


def calculate_composite_bias(
    price: float,
    vwap: Optional[float],
    day_open: Optional[float],
    pdh: Optional[float],
    pdl: Optional[float],
    emas: Optional[EMASnapshot],
    smts: Sequence[SMTDivergence],
    fvgs: Sequence[FVG]
) -> CompositeBias:
    """
    Score the intraday directional bias.

    Args:
        price: Current price
        vwap: Session VWAP (ignored when falsy)
        day_open: True day open (ignored when falsy)
        pdh: Previous day high
        pdl: Previous day low
        emas: EMA20/50/200, used only when all three are present
        smts: Active SMT divergences
        fvgs: Fair value gaps

    Returns:
        CompositeBias with the factors that moved the score
    """
    score = 0
    factors = []

    if vwap:
        if price > vwap:
            score += BiasWeights.VWAP
            factors.append("Above VWAP")
        else:
            score -= BiasWeights.VWAP
            factors.append("Below VWAP")

    if day_open:
        if price > day_open:
            score += BiasWeights.DAY_OPEN
            factors.append("Above Day Open")
        else:
            score -= BiasWeights.DAY_OPEN
            factors.append("Below Day Open")

    if pdh and price > pdh:
        score += BiasWeights.PREV_DAY_EXTREME
        factors.append("Above Prev Day High")
    if pdl and price < pdl:
        score -= BiasWeights.PREV_DAY_EXTREME
        factors.append("Below Prev Day Low")

    if emas is not None and emas.complete:
        if price > emas.ema200:
            score += BiasWeights.EMA200
            factors.append("Macro Bull (>EMA200)")
        else:
            score -= BiasWeights.EMA200
            factors.append("Macro Bear (<EMA200)")
        if emas.ema20 > emas.ema50:
            score += BiasWeights.EMA_CROSS
            factors.append("ST Uptrend")
        else:
            score -= BiasWeights.EMA_CROSS
            factors.append("ST Downtrend")

    for smt in smts:
        if smt.type == Polarity.BULLISH:
            score += BiasWeights.SMT
            factors.append("Bullish SMT")
        else:
            score -= BiasWeights.SMT
            factors.append("Bearish SMT")

    if any(f.type == Polarity.BULLISH and f.contains(price) for f in fvgs):
        score += BiasWeights.FVG
        factors.append("Support (Bull FVG)")
    if any(f.type == Polarity.BEARISH and f.contains(price) for f in fvgs):
        score -= BiasWeights.FVG
        factors.append("Resistance (Bear FVG)")

    return CompositeBias(score=score, label=label_for_score(score), factors=factors)


def iter_buffered_bias(
    candles: Sequence[Candle],
    midnight_open: Optional[float],
    midnight_ts: int,
    buffer: float = 1.0
) -> Iterator[Direction]:
    """
    Yield the buffered bias after each candle at or after ``midnight_ts``.

    The first candle seeds the bias (LONG when its close is at or above the
    open) and is then reduced like every other candle.
    """
    if not midnight_open:
        return
    upper = midnight_open + buffer
    lower = midnight_open - buffer

    bias = None
    for candle in candles:
        if candle.time < midnight_ts:
            continue
        if bias is None:
            bias = Direction.LONG if candle.close >= midnight_open else Direction.SHORT
        if candle.close > upper:
            bias = Direction.LONG
        elif candle.close < lower:
            bias = Direction.SHORT
        yield bias


def calculate_buffered_bias(
    candles: Sequence[Candle],
    midnight_open: Optional[float],
    midnight_ts: int,
    buffer: float = 1.0
) -> Direction:
    """Final buffered bias, NEUTRAL without an open or post-midnight candles."""
    steps = list(iter_buffered_bias(candles, midnight_open, midnight_ts, buffer))
    return steps[-1] if steps else Direction.NEUTRAL
