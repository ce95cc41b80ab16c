"""
USD (DXY) macro context.

The dollar index is read as an inverse risk gauge for index futures: a strong
DXY leans against longs, a weak one supports them. ``analyze_usd_context``
turns a DXY candle series into a trend label and a signed strength modifier
(positive for a strong dollar). The scenario scorecard flips the sign per
trade direction.
"""

import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Sequence

from marketlens.indicators.candles import Candle
from marketlens.indicators.smart_money import detect_market_structure
from marketlens.schemas.base import MacroImpact, StructureType

MIN_CANDLES = 10
BASE_MODIFIER = 5
MOMENTUM_BONUS = 2
MAX_MODIFIER = 10


@dataclass
class MacroEvent:
    """Scheduled release that can mute the USD modifier"""
    name: str
    impact: MacroImpact
    is_active: bool

    @classmethod
    def none(cls) -> "MacroEvent":
        return cls("No Major Event", MacroImpact.NONE, False)

    @classmethod
    def unavailable(cls) -> "MacroEvent":
        return cls("Data Unavailable", MacroImpact.HARD_IGNORE, True)


@dataclass
class USDContext:
    price: float
    change: float
    change_percent: float
    trend: str  # BULLISH / BEARISH / NEUTRAL
    structure: str  # HH_HL / LH_LL / CONSOLIDATION
    momentum: str  # RISING / FALLING / FLAT
    vwap_state: str  # ABOVE / BELOW / NEUTRAL
    open_state: str
    timestamp: int
    event: MacroEvent
    confidence_modifier: int

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["event"]["impact"] = self.event.impact.value
        return data


def neutral_usd_context() -> USDContext:
    return USDContext(
        price=0.0,
        change=0.0,
        change_percent=0.0,
        trend="NEUTRAL",
        structure="CONSOLIDATION",
        momentum="FLAT",
        vwap_state="NEUTRAL",
        open_state="NEUTRAL",
        timestamp=0,
        event=MacroEvent.unavailable(),
        confidence_modifier=0,
    )


def _side(price: float, level: Optional[float]) -> str:
    if not level:
        return "NEUTRAL"
    return "ABOVE" if price > level else "BELOW"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def analyze_usd_context(
    dxy_candles: Sequence[Candle],
    vwap: Optional[float],
    day_open: Optional[float],
    event: Optional[MacroEvent] = None
) -> USDContext:
    """
    Summarize DXY trend and strength.

    Args:
        dxy_candles: DXY candles, ascending
        vwap: DXY session VWAP
        day_open: DXY true day open
        event: Active macro event (defaults to none)

    Returns:
        USDContext; a neutral HARD_IGNORE context below 10 candles
    """
    if len(dxy_candles) < MIN_CANDLES:
        return neutral_usd_context()

    event = event or MacroEvent.none()
    last = dxy_candles[-1]
    price = last.close

    structure_type = detect_market_structure(dxy_candles).type
    if structure_type == StructureType.UP_TREND:
        structure = "HH_HL"
    elif structure_type == StructureType.DOWN_TREND:
        structure = "LH_LL"
    else:
        structure = "CONSOLIDATION"

    reference_close = dxy_candles[-3].close
    if price > reference_close:
        momentum = "RISING"
    elif price < reference_close:
        momentum = "FALLING"
    else:
        momentum = "FLAT"

    vwap_state = _side(price, vwap)
    open_state = _side(price, day_open)

    bull = sum([structure == "HH_HL", vwap_state == "ABOVE", open_state == "ABOVE"])
    bear = sum([structure == "LH_LL", vwap_state == "BELOW", open_state == "BELOW"])
    if bull >= 2 and bull > bear:
        trend = "BULLISH"
    elif bear >= 2 and bear > bull:
        trend = "BEARISH"
    else:
        trend = "NEUTRAL"

    modifier = 0
    if trend == "BULLISH":
        modifier = BASE_MODIFIER + (MOMENTUM_BONUS if momentum == "RISING" else 0)
    elif trend == "BEARISH":
        modifier = -BASE_MODIFIER - (MOMENTUM_BONUS if momentum == "FALLING" else 0)
    modifier = max(-MAX_MODIFIER, min(MAX_MODIFIER, modifier))

    if event.impact == MacroImpact.HARD_IGNORE:
        modifier = 0
    elif event.impact == MacroImpact.SOFT_IGNORE:
        modifier = _round_half_up(modifier * 0.5)

    change = price - day_open if day_open else 0.0
    return USDContext(
        price=price,
        change=change,
        change_percent=change / day_open * 100 if day_open else 0.0,
        trend=trend,
        structure=structure,
        momentum=momentum,
        vwap_state=vwap_state,
        open_state=open_state,
        timestamp=last.time,
        event=event,
        confidence_modifier=modifier,
    )
