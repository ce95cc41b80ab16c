"""
Confidence Scorecard

Every trade scenario is graded by summing labelled point components grouped
into layers (TREND, STRUCTURE, LIQUIDITY, RISK, SESSION, MACRO). The total is
always the plain sum of the component points; a TREND/MACRO disagreement is
recorded as a conflict and charged as its own -10 RISK component.

Rating thresholds: >=75 A+, >=50 A, >=25 B, else C.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from marketlens.context.macro import USDContext
from marketlens.context.session import TimeContext
from marketlens.indicators.regime import MarketRegime
from marketlens.indicators.technical import TechnicalSnapshot
from marketlens.schemas.base import (
    BiasAlignment,
    Direction,
    MarketState,
    Rating,
    RegimeState,
    ScoreCategory,
    StructureType,
)


class ScorePoints:
    """Point values of the scorecard components"""
    TREND_ALIGNED = 25
    TREND_CONTRARIAN = -15
    STRUCTURE_SUPPORT = 20
    STRUCTURE_CONFLICT = -5
    PSP_ANCHOR = 15
    FVG_CONFLUENCE = 10
    HIGH_RR = 10
    LOW_RR = -10
    HIGH_RR_THRESHOLD = 3.0
    LOW_RR_THRESHOLD = 1.5
    KILL_ZONE = 5
    VWAP = 5
    USD_MIN_IMPACT = 3
    CHOPPY = -15
    RANGING = -5
    TREND_BONUS = 5
    INDICATOR = 10
    FIGHTING_MOMENTUM = -15
    KEY_OPEN = 5
    KEY_OPENS_BONUS = 5
    CONFLICT = -10


@dataclass
class ScoreComponent:
    label: str
    points: int
    category: ScoreCategory
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "points": self.points,
            "category": self.category.value,
            "reason": self.reason,
        }


@dataclass
class ScoreConflict:
    detected: bool
    reason: str
    dominant_layer: ScoreCategory

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detected": self.detected,
            "reason": self.reason,
            "dominant_layer": self.dominant_layer.value,
        }


@dataclass
class ConfidenceScorecard:
    total: int
    rating: Rating
    components: List[ScoreComponent] = field(default_factory=list)
    conflict: Optional[ScoreConflict] = None
    key_opens_bias_score: int = 0
    key_opens_alignment: str = "NEUTRAL"

    @property
    def factors(self) -> List[str]:
        return [c.label for c in self.components if c.points != 0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "rating": self.rating.value,
            "components": [c.to_dict() for c in self.components],
            "conflict": self.conflict.to_dict() if self.conflict else None,
            "key_opens_bias_score": self.key_opens_bias_score,
            "key_opens_alignment": self.key_opens_alignment,
        }


@dataclass
class ScoreContext:
    """Everything the scorecard looks at for one candidate scenario"""
    direction: Direction
    rr: float
    price: float
    structure_type: StructureType
    bias_alignment: BiasAlignment
    is_psp: bool = False
    is_fvg: bool = False
    vwap: Optional[float] = None
    time_context: Optional[TimeContext] = None
    usd_context: Optional[USDContext] = None
    usd_relevance: float = 1.0
    regime: Optional[MarketRegime] = None
    technical: Optional[TechnicalSnapshot] = None


def rating_for(total: int) -> Rating:
    if total >= 75:
        return Rating.A_PLUS
    if total >= 50:
        return Rating.A
    if total >= 25:
        return Rating.B
    return Rating.C


def _trend_components(ctx: ScoreContext) -> List[ScoreComponent]:
    if ctx.bias_alignment == BiasAlignment.ALIGNED:
        return [ScoreComponent("Trend Alignment", ScorePoints.TREND_ALIGNED,
                               ScoreCategory.TREND, "Aligned with Intraday Bias")]
    if ctx.bias_alignment == BiasAlignment.CONTRARIAN:
        return [ScoreComponent("Counter-Trend", ScorePoints.TREND_CONTRARIAN,
                               ScoreCategory.TREND, "Against Intraday Bias")]
    return [ScoreComponent("Neutral Bias", 0, ScoreCategory.TREND)]


def _structure_components(ctx: ScoreContext) -> List[ScoreComponent]:
    supportive = (
        (ctx.direction == Direction.LONG and ctx.structure_type == StructureType.UP_TREND)
        or (ctx.direction == Direction.SHORT and ctx.structure_type == StructureType.DOWN_TREND)
    )
    components = []
    if supportive:
        components.append(ScoreComponent("Structure Support", ScorePoints.STRUCTURE_SUPPORT,
                                         ScoreCategory.STRUCTURE,
                                         "Structure applies supportive pressure"))
    else:
        components.append(ScoreComponent("Structure Conflict", ScorePoints.STRUCTURE_CONFLICT,
                                         ScoreCategory.STRUCTURE,
                                         "Structure opposes trade direction"))
    if ctx.is_psp:
        components.append(ScoreComponent("PSP Confluence", ScorePoints.PSP_ANCHOR,
                                         ScoreCategory.STRUCTURE, "High Quality Swing Point"))
    if ctx.is_fvg:
        components.append(ScoreComponent("FVG Confluence", ScorePoints.FVG_CONFLUENCE,
                                         ScoreCategory.LIQUIDITY, "Imbalance Fill"))
    return components


def _risk_components(ctx: ScoreContext) -> List[ScoreComponent]:
    if ctx.rr > ScorePoints.HIGH_RR_THRESHOLD:
        return [ScoreComponent("High R:R", ScorePoints.HIGH_RR, ScoreCategory.RISK,
                               f"R:R {ctx.rr:.1f}")]
    if ctx.rr < ScorePoints.LOW_RR_THRESHOLD:
        return [ScoreComponent("Low R:R", ScorePoints.LOW_RR, ScoreCategory.RISK,
                               "Poor Risk/Reward")]
    return []


def _context_components(ctx: ScoreContext) -> List[ScoreComponent]:
    components = []
    if ctx.time_context is not None and ctx.time_context.in_kill_zone:
        components.append(ScoreComponent("Active Session", ScorePoints.KILL_ZONE,
                                         ScoreCategory.SESSION, "Volume Killzone"))

    if ctx.vwap:
        if ((ctx.direction == Direction.LONG and ctx.price > ctx.vwap)
                or (ctx.direction == Direction.SHORT and ctx.price < ctx.vwap)):
            components.append(ScoreComponent("VWAP Context", ScorePoints.VWAP, ScoreCategory.TREND))

    if ctx.usd_context is not None:
        # A strong dollar leans against longs
        modifier = ctx.usd_context.confidence_modifier * ctx.usd_relevance
        impact = int(round(-modifier if ctx.direction == Direction.LONG else modifier))
        if abs(impact) >= ScorePoints.USD_MIN_IMPACT:
            components.append(ScoreComponent("USD Macro", impact, ScoreCategory.MACRO,
                                             "USD Tailwinds" if impact > 0 else "USD Headwinds"))

    regime = ctx.regime
    if regime is not None:
        if regime.state == RegimeState.CHOPPY:
            components.append(ScoreComponent("Choppy Regime", ScorePoints.CHOPPY,
                                             ScoreCategory.MACRO, regime.reason))
        elif regime.state == RegimeState.RANGING:
            components.append(ScoreComponent("Ranging Regime", ScorePoints.RANGING,
                                             ScoreCategory.MACRO, regime.reason))
        elif regime.state == RegimeState.TRENDING and ctx.bias_alignment == BiasAlignment.ALIGNED:
            components.append(ScoreComponent("Trend Bonus", ScorePoints.TREND_BONUS,
                                             ScoreCategory.TREND, "Strong Trend"))
    return components


def _technical_components(ctx: ScoreContext) -> List[ScoreComponent]:
    if ctx.technical is None:
        return []
    flags = ctx.technical.market_state.flags
    state = ctx.technical.market_state.state
    is_long = ctx.direction == Direction.LONG

    components = []
    if (is_long and flags.macd_bullish) or (not is_long and flags.macd_bearish):
        components.append(ScoreComponent("MACD", ScorePoints.INDICATOR, ScoreCategory.TREND))
    if is_long and flags.mfi_oversold:
        components.append(ScoreComponent("MFI", ScorePoints.INDICATOR, ScoreCategory.LIQUIDITY,
                                         "Oversold Bounce"))
    elif not is_long and flags.mfi_overbought:
        components.append(ScoreComponent("MFI", ScorePoints.INDICATOR, ScoreCategory.LIQUIDITY,
                                         "Overbought Rejection"))
    if (is_long and flags.outside_vwap_lower) or (not is_long and flags.outside_vwap_upper):
        components.append(ScoreComponent("Band Rejection", ScorePoints.INDICATOR,
                                         ScoreCategory.STRUCTURE, "Value Deviation Extreme"))
    if is_long and state == MarketState.OVERBOUGHT:
        components.append(ScoreComponent("Overbought", ScorePoints.FIGHTING_MOMENTUM,
                                         ScoreCategory.RISK, "Buying Top of Band"))
    elif not is_long and state == MarketState.OVERSOLD:
        components.append(ScoreComponent("Oversold", ScorePoints.FIGHTING_MOMENTUM,
                                         ScoreCategory.RISK, "Selling Bottom of Band"))
    return components


def key_opens_bias(price: float, time_context: Optional[TimeContext]) -> Tuple[int, str]:
    """
    Score price against the midnight, London and New York opens.

    Each available open adds +/-5; when all three agree a further +/-5 is
    added and the alignment is STRONG.

    Returns:
        (signed score, alignment label)
    """
    if time_context is None:
        return 0, "NEUTRAL"

    score = 0
    for level in (time_context.midnight_open, time_context.london_open, time_context.ny_open):
        if level:
            score += ScorePoints.KEY_OPEN if price > level else -ScorePoints.KEY_OPEN

    if abs(score) == 3 * ScorePoints.KEY_OPEN:
        score += ScorePoints.KEY_OPENS_BONUS if score > 0 else -ScorePoints.KEY_OPENS_BONUS
        alignment = "STRONG_BULLISH" if score > 0 else "STRONG_BEARISH"
    elif score > 0:
        alignment = "BULLISH"
    elif score < 0:
        alignment = "BEARISH"
    else:
        alignment = "NEUTRAL"
    return score, alignment


def _detect_conflict(components: List[ScoreComponent]) -> Optional[ScoreConflict]:
    trend = next((c for c in components if c.category == ScoreCategory.TREND), None)
    macro = next((c for c in components if c.category == ScoreCategory.MACRO), None)
    if trend is None or macro is None or trend.points == 0 or macro.points == 0:
        return None
    if (trend.points > 0) == (macro.points > 0):
        return None

    def word(points: int) -> str:
        return "Bullish" if points > 0 else "Bearish"

    return ScoreConflict(
        detected=True,
        reason=(f"Intraday Trend ({word(trend.points)}) conflicts with "
                f"Macro ({word(macro.points)})"),
        dominant_layer=(ScoreCategory.MACRO if abs(macro.points) > abs(trend.points)
                        else ScoreCategory.TREND),
    )


def build_scorecard(ctx: ScoreContext) -> ConfidenceScorecard:
    """
    Grade one scenario.

    Args:
        ctx: Scenario direction, R:R and the market context around it

    Returns:
        ConfidenceScorecard whose total equals the sum of its components
    """
    components: List[ScoreComponent] = []
    components += _trend_components(ctx)
    components += _structure_components(ctx)
    components += _risk_components(ctx)
    components += _context_components(ctx)
    components += _technical_components(ctx)

    opens_score, opens_alignment = key_opens_bias(ctx.price, ctx.time_context)
    points = opens_score if ctx.direction == Direction.LONG else -opens_score
    reason = f"Bias {'Bullish' if opens_score > 0 else 'Bearish'}"
    if points > 0:
        components.append(ScoreComponent("Key Opens", points, ScoreCategory.SESSION, reason))
    elif points < 0:
        components.append(ScoreComponent("Key Opens Conflict", points, ScoreCategory.SESSION, reason))

    conflict = _detect_conflict(components)
    if conflict is not None:
        components.append(ScoreComponent("Trend/Macro Conflict", ScorePoints.CONFLICT,
                                         ScoreCategory.RISK, conflict.reason))

    total = sum(c.points for c in components)
    return ConfidenceScorecard(
        total=total,
        rating=rating_for(total),
        components=components,
        conflict=conflict,
        key_opens_bias_score=opens_score,
        key_opens_alignment=opens_alignment,
    )
