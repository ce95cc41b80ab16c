"""
Trade Scenario Generator

Builds candidate trade scenarios from the current market picture, grades
each with a confidence scorecard and arbitrates between them.

Archetypes:
1. DISCOUNT_BOUNCE: LONG from a bullish FVG below price, optionally anchored
   by a PSP whose swing sits inside the gap
2. PREMIUM_REJECTION: SHORT from a bearish FVG above price (mirror)
3. LIQUIDITY_SWEEP: stop entry through equal lows (LONG) or equal highs
   (SHORT) sitting within 0.3% of price

Post-processing:
- Dedup on (type, entry zone floor within 0.1)
- TTL by timeframe, shortened for scalps in a choppy regime
- Rank by score, then ACTIONABLE first, then R:R
- Focus guard: only the primary scenario may stay ACTIONABLE

Usage:
    inputs = ScenarioInputs(price=price, htf_bias=bias.label, structure=structure,
                            fvgs=fvgs, liquidity=pools, vwap=vwap, timeframe="M15")
    scenarios = generate_trade_scenarios(inputs, now)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from marketlens.context.macro import USDContext
from marketlens.context.session import TimeContext, as_utc
from marketlens.indicators.psp import PSPResult
from marketlens.indicators.regime import MarketRegime
from marketlens.indicators.smart_money import FVG, LiquidityPool, MarketStructure
from marketlens.indicators.technical import TechnicalSnapshot
from marketlens.scenarios.scorecard import ConfidenceScorecard, ScoreContext, build_scorecard
from marketlens.schemas.base import (
    BiasAlignment,
    BiasLabel,
    Direction,
    ExecutionType,
    Polarity,
    PoolType,
    PSPState,
    RegimeState,
    ScenarioState,
    ScenarioType,
    StructureType,
)

logger = logging.getLogger(__name__)


class ScenarioConstants:
    """Archetype geometry, gates and TTLs"""
    FVG_CANDIDATES = 2
    FVG_MAX_TARGETS = 3
    FVG_STOP_BUFFER = 0.001  # fraction beyond the zone edge
    FVG_FALLBACK_TARGET = 0.02
    FVG_MIN_RR = 1.0
    RR_WARNING = 10.0

    SWEEP_PROXIMITY = 0.003
    SWEEP_STOP_BUFFER = 0.0015
    SWEEP_PENDING_BUFFER = 0.001
    SWEEP_ZONE_HALF_WIDTH = 0.0005
    SWEEP_MAX_TARGETS = 2
    SWEEP_FALLBACK_TARGET = 0.02
    SWEEP_MIN_RR = 1.5

    DEDUP_DISTANCE = 0.1

    SCALP_TIMEFRAME = "M1-M5 (Scalp)"
    TTL_SECONDS = {
        SCALP_TIMEFRAME: 240,
        "M15": 2700,
        "H1": 10800,
    }
    DEFAULT_TTL_SECONDS = 900
    CHOP_SCALP_TTL_SECONDS = 60


@dataclass
class EntryZone:
    low: float
    high: float

    def contains(self, price: float) -> bool:
        return self.low <= price <= self.high

    def to_dict(self) -> Dict[str, float]:
        return {"min": self.low, "max": self.high}


@dataclass
class ScenarioTarget:
    price: float
    desc: str

    def to_dict(self) -> Dict[str, Any]:
        return {"price": self.price, "desc": self.desc}


@dataclass
class ScenarioConfidence:
    score: int
    rating: str
    factors: List[str]
    scorecard: ConfidenceScorecard

    @classmethod
    def from_scorecard(cls, scorecard: ConfidenceScorecard) -> "ScenarioConfidence":
        return cls(
            score=scorecard.total,
            rating=scorecard.rating.value,
            factors=scorecard.factors,
            scorecard=scorecard,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "rating": self.rating,
            "factors": list(self.factors),
            "scorecard": self.scorecard.to_dict(),
        }


@dataclass
class TradeScenario:
    type: ScenarioType
    direction: Direction
    entry_zone: EntryZone
    stop_loss: float
    targets: List[ScenarioTarget]
    rr: float
    timeframe: str
    bias_alignment: BiasAlignment
    htf_bias: BiasLabel
    confidence: ScenarioConfidence
    state: ScenarioState
    execution_type: ExecutionType
    condition: str = ""
    description: str = ""
    note: Optional[str] = None
    rr_warning: Optional[str] = None
    is_psp: bool = False
    is_primary: bool = False
    ttl_seconds: int = 0
    expires_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "direction": self.direction.value,
            "entry_zone": self.entry_zone.to_dict(),
            "stop_loss": self.stop_loss,
            "targets": [t.to_dict() for t in self.targets],
            "rr": self.rr,
            "rr_warning": self.rr_warning,
            "timeframe": self.timeframe,
            "bias_alignment": self.bias_alignment.value,
            "htf_bias": self.htf_bias.value,
            "confidence": self.confidence.to_dict(),
            "state": self.state.value,
            "execution_type": self.execution_type.value,
            "condition": self.condition,
            "description": self.description,
            "note": self.note,
            "is_psp": self.is_psp,
            "is_primary": self.is_primary,
            "ttl_seconds": self.ttl_seconds,
            "expires_at": self.expires_at,
        }


@dataclass
class ScenarioInputs:
    """Market picture the generator works from"""
    price: float
    htf_bias: BiasLabel
    structure: MarketStructure
    fvgs: Sequence[FVG] = field(default_factory=list)
    liquidity: Sequence[LiquidityPool] = field(default_factory=list)
    vwap: Optional[float] = None
    timeframe: str = "M15"
    psp: Optional[PSPResult] = None
    time_context: Optional[TimeContext] = None
    usd_context: Optional[USDContext] = None
    usd_relevance: float = 1.0
    regime: Optional[MarketRegime] = None
    technical: Optional[TechnicalSnapshot] = None


def calculate_state_and_execution(
    direction: Direction,
    entry: EntryZone,
    stop: float,
    price: float
) -> Tuple[ScenarioState, ExecutionType, str]:
    """
    Place current price relative to entry zone and stop.

    - Beyond the stop: INVALID
    - Inside the zone: ACTIONABLE at market
    - Not yet retraced into the zone: PENDING limit ("Await Retrace")
    - Through the zone but short of the stop: ACTIONABLE at market ("Deep Retrace")

    Returns:
        (state, execution type, note)
    """
    if direction == Direction.LONG:
        if price <= stop:
            return ScenarioState.INVALID, ExecutionType.STOP, "Stop Loss Hit"
        if entry.contains(price):
            return ScenarioState.ACTIONABLE, ExecutionType.MARKET, ""
        if price > entry.high:
            return ScenarioState.PENDING, ExecutionType.LIMIT, "Await Retrace"
        return ScenarioState.ACTIONABLE, ExecutionType.MARKET, "Deep Retrace"

    if price >= stop:
        return ScenarioState.INVALID, ExecutionType.STOP, "Stop Loss Hit"
    if entry.contains(price):
        return ScenarioState.ACTIONABLE, ExecutionType.MARKET, ""
    if price < entry.low:
        return ScenarioState.PENDING, ExecutionType.LIMIT, "Await Retrace"
    return ScenarioState.ACTIONABLE, ExecutionType.MARKET, "Deep Retrace"


def _aligned_psp(psp: Optional[PSPResult], direction: Direction, fvg: FVG) -> Optional[PSPResult]:
    if psp is None or psp.state == PSPState.NONE or psp.levels is None:
        return None
    if psp.direction != direction or not fvg.contains(psp.levels.swing):
        return None
    return psp


def _score(inputs: ScenarioInputs, direction: Direction, rr: float, structure_type: StructureType,
           alignment: BiasAlignment, is_psp: bool, is_fvg: bool) -> ScenarioConfidence:
    scorecard = build_scorecard(ScoreContext(
        direction=direction,
        rr=rr,
        price=inputs.price,
        structure_type=structure_type,
        bias_alignment=alignment,
        is_psp=is_psp,
        is_fvg=is_fvg,
        vwap=inputs.vwap,
        time_context=inputs.time_context,
        usd_context=inputs.usd_context,
        usd_relevance=inputs.usd_relevance,
        regime=inputs.regime,
        technical=inputs.technical,
    ))
    return ScenarioConfidence.from_scorecard(scorecard)


def _fvg_scenario(inputs: ScenarioInputs, fvg: FVG, direction: Direction) -> Optional[TradeScenario]:
    price = inputs.price
    is_long = direction == Direction.LONG
    psp = _aligned_psp(inputs.psp, direction, fvg)
    buffer = ScenarioConstants.FVG_STOP_BUFFER

    if is_long:
        entry = EntryZone(low=psp.levels.swing if psp else fvg.bottom, high=fvg.top)
        anchor = psp.levels.invalidation if psp else fvg.bottom
        stop = anchor * (1 - buffer)
    else:
        entry = EntryZone(low=fvg.bottom, high=psp.levels.swing if psp else fvg.top)
        anchor = psp.levels.invalidation if psp else fvg.top
        stop = anchor * (1 + buffer)

    state, execution, note = calculate_state_and_execution(direction, entry, stop, price)
    if state == ScenarioState.INVALID:
        return None

    swings = inputs.structure.highs if is_long else inputs.structure.lows
    if is_long:
        levels = sorted(s.price for s in swings if s.price > entry.high)
        fallback = entry.high * (1 + ScenarioConstants.FVG_FALLBACK_TARGET)
    else:
        levels = sorted((s.price for s in swings if s.price < entry.low), reverse=True)
        fallback = entry.low * (1 - ScenarioConstants.FVG_FALLBACK_TARGET)
    levels = levels[:ScenarioConstants.FVG_MAX_TARGETS] or [fallback]
    targets = [ScenarioTarget(p, f"TP{i + 1}") for i, p in enumerate(levels)]

    # R:R is measured from the far edge of the zone to the last target
    if is_long:
        risk, reward = entry.high - stop, targets[-1].price - entry.high
    else:
        risk, reward = stop - entry.low, entry.low - targets[-1].price
    rr = reward / risk if risk > 0 else 0.0
    if rr <= ScenarioConstants.FVG_MIN_RR:
        return None

    bias = inputs.htf_bias
    with_bias = bias.is_bullish if is_long else bias.is_bearish
    alignment = BiasAlignment.ALIGNED if with_bias else BiasAlignment.CONTRARIAN
    side = "Bullish" if is_long else "Bearish"

    return TradeScenario(
        type=ScenarioType.DISCOUNT_BOUNCE if is_long else ScenarioType.PREMIUM_REJECTION,
        direction=direction,
        entry_zone=entry,
        stop_loss=stop,
        targets=targets,
        rr=rr,
        rr_warning="Extended Target" if rr > ScenarioConstants.RR_WARNING else None,
        timeframe=inputs.timeframe,
        bias_alignment=alignment,
        htf_bias=bias,
        confidence=_score(inputs, direction, rr, inputs.structure.type, alignment,
                          is_psp=psp is not None, is_fvg=True),
        state=state,
        execution_type=execution,
        condition=note or "Entry Zone Valid",
        note="Counter-trend" if alignment == BiasAlignment.CONTRARIAN else None,
        description=f"PSP + {side} FVG" if psp else f"{side} FVG Rejection",
        is_psp=psp is not None,
    )


def _fvg_scenarios(inputs: ScenarioInputs) -> List[TradeScenario]:
    scenarios = []
    structure_type = inputs.structure.type
    price = inputs.price

    if structure_type == StructureType.UP_TREND or inputs.htf_bias.is_bullish:
        below = [f for f in inputs.fvgs if f.type == Polarity.BULLISH and f.bottom < price]
        below.sort(key=lambda f: f.bottom, reverse=True)
        for fvg in below[:ScenarioConstants.FVG_CANDIDATES]:
            scenario = _fvg_scenario(inputs, fvg, Direction.LONG)
            if scenario is not None:
                scenarios.append(scenario)

    if structure_type == StructureType.DOWN_TREND or inputs.htf_bias.is_bearish:
        above = [f for f in inputs.fvgs if f.type == Polarity.BEARISH and f.top > price]
        above.sort(key=lambda f: f.top)
        for fvg in above[:ScenarioConstants.FVG_CANDIDATES]:
            scenario = _fvg_scenario(inputs, fvg, Direction.SHORT)
            if scenario is not None:
                scenarios.append(scenario)
    return scenarios


def _sweep_scenario(inputs: ScenarioInputs, direction: Direction) -> Optional[TradeScenario]:
    price = inputs.price
    is_long = direction == Direction.LONG
    pool_type = PoolType.EQL if is_long else PoolType.EQH
    pool = next((p for p in inputs.liquidity
                 if p.type == pool_type
                 and abs(price - p.price) / price < ScenarioConstants.SWEEP_PROXIMITY), None)
    if pool is None:
        return None

    entry = pool.price
    if is_long:
        stop = entry * (1 - ScenarioConstants.SWEEP_STOP_BUFFER)
        if price <= stop:
            return None
        pending = price > entry * (1 + ScenarioConstants.SWEEP_PENDING_BUFFER)
        levels = sorted(p.price for p in inputs.liquidity
                        if p.type == PoolType.EQH and p.price > price)
        fallback = price * (1 + ScenarioConstants.SWEEP_FALLBACK_TARGET)
    else:
        stop = entry * (1 + ScenarioConstants.SWEEP_STOP_BUFFER)
        if price >= stop:
            return None
        pending = price < entry * (1 - ScenarioConstants.SWEEP_PENDING_BUFFER)
        levels = sorted((p.price for p in inputs.liquidity
                         if p.type == PoolType.EQL and p.price < price), reverse=True)
        fallback = price * (1 - ScenarioConstants.SWEEP_FALLBACK_TARGET)
    levels = levels[:ScenarioConstants.SWEEP_MAX_TARGETS] or [fallback]
    targets = [ScenarioTarget(p, f"TP{i + 1}") for i, p in enumerate(levels)]

    rr = abs(targets[0].price - entry) / abs(entry - stop)
    if rr <= ScenarioConstants.SWEEP_MIN_RR:
        return None

    bias = inputs.htf_bias
    with_bias = bias.is_bullish if is_long else bias.is_bearish
    against_bias = bias.is_bearish if is_long else bias.is_bullish
    if with_bias:
        alignment = BiasAlignment.ALIGNED
    elif against_bias:
        alignment = BiasAlignment.CONTRARIAN
    else:
        alignment = BiasAlignment.NEUTRAL

    # Sweeps score against the bias-implied structure, not the detected one
    trend_type = StructureType.UP_TREND if is_long else StructureType.DOWN_TREND
    structure_type = trend_type if with_bias else StructureType.CONSOLIDATION

    state = ScenarioState.PENDING if pending else ScenarioState.ACTIONABLE
    half_width = ScenarioConstants.SWEEP_ZONE_HALF_WIDTH
    return TradeScenario(
        type=ScenarioType.LIQUIDITY_SWEEP,
        direction=direction,
        entry_zone=EntryZone(low=entry * (1 - half_width), high=entry * (1 + half_width)),
        stop_loss=stop,
        targets=targets,
        rr=rr,
        timeframe=inputs.timeframe,
        bias_alignment=alignment,
        htf_bias=bias,
        confidence=_score(inputs, direction, rr, structure_type, alignment,
                          is_psp=False, is_fvg=False),
        state=state,
        execution_type=ExecutionType.STOP,
        condition=f"Wait for Sweep of {entry:.2f}" if pending else "Liquidity Zone Active",
        description="EQL Sweep & Reclaim" if is_long else "EQH Sweep & Reclaim",
    )


def dedupe_scenarios(scenarios: Sequence[TradeScenario]) -> List[TradeScenario]:
    """Keep the first scenario per (type, entry floor within 0.1)."""
    unique: List[TradeScenario] = []
    for scenario in scenarios:
        duplicate = any(
            kept.type == scenario.type
            and abs(kept.entry_zone.low - scenario.entry_zone.low) < ScenarioConstants.DEDUP_DISTANCE
            for kept in unique
        )
        if not duplicate:
            unique.append(scenario)
    return unique


def apply_ttl(scenarios: Sequence[TradeScenario], regime: Optional[MarketRegime], now_ts: int) -> None:
    """Stamp ttl_seconds/expires_at; scalps in chop live for one minute."""
    for scenario in scenarios:
        ttl = ScenarioConstants.TTL_SECONDS.get(scenario.timeframe, ScenarioConstants.DEFAULT_TTL_SECONDS)
        if (regime is not None and regime.state == RegimeState.CHOPPY
                and scenario.timeframe == ScenarioConstants.SCALP_TIMEFRAME):
            ttl = ScenarioConstants.CHOP_SCALP_TTL_SECONDS
            scenario.note = f"{scenario.note} (Short TTL due to Chop)" if scenario.note else "Short TTL (Chop)"
        scenario.ttl_seconds = ttl
        scenario.expires_at = now_ts + ttl


def rank_scenarios(scenarios: Sequence[TradeScenario]) -> List[TradeScenario]:
    """
    Sort by score, actionable first, then R:R, and apply the focus guard.

    The top scenario becomes primary; any other ACTIONABLE scenario is parked
    as PENDING until the primary resolves.
    """
    ranked = sorted(
        scenarios,
        key=lambda s: (-s.confidence.score, s.state != ScenarioState.ACTIONABLE, -s.rr),
    )
    for i, scenario in enumerate(ranked):
        scenario.is_primary = i == 0
        if i > 0 and scenario.state == ScenarioState.ACTIONABLE:
            scenario.state = ScenarioState.PENDING
            scenario.condition = "Waiting for Primary Resolution"
    return ranked


def generate_trade_scenarios(inputs: ScenarioInputs, now: datetime) -> List[TradeScenario]:
    """
    Generate, grade and rank trade scenarios.

    Args:
        inputs: Market picture (price, bias, structure, gaps, pools, context)
        now: Evaluation time used for expiry stamps

    Returns:
        Ranked scenarios; at most one is ACTIONABLE and it is the primary
    """
    candidates = _fvg_scenarios(inputs)
    for direction in (Direction.LONG, Direction.SHORT):
        scenario = _sweep_scenario(inputs, direction)
        if scenario is not None:
            candidates.append(scenario)

    scenarios = dedupe_scenarios(candidates)
    apply_ttl(scenarios, inputs.regime, int(as_utc(now).timestamp()))
    ranked = rank_scenarios(scenarios)
    logger.debug("Scenarios: %d candidates, %d after dedup", len(candidates), len(ranked))
    return ranked
