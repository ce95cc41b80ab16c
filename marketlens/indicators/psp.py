"""
Precision Swing Point (PSP) detection.

A PSP is a liquidity-sweep reversal validated in four stages:

1. Sweep: a bar wicks beyond a 2/2 fractal swing by at least
   max(0.15 * ATR, 4 ticks) and closes back inside it.
2. Displacement: within 6 bars the move away from the sweep extreme exceeds
   0.7 * ATR, carried by two bodies > 0.35 * ATR or one body > 1.0 * ATR.
3. Pullback: price retraces into the 50-79% zone of the displacement leg
   within 10 bars, without re-breaching the sweep extreme.
4. Continuation: within 12 bars of the touch, a close beyond the leg extreme.

Every candidate swing is scored independently; the best candidate across
LONG (swing lows) and SHORT (swing highs) is returned. Results live for three
hours from the sweep bar and are read back as NONE once expired.

Usage:
    result = detect_psp(candles, now_ms=now_ms, tf="M15")
    if result.state == PSPState.CONFIRMED:
        print(result.levels.entry_low, result.levels.entry_high)
"""

import logging
from dataclasses import dataclass, field, asdict, replace
from typing import Any, Dict, List, Optional, Sequence

from marketlens.indicators.candles import Candle
from marketlens.indicators.smart_money import SwingPoint, detect_swings
from marketlens.indicators.technical import current_atr
from marketlens.schemas.base import Direction, PSPState, SwingType

logger = logging.getLogger(__name__)


class PSPConstants:
    """Stage thresholds, expressed in ATR multiples unless noted"""
    SWING_BARS = 2
    ATR_PERIOD = 14
    MIN_CANDLES = 20

    SWEEP_ATR = 0.15
    SWEEP_MIN_TICKS = 4
    SWEEP_DEPTH_BONUS_ATR = 0.25
    RECENCY_BARS = 24

    DISPLACEMENT_BARS = 6
    DISPLACEMENT_ATR = 0.7
    DISPLACEMENT_BODY_ATR = 0.35
    DISPLACEMENT_BODY_COUNT = 2
    DISPLACEMENT_BIG_BODY_ATR = 1.0
    DISPLACEMENT_LEG_BONUS_ATR = 1.0

    PULLBACK_BARS = 10
    PULLBACK_MIN_RETRACE = 0.5
    PULLBACK_MAX_RETRACE = 0.79

    CONTINUATION_BARS = 12

    SCORE_SWEEP = 25
    SCORE_DISPLACEMENT = 25
    SCORE_PULLBACK = 20
    SCORE_CONTINUATION = 20
    SCORE_BONUS = 5

    TTL_HOURS = 3
    DEFAULT_TICK_SIZE = 0.25


@dataclass
class PSPChecklist:
    sweep: bool = False
    displacement: bool = False
    pullback: bool = False
    continuation: bool = False

    def missing(self) -> List[str]:
        return [name for name, done in asdict(self).items() if not done]


@dataclass
class PSPLevels:
    """Price levels of a PSP setup"""
    entry_low: float
    entry_high: float
    invalidation: float  # sweep extreme
    swing: float
    sweep_extreme: float
    displacement_extreme: Optional[float] = None


@dataclass
class PSPMeta:
    tf: str
    detected_at_ms: Optional[int] = None
    expires_at_ms: Optional[int] = None
    age_minutes: Optional[int] = None


@dataclass
class PSPDebug:
    """Explicit trace of how a candidate was scored"""
    factors: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    atr: Optional[float] = None
    sweep_threshold: Optional[float] = None
    swing_index: Optional[int] = None
    sweep_index: Optional[int] = None
    peak_index: Optional[int] = None
    touch_index: Optional[int] = None
    continuation_index: Optional[int] = None
    invalidated: bool = False
    expired: bool = False


@dataclass
class PSPResult:
    state: PSPState
    direction: Direction
    score: int
    checklist: PSPChecklist
    meta: PSPMeta
    levels: Optional[PSPLevels] = None
    debug: PSPDebug = field(default_factory=PSPDebug)

    def is_expired(self, now_ms: int) -> bool:
        return self.meta.expires_at_ms is not None and now_ms >= self.meta.expires_at_ms

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        data["direction"] = self.direction.value
        return data


def empty_psp(tf: str, reason: str) -> PSPResult:
    """A NONE/NEUTRAL result carrying the reason in its debug trace."""
    return PSPResult(
        state=PSPState.NONE,
        direction=Direction.NEUTRAL,
        score=0,
        checklist=PSPChecklist(),
        meta=PSPMeta(tf=tf),
        debug=PSPDebug(factors=[reason], missing=PSPChecklist().missing()),
    )


def resolve_psp_expiry(result: PSPResult, now_ms: int) -> PSPResult:
    """
    Apply read-time TTL.

    An expired result is returned as state NONE with score 0; the checklist,
    levels and direction are kept so the trace stays inspectable.
    """
    if not result.is_expired(now_ms):
        return result
    debug = replace(result.debug, expired=True,
                    factors=result.debug.factors + ["Expired (TTL elapsed)"])
    return replace(result, state=PSPState.NONE, score=0, debug=debug)


def _sign(direction: Direction) -> int:
    return 1 if direction == Direction.LONG else -1


def _evaluate_candidate(
    candles: Sequence[Candle],
    swing: SwingPoint,
    direction: Direction,
    atr: float,
    threshold: float,
    recency_bars: int
) -> Optional[Dict[str, Any]]:
    """Run the four stages for one swing; None when it was never swept."""
    n = len(candles)
    sign = _sign(direction)
    level = swing.price
    factors: List[str] = []
    checklist = PSPChecklist()
    debug = PSPDebug(atr=atr, sweep_threshold=threshold, swing_index=swing.index)

    # 1. Sweep
    sweep_idx = None
    for j in range(max(swing.index + 1, n - recency_bars), n):
        bar = candles[j]
        if direction == Direction.LONG:
            swept = bar.low <= level - threshold and bar.close > level
        else:
            swept = bar.high >= level + threshold and bar.close < level
        if swept:
            sweep_idx = j
            break
    if sweep_idx is None:
        return None

    sweep_bar = candles[sweep_idx]
    sweep_extreme = sweep_bar.low if direction == Direction.LONG else sweep_bar.high
    depth = abs(level - sweep_extreme)
    checklist.sweep = True
    debug.sweep_index = sweep_idx
    score = PSPConstants.SCORE_SWEEP
    factors.append(f"Swept {swing.type.value.lower()} {level:.2f} (depth {depth:.2f})")
    if depth > PSPConstants.SWEEP_DEPTH_BONUS_ATR * atr:
        score += PSPConstants.SCORE_BONUS
        factors.append("Deep sweep bonus (+5)")

    levels = PSPLevels(
        entry_low=level, entry_high=level, invalidation=sweep_extreme,
        swing=level, sweep_extreme=sweep_extreme,
    )

    # 2. Displacement
    window = range(sweep_idx + 1, min(sweep_idx + 1 + PSPConstants.DISPLACEMENT_BARS, n))
    peak_idx = None
    if len(window):
        if direction == Direction.LONG:
            peak_idx = max(window, key=lambda k: (candles[k].high, -k))
            peak = candles[peak_idx].high
        else:
            peak_idx = min(window, key=lambda k: (candles[k].low, k))
            peak = candles[peak_idx].low
        leg = abs(peak - sweep_extreme)
        bodies = [sign * candles[k].body for k in window]
        strong_bodies = sum(1 for b in bodies if b > PSPConstants.DISPLACEMENT_BODY_ATR * atr)
        big_body = any(b > PSPConstants.DISPLACEMENT_BIG_BODY_ATR * atr for b in bodies)

        if leg > PSPConstants.DISPLACEMENT_ATR * atr and (
                strong_bodies >= PSPConstants.DISPLACEMENT_BODY_COUNT or big_body):
            checklist.displacement = True
            debug.peak_index = peak_idx
            score += PSPConstants.SCORE_DISPLACEMENT
            factors.append(f"Displacement {leg / atr:.1f} ATR to {peak:.2f}")
            if leg > PSPConstants.DISPLACEMENT_LEG_BONUS_ATR * atr:
                score += PSPConstants.SCORE_BONUS
                factors.append("Large displacement bonus (+5)")

            zone_near = peak - sign * PSPConstants.PULLBACK_MIN_RETRACE * leg
            zone_far = peak - sign * PSPConstants.PULLBACK_MAX_RETRACE * leg
            levels.entry_low, levels.entry_high = sorted((zone_near, zone_far))
            levels.displacement_extreme = peak

            # 3. Pullback
            touch_idx = None
            for k in range(peak_idx + 1, min(peak_idx + 1 + PSPConstants.PULLBACK_BARS, n)):
                bar = candles[k]
                breached = bar.low < sweep_extreme if direction == Direction.LONG else bar.high > sweep_extreme
                if breached:
                    debug.invalidated = True
                    factors.append(f"Invalidated: re-breached sweep extreme {sweep_extreme:.2f}")
                    break
                touched = bar.low <= zone_near if direction == Direction.LONG else bar.high >= zone_near
                if touched:
                    touch_idx = k
                    break

            if touch_idx is not None:
                checklist.pullback = True
                debug.touch_index = touch_idx
                score += PSPConstants.SCORE_PULLBACK
                factors.append("Pullback into 50-79% zone")

                # 4. Continuation
                for k in range(touch_idx + 1, min(touch_idx + 1 + PSPConstants.CONTINUATION_BARS, n)):
                    if sign * (candles[k].close - peak) > 0:
                        checklist.continuation = True
                        debug.continuation_index = k
                        score += PSPConstants.SCORE_CONTINUATION
                        factors.append(f"Continuation close beyond {peak:.2f}")
                        break

    if debug.invalidated:
        score = 0
        state = PSPState.NONE
    elif checklist.continuation:
        state = PSPState.CONFIRMED
    else:
        state = PSPState.FORMING

    debug.factors = factors
    debug.missing = checklist.missing()
    return {
        "state": state,
        "score": min(score, 100),
        "checklist": checklist,
        "levels": levels,
        "debug": debug,
        "sweep_time": sweep_bar.time,
        "sweep_idx": sweep_idx,
    }


def detect_psp(
    candles: Sequence[Candle],
    now_ms: int,
    tf: str = "M15",
    tick_size: float = PSPConstants.DEFAULT_TICK_SIZE,
    recency_bars: int = PSPConstants.RECENCY_BARS,
    ttl_hours: float = PSPConstants.TTL_HOURS
) -> PSPResult:
    """
    Evaluate every swing candidate and return the best PSP setup.

    Args:
        candles: Intraday candles, ascending
        now_ms: Evaluation time in epoch milliseconds
        tf: Timeframe label stored in the result meta
        tick_size: Instrument tick size (0.25 for NQ/ES)
        recency_bars: Only sweeps within this many trailing bars qualify
        ttl_hours: Lifetime of a setup from its sweep bar

    Returns:
        PSPResult (NONE/NEUTRAL when nothing qualifies)
    """
    if len(candles) < PSPConstants.MIN_CANDLES:
        return empty_psp(tf, "Insufficient data")

    atr = current_atr(candles, PSPConstants.ATR_PERIOD)
    if not atr or atr <= 0:
        return empty_psp(tf, "ATR unavailable")

    threshold = max(PSPConstants.SWEEP_ATR * atr, PSPConstants.SWEEP_MIN_TICKS * tick_size)
    swings = detect_swings(candles, PSPConstants.SWING_BARS, PSPConstants.SWING_BARS)

    best = None
    best_key = None
    for swing in swings:
        direction = Direction.LONG if swing.type == SwingType.LOW else Direction.SHORT
        candidate = _evaluate_candidate(candles, swing, direction, atr, threshold, recency_bars)
        if candidate is None:
            continue
        candidate["direction"] = direction
        key = (candidate["score"], candidate["sweep_idx"])
        logger.debug("PSP candidate %s @%d -> %s/%d", direction.value, swing.index,
                     candidate["state"].value, candidate["score"])
        if best_key is None or key > best_key:
            best, best_key = candidate, key

    if best is None or best["score"] <= 0:
        result = empty_psp(tf, "No PSP setup")
        if best is not None:
            result.debug = best["debug"]
        return result

    detected_ms = best["sweep_time"] * 1000
    expires_ms = detected_ms + int(ttl_hours * 3600 * 1000)
    result = PSPResult(
        state=best["state"],
        direction=best["direction"],
        score=best["score"],
        checklist=best["checklist"],
        levels=best["levels"],
        meta=PSPMeta(
            tf=tf,
            detected_at_ms=detected_ms,
            expires_at_ms=expires_ms,
            age_minutes=max(0, (now_ms - detected_ms) // 60000),
        ),
        debug=best["debug"],
    )
    return resolve_psp_expiry(result, now_ms)
