"""
Indicator Signals

Each function turns one slice of market context into an ``IndicatorSignal``:
a status, a direction, a 0-100 score, a one-line hint and a typed debug
payload. Signals are computed independently and only meet in the confluence
aggregator.

Session soft impact: when the session signal reports off-hours (score <= 20),
the bias and value-zone signals lose 15 points and drop to WARN.
"""

from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import numpy as np

from marketlens.context.levels import SweepEvent
from marketlens.context.session import is_london_kill_zone, is_ny_kill_zone, to_ny
from marketlens.indicators.candles import Candle
from marketlens.indicators.psp import PSPResult
from marketlens.indicators.smart_money import SMTDivergence
from marketlens.indicators.technical import calculate_adx, ema_series
from marketlens.schemas.base import DataStatus, Direction, Polarity, PSPState, SignalStatus
from marketlens.schemas.signals import (
    BiasDebug,
    IndicatorSignal,
    LiquidityDebug,
    PSPSignalDebug,
    SessionDebug,
    SMTDebug,
    SMTGate,
    StructureBreakdown,
    StructureDebug,
    TrueOpenDebug,
    ValueZoneDebug,
)


class SignalConstants:
    """Scores and thresholds shared by the indicator signals"""
    SESSION_ACTIVE_SCORE = 80
    SESSION_OFF_HOURS_SCORE = 20
    OFF_HOURS_PENALTY = 15

    BIAS_BASE = 70
    BIAS_BUFFER_BONUS = 15

    VALUE_ZONE_BASE = 60
    VALUE_ZONE_DEEP_BONUS = 20
    VALUE_ZONE_EQ_BAND = 0.01  # fraction of range around EQ
    VALUE_ZONE_QUARTILE = 0.25

    STRUCTURE_MIN_CANDLES = 80
    STRUCTURE_EMA_TOLERANCE = 2e-5
    STRUCTURE_EMA_MIN_TOLERANCE = 0.5
    STRUCTURE_DELAYED_CAP = 74

    SMT_RECENCY_HOURS = 6
    SMT_GATE_HOURS = 3
    SMT_SINGLE_SCORE = 45
    SMT_DOUBLE_SCORE = 75
    SMT_STRONG_SCORE = 70

    RANGE_COMPRESSED = 0.70
    RANGE_EXPANDING = 1.0
    EXPANSION_LIKELIHOOD_MIN = 60

    TRUE_OPEN_BUFFER_ATR = 0.15
    TRUE_OPEN_MIN_BUFFER = 3.0
    TRUE_OPEN_CLARITY = ((0.5, 25), (1.0, 45), (2.0, 70))  # (ATR ratio below, score)
    TRUE_OPEN_MAX_CLARITY = 85
    TRUE_OPEN_ADJUST = 10
    TRUE_OPEN_ALIGNED_CAP = 95
    TRUE_OPEN_MIXED_FLOOR = 25


def _clamp(score: float) -> int:
    return int(max(0, min(100, round(score))))


def _is_unavailable(data_status: DataStatus) -> bool:
    return data_status in (DataStatus.BLOCKED, DataStatus.CLOSED)


# =============================================================================
# Session
# =============================================================================


def session_signal(now: datetime) -> IndicatorSignal:
    """Kill-zone activity at ``now``; never directional."""
    ny_now = to_ny(now)
    london = is_london_kill_zone(ny_now.hour)
    new_york = is_ny_kill_zone(ny_now.hour)
    off_hours = not (london or new_york)

    factors = []
    if london:
        factors.append("LondonKZ active (02:00-05:00 NY)")
    if new_york:
        factors.append("NewYorkKZ active (07:00-10:00 NY)")
    if off_hours:
        factors.append("Off-hours")
    ny_time = ny_now.strftime("%H:%M:%S")
    factors.append(f"NY time {ny_time}")

    if off_hours:
        score = SignalConstants.SESSION_OFF_HOURS_SCORE
        hint = "Off-hours: lower reliability, avoid marginal setups or reduce size."
    else:
        score = SignalConstants.SESSION_ACTIVE_SCORE
        hint = "Active session: setups tend to be more reliable."

    return IndicatorSignal(
        status=SignalStatus.OK,
        direction=Direction.NEUTRAL,
        score=score,
        hint=hint,
        factors=factors,
        debug=SessionDebug(
            ny_time=ny_time,
            is_london_kz=london,
            is_new_york_kz=new_york,
            is_off_hours=off_hours,
        ),
    )


# =============================================================================
# Bias
# =============================================================================


def bias_signal(
    bias_mode: Direction,
    price: float,
    midnight_open: Optional[float],
    buffer: float,
    data_status: DataStatus,
    session: IndicatorSignal
) -> IndicatorSignal:
    """
    Midnight-open bias signal.

    An established LONG/SHORT bias scores 70, plus 15 once price clears the
    buffer in the bias direction.
    """
    if _is_unavailable(data_status):
        return IndicatorSignal(
            status=SignalStatus.OFF,
            hint="Data stale or market closed: do not trust bias.",
            factors=[f"DataStatus: {DataStatus(data_status).value}"],
            debug=BiasDebug(buffer=buffer),
        )
    if midnight_open is None:
        return IndicatorSignal(
            status=SignalStatus.OFF,
            hint="Midnight open unavailable.",
            factors=["No midnight open"],
            debug=BiasDebug(buffer=buffer),
        )

    factors = [
        f"midnightOpen={midnight_open:.2f}",
        f"buffer={buffer:.2f}",
        f"price={price:.2f}",
        f"dataStatus={DataStatus(data_status).value}",
    ]
    status = SignalStatus.OK
    score = 0

    if bias_mode == Direction.NEUTRAL:
        direction = Direction.NEUTRAL
        hint = "Bias neutral: wait for a decisive break beyond buffer."
        factors.append("Mode: NEUTRAL")
    else:
        direction = Direction(bias_mode)
        score = SignalConstants.BIAS_BASE
        factors.append(f"Mode: {direction.value} (Base {SignalConstants.BIAS_BASE})")
        if direction == Direction.LONG:
            beyond = price > midnight_open + buffer
            hint = "Bias LONG: prefer long setups above midnight zone."
        else:
            beyond = price < midnight_open - buffer
            hint = "Bias SHORT: prefer short setups below midnight zone."
        if beyond:
            score += SignalConstants.BIAS_BUFFER_BONUS
            factors.append(f"Price beyond buffer (+{SignalConstants.BIAS_BUFFER_BONUS})")
        else:
            factors.append("Price inside buffer (no boost)")

    if session.is_off_hours_session and score > 0:
        score -= SignalConstants.OFF_HOURS_PENALTY
        status = SignalStatus.WARN
        factors.append(f"Off-hours: score reduced (-{SignalConstants.OFF_HOURS_PENALTY})")

    return IndicatorSignal(
        status=status,
        direction=direction,
        score=_clamp(score),
        hint=hint,
        factors=factors,
        debug=BiasDebug(midnight_open=midnight_open, buffer=buffer, bias_mode=direction),
    )


# =============================================================================
# Value zone
# =============================================================================


def value_zone_signal(
    price: float,
    pdh: Optional[float],
    pdl: Optional[float],
    session: IndicatorSignal,
    data_status: DataStatus
) -> IndicatorSignal:
    """
    Premium/discount placement inside the previous day's range.

    Discount leans LONG and premium leans SHORT (60 points, +20 in the outer
    quartile). Within 1% of the range around equilibrium the signal is flat.
    """
    if _is_unavailable(data_status):
        return IndicatorSignal(
            status=SignalStatus.OFF,
            hint="Data stale or market closed: value zone unreliable.",
            factors=[f"DataStatus: {DataStatus(data_status).value}"],
            debug=ValueZoneDebug(),
        )
    if not pdh or not pdl or pdh <= pdl:
        return IndicatorSignal(
            status=SignalStatus.OFF,
            hint="Value range unavailable (missing PDH/PDL).",
            factors=["Invalid Range"],
            debug=ValueZoneDebug(pdh=pdh, pdl=pdl),
        )

    span = pdh - pdl
    eq = (pdh + pdl) / 2
    lower_quartile = pdl + span * SignalConstants.VALUE_ZONE_QUARTILE
    upper_quartile = pdh - span * SignalConstants.VALUE_ZONE_QUARTILE
    factors = [
        f"Range: {pdl:.2f} - {pdh:.2f} ({span:.2f})",
        f"EQ: {eq:.2f}",
        f"Price: {price:.2f}",
    ]
    status = SignalStatus.OK
    score = 0

    if abs(price - eq) < span * SignalConstants.VALUE_ZONE_EQ_BAND:
        direction = Direction.NEUTRAL
        label = "EQUILIBRIUM"
        factors.append("Price at Equilibrium")
        hint = "At EQ: expect chop, wait for displacement."
    elif price < eq:
        direction = Direction.LONG
        label = "DISCOUNT"
        score = SignalConstants.VALUE_ZONE_BASE
        factors.append("Price < EQ (Discount)")
        if price <= lower_quartile:
            score += SignalConstants.VALUE_ZONE_DEEP_BONUS
            factors.append(f"Deep Discount (<= 25%) (+{SignalConstants.VALUE_ZONE_DEEP_BONUS})")
        hint = "Discount: prefer longs, look for long confirmations."
    else:
        direction = Direction.SHORT
        label = "PREMIUM"
        score = SignalConstants.VALUE_ZONE_BASE
        factors.append("Price > EQ (Premium)")
        if price >= upper_quartile:
            score += SignalConstants.VALUE_ZONE_DEEP_BONUS
            factors.append(f"Deep Premium (>= 75%) (+{SignalConstants.VALUE_ZONE_DEEP_BONUS})")
        hint = "Premium: prefer shorts, look for short confirmations."

    if session.is_off_hours_session and score > 0:
        score -= SignalConstants.OFF_HOURS_PENALTY
        status = SignalStatus.WARN
        factors.append(f"Off-hours: score reduced (-{SignalConstants.OFF_HOURS_PENALTY})")

    percent = max(0.0, min(100.0, (price - pdl) / span * 100))
    return IndicatorSignal(
        status=status,
        direction=direction,
        score=_clamp(score),
        hint=hint,
        factors=factors,
        debug=ValueZoneDebug(
            label=label,
            percent_in_range=round(percent, 1),
            pdh=pdh,
            pdl=pdl,
            eq=eq,
        ),
    )


# =============================================================================
# Structure (EMA/ADX)
# =============================================================================


def structure_signal(
    candles: Sequence[Candle],
    data_status: DataStatus,
    bias_direction: Direction = Direction.NEUTRAL
) -> IndicatorSignal:
    """
    Trend structure from the EMA20/EMA50 spread and ADX(14).

    Score = trend strength (10-45) + EMA alignment (25) + bias agreement (10).
    """
    if _is_unavailable(data_status):
        return IndicatorSignal(
            status=SignalStatus.OFF,
            hint="Data unavailable.",
            factors=[f"DataStatus: {DataStatus(data_status).value}"],
            debug=StructureDebug(),
        )
    if len(candles) < SignalConstants.STRUCTURE_MIN_CANDLES:
        return IndicatorSignal(
            status=SignalStatus.OFF,
            hint="Insufficient data.",
            factors=["Not enough candles"],
            debug=StructureDebug(),
        )

    closes = [c.close for c in candles]
    ema20 = float(ema_series(closes, 20)[-1])
    ema50 = float(ema_series(closes, 50)[-1])
    adx = calculate_adx(candles, 14)

    spread = ema20 - ema50
    tolerance = max(SignalConstants.STRUCTURE_EMA_MIN_TOLERANCE,
                    abs(closes[-1]) * SignalConstants.STRUCTURE_EMA_TOLERANCE)
    if abs(spread) <= tolerance:
        direction = Direction.NEUTRAL
    else:
        direction = Direction.LONG if spread > 0 else Direction.SHORT

    if adx is not None and adx >= 25:
        regime = "TRENDING"
        playbook = "Trend mode: trade pullbacks with structure."
    elif adx is not None and adx >= 20:
        regime = "TRANSITION"
        playbook = "Transition: wait for breakout confirmation."
    else:
        regime = "RANGING"
        playbook = "Range mode: fade extremes, mean reversion."

    breakdown = StructureBreakdown()
    if adx is None:
        breakdown.trend = 10
    elif adx >= 30:
        breakdown.trend = 45
    elif adx >= 25:
        breakdown.trend = 40
    elif adx >= 20:
        breakdown.trend = 25
    else:
        breakdown.trend = 15
    if direction != Direction.NEUTRAL:
        breakdown.ema = 25
        if bias_direction == direction:
            breakdown.bias = 10

    score = min(100, breakdown.trend + breakdown.ema + breakdown.bias)
    status = SignalStatus.OK if score >= 60 else SignalStatus.WARN
    if data_status == DataStatus.DELAYED and score > SignalConstants.STRUCTURE_DELAYED_CAP:
        score = SignalConstants.STRUCTURE_DELAYED_CAP

    adx_text = f"{adx:.1f}" if adx is not None else "N/A"
    return IndicatorSignal(
        status=status,
        direction=direction,
        score=score,
        hint=f"{regime} | {direction.value} | ADX {adx_text}",
        factors=[
            f"EMA20: {ema20:.2f}",
            f"EMA50: {ema50:.2f}",
            f"EMA diff: {spread:.2f} (tol {tolerance:.2f})",
            f"ADX: {adx_text}",
            f"Regime: {regime}",
        ],
        debug=StructureDebug(
            regime=regime,
            adx=round(adx, 1) if adx is not None else None,
            ema20=round(ema20, 1),
            ema50=round(ema50, 1),
            bias=bias_direction,
            playbook=playbook,
            breakdown=breakdown,
        ),
    )


# =============================================================================
# SMT
# =============================================================================


def smt_signal(
    divergences: Sequence[SMTDivergence],
    now_ms: int,
    last_swing_time: Optional[int] = None
) -> IndicatorSignal:
    """
    Aggregate per-reference SMT divergences into one signal.

    Each reference that diverges counts as a confirmation: one scores 45, two
    or more 75. Divergences older than six hours are ignored. A strong
    signal opens a three hour gate blocking the opposite direction.

    Args:
        divergences: One divergence at most per reference symbol
        now_ms: Evaluation time in epoch milliseconds
        last_swing_time: Unix seconds of the primary's latest swing

    Returns:
        IndicatorSignal with an SMTDebug payload
    """
    if last_swing_time is None:
        last_swing_time = max((d.time for d in divergences), default=0)

    recency_ms = SignalConstants.SMT_RECENCY_HOURS * 3600 * 1000
    fresh = [d for d in divergences if now_ms - d.time * 1000 <= recency_ms]
    if divergences and not fresh:
        return IndicatorSignal(
            status=SignalStatus.OK,
            hint="SMT too old (stale divergence ignored)",
            factors=["RECENCY FILTER"],
            debug=SMTDebug(last_swing_time=last_swing_time),
        )

    bullish = [d for d in fresh if d.type == Polarity.BULLISH]
    bearish = [d for d in fresh if d.type == Polarity.BEARISH]
    factors = [f"{d.type.value.title()} SMT vs {d.reference_symbol}" for d in fresh]

    if len(bullish) > len(bearish):
        direction, confirmations = Direction.LONG, len(bullish)
    elif len(bearish) > len(bullish):
        direction, confirmations = Direction.SHORT, len(bearish)
    else:
        direction, confirmations = Direction.NEUTRAL, 0
        if fresh:
            factors.append("Opposing divergences cancel out")

    score = 0
    if confirmations >= 2:
        score = SignalConstants.SMT_DOUBLE_SCORE
    elif confirmations == 1:
        score = SignalConstants.SMT_SINGLE_SCORE

    is_strong = direction != Direction.NEUTRAL and score >= SignalConstants.SMT_STRONG_SCORE
    gate = SMTGate()
    if is_strong and last_swing_time > 0:
        expires_at_ms = last_swing_time * 1000 + SignalConstants.SMT_GATE_HOURS * 3600 * 1000
        if now_ms < expires_at_ms:
            blocked = Direction.SHORT if direction == Direction.LONG else Direction.LONG
            gate = SMTGate(
                is_active=True,
                blocks_direction=blocked,
                expires_at_ms=expires_at_ms,
                remaining_min=max(0, (expires_at_ms - now_ms) // 60000),
                reason=(f"Strong {direction.value} SMT blocks {blocked.value}S "
                        f"({SignalConstants.SMT_GATE_HOURS}h TTL)"),
            )

    return IndicatorSignal(
        status=SignalStatus.OK,
        direction=direction,
        score=score,
        hint=f"SMT {direction.value} divergence detected" if score > 0 else "No SMT divergence",
        factors=factors,
        debug=SMTDebug(
            is_strong=is_strong,
            last_swing_time=last_swing_time,
            bullish_confirmations=len(bullish),
            bearish_confirmations=len(bearish),
            gate=gate,
        ),
    )


# =============================================================================
# PSP
# =============================================================================


def psp_signal(psp: PSPResult) -> IndicatorSignal:
    """Expose the PSP state machine as a signal (OFF while no setup)."""
    missing = psp.checklist.missing()
    debug = PSPSignalDebug(
        state=psp.state.value,
        detected_at_ms=psp.meta.detected_at_ms,
        expires_at_ms=psp.meta.expires_at_ms,
        missing=missing,
    )
    if psp.state == PSPState.NONE:
        return IndicatorSignal(
            status=SignalStatus.OFF,
            hint="No PSP setup",
            factors=list(psp.debug.factors),
            debug=debug,
        )

    hint = psp.debug.factors[0] if psp.debug.factors else f"PSP {psp.state.value}"
    return IndicatorSignal(
        status=SignalStatus.OK,
        direction=psp.direction,
        score=_clamp(psp.score),
        hint=hint,
        factors=list(psp.debug.factors),
        debug=debug,
    )


# =============================================================================
# True open
# =============================================================================

TRUE_OPEN_GUIDANCE = {
    ("ALIGNED_BULL", "PREMIUM"): "Bullish context, but premium: wait for a pullback into discount.",
    ("ALIGNED_BULL", "EQUILIBRIUM"): "Bullish but mid-range: prefer a pullback to discount or wait for a PSP trigger.",
    ("ALIGNED_BULL", "DISCOUNT"): "Bullish context in discount: long setups have better location.",
    ("ALIGNED_BULL", None): "Bullish macro context: prefer longs on pullbacks.",
    ("ALIGNED_BEAR", "DISCOUNT"): "Bearish context, but discount: wait for a rally into premium.",
    ("ALIGNED_BEAR", "EQUILIBRIUM"): "Bearish but mid-range: prefer a rally to premium or wait for a PSP trigger.",
    ("ALIGNED_BEAR", "PREMIUM"): "Bearish context in premium: short setups have better location.",
    ("ALIGNED_BEAR", None): "Bearish macro context: prefer shorts on rallies.",
}

TRUE_OPEN_HINTS = {
    "ALIGNED_BULL": "Above day/week open: bullish macro context.",
    "ALIGNED_BEAR": "Below day/week open: bearish macro context.",
    "MIXED": "Day/week open context is mixed.",
    "NEAR": "Near open: unclear macro context.",
}


def _open_side(price: float, anchor: float, buffer: float) -> str:
    if abs(price - anchor) <= buffer:
        return "NEAR"
    return "ABOVE" if price > anchor else "BELOW"


def _open_clarity(ratio: float) -> int:
    for limit, score in SignalConstants.TRUE_OPEN_CLARITY:
        if ratio < limit:
            return score
    return SignalConstants.TRUE_OPEN_MAX_CLARITY


def _true_open_guidance(alignment: str, value_zone: Optional[str]) -> str:
    if alignment in ("MIXED", "NEAR"):
        if value_zone == "EQUILIBRIUM":
            return "Neutral mid-range: wait for alignment or a PSP trigger."
        if alignment == "MIXED":
            return "Mixed day/week context: reduce size, wait for alignment."
        return "Near open: treat as neutral context, no directional bias."
    zone = value_zone if value_zone in ("PREMIUM", "DISCOUNT", "EQUILIBRIUM") else None
    return TRUE_OPEN_GUIDANCE[(alignment, zone)]


def true_open_signal(
    price: float,
    atr14: Optional[float],
    day_open: Optional[float],
    week_open: Optional[float],
    data_status: DataStatus,
    value_zone: Optional[str] = None
) -> IndicatorSignal:
    """
    Alignment of price with the true day and week opens.

    The score measures how clearly price has left the day open in ATR
    units; the direction comes from alignment alone. Without a week open
    the day decides on its own. A week open inside the buffer keeps the
    day's alignment. Agreement adds 10 points (capped at 95) and
    disagreement makes the context MIXED with 10 points off (floored at 25).

    Args:
        price: Current price
        atr14: ATR(14) of the intraday candles
        day_open: True day open
        week_open: True week open, if known
        data_status: Feed status from the reliability layer
        value_zone: PREMIUM / DISCOUNT / EQUILIBRIUM label for guidance

    Returns:
        IndicatorSignal (OFF without a day open or ATR)
    """
    if _is_unavailable(data_status):
        return IndicatorSignal(
            status=SignalStatus.OFF,
            hint="Data stale or market closed: true open unreliable.",
            factors=[f"DataStatus: {DataStatus(data_status).value}"],
            debug=TrueOpenDebug(day_open=day_open, week_open=week_open),
        )
    if day_open is None or not atr14 or atr14 <= 0:
        return IndicatorSignal(
            status=SignalStatus.OFF,
            hint="True open unavailable (missing day open or ATR).",
            factors=["Missing day open or ATR"],
            debug=TrueOpenDebug(day_open=day_open, week_open=week_open, atr14=atr14),
        )

    buffer = max(atr14 * SignalConstants.TRUE_OPEN_BUFFER_ATR, SignalConstants.TRUE_OPEN_MIN_BUFFER)
    day_side = _open_side(price, day_open, buffer)
    day_ratio = abs(price - day_open) / atr14
    score = _open_clarity(day_ratio)
    day_alignment = {"ABOVE": "ALIGNED_BULL", "BELOW": "ALIGNED_BEAR"}.get(day_side, "NEAR")
    factors = [f"Day open: {day_open:.2f} ({day_side}, {day_ratio:.2f} ATR)"]

    week_side = None
    week_ratio = None
    week_note = ""
    if week_open is None:
        alignment = day_alignment
        week_note = "Week unavailable: using day only."
    else:
        week_side = _open_side(price, week_open, buffer)
        week_ratio = abs(price - week_open) / atr14
        factors.append(f"Week open: {week_open:.2f} ({week_side}, {week_ratio:.2f} ATR)")
        if day_side == "NEAR":
            alignment = "NEAR"
        elif week_side == "NEAR":
            alignment = day_alignment
            week_note = "Week near buffer: low influence."
        elif week_side == day_side:
            alignment = day_alignment
            score = min(SignalConstants.TRUE_OPEN_ALIGNED_CAP, score + SignalConstants.TRUE_OPEN_ADJUST)
            factors.append(f"Day and week agree (+{SignalConstants.TRUE_OPEN_ADJUST})")
        else:
            alignment = "MIXED"
            score = max(SignalConstants.TRUE_OPEN_MIXED_FLOOR, score - SignalConstants.TRUE_OPEN_ADJUST)
            factors.append(f"Day and week disagree (-{SignalConstants.TRUE_OPEN_ADJUST})")

    if week_note:
        factors.append(week_note)
    if alignment == "ALIGNED_BULL":
        direction = Direction.LONG
    elif alignment == "ALIGNED_BEAR":
        direction = Direction.SHORT
    else:
        direction = Direction.NEUTRAL

    return IndicatorSignal(
        status=SignalStatus.OK,
        direction=direction,
        score=_clamp(score),
        hint=TRUE_OPEN_HINTS[alignment],
        factors=factors,
        debug=TrueOpenDebug(
            alignment=alignment,
            day_open=day_open,
            week_open=week_open,
            day_side=day_side,
            week_side=week_side,
            buffer=round(buffer, 2),
            atr14=round(atr14, 2),
            day_ratio=round(day_ratio, 2),
            week_ratio=round(week_ratio, 2) if week_ratio is not None else None,
            guidance=_true_open_guidance(alignment, value_zone),
            week_note=week_note,
        ),
    )


# =============================================================================
# Liquidity (range compression)
# =============================================================================


def range_status(current_range: float, avg_range: float) -> str:
    if not avg_range:
        return "NORMAL"
    ratio = current_range / avg_range
    if ratio <= SignalConstants.RANGE_COMPRESSED:
        return "COMPRESSED"
    if ratio >= SignalConstants.RANGE_EXPANDING:
        return "EXPANDING"
    return "NORMAL"


def expansion_likelihood(current_range: float, avg_range: float) -> float:
    """Lower range/ADR ratios make expansion more likely (0-100)."""
    if not avg_range:
        return 0.0
    ratio = current_range / avg_range
    return float(np.clip((1 - ratio) * 100 + 10, 0, 100))


def liquidity_confidence_score(
    adr_percent: float,
    has_major_sweep: bool,
    psp_state: Optional[PSPState] = None
) -> Tuple[int, List[str], str]:
    """
    Confidence that liquidity is being engineered for a move.

    Returns:
        (score, factors, mapping_text)
    """
    factors: List[str] = []
    score = 0
    if adr_percent <= 35:
        score += 40
        factors.append("Compression <=35% (+40)")
    elif adr_percent <= 50:
        score += 25
        factors.append("Compression <=50% (+25)")
    elif adr_percent <= 70:
        score += 10
        factors.append("Compression <=70% (+10)")
    else:
        factors.append("Low compression (+0)")

    if has_major_sweep:
        score += 25
        factors.append("Major sweep (+25)")

    if psp_state == PSPState.CONFIRMED:
        score += 25
        factors.append("PSP confirmed (+25)")
    elif psp_state == PSPState.FORMING:
        score += 15
        factors.append("PSP forming (+15)")

    state_text = psp_state.value if psp_state is not None else "None"
    mapping = (f"ADR {adr_percent:.0f}% | Sweep {'Yes' if has_major_sweep else 'No'} "
               f"| PSP {state_text}")
    return _clamp(score), factors, mapping


def liquidity_signal(
    current_range: float,
    avg_range: float,
    sweeps: Sequence[SweepEvent],
    psp: Optional[PSPResult] = None
) -> IndicatorSignal:
    """
    Daily range compression signal.

    Scores 100 only when the range is COMPRESSED and an expansion is likely;
    it never carries a direction on its own.
    """
    status_label = range_status(current_range, avg_range)
    likelihood = expansion_likelihood(current_range, avg_range)
    adr_percent = current_range / avg_range * 100 if avg_range else 0.0
    psp_state = PSPState(psp.state) if psp is not None else None
    confidence, factors, mapping = liquidity_confidence_score(adr_percent, bool(sweeps), psp_state)

    if status_label == "COMPRESSED":
        hint = f"Range Compressed ({adr_percent:.0f}% ADR). Expansion imminent."
    elif status_label == "EXPANDING":
        hint = f"Range Expanded ({adr_percent:.0f}% ADR). Move likely exhausted."
    else:
        hint = f"Range Normal ({adr_percent:.0f}% ADR)."

    compressed = (status_label == "COMPRESSED"
                  and likelihood >= SignalConstants.EXPANSION_LIKELIHOOD_MIN)
    return IndicatorSignal(
        status=SignalStatus.OK if avg_range else SignalStatus.OFF,
        direction=Direction.NEUTRAL,
        score=100 if compressed else 0,
        hint=hint,
        factors=factors,
        debug=LiquidityDebug(
            status=status_label,
            current_range=current_range,
            avg_range=avg_range,
            adr_percent=int(round(adr_percent)),
            expansion_likelihood=likelihood,
            confidence_score=confidence,
            mapping_text=mapping,
        ),
    )
