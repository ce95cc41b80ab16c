"""
Confluence Aggregator

Weighted OR over the independently computed indicator signals. A signal
contributes its weight when it is live (status != OFF), scored (score > 0)
and directional (direction != NEUTRAL). The percentage is the contributed
weight over the total weight.

The suggested direction only ever comes from the two heaviest directional
signals: PSP first, then the midnight-open bias. Lower-weight signals can
raise confidence but never pick a side.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, Mapping, Optional, Tuple

from marketlens.schemas.base import ConfluenceLevel, Direction, SignalStatus, Suggestion
from marketlens.schemas.signals import ConfluenceResult, IndicatorSignal

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS: Dict[str, int] = {
    "PSP": 3,
    "BIAS": 2,
    "STRUCTURE": 2,
    "VALUE_ZONE": 2,
    "LIQUIDITY": 1,
    "SMT": 1,
    "SESSION": 1,
}

LEVEL_HINTS = {
    ConfluenceLevel.STRONG: "Strong confluence: high-probability setup in direction of suggestion.",
    ConfluenceLevel.GOOD: "Good confluence: look for entries in direction of suggestion.",
    ConfluenceLevel.WEAK: "Weak confluence: reduce size and wait for confirmation.",
    ConfluenceLevel.NO_TRADE: "Low confluence: wait for better alignment.",
}


@dataclass
class ConfluenceInputs:
    """The seven signals the aggregator reads"""
    psp: IndicatorSignal
    bias: IndicatorSignal
    structure: IndicatorSignal
    value_zone: IndicatorSignal
    liquidity: IndicatorSignal
    smt: IndicatorSignal
    session: IndicatorSignal

    def items(self) -> Iterator[Tuple[str, IndicatorSignal]]:
        yield "PSP", self.psp
        yield "BIAS", self.bias
        yield "STRUCTURE", self.structure
        yield "VALUE_ZONE", self.value_zone
        yield "LIQUIDITY", self.liquidity
        yield "SMT", self.smt
        yield "SESSION", self.session


def contributes(signal: IndicatorSignal) -> bool:
    return (
        signal.status != SignalStatus.OFF
        and signal.score > 0
        and signal.direction != Direction.NEUTRAL
    )


def confluence_level(score_pct: int) -> ConfluenceLevel:
    if score_pct < 35:
        return ConfluenceLevel.NO_TRADE
    if score_pct < 55:
        return ConfluenceLevel.WEAK
    if score_pct < 75:
        return ConfluenceLevel.GOOD
    return ConfluenceLevel.STRONG


def calculate_confluence(
    signals: ConfluenceInputs,
    feed_delayed: bool = False,
    weights: Optional[Mapping[str, int]] = None
) -> ConfluenceResult:
    """
    Combine indicator signals into one suggestion.

    Args:
        signals: The seven indicator signals
        feed_delayed: True when the price feed is DELAYED
        weights: Per-signal weights (defaults to DEFAULT_WEIGHTS)

    Returns:
        ConfluenceResult with score_pct in [0, 100]
    """
    weights = dict(weights or DEFAULT_WEIGHTS)
    max_raw = sum(weights.values())

    raw = 0
    contributors = []
    factors = []
    for name, signal in signals.items():
        weight = weights.get(name, 0)
        if contributes(signal):
            raw += weight
            contributors.append(name)
            factors.append(f"+{weight} {name} {signal.direction}")
        else:
            factors.append(f"+0 {name}")

    score_pct = round(raw / max_raw * 100) if max_raw > 0 else 0
    score_pct = max(0, min(100, score_pct))
    level = confluence_level(score_pct)

    if "PSP" in contributors:
        suggestion = Suggestion(signals.psp.direction)
    elif "BIAS" in contributors:
        suggestion = Suggestion(signals.bias.direction)
    else:
        suggestion = Suggestion.NO_TRADE

    off_hours = signals.session.is_off_hours_session
    if off_hours:
        factors.append("Session Off-Hours")
    if feed_delayed:
        factors.append("Feed delayed")
    warn = level == ConfluenceLevel.NO_TRADE or off_hours or feed_delayed

    logger.debug("Confluence raw=%d/%d pct=%d level=%s suggestion=%s",
                 raw, max_raw, score_pct, level.value, suggestion.value)
    return ConfluenceResult(
        suggestion=suggestion,
        level=level,
        score_pct=score_pct,
        raw=raw,
        max_raw=max_raw,
        status=SignalStatus.WARN if warn else SignalStatus.OK,
        contributors=contributors,
        hint=LEVEL_HINTS[level],
        factors=factors,
    )
