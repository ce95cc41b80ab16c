"""
Feed reliability.

Raw signal strength is kept separate from how far the feed can be trusted.
Every provider caps the score it can support, and a bar older than the
provider's delay threshold marks the feed DELAYED. A closed market is never
capped or flagged.
"""

from dataclasses import dataclass
from typing import Optional

from marketlens.schemas.base import DataSource, DataStatus, SignalStatus
from marketlens.schemas.signals import IndicatorSignal

SOURCE_CAPS = {
    DataSource.BROKER: 100,
    DataSource.TRADINGVIEW: 85,
    DataSource.YAHOO: 74,
}

DELAY_THRESHOLDS_MS = {
    DataSource.BROKER: 60_000,
    DataSource.TRADINGVIEW: 10 * 60_000,
    DataSource.YAHOO: 15 * 60_000,
}

OFF_HOURS_FACTOR = 0.85
OFF_HOURS_SUFFIX = " (Off-hours: reliability lower)"


@dataclass
class ReliabilityResult:
    final_score: int
    data_status: DataStatus
    cap_applied: bool
    data_age_ms: int
    cap_reason: Optional[str] = None


def apply_reliability(
    raw_score: int,
    last_bar_ms: int,
    now_ms: int,
    source: DataSource = DataSource.YAHOO,
    market_status: str = "OPEN"
) -> ReliabilityResult:
    """
    Cap a score by feed source and classify the feed's freshness.

    Args:
        raw_score: Score before reliability (0-100)
        last_bar_ms: Epoch ms of the latest bar
        now_ms: Evaluation time in epoch ms
        source: Provider that served the candles
        market_status: OPEN or CLOSED

    Returns:
        ReliabilityResult
    """
    age_ms = now_ms - last_bar_ms
    if market_status == "CLOSED":
        return ReliabilityResult(raw_score, DataStatus.CLOSED, False, age_ms)

    source = DataSource(source)
    data_status = DataStatus.DELAYED if age_ms > DELAY_THRESHOLDS_MS[source] else DataStatus.OK
    cap = SOURCE_CAPS[source]
    final_score = min(raw_score, cap)
    cap_applied = final_score != raw_score

    cap_reason = None
    if cap_applied:
        cap_reason = f"{source.value} cap {cap}% (raw {raw_score}%)"
    elif data_status == DataStatus.DELAYED:
        cap_reason = f"{source.value} delayed {round(age_ms / 60000)}m"

    return ReliabilityResult(final_score, data_status, cap_applied, age_ms, cap_reason)


def apply_session_soft_impact(signal: IndicatorSignal, session: IndicatorSignal) -> IndicatorSignal:
    """
    Soften a signal outside the kill zones.

    Off-hours trims the score by 15% and turns OK into WARN. Direction is
    never flipped.
    """
    if session.status != SignalStatus.OK or not session.is_off_hours_session:
        return signal

    hint = signal.hint if "Off-hours" in signal.hint else signal.hint + OFF_HOURS_SUFFIX
    return signal.model_copy(update={
        "score": max(0, round(signal.score * OFF_HOURS_FACTOR)),
        "status": SignalStatus.WARN.value if signal.status == SignalStatus.OK else signal.status,
        "hint": hint,
        "factors": signal.factors + ["Session soft filter: off-hours score reduction (-15%)"],
    })
