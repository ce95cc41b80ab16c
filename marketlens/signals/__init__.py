"""
MarketLens Signals Module

Independent indicator signals, feed reliability and the confluence
aggregator that combines them.

Usage:
    from marketlens.signals import session_signal, calculate_confluence

    session = session_signal(now)
    result = calculate_confluence(inputs)
    print(result.suggestion, result.score_pct)
"""

from .confluence import (
    DEFAULT_WEIGHTS,
    ConfluenceInputs,
    calculate_confluence,
    confluence_level,
    contributes,
)
from .indicators import (
    SignalConstants,
    bias_signal,
    expansion_likelihood,
    liquidity_confidence_score,
    liquidity_signal,
    psp_signal,
    range_status,
    session_signal,
    smt_signal,
    structure_signal,
    true_open_signal,
    value_zone_signal,
)
from .reliability import (
    ReliabilityResult,
    apply_reliability,
    apply_session_soft_impact,
)

__all__ = [
    "DEFAULT_WEIGHTS",
    "ConfluenceInputs",
    "calculate_confluence",
    "confluence_level",
    "contributes",
    "SignalConstants",
    "bias_signal",
    "expansion_likelihood",
    "liquidity_confidence_score",
    "liquidity_signal",
    "psp_signal",
    "range_status",
    "session_signal",
    "smt_signal",
    "structure_signal",
    "true_open_signal",
    "value_zone_signal",
    "ReliabilityResult",
    "apply_reliability",
    "apply_session_soft_impact",
]
