# MarketLens Risk Module
"""
Directional bias and risk levels.

This module provides:
- calculate_composite_bias: signed multi-factor bias score and label
- calculate_buffered_bias: midnight-open hysteresis bias
- calculate_risk_levels: structural invalidation, targets and R:R
"""

from .bias import (
    BiasWeights,
    CompositeBias,
    calculate_buffered_bias,
    calculate_composite_bias,
    iter_buffered_bias,
    label_for_score,
)
from .levels import RiskAnalysis, RiskLevel, calculate_risk_levels

__all__ = [
    "BiasWeights",
    "CompositeBias",
    "calculate_buffered_bias",
    "calculate_composite_bias",
    "iter_buffered_bias",
    "label_for_score",
    "RiskAnalysis",
    "RiskLevel",
    "calculate_risk_levels",
]
