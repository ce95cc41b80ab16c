# MarketLens Scenarios Module
"""
Trade scenario generation and confidence grading.

This module provides:
- build_scorecard: additive confidence scorecard with conflict detection
- generate_trade_scenarios: FVG and liquidity sweep archetypes, TTL and focus guard
"""

from .generator import (
    EntryZone,
    ScenarioConfidence,
    ScenarioConstants,
    ScenarioInputs,
    ScenarioTarget,
    TradeScenario,
    apply_ttl,
    calculate_state_and_execution,
    dedupe_scenarios,
    generate_trade_scenarios,
    rank_scenarios,
)
from .scorecard import (
    ConfidenceScorecard,
    ScoreComponent,
    ScoreConflict,
    ScoreContext,
    ScorePoints,
    build_scorecard,
    key_opens_bias,
    rating_for,
)

__all__ = [
    "EntryZone",
    "ScenarioConfidence",
    "ScenarioConstants",
    "ScenarioInputs",
    "ScenarioTarget",
    "TradeScenario",
    "apply_ttl",
    "calculate_state_and_execution",
    "dedupe_scenarios",
    "generate_trade_scenarios",
    "rank_scenarios",
    "ConfidenceScorecard",
    "ScoreComponent",
    "ScoreConflict",
    "ScoreContext",
    "ScorePoints",
    "build_scorecard",
    "key_opens_bias",
    "rating_for",
]
