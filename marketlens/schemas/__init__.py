"""
MarketLens Schemas Module

Shared enums plus the Pydantic models returned to API/CLI consumers.

Usage:
    from marketlens.schemas import IndicatorSignal, Direction

    signal = IndicatorSignal(direction=Direction.LONG, score=70)
    print(signal.model_dump_json())
"""

from .base import (
    BaseSchema,
    BiasAlignment,
    BiasLabel,
    BlockType,
    BreakType,
    ConfluenceLevel,
    DataSource,
    DataStatus,
    Direction,
    ExecutionType,
    LevelType,
    MacroImpact,
    MarketState,
    Polarity,
    PoolType,
    PSPState,
    RangePosition,
    Rating,
    RegimeState,
    ScenarioState,
    ScenarioType,
    ScoreCategory,
    SignalStatus,
    StructureType,
    Suggestion,
    SwingType,
)
from .signals import (
    BiasDebug,
    ConfluenceResult,
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

__all__ = [
    "BaseSchema",
    "BiasAlignment",
    "BiasLabel",
    "BlockType",
    "BreakType",
    "ConfluenceLevel",
    "DataSource",
    "DataStatus",
    "Direction",
    "ExecutionType",
    "LevelType",
    "MacroImpact",
    "MarketState",
    "Polarity",
    "PoolType",
    "PSPState",
    "RangePosition",
    "Rating",
    "RegimeState",
    "ScenarioState",
    "ScenarioType",
    "ScoreCategory",
    "SignalStatus",
    "StructureType",
    "Suggestion",
    "SwingType",
    "BiasDebug",
    "ConfluenceResult",
    "IndicatorSignal",
    "LiquidityDebug",
    "PSPSignalDebug",
    "SessionDebug",
    "SMTDebug",
    "SMTGate",
    "StructureBreakdown",
    "StructureDebug",
    "TrueOpenDebug",
    "ValueZoneDebug",
]
