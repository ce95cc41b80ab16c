"""Base models and common types for MarketLens schemas."""

from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel


class Direction(str, Enum):
    """Trade direction."""

    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"


class SwingType(str, Enum):
    """Swing point polarity."""

    HIGH = "HIGH"
    LOW = "LOW"


class StructureType(str, Enum):
    """Trend classification from the two most recent highs and lows."""

    UP_TREND = "UP_TREND"
    DOWN_TREND = "DOWN_TREND"
    CONSOLIDATION = "CONSOLIDATION"


class BreakType(str, Enum):
    """Structure break kind."""

    BOS = "BOS"
    CHOCH = "CHOCH"


class Polarity(str, Enum):
    """Bullish/bearish polarity shared by gaps, breaks and divergences."""

    BULLISH = "BULLISH"
    BEARISH = "BEARISH"


class PoolType(str, Enum):
    """Liquidity pool kind."""

    EQH = "EQH"
    EQL = "EQL"


class BlockType(str, Enum):
    """ICT block kind."""

    ORDER_BLOCK = "ORDER_BLOCK"
    BREAKER = "BREAKER"


class PSPState(str, Enum):
    """Precision swing point setup stage."""

    NONE = "NONE"
    FORMING = "FORMING"
    CONFIRMED = "CONFIRMED"


class RegimeState(str, Enum):
    """Market regime classification."""

    TRENDING = "TRENDING"
    RANGING = "RANGING"
    CHOPPY = "CHOPPY"
    EXPANSION = "EXPANSION"


class BiasLabel(str, Enum):
    """Composite bias label."""

    STRONG_BULLISH = "STRONG BULLISH"
    BULLISH = "BULLISH"
    NEUTRAL = "NEUTRAL"
    BEARISH = "BEARISH"
    STRONG_BEARISH = "STRONG BEARISH"

    @property
    def is_bullish(self) -> bool:
        return self in (BiasLabel.BULLISH, BiasLabel.STRONG_BULLISH)

    @property
    def is_bearish(self) -> bool:
        return self in (BiasLabel.BEARISH, BiasLabel.STRONG_BEARISH)


class LevelType(str, Enum):
    """Risk level role."""

    TARGET = "TARGET"
    INVALIDATION = "INVALIDATION"


class ScenarioType(str, Enum):
    """Trade scenario archetype."""

    DISCOUNT_BOUNCE = "DISCOUNT_BOUNCE"
    PREMIUM_REJECTION = "PREMIUM_REJECTION"
    LIQUIDITY_SWEEP = "LIQUIDITY_SWEEP"


class ScenarioState(str, Enum):
    """Scenario readiness relative to current price."""

    ACTIONABLE = "ACTIONABLE"
    PENDING = "PENDING"
    INVALID = "INVALID"


class ExecutionType(str, Enum):
    """Order type suggested for a scenario."""

    MARKET = "MARKET"
    LIMIT = "LIMIT"
    STOP = "STOP"


class BiasAlignment(str, Enum):
    """Scenario direction relative to the higher-timeframe bias."""

    ALIGNED = "ALIGNED"
    CONTRARIAN = "CONTRARIAN"
    NEUTRAL = "NEUTRAL"


class Rating(str, Enum):
    """Scorecard rating."""

    A_PLUS = "A+"
    A = "A"
    B = "B"
    C = "C"


class ScoreCategory(str, Enum):
    """Scorecard component layer."""

    TREND = "TREND"
    STRUCTURE = "STRUCTURE"
    LIQUIDITY = "LIQUIDITY"
    RISK = "RISK"
    SESSION = "SESSION"
    MACRO = "MACRO"


class SignalStatus(str, Enum):
    """Indicator signal health."""

    OK = "OK"
    WARN = "WARN"
    OFF = "OFF"
    ERROR = "ERROR"


class ConfluenceLevel(str, Enum):
    """Confluence grade."""

    NO_TRADE = "NO_TRADE"
    WEAK = "WEAK"
    GOOD = "GOOD"
    STRONG = "STRONG"


class Suggestion(str, Enum):
    """Confluence suggestion."""

    LONG = "LONG"
    SHORT = "SHORT"
    NO_TRADE = "NO_TRADE"


class DataStatus(str, Enum):
    """Feed freshness."""

    OK = "OK"
    DELAYED = "DELAYED"
    BLOCKED = "BLOCKED"
    CLOSED = "CLOSED"


class DataSource(str, Enum):
    """Provider that served the candles."""

    BROKER = "BROKER"
    TRADINGVIEW = "TRADINGVIEW"
    YAHOO = "YAHOO"


class MarketState(str, Enum):
    """Technical-indicator market state."""

    OVERBOUGHT = "OVERBOUGHT"
    OVERSOLD = "OVERSOLD"
    TREND_UP = "TREND_UP"
    TREND_DOWN = "TREND_DOWN"
    RANGE = "RANGE"
    UNKNOWN = "UNKNOWN"


class RangePosition(str, Enum):
    """Price location inside the daily range."""

    PREMIUM = "PREMIUM"
    DISCOUNT = "DISCOUNT"
    EQUILIBRIUM = "EQUILIBRIUM"


class MacroImpact(str, Enum):
    """How a scheduled macro event affects the USD modifier."""

    HARD_IGNORE = "HARD_IGNORE"
    SOFT_IGNORE = "SOFT_IGNORE"
    NONE = "NONE"


class BaseSchema(BaseModel):
    """Base class for all MarketLens schemas with common config."""

    model_config = {
        "json_schema_extra": {"additionalProperties": False},
        "use_enum_values": True,
    }

    @classmethod
    def get_json_schema(cls) -> Dict[str, Any]:
        """Get JSON schema for API consumers."""
        schema = cls.model_json_schema()
        schema["title"] = cls.__name__
        return schema
