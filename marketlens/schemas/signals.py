"""Indicator signal and confluence models.

Every signal carries a typed ``debug`` payload. The payload is a discriminated
union keyed on ``kind`` so consumers can branch on the signal family without
guessing at dictionary keys.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import Field

from .base import (
    BaseSchema,
    ConfluenceLevel,
    Direction,
    SignalStatus,
    Suggestion,
)


class SessionDebug(BaseSchema):
    """Kill-zone flags behind the session signal."""

    kind: Literal["session"] = "session"
    ny_time: str = Field(..., description="New York wall clock, HH:MM:SS")
    is_london_kz: bool = False
    is_new_york_kz: bool = False
    is_off_hours: bool = True


class BiasDebug(BaseSchema):
    """Midnight-open reference used by the bias signal."""

    kind: Literal["bias"] = "bias"
    midnight_open: Optional[float] = None
    buffer: float = 0.0
    bias_mode: Direction = Direction.NEUTRAL


class ValueZoneDebug(BaseSchema):
    """Previous-day range placement."""

    kind: Literal["value_zone"] = "value_zone"
    label: str = ""
    percent_in_range: Optional[float] = None
    pdh: Optional[float] = None
    pdl: Optional[float] = None
    eq: Optional[float] = None


class StructureBreakdown(BaseSchema):
    """Point split of the structure signal score."""

    trend: int = 0
    ema: int = 0
    bias: int = 0


class StructureDebug(BaseSchema):
    """EMA/ADX inputs of the structure signal."""

    kind: Literal["structure"] = "structure"
    regime: str = "RANGING"
    adx: Optional[float] = None
    ema20: Optional[float] = None
    ema50: Optional[float] = None
    bias: Direction = Direction.NEUTRAL
    playbook: str = ""
    breakdown: StructureBreakdown = Field(default_factory=StructureBreakdown)


class SMTGate(BaseSchema):
    """Time-boxed block on the direction opposite a strong divergence."""

    is_active: bool = False
    blocks_direction: Optional[Direction] = None
    expires_at_ms: int = 0
    remaining_min: int = 0
    reason: str = ""


class SMTDebug(BaseSchema):
    """Divergence bookkeeping for the SMT signal."""

    kind: Literal["smt"] = "smt"
    is_strong: bool = False
    last_swing_time: int = 0
    bullish_confirmations: int = 0
    bearish_confirmations: int = 0
    gate: SMTGate = Field(default_factory=SMTGate)


class PSPSignalDebug(BaseSchema):
    """PSP stage summary."""

    kind: Literal["psp"] = "psp"
    state: str = "NONE"
    detected_at_ms: Optional[int] = None
    expires_at_ms: Optional[int] = None
    missing: List[str] = Field(default_factory=list)


class LiquidityDebug(BaseSchema):
    """Daily range compression metrics."""

    kind: Literal["liquidity"] = "liquidity"
    status: str = "NORMAL"
    current_range: float = 0.0
    avg_range: float = 0.0
    adr_percent: int = 0
    expansion_likelihood: float = 0.0
    confidence_score: int = 0
    mapping_text: str = ""


class TrueOpenDebug(BaseSchema):
    """Day and week open anchors behind the true-open alignment."""

    kind: Literal["true_open"] = "true_open"
    alignment: str = "OFF"
    day_open: Optional[float] = None
    week_open: Optional[float] = None
    day_side: Optional[str] = None
    week_side: Optional[str] = None
    buffer: Optional[float] = None
    atr14: Optional[float] = None
    day_ratio: Optional[float] = None
    week_ratio: Optional[float] = None
    guidance: str = ""
    week_note: str = ""


SignalDebug = Annotated[
    Union[
        SessionDebug,
        BiasDebug,
        ValueZoneDebug,
        StructureDebug,
        SMTDebug,
        PSPSignalDebug,
        LiquidityDebug,
        TrueOpenDebug,
    ],
    Field(discriminator="kind"),
]


class IndicatorSignal(BaseSchema):
    """A single, independently computed directional signal."""

    status: SignalStatus = SignalStatus.OK
    direction: Direction = Direction.NEUTRAL
    score: int = Field(0, ge=0, le=100)
    hint: str = ""
    factors: List[str] = Field(default_factory=list)
    debug: Optional[SignalDebug] = None

    @property
    def is_off_hours_session(self) -> bool:
        """Session signals score 20 or less outside the kill zones."""
        return self.score <= 20


class ConfluenceResult(BaseSchema):
    """Weighted OR-of-signals verdict."""

    suggestion: Suggestion = Suggestion.NO_TRADE
    level: ConfluenceLevel = ConfluenceLevel.NO_TRADE
    score_pct: int = Field(0, ge=0, le=100)
    raw: int = 0
    max_raw: int = 12
    status: SignalStatus = SignalStatus.WARN
    contributors: List[str] = Field(default_factory=list)
    hint: str = ""
    factors: List[str] = Field(default_factory=list)
