"""
Smart Money Concepts (SMC) Indicators

Implements the structural building blocks of the engine:
- Swing Points: fractal highs/lows with a fixed left/right window
- Market Structure: UP_TREND / DOWN_TREND / CONSOLIDATION
- Break of Structure (BOS) and Change of Character (CHoCH)
- Equal Highs/Lows (EQH/EQL): liquidity pools
- Fair Value Gaps (FVG): 3-candle imbalance zones
- Order and Breaker Blocks: zones left behind by displaced BOS legs
- SMT Divergence: non-confirmation against a correlated instrument

All functions are pure: they read candle/swing sequences and return new
immutable records.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from marketlens.indicators.candles import Candle
from marketlens.schemas.base import (
    BlockType,
    BreakType,
    Polarity,
    PoolType,
    StructureType,
    SwingType,
)

logger = logging.getLogger(__name__)


class SMCConstants:
    """Constants for SMC analysis - eliminates magic numbers"""
    # Swing detection
    SWING_LEFT_BARS = 3
    SWING_RIGHT_BARS = 3

    # Liquidity pools
    LIQUIDITY_TOLERANCE = 0.003  # 0.3% relative to the seed swing
    LIQUIDITY_MIN_MEMBERS = 2

    # SMT
    SMT_SWING_BARS = 2
    SMT_INTERVAL_SECONDS = 300
    SMT_TOLERANCE_INTERVALS = 2


@dataclass(frozen=True)
class SwingPoint:
    """A confirmed fractal high or low"""
    price: float
    time: int
    type: SwingType
    index: int  # position in the source candle array

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BreakEvent:
    """A close beyond a prior swing (BOS or CHoCH)"""
    type: BreakType
    direction: Polarity
    price: float  # the broken swing level
    time: int  # time of the breaking candle
    index: int  # index of the breaking candle
    swing_index: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class MarketStructure:
    """Trend label plus the swings and breaks it was derived from"""
    type: StructureType
    swings: List[SwingPoint] = field(default_factory=list)
    bos: List[BreakEvent] = field(default_factory=list)
    choch: List[BreakEvent] = field(default_factory=list)

    @property
    def highs(self) -> List[SwingPoint]:
        return [s for s in self.swings if s.type == SwingType.HIGH]

    @property
    def lows(self) -> List[SwingPoint]:
        return [s for s in self.swings if s.type == SwingType.LOW]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "swings": [s.to_dict() for s in self.swings],
            "bos": [b.to_dict() for b in self.bos],
            "choch": [c.to_dict() for c in self.choch],
        }


@dataclass(frozen=True)
class LiquidityPool:
    """Cluster of near-equal swing highs (EQH) or lows (EQL)"""
    price: float  # mean of the group
    type: PoolType
    time: int  # most recent member
    strength: int  # group size

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FVG:
    """A fair value gap (imbalance)"""
    top: float
    bottom: float
    time: int  # middle candle
    type: Polarity
    index: int  # middle candle

    @property
    def midpoint(self) -> float:
        """Get 50% level of FVG"""
        return (self.top + self.bottom) / 2

    def contains(self, price: float) -> bool:
        return self.bottom <= price <= self.top

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SMTDivergence:
    """Primary/reference swing non-confirmation"""
    type: Polarity
    reference_symbol: str
    time: int
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def detect_swings(
    candles: Sequence[Candle],
    left_bars: int = SMCConstants.SWING_LEFT_BARS,
    right_bars: int = SMCConstants.SWING_RIGHT_BARS
) -> List[SwingPoint]:
    """
    Detect fractal swing highs and lows.

    A bar is a swing HIGH when its high is strictly above every high in the
    ``left_bars`` before it and the ``right_bars`` after it; a tie on either
    side disqualifies it. LOW is the mirror. Bars closer than the window to
    either end of the array are never candidates.

    Args:
        candles: Candles sorted ascending by time
        left_bars: Bars required to the left
        right_bars: Bars required to the right

    Returns:
        Swing points ordered by index (HIGH before LOW on the same bar)
    """
    swings: List[SwingPoint] = []
    for i in range(left_bars, len(candles) - right_bars):
        bar = candles[i]
        neighbours = list(candles[i - left_bars:i]) + list(candles[i + 1:i + 1 + right_bars])

        if all(bar.high > other.high for other in neighbours):
            swings.append(SwingPoint(bar.high, bar.time, SwingType.HIGH, i))
        if all(bar.low < other.low for other in neighbours):
            swings.append(SwingPoint(bar.low, bar.time, SwingType.LOW, i))

    return swings


def classify_structure(swings: Sequence[SwingPoint]) -> StructureType:
    """
    Classify trend from the two most recent highs and the two most recent lows.

    UP_TREND needs a higher high AND a higher low; DOWN_TREND a lower high AND
    a lower low. Anything else, including fewer than two swings of a type, is
    CONSOLIDATION.
    """
    highs = [s for s in swings if s.type == SwingType.HIGH]
    lows = [s for s in swings if s.type == SwingType.LOW]
    if len(highs) < 2 or len(lows) < 2:
        return StructureType.CONSOLIDATION

    last_high, prev_high = highs[-1], highs[-2]
    last_low, prev_low = lows[-1], lows[-2]

    if last_high.price > prev_high.price and last_low.price > prev_low.price:
        return StructureType.UP_TREND
    if last_high.price < prev_high.price and last_low.price < prev_low.price:
        return StructureType.DOWN_TREND
    return StructureType.CONSOLIDATION


def detect_structure_breaks(
    candles: Sequence[Candle],
    swings: Sequence[SwingPoint]
) -> List[BreakEvent]:
    """
    Detect BOS and CHoCH events.

    Each swing is broken by the first later candle that closes beyond it.
    Breaking a high is bullish: a BOS when the two lows preceding the swing are
    rising, otherwise a CHoCH. Breaking a low is the bearish mirror. Swings
    without two prior opposite swings are skipped.

    Returns:
        Break events ordered by the breaking candle's index
    """
    events: List[BreakEvent] = []
    for pos, swing in enumerate(swings):
        prior = swings[:pos]
        if swing.type == SwingType.HIGH:
            prior_lows = [s for s in prior if s.type == SwingType.LOW]
            if len(prior_lows) < 2:
                continue
            for j in range(swing.index + 1, len(candles)):
                if candles[j].close > swing.price:
                    trending = prior_lows[-1].price > prior_lows[-2].price
                    events.append(BreakEvent(
                        type=BreakType.BOS if trending else BreakType.CHOCH,
                        direction=Polarity.BULLISH,
                        price=swing.price,
                        time=candles[j].time,
                        index=j,
                        swing_index=swing.index,
                    ))
                    break
        else:
            prior_highs = [s for s in prior if s.type == SwingType.HIGH]
            if len(prior_highs) < 2:
                continue
            for j in range(swing.index + 1, len(candles)):
                if candles[j].close < swing.price:
                    trending = prior_highs[-1].price < prior_highs[-2].price
                    events.append(BreakEvent(
                        type=BreakType.BOS if trending else BreakType.CHOCH,
                        direction=Polarity.BEARISH,
                        price=swing.price,
                        time=candles[j].time,
                        index=j,
                        swing_index=swing.index,
                    ))
                    break

    events.sort(key=lambda e: (e.index, e.swing_index))
    return events


def detect_market_structure(
    candles: Sequence[Candle],
    left_bars: int = SMCConstants.SWING_LEFT_BARS,
    right_bars: int = SMCConstants.SWING_RIGHT_BARS
) -> MarketStructure:
    """
    Full structure pass: swings, trend label, BOS and CHoCH.

    Args:
        candles: Candles sorted ascending by time
        left_bars: Swing window to the left
        right_bars: Swing window to the right

    Returns:
        MarketStructure
    """
    swings = detect_swings(candles, left_bars, right_bars)
    breaks = detect_structure_breaks(candles, swings)
    structure = MarketStructure(
        type=classify_structure(swings),
        swings=swings,
        bos=[b for b in breaks if b.type == BreakType.BOS],
        choch=[b for b in breaks if b.type == BreakType.CHOCH],
    )
    logger.debug(
        "Structure %s: %d swings, %d BOS, %d CHoCH",
        structure.type.value, len(swings), len(structure.bos), len(structure.choch)
    )
    return structure


def _group_pools(
    swings: Sequence[SwingPoint],
    pool_type: PoolType,
    tolerance: float
) -> List[LiquidityPool]:
    pools = []
    visited = [False] * len(swings)
    for i, seed in enumerate(swings):
        if visited[i]:
            continue
        visited[i] = True
        group = [seed]
        for j in range(i + 1, len(swings)):
            if visited[j]:
                continue
            # Tolerance is anchored on the seed, not on the running mean
            if abs(swings[j].price - seed.price) / seed.price <= tolerance:
                visited[j] = True
                group.append(swings[j])

        if len(group) >= SMCConstants.LIQUIDITY_MIN_MEMBERS:
            pools.append(LiquidityPool(
                price=sum(s.price for s in group) / len(group),
                type=pool_type,
                time=max(s.time for s in group),
                strength=len(group),
            ))
    return pools


def detect_liquidity(
    swings: Sequence[SwingPoint],
    tolerance: float = SMCConstants.LIQUIDITY_TOLERANCE
) -> List[LiquidityPool]:
    """
    Group near-equal swings into EQH/EQL liquidity pools.

    Greedy single pass per swing type: the first unvisited swing seeds a group
    and claims every later unvisited swing within ``tolerance`` of the seed's
    price. Groups of two or more become pools.

    Args:
        swings: Swing points in time order
        tolerance: Relative price tolerance (0.003 = 0.3%)

    Returns:
        EQH pools followed by EQL pools
    """
    highs = [s for s in swings if s.type == SwingType.HIGH]
    lows = [s for s in swings if s.type == SwingType.LOW]
    pools = _group_pools(highs, PoolType.EQH, tolerance) + _group_pools(lows, PoolType.EQL, tolerance)
    logger.debug("Liquidity: %d pools from %d swings", len(pools), len(swings))
    return pools


def detect_fvgs(candles: Sequence[Candle]) -> List[FVG]:
    """
    Detect 3-candle fair value gaps.

    Bullish when candle[i-2].high < candle[i].low, bearish when
    candle[i-2].low > candle[i].high. The gap is stamped with the middle
    candle's time and index. Mitigation is left to consumers.
    """
    gaps: List[FVG] = []
    for i in range(2, len(candles)):
        first, middle, third = candles[i - 2], candles[i - 1], candles[i]
        if first.high < third.low:
            gaps.append(FVG(top=third.low, bottom=first.high, time=middle.time,
                            type=Polarity.BULLISH, index=i - 1))
        if first.low > third.high:
            gaps.append(FVG(top=first.low, bottom=third.high, time=middle.time,
                            type=Polarity.BEARISH, index=i - 1))
    return gaps


@dataclass(frozen=True)
class ICTBlock:
    """Order block or breaker block zone"""
    type: BlockType
    direction: Polarity
    timeframe: str
    top: float
    bottom: float
    price: float  # origin or broken swing level
    time: int  # time of the zone candle
    score: int
    factors: Tuple[str, ...] = ()
    is_active: bool = True

    @property
    def id(self) -> str:
        prefix = "ob" if self.type == BlockType.ORDER_BLOCK else "bb"
        return f"{prefix}-{self.timeframe}-{self.time}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["factors"] = list(self.factors)
        data["id"] = self.id
        return data


def _block_mitigated(candles: Sequence[Candle], start: int, direction: Polarity,
                     top: float, bottom: float) -> bool:
    # A close through the far side of the zone after the break retires it
    for candle in candles[start + 1:]:
        if direction == Polarity.BULLISH and candle.close < bottom:
            return True
        if direction == Polarity.BEARISH and candle.close > top:
            return True
    return False


def detect_order_blocks(
    candles: Sequence[Candle],
    structure: MarketStructure,
    fvgs: Sequence[FVG],
    timeframe: str = "M15"
) -> List[ICTBlock]:
    """
    Detect order blocks at the origin of displaced BOS legs.

    For every BOS the origin is the last opposite swing before the breaking
    candle (a low for a bullish break). The block qualifies only when a
    same-direction FVG sits after the origin and no later than the break.
    The zone spans the origin candle's range.

    Args:
        candles: Candles the structure was built from
        structure: Market structure with its BOS events
        fvgs: Fair value gaps of the same candles
        timeframe: Label stamped into the block id

    Returns:
        Blocks ordered by break, one per origin candle
    """
    blocks: List[ICTBlock] = []
    seen = set()
    for bos in structure.bos:
        origin_type = SwingType.LOW if bos.direction == Polarity.BULLISH else SwingType.HIGH
        origins = [s for s in structure.swings if s.type == origin_type and s.index < bos.index]
        if not origins:
            continue
        origin = origins[-1]
        displaced = any(
            f.type == bos.direction and origin.index < f.index <= bos.index
            for f in fvgs
        )
        if not displaced or origin.time in seen:
            continue
        seen.add(origin.time)

        candle = candles[origin.index]
        blocks.append(ICTBlock(
            type=BlockType.ORDER_BLOCK,
            direction=bos.direction,
            timeframe=timeframe,
            top=candle.high,
            bottom=candle.low,
            price=origin.price,
            time=origin.time,
            score=2,
            factors=("BOS_ORIGIN", "WITH_DISPLACEMENT"),
            is_active=not _block_mitigated(candles, bos.index, bos.direction, candle.high, candle.low),
        ))
    return blocks


def detect_breaker_blocks(
    candles: Sequence[Candle],
    structure: MarketStructure,
    timeframe: str = "M15"
) -> List[ICTBlock]:
    """
    Detect breaker blocks: swings that a BOS closed through.

    The broken swing candle flips role; a high broken by a bullish BOS
    becomes bullish support. The zone spans that candle's range.
    """
    blocks: List[ICTBlock] = []
    seen = set()
    for bos in structure.bos:
        candle = candles[bos.swing_index]
        if candle.time in seen:
            continue
        seen.add(candle.time)
        blocks.append(ICTBlock(
            type=BlockType.BREAKER,
            direction=bos.direction,
            timeframe=timeframe,
            top=candle.high,
            bottom=candle.low,
            price=bos.price,
            time=candle.time,
            score=2,
            factors=("STRUCTURE_FLIP", "LIQ_GRAB"),
            is_active=not _block_mitigated(candles, bos.index, bos.direction, candle.high, candle.low),
        ))
    return blocks


def _nearest_swing(
    target: SwingPoint,
    candidates: Sequence[SwingPoint],
    tolerance_seconds: int
) -> Optional[SwingPoint]:
    best = None
    best_diff = float("inf")
    for candidate in candidates:
        diff = abs(candidate.time - target.time)
        # Strict comparison keeps the first candidate on ties
        if diff < best_diff and diff <= tolerance_seconds:
            best = candidate
            best_diff = diff
    return best


def _direction_word(rising: bool, kind: str) -> str:
    if kind == "high":
        return "HH" if rising else "LH"
    return "HL" if rising else "LL"


def detect_smt(
    primary: MarketStructure,
    reference: MarketStructure,
    reference_symbol: str,
    interval_seconds: int = SMCConstants.SMT_INTERVAL_SECONDS
) -> Optional[SMTDivergence]:
    """
    Detect SMT divergence between a primary and one reference instrument.

    The primary's last two highs are matched to the nearest reference highs
    within ``2 * interval_seconds``. When the primary makes a higher high and
    the reference does not (or vice versa) the divergence is BEARISH. Lows are
    checked only when the highs agree; a disagreement there is BULLISH.

    Args:
        primary: Structure of the traded instrument
        reference: Structure of the correlated instrument
        reference_symbol: Label carried into the result
        interval_seconds: Candle interval of both series

    Returns:
        The first divergence found, or None
    """
    tolerance = interval_seconds * SMCConstants.SMT_TOLERANCE_INTERVALS

    for swing_type, polarity, kind in (
        (SwingType.HIGH, Polarity.BEARISH, "high"),
        (SwingType.LOW, Polarity.BULLISH, "low"),
    ):
        p_swings = [s for s in primary.swings if s.type == swing_type]
        r_swings = [s for s in reference.swings if s.type == swing_type]
        if len(p_swings) < 2 or len(r_swings) < 2:
            continue

        p_last, p_prev = p_swings[-1], p_swings[-2]
        r_last = _nearest_swing(p_last, r_swings, tolerance)
        r_prev = _nearest_swing(p_prev, r_swings, tolerance)
        if r_last is None or r_prev is None:
            continue

        p_rising = p_last.price > p_prev.price
        r_rising = r_last.price > r_prev.price
        if p_rising != r_rising:
            label = "Highs" if kind == "high" else "Lows"
            return SMTDivergence(
                type=polarity,
                reference_symbol=reference_symbol,
                time=p_last.time,
                description=(
                    f"{label} Divergence: Primary {_direction_word(p_rising, kind)} "
                    f"vs {reference_symbol} {_direction_word(r_rising, kind)}"
                ),
            )
    return None


def detect_smt_divergences(
    primary: MarketStructure,
    references: Mapping[str, Optional[MarketStructure]],
    interval_seconds: int = SMCConstants.SMT_INTERVAL_SECONDS
) -> List[SMTDivergence]:
    """
    Run ``detect_smt`` against every reference symbol.

    Missing or empty references are skipped rather than treated as errors.
    """
    divergences = []
    for symbol, structure in references.items():
        if structure is None or not structure.swings:
            logger.debug("SMT: skipping reference %s (no data)", symbol)
            continue
        divergence = detect_smt(primary, structure, symbol, interval_seconds)
        if divergence is not None:
            divergences.append(divergence)
    return divergences


class SmartMoneyAnalyzer:
    """Bundle the SMC detectors behind one configured entry point"""

    def __init__(
        self,
        left_bars: int = SMCConstants.SWING_LEFT_BARS,
        right_bars: int = SMCConstants.SWING_RIGHT_BARS,
        liquidity_tolerance: float = SMCConstants.LIQUIDITY_TOLERANCE,
        smt_interval_seconds: int = SMCConstants.SMT_INTERVAL_SECONDS,
        smt_swing_bars: int = SMCConstants.SMT_SWING_BARS
    ):
        """
        Initialize SMC analyzer.

        Args:
            left_bars: Swing window to the left (default 3)
            right_bars: Swing window to the right (default 3)
            liquidity_tolerance: Relative EQH/EQL tolerance (default 0.3%)
            smt_interval_seconds: Candle interval used for SMT time matching
            smt_swing_bars: Swing window on both sides for SMT (default 2)
        """
        self.left_bars = left_bars
        self.right_bars = right_bars
        self.liquidity_tolerance = liquidity_tolerance
        self.smt_interval_seconds = smt_interval_seconds
        self.smt_swing_bars = smt_swing_bars

    def structure(self, candles: Sequence[Candle]) -> MarketStructure:
        return detect_market_structure(candles, self.left_bars, self.right_bars)

    def liquidity(self, structure: MarketStructure) -> List[LiquidityPool]:
        return detect_liquidity(structure.swings, self.liquidity_tolerance)

    def fair_value_gaps(self, candles: Sequence[Candle]) -> List[FVG]:
        return detect_fvgs(candles)

    def order_blocks(
        self,
        candles: Sequence[Candle],
        structure: MarketStructure,
        fvgs: Sequence[FVG],
        timeframe: str = "M15"
    ) -> List[ICTBlock]:
        return detect_order_blocks(candles, structure, fvgs, timeframe)

    def breaker_blocks(
        self,
        candles: Sequence[Candle],
        structure: MarketStructure,
        timeframe: str = "M15"
    ) -> List[ICTBlock]:
        return detect_breaker_blocks(candles, structure, timeframe)

    def smt_structure(self, candles: Sequence[Candle]) -> MarketStructure:
        """Structure at the narrower SMT swing window."""
        return detect_market_structure(candles, self.smt_swing_bars, self.smt_swing_bars)

    def smt(
        self,
        candles: Sequence[Candle],
        references: Mapping[str, Sequence[Candle]]
    ) -> List[SMTDivergence]:
        """
        Detect SMT divergences against raw reference candle feeds.

        Primary and reference swings are both taken at ``smt_swing_bars``,
        never at the general structure window.

        Args:
            candles: Candles of the traded instrument
            references: Candle feeds keyed by symbol; empty feeds are skipped

        Returns:
            One divergence at most per reference symbol
        """
        structures = {
            symbol: self.smt_structure(feed) if feed else None
            for symbol, feed in references.items()
        }
        return detect_smt_divergences(self.smt_structure(candles), structures, self.smt_interval_seconds)
