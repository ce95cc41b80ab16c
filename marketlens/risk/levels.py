"""
Risk Levels

Derives a structural invalidation and up to three targets from the current
bias. LONG invalidates below the nearest swing low and targets overhead
swing highs, equal highs, bearish FVG bottoms and the previous day high;
SHORT mirrors it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from marketlens.indicators.smart_money import FVG, LiquidityPool, MarketStructure
from marketlens.schemas.base import Direction, LevelType, Polarity, PoolType, SwingType

MAX_TARGETS = 3
DIRECTION_THRESHOLD = 10


@dataclass
class RiskLevel:
    price: float
    type: LevelType
    description: str
    distance: float
    distance_pct: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "price": self.price,
            "type": self.type.value,
            "description": self.description,
            "distance": self.distance,
            "distance_pct": self.distance_pct,
        }


@dataclass
class RiskAnalysis:
    direction: Direction
    targets: List[RiskLevel] = field(default_factory=list)
    invalidation: Optional[RiskLevel] = None
    rr: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction.value,
            "targets": [t.to_dict() for t in self.targets],
            "invalidation": self.invalidation.to_dict() if self.invalidation else None,
            "rr": self.rr,
        }


def _level(price: float, reference: float, level_type: LevelType, description: str) -> RiskLevel:
    distance = abs(price - reference)
    return RiskLevel(
        price=price,
        type=level_type,
        description=description,
        distance=distance,
        distance_pct=distance / reference * 100 if reference else 0.0,
    )


def calculate_risk_levels(
    price: float,
    bias_score: int,
    structure: MarketStructure,
    liquidity: Sequence[LiquidityPool],
    fvgs: Sequence[FVG],
    pdh: Optional[float],
    pdl: Optional[float]
) -> RiskAnalysis:
    """
    Compute invalidation, targets and reward/risk for the bias direction.

    Args:
        price: Current price
        bias_score: Composite bias score (>=10 LONG, <=-10 SHORT)
        structure: Market structure with swings
        liquidity: EQH/EQL pools
        fvgs: Fair value gaps
        pdh: Previous day high
        pdl: Previous day low

    Returns:
        RiskAnalysis (NEUTRAL carries no levels)
    """
    if bias_score >= DIRECTION_THRESHOLD:
        direction = Direction.LONG
    elif bias_score <= -DIRECTION_THRESHOLD:
        direction = Direction.SHORT
    else:
        return RiskAnalysis(direction=Direction.NEUTRAL)

    candidates: List[Tuple[float, str]] = []
    if direction == Direction.LONG:
        stops = sorted((s.price for s in structure.lows if s.price < price), reverse=True)
        candidates += [(s.price, "Swing High") for s in structure.highs if s.price > price]
        candidates += [(p.price, "EQH Liquidity") for p in liquidity
                       if p.type == PoolType.EQH and p.price > price]
        candidates += [(f.bottom, "Bearish FVG") for f in fvgs
                       if f.type == Polarity.BEARISH and f.bottom > price]
        if pdh and pdh > price:
            candidates.append((pdh, "PDH"))
        candidates.sort(key=lambda t: t[0])
    else:
        stops = sorted(s.price for s in structure.highs if s.price > price)
        candidates += [(s.price, "Swing Low") for s in structure.lows if s.price < price]
        candidates += [(p.price, "EQL Liquidity") for p in liquidity
                       if p.type == PoolType.EQL and p.price < price]
        candidates += [(f.top, "Bullish FVG") for f in fvgs
                       if f.type == Polarity.BULLISH and f.top < price]
        if pdl and pdl < price:
            candidates.append((pdl, "PDL"))
        candidates.sort(key=lambda t: t[0], reverse=True)

    invalidation = None
    if stops:
        invalidation = _level(stops[0], price, LevelType.INVALIDATION, "Potential Invalidation Zone")
    targets = [_level(p, price, LevelType.TARGET, desc) for p, desc in candidates[:MAX_TARGETS]]

    rr = None
    if invalidation is not None and targets and invalidation.distance > 0:
        rr = targets[0].distance / invalidation.distance

    return RiskAnalysis(direction=direction, targets=targets, invalidation=invalidation, rr=rr)
