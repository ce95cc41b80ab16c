"""
Volume profile approximation.

Each candle's volume is spread evenly across the price bins its high-low range
covers. From the resulting histogram we read the point of control (POC), the
value area holding 70% of volume, and high/low volume nodes (HVN/LVN) as
interior local extrema.
"""

import math
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from marketlens.indicators.candles import Candle

MIN_BINS = 8
MAX_BINS = 40


@dataclass
class VolumeProfile:
    poc: Optional[float]
    value_area_high: Optional[float]
    value_area_low: Optional[float]
    bin_prices: List[float] = field(default_factory=list)
    bin_volumes: List[float] = field(default_factory=list)
    hvns: List[float] = field(default_factory=list)
    lvns: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def calculate_volume_profile(
    candles: Sequence[Candle],
    bins: Optional[int] = None,
    value_area_pct: float = 0.70
) -> VolumeProfile:
    """
    Build a volume profile.

    Args:
        candles: Candles to profile
        bins: Bin count (defaults to sqrt(n) clamped to 8..40)
        value_area_pct: Share of volume inside the value area

    Returns:
        VolumeProfile (all-None levels when there is no traded volume)
    """
    traded = [c for c in candles if c.volume > 0]
    if not traded:
        return VolumeProfile(None, None, None)

    p_min = min(c.low for c in traded)
    p_max = max(c.high for c in traded)
    if p_max <= p_min:
        return VolumeProfile(p_min, p_min, p_min, [p_min], [sum(c.volume for c in traded)])

    count = bins or min(MAX_BINS, max(MIN_BINS, int(math.sqrt(len(traded)))))
    width = (p_max - p_min) / count
    volumes = np.zeros(count)

    def index_of(price: float) -> int:
        return min(count - 1, max(0, int((price - p_min) / width)))

    for candle in traded:
        lo, hi = index_of(candle.low), index_of(candle.high)
        volumes[lo:hi + 1] += candle.volume / (hi - lo + 1)

    centers = [p_min + (i + 0.5) * width for i in range(count)]
    poc_idx = int(np.argmax(volumes))

    # Grow the value area from the POC toward the heavier neighbour
    target = volumes.sum() * value_area_pct
    low_idx = high_idx = poc_idx
    covered = volumes[poc_idx]
    while covered < target and (low_idx > 0 or high_idx < count - 1):
        below = volumes[low_idx - 1] if low_idx > 0 else -1.0
        above = volumes[high_idx + 1] if high_idx < count - 1 else -1.0
        if above >= below:
            high_idx += 1
            covered += above
        else:
            low_idx -= 1
            covered += below

    hvns, lvns = [], []
    for i in range(1, count - 1):
        if volumes[i] > volumes[i - 1] and volumes[i] > volumes[i + 1]:
            hvns.append(centers[i])
        elif volumes[i] < volumes[i - 1] and volumes[i] < volumes[i + 1]:
            lvns.append(centers[i])

    return VolumeProfile(
        poc=centers[poc_idx],
        value_area_high=centers[high_idx] + width / 2,
        value_area_low=centers[low_idx] - width / 2,
        bin_prices=centers,
        bin_volumes=[float(v) for v in volumes],
        hvns=hvns,
        lvns=lvns,
    )
