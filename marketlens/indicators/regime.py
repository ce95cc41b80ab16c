"""
Market Regime Detection Module

Classifies the intraday regime from three measurements:
1. Trend strength: ADX(14)
2. Volatility ratio: current ATR(14) over the mean of its last 20 values
3. Swing density: swings printed inside the trailing 50-candle window

Priority order: dense structure (CHOPPY) beats a strong ADX (TRENDING), which
beats volatility compression (RANGING) or expansion (EXPANSION). A strong ADX
together with dense swings is forced to CHOPPY ("volatile trend").

Used for:
- Scenario confidence penalties/bonuses
- Short TTLs for scalps in chop
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Sequence

import numpy as np

from marketlens.indicators.candles import Candle
from marketlens.indicators.smart_money import SwingPoint
from marketlens.indicators.technical import atr_series, calculate_adx
from marketlens.schemas.base import RegimeState


@dataclass
class MarketRegime:
    """Regime label with the metrics that produced it"""
    state: RegimeState
    confidence: int
    reason: str
    adx: Optional[float] = None
    volatility_ratio: Optional[float] = None
    swing_density: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data


class MarketRegimeClassifier:
    """Classify market regime from ADX, ATR ratio and swing density"""

    def __init__(
        self,
        min_candles: int = 50,
        density_window: int = 50,
        choppy_density: int = 12,
        adx_trending: float = 25.0,
        compression_ratio: float = 0.75,
        expansion_ratio: float = 1.5,
        override_adx: float = 30.0,
        override_density: int = 10,
        atr_period: int = 14,
        atr_average_period: int = 20
    ):
        """
        Initialize regime classifier with configurable thresholds.

        Args:
            min_candles: Candles required before classifying (default 50)
            density_window: Trailing candles used for swing density (default 50)
            choppy_density: Swing count above which the regime is CHOPPY (default 12)
            adx_trending: ADX above which the market is TRENDING (default 25)
            compression_ratio: ATR ratio below which volatility is compressed (default 0.75)
            expansion_ratio: ATR ratio above which volatility is expanding (default 1.5)
            override_adx: ADX above which dense swings force CHOPPY (default 30)
            override_density: Swing count used by the volatile-trend override (default 10)
            atr_period: ATR period (default 14)
            atr_average_period: Trailing ATR values averaged for the ratio (default 20)
        """
        self.min_candles = min_candles
        self.density_window = density_window
        self.choppy_density = choppy_density
        self.adx_trending = adx_trending
        self.compression_ratio = compression_ratio
        self.expansion_ratio = expansion_ratio
        self.override_adx = override_adx
        self.override_density = override_density
        self.atr_period = atr_period
        self.atr_average_period = atr_average_period

    def classify(self, candles: Sequence[Candle], swings: Sequence[SwingPoint]) -> MarketRegime:
        """
        Classify the regime of a candle series.

        Args:
            candles: Intraday candles, ascending
            swings: Swings detected on the same candles

        Returns:
            MarketRegime (RANGING with "Insufficient Data" below min_candles)
        """
        if len(candles) < self.min_candles:
            return MarketRegime(RegimeState.RANGING, 50, "Insufficient Data")

        adx = calculate_adx(candles)
        ratio = self._volatility_ratio(candles)
        window_start = candles[len(candles) - self.density_window].time
        density = sum(1 for s in swings if s.time > window_start)

        return self.classify_metrics(adx if adx is not None else 0.0, ratio, density)

    def classify_metrics(self, adx: float, volatility_ratio: float, swing_density: int) -> MarketRegime:
        """
        Apply the classification rules to precomputed metrics.

        Args:
            adx: ADX value
            volatility_ratio: Current ATR over its trailing average
            swing_density: Swings inside the density window

        Returns:
            MarketRegime
        """
        if swing_density > self.choppy_density:
            regime = MarketRegime(RegimeState.CHOPPY, 90,
                                  f"High Frequency Structure ({swing_density} flips)")
        elif adx > self.adx_trending:
            regime = MarketRegime(RegimeState.TRENDING, 80, f"Strong Trend (ADX {adx:.1f})")
        elif volatility_ratio < self.compression_ratio:
            regime = MarketRegime(RegimeState.RANGING, 65, "Volatility Compression")
        elif volatility_ratio > self.expansion_ratio:
            regime = MarketRegime(RegimeState.EXPANSION, 70, "Volatility Expansion")
        else:
            regime = MarketRegime(RegimeState.RANGING, 50, "Weak Trend")

        # Volatile trend: strong ADX with deep retracements is still chop
        if adx > self.override_adx and swing_density > self.override_density:
            regime = MarketRegime(RegimeState.CHOPPY, 85, "Volatile Trend (Deep Retracements)")

        regime.adx = round(adx, 2)
        regime.volatility_ratio = round(volatility_ratio, 3)
        regime.swing_density = swing_density
        return regime

    def _volatility_ratio(self, candles: Sequence[Candle]) -> float:
        atr = atr_series(candles, self.atr_period)
        finite = atr[np.isfinite(atr)]
        if len(finite) == 0:
            return 1.0
        average = float(np.mean(finite[-self.atr_average_period:]))
        return float(finite[-1]) / average if average > 0 else 1.0


def detect_market_regime(candles: Sequence[Candle], swings: Sequence[SwingPoint]) -> MarketRegime:
    """Classify with default thresholds."""
    return MarketRegimeClassifier().classify(candles, swings)
