"""
Pytest configuration and shared candle builders for MarketLens tests.

Every builder is deterministic and every time-dependent test passes an
explicit ``now``; nothing here reads the wall clock or the network.
"""

from datetime import datetime, timezone
from typing import List, Sequence, Tuple

import pytest

from marketlens.indicators.candles import Candle

# Monday 2024-06-10 13:00 UTC = 09:00 New York (EDT, inside the NY kill zone)
BASE_DT = datetime(2024, 6, 10, 13, 0, tzinfo=timezone.utc)
BASE_TIME = int(BASE_DT.timestamp())
# 2024-06-10 00:00 New York
NY_MIDNIGHT = int(datetime(2024, 6, 10, 4, 0, tzinfo=timezone.utc).timestamp())

M1 = 60
M15 = 900
DAY = 86400


def make_candle(time: int, open_: float, high: float, low: float, close: float,
                volume: float = 100.0) -> Candle:
    return Candle(time=time, open=open_, high=high, low=low, close=close, volume=volume)


def candles_from_ohlc(rows: Sequence[Tuple[float, float, float, float]], start: int = BASE_TIME,
                      step: int = M15, volume: float = 100.0) -> List[Candle]:
    """Candles from (open, high, low, close) rows spaced ``step`` seconds apart."""
    return [make_candle(start + i * step, o, h, l, c, volume) for i, (o, h, l, c) in enumerate(rows)]


def candles_from_closes(closes: Sequence[float], start: int = BASE_TIME, step: int = M1,
                        wick: float = 0.25, volume: float = 100.0) -> List[Candle]:
    """Each bar opens at the previous close with ``wick`` beyond the body."""
    candles = []
    prev = closes[0]
    for i, close in enumerate(closes):
        open_ = prev
        candles.append(make_candle(start + i * step, open_, max(open_, close) + wick,
                                   min(open_, close) - wick, close, volume))
        prev = close
    return candles


def zigzag_candles(pivots: Sequence[float], bars_per_leg: int = 4, start: int = BASE_TIME,
                   step: int = M1, volume: float = 100.0) -> List[Candle]:
    """
    Linear legs between pivot prices; every interior pivot becomes a strict
    3/3 fractal swing.
    """
    prices = [pivots[0]]
    for a, b in zip(pivots, pivots[1:]):
        leg = (b - a) / bars_per_leg
        prices.extend(a + leg * k for k in range(1, bars_per_leg + 1))

    candles = []
    prev = prices[0]
    for i, price in enumerate(prices):
        open_ = (prev + price) / 2
        candles.append(make_candle(start + i * step, open_, max(open_, price) + 0.25,
                                   min(open_, price) - 0.25, price, volume))
        prev = price
    return candles


def rows_from_highs(highs: Sequence[float]) -> List[Tuple[float, float, float, float]]:
    """Bars whose low sits one point under the high, so lows track highs."""
    return [(h - 0.5, h, h - 1.0, h - 0.5) for h in highs]


def psp_long_rows() -> List[Tuple[float, float, float, float]]:
    """
    A textbook LONG PSP on 31 bars.

    Swing low 97 at bar 20, swept to 95.5 at bar 23, displacement to 104 at
    bar 26, pullback to 99.5 at bar 28 and a continuation close of 104.5 at
    bar 30.
    """
    rows = [(100.0, 101.0, 99.0, 100.0)] * 20
    rows += [
        (100.0, 101.0, 97.0, 100.0),   # 20 swing low
        (100.0, 101.0, 99.0, 100.0),
        (100.0, 101.0, 99.0, 100.0),
        (99.0, 99.5, 95.5, 98.0),      # 23 sweep
        (98.0, 100.8, 97.8, 100.5),    # 24 displacement
        (100.5, 103.3, 100.3, 103.0),
        (103.0, 104.0, 102.8, 103.5),  # 26 peak
        (103.5, 103.7, 101.8, 102.0),
        (102.0, 102.2, 99.5, 100.0),   # 28 pullback touch
        (100.0, 102.3, 99.8, 102.0),
        (102.0, 104.8, 101.8, 104.5),  # 30 continuation
    ]
    return rows


UPTREND_PIVOTS = [100, 110, 104, 116, 108, 122, 114, 130]
DOWNTREND_REVERSAL_PIVOTS = [130, 120, 126, 114, 120, 108, 128]

# 2/2 swings: primary 110 -> 111 (HH), reference 109 -> 108.5 (LH).
# At 3/3 the 108.6 bar keeps the reference 108.5 from being a swing.
SMT_PRIMARY_HIGHS = [101, 102, 103, 110, 103, 102, 101, 102, 111, 102, 101, 100.5, 100.4, 100.3]
SMT_REFERENCE_HIGHS = [101, 102, 103, 109, 102, 108.6, 101, 103, 108.5, 102, 101, 100.5, 100.4, 100.3]


@pytest.fixture
def uptrend_candles() -> List[Candle]:
    """HH/HL zigzag; the final leg closes above the 122 high (BOS)."""
    return zigzag_candles(UPTREND_PIVOTS)


@pytest.fixture
def reversal_candles() -> List[Candle]:
    """LH/LL zigzag whose final leg closes above the 120 lower high (CHoCH)."""
    return zigzag_candles(DOWNTREND_REVERSAL_PIVOTS)


@pytest.fixture
def psp_long_candles() -> List[Candle]:
    return candles_from_ohlc(psp_long_rows())


@pytest.fixture
def flat_candles() -> List[Candle]:
    return candles_from_ohlc([(100.0, 101.0, 99.0, 100.0)] * 60)
