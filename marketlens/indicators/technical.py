"""
Technical Indicators

Plain numpy implementations of the textbook indicators the signal layer
consumes:
- EMA (SMA-seeded)
- ATR and ADX (Wilder smoothing)
- MACD (12, 26, 9)
- MFI (14)
- Session VWAP and VWAP deviation bands
- Bollinger Bands

plus the market-state classifier that folds VWAP bands, MACD and MFI into a
single OVERBOUGHT / OVERSOLD / TREND_UP / TREND_DOWN / RANGE label.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, List, Optional, Sequence

import numpy as np

from marketlens.indicators.candles import Candle, ohlcv_arrays
from marketlens.schemas.base import MarketState


class IndicatorConstants:
    """Indicator periods and thresholds"""
    ATR_PERIOD = 14
    ADX_PERIOD = 14

    MACD_FAST = 12
    MACD_SLOW = 26
    MACD_SIGNAL = 9

    MFI_PERIOD = 14
    MFI_OVERBOUGHT = 80
    MFI_OVERSOLD = 20

    VWAP_BAND_PERIOD = 20
    VWAP_BAND_MULTIPLIER = 2.0

    BOLLINGER_PERIOD = 20
    BOLLINGER_STD = 2.0

    EMA_PERIODS = (20, 50, 200)


@dataclass
class MACDValue:
    macd: float
    signal: float
    histogram: float
    cross: Optional[str] = None  # BULLISH / BEARISH on the bar of a crossover


@dataclass
class MFIValue:
    mfi: float
    overbought: bool
    oversold: bool


@dataclass
class BandValue:
    """Upper/lower envelope around a basis line."""
    basis: float
    upper: float
    lower: float

    @property
    def width(self) -> float:
        return self.upper - self.lower


@dataclass
class MarketStateFlags:
    price_above_vwap: bool = False
    price_below_vwap: bool = False
    outside_vwap_upper: bool = False
    outside_vwap_lower: bool = False
    macd_bullish: bool = False
    macd_bearish: bool = False
    mfi_overbought: bool = False
    mfi_oversold: bool = False


@dataclass
class MarketStateResult:
    state: MarketState
    flags: MarketStateFlags = field(default_factory=MarketStateFlags)


@dataclass
class TechnicalSnapshot:
    """Latest-bar values of every technical indicator."""
    bollinger: Optional[BandValue]
    vwap_bands: Optional[BandValue]
    macd: Optional[MACDValue]
    mfi: Optional[MFIValue]
    market_state: MarketStateResult

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EMASnapshot:
    ema20: Optional[float] = None
    ema50: Optional[float] = None
    ema200: Optional[float] = None

    @property
    def complete(self) -> bool:
        return None not in (self.ema20, self.ema50, self.ema200)


def _last_finite(series: np.ndarray) -> Optional[float]:
    finite = series[np.isfinite(series)]
    return float(finite[-1]) if len(finite) else None


def ema_series(values: Sequence[float], period: int) -> np.ndarray:
    """
    Exponential moving average seeded with the SMA of the first ``period``
    values. Entries before the seed are NaN.
    """
    data = np.asarray(values, dtype=float)
    out = np.full(len(data), np.nan)
    if period <= 0 or len(data) < period:
        return out

    k = 2.0 / (period + 1)
    out[period - 1] = np.mean(data[:period])
    for i in range(period, len(data)):
        out[i] = (data[i] - out[i - 1]) * k + out[i - 1]
    return out


def true_range(high: np.ndarray, low: np.ndarray, close: np.ndarray) -> np.ndarray:
    """True Range; the first bar uses its own high-low span."""
    tr = np.zeros(len(high))
    if len(high) == 0:
        return tr
    tr[0] = high[0] - low[0]
    for i in range(1, len(high)):
        tr[i] = max(
            high[i] - low[i],
            abs(high[i] - close[i - 1]),
            abs(low[i] - close[i - 1])
        )
    return tr


def wilder_smooth(data: np.ndarray, period: int) -> np.ndarray:
    """Wilder's smoothing, seeded with the mean of the first ``period`` values."""
    out = np.full(len(data), np.nan)
    if len(data) < period:
        return out
    out[period - 1] = np.mean(data[:period])
    for i in range(period, len(data)):
        out[i] = (out[i - 1] * (period - 1) + data[i]) / period
    return out


def atr_series(candles: Sequence[Candle], period: int = IndicatorConstants.ATR_PERIOD) -> np.ndarray:
    """Wilder ATR aligned with ``candles`` (NaN until enough bars)."""
    arrays = ohlcv_arrays(candles)
    tr = true_range(arrays["high"], arrays["low"], arrays["close"])
    return wilder_smooth(tr, period)


def current_atr(candles: Sequence[Candle], period: int = IndicatorConstants.ATR_PERIOD) -> Optional[float]:
    """ATR at the last bar, or None with too little data."""
    if len(candles) < period + 1:
        return None
    return _last_finite(atr_series(candles, period))


def calculate_adx(candles: Sequence[Candle], period: int = IndicatorConstants.ADX_PERIOD) -> Optional[float]:
    """
    Average Directional Index.

    Directional movement and true range are smoothed with running Wilder sums
    (``sum - sum/period + x``); the ADX is the mean of the last ``period`` DX
    values.

    Returns:
        ADX (0-100), or None with fewer than ``2 * period`` candles
    """
    if len(candles) < period * 2:
        return None

    trs, plus_dm, minus_dm = [], [], []
    for prev, curr in zip(candles, candles[1:]):
        trs.append(max(
            curr.high - curr.low,
            abs(curr.high - prev.close),
            abs(curr.low - prev.close)
        ))
        up = curr.high - prev.high
        down = prev.low - curr.low
        plus_dm.append(up if up > down and up > 0 else 0.0)
        minus_dm.append(down if down > up and down > 0 else 0.0)

    def running_sum(data: List[float]) -> List[float]:
        total = sum(data[:period])
        sums = [total]
        for value in data[period:]:
            total = total - total / period + value
            sums.append(total)
        return sums

    tr_sum = running_sum(trs)
    plus_sum = running_sum(plus_dm)
    minus_sum = running_sum(minus_dm)

    dxs = []
    for tr, pdm, mdm in zip(tr_sum, plus_sum, minus_sum):
        if tr == 0:
            continue
        pdi = pdm / tr * 100
        mdi = mdm / tr * 100
        if pdi + mdi == 0:
            continue
        dxs.append(abs(pdi - mdi) / (pdi + mdi) * 100)

    if len(dxs) < period:
        return None
    return float(np.mean(dxs[-period:]))


def calculate_emas(candles: Sequence[Candle]) -> EMASnapshot:
    """Latest EMA20/50/200 (None where the series is too short)."""
    closes = [c.close for c in candles]
    values = [_last_finite(ema_series(closes, p)) for p in IndicatorConstants.EMA_PERIODS]
    return EMASnapshot(*values)


def macd_series(
    closes: Sequence[float],
    fast: int = IndicatorConstants.MACD_FAST,
    slow: int = IndicatorConstants.MACD_SLOW,
    signal: int = IndicatorConstants.MACD_SIGNAL
) -> List[Optional[MACDValue]]:
    """MACD line, signal line and crossover flag per bar."""
    data = np.asarray(closes, dtype=float)
    if len(data) < slow:
        return [None] * len(data)

    macd_line = ema_series(data, fast) - ema_series(data, slow)
    valid = np.where(np.isfinite(macd_line))[0]
    signal_line = np.full(len(data), np.nan)
    if len(valid):
        signal_line[valid] = ema_series(macd_line[valid], signal)

    results: List[Optional[MACDValue]] = []
    for i in range(len(data)):
        m, s = macd_line[i], signal_line[i]
        if not (np.isfinite(m) and np.isfinite(s)):
            results.append(None)
            continue
        cross = None
        if i > 0 and np.isfinite(macd_line[i - 1]) and np.isfinite(signal_line[i - 1]):
            if macd_line[i - 1] <= signal_line[i - 1] and m > s:
                cross = "BULLISH"
            elif macd_line[i - 1] >= signal_line[i - 1] and m < s:
                cross = "BEARISH"
        results.append(MACDValue(macd=float(m), signal=float(s), histogram=float(m - s), cross=cross))
    return results


def mfi_series(candles: Sequence[Candle], period: int = IndicatorConstants.MFI_PERIOD) -> List[Optional[MFIValue]]:
    """Money Flow Index over typical price * volume."""
    if len(candles) < period + 1:
        return [None] * len(candles)

    typical = [c.typical_price for c in candles]
    results: List[Optional[MFIValue]] = []
    for i in range(len(candles)):
        if i < period:
            results.append(None)
            continue
        positive = negative = 0.0
        for j in range(i - period + 1, i + 1):
            flow = typical[j] * candles[j].volume
            if typical[j] > typical[j - 1]:
                positive += flow
            elif typical[j] < typical[j - 1]:
                negative += flow
        mfi = 100.0 if negative == 0 else 100 - 100 / (1 + positive / negative)
        results.append(MFIValue(
            mfi=mfi,
            overbought=mfi > IndicatorConstants.MFI_OVERBOUGHT,
            oversold=mfi < IndicatorConstants.MFI_OVERSOLD,
        ))
    return results


def vwap_series(
    candles: Sequence[Candle],
    session_key: Optional[Callable[[int], Any]] = None
) -> List[Optional[float]]:
    """
    Session-anchored VWAP on typical price.

    Args:
        candles: Intraday candles, ascending
        session_key: Maps a candle time to its session; the cumulative sums
            reset whenever the key changes. Defaults to the New York day.

    Returns:
        VWAP per bar (None until the session has traded volume)
    """
    if session_key is None:
        from marketlens.context.session import ny_date
        session_key = ny_date

    out: List[Optional[float]] = []
    current = None
    cum_pv = cum_vol = 0.0
    for candle in candles:
        key = session_key(candle.time)
        if key != current:
            current = key
            cum_pv = cum_vol = 0.0
        cum_pv += candle.typical_price * candle.volume
        cum_vol += candle.volume
        out.append(cum_pv / cum_vol if cum_vol > 0 else None)
    return out


def vwap_bands(
    closes: Sequence[float],
    vwaps: Sequence[Optional[float]],
    period: int = IndicatorConstants.VWAP_BAND_PERIOD,
    multiplier: float = IndicatorConstants.VWAP_BAND_MULTIPLIER
) -> List[Optional[BandValue]]:
    """Bands at ``multiplier`` rolling stdevs of (close - vwap) around VWAP."""
    length = min(len(closes), len(vwaps))
    results: List[Optional[BandValue]] = [None] * length
    if length < period:
        return results

    basis = np.array([v if v is not None else 0.0 for v in vwaps[:length]], dtype=float)
    deviations = np.asarray(closes[:length], dtype=float) - basis
    for i in range(period - 1, length):
        if vwaps[i] is None:
            continue
        sigma = float(np.std(deviations[i - period + 1:i + 1]))
        results[i] = BandValue(
            basis=float(basis[i]),
            upper=float(basis[i] + multiplier * sigma),
            lower=float(basis[i] - multiplier * sigma),
        )
    return results


def bollinger_bands(
    closes: Sequence[float],
    period: int = IndicatorConstants.BOLLINGER_PERIOD,
    std_dev: float = IndicatorConstants.BOLLINGER_STD
) -> List[Optional[BandValue]]:
    """Classic Bollinger Bands (population stdev)."""
    data = np.asarray(closes, dtype=float)
    results: List[Optional[BandValue]] = [None] * len(data)
    for i in range(period - 1, len(data)):
        window = data[i - period + 1:i + 1]
        mid = float(np.mean(window))
        sigma = float(np.std(window))
        results[i] = BandValue(basis=mid, upper=mid + std_dev * sigma, lower=mid - std_dev * sigma)
    return results


def evaluate_market_state(
    price: float,
    vwap: Optional[float],
    bands: Optional[BandValue],
    macd: Optional[MACDValue],
    mfi: Optional[MFIValue]
) -> MarketStateResult:
    """
    Classify the current market state.

    Priority:
    1. OVERBOUGHT: above the upper VWAP band with MFI overbought
    2. OVERSOLD: below the lower VWAP band with MFI oversold
    3. TREND_UP: above VWAP, MACD bullish and beyond VWAP + 1 stdev
    4. TREND_DOWN: mirror of TREND_UP
    5. RANGE otherwise; UNKNOWN when an input is missing
    """
    flags = MarketStateFlags(
        price_above_vwap=vwap is not None and price > vwap,
        price_below_vwap=vwap is not None and price < vwap,
        outside_vwap_upper=bands is not None and price > bands.upper,
        outside_vwap_lower=bands is not None and price < bands.lower,
        macd_bullish=macd is not None and macd.macd > macd.signal,
        macd_bearish=macd is not None and macd.macd < macd.signal,
        mfi_overbought=mfi is not None and mfi.overbought,
        mfi_oversold=mfi is not None and mfi.oversold,
    )

    if bands is None or macd is None or mfi is None or vwap is None:
        return MarketStateResult(MarketState.UNKNOWN, flags)

    # Band width spans 4 stdevs, so a quarter of it is one stdev
    one_sd = bands.width / 4
    if flags.outside_vwap_upper and flags.mfi_overbought:
        state = MarketState.OVERBOUGHT
    elif flags.outside_vwap_lower and flags.mfi_oversold:
        state = MarketState.OVERSOLD
    elif flags.price_above_vwap and flags.macd_bullish and price > bands.basis + one_sd:
        state = MarketState.TREND_UP
    elif flags.price_below_vwap and flags.macd_bearish and price < bands.basis - one_sd:
        state = MarketState.TREND_DOWN
    else:
        state = MarketState.RANGE
    return MarketStateResult(state, flags)


def calculate_technical_snapshot(
    candles: Sequence[Candle],
    vwaps: Optional[Sequence[Optional[float]]] = None
) -> Optional[TechnicalSnapshot]:
    """
    Evaluate all indicators at the last bar.

    Args:
        candles: Intraday candles, ascending
        vwaps: Precomputed VWAP series (computed here when omitted)

    Returns:
        TechnicalSnapshot, or None for an empty series
    """
    if not candles:
        return None
    if vwaps is None:
        vwaps = vwap_series(candles)

    closes = [c.close for c in candles]
    last = len(candles) - 1
    bollinger = bollinger_bands(closes)[last]
    bands = vwap_bands(closes, vwaps)
    band = bands[last] if len(bands) > last else None
    macd = macd_series(closes)[last]
    mfi = mfi_series(candles)[last]

    state = evaluate_market_state(closes[last], vwaps[last], band, macd, mfi)
    return TechnicalSnapshot(
        bollinger=bollinger,
        vwap_bands=band,
        macd=macd,
        mfi=mfi,
        market_state=state,
    )
