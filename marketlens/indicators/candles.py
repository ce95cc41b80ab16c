"""
Canonical OHLCV candle model.

Every detector in MarketLens consumes ``List[Candle]`` sorted ascending by
time. The helpers here turn provider-agnostic records or pandas frames into
that shape and back.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Sequence

import numpy as np
import pandas as pd

REQUIRED_COLUMNS = ("open", "high", "low", "close")


@dataclass(frozen=True)
class Candle:
    """One OHLCV bar. ``time`` is unix seconds."""
    time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0

    @property
    def body(self) -> float:
        """Signed body size (positive for up candles)."""
        return self.close - self.open

    @property
    def range(self) -> float:
        return self.high - self.low

    @property
    def typical_price(self) -> float:
        return (self.high + self.low + self.close) / 3

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _to_epoch_seconds(value: Any) -> int:
    if isinstance(value, (int, np.integer)):
        # Millisecond timestamps are common in provider payloads
        return int(value) // 1000 if value > 10**11 else int(value)
    if isinstance(value, float):
        return _to_epoch_seconds(int(value))
    ts = pd.Timestamp(value)
    if ts.tzinfo is None:
        ts = ts.tz_localize("UTC")
    return int(ts.timestamp())


def _dedupe_sorted(candles: Iterable[Candle]) -> List[Candle]:
    by_time: Dict[int, Candle] = {}
    for candle in candles:
        by_time[candle.time] = candle
    return [by_time[t] for t in sorted(by_time)]


def candles_from_records(records: Iterable[Dict[str, Any]]) -> List[Candle]:
    """
    Build candles from dict records.

    Accepts ``time`` or ``timestamp`` keys (seconds, milliseconds or ISO
    strings). Records with a missing price are dropped; duplicate times keep
    the last record.

    Args:
        records: Iterable of mappings with open/high/low/close[/volume]

    Returns:
        Candles sorted ascending by time
    """
    candles = []
    for record in records:
        raw_time = record.get("time", record.get("timestamp"))
        if raw_time is None:
            continue
        if any(record.get(col) is None for col in REQUIRED_COLUMNS):
            continue
        candles.append(Candle(
            time=_to_epoch_seconds(raw_time),
            open=float(record["open"]),
            high=float(record["high"]),
            low=float(record["low"]),
            close=float(record["close"]),
            volume=float(record.get("volume") or 0.0),
        ))
    return _dedupe_sorted(candles)


def candles_from_dataframe(df: pd.DataFrame) -> List[Candle]:
    """
    Build candles from a DataFrame.

    The time is read from a ``time``/``timestamp`` column or, failing that,
    from a DatetimeIndex.

    Raises:
        ValueError: If a price column or the time source is missing
    """
    frame = df.rename(columns=str.lower)
    missing = [col for col in REQUIRED_COLUMNS if col not in frame.columns]
    if missing:
        raise ValueError(f"Candle frame is missing columns: {', '.join(missing)}")

    if "time" in frame.columns:
        times = frame["time"]
    elif "timestamp" in frame.columns:
        times = frame["timestamp"]
    elif isinstance(frame.index, pd.DatetimeIndex):
        times = pd.Series(frame.index, index=frame.index)
    else:
        raise ValueError("Candle frame needs a time column or a DatetimeIndex")

    frame = frame.dropna(subset=list(REQUIRED_COLUMNS))
    volumes = frame["volume"].fillna(0.0) if "volume" in frame.columns else None

    candles = []
    for idx, row in frame.iterrows():
        candles.append(Candle(
            time=_to_epoch_seconds(times.loc[idx]),
            open=float(row["open"]),
            high=float(row["high"]),
            low=float(row["low"]),
            close=float(row["close"]),
            volume=float(volumes.loc[idx]) if volumes is not None else 0.0,
        ))
    return _dedupe_sorted(candles)


def candles_to_dataframe(candles: Sequence[Candle]) -> pd.DataFrame:
    """Convert candles to a DataFrame indexed by UTC timestamp."""
    df = pd.DataFrame([c.to_dict() for c in candles],
                      columns=["time", "open", "high", "low", "close", "volume"])
    df.index = pd.to_datetime(df["time"], unit="s", utc=True)
    return df


def ohlcv_arrays(candles: Sequence[Candle]) -> Dict[str, np.ndarray]:
    """Column arrays for numpy-based indicators."""
    return {
        "open": np.array([c.open for c in candles], dtype=float),
        "high": np.array([c.high for c in candles], dtype=float),
        "low": np.array([c.low for c in candles], dtype=float),
        "close": np.array([c.close for c in candles], dtype=float),
        "volume": np.array([c.volume for c in candles], dtype=float),
    }
