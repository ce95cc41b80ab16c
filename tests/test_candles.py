"""
Tests for the canonical candle model and its adapters.
"""

import pandas as pd
import pytest

from marketlens.indicators.candles import (
    Candle,
    candles_from_dataframe,
    candles_from_records,
    candles_to_dataframe,
    ohlcv_arrays,
)


class TestCandle:
    def test_derived_properties(self):
        candle = Candle(time=1, open=10.0, high=12.0, low=9.0, close=11.0, volume=5.0)
        assert candle.body == 1.0
        assert candle.range == 3.0
        assert candle.typical_price == pytest.approx((12 + 9 + 11) / 3)

    def test_candles_are_frozen(self):
        candle = Candle(time=1, open=10.0, high=12.0, low=9.0, close=11.0)
        with pytest.raises(Exception):
            candle.close = 5.0


class TestCandlesFromRecords:
    def test_accepts_time_or_timestamp_keys(self):
        records = [
            {"time": 120, "open": 1, "high": 2, "low": 0.5, "close": 1.5},
            {"timestamp": 60, "open": 1, "high": 2, "low": 0.5, "close": 1.2, "volume": 10},
        ]
        candles = candles_from_records(records)
        assert [c.time for c in candles] == [60, 120]
        assert candles[0].volume == 10.0
        assert candles[1].volume == 0.0

    def test_drops_records_with_missing_prices(self):
        records = [
            {"time": 60, "open": 1, "high": 2, "low": 0.5, "close": None},
            {"time": 120, "open": 1, "high": 2, "low": 0.5, "close": 1.5},
        ]
        assert [c.time for c in candles_from_records(records)] == [120]

    def test_millisecond_and_iso_times(self):
        records = [
            {"time": 1_718_000_000_000, "open": 1, "high": 2, "low": 0.5, "close": 1.5},
            {"time": "2024-06-10T13:00:00Z", "open": 1, "high": 2, "low": 0.5, "close": 1.5},
        ]
        times = [c.time for c in candles_from_records(records)]
        assert 1_718_000_000 in times
        assert 1_718_024_400 in times

    def test_duplicate_times_keep_last(self):
        records = [
            {"time": 60, "open": 1, "high": 2, "low": 0.5, "close": 1.1},
            {"time": 60, "open": 1, "high": 2, "low": 0.5, "close": 1.9},
        ]
        candles = candles_from_records(records)
        assert len(candles) == 1
        assert candles[0].close == 1.9


class TestDataFrameAdapters:
    def test_round_trip_through_dataframe(self):
        candles = [Candle(time=60 * i, open=1.0, high=2.0, low=0.5, close=1.5, volume=3.0) for i in range(5)]
        df = candles_to_dataframe(candles)
        assert isinstance(df.index, pd.DatetimeIndex)
        assert candles_from_dataframe(df) == candles

    def test_datetime_index_and_capitalized_columns(self):
        index = pd.date_range("2024-06-10 13:00", periods=3, freq="min", tz="UTC")
        df = pd.DataFrame({"Open": [1, 2, 3], "High": [2, 3, 4], "Low": [0, 1, 2], "Close": [1.5, 2.5, 3.5]},
                          index=index)
        candles = candles_from_dataframe(df)
        assert len(candles) == 3
        assert candles[1].time - candles[0].time == 60
        assert candles[2].close == 3.5

    def test_missing_column_raises(self):
        df = pd.DataFrame({"time": [1], "open": [1.0], "high": [2.0], "low": [0.5]})
        with pytest.raises(ValueError, match="close"):
            candles_from_dataframe(df)

    def test_ohlcv_arrays(self):
        candles = [Candle(time=i, open=1.0, high=2.0, low=0.5, close=float(i)) for i in range(4)]
        arrays = ohlcv_arrays(candles)
        assert list(arrays["close"]) == [0.0, 1.0, 2.0, 3.0]
        assert arrays["volume"].sum() == 0.0
