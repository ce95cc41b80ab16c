"""
Unit tests for the volume profile approximation
"""

import pytest

from conftest import candles_from_ohlc, make_candle, BASE_TIME
from marketlens.indicators.volume_profile import calculate_volume_profile


class TestVolumeProfile:
    def _profile_candles(self):
        return [
            make_candle(BASE_TIME, 100.0, 110.0, 100.0, 105.0, volume=100.0),
            make_candle(BASE_TIME + 60, 104.5, 104.8, 104.2, 104.5, volume=200.0),
        ]

    def test_point_of_control(self):
        profile = calculate_volume_profile(self._profile_candles(), bins=10)
        assert profile.poc == pytest.approx(104.5)
        assert len(profile.bin_prices) == 10
        assert sum(profile.bin_volumes) == pytest.approx(300.0)

    def test_value_area_covers_seventy_percent(self):
        profile = calculate_volume_profile(self._profile_candles(), bins=10)
        assert profile.value_area_low == pytest.approx(104.0)
        assert profile.value_area_high == pytest.approx(105.0)

    def test_volume_nodes(self):
        profile = calculate_volume_profile(self._profile_candles(), bins=10)
        assert profile.hvns == [pytest.approx(104.5)]
        assert profile.lvns == []

    def test_default_bin_count_is_clamped(self):
        profile = calculate_volume_profile(self._profile_candles())
        assert len(profile.bin_prices) == 8

    def test_no_volume(self):
        candles = candles_from_ohlc([(100.0, 101.0, 99.0, 100.0)] * 5, volume=0.0)
        profile = calculate_volume_profile(candles)
        assert profile.poc is None
        assert profile.value_area_high is None

    def test_single_price(self):
        candles = candles_from_ohlc([(100.0, 100.0, 100.0, 100.0)] * 3)
        profile = calculate_volume_profile(candles)
        assert profile.poc == 100.0
        assert profile.bin_volumes == [300.0]
