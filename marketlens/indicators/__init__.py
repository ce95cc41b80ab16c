# MarketLens Indicators Module
"""
Price-action and technical indicators.

This module provides:
- Candle: normalized OHLCV bar plus pandas/records converters
- SmartMoneyAnalyzer: swings, BOS/CHoCH, liquidity pools, FVGs, order/breaker blocks and SMT
- detect_psp: Precision Swing Point state machine
- MarketRegimeClassifier: TRENDING / RANGING / CHOPPY / EXPANSION
- calculate_technical_snapshot: EMA, ATR, ADX, MACD, MFI, VWAP bands
- calculate_volume_profile: POC and value area
"""

from .candles import Candle, candles_from_dataframe, candles_from_records, candles_to_dataframe
from .psp import PSPResult, detect_psp, empty_psp, resolve_psp_expiry
from .regime import MarketRegime, MarketRegimeClassifier, detect_market_regime
from .smart_money import (
    FVG,
    ICTBlock,
    LiquidityPool,
    MarketStructure,
    SMCConstants,
    SmartMoneyAnalyzer,
    SMTDivergence,
    SwingPoint,
    detect_breaker_blocks,
    detect_fvgs,
    detect_liquidity,
    detect_market_structure,
    detect_order_blocks,
    detect_smt,
    detect_smt_divergences,
    detect_swings,
)
from .technical import (
    EMASnapshot,
    TechnicalSnapshot,
    calculate_adx,
    calculate_emas,
    calculate_technical_snapshot,
    current_atr,
)
from .volume_profile import VolumeProfile, calculate_volume_profile

__all__ = [
    "Candle",
    "candles_from_dataframe",
    "candles_from_records",
    "candles_to_dataframe",
    "PSPResult",
    "detect_psp",
    "empty_psp",
    "resolve_psp_expiry",
    "MarketRegime",
    "MarketRegimeClassifier",
    "detect_market_regime",
    "FVG",
    "ICTBlock",
    "LiquidityPool",
    "MarketStructure",
    "SMCConstants",
    "SmartMoneyAnalyzer",
    "SMTDivergence",
    "SwingPoint",
    "detect_breaker_blocks",
    "detect_fvgs",
    "detect_liquidity",
    "detect_market_structure",
    "detect_order_blocks",
    "detect_smt",
    "detect_smt_divergences",
    "detect_swings",
    "EMASnapshot",
    "TechnicalSnapshot",
    "calculate_adx",
    "calculate_emas",
    "calculate_technical_snapshot",
    "current_atr",
    "VolumeProfile",
    "calculate_volume_profile",
]
