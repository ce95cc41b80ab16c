import os

DEFAULT_CONFIG = {
    # Instrument settings
    "tick_size": float(os.getenv("MARKETLENS_TICK_SIZE", "0.25")),
    "timeframe": os.getenv("MARKETLENS_TIMEFRAME", "M15"),
    # Feed provider: BROKER, TRADINGVIEW, YAHOO (drives reliability caps)
    "data_source": os.getenv("MARKETLENS_DATA_SOURCE", "YAHOO"),
    # Structure detection
    "swing_left_bars": 3,
    "swing_right_bars": 3,
    "liquidity_tolerance": 0.003,  # EQH/EQL grouping, relative to the seed swing
    "smt_interval_seconds": 300,
    # SMT matches 2/2 swings; the general structure keeps 3/3
    "smt_swing_bars": 2,
    # Bias hysteresis around the midnight open, in price units
    "bias_buffer": 1.0,
    # PSP
    "psp_ttl_hours": 3,
    "psp_recency_bars": 24,
    # How strongly the DXY context feeds the scorecard (0 disables it)
    "usd_relevance": 1.0,
    # Confluence weights per signal
    "confluence_weights": {
        "PSP": 3,
        "BIAS": 2,
        "STRUCTURE": 2,
        "VALUE_ZONE": 2,
        "LIQUIDITY": 1,
        "SMT": 1,
        "SESSION": 1,
    },
    "log_level": os.getenv("MARKETLENS_LOG_LEVEL", "INFO"),
}
