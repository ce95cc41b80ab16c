"""
Analysis Pipeline

Composes every detector over one snapshot of candle feeds:

1. Structure, liquidity, FVGs, order/breaker blocks and SMT (SmartMoneyAnalyzer)
2. PSP, regime and technical snapshot
3. Session clock, previous-day levels, sweeps and TRE
4. USD macro context from DXY candles (neutral without them)
5. Composite and buffered bias, risk levels
6. Trade scenarios with scorecards
7. Indicator signals, confluence and feed reliability
8. True-open alignment (reported next to the signals, not scored)

Usage:
    inputs = AnalysisInputs(symbol="MNQ", candles=intraday, daily=daily,
                            references={"MES": mes, "MYM": mym})
    result = analyze(inputs, EngineConfig(), now)
    print(result.confluence.suggestion, result.confluence.score_pct)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from marketlens.config import EngineConfig
from marketlens.context.levels import (
    PDRange,
    SweepEvent,
    TREState,
    detect_pd_ranges,
    detect_sweeps,
    detect_tre,
    previous_day_levels,
    true_day_open,
    true_week_open,
)
from marketlens.context.macro import USDContext, analyze_usd_context, neutral_usd_context
from marketlens.context.session import TimeContext, as_utc, detect_time_context, find_midnight_open
from marketlens.indicators.candles import Candle
from marketlens.indicators.psp import PSPResult, detect_psp
from marketlens.indicators.regime import MarketRegime, detect_market_regime
from marketlens.indicators.smart_money import (
    FVG,
    ICTBlock,
    LiquidityPool,
    MarketStructure,
    SmartMoneyAnalyzer,
    SMTDivergence,
)
from marketlens.indicators.technical import (
    TechnicalSnapshot,
    calculate_emas,
    calculate_technical_snapshot,
    current_atr,
    vwap_series,
)
from marketlens.indicators.volume_profile import VolumeProfile, calculate_volume_profile
from marketlens.risk.bias import CompositeBias, calculate_buffered_bias, calculate_composite_bias
from marketlens.risk.levels import RiskAnalysis, calculate_risk_levels
from marketlens.scenarios.generator import ScenarioInputs, TradeScenario, generate_trade_scenarios
from marketlens.schemas.base import DataSource, DataStatus, Direction
from marketlens.schemas.signals import ConfluenceResult, IndicatorSignal
from marketlens.signals.confluence import ConfluenceInputs, calculate_confluence
from marketlens.signals.indicators import (
    bias_signal,
    liquidity_signal,
    psp_signal,
    session_signal,
    smt_signal,
    structure_signal,
    true_open_signal,
    value_zone_signal,
)
from marketlens.signals.reliability import ReliabilityResult, apply_reliability, apply_session_soft_impact

logger = logging.getLogger(__name__)


@dataclass
class AnalysisInputs:
    """One snapshot of candle feeds for a symbol"""
    symbol: str
    candles: Sequence[Candle]
    daily: Sequence[Candle] = field(default_factory=list)
    references: Dict[str, Sequence[Candle]] = field(default_factory=dict)
    dxy: Optional[Sequence[Candle]] = None
    data_source: DataSource = DataSource.YAHOO
    market_status: str = "OPEN"


@dataclass
class AnalysisResult:
    symbol: str
    timestamp: int
    price: float
    structure: MarketStructure
    liquidity: List[LiquidityPool]
    fvgs: List[FVG]
    order_blocks: List[ICTBlock]
    breaker_blocks: List[ICTBlock]
    smt: List[SMTDivergence]
    psp: PSPResult
    regime: MarketRegime
    technical: Optional[TechnicalSnapshot]
    vwap: Optional[float]
    time_context: TimeContext
    pd_range: PDRange
    pdh: Optional[float]
    pdl: Optional[float]
    sweeps: List[SweepEvent]
    tre: TREState
    day_open: Optional[float]
    week_open: Optional[float]
    usd_context: USDContext
    bias: CompositeBias
    buffered_bias: Direction
    risk: RiskAnalysis
    scenarios: List[TradeScenario]
    volume_profile: VolumeProfile
    signals: Dict[str, IndicatorSignal]
    confluence: ConfluenceResult
    reliability: ReliabilityResult
    true_open: IndicatorSignal

    @property
    def primary_scenario(self) -> Optional[TradeScenario]:
        return next((s for s in self.scenarios if s.is_primary), None)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {
            "symbol": self.symbol,
            "timestamp": self.timestamp,
            "price": self.price,
            "structure": self.structure.to_dict(),
            "liquidity": [p.to_dict() for p in self.liquidity],
            "fvgs": [f.to_dict() for f in self.fvgs],
            "order_blocks": [b.to_dict() for b in self.order_blocks],
            "breaker_blocks": [b.to_dict() for b in self.breaker_blocks],
            "smt": [d.to_dict() for d in self.smt],
            "psp": self.psp.to_dict(),
            "regime": self.regime.to_dict(),
            "technical": self.technical.to_dict() if self.technical else None,
            "vwap": self.vwap,
            "time_context": self.time_context.to_dict(),
            "pd_range": self.pd_range.to_dict(),
            "pdh": self.pdh,
            "pdl": self.pdl,
            "sweeps": [s.to_dict() for s in self.sweeps],
            "tre": self.tre.to_dict(),
            "day_open": self.day_open,
            "week_open": self.week_open,
            "usd_context": self.usd_context.to_dict(),
            "bias": self.bias.to_dict(),
            "buffered_bias": self.buffered_bias.value,
            "risk": self.risk.to_dict(),
            "scenarios": [s.to_dict() for s in self.scenarios],
            "volume_profile": self.volume_profile.to_dict(),
            "signals": {name: s.model_dump(mode="json") for name, s in self.signals.items()},
            "confluence": self.confluence.model_dump(mode="json"),
            "true_open": self.true_open.model_dump(mode="json"),
            "reliability": {
                "final_score": self.reliability.final_score,
                "data_status": self.reliability.data_status.value,
                "cap_applied": self.reliability.cap_applied,
                "data_age_ms": self.reliability.data_age_ms,
                "cap_reason": self.reliability.cap_reason,
            },
        }


def _usd_context(dxy: Optional[Sequence[Candle]], now: datetime) -> USDContext:
    if not dxy:
        return neutral_usd_context()
    vwaps = vwap_series(dxy)
    midnight = find_midnight_open(dxy, now)
    return analyze_usd_context(dxy, vwaps[-1], midnight[0] if midnight else None)


def analyze(inputs: AnalysisInputs, config: Optional[EngineConfig], now: datetime) -> AnalysisResult:
    """
    Run the full analysis for one symbol.

    Args:
        inputs: Candle feeds and feed metadata
        config: Engine settings (defaults when omitted)
        now: Evaluation time (naive values are read as UTC)

    Returns:
        AnalysisResult

    Raises:
        ValueError: Without intraday candles
    """
    if not inputs.candles:
        raise ValueError(f"No intraday candles for {inputs.symbol}")

    config = config or EngineConfig()
    candles = list(inputs.candles)
    daily = list(inputs.daily)
    now = as_utc(now)
    now_ms = int(now.timestamp() * 1000)
    price = candles[-1].close

    # Structure
    analyzer = SmartMoneyAnalyzer(
        left_bars=config.swing_left_bars,
        right_bars=config.swing_right_bars,
        liquidity_tolerance=config.liquidity_tolerance,
        smt_interval_seconds=config.smt_interval_seconds,
        smt_swing_bars=config.smt_swing_bars,
    )
    structure = analyzer.structure(candles)
    liquidity = analyzer.liquidity(structure)
    fvgs = analyzer.fair_value_gaps(candles)
    order_blocks = analyzer.order_blocks(candles, structure, fvgs, config.timeframe)
    breaker_blocks = analyzer.breaker_blocks(candles, structure, config.timeframe)
    smt_structure = analyzer.smt_structure(candles)
    smts = analyzer.smt(candles, inputs.references)

    psp = detect_psp(
        candles,
        now_ms,
        tf=config.timeframe,
        tick_size=config.tick_size,
        recency_bars=config.psp_recency_bars,
        ttl_hours=config.psp_ttl_hours,
    )
    regime = detect_market_regime(candles, structure.swings)
    vwaps = vwap_series(candles)
    vwap = vwaps[-1]
    technical = calculate_technical_snapshot(candles, vwaps)
    emas = calculate_emas(candles)

    # Context
    time_context = detect_time_context(now, candles)
    midnight = find_midnight_open(candles, now)
    midnight_open, midnight_ts = midnight if midnight else (None, 0)
    pdh, pdl = previous_day_levels(daily, now, candles)
    pd_range = detect_pd_ranges(price, daily)
    sweeps = detect_sweeps(candles, pdh, pdl, now)
    tre = detect_tre(daily)
    day_open = true_day_open(daily, candles, now)
    week_open = true_week_open(candles, now)
    usd_context = _usd_context(inputs.dxy, now)

    # Bias and risk
    bias = calculate_composite_bias(price, vwap, day_open, pdh, pdl, emas, smts, fvgs)
    buffered = calculate_buffered_bias(candles, midnight_open, midnight_ts, config.bias_buffer)
    risk = calculate_risk_levels(price, bias.score, structure, liquidity, fvgs, pdh, pdl)

    scenarios = generate_trade_scenarios(ScenarioInputs(
        price=price,
        htf_bias=bias.label,
        structure=structure,
        fvgs=fvgs,
        liquidity=liquidity,
        vwap=vwap,
        timeframe=config.timeframe,
        psp=psp,
        time_context=time_context,
        usd_context=usd_context,
        usd_relevance=config.usd_relevance,
        regime=regime,
        technical=technical,
    ), now)
    volume_profile = calculate_volume_profile(candles)

    # Signals; a full-strength pass gives the feed status before any scoring
    last_bar_ms = candles[-1].time * 1000
    feed = apply_reliability(100, last_bar_ms, now_ms, inputs.data_source, inputs.market_status)
    data_status = feed.data_status

    session = session_signal(now)
    signals = ConfluenceInputs(
        psp=psp_signal(psp),
        bias=bias_signal(buffered, price, midnight_open, config.bias_buffer, data_status, session),
        structure=structure_signal(candles, data_status, buffered),
        value_zone=value_zone_signal(price, pdh, pdl, session, data_status),
        liquidity=liquidity_signal(tre.current_range, tre.average_range, sweeps, psp),
        smt=apply_session_soft_impact(
            smt_signal(smts, now_ms, smt_structure.swings[-1].time if smt_structure.swings else None),
            session,
        ),
        session=session,
    )
    confluence = calculate_confluence(
        signals,
        feed_delayed=data_status == DataStatus.DELAYED,
        weights=config.confluence_weights,
    )
    reliability = apply_reliability(
        confluence.score_pct, last_bar_ms, now_ms, inputs.data_source, inputs.market_status
    )
    zone_debug = signals.value_zone.debug
    true_open = true_open_signal(
        price,
        current_atr(candles),
        day_open,
        week_open,
        data_status,
        value_zone=zone_debug.label if zone_debug is not None and zone_debug.label else None,
    )

    logger.info(
        "%s @ %.2f: structure=%s bias=%s (%d) psp=%s regime=%s scenarios=%d confluence=%s %d%%",
        inputs.symbol, price, structure.type.value, bias.label.value, bias.score,
        psp.state.value, regime.state.value, len(scenarios),
        confluence.suggestion, reliability.final_score,
    )

    return AnalysisResult(
        symbol=inputs.symbol,
        timestamp=now_ms,
        price=price,
        structure=structure,
        liquidity=liquidity,
        fvgs=fvgs,
        order_blocks=order_blocks,
        breaker_blocks=breaker_blocks,
        smt=smts,
        psp=psp,
        regime=regime,
        technical=technical,
        vwap=vwap,
        time_context=time_context,
        pd_range=pd_range,
        pdh=pdh,
        pdl=pdl,
        sweeps=sweeps,
        tre=tre,
        day_open=day_open,
        week_open=week_open,
        usd_context=usd_context,
        bias=bias,
        buffered_bias=buffered,
        risk=risk,
        scenarios=scenarios,
        volume_profile=volume_profile,
        signals=dict(signals.items()),
        confluence=confluence,
        reliability=reliability,
        true_open=true_open,
    )
