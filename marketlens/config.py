"""
Engine Configuration

Typed view over DEFAULT_CONFIG with YAML/JSON persistence:
- Instrument settings (tick size, timeframe, data source)
- Detector windows and tolerances
- Confluence weights
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from marketlens.default_config import DEFAULT_CONFIG
from marketlens.schemas.base import DataSource
from marketlens.signals.confluence import DEFAULT_WEIGHTS


@dataclass
class EngineConfig:
    """Settings shared by every detector in one analysis run."""

    tick_size: float = DEFAULT_CONFIG["tick_size"]
    timeframe: str = DEFAULT_CONFIG["timeframe"]
    data_source: str = DEFAULT_CONFIG["data_source"]

    swing_left_bars: int = DEFAULT_CONFIG["swing_left_bars"]
    swing_right_bars: int = DEFAULT_CONFIG["swing_right_bars"]
    liquidity_tolerance: float = DEFAULT_CONFIG["liquidity_tolerance"]
    smt_interval_seconds: int = DEFAULT_CONFIG["smt_interval_seconds"]
    smt_swing_bars: int = DEFAULT_CONFIG["smt_swing_bars"]

    bias_buffer: float = DEFAULT_CONFIG["bias_buffer"]
    psp_ttl_hours: float = DEFAULT_CONFIG["psp_ttl_hours"]
    psp_recency_bars: int = DEFAULT_CONFIG["psp_recency_bars"]
    usd_relevance: float = DEFAULT_CONFIG["usd_relevance"]

    confluence_weights: Dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_CONFIG["confluence_weights"])
    )
    log_level: str = DEFAULT_CONFIG["log_level"]

    def errors(self) -> List[str]:
        """Collect every validation problem."""
        errors = []

        if self.tick_size <= 0:
            errors.append("tick_size must be > 0")

        if not 0 < self.liquidity_tolerance < 0.1:
            errors.append("liquidity_tolerance must be between 0 and 0.1")

        if self.swing_left_bars < 1 or self.swing_right_bars < 1:
            errors.append("swing_left_bars and swing_right_bars must be >= 1")

        if self.smt_swing_bars < 1:
            errors.append("smt_swing_bars must be >= 1")

        if self.psp_ttl_hours <= 0:
            errors.append("psp_ttl_hours must be > 0")

        if self.data_source not in {s.value for s in DataSource}:
            errors.append(f"Unknown data_source: {self.data_source}")

        unknown = sorted(set(self.confluence_weights) - set(DEFAULT_WEIGHTS))
        if unknown:
            errors.append(f"Unknown confluence weight keys: {', '.join(unknown)}")

        if any(w < 0 for w in self.confluence_weights.values()):
            errors.append("confluence weights must be >= 0")

        return errors

    def validate(self) -> "EngineConfig":
        """
        Raise on invalid settings.

        Raises:
            ValueError: With every problem found, semicolon separated
        """
        errors = self.errors()
        if errors:
            raise ValueError("; ".join(errors))
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "tick_size": self.tick_size,
            "timeframe": self.timeframe,
            "data_source": self.data_source,
            "swing_left_bars": self.swing_left_bars,
            "swing_right_bars": self.swing_right_bars,
            "liquidity_tolerance": self.liquidity_tolerance,
            "smt_interval_seconds": self.smt_interval_seconds,
            "smt_swing_bars": self.smt_swing_bars,
            "bias_buffer": self.bias_buffer,
            "psp_ttl_hours": self.psp_ttl_hours,
            "psp_recency_bars": self.psp_recency_bars,
            "usd_relevance": self.usd_relevance,
            "confluence_weights": dict(self.confluence_weights),
            "log_level": self.log_level,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EngineConfig":
        """Create from dictionary; missing keys fall back to DEFAULT_CONFIG."""
        data = data or {}
        weights = dict(DEFAULT_CONFIG["confluence_weights"])
        weights.update(data.get("confluence_weights") or {})

        return cls(
            tick_size=float(data.get("tick_size", DEFAULT_CONFIG["tick_size"])),
            timeframe=data.get("timeframe", DEFAULT_CONFIG["timeframe"]),
            data_source=str(data.get("data_source", DEFAULT_CONFIG["data_source"])).upper(),
            swing_left_bars=int(data.get("swing_left_bars", DEFAULT_CONFIG["swing_left_bars"])),
            swing_right_bars=int(data.get("swing_right_bars", DEFAULT_CONFIG["swing_right_bars"])),
            liquidity_tolerance=float(data.get("liquidity_tolerance", DEFAULT_CONFIG["liquidity_tolerance"])),
            smt_interval_seconds=int(data.get("smt_interval_seconds", DEFAULT_CONFIG["smt_interval_seconds"])),
            smt_swing_bars=int(data.get("smt_swing_bars", DEFAULT_CONFIG["smt_swing_bars"])),
            bias_buffer=float(data.get("bias_buffer", DEFAULT_CONFIG["bias_buffer"])),
            psp_ttl_hours=float(data.get("psp_ttl_hours", DEFAULT_CONFIG["psp_ttl_hours"])),
            psp_recency_bars=int(data.get("psp_recency_bars", DEFAULT_CONFIG["psp_recency_bars"])),
            usd_relevance=float(data.get("usd_relevance", DEFAULT_CONFIG["usd_relevance"])),
            confluence_weights=weights,
            log_level=data.get("log_level", DEFAULT_CONFIG["log_level"]),
        )


def load_config(config_path: str) -> EngineConfig:
    """
    Load engine configuration from YAML or JSON file.

    Args:
        config_path: Path to configuration file (.yaml, .yml, or .json)

    Returns:
        Validated EngineConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file format or content is invalid
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, "r") as f:
        if path.suffix in [".yaml", ".yml"]:
            data = yaml.safe_load(f)
        elif path.suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {path.suffix}")

    return EngineConfig.from_dict(data).validate()


def save_config(config: EngineConfig, config_path: str) -> None:
    """
    Save engine configuration to YAML or JSON file.

    Args:
        config: EngineConfig instance
        config_path: Path to save configuration
    """
    path = Path(config_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.to_dict()

    with open(path, "w") as f:
        if path.suffix in [".yaml", ".yml"]:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        else:
            json.dump(data, f, indent=2)
