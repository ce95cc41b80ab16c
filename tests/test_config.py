"""
Unit tests for engine configuration and logging setup
"""

import json
import logging

import pytest
import yaml

from marketlens.config import EngineConfig, load_config, save_config
from marketlens.log import LOGGER_NAME, setup_logging


class TestEngineConfig:
    def test_defaults_are_valid(self):
        config = EngineConfig()
        assert config.errors() == []
        assert config.validate() is config
        assert config.confluence_weights["PSP"] == 3

    def test_weights_are_not_shared(self):
        a, b = EngineConfig(), EngineConfig()
        a.confluence_weights["PSP"] = 9
        assert b.confluence_weights["PSP"] == 3

    def test_collects_every_error(self):
        config = EngineConfig(tick_size=0, liquidity_tolerance=0.2, swing_left_bars=0,
                              psp_ttl_hours=0, data_source="IEX")
        errors = config.errors()
        assert len(errors) == 5
        assert "Unknown data_source: IEX" in errors

    def test_unknown_and_negative_weights(self):
        config = EngineConfig(confluence_weights={"PSP": -1, "FOO": 1})
        errors = config.errors()
        assert "Unknown confluence weight keys: FOO" in errors
        assert "confluence weights must be >= 0" in errors

    def test_validate_raises(self):
        with pytest.raises(ValueError, match="tick_size must be > 0"):
            EngineConfig(tick_size=-1).validate()

    def test_from_dict_merges_weights(self):
        config = EngineConfig.from_dict({"confluence_weights": {"PSP": 5}, "data_source": "broker"})
        assert config.confluence_weights["PSP"] == 5
        assert config.confluence_weights["BIAS"] == 2
        assert config.data_source == "BROKER"

    def test_from_empty_dict(self):
        assert EngineConfig.from_dict(None).to_dict() == EngineConfig().to_dict()

    def test_smt_swing_window(self):
        config = EngineConfig()
        assert config.smt_swing_bars == 2
        assert config.swing_left_bars == config.swing_right_bars == 3
        assert EngineConfig.from_dict({"smt_swing_bars": "3"}).smt_swing_bars == 3
        assert EngineConfig(smt_swing_bars=0).errors() == ["smt_swing_bars must be >= 1"]


class TestConfigFiles:
    def test_yaml_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "engine.yaml"
        save_config(EngineConfig(tick_size=0.1, timeframe="H1"), str(path))
        assert yaml.safe_load(path.read_text())["timeframe"] == "H1"
        loaded = load_config(str(path))
        assert loaded.tick_size == 0.1
        assert loaded.timeframe == "H1"

    def test_json_file(self, tmp_path):
        path = tmp_path / "engine.json"
        path.write_text(json.dumps({"bias_buffer": 2.5, "data_source": "tradingview"}))
        config = load_config(str(path))
        assert config.bias_buffer == 2.5
        assert config.data_source == "TRADINGVIEW"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.yaml"))

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "engine.toml"
        path.write_text("tick_size = 0.25")
        with pytest.raises(ValueError, match="Unsupported config file format"):
            load_config(str(path))

    def test_invalid_content(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text("tick_size: 0\n")
        with pytest.raises(ValueError, match="tick_size"):
            load_config(str(path))


class TestLogging:
    @pytest.fixture(autouse=True)
    def reset_logger(self):
        yield
        logger = logging.getLogger(LOGGER_NAME)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def test_level_by_name(self):
        logger = setup_logging("debug")
        assert logger.name == "marketlens"
        assert logger.level == logging.DEBUG

    def test_repeated_setup_replaces_handlers(self):
        setup_logging()
        logger = setup_logging()
        assert len(logger.handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "marketlens.log"
        logger = setup_logging(logging.INFO, str(log_file))
        logging.getLogger("marketlens.pipeline").info("analysis done")
        for handler in logger.handlers:
            handler.flush()
        assert "INFO - analysis done" in log_file.read_text()
