"""Tests for settings and engine.yaml loading."""

from unittest.mock import patch

import pytest

from signal_engine.errors import ConfigError
from signal_engine.settings import EngineSettings, get_settings, load_engine_config


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestEngineSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        """Test settings defaults."""
        monkeypatch.delenv("SIGNAL_ENGINE_BUFFER_CAPACITY", raising=False)
        monkeypatch.delenv("SIGNAL_ENGINE_CONFIG_PATH", raising=False)
        settings = EngineSettings(_env_file=None)
        assert settings.buffer_capacity == 200
        assert settings.config_path is None

    def test_env_override(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv("SIGNAL_ENGINE_BUFFER_CAPACITY", "500")
        monkeypatch.setenv("SIGNAL_ENGINE_LOG_LEVEL", "DEBUG")
        settings = get_settings()
        assert settings.buffer_capacity == 500
        assert settings.log_level == "DEBUG"

    def test_cached(self):
        """Test get_settings is cached."""
        assert get_settings() is get_settings()


class TestLoadEngineConfig:
    """Tests for load_engine_config."""

    def test_missing_file_uses_defaults(self, tmp_path):
        """Test a missing file gives the default config."""
        config = load_engine_config(tmp_path / "engine.yaml")
        assert config.fusion.traditional_weight == 0.4
        assert config.fusion.ai_weight == 0.6
        assert config.model_weights == {}

    def test_load_yaml(self, tmp_path):
        """Test loading engine.yaml."""
        path = tmp_path / "engine.yaml"
        path.write_text(
            "fusion:\n"
            "  traditional_weight: 0.3\n"
            "  ai_weight: 0.7\n"
            "  confidence_threshold: 0.6\n"
            "indicators:\n"
            "  rsi_period: 10\n"
            "risk:\n"
            "  high_cutoff: 75\n"
            "model_weights:\n"
            "  lstm: 0.8\n"
        )

        config = load_engine_config(path)

        assert config.fusion.traditional_weight == 0.3
        assert config.fusion.confidence_threshold == 0.6
        assert config.indicators.rsi_period == 10
        assert config.indicators.sma_slow_period == 50
        assert config.risk.high_cutoff == 75
        assert config.model_weights == {"lstm": 0.8}

    def test_empty_file_uses_defaults(self, tmp_path):
        """Test an empty file gives the default config."""
        path = tmp_path / "engine.yaml"
        path.write_text("")
        assert load_engine_config(path).fusion.ai_weight == 0.6

    def test_path_from_settings(self, tmp_path, monkeypatch):
        """Test the config path comes from settings."""
        path = tmp_path / "custom.yaml"
        path.write_text("fusion:\n  ai_weight: 0.9\n")
        monkeypatch.setenv("SIGNAL_ENGINE_CONFIG_PATH", str(path))

        assert load_engine_config().fusion.ai_weight == 0.9

    def test_loads_env_next_to_config(self, tmp_path):
        """Test the .env next to the config is loaded."""
        path = tmp_path / "engine.yaml"
        with patch("signal_engine.settings.load_dotenv") as load_dotenv:
            load_engine_config(path)
        load_dotenv.assert_called_once_with(tmp_path / ".env", override=False)

    @pytest.mark.parametrize(
        "content",
        [
            "fusion:\n  traditional_weight: 0\n  ai_weight: 0\n",
            "fusion:\n  ai_weight: -1\n",
            "fusion:\n  confidence_threshold: 2\n",
            "fusion:\n  ai_weight: heavy\n",
            "fusion:\n  ai_weight: .nan\n",
            "fusion:\n  traditional_weight: .inf\n",
            "model_weights:\n  lstm: 1.5\n",
            "- just\n- a list\n",
            "fusion: [unclosed\n",
        ],
    )
    def test_invalid_config(self, tmp_path, content):
        """Test invalid config files raise ConfigError."""
        path = tmp_path / "engine.yaml"
        path.write_text(content)
        with pytest.raises(ConfigError):
            load_engine_config(path)
