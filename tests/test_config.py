"""
Tests for the configuration loader.
"""
import pytest
import tempfile
from decimal import Decimal
from pathlib import Path

from orcapro.config import EngineConfig, get_config, reload_config, ConfigurationError


class TestEngineConfig:
    """Tests for EngineConfig class."""

    def test_load_default_config(self):
        """Test loading the default configuration file."""
        config = get_config()
        assert config.version == "1.0.0"
        assert config.path.name == "orcapro_config.yaml"

    def test_singleton(self):
        """Test get_config() returns the cached instance."""
        assert get_config() is get_config()

    def test_reload_returns_fresh_instance(self):
        """Test reload_config() drops the cached instance."""
        before = get_config()
        after = reload_config()
        assert after is not before
        assert after.version == before.version


class TestAbcConfig:
    """Tests for ABC classification limits."""

    def test_class_limits(self):
        """Test Pareto class limits."""
        config = get_config()
        assert config.abc_class_a_limit == Decimal("80")
        assert config.abc_class_b_limit == Decimal("95")

    def test_limits_are_ordered(self):
        """Test class A limit sits below class B limit."""
        config = get_config()
        assert config.abc_class_a_limit < config.abc_class_b_limit


class TestScheduleConfig:
    """Tests for schedule configuration."""

    def test_validation_tolerance(self):
        """Test stage validation tolerance."""
        config = get_config()
        assert config.schedule_validation_tolerance == Decimal("0.1")

    def test_default_stage_label(self):
        """Test label for items without a stage."""
        config = get_config()
        assert config.default_stage_label == "Sem Etapa"

    def test_period_name(self):
        """Test default period names."""
        config = get_config()
        assert config.format_period_name(1) == "Mês 1"
        assert config.format_period_name(3) == "Mês 3"


class TestCompositionAndMeasurementConfig:
    """Tests for composition and measurement settings."""

    def test_nesting_depth(self):
        """Test composition nesting depth limit."""
        config = get_config()
        assert config.max_nesting_depth == 10

    def test_composition_defaults(self):
        """Test default social charges and BDI."""
        config = get_config()
        assert config.default_social_charges_pct == 0
        assert config.default_bdi_pct == 0

    def test_measurement_name(self):
        """Test default measurement names."""
        config = get_config()
        assert config.format_measurement_name(2) == "2ª Medição"

    def test_default_retention(self):
        """Test contractual retention default."""
        config = get_config()
        assert config.default_retention_pct == 0


class TestInfrastructureConfig:
    """Tests for database and logging settings."""

    def test_database_url(self):
        """Test document store URL."""
        config = get_config()
        assert config.database_url.startswith("sqlite:///")

    def test_log_level(self):
        """Test logging level is upper-cased."""
        config = get_config()
        assert config.log_level == "INFO"


class TestRawAccess:
    """Tests for raw configuration access."""

    def test_get_method(self):
        """Test get method with default."""
        config = get_config()
        assert config.get("version") == "1.0.0"
        assert config.get("nonexistent", "default") == "default"

    def test_getitem(self):
        """Test dictionary-style access."""
        config = get_config()
        assert config["version"] == "1.0.0"

    def test_contains(self):
        """Test key existence check."""
        config = get_config()
        assert "abc" in config
        assert "nonexistent" not in config


class TestConfigurationError:
    """Tests for configuration error handling."""

    def test_missing_file(self):
        """Test error on missing config file."""
        with pytest.raises(ConfigurationError) as exc_info:
            EngineConfig(Path("/nonexistent/path.yaml"))
        assert "not found" in str(exc_info.value)

    def test_invalid_yaml(self):
        """Test error on invalid YAML."""
        with tempfile.NamedTemporaryFile(mode='w', suffix='.yaml', delete=False) as f:
            f.write("invalid: yaml: content: [")
            temp_path = Path(f.name)

        try:
            with pytest.raises(ConfigurationError) as exc_info:
                EngineConfig(temp_path)
            assert "Invalid YAML" in str(exc_info.value)
        finally:
            temp_path.unlink()

    def test_non_mapping_yaml(self, tmp_path):
        """Test error when the file is not a mapping."""
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigurationError) as exc_info:
            EngineConfig(path)
        assert "mapping" in str(exc_info.value)

    def test_missing_sections_fall_back_to_defaults(self, tmp_path):
        """Test properties tolerate a minimal file."""
        path = tmp_path / "config.yaml"
        path.write_text("version: '9'\n", encoding="utf-8")
        config = EngineConfig(path)
        assert config.version == "9"
        assert config.abc_class_a_limit == Decimal("80")
        assert config.format_measurement_name(1) == "1ª Medição"
