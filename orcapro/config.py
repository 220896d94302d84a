"""
Configuration loader for the OrcaPro budget engine.

Loads settings from orcapro_config.yaml and provides typed access
to all configuration sections.
"""
import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional
from functools import lru_cache

import yaml


# Default config ships inside the package
DEFAULT_CONFIG_PATH = Path(__file__).parent / "orcapro_config.yaml"

# Environment override for deployments that keep settings elsewhere
CONFIG_ENV_VAR = "ORCAPRO_CONFIG"


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""
    pass


class EngineConfig:
    """
    Configuration manager for the budget engine.

    Loads YAML configuration and provides typed access to all sections.
    Use get_config() to obtain the singleton instance.
    """

    def __init__(self, config_path: Optional[Path] = None):
        env_path = os.environ.get(CONFIG_ENV_VAR)
        self._config_path = config_path or (Path(env_path) if env_path else DEFAULT_CONFIG_PATH)
        self._config: dict = {}
        self._load()

    def _load(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            raise ConfigurationError(f"Config file not found: {self._config_path}")

        try:
            with open(self._config_path, 'r', encoding='utf-8') as f:
                self._config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")

        if not isinstance(self._config, dict):
            raise ConfigurationError("Config file must contain a YAML mapping")

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._load()
        # Clear the cached singleton to force reload on next get_config()
        get_config.cache_clear()

    @property
    def path(self) -> Path:
        """Path of the loaded configuration file."""
        return self._config_path

    @property
    def version(self) -> str:
        """Configuration file version."""
        return self._config.get("version", "unknown")

    # =========================================================================
    # ABC Classification
    # =========================================================================

    @property
    def abc(self) -> dict:
        """ABC classification configuration."""
        return self._config.get("abc", {})

    @property
    def abc_class_a_limit(self) -> Decimal:
        """Cumulative percentage up to which items are class A."""
        return Decimal(str(self.abc.get("class_a_limit", 80)))

    @property
    def abc_class_b_limit(self) -> Decimal:
        """Cumulative percentage up to which items are class B."""
        return Decimal(str(self.abc.get("class_b_limit", 95)))

    # =========================================================================
    # Schedule
    # =========================================================================

    @property
    def schedule(self) -> dict:
        """Physical-financial schedule configuration."""
        return self._config.get("schedule", {})

    @property
    def schedule_validation_tolerance(self) -> Decimal:
        """Allowed distance from 100% for a stage to count as allocated."""
        return Decimal(str(self.schedule.get("validation_tolerance", 0.1)))

    @property
    def default_stage_label(self) -> str:
        """Label used for budget items without a stage."""
        return self.schedule.get("default_stage_label", "Sem Etapa")

    def format_period_name(self, number: int) -> str:
        """
        Build the default name of a new schedule period.

        Args:
            number: 1-based position of the period

        Returns:
            Period name, e.g. 'Mês 3'
        """
        template = self.schedule.get("period_name_format", "Mês {number}")
        return template.format(number=number)

    # =========================================================================
    # Compositions
    # =========================================================================

    @property
    def composition(self) -> dict:
        """Cost composition configuration."""
        return self._config.get("composition", {})

    @property
    def max_nesting_depth(self) -> int:
        """Deepest composition-inside-composition chain that will be expanded."""
        return int(self.composition.get("max_nesting_depth", 10))

    @property
    def default_social_charges_pct(self) -> Decimal:
        """Social charges applied to new compositions."""
        return Decimal(str(self.composition.get("default_social_charges_pct", 0)))

    @property
    def default_bdi_pct(self) -> Decimal:
        """BDI applied to new compositions."""
        return Decimal(str(self.composition.get("default_bdi_pct", 0)))

    # =========================================================================
    # Measurements
    # =========================================================================

    @property
    def measurement(self) -> dict:
        """Progress measurement configuration."""
        return self._config.get("measurement", {})

    def format_measurement_name(self, number: int) -> str:
        """Build the default name of a new measurement, e.g. '2ª Medição'."""
        template = self.measurement.get("name_format", "{number}ª Medição")
        return template.format(number=number)

    @property
    def default_retention_pct(self) -> Decimal:
        """Contractual retention withheld from each measurement."""
        return Decimal(str(self.measurement.get("default_retention_pct", 0)))

    # =========================================================================
    # Infrastructure
    # =========================================================================

    @property
    def database_url(self) -> str:
        """SQLAlchemy URL of the document store."""
        return self._config.get("database", {}).get("url", "sqlite:///./orcapro.db")

    @property
    def log_level(self) -> str:
        """Root logging level used by the CLI."""
        return str(self._config.get("logging", {}).get("level", "INFO")).upper()

    # =========================================================================
    # Raw Access
    # =========================================================================

    def get(self, key: str, default: Any = None) -> Any:
        """Get a top-level config value by key."""
        return self._config.get(key, default)

    def __getitem__(self, key: str) -> Any:
        """Dictionary-style access to config."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if key exists in config."""
        return key in self._config


@lru_cache(maxsize=1)
def get_config(config_path: Optional[str] = None) -> EngineConfig:
    """
    Get the singleton configuration instance.

    Args:
        config_path: Optional path to config file. Only used on first call.

    Returns:
        EngineConfig singleton instance
    """
    path = Path(config_path) if config_path else None
    return EngineConfig(path)


def reload_config() -> EngineConfig:
    """Reload configuration from disk and return new instance."""
    get_config.cache_clear()
    return get_config()
