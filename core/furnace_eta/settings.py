"""
Furnace ETA Configuration Settings

User-facing settings are loaded from /data/options.json (add-on deployment),
falling back to config.yaml in the repository root during development.
Secrets come from the environment (.env is honoured).
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

OPTIONS_PATH = "/data/options.json"
CONFIG_YAML_PATH = os.path.join(os.path.dirname(__file__), "..", "..", "config.yaml")

DEFAULT_THERMAL_CONSTANT = 0.0012  # 1/min, fraction of the indoor/outdoor differential lost per minute
DEFAULT_HEAT_UP_RATE = 0.28  # °F/min when no curve samples exist


def _camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


def _convert_keys(data: dict) -> dict:
    return {_camel_to_snake(k): v for k, v in data.items()}


@dataclass
class HomeProfile:
    """Thermal profile of a single home."""

    name: str = "Home"
    thermal_constant: float = DEFAULT_THERMAL_CONSTANT
    fallback_heat_up_rate: float = DEFAULT_HEAT_UP_RATE
    projection_horizon_minutes: int = 60
    projection_step_minutes: int = 5
    heat_up_curve: list[dict] | None = None  # [{"outdoor_temp_f": .., "rate_per_min": ..}]

    def __post_init__(self):
        if self.thermal_constant < 0:
            raise ConfigurationError(f"thermal_constant must be >= 0, got {self.thermal_constant}")
        if self.fallback_heat_up_rate < 0:
            raise ConfigurationError(
                f"fallback_heat_up_rate must be >= 0, got {self.fallback_heat_up_rate}"
            )
        if self.projection_step_minutes <= 0 or self.projection_horizon_minutes < 0:
            raise ConfigurationError("Projection horizon must be >= 0 and step > 0")

    @classmethod
    def from_dict(cls, data: dict) -> "HomeProfile":
        """Create from dictionary."""
        converted = _convert_keys(data)
        if "heat_up_curve" in converted and converted["heat_up_curve"] is not None:
            converted["heat_up_curve"] = [_convert_keys(p) for p in converted["heat_up_curve"]]
        try:
            return cls(**converted)
        except TypeError as e:
            raise ConfigurationError(f"Invalid home profile: {e}") from e


@dataclass
class EcobeeSettings:
    """Connection settings for the Ecobee telemetry source."""

    api_key: str = ""
    base_url: str = "https://api.ecobee.com"
    thermostat_id: str | None = None
    poll_interval_seconds: int = 180  # Ecobee refreshes runtime data every 3 minutes
    request_timeout: int = 10
    use_mock: bool | None = None  # None = mock only when there is no API key
    data_dir: str = field(default_factory=lambda: os.environ.get("FURNACE_ETA_DATA_DIR", "/data"))

    def __post_init__(self):
        if self.use_mock is None:
            self.use_mock = not self.api_key

    @classmethod
    def from_dict(cls, data: dict) -> "EcobeeSettings":
        """Create from dictionary."""
        try:
            return cls(**_convert_keys(data))
        except TypeError as e:
            raise ConfigurationError(f"Invalid ecobee settings: {e}") from e


@dataclass
class AppOptions:
    """All options for one deployment."""

    home: HomeProfile = field(default_factory=HomeProfile)
    ecobee: EcobeeSettings = field(default_factory=EcobeeSettings)


def _read_raw_options() -> dict:
    """Read raw options from options.json, or config.yaml for development."""
    if os.path.exists(OPTIONS_PATH):
        with open(OPTIONS_PATH) as f:
            logger.debug("Loaded options from options.json")
            return json.load(f)

    if os.path.exists(CONFIG_YAML_PATH):
        with open(CONFIG_YAML_PATH) as f:
            config = yaml.safe_load(f) or {}
            logger.debug("Loaded options from config.yaml")
            return config.get("options", {}) or {}

    return {}


def load_options(raw: dict | None = None) -> AppOptions:
    """Load application options.

    Args:
        raw: Pre-parsed options (mainly for tests). Read from disk when None.

    Returns:
        AppOptions with the home profile and Ecobee settings

    Raises:
        ConfigurationError: If an options file is present but invalid
    """
    if raw is None:
        try:
            raw = _read_raw_options()
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read options: {e}") from e

    load_dotenv()

    home = HomeProfile.from_dict(raw.get("home", {}) or {})

    ecobee_raw = dict(raw.get("ecobee", {}) or {})
    if not ecobee_raw.get("api_key") and not ecobee_raw.get("apiKey"):
        env_key = os.getenv("ECOBEE_API_KEY", "")
        if env_key:
            ecobee_raw["api_key"] = env_key
    ecobee = EcobeeSettings.from_dict(ecobee_raw)

    logger.info(
        f"Options loaded for home '{home.name}' "
        f"(thermal constant {home.thermal_constant}, mock={ecobee.use_mock})"
    )
    return AppOptions(home=home, ecobee=ecobee)
