"""Configuration management for orientation fusion."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple
import os

import yaml

from .errors import ConfigurationError

DEFAULT_COMPLEMENTARY_WEIGHT = 0.98


class FusionMode(str, Enum):
    """Strategy used to combine sensor channels into an orientation."""
    ACCELEROMETER = "accelerometer"
    GYROSCOPE = "gyroscope"
    KALMAN = "kalman"
    COMPLEMENTARY = "complementary"
    MAGNETOMETER = "magnetometer"

    @classmethod
    def parse(cls, value: "str | FusionMode") -> "FusionMode":
        """Parse a mode name, case-insensitive.

        Raises:
            ConfigurationError: If the name is not a known mode.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            names = ", ".join(m.value for m in cls)
            raise ConfigurationError(f"Unknown fusion mode '{value}' (expected one of: {names})") from None


_FILTER_CODES = {
    "m": (FusionMode.MAGNETOMETER, None),
    "k": (FusionMode.KALMAN, None),
    "a": (FusionMode.ACCELEROMETER, 0.0),
    "0": (FusionMode.ACCELEROMETER, 0.0),
    "g": (FusionMode.GYROSCOPE, 1.0),
    "1": (FusionMode.GYROSCOPE, 1.0),
    "c": (FusionMode.COMPLEMENTARY, DEFAULT_COMPLEMENTARY_WEIGHT),
    "": (FusionMode.COMPLEMENTARY, DEFAULT_COMPLEMENTARY_WEIGHT),
}


def parse_filter_option(text: Optional[str]) -> Tuple[FusionMode, float]:
    """Map a short filter code to a fusion mode and complementary weight.

    Codes: ``m`` magnetometer, ``k`` Kalman, ``a``/``0`` accelerometer,
    ``g``/``1`` gyroscope, ``c`` or empty complementary with the default
    weight, and any number in [0, 1] complementary with that weight.

    Returns:
        (mode, weight). The weight is the default for modes that ignore it.

    Raises:
        ConfigurationError: For unknown codes or weights outside [0, 1].
    """
    code = (text or "").strip().lower()
    if code in _FILTER_CODES:
        mode, weight = _FILTER_CODES[code]
        return mode, DEFAULT_COMPLEMENTARY_WEIGHT if weight is None else weight

    try:
        weight = float(code)
    except ValueError:
        raise ConfigurationError(f"Unknown filter option '{text}'") from None

    _check_weight(weight)
    return FusionMode.COMPLEMENTARY, weight


def _check_weight(weight: float) -> None:
    if not 0.0 <= weight <= 1.0:
        raise ConfigurationError(f"Complementary weight must be in [0, 1], got {weight}")


def _check_positive(name: str, value: float) -> None:
    if not value > 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")


@dataclass
class FusionConfig:
    """Fusion strategy selection."""
    mode: FusionMode = FusionMode.COMPLEMENTARY
    weight: float = DEFAULT_COMPLEMENTARY_WEIGHT

    def __post_init__(self) -> None:
        self.mode = FusionMode.parse(self.mode)
        self.weight = float(self.weight)
        _check_weight(self.weight)


@dataclass
class SensorConfig:
    """Sensor expectations used for plausibility checks and monitoring."""
    gravity_nominal: float = 9.81
    gravity_tolerance: float = 2.0
    accelerometer_rate_hz: float = 50.0
    gyroscope_rate_hz: float = 50.0
    magnetometer_rate_hz: float = 50.0
    min_field_ut: float = 20.0
    max_field_ut: float = 100.0

    def __post_init__(self) -> None:
        _check_positive("gravity_nominal", self.gravity_nominal)
        _check_positive("accelerometer_rate_hz", self.accelerometer_rate_hz)
        _check_positive("gyroscope_rate_hz", self.gyroscope_rate_hz)
        _check_positive("magnetometer_rate_hz", self.magnetometer_rate_hz)


@dataclass
class ValidationConfig:
    """Numerical guards."""
    max_dt_s: Optional[float] = None
    min_determinant: float = 1e-9
    min_vector_norm: float = 1e-9

    def __post_init__(self) -> None:
        if self.max_dt_s is not None:
            _check_positive("max_dt_s", self.max_dt_s)
        _check_positive("min_determinant", self.min_determinant)
        _check_positive("min_vector_norm", self.min_vector_norm)


@dataclass
class DisplayConfig:
    """Output rotation and refresh settings."""
    screen_orientation_deg: float = 0.0
    emit_rate_hz: float = 60.0

    def __post_init__(self) -> None:
        _check_positive("emit_rate_hz", self.emit_rate_hz)


@dataclass
class MonitoringConfig:
    """Sample-rate monitoring configuration."""
    enabled: bool = True
    window_size: int = 500
    log_interval_s: float = 10.0


@dataclass
class Config:
    """Complete configuration for orientation fusion."""
    fusion: FusionConfig = field(default_factory=FusionConfig)
    sensor: SensorConfig = field(default_factory=SensorConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


def default_config_path() -> Path:
    """Path of the configuration file shipped with the package."""
    return Path(__file__).parent.parent / "config" / "default.yaml"


def load_config(config_path: Optional[str] = None) -> Config:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file. If None, uses
            COMPASS_CONFIG_PATH, then the packaged default.

    Returns:
        Configuration object with all settings.

    Raises:
        FileNotFoundError: If specified config file doesn't exist.
        ConfigurationError: If a value is out of range.
    """
    if config_path is None:
        env_path = os.environ.get("COMPASS_CONFIG_PATH")
        if env_path:
            config_path = env_path
        else:
            default_path = default_config_path()
            if default_path.exists():
                config_path = str(default_path)
            else:
                return Config()

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return Config()

    return build_config(data)


def build_config(data: dict) -> Config:
    """Build Config object from dictionary.

    Raises:
        ConfigurationError: On unknown keys or out-of-range values.
    """
    try:
        return Config(
            fusion=FusionConfig(**data.get("fusion", {})),
            sensor=SensorConfig(**data.get("sensor", {})),
            validation=ValidationConfig(**data.get("validation", {})),
            display=DisplayConfig(**data.get("display", {})),
            monitoring=MonitoringConfig(**data.get("monitoring", {})),
        )
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
