"""
Furnace ETA Data Models

Immutable value objects passed between the telemetry source, the prediction
core and the dashboard. Display formatting lives in formatting.py.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum


def now_utc() -> datetime:
    """Get current time as timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class FurnaceStatus(Enum):
    """Possible furnace states."""

    WILL_TURN_ON_NOW = "will_turn_on_now"
    RUNNING = "running"
    WAITING_FOR_DEADBAND = "waiting_for_deadband"
    AT_TARGET = "at_target"


@dataclass(frozen=True)
class ThermostatSnapshot:
    """Live thermostat reading (temperatures in °F)."""

    current_temp_f: float
    setpoint_f: float
    outdoor_temp_f: float
    deadband_f: float = 1.0  # Furnace kicks on at setpoint - deadband
    furnace_running: bool = False
    hvac_mode: str = "heat"
    humidity_percent: float = 0.0
    name: str = "Main"
    equipment_status: str = ""  # Raw Ecobee descriptor, e.g. "auxHeat1,fan"
    timestamp: datetime = field(default_factory=now_utc)

    def __post_init__(self):
        if self.deadband_f < 0:
            raise ValueError(f"deadband_f must be >= 0, got {self.deadband_f}")

    @property
    def kick_on_temp_f(self) -> float:
        """Temperature at which the furnace is expected to activate."""
        return self.setpoint_f - self.deadband_f


@dataclass(frozen=True)
class HeatUpPoint:
    """Furnace heat-up rate observed at one outdoor temperature."""

    outdoor_temp_f: float
    rate_per_min: float  # °F/min


@dataclass(frozen=True)
class TemperatureProjection:
    """Projected temperature at a future time point."""

    minutes_from_now: int
    projected_temp_f: float
    at_or_above_target: bool


@dataclass(frozen=True)
class PredictionResult:
    """Output of the prediction engine.

    ETA fields are None when the target cannot be reached with the current
    rates (no heat loss to reach kick-on, or no net heating).
    """

    status: FurnaceStatus
    minutes_to_furnace_on: float | None
    minutes_to_target: float | None
    heat_loss_rate_per_min: float
    heat_up_rate_per_min: float
    effective_rate_per_min: float
    temp_gap_f: float
    kick_on_temp_f: float
    projections: tuple[TemperatureProjection, ...] = ()

    @property
    def target_reachable(self) -> bool:
        return self.minutes_to_target is not None

    def projected_temp_at(self, minutes_from_now: int) -> float | None:
        """Projected temperature at an exact projection offset, or None."""
        for projection in self.projections:
            if projection.minutes_from_now == minutes_from_now:
                return projection.projected_temp_f
        return None

    def to_dict(self) -> dict:
        """Convert to JSON-ready dictionary."""
        data = asdict(self)
        data["status"] = self.status.value
        data["projections"] = [asdict(p) for p in self.projections]
        return data


@dataclass(frozen=True)
class IntervalSample:
    """One 5-minute runtime slot."""

    heating_seconds: int = 0
    cooling_seconds: int = 0
    indoor_temp_f: float | None = None
    outdoor_temp_f: float | None = None


@dataclass(frozen=True)
class WeatherOutlook:
    """Average outdoor temperatures for today and tomorrow (°F)."""

    today_avg_f: float | None = None
    tomorrow_avg_f: float | None = None


@dataclass(frozen=True)
class RuntimeStats:
    """24 hour furnace runtime statistics."""

    total_heating_minutes_24h: int = 0
    total_cooling_minutes_24h: int = 0
    heating_cycles_24h: int = 0
    current_cycle_minutes: int = 0
    is_currently_heating: bool = False
    is_currently_cooling: bool = False
    avg_outdoor_temp_24h: float = 0.0
    forecasted_avg_temp_tomorrow: float = 0.0
    projected_heating_minutes_tomorrow: int = 0
    avg_heat_retention_minutes: float | None = None
    heat_loss_rate_per_hour: float | None = None
    equipment_status: str = ""
    last_updated: datetime = field(default_factory=now_utc)

    def to_dict(self) -> dict:
        """Convert to JSON-ready dictionary."""
        data = asdict(self)
        data["last_updated"] = self.last_updated.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "RuntimeStats":
        """Create from a dictionary produced by to_dict(); unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        last_updated = values.get("last_updated")
        if isinstance(last_updated, str):
            values["last_updated"] = datetime.fromisoformat(last_updated)
        elif last_updated is None:
            values.pop("last_updated", None)
        return cls(**values)
