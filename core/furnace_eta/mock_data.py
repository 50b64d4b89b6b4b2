"""
Demo data for a Saskatoon split-level home in winter.

Used when no Ecobee API key is configured and as the fallback when live
telemetry cannot be fetched.
"""

from datetime import datetime

from .models import HeatUpPoint, IntervalSample, ThermostatSnapshot, WeatherOutlook, now_utc
from .runtime_stats import SLOTS_PER_DAY

# Outdoor temp (°F) -> heat-up rate (°F/min); harder to heat when colder outside
SASKATOON_CURVE = (
    HeatUpPoint(outdoor_temp_f=-22.0, rate_per_min=0.18),  # -30°C
    HeatUpPoint(outdoor_temp_f=-4.0, rate_per_min=0.22),  # -20°C
    HeatUpPoint(outdoor_temp_f=14.0, rate_per_min=0.26),  # -10°C
    HeatUpPoint(outdoor_temp_f=17.6, rate_per_min=0.28),  # -8°C
    HeatUpPoint(outdoor_temp_f=32.0, rate_per_min=0.32),  # 0°C
    HeatUpPoint(outdoor_temp_f=50.0, rate_per_min=0.38),  # 10°C
)

# Heating pattern per hour: on for 3 slots, off for 9, roughly 5.5h a day
_CYCLE_ON_SLOTS = 3
_CYCLE_LENGTH_SLOTS = 12


def mock_snapshot(timestamp: datetime | None = None) -> ThermostatSnapshot:
    """Saskatoon winter scenario: 68°F inside, 72°F setpoint, -8°C outside."""
    return ThermostatSnapshot(
        current_temp_f=68.0,
        setpoint_f=72.0,
        outdoor_temp_f=17.6,
        deadband_f=1.0,
        furnace_running=False,
        hvac_mode="heat",
        humidity_percent=35.0,
        name="Saskatoon Split-Level",
        equipment_status="",
        timestamp=timestamp or now_utc(),
    )


def mock_weather() -> WeatherOutlook:
    """Cold day with a colder forecast for tomorrow."""
    return WeatherOutlook(today_avg_f=14.2, tomorrow_avg_f=8.5)


def mock_interval_samples(slots: int = SLOTS_PER_DAY) -> list[IntervalSample]:
    """Synthetic 24h series of regular heating cycles, most recent last.

    The house climbs 0.4°F per heating slot and coasts down 0.13°F per
    idle slot around 70°F.
    """
    samples = []
    temp = 70.0
    for slot in range(slots):
        heating = slot % _CYCLE_LENGTH_SLOTS < _CYCLE_ON_SLOTS
        temp += 0.4 if heating else -0.13
        samples.append(IntervalSample(
            heating_seconds=300 if heating else 0,
            cooling_seconds=0,
            indoor_temp_f=round(temp, 1),
            outdoor_temp_f=14.2,
        ))
    return samples
