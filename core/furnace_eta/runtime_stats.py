"""
24 Hour Runtime Statistics

Derives dashboard statistics from Ecobee's 5-minute runtime slots:
- Total heating/cooling runtime and heating cycle count
- Length of the cycle currently running
- Heat retention: how long the house coasts after the furnace stops
- Tomorrow's projected runtime from the weather forecast

Ecobee occasionally answers without extended history. merge_with_previous()
fills those gaps from the last good statistics.
"""

import logging
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime

import numpy as np

from .models import IntervalSample, RuntimeStats, WeatherOutlook, now_utc

logger = logging.getLogger(__name__)

SLOT_MINUTES = 5
SLOTS_PER_DAY = 24 * 60 // SLOT_MINUTES  # 288

RETENTION_DROP_F = 1.0  # Retention run ends once the house has lost this much
MIN_RETENTION_SLOTS = 3  # Idle slots before a run counts, each a full 5 minutes (15+ min)
RUNTIME_CHANGE_PER_DEGREE = 0.05  # 5% more runtime per °F colder

HEATING_EQUIPMENT = ("heatPump", "auxHeat")
COOLING_EQUIPMENT = ("compCool",)

# Fields where a zero/absent fresh value is replaced by the previous one
MERGEABLE_FIELDS = (
    "total_heating_minutes_24h",
    "total_cooling_minutes_24h",
    "heating_cycles_24h",
    "avg_outdoor_temp_24h",
    "projected_heating_minutes_tomorrow",
    "forecasted_avg_temp_tomorrow",
    "avg_heat_retention_minutes",
    "heat_loss_rate_per_hour",
)


def equipment_active(equipment_status: str, prefixes: tuple[str, ...]) -> bool:
    """Check Ecobee's comma separated equipment status for a running stage."""
    items = [item.strip() for item in equipment_status.split(",") if item.strip()]
    return any(item.startswith(prefix) for item in items for prefix in prefixes)


class RuntimeStatsAnalyzer:
    """Computes RuntimeStats from a series of 5-minute interval samples."""

    def __init__(
        self,
        window_slots: int = SLOTS_PER_DAY,
        retention_drop_f: float = RETENTION_DROP_F,
        min_retention_slots: int = MIN_RETENTION_SLOTS
    ):
        self.window_slots = window_slots
        self.retention_drop_f = retention_drop_f
        self.min_retention_slots = min_retention_slots

    def analyze(
        self,
        samples: Sequence[IntervalSample],
        weather: WeatherOutlook | None = None,
        previous: RuntimeStats | None = None,
        *,
        equipment_status: str = "",
        now: datetime | None = None
    ) -> RuntimeStats:
        """Compute statistics for the trailing 24 hours.

        Args:
            samples: Interval samples, most recent last
            weather: Today's and tomorrow's average outdoor temperature
            previous: Last known statistics used to fill gaps
            equipment_status: Raw Ecobee equipment status string
            now: Timestamp for last_updated (defaults to now)

        Returns:
            Fresh statistics, merged with previous when given
        """
        weather = weather or WeatherOutlook()
        window = list(samples)[-self.window_slots:]

        heating = np.array([s.heating_seconds for s in window], dtype=int)
        cooling = np.array([s.cooling_seconds for s in window], dtype=int)

        total_heating = int(heating.sum()) // 60 if len(window) else 0
        total_cooling = int(cooling.sum()) // 60 if len(window) else 0

        is_heating = bool(len(window) and heating[-1] > 0) or equipment_active(
            equipment_status, HEATING_EQUIPMENT
        )
        is_cooling = bool(len(window) and cooling[-1] > 0) or equipment_active(
            equipment_status, COOLING_EQUIPMENT
        )

        retention_minutes, loss_per_hour = self._heat_retention(window)

        stats = RuntimeStats(
            total_heating_minutes_24h=total_heating,
            total_cooling_minutes_24h=total_cooling,
            heating_cycles_24h=self._count_cycles(heating),
            current_cycle_minutes=self._current_cycle_minutes(heating) if is_heating else 0,
            is_currently_heating=is_heating,
            is_currently_cooling=is_cooling,
            avg_outdoor_temp_24h=self._avg_outdoor(window, weather),
            forecasted_avg_temp_tomorrow=(
                weather.tomorrow_avg_f if weather.tomorrow_avg_f is not None else 0.0
            ),
            projected_heating_minutes_tomorrow=self._project_tomorrow(total_heating, weather),
            avg_heat_retention_minutes=retention_minutes,
            heat_loss_rate_per_hour=loss_per_hour,
            equipment_status=equipment_status,
            last_updated=now or now_utc(),
        )

        logger.debug(
            f"Runtime stats from {len(window)} slots: {total_heating} min heating, "
            f"{stats.heating_cycles_24h} cycles, retention {retention_minutes}"
        )

        if previous is not None:
            return merge_with_previous(stats, previous)
        return stats

    @staticmethod
    def _count_cycles(heating: np.ndarray) -> int:
        """Count off -> on transitions."""
        if len(heating) < 2:
            return 0
        on = heating > 0
        return int(np.count_nonzero(~on[:-1] & on[1:]))

    @staticmethod
    def _current_cycle_minutes(heating: np.ndarray) -> int:
        """Heating seconds of the running cycle, walking back from the latest slot."""
        total = 0
        for seconds in heating[::-1]:
            if seconds <= 0:
                break
            total += int(seconds)
        return total // 60

    def _heat_retention(self, window: list[IntervalSample]) -> tuple[float | None, float | None]:
        """Average coasting time and loss rate after the furnace shuts off."""
        durations = []
        loss_rates = []

        for i in range(len(window) - 1):
            edge = window[i]
            if edge.heating_seconds <= 0 or window[i + 1].heating_seconds > 0:
                continue

            start_temp = edge.indoor_temp_f
            last_temp = start_temp
            count = 0

            for sample in window[i + 1:]:
                if sample.heating_seconds > 0:
                    break
                count += 1
                if sample.indoor_temp_f is not None:
                    last_temp = sample.indoor_temp_f
                    if start_temp is not None and start_temp - sample.indoor_temp_f > self.retention_drop_f:
                        break

            if count < self.min_retention_slots:
                continue

            elapsed_minutes = count * SLOT_MINUTES
            durations.append(elapsed_minutes)
            if start_temp is not None and last_temp is not None:
                loss_rates.append((start_temp - last_temp) / (elapsed_minutes / 60.0))

        avg_duration = float(np.mean(durations)) if durations else None
        avg_loss = float(np.mean(loss_rates)) if loss_rates else None
        return avg_duration, avg_loss

    @staticmethod
    def _avg_outdoor(window: list[IntervalSample], weather: WeatherOutlook) -> float:
        if weather.today_avg_f is not None:
            return weather.today_avg_f
        outdoor = [s.outdoor_temp_f for s in window if s.outdoor_temp_f is not None]
        return float(np.mean(outdoor)) if outdoor else 0.0

    @staticmethod
    def _project_tomorrow(total_heating_minutes: int, weather: WeatherOutlook) -> int:
        """Scale today's runtime by the forecast temperature change."""
        today = weather.today_avg_f
        tomorrow = weather.tomorrow_avg_f
        if total_heating_minutes <= 0 or today is None or tomorrow is None or today == tomorrow:
            return total_heating_minutes

        factor = 1 + RUNTIME_CHANGE_PER_DEGREE * (today - tomorrow)
        return max(0, int(total_heating_minutes * factor))


def _is_default(value) -> bool:
    return value is None or value == 0


def merge_with_previous(fresh: RuntimeStats, previous: RuntimeStats | None) -> RuntimeStats:
    """Fill zero/absent statistics from the previous result.

    Live fields (current cycle, heating/cooling flags, equipment status,
    last_updated) always come from the fresh statistics.
    """
    if previous is None:
        return fresh

    kept = {}
    for name in MERGEABLE_FIELDS:
        fresh_value = getattr(fresh, name)
        previous_value = getattr(previous, name)
        if _is_default(fresh_value) and not _is_default(previous_value):
            kept[name] = previous_value

    if kept:
        logger.info(f"Filled runtime stats from previous values: {sorted(kept)}")
        return replace(fresh, **kept)
    return fresh


def analyze_runtime(
    samples: Sequence[IntervalSample],
    weather: WeatherOutlook | None = None,
    previous: RuntimeStats | None = None,
    *,
    equipment_status: str = "",
    now: datetime | None = None
) -> RuntimeStats:
    """Compute 24 hour runtime statistics with the default analyzer."""
    return RuntimeStatsAnalyzer().analyze(
        samples, weather, previous, equipment_status=equipment_status, now=now
    )
