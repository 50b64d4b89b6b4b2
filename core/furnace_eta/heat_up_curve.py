"""
Heat-up rate curve.

Furnace heat-up rate (°F/min) sampled at a handful of outdoor temperatures.
Colder outside means a slower heat-up. Queries between samples are linearly
interpolated, queries outside the sampled range are clamped to the nearest end.
"""

import logging
from collections.abc import Iterable

import numpy as np

from .exceptions import ConfigurationError
from .models import HeatUpPoint
from .settings import DEFAULT_HEAT_UP_RATE

logger = logging.getLogger(__name__)


class HeatUpCurve:
    """Immutable lookup table of heat-up rate by outdoor temperature."""

    def __init__(
        self,
        points: Iterable[HeatUpPoint] = (),
        fallback_rate: float = DEFAULT_HEAT_UP_RATE
    ):
        """Initialize curve.

        Args:
            points: Samples in any order, unique by outdoor temperature
            fallback_rate: Rate returned when the curve has no samples

        Raises:
            ConfigurationError: On duplicate outdoor temperatures or negative rates
        """
        ordered = sorted(points, key=lambda p: p.outdoor_temp_f)

        temps = [p.outdoor_temp_f for p in ordered]
        if len(set(temps)) != len(temps):
            raise ConfigurationError(f"Heat-up curve has duplicate outdoor temperatures: {temps}")
        negative = [p for p in ordered if p.rate_per_min < 0]
        if negative:
            raise ConfigurationError(f"Heat-up curve has negative rates: {negative}")

        self._points: tuple[HeatUpPoint, ...] = tuple(ordered)
        self._temps = np.array(temps, dtype=float)
        self._rates = np.array([p.rate_per_min for p in ordered], dtype=float)
        self.fallback_rate = fallback_rate

    @property
    def points(self) -> tuple[HeatUpPoint, ...]:
        """Samples sorted by outdoor temperature."""
        return self._points

    def __len__(self) -> int:
        return len(self._points)

    def rate_for(self, outdoor_temp_f: float) -> float:
        """Heat-up rate (°F/min) at an outdoor temperature.

        Exact sample temperatures return the sample's rate unchanged.
        """
        if not self._points:
            return self.fallback_rate

        # np.interp clamps to the end values outside the sampled range
        return float(np.interp(outdoor_temp_f, self._temps, self._rates))

    @classmethod
    def from_dicts(
        cls,
        data: Iterable[dict],
        fallback_rate: float = DEFAULT_HEAT_UP_RATE
    ) -> "HeatUpCurve":
        """Create from configuration entries.

        Accepts {"outdoor_temp_f": .., "rate_per_min": ..} entries.
        """
        try:
            points = [
                HeatUpPoint(
                    outdoor_temp_f=float(entry["outdoor_temp_f"]),
                    rate_per_min=float(entry["rate_per_min"]),
                )
                for entry in data
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid heat-up curve entry: {e}") from e

        logger.debug(f"Loaded heat-up curve with {len(points)} points")
        return cls(points, fallback_rate=fallback_rate)

    def to_dicts(self) -> list[dict]:
        return [
            {"outdoor_temp_f": p.outdoor_temp_f, "rate_per_min": p.rate_per_min}
            for p in self._points
        ]

    def __repr__(self) -> str:
        return f"HeatUpCurve({len(self._points)} points, fallback={self.fallback_rate})"
