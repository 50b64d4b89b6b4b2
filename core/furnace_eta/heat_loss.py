"""
Heat loss model for a single home.

Simplified Newton's law of cooling:
- k: thermal constant (1/min) - fraction of the indoor/outdoor differential lost per minute

Loss rate: dT/dt = -k * (T_indoor - T_outdoor)

Projections use the instantaneous rate as a straight line. Over the one hour
dashboard horizon this stays close to the exponential curve.
"""

from .settings import DEFAULT_THERMAL_CONSTANT


class HeatLossModel:
    """Heat loss of a home as a function of the indoor/outdoor differential."""

    def __init__(self, thermal_constant: float = DEFAULT_THERMAL_CONSTANT):
        """Initialize heat loss model.

        Args:
            thermal_constant: Per-home constant (1/min). Higher = leakier house.
        """
        if thermal_constant < 0:
            raise ValueError(f"thermal_constant must be >= 0, got {thermal_constant}")
        self.thermal_constant = thermal_constant

    def heat_loss_rate(self, indoor_temp_f: float, outdoor_temp_f: float) -> float:
        """Calculate heat loss rate in °F/min.

        Args:
            indoor_temp_f: Current indoor temperature (°F)
            outdoor_temp_f: Current outdoor temperature (°F)

        Returns:
            Loss rate (°F/min), 0 when indoor is not warmer than outdoor
        """
        differential = indoor_temp_f - outdoor_temp_f
        if differential <= 0:
            return 0.0
        return self.thermal_constant * differential

    def project_no_heat(self, current_temp_f: float, outdoor_temp_f: float, minutes: float) -> float:
        """Project indoor temperature after some minutes without heating."""
        rate = self.heat_loss_rate(current_temp_f, outdoor_temp_f)
        return current_temp_f - rate * minutes

    def minutes_until_temp(
        self,
        current_temp_f: float,
        target_temp_f: float,
        outdoor_temp_f: float
    ) -> float | None:
        """Minutes until the house cools down to a threshold with no heating.

        Returns:
            0 if already at or below the threshold, None if the house is not
            losing heat (threshold never reached), else minutes
        """
        if current_temp_f <= target_temp_f:
            return 0.0

        rate = self.heat_loss_rate(current_temp_f, outdoor_temp_f)
        if rate <= 0:
            return None

        return (current_temp_f - target_temp_f) / rate
