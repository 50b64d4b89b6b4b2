"""
Furnace ETA prediction.

Combines a thermostat snapshot with the home's heat-up curve and heat loss
model to decide what the furnace is doing, when it will turn on, when the
house will reach the setpoint, and how the temperature will move over the
next hour.
"""

import logging

from .heat_loss import HeatLossModel
from .heat_up_curve import HeatUpCurve
from .models import FurnaceStatus, PredictionResult, TemperatureProjection, ThermostatSnapshot
from .settings import HomeProfile

logger = logging.getLogger(__name__)


class PredictionEngine:
    """Calculates furnace ETA and temperature projections."""

    def __init__(
        self,
        heat_loss_model: HeatLossModel,
        projection_horizon_minutes: int = 60,
        projection_step_minutes: int = 5
    ):
        self.heat_loss_model = heat_loss_model
        self.projection_horizon_minutes = projection_horizon_minutes
        self.projection_step_minutes = projection_step_minutes

    @classmethod
    def from_profile(cls, profile: HomeProfile) -> "PredictionEngine":
        """Create an engine configured for one home."""
        return cls(
            HeatLossModel(profile.thermal_constant),
            projection_horizon_minutes=profile.projection_horizon_minutes,
            projection_step_minutes=profile.projection_step_minutes,
        )

    def predict(self, snapshot: ThermostatSnapshot, curve: HeatUpCurve) -> PredictionResult:
        """Generate a complete furnace prediction.

        Never raises for degenerate rates: an ETA that cannot be reached is None.
        """
        current = snapshot.current_temp_f
        setpoint = snapshot.setpoint_f
        outdoor = snapshot.outdoor_temp_f
        kick_on = snapshot.kick_on_temp_f
        temp_gap = setpoint - current

        heat_loss_rate = self.heat_loss_model.heat_loss_rate(current, outdoor)
        heat_up_rate = curve.rate_for(outdoor)
        effective_rate = heat_up_rate - heat_loss_rate

        minutes_to_on: float | None
        minutes_to_target: float | None

        if current >= setpoint:
            status = FurnaceStatus.AT_TARGET
            minutes_to_on = 0.0
            minutes_to_target = 0.0

        elif current <= kick_on:
            # At or below the kick-on threshold: furnace is or should be on
            status = FurnaceStatus.RUNNING if snapshot.furnace_running else FurnaceStatus.WILL_TURN_ON_NOW
            minutes_to_on = 0.0
            minutes_to_target = temp_gap / effective_rate if effective_rate > 0 else None

        else:
            # Coasting down through the deadband toward kick-on
            status = FurnaceStatus.WAITING_FOR_DEADBAND
            minutes_to_on = self.heat_loss_model.minutes_until_temp(current, kick_on, outdoor)

            if minutes_to_on is not None and effective_rate > 0:
                minutes_to_target = minutes_to_on + (setpoint - kick_on) / effective_rate
            else:
                minutes_to_target = None

        projections = self._project(
            status, current, setpoint, kick_on, heat_loss_rate, effective_rate, minutes_to_on
        )

        logger.debug(
            f"Prediction: {status.value}, on in {minutes_to_on}, target in {minutes_to_target} "
            f"(loss {heat_loss_rate:.4f}, up {heat_up_rate:.4f}, net {effective_rate:.4f} °F/min)"
        )

        return PredictionResult(
            status=status,
            minutes_to_furnace_on=minutes_to_on,
            minutes_to_target=minutes_to_target,
            heat_loss_rate_per_min=heat_loss_rate,
            heat_up_rate_per_min=heat_up_rate,
            effective_rate_per_min=effective_rate,
            temp_gap_f=temp_gap,
            kick_on_temp_f=kick_on,
            projections=projections,
        )

    def _project(
        self,
        status: FurnaceStatus,
        current: float,
        setpoint: float,
        kick_on: float,
        heat_loss_rate: float,
        effective_rate: float,
        minutes_to_on: float | None
    ) -> tuple[TemperatureProjection, ...]:
        """Temperature projections at fixed steps over the horizon."""
        projections = []

        for minutes in range(0, self.projection_horizon_minutes + 1, self.projection_step_minutes):
            if status == FurnaceStatus.AT_TARGET:
                projected = setpoint
            elif status == FurnaceStatus.WAITING_FOR_DEADBAND:
                if minutes_to_on is None or minutes < minutes_to_on:
                    # Still cooling
                    projected = current - heat_loss_rate * minutes
                else:
                    projected = kick_on + effective_rate * (minutes - minutes_to_on)
            else:
                projected = current + effective_rate * minutes

            at_or_above = projected >= setpoint
            # Furnace cycles off at the setpoint
            projected = min(projected, setpoint)

            projections.append(TemperatureProjection(
                minutes_from_now=minutes,
                projected_temp_f=round(projected, 1),
                at_or_above_target=at_or_above,
            ))

        return tuple(projections)


def predict(
    snapshot: ThermostatSnapshot,
    curve: HeatUpCurve,
    profile: HomeProfile | None = None
) -> PredictionResult:
    """Predict furnace behaviour for one snapshot using a home profile."""
    return PredictionEngine.from_profile(profile or HomeProfile()).predict(snapshot, curve)
