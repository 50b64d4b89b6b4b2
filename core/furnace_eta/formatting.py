"""Display strings for the dashboard."""

from .models import FurnaceStatus, PredictionResult, RuntimeStats

STATUS_MESSAGES = {
    FurnaceStatus.WILL_TURN_ON_NOW: "WILL TURN ON NOW",
    FurnaceStatus.RUNNING: "RUNNING",
    FurnaceStatus.WAITING_FOR_DEADBAND: "Waiting (temp above kick-on threshold)",
    FurnaceStatus.AT_TARGET: "AT TARGET",
}

NO_ETA = "No ETA"


def status_message(status: FurnaceStatus) -> str:
    return STATUS_MESSAGES.get(status, "UNKNOWN")


def format_hours_minutes(minutes: int) -> str:
    """Format whole minutes as e.g. '5h 42m'."""
    return f"{minutes // 60}h {minutes % 60}m"


def format_eta(minutes: float | None) -> str:
    """Format an ETA in minutes, or NO_ETA when unreachable."""
    if minutes is None:
        return NO_ETA
    if minutes <= 0:
        return "Now"
    rounded = int(round(minutes))
    if rounded < 60:
        return f"{max(rounded, 1)} min"
    return format_hours_minutes(rounded)


def format_current_cycle(minutes: int) -> str:
    return f"{minutes}m" if minutes > 0 else "Not running"


def prediction_display(prediction: PredictionResult) -> dict:
    """Human readable fields for a prediction."""
    return {
        "status_message": status_message(prediction.status),
        "furnace_on_eta": format_eta(prediction.minutes_to_furnace_on),
        "target_eta": format_eta(prediction.minutes_to_target),
    }


def runtime_display(stats: RuntimeStats) -> dict:
    """Human readable fields for runtime statistics."""
    retention = stats.avg_heat_retention_minutes
    return {
        "runtime_24h": format_hours_minutes(stats.total_heating_minutes_24h),
        "projected_runtime_tomorrow": format_hours_minutes(stats.projected_heating_minutes_tomorrow),
        "current_cycle": format_current_cycle(stats.current_cycle_minutes),
        "heat_retention": f"{retention:.0f} min" if retention is not None else "Not enough data",
    }
