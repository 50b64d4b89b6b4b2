"""Furnace ETA prediction package."""

# Define public API
__all__ = [
    "HomeProfile",
    "EcobeeSettings",
    "load_options",
    "FurnaceStatus",
    "ThermostatSnapshot",
    "HeatUpPoint",
    "PredictionResult",
    "TemperatureProjection",
    "IntervalSample",
    "WeatherOutlook",
    "RuntimeStats",
    "HeatLossModel",
    "HeatUpCurve",
    "PredictionEngine",
    "predict",
    "RuntimeStatsAnalyzer",
    "analyze_runtime",
    "merge_with_previous",
]

# Import settings
from .settings import EcobeeSettings, HomeProfile, load_options

# Import models
from .models import (
    FurnaceStatus,
    HeatUpPoint,
    IntervalSample,
    PredictionResult,
    RuntimeStats,
    TemperatureProjection,
    ThermostatSnapshot,
    WeatherOutlook,
)

# Import prediction core
from .heat_loss import HeatLossModel
from .heat_up_curve import HeatUpCurve
from .prediction_engine import PredictionEngine, predict
from .runtime_stats import RuntimeStatsAnalyzer, analyze_runtime, merge_with_previous
