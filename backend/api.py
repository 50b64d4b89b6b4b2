"""
Furnace ETA API Endpoints
"""

import os
import sys

from fastapi import APIRouter, HTTPException
from loguru import logger
from pydantic import BaseModel, Field

# Add core to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.furnace_eta.ecobee_client import EcobeeAuth, EcobeeClient
from core.furnace_eta.exceptions import (
    AuthenticationError,
    AuthorizationExpired,
    AuthorizationPending,
    ConfigurationError,
    EcobeeConnectionError,
)
from core.furnace_eta.formatting import prediction_display, runtime_display
from core.furnace_eta.heat_up_curve import HeatUpCurve
from core.furnace_eta.models import HeatUpPoint, ThermostatSnapshot
from core.furnace_eta.prediction_engine import PredictionEngine
from core.furnace_eta.settings import load_options
from core.furnace_eta.stats_cache import RuntimeStatsCache
from core.furnace_eta.telemetry_service import TelemetryService, curve_for_profile
from core.furnace_eta.token_storage import TokenStorage

router = APIRouter()

VERSION = "0.1.0"

# Load options (options.json in production, config.yaml in development)
OPTIONS = load_options()
HOME = OPTIONS.home
ECOBEE = OPTIONS.ecobee

engine = PredictionEngine.from_profile(HOME)
heat_up_curve = curve_for_profile(HOME)

token_storage = TokenStorage(os.path.join(ECOBEE.data_dir, "ecobee_tokens.json"))
auth = EcobeeAuth(ECOBEE, token_storage)
ecobee_client = None if ECOBEE.use_mock else EcobeeClient(ECOBEE, auth)

stats_cache = RuntimeStatsCache(os.path.join(ECOBEE.data_dir, "runtime_stats_cache.json"))

# Started by app.py during startup
telemetry_service = TelemetryService(
    engine,
    heat_up_curve,
    stats_cache,
    client=ecobee_client,
    poll_interval_seconds=ECOBEE.poll_interval_seconds,
)


class CurvePointRequest(BaseModel):
    """One heat-up curve sample."""
    outdoor_temp_f: float
    rate_per_min: float = Field(ge=0)


class PredictionRequest(BaseModel):
    """Request body for an ad-hoc prediction."""
    current_temp_f: float
    setpoint_f: float
    outdoor_temp_f: float
    deadband_f: float = Field(default=1.0, ge=0)
    furnace_running: bool = False
    heat_up_curve: list[CurvePointRequest] | None = None


class PinExchangeRequest(BaseModel):
    """Request body for exchanging an authorization code for tokens."""
    authorization_code: str


class PinRequestBody(BaseModel):
    """Optional API key for a PIN request (falls back to configuration)."""
    api_key: str | None = None


def _state_or_503():
    state = telemetry_service.state
    if state is None:
        raise HTTPException(status_code=503, detail="No thermostat data yet")
    return state


@router.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": "Furnace ETA",
        "version": VERSION,
        "mock_mode": ECOBEE.use_mock,
    }


@router.get("/api/status")
async def get_status():
    """Get system status."""
    state = telemetry_service.state
    return {
        "system": "operational",
        "home": HOME.name,
        "source": state.source if state else None,
        "last_update": state.updated_at.isoformat() if state else None,
        "last_error": state.error if state else None,
        "authenticated": auth.is_authenticated(),
        "poll_interval_seconds": telemetry_service.poll_interval_seconds,
    }


@router.get("/api/prediction")
async def get_prediction():
    """Latest furnace prediction from the polling service."""
    state = _state_or_503()
    snapshot = state.snapshot

    return {
        "timestamp": state.updated_at.isoformat(),
        "source": state.source,
        "thermostat": {
            "name": snapshot.name,
            "current_temp_f": snapshot.current_temp_f,
            "setpoint_f": snapshot.setpoint_f,
            "outdoor_temp_f": snapshot.outdoor_temp_f,
            "deadband_f": snapshot.deadband_f,
            "furnace_running": snapshot.furnace_running,
            "hvac_mode": snapshot.hvac_mode,
            "humidity_percent": snapshot.humidity_percent,
        },
        "prediction": state.prediction.to_dict(),
        "display": prediction_display(state.prediction),
    }


@router.post("/api/prediction")
async def create_prediction(request: PredictionRequest):
    """Predict for arbitrary inputs (what-if)."""
    if request.heat_up_curve is None:
        curve = heat_up_curve
    else:
        try:
            curve = HeatUpCurve(
                [HeatUpPoint(p.outdoor_temp_f, p.rate_per_min) for p in request.heat_up_curve],
                fallback_rate=HOME.fallback_heat_up_rate,
            )
        except ConfigurationError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    snapshot = ThermostatSnapshot(
        current_temp_f=request.current_temp_f,
        setpoint_f=request.setpoint_f,
        outdoor_temp_f=request.outdoor_temp_f,
        deadband_f=request.deadband_f,
        furnace_running=request.furnace_running,
        name="What-if",
    )
    prediction = engine.predict(snapshot, curve)

    return {
        "prediction": prediction.to_dict(),
        "display": prediction_display(prediction),
    }


@router.get("/api/runtime")
async def get_runtime_stats():
    """Latest 24h runtime statistics."""
    state = _state_or_503()
    stats = state.runtime_stats
    return {
        "stats": stats.to_dict(),
        "display": runtime_display(stats),
    }


@router.delete("/api/runtime/cache")
async def clear_runtime_cache():
    """Forget cached runtime statistics."""
    stats_cache.clear()
    return {"cleared": True}


@router.get("/api/profile")
async def get_profile():
    """Home profile and heat-up curve."""
    return {
        "name": HOME.name,
        "thermal_constant": HOME.thermal_constant,
        "fallback_heat_up_rate": HOME.fallback_heat_up_rate,
        "projection_horizon_minutes": HOME.projection_horizon_minutes,
        "projection_step_minutes": HOME.projection_step_minutes,
        "heat_up_curve": heat_up_curve.to_dicts(),
    }


@router.post("/api/refresh")
async def refresh():
    """Poll the thermostat now instead of waiting for the next interval."""
    state = telemetry_service.refresh()
    return {
        "source": state.source,
        "error": state.error,
        "status": state.prediction.status.value,
        "timestamp": state.updated_at.isoformat(),
    }


@router.post("/api/auth/pin")
async def request_pin(body: PinRequestBody | None = None):
    """Step 1 of Ecobee authorization: get a PIN to enter at ecobee.com."""
    try:
        pin = auth.request_pin(body.api_key if body else None)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except EcobeeConnectionError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    logger.info(f"Ecobee PIN issued, expires in {pin.expires_in_minutes} minutes")
    return {
        "pin": pin.pin,
        "authorization_code": pin.authorization_code,
        "expires_in_minutes": pin.expires_in_minutes,
        "poll_interval_seconds": pin.poll_interval_seconds,
    }


@router.post("/api/auth/token")
async def exchange_token(request: PinExchangeRequest):
    """Step 2 of Ecobee authorization: exchange the code for tokens."""
    try:
        tokens = auth.exchange_pin(request.authorization_code)
    except AuthorizationPending as e:
        return {"authenticated": False, "pending": True, "message": str(e)}
    except AuthorizationExpired as e:
        raise HTTPException(status_code=410, detail=str(e)) from e
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except EcobeeConnectionError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    logger.info("Ecobee authorization complete")
    return {
        "authenticated": True,
        "pending": False,
        "expires_at": tokens.expires_at.isoformat() if tokens.expires_at else None,
    }


@router.post("/api/auth/logout")
async def logout():
    """Forget stored Ecobee tokens."""
    auth.logout()
    return {"authenticated": False}
