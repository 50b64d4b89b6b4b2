"""
Tests for the telemetry polling service.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from core.furnace_eta.exceptions import AuthenticationError, EcobeeConnectionError
from core.furnace_eta.heat_loss import HeatLossModel
from core.furnace_eta.mock_data import mock_interval_samples, mock_weather
from core.furnace_eta.models import FurnaceStatus, RuntimeStats, ThermostatSnapshot
from core.furnace_eta.prediction_engine import PredictionEngine
from core.furnace_eta.settings import HomeProfile
from core.furnace_eta.stats_cache import RuntimeStatsCache
from core.furnace_eta.telemetry_service import (
    SOURCE_LIVE,
    SOURCE_MOCK,
    TelemetryService,
    curve_for_profile,
)


@pytest.fixture
def engine():
    return PredictionEngine(HeatLossModel(0.0012))


@pytest.fixture
def cache():
    return RuntimeStatsCache(None)


def test_refresh_without_client_uses_demo_data(engine, saskatoon_curve, cache):
    service = TelemetryService(engine, saskatoon_curve, cache)

    state = service.refresh()

    assert state is service.state
    assert state.source == SOURCE_MOCK
    assert state.error is None
    assert state.snapshot.name == "Saskatoon Split-Level"
    assert state.prediction.status == FurnaceStatus.WILL_TURN_ON_NOW
    assert state.prediction.minutes_to_furnace_on == 0
    # 24 cycles of 15 minutes, the first already running at the window start
    assert state.runtime_stats.total_heating_minutes_24h == 360
    assert state.runtime_stats.heating_cycles_24h == 23
    assert state.runtime_stats.projected_heating_minutes_tomorrow > 360
    assert cache.get_cached() is None


def test_refresh_falls_back_when_client_fails(engine, saskatoon_curve, cache):
    client = MagicMock()
    client.get_snapshot_and_weather.side_effect = EcobeeConnectionError("Ecobee is down")
    service = TelemetryService(engine, saskatoon_curve, cache, client=client)

    state = service.refresh()

    assert state.source == SOURCE_MOCK
    assert state.error == "Ecobee is down"
    assert state.snapshot.name == "Saskatoon Split-Level"


def test_failed_poll_keeps_cached_baseline(engine, saskatoon_curve, cache):
    cache.save(RuntimeStats(total_heating_minutes_24h=120, heating_cycles_24h=5))
    client = MagicMock()
    client.get_snapshot_and_weather.side_effect = AuthenticationError("Not authorized with Ecobee")
    service = TelemetryService(engine, saskatoon_curve, cache, client=client)

    state = service.refresh()

    assert state.source == SOURCE_MOCK
    assert state.runtime_stats.total_heating_minutes_24h == 360
    assert cache.get_cached().total_heating_minutes_24h == 120
    assert cache.get_cached().heating_cycles_24h == 5

    # Next live poll without history is filled from the real baseline
    client.get_snapshot_and_weather.side_effect = None
    client.get_snapshot_and_weather.return_value = (
        ThermostatSnapshot(current_temp_f=70.0, setpoint_f=72.0, outdoor_temp_f=17.6),
        mock_weather(),
    )
    client.get_runtime_samples.return_value = []

    state = service.refresh()

    assert state.source == SOURCE_LIVE
    assert state.runtime_stats.total_heating_minutes_24h == 120
    assert state.runtime_stats.heating_cycles_24h == 5


def test_refresh_with_live_client(engine, saskatoon_curve, cache):
    snapshot = ThermostatSnapshot(
        current_temp_f=71.5,
        setpoint_f=72.0,
        outdoor_temp_f=17.6,
        deadband_f=1.0,
        furnace_running=True,
        name="Upstairs",
        equipment_status="auxHeat1,fan",
    )
    client = MagicMock()
    client.get_snapshot_and_weather.return_value = (snapshot, mock_weather())
    client.get_runtime_samples.return_value = mock_interval_samples()
    service = TelemetryService(engine, saskatoon_curve, cache, client=client)

    state = service.refresh()

    assert state.source == SOURCE_LIVE
    assert state.error is None
    assert state.prediction.status == FurnaceStatus.RUNNING
    assert state.runtime_stats.is_currently_heating
    assert state.runtime_stats.equipment_status == "auxHeat1,fan"


def test_refresh_fills_gaps_from_cache(engine, saskatoon_curve, cache):
    cache.save(RuntimeStats(total_heating_minutes_24h=300, heating_cycles_24h=20))
    client = MagicMock()
    client.get_snapshot_and_weather.return_value = (
        ThermostatSnapshot(current_temp_f=70.0, setpoint_f=72.0, outdoor_temp_f=17.6),
        mock_weather(),
    )
    client.get_runtime_samples.return_value = []
    service = TelemetryService(engine, saskatoon_curve, cache, client=client)

    state = service.refresh()

    assert state.runtime_stats.total_heating_minutes_24h == 300
    assert state.runtime_stats.heating_cycles_24h == 20


def test_start_and_stop(engine, saskatoon_curve, cache):
    service = TelemetryService(engine, saskatoon_curve, cache, poll_interval_seconds=3600)

    async def run():
        await service.start()
        await asyncio.sleep(0)
        await service.stop()

    asyncio.run(run())

    assert service.state is not None
    assert not service._running


def test_curve_for_profile_defaults_to_demo_curve():
    profile = HomeProfile(name="Test Home", fallback_heat_up_rate=0.3)
    curve = curve_for_profile(profile)

    assert len(curve) == 6
    assert curve.rate_for(17.6) == pytest.approx(0.28)


def test_curve_for_profile_configured():
    profile = HomeProfile(
        name="Test Home",
        heat_up_curve=[
            {"outdoor_temp_f": 0.0, "rate_per_min": 0.2},
            {"outdoor_temp_f": 40.0, "rate_per_min": 0.4},
        ],
    )
    curve = curve_for_profile(profile)

    assert len(curve) == 2
    assert curve.rate_for(20.0) == pytest.approx(0.3)
