"""
Tests for Ecobee telemetry parsing and the PIN authorization flow.

HTTP is mocked at the requests.Session level.
"""

import json
from datetime import date, timedelta
from unittest.mock import MagicMock

import pytest
import requests

from core.furnace_eta.ecobee_client import (
    EcobeeAuth,
    EcobeeClient,
    parse_runtime_rows,
    parse_thermostat,
    parse_weather_outlook,
)
from core.furnace_eta.exceptions import (
    AuthenticationError,
    AuthorizationExpired,
    AuthorizationPending,
    EcobeeConnectionError,
    TelemetryError,
)
from core.furnace_eta.models import now_utc
from core.furnace_eta.runtime_stats import analyze_runtime
from core.furnace_eta.settings import EcobeeSettings
from core.furnace_eta.token_storage import EcobeeTokens, TokenStorage

THERMOSTAT = {
    "identifier": "311000000001",
    "name": "Upstairs",
    "equipmentStatus": "auxHeat1,fan",
    "runtime": {
        "actualTemperature": 685,
        "actualHumidity": 34,
        "desiredHeat": 720,
        "desiredCool": 780,
    },
    "settings": {
        "hvacMode": "heat",
        "stage1HeatingDifferentialTemp": 5,
    },
    "weather": {
        "forecasts": [
            {"dateTime": "2025-01-15 10:00:00", "temperature": 176, "tempHigh": 200, "tempLow": 100},
            {"dateTime": "2025-01-15 16:00:00", "temperature": 190, "tempHigh": 220, "tempLow": 140},
            {"dateTime": "2025-01-16 10:00:00", "temperature": 80, "tempHigh": 120, "tempLow": 40},
        ]
    },
}


def make_response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.text = text or json.dumps(payload or {})
    response.json.return_value = payload if payload is not None else {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Error", response=response
        )
    return response


@pytest.fixture
def settings(tmp_path):
    return EcobeeSettings(api_key="test-key", data_dir=str(tmp_path))


@pytest.fixture
def storage(tmp_path):
    return TokenStorage(str(tmp_path / "tokens.json"))


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def auth(settings, storage, session):
    return EcobeeAuth(settings, storage, session=session)


@pytest.fixture
def authorized_storage(storage):
    storage.store_tokens(EcobeeTokens(
        access_token="access",
        refresh_token="refresh",
        expires_at=now_utc() + timedelta(hours=1),
    ))
    return storage


def test_parse_thermostat():
    snapshot = parse_thermostat(THERMOSTAT)

    assert snapshot.current_temp_f == 68.5
    assert snapshot.setpoint_f == 72.0
    assert snapshot.outdoor_temp_f == 17.6
    assert snapshot.deadband_f == 0.5
    assert snapshot.furnace_running
    assert snapshot.humidity_percent == 34.0
    assert snapshot.name == "Upstairs"
    assert snapshot.equipment_status == "auxHeat1,fan"


def test_parse_thermostat_idle_default_deadband():
    thermostat = {**THERMOSTAT, "equipmentStatus": "", "settings": {"hvacMode": "heat"}}
    snapshot = parse_thermostat(thermostat)

    assert not snapshot.furnace_running
    assert snapshot.deadband_f == 1.0


def test_parse_thermostat_missing_runtime():
    with pytest.raises(TelemetryError):
        parse_thermostat({"name": "Broken"})


def test_parse_thermostat_missing_weather():
    with pytest.raises(TelemetryError):
        parse_thermostat({**THERMOSTAT, "weather": {"forecasts": []}})


def test_parse_weather_outlook():
    outlook = parse_weather_outlook(THERMOSTAT)

    # Today: midpoints 15.0 and 18.0; tomorrow: 8.0
    assert outlook.today_avg_f == 16.5
    assert outlook.tomorrow_avg_f == 8.0


def test_parse_weather_outlook_without_forecasts():
    outlook = parse_weather_outlook({})
    assert outlook.today_avg_f is None
    assert outlook.tomorrow_avg_f is None


def test_parse_runtime_rows_drops_unreported_slots():
    rows = [
        "2025-01-15,10:00:00,300,0,68.5,17.2",
        "2025-01-15,10:05:00,,,,",
        "2025-01-15,10:10:00,120,0,69.0,17.0",
        "2025-01-15,10:15:00,,,,",
        "2025-01-15,10:20:00,,,,",
    ]
    samples = parse_runtime_rows(rows)

    assert len(samples) == 2
    assert samples[0].heating_seconds == 300
    assert samples[0].indoor_temp_f == 68.5
    assert samples[0].outdoor_temp_f == 17.2
    assert samples[1].heating_seconds == 120


def test_offline_gap_does_not_split_heating_cycle():
    rows = [
        "2025-01-15,10:00:00,0,0,68.0,17.2",
        "2025-01-15,10:05:00,300,0,68.4,17.2",
        "2025-01-15,10:10:00,,,,",
        "2025-01-15,10:15:00,,,,",
        "2025-01-15,10:20:00,,,,",
        "2025-01-15,10:25:00,300,0,69.2,17.2",
        "2025-01-15,10:30:00,0,0,69.1,17.2",
    ]
    stats = analyze_runtime(parse_runtime_rows(rows))

    assert stats.heating_cycles_24h == 1
    assert stats.total_heating_minutes_24h == 10
    assert stats.avg_heat_retention_minutes is None


def test_parse_runtime_rows_keeps_trailing_window():
    rows = [f"2025-01-15,00:00:00,{i},0,70.0,20.0" for i in range(400)]
    samples = parse_runtime_rows(rows)

    assert len(samples) == 288
    assert samples[-1].heating_seconds == 399


def test_parse_runtime_rows_malformed_value():
    with pytest.raises(TelemetryError):
        parse_runtime_rows(["2025-01-15,10:00:00,abc,0,68.5,17.2"])


def test_request_pin_stores_api_key(auth, session, storage):
    session.get.return_value = make_response(payload={
        "ecobeePin": "bv29",
        "code": "auth-code",
        "scope": "smartRead",
        "expires_in": 9,
        "interval": 30,
    })

    pin = auth.request_pin()

    assert pin.pin == "bv29"
    assert pin.authorization_code == "auth-code"
    assert pin.expires_in_minutes == 9
    assert pin.poll_interval_seconds == 30
    assert storage.get_api_key() == "test-key"
    params = session.get.call_args.kwargs["params"]
    assert params["response_type"] == "ecobeePin"
    assert params["scope"] == "smartRead"


def test_request_pin_rejected_key(auth, session):
    session.get.return_value = make_response(status_code=400)
    with pytest.raises(AuthenticationError):
        auth.request_pin()


def test_request_pin_network_error(auth, session):
    session.get.side_effect = requests.exceptions.ConnectionError("offline")
    with pytest.raises(EcobeeConnectionError):
        auth.request_pin()


def test_exchange_pin_pending(auth, session):
    session.post.return_value = make_response(status_code=401, text='{"error": "authorization_pending"}')
    with pytest.raises(AuthorizationPending):
        auth.exchange_pin("auth-code")


def test_exchange_pin_expired(auth, session):
    session.post.return_value = make_response(status_code=401, text='{"error": "authorization_expired"}')
    with pytest.raises(AuthorizationExpired):
        auth.exchange_pin("auth-code")


def test_exchange_pin_stores_tokens(auth, session, storage):
    session.post.return_value = make_response(payload={
        "access_token": "access",
        "refresh_token": "refresh",
        "token_type": "Bearer",
        "expires_in": 3600,
    })

    tokens = auth.exchange_pin("auth-code")

    assert tokens.access_token == "access"
    assert not tokens.needs_refresh
    assert storage.get_tokens() == tokens
    assert auth.is_authenticated()
    assert session.post.call_args.kwargs["data"]["grant_type"] == "ecobeePin"


def test_valid_token_not_refreshed(settings, authorized_storage, session):
    auth = EcobeeAuth(settings, authorized_storage, session=session)

    assert auth.get_valid_access_token() == "access"
    session.post.assert_not_called()


def test_expiring_token_refreshed(settings, storage, session):
    storage.store_tokens(EcobeeTokens(
        access_token="old",
        refresh_token="refresh",
        expires_at=now_utc() + timedelta(minutes=1),
    ))
    session.post.return_value = make_response(payload={
        "access_token": "new",
        "refresh_token": "refresh-2",
        "expires_in": 3600,
    })
    auth = EcobeeAuth(settings, storage, session=session)

    assert auth.get_valid_access_token() == "new"
    assert storage.get_tokens().refresh_token == "refresh-2"
    assert session.post.call_args.kwargs["data"]["grant_type"] == "refresh_token"


def test_not_authorized(auth):
    with pytest.raises(AuthenticationError):
        auth.get_valid_access_token()


def test_logout_keeps_api_key(settings, authorized_storage, session):
    authorized_storage.store_api_key("test-key")
    auth = EcobeeAuth(settings, authorized_storage, session=session)
    auth.logout()

    assert not auth.is_authenticated()
    assert authorized_storage.get_api_key() == "test-key"


def test_client_snapshot_and_weather(settings, authorized_storage, session):
    session.get.return_value = make_response(payload={
        "thermostatList": [THERMOSTAT],
        "status": {"code": 0, "message": ""},
    })
    client = EcobeeClient(settings, EcobeeAuth(settings, authorized_storage, session=session))

    snapshot, outlook = client.get_snapshot_and_weather()

    assert snapshot.current_temp_f == 68.5
    assert outlook.tomorrow_avg_f == 8.0
    kwargs = session.get.call_args.kwargs
    assert kwargs["headers"]["Authorization"] == "Bearer access"
    body = json.loads(kwargs["params"]["body"])
    assert body["selection"]["includeRuntime"]
    assert body["selection"]["selectionType"] == "registered"


def test_client_rejected_token(settings, authorized_storage, session):
    session.get.return_value = make_response(status_code=401)
    client = EcobeeClient(settings, EcobeeAuth(settings, authorized_storage, session=session))

    with pytest.raises(AuthenticationError):
        client.get_thermostat_snapshot()


def test_client_api_status_error(settings, authorized_storage, session):
    session.get.return_value = make_response(payload={
        "status": {"code": 14, "message": "Authentication token has expired."},
    })
    client = EcobeeClient(settings, EcobeeAuth(settings, authorized_storage, session=session))

    with pytest.raises(TelemetryError):
        client.get_thermostat_snapshot()


def test_client_runtime_samples(settings, authorized_storage, session):
    session.get.return_value = make_response(payload={
        "reportList": [{
            "thermostatIdentifier": "311000000001",
            "rowCount": 2,
            "rowList": [
                "2025-01-15,10:00:00,300,0,68.5,17.2",
                "2025-01-15,10:05:00,0,0,68.4,17.2",
            ],
        }],
        "status": {"code": 0, "message": ""},
    })
    client = EcobeeClient(settings, EcobeeAuth(settings, authorized_storage, session=session))

    samples = client.get_runtime_samples(end=date(2025, 1, 15))

    assert len(samples) == 2
    body = json.loads(session.get.call_args.kwargs["params"]["body"])
    assert body["startDate"] == "2025-01-14"
    assert body["endDate"] == "2025-01-15"
    assert body["columns"] == "auxHeat1,compCool1,zoneAveTemp,outdoorTemp"
