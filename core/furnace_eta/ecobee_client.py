"""
Ecobee API Client for Furnace ETA

PIN based OAuth (the user authorizes the app at ecobee.com, the password is
never handled here) and read-only access to thermostat, weather and runtime
report data.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

import numpy as np
import requests

from .exceptions import (
    AuthenticationError,
    AuthorizationExpired,
    AuthorizationPending,
    EcobeeConnectionError,
    TelemetryError,
)
from .models import IntervalSample, ThermostatSnapshot, WeatherOutlook, now_utc
from .runtime_stats import HEATING_EQUIPMENT, SLOTS_PER_DAY, equipment_active
from .settings import EcobeeSettings
from .token_storage import EcobeeTokens, TokenStorage

logger = logging.getLogger(__name__)

RUNTIME_REPORT_COLUMNS = "auxHeat1,compCool1,zoneAveTemp,outdoorTemp"
DEFAULT_DEADBAND_F = 1.0


@dataclass(frozen=True)
class PinRequest:
    """PIN the user enters at ecobee.com/consumerportal."""

    pin: str
    authorization_code: str
    expires_in_minutes: int
    poll_interval_seconds: int


def _tenths(value: Any) -> float | None:
    """Convert Ecobee tenths-of-a-degree integers to degrees."""
    if value is None or value == "":
        return None
    return float(value) / 10.0


def _float_or_none(value: str) -> float | None:
    value = value.strip()
    return float(value) if value else None


def parse_thermostat(thermostat: dict) -> ThermostatSnapshot:
    """Build a snapshot from one entry of Ecobee's thermostatList.

    Raises:
        TelemetryError: If required fields are missing
    """
    try:
        runtime = thermostat["runtime"]
        settings = thermostat.get("settings", {})
        forecasts = thermostat.get("weather", {}).get("forecasts", [])

        current = _tenths(runtime["actualTemperature"])
        setpoint = _tenths(runtime["desiredHeat"])
        outdoor = _tenths(forecasts[0]["temperature"]) if forecasts else None
        if current is None or setpoint is None or outdoor is None:
            raise TelemetryError("Thermostat data is missing temperatures")

        deadband = _tenths(settings.get("stage1HeatingDifferentialTemp"))
        equipment_status = thermostat.get("equipmentStatus", "") or ""

        return ThermostatSnapshot(
            current_temp_f=current,
            setpoint_f=setpoint,
            outdoor_temp_f=outdoor,
            deadband_f=deadband if deadband is not None else DEFAULT_DEADBAND_F,
            furnace_running=equipment_active(equipment_status, HEATING_EQUIPMENT),
            hvac_mode=settings.get("hvacMode", "heat"),
            humidity_percent=float(runtime.get("actualHumidity", 0) or 0),
            name=thermostat.get("name", "Main"),
            equipment_status=equipment_status,
            timestamp=now_utc(),
        )
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise TelemetryError(f"Malformed thermostat data: {e}") from e


def parse_weather_outlook(thermostat: dict) -> WeatherOutlook:
    """Average forecast temperature for today and tomorrow.

    Each forecast contributes the midpoint of its high and low. The first
    forecast's date is taken as today in the thermostat's local time.
    """
    forecasts = thermostat.get("weather", {}).get("forecasts", [])
    by_date: dict[date, list[float]] = {}

    for forecast in forecasts:
        try:
            day = datetime.strptime(forecast["dateTime"], "%Y-%m-%d %H:%M:%S").date()
            high = _tenths(forecast["tempHigh"])
            low = _tenths(forecast["tempLow"])
        except (KeyError, TypeError, ValueError):
            logger.debug(f"Skipping malformed forecast: {forecast}")
            continue
        if high is None or low is None:
            continue
        by_date.setdefault(day, []).append((high + low) / 2.0)

    if not by_date:
        return WeatherOutlook()

    today = min(by_date)
    tomorrow = today + timedelta(days=1)

    def _avg(day: date) -> float | None:
        values = by_date.get(day)
        return round(float(np.mean(values)), 1) if values else None

    return WeatherOutlook(today_avg_f=_avg(today), tomorrow_avg_f=_avg(tomorrow))


def parse_runtime_rows(rows: list[str], slots: int = SLOTS_PER_DAY) -> list[IntervalSample]:
    """Parse runtime report rows into samples, most recent last.

    Rows look like "2024-01-15,10:35:00,300,0,68.5,17.2" with columns
    auxHeat1, compCool1, zoneAveTemp, outdoorTemp. Slots without any values
    (not reported yet, or the thermostat was offline) are skipped, so a gap
    inside a heating cycle does not split it into two cycles.
    """
    samples = []
    gaps = 0
    for row in rows:
        parts = row.split(",")
        if len(parts) < 6:
            logger.debug(f"Skipping short runtime row: {row}")
            continue
        values = parts[2:6]
        if not any(v.strip() for v in values):
            gaps += 1
            continue
        try:
            heating, cooling, indoor, outdoor = (_float_or_none(v) for v in values)
        except ValueError as e:
            raise TelemetryError(f"Malformed runtime row '{row}': {e}") from e

        samples.append(IntervalSample(
            heating_seconds=int(heating or 0),
            cooling_seconds=int(cooling or 0),
            indoor_temp_f=indoor,
            outdoor_temp_f=outdoor,
        ))

    if gaps:
        logger.debug(f"Skipped {gaps} unreported runtime slots")
    return samples[-slots:]


class EcobeeAuth:
    """Ecobee PIN authorization and token refresh."""

    def __init__(
        self,
        settings: EcobeeSettings,
        storage: TokenStorage,
        session: requests.Session | None = None
    ):
        self.settings = settings
        self.storage = storage
        self.base_url = settings.base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = settings.request_timeout

    def _api_key(self) -> str:
        api_key = self.settings.api_key or self.storage.get_api_key()
        if not api_key:
            raise AuthenticationError("No Ecobee API key configured")
        return api_key

    def request_pin(self, api_key: str | None = None) -> PinRequest:
        """Step 1: request a PIN for the user to enter at ecobee.com.

        Raises:
            AuthenticationError: If Ecobee rejects the API key
            EcobeeConnectionError: If the request fails
        """
        api_key = api_key or self._api_key()
        url = f"{self.base_url}/authorize"
        params = {"response_type": "ecobeePin", "client_id": api_key, "scope": "smartRead"}

        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as e:
            raise AuthenticationError(f"Failed to request PIN: {e}. Check your API key.") from e
        except requests.exceptions.RequestException as e:
            raise EcobeeConnectionError(f"Ecobee PIN request failed: {e}") from e
        except ValueError as e:
            raise AuthenticationError("Invalid response from Ecobee API") from e

        self.storage.store_api_key(api_key)

        try:
            return PinRequest(
                pin=data["ecobeePin"],
                authorization_code=data["code"],
                expires_in_minutes=int(data.get("expires_in", 0)),
                poll_interval_seconds=int(data.get("interval", 30)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AuthenticationError(f"Invalid PIN response: {e}") from e

    def exchange_pin(self, authorization_code: str) -> EcobeeTokens:
        """Step 2: exchange the authorization code once the user entered the PIN.

        Raises:
            AuthorizationPending: User has not entered the PIN yet
            AuthorizationExpired: PIN expired, request a new one
            AuthenticationError: Any other rejection
        """
        return self._token_request({
            "grant_type": "ecobeePin",
            "code": authorization_code,
            "client_id": self._api_key(),
        })

    def refresh_tokens(self) -> EcobeeTokens:
        """Refresh the access token using the stored refresh token."""
        tokens = self.storage.get_tokens()
        if tokens is None:
            raise AuthenticationError("No stored credentials found")

        return self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": tokens.refresh_token,
            "client_id": self._api_key(),
        })

    def _token_request(self, data: dict) -> EcobeeTokens:
        url = f"{self.base_url}/token"
        try:
            response = self.session.post(url, data=data, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise EcobeeConnectionError(f"Ecobee token request failed: {e}") from e

        if not response.ok:
            body = response.text
            if "authorization_pending" in body:
                raise AuthorizationPending(
                    "Waiting for you to enter the PIN at ecobee.com/consumerportal"
                )
            if "authorization_expired" in body:
                raise AuthorizationExpired("PIN expired. Please request a new one.")
            raise AuthenticationError(f"Token request failed: {response.status_code}")

        try:
            payload = response.json()
            tokens = EcobeeTokens(
                access_token=payload["access_token"],
                refresh_token=payload["refresh_token"],
                token_type=payload.get("token_type", "Bearer"),
                expires_at=now_utc() + timedelta(seconds=int(payload["expires_in"])),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AuthenticationError(f"Invalid token response: {e}") from e

        self.storage.store_tokens(tokens)
        return tokens

    def get_valid_access_token(self) -> str:
        """Access token, refreshed first when it is about to expire.

        Raises:
            AuthenticationError: If not authorized or refresh fails
        """
        tokens = self.storage.get_tokens()
        if tokens is None:
            raise AuthenticationError("Not authorized with Ecobee")

        if tokens.needs_refresh:
            logger.info("Refreshing Ecobee access token")
            tokens = self.refresh_tokens()

        return tokens.access_token

    def is_authenticated(self) -> bool:
        return self.storage.get_tokens() is not None

    def logout(self):
        self.storage.clear()


class EcobeeClient:
    """Read-only Ecobee thermostat client."""

    def __init__(self, settings: EcobeeSettings, auth: EcobeeAuth):
        self.settings = settings
        self.auth = auth
        self.base_url = settings.base_url.rstrip("/")
        self.session = auth.session
        self.timeout = settings.request_timeout

    def _selection(self) -> dict:
        if self.settings.thermostat_id:
            return {"selectionType": "thermostats", "selectionMatch": self.settings.thermostat_id}
        return {"selectionType": "registered", "selectionMatch": ""}

    def _get(self, path: str, body: dict) -> dict:
        """GET an API resource with a JSON selection body.

        Raises:
            AuthenticationError: If the token is rejected
            EcobeeConnectionError: If the request fails
        """
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self.auth.get_valid_access_token()}",
            "Content-Type": "application/json;charset=UTF-8",
        }
        params = {"format": "json", "body": json.dumps(body)}

        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.HTTPError as e:
            if e.response is not None and e.response.status_code in (401, 403):
                raise AuthenticationError(f"Ecobee rejected the access token: {e}") from e
            raise EcobeeConnectionError(f"Ecobee request to {path} failed: {e}") from e
        except requests.exceptions.RequestException as e:
            raise EcobeeConnectionError(f"Ecobee API request failed: {e}") from e
        except ValueError as e:
            raise TelemetryError(f"Ecobee returned invalid JSON for {path}") from e

        status = data.get("status", {})
        if status.get("code", 0) != 0:
            raise TelemetryError(f"Ecobee error {status.get('code')}: {status.get('message')}")

        return data

    def _get_thermostat(self) -> dict:
        body = {
            "selection": {
                **self._selection(),
                "includeRuntime": True,
                "includeSettings": True,
                "includeEquipmentStatus": True,
                "includeWeather": True,
            }
        }
        data = self._get("/1/thermostat", body)
        thermostats = data.get("thermostatList", [])
        if not thermostats:
            raise TelemetryError("No thermostats registered to this account")
        return thermostats[0]

    def get_thermostat_snapshot(self) -> ThermostatSnapshot:
        return parse_thermostat(self._get_thermostat())

    def get_snapshot_and_weather(self) -> tuple[ThermostatSnapshot, WeatherOutlook]:
        """Snapshot and weather outlook from a single thermostat request."""
        thermostat = self._get_thermostat()
        return parse_thermostat(thermostat), parse_weather_outlook(thermostat)

    def get_weather_outlook(self) -> WeatherOutlook:
        return parse_weather_outlook(self._get_thermostat())

    def get_runtime_samples(self, end: date | None = None) -> list[IntervalSample]:
        """Trailing 24h of 5-minute runtime slots.

        The report is requested for yesterday and today (UTC) so the
        trailing window is always covered.
        """
        end = end or now_utc().date()
        body = {
            "startDate": (end - timedelta(days=1)).isoformat(),
            "endDate": end.isoformat(),
            "columns": RUNTIME_REPORT_COLUMNS,
            "selection": self._selection(),
        }
        data = self._get("/1/runtimeReport", body)

        reports = data.get("reportList", [])
        if not reports:
            logger.warning("Ecobee runtime report is empty")
            return []

        samples = parse_runtime_rows(reports[0].get("rowList", []))
        logger.debug(f"Fetched {len(samples)} runtime slots")
        return samples
