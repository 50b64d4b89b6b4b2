"""
Furnace ETA Custom Exceptions

Simple exception hierarchy for the collaborators around the prediction core.
The core itself never raises for degenerate rates.
"""


class FurnaceEtaError(Exception):
    """Base exception for Furnace ETA."""

    pass


class ConfigurationError(FurnaceEtaError):
    """Configuration is invalid."""

    pass


class AuthenticationError(FurnaceEtaError):
    """Ecobee credentials are missing, rejected or expired."""

    pass


class AuthorizationPending(AuthenticationError):
    """The user has not entered the PIN at ecobee.com yet."""

    pass


class AuthorizationExpired(AuthenticationError):
    """The PIN expired before it was authorized."""

    pass


class EcobeeConnectionError(FurnaceEtaError):
    """Cannot reach the Ecobee API."""

    pass


class TelemetryError(FurnaceEtaError):
    """Thermostat data is unavailable or malformed."""

    pass
