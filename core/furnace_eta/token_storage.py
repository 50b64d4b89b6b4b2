"""
Ecobee credential storage.

Keeps the API key and OAuth tokens in a JSON file in the data directory.
The user's Ecobee password is never seen or stored.
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timedelta

from .models import now_utc

logger = logging.getLogger(__name__)

REFRESH_MARGIN = timedelta(minutes=5)


@dataclass(frozen=True)
class EcobeeTokens:
    """OAuth tokens issued by Ecobee."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_at: datetime | None = None

    @property
    def needs_refresh(self) -> bool:
        """True when the access token expires within the refresh margin."""
        if self.expires_at is None:
            return True
        return now_utc() + REFRESH_MARGIN >= self.expires_at

    def to_dict(self) -> dict:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "token_type": self.token_type,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EcobeeTokens":
        expires_at = data.get("expires_at")
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            token_type=data.get("token_type", "Bearer"),
            expires_at=datetime.fromisoformat(expires_at) if expires_at else None,
        )


class TokenStorage:
    """JSON file storage for the API key and tokens."""

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path) as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read token storage {self.path}: {e}")
            return {}

    def _write(self, data: dict):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)
        # Tokens grant read access to the thermostat
        os.chmod(self.path, 0o600)

    def get_api_key(self) -> str | None:
        return self._read().get("api_key")

    def store_api_key(self, api_key: str):
        data = self._read()
        data["api_key"] = api_key
        self._write(data)

    def get_tokens(self) -> EcobeeTokens | None:
        tokens = self._read().get("tokens")
        if not tokens:
            return None
        try:
            return EcobeeTokens.from_dict(tokens)
        except (KeyError, ValueError) as e:
            logger.warning(f"Ignoring invalid stored tokens: {e}")
            return None

    def store_tokens(self, tokens: EcobeeTokens):
        data = self._read()
        data["tokens"] = tokens.to_dict()
        self._write(data)
        logger.info("Stored Ecobee tokens")

    def clear(self):
        """Remove stored tokens, keeping the API key."""
        data = self._read()
        if data.pop("tokens", None) is not None:
            self._write(data)
            logger.info("Cleared Ecobee tokens")
