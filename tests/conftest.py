"""Pytest configuration."""
import os
import sys
import tempfile

import pytest

# Repo root for `core.furnace_eta`, backend/ for the flat `api` and `app` modules
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT)
sys.path.insert(0, os.path.join(ROOT, "backend"))

# Keep token and stats files out of /data and force demo mode for the API tests
os.environ["FURNACE_ETA_DATA_DIR"] = tempfile.mkdtemp(prefix="furnace_eta_test_")
os.environ.pop("ECOBEE_API_KEY", None)

from core.furnace_eta.heat_up_curve import HeatUpCurve  # noqa: E402
from core.furnace_eta.mock_data import SASKATOON_CURVE  # noqa: E402
from core.furnace_eta.models import ThermostatSnapshot  # noqa: E402


@pytest.fixture
def saskatoon_curve():
    return HeatUpCurve(SASKATOON_CURVE)


@pytest.fixture
def winter_snapshot():
    """68°F inside, 72°F setpoint, 1°F deadband, 17.6°F outside."""
    return ThermostatSnapshot(
        current_temp_f=68.0,
        setpoint_f=72.0,
        outdoor_temp_f=17.6,
        deadband_f=1.0,
        furnace_running=False,
    )
