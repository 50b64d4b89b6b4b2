"""
Telemetry Polling Service

Background service that polls the thermostat, runs the prediction engine and
the runtime statistics, and keeps the latest dashboard state in memory.
Falls back to demo data whenever live telemetry is unavailable.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime

from .ecobee_client import EcobeeClient
from .exceptions import FurnaceEtaError
from .heat_up_curve import HeatUpCurve
from .mock_data import SASKATOON_CURVE, mock_interval_samples, mock_snapshot, mock_weather
from .models import PredictionResult, RuntimeStats, ThermostatSnapshot, now_utc
from .prediction_engine import PredictionEngine
from .runtime_stats import RuntimeStatsAnalyzer
from .settings import HomeProfile
from .stats_cache import RuntimeStatsCache

logger = logging.getLogger(__name__)

SOURCE_LIVE = "live"
SOURCE_MOCK = "mock"


@dataclass(frozen=True)
class DashboardState:
    """Everything the dashboard shows for one refresh."""

    snapshot: ThermostatSnapshot
    prediction: PredictionResult
    runtime_stats: RuntimeStats
    source: str = SOURCE_MOCK
    error: str | None = None
    updated_at: datetime = field(default_factory=now_utc)


class TelemetryService:
    """
    Polls Ecobee and recomputes predictions.

    Each refresh:
    1. Fetch snapshot, weather outlook and 24h runtime slots
    2. Predict furnace ETA from the snapshot and heat-up curve
    3. Compute runtime statistics; live ones are merged with the cache
    """

    def __init__(
        self,
        engine: PredictionEngine,
        curve: HeatUpCurve,
        cache: RuntimeStatsCache,
        client: EcobeeClient | None = None,
        poll_interval_seconds: int = 180,
        analyzer: RuntimeStatsAnalyzer | None = None
    ):
        self.engine = engine
        self.curve = curve
        self.cache = cache
        self.client = client
        self.poll_interval_seconds = poll_interval_seconds
        self.analyzer = analyzer or RuntimeStatsAnalyzer()

        self.state: DashboardState | None = None

        self._task: asyncio.Task | None = None
        self._running = False

    async def start(self):
        """Start the polling loop."""
        if self._running:
            logger.warning("Telemetry service already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Telemetry service started ({'live' if self.client else 'mock'} data)")
        logger.info(f"   Poll interval: {self.poll_interval_seconds} seconds")

    async def stop(self):
        """Stop the polling loop."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Telemetry service stopped")

    async def _run_loop(self):
        while self._running:
            try:
                self.refresh()
            except Exception as e:
                logger.error(f"Error in telemetry loop: {e}", exc_info=True)

            await asyncio.sleep(self.poll_interval_seconds)

    def _fetch(self):
        """Fetch live telemetry, or demo data when there is no client."""
        if self.client is None:
            return mock_snapshot(), mock_interval_samples(), mock_weather(), SOURCE_MOCK

        snapshot, weather = self.client.get_snapshot_and_weather()
        samples = self.client.get_runtime_samples()
        return snapshot, samples, weather, SOURCE_LIVE

    def refresh(self) -> DashboardState:
        """Run one polling cycle and publish the new dashboard state."""
        error = None
        try:
            snapshot, samples, weather, source = self._fetch()
        except FurnaceEtaError as e:
            logger.warning(f"Live telemetry unavailable, using demo data: {e}")
            error = str(e)
            snapshot, samples, weather, source = (
                mock_snapshot(), mock_interval_samples(), mock_weather(), SOURCE_MOCK
            )

        prediction = self.engine.predict(snapshot, self.curve)
        fresh = self.analyzer.analyze(samples, weather, equipment_status=snapshot.equipment_status)
        # Only live statistics become the cached baseline
        stats = self.cache.merge_with_cache(fresh) if source == SOURCE_LIVE else fresh

        self.state = DashboardState(
            snapshot=snapshot,
            prediction=prediction,
            runtime_stats=stats,
            source=source,
            error=error,
        )

        logger.info(
            f"{snapshot.name}: {snapshot.current_temp_f:.1f}°F -> {snapshot.setpoint_f:.1f}°F, "
            f"{prediction.status.value} ({source})"
        )
        return self.state


def curve_for_profile(profile: HomeProfile) -> HeatUpCurve:
    """Heat-up curve configured for a home, or the demo curve when none is set."""
    if profile.heat_up_curve is None:
        return HeatUpCurve(SASKATOON_CURVE, fallback_rate=profile.fallback_heat_up_rate)
    return HeatUpCurve.from_dicts(profile.heat_up_curve, fallback_rate=profile.fallback_heat_up_rate)
