"""
Application service: Orchestration layer for the batch performance report.
"""
import datetime as dt
import logging
from typing import Optional

from livestock_analytics.config import settings
from livestock_analytics.domain.models import (
    Batch,
    BatchPerformanceReport,
    UserSettings,
    WaterQualitySummary,
)
from livestock_analytics.infrastructure.record_store_client import (
    RecordStoreClient,
    default_user_settings,
)
from livestock_analytics.services.domain.growth_forecaster import (
    assess_growth,
    build_chart_series,
)
from livestock_analytics.services.domain.health_classifier import (
    cause_distribution,
    health_status,
    mortality_rate,
)
from livestock_analytics.services.domain.water_quality import (
    WaterQualityLimits,
    summarize_readings,
)

logger = logging.getLogger(__name__)


class BatchPerformanceService:
    """
    Application service for the per-batch growth and health dashboard.

    Read-only: it never creates notifications.
    """

    def __init__(
        self,
        record_store: RecordStoreClient,
        chart_sample_window_days: Optional[int] = None,
        water_limits: Optional[WaterQualityLimits] = None,
        water_summary_window_days: Optional[int] = None,
    ):
        """
        Initialize the service with dependencies.

        Args:
            record_store: Record store client for data fetching
            chart_sample_window_days: Largest sample gap the chart interpolates across
            water_limits: Water quality limits (defaults to configured limits)
            water_summary_window_days: Days of water readings summarized for aquatic batches
        """
        self.record_store = record_store
        self.chart_sample_window_days = (
            chart_sample_window_days
            if chart_sample_window_days is not None
            else settings.chart_sample_window_days
        )
        self.water_limits = water_limits or WaterQualityLimits.from_settings()
        self.water_summary_window_days = (
            water_summary_window_days
            if water_summary_window_days is not None
            else settings.water_summary_window_days
        )

    async def get_batch_performance(
        self,
        batch_id: str,
        user_id: Optional[str] = None,
        today: Optional[dt.date] = None,
    ) -> BatchPerformanceReport:
        """
        Build the performance report of one batch.

        This method orchestrates:
        1. Fetching the batch, its weight samples and mortality records
        2. Fetching the growth curve of the batch species
        3. Resolving the user's species thresholds (defaults without a user)
        4. Running growth assessment, health classification and chart generation
        5. Summarizing recent water quality for aquatic batches

        Args:
            batch_id: Batch to report on
            user_id: User whose species thresholds apply
            today: Report date (defaults to the current UTC date)

        Returns:
            BatchPerformanceReport

        Raises:
            RecordNotFoundError: If the batch does not exist
            RecordStoreError: If data fetching fails
        """
        today = today or dt.datetime.now(dt.timezone.utc).date()

        batch = await self.record_store.get_batch(batch_id)
        samples = await self.record_store.get_weight_samples(batch_id)
        mortality = await self.record_store.get_mortality_records(batch_id)
        standards = await self.record_store.get_growth_standards(batch.species)

        user_settings: UserSettings = (
            await self.record_store.get_user_settings(user_id)
            if user_id
            else default_user_settings("")
        )

        if not standards:
            logger.warning(f"No growth curve for species {batch.species.value}")

        rate = mortality_rate(batch.initial_quantity, batch.current_quantity)
        status = health_status(
            rate,
            batch.species,
            user_settings.thresholds.species_thresholds,
        )

        chart = build_chart_series(
            batch.acquisition_date,
            batch.age_in_days(today),
            standards,
            samples,
            sample_window_days=self.chart_sample_window_days,
        )

        logger.debug(f"Batch {batch_id}: mortality {rate:.2f}% ({status.value}), {len(chart)} chart points")

        return BatchPerformanceReport(
            batch_id=batch.id,
            species=batch.species,
            growth=assess_growth(batch, samples, standards, today),
            mortality_rate=rate,
            health_status=status,
            cause_distribution=cause_distribution(mortality),
            chart=chart,
            water_quality=await self._water_quality(batch, today),
        )

    async def _water_quality(
        self,
        batch: Batch,
        today: dt.date,
    ) -> Optional[WaterQualitySummary]:
        if not batch.species.is_aquatic:
            return None
        since = today - dt.timedelta(days=self.water_summary_window_days)
        readings = await self.record_store.get_water_quality_readings(batch.id, since)
        return summarize_readings(readings, self.water_limits)
