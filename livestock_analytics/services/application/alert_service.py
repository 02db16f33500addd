"""
Application service: Orchestration layer for farm alert evaluation.
"""
import asyncio
import datetime as dt
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from livestock_analytics.config import settings
from livestock_analytics.domain.alerts import AlertCandidate
from livestock_analytics.domain.growth_curve import GrowthCurveTable
from livestock_analytics.domain.models import (
    Batch,
    GrowthStandard,
    Species,
    UserSettings,
    as_utc,
)
from livestock_analytics.infrastructure.record_store_client import (
    RecordStoreClient,
    RecordStoreError,
)
from livestock_analytics.services.application.notification_dispatcher import (
    DispatchFailure,
    DispatchResult,
    KeyedLocks,
    NotificationDispatcher,
)
from livestock_analytics.services.domain import alert_evaluators
from livestock_analytics.services.domain.growth_forecaster import assess_growth
from livestock_analytics.services.domain.health_classifier import total_deaths
from livestock_analytics.services.domain.water_quality import WaterQualityLimits

logger = logging.getLogger(__name__)


@dataclass
class EvaluationWindows:
    """How far ahead date-based evaluators look."""
    medication_expiry_days: int = 30
    invoice_due_days: int = 7
    harvest_days: int = 7
    vaccination_days: int = 7

    @classmethod
    def from_settings(cls) -> "EvaluationWindows":
        return cls(
            medication_expiry_days=settings.medication_expiry_window_days,
            invoice_due_days=settings.invoice_due_window_days,
            harvest_days=settings.harvest_window_days,
            vaccination_days=settings.vaccination_due_window_days,
        )


EvaluationResult = DispatchResult


class AlertEvaluationService:
    """
    Application service for sweeping a farm for alerts.

    Orchestrates data fetching, evaluation and dispatch. No business logic
    here, only coordination between infrastructure and domain layers.
    """

    def __init__(
        self,
        record_store: RecordStoreClient,
        dispatcher: NotificationDispatcher,
        water_limits: Optional[WaterQualityLimits] = None,
        windows: Optional[EvaluationWindows] = None,
    ):
        """
        Initialize the service with dependencies.

        Args:
            record_store: Record store client for data fetching
            dispatcher: Dispatcher that gates and persists alerts
            water_limits: Water quality limits (defaults to configured limits)
            windows: Look-ahead windows (defaults to configured windows)
        """
        self.record_store = record_store
        self.dispatcher = dispatcher
        self.water_limits = water_limits or WaterQualityLimits.from_settings()
        self.windows = windows or EvaluationWindows.from_settings()
        self._farm_locks = KeyedLocks()

    async def evaluate_farm(
        self,
        farm_id: str,
        user_id: str,
        now: Optional[dt.datetime] = None,
    ) -> EvaluationResult:
        """
        Evaluate every alert source of a farm and dispatch new notifications.

        This method orchestrates:
        1. Snapshotting the user's thresholds and preferences
        2. Evaluating each active batch
        3. Evaluating farm inventory and invoices
        4. Dispatching the candidates

        Safe to re-run: deduplication makes a repeated sweep a no-op.

        Args:
            farm_id: Farm to evaluate
            user_id: Owner of the notifications
            now: Evaluation time (defaults to current UTC time)

        Returns:
            EvaluationResult with new notifications and per-subject failures

        Raises:
            RecordStoreError: If the user's settings or the batch list cannot be loaded
        """
        now = as_utc(now) if now else dt.datetime.now(dt.timezone.utc)

        async with self._farm_locks.lock(farm_id):
            # Read once; the whole sweep decides against this snapshot
            user_settings = await self.record_store.get_user_settings(user_id)
            batches = await self.record_store.list_active_batches(farm_id)
            logger.info(f"Evaluating farm {farm_id}: {len(batches)} active batches")

            result = EvaluationResult()
            curves: dict[Species, GrowthCurveTable] = {}

            for batch in batches:
                if batch.is_terminal:
                    continue
                try:
                    candidates = await self._evaluate_batch(batch, user_settings, now, curves)
                except RecordStoreError as e:
                    logger.warning(f"Skipping batch {batch.id}: {e.message}")
                    result.failures.append(DispatchFailure(
                        subject_id=batch.id,
                        alert_type=None,
                        error=e.message,
                        status_code=e.status_code,
                    ))
                    continue
                result.extend(await self._dispatch(candidates, farm_id, user_settings, now))

            for candidates in await self._evaluate_farm_records(farm_id, user_settings, now, result):
                result.extend(await self._dispatch(candidates, farm_id, user_settings, now))

        logger.info(
            f"Farm {farm_id} evaluated: {len(result.notifications)} notifications, "
            f"{len(result.failures)} failures"
        )
        return result

    async def evaluate_farms(
        self,
        farm_ids: Iterable[str],
        user_id: str,
        now: Optional[dt.datetime] = None,
    ) -> dict[str, EvaluationResult]:
        """
        Evaluate several farms concurrently; farms share no mutable state.

        A farm that cannot be evaluated at all gets a result holding a single
        failure, and the other farms are still reported.
        """
        farm_ids = list(farm_ids)
        results = await asyncio.gather(
            *(self._evaluate_farm_isolated(farm_id, user_id, now) for farm_id in farm_ids)
        )
        return dict(zip(farm_ids, results))

    async def _evaluate_farm_isolated(
        self,
        farm_id: str,
        user_id: str,
        now: Optional[dt.datetime],
    ) -> EvaluationResult:
        try:
            return await self.evaluate_farm(farm_id, user_id, now)
        except RecordStoreError as e:
            logger.error(f"Failed to evaluate farm {farm_id}: {e.message}")
            return EvaluationResult(failures=[DispatchFailure(
                subject_id=farm_id,
                alert_type=None,
                error=e.message,
                status_code=e.status_code,
            )])

    async def _growth_curve(
        self,
        species: Species,
        curves: dict[Species, GrowthCurveTable],
    ) -> Tuple[GrowthStandard, ...]:
        if species not in curves:
            standards = await self.record_store.get_growth_standards(species)
            curves[species] = GrowthCurveTable.for_single_species(species, standards)
        return curves[species].for_species(species)

    async def _evaluate_batch(
        self,
        batch: Batch,
        user_settings: UserSettings,
        now: dt.datetime,
        curves: dict[Species, GrowthCurveTable],
    ) -> List[AlertCandidate]:
        thresholds = user_settings.thresholds
        today = now.date()

        mortality = await self.record_store.get_mortality_records(batch.id)
        samples = await self.record_store.get_weight_samples(batch.id)
        standards = await self._growth_curve(batch.species, curves)
        feed_records = await self.record_store.get_feed_records(batch.id)
        vaccinations = await self.record_store.get_vaccinations(batch.id)

        candidates = [
            alert_evaluators.evaluate_high_mortality(batch, total_deaths(mortality), thresholds),
            alert_evaluators.evaluate_sudden_mortality(batch, mortality, thresholds, today),
            alert_evaluators.evaluate_low_batch_stock(batch, thresholds),
            alert_evaluators.evaluate_growth(
                batch, assess_growth(batch, samples, standards, today), thresholds
            ),
            alert_evaluators.evaluate_feed_conversion(batch, feed_records, samples),
            alert_evaluators.evaluate_batch_harvest(batch, today, self.windows.harvest_days),
            *alert_evaluators.evaluate_vaccinations(
                batch, vaccinations, today, self.windows.vaccination_days
            ),
        ]

        if batch.species.is_aquatic:
            reading = await self.record_store.get_latest_water_quality(batch.id)
            candidates.append(
                alert_evaluators.evaluate_water_quality(batch, reading, self.water_limits)
            )

        return [candidate for candidate in candidates if candidate is not None]

    async def _evaluate_farm_records(
        self,
        farm_id: str,
        user_settings: UserSettings,
        now: dt.datetime,
        result: EvaluationResult,
    ) -> List[List[AlertCandidate]]:
        """Inventory and invoice candidates, one list per record source that loaded."""
        thresholds = user_settings.thresholds
        today = now.date()
        batches_of_candidates = []

        try:
            feed = await self.record_store.get_feed_inventory(farm_id)
            batches_of_candidates.append(_present(
                alert_evaluators.evaluate_low_feed_stock(item, thresholds) for item in feed
            ))
        except RecordStoreError as e:
            self._record_source_failure(result, f"{farm_id}:feed-inventory", e)

        try:
            medication = await self.record_store.get_medication_inventory(farm_id)
            candidates = []
            for item in medication:
                candidates.append(alert_evaluators.evaluate_low_medication_stock(item, thresholds))
                candidates.append(alert_evaluators.evaluate_expiring_medication(
                    item, today, self.windows.medication_expiry_days
                ))
            batches_of_candidates.append(_present(candidates))
        except RecordStoreError as e:
            self._record_source_failure(result, f"{farm_id}:medication-inventory", e)

        try:
            invoices = await self.record_store.get_open_invoices(farm_id)
            batches_of_candidates.append(_present(
                alert_evaluators.evaluate_invoice_due(invoice, today, self.windows.invoice_due_days)
                for invoice in invoices
            ))
        except RecordStoreError as e:
            self._record_source_failure(result, f"{farm_id}:invoices", e)

        return batches_of_candidates

    @staticmethod
    def _record_source_failure(
        result: EvaluationResult,
        subject_id: str,
        error: RecordStoreError,
    ) -> None:
        logger.warning(f"Skipping {subject_id}: {error.message}")
        result.failures.append(DispatchFailure(
            subject_id=subject_id,
            alert_type=None,
            error=error.message,
            status_code=error.status_code,
        ))

    async def _dispatch(
        self,
        candidates: Sequence[AlertCandidate],
        farm_id: str,
        user_settings: UserSettings,
        now: dt.datetime,
    ) -> DispatchResult:
        if not candidates:
            return DispatchResult()
        return await self.dispatcher.dispatch(
            candidates,
            user_id=user_settings.user_id,
            farm_id=farm_id,
            preferences=user_settings.notifications,
            now=now,
        )


def _present(candidates: Iterable[Optional[AlertCandidate]]) -> List[AlertCandidate]:
    return [candidate for candidate in candidates if candidate is not None]
