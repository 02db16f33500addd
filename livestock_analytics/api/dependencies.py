"""
Dependency injection for FastAPI.
"""
from typing import Annotated, Optional
from fastapi import Depends

from livestock_analytics.infrastructure.record_store_client import (
    RecordStoreClient,
    get_record_store_client,
)
from livestock_analytics.services.application.alert_service import AlertEvaluationService
from livestock_analytics.services.application.batch_performance_service import (
    BatchPerformanceService,
)
from livestock_analytics.services.application.notification_dispatcher import (
    NotificationDispatcher,
)


# Shared across requests so dispatch and farm locks hold for every caller
_alert_service: Optional[AlertEvaluationService] = None


def get_alert_service(
    record_store: Annotated[RecordStoreClient, Depends(get_record_store_client)],
) -> AlertEvaluationService:
    """
    Dependency factory for AlertEvaluationService.

    Args:
        record_store: Record store client (injected)

    Returns:
        The process-wide AlertEvaluationService instance
    """
    global _alert_service
    if _alert_service is None:
        _alert_service = AlertEvaluationService(
            record_store=record_store,
            dispatcher=NotificationDispatcher(record_store),
        )
    return _alert_service


def get_batch_performance_service(
    record_store: Annotated[RecordStoreClient, Depends(get_record_store_client)],
) -> BatchPerformanceService:
    """
    Dependency factory for BatchPerformanceService.

    Args:
        record_store: Record store client (injected)

    Returns:
        BatchPerformanceService instance
    """
    return BatchPerformanceService(record_store=record_store)


# Type aliases for cleaner route signatures
AlertServiceDep = Annotated[AlertEvaluationService, Depends(get_alert_service)]
BatchPerformanceServiceDep = Annotated[
    BatchPerformanceService, Depends(get_batch_performance_service)
]
