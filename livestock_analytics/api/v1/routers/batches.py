"""
API router for batch endpoints.
"""
from fastapi import APIRouter, HTTPException, Path, Query
from typing import Annotated, Optional

from livestock_analytics.api.dependencies import BatchPerformanceServiceDep
from livestock_analytics.domain.models import BatchPerformanceReport
from livestock_analytics.infrastructure.record_store_client import (
    RecordNotFoundError,
    RecordStoreError,
)


router = APIRouter(
    prefix="/batches",
    tags=["batches"],
)


@router.get(
    "/{batch_id}/performance",
    response_model=BatchPerformanceReport,
    summary="Get batch growth and health performance",
    description="""
    Report growth and health metrics of one batch.

    The report contains:
    - Average daily gain and the method used to estimate it
    - Performance index, deviation and status against the species growth curve
    - Projected harvest date when the batch has a target weight
    - Mortality rate, health status and cause distribution
    - Day-by-day chart of expected and actual weight
    - Water quality summary of the last week for aquatic batches
    """,
    responses={
        404: {
            "description": "Batch not found",
        },
        502: {
            "description": "Record store failure",
        },
        429: {
            "description": "Rate limit exceeded",
        },
    }
)
async def get_batch_performance(
    batch_id: Annotated[str, Path(description="Unique identifier for the batch")],
    performance_service: BatchPerformanceServiceDep,
    user_id: Annotated[
        Optional[str],
        Query(description="User whose species thresholds apply; defaults when omitted"),
    ] = None,
) -> BatchPerformanceReport:
    """
    Get the performance report of a batch.

    Args:
        batch_id: Unique identifier for the batch
        performance_service: Batch performance service (injected dependency)
        user_id: User whose species thresholds apply

    Returns:
        BatchPerformanceReport

    Raises:
        HTTPException: If the batch is not found or the record store fails
    """
    try:
        return await performance_service.get_batch_performance(batch_id, user_id=user_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail=f"Batch '{batch_id}' not found")
    except RecordStoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to fetch batch data: {e.message}")
