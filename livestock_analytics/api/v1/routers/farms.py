"""
API router for farm endpoints.
"""
from dataclasses import asdict
from fastapi import APIRouter, HTTPException, Path, Query
from typing import Annotated

from livestock_analytics.api.dependencies import AlertServiceDep
from livestock_analytics.api.v1.models.responses import EvaluationFailure, EvaluationResponse
from livestock_analytics.infrastructure.record_store_client import (
    RecordNotFoundError,
    RecordStoreError,
)


router = APIRouter(
    prefix="/farms",
    tags=["farms"],
)


@router.post(
    "/{farm_id}/alerts/evaluate",
    response_model=EvaluationResponse,
    summary="Evaluate farm alerts",
    description="""
    Evaluate every alert source of a farm and create the resulting notifications.

    This endpoint:
    1. Loads the user's thresholds and notification preferences once
    2. Evaluates mortality, sudden deaths, stock, growth, feed conversion, harvest,
       vaccinations and water quality per active batch
    3. Evaluates feed and medication inventory and open invoices
    4. Creates notifications that pass deduplication and the user's preferences

    Re-running the evaluation within the deduplication window creates nothing new.
    Subjects whose records cannot be loaded are reported under `failures`.
    """,
    responses={
        404: {
            "description": "Farm or user not found",
        },
        502: {
            "description": "Record store failure while loading the farm",
        },
        429: {
            "description": "Rate limit exceeded",
        },
    }
)
async def evaluate_farm_alerts(
    farm_id: Annotated[str, Path(description="Unique identifier for the farm")],
    user_id: Annotated[str, Query(description="User who receives the notifications")],
    alert_service: AlertServiceDep,
) -> EvaluationResponse:
    """
    Evaluate alerts for a farm.

    Args:
        farm_id: Unique identifier for the farm
        user_id: User who receives the notifications
        alert_service: Alert evaluation service (injected dependency)

    Returns:
        EvaluationResponse with created notifications and failures

    Raises:
        HTTPException: If the farm cannot be loaded
    """
    try:
        # Delegate to service layer (no business logic here)
        result = await alert_service.evaluate_farm(farm_id, user_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Farm '{farm_id}' not found: {e.message}")
    except RecordStoreError as e:
        raise HTTPException(status_code=502, detail=f"Failed to load farm data: {e.message}")

    return EvaluationResponse(
        farm_id=farm_id,
        notification_count=len(result.notifications),
        notifications=result.notifications,
        failures=[EvaluationFailure(**asdict(failure)) for failure in result.failures],
    )
