"""
API response models using Pydantic.
"""
from typing import List, Optional
from pydantic import Field

from livestock_analytics.domain.models import AlertType, DomainModel, Notification


class EvaluationFailure(DomainModel):
    """A subject that could not be evaluated or dispatched."""
    subject_id: str = Field(
        description="Batch, inventory item, invoice or record source that failed"
    )
    alert_type: Optional[AlertType] = Field(
        default=None,
        description="Alert type being dispatched, absent when loading the subject failed"
    )
    error: str = Field(description="Failure reason reported by the record store")
    status_code: int = Field(description="Status code reported by the record store")


class EvaluationResponse(DomainModel):
    """Response model for the farm alert evaluation endpoint."""
    farm_id: str = Field(description="Farm that was evaluated")
    notification_count: int = Field(description="Number of notifications created")
    notifications: List[Notification] = Field(
        description="Notifications created by this evaluation"
    )
    failures: List[EvaluationFailure] = Field(
        default_factory=list,
        description="Subjects skipped because the record store failed"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "farmId": "farm-1",
                "notificationCount": 1,
                "notifications": [
                    {
                        "id": "n-42",
                        "userId": "user-1",
                        "farmId": "farm-1",
                        "type": "highMortality",
                        "title": "High Mortality Alert",
                        "message": "Pond A: 200 deaths (20.0% mortality, status red)",
                        "actionUrl": "/batches/batch-1",
                        "metadata": {"subjectId": "batch-1", "severity": "critical"},
                        "read": False,
                        "createdAt": "2026-10-17T06:00:00Z",
                    }
                ],
                "failures": [],
            }
        }
