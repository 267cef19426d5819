"""
API Router — Analytics.

Headline numbers for the dashboard: appointment and call statistics over the
caller's scope.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.deps import get_appointment_service, get_call_service
from src.schemas.appointment import AppointmentStats
from src.schemas.call import CallStats
from src.services.appointment_service import AppointmentService
from src.services.call_service import CallService

router = APIRouter(prefix="/analytics", tags=["Analytics"])


class AnalyticsSummary(BaseModel):
    appointments: AppointmentStats
    calls: CallStats


@router.get("/summary", response_model=AnalyticsSummary)
async def summary(
    appointments: AppointmentService = Depends(get_appointment_service),
    calls: CallService = Depends(get_call_service),
) -> AnalyticsSummary:
    return AnalyticsSummary(
        appointments=await appointments.stats(),
        calls=await calls.stats(),
    )
