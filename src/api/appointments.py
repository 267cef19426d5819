"""
API Router — Appointment Endpoints.

Booking, editing, status changes, reminders and deletion of appointments in
the caller's organization. Request bodies are validated by the service so
every rejection carries the same per-field messages.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Response

from src.api.deps import get_appointment_service
from src.schemas.appointment import Appointment, AppointmentStats, AppointmentStatusUpdate
from src.services.appointment_service import AppointmentService

router = APIRouter(prefix="/appointments", tags=["Appointments"])


@router.get("/", response_model=list[Appointment])
async def list_appointments(
    service: AppointmentService = Depends(get_appointment_service),
) -> list[Appointment]:
    """Upcoming and past appointments, earliest first."""
    return list(await service.list())


@router.get("/stats", response_model=AppointmentStats)
async def appointment_stats(
    service: AppointmentService = Depends(get_appointment_service),
) -> AppointmentStats:
    return await service.stats()


@router.post("/", response_model=Appointment, status_code=201)
async def create_appointment(
    body: dict[str, Any] = Body(...),
    service: AppointmentService = Depends(get_appointment_service),
) -> Appointment:
    return await service.create(body)


@router.get("/{appointment_id}", response_model=Appointment)
async def get_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
) -> Appointment:
    return await service.get(appointment_id)


@router.patch("/{appointment_id}", response_model=Appointment)
async def update_appointment(
    appointment_id: str,
    body: dict[str, Any] = Body(...),
    service: AppointmentService = Depends(get_appointment_service),
) -> Appointment:
    return await service.update(appointment_id, body)


@router.post("/{appointment_id}/status", response_model=Appointment)
async def update_appointment_status(
    appointment_id: str,
    body: AppointmentStatusUpdate,
    service: AppointmentService = Depends(get_appointment_service),
) -> Appointment:
    return await service.update_status(appointment_id, body.status, body.notes)


@router.post("/{appointment_id}/reminder", response_model=Appointment)
async def send_appointment_reminder(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
) -> Appointment:
    return await service.send_reminder(appointment_id)


@router.delete("/{appointment_id}", status_code=204)
async def delete_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
) -> Response:
    await service.delete(appointment_id)
    return Response(status_code=204)
