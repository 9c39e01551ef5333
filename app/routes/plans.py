"""Crop plan lifecycle routes."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import PersistenceError
from app.schemas.plan import (
	CompleteStepResponse,
	CropPlanListRead,
	CropPlanRead,
	GeneratePlanResponse,
	PlanCreate,
	PlanInstall,
	PlanStatusUpdate,
)
from app.services.plan_service import PlanService

router = APIRouter(prefix="/plans", tags=["plans"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, PersistenceError):
		detail: dict[str, Any] = {"error": "persistence_failed", "message": str(exc), "retryable": exc.retryable}
		if exc.steps:
			detail["steps"] = [step.model_dump(mode="json") for step in exc.steps]
		return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail="Unexpected plan service failure",
	)


@router.post("", response_model=CropPlanRead, status_code=status.HTTP_201_CREATED)
async def create_plan(
	payload: PlanCreate,
	db: AsyncSession = Depends(get_db),
) -> CropPlanRead:
	service = PlanService(db)
	try:
		plan = await service.create_plan(payload.owner_id, payload.to_request())
	except Exception as exc:
		raise _map_error(exc) from exc
	return service.to_read(plan)


@router.get("", response_model=CropPlanListRead)
async def list_plans(
	owner_id: str = Query(min_length=1, max_length=128),
	db: AsyncSession = Depends(get_db),
) -> CropPlanListRead:
	service = PlanService(db)
	try:
		plans = await service.list_plans(owner_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return CropPlanListRead(items=[service.to_read(plan) for plan in plans])


@router.get("/{plan_id}", response_model=CropPlanRead)
async def get_plan(
	plan_id: uuid.UUID,
	now: datetime | None = None,
	db: AsyncSession = Depends(get_db),
) -> CropPlanRead:
	service = PlanService(db)
	try:
		plan = await service.get_plan(plan_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return service.to_read(plan, now=now)


@router.post("/{plan_id}/generate", response_model=GeneratePlanResponse)
async def generate_plan(
	plan_id: uuid.UUID,
	payload: PlanCreate,
	db: AsyncSession = Depends(get_db),
) -> GeneratePlanResponse:
	service = PlanService(db)
	try:
		return await service.generate_plan(plan_id, payload.owner_id, payload.to_request())
	except Exception as exc:
		raise _map_error(exc) from exc


@router.post("/{plan_id}/steps/{step_id}/complete", response_model=CompleteStepResponse)
async def complete_step(
	plan_id: uuid.UUID,
	step_id: str,
	db: AsyncSession = Depends(get_db),
) -> CompleteStepResponse:
	service = PlanService(db)
	try:
		return await service.complete_step(plan_id, step_id)
	except Exception as exc:
		raise _map_error(exc) from exc


@router.post("/{plan_id}/regenerate", response_model=GeneratePlanResponse)
async def regenerate_plan(
	plan_id: uuid.UUID,
	db: AsyncSession = Depends(get_db),
) -> GeneratePlanResponse:
	service = PlanService(db)
	try:
		return await service.regenerate_plan(plan_id)
	except Exception as exc:
		raise _map_error(exc) from exc


@router.patch("/{plan_id}/status", response_model=CropPlanRead)
async def update_plan_status(
	plan_id: uuid.UUID,
	payload: PlanStatusUpdate,
	db: AsyncSession = Depends(get_db),
) -> CropPlanRead:
	service = PlanService(db)
	try:
		plan = await service.set_status(plan_id, payload.status)
	except Exception as exc:
		raise _map_error(exc) from exc
	return service.to_read(plan)


@router.delete("/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plan(
	plan_id: uuid.UUID,
	db: AsyncSession = Depends(get_db),
) -> Response:
	service = PlanService(db)
	try:
		await service.delete_plan(plan_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{plan_id}/steps", response_model=GeneratePlanResponse)
async def install_steps(
	plan_id: uuid.UUID,
	payload: PlanInstall,
	db: AsyncSession = Depends(get_db),
) -> GeneratePlanResponse:
	"""Retry a failed generation write with the steps it returned, without regenerating."""
	service = PlanService(db)
	try:
		return await service.install_steps(
			plan_id,
			payload.owner_id,
			payload.to_request(),
			payload.steps,
			payload.source,
		)
	except Exception as exc:
		raise _map_error(exc) from exc
