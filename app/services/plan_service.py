"""Crop plan orchestration — create, generate, complete, regenerate, read."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

import structlog
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.exceptions import InputValidationError, PersistenceError
from app.models.enums import PlanStatusEnum, StepStatusEnum
from app.models.plans import CropPlan
from app.schemas.plan import (
	CompleteStepResponse,
	CropPlanRead,
	CropPlanRequest,
	GeneratePlanResponse,
	GenerationSource,
	PlanStep,
)
from app.services import step_lifecycle
from app.services.plan_generator import PlanGenerator
from app.services.plan_regenerator import PlanRegenerator, fresh_plan_fields, request_from_plan
from app.services.plan_store import PlanStore, SqlAlchemyPlanStore

logger = structlog.get_logger("cropcycle.plans")

_USER_SETTABLE_STATUSES = {PlanStatusEnum.active, PlanStatusEnum.paused}


def coerce_request(data: CropPlanRequest | dict[str, Any]) -> CropPlanRequest:
	if isinstance(data, CropPlanRequest):
		return data
	try:
		return CropPlanRequest.model_validate(data)
	except ValidationError as exc:
		fields = ", ".join(".".join(str(part) for part in error["loc"]) for error in exc.errors())
		raise InputValidationError(f"invalid crop plan request: {fields}") from exc


def _require_owner(owner_id: str | None) -> str:
	if owner_id is None or not str(owner_id).strip():
		raise InputValidationError("owner_id is required")
	return str(owner_id).strip()


def _require_plan_id(plan_id: uuid.UUID | None) -> uuid.UUID:
	if plan_id is None:
		raise InputValidationError("plan_id is required")
	return plan_id


def _require_installable(steps: list[PlanStep]) -> None:
	if not steps:
		raise InputValidationError("at least one step is required")
	if any(step.status == StepStatusEnum.completed for step in steps):
		raise InputValidationError("installed steps must all be not completed")
	dates = [step.scheduled_date for step in steps]
	if dates != sorted(dates):
		raise InputValidationError("installed steps must be in chronological order")


class PlanService:
	"""Caller-facing plan operations over a PlanStore."""

	def __init__(
		self,
		db: AsyncSession | None = None,
		*,
		store: PlanStore | None = None,
		generator: PlanGenerator | None = None,
		settings: Settings | None = None,
	):
		if store is None:
			if db is None:
				raise ValueError("either db or store is required")
			store = SqlAlchemyPlanStore(db)
		self.store = store
		self.generator = generator or PlanGenerator()
		self.settings = settings or get_settings()

	async def create_plan(self, owner_id: str, request: CropPlanRequest | dict[str, Any]) -> CropPlan:
		owner = _require_owner(owner_id)
		crop_request = coerce_request(request)
		now = datetime.now(UTC)
		plan = CropPlan(
			owner_id=owner,
			**crop_request.model_dump(),
			status=PlanStatusEnum.active,
			steps=[],
			progress=0,
			current_step=1,
			total_steps=0,
			plan_generated=False,
			schema_version=self.settings.plan_schema_version,
			plan_generated_at=None,
			created_at=now,
			updated_at=now,
		)
		plan = await self.store.create(plan)
		logger.info("plan_created", plan_id=str(plan.id), owner_id=owner, crop=crop_request.crop_name)
		return plan

	async def generate_plan(
		self,
		plan_id: uuid.UUID,
		owner_id: str,
		request: CropPlanRequest | dict[str, Any],
	) -> GeneratePlanResponse:
		"""Generate and install the first step set of a plan.

		All inputs are validated before any network activity.  A failed write
		raises ``PersistenceError`` carrying the computed steps, which can be
		handed to ``install_steps`` to retry without regenerating.
		"""
		plan_id = _require_plan_id(plan_id)
		owner = _require_owner(owner_id)
		crop_request = coerce_request(request)
		await self._require_ungenerated(plan_id, owner)

		result = await self.generator.generate(crop_request)
		steps = step_lifecycle.initialize_steps(result.steps, crop_request.start_date)
		return await self.install_steps(plan_id, owner, crop_request, steps, result.source)

	async def install_steps(
		self,
		plan_id: uuid.UUID,
		owner_id: str,
		request: CropPlanRequest,
		steps: list[PlanStep],
		source: GenerationSource,
	) -> GeneratePlanResponse:
		"""Write an already computed step set, e.g. the steps carried by a PersistenceError."""
		plan_id = _require_plan_id(plan_id)
		owner_id = _require_owner(owner_id)
		_require_installable(steps)
		fields = fresh_plan_fields(steps, datetime.now(UTC))
		fields.update(request.model_dump())
		try:
			await self._require_owned(plan_id, owner_id)
			await self.store.update(plan_id, fields)
		except PersistenceError as exc:
			raise PersistenceError(str(exc), steps=steps) from exc

		logger.info(
			"plan_steps_installed",
			plan_id=str(plan_id),
			owner_id=owner_id,
			source=source.value,
			total_steps=len(steps),
		)
		return GeneratePlanResponse(plan_id=plan_id, steps=steps, total_steps=len(steps), source=source)

	async def complete_step(
		self,
		plan_id: uuid.UUID,
		step_id: str,
		*,
		now: datetime | None = None,
	) -> CompleteStepResponse:
		plan = await self.store.get(_require_plan_id(plan_id))
		if not plan.plan_generated:
			raise InputValidationError(f"Plan {plan_id} has no generated steps")

		steps, changed = step_lifecycle.complete_step(self.load_steps(plan), step_id, now=now)
		snapshot = step_lifecycle.summarize(steps)
		status = plan.status
		if changed:
			fields: dict[str, Any] = {
				"steps": [step.model_dump(mode="json") for step in steps],
				"progress": snapshot.progress,
				"current_step": snapshot.current_step,
			}
			if snapshot.all_completed:
				fields["status"] = PlanStatusEnum.completed
			plan = await self.store.update(plan.id, fields)
			status = plan.status
			logger.info(
				"step_completed",
				plan_id=str(plan.id),
				step_id=step_id,
				progress=snapshot.progress,
				current_step=snapshot.current_step,
			)

		return CompleteStepResponse(
			plan_id=plan.id,
			step_id=step_id,
			progress=snapshot.progress,
			current_step=snapshot.current_step,
			total_steps=snapshot.total_steps,
			status=status,
		)

	async def regenerate_plan(self, plan_id: uuid.UUID) -> GeneratePlanResponse:
		installed = await PlanRegenerator(self.store, self.generator).regenerate(_require_plan_id(plan_id))
		return GeneratePlanResponse(
			plan_id=installed.plan.id,
			steps=installed.steps,
			total_steps=len(installed.steps),
			source=installed.source,
		)

	async def list_plans(self, owner_id: str) -> list[CropPlan]:
		return await self.store.list_by_owner(_require_owner(owner_id))

	async def get_plan(self, plan_id: uuid.UUID) -> CropPlan:
		return await self.store.get(_require_plan_id(plan_id))

	async def set_status(self, plan_id: uuid.UUID, status: PlanStatusEnum) -> CropPlan:
		if status not in _USER_SETTABLE_STATUSES:
			raise InputValidationError("status can only be set to active or paused")
		plan = await self.store.get(_require_plan_id(plan_id))
		if plan.status == PlanStatusEnum.completed:
			raise InputValidationError(f"Plan {plan_id} is completed")
		return await self.store.update(plan.id, {"status": status})

	async def delete_plan(self, plan_id: uuid.UUID) -> None:
		await self.store.delete(_require_plan_id(plan_id))
		logger.info("plan_deleted", plan_id=str(plan_id))

	async def _require_owned(self, plan_id: uuid.UUID, owner_id: str) -> CropPlan:
		plan = await self.store.get(plan_id)
		if plan.owner_id != owner_id:
			raise LookupError(f"Plan {plan_id} not found")
		return plan

	async def _require_ungenerated(self, plan_id: uuid.UUID, owner_id: str) -> CropPlan:
		plan = await self._require_owned(plan_id, owner_id)
		if plan.plan_generated:
			raise InputValidationError(f"Plan {plan_id} is already generated; regenerate it instead")
		return plan

	@staticmethod
	def load_steps(plan: CropPlan) -> list[PlanStep]:
		return [PlanStep.model_validate(raw) for raw in plan.steps or []]

	@staticmethod
	def to_read(plan: CropPlan, *, now: datetime | None = None) -> CropPlanRead:
		steps = PlanService.load_steps(plan)
		views = step_lifecycle.derive_views(steps, now=now)
		current = next((view for view in views if view.is_current), None)
		return CropPlanRead(
			id=plan.id,
			owner_id=plan.owner_id,
			request=request_from_plan(plan),
			status=plan.status,
			progress=plan.progress,
			current_step=plan.current_step,
			total_steps=plan.total_steps,
			plan_generated=plan.plan_generated,
			schema_version=plan.schema_version,
			plan_generated_at=plan.plan_generated_at,
			created_at=plan.created_at,
			updated_at=plan.updated_at,
			next_step_title=current.title if current is not None else None,
			steps=views,
		)
