"""Full-replacement regeneration of an existing plan's steps."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import structlog

from app.exceptions import PersistenceError
from app.models.enums import PlanStatusEnum
from app.models.plans import CropPlan
from app.schemas.plan import CropPlanRequest, GenerationSource, PlanStep
from app.services.plan_generator import PlanGenerator
from app.services.plan_store import PlanStore
from app.services.step_lifecycle import initialize_steps

logger = structlog.get_logger("cropcycle.regenerator")


@dataclass(slots=True)
class InstalledPlan:
	plan: CropPlan
	steps: list[PlanStep]
	source: GenerationSource


def fresh_plan_fields(steps: list[PlanStep], generated_at: datetime) -> dict[str, Any]:
	"""Every field a newly generated step set resets, written in one update."""
	return {
		"steps": [step.model_dump(mode="json") for step in steps],
		"total_steps": len(steps),
		"progress": 0,
		"current_step": 1,
		"plan_generated": True,
		"plan_generated_at": generated_at,
		"status": PlanStatusEnum.active,
	}


def request_from_plan(plan: CropPlan) -> CropPlanRequest:
	return CropPlanRequest.model_validate(plan, from_attributes=True)


class PlanRegenerator:
	"""Regenerates a plan from its stored request and overwrites its steps.

	Prior completion history is discarded: the new step set starts with zero
	completions.
	"""

	def __init__(self, store: PlanStore, generator: PlanGenerator):
		self.store = store
		self.generator = generator

	async def regenerate(self, plan_id: uuid.UUID, *, now: datetime | None = None) -> InstalledPlan:
		plan = await self.store.get(plan_id)
		request = request_from_plan(plan)
		previous_total = plan.total_steps

		result = await self.generator.generate(request)
		steps = initialize_steps(result.steps, request.start_date)

		try:
			plan = await self.store.update(plan_id, fresh_plan_fields(steps, now or datetime.now(UTC)))
		except PersistenceError as exc:
			raise PersistenceError(str(exc), steps=steps) from exc

		logger.info(
			"plan_regenerated",
			plan_id=str(plan_id),
			source=result.source.value,
			previous_total=previous_total,
			total_steps=len(steps),
		)
		return InstalledPlan(plan=plan, steps=steps, source=result.source)
