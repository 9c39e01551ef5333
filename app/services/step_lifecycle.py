"""Step lifecycle — initial states, completion, progress and read-time labels.

Only ``completed`` / ``not_completed`` is ever stored per step.  "current",
"upcoming" and "overdue" are derived here from the steps and a clock value,
so stored and displayed state can never drift apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime

from app.models.enums import StepLabelEnum, StepStatusEnum
from app.schemas.plan import PlanStep, StepDescriptor, StepView
from app.services.date_scheduler import calendar_day, days_between, schedule_date


@dataclass(slots=True)
class ProgressSnapshot:
	completed: int
	total_steps: int
	progress: int
	current_step: int

	@property
	def all_completed(self) -> bool:
		return self.total_steps > 0 and self.completed == self.total_steps


def step_id_for(position: int) -> str:
	return f"step_{position}"


def initialize_steps(descriptors: list[StepDescriptor], start_date: date) -> list[PlanStep]:
	"""Order descriptors chronologically, date them and mark all not-completed.

	The sort is stable, so descriptors sharing an offset keep their order.
	"""
	ordered = sorted(descriptors, key=lambda descriptor: descriptor.days_from_start)
	return [
		PlanStep(
			id=step_id_for(position),
			title=descriptor.title,
			description=descriptor.description,
			category=descriptor.category,
			days_from_start=descriptor.days_from_start,
			scheduled_date=schedule_date(start_date, descriptor.days_from_start),
			completed_date=None,
			status=StepStatusEnum.not_completed,
			materials=list(descriptor.materials),
		)
		for position, descriptor in enumerate(ordered, start=1)
	]


def compute_progress(completed: int, total: int) -> int:
	"""round(100 * completed / total) with halves rounded up; 0 for an empty plan.

	Capped at 99 until every step is completed.
	"""
	if total <= 0:
		return 0
	progress = (200 * completed + total) // (2 * total)
	if completed < total:
		return min(progress, 99)
	return progress


def summarize(steps: list[PlanStep]) -> ProgressSnapshot:
	completed = sum(1 for step in steps if step.status == StepStatusEnum.completed)
	total = len(steps)
	return ProgressSnapshot(
		completed=completed,
		total_steps=total,
		progress=compute_progress(completed, total),
		current_step=completed + 1,
	)


def complete_step(
	steps: list[PlanStep],
	step_id: str,
	*,
	now: datetime | None = None,
) -> tuple[list[PlanStep], bool]:
	"""Mark one step completed.

	Returns the new step list and whether anything changed.  Completing an
	already-completed step is a no-op; unknown ids raise ``LookupError``.
	"""
	moment = now or datetime.now(UTC)
	updated: list[PlanStep] = []
	found = False
	changed = False
	for step in steps:
		if step.id != step_id:
			updated.append(step)
			continue
		found = True
		if step.status == StepStatusEnum.completed:
			updated.append(step)
			continue
		updated.append(
			step.model_copy(update={"status": StepStatusEnum.completed, "completed_date": moment})
		)
		changed = True

	if not found:
		raise LookupError(f"Step {step_id} not found")
	return updated, changed


def current_step_id(steps: list[PlanStep]) -> str | None:
	"""Earliest-scheduled not-completed step; ties go to the earlier position."""
	pending = [
		(step.scheduled_date, position, step.id)
		for position, step in enumerate(steps)
		if step.status != StepStatusEnum.completed
	]
	if not pending:
		return None
	return min(pending)[2]


def derive_views(steps: list[PlanStep], *, now: datetime | None = None) -> list[StepView]:
	moment = now or datetime.now(UTC)
	today = calendar_day(moment)
	current_id = current_step_id(steps)

	views: list[StepView] = []
	for step in steps:
		is_current = step.id == current_id
		days_until = days_between(moment, step.scheduled_date)
		days_overdue: int | None = None
		if step.status == StepStatusEnum.completed:
			label = StepLabelEnum.completed
		elif calendar_day(step.scheduled_date) < today:
			label = StepLabelEnum.overdue
			days_overdue = -days_until
		elif is_current:
			label = StepLabelEnum.current
		else:
			label = StepLabelEnum.upcoming
		views.append(
			StepView(
				**step.model_dump(),
				label=label,
				is_current=is_current,
				days_overdue=days_overdue,
				days_until=days_until,
			)
		)
	return views
