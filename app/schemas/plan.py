"""Pydantic schemas for crop plans — request snapshot, step records, API payloads."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.enums import (
	LandSizeEnum,
	PlanStatusEnum,
	SoilTypeEnum,
	StepCategoryEnum,
	StepLabelEnum,
	StepStatusEnum,
	WaterSourceEnum,
)
from app.services.date_scheduler import parse_start_date


class GenerationSource(StrEnum):
	generated = "generated"
	fallback = "fallback"


class CropPlanRequest(BaseModel):
	"""Immutable farm parameters a plan is generated from."""

	model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

	crop_name: str = Field(min_length=1, max_length=100)
	location: str = Field(min_length=1, max_length=255)
	soil_type: SoilTypeEnum
	water_source: WaterSourceEnum
	land_size: LandSizeEnum
	start_date: date

	@field_validator("crop_name")
	@classmethod
	def _normalize_crop(cls, value: str) -> str:
		return value.lower()

	@field_validator("start_date", mode="before")
	@classmethod
	def _parse_start_date(cls, value: Any) -> date:
		return parse_start_date(value)


class StepDescriptor(BaseModel):
	"""A repaired, undated step as produced by the generator or the fallback."""

	title: str = Field(min_length=1)
	description: str = Field(min_length=1)
	category: StepCategoryEnum
	days_from_start: int = Field(ge=0)
	materials: list[str] = Field(default_factory=list)


class PlanStep(BaseModel):
	id: str
	title: str
	description: str
	category: StepCategoryEnum
	days_from_start: int = Field(ge=0)
	scheduled_date: datetime
	completed_date: datetime | None = None
	status: StepStatusEnum = StepStatusEnum.not_completed
	materials: list[str] = Field(default_factory=list)


class StepView(PlanStep):
	"""A persisted step plus the labels derived from it at read time."""

	label: StepLabelEnum
	is_current: bool
	days_overdue: int | None = None
	days_until: int


# ── API payloads ────────────────────────────────────────────────────────────


class PlanCreate(CropPlanRequest):
	owner_id: str = Field(min_length=1, max_length=128)

	def to_request(self) -> CropPlanRequest:
		return CropPlanRequest(**self.model_dump(exclude={"owner_id"}))


class PlanInstall(PlanCreate):
	"""Retry body: the steps returned with a failed generation write."""

	steps: list[PlanStep] = Field(min_length=1)
	source: GenerationSource = GenerationSource.generated

	def to_request(self) -> CropPlanRequest:
		return CropPlanRequest(**self.model_dump(exclude={"owner_id", "steps", "source"}))


class PlanStatusUpdate(BaseModel):
	status: PlanStatusEnum


class GeneratePlanResponse(BaseModel):
	plan_id: uuid.UUID
	steps: list[PlanStep]
	total_steps: int
	source: GenerationSource


class CompleteStepResponse(BaseModel):
	plan_id: uuid.UUID
	step_id: str
	progress: int = Field(ge=0, le=100)
	current_step: int = Field(ge=1)
	total_steps: int
	status: PlanStatusEnum


class CropPlanRead(BaseModel):
	id: uuid.UUID
	owner_id: str
	request: CropPlanRequest
	status: PlanStatusEnum
	progress: int = Field(ge=0, le=100)
	current_step: int
	total_steps: int
	plan_generated: bool
	schema_version: str
	plan_generated_at: datetime | None = None
	created_at: datetime
	updated_at: datetime
	next_step_title: str | None = None
	steps: list[StepView] = Field(default_factory=list)


class CropPlanListRead(BaseModel):
	items: list[CropPlanRead]
