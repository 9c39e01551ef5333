"""Plan generation — prompt assembly, external call, JSON extraction, per-field repair.

Generation never fails for quality reasons: any unavailable service or
unusable response is logged and replaced by the offline fallback plan.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any

import structlog

from app.exceptions import ExternalServiceUnavailable, InputValidationError, MalformedResponse
from app.models.enums import (
	LAND_SIZE_NAMES,
	SOIL_TYPE_NAMES,
	WATER_SOURCE_NAMES,
	StepCategoryEnum,
	crop_display_name,
)
from app.schemas.plan import CropPlanRequest, GenerationSource, StepDescriptor
from app.services.fallback_plans import FallbackPlanBuilder
from app.services.text_generation import AnthropicTextClient, TextGenerationClient

logger = structlog.get_logger("cropcycle.generator")

PLACEHOLDER_DESCRIPTION = "No description provided"
DEFAULT_CATEGORY = StepCategoryEnum.sowing
DEFAULT_OFFSET_INTERVAL_DAYS = 7
MAX_OFFSET_DAYS = 3650
MAX_GENERATED_STEPS = 100

_FENCED_BLOCK = re.compile(r"```[A-Za-z]*\s*(\{[\s\S]*?\})\s*```")
_CATEGORY_VALUES = {category.value for category in StepCategoryEnum}


@dataclass(slots=True)
class GenerationResult:
	steps: list[StepDescriptor]
	source: GenerationSource


def build_prompt(request: CropPlanRequest) -> str:
	crop = crop_display_name(request.crop_name)
	soil = SOIL_TYPE_NAMES[request.soil_type]
	water = WATER_SOURCE_NAMES[request.water_source]
	land = LAND_SIZE_NAMES[request.land_size]
	categories = "|".join(category.value for category in StepCategoryEnum)
	return (
		f"Create a detailed, practical step-by-step cultivation plan for {crop} farming in "
		f"{request.location} with these conditions:\n\n"
		f"Location: {request.location}\n"
		f"Crop: {crop}\n"
		f"Soil Type: {soil}\n"
		f"Water Source: {water}\n"
		f"Land Size: {land}\n"
		f"Start Date: {request.start_date.isoformat()}\n\n"
		"Generate 10-15 specific, actionable steps covering the complete crop lifecycle from land "
		"preparation to market sale: land preparation and sowing, fertilizer applications with NPK "
		f"ratios, an irrigation schedule adapted to {water}, pest and disease management, growth "
		"monitoring, harvest timing, post-harvest handling and a market selling strategy.\n\n"
		f"Tailor instructions to {soil} soil and quantities to a {land} farm. Prefer locally "
		"available, cost-effective materials.\n\n"
		"Return ONLY a valid JSON object in exactly this format:\n"
		"{\n"
		'  "steps": [\n'
		"    {\n"
		'      "title": "Clear step title",\n'
		'      "description": "Detailed 2-3 sentence description with specific instructions",\n'
		f'      "category": "{categories}",\n'
		'      "days_from_start": <whole number of days after the start date>,\n'
		'      "materials": ["Specific material names with quantities"]\n'
		"    }\n"
		"  ]\n"
		"}\n\n"
		"List steps in chronological order; days_from_start must never decrease."
	)


def extract_json_object(text: str) -> dict[str, Any]:
	"""Pull the first JSON object out of free text.

	Tries the greedy span from the first ``{`` to the last ``}`` and then the
	first fenced code block.
	"""
	candidates: list[str] = []
	start = text.find("{")
	end = text.rfind("}")
	if start != -1 and end > start:
		candidates.append(text[start : end + 1])
	fenced = _FENCED_BLOCK.search(text)
	if fenced is not None:
		candidates.append(fenced.group(1))

	for candidate in candidates:
		try:
			parsed = json.loads(candidate)
		except json.JSONDecodeError:
			continue
		if isinstance(parsed, dict):
			return parsed
	raise MalformedResponse("no JSON object found in generated text")


def extract_step_entries(payload: dict[str, Any]) -> list[Any]:
	entries = payload.get("steps")
	if not isinstance(entries, list) or not entries:
		raise MalformedResponse("generated plan has no usable steps array")
	if len(entries) > MAX_GENERATED_STEPS:
		raise MalformedResponse(f"generated plan has {len(entries)} steps, more than {MAX_GENERATED_STEPS}")
	return entries


def repair_steps(entries: list[Any]) -> list[StepDescriptor]:
	"""Fill every missing or invalid field independently, keeping the rest."""
	return [_repair_entry(entry, index) for index, entry in enumerate(entries)]


def _repair_entry(entry: Any, index: int) -> StepDescriptor:
	if isinstance(entry, str):
		entry = {"title": entry}
	elif not isinstance(entry, dict):
		entry = {}

	return StepDescriptor(
		title=_text_or(entry.get("title"), f"Step {index + 1}"),
		description=_text_or(entry.get("description"), PLACEHOLDER_DESCRIPTION),
		category=_repair_category(entry.get("category")),
		days_from_start=_repair_offset(entry.get("days_from_start"), index),
		materials=_repair_materials(entry.get("materials")),
	)


def _text_or(raw: Any, default: str) -> str:
	if isinstance(raw, str) and raw.strip():
		return raw.strip()
	return default


def _repair_category(raw: Any) -> StepCategoryEnum:
	if isinstance(raw, str):
		normalized = raw.strip().lower()
		if normalized in _CATEGORY_VALUES:
			return StepCategoryEnum(normalized)
	return DEFAULT_CATEGORY


def _repair_offset(raw: Any, index: int) -> int:
	value = _as_whole_days(raw)
	if value is None or not 0 <= value <= MAX_OFFSET_DAYS:
		return index * DEFAULT_OFFSET_INTERVAL_DAYS
	return value


def _as_whole_days(raw: Any) -> int | None:
	if isinstance(raw, bool):
		return None
	if isinstance(raw, int):
		return raw
	if isinstance(raw, str):
		try:
			raw = float(raw.strip())
		except ValueError:
			return None
	if isinstance(raw, float) and math.isfinite(raw) and raw.is_integer():
		return int(raw)
	return None


def _repair_materials(raw: Any) -> list[str]:
	if not isinstance(raw, list):
		return []
	materials: list[str] = []
	for item in raw:
		if isinstance(item, bool) or not isinstance(item, (str, int, float)):
			continue
		text = str(item).strip()
		if text:
			materials.append(text)
	return materials


class PlanGenerator:
	"""Produces step descriptors for a request, preferring generated content."""

	def __init__(
		self,
		client: TextGenerationClient | None = None,
		fallback: FallbackPlanBuilder | None = None,
	):
		self.client = client or AnthropicTextClient()
		self.fallback = fallback or FallbackPlanBuilder()

	async def generate(self, request: CropPlanRequest) -> GenerationResult:
		if not isinstance(request, CropPlanRequest):
			raise InputValidationError("a validated crop plan request is required")

		prompt = build_prompt(request)
		try:
			text = await self.client.complete(prompt)
			steps = repair_steps(extract_step_entries(extract_json_object(text)))
		except (ExternalServiceUnavailable, MalformedResponse) as exc:
			logger.warning(
				"plan_generation_fallback",
				crop=request.crop_name,
				reason=type(exc).__name__,
				detail=str(exc),
			)
			return GenerationResult(steps=self.fallback.build(request), source=GenerationSource.fallback)
		except Exception:
			logger.exception("plan_generation_failed", crop=request.crop_name)
			return GenerationResult(steps=self.fallback.build(request), source=GenerationSource.fallback)

		logger.info("plan_generated", crop=request.crop_name, step_count=len(steps))
		return GenerationResult(steps=steps, source=GenerationSource.generated)
