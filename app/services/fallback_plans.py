"""Deterministic offline crop plan templates.

Each template row is ``(title, description, category, days_from_start,
materials)``.  Descriptions are ``str.format`` templates over the request's
free-text fields; everything else is fixed per crop so repeated builds for
the same crop yield the same ``(category, offset)`` sequence.  Offsets are
non-decreasing within every template.
"""

from __future__ import annotations

from typing import NamedTuple

import structlog

from app.models.enums import (
	LAND_SIZE_NAMES,
	SOIL_TYPE_NAMES,
	WATER_SOURCE_NAMES,
	StepCategoryEnum,
	crop_display_name,
)
from app.schemas.plan import CropPlanRequest, StepDescriptor

logger = structlog.get_logger("cropcycle.fallback")


class _TemplateStep(NamedTuple):
	title: str
	description: str
	category: StepCategoryEnum
	days: int
	materials: tuple[str, ...]


_S = StepCategoryEnum.sowing
_F = StepCategoryEnum.fertilizer
_P = StepCategoryEnum.pesticide
_I = StepCategoryEnum.irrigation
_H = StepCategoryEnum.harvest
_M = StepCategoryEnum.market

_WHEAT: tuple[_TemplateStep, ...] = (
	_TemplateStep(
		"Land Preparation",
		"Deep plowing of {soil} soil to 20-25 cm depth. Remove weeds and level the field for uniform "
		"{water} irrigation.",
		_S, 0, ("Tractor", "Plough", "Leveller"),
	),
	_TemplateStep(
		"Basal Fertilizer Application",
		"Apply DAP 125 kg/ha + MOP 50 kg/ha as basal dose before sowing. Mix well with the {soil} soil.",
		_F, 2, ("DAP 125 kg/ha", "MOP 50 kg/ha"),
	),
	_TemplateStep(
		"Seed Treatment & Sowing",
		"Treat wheat seeds with fungicide. Sow a certified variety (HD 2967/Raj 3765) at 100-125 kg/hectare "
		"seed rate using a seed drill.",
		_S, 3, ("Certified Wheat Seeds 100-125 kg/ha", "Fungicide (Thiram)", "Seed Drill"),
	),
	_TemplateStep(
		"First Irrigation",
		"Light irrigation after sowing using the {water} system. Ensure uniform water distribution.",
		_I, 4, ("Water", "Irrigation equipment"),
	),
	_TemplateStep(
		"Weed Management",
		"Apply pre-emergence herbicide Pendimethalin 1 kg/ha within 3 days of sowing. Hand weeding at "
		"30-35 days if needed.",
		_P, 5, ("Pendimethalin 1 kg/ha", "Sprayer"),
	),
	_TemplateStep(
		"Crown Root Irrigation",
		"Critical irrigation at crown root initiation stage (20-25 days). Monitor soil moisture.",
		_I, 22, ("Water",),
	),
	_TemplateStep(
		"First Top Dressing",
		"Apply Urea 100 kg/ha at tillering stage (30-35 days after sowing). Apply in rows and irrigate.",
		_F, 32, ("Urea 100 kg/ha",),
	),
	_TemplateStep(
		"Tillering Stage Irrigation",
		"Irrigation during active tillering. Maintain optimal soil moisture for maximum tiller production.",
		_I, 35, ("Water",),
	),
	_TemplateStep(
		"Pest Monitoring",
		"Monitor for aphids, termites and shoot fly. Apply Imidacloprid 17.8% SL 125 ml/acre if the pest "
		"threshold is reached.",
		_P, 45, ("Imidacloprid 17.8% SL 125ml/acre", "Sprayer"),
	),
	_TemplateStep(
		"Jointing Stage Irrigation",
		"Critical irrigation at jointing stage (60-65 days). Essential for proper head formation.",
		_I, 62, ("Water",),
	),
	_TemplateStep(
		"Flag Leaf Stage Care",
		"Monitor flag leaf emergence. Apply fungicide if rust or powdery mildew is observed.",
		_P, 75, ("Mancozeb 2.5 kg/ha", "Sprayer"),
	),
	_TemplateStep(
		"Flowering Stage Irrigation",
		"Irrigation during flowering and grain filling stage. Critical for yield determination.",
		_I, 85, ("Water",),
	),
	_TemplateStep(
		"Grain Filling Support",
		"Monitor grain filling. Apply light irrigation if the weather is dry. Avoid late nitrogen application.",
		_I, 95, ("Water",),
	),
	_TemplateStep(
		"Pre-Harvest Preparation",
		"Stop irrigation 10-15 days before harvest. Check grain moisture and maturity indicators.",
		_H, 105, ("Moisture meter",),
	),
	_TemplateStep(
		"Harvesting",
		"Harvest when grains are hard and golden yellow. Use a combine harvester sized for a {land} field.",
		_H, 120, ("Combine harvester", "Storage bags"),
	),
	_TemplateStep(
		"Post-Harvest & Storage",
		"Clean grains and dry to 12% moisture content. Store in a dry, cool place with proper ventilation.",
		_H, 125, ("Cleaning equipment", "Storage facilities", "Drying floor"),
	),
	_TemplateStep(
		"Market Analysis & Sale",
		"Monitor wheat prices at the {location} mandi. Consider government procurement or private sale "
		"based on better rates.",
		_M, 130, ("Transportation", "Market information"),
	),
)

_SOYBEAN: tuple[_TemplateStep, ...] = (
	_TemplateStep(
		"Land Preparation & Deep Plowing",
		"Prepare {soil} soil with deep plowing to 15-20 cm. Apply farmyard manure 5-10 tons per acre. Level "
		"the field for uniform sowing.",
		_S, 0, ("Tractor/Bullock", "Plough", "Leveller", "Farmyard Manure 5-10 tons"),
	),
	_TemplateStep(
		"Seed Treatment & Sowing",
		"Treat soybean seeds with Rhizobium culture and fungicide. Sow with 45-60 cm row spacing at 5 cm "
		"depth, 75-80 kg seeds per acre.",
		_S, 3, ("Certified Soybean Seeds 75-80 kg", "Rhizobium Culture", "Thiram/Carbendazim"),
	),
	_TemplateStep(
		"First Irrigation",
		"Light irrigation immediately after sowing for good germination. Use the {water} system efficiently.",
		_I, 4, ("Water", "Irrigation Equipment"),
	),
	_TemplateStep(
		"Basal Fertilizer Application",
		"Apply DAP 100 kg + Muriate of Potash 60 kg per acre as basal dose. Mix well with soil.",
		_F, 5, ("DAP 100 kg/acre", "Muriate of Potash 60 kg/acre"),
	),
	_TemplateStep(
		"First Weeding",
		"Manual weeding or pre-emergence herbicide Pendimethalin 3.5 liters per acre within 2 days of sowing.",
		_P, 15, ("Pendimethalin 3.5L/acre", "Hand tools for weeding"),
	),
	_TemplateStep(
		"Nitrogen Top Dressing",
		"Apply Urea 40 kg per acre during flowering stage for better pod formation.",
		_F, 30, ("Urea 40 kg/acre",),
	),
	_TemplateStep(
		"Pest Monitoring & Control",
		"Monitor for aphids, jassids and caterpillars. Spray Imidacloprid 17.8% SL 100 ml in 200 L water per "
		"acre if needed.",
		_P, 35, ("Imidacloprid 17.8% SL 100ml", "Sprayer", "Water 200L"),
	),
	_TemplateStep(
		"Second Irrigation",
		"Irrigate with {water} during flowering and pod development. Critical for yield.",
		_I, 40, ("Water", "Irrigation system"),
	),
	_TemplateStep(
		"Disease Management",
		"Monitor for rust and blight. Apply Mancozeb 2.5 kg per acre if disease symptoms appear.",
		_P, 50, ("Mancozeb 2.5 kg/acre", "Fungicide sprayer"),
	),
	_TemplateStep(
		"Final Irrigation",
		"Last irrigation during pod filling stage. Stop irrigation 10 days before harvest.",
		_I, 70, ("Water",),
	),
	_TemplateStep(
		"Pre-Harvest Monitoring",
		"Check crop maturity. Pods should turn brown and rattle when shaken. Plan harvest timing.",
		_H, 95, ("Maturity indicators",),
	),
	_TemplateStep(
		"Harvesting",
		"Harvest when 95% of pods are mature and brown, using a combine or manual methods suited to a {land} "
		"farm. Avoid delays to prevent shattering.",
		_H, 100, ("Combine Harvester/Manual tools", "Storage bags"),
	),
	_TemplateStep(
		"Drying & Storage",
		"Sun dry harvested soybean to 10-12% moisture content. Store in clean, dry godowns with proper "
		"fumigation.",
		_H, 105, ("Drying floor", "Storage bags", "Moisture meter", "Fumigants"),
	),
	_TemplateStep(
		"Market Analysis & Sale",
		"Check current mandi prices for soybean in {location}. Sell at the best price after transport costs.",
		_M, 110, ("Market price information", "Transportation"),
	),
)

_GENERIC: tuple[_TemplateStep, ...] = (
	_TemplateStep(
		"Land Preparation",
		"Prepare the field for {crop} with deep plowing suited for {soil} soil. Apply organic matter.",
		_S, 0, ("Tractor/Plough", "Organic manure"),
	),
	_TemplateStep(
		"Seed Treatment & Sowing",
		"Treat {crop} seeds with an appropriate fungicide. Sow with recommended spacing for optimal growth.",
		_S, 3, ("Certified seeds", "Seed treatment chemicals"),
	),
	_TemplateStep(
		"Initial Irrigation",
		"Provide adequate water using {water} for germination and establishment.",
		_I, 5, ("Water", "Irrigation equipment"),
	),
	_TemplateStep(
		"Fertilizer Application",
		"Apply balanced NPK fertilizer based on soil test recommendations for {soil} soil.",
		_F, 15, ("NPK fertilizer", "Organic supplements"),
	),
	_TemplateStep(
		"Weed Management",
		"Control weeds manually or with appropriate herbicides. Keep the field weed-free.",
		_P, 20, ("Herbicides", "Hand tools"),
	),
	_TemplateStep(
		"Pest Monitoring",
		"Monitor regularly for pests and diseases. Apply need-based treatment.",
		_P, 30, ("Insecticides", "Fungicides", "Sprayer"),
	),
	_TemplateStep(
		"Mid-Season Care",
		"Provide additional fertilizer and irrigation support during critical growth stages.",
		_F, 45, ("Micronutrients", "Water"),
	),
	_TemplateStep(
		"Harvest Preparation",
		"Monitor crop maturity and prepare for harvest. Arrange labor and equipment for a {land} farm.",
		_H, 75, ("Harvest tools", "Storage containers"),
	),
	_TemplateStep(
		"Harvesting",
		"Harvest {crop} at optimal maturity to ensure the best quality and market value.",
		_H, 80, ("Harvest equipment", "Transportation"),
	),
	_TemplateStep(
		"Post-Harvest & Marketing",
		"Handle, store and market the produce to get the best prices in {location}.",
		_M, 85, ("Storage facilities", "Market information"),
	),
)

_CROP_TEMPLATES: dict[str, tuple[_TemplateStep, ...]] = {
	"wheat": _WHEAT,
	"soybean": _SOYBEAN,
}


class FallbackPlanBuilder:
	"""Builds a complete plan from curated templates with no external calls."""

	@staticmethod
	def has_curated_template(crop_name: str) -> bool:
		return crop_name in _CROP_TEMPLATES

	def build(self, request: CropPlanRequest) -> list[StepDescriptor]:
		template = _CROP_TEMPLATES.get(request.crop_name, _GENERIC)
		fields = self._interpolation_fields(request)
		steps = [
			StepDescriptor(
				title=row.title,
				description=row.description.format(**fields),
				category=row.category,
				days_from_start=row.days,
				materials=list(row.materials),
			)
			for row in template
		]
		logger.info(
			"fallback_plan_built",
			crop=request.crop_name,
			curated=template is not _GENERIC,
			step_count=len(steps),
		)
		return steps

	@staticmethod
	def _interpolation_fields(request: CropPlanRequest) -> dict[str, str]:
		return {
			"crop": crop_display_name(request.crop_name).lower(),
			"location": request.location,
			"soil": SOIL_TYPE_NAMES[request.soil_type],
			"water": WATER_SOURCE_NAMES[request.water_source],
			"land": LAND_SIZE_NAMES[request.land_size],
		}
