"""Enum types shared by the ORM models, schemas and the plan engine.

Column-backed enums map 1:1 to a PostgreSQL CREATE TYPE ... AS ENUM.
``StepStatusEnum`` values live inside the ``steps`` JSONB document and
``StepLabelEnum`` is never persisted; it is derived at read time.
"""

from enum import StrEnum

# ── Plan enums ──────────────────────────────────────────────────────────────


class PlanStatusEnum(StrEnum):
    """Overall lifecycle of a crop plan."""

    active = "active"
    completed = "completed"
    paused = "paused"


class StepCategoryEnum(StrEnum):
    """Kind of cultivation task a plan step represents."""

    sowing = "sowing"
    fertilizer = "fertilizer"
    pesticide = "pesticide"
    irrigation = "irrigation"
    harvest = "harvest"
    market = "market"
    growth = "growth"


class StepStatusEnum(StrEnum):
    """The only two persisted step states."""

    completed = "completed"
    not_completed = "not_completed"


class StepLabelEnum(StrEnum):
    """User-facing step label derived from status, order and the clock."""

    completed = "completed"
    current = "current"
    upcoming = "upcoming"
    overdue = "overdue"


# ── Farm parameter enums ────────────────────────────────────────────────────


class SoilTypeEnum(StrEnum):
    black = "black"
    red = "red"
    alluvial = "alluvial"
    sandy = "sandy"
    clayey = "clayey"
    loamy = "loamy"


class WaterSourceEnum(StrEnum):
    drip = "drip"
    sprinkler = "sprinkler"
    flood = "flood"
    rainfed = "rainfed"
    borewell = "borewell"
    canal = "canal"


class LandSizeEnum(StrEnum):
    small = "small"
    medium = "medium"
    large = "large"
    very_large = "very_large"


# ── Display names ───────────────────────────────────────────────────────────

SOIL_TYPE_NAMES: dict[SoilTypeEnum, str] = {
    SoilTypeEnum.black: "black",
    SoilTypeEnum.red: "red",
    SoilTypeEnum.alluvial: "alluvial",
    SoilTypeEnum.sandy: "sandy",
    SoilTypeEnum.clayey: "clayey",
    SoilTypeEnum.loamy: "loamy",
}

WATER_SOURCE_NAMES: dict[WaterSourceEnum, str] = {
    WaterSourceEnum.drip: "drip irrigation",
    WaterSourceEnum.sprinkler: "sprinkler",
    WaterSourceEnum.flood: "flood irrigation",
    WaterSourceEnum.rainfed: "rain-fed",
    WaterSourceEnum.borewell: "borewell",
    WaterSourceEnum.canal: "canal",
}

LAND_SIZE_NAMES: dict[LandSizeEnum, str] = {
    LandSizeEnum.small: "small (1-2 acres)",
    LandSizeEnum.medium: "medium (3-5 acres)",
    LandSizeEnum.large: "large (6-10 acres)",
    LandSizeEnum.very_large: "very large (10+ acres)",
}

CROP_NAMES: dict[str, str] = {
    "soybean": "Soybean",
    "cotton": "Cotton",
    "wheat": "Wheat",
    "tomato": "Tomato",
    "onion": "Onion",
    "rice": "Rice",
    "sugarcane": "Sugarcane",
    "maize": "Maize",
}


def crop_display_name(crop_name: str) -> str:
    """Catalogue name for known crops, title-cased identifier otherwise."""
    return CROP_NAMES.get(crop_name, crop_name.replace("_", " ").title())
