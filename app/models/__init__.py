"""ORM model registry — importing this module registers every table on Base.metadata.

Alembic ``env.py`` imports ``Base`` from here (not from ``base.py``) so that
autogenerate sees all tables.  Application code can also do::

    from app.models import CropPlan, PlanStatusEnum, ...
"""

# ── Base & Mixins ───────────────────────────────────────────────────────────
from app.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)

# ── Enums ───────────────────────────────────────────────────────────────────
from app.models.enums import (
    LandSizeEnum,
    PlanStatusEnum,
    SoilTypeEnum,
    StepCategoryEnum,
    StepLabelEnum,
    StepStatusEnum,
    WaterSourceEnum,
)

# ── Plans ───────────────────────────────────────────────────────────────────
from app.models.plans import CropPlan

__all__ = [
    # Base & mixins
    "Base",
    # Plans
    "CropPlan",
    # Enums
    "LandSizeEnum",
    "PlanStatusEnum",
    "SoilTypeEnum",
    "StepCategoryEnum",
    "StepLabelEnum",
    "StepStatusEnum",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "WaterSourceEnum",
]
