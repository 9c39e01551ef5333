"""CropPlan ORM model — one farmer's dated cultivation schedule for one crop.

``steps`` (JSONB) holds the ordered PlanStep documents written by the plan
engine; the order is chronological and fixed at generation time:

    [
        {
            "id": "step_1",
            "title": "Land Preparation",
            "description": "Deep plowing of black soil ...",
            "category": "sowing",
            "days_from_start": 0,
            "scheduled_date": "2025-01-01T00:00:00Z",
            "completed_date": null,
            "status": "not_completed",
            "materials": ["Tractor", "Plough"]
        },
        ...
    ]

``progress``, ``current_step`` and ``total_steps`` are derived from
``steps`` and rewritten together with it on every mutation.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Enum, Index, Integer, String, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.enums import LandSizeEnum, PlanStatusEnum, SoilTypeEnum, WaterSourceEnum


class CropPlan(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A crop plan record plus its immutable originating request snapshot."""

    __tablename__ = "crop_plans"
    __table_args__ = (
        Index("ix_crop_plans_owner_created", "owner_id", "created_at"),
        CheckConstraint("progress BETWEEN 0 AND 100", name="ck_crop_plans_progress_range"),
    )

    owner_id: Mapped[str] = mapped_column(String(128), nullable=False)

    # ── Request snapshot ─────────────────────────────────────────────────
    crop_name: Mapped[str] = mapped_column(String(100), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    soil_type: Mapped[SoilTypeEnum] = mapped_column(
        Enum(SoilTypeEnum, name="soil_type", create_constraint=False, native_enum=True),
        nullable=False,
    )
    water_source: Mapped[WaterSourceEnum] = mapped_column(
        Enum(WaterSourceEnum, name="water_source", create_constraint=False, native_enum=True),
        nullable=False,
    )
    land_size: Mapped[LandSizeEnum] = mapped_column(
        Enum(LandSizeEnum, name="land_size", create_constraint=False, native_enum=True),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    # ── Plan state ───────────────────────────────────────────────────────
    status: Mapped[PlanStatusEnum] = mapped_column(
        Enum(PlanStatusEnum, name="plan_status", create_constraint=False, native_enum=True),
        nullable=False,
        default=PlanStatusEnum.active,
        server_default=PlanStatusEnum.active.value,
    )
    steps: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        server_default=text("'[]'::jsonb"),
    )
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    total_steps: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    plan_generated: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    schema_version: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="1.0",
        server_default="1.0",
    )
    plan_generated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<CropPlan id={self.id} owner={self.owner_id!r} "
            f"crop={self.crop_name!r} status={self.status}>"
        )
