"""initial_crop_plans

Revision ID: 3c9e1f7a2b40
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the ``crop_plans`` table and its four PostgreSQL enum types.
Requires the uuid-ossp extension for ``uuid_generate_v4()``.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3c9e1f7a2b40"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# ── Enum type names (PostgreSQL CREATE TYPE) ────────────────────────────────
ENUM_PLAN_STATUS = postgresql.ENUM(
    "active", "completed", "paused", name="plan_status", create_type=False
)
ENUM_SOIL_TYPE = postgresql.ENUM(
    "black",
    "red",
    "alluvial",
    "sandy",
    "clayey",
    "loamy",
    name="soil_type",
    create_type=False,
)
ENUM_WATER_SOURCE = postgresql.ENUM(
    "drip",
    "sprinkler",
    "flood",
    "rainfed",
    "borewell",
    "canal",
    name="water_source",
    create_type=False,
)
ENUM_LAND_SIZE = postgresql.ENUM(
    "small", "medium", "large", "very_large", name="land_size", create_type=False
)

_ENUMS = (ENUM_PLAN_STATUS, ENUM_SOIL_TYPE, ENUM_WATER_SOURCE, ENUM_LAND_SIZE)


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')
    for enum in _ENUMS:
        enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "crop_plans",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("uuid_generate_v4()"),
            nullable=False,
        ),
        sa.Column("owner_id", sa.String(length=128), nullable=False),
        sa.Column("crop_name", sa.String(length=100), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=False),
        sa.Column("soil_type", ENUM_SOIL_TYPE, nullable=False),
        sa.Column("water_source", ENUM_WATER_SOURCE, nullable=False),
        sa.Column("land_size", ENUM_LAND_SIZE, nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("status", ENUM_PLAN_STATUS, nullable=False, server_default=sa.text("'active'")),
        sa.Column(
            "steps",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("progress", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("current_step", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("total_steps", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("plan_generated", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("schema_version", sa.String(length=16), nullable=False, server_default=sa.text("'1.0'")),
        sa.Column("plan_generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("progress BETWEEN 0 AND 100", name="ck_crop_plans_progress_range"),
    )
    op.create_index("ix_crop_plans_owner_created", "crop_plans", ["owner_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_crop_plans_owner_created", table_name="crop_plans")
    op.drop_table("crop_plans")
    for enum in reversed(_ENUMS):
        enum.drop(op.get_bind(), checkfirst=True)
