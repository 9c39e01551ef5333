"""PlanStore — the narrow persistence interface the plan engine writes through."""

from __future__ import annotations

import uuid
from typing import Any, Protocol

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import PersistenceError
from app.models.plans import CropPlan

logger = structlog.get_logger("cropcycle.store")


class PlanStore(Protocol):
	async def create(self, plan: CropPlan) -> CropPlan: ...

	async def get(self, plan_id: uuid.UUID) -> CropPlan: ...

	async def list_by_owner(self, owner_id: str) -> list[CropPlan]: ...

	async def update(self, plan_id: uuid.UUID, fields: dict[str, Any]) -> CropPlan: ...

	async def delete(self, plan_id: uuid.UUID) -> None: ...


class SqlAlchemyPlanStore:
	"""PlanStore over the request's async session; commit is left to the caller."""

	def __init__(self, db: AsyncSession):
		self.db = db

	async def _failed(self, message: str) -> PersistenceError:
		"""Roll the session back so the same session can retry, then wrap the error."""
		try:
			await self.db.rollback()
		except SQLAlchemyError as rollback_exc:
			logger.warning("plan_store_rollback_failed", error=str(rollback_exc))
		return PersistenceError(message)

	async def create(self, plan: CropPlan) -> CropPlan:
		try:
			self.db.add(plan)
			await self.db.flush()
			await self.db.refresh(plan)
		except SQLAlchemyError as exc:
			raise await self._failed(f"could not create plan: {exc}") from exc
		return plan

	async def get(self, plan_id: uuid.UUID) -> CropPlan:
		try:
			row = await self.db.execute(select(CropPlan).where(CropPlan.id == plan_id))
		except SQLAlchemyError as exc:
			raise await self._failed(f"could not read plan {plan_id}: {exc}") from exc
		plan = row.scalar_one_or_none()
		if plan is None:
			raise LookupError(f"Plan {plan_id} not found")
		return plan

	async def list_by_owner(self, owner_id: str) -> list[CropPlan]:
		stmt = (
			select(CropPlan)
			.where(CropPlan.owner_id == owner_id)
			.order_by(CropPlan.created_at.desc())
		)
		try:
			rows = await self.db.execute(stmt)
		except SQLAlchemyError as exc:
			raise await self._failed(f"could not list plans: {exc}") from exc
		return list(rows.scalars().all())

	async def update(self, plan_id: uuid.UUID, fields: dict[str, Any]) -> CropPlan:
		plan = await self.get(plan_id)
		for name, value in fields.items():
			setattr(plan, name, value)
		try:
			await self.db.flush()
			await self.db.refresh(plan)
		except SQLAlchemyError as exc:
			raise await self._failed(f"could not update plan {plan_id}: {exc}") from exc
		return plan

	async def delete(self, plan_id: uuid.UUID) -> None:
		try:
			result = await self.db.execute(delete(CropPlan).where(CropPlan.id == plan_id))
		except SQLAlchemyError as exc:
			raise await self._failed(f"could not delete plan {plan_id}: {exc}") from exc
		if result.rowcount == 0:
			raise LookupError(f"Plan {plan_id} not found")
