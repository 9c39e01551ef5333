"""Shared pytest fixtures — async test client, in-memory plan store, scripted generation."""

from __future__ import annotations

import json
import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.database import get_db
from app.exceptions import ExternalServiceUnavailable, PersistenceError
from app.main import app
from app.models.plans import CropPlan
from app.schemas.plan import CropPlanRequest


class FakeAsyncSession:
	def __init__(self) -> None:
		self.commit = AsyncMock()
		self.rollback = AsyncMock()
		self.close = AsyncMock()
		self.execute = AsyncMock()
		self.flush = AsyncMock()
		self.refresh = AsyncMock()


class FakeRedis:
	def __init__(self) -> None:
		self._counter: dict[str, int] = {}
		self.incr = AsyncMock(side_effect=self._incr)
		self.expire = AsyncMock(return_value=True)
		self.ping = AsyncMock(return_value=True)

	async def _incr(self, key: str) -> int:
		value = self._counter.get(key, 0) + 1
		self._counter[key] = value
		return value

	def reset_counters(self) -> None:
		self._counter.clear()


class InMemoryPlanStore:
	"""PlanStore fake keeping CropPlan objects in a dict.

	``fail_updates`` makes the next N ``update`` calls raise PersistenceError.
	"""

	def __init__(self) -> None:
		self.plans: dict[uuid.UUID, CropPlan] = {}
		self.update_calls = 0
		self.fail_updates = 0

	async def create(self, plan: CropPlan) -> CropPlan:
		if plan.id is None:
			plan.id = uuid.uuid4()
		now = datetime.now(UTC)
		plan.created_at = plan.created_at or now
		plan.updated_at = plan.updated_at or now
		self.plans[plan.id] = plan
		return plan

	async def get(self, plan_id: uuid.UUID) -> CropPlan:
		plan = self.plans.get(plan_id)
		if plan is None:
			raise LookupError(f"Plan {plan_id} not found")
		return plan

	async def list_by_owner(self, owner_id: str) -> list[CropPlan]:
		owned = [plan for plan in self.plans.values() if plan.owner_id == owner_id]
		return sorted(owned, key=lambda plan: plan.created_at, reverse=True)

	async def update(self, plan_id: uuid.UUID, fields: dict[str, Any]) -> CropPlan:
		self.update_calls += 1
		if self.fail_updates:
			self.fail_updates -= 1
			raise PersistenceError(f"could not update plan {plan_id}: connection reset")
		plan = await self.get(plan_id)
		for name, value in fields.items():
			setattr(plan, name, value)
		plan.updated_at = datetime.now(UTC)
		return plan

	async def delete(self, plan_id: uuid.UUID) -> None:
		if self.plans.pop(plan_id, None) is None:
			raise LookupError(f"Plan {plan_id} not found")


class ScriptedTextClient:
	"""Text-generation fake replaying queued responses (str) or raising queued exceptions.

	An empty queue behaves like an unreachable service.
	"""

	def __init__(self, *responses: str | BaseException) -> None:
		self.responses = list(responses)
		self.prompts: list[str] = []

	async def complete(self, prompt: str) -> str:
		self.prompts.append(prompt)
		if not self.responses:
			raise ExternalServiceUnavailable("text generation credential is not configured")
		response = self.responses.pop(0)
		if isinstance(response, BaseException):
			raise response
		return response


def generated_plan_text(count: int, *, spacing: int = 5, prose: bool = True) -> str:
	"""A well-formed generated plan with ``count`` steps, optionally wrapped in prose."""
	payload = {
		"steps": [
			{
				"title": f"Task {index + 1}",
				"description": f"Carry out task {index + 1} on schedule.",
				"category": "irrigation" if index % 2 else "sowing",
				"days_from_start": index * spacing,
				"materials": ["Water"],
			}
			for index in range(count)
		]
	}
	body = json.dumps(payload, indent=2)
	if not prose:
		return body
	return f"Here is the cultivation plan you asked for:\n\n{body}\n\nGood luck with the season!"


@pytest.fixture
def fake_db_session() -> FakeAsyncSession:
	"""A lightweight async-session stub for dependency overrides in API tests."""
	return FakeAsyncSession()


@pytest.fixture
def fake_redis() -> FakeRedis:
	return FakeRedis()


@pytest.fixture
def memory_store() -> InMemoryPlanStore:
	return InMemoryPlanStore()


@pytest.fixture
def wheat_request() -> CropPlanRequest:
	return CropPlanRequest(
		crop_name="Wheat",
		location="Indore",
		soil_type="black",
		water_source="drip",
		land_size="medium",
		start_date="2025-01-01",
	)


@pytest.fixture
def plan_payload() -> dict[str, Any]:
	"""JSON body accepted by the create and generate endpoints."""
	return {
		"owner_id": "farmer-1",
		"crop_name": "wheat",
		"location": "Indore",
		"soil_type": "black",
		"water_source": "drip",
		"land_size": "medium",
		"start_date": "2025-01-01",
	}


@pytest.fixture
async def client(fake_db_session: FakeAsyncSession) -> AsyncGenerator[AsyncClient, None]:
	"""HTTPX async client with lifespan disabled and DB dependency mocked."""

	async def override_get_db() -> AsyncGenerator[Any, None]:
		yield fake_db_session

	app.dependency_overrides[get_db] = override_get_db
	original_lifespan = app.router.lifespan_context

	@asynccontextmanager
	async def noop_lifespan(_: Any) -> AsyncGenerator[None, None]:
		yield

	app.router.lifespan_context = noop_lifespan

	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://test") as test_client:
		yield test_client

	app.router.lifespan_context = original_lifespan
	app.dependency_overrides.clear()
