from __future__ import annotations

import uuid
from typing import Any

import pytest
from httpx import AsyncClient

from app.routes import plans as plans_routes
from app.services.plan_generator import PlanGenerator
from app.services.plan_service import PlanService
from conftest import InMemoryPlanStore, ScriptedTextClient, generated_plan_text


@pytest.fixture
def text_client() -> ScriptedTextClient:
	return ScriptedTextClient()


@pytest.fixture
def memory_backed_routes(
	monkeypatch: pytest.MonkeyPatch,
	memory_store: InMemoryPlanStore,
	text_client: ScriptedTextClient,
) -> InMemoryPlanStore:
	"""Route handlers build their PlanService over the in-memory store."""

	def build_service(db: Any) -> PlanService:
		return PlanService(store=memory_store, generator=PlanGenerator(client=text_client))

	monkeypatch.setattr(plans_routes, "PlanService", build_service)
	return memory_store


async def _create_and_generate(client: AsyncClient, payload: dict[str, Any]) -> tuple[str, dict[str, Any]]:
	created = await client.post("/api/v1/plans", json=payload)
	assert created.status_code == 201
	plan_id = created.json()["id"]
	generated = await client.post(f"/api/v1/plans/{plan_id}/generate", json=payload)
	assert generated.status_code == 200
	return plan_id, generated.json()


@pytest.mark.asyncio
async def test_create_plan(client: AsyncClient, memory_backed_routes: InMemoryPlanStore, plan_payload: dict) -> None:
	response = await client.post("/api/v1/plans", json=plan_payload)

	assert response.status_code == 201
	body = response.json()
	assert body["owner_id"] == "farmer-1"
	assert body["plan_generated"] is False
	assert body["steps"] == []
	assert body["request"]["crop_name"] == "wheat"
	assert body["request"]["start_date"] == "2025-01-01"


@pytest.mark.asyncio
@pytest.mark.parametrize(
	"override",
	[{"soil_type": "peat"}, {"start_date": "next monday"}, {"crop_name": ""}, {"owner_id": ""}],
)
async def test_create_plan_rejects_invalid_body(
	client: AsyncClient,
	memory_backed_routes: InMemoryPlanStore,
	plan_payload: dict,
	override: dict,
) -> None:
	response = await client.post("/api/v1/plans", json={**plan_payload, **override})

	assert response.status_code == 422
	assert memory_backed_routes.plans == {}


@pytest.mark.asyncio
async def test_generate_and_read_wheat_plan(
	client: AsyncClient, memory_backed_routes: InMemoryPlanStore, plan_payload: dict
) -> None:
	plan_id, generated = await _create_and_generate(client, plan_payload)

	assert generated["source"] == "fallback"
	assert generated["total_steps"] == 17
	assert generated["steps"][0]["scheduled_date"].startswith("2025-01-01")

	response = await client.get(f"/api/v1/plans/{plan_id}", params={"now": "2025-01-01T08:00:00Z"})

	assert response.status_code == 200
	body = response.json()
	assert body["plan_generated"] is True
	assert body["next_step_title"] == "Land Preparation"
	assert [step["label"] for step in body["steps"][:2]] == ["current", "upcoming"]
	assert body["steps"][1]["scheduled_date"].startswith("2025-01-03")


@pytest.mark.asyncio
async def test_generate_uses_text_generation_when_available(
	client: AsyncClient,
	memory_backed_routes: InMemoryPlanStore,
	text_client: ScriptedTextClient,
	plan_payload: dict,
) -> None:
	text_client.responses.append(generated_plan_text(11))

	_, generated = await _create_and_generate(client, plan_payload)

	assert generated["source"] == "generated"
	assert generated["total_steps"] == 11


@pytest.mark.asyncio
async def test_generate_twice_is_rejected(
	client: AsyncClient, memory_backed_routes: InMemoryPlanStore, plan_payload: dict
) -> None:
	plan_id, _ = await _create_and_generate(client, plan_payload)

	response = await client.post(f"/api/v1/plans/{plan_id}/generate", json=plan_payload)

	assert response.status_code == 400
	assert "already generated" in response.json()["detail"]


@pytest.mark.asyncio
async def test_generate_for_another_owner_is_not_found(
	client: AsyncClient, memory_backed_routes: InMemoryPlanStore, plan_payload: dict
) -> None:
	created = await client.post("/api/v1/plans", json=plan_payload)
	plan_id = created.json()["id"]

	response = await client.post(
		f"/api/v1/plans/{plan_id}/generate",
		json={**plan_payload, "owner_id": "farmer-2"},
	)

	assert response.status_code == 404


@pytest.mark.asyncio
async def test_complete_step_updates_progress(
	client: AsyncClient, memory_backed_routes: InMemoryPlanStore, plan_payload: dict
) -> None:
	plan_id, _ = await _create_and_generate(client, plan_payload)

	response = await client.post(f"/api/v1/plans/{plan_id}/steps/step_1/complete")

	assert response.status_code == 200
	body = response.json()
	assert body == {
		"plan_id": plan_id,
		"step_id": "step_1",
		"progress": 6,
		"current_step": 2,
		"total_steps": 17,
		"status": "active",
	}

	missing = await client.post(f"/api/v1/plans/{plan_id}/steps/step_99/complete")
	assert missing.status_code == 404


@pytest.mark.asyncio
async def test_regenerate_resets_progress(
	client: AsyncClient,
	memory_backed_routes: InMemoryPlanStore,
	text_client: ScriptedTextClient,
	plan_payload: dict,
) -> None:
	plan_id, _ = await _create_and_generate(client, plan_payload)
	await client.post(f"/api/v1/plans/{plan_id}/steps/step_1/complete")
	text_client.responses.append(generated_plan_text(9))

	response = await client.post(f"/api/v1/plans/{plan_id}/regenerate")

	assert response.status_code == 200
	assert response.json()["total_steps"] == 9
	plan = (await client.get(f"/api/v1/plans/{plan_id}")).json()
	assert plan["progress"] == 0
	assert plan["current_step"] == 1
	assert all(step["status"] == "not_completed" for step in plan["steps"])


@pytest.mark.asyncio
async def test_persistence_failure_is_retryable_503(
	client: AsyncClient, memory_backed_routes: InMemoryPlanStore, plan_payload: dict
) -> None:
	created = await client.post("/api/v1/plans", json=plan_payload)
	plan_id = created.json()["id"]
	memory_backed_routes.fail_updates = 1

	response = await client.post(f"/api/v1/plans/{plan_id}/generate", json=plan_payload)

	assert response.status_code == 503
	detail = response.json()["detail"]
	assert detail["error"] == "persistence_failed"
	assert detail["retryable"] is True
	assert len(detail["steps"]) == 17

	retry = await client.post(
		f"/api/v1/plans/{plan_id}/steps",
		json={**plan_payload, "steps": detail["steps"], "source": "fallback"},
	)

	assert retry.status_code == 200
	assert retry.json()["total_steps"] == 17
	plan = (await client.get(f"/api/v1/plans/{plan_id}")).json()
	assert plan["plan_generated"] is True
	assert plan["steps"][0]["id"] == "step_1"


@pytest.mark.asyncio
async def test_list_plans_for_owner(
	client: AsyncClient, memory_backed_routes: InMemoryPlanStore, plan_payload: dict
) -> None:
	await client.post("/api/v1/plans", json=plan_payload)
	await client.post("/api/v1/plans", json={**plan_payload, "crop_name": "soybean"})
	await client.post("/api/v1/plans", json={**plan_payload, "owner_id": "farmer-2"})

	response = await client.get("/api/v1/plans", params={"owner_id": "farmer-1"})

	assert response.status_code == 200
	items = response.json()["items"]
	assert {item["request"]["crop_name"] for item in items} == {"wheat", "soybean"}


@pytest.mark.asyncio
async def test_status_update_and_delete(
	client: AsyncClient, memory_backed_routes: InMemoryPlanStore, plan_payload: dict
) -> None:
	plan_id, _ = await _create_and_generate(client, plan_payload)

	paused = await client.patch(f"/api/v1/plans/{plan_id}/status", json={"status": "paused"})
	assert paused.status_code == 200
	assert paused.json()["status"] == "paused"

	completed = await client.patch(f"/api/v1/plans/{plan_id}/status", json={"status": "completed"})
	assert completed.status_code == 400

	deleted = await client.delete(f"/api/v1/plans/{plan_id}")
	assert deleted.status_code == 204
	assert (await client.get(f"/api/v1/plans/{plan_id}")).status_code == 404


@pytest.mark.asyncio
async def test_unknown_plan_is_not_found(client: AsyncClient, memory_backed_routes: InMemoryPlanStore) -> None:
	response = await client.get(f"/api/v1/plans/{uuid.uuid4()}")
	assert response.status_code == 404


@pytest.mark.asyncio
async def test_unexpected_service_error_is_500(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	async def fake_complete_step(self: PlanService, plan_id: uuid.UUID, step_id: str, **_: Any) -> None:
		raise RuntimeError("boom")

	monkeypatch.setattr(PlanService, "complete_step", fake_complete_step)

	response = await client.post(f"/api/v1/plans/{uuid.uuid4()}/steps/step_1/complete")

	assert response.status_code == 500
	assert response.json()["detail"] == "Unexpected plan service failure"


@pytest.mark.asyncio
async def test_openapi_lists_plan_operations(client: AsyncClient) -> None:
	response = await client.get("/openapi.json")

	assert response.status_code == 200
	paths = response.json()["paths"]
	assert set(paths["/api/v1/plans"]) == {"get", "post"}
	assert set(paths["/api/v1/plans/{plan_id}"]) == {"get", "delete"}
	assert "post" in paths["/api/v1/plans/{plan_id}/generate"]
	assert "post" in paths["/api/v1/plans/{plan_id}/regenerate"]
	assert "post" in paths["/api/v1/plans/{plan_id}/steps/{step_id}/complete"]
	assert "post" in paths["/api/v1/plans/{plan_id}/steps"]
	assert "patch" in paths["/api/v1/plans/{plan_id}/status"]


@pytest.mark.asyncio
async def test_install_steps_rejects_bad_bodies(
	client: AsyncClient, memory_backed_routes: InMemoryPlanStore, plan_payload: dict
) -> None:
	created = await client.post("/api/v1/plans", json=plan_payload)
	plan_id = created.json()["id"]

	empty = await client.post(f"/api/v1/plans/{plan_id}/steps", json={**plan_payload, "steps": []})
	assert empty.status_code == 422

	step = {
		"id": "step_1",
		"title": "Land Preparation",
		"description": "Plough the field.",
		"category": "sowing",
		"days_from_start": 0,
		"scheduled_date": "2025-01-01T00:00:00Z",
	}
	foreign = await client.post(
		f"/api/v1/plans/{plan_id}/steps",
		json={**plan_payload, "owner_id": "farmer-2", "steps": [step]},
	)
	assert foreign.status_code == 404
	assert memory_backed_routes.update_calls == 0
