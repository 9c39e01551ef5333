"""Redis-backed rate limiting for plan generation calls."""

from __future__ import annotations

import re
import uuid
from datetime import UTC, datetime

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import get_settings

_GENERATION_PATH = re.compile(
	r"^/api/v1/plans/([0-9a-fA-F\-]{36})/(?:generate|regenerate)/?$",
)


def _minute_bucket() -> str:
	return datetime.now(UTC).strftime("%Y%m%d%H%M")


def extract_generation_plan_id(request: Request) -> uuid.UUID | None:
	if request.method != "POST":
		return None
	match = _GENERATION_PATH.match(request.url.path)
	if match is None:
		return None
	try:
		return uuid.UUID(match.group(1))
	except ValueError:
		return None


class RateLimitMiddleware(BaseHTTPMiddleware):
	"""Per-plan quota on generate/regenerate backed by Redis atomic counters."""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		plan_id = extract_generation_plan_id(request)
		if plan_id is None:
			return await call_next(request)

		redis_client = getattr(request.app.state, "redis", None)
		if redis_client is None:
			return await call_next(request)

		quota = get_settings().rate_limit_generations_per_minute
		key = f"ratelimit:plan:{plan_id}:generate:{_minute_bucket()}"
		current = await redis_client.incr(key)
		if current == 1:
			await redis_client.expire(key, 65)

		if current > quota:
			return JSONResponse(
				status_code=429,
				content={
					"detail": {
						"error": "rate_limited",
						"message": "Plan generation quota exceeded",
						"plan_id": str(plan_id),
						"quota": quota,
					}
				},
			)

		return await call_next(request)
