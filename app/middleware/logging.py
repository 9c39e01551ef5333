"""structlog setup and per-request logging bound to request and plan ids."""

from __future__ import annotations

import asyncio
import logging
import re
import time
import uuid
from typing import Any

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import LogFormat, Settings, get_settings

_configured = False
_PLAN_PATH = re.compile(r"^/api/v1/plans/([0-9a-fA-F\-]{36})(?:/|$)")


def _renderer(settings: Settings, level: int) -> Any:
	if settings.log_format == LogFormat.console:
		logging.basicConfig(level=level)
		return structlog.dev.ConsoleRenderer()
	logging.basicConfig(level=level, format="%(message)s")
	return structlog.processors.JSONRenderer()


def configure_structured_logging(settings: Settings | None = None) -> None:
	"""Idempotent; the first call in the process decides level and format."""
	global _configured
	if _configured:
		return

	settings = settings or get_settings()
	level = getattr(logging, settings.log_level.upper(), logging.INFO)
	renderer = _renderer(settings, level)

	# Outbound generation calls are logged by the plan engine.
	logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

	structlog.configure(
		processors=[
			structlog.contextvars.merge_contextvars,
			structlog.processors.add_log_level,
			structlog.processors.TimeStamper(fmt="iso", utc=True),
			structlog.processors.format_exc_info,
			renderer,
		],
		wrapper_class=structlog.make_filtering_bound_logger(level),
		logger_factory=structlog.PrintLoggerFactory(),
		cache_logger_on_first_use=True,
	)
	_configured = True


def _plan_id_from_path(path: str) -> str | None:
	match = _PLAN_PATH.match(path)
	return match.group(1) if match else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
	"""One log line per request with request id, plan id, status and latency."""

	async def dispatch(self, request: Request, call_next):  # type: ignore[override]
		request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
		request.state.request_id = request_id

		structlog.contextvars.clear_contextvars()
		context: dict[str, str] = {"request_id": request_id}
		plan_id = _plan_id_from_path(request.url.path)
		if plan_id is not None:
			context["plan_id"] = plan_id
		structlog.contextvars.bind_contextvars(**context)

		log = structlog.get_logger("cropcycle.request").bind(
			method=request.method,
			path=request.url.path,
		)
		started = time.perf_counter()

		def elapsed_ms() -> float:
			return round((time.perf_counter() - started) * 1000.0, 2)

		try:
			response = await call_next(request)
		except asyncio.CancelledError:
			log.warning("http_request_cancelled", duration_ms=elapsed_ms())
			raise
		except Exception as exc:
			log.exception("http_request_failed", duration_ms=elapsed_ms(), error=str(exc))
			raise

		response.headers["x-request-id"] = request_id
		log.info("http_request", status_code=response.status_code, duration_ms=elapsed_ms())
		return response
