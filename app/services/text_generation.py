"""Text-generation client — prompt text in, raw response text out."""

from __future__ import annotations

from typing import Protocol

import httpx

from app.config import Settings, get_settings
from app.exceptions import ExternalServiceUnavailable, MalformedResponse


class TextGenerationClient(Protocol):
	async def complete(self, prompt: str) -> str: ...


class AnthropicTextClient:
	"""Single-turn completion against the Anthropic Messages API.

	Raises ``ExternalServiceUnavailable`` for a missing key, transport failure,
	timeout or non-success status, and ``MalformedResponse`` when the body has
	no text content.
	"""

	def __init__(
		self,
		settings: Settings | None = None,
		*,
		transport: httpx.AsyncBaseTransport | None = None,
	):
		self.settings = settings or get_settings()
		self.transport = transport

	async def complete(self, prompt: str) -> str:
		if not self.settings.anthropic_api_key:
			raise ExternalServiceUnavailable("text generation credential is not configured")

		headers = {
			"x-api-key": self.settings.anthropic_api_key,
			"anthropic-version": "2023-06-01",
			"content-type": "application/json",
		}
		body = {
			"model": self.settings.anthropic_model,
			"max_tokens": self.settings.anthropic_max_tokens,
			"temperature": 0.3,
			"messages": [{"role": "user", "content": prompt}],
		}

		try:
			async with httpx.AsyncClient(
				timeout=self.settings.anthropic_timeout_seconds,
				transport=self.transport,
			) as client:
				response = await client.post(self.settings.anthropic_base_url, headers=headers, json=body)
				response.raise_for_status()
		except httpx.TimeoutException as exc:
			raise ExternalServiceUnavailable("text generation timed out") from exc
		except httpx.HTTPStatusError as exc:
			raise ExternalServiceUnavailable(
				f"text generation returned HTTP {exc.response.status_code}"
			) from exc
		except httpx.HTTPError as exc:
			raise ExternalServiceUnavailable(f"text generation transport failure: {exc}") from exc

		try:
			payload = response.json()
		except ValueError as exc:
			raise MalformedResponse("text generation response is not JSON") from exc

		content = payload.get("content") if isinstance(payload, dict) else None
		if not isinstance(content, list) or not content or not isinstance(content[0], dict):
			raise MalformedResponse("text generation response has no content blocks")
		text = str(content[0].get("text") or "").strip()
		if not text:
			raise MalformedResponse("text generation response is empty")
		return text
