"""Plan engine error taxonomy.

Only ``InputValidationError`` and ``PersistenceError`` ever reach a caller.
``ExternalServiceUnavailable`` and ``MalformedResponse`` are raised inside the
generation path and absorbed there by switching to the offline fallback.
"""

from __future__ import annotations

from typing import Any


class InputValidationError(ValueError):
	"""A required plan id, owner or request field is missing or invalid."""


class ExternalServiceUnavailable(Exception):
	"""The text-generation service could not be reached or refused the call."""


class MalformedResponse(ValueError):
	"""A response arrived but held no usable JSON step array."""


class PersistenceError(Exception):
	"""A plan write to the PlanStore failed.

	``steps`` carries the already-computed step documents so the caller can
	retry the write instead of regenerating from scratch.
	"""

	retryable = True

	def __init__(self, message: str, *, steps: list[Any] | None = None) -> None:
		super().__init__(message)
		self.steps = steps
