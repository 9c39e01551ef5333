"""Day-offset to calendar-date scheduling.

Every scheduled date is normalised to 00:00 UTC of its calendar day so that
dates compare and serialise identically regardless of where they came from.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta
from typing import Any

from app.exceptions import InputValidationError


def parse_start_date(value: Any) -> date:
	"""Coerce a date, datetime or ISO string into a calendar date."""
	if isinstance(value, datetime):
		return value.date()
	if isinstance(value, date):
		return value
	if not isinstance(value, str) or not value.strip():
		raise InputValidationError("start_date is required")

	text = value.strip()
	try:
		return date.fromisoformat(text)
	except ValueError:
		pass
	try:
		return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
	except ValueError as exc:
		raise InputValidationError(f"start_date {text!r} is not a calendar date") from exc


def start_of_day(day: date) -> datetime:
	return datetime.combine(day, time.min, tzinfo=UTC)


def schedule_date(start: date, offset: int) -> datetime:
	"""Absolute date ``offset`` days after ``start``; negative offsets go backwards."""
	return start_of_day(start) + timedelta(days=offset)


def calendar_day(moment: datetime) -> date:
	"""UTC calendar day of a timestamp; naive values are taken as UTC."""
	if moment.tzinfo is None:
		return moment.date()
	return moment.astimezone(UTC).date()


def days_between(earlier: datetime, later: datetime) -> int:
	"""Whole calendar days from ``earlier`` to ``later`` (negative when reversed)."""
	return (calendar_day(later) - calendar_day(earlier)).days
