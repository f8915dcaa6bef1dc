"""Custom exceptions for competition group services."""

from __future__ import annotations

from enum import Enum

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class ErrorKind(str, Enum):
	"""Tag carried by every competition error."""

	VALIDATION = "validation"
	NOT_FOUND = "not_found"
	AUTHORIZATION = "authorization"
	CONFLICT = "conflict"


class CompetitionError(Exception):
	"""Base class for competition group errors."""

	kind: ErrorKind
	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "competition_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class ValidationError(CompetitionError):
	"""Malformed input rejected before any storage call."""

	kind = ErrorKind.VALIDATION
	status_code = _HTTP_422
	detail = "validation_error"


class NotFoundError(CompetitionError):
	"""Referenced group or user does not exist."""

	kind = ErrorKind.NOT_FOUND
	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class AuthorizationError(CompetitionError):
	"""Caller lacks the membership or role the action needs."""

	kind = ErrorKind.AUTHORIZATION
	status_code = status.HTTP_403_FORBIDDEN
	detail = "forbidden"


class ConflictError(CompetitionError):
	"""Current state forbids an otherwise valid, authorized action."""

	kind = ErrorKind.CONFLICT
	status_code = status.HTTP_409_CONFLICT
	detail = "conflict"
