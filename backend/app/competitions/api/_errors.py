"""Error translation helpers for the competitions API."""

from __future__ import annotations

from fastapi import HTTPException

from app.competitions.domain import exceptions
from app.obs import metrics as obs_metrics


def to_http_error(exc: exceptions.CompetitionError) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors."""
	obs_metrics.inc_competition_error(exc.kind.value)
	return HTTPException(status_code=exc.status_code, detail=exc.detail)
