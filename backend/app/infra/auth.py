"""Authentication helpers for FastAPI endpoints.

Identity is resolved upstream; this service trusts the ``X-User-Id`` header
set by the gateway and only checks that it is present.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, status


@dataclass(slots=True)
class AuthenticatedUser:
	id: str


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> AuthenticatedUser:
	"""Resolve the calling user from request headers."""
	if not x_user_id or not x_user_id.strip():
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_user")
	return AuthenticatedUser(id=x_user_id.strip())
