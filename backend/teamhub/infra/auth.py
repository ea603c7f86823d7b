"""Authentication helpers for FastAPI endpoints.

Bearer JWTs (HS256, settings.secret_key) are required everywhere except the
development environment, where X-User-* headers are accepted for local tools.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from teamhub.infra import jwt as jwt_helper
from teamhub.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	email: Optional[str] = None
	name: Optional[str] = None


_bearer_scheme = HTTPBearer(auto_error=False)


def _subject(value: str) -> str:
	# User ids are UUIDs end to end
	try:
		return str(UUID(value.strip()))
	except ValueError:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode an access JWT into an AuthenticatedUser.

	Any decode failure is reported as invalid_token so callers cannot probe
	which claim was wrong.
	"""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	sub = str(payload.get("sub") or "").strip()
	if not sub:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	email = payload.get("email")
	name = payload.get("name") or payload.get("nome")
	return AuthenticatedUser(
		id=_subject(sub),
		email=str(email).strip().lower() if email else None,
		name=str(name) if name is not None else None,
	)


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_email: Optional[str] = Header(default=None, alias="X-User-Email"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user."""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)

	# In dev only, allow X-User-* fallback for local tools
	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(
			id=_subject(x_user_id),
			email=x_user_email.strip().lower() if x_user_email else None,
		)

	raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
