"""Error translation helpers for the collaboration API."""

from __future__ import annotations

from fastapi import HTTPException

from teamhub.collab.domain import exceptions


class CollabHTTPException(HTTPException):
	"""HTTPException that keeps the domain error kind and message list."""

	def __init__(self, status_code: int, detail: str, *, kind: str, errors: list[str]) -> None:
		super().__init__(status_code=status_code, detail=detail)
		self.kind = kind
		self.errors = errors


def to_http_error(exc: exceptions.CollabError) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors."""
	return CollabHTTPException(
		exc.status_code,
		exc.detail,
		kind=exc.public_kind,
		errors=exc.errors,
	)
