"""Error kinds raised by collaboration services."""

from __future__ import annotations

from typing import Iterable

from fastapi import status


class CollabError(Exception):
	"""Base class for collaboration domain errors.

	``kind`` is a closed tag clients can branch on; ``detail`` is the
	user-facing message.
	"""

	kind: str = "error"
	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "Erro na operação"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail

	@property
	def public_kind(self) -> str:
		return self.kind

	@property
	def errors(self) -> list[str]:
		return [self.detail]


class NotFoundError(CollabError):
	"""Resource is missing or not visible to the caller."""

	kind = "not_found"
	status_code = status.HTTP_404_NOT_FOUND
	detail = "Recurso não encontrado"


class ExpiredError(NotFoundError):
	"""Resource exists but its validity window has passed.

	Rendered exactly like NotFoundError so expired codes cannot be told apart
	from unknown ones.
	"""

	kind = "expired"

	@property
	def public_kind(self) -> str:
		return NotFoundError.kind


class ForbiddenError(CollabError):
	"""Caller is authenticated but not allowed to perform the operation."""

	kind = "forbidden"
	status_code = status.HTTP_403_FORBIDDEN
	detail = "Acesso negado"


class ConflictError(CollabError):
	"""Operation conflicts with current state (duplicates, absorbing states)."""

	kind = "conflict"
	status_code = status.HTTP_409_CONFLICT
	detail = "Conflito com o estado atual"


class ValidationFailedError(CollabError):
	"""Input broke one or more rules; every violation is reported at once."""

	kind = "validation_failed"
	status_code = status.HTTP_400_BAD_REQUEST
	detail = "Dados inválidos"

	def __init__(self, errors: Iterable[str], detail: str | None = None) -> None:
		self._errors = [str(item) for item in errors]
		super().__init__(detail or (self._errors[0] if len(self._errors) == 1 else None))

	@property
	def errors(self) -> list[str]:
		return list(self._errors)


def raise_if_errors(errors: list[str]) -> None:
	if errors:
		raise ValidationFailedError(errors)
