"""Authorization policies for collaboration operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from teamhub.collab.domain import models
from teamhub.collab.domain.exceptions import ForbiddenError, NotFoundError


@dataclass(frozen=True, slots=True)
class Capabilities:
	can_invite: bool
	can_remove: bool
	can_configure: bool


_NO_CAPABILITIES = Capabilities(can_invite=False, can_remove=False, can_configure=False)

CAPABILITIES_BY_LEVEL: dict[str, Capabilities] = {
	models.LEVEL_ADMIN: Capabilities(can_invite=True, can_remove=True, can_configure=True),
	models.LEVEL_MODERATOR: Capabilities(can_invite=True, can_remove=True, can_configure=False),
	models.LEVEL_MEMBER: _NO_CAPABILITIES,
	models.LEVEL_VISITOR: _NO_CAPABILITIES,
}


def capabilities_for(level: Optional[str]) -> Capabilities:
	"""Derive the capability triple from a permission level."""
	if level is None:
		return _NO_CAPABILITIES
	return CAPABILITIES_BY_LEVEL.get(level, _NO_CAPABILITIES)


def effective_level(
	group: models.Group,
	membership: Optional[models.GroupMember],
	user_id: UUID,
) -> Optional[str]:
	"""Resolve the level a user acts with inside a group.

	The creator always acts as admin, whether or not the admin membership row
	is still present.
	"""
	if group.created_by == user_id:
		return models.LEVEL_ADMIN
	return membership.level if membership else None


def require_group(group: Optional[models.Group]) -> models.Group:
	if group is None or group.deleted_at is not None:
		raise NotFoundError("Grupo não encontrado")
	return group


def require_member(level: Optional[str]) -> str:
	if level is None:
		raise ForbiddenError("Você não é membro deste grupo")
	return level


def require_visible(group: models.Group, level: Optional[str]) -> None:
	if group.is_public:
		return
	require_member(level)


def assert_can_invite(level: Optional[str]) -> None:
	require_member(level)
	if not capabilities_for(level).can_invite:
		raise ForbiddenError("Você não tem permissão para convidar membros")


def assert_can_remove(level: Optional[str]) -> None:
	require_member(level)
	if not capabilities_for(level).can_remove:
		raise ForbiddenError("Você não tem permissão para remover membros")


def assert_can_configure(level: Optional[str]) -> None:
	require_member(level)
	if not capabilities_for(level).can_configure:
		raise ForbiddenError("Você não tem permissão para alterar o grupo")


def assert_is_admin(level: Optional[str], detail: str = "Apenas administradores podem realizar esta ação") -> None:
	if level != models.LEVEL_ADMIN:
		raise ForbiddenError(detail)


def assert_can_remove_target(actor_level: Optional[str], target_level: str) -> None:
	assert_can_remove(actor_level)
	if target_level == models.LEVEL_ADMIN and actor_level != models.LEVEL_ADMIN:
		raise ForbiddenError("Moderadores não podem remover administradores")


def ensure_level_valid(level: str) -> None:
	if level not in models.PERMISSION_LEVELS:
		raise ForbiddenError("Nível de permissão inválido")


def can_manage_invite(invite: models.GroupInvite, user_id: UUID, level: Optional[str]) -> bool:
	if invite.invited_by == user_id:
		return True
	return capabilities_for(level).can_invite


def can_manage_event(event: models.Event, user_id: UUID, level: Optional[str]) -> bool:
	return event.created_by == user_id or level == models.LEVEL_ADMIN


def can_manage_file(file: models.GroupFile, user_id: UUID, level: Optional[str]) -> bool:
	return file.uploaded_by == user_id or capabilities_for(level).can_remove
