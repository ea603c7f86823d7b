"""Invite lifecycle: create, validate, accept, decline, cancel."""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from teamhub.collab.domain import models, policies, repo as repo_module
from teamhub.collab.domain.access import load_group_access
from teamhub.collab.domain.exceptions import (
	ConflictError,
	ExpiredError,
	ForbiddenError,
	NotFoundError,
	ValidationFailedError,
	raise_if_errors,
)
from teamhub.collab.domain.groups_service import member_response
from teamhub.collab.domain.notifications_service import NotificationService
from teamhub.collab.schemas import dto
from teamhub.infra.auth import AuthenticatedUser
from teamhub.obs import logging as obs_logging
from teamhub.obs import metrics as obs_metrics
from teamhub.settings import settings

logger = obs_logging.get_logger("teamhub.invites")

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_INVALID_CODE = "Convite não encontrado ou expirado"
_CODE_ATTEMPTS = 3


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def generate_code() -> str:
	return uuid.uuid4().hex[: settings.invite_code_length].upper()


def invite_response(invite: models.GroupInvite) -> dto.InviteResponse:
	return dto.InviteResponse(**invite.model_dump(by_alias=True))


def _as_aware(value: datetime) -> datetime:
	return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class InviteService:
	"""Invites move pendente -> aceito | recusado | expirado and never back."""

	def __init__(
		self,
		*,
		repository: repo_module.InviteRepository | None = None,
		groups: repo_module.GroupRepository | None = None,
		users: repo_module.UserRepository | None = None,
		notifications: NotificationService | None = None,
	) -> None:
		self.repo = repository or repo_module.InviteRepository()
		self.groups = groups or repo_module.GroupRepository()
		self.users = users or repo_module.UserRepository()
		self.notifications = notifications or NotificationService(users=self.users)

	async def _caller_email(self, user: AuthenticatedUser) -> str:
		if user.email:
			return user.email.strip().lower()
		account = await self.users.get_user(UUID(user.id))
		if account is None:
			raise NotFoundError("Usuário não encontrado")
		return account.email.strip().lower()

	async def create_invite(self, user: AuthenticatedUser, payload: dto.InviteCreateRequest) -> dto.InviteResponse:
		user_id = UUID(user.id)
		access = await load_group_access(self.groups, payload.grupo_id, user_id)
		policies.require_member(access.level)
		policies.assert_can_invite(access.level)
		if not access.group.setting("permite_convites", True):
			obs_metrics.inc_invite_reject("disabled")
			raise ForbiddenError("Este grupo não permite convites")

		now = _utcnow()
		email = payload.email.strip().lower()
		message = payload.mensagem.strip() if payload.mensagem else None
		errors: list[str] = []
		if not _EMAIL_RE.match(email):
			errors.append("Email inválido")
		if message is not None and len(message) > 500:
			errors.append("Mensagem deve ter no máximo 500 caracteres")
		expires_at = now + timedelta(days=settings.invite_ttl_days)
		if payload.data_expiracao is not None:
			expires_at = _as_aware(payload.data_expiracao)
			if expires_at <= now:
				errors.append("Data de expiração deve ser no futuro")
		raise_if_errors(errors)

		if email == await self._caller_email(user):
			obs_metrics.inc_invite_reject("self")
			raise ValidationFailedError(["Você não pode convidar a si mesmo"])
		if await self.groups.is_member_email(payload.grupo_id, email):
			obs_metrics.inc_invite_reject("already_member")
			raise ConflictError("Usuário já é membro do grupo")

		invitee = await self.users.get_user_by_email(email)
		for _ in range(_CODE_ATTEMPTS):
			try:
				invite = await self.repo.create_invite(
					group_id=payload.grupo_id,
					invited_by=user_id,
					email=email,
					invited_user_id=invitee.id if invitee else None,
					code=generate_code(),
					message=message,
					expires_at=expires_at,
					now=now,
				)
			except repo_module.InviteCodeTaken:
				logger.warning("invite_code_collision", extra={"group_id": str(payload.grupo_id)})
				continue
			break
		else:
			raise ConflictError("Não foi possível gerar um código de convite")
		if invite is None:
			obs_metrics.inc_invite_reject("duplicate")
			raise ConflictError("Já existe um convite pendente para este email")
		obs_metrics.inc_invite_created()
		logger.info("invite_created", extra={"group_id": str(invite.group_id), "invite_id": str(invite.id)})

		if invitee is not None:
			await self.notifications.notify_invite(
				user_id=invitee.id,
				group_name=access.group.name,
				inviter_name=user.name,
				group_id=access.group.id,
				code=invite.code,
			)
		return invite_response(invite)

	async def _redeemable(self, code: str, invite: Optional[models.GroupInvite] = None) -> models.GroupInvite:
		if invite is None:
			invite = await self.repo.get_invite_by_code(code)
		if invite is None or invite.status != models.INVITE_PENDING or invite.group_deleted_at is not None:
			raise NotFoundError(_INVALID_CODE)
		if not invite.is_redeemable(_utcnow()):
			raise ExpiredError(_INVALID_CODE)
		return invite

	async def _assert_addressee(self, user: AuthenticatedUser, invite: models.GroupInvite) -> None:
		if await self._caller_email(user) != invite.email.lower():
			raise ForbiddenError("Este convite não foi enviado para você")

	async def validate_code(self, code: str) -> dto.InviteResponse:
		return invite_response(await self._redeemable(code))

	async def accept(self, user: AuthenticatedUser, code: str) -> dto.InviteAcceptResponse:
		"""Join the invite's group.

		Status, expiry and addressee are checked before membership. The one
		exception is a code this caller already accepted, which reads as
		"already a member".
		"""
		user_id = UUID(user.id)
		invite = await self.repo.get_invite_by_code(code)
		if invite is not None and invite.status == models.INVITE_ACCEPTED and invite.invited_user_id == user_id:
			raise ConflictError("Usuário já é membro do grupo")
		invite = await self._redeemable(code, invite)
		await self._assert_addressee(user, invite)
		if await self.groups.get_member(invite.group_id, user_id) is not None:
			raise ConflictError("Usuário já é membro do grupo")
		group = policies.require_group(await self.groups.get_group(invite.group_id))
		if group.max_members is not None and await self.groups.count_members(group.id) >= group.max_members:
			raise ConflictError("Grupo atingiu o número máximo de membros")
		accepted, member = await self.repo.accept_invite(
			invite.id,
			user_id=user_id,
			now=_utcnow(),
			level=models.LEVEL_MEMBER,
			repository=self.groups,
		)
		obs_metrics.inc_invite_resolved(models.INVITE_ACCEPTED)
		obs_metrics.inc_membership_change("invite")
		logger.info("invite_accepted", extra={"group_id": str(group.id), "invite_id": str(invite.id)})
		accepted = accepted.model_copy(update={"group_name": group.name, "inviter_name": invite.inviter_name})
		return dto.InviteAcceptResponse(convite=invite_response(accepted), membro=member_response(member))

	async def decline(self, user: AuthenticatedUser, code: str) -> dto.InviteResponse:
		invite = await self._redeemable(code)
		await self._assert_addressee(user, invite)
		declined = await self.repo.decline_invite(invite.id, user_id=UUID(user.id), now=_utcnow())
		if declined is None:
			raise ConflictError("Convite já foi respondido")
		obs_metrics.inc_invite_resolved(models.INVITE_DECLINED)
		return invite_response(declined)

	async def cancel(self, user: AuthenticatedUser, code: str) -> None:
		invite = await self.repo.get_invite_by_code(code)
		if invite is None:
			raise NotFoundError("Convite não encontrado")
		user_id = UUID(user.id)
		access = await load_group_access(self.groups, invite.group_id, user_id)
		if not policies.can_manage_invite(invite, user_id, access.level):
			raise ForbiddenError("Você não tem permissão para cancelar este convite")
		if invite.status != models.INVITE_PENDING:
			raise ConflictError("Apenas convites pendentes podem ser cancelados")
		if not await self.repo.delete_pending_invite(invite.id):
			raise ConflictError("Apenas convites pendentes podem ser cancelados")
		obs_metrics.inc_invite_resolved("cancelado")

	async def my_invites(self, user: AuthenticatedUser) -> list[dto.InviteResponse]:
		email = await self._caller_email(user)
		invites = await self.repo.list_pending_for_email(email, now=_utcnow())
		return [invite_response(invite) for invite in invites]

	async def list_group_invites(
		self,
		user: AuthenticatedUser,
		group_id: UUID,
		*,
		status: Optional[str] = None,
	) -> list[dto.InviteResponse]:
		access = await load_group_access(self.groups, group_id, UUID(user.id))
		policies.require_member(access.level)
		invites = await self.repo.list_group_invites(group_id, status=status)
		return [invite_response(invite) for invite in invites]

	async def group_stats(self, user: AuthenticatedUser, group_id: UUID) -> dto.InviteStatsResponse:
		access = await load_group_access(self.groups, group_id, UUID(user.id))
		policies.require_member(access.level)
		return dto.InviteStatsResponse(**await self.repo.get_invite_stats(group_id))

	async def expire_stale(self, *, now: Optional[datetime] = None) -> int:
		count = await self.repo.expire_pending_invites(now=now or _utcnow())
		if count:
			obs_metrics.inc_invite_resolved(models.INVITE_EXPIRED, count)
		return count
