"""Notification persistence with per-user delivery gating."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from teamhub.collab.domain import models, repo as repo_module
from teamhub.collab.domain.exceptions import ForbiddenError, NotFoundError
from teamhub.collab.schemas import dto
from teamhub.infra.auth import AuthenticatedUser
from teamhub.obs import logging as obs_logging
from teamhub.obs import metrics as obs_metrics
from teamhub.settings import settings

logger = obs_logging.get_logger("teamhub.notifications")

SUPPRESSED_TYPE_DISABLED = "type_disabled"
SUPPRESSED_QUIET_HOURS = "quiet_hours"
SUPPRESSED_RECIPIENT_INACTIVE = "recipient_inactive"
SUPPRESSED_RECIPIENT_MISSING = "recipient_missing"


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def _current_hour() -> int:
	return datetime.now(ZoneInfo(settings.quiet_hours_timezone)).hour


def _parse_hour(value: str) -> int:
	return int(value.split(":", 1)[0])


def in_quiet_hours(quiet: models.QuietHours, hour: int) -> bool:
	"""Return True when ``hour`` falls inside an overnight quiet window.

	Windows are read as wrapping past midnight (22:00-07:00). A same-day window
	such as 13:00-15:00 therefore matches every hour.
	"""
	if not quiet.enabled:
		return False
	start = _parse_hour(quiet.start)
	end = _parse_hour(quiet.end)
	return hour >= start or hour <= end


class NotificationSuppressed(ForbiddenError):
	"""The recipient's account or settings rule this notification out."""

	def __init__(self, reason: str, detail: str) -> None:
		super().__init__(detail)
		self.reason = reason


def notification_response(notification: models.Notification) -> dto.NotificationResponse:
	return dto.NotificationResponse(**notification.model_dump(by_alias=True))


def settings_response(prefs: models.NotificationSettings) -> dto.NotificationSettingsResponse:
	data = prefs.model_dump(by_alias=True)
	data.pop("usuario_id", None)
	return dto.NotificationSettingsResponse(**data)


class NotificationService:
	def __init__(
		self,
		*,
		repository: repo_module.NotificationRepository | None = None,
		users: repo_module.UserRepository | None = None,
	) -> None:
		self.repo = repository or repo_module.NotificationRepository()
		self.users = users or repo_module.UserRepository()

	async def _load_settings(self, user_id: UUID) -> models.NotificationSettings:
		prefs = await self.repo.get_settings(user_id)
		if prefs is None:
			return models.NotificationSettings(user_id=user_id)
		return prefs

	async def create(
		self,
		*,
		user_id: UUID,
		title: str,
		message: str,
		type: str,
		origin_type: Optional[str] = None,
		origin_id: Optional[UUID] = None,
		important: bool = False,
		metadata: Optional[dict[str, Any]] = None,
	) -> models.Notification:
		"""Persist a notification, raising when the recipient's settings block it."""
		recipient = await self.users.get_user(user_id)
		if recipient is None:
			raise NotFoundError("Usuário não encontrado")
		if not recipient.is_active:
			raise NotificationSuppressed(SUPPRESSED_RECIPIENT_INACTIVE, "Usuário inativo")
		prefs = await self._load_settings(user_id)
		if not prefs.type_enabled(type):
			raise NotificationSuppressed(SUPPRESSED_TYPE_DISABLED, "Tipo de notificação desativado pelo usuário")
		if not important and in_quiet_hours(prefs.quiet_hours, _current_hour()):
			raise NotificationSuppressed(SUPPRESSED_QUIET_HOURS, "Usuário em horário silencioso")
		notification = await self.repo.create_notification(
			user_id=user_id,
			title=title,
			message=message,
			type=type,
			origin_type=origin_type,
			origin_id=origin_id,
			important=important,
			metadata=metadata or {},
		)
		obs_metrics.notification_persisted(type)
		return notification

	async def notify(self, **kwargs: Any) -> Optional[models.Notification]:
		"""Best-effort variant of ``create`` for internal producers.

		Suppression and unknown recipients are counted and logged, never raised.
		"""
		try:
			return await self.create(**kwargs)
		except NotificationSuppressed as exc:
			reason = exc.reason
		except NotFoundError:
			reason = SUPPRESSED_RECIPIENT_MISSING
		obs_metrics.notification_suppressed(reason)
		logger.info(
			"notification_suppressed",
			extra={"reason": reason, "type": kwargs.get("type"), "user_id": str(kwargs.get("user_id"))},
		)
		return None

	# --- Convenience builders ------------------------------------------------

	async def notify_invite(
		self,
		*,
		user_id: UUID,
		group_name: str,
		inviter_name: Optional[str],
		group_id: UUID,
		code: str,
	) -> Optional[models.Notification]:
		who = inviter_name or "Um membro"
		return await self.notify(
			user_id=user_id,
			title="Novo convite de grupo",
			message=f"{who} convidou você para o grupo {group_name}",
			type="convite",
			origin_type="grupo",
			origin_id=group_id,
			important=True,
			metadata={"codigo_convite": code, "grupo_nome": group_name},
		)

	async def notify_event(
		self,
		*,
		user_id: UUID,
		event_id: UUID,
		title: str,
		starts_at: datetime,
		action: str = "criado",
	) -> Optional[models.Notification]:
		return await self.notify(
			user_id=user_id,
			title=f"Evento {action}",
			message=f"O evento {title} foi {action} para {starts_at:%d/%m/%Y %H:%M}",
			type="evento",
			origin_type="evento",
			origin_id=event_id,
			metadata={"data_inicio": starts_at.isoformat()},
		)

	async def notify_deadline(
		self,
		*,
		user_id: UUID,
		title: str,
		due_at: datetime,
		origin_type: Optional[str] = None,
		origin_id: Optional[UUID] = None,
	) -> Optional[models.Notification]:
		remaining = due_at - _utcnow()
		return await self.notify(
			user_id=user_id,
			title="Prazo se aproximando",
			message=f"{title} vence em {due_at:%d/%m/%Y %H:%M}",
			type="deadline",
			origin_type=origin_type,
			origin_id=origin_id,
			important=remaining <= timedelta(hours=24),
			metadata={"prazo": due_at.isoformat()},
		)

	async def notify_mention(
		self,
		*,
		user_id: UUID,
		author_name: str,
		group_id: UUID,
		excerpt: str,
	) -> Optional[models.Notification]:
		return await self.notify(
			user_id=user_id,
			title="Você foi mencionado",
			message=f"{author_name}: {excerpt[:120]}",
			type="mencao",
			origin_type="grupo",
			origin_id=group_id,
		)

	async def notify_system(
		self,
		*,
		user_id: UUID,
		title: str,
		message: str,
		important: bool = False,
	) -> Optional[models.Notification]:
		return await self.notify(
			user_id=user_id,
			title=title,
			message=message,
			type="sistema",
			origin_type="sistema",
			important=important,
		)

	# --- Caller-facing operations --------------------------------------------

	async def create_explicit(
		self,
		user: AuthenticatedUser,
		payload: dto.NotificationCreateRequest,
	) -> dto.NotificationResponse:
		notification = await self.create(
			user_id=payload.usuario_id,
			title=payload.titulo.strip(),
			message=payload.mensagem.strip(),
			type=payload.tipo,
			origin_type=payload.origem_tipo,
			origin_id=payload.origem_id,
			important=payload.importante,
			metadata={**payload.metadados, "criado_por": user.id},
		)
		return notification_response(notification)

	async def list_notifications(
		self,
		user: AuthenticatedUser,
		*,
		is_read: Optional[bool] = None,
		type: Optional[str] = None,
		limit: int = 20,
		offset: int = 0,
	) -> dto.NotificationListResponse:
		limit = max(1, min(limit, 100))
		offset = max(0, offset)
		user_id = UUID(user.id)
		items, total = await self.repo.list_notifications(
			user_id, is_read=is_read, type=type, limit=limit, offset=offset
		)
		unread = await self.repo.count_unread(user_id)
		return dto.NotificationListResponse(
			itens=[notification_response(item) for item in items],
			total=total,
			nao_lidas=unread,
			limite=limit,
			offset=offset,
		)

	async def unread_count(self, user: AuthenticatedUser) -> dto.UnreadCountResponse:
		return dto.UnreadCountResponse(nao_lidas=await self.repo.count_unread(UUID(user.id)))

	async def mark_read(self, user: AuthenticatedUser, notification_id: UUID) -> dto.NotificationResponse:
		notification = await self.repo.mark_read(notification_id, UUID(user.id))
		if notification is None:
			raise NotFoundError("Notificação não encontrada")
		return notification_response(notification)

	async def mark_all_read(self, user: AuthenticatedUser) -> dto.CountResponse:
		return dto.CountResponse(total=await self.repo.mark_all_read(UUID(user.id)))

	async def delete(self, user: AuthenticatedUser, notification_id: UUID) -> None:
		if not await self.repo.delete_notification(notification_id, UUID(user.id)):
			raise NotFoundError("Notificação não encontrada")

	async def stats(self, user: AuthenticatedUser) -> dict[str, object]:
		return await self.repo.get_notification_stats(UUID(user.id))

	async def get_settings(self, user: AuthenticatedUser) -> dto.NotificationSettingsResponse:
		user_id = UUID(user.id)
		prefs = await self.repo.get_settings(user_id)
		if prefs is None:
			prefs = await self.repo.create_default_settings(user_id)
		return settings_response(prefs)

	async def update_settings(
		self,
		user: AuthenticatedUser,
		payload: dto.NotificationSettingsUpdateRequest,
	) -> dto.NotificationSettingsResponse:
		user_id = UUID(user.id)
		current = await self.repo.get_settings(user_id)
		if current is None:
			current = await self.repo.create_default_settings(user_id)
		updates: dict[str, object] = {}
		if payload.notificacoes_email is not None:
			updates["notificacoes_email"] = payload.notificacoes_email
		if payload.notificacoes_push is not None:
			updates["notificacoes_push"] = payload.notificacoes_push
		if payload.tipos_ativados is not None:
			merged = dict(current.enabled_types)
			merged.update(
				{kind: bool(flag) for kind, flag in payload.tipos_ativados.items() if kind in models.NOTIFICATION_TYPES}
			)
			updates["tipos_ativados"] = merged
		if payload.horario_silencioso is not None:
			updates["horario_silencioso"] = payload.horario_silencioso.model_dump()
		if payload.frequencia_email is not None:
			updates["frequencia_email"] = payload.frequencia_email
		if not updates:
			return settings_response(current)
		return settings_response(await self.repo.update_settings(user_id, updates))

	async def cleanup_read(self, *, now: Optional[datetime] = None) -> int:
		cutoff = (now or _utcnow()) - timedelta(days=settings.notification_retention_days)
		return await self.repo.delete_read_before(cutoff=cutoff)
