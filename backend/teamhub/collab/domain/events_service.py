"""Group calendar events and attendance."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from teamhub.collab.domain import models, policies, repo as repo_module
from teamhub.collab.domain.access import load_group_access
from teamhub.collab.domain.exceptions import ConflictError, ForbiddenError, NotFoundError, raise_if_errors
from teamhub.collab.domain.notifications_service import NotificationService
from teamhub.collab.schemas import dto
from teamhub.infra.auth import AuthenticatedUser
from teamhub.obs import logging as obs_logging
from teamhub.obs import metrics as obs_metrics

logger = obs_logging.get_logger("teamhub.events")

STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
	models.EVENT_SCHEDULED: frozenset({models.EVENT_IN_PROGRESS, models.EVENT_CANCELLED}),
	models.EVENT_IN_PROGRESS: frozenset({models.EVENT_DONE, models.EVENT_CANCELLED}),
	models.EVENT_DONE: frozenset(),
	models.EVENT_CANCELLED: frozenset(),
}


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
	return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def can_transition(current: str, target: str) -> bool:
	if current == target:
		return True
	return target in STATUS_TRANSITIONS.get(current, frozenset())


def event_rules(
	*,
	title: Optional[str],
	description: Optional[str],
	location: Optional[str],
	virtual_link: Optional[str],
	starts_at: datetime,
	ends_at: datetime,
) -> list[str]:
	errors: list[str] = []
	if not title:
		errors.append("Título é obrigatório")
	elif len(title) > 200:
		errors.append("Título deve ter no máximo 200 caracteres")
	if description is not None and len(description) > 1000:
		errors.append("Descrição deve ter no máximo 1000 caracteres")
	if location is not None and len(location) > 200:
		errors.append("Local deve ter no máximo 200 caracteres")
	if virtual_link is not None and not virtual_link.startswith(("http://", "https://")):
		errors.append("Link virtual deve ser uma URL http(s)")
	if ends_at <= starts_at:
		errors.append("Data de fim deve ser posterior à data de início")
	return errors


def event_response(
	event: models.Event,
	participants: Optional[list[models.EventParticipant]] = None,
) -> dto.EventResponse:
	return dto.EventResponse(
		**event.model_dump(by_alias=True),
		participantes=[dto.ParticipantResponse(**item.model_dump(by_alias=True)) for item in participants or []],
	)


class EventService:
	def __init__(
		self,
		*,
		repository: repo_module.EventRepository | None = None,
		groups: repo_module.GroupRepository | None = None,
		notifications: NotificationService | None = None,
	) -> None:
		self.repo = repository or repo_module.EventRepository()
		self.groups = groups or repo_module.GroupRepository()
		self.notifications = notifications or NotificationService()

	async def _load_event(self, event_id: UUID) -> models.Event:
		event = await self.repo.get_event(event_id)
		if event is None:
			raise NotFoundError("Evento não encontrado")
		return event

	async def create_event(
		self,
		user: AuthenticatedUser,
		group_id: UUID,
		payload: dto.EventCreateRequest,
	) -> dto.EventResponse:
		user_id = UUID(user.id)
		access = await load_group_access(self.groups, group_id, user_id)
		policies.require_member(access.level)
		title = (payload.titulo or "").strip()
		description = payload.descricao.strip() if payload.descricao else None
		location = payload.local.strip() if payload.local else None
		link = payload.link_virtual.strip() if payload.link_virtual else None
		starts_at = _as_aware(payload.data_inicio)
		ends_at = _as_aware(payload.data_fim)
		errors = event_rules(
			title=title,
			description=description,
			location=location,
			virtual_link=link,
			starts_at=starts_at,
			ends_at=ends_at,
		)
		if starts_at <= _utcnow():
			errors.append("Data de início deve ser no futuro")
		raise_if_errors(errors)

		event = await self.repo.create_event(
			fields={
				"grupo_id": group_id,
				"titulo": title,
				"descricao": description,
				"local": location,
				"link_virtual": link,
				"data_inicio": starts_at,
				"data_fim": ends_at,
				"tipo_evento": payload.tipo_evento,
				"status": models.EVENT_SCHEDULED,
				"recorrencia": payload.recorrencia,
			},
			created_by=user_id,
		)
		obs_metrics.inc_event_created()
		logger.info("event_created", extra={"group_id": str(group_id), "event_id": str(event.id)})

		for member in await self.groups.list_members(group_id):
			if member.user_id == user_id:
				continue
			await self.notifications.notify_event(
				user_id=member.user_id,
				event_id=event.id,
				title=event.title,
				starts_at=event.starts_at,
			)
		participants = await self.repo.list_participants(event.id)
		return event_response(event, participants)

	async def get_event(self, user: AuthenticatedUser, event_id: UUID) -> dto.EventResponse:
		event = await self._load_event(event_id)
		access = await load_group_access(self.groups, event.group_id, UUID(user.id))
		policies.require_member(access.level)
		return event_response(event, await self.repo.list_participants(event_id))

	async def list_group_events(
		self,
		user: AuthenticatedUser,
		group_id: UUID,
		*,
		starts_after: Optional[datetime] = None,
		ends_before: Optional[datetime] = None,
		type: Optional[str] = None,
		status: Optional[str] = None,
	) -> list[dto.EventResponse]:
		access = await load_group_access(self.groups, group_id, UUID(user.id))
		policies.require_member(access.level)
		events = await self.repo.list_group_events(
			group_id,
			starts_after=starts_after,
			ends_before=ends_before,
			type=type,
			status=status,
		)
		return [event_response(event) for event in events]

	async def my_events(self, user: AuthenticatedUser, *, limit: int = 20) -> list[dto.EventResponse]:
		events = await self.repo.list_user_events(UUID(user.id), since=_utcnow(), limit=max(1, min(limit, 100)))
		return [event_response(event) for event in events]

	async def update_event(
		self,
		user: AuthenticatedUser,
		event_id: UUID,
		payload: dto.EventUpdateRequest,
	) -> dto.EventResponse:
		user_id = UUID(user.id)
		event = await self._load_event(event_id)
		access = await load_group_access(self.groups, event.group_id, user_id)
		policies.require_member(access.level)
		if not policies.can_manage_event(event, user_id, access.level):
			raise ForbiddenError("Apenas o criador ou um administrador pode alterar o evento")
		if event.status in (models.EVENT_DONE, models.EVENT_CANCELLED):
			raise ConflictError("Eventos concluídos ou cancelados não podem ser alterados")

		updates: dict[str, object] = {}
		if payload.titulo is not None:
			updates["titulo"] = payload.titulo.strip()
		if payload.descricao is not None:
			updates["descricao"] = payload.descricao.strip()
		if payload.local is not None:
			updates["local"] = payload.local.strip()
		if payload.link_virtual is not None:
			updates["link_virtual"] = payload.link_virtual.strip()
		if payload.data_inicio is not None:
			updates["data_inicio"] = _as_aware(payload.data_inicio)
		if payload.data_fim is not None:
			updates["data_fim"] = _as_aware(payload.data_fim)
		if payload.tipo_evento is not None:
			updates["tipo_evento"] = payload.tipo_evento
		if payload.recorrencia is not None:
			updates["recorrencia"] = payload.recorrencia
		if payload.status is not None:
			if not can_transition(event.status, payload.status):
				raise ConflictError(f"Transição de status inválida: {event.status} -> {payload.status}")
			updates["status"] = payload.status

		overrides = {
			"title": updates.get("titulo"),
			"description": updates.get("descricao"),
			"location": updates.get("local"),
			"virtual_link": updates.get("link_virtual"),
			"starts_at": updates.get("data_inicio"),
			"ends_at": updates.get("data_fim"),
		}
		merged = event.model_copy(update={key: value for key, value in overrides.items() if value is not None})
		raise_if_errors(
			event_rules(
				title=merged.title,
				description=merged.description,
				location=merged.location,
				virtual_link=merged.virtual_link or None,
				starts_at=_as_aware(merged.starts_at),
				ends_at=_as_aware(merged.ends_at),
			)
		)
		updated = await self.repo.update_event(event_id, updates)
		if updated is None:
			raise NotFoundError("Evento não encontrado")
		return event_response(updated, await self.repo.list_participants(event_id))

	async def delete_event(self, user: AuthenticatedUser, event_id: UUID) -> None:
		user_id = UUID(user.id)
		event = await self._load_event(event_id)
		access = await load_group_access(self.groups, event.group_id, user_id)
		policies.require_member(access.level)
		if not policies.can_manage_event(event, user_id, access.level):
			raise ForbiddenError("Apenas o criador ou um administrador pode excluir o evento")
		if not await self.repo.delete_event(event_id):
			raise NotFoundError("Evento não encontrado")
		logger.info("event_deleted", extra={"event_id": str(event_id)})

	async def add_participant(
		self,
		user: AuthenticatedUser,
		event_id: UUID,
		payload: dto.ParticipantAddRequest,
	) -> dto.ParticipantResponse:
		event = await self._load_event(event_id)
		access = await load_group_access(self.groups, event.group_id, UUID(user.id))
		policies.require_member(access.level)
		if await self.groups.get_member(event.group_id, payload.usuario_id) is None:
			raise ForbiddenError("Participante precisa ser membro do grupo")
		existing = await self.repo.get_participant(event_id, payload.usuario_id)
		status = existing.status if existing else models.PARTICIPANT_PENDING
		participant = await self.repo.upsert_participant(event_id, payload.usuario_id, status)
		return dto.ParticipantResponse(**participant.model_dump(by_alias=True))

	async def respond(
		self,
		user: AuthenticatedUser,
		event_id: UUID,
		payload: dto.ParticipationRequest,
	) -> dto.ParticipantResponse:
		user_id = UUID(user.id)
		event = await self._load_event(event_id)
		access = await load_group_access(self.groups, event.group_id, user_id)
		policies.require_member(access.level)
		if event.status in (models.EVENT_DONE, models.EVENT_CANCELLED):
			raise ConflictError("Não é possível responder a um evento encerrado ou cancelado")
		participant = await self.repo.upsert_participant(event_id, user_id, payload.status)
		obs_metrics.inc_event_response(payload.status)
		return dto.ParticipantResponse(**participant.model_dump(by_alias=True))
