"""Calendar event endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from teamhub.collab.api._errors import to_http_error
from teamhub.collab.domain.events_service import EventService
from teamhub.collab.domain.exceptions import CollabError
from teamhub.collab.schemas import dto
from teamhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["eventos"])
_service = EventService()


@router.post("/grupos/{group_id}/eventos", response_model=dto.ApiResponse[dto.EventResponse], status_code=201)
async def create_event_endpoint(
	group_id: UUID,
	payload: dto.EventCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.EventResponse]:
	try:
		event = await _service.create_event(auth_user, group_id, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Evento criado com sucesso", dados=event)


@router.get("/grupos/{group_id}/eventos", response_model=dto.ApiResponse[list[dto.EventResponse]])
async def list_group_events_endpoint(
	group_id: UUID,
	inicio: Optional[datetime] = Query(default=None),
	fim: Optional[datetime] = Query(default=None),
	tipo: Optional[str] = Query(default=None, pattern="^(reuniao|estudo|prova|apresentacao|aula|deadline|outro)$"),
	status: Optional[str] = Query(default=None, pattern="^(agendado|em_andamento|concluido|cancelado)$"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[list[dto.EventResponse]]:
	try:
		events = await _service.list_group_events(
			auth_user,
			group_id,
			starts_after=inicio,
			ends_before=fim,
			type=tipo,
			status=status,
		)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(dados=events)


@router.get("/eventos/meus", response_model=dto.ApiResponse[list[dto.EventResponse]])
async def my_events_endpoint(
	limit: int = Query(default=20, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[list[dto.EventResponse]]:
	return dto.ApiResponse(dados=await _service.my_events(auth_user, limit=limit))


@router.get("/eventos/{event_id}", response_model=dto.ApiResponse[dto.EventResponse])
async def get_event_endpoint(
	event_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.EventResponse]:
	try:
		return dto.ApiResponse(dados=await _service.get_event(auth_user, event_id))
	except CollabError as exc:
		raise to_http_error(exc) from exc


@router.put("/eventos/{event_id}", response_model=dto.ApiResponse[dto.EventResponse])
async def update_event_endpoint(
	event_id: UUID,
	payload: dto.EventUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.EventResponse]:
	try:
		event = await _service.update_event(auth_user, event_id, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Evento atualizado com sucesso", dados=event)


@router.delete("/eventos/{event_id}", response_model=dto.ApiResponse[None])
async def delete_event_endpoint(
	event_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[None]:
	try:
		await _service.delete_event(auth_user, event_id)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Evento excluído com sucesso")


@router.post("/eventos/{event_id}/participantes", response_model=dto.ApiResponse[dto.ParticipantResponse])
async def add_participant_endpoint(
	event_id: UUID,
	payload: dto.ParticipantAddRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.ParticipantResponse]:
	try:
		participant = await _service.add_participant(auth_user, event_id, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Participante adicionado", dados=participant)


@router.put("/eventos/{event_id}/participacao", response_model=dto.ApiResponse[dto.ParticipantResponse])
async def respond_event_endpoint(
	event_id: UUID,
	payload: dto.ParticipationRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.ParticipantResponse]:
	try:
		participant = await _service.respond(auth_user, event_id, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Participação atualizada", dados=participant)


__all__ = ["router"]
