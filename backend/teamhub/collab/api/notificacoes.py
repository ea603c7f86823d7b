"""Notification endpoints; every route acts on the caller's own inbox."""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from teamhub.collab.api._errors import to_http_error
from teamhub.collab.domain.exceptions import CollabError
from teamhub.collab.domain.notifications_service import NotificationService
from teamhub.collab.schemas import dto
from teamhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["notificacoes"])
_service = NotificationService()


@router.get("/notificacoes", response_model=dto.ApiResponse[dto.NotificationListResponse])
async def list_notifications_endpoint(
	lida: Optional[bool] = Query(default=None),
	tipo: Optional[str] = Query(default=None, pattern="^(mensagem|convite|tarefa|evento|sistema|deadline|mencao)$"),
	limit: int = Query(default=20, ge=1, le=100),
	offset: int = Query(default=0, ge=0),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.NotificationListResponse]:
	page = await _service.list_notifications(auth_user, is_read=lida, type=tipo, limit=limit, offset=offset)
	return dto.ApiResponse(dados=page)


@router.get("/notificacoes/nao-lidas", response_model=dto.ApiResponse[dto.UnreadCountResponse])
async def unread_count_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.UnreadCountResponse]:
	return dto.ApiResponse(dados=await _service.unread_count(auth_user))


@router.get("/notificacoes/estatisticas", response_model=dto.ApiResponse[dict[str, Any]])
async def notification_stats_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dict[str, Any]]:
	return dto.ApiResponse(dados=await _service.stats(auth_user))


@router.get("/notificacoes/configuracoes", response_model=dto.ApiResponse[dto.NotificationSettingsResponse])
async def get_settings_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.NotificationSettingsResponse]:
	return dto.ApiResponse(dados=await _service.get_settings(auth_user))


@router.put("/notificacoes/configuracoes", response_model=dto.ApiResponse[dto.NotificationSettingsResponse])
async def update_settings_endpoint(
	payload: dto.NotificationSettingsUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.NotificationSettingsResponse]:
	try:
		prefs = await _service.update_settings(auth_user, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Configurações atualizadas", dados=prefs)


@router.post("/notificacoes", response_model=dto.ApiResponse[dto.NotificationResponse], status_code=201)
async def create_notification_endpoint(
	payload: dto.NotificationCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.NotificationResponse]:
	try:
		notification = await _service.create_explicit(auth_user, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Notificação criada", dados=notification)


@router.patch("/notificacoes/marcar-todas-lidas", response_model=dto.ApiResponse[dto.CountResponse])
async def mark_all_read_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.CountResponse]:
	result = await _service.mark_all_read(auth_user)
	return dto.ApiResponse(mensagem="Notificações marcadas como lidas", dados=result)


@router.patch("/notificacoes/{notification_id}/marcar-lida", response_model=dto.ApiResponse[dto.NotificationResponse])
async def mark_read_endpoint(
	notification_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.NotificationResponse]:
	try:
		notification = await _service.mark_read(auth_user, notification_id)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Notificação marcada como lida", dados=notification)


@router.delete("/notificacoes/{notification_id}", response_model=dto.ApiResponse[None])
async def delete_notification_endpoint(
	notification_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[None]:
	try:
		await _service.delete(auth_user, notification_id)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Notificação excluída")


__all__ = ["router"]
