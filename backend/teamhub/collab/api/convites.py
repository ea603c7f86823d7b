"""Invite endpoints.

Literal paths (``meus``, ``validar``, ``aceitar``, ``recusar``) are declared
before ``/convites/{group_id}`` so they are never captured as a group id.
"""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from teamhub.collab.api._errors import to_http_error
from teamhub.collab.domain.exceptions import CollabError
from teamhub.collab.domain.invites_service import InviteService
from teamhub.collab.schemas import dto
from teamhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["convites"])
_service = InviteService()


@router.post("/convites", response_model=dto.ApiResponse[dto.InviteResponse], status_code=201)
async def create_invite_endpoint(
	payload: dto.InviteCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.InviteResponse]:
	try:
		invite = await _service.create_invite(auth_user, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Convite enviado com sucesso", dados=invite)


@router.get("/convites/meus", response_model=dto.ApiResponse[list[dto.InviteResponse]])
async def my_invites_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[list[dto.InviteResponse]]:
	try:
		return dto.ApiResponse(dados=await _service.my_invites(auth_user))
	except CollabError as exc:
		raise to_http_error(exc) from exc


@router.get("/convites/validar/{code}", response_model=dto.ApiResponse[dto.InviteResponse])
async def validate_invite_endpoint(
	code: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.InviteResponse]:
	try:
		return dto.ApiResponse(mensagem="Convite válido", dados=await _service.validate_code(code))
	except CollabError as exc:
		raise to_http_error(exc) from exc


@router.post("/convites/aceitar/{code}", response_model=dto.ApiResponse[dto.InviteAcceptResponse])
async def accept_invite_endpoint(
	code: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.InviteAcceptResponse]:
	try:
		result = await _service.accept(auth_user, code)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Convite aceito com sucesso", dados=result)


@router.post("/convites/recusar/{code}", response_model=dto.ApiResponse[dto.InviteResponse])
async def decline_invite_endpoint(
	code: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.InviteResponse]:
	try:
		invite = await _service.decline(auth_user, code)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Convite recusado", dados=invite)


@router.get("/convites/{group_id}/estatisticas", response_model=dto.ApiResponse[dto.InviteStatsResponse])
async def invite_stats_endpoint(
	group_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.InviteStatsResponse]:
	try:
		return dto.ApiResponse(dados=await _service.group_stats(auth_user, group_id))
	except CollabError as exc:
		raise to_http_error(exc) from exc


@router.get("/convites/{group_id}", response_model=dto.ApiResponse[list[dto.InviteResponse]])
async def list_group_invites_endpoint(
	group_id: UUID,
	status: Optional[str] = Query(default=None, pattern="^(pendente|aceito|recusado|expirado)$"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[list[dto.InviteResponse]]:
	try:
		invites = await _service.list_group_invites(auth_user, group_id, status=status)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(dados=invites)


@router.delete("/convites/{code}", response_model=dto.ApiResponse[None])
async def cancel_invite_endpoint(
	code: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[None]:
	try:
		await _service.cancel(auth_user, code)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Convite cancelado")


__all__ = ["router"]
