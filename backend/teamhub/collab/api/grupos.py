"""Group and membership endpoints."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from teamhub.collab.api._errors import to_http_error
from teamhub.collab.domain.exceptions import CollabError
from teamhub.collab.domain.groups_service import GroupService
from teamhub.collab.schemas import dto
from teamhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["grupos"])
_service = GroupService()


@router.post("/grupos", response_model=dto.ApiResponse[dto.GroupResponse], status_code=201)
async def create_group_endpoint(
	payload: dto.GroupCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.GroupResponse]:
	try:
		group = await _service.create_group(auth_user, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Grupo criado com sucesso", dados=group)


@router.get("/grupos", response_model=dto.ApiResponse[list[dto.GroupResponse]])
async def list_my_groups_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[list[dto.GroupResponse]]:
	return dto.ApiResponse(dados=await _service.list_my_groups(auth_user))


@router.get("/grupos/publicos/buscar", response_model=dto.ApiResponse[list[dto.GroupResponse]])
async def search_public_groups_endpoint(
	termo: Optional[str] = Query(default=None, max_length=100),
	limit: int = Query(default=20, ge=1, le=50),
	offset: int = Query(default=0, ge=0),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[list[dto.GroupResponse]]:
	groups = await _service.search_public_groups(term=termo, limit=limit, offset=offset)
	return dto.ApiResponse(dados=groups)


@router.get("/grupos/{group_id}", response_model=dto.ApiResponse[dto.GroupResponse])
async def get_group_endpoint(
	group_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.GroupResponse]:
	try:
		return dto.ApiResponse(dados=await _service.get_group(auth_user, group_id))
	except CollabError as exc:
		raise to_http_error(exc) from exc


@router.put("/grupos/{group_id}", response_model=dto.ApiResponse[dto.GroupResponse])
async def update_group_endpoint(
	group_id: UUID,
	payload: dto.GroupUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.GroupResponse]:
	try:
		group = await _service.update_group(auth_user, group_id, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Grupo atualizado com sucesso", dados=group)


@router.delete("/grupos/{group_id}", response_model=dto.ApiResponse[None])
async def delete_group_endpoint(
	group_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[None]:
	try:
		await _service.delete_group(auth_user, group_id)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Grupo excluído com sucesso")


@router.get("/grupos/{group_id}/estatisticas", response_model=dto.ApiResponse[dict[str, int]])
async def group_stats_endpoint(
	group_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dict[str, int]]:
	try:
		return dto.ApiResponse(dados=await _service.group_stats(auth_user, group_id))
	except CollabError as exc:
		raise to_http_error(exc) from exc


@router.post("/grupos/{group_id}/entrar", response_model=dto.ApiResponse[dto.MemberResponse])
async def join_group_endpoint(
	group_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.MemberResponse]:
	try:
		member = await _service.join_public_group(auth_user, group_id)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Você entrou no grupo", dados=member)


@router.post("/grupos/{group_id}/sair", response_model=dto.ApiResponse[None])
async def leave_group_endpoint(
	group_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[None]:
	try:
		await _service.leave_group(auth_user, group_id)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Você saiu do grupo")


@router.get("/grupos/{group_id}/membros", response_model=dto.ApiResponse[list[dto.MemberResponse]])
async def list_members_endpoint(
	group_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[list[dto.MemberResponse]]:
	try:
		return dto.ApiResponse(dados=await _service.list_members(auth_user, group_id))
	except CollabError as exc:
		raise to_http_error(exc) from exc


@router.post("/grupos/{group_id}/membros", response_model=dto.ApiResponse[dto.MemberResponse], status_code=201)
async def add_member_endpoint(
	group_id: UUID,
	payload: dto.MemberAddRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.MemberResponse]:
	try:
		member = await _service.add_member(auth_user, group_id, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Membro adicionado com sucesso", dados=member)


@router.delete("/grupos/{group_id}/membros/{user_id}", response_model=dto.ApiResponse[None])
async def remove_member_endpoint(
	group_id: UUID,
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[None]:
	try:
		await _service.remove_member(auth_user, group_id, user_id)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Membro removido com sucesso")


@router.put("/grupos/{group_id}/membros/{user_id}/nivel", response_model=dto.ApiResponse[dto.MemberResponse])
async def change_member_level_endpoint(
	group_id: UUID,
	user_id: UUID,
	payload: dto.MemberLevelRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.MemberResponse]:
	try:
		member = await _service.change_member_level(auth_user, group_id, user_id, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Nível de permissão atualizado", dados=member)


__all__ = ["router"]
