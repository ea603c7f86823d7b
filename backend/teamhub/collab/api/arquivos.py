"""File metadata and version endpoints."""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from teamhub.collab.api._errors import to_http_error
from teamhub.collab.domain.exceptions import CollabError
from teamhub.collab.domain.files_service import FileService
from teamhub.collab.schemas import dto
from teamhub.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["arquivos"])
_service = FileService()


@router.post("/grupos/{group_id}/arquivos", response_model=dto.ApiResponse[dto.FileResponse], status_code=201)
async def register_file_endpoint(
	group_id: UUID,
	payload: dto.FileCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.FileResponse]:
	try:
		file = await _service.register_file(auth_user, group_id, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Arquivo registrado com sucesso", dados=file)


@router.get("/grupos/{group_id}/arquivos", response_model=dto.ApiResponse[list[dto.FileResponse]])
async def list_files_endpoint(
	group_id: UUID,
	pasta: Optional[str] = Query(default=None, max_length=100),
	tipo: Optional[str] = Query(default=None, max_length=100),
	termo: Optional[str] = Query(default=None, max_length=100),
	limit: int = Query(default=50, ge=1, le=100),
	offset: int = Query(default=0, ge=0),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[list[dto.FileResponse]]:
	try:
		files = await _service.list_files(
			auth_user,
			group_id,
			folder=pasta,
			mime_prefix=tipo,
			term=termo,
			limit=limit,
			offset=offset,
		)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(dados=files)


@router.get("/grupos/{group_id}/arquivos/pastas", response_model=dto.ApiResponse[list[dto.FolderResponse]])
async def list_folders_endpoint(
	group_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[list[dto.FolderResponse]]:
	try:
		return dto.ApiResponse(dados=await _service.list_folders(auth_user, group_id))
	except CollabError as exc:
		raise to_http_error(exc) from exc


@router.get("/grupos/{group_id}/arquivos/estatisticas", response_model=dto.ApiResponse[dict[str, Any]])
async def file_stats_endpoint(
	group_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dict[str, Any]]:
	try:
		return dto.ApiResponse(dados=await _service.stats(auth_user, group_id))
	except CollabError as exc:
		raise to_http_error(exc) from exc


@router.get("/grupos/{group_id}/arquivos/recentes", response_model=dto.ApiResponse[list[dto.FileResponse]])
async def recent_files_endpoint(
	group_id: UUID,
	limit: int = Query(default=10, ge=1, le=50),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[list[dto.FileResponse]]:
	try:
		return dto.ApiResponse(dados=await _service.recent_files(auth_user, group_id, limit=limit))
	except CollabError as exc:
		raise to_http_error(exc) from exc


@router.get("/arquivos/{file_id}", response_model=dto.ApiResponse[dto.FileResponse])
async def get_file_endpoint(
	file_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.FileResponse]:
	try:
		return dto.ApiResponse(dados=await _service.get_file(auth_user, file_id))
	except CollabError as exc:
		raise to_http_error(exc) from exc


@router.put("/arquivos/{file_id}", response_model=dto.ApiResponse[dto.FileResponse])
async def update_file_endpoint(
	file_id: UUID,
	payload: dto.FileUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.FileResponse]:
	try:
		file = await _service.update_file(auth_user, file_id, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Arquivo atualizado com sucesso", dados=file)


@router.delete("/arquivos/{file_id}", response_model=dto.ApiResponse[None])
async def delete_file_endpoint(
	file_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[None]:
	try:
		await _service.delete_file(auth_user, file_id)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Arquivo excluído com sucesso")


@router.post("/arquivos/{file_id}/versoes", response_model=dto.ApiResponse[dto.FileResponse], status_code=201)
async def create_version_endpoint(
	file_id: UUID,
	payload: dto.FileVersionRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.FileResponse]:
	try:
		version = await _service.create_version(auth_user, file_id, payload)
	except CollabError as exc:
		raise to_http_error(exc) from exc
	return dto.ApiResponse(mensagem="Nova versão registrada", dados=version)


@router.get("/arquivos/{file_id}/versoes", response_model=dto.ApiResponse[list[dto.FileResponse]])
async def list_versions_endpoint(
	file_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[list[dto.FileResponse]]:
	try:
		return dto.ApiResponse(dados=await _service.list_versions(auth_user, file_id))
	except CollabError as exc:
		raise to_http_error(exc) from exc


@router.post("/arquivos/{file_id}/download", response_model=dto.ApiResponse[dto.FileDownloadResponse])
async def download_file_endpoint(
	file_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ApiResponse[dto.FileDownloadResponse]:
	try:
		return dto.ApiResponse(dados=await _service.register_download(auth_user, file_id))
	except CollabError as exc:
		raise to_http_error(exc) from exc


__all__ = ["router"]
