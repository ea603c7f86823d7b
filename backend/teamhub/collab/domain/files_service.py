"""Shared group files and their version chains.

Only metadata lives here; uploads go straight to object storage and the client
registers the resulting URL (or storage key).
"""

from __future__ import annotations

import re
from typing import Optional
from uuid import UUID

from teamhub.collab.domain import models, policies, repo as repo_module
from teamhub.collab.domain.access import load_group_access
from teamhub.collab.domain.exceptions import ForbiddenError, NotFoundError, raise_if_errors
from teamhub.collab.schemas import dto
from teamhub.infra.auth import AuthenticatedUser
from teamhub.obs import logging as obs_logging
from teamhub.obs import metrics as obs_metrics
from teamhub.settings import settings

logger = obs_logging.get_logger("teamhub.files")

ALLOWED_MIME_PREFIXES = (
	"image/",
	"video/",
	"audio/",
	"text/",
	"application/pdf",
	"application/msword",
	"application/vnd.openxmlformats-officedocument",
	"application/vnd.ms-excel",
	"application/vnd.ms-powerpoint",
	"application/zip",
	"application/x-rar-compressed",
)
MAX_TAGS = 10

_MIME_RE = re.compile(r"^[\w.+-]+/[\w.+-]+$")
_FOLDER_FORBIDDEN = set('<>:"|?*\\')


def mime_allowed(mime: str) -> bool:
	return bool(_MIME_RE.match(mime)) and mime.lower().startswith(ALLOWED_MIME_PREFIXES)


def normalize_folder(folder: Optional[str]) -> Optional[str]:
	if folder is None:
		return None
	folder = folder.strip().strip("/").strip()
	return folder or None


def normalize_tags(tags: list[str]) -> list[str]:
	seen: list[str] = []
	for tag in tags:
		value = tag.strip().lower()
		if value and value not in seen:
			seen.append(value)
	return seen


def storage_url(key: str) -> str:
	base = settings.storage_base_url.rstrip("/")
	return f"{base}/{key.lstrip('/')}"


def file_rules(
	*,
	name: Optional[str] = None,
	original_name: Optional[str] = None,
	mime_type: Optional[str] = None,
	size: Optional[int] = None,
	max_size_mb: int = 50,
	url: Optional[str] = None,
	folder: Optional[str] = None,
	description: Optional[str] = None,
	tags: Optional[list[str]] = None,
) -> list[str]:
	"""Collect every rule violation; ``None`` means the field is not being set."""
	errors: list[str] = []
	if name is not None and not 1 <= len(name) <= 255:
		errors.append("Nome deve ter entre 1 e 255 caracteres")
	if original_name is not None and not 1 <= len(original_name) <= 255:
		errors.append("Nome original deve ter entre 1 e 255 caracteres")
	if mime_type is not None and not mime_allowed(mime_type):
		errors.append("Tipo de arquivo não permitido")
	if size is not None:
		if size <= 0:
			errors.append("Tamanho do arquivo deve ser maior que zero")
		elif size > max_size_mb * 1024 * 1024:
			errors.append(f"Arquivo excede o tamanho máximo de {max_size_mb}MB")
	if url is not None and not re.match(r"^https?://\S+$", url):
		errors.append("URL do arquivo inválida")
	if folder is not None:
		if len(folder) > 100:
			errors.append("Pasta deve ter no máximo 100 caracteres")
		if _FOLDER_FORBIDDEN & set(folder):
			errors.append("Nome da pasta contém caracteres inválidos")
	if description is not None and len(description) > 500:
		errors.append("Descrição deve ter no máximo 500 caracteres")
	if tags is not None and len(tags) > MAX_TAGS:
		errors.append(f"Máximo de {MAX_TAGS} tags por arquivo")
	return errors


def file_response(file: models.GroupFile) -> dto.FileResponse:
	return dto.FileResponse(**file.model_dump(by_alias=True))


class FileService:
	def __init__(
		self,
		*,
		repository: repo_module.FileRepository | None = None,
		groups: repo_module.GroupRepository | None = None,
	) -> None:
		self.repo = repository or repo_module.FileRepository()
		self.groups = groups or repo_module.GroupRepository()

	async def _load_file(self, file_id: UUID) -> models.GroupFile:
		file = await self.repo.get_file(file_id)
		if file is None:
			raise NotFoundError("Arquivo não encontrado")
		return file

	async def _load_visible(self, user: AuthenticatedUser, file_id: UUID):
		file = await self._load_file(file_id)
		access = await load_group_access(self.groups, file.group_id, UUID(user.id))
		policies.require_member(access.level)
		return file, access

	def _resolve_url(self, url: Optional[str], key: Optional[str]) -> Optional[str]:
		if url:
			return url.strip()
		if key:
			return storage_url(key.strip())
		return None

	async def register_file(
		self,
		user: AuthenticatedUser,
		group_id: UUID,
		payload: dto.FileCreateRequest,
	) -> dto.FileResponse:
		user_id = UUID(user.id)
		access = await load_group_access(self.groups, group_id, user_id)
		policies.require_member(access.level)
		if not access.group.setting("permite_arquivos", True):
			raise ForbiddenError("Este grupo não permite arquivos")

		name = payload.nome.strip()
		original_name = (payload.nome_original or payload.nome).strip()
		description = payload.descricao.strip() if payload.descricao else None
		folder = normalize_folder(payload.pasta)
		tags = normalize_tags(payload.tags)
		url = self._resolve_url(payload.url, payload.chave_armazenamento)
		errors = file_rules(
			name=name,
			original_name=original_name,
			mime_type=payload.tipo_mime,
			size=payload.tamanho,
			max_size_mb=int(access.group.setting("tamanho_max_arquivo_mb", settings.max_file_size_mb)),
			url=url or "",
			folder=folder,
			description=description,
			tags=tags,
		)
		raise_if_errors(errors)

		file = await self.repo.create_file(
			fields={
				"grupo_id": group_id,
				"enviado_por": user_id,
				"nome": name,
				"nome_original": original_name,
				"tipo_mime": payload.tipo_mime.lower(),
				"tamanho": payload.tamanho,
				"url": url,
				"pasta": folder,
				"tags": tags,
				"descricao": description,
				"publico": bool(payload.publico),
			}
		)
		obs_metrics.inc_file_registered(file.mime_type.split("/", 1)[0])
		logger.info("file_registered", extra={"group_id": str(group_id), "file_id": str(file.id)})
		return file_response(file)

	async def get_file(self, user: AuthenticatedUser, file_id: UUID) -> dto.FileResponse:
		file, _ = await self._load_visible(user, file_id)
		return file_response(file)

	async def update_file(
		self,
		user: AuthenticatedUser,
		file_id: UUID,
		payload: dto.FileUpdateRequest,
	) -> dto.FileResponse:
		user_id = UUID(user.id)
		file, access = await self._load_visible(user, file_id)
		if not policies.can_manage_file(file, user_id, access.level):
			raise ForbiddenError("Você não tem permissão para alterar este arquivo")

		updates: dict[str, object] = {}
		if payload.nome is not None:
			updates["nome"] = payload.nome.strip()
		if payload.descricao is not None:
			updates["descricao"] = payload.descricao.strip()
		if payload.pasta is not None:
			updates["pasta"] = normalize_folder(payload.pasta)
		if payload.tags is not None:
			updates["tags"] = normalize_tags(payload.tags)
		if payload.publico is not None:
			updates["publico"] = payload.publico
		raise_if_errors(
			file_rules(
				name=updates.get("nome"),
				folder=updates.get("pasta"),
				description=updates.get("descricao"),
				tags=updates.get("tags"),
			)
		)
		updated = await self.repo.update_file(file_id, updates)
		if updated is None:
			raise NotFoundError("Arquivo não encontrado")
		return file_response(updated)

	async def delete_file(self, user: AuthenticatedUser, file_id: UUID) -> None:
		user_id = UUID(user.id)
		file, access = await self._load_visible(user, file_id)
		if not policies.can_manage_file(file, user_id, access.level):
			raise ForbiddenError("Você não tem permissão para excluir este arquivo")
		if not await self.repo.soft_delete_file(file_id):
			raise NotFoundError("Arquivo não encontrado")
		logger.info("file_deleted", extra={"file_id": str(file_id)})

	async def list_files(
		self,
		user: AuthenticatedUser,
		group_id: UUID,
		*,
		folder: Optional[str] = None,
		mime_prefix: Optional[str] = None,
		term: Optional[str] = None,
		limit: int = 50,
		offset: int = 0,
	) -> list[dto.FileResponse]:
		access = await load_group_access(self.groups, group_id, UUID(user.id))
		policies.require_member(access.level)
		files = await self.repo.list_group_files(
			group_id,
			folder=normalize_folder(folder),
			mime_prefix=mime_prefix.strip().lower() if mime_prefix else None,
			term=term.strip() if term and term.strip() else None,
			limit=max(1, min(limit, 100)),
			offset=max(0, offset),
		)
		return [file_response(file) for file in files]

	async def list_folders(self, user: AuthenticatedUser, group_id: UUID) -> list[dto.FolderResponse]:
		access = await load_group_access(self.groups, group_id, UUID(user.id))
		policies.require_member(access.level)
		return [dto.FolderResponse(**row) for row in await self.repo.list_folders(group_id)]

	async def stats(self, user: AuthenticatedUser, group_id: UUID) -> dict[str, object]:
		access = await load_group_access(self.groups, group_id, UUID(user.id))
		policies.require_member(access.level)
		return await self.repo.get_file_stats(group_id)

	async def recent_files(self, user: AuthenticatedUser, group_id: UUID, *, limit: int = 10) -> list[dto.FileResponse]:
		access = await load_group_access(self.groups, group_id, UUID(user.id))
		policies.require_member(access.level)
		files = await self.repo.get_recent_files(group_id, limit=max(1, min(limit, 50)))
		return [file_response(file) for file in files]

	# --- Versions -------------------------------------------------------------

	async def create_version(
		self,
		user: AuthenticatedUser,
		file_id: UUID,
		payload: dto.FileVersionRequest,
	) -> dto.FileResponse:
		user_id = UUID(user.id)
		file, access = await self._load_visible(user, file_id)
		if not policies.can_manage_file(file, user_id, access.level):
			raise ForbiddenError("Você não tem permissão para versionar este arquivo")
		url = self._resolve_url(payload.url, payload.chave_armazenamento)
		errors: list[str] = []
		if not url:
			errors.append("URL do arquivo é obrigatória")
		if payload.tamanho is None:
			errors.append("Tamanho do arquivo é obrigatório")
		mime = (payload.tipo_mime or file.mime_type).lower()
		if mime != file.mime_type.lower():
			errors.append("Nova versão deve ter o mesmo tipo de arquivo")
		errors.extend(
			file_rules(
				size=payload.tamanho,
				max_size_mb=int(access.group.setting("tamanho_max_arquivo_mb", settings.max_file_size_mb)),
				url=url,
				original_name=payload.nome_original.strip() if payload.nome_original else None,
			)
		)
		raise_if_errors(errors)

		root = file.root_id
		version = await self.repo.create_version(
			root,
			fields={
				"grupo_id": file.group_id,
				"enviado_por": user_id,
				"nome": file.name,
				"nome_original": (payload.nome_original or file.original_name).strip(),
				"tipo_mime": file.mime_type,
				"tamanho": payload.tamanho,
				"url": url,
				"pasta": file.folder,
				"tags": file.tags,
				"descricao": file.description,
				"publico": file.is_public,
			},
		)
		logger.info("file_version_created", extra={"root_id": str(root), "version": version.version})
		return file_response(version)

	async def list_versions(self, user: AuthenticatedUser, file_id: UUID) -> list[dto.FileResponse]:
		file, _ = await self._load_visible(user, file_id)
		return [file_response(item) for item in await self.repo.list_versions(file.root_id)]

	async def register_download(self, user: AuthenticatedUser, file_id: UUID) -> dto.FileDownloadResponse:
		await self._load_visible(user, file_id)
		file = await self.repo.increment_downloads(file_id)
		if file is None:
			raise NotFoundError("Arquivo não encontrado")
		obs_metrics.inc_file_download()
		return dto.FileDownloadResponse(url=file.url, downloads=file.downloads)
