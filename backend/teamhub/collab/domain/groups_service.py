"""Group lifecycle and membership management."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from teamhub.collab.domain import models, policies, repo as repo_module
from teamhub.collab.domain.access import load_group_access
from teamhub.collab.domain.exceptions import ConflictError, ForbiddenError, NotFoundError, raise_if_errors
from teamhub.collab.schemas import dto
from teamhub.infra.auth import AuthenticatedUser
from teamhub.obs import logging as obs_logging
from teamhub.obs import metrics as obs_metrics
from teamhub.settings import settings

logger = obs_logging.get_logger("teamhub.groups")


def default_group_settings(privacy: str) -> dict[str, Any]:
	return {
		"permite_convites": True,
		"permite_arquivos": True,
		"permite_tarefas": True,
		"tamanho_max_arquivo_mb": settings.max_file_size_mb,
		"requer_aprovacao_membros": privacy == models.PRIVACY_PRIVATE,
	}


def member_response(member: models.GroupMember) -> dto.MemberResponse:
	caps = policies.capabilities_for(member.level)
	return dto.MemberResponse(
		**member.model_dump(by_alias=True),
		permissoes=dto.CapabilitiesResponse(
			pode_convidar=caps.can_invite,
			pode_remover=caps.can_remove,
			pode_configurar=caps.can_configure,
		),
	)


def group_response(group: models.Group, level: str | None = None) -> dto.GroupResponse:
	return dto.GroupResponse(**group.model_dump(by_alias=True), meu_nivel=level)


def _clean(value: str | None) -> str | None:
	if value is None:
		return None
	value = value.strip()
	return value or None


def _group_rules(
	*,
	name: str | None,
	description: str | None,
	category: str | None,
	max_members: int | None,
	require_name: bool,
) -> list[str]:
	errors: list[str] = []
	if name is None:
		if require_name:
			errors.append("Nome do grupo é obrigatório")
	elif len(name) < 2:
		errors.append("Nome do grupo deve ter pelo menos 2 caracteres")
	elif len(name) > 100:
		errors.append("Nome do grupo deve ter no máximo 100 caracteres")
	if description is not None and len(description) > 500:
		errors.append("Descrição deve ter no máximo 500 caracteres")
	if category is not None and len(category) > 50:
		errors.append("Tipo do grupo deve ter no máximo 50 caracteres")
	if max_members is not None and max_members < 2:
		errors.append("Número máximo de membros deve ser pelo menos 2")
	return errors


class GroupService:
	"""Create groups and manage who belongs to them."""

	def __init__(
		self,
		*,
		repository: repo_module.GroupRepository | None = None,
		users: repo_module.UserRepository | None = None,
	) -> None:
		self.repo = repository or repo_module.GroupRepository()
		self.users = users or repo_module.UserRepository()

	async def create_group(self, user: AuthenticatedUser, payload: dto.GroupCreateRequest) -> dto.GroupResponse:
		name = _clean(payload.nome)
		description = _clean(payload.descricao)
		category = _clean(payload.tipo_grupo)
		raise_if_errors(
			_group_rules(
				name=name,
				description=description,
				category=category,
				max_members=payload.max_membros,
				require_name=True,
			)
		)
		group_settings = default_group_settings(payload.privacidade)
		group_settings.update(payload.configuracoes)
		group = await self.repo.create_group(
			name=name,
			description=description,
			category=category,
			privacy=payload.privacidade,
			settings=group_settings,
			max_members=payload.max_membros,
			created_by=UUID(user.id),
		)
		obs_metrics.inc_group_created()
		logger.info("group_created", extra={"group_id": str(group.id), "privacy": group.privacy})
		return group_response(group, models.LEVEL_ADMIN)

	async def get_group(self, user: AuthenticatedUser, group_id: UUID) -> dto.GroupResponse:
		access = await load_group_access(self.repo, group_id, UUID(user.id))
		policies.require_visible(access.group, access.level)
		return group_response(access.group, access.level)

	async def list_my_groups(self, user: AuthenticatedUser) -> list[dto.GroupResponse]:
		rows = await self.repo.list_user_groups(UUID(user.id))
		return [group_response(group, level) for group, level in rows]

	async def search_public_groups(
		self,
		*,
		term: str | None,
		limit: int = 20,
		offset: int = 0,
	) -> list[dto.GroupResponse]:
		limit = max(1, min(limit, 50))
		groups = await self.repo.search_public_groups(term=_clean(term), limit=limit, offset=max(0, offset))
		return [group_response(group) for group in groups]

	async def update_group(
		self,
		user: AuthenticatedUser,
		group_id: UUID,
		payload: dto.GroupUpdateRequest,
	) -> dto.GroupResponse:
		access = await load_group_access(self.repo, group_id, UUID(user.id))
		policies.assert_can_configure(access.level)
		name = _clean(payload.nome)
		description = payload.descricao.strip() if payload.descricao is not None else None
		category = _clean(payload.tipo_grupo)
		raise_if_errors(
			_group_rules(
				name=name,
				description=description,
				category=category,
				max_members=payload.max_membros,
				require_name=False,
			)
		)
		updates: dict[str, object] = {}
		if name is not None:
			updates["nome"] = name
		if description is not None:
			updates["descricao"] = description
		if category is not None:
			updates["tipo_grupo"] = category
		if payload.privacidade is not None:
			updates["privacidade"] = payload.privacidade
		if payload.max_membros is not None:
			current = await self.repo.count_members(group_id)
			if payload.max_membros < current:
				raise ConflictError("O grupo já possui mais membros que o novo limite")
			updates["max_membros"] = payload.max_membros
		if payload.configuracoes is not None:
			merged = dict(access.group.settings)
			merged.update(payload.configuracoes)
			updates["configuracoes"] = merged
		group = await self.repo.update_group(group_id, updates)
		return group_response(group, access.level)

	async def delete_group(self, user: AuthenticatedUser, group_id: UUID) -> None:
		access = await load_group_access(self.repo, group_id, UUID(user.id))
		policies.assert_is_admin(access.level, "Apenas administradores podem excluir o grupo")
		await self.repo.soft_delete_group(group_id)
		logger.info("group_deleted", extra={"group_id": str(group_id)})

	async def group_stats(self, user: AuthenticatedUser, group_id: UUID) -> dict[str, int]:
		access = await load_group_access(self.repo, group_id, UUID(user.id))
		policies.require_member(access.level)
		return await self.repo.get_group_stats(group_id)

	# --- Membership -----------------------------------------------------------

	async def list_members(self, user: AuthenticatedUser, group_id: UUID) -> list[dto.MemberResponse]:
		access = await load_group_access(self.repo, group_id, UUID(user.id))
		policies.require_visible(access.group, access.level)
		members = await self.repo.list_members(group_id)
		return [member_response(member) for member in members]

	async def join_public_group(self, user: AuthenticatedUser, group_id: UUID) -> dto.MemberResponse:
		access = await load_group_access(self.repo, group_id, UUID(user.id))
		if not access.group.is_public:
			raise ForbiddenError("Este grupo é privado; entre por convite")
		if access.membership is not None:
			raise ConflictError("Usuário já é membro do grupo")
		if access.group.setting("requer_aprovacao_membros", False):
			raise ForbiddenError("Este grupo requer aprovação de novos membros")
		await self.ensure_capacity(access.group)
		member = await self.repo.add_member(group_id, UUID(user.id), models.LEVEL_MEMBER)
		obs_metrics.inc_membership_change("join")
		return member_response(member)

	async def leave_group(self, user: AuthenticatedUser, group_id: UUID) -> None:
		access = await load_group_access(self.repo, group_id, UUID(user.id))
		if access.membership is None:
			raise ForbiddenError("Você não é membro deste grupo")
		if access.membership.level == models.LEVEL_ADMIN:
			await self._ensure_other_admin(group_id, "Você é o único administrador; promova outro membro antes de sair")
		await self.repo.remove_member(group_id, UUID(user.id))
		obs_metrics.inc_membership_change("leave")

	async def add_member(
		self,
		user: AuthenticatedUser,
		group_id: UUID,
		payload: dto.MemberAddRequest,
	) -> dto.MemberResponse:
		access = await load_group_access(self.repo, group_id, UUID(user.id))
		policies.assert_can_invite(access.level)
		if payload.nivel_permissao in (models.LEVEL_ADMIN, models.LEVEL_MODERATOR):
			policies.assert_is_admin(access.level, "Apenas administradores podem conceder este nível")
		target = await self.users.get_user(payload.usuario_id)
		if target is None or not target.is_active:
			raise NotFoundError("Usuário não encontrado")
		if await self.repo.get_member(group_id, payload.usuario_id) is not None:
			raise ConflictError("Usuário já é membro do grupo")
		await self.ensure_capacity(access.group)
		member = await self.repo.add_member(group_id, payload.usuario_id, payload.nivel_permissao)
		obs_metrics.inc_membership_change("add")
		return member_response(member)

	async def remove_member(self, user: AuthenticatedUser, group_id: UUID, target_id: UUID) -> None:
		access = await load_group_access(self.repo, group_id, UUID(user.id))
		target = await self.repo.get_member(group_id, target_id)
		if target is None:
			raise NotFoundError("Membro não encontrado")
		policies.assert_can_remove_target(access.level, target.level)
		if target_id == access.group.created_by and UUID(user.id) != target_id:
			raise ForbiddenError("O criador do grupo não pode ser removido")
		if target.level == models.LEVEL_ADMIN:
			await self._ensure_other_admin(group_id, "Não é possível remover o único administrador")
		await self.repo.remove_member(group_id, target_id)
		obs_metrics.inc_membership_change("remove")

	async def change_member_level(
		self,
		user: AuthenticatedUser,
		group_id: UUID,
		target_id: UUID,
		payload: dto.MemberLevelRequest,
	) -> dto.MemberResponse:
		access = await load_group_access(self.repo, group_id, UUID(user.id))
		policies.assert_is_admin(access.level, "Apenas administradores podem alterar permissões")
		policies.ensure_level_valid(payload.nivel_permissao)
		target = await self.repo.get_member(group_id, target_id)
		if target is None:
			raise NotFoundError("Membro não encontrado")
		if target.level == models.LEVEL_ADMIN and payload.nivel_permissao != models.LEVEL_ADMIN:
			await self._ensure_other_admin(group_id, "O grupo precisa de pelo menos um administrador")
		member = await self.repo.update_member_level(group_id, target_id, payload.nivel_permissao)
		obs_metrics.inc_membership_change("level")
		return member_response(member)

	async def ensure_capacity(self, group: models.Group) -> None:
		if group.max_members is None:
			return
		if await self.repo.count_members(group.id) >= group.max_members:
			raise ConflictError("Grupo atingiu o número máximo de membros")

	async def _ensure_other_admin(self, group_id: UUID, detail: str) -> None:
		if await self.repo.count_members(group_id, level=models.LEVEL_ADMIN) <= 1:
			raise ConflictError(detail)
