"""Async repositories for the collaboration domain."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

import asyncpg

from teamhub.collab.domain import models
from teamhub.collab.domain.exceptions import ConflictError, NotFoundError
from teamhub.infra.postgres import get_pool


def _affected(result: str | None) -> int:
	return int(result.split()[-1]) if result else 0


def _update_clause(payload: dict[str, object], *, offset: int = 0) -> tuple[str, list[object]]:
	"""Build ``col=$n`` pairs for a dynamic UPDATE; dicts are stored as jsonb."""
	set_clauses: list[str] = []
	params: list[object] = []
	for column, value in payload.items():
		position = len(params) + 1 + offset
		if isinstance(value, dict):
			set_clauses.append(f"{column}=${position}::jsonb")
			params.append(json.dumps(value))
		elif isinstance(value, UUID):
			set_clauses.append(f"{column}=${position}")
			params.append(str(value))
		else:
			set_clauses.append(f"{column}=${position}")
			params.append(value)
	return ", ".join(set_clauses), params


INVITE_CODE_CONSTRAINT = "convites_grupo_codigo_convite_key"


class InviteCodeTaken(Exception):
	"""The generated invite code collided with an existing one."""


class UserRepository:
	"""Read-only access to accounts."""

	_SELECT = "SELECT id, nome, email, status_ativo FROM usuarios"

	async def get_user(self, user_id: UUID) -> models.User | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(f"{self._SELECT} WHERE id=$1", str(user_id))
		return models.User.model_validate(dict(record)) if record else None

	async def get_user_by_email(self, email: str) -> models.User | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(f"{self._SELECT} WHERE LOWER(email)=LOWER($1)", email)
		return models.User.model_validate(dict(record)) if record else None



class GroupRepository:
	"""Groups and their memberships."""

	# --- Group operations -------------------------------------------------

	async def create_group(
		self,
		*,
		name: str,
		description: str | None,
		category: str | None,
		privacy: str,
		settings: dict[str, Any],
		max_members: int | None,
		created_by: UUID,
	) -> models.Group:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				record = await conn.fetchrow(
					"""
					INSERT INTO grupos (id, nome, descricao, tipo_grupo, privacidade, configuracoes,
						max_membros, criado_por)
					VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7, $8)
					RETURNING *
					""",
					uuid4(),
					name,
					description,
					category,
					privacy,
					json.dumps(settings),
					max_members,
					str(created_by),
				)
				await conn.execute(
					"""
					INSERT INTO membros_grupo (grupo_id, usuario_id, nivel_permissao)
					VALUES ($1, $2, 'admin')
					ON CONFLICT (grupo_id, usuario_id) DO UPDATE SET nivel_permissao='admin'
					""",
					record["id"],
					str(created_by),
				)
		return models.Group.model_validate(dict(record))

	async def get_group(self, group_id: UUID) -> models.Group | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM grupos WHERE id=$1", str(group_id))
		if not record:
			return None
		return models.Group.model_validate(dict(record))

	async def update_group(self, group_id: UUID, payload: dict[str, object]) -> models.Group:
		if not payload:
			raise ConflictError("Nenhuma alteração informada")
		clause, params = _update_clause(payload, offset=1)
		query = f"""
			UPDATE grupos SET {clause}, data_atualizacao = NOW()
			WHERE id=$1 AND deleted_at IS NULL
			RETURNING *
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(query, str(group_id), *params)
		if record is None:
			raise NotFoundError("Grupo não encontrado")
		return models.Group.model_validate(dict(record))

	async def soft_delete_group(self, group_id: UUID) -> None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute(
				"UPDATE grupos SET deleted_at = NOW() WHERE id=$1 AND deleted_at IS NULL",
				str(group_id),
			)
		if _affected(result) == 0:
			raise NotFoundError("Grupo não encontrado")

	async def list_user_groups(self, user_id: UUID) -> list[tuple[models.Group, str]]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT g.*, m.nivel_permissao
				FROM grupos g
				JOIN membros_grupo m ON m.grupo_id = g.id
				WHERE m.usuario_id = $1 AND g.deleted_at IS NULL
				ORDER BY g.data_criacao DESC
				""",
				str(user_id),
			)
		return [(models.Group.model_validate(dict(row)), row["nivel_permissao"]) for row in rows]

	async def search_public_groups(self, *, term: str | None, limit: int, offset: int) -> list[models.Group]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM grupos
				WHERE privacidade = 'publico' AND deleted_at IS NULL
					AND ($1::text IS NULL OR nome ILIKE '%' || $1 || '%' OR descricao ILIKE '%' || $1 || '%')
				ORDER BY data_criacao DESC
				LIMIT $2 OFFSET $3
				""",
				term,
				limit,
				offset,
			)
		return [models.Group.model_validate(dict(row)) for row in rows]

	async def get_group_stats(self, group_id: UUID) -> dict[str, int]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				SELECT
					(SELECT COUNT(*) FROM membros_grupo WHERE grupo_id=$1) AS total_membros,
					(SELECT COUNT(*) FROM membros_grupo WHERE grupo_id=$1 AND nivel_permissao='admin') AS admins,
					(SELECT COUNT(*) FROM membros_grupo WHERE grupo_id=$1 AND nivel_permissao='moderador') AS moderadores,
					(SELECT COUNT(*) FROM eventos_calendario WHERE grupo_id=$1) AS eventos,
					(SELECT COUNT(*) FROM eventos_calendario WHERE grupo_id=$1 AND data_inicio > NOW()
						AND status <> 'cancelado') AS eventos_futuros,
					(SELECT COUNT(*) FROM arquivos WHERE grupo_id=$1 AND deleted_at IS NULL) AS arquivos,
					(SELECT COUNT(*) FROM convites_grupo WHERE grupo_id=$1 AND status='pendente') AS convites_pendentes
				""",
				str(group_id),
			)
		return {key: int(value or 0) for key, value in dict(record).items()}

	# --- Membership operations --------------------------------------------

	async def get_member(self, group_id: UUID, user_id: UUID) -> models.GroupMember | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM membros_grupo WHERE grupo_id=$1 AND usuario_id=$2",
				str(group_id),
				str(user_id),
			)
		return models.GroupMember.model_validate(dict(record)) if record else None

	async def list_members(self, group_id: UUID) -> list[models.GroupMember]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT m.*, u.nome, u.email
				FROM membros_grupo m
				JOIN usuarios u ON u.id = m.usuario_id
				WHERE m.grupo_id = $1
				ORDER BY
					CASE m.nivel_permissao WHEN 'admin' THEN 0 WHEN 'moderador' THEN 1
						WHEN 'membro' THEN 2 ELSE 3 END,
					m.data_entrada
				""",
				str(group_id),
			)
		return [models.GroupMember.model_validate(dict(row)) for row in rows]

	async def is_member_email(self, group_id: UUID, email: str) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"""
				SELECT 1 FROM membros_grupo m
				JOIN usuarios u ON u.id = m.usuario_id
				WHERE m.grupo_id = $1 AND LOWER(u.email) = LOWER($2)
				""",
				str(group_id),
				email,
			)
		return value is not None

	async def count_members(self, group_id: UUID, *, level: str | None = None) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"""
				SELECT COUNT(*) FROM membros_grupo
				WHERE grupo_id=$1 AND ($2::text IS NULL OR nivel_permissao=$2)
				""",
				str(group_id),
				level,
			)
		return int(value or 0)

	async def add_member(
		self,
		group_id: UUID,
		user_id: UUID,
		level: str,
		*,
		conn: asyncpg.Connection | None = None,
	) -> models.GroupMember:
		query = """
			INSERT INTO membros_grupo (grupo_id, usuario_id, nivel_permissao)
			VALUES ($1, $2, $3)
			ON CONFLICT (grupo_id, usuario_id) DO NOTHING
			RETURNING *
		"""
		if conn is not None:
			record = await conn.fetchrow(query, str(group_id), str(user_id), level)
		else:
			pool = await get_pool()
			async with pool.acquire() as acquired:
				record = await acquired.fetchrow(query, str(group_id), str(user_id), level)
		if record is None:
			raise ConflictError("Usuário já é membro do grupo")
		return models.GroupMember.model_validate(dict(record))

	async def update_member_level(self, group_id: UUID, user_id: UUID, level: str) -> models.GroupMember:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE membros_grupo SET nivel_permissao=$3
				WHERE grupo_id=$1 AND usuario_id=$2
				RETURNING *
				""",
				str(group_id),
				str(user_id),
				level,
			)
		if record is None:
			raise NotFoundError("Membro não encontrado")
		return models.GroupMember.model_validate(dict(record))

	async def remove_member(self, group_id: UUID, user_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute(
				"DELETE FROM membros_grupo WHERE grupo_id=$1 AND usuario_id=$2",
				str(group_id),
				str(user_id),
			)
		return _affected(result) > 0


class InviteRepository:
	"""Invite persistence. Codes are stored uppercase."""

	_SELECT = """
		SELECT c.*, g.nome AS grupo_nome, g.deleted_at AS grupo_deleted_at, u.nome AS convidado_por_nome
		FROM convites_grupo c
		JOIN grupos g ON g.id = c.grupo_id
		LEFT JOIN usuarios u ON u.id = c.convidado_por
	"""

	async def create_invite(
		self,
		*,
		group_id: UUID,
		invited_by: UUID,
		email: str,
		invited_user_id: UUID | None,
		code: str,
		message: str | None,
		expires_at: datetime,
		now: datetime,
	) -> models.GroupInvite | None:
		"""Insert a pending invite unless one is already live for (group, email).

		Returns None when a pending, unexpired invite exists. Raises
		``InviteCodeTaken`` when ``code`` is already in use.
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				async with conn.transaction():
					await conn.execute(
						"""
						UPDATE convites_grupo SET status='expirado'
						WHERE grupo_id=$1 AND email_convidado=$2 AND status='pendente' AND data_expiracao < $3
						""",
						str(group_id),
						email,
						now,
					)
					record = await conn.fetchrow(
						"""
						INSERT INTO convites_grupo (id, grupo_id, convidado_por, email_convidado,
							usuario_convidado_id, codigo_convite, status, mensagem_personalizada,
							data_criacao, data_expiracao)
						SELECT $1::uuid, $2::uuid, $3::uuid, $4::text, $5::uuid, $6::text, 'pendente', $7::text,
							$8::timestamptz, $9::timestamptz
						WHERE NOT EXISTS (
							SELECT 1 FROM convites_grupo
							WHERE grupo_id=$2::uuid AND email_convidado=$4::text AND status='pendente'
						)
						RETURNING *
						""",
						uuid4(),
						str(group_id),
						str(invited_by),
						email,
						str(invited_user_id) if invited_user_id else None,
						code,
						message,
						now,
						expires_at,
					)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				if exc.constraint_name == INVITE_CODE_CONSTRAINT:
					raise InviteCodeTaken(code) from exc
				# A concurrent request won the partial unique index
				return None
		if record is None:
			return None
		return models.GroupInvite.model_validate(dict(record))

	async def get_invite_by_code(self, code: str) -> models.GroupInvite | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				f"{self._SELECT} WHERE c.codigo_convite = $1",
				code.strip().upper(),
			)
		return models.GroupInvite.model_validate(dict(record)) if record else None

	async def list_group_invites(self, group_id: UUID, *, status: str | None = None) -> list[models.GroupInvite]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				{self._SELECT}
				WHERE c.grupo_id = $1 AND ($2::text IS NULL OR c.status = $2)
				ORDER BY c.data_criacao DESC
				""",
				str(group_id),
				status,
			)
		return [models.GroupInvite.model_validate(dict(row)) for row in rows]

	async def list_pending_for_email(self, email: str, *, now: datetime) -> list[models.GroupInvite]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				{self._SELECT}
				WHERE c.email_convidado = LOWER($1) AND c.status = 'pendente' AND c.data_expiracao >= $2
					AND g.deleted_at IS NULL
				ORDER BY c.data_criacao DESC
				""",
				email,
				now,
			)
		return [models.GroupInvite.model_validate(dict(row)) for row in rows]

	async def accept_invite(
		self,
		invite_id: UUID,
		*,
		user_id: UUID,
		now: datetime,
		level: str,
		repository: GroupRepository,
	) -> tuple[models.GroupInvite, models.GroupMember]:
		"""Flip the invite to accepted and create the membership atomically."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				record = await conn.fetchrow(
					"""
					UPDATE convites_grupo
					SET status='aceito', data_resposta=$3, usuario_convidado_id=$2
					WHERE id=$1 AND status='pendente' AND data_expiracao >= $3
					RETURNING *
					""",
					str(invite_id),
					str(user_id),
					now,
				)
				if record is None:
					raise ConflictError("Convite já foi respondido")
				member = await repository.add_member(record["grupo_id"], user_id, level, conn=conn)
		return models.GroupInvite.model_validate(dict(record)), member

	async def decline_invite(self, invite_id: UUID, *, user_id: UUID, now: datetime) -> models.GroupInvite | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE convites_grupo
				SET status='recusado', data_resposta=$3, usuario_convidado_id=$2
				WHERE id=$1 AND status='pendente' AND data_expiracao >= $3
				RETURNING *
				""",
				str(invite_id),
				str(user_id),
				now,
			)
		return models.GroupInvite.model_validate(dict(record)) if record else None

	async def delete_pending_invite(self, invite_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute(
				"DELETE FROM convites_grupo WHERE id=$1 AND status='pendente'",
				str(invite_id),
			)
		return _affected(result) > 0

	async def expire_pending_invites(self, *, now: datetime) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute(
				"""
				UPDATE convites_grupo SET status='expirado'
				WHERE status='pendente' AND data_expiracao < $1
				""",
				now,
			)
		return _affected(result)

	async def get_invite_stats(self, group_id: UUID) -> dict[str, int]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT status, COUNT(*) AS total FROM convites_grupo WHERE grupo_id=$1 GROUP BY status",
				str(group_id),
			)
		stats = {status: 0 for status in models.INVITE_STATUSES}
		for row in rows:
			stats[row["status"]] = int(row["total"])
		stats["total"] = sum(stats.values())
		return stats


class EventRepository:
	"""Calendar events and their participants."""

	async def create_event(self, *, fields: dict[str, object], created_by: UUID) -> models.Event:
		columns = ["id", "criado_por", *fields.keys()]
		params: list[object] = [uuid4(), str(created_by)]
		placeholders = ["$1", "$2"]
		for column, value in fields.items():
			position = len(params) + 1
			if isinstance(value, dict):
				placeholders.append(f"${position}::jsonb")
				params.append(json.dumps(value))
			else:
				placeholders.append(f"${position}")
				params.append(str(value) if isinstance(value, UUID) else value)
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				record = await conn.fetchrow(
					f"""
					INSERT INTO eventos_calendario ({', '.join(columns)})
					VALUES ({', '.join(placeholders)})
					RETURNING *
					""",
					*params,
				)
				await conn.execute(
					"""
					INSERT INTO eventos_participantes (evento_id, usuario_id, status, data_resposta)
					VALUES ($1, $2, 'confirmado', NOW())
					ON CONFLICT (evento_id, usuario_id) DO UPDATE SET status='confirmado', data_resposta=NOW()
					""",
					record["id"],
					str(created_by),
				)
		return models.Event.model_validate(dict(record))

	async def get_event(self, event_id: UUID) -> models.Event | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM eventos_calendario WHERE id=$1", str(event_id))
		return models.Event.model_validate(dict(record)) if record else None

	async def update_event(self, event_id: UUID, payload: dict[str, object]) -> models.Event | None:
		if not payload:
			return await self.get_event(event_id)
		clause, params = _update_clause(payload, offset=1)
		query = f"""
			UPDATE eventos_calendario
			SET {clause}, data_atualizacao = NOW()
			WHERE id=$1
			RETURNING *
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(query, str(event_id), *params)
		return models.Event.model_validate(dict(record)) if record else None

	async def delete_event(self, event_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				await conn.execute("DELETE FROM eventos_participantes WHERE evento_id=$1", str(event_id))
				result = await conn.execute("DELETE FROM eventos_calendario WHERE id=$1", str(event_id))
		return _affected(result) > 0

	async def list_group_events(
		self,
		group_id: UUID,
		*,
		starts_after: datetime | None = None,
		ends_before: datetime | None = None,
		type: str | None = None,
		status: str | None = None,
	) -> list[models.Event]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM eventos_calendario
				WHERE grupo_id=$1
					AND ($2::timestamptz IS NULL OR data_inicio >= $2)
					AND ($3::timestamptz IS NULL OR data_fim <= $3)
					AND ($4::text IS NULL OR tipo_evento = $4)
					AND ($5::text IS NULL OR status = $5)
				ORDER BY data_inicio ASC
				""",
				str(group_id),
				starts_after,
				ends_before,
				type,
				status,
			)
		return [models.Event.model_validate(dict(row)) for row in rows]

	async def list_user_events(self, user_id: UUID, *, since: datetime, limit: int) -> list[models.Event]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT e.* FROM eventos_calendario e
				JOIN eventos_participantes p ON p.evento_id = e.id
				JOIN grupos g ON g.id = e.grupo_id
				WHERE p.usuario_id=$1 AND p.status <> 'recusado' AND e.data_fim >= $2
					AND e.status <> 'cancelado' AND g.deleted_at IS NULL
				ORDER BY e.data_inicio ASC
				LIMIT $3
				""",
				str(user_id),
				since,
				limit,
			)
		return [models.Event.model_validate(dict(row)) for row in rows]

	async def list_participants(self, event_id: UUID) -> list[models.EventParticipant]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT p.*, u.nome FROM eventos_participantes p
				LEFT JOIN usuarios u ON u.id = p.usuario_id
				WHERE p.evento_id=$1
				ORDER BY u.nome
				""",
				str(event_id),
			)
		return [models.EventParticipant.model_validate(dict(row)) for row in rows]

	async def get_participant(self, event_id: UUID, user_id: UUID) -> models.EventParticipant | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM eventos_participantes WHERE evento_id=$1 AND usuario_id=$2",
				str(event_id),
				str(user_id),
			)
		return models.EventParticipant.model_validate(dict(record)) if record else None

	async def upsert_participant(self, event_id: UUID, user_id: UUID, status: str) -> models.EventParticipant:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO eventos_participantes (evento_id, usuario_id, status, data_resposta)
				VALUES ($1, $2, $3::text, CASE WHEN $3::text = 'pendente' THEN NULL ELSE NOW() END)
				ON CONFLICT (evento_id, usuario_id) DO UPDATE
				SET status = EXCLUDED.status, data_resposta = EXCLUDED.data_resposta
				RETURNING *
				""",
				str(event_id),
				str(user_id),
				status,
			)
		return models.EventParticipant.model_validate(dict(record))


class NotificationRepository:
	"""Notifications and per-user delivery settings."""

	# --- Notifications ------------------------------------------------------

	async def create_notification(
		self,
		*,
		user_id: UUID,
		title: str,
		message: str,
		type: str,
		origin_type: str | None,
		origin_id: UUID | None,
		important: bool,
		metadata: dict[str, Any],
	) -> models.Notification:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO notificacoes (id, usuario_id, titulo, mensagem, tipo, origem_tipo, origem_id,
					lida, importante, metadados)
				VALUES ($1, $2, $3, $4, $5, $6, $7, FALSE, $8, $9::jsonb)
				RETURNING *
				""",
				uuid4(),
				str(user_id),
				title,
				message,
				type,
				origin_type,
				str(origin_id) if origin_id else None,
				important,
				json.dumps(metadata),
			)
		return models.Notification.model_validate(dict(record))

	async def list_notifications(
		self,
		user_id: UUID,
		*,
		is_read: bool | None,
		type: str | None,
		limit: int,
		offset: int,
	) -> tuple[list[models.Notification], int]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT *, COUNT(*) OVER () AS total_count FROM notificacoes
				WHERE usuario_id=$1
					AND ($2::boolean IS NULL OR lida = $2)
					AND ($3::text IS NULL OR tipo = $3)
				ORDER BY data_criacao DESC
				LIMIT $4 OFFSET $5
				""",
				str(user_id),
				is_read,
				type,
				limit,
				offset,
			)
		total = int(rows[0]["total_count"]) if rows else 0
		return [models.Notification.model_validate(dict(row)) for row in rows], total

	async def count_unread(self, user_id: UUID) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"SELECT COUNT(*) FROM notificacoes WHERE usuario_id=$1 AND lida = FALSE",
				str(user_id),
			)
		return int(value or 0)

	async def mark_read(self, notification_id: UUID, user_id: UUID) -> models.Notification | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE notificacoes SET lida = TRUE, data_leitura = COALESCE(data_leitura, NOW())
				WHERE id=$1 AND usuario_id=$2
				RETURNING *
				""",
				str(notification_id),
				str(user_id),
			)
		return models.Notification.model_validate(dict(record)) if record else None

	async def mark_all_read(self, user_id: UUID) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute(
				"UPDATE notificacoes SET lida = TRUE, data_leitura = NOW() WHERE usuario_id=$1 AND lida = FALSE",
				str(user_id),
			)
		return _affected(result)

	async def delete_notification(self, notification_id: UUID, user_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute(
				"DELETE FROM notificacoes WHERE id=$1 AND usuario_id=$2",
				str(notification_id),
				str(user_id),
			)
		return _affected(result) > 0

	async def get_notification_stats(self, user_id: UUID) -> dict[str, object]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT tipo, COUNT(*) AS total, COUNT(*) FILTER (WHERE lida = FALSE) AS nao_lidas
				FROM notificacoes WHERE usuario_id=$1
				GROUP BY tipo
				""",
				str(user_id),
			)
		by_type = {row["tipo"]: {"total": int(row["total"]), "nao_lidas": int(row["nao_lidas"])} for row in rows}
		return {
			"total": sum(item["total"] for item in by_type.values()),
			"nao_lidas": sum(item["nao_lidas"] for item in by_type.values()),
			"por_tipo": by_type,
		}

	async def delete_read_before(self, *, cutoff: datetime) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute(
				"DELETE FROM notificacoes WHERE lida = TRUE AND data_criacao < $1",
				cutoff,
			)
		return _affected(result)

	# --- Settings -----------------------------------------------------------

	async def get_settings(self, user_id: UUID) -> models.NotificationSettings | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM configuracoes_notificacao WHERE usuario_id=$1",
				str(user_id),
			)
		return models.NotificationSettings.model_validate(dict(record)) if record else None

	async def create_default_settings(self, user_id: UUID) -> models.NotificationSettings:
		defaults = models.NotificationSettings(user_id=user_id)
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(
				"""
				INSERT INTO configuracoes_notificacao (usuario_id, notificacoes_email, notificacoes_push,
					tipos_ativados, horario_silencioso, frequencia_email)
				VALUES ($1, $2, $3, $4::jsonb, $5::jsonb, $6)
				ON CONFLICT (usuario_id) DO NOTHING
				""",
				str(user_id),
				defaults.email_enabled,
				defaults.push_enabled,
				json.dumps(defaults.enabled_types),
				json.dumps(defaults.quiet_hours.model_dump(by_alias=True)),
				defaults.email_frequency,
			)
			record = await conn.fetchrow(
				"SELECT * FROM configuracoes_notificacao WHERE usuario_id=$1",
				str(user_id),
			)
		return models.NotificationSettings.model_validate(dict(record))

	async def update_settings(self, user_id: UUID, payload: dict[str, object]) -> models.NotificationSettings:
		clause, params = _update_clause(payload, offset=1)
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				f"""
				UPDATE configuracoes_notificacao SET {clause}, data_atualizacao = NOW()
				WHERE usuario_id=$1
				RETURNING *
				""",
				str(user_id),
				*params,
			)
		if record is None:
			raise NotFoundError("Configurações não encontradas")
		return models.NotificationSettings.model_validate(dict(record))


class FileRepository:
	"""File records; the binary content lives in external storage."""

	async def create_file(self, *, fields: dict[str, object]) -> models.GroupFile:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await self._insert_file(conn, fields)
		return models.GroupFile.model_validate(dict(record))

	async def _insert_file(self, conn: asyncpg.Connection, fields: dict[str, object]) -> asyncpg.Record:
		columns = ["id", *fields.keys()]
		params: list[object] = [uuid4()]
		for value in fields.values():
			params.append(str(value) if isinstance(value, UUID) else value)
		placeholders = [f"${index}" for index in range(1, len(params) + 1)]
		return await conn.fetchrow(
			f"""
			INSERT INTO arquivos ({', '.join(columns)})
			VALUES ({', '.join(placeholders)})
			RETURNING *
			""",
			*params,
		)

	async def get_file(self, file_id: UUID) -> models.GroupFile | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM arquivos WHERE id=$1 AND deleted_at IS NULL",
				str(file_id),
			)
		return models.GroupFile.model_validate(dict(record)) if record else None

	async def update_file(self, file_id: UUID, payload: dict[str, object]) -> models.GroupFile | None:
		if not payload:
			return await self.get_file(file_id)
		clause, params = _update_clause(payload, offset=1)
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				f"""
				UPDATE arquivos SET {clause}, data_atualizacao = NOW()
				WHERE id=$1 AND deleted_at IS NULL
				RETURNING *
				""",
				str(file_id),
				*params,
			)
		return models.GroupFile.model_validate(dict(record)) if record else None

	async def soft_delete_file(self, file_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			result = await conn.execute(
				"UPDATE arquivos SET deleted_at = NOW() WHERE id=$1 AND deleted_at IS NULL",
				str(file_id),
			)
		return _affected(result) > 0

	async def list_group_files(
		self,
		group_id: UUID,
		*,
		folder: str | None = None,
		mime_prefix: str | None = None,
		term: str | None = None,
		limit: int = 50,
		offset: int = 0,
	) -> list[models.GroupFile]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM arquivos
				WHERE grupo_id=$1 AND deleted_at IS NULL
					AND ($2::text IS NULL OR pasta = $2)
					AND ($3::text IS NULL OR tipo_mime LIKE $3 || '%')
					AND ($4::text IS NULL OR nome ILIKE '%' || $4 || '%' OR descricao ILIKE '%' || $4 || '%'
						OR $4 = ANY(tags))
				ORDER BY data_criacao DESC
				LIMIT $5 OFFSET $6
				""",
				str(group_id),
				folder,
				mime_prefix,
				term,
				limit,
				offset,
			)
		return [models.GroupFile.model_validate(dict(row)) for row in rows]

	async def list_folders(self, group_id: UUID) -> list[dict[str, object]]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT pasta, COUNT(*) AS arquivos, COALESCE(SUM(tamanho), 0) AS tamanho_total
				FROM arquivos
				WHERE grupo_id=$1 AND deleted_at IS NULL AND pasta IS NOT NULL AND pasta <> ''
				GROUP BY pasta
				ORDER BY pasta
				""",
				str(group_id),
			)
		return [
			{"pasta": row["pasta"], "arquivos": int(row["arquivos"]), "tamanho_total": int(row["tamanho_total"])}
			for row in rows
		]

	async def get_file_stats(self, group_id: UUID) -> dict[str, object]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			totals = await conn.fetchrow(
				"""
				SELECT COUNT(*) AS total, COALESCE(SUM(tamanho), 0) AS tamanho_total,
					COALESCE(SUM(downloads), 0) AS downloads
				FROM arquivos WHERE grupo_id=$1 AND deleted_at IS NULL
				""",
				str(group_id),
			)
			by_type = await conn.fetch(
				"""
				SELECT split_part(tipo_mime, '/', 1) AS categoria, COUNT(*) AS total
				FROM arquivos WHERE grupo_id=$1 AND deleted_at IS NULL
				GROUP BY categoria
				""",
				str(group_id),
			)
		return {
			"total": int(totals["total"]),
			"tamanho_total": int(totals["tamanho_total"]),
			"downloads": int(totals["downloads"]),
			"por_tipo": {row["categoria"]: int(row["total"]) for row in by_type},
		}

	async def list_versions(self, root_id: UUID) -> list[models.GroupFile]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM arquivos
				WHERE (id=$1 OR arquivo_pai_id=$1) AND deleted_at IS NULL
				ORDER BY versao DESC
				""",
				str(root_id),
			)
		return [models.GroupFile.model_validate(dict(row)) for row in rows]

	async def create_version(self, root_id: UUID, *, fields: dict[str, object]) -> models.GroupFile:
		"""Insert the next version of a chain; the root row lock serialises numbering."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				locked = await conn.fetchval("SELECT id FROM arquivos WHERE id=$1 FOR UPDATE", str(root_id))
				if locked is None:
					raise NotFoundError("Arquivo não encontrado")
				current = await conn.fetchval(
					"SELECT COALESCE(MAX(versao), 1) FROM arquivos WHERE id=$1 OR arquivo_pai_id=$1",
					str(root_id),
				)
				payload = dict(fields)
				payload["versao"] = int(current) + 1
				payload["arquivo_pai_id"] = root_id
				record = await self._insert_file(conn, payload)
		return models.GroupFile.model_validate(dict(record))

	async def increment_downloads(self, file_id: UUID) -> models.GroupFile | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE arquivos SET downloads = downloads + 1
				WHERE id=$1 AND deleted_at IS NULL
				RETURNING *
				""",
				str(file_id),
			)
		return models.GroupFile.model_validate(dict(record)) if record else None

	async def get_recent_files(self, group_id: UUID, *, limit: int) -> list[models.GroupFile]:
		return await self.list_group_files(group_id, limit=limit)


__all__ = [
	"EventRepository",
	"FileRepository",
	"GroupRepository",
	"InviteRepository",
	"NotificationRepository",
	"UserRepository",
]
