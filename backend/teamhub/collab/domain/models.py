"""Domain models for groups, invites, events, notifications and files.

Fields carry English names; aliases are the Portuguese column names, so rows
validate straight from asyncpg records and dump back with ``by_alias=True``.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Membership levels
LEVEL_ADMIN = "admin"
LEVEL_MODERATOR = "moderador"
LEVEL_MEMBER = "membro"
LEVEL_VISITOR = "visitante"
PERMISSION_LEVELS = (LEVEL_ADMIN, LEVEL_MODERATOR, LEVEL_MEMBER, LEVEL_VISITOR)

PRIVACY_PUBLIC = "publico"
PRIVACY_PRIVATE = "privado"

# Invite lifecycle
INVITE_PENDING = "pendente"
INVITE_ACCEPTED = "aceito"
INVITE_DECLINED = "recusado"
INVITE_EXPIRED = "expirado"
INVITE_STATUSES = (INVITE_PENDING, INVITE_ACCEPTED, INVITE_DECLINED, INVITE_EXPIRED)

EVENT_TYPES = ("reuniao", "estudo", "prova", "apresentacao", "aula", "deadline", "outro")
EVENT_SCHEDULED = "agendado"
EVENT_IN_PROGRESS = "em_andamento"
EVENT_DONE = "concluido"
EVENT_CANCELLED = "cancelado"
EVENT_STATUSES = (EVENT_SCHEDULED, EVENT_IN_PROGRESS, EVENT_DONE, EVENT_CANCELLED)

PARTICIPANT_PENDING = "pendente"
PARTICIPANT_CONFIRMED = "confirmado"
PARTICIPANT_DECLINED = "recusado"
PARTICIPANT_STATUSES = (PARTICIPANT_PENDING, PARTICIPANT_CONFIRMED, PARTICIPANT_DECLINED)

NOTIFICATION_TYPES = ("mensagem", "convite", "tarefa", "evento", "sistema", "deadline", "mencao")
NOTIFICATION_ORIGINS = ("grupo", "tarefa", "mensagem", "sistema", "evento")
EMAIL_FREQUENCIES = ("instantaneo", "diario", "semanal", "nunca")


def _json_value(value: Any) -> Any:
	if isinstance(value, (str, bytes)):
		return json.loads(value)
	return value


class _Row(BaseModel):
	model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class User(_Row):
	id: UUID
	name: str = Field(alias="nome")
	email: str
	is_active: bool = Field(default=True, alias="status_ativo")


class Group(_Row):
	"""A study group."""

	id: UUID
	name: str = Field(alias="nome")
	description: Optional[str] = Field(default=None, alias="descricao")
	category: Optional[str] = Field(default=None, alias="tipo_grupo")
	privacy: str = Field(alias="privacidade")
	settings: dict[str, Any] = Field(default_factory=dict, alias="configuracoes")
	max_members: Optional[int] = Field(default=None, alias="max_membros")
	created_by: UUID = Field(alias="criado_por")
	created_at: datetime = Field(alias="data_criacao")
	updated_at: Optional[datetime] = Field(default=None, alias="data_atualizacao")
	deleted_at: Optional[datetime] = None

	@field_validator("settings", mode="before")
	@classmethod
	def decode_settings(cls, value: Any) -> Any:
		return _json_value(value) or {}

	@property
	def is_public(self) -> bool:
		return self.privacy == PRIVACY_PUBLIC

	def setting(self, key: str, default: Any = None) -> Any:
		return self.settings.get(key, default)


class GroupMember(_Row):
	"""Membership row. Capabilities are derived, never stored."""

	group_id: UUID = Field(alias="grupo_id")
	user_id: UUID = Field(alias="usuario_id")
	level: str = Field(alias="nivel_permissao")
	joined_at: datetime = Field(alias="data_entrada")
	name: Optional[str] = Field(default=None, alias="nome")
	email: Optional[str] = None


class GroupInvite(_Row):
	id: UUID
	group_id: UUID = Field(alias="grupo_id")
	invited_by: UUID = Field(alias="convidado_por")
	email: str = Field(alias="email_convidado")
	invited_user_id: Optional[UUID] = Field(default=None, alias="usuario_convidado_id")
	code: str = Field(alias="codigo_convite")
	status: str
	message: Optional[str] = Field(default=None, alias="mensagem_personalizada")
	created_at: datetime = Field(alias="data_criacao")
	expires_at: datetime = Field(alias="data_expiracao")
	responded_at: Optional[datetime] = Field(default=None, alias="data_resposta")
	group_name: Optional[str] = Field(default=None, alias="grupo_nome")
	inviter_name: Optional[str] = Field(default=None, alias="convidado_por_nome")
	group_deleted_at: Optional[datetime] = Field(default=None, alias="grupo_deleted_at")

	def is_redeemable(self, now: datetime) -> bool:
		return self.status == INVITE_PENDING and now <= self.expires_at


class Event(_Row):
	id: UUID
	group_id: UUID = Field(alias="grupo_id")
	created_by: UUID = Field(alias="criado_por")
	title: str = Field(alias="titulo")
	description: Optional[str] = Field(default=None, alias="descricao")
	location: Optional[str] = Field(default=None, alias="local")
	virtual_link: Optional[str] = Field(default=None, alias="link_virtual")
	starts_at: datetime = Field(alias="data_inicio")
	ends_at: datetime = Field(alias="data_fim")
	type: str = Field(alias="tipo_evento")
	status: str = EVENT_SCHEDULED
	recurrence: Optional[dict[str, Any]] = Field(default=None, alias="recorrencia")
	created_at: datetime = Field(alias="data_criacao")
	updated_at: Optional[datetime] = Field(default=None, alias="data_atualizacao")

	@field_validator("recurrence", mode="before")
	@classmethod
	def decode_recurrence(cls, value: Any) -> Any:
		return _json_value(value)


class EventParticipant(_Row):
	event_id: UUID = Field(alias="evento_id")
	user_id: UUID = Field(alias="usuario_id")
	status: str
	responded_at: Optional[datetime] = Field(default=None, alias="data_resposta")
	name: Optional[str] = Field(default=None, alias="nome")


class Notification(_Row):
	id: UUID
	user_id: UUID = Field(alias="usuario_id")
	title: str = Field(alias="titulo")
	message: str = Field(alias="mensagem")
	type: str = Field(alias="tipo")
	origin_type: Optional[str] = Field(default=None, alias="origem_tipo")
	origin_id: Optional[UUID] = Field(default=None, alias="origem_id")
	is_read: bool = Field(default=False, alias="lida")
	is_important: bool = Field(default=False, alias="importante")
	metadata: dict[str, Any] = Field(default_factory=dict, alias="metadados")
	created_at: datetime = Field(alias="data_criacao")
	read_at: Optional[datetime] = Field(default=None, alias="data_leitura")

	@field_validator("metadata", mode="before")
	@classmethod
	def decode_metadata(cls, value: Any) -> Any:
		return _json_value(value) or {}


class QuietHours(BaseModel):
	enabled: bool = Field(default=False, alias="ativado")
	start: str = Field(default="22:00", alias="inicio")
	end: str = Field(default="07:00", alias="fim")

	model_config = ConfigDict(populate_by_name=True)


def default_enabled_types() -> dict[str, bool]:
	return {kind: True for kind in NOTIFICATION_TYPES}


class NotificationSettings(_Row):
	user_id: UUID = Field(alias="usuario_id")
	email_enabled: bool = Field(default=True, alias="notificacoes_email")
	push_enabled: bool = Field(default=True, alias="notificacoes_push")
	enabled_types: dict[str, bool] = Field(default_factory=default_enabled_types, alias="tipos_ativados")
	quiet_hours: QuietHours = Field(default_factory=QuietHours, alias="horario_silencioso")
	email_frequency: str = Field(default="instantaneo", alias="frequencia_email")

	@field_validator("enabled_types", "quiet_hours", mode="before")
	@classmethod
	def decode_json_columns(cls, value: Any) -> Any:
		return _json_value(value)

	def type_enabled(self, kind: str) -> bool:
		return bool(self.enabled_types.get(kind, False))


class GroupFile(_Row):
	id: UUID
	group_id: UUID = Field(alias="grupo_id")
	uploaded_by: UUID = Field(alias="enviado_por")
	name: str = Field(alias="nome")
	original_name: str = Field(alias="nome_original")
	mime_type: str = Field(alias="tipo_mime")
	size: int = Field(alias="tamanho")
	url: str
	folder: Optional[str] = Field(default=None, alias="pasta")
	tags: list[str] = Field(default_factory=list)
	description: Optional[str] = Field(default=None, alias="descricao")
	is_public: bool = Field(default=False, alias="publico")
	downloads: int = 0
	version: int = Field(default=1, alias="versao")
	parent_id: Optional[UUID] = Field(default=None, alias="arquivo_pai_id")
	created_at: datetime = Field(alias="data_criacao")
	updated_at: Optional[datetime] = Field(default=None, alias="data_atualizacao")
	deleted_at: Optional[datetime] = None

	@property
	def root_id(self) -> UUID:
		return self.parent_id or self.id
