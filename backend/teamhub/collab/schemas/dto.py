"""Pydantic schemas for the collaboration API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

T = TypeVar("T")

_LEVEL_PATTERN = "^(admin|moderador|membro|visitante)$"
_HOUR_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ApiResponse(BaseModel, Generic[T]):
	"""Success envelope shared by every endpoint."""

	sucesso: bool = True
	mensagem: Optional[str] = None
	dados: Optional[T] = None


class ErrorResponse(BaseModel):
	sucesso: bool = False
	erro: str
	tipo: str
	erros: List[str] = Field(default_factory=list)
	request_id: Optional[str] = None


# --- Groups -----------------------------------------------------------------


class GroupCreateRequest(BaseModel):
	nome: str
	descricao: Optional[str] = None
	tipo_grupo: Optional[str] = None
	privacidade: str = Field(default="publico", pattern="^(publico|privado)$")
	configuracoes: Dict[str, Any] = Field(default_factory=dict)
	max_membros: Optional[int] = None


class GroupUpdateRequest(BaseModel):
	nome: Optional[str] = None
	descricao: Optional[str] = None
	tipo_grupo: Optional[str] = None
	privacidade: Optional[str] = Field(default=None, pattern="^(publico|privado)$")
	configuracoes: Optional[Dict[str, Any]] = None
	max_membros: Optional[int] = None


class GroupResponse(BaseModel):
	id: UUID
	nome: str
	descricao: Optional[str] = None
	tipo_grupo: Optional[str] = None
	privacidade: str
	configuracoes: Dict[str, Any]
	max_membros: Optional[int] = None
	criado_por: UUID
	data_criacao: datetime
	data_atualizacao: Optional[datetime] = None
	meu_nivel: Optional[str] = None


class CapabilitiesResponse(BaseModel):
	pode_convidar: bool
	pode_remover: bool
	pode_configurar: bool


class MemberResponse(BaseModel):
	grupo_id: UUID
	usuario_id: UUID
	nivel_permissao: str
	data_entrada: datetime
	nome: Optional[str] = None
	email: Optional[str] = None
	permissoes: CapabilitiesResponse


class MemberAddRequest(BaseModel):
	usuario_id: UUID
	nivel_permissao: str = Field(default="membro", pattern=_LEVEL_PATTERN)


class MemberLevelRequest(BaseModel):
	nivel_permissao: str = Field(..., pattern=_LEVEL_PATTERN)


# --- Invites ----------------------------------------------------------------


class InviteCreateRequest(BaseModel):
	grupo_id: UUID
	email: str
	mensagem: Optional[str] = None
	data_expiracao: Optional[datetime] = None


class InviteResponse(BaseModel):
	id: UUID
	grupo_id: UUID
	convidado_por: UUID
	email_convidado: str
	usuario_convidado_id: Optional[UUID] = None
	codigo_convite: str
	status: str
	mensagem_personalizada: Optional[str] = None
	data_criacao: datetime
	data_expiracao: datetime
	data_resposta: Optional[datetime] = None
	grupo_nome: Optional[str] = None
	convidado_por_nome: Optional[str] = None


class InviteAcceptResponse(BaseModel):
	convite: InviteResponse
	membro: MemberResponse


class InviteStatsResponse(BaseModel):
	total: int
	pendente: int
	aceito: int
	recusado: int
	expirado: int


# --- Events -----------------------------------------------------------------


class EventCreateRequest(BaseModel):
	titulo: str
	descricao: Optional[str] = None
	local: Optional[str] = None
	link_virtual: Optional[str] = None
	data_inicio: datetime
	data_fim: datetime
	tipo_evento: str = Field(default="reuniao", pattern="^(reuniao|estudo|prova|apresentacao|aula|deadline|outro)$")
	recorrencia: Optional[Dict[str, Any]] = None


class EventUpdateRequest(BaseModel):
	titulo: Optional[str] = None
	descricao: Optional[str] = None
	local: Optional[str] = None
	link_virtual: Optional[str] = None
	data_inicio: Optional[datetime] = None
	data_fim: Optional[datetime] = None
	tipo_evento: Optional[str] = Field(default=None, pattern="^(reuniao|estudo|prova|apresentacao|aula|deadline|outro)$")
	status: Optional[str] = Field(default=None, pattern="^(agendado|em_andamento|concluido|cancelado)$")
	recorrencia: Optional[Dict[str, Any]] = None


class ParticipantResponse(BaseModel):
	evento_id: UUID
	usuario_id: UUID
	status: str
	data_resposta: Optional[datetime] = None
	nome: Optional[str] = None


class EventResponse(BaseModel):
	id: UUID
	grupo_id: UUID
	criado_por: UUID
	titulo: str
	descricao: Optional[str] = None
	local: Optional[str] = None
	link_virtual: Optional[str] = None
	data_inicio: datetime
	data_fim: datetime
	tipo_evento: str
	status: str
	recorrencia: Optional[Dict[str, Any]] = None
	data_criacao: datetime
	data_atualizacao: Optional[datetime] = None
	participantes: List[ParticipantResponse] = Field(default_factory=list)


class ParticipantAddRequest(BaseModel):
	usuario_id: UUID


class ParticipationRequest(BaseModel):
	status: str = Field(..., pattern="^(confirmado|recusado)$")


# --- Notifications ----------------------------------------------------------


class NotificationCreateRequest(BaseModel):
	usuario_id: UUID
	titulo: str
	mensagem: str
	tipo: str = Field(..., pattern="^(mensagem|convite|tarefa|evento|sistema|deadline|mencao)$")
	origem_tipo: Optional[str] = Field(default=None, pattern="^(grupo|tarefa|mensagem|sistema|evento)$")
	origem_id: Optional[UUID] = None
	importante: bool = False
	metadados: Dict[str, Any] = Field(default_factory=dict)


class NotificationResponse(BaseModel):
	id: UUID
	usuario_id: UUID
	titulo: str
	mensagem: str
	tipo: str
	origem_tipo: Optional[str] = None
	origem_id: Optional[UUID] = None
	lida: bool
	importante: bool
	metadados: Dict[str, Any] = Field(default_factory=dict)
	data_criacao: datetime
	data_leitura: Optional[datetime] = None


class NotificationListResponse(BaseModel):
	itens: List[NotificationResponse]
	total: int
	nao_lidas: int
	limite: int
	offset: int


class UnreadCountResponse(BaseModel):
	nao_lidas: int


class QuietHoursPayload(BaseModel):
	ativado: bool = False
	inicio: str = Field(default="22:00", pattern=_HOUR_PATTERN)
	fim: str = Field(default="07:00", pattern=_HOUR_PATTERN)


class NotificationSettingsResponse(BaseModel):
	notificacoes_email: bool
	notificacoes_push: bool
	tipos_ativados: Dict[str, bool]
	horario_silencioso: QuietHoursPayload
	frequencia_email: str


class NotificationSettingsUpdateRequest(BaseModel):
	notificacoes_email: Optional[bool] = None
	notificacoes_push: Optional[bool] = None
	tipos_ativados: Optional[Dict[str, bool]] = None
	horario_silencioso: Optional[QuietHoursPayload] = None
	frequencia_email: Optional[str] = Field(default=None, pattern="^(instantaneo|diario|semanal|nunca)$")


class CountResponse(BaseModel):
	total: int


# --- Files ------------------------------------------------------------------


class FileCreateRequest(BaseModel):
	nome: str
	nome_original: Optional[str] = None
	tipo_mime: str
	tamanho: int
	url: Optional[str] = None
	chave_armazenamento: Optional[str] = None
	pasta: Optional[str] = None
	tags: List[str] = Field(default_factory=list)
	descricao: Optional[str] = None
	publico: Optional[bool] = None


class FileUpdateRequest(BaseModel):
	nome: Optional[str] = None
	descricao: Optional[str] = None
	pasta: Optional[str] = None
	tags: Optional[List[str]] = None
	publico: Optional[bool] = None


class FileVersionRequest(BaseModel):
	tamanho: Optional[int] = None
	url: Optional[str] = None
	chave_armazenamento: Optional[str] = None
	tipo_mime: Optional[str] = None
	nome_original: Optional[str] = None


class FileResponse(BaseModel):
	id: UUID
	grupo_id: UUID
	enviado_por: UUID
	nome: str
	nome_original: str
	tipo_mime: str
	tamanho: int
	url: str
	pasta: Optional[str] = None
	tags: List[str] = Field(default_factory=list)
	descricao: Optional[str] = None
	publico: bool
	downloads: int
	versao: int
	arquivo_pai_id: Optional[UUID] = None
	data_criacao: datetime
	data_atualizacao: Optional[datetime] = None


class FileDownloadResponse(BaseModel):
	url: str
	downloads: int


class FolderResponse(BaseModel):
	pasta: str
	arquivos: int
	tamanho_total: int
