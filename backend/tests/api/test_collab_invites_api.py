from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from teamhub.collab.api import convites
from teamhub.collab.domain.exceptions import ConflictError, ExpiredError, NotFoundError, ValidationFailedError
from teamhub.collab.schemas import dto

USER_ID = "6f1d7c1e-2f59-4a52-9a3e-1b7c3d0e9a11"
HEADERS = {"X-User-Id": USER_ID, "X-User-Email": "ana@x.com", "X-Request-Id": "req-123"}


def _invite(**overrides) -> dto.InviteResponse:
	now = datetime.now(timezone.utc)
	payload = {
		"id": uuid4(),
		"grupo_id": uuid4(),
		"convidado_por": uuid4(),
		"email_convidado": "bia@x.com",
		"codigo_convite": "A1B2C3D4E5",
		"status": "pendente",
		"data_criacao": now,
		"data_expiracao": now + timedelta(days=7),
	}
	payload.update(overrides)
	return dto.InviteResponse(**payload)


class _StubInvites:
	def __init__(self, **results):
		self.results = results
		self.calls = []

	def _answer(self, name, *args, **kwargs):
		self.calls.append((name, args, kwargs))
		result = self.results.get(name)
		if isinstance(result, Exception):
			raise result
		return result

	async def create_invite(self, user, payload):
		return self._answer("create_invite", user, payload)

	async def my_invites(self, user):
		return self._answer("my_invites", user)

	async def validate_code(self, code):
		return self._answer("validate_code", code)

	async def accept(self, user, code):
		return self._answer("accept", user, code)

	async def decline(self, user, code):
		return self._answer("decline", user, code)

	async def cancel(self, user, code):
		return self._answer("cancel", user, code)

	async def list_group_invites(self, user, group_id, *, status=None):
		return self._answer("list_group_invites", user, group_id, status=status)

	async def group_stats(self, user, group_id):
		return self._answer("group_stats", user, group_id)


@pytest.mark.asyncio
async def test_create_invite_wraps_result(monkeypatch, api_client):
	invite = _invite()
	stub = _StubInvites(create_invite=invite)
	monkeypatch.setattr(convites, "_service", stub)

	response = await api_client.post(
		"/convites",
		json={"grupo_id": str(invite.grupo_id), "email": "Bia@X.com"},
		headers=HEADERS,
	)

	assert response.status_code == 201
	body = response.json()
	assert body["sucesso"] is True
	assert body["mensagem"] == "Convite enviado com sucesso"
	assert body["dados"]["codigo_convite"] == "A1B2C3D4E5"
	user = stub.calls[0][1][0]
	assert user.id == USER_ID
	assert user.email == "ana@x.com"


@pytest.mark.asyncio
async def test_duplicate_invite_is_conflict_envelope(monkeypatch, api_client):
	stub = _StubInvites(create_invite=ConflictError("Já existe um convite pendente para este email"))
	monkeypatch.setattr(convites, "_service", stub)

	response = await api_client.post(
		"/convites",
		json={"grupo_id": str(uuid4()), "email": "bia@x.com"},
		headers=HEADERS,
	)

	assert response.status_code == 409
	assert response.json() == {
		"sucesso": False,
		"erro": "Já existe um convite pendente para este email",
		"tipo": "conflict",
		"erros": ["Já existe um convite pendente para este email"],
		"request_id": "req-123",
	}


@pytest.mark.asyncio
async def test_expired_and_unknown_codes_render_identically(monkeypatch, api_client):
	monkeypatch.setattr(convites, "_service", _StubInvites(validate_code=ExpiredError("Convite não encontrado ou expirado")))
	expired = await api_client.get("/convites/validar/OLDCODE", headers=HEADERS)

	monkeypatch.setattr(convites, "_service", _StubInvites(validate_code=NotFoundError("Convite não encontrado ou expirado")))
	unknown = await api_client.get("/convites/validar/NOPE", headers=HEADERS)

	assert expired.status_code == unknown.status_code == 404
	assert expired.json() == unknown.json()
	assert expired.json()["tipo"] == "not_found"


@pytest.mark.asyncio
async def test_literal_paths_are_not_captured_as_group_id(monkeypatch, api_client):
	stub = _StubInvites(my_invites=[_invite()])
	monkeypatch.setattr(convites, "_service", stub)

	response = await api_client.get("/convites/meus", headers=HEADERS)

	assert response.status_code == 200
	assert [call[0] for call in stub.calls] == ["my_invites"]
	assert len(response.json()["dados"]) == 1


@pytest.mark.asyncio
async def test_group_invites_filter_by_status(monkeypatch, api_client):
	stub = _StubInvites(list_group_invites=[])
	monkeypatch.setattr(convites, "_service", stub)
	group_id = uuid4()

	response = await api_client.get(f"/convites/{group_id}?status=pendente", headers=HEADERS)

	assert response.status_code == 200
	name, args, kwargs = stub.calls[0]
	assert args[1] == group_id
	assert kwargs == {"status": "pendente"}


@pytest.mark.asyncio
async def test_accept_conflict_for_existing_member(monkeypatch, api_client):
	monkeypatch.setattr(convites, "_service", _StubInvites(accept=ConflictError("Usuário já é membro do grupo")))

	response = await api_client.post("/convites/aceitar/A1B2C3D4E5", headers=HEADERS)

	assert response.status_code == 409
	assert response.json()["erro"] == "Usuário já é membro do grupo"


@pytest.mark.asyncio
async def test_validation_failures_list_every_message(monkeypatch, api_client):
	errors = ["Email inválido", "Mensagem deve ter no máximo 500 caracteres"]
	monkeypatch.setattr(convites, "_service", _StubInvites(create_invite=ValidationFailedError(errors)))

	response = await api_client.post(
		"/convites",
		json={"grupo_id": str(uuid4()), "email": "nope"},
		headers=HEADERS,
	)

	assert response.status_code == 400
	body = response.json()
	assert body["tipo"] == "validation_failed"
	assert body["erros"] == errors


@pytest.mark.asyncio
async def test_cancel_returns_empty_envelope(monkeypatch, api_client):
	monkeypatch.setattr(convites, "_service", _StubInvites(cancel=None))

	response = await api_client.delete("/convites/A1B2C3D4E5", headers=HEADERS)

	assert response.status_code == 200
	assert response.json()["mensagem"] == "Convite cancelado"
