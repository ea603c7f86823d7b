"""InviteRepository SQL contracts against a scripted asyncpg stand-in."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import asyncpg
import pytest

from teamhub.collab.domain import repo as repo_module
from teamhub.collab.domain.exceptions import ConflictError


class FakeConnection:
	def __init__(self, pool: "FakePool") -> None:
		self._pool = pool

	def transaction(self):
		pool = self._pool

		@asynccontextmanager
		async def _transaction():
			pool.transactions += 1
			yield

		return _transaction()

	async def execute(self, query: str, *params: object) -> str:
		self._pool.calls.append(("execute", query, params))
		return self._pool.execute_result

	async def fetchrow(self, query: str, *params: object) -> dict[str, Any] | None:
		self._pool.calls.append(("fetchrow", query, params))
		if self._pool.error is not None:
			raise self._pool.error
		return self._pool.row

	async def fetch(self, query: str, *params: object) -> list[dict[str, Any]]:
		self._pool.calls.append(("fetch", query, params))
		return self._pool.rows


class FakePool:
	def __init__(self, *, row=None, rows=None, execute_result="UPDATE 0", error=None) -> None:
		self.error = error
		self.row = row
		self.rows = rows or []
		self.execute_result = execute_result
		self.calls: list[tuple[str, str, tuple]] = []
		self.transactions = 0

	@asynccontextmanager
	async def acquire(self):
		yield FakeConnection(self)


def _use(monkeypatch, pool: FakePool) -> None:
	async def _get_pool():
		return pool

	monkeypatch.setattr(repo_module, "get_pool", _get_pool)


def _invite_row(**overrides) -> dict[str, Any]:
	now = datetime.now(timezone.utc)
	row = {
		"id": uuid4(),
		"grupo_id": uuid4(),
		"convidado_por": uuid4(),
		"email_convidado": "bia@x.com",
		"usuario_convidado_id": None,
		"codigo_convite": "A1B2C3D4E5",
		"status": "pendente",
		"mensagem_personalizada": None,
		"data_criacao": now,
		"data_expiracao": now + timedelta(days=7),
		"data_resposta": None,
	}
	row.update(overrides)
	return row


@pytest.mark.asyncio
async def test_create_invite_expires_stale_then_inserts_conditionally(monkeypatch) -> None:
	pool = FakePool(row=_invite_row())
	_use(monkeypatch, pool)
	now = datetime.now(timezone.utc)

	invite = await repo_module.InviteRepository().create_invite(
		group_id=uuid4(),
		invited_by=uuid4(),
		email="bia@x.com",
		invited_user_id=None,
		code="A1B2C3D4E5",
		message=None,
		expires_at=now + timedelta(days=7),
		now=now,
	)

	assert invite is not None and invite.code == "A1B2C3D4E5"
	assert pool.transactions == 1
	kinds = [call[0] for call in pool.calls]
	assert kinds == ["execute", "fetchrow"]
	assert "status='expirado'" in pool.calls[0][1]
	assert "WHERE NOT EXISTS" in pool.calls[1][1]


@pytest.mark.asyncio
async def test_create_invite_returns_none_when_pending_exists(monkeypatch) -> None:
	_use(monkeypatch, FakePool(row=None))
	now = datetime.now(timezone.utc)

	invite = await repo_module.InviteRepository().create_invite(
		group_id=uuid4(),
		invited_by=uuid4(),
		email="bia@x.com",
		invited_user_id=None,
		code="A1B2C3D4E5",
		message=None,
		expires_at=now + timedelta(days=7),
		now=now,
	)
	assert invite is None


@pytest.mark.asyncio
async def test_lookup_uppercases_code(monkeypatch) -> None:
	pool = FakePool(row=_invite_row())
	_use(monkeypatch, pool)

	await repo_module.InviteRepository().get_invite_by_code(" a1b2c3d4e5 ")
	assert pool.calls[0][2] == ("A1B2C3D4E5",)


@pytest.mark.asyncio
async def test_accept_conflicts_when_update_matches_nothing(monkeypatch) -> None:
	pool = FakePool(row=None)
	_use(monkeypatch, pool)

	class _Groups:
		async def add_member(self, *args, **kwargs):
			raise AssertionError("membership must not be created")

	with pytest.raises(ConflictError):
		await repo_module.InviteRepository().accept_invite(
			uuid4(),
			user_id=uuid4(),
			now=datetime.now(timezone.utc),
			level="membro",
			repository=_Groups(),
		)


@pytest.mark.asyncio
async def test_expire_pending_reports_affected_rows(monkeypatch) -> None:
	_use(monkeypatch, FakePool(execute_result="UPDATE 4"))
	assert await repo_module.InviteRepository().expire_pending_invites(now=datetime.now(timezone.utc)) == 4


@pytest.mark.asyncio
async def test_invite_stats_fill_missing_statuses(monkeypatch) -> None:
	_use(monkeypatch, FakePool(rows=[{"status": "pendente", "total": 2}, {"status": "aceito", "total": 1}]))
	stats = await repo_module.InviteRepository().get_invite_stats(uuid4())
	assert stats == {"pendente": 2, "aceito": 1, "recusado": 0, "expirado": 0, "total": 3}


def _unique_violation(constraint: str) -> asyncpg.UniqueViolationError:
	exc = asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
	exc.constraint_name = constraint
	return exc


async def _create(**overrides):
	now = datetime.now(timezone.utc)
	kwargs = dict(
		group_id=uuid4(),
		invited_by=uuid4(),
		email="bia@x.com",
		invited_user_id=None,
		code="A1B2C3D4E5",
		message=None,
		expires_at=now + timedelta(days=7),
		now=now,
	)
	kwargs.update(overrides)
	return await repo_module.InviteRepository().create_invite(**kwargs)


@pytest.mark.asyncio
async def test_code_collision_is_reported_separately(monkeypatch) -> None:
	_use(monkeypatch, FakePool(error=_unique_violation(repo_module.INVITE_CODE_CONSTRAINT)))

	with pytest.raises(repo_module.InviteCodeTaken):
		await _create()


@pytest.mark.asyncio
async def test_pending_index_race_reads_as_duplicate(monkeypatch) -> None:
	_use(monkeypatch, FakePool(error=_unique_violation("convites_grupo_pendente_uidx")))

	assert await _create() is None


@pytest.mark.asyncio
async def test_user_lookup_by_email_is_case_insensitive(monkeypatch) -> None:
	user_id = uuid4()
	pool = FakePool(row={"id": user_id, "nome": "Bia", "email": "bia@x.com", "status_ativo": False})
	_use(monkeypatch, pool)

	user = await repo_module.UserRepository().get_user_by_email("Bia@X.com")

	assert user is not None and user.id == user_id and user.is_active is False
	kind, query, params = pool.calls[0]
	assert kind == "fetchrow"
	assert "LOWER(email)=LOWER($1)" in query
	assert params == ("Bia@X.com",)
