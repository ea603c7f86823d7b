from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from teamhub.collab.domain import models, notifications_service
from teamhub.collab.domain.events_service import can_transition
from teamhub.collab.domain.exceptions import ConflictError, ForbiddenError, ValidationFailedError
from teamhub.collab.schemas import dto


def _when(hours: float) -> datetime:
	return datetime.now(timezone.utc) + timedelta(hours=hours)


async def _group_with_members(store):
	admin = store.users.add("Ana", "ana@x.com")
	member = store.users.add("Bia", "bia@x.com")
	group = await store.group_service.create_group(store.auth(admin), dto.GroupCreateRequest(nome="Química"))
	await store.groups.add_member(group.id, member.id, models.LEVEL_MEMBER)
	return admin, member, group


async def _event(store, user, group, **overrides):
	data = dict(titulo="Revisão P1", data_inicio=_when(24), data_fim=_when(26))
	data.update(overrides)
	return await store.event_service.create_event(store.auth(user), group.id, dto.EventCreateRequest(**data))


@pytest.mark.parametrize(
	"current, target, allowed",
	[
		("agendado", "em_andamento", True),
		("agendado", "cancelado", True),
		("agendado", "concluido", False),
		("em_andamento", "concluido", True),
		("em_andamento", "agendado", False),
		("concluido", "agendado", False),
		("cancelado", "em_andamento", False),
	],
)
def test_status_transitions(current, target, allowed):
	assert can_transition(current, target) is allowed


@pytest.mark.asyncio
async def test_creator_is_confirmed_and_members_notified(store, monkeypatch):
	monkeypatch.setattr(notifications_service, "_current_hour", lambda: 12)
	admin, member, group = await _group_with_members(store)

	event = await _event(store, member, group, link_virtual="https://meet.example.com/x")

	assert event.status == models.EVENT_SCHEDULED
	assert [(p.usuario_id, p.status) for p in event.participantes] == [(member.id, models.PARTICIPANT_CONFIRMED)]
	notes = store.notifications.for_user(admin.id)
	assert [n.type for n in notes] == ["evento"]
	assert notes[0].origin_id == event.id
	assert store.notifications.for_user(member.id) == []


@pytest.mark.asyncio
async def test_create_rejects_past_start_and_inverted_range(store):
	admin, _, group = await _group_with_members(store)

	with pytest.raises(ValidationFailedError) as excinfo:
		await _event(store, admin, group, data_inicio=_when(-2), data_fim=_when(-3), link_virtual="ftp://x")
	assert len(excinfo.value.errors) == 3


@pytest.mark.asyncio
async def test_non_member_cannot_create(store):
	_, _, group = await _group_with_members(store)
	outsider = store.users.add("Caio", "caio@x.com")
	with pytest.raises(ForbiddenError):
		await _event(store, outsider, group)


@pytest.mark.asyncio
async def test_only_creator_or_admin_updates(store):
	admin, member, group = await _group_with_members(store)
	event = await _event(store, admin, group)

	with pytest.raises(ForbiddenError):
		await store.event_service.update_event(store.auth(member), event.id, dto.EventUpdateRequest(titulo="Outro"))

	updated = await store.event_service.update_event(
		store.auth(admin), event.id, dto.EventUpdateRequest(titulo="Revisão final", status="em_andamento")
	)
	assert updated.titulo == "Revisão final"
	assert updated.status == "em_andamento"


@pytest.mark.asyncio
async def test_update_validates_merged_range(store):
	admin, _, group = await _group_with_members(store)
	event = await _event(store, admin, group)

	with pytest.raises(ValidationFailedError):
		await store.event_service.update_event(
			store.auth(admin), event.id, dto.EventUpdateRequest(data_fim=event.data_inicio - timedelta(minutes=1))
		)


@pytest.mark.asyncio
async def test_invalid_transition_is_conflict(store):
	admin, _, group = await _group_with_members(store)
	event = await _event(store, admin, group)
	with pytest.raises(ConflictError):
		await store.event_service.update_event(store.auth(admin), event.id, dto.EventUpdateRequest(status="concluido"))


@pytest.mark.asyncio
async def test_terminal_event_rejects_updates_and_responses(store):
	admin, member, group = await _group_with_members(store)
	event = await _event(store, admin, group)
	await store.event_service.update_event(store.auth(admin), event.id, dto.EventUpdateRequest(status="cancelado"))

	with pytest.raises(ConflictError):
		await store.event_service.update_event(store.auth(admin), event.id, dto.EventUpdateRequest(titulo="Volta"))
	with pytest.raises(ConflictError):
		await store.event_service.respond(store.auth(member), event.id, dto.ParticipationRequest(status="confirmado"))


@pytest.mark.asyncio
async def test_participants_must_be_group_members(store):
	admin, member, group = await _group_with_members(store)
	outsider = store.users.add("Caio", "caio@x.com")
	event = await _event(store, admin, group)

	with pytest.raises(ForbiddenError):
		await store.event_service.add_participant(
			store.auth(admin), event.id, dto.ParticipantAddRequest(usuario_id=outsider.id)
		)

	added = await store.event_service.add_participant(
		store.auth(admin), event.id, dto.ParticipantAddRequest(usuario_id=member.id)
	)
	assert added.status == models.PARTICIPANT_PENDING

	answered = await store.event_service.respond(
		store.auth(member), event.id, dto.ParticipationRequest(status="recusado")
	)
	assert answered.status == models.PARTICIPANT_DECLINED
	assert answered.data_resposta is not None

	again = await store.event_service.add_participant(
		store.auth(admin), event.id, dto.ParticipantAddRequest(usuario_id=member.id)
	)
	assert again.status == models.PARTICIPANT_DECLINED


@pytest.mark.asyncio
async def test_my_events_lists_upcoming_confirmed(store):
	admin, member, group = await _group_with_members(store)
	event = await _event(store, admin, group)

	mine = await store.event_service.my_events(store.auth(admin))
	assert [e.id for e in mine] == [event.id]
	assert await store.event_service.my_events(store.auth(member)) == []


@pytest.mark.asyncio
async def test_inactive_member_does_not_block_event_or_other_notifications(store, monkeypatch):
	monkeypatch.setattr(notifications_service, "_current_hour", lambda: 12)
	admin, member, group = await _group_with_members(store)
	dormant = store.users.add("Davi", "davi@x.com", active=False)
	await store.groups.add_member(group.id, dormant.id, models.LEVEL_MEMBER)
	late = store.users.add("Eli", "eli@x.com")
	await store.groups.add_member(group.id, late.id, models.LEVEL_MEMBER)

	event = await _event(store, admin, group)

	assert event.id in store.events.events
	assert store.notifications.for_user(dormant.id) == []
	assert [n.type for n in store.notifications.for_user(member.id)] == ["evento"]
	assert [n.type for n in store.notifications.for_user(late.id)] == ["evento"]
