"""In-memory repositories for exercising collaboration services without Postgres."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

import pytest

from teamhub.collab.domain import models
from teamhub.collab.domain.events_service import EventService
from teamhub.collab.domain.exceptions import ConflictError, NotFoundError
from teamhub.collab.domain.files_service import FileService
from teamhub.collab.domain.groups_service import GroupService
from teamhub.collab.domain.invites_service import InviteService
from teamhub.collab.domain.notifications_service import NotificationService
from teamhub.infra.auth import AuthenticatedUser


def _now() -> datetime:
	return datetime.now(timezone.utc)


class FakeUserRepo:
	def __init__(self) -> None:
		self.users: dict[UUID, models.User] = {}

	def add(self, name: str, email: str, *, active: bool = True) -> models.User:
		user = models.User(id=uuid4(), name=name, email=email, is_active=active)
		self.users[user.id] = user
		return user

	async def get_user(self, user_id: UUID):
		return self.users.get(UUID(str(user_id)))

	async def get_user_by_email(self, email: str):
		for user in self.users.values():
			if user.email.lower() == email.lower():
				return user
		return None


class FakeGroupRepo:
	def __init__(self, users: FakeUserRepo) -> None:
		self.users = users
		self.groups: dict[UUID, models.Group] = {}
		self.members: dict[tuple[UUID, UUID], models.GroupMember] = {}

	async def create_group(self, *, name, description, category, privacy, settings, max_members, created_by):
		group = models.Group(
			id=uuid4(),
			name=name,
			description=description,
			category=category,
			privacy=privacy,
			settings=settings,
			max_members=max_members,
			created_by=created_by,
			created_at=_now(),
		)
		self.groups[group.id] = group
		await self.add_member(group.id, created_by, models.LEVEL_ADMIN)
		return group

	async def get_group(self, group_id: UUID):
		return self.groups.get(group_id)

	async def update_group(self, group_id: UUID, payload: dict[str, object]):
		if not payload:
			raise ConflictError("Nenhuma alteração informada")
		group = self.groups[group_id]
		data = group.model_dump(by_alias=True)
		data.update(payload)
		data["data_atualizacao"] = _now()
		self.groups[group_id] = models.Group.model_validate(data)
		return self.groups[group_id]

	async def soft_delete_group(self, group_id: UUID) -> None:
		group = self.groups.get(group_id)
		if group is None or group.deleted_at is not None:
			raise NotFoundError("Grupo não encontrado")
		self.groups[group_id] = group.model_copy(update={"deleted_at": _now()})

	async def list_user_groups(self, user_id: UUID):
		return [
			(self.groups[gid], member.level)
			for (gid, uid), member in self.members.items()
			if uid == user_id and self.groups[gid].deleted_at is None
		]

	async def search_public_groups(self, *, term, limit, offset):
		found = [
			group
			for group in self.groups.values()
			if group.is_public and group.deleted_at is None and (not term or term.lower() in group.name.lower())
		]
		return found[offset : offset + limit]

	async def get_group_stats(self, group_id: UUID):
		levels = [m.level for (gid, _), m in self.members.items() if gid == group_id]
		return {
			"total_membros": len(levels),
			"admins": levels.count(models.LEVEL_ADMIN),
			"moderadores": levels.count(models.LEVEL_MODERATOR),
		}

	async def get_member(self, group_id: UUID, user_id: UUID):
		return self.members.get((group_id, user_id))

	async def list_members(self, group_id: UUID):
		return [m for (gid, _), m in self.members.items() if gid == group_id]

	async def is_member_email(self, group_id: UUID, email: str) -> bool:
		for (gid, uid) in self.members:
			user = self.users.users.get(uid)
			if gid == group_id and user is not None and user.email.lower() == email.lower():
				return True
		return False

	async def count_members(self, group_id: UUID, *, level: Optional[str] = None) -> int:
		return sum(
			1 for (gid, _), m in self.members.items() if gid == group_id and (level is None or m.level == level)
		)

	async def add_member(self, group_id: UUID, user_id: UUID, level: str, *, conn=None):
		group_id = UUID(str(group_id))
		key = (group_id, user_id)
		if key in self.members:
			raise ConflictError("Usuário já é membro do grupo")
		member = models.GroupMember(group_id=group_id, user_id=user_id, level=level, joined_at=_now())
		self.members[key] = member
		return member

	async def update_member_level(self, group_id: UUID, user_id: UUID, level: str):
		member = self.members.get((group_id, user_id))
		if member is None:
			raise NotFoundError("Membro não encontrado")
		self.members[(group_id, user_id)] = member.model_copy(update={"level": level})
		return self.members[(group_id, user_id)]

	async def remove_member(self, group_id: UUID, user_id: UUID) -> bool:
		return self.members.pop((group_id, user_id), None) is not None


class FakeInviteRepo:
	def __init__(self, groups: FakeGroupRepo) -> None:
		self.groups = groups
		self.invites: dict[UUID, models.GroupInvite] = {}

	def _decorate(self, invite: models.GroupInvite) -> models.GroupInvite:
		group = self.groups.groups.get(invite.group_id)
		return invite.model_copy(
			update={
				"group_name": group.name if group else None,
				"group_deleted_at": group.deleted_at if group else None,
			}
		)

	async def create_invite(self, *, group_id, invited_by, email, invited_user_id, code, message, expires_at, now):
		for invite_id, invite in list(self.invites.items()):
			if invite.group_id == group_id and invite.email == email and invite.status == models.INVITE_PENDING:
				if invite.expires_at < now:
					self.invites[invite_id] = invite.model_copy(update={"status": models.INVITE_EXPIRED})
				else:
					return None
		invite = models.GroupInvite(
			id=uuid4(),
			group_id=group_id,
			invited_by=invited_by,
			email=email,
			invited_user_id=invited_user_id,
			code=code,
			status=models.INVITE_PENDING,
			message=message,
			created_at=now,
			expires_at=expires_at,
		)
		self.invites[invite.id] = invite
		return self._decorate(invite)

	async def get_invite_by_code(self, code: str):
		wanted = code.strip().upper()
		for invite in self.invites.values():
			if invite.code == wanted:
				return self._decorate(invite)
		return None

	async def list_group_invites(self, group_id: UUID, *, status=None):
		return [
			self._decorate(invite)
			for invite in self.invites.values()
			if invite.group_id == group_id and (status is None or invite.status == status)
		]

	async def list_pending_for_email(self, email: str, *, now: datetime):
		decorated = [self._decorate(invite) for invite in self.invites.values()]
		return [
			invite
			for invite in decorated
			if invite.email == email.lower() and invite.is_redeemable(now) and invite.group_deleted_at is None
		]

	async def accept_invite(self, invite_id, *, user_id, now, level, repository):
		invite = self.invites[invite_id]
		if invite.status != models.INVITE_PENDING or invite.expires_at < now:
			raise ConflictError("Convite já foi respondido")
		member = await repository.add_member(invite.group_id, user_id, level)
		accepted = invite.model_copy(
			update={"status": models.INVITE_ACCEPTED, "responded_at": now, "invited_user_id": user_id}
		)
		self.invites[invite_id] = accepted
		return accepted, member

	async def decline_invite(self, invite_id, *, user_id, now):
		invite = self.invites[invite_id]
		if invite.status != models.INVITE_PENDING or invite.expires_at < now:
			return None
		declined = invite.model_copy(
			update={"status": models.INVITE_DECLINED, "responded_at": now, "invited_user_id": user_id}
		)
		self.invites[invite_id] = declined
		return declined

	async def delete_pending_invite(self, invite_id) -> bool:
		invite = self.invites.get(invite_id)
		if invite is None or invite.status != models.INVITE_PENDING:
			return False
		del self.invites[invite_id]
		return True

	async def expire_pending_invites(self, *, now: datetime) -> int:
		count = 0
		for invite_id, invite in list(self.invites.items()):
			if invite.status == models.INVITE_PENDING and invite.expires_at < now:
				self.invites[invite_id] = invite.model_copy(update={"status": models.INVITE_EXPIRED})
				count += 1
		return count

	async def get_invite_stats(self, group_id: UUID):
		stats = {status: 0 for status in models.INVITE_STATUSES}
		for invite in self.invites.values():
			if invite.group_id == group_id:
				stats[invite.status] += 1
		stats["total"] = sum(stats.values())
		return stats


class FakeNotificationRepo:
	def __init__(self) -> None:
		self.items: list[models.Notification] = []
		self.settings: dict[UUID, models.NotificationSettings] = {}

	async def create_notification(self, *, user_id, title, message, type, origin_type, origin_id, important, metadata):
		notification = models.Notification(
			id=uuid4(),
			user_id=user_id,
			title=title,
			message=message,
			type=type,
			origin_type=origin_type,
			origin_id=origin_id,
			is_important=important,
			metadata=metadata,
			created_at=_now(),
		)
		self.items.append(notification)
		return notification

	def for_user(self, user_id: UUID) -> list[models.Notification]:
		return [item for item in self.items if item.user_id == user_id]

	async def list_notifications(self, user_id, *, is_read, type, limit, offset):
		matches = [
			item
			for item in self.for_user(user_id)
			if (is_read is None or item.is_read == is_read) and (type is None or item.type == type)
		]
		return matches[offset : offset + limit], len(matches)

	async def count_unread(self, user_id) -> int:
		return sum(1 for item in self.for_user(user_id) if not item.is_read)

	async def mark_read(self, notification_id, user_id):
		for index, item in enumerate(self.items):
			if item.id == notification_id and item.user_id == user_id:
				self.items[index] = item.model_copy(update={"is_read": True, "read_at": _now()})
				return self.items[index]
		return None

	async def mark_all_read(self, user_id) -> int:
		count = 0
		for index, item in enumerate(self.items):
			if item.user_id == user_id and not item.is_read:
				self.items[index] = item.model_copy(update={"is_read": True, "read_at": _now()})
				count += 1
		return count

	async def delete_notification(self, notification_id, user_id) -> bool:
		before = len(self.items)
		self.items = [i for i in self.items if not (i.id == notification_id and i.user_id == user_id)]
		return len(self.items) < before

	async def get_notification_stats(self, user_id):
		mine = self.for_user(user_id)
		return {"total": len(mine), "nao_lidas": sum(1 for i in mine if not i.is_read), "por_tipo": {}}

	async def delete_read_before(self, *, cutoff: datetime) -> int:
		before = len(self.items)
		self.items = [i for i in self.items if not (i.is_read and i.created_at < cutoff)]
		return before - len(self.items)

	async def get_settings(self, user_id):
		return self.settings.get(user_id)

	async def create_default_settings(self, user_id):
		self.settings.setdefault(user_id, models.NotificationSettings(user_id=user_id))
		return self.settings[user_id]

	async def update_settings(self, user_id, payload):
		data = self.settings[user_id].model_dump(by_alias=True)
		data.update(payload)
		self.settings[user_id] = models.NotificationSettings.model_validate(data)
		return self.settings[user_id]


class FakeEventRepo:
	def __init__(self, users: FakeUserRepo) -> None:
		self.users = users
		self.events: dict[UUID, models.Event] = {}
		self.participants: dict[tuple[UUID, UUID], models.EventParticipant] = {}

	async def create_event(self, *, fields, created_by):
		data = {key: value for key, value in fields.items()}
		event = models.Event.model_validate(
			{**data, "id": uuid4(), "criado_por": created_by, "data_criacao": _now()}
		)
		self.events[event.id] = event
		await self.upsert_participant(event.id, created_by, models.PARTICIPANT_CONFIRMED)
		return event

	async def get_event(self, event_id):
		return self.events.get(event_id)

	async def update_event(self, event_id, payload):
		event = self.events.get(event_id)
		if event is None:
			return None
		data = event.model_dump(by_alias=True)
		data.update(payload)
		self.events[event_id] = models.Event.model_validate(data)
		return self.events[event_id]

	async def delete_event(self, event_id) -> bool:
		self.participants = {k: v for k, v in self.participants.items() if k[0] != event_id}
		return self.events.pop(event_id, None) is not None

	async def list_group_events(self, group_id, *, starts_after=None, ends_before=None, type=None, status=None):
		return [
			event
			for event in self.events.values()
			if event.group_id == group_id
			and (starts_after is None or event.starts_at >= starts_after)
			and (ends_before is None or event.ends_at <= ends_before)
			and (type is None or event.type == type)
			and (status is None or event.status == status)
		]

	async def list_user_events(self, user_id, *, since, limit):
		ids = [eid for (eid, uid), p in self.participants.items() if uid == user_id and p.status != "recusado"]
		return [self.events[eid] for eid in ids if self.events[eid].ends_at >= since][:limit]

	async def list_participants(self, event_id):
		return [p for (eid, _), p in self.participants.items() if eid == event_id]

	async def get_participant(self, event_id, user_id):
		return self.participants.get((event_id, user_id))

	async def upsert_participant(self, event_id, user_id, status):
		participant = models.EventParticipant(
			event_id=event_id,
			user_id=user_id,
			status=status,
			responded_at=None if status == models.PARTICIPANT_PENDING else _now(),
		)
		self.participants[(event_id, user_id)] = participant
		return participant


class FakeFileRepo:
	def __init__(self) -> None:
		self.files: dict[UUID, models.GroupFile] = {}

	def _build(self, fields: dict[str, object]) -> models.GroupFile:
		file = models.GroupFile.model_validate({**fields, "id": uuid4(), "data_criacao": _now()})
		self.files[file.id] = file
		return file

	async def create_file(self, *, fields):
		return self._build(fields)

	async def get_file(self, file_id):
		file = self.files.get(file_id)
		return file if file and file.deleted_at is None else None

	async def update_file(self, file_id, payload):
		file = await self.get_file(file_id)
		if file is None:
			return None
		data = file.model_dump(by_alias=True)
		data.update(payload)
		self.files[file_id] = models.GroupFile.model_validate(data)
		return self.files[file_id]

	async def soft_delete_file(self, file_id) -> bool:
		file = await self.get_file(file_id)
		if file is None:
			return False
		self.files[file_id] = file.model_copy(update={"deleted_at": _now()})
		return True

	async def list_group_files(self, group_id, *, folder=None, mime_prefix=None, term=None, limit=50, offset=0):
		found = [
			f
			for f in self.files.values()
			if f.group_id == group_id
			and f.deleted_at is None
			and (folder is None or f.folder == folder)
			and (mime_prefix is None or f.mime_type.startswith(mime_prefix))
			and (term is None or term.lower() in f.name.lower() or term in f.tags)
		]
		return found[offset : offset + limit]

	async def list_folders(self, group_id):
		folders: dict[str, dict[str, object]] = {}
		for f in await self.list_group_files(group_id, limit=1000):
			if f.folder:
				entry = folders.setdefault(f.folder, {"pasta": f.folder, "arquivos": 0, "tamanho_total": 0})
				entry["arquivos"] += 1
				entry["tamanho_total"] += f.size
		return list(folders.values())

	async def get_file_stats(self, group_id):
		files = await self.list_group_files(group_id, limit=1000)
		return {"total": len(files), "tamanho_total": sum(f.size for f in files), "downloads": 0, "por_tipo": {}}

	async def list_versions(self, root_id):
		chain = [f for f in self.files.values() if (f.id == root_id or f.parent_id == root_id) and f.deleted_at is None]
		return sorted(chain, key=lambda f: f.version, reverse=True)

	async def create_version(self, root_id, *, fields):
		if root_id not in self.files:
			raise NotFoundError("Arquivo não encontrado")
		current = max(f.version for f in self.files.values() if f.id == root_id or f.parent_id == root_id)
		return self._build({**fields, "versao": current + 1, "arquivo_pai_id": root_id})

	async def increment_downloads(self, file_id):
		file = await self.get_file(file_id)
		if file is None:
			return None
		self.files[file_id] = file.model_copy(update={"downloads": file.downloads + 1})
		return self.files[file_id]

	async def get_recent_files(self, group_id, *, limit):
		return await self.list_group_files(group_id, limit=limit)


class Store:
	"""One shared in-memory world with services wired to it."""

	def __init__(self) -> None:
		self.users = FakeUserRepo()
		self.groups = FakeGroupRepo(self.users)
		self.invites = FakeInviteRepo(self.groups)
		self.notifications = FakeNotificationRepo()
		self.events = FakeEventRepo(self.users)
		self.files = FakeFileRepo()
		self.notification_service = NotificationService(repository=self.notifications, users=self.users)
		self.group_service = GroupService(repository=self.groups, users=self.users)
		self.invite_service = InviteService(
			repository=self.invites,
			groups=self.groups,
			users=self.users,
			notifications=self.notification_service,
		)
		self.event_service = EventService(
			repository=self.events,
			groups=self.groups,
			notifications=self.notification_service,
		)
		self.file_service = FileService(repository=self.files, groups=self.groups)

	def auth(self, user: models.User) -> AuthenticatedUser:
		return AuthenticatedUser(id=str(user.id), email=user.email, name=user.name)


@pytest.fixture()
def store() -> Store:
	return Store()
