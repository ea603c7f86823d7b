"""Resolve a caller's standing inside a group."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from teamhub.collab.domain import models, policies


@dataclass(slots=True)
class GroupAccess:
	group: models.Group
	membership: Optional[models.GroupMember]
	level: Optional[str]

	@property
	def capabilities(self) -> policies.Capabilities:
		return policies.capabilities_for(self.level)

	@property
	def is_member(self) -> bool:
		return self.level is not None


async def load_group_access(repo, group_id: UUID, user_id: UUID) -> GroupAccess:
	"""Load a live group and the caller's effective level, or raise NotFound."""
	group = policies.require_group(await repo.get_group(group_id))
	membership = await repo.get_member(group_id, user_id)
	level = policies.effective_level(group, membership, user_id)
	return GroupAccess(group=group, membership=membership, level=level)
