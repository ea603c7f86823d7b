"""Study-group collaboration: groups, invites, events, notifications and files."""

from __future__ import annotations

from teamhub.collab.api import router

__all__ = ["router"]
