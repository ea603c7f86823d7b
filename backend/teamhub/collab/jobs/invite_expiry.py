"""Background job flipping overdue pending invites to expired."""

from __future__ import annotations

from datetime import datetime, timezone

from teamhub.collab.domain.invites_service import InviteService
from teamhub.obs import logging as obs_logging
from teamhub.obs import metrics as obs_metrics

_JOB_NAME = "collab-invite-expiry"

logger = obs_logging.get_logger("teamhub.jobs")


class InviteExpirySweep:
	"""Marks pending invites past their expiration as ``expirado``."""

	def __init__(self, *, service: InviteService | None = None) -> None:
		self.service = service or InviteService()

	async def run_once(self) -> int:
		started = datetime.now(timezone.utc)
		try:
			expired = await self.service.expire_stale(now=started)
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="success").inc()
			logger.info("invite_expiry_sweep", extra={"expired": expired})
			return expired
		except Exception:
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="error").inc()
			raise
		finally:
			duration = (datetime.now(timezone.utc) - started).total_seconds()
			obs_metrics.BACKGROUND_DURATION.labels(name=_JOB_NAME).observe(duration)


__all__ = ["InviteExpirySweep"]
