"""Background job deleting read notifications past the retention window."""

from __future__ import annotations

from datetime import datetime, timezone

from teamhub.collab.domain.notifications_service import NotificationService
from teamhub.obs import logging as obs_logging
from teamhub.obs import metrics as obs_metrics

_JOB_NAME = "collab-notification-cleanup"

logger = obs_logging.get_logger("teamhub.jobs")


class NotificationCleanup:
	def __init__(self, *, service: NotificationService | None = None) -> None:
		self.service = service or NotificationService()

	async def run_once(self) -> int:
		started = datetime.now(timezone.utc)
		try:
			deleted = await self.service.cleanup_read(now=started)
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="success").inc()
			logger.info("notification_cleanup", extra={"deleted": deleted})
			return deleted
		except Exception:
			obs_metrics.BACKGROUND_RUNS.labels(name=_JOB_NAME, result="error").inc()
			raise
		finally:
			duration = (datetime.now(timezone.utc) - started).total_seconds()
			obs_metrics.BACKGROUND_DURATION.labels(name=_JOB_NAME).observe(duration)


__all__ = ["NotificationCleanup"]
