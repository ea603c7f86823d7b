"""Health check helpers for liveness and readiness probes."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, Tuple

from teamhub.infra import postgres
from teamhub.obs import metrics
from teamhub.settings import settings

LOGGER = logging.getLogger(__name__)


async def _postgres_status(timeout: float = 0.3) -> Dict[str, Any]:
	start = perf_counter()
	try:
		ok = await asyncio.wait_for(postgres.ping(), timeout=timeout)
	except Exception as exc:  # pragma: no cover - depends on runtime
		metrics.mark_postgres(False)
		LOGGER.warning("Postgres readiness check failed", exc_info=True)
		return {"ok": False, "error": str(exc)}
	latency = perf_counter() - start
	metrics.mark_postgres(ok, latency_seconds=latency)
	return {"ok": ok, "latency_ms": round(latency * 1000, 2)}


async def liveness() -> Dict[str, str]:
	return {"status": "ok", "service": settings.service_name}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	pg = await _postgres_status()
	payload: Dict[str, Any] = {
		"status": "ok" if pg["ok"] else "degraded",
		"postgres": pg,
	}
	if settings.git_commit:
		payload["commit"] = settings.git_commit
	return (200 if pg["ok"] else 503), payload
