"""Operations endpoints providing health checks, metrics, and maintenance triggers."""

from __future__ import annotations

import time
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from teamhub.collab.jobs.invite_expiry import InviteExpirySweep
from teamhub.collab.jobs.notification_cleanup import NotificationCleanup
from teamhub.obs import health
from teamhub.obs import logging as obs_logging
from teamhub.settings import settings

router = APIRouter(prefix="", tags=["ops"])
logger = obs_logging.get_logger("teamhub.ops")

_invite_sweep = InviteExpirySweep()
_notification_cleanup = NotificationCleanup()


def _resolve_token(x_admin_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
	if x_admin_token:
		return x_admin_token
	if authorization and authorization.lower().startswith("bearer "):
		return authorization.split(" ", 1)[1]
	return None


async def require_admin(
	X_Admin_Token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	token = settings.obs_admin_token
	if not token:
		# Fail closed: no configured token means no admin access.
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="admin_token_not_configured")
	provided = _resolve_token(X_Admin_Token, authorization)
	if provided != token:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


async def require_metrics_access(
	X_Admin_Token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
	authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
	if settings.obs_metrics_public:
		return
	await require_admin(X_Admin_Token=X_Admin_Token, authorization=authorization)


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return await health.liveness()


@router.get("/health/ready")
async def health_ready() -> Response:
	status_code, payload = await health.readiness()
	return JSONResponse(content=payload, status_code=status_code)


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	payload = generate_latest()
	return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


@router.post("/ops/maintenance/expire-invites")
async def trigger_invite_expiry(_: None = Depends(require_admin)) -> dict[str, object]:
	start = time.perf_counter()
	expired = await _invite_sweep.run_once()
	logger.info(
		"maintenance_triggered",
		extra={"job": "invite_expiry", "elapsed_ms": round((time.perf_counter() - start) * 1000, 2)},
	)
	return {"sucesso": True, "dados": {"expirados": expired}}


@router.post("/ops/maintenance/cleanup-notifications")
async def trigger_notification_cleanup(_: None = Depends(require_admin)) -> dict[str, object]:
	start = time.perf_counter()
	deleted = await _notification_cleanup.run_once()
	logger.info(
		"maintenance_triggered",
		extra={"job": "notification_cleanup", "elapsed_ms": round((time.perf_counter() - start) * 1000, 2)},
	)
	return {"sucesso": True, "dados": {"removidas": deleted}}
