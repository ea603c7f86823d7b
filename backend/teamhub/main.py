from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from teamhub.api import ops
from teamhub.api.errors import install_error_handlers
from teamhub.collab import router as collab_router
from teamhub.collab.infra.scheduler import MaintenanceScheduler
from teamhub.collab.jobs.invite_expiry import InviteExpirySweep
from teamhub.collab.jobs.notification_cleanup import NotificationCleanup
from teamhub.infra import postgres
from teamhub.obs import init as obs_init
from teamhub.obs import logging as obs_logging
from teamhub.settings import settings

logger = obs_logging.get_logger("teamhub.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	scheduler: MaintenanceScheduler | None = None
	if settings.maintenance_jobs_enabled:
		scheduler = MaintenanceScheduler()
		scheduler.start()
		hours = settings.maintenance_interval_hours
		scheduler.schedule_hourly("collab-invite-expiry", InviteExpirySweep().run_once, hours=hours)
		scheduler.schedule_hourly("collab-notification-cleanup", NotificationCleanup().run_once, hours=24)
		logger.info("maintenance_scheduler_started", extra={"jobs": scheduler.job_ids()})
	app.state.maintenance_scheduler = scheduler
	try:
		yield
	finally:
		if scheduler is not None:
			scheduler.shutdown()
		await postgres.close_pool()


app = FastAPI(title="TeamHub API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

obs_init(app)

app.include_router(collab_router)
app.include_router(ops.router, tags=["ops"])
