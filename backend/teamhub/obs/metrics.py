"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary


REQUEST_COUNTER = Counter(
	"teamhub_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"teamhub_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

GROUPS_CREATED = Counter(
	"teamhub_groups_created_total",
	"Groups created",
)

MEMBERSHIP_CHANGES = Counter(
	"teamhub_membership_changes_total",
	"Membership rows created, updated or removed",
	["action"],
)

INVITES_CREATED = Counter(
	"teamhub_invites_created_total",
	"Invites created",
)

INVITE_REJECTS = Counter(
	"teamhub_invite_rejects_total",
	"Invite creations rejected",
	["reason"],
)

INVITES_RESOLVED = Counter(
	"teamhub_invites_resolved_total",
	"Invites that left the pending state",
	["outcome"],
)

EVENTS_CREATED = Counter(
	"teamhub_events_created_total",
	"Calendar events created",
)

EVENT_RESPONSES = Counter(
	"teamhub_event_responses_total",
	"Participant responses recorded",
	["status"],
)

NOTIFICATIONS_PERSISTED = Counter(
	"teamhub_notifications_persisted_total",
	"Notifications written",
	["type"],
)

NOTIFICATIONS_SUPPRESSED = Counter(
	"teamhub_notifications_suppressed_total",
	"Notifications dropped before persistence",
	["reason"],
)

FILES_REGISTERED = Counter(
	"teamhub_files_registered_total",
	"File records created",
	["kind"],
)

FILE_DOWNLOADS = Counter(
	"teamhub_file_downloads_total",
	"File download counter increments",
)

POSTGRES_UP = Gauge("teamhub_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("teamhub_postgres_latency_seconds", "Postgres ping latency (seconds)")

BACKGROUND_RUNS = Counter(
	"teamhub_jobs_runs_total",
	"Background job executions",
	["name", "result"],
)

BACKGROUND_DURATION = Histogram(
	"teamhub_jobs_duration_seconds",
	"Background job duration",
	["name"],
	buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 15.0, 30.0, 60.0),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_group_created() -> None:
	GROUPS_CREATED.inc()


def inc_membership_change(action: str) -> None:
	MEMBERSHIP_CHANGES.labels(action=action).inc()


def inc_invite_created() -> None:
	INVITES_CREATED.inc()


def inc_invite_reject(reason: str) -> None:
	INVITE_REJECTS.labels(reason=reason).inc()


def inc_invite_resolved(outcome: str, count: int = 1) -> None:
	if count > 0:
		INVITES_RESOLVED.labels(outcome=outcome).inc(count)


def inc_event_created() -> None:
	EVENTS_CREATED.inc()


def inc_event_response(status: str) -> None:
	EVENT_RESPONSES.labels(status=status).inc()


def notification_persisted(kind: str) -> None:
	NOTIFICATIONS_PERSISTED.labels(type=kind).inc()


def notification_suppressed(reason: str) -> None:
	NOTIFICATIONS_SUPPRESSED.labels(reason=reason).inc()


def inc_file_registered(kind: str) -> None:
	FILES_REGISTERED.labels(kind=kind).inc()


def inc_file_download() -> None:
	FILE_DOWNLOADS.inc()


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)
