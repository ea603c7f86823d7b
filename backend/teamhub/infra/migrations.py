"""Apply ordered SQL migrations from ``infra/migrations``.

Usage: ``python -m teamhub.infra.migrations`` with POSTGRES_URL set.
"""

from __future__ import annotations

import asyncio
import pathlib
from typing import Iterable

import asyncpg

from teamhub.obs import logging as obs_logging
from teamhub.settings import settings

MIGRATIONS_DIR = pathlib.Path(__file__).resolve().parents[3] / "infra" / "migrations"

logger = obs_logging.get_logger("teamhub.migrations")


def migration_version(path: pathlib.Path) -> str:
	return path.name.split("_", 1)[0]


def pending_migrations(paths: Iterable[pathlib.Path], applied: set[str]) -> list[pathlib.Path]:
	return [path for path in sorted(paths) if migration_version(path) not in applied]


async def apply_migrations(conn: asyncpg.Connection, directory: pathlib.Path = MIGRATIONS_DIR) -> list[str]:
	"""Apply every migration not yet recorded in ``schema_migrations``."""
	paths = list(directory.glob("*.sql"))
	if not paths:
		raise FileNotFoundError(f"no migration files found in {directory}")
	await conn.execute(
		"""
		CREATE TABLE IF NOT EXISTS schema_migrations (
			version TEXT PRIMARY KEY,
			applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
		)
		"""
	)
	applied = {row["version"] for row in await conn.fetch("SELECT version FROM schema_migrations")}
	done: list[str] = []
	for path in pending_migrations(paths, applied):
		version = migration_version(path)
		async with conn.transaction():
			await conn.execute(path.read_text())
			await conn.execute(
				"""
				INSERT INTO schema_migrations (version) VALUES ($1)
				ON CONFLICT (version) DO UPDATE SET applied_at = NOW()
				""",
				version,
			)
		logger.info("migration_applied", extra={"migration": path.name})
		done.append(version)
	return done


async def main() -> None:
	obs_logging.configure_logging()
	conn = await asyncpg.connect(
		dsn=settings.postgres_url,
		ssl="require" if settings.postgres_ssl else "disable",
	)
	try:
		await apply_migrations(conn)
	finally:
		await conn.close()


if __name__ == "__main__":
	asyncio.run(main())
