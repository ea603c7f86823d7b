import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from teamhub.infra import postgres
from teamhub.main import app
from teamhub.settings import settings


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via X-User-Id/X-User-Email headers, which are only
	accepted in dev mode. Maintenance jobs never start under test.
	"""
	original_env = settings.environment
	original_jobs = settings.maintenance_jobs_enabled
	original_token = settings.obs_admin_token
	settings.environment = "dev"
	settings.maintenance_jobs_enabled = False
	settings.obs_admin_token = None
	try:
		yield
	finally:
		settings.environment = original_env
		settings.maintenance_jobs_enabled = original_jobs
		settings.obs_admin_token = original_token


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app, raise_app_exceptions=False)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
