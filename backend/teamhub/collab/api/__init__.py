"""FastAPI routers for the collaboration domain."""

from __future__ import annotations

from fastapi import APIRouter

from teamhub.collab.api import arquivos, convites, eventos, grupos, notificacoes

router = APIRouter()

router.include_router(grupos.router)
router.include_router(convites.router)
router.include_router(eventos.router)
router.include_router(notificacoes.router)
router.include_router(arquivos.router)

__all__ = ["router"]
