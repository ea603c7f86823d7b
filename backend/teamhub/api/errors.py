"""Global error handlers rendering the response envelope with the request id."""

from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from teamhub.collab.domain.exceptions import CollabError
from teamhub.collab.schemas.dto import ErrorResponse
from teamhub.obs import logging as obs_logging

logger = obs_logging.get_logger("teamhub.errors")

_KIND_BY_STATUS = {
	status.HTTP_400_BAD_REQUEST: "validation_failed",
	status.HTTP_401_UNAUTHORIZED: "unauthenticated",
	status.HTTP_403_FORBIDDEN: "forbidden",
	status.HTTP_404_NOT_FOUND: "not_found",
	status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
	status.HTTP_409_CONFLICT: "conflict",
}

_MESSAGE_BY_KIND = {
	"unauthenticated": "Autenticação necessária",
	"not_found": "Recurso não encontrado",
	"method_not_allowed": "Método não permitido",
}


def get_request_id(request: Request) -> str:
	rid = getattr(request.state, "request_id", None)
	return rid or obs_logging.current_request_id()


def _envelope(request: Request, status_code: int, *, detail: str, kind: str, errors: list[str]) -> JSONResponse:
	body = ErrorResponse(erro=detail, tipo=kind, erros=errors, request_id=get_request_id(request))
	return JSONResponse(status_code=status_code, content=body.model_dump())


def _field_message(error: dict) -> str:
	location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
	field = ".".join(location)
	message = error.get("msg", "valor inválido")
	return f"{field}: {message}" if field else message


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		kind = getattr(exc, "kind", None) or _KIND_BY_STATUS.get(exc.status_code, "error")
		detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
		if kind in _MESSAGE_BY_KIND and not getattr(exc, "kind", None):
			detail = _MESSAGE_BY_KIND[kind]
		errors = getattr(exc, "errors", None) or [detail]
		response = _envelope(request, exc.status_code, detail=detail, kind=kind, errors=list(errors))
		if exc.headers:
			response.headers.update(exc.headers)
		return response

	@app.exception_handler(CollabError)
	async def collab_exc_handler(request: Request, exc: CollabError):  # type: ignore[override]
		return _envelope(request, exc.status_code, detail=exc.detail, kind=exc.public_kind, errors=exc.errors)

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		errors = [_field_message(error) for error in exc.errors()]
		return _envelope(
			request,
			status.HTTP_400_BAD_REQUEST,
			detail="Dados inválidos",
			kind="validation_failed",
			errors=errors,
		)

	@app.exception_handler(Exception)
	async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
		logger.error(
			"unhandled_exception",
			exc_info=exc,
			extra={"path": request.url.path, "method": request.method},
		)
		return _envelope(
			request,
			status.HTTP_500_INTERNAL_SERVER_ERROR,
			detail="Erro interno do servidor",
			kind="internal",
			errors=[],
		)
