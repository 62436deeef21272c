"""API HTTP del servicio de árbol genealógico.

English:
    HTTP API for the family-tree report service. Endpoints validate the DNI,
    delegate to ``ReportService`` and map ``ArbolError`` subclasses onto JSON
    error bodies ``{"error": "<mensaje>"}``.
"""

from __future__ import annotations

import logging
import os
from typing import List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from arbol import __version__
from arbol.config import ArbolSettings, load_config
from arbol.errors import ArbolError
from arbol.service import GeneratedReport, ReportService

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT = 30


def _env_int(name: str, default: int) -> int:
    """Lee una variable de entorno como entero con fallback seguro.

    English: Read an environment variable as an integer with a safe fallback.
    """
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("invalid_env_int name=%s value=%s", name, raw)
        return default


def _origins(settings: Optional[ArbolSettings]) -> List[str]:
    if settings is not None:
        return settings.cors_origins()
    raw = os.getenv("CORS_ORIGINS", "*")
    return ["*"] if raw.strip() == "*" else [origin.strip() for origin in raw.split(",") if origin.strip()]


def create_app(settings: Optional[ArbolSettings] = None, service: Optional[ReportService] = None) -> FastAPI:
    """Construye la aplicación FastAPI.

    Args:
        settings: Configuración; si falta se carga al primer request.
        service: Servicio inyectado (tests); si falta se construye desde
            la configuración.

    English:
        Build the FastAPI application. Without an injected service, the
        service is created lazily on the first request so importing the
        module never requires configuration.
    """
    if settings is None and service is not None:
        settings = service.settings

    app = FastAPI(title="Arbol Genealogico API", version=__version__)
    app.state.settings = settings
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_origins(settings),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    rate_limit = settings.API_RATE_LIMIT if settings is not None else _env_int("API_RATE_LIMIT", DEFAULT_RATE_LIMIT)
    limiter = Limiter(key_func=get_remote_address, default_limits=[f"{rate_limit}/minute"])
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(ArbolError)
    async def _arbol_error_handler(request: Request, exc: ArbolError) -> JSONResponse:
        logger.warning(
            "api_error path=%s status_code=%s error=%s",
            request.url.path,
            exc.status_code,
            type(exc).__name__,
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("api_unhandled_error path=%s error=%s", request.url.path, type(exc).__name__)
        return JSONResponse(status_code=500, content={"error": ArbolError.default_message})

    def get_service() -> ReportService:
        if app.state.service is None:
            resolved = app.state.settings or load_config()
            app.state.settings = resolved
            app.state.service = ReportService.from_settings(resolved)
        return app.state.service

    async def _download(dni: Optional[str], report_format: str) -> Response:
        report: GeneratedReport = await get_service().generate(dni, report_format)
        if report.cached_url:
            return RedirectResponse(report.cached_url, status_code=307)
        return Response(
            content=report.content,
            media_type=report.media_type,
            headers={"Content-Disposition": f'attachment; filename="{report.filename}"'},
        )

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/consultar-arbol")
    async def consultar_arbol(request: Request, dni: Optional[str] = Query(default=None)) -> dict:
        """Resumen de la consulta y URL del PDF. / Lookup summary and PDF URL."""
        return await get_service().consult(dni, download_base_url=str(request.base_url))

    @app.get("/descargar-arbol-pdf")
    async def descargar_arbol_pdf(dni: Optional[str] = Query(default=None)) -> Response:
        return await _download(dni, "pdf")

    @app.get("/descargar-arbol-imagen")
    async def descargar_arbol_imagen(dni: Optional[str] = Query(default=None)) -> Response:
        return await _download(dni, "png")

    return app


app = create_app()
