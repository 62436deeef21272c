"""Orquestación del reporte genealógico.

English:
    Report orchestration: lookup → classify → aggregate → assemble → render,
    with the artifact cache consulted before rendering and fed afterwards.
    Cache problems are logged and never block a report.
"""

from __future__ import annotations

import asyncio
import datetime as dt
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog

from .assembler import assemble_report
from .classifier import classify_relatives
from .config import ArbolSettings
from .errors import CacheUnavailable
from .logging import bind_context
from .lookup import LookupClient
from .models import FamilyGroup, PageDescriptor, Person, Statistics
from .render import RenderContext, ReportRenderer, build_report_signature, build_renderers, content_digest
from .statistics import compute_statistics
from .storage import ReportCache, build_cache, cache_key

REPORT_TYPES = {"pdf": "arbol_pdf", "png": "arbol_png"}
DOWNLOAD_PATHS = {"pdf": "/descargar-arbol-pdf", "png": "/descargar-arbol-imagen"}
GENERATED_STATUS = "GENERADO"
CACHE_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class ReportBundle:
    """Resultado del pipeline antes de renderizar. / Pipeline output before rendering."""

    principal: Person
    group: FamilyGroup
    statistics: Statistics
    descriptors: Tuple[PageDescriptor, ...]


@dataclass(frozen=True)
class GeneratedReport:
    """Artefacto listo para enviar o URL de caché.

    English: Rendered artifact, or only ``cached_url`` on a cache hit.
    """

    content: bytes
    media_type: str
    filename: str
    cached_url: Optional[str] = None


class ReportService:
    """Servicio de reportes; recibe sus colaboradores explícitamente.

    English: Report service; all collaborators are injected.
    """

    def __init__(
        self,
        settings: ArbolSettings,
        lookup: LookupClient,
        cache: ReportCache,
        renderers: Mapping[str, ReportRenderer],
    ) -> None:
        self.settings = settings
        self.lookup = lookup
        self.cache = cache
        self.renderers = dict(renderers)
        self.logger = structlog.get_logger(__name__)

    @classmethod
    def from_settings(cls, settings: ArbolSettings) -> "ReportService":
        lookup = LookupClient(
            settings.ARBOL_GENEALOGICO_API_URL,
            timeout_seconds=settings.LOOKUP_TIMEOUT_SECONDS,
            max_attempts=settings.LOOKUP_MAX_ATTEMPTS,
        )
        return cls(settings, lookup, build_cache(settings), build_renderers())

    def validate_dni(self, dni: Any) -> str:
        return self.settings.dni_validator().validate(dni)

    def renderer_for(self, report_format: str) -> ReportRenderer:
        try:
            return self.renderers[report_format]
        except KeyError as exc:
            raise ValueError(f"Unsupported report format {report_format!r}") from exc

    async def build_report(self, dni: str) -> ReportBundle:
        """Consulta, clasifica, agrega y arma las páginas del DNI.

        English: Lookup, classify, aggregate and assemble, in that order.
        """
        log = bind_context(self.logger, dni=dni)
        result = await self.lookup.fetch(dni)
        group = classify_relatives(result.principal, result.relatives)
        statistics = compute_statistics(
            group,
            result.relatives,
            brackets=self.settings.age_brackets(),
            principal=result.principal,
        )
        descriptors = assemble_report(
            result.principal,
            group,
            statistics,
            page_capacity=self.settings.PAGE_CAPACITY,
        )
        log.info(
            "report_built",
            relatives=statistics.total,
            pages=len(descriptors),
            branches={branch.value: count for branch, count in group.counts().items()},
        )
        return ReportBundle(result.principal, group, statistics, tuple(descriptors))

    async def consult(self, dni: Any, download_base_url: str = "") -> Dict[str, Any]:
        """Resumen de consulta con la URL de descarga del PDF.

        English: Lookup summary pointing at the cached PDF when there is one,
        otherwise at this service's download endpoint.
        """
        clean_dni = self.validate_dni(dni)
        result = await self.lookup.fetch(clean_dni)
        key = cache_key(clean_dni, REPORT_TYPES["pdf"])
        url = await self._cache_lookup(key, self.renderer_for("pdf").media_type)
        if not url:
            base = (self.settings.API_BASE_URL or download_base_url).rstrip("/")
            url = f"{base}{DOWNLOAD_PATHS['pdf']}?dni={clean_dni}"
        return {
            "dni": clean_dni,
            "nombres": result.principal.full_name,
            "estado": GENERATED_STATUS,
            "archivo": {"url": url},
        }

    async def generate(self, dni: Any, report_format: str = "pdf", use_cache: bool = True) -> GeneratedReport:
        """Genera (o recupera de caché) el reporte en el formato pedido.

        Raises:
            InputValidationError: DNI inválido.
            UpstreamNotFound: Sin datos en el servicio externo.
            UpstreamFailure: Servicio externo inaccesible.
            RenderFailure: Fallo al dibujar el documento.
        """
        clean_dni = self.validate_dni(dni)
        renderer = self.renderer_for(report_format)
        report_type = REPORT_TYPES[report_format]
        key = cache_key(clean_dni, report_type)
        filename = f"Arbol_{clean_dni}.{renderer.extension}"
        log = bind_context(self.logger, dni=clean_dni, report_type=report_type, cache_key=key)

        if use_cache:
            cached_url = await self._cache_lookup(key, renderer.media_type)
            if cached_url:
                log.info("report_cache_hit")
                return GeneratedReport(b"", renderer.media_type, filename, cached_url=cached_url)

        bundle = await self.build_report(clean_dni)
        context = self._render_context(clean_dni, bundle)
        content = await asyncio.to_thread(renderer.render, bundle.descriptors, context)
        log.info("report_rendered", bytes=len(content), signed=context.signature is not None)

        if use_cache:
            await self._cache_upload(key, content, renderer.media_type)
        return GeneratedReport(content, renderer.media_type, filename)

    def _render_context(self, dni: str, bundle: ReportBundle) -> RenderContext:
        generated_at = dt.datetime.now(dt.timezone.utc).replace(microsecond=0)
        signature = None
        if self.settings.REPORT_SIGNING_KEY:
            digest = content_digest(bundle.descriptors, bundle.statistics)
            signature = build_report_signature(
                dni,
                generated_at.isoformat(),
                digest,
                self.settings.REPORT_SIGNING_KEY,
            )
        return RenderContext(
            principal=bundle.principal,
            statistics=bundle.statistics,
            generated_at_utc=generated_at,
            signature=signature,
        )

    async def _cache_lookup(self, key: str, media_type: str) -> Optional[str]:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.cache.exists, key, media_type),
                timeout=CACHE_TIMEOUT_SECONDS,
            )
        except (CacheUnavailable, asyncio.TimeoutError) as exc:
            self.logger.warning("report_cache_check_failed", cache_key=key, error=str(exc))
            return None

    async def _cache_upload(self, key: str, content: bytes, media_type: str) -> Optional[str]:
        try:
            url = await asyncio.wait_for(
                asyncio.to_thread(self.cache.upload, key, content, media_type),
                timeout=CACHE_TIMEOUT_SECONDS,
            )
        except (CacheUnavailable, asyncio.TimeoutError) as exc:
            self.logger.warning("report_cache_upload_failed", cache_key=key, error=str(exc))
            return None
        return url or None


def summarize(bundle: ReportBundle) -> Dict[str, Any]:
    """Resumen serializable de clasificación y estadísticas.

    English: JSON-friendly classification summary used by the CLI.
    """
    branches: Dict[str, List[Dict[str, Any]]] = {}
    for branch, members in bundle.group.branches.items():
        branches[branch.value] = [
            {
                "dni": person.document_id,
                "nombre": person.full_name,
                "parentesco": person.relationship_label,
                "edad": person.age,
            }
            for person in members
        ]
    return {
        "titular": {"dni": bundle.principal.document_id, "nombre": bundle.principal.full_name},
        "ramas": branches,
        "estadisticas": bundle.statistics.to_dict(),
        "paginas": len(bundle.descriptors),
    }


__all__ = [
    "GeneratedReport",
    "ReportBundle",
    "ReportService",
    "summarize",
]
