"""Taxonomía de errores del servicio de árbol genealógico.

English:
    Error taxonomy for the family-tree service. Only boundary operations
    (lookup, render, cache) raise these; the normalizer, classifier,
    aggregator and assembler are total over their inputs.
"""

from __future__ import annotations


class ArbolError(Exception):
    """Error base con código HTTP y mensaje público.

    English: Base error carrying an HTTP status and a public message.
    """

    status_code = 500
    default_message = "Error interno"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InputValidationError(ArbolError):
    """DNI ausente o mal formado. / Missing or malformed DNI."""

    status_code = 400
    default_message = "DNI requerido"


class UpstreamNotFound(ArbolError):
    """El servicio externo respondió sin datos. / Upstream answered with no record."""

    status_code = 404
    default_message = "No encontrado"


class UpstreamFailure(ArbolError):
    """Servicio externo inaccesible o con respuesta inválida.

    English: Upstream unreachable, timed out, or returned malformed data.
    """

    status_code = 500
    default_message = "Error consultando el servicio de árbol genealógico"


class RenderFailure(ArbolError):
    """Fallo al generar el documento. / Document rendering failed."""

    status_code = 500
    default_message = "Error generando el reporte"


class CacheUnavailable(ArbolError):
    """Almacenamiento de artefactos mal configurado o inaccesible.

    English: Artifact storage misconfigured or unreachable. Never fatal.
    """

    status_code = 503
    default_message = "Caché de reportes no disponible"
