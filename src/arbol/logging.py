"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/arbol/logging.py`.
Configuración de structlog y handlers estándar con redacción de secretos.

Componentes detectados:
  - SensitiveDataFilter
  - setup_logging
  - bind_context

======================== ENGLISH ========================
File: `src/arbol/logging.py`.
structlog configuration plus stdlib handlers with secret redaction.
"""

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Optional

import structlog

REDACTED = "[REDACTED]"


class SensitiveDataFilter(logging.Filter):
    """Filtro seguro para redacción de secretos / Secure filter to redact secrets."""

    def __init__(self, sensitive_values: Iterable[str]) -> None:
        super().__init__()
        self._sensitive_values = [value for value in sensitive_values if value]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._sensitive_values:
            return True
        message = str(record.getMessage())
        for value in self._sensitive_values:
            if value in message:
                message = message.replace(value, REDACTED)
        record.msg = message
        record.args = ()
        return True


def setup_logging(
    log_level: str,
    log_dir: Optional[Path] = None,
    sensitive_values: Iterable[str] = (),
) -> structlog.BoundLogger:
    """Configura structlog y handlers de consola/archivo.

    English: Configure structlog and console/file handlers. The file handler
    rotates at midnight and is only added when ``log_dir`` is given.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    redact_filter = SensitiveDataFilter(sensitive_values)

    console_handler = logging.StreamHandler()
    handlers: list[logging.Handler] = [console_handler]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(
                log_dir / "arbol.log",
                when="midnight",
                backupCount=30,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.addFilter(redact_filter)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        format="%(message)s",
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def bind_context(
    logger: structlog.BoundLogger,
    dni: Optional[str] = None,
    report_type: Optional[str] = None,
    cache_key: Optional[str] = None,
) -> structlog.BoundLogger:
    """Adjunta contexto estándar al logger.

    English: Bind standard context to the logger.
    """
    context: dict[str, Any] = {}
    if dni:
        context["dni"] = dni
    if report_type:
        context["report_type"] = report_type
    if cache_key:
        context["cache_key"] = cache_key
    return logger.bind(**context)
