# Cli Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Propósito del módulo
#   2) Componentes principales
#   3) Puntos de extensión
#
# EN: Quick index
#   1) Module purpose
#   2) Main components
#   3) Extension points
#
# Secciones / Sections:
#   - Configuración / Configuration
#   - Lógica principal / Core logic
#   - Integraciones / Integrations

"""Interfaz de línea de comandos del servicio de árbol genealógico.

English:
    Command line interface: generate a report to disk, print the
    classification summary, or serve the HTTP API.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from .config import ArbolSettings, load_config
from .errors import ArbolError
from .logging import setup_logging
from .render import supported_formats
from .service import ReportService, summarize

app = typer.Typer(help="Arbol Engine CLI")


def _settings() -> ArbolSettings:
    try:
        settings = load_config()
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR, settings.sensitive_values())
    return settings


def _service() -> ReportService:
    return ReportService.from_settings(_settings())


@app.callback()
def main() -> None:
    """Interfaz de línea de comandos del árbol genealógico.

    English: Family-tree command line interface.
    """


@app.command()
def generar(
    dni: str = typer.Option(..., "--dni", help="DNI de la persona consultada."),
    formato: str = typer.Option("pdf", "--formato", help="pdf o png."),
    salida: Optional[Path] = typer.Option(None, "--salida", help="Ruta del archivo generado."),
) -> None:
    """Genera el reporte y lo escribe en disco."""
    if formato not in supported_formats():
        raise typer.BadParameter("formato debe ser pdf o png", param_hint="--formato")
    service = _service()
    try:
        report = asyncio.run(service.generate(dni, formato, use_cache=False))
    except ArbolError as exc:
        typer.echo(exc.message, err=True)
        raise typer.Exit(code=1) from exc
    target = salida or Path(report.filename)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(report.content)
    typer.echo(str(target))


@app.command()
def consultar(dni: str = typer.Option(..., "--dni", help="DNI de la persona consultada.")) -> None:
    """Imprime la clasificación y estadísticas en JSON."""
    service = _service()
    try:
        clean_dni = service.validate_dni(dni)
        bundle = asyncio.run(service.build_report(clean_dni))
    except ArbolError as exc:
        typer.echo(exc.message, err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(json.dumps(summarize(bundle), ensure_ascii=False, indent=2))


@app.command()
def servir(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port"),
) -> None:
    """Levanta la API HTTP con uvicorn."""
    from .api.main import create_app

    uvicorn.run(create_app(_settings()), host=host, port=port)


if __name__ == "__main__":
    app()
