"""Pruebas de orquestación del servicio / Report service orchestration tests."""

from __future__ import annotations

import asyncio
from typing import List
from unittest.mock import MagicMock

import pytest

from arbol.errors import CacheUnavailable, InputValidationError, UpstreamNotFound
from arbol.lookup import LookupResult
from arbol.models import Branch, Gender
from arbol.render import build_renderers
from arbol.service import ReportService, summarize


class FakeLookup:
    """Sustituto del cliente externo con respuesta fija."""

    def __init__(self, result=None, error=None) -> None:
        self.result = result
        self.error = error
        self.calls: List[str] = []

    async def fetch(self, dni: str) -> LookupResult:
        self.calls.append(dni)
        if self.error is not None:
            raise self.error
        return self.result


class FakeRenderer:
    media_type = "application/pdf"
    extension = "pdf"

    def __init__(self) -> None:
        self.calls = 0
        self.pages = None
        self.context = None

    def render(self, pages, context) -> bytes:
        self.calls += 1
        self.pages = pages
        self.context = context
        return b"%PDF-fake"


@pytest.fixture()
def family(person_factory) -> LookupResult:
    principal = person_factory("12345678", given_names="ANA", gender=Gender.FEMALE, age=40)
    relatives = (
        person_factory("1", "PADRE", Gender.MALE, 70),
        person_factory("2", "TIO PATERNO", Gender.MALE, 50),
        person_factory("3", "PRIMA MATERNA", Gender.FEMALE, 15),
        person_factory("12345678", "HIJA"),
    )
    return LookupResult(principal=principal, relatives=relatives, quantity=4)


def _miss_cache() -> MagicMock:
    cache = MagicMock()
    cache.exists.return_value = None
    cache.upload.return_value = "https://cdn.example.test/reportes/x.pdf"
    return cache


def test_build_report_runs_the_full_pipeline(settings, family) -> None:
    service = ReportService(settings, FakeLookup(family), _miss_cache(), {"pdf": FakeRenderer()})

    bundle = asyncio.run(service.build_report("12345678"))

    assert bundle.principal.given_names == "ANA"
    assert bundle.statistics.total == 3
    assert bundle.group.counts()[Branch.DIRECT] == 1
    assert bundle.descriptors[0].items == (bundle.principal,)
    summary = summarize(bundle)
    assert summary["estadisticas"]["por_rama"]["PATERNAL"] == 1
    assert summary["titular"]["dni"] == "12345678"


def test_generate_renders_and_uploads_on_miss(settings, family) -> None:
    cache = _miss_cache()
    renderer = FakeRenderer()
    service = ReportService(settings, FakeLookup(family), cache, {"pdf": renderer})

    report = asyncio.run(service.generate("12345678", "pdf"))

    assert report.content == b"%PDF-fake"
    assert report.filename == "Arbol_12345678.pdf"
    assert report.cached_url is None
    assert renderer.calls == 1
    assert renderer.context.signature is None
    cache.exists.assert_called_once_with("12345678_arbol_pdf", "application/pdf")
    cache.upload.assert_called_once_with("12345678_arbol_pdf", b"%PDF-fake", "application/pdf")


def test_cache_hit_short_circuits_rendering(settings, family) -> None:
    cache = MagicMock()
    cache.exists.return_value = "https://cdn.example.test/reportes/12345678_arbol_pdf.pdf"
    lookup = FakeLookup(family)
    renderer = FakeRenderer()
    service = ReportService(settings, lookup, cache, {"pdf": renderer})

    report = asyncio.run(service.generate("12345678", "pdf"))

    assert report.cached_url == "https://cdn.example.test/reportes/12345678_arbol_pdf.pdf"
    assert report.content == b""
    assert renderer.calls == 0
    assert lookup.calls == []
    cache.upload.assert_not_called()


def test_cache_failures_do_not_block(settings, family) -> None:
    cache = MagicMock()
    cache.exists.side_effect = CacheUnavailable("down")
    cache.upload.side_effect = CacheUnavailable("down")
    service = ReportService(settings, FakeLookup(family), cache, {"pdf": FakeRenderer()})

    report = asyncio.run(service.generate("12345678", "pdf"))

    assert report.content == b"%PDF-fake"


def test_signing_key_produces_signature(settings, family) -> None:
    signed_settings = settings.model_copy(update={"REPORT_SIGNING_KEY": "secret"})
    renderer = FakeRenderer()
    service = ReportService(signed_settings, FakeLookup(family), _miss_cache(), {"pdf": renderer})

    asyncio.run(service.generate("12345678", "pdf"))

    assert renderer.context.signature is not None
    assert len(renderer.context.signature) == 64


def test_invalid_dni_fails_before_lookup(settings, family) -> None:
    lookup = FakeLookup(family)
    service = ReportService(settings, lookup, _miss_cache(), {"pdf": FakeRenderer()})

    with pytest.raises(InputValidationError):
        asyncio.run(service.generate("123", "pdf"))
    assert lookup.calls == []


def test_upstream_errors_propagate(settings) -> None:
    service = ReportService(settings, FakeLookup(error=UpstreamNotFound()), _miss_cache(), {"pdf": FakeRenderer()})

    with pytest.raises(UpstreamNotFound):
        asyncio.run(service.generate("12345678", "pdf"))


def test_consult_points_to_download_endpoint_on_miss(settings, family) -> None:
    service = ReportService(settings, FakeLookup(family), _miss_cache(), {"pdf": FakeRenderer()})

    summary = asyncio.run(service.consult("12345678", download_base_url="http://testserver/"))

    assert summary == {
        "dni": "12345678",
        "nombres": "ANA PEREZ LOPEZ",
        "estado": "GENERADO",
        "archivo": {"url": "http://testserver/descargar-arbol-pdf?dni=12345678"},
    }


def test_consult_prefers_cached_artifact(settings, family) -> None:
    cache = MagicMock()
    cache.exists.return_value = "https://cdn.example.test/x.pdf"
    service = ReportService(settings, FakeLookup(family), cache, {"pdf": FakeRenderer()})

    summary = asyncio.run(service.consult("12345678"))

    assert summary["archivo"]["url"] == "https://cdn.example.test/x.pdf"


def test_end_to_end_with_real_renderers(settings, family) -> None:
    service = ReportService(settings, FakeLookup(family), _miss_cache(), build_renderers())

    pdf = asyncio.run(service.generate("12345678", "pdf"))
    png = asyncio.run(service.generate("12345678", "png"))

    assert pdf.content.startswith(b"%PDF")
    assert png.content.startswith(b"\x89PNG")
    assert png.filename == "Arbol_12345678.png"
