"""Pruebas de los renderizadores PDF/PNG / PDF and PNG renderer tests."""

from __future__ import annotations

import datetime as dt

import pytest

from arbol.assembler import assemble_report
from arbol.classifier import classify_relatives
from arbol.errors import RenderFailure
from arbol.models import Gender
from arbol.render import (
    PdfReportRenderer,
    PngReportRenderer,
    RenderContext,
    build_report_signature,
    content_digest,
)
from arbol.statistics import compute_statistics


def _bundle(person_factory, relatives, page_capacity=15):
    principal = person_factory("12345678", given_names="ANA", gender=Gender.FEMALE, age=40)
    group = classify_relatives(principal, relatives)
    stats = compute_statistics(group, relatives, principal=principal)
    pages = assemble_report(principal, group, stats, page_capacity=page_capacity)
    context = RenderContext(
        principal=principal,
        statistics=stats,
        generated_at_utc=dt.datetime(2024, 1, 2, 3, 4, 5, tzinfo=dt.timezone.utc),
        signature="ab" * 32,
    )
    return pages, context


def _family(person_factory):
    relatives = [person_factory(str(i), "TIO PATERNO", Gender.MALE, 30 + i) for i in range(17)]
    relatives += [
        person_factory("100", "MADRE", Gender.FEMALE, 65),
        person_factory("101", "PRIMA MATERNA DE NOMBRE MUY LARGO PARA LA TARJETA", Gender.FEMALE, 12),
        person_factory("102", "CUÑADO", Gender.UNKNOWN, None),
    ]
    return relatives


def test_pdf_renderer_produces_pdf(person_factory) -> None:
    pages, context = _bundle(person_factory, _family(person_factory))

    content = PdfReportRenderer().render(pages, context)

    assert content.startswith(b"%PDF")
    assert content.rstrip().endswith(b"%%EOF")


def test_pdf_renderer_handles_principal_without_relatives(person_factory) -> None:
    pages, context = _bundle(person_factory, [])

    assert PdfReportRenderer().render(pages, context).startswith(b"%PDF")


def test_pdf_cards_stay_on_page_when_capacity_exceeds_sheet(person_factory, monkeypatch: pytest.MonkeyPatch) -> None:
    relatives = [person_factory(str(i), "TIO PATERNO", Gender.MALE, 30) for i in range(1, 31)]
    pages, context = _bundle(person_factory, relatives, page_capacity=30)
    renderer = PdfReportRenderer()
    drawn = []
    original = PdfReportRenderer._person_card

    def recording_card(self, c, x, y, person, color):
        drawn.append((c.getPageNumber(), y))
        original(self, c, x, y, person, color)

    monkeypatch.setattr(PdfReportRenderer, "_person_card", recording_card)

    content = renderer.render(pages, context)

    assert content.startswith(b"%PDF")
    assert len(drawn) == 30
    assert renderer.cards_per_sheet == 24
    for _, y in drawn:
        assert y + renderer.card_height <= renderer.page_height - renderer.footer_margin
    assert drawn[24][1] == renderer.cards_top
    assert drawn[24][0] == drawn[23][0] + 1


def test_png_renderer_produces_png(person_factory) -> None:
    pages, context = _bundle(person_factory, _family(person_factory))

    content = PngReportRenderer().render(pages, context)

    assert content.startswith(b"\x89PNG\r\n\x1a\n")


def test_png_height_grows_with_content(person_factory) -> None:
    small_pages, small_context = _bundle(person_factory, [])
    large_pages, large_context = _bundle(person_factory, _family(person_factory))

    small = PngReportRenderer().render(small_pages, small_context)
    large = PngReportRenderer().render(large_pages, large_context)

    # Alto en bytes 20..24 del bloque IHDR. / Height lives at IHDR bytes 20..24.
    assert int.from_bytes(large[20:24], "big") > int.from_bytes(small[20:24], "big")


def test_drawing_errors_become_render_failure(person_factory, monkeypatch: pytest.MonkeyPatch) -> None:
    pages, context = _bundle(person_factory, [])

    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(PdfReportRenderer, "_legend", broken)

    with pytest.raises(RenderFailure):
        PdfReportRenderer().render(pages, context)


def test_signature_is_deterministic_and_key_dependent(person_factory) -> None:
    pages, context = _bundle(person_factory, _family(person_factory))
    digest = content_digest(pages, context.statistics)

    first = build_report_signature("12345678", "2024-01-02T03:04:05+00:00", digest, "secret")
    second = build_report_signature("12345678", "2024-01-02T03:04:05+00:00", digest, "secret")
    other = build_report_signature("12345678", "2024-01-02T03:04:05+00:00", digest, "other")

    assert first == second
    assert first != other
    assert len(first) == 64
