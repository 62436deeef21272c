"""Pruebas del cliente del servicio externo / Upstream lookup client tests."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from arbol.errors import UpstreamFailure, UpstreamNotFound
from arbol.lookup import LookupClient

BASE_URL = "https://arbol.example.test/api/arbol"
DNI = "12345678"
REQUEST_URL = f"{BASE_URL}?dni={DNI}"


def _payload(coincidences):
    return {
        "message": "found data",
        "result": {
            "person": {"dni": DNI, "nom": "Ana", "ap": "Perez", "am": "Lopez", "ge": "F", "edad": 40},
            "quantity": len(coincidences or []),
            "coincidences": coincidences,
        },
    }


def test_fetch_normalizes_principal_and_relatives(httpx_mock, record_factory) -> None:
    httpx_mock.add_response(
        url=REQUEST_URL,
        json=_payload([record_factory("1", "PADRE"), record_factory("2", "TIA MATERNA", gender="F")]),
    )

    result = asyncio.run(LookupClient(BASE_URL).fetch(DNI))

    assert result.principal.full_name == "ANA PEREZ LOPEZ"
    assert result.principal.relationship_label is None
    assert [p.relationship_label for p in result.relatives] == ["PADRE", "TIA MATERNA"]
    assert result.quantity == 2


def test_malformed_coincidences_are_skipped(httpx_mock, record_factory) -> None:
    httpx_mock.add_response(
        url=REQUEST_URL,
        json=_payload([record_factory("1", "PADRE"), None, "x", 7, record_factory("2", "TIO PATERNO")]),
    )

    result = asyncio.run(LookupClient(BASE_URL).fetch(DNI))

    assert [p.document_id for p in result.relatives] == ["1", "2"]


def test_empty_coincidences_is_valid(httpx_mock) -> None:
    httpx_mock.add_response(url=REQUEST_URL, json=_payload([]))

    result = asyncio.run(LookupClient(BASE_URL).fetch(DNI))

    assert result.relatives == ()


@pytest.mark.parametrize(
    "body",
    [
        {"message": "not found", "result": None},
        {"message": "found data", "result": {"person": None, "coincidences": []}},
        {"message": "found data", "result": {"person": {"dni": DNI}, "coincidences": None}},
    ],
)
def test_no_data_maps_to_not_found(httpx_mock, body) -> None:
    httpx_mock.add_response(url=REQUEST_URL, json=body)

    with pytest.raises(UpstreamNotFound):
        asyncio.run(LookupClient(BASE_URL).fetch(DNI))


def test_http_404_maps_to_not_found(httpx_mock) -> None:
    httpx_mock.add_response(url=REQUEST_URL, status_code=404)

    with pytest.raises(UpstreamNotFound):
        asyncio.run(LookupClient(BASE_URL).fetch(DNI))


def test_http_500_maps_to_failure(httpx_mock) -> None:
    httpx_mock.add_response(url=REQUEST_URL, status_code=502)

    with pytest.raises(UpstreamFailure):
        asyncio.run(LookupClient(BASE_URL).fetch(DNI))


def test_invalid_json_maps_to_failure(httpx_mock) -> None:
    httpx_mock.add_response(url=REQUEST_URL, content=b"<html>oops</html>")

    with pytest.raises(UpstreamFailure):
        asyncio.run(LookupClient(BASE_URL).fetch(DNI))


def test_timeout_maps_to_failure(httpx_mock) -> None:
    httpx_mock.add_exception(httpx.ReadTimeout("timeout"))

    with pytest.raises(UpstreamFailure):
        asyncio.run(LookupClient(BASE_URL, timeout_seconds=1).fetch(DNI))


def test_transport_error_is_retried_when_enabled(httpx_mock) -> None:
    httpx_mock.add_exception(httpx.ConnectError("refused"))
    httpx_mock.add_response(url=REQUEST_URL, json=_payload([]))

    result = asyncio.run(LookupClient(BASE_URL, max_attempts=2).fetch(DNI))

    assert result.principal.document_id == DNI
    assert len(httpx_mock.get_requests()) == 2


def test_injected_client_is_used(httpx_mock) -> None:
    httpx_mock.add_response(url=REQUEST_URL, json=_payload([]))

    async def run() -> None:
        async with httpx.AsyncClient() as client:
            result = await LookupClient(BASE_URL, client=client).fetch(DNI)
            assert result.principal.document_id == DNI

    asyncio.run(run())
