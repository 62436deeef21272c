# Conftest Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Bloqueo de red en tests
#   2) Fábricas de personas y configuración
#
# EN: Quick index
#   1) Network blocking in tests
#   2) Person and settings factories

from __future__ import annotations

import socket
from typing import Any, Dict, Optional

import pytest

from arbol.config import ArbolSettings
from arbol.models import Gender, Person

LOOKUP_URL = "https://arbol.example.test/api/arbol"


@pytest.fixture(autouse=True)
def block_network(monkeypatch: pytest.MonkeyPatch) -> None:
    """Impide conexiones de red reales en tests.

    English:
        Prevents real network connections in tests.
    """

    def guarded_connect(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("Network access is disabled during tests.")

    def guarded_create_connection(*args: Any, **kwargs: Any) -> None:
        raise RuntimeError("Network access is disabled during tests.")

    monkeypatch.setattr(socket.socket, "connect", guarded_connect, raising=True)
    monkeypatch.setattr(socket, "create_connection", guarded_create_connection, raising=True)


def make_person(
    document_id: str = "",
    label: Optional[str] = None,
    gender: Gender = Gender.UNKNOWN,
    age: Optional[int] = None,
    given_names: str = "JUAN",
    paternal_surname: str = "PEREZ",
    maternal_surname: str = "LOPEZ",
) -> Person:
    return Person(
        document_id=document_id,
        given_names=given_names,
        paternal_surname=paternal_surname,
        maternal_surname=maternal_surname,
        gender=gender,
        age=age,
        relationship_label=label,
    )


def raw_record(dni: str, label: str, gender: str = "M", age: Any = 30, name: str = "ANA") -> Dict[str, Any]:
    """Registro crudo en esquema compacto. / Raw compact-schema record."""
    return {
        "dni": dni,
        "nom": name,
        "ap": "PEREZ",
        "am": "LOPEZ",
        "ge": gender,
        "edad": age,
        "tipo": label,
    }


@pytest.fixture()
def person_factory():
    return make_person


@pytest.fixture()
def settings(monkeypatch: pytest.MonkeyPatch) -> ArbolSettings:
    for name in (
        "CACHE_BUCKET",
        "REPORT_SIGNING_KEY",
        "AGE_BRACKETS",
        "AGE_BRACKET_PRESET",
        "API_BASE_URL",
        "PAGE_CAPACITY",
        "DNI_STRICT",
        "DNI_LENGTH",
        "CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    return ArbolSettings(_env_file=None, ARBOL_GENEALOGICO_API_URL=LOOKUP_URL)


@pytest.fixture()
def record_factory():
    return raw_record
