# Normalize Module
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

"""Normalización de registros de personas desde esquemas heterogéneos.

Cada esquema conocido del servicio externo tiene su adaptador y, por campo,
una lista ordenada de claves de origen: gana la primera clave no vacía.

English:
    Normalize person records from heterogeneous upstream schemas. Each known
    schema has its own adapter and, per canonical field, an ordered tuple of
    source keys; the first non-empty source wins. Never raises for missing
    or malformed data.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
import re
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from .models import Gender, Person

logger = logging.getLogger(__name__)

SCHEMA_COMPACT = "compacto"
SCHEMA_EXTENDED = "extendido"

# Orden de prioridad por campo canónico. / Source priority per canonical field.
FIELD_SOURCES: Dict[str, Dict[str, Tuple[str, ...]]] = {
    SCHEMA_COMPACT: {
        "document_id": ("dni", "numero_documento"),
        "verification_digit": ("dv", "digito_verificador"),
        "given_names": ("nom", "nombres"),
        "paternal_surname": ("ap", "apellido_paterno"),
        "maternal_surname": ("am", "apellido_materno"),
        "gender": ("ge", "sexo"),
        "age": ("edad",),
        "birth_date": ("fn", "fecha_nacimiento"),
        "relationship_label": ("tipo", "parentesco"),
    },
    SCHEMA_EXTENDED: {
        "document_id": ("numero_documento", "dni", "documento"),
        "verification_digit": ("digito_verificador", "dv"),
        "given_names": ("nombres", "nombre", "prenombres"),
        "paternal_surname": ("apellido_paterno", "paterno"),
        "maternal_surname": ("apellido_materno", "materno"),
        "gender": ("sexo", "genero"),
        "age": ("edad",),
        "birth_date": ("fecha_nacimiento", "nacimiento"),
        "relationship_label": ("parentesco", "relacion", "tipo"),
    },
}

# Claves que delatan cada esquema. / Keys that identify each schema.
_SCHEMA_MARKERS: Tuple[Tuple[str, frozenset], ...] = (
    (SCHEMA_COMPACT, frozenset({"nom", "ap", "am", "tipo", "ge"})),
    (SCHEMA_EXTENDED, frozenset({"nombres", "apellido_paterno", "apellido_materno", "parentesco", "sexo"})),
)

_MALE_VALUES = {"MASCULINO", "M", "MALE", "HOMBRE", "H", "VARON", "VARÓN"}
_FEMALE_VALUES = {"FEMENINO", "F", "FEMALE", "MUJER"}
_AGE_PATTERN = re.compile(r"^\s*(\d{1,3})")


def detect_schema(raw: Mapping[str, Any]) -> str:
    """Detecta el esquema por coincidencia de claves; compacto por defecto.

    English: Pick the schema whose marker keys overlap most; compact on ties.
    """
    keys = set(raw.keys())
    best_schema, best_hits = SCHEMA_COMPACT, 0
    for schema, markers in _SCHEMA_MARKERS:
        hits = len(keys & markers)
        if hits > best_hits:
            best_schema, best_hits = schema, hits
    return best_schema


def _first_value(raw: Mapping[str, Any], sources: Tuple[str, ...]) -> Any:
    for key in sources:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split()).upper()


def _optional_text(value: Any) -> Optional[str]:
    cleaned = _clean_text(value)
    return cleaned or None


def parse_gender(value: Any) -> Gender:
    """Mapea el vocabulario de sexo del origen. / Map upstream gender vocabulary."""
    cleaned = _clean_text(value)
    if cleaned in _MALE_VALUES:
        return Gender.MALE
    if cleaned in _FEMALE_VALUES:
        return Gender.FEMALE
    return Gender.UNKNOWN


def parse_age(value: Any) -> Optional[int]:
    """Edad no negativa o None. Acepta ``34``, ``"34"`` y ``"34 años"``.

    English: Non-negative age or None; booleans and garbage become None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value >= 0 else None
    match = _AGE_PATTERN.match(str(value))
    if not match:
        return None
    return int(match.group(1))


def _document_id(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _adapt(raw: Mapping[str, Any], sources: Dict[str, Tuple[str, ...]]) -> Person:
    return Person(
        document_id=_document_id(_first_value(raw, sources["document_id"])),
        given_names=_clean_text(_first_value(raw, sources["given_names"])),
        paternal_surname=_clean_text(_first_value(raw, sources["paternal_surname"])),
        maternal_surname=_clean_text(_first_value(raw, sources["maternal_surname"])),
        gender=parse_gender(_first_value(raw, sources["gender"])),
        age=parse_age(_first_value(raw, sources["age"])),
        birth_date=_optional_text(_first_value(raw, sources["birth_date"])),
        relationship_label=_optional_text(_first_value(raw, sources["relationship_label"])),
        verification_digit=_optional_text(_first_value(raw, sources["verification_digit"])),
    )


def adapt_compact(raw: Mapping[str, Any]) -> Person:
    """Adaptador para ``dni/nom/ap/am/ge/edad/fn/tipo``."""
    return _adapt(raw, FIELD_SOURCES[SCHEMA_COMPACT])


def adapt_extended(raw: Mapping[str, Any]) -> Person:
    """Adaptador para ``nombres/apellido_paterno/apellido_materno/sexo/parentesco``."""
    return _adapt(raw, FIELD_SOURCES[SCHEMA_EXTENDED])


ADAPTERS: Dict[str, Callable[[Mapping[str, Any]], Person]] = {
    SCHEMA_COMPACT: adapt_compact,
    SCHEMA_EXTENDED: adapt_extended,
}


def normalize_record(raw: Mapping[str, Any], schema: Optional[str] = None) -> Person:
    """Convierte un registro crudo a ``Person``.

    Args:
        raw (Mapping[str, Any]): Registro tal como lo entrega el servicio externo.
        schema (Optional[str]): Esquema explícito; se detecta si es None.

    Returns:
        Person: Persona normalizada (mejor esfuerzo).

    English:
        Convert one raw record into a ``Person``. Unknown schema hints fall
        back to detection; missing fields resolve to defaults.
    """
    if not isinstance(raw, Mapping):
        raise TypeError(f"Person record must be a mapping, got {type(raw).__name__}")
    selected = schema if schema in ADAPTERS else detect_schema(raw)
    if schema and schema not in ADAPTERS:
        logger.warning("normalize_unknown_schema schema=%s detected=%s", schema, selected)
    return ADAPTERS[selected](raw)


def normalize_principal(raw: Mapping[str, Any], schema: Optional[str] = None) -> Person:
    """Normaliza al titular; el titular nunca lleva parentesco.

    English: Normalize the principal; it never carries a relationship label.
    """
    person = normalize_record(raw, schema)
    if person.relationship_label is None:
        return person
    return replace(person, relationship_label=None)
