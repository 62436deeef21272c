"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/arbol/models.py`.
Modelos inmutables del reporte: personas, ramas familiares, estadísticas y
descriptores de página consumidos por los renderizadores.

Componentes detectados:
  - Gender
  - Branch
  - Kinship
  - Person
  - FamilyGroup
  - Statistics
  - SectionType
  - PageDescriptor

======================== ENGLISH ========================
File: `src/arbol/models.py`.
Immutable report models: persons, family branches, statistics and the page
descriptors consumed by the renderers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Mapping, Optional, Tuple

NOT_AVAILABLE = "N/A"


def percentage(count: int, total: int) -> int:
    """Porcentaje entero con redondeo half-up y total mínimo 1.

    English:
        Integer percentage, round-half-up, denominator floored to 1 so an
        empty relative set yields 0 instead of a division error.
    """
    denominator = max(total, 1)
    value = (200 * max(count, 0) + denominator) // (2 * denominator)
    return min(value, 100)


class Gender(str, Enum):
    """Sexo normalizado. / Normalized gender."""

    MALE = "MALE"
    FEMALE = "FEMALE"
    UNKNOWN = "UNKNOWN"


class Branch(str, Enum):
    """Rama familiar en orden de presentación.

    English: Family branch, declared in display order.
    """

    DIRECT = "DIRECT"
    PATERNAL = "PATERNAL"
    MATERNAL = "MATERNAL"
    EXTENDED = "EXTENDED"


class Kinship(str, Enum):
    """Parentesco fino; solo para presentación y conteos.

    English: Fine-grained kinship; display and counts only, never changes the
    coarse branch.
    """

    PARENT = "PARENT"
    SIBLING = "SIBLING"
    CHILD = "CHILD"
    GRANDPARENT = "GRANDPARENT"
    AUNT_UNCLE = "AUNT_UNCLE"
    COUSIN = "COUSIN"
    NEPHEW_NIECE = "NEPHEW_NIECE"
    IN_LAW = "IN_LAW"
    SPOUSE = "SPOUSE"
    OTHER = "OTHER"


@dataclass(frozen=True)
class Person:
    """Persona consultada o familiar.

    Attributes:
        document_id (str): DNI; vacío si el origen no lo trae.
        given_names (str): Nombres en mayúsculas.
        paternal_surname (str): Apellido paterno.
        maternal_surname (str): Apellido materno.
        gender (Gender): Sexo normalizado.
        age (Optional[int]): Edad en años, si se conoce.
        birth_date (Optional[str]): Fecha de nacimiento tal como llega.
        relationship_label (Optional[str]): Parentesco; None para el titular.
        verification_digit (Optional[str]): Dígito verificador del DNI.

    English:
        Principal or relative. Text fields hold "" when missing (comparison
        form); use ``display`` for the "N/A" presentation form.
    """

    document_id: str = ""
    given_names: str = ""
    paternal_surname: str = ""
    maternal_surname: str = ""
    gender: Gender = Gender.UNKNOWN
    age: Optional[int] = None
    birth_date: Optional[str] = None
    relationship_label: Optional[str] = None
    verification_digit: Optional[str] = None

    @property
    def surnames(self) -> str:
        return " ".join(part for part in (self.paternal_surname, self.maternal_surname) if part)

    @property
    def full_name(self) -> str:
        parts = (self.given_names, self.paternal_surname, self.maternal_surname)
        name = " ".join(part for part in parts if part)
        return name or NOT_AVAILABLE

    @property
    def document_label(self) -> str:
        """DNI con dígito verificador cuando existe (``12345678-9``)."""
        if not self.document_id:
            return NOT_AVAILABLE
        if self.verification_digit:
            return f"{self.document_id}-{self.verification_digit}"
        return self.document_id

    def display(self, field_name: str) -> str:
        """Valor de presentación; "N/A" si está vacío.

        English: Display value for a field; "N/A" when empty or absent.
        """
        value = getattr(self, field_name)
        if value is None or value == "":
            return NOT_AVAILABLE
        if isinstance(value, Enum):
            return value.value
        return str(value)


@dataclass(frozen=True)
class FamilyGroup:
    """Resultado de la clasificación: rama -> familiares en orden de origen.

    English: Classification output. Every Branch key is present, possibly
    with an empty tuple.
    """

    branches: Mapping[Branch, Tuple[Person, ...]]

    def __post_init__(self) -> None:
        complete = {branch: tuple(self.branches.get(branch, ())) for branch in Branch}
        object.__setattr__(self, "branches", complete)

    def __getitem__(self, branch: Branch) -> Tuple[Person, ...]:
        return self.branches[branch]

    def members(self) -> Iterator[Person]:
        for branch in Branch:
            yield from self.branches[branch]

    def counts(self) -> Dict[Branch, int]:
        return {branch: len(self.branches[branch]) for branch in Branch}

    def __len__(self) -> int:
        return sum(len(people) for people in self.branches.values())


@dataclass(frozen=True)
class Statistics:
    """Conteos derivados de un grupo familiar.

    English: Derived counts. ``percentage`` never divides by zero.
    """

    total: int
    count_by_gender: Dict[Gender, int]
    count_by_age_bracket: Dict[str, int]
    count_by_branch: Dict[Branch, int]
    count_by_kinship: Dict[Kinship, int] = field(default_factory=dict)
    age_by_gender: Dict[Gender, Dict[str, int]] = field(default_factory=dict)
    unknown_age: int = 0

    def percentage(self, count: int) -> int:
        return percentage(count, self.total)

    def to_dict(self) -> Dict[str, object]:
        return {
            "total": self.total,
            "por_sexo": {gender.value: count for gender, count in self.count_by_gender.items()},
            "por_edad": dict(self.count_by_age_bracket),
            "edad_desconocida": self.unknown_age,
            "por_rama": {branch.value: count for branch, count in self.count_by_branch.items()},
            "por_parentesco": {kin.value: count for kin, count in self.count_by_kinship.items()},
        }


class SectionType(str, Enum):
    """Tipo de sección del reporte. / Report section type."""

    PRINCIPAL_SUMMARY = "PRINCIPAL_SUMMARY"
    LEGEND = "LEGEND"
    BRANCH_LISTING = "BRANCH_LISTING"
    STATISTICS = "STATISTICS"


@dataclass(frozen=True)
class PageDescriptor:
    """Instrucción de página para el renderizador.

    Attributes:
        section (SectionType): Tipo de sección.
        title (str): Título visible de la página.
        branch (Optional[Branch]): Rama para listados; None en otras secciones.
        page_index (int): Parte (1-based) dentro de la rama.
        page_count (int): Total de partes de la rama.
        items (Tuple[Person, ...]): Personas a dibujar.
        empty (bool): Marca explícita de "sin registros".
        message (Optional[str]): Mensaje del estado vacío.

    English:
        Page instruction handed to the renderer, one at a time.
    """

    section: SectionType
    title: str
    branch: Optional[Branch] = None
    page_index: int = 1
    page_count: int = 1
    items: Tuple[Person, ...] = ()
    empty: bool = False
    message: Optional[str] = None

    @property
    def part_label(self) -> Optional[str]:
        if self.page_count <= 1:
            return None
        return f"Parte {self.page_index}"
