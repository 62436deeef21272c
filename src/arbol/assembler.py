"""Ensamblado de páginas del reporte genealógico.

English:
    Report assembly: decides section order and splits each branch into
    fixed-size pages. Produces page descriptors only; pixel placement belongs
    to the renderers.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple, TypeVar

from .models import Branch, FamilyGroup, PageDescriptor, Person, SectionType, Statistics

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_CAPACITY = 15
EMPTY_BRANCH_MESSAGE = "No se encontraron registros"

PRINCIPAL_TITLE = "REPORTE GENEALOGICO PROFESIONAL"
LEGEND_TITLE = "LEYENDA VISUAL"
STATISTICS_TITLE = "Datos y Estadísticas"

BRANCH_TITLES = {
    Branch.DIRECT: "FAMILIA DIRECTA",
    Branch.PATERNAL: "RAMA GENEALOGICA PATERNA",
    Branch.MATERNAL: "RAMA GENEALOGICA MATERNA",
    Branch.EXTENDED: "FAMILIA EXTENDIDA / POLITICA",
}
# Título corto para páginas de continuación. / Short title for continuation pages.
BRANCH_SHORT_TITLES = {
    Branch.DIRECT: "FAMILIA DIRECTA",
    Branch.PATERNAL: "RAMA PATERNA",
    Branch.MATERNAL: "RAMA MATERNA",
    Branch.EXTENDED: "FAMILIA EXTENDIDA",
}
LEGEND_LABELS = {
    Branch.DIRECT: "Familia Directa",
    Branch.PATERNAL: "Familia Paterna",
    Branch.MATERNAL: "Familia Materna",
    Branch.EXTENDED: "Familia Extendida/Politica",
}


def chunk(items: Sequence[T], capacity: int) -> List[Tuple[T, ...]]:
    """Divide en bloques consecutivos de a lo sumo ``capacity`` elementos."""
    if capacity < 1:
        raise ValueError(f"page capacity must be >= 1, got {capacity}")
    return [tuple(items[start : start + capacity]) for start in range(0, len(items), capacity)]


def branch_pages(branch: Branch, members: Sequence[Person], page_capacity: int) -> List[PageDescriptor]:
    """Descriptores de una rama; una rama vacía produce un único marcador.

    English:
        Descriptors for one branch. An empty branch still yields exactly one
        descriptor flagged ``empty`` so the renderer can show a message.
    """
    if not members:
        return [
            PageDescriptor(
                section=SectionType.BRANCH_LISTING,
                title=BRANCH_TITLES[branch],
                branch=branch,
                empty=True,
                message=EMPTY_BRANCH_MESSAGE,
            )
        ]
    chunks = chunk(members, page_capacity)
    pages: List[PageDescriptor] = []
    for index, items in enumerate(chunks, start=1):
        title = BRANCH_TITLES[branch] if index == 1 else f"{BRANCH_SHORT_TITLES[branch]} (Cont.)"
        pages.append(
            PageDescriptor(
                section=SectionType.BRANCH_LISTING,
                title=title,
                branch=branch,
                page_index=index,
                page_count=len(chunks),
                items=items,
            )
        )
    return pages


def assemble_report(
    principal: Person,
    group: FamilyGroup,
    statistics: Statistics,
    page_capacity: int = DEFAULT_PAGE_CAPACITY,
) -> List[PageDescriptor]:
    """Secuencia determinística de páginas del reporte.

    Orden: resumen del titular, leyenda, ramas (directa, paterna, materna,
    extendida) y estadísticas.

    Args:
        principal (Person): Persona consultada.
        group (FamilyGroup): Familiares clasificados.
        statistics (Statistics): Conteos agregados.
        page_capacity (int): Tarjetas por página.

    Returns:
        List[PageDescriptor]: Páginas en orden de renderizado.

    English:
        Deterministic page sequence: principal summary, legend, each branch in
        display order, statistics.
    """
    if page_capacity < 1:
        raise ValueError(f"page capacity must be >= 1, got {page_capacity}")
    pages: List[PageDescriptor] = [
        PageDescriptor(
            section=SectionType.PRINCIPAL_SUMMARY,
            title=PRINCIPAL_TITLE,
            items=(principal,),
        ),
        PageDescriptor(section=SectionType.LEGEND, title=LEGEND_TITLE),
    ]
    for branch in Branch:
        pages.extend(branch_pages(branch, group[branch], page_capacity))
    pages.append(
        PageDescriptor(
            section=SectionType.STATISTICS,
            title=STATISTICS_TITLE,
            empty=statistics.total == 0,
        )
    )
    logger.info(
        "assembler_pages_built pages=%s relatives=%s capacity=%s",
        len(pages),
        statistics.total,
        page_capacity,
    )
    return pages
