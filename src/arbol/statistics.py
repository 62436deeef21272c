"""Estadísticas agregadas del grupo familiar.

Aggregate statistics for a classified family group.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from .classifier import classify_kinship, relatives_of
from .models import Branch, FamilyGroup, Gender, Kinship, Person, Statistics, percentage

logger = logging.getLogger(__name__)

__all__ = [
    "AgeBracket",
    "AGE_BRACKET_PRESETS",
    "DEFAULT_BRACKETS",
    "bracket_for",
    "compute_statistics",
    "parse_brackets",
    "percentage",
]


@dataclass(frozen=True)
class AgeBracket:
    """Rango de edad inclusivo; ``maximum`` None significa sin tope.

    English: Inclusive age range; ``maximum`` None means open-ended.
    """

    label: str
    minimum: int
    maximum: Optional[int] = None

    def contains(self, age: int) -> bool:
        if age < self.minimum:
            return False
        return self.maximum is None or age <= self.maximum


AGE_BRACKET_PRESETS: Dict[str, tuple[AgeBracket, ...]] = {
    "estandar": (
        AgeBracket("<18", 0, 17),
        AgeBracket("18-59", 18, 59),
        AgeBracket("60+", 60, None),
    ),
    "decadas": (
        AgeBracket("0-10", 0, 10),
        AgeBracket("11-20", 11, 20),
        AgeBracket("21-40", 21, 40),
        AgeBracket("41-60", 41, 60),
        AgeBracket("60+", 61, None),
    ),
}
DEFAULT_BRACKETS = AGE_BRACKET_PRESETS["estandar"]


def parse_brackets(text: str) -> tuple[AgeBracket, ...]:
    """Construye rangos desde ``"0-17:<18,18-59,60+"``.

    Cada segmento es ``min-max`` o ``min+`` con etiqueta opcional tras ``:``.

    English:
        Build brackets from a compact string. Each segment is ``min-max`` or
        ``min+`` with an optional ``:label``. Raises ``ValueError`` on bad
        syntax or overlapping/unsorted ranges.
    """
    brackets: List[AgeBracket] = []
    for raw_segment in text.split(","):
        segment = raw_segment.strip()
        if not segment:
            continue
        bounds, _, label = segment.partition(":")
        bounds = bounds.strip()
        try:
            if bounds.endswith("+"):
                minimum, maximum = int(bounds[:-1]), None
            else:
                low, _, high = bounds.partition("-")
                minimum, maximum = int(low), int(high)
        except ValueError as exc:
            raise ValueError(f"Invalid age bracket segment: {segment!r}") from exc
        if maximum is not None and maximum < minimum:
            raise ValueError(f"Age bracket upper bound below lower bound: {segment!r}")
        brackets.append(AgeBracket(label.strip() or bounds, minimum, maximum))
    if not brackets:
        raise ValueError("At least one age bracket is required")
    for previous, current in zip(brackets, brackets[1:]):
        if previous.maximum is None or current.minimum <= previous.maximum:
            raise ValueError(f"Age brackets overlap or are unsorted: {previous.label} / {current.label}")
    return tuple(brackets)


def bracket_for(age: Optional[int], brackets: Sequence[AgeBracket] = DEFAULT_BRACKETS) -> Optional[str]:
    """Etiqueta del rango de una edad, o None si no aplica."""
    if age is None:
        return None
    for bracket in brackets:
        if bracket.contains(age):
            return bracket.label
    return None


def compute_statistics(
    group: FamilyGroup,
    relatives: Iterable[Person],
    brackets: Sequence[AgeBracket] = DEFAULT_BRACKETS,
    principal: Optional[Person] = None,
) -> Statistics:
    """Calcula conteos por sexo, rango de edad, rama y parentesco.

    Args:
        group (FamilyGroup): Resultado del clasificador.
        relatives (Iterable[Person]): Familiares planos (pre-clasificación).
        brackets (Sequence[AgeBracket]): Rangos de edad configurados.
        principal (Optional[Person]): Titular, excluido de los conteos.

    Returns:
        Statistics: Conteos con todas las claves presentes.

    English:
        Compute counts. The flat relative set goes through the same
        de-duplication as the classifier, so ``total`` always equals the sum
        of branch counts. An empty set yields all-zero statistics.
    """
    flat = relatives_of(principal, relatives)
    labels = [bracket.label for bracket in brackets]

    by_gender: Dict[Gender, int] = {gender: 0 for gender in Gender}
    by_bracket: Dict[str, int] = {label: 0 for label in labels}
    by_kinship: Dict[Kinship, int] = {kinship: 0 for kinship in Kinship}
    age_by_gender: Dict[Gender, Dict[str, int]] = {gender: {label: 0 for label in labels} for gender in Gender}
    unknown_age = 0

    for person in flat:
        by_gender[person.gender] += 1
        by_kinship[classify_kinship(person.relationship_label)] += 1
        label = bracket_for(person.age, brackets)
        if label is None:
            unknown_age += 1
            continue
        by_bracket[label] += 1
        age_by_gender[person.gender][label] += 1

    by_branch: Dict[Branch, int] = group.counts()
    total = len(flat)
    if sum(by_branch.values()) != total:
        logger.warning(
            "statistics_total_mismatch total=%s branch_total=%s",
            total,
            sum(by_branch.values()),
        )
    return Statistics(
        total=total,
        count_by_gender=by_gender,
        count_by_age_bracket=by_bracket,
        count_by_branch=by_branch,
        count_by_kinship=by_kinship,
        age_by_gender=age_by_gender,
        unknown_age=unknown_age,
    )
