"""Clasificación de familiares en ramas (directa, paterna, materna, extendida).

Reglas en orden, gana la primera que coincide:

1. El parentesco es o contiene PADRE, MADRE, HERMANO, HERMANA, HIJO o
   HIJA -> DIRECT (HIJOS, HERMANASTRO, COMPADRE incluidos).
2. El parentesco contiene PATERNO/PATERNA -> PATERNAL.
3. El parentesco contiene MATERNO/MATERNA -> MATERNAL.
4. Cualquier otro caso, incluido el vacío -> EXTENDED.

English:
    Assign every relative to exactly one branch using the ordered rules
    above. Output order within a branch follows upstream order; duplicates by
    document id keep the first occurrence.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Branch, FamilyGroup, Kinship, Person

logger = logging.getLogger(__name__)

DIRECT_MARKERS = ("PADRE", "MADRE", "HERMANO", "HERMANA", "HIJO", "HIJA")
PATERNAL_MARKERS = ("PATERNO", "PATERNA")
MATERNAL_MARKERS = ("MATERNO", "MATERNA")

_WORD_PATTERN = re.compile(r"[^\W\d_]+")

# Palabras sin tildes; se compara contra el parentesco sin diacríticos.
_KINSHIP_WORDS: Dict[str, Kinship] = {
    "PADRE": Kinship.PARENT,
    "MADRE": Kinship.PARENT,
    "HERMANO": Kinship.SIBLING,
    "HERMANA": Kinship.SIBLING,
    "HIJO": Kinship.CHILD,
    "HIJA": Kinship.CHILD,
    "ABUELO": Kinship.GRANDPARENT,
    "ABUELA": Kinship.GRANDPARENT,
    "BISABUELO": Kinship.GRANDPARENT,
    "BISABUELA": Kinship.GRANDPARENT,
    "TIO": Kinship.AUNT_UNCLE,
    "TIA": Kinship.AUNT_UNCLE,
    "PRIMO": Kinship.COUSIN,
    "PRIMA": Kinship.COUSIN,
    "SOBRINO": Kinship.NEPHEW_NIECE,
    "SOBRINA": Kinship.NEPHEW_NIECE,
    "CUNADO": Kinship.IN_LAW,
    "CUNADA": Kinship.IN_LAW,
    "SUEGRO": Kinship.IN_LAW,
    "SUEGRA": Kinship.IN_LAW,
    "YERNO": Kinship.IN_LAW,
    "NUERA": Kinship.IN_LAW,
    "ESPOSO": Kinship.SPOUSE,
    "ESPOSA": Kinship.SPOUSE,
    "CONYUGE": Kinship.SPOUSE,
}


def _normalize_label(label: Optional[str]) -> str:
    if not label:
        return ""
    return " ".join(str(label).split()).upper()


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def classify_label(label: Optional[str]) -> Branch:
    """Rama para un parentesco libre.

    Args:
        label (Optional[str]): Parentesco tal como llega (p. ej. "tio paterno").

    Returns:
        Branch: Rama asignada; EXTENDED si no se reconoce.

    English:
        Branch for a free-text relationship label. Total: unknown or empty
        labels land in EXTENDED.
    """
    normalized = _normalize_label(label)
    if not normalized:
        return Branch.EXTENDED
    if any(marker in normalized for marker in DIRECT_MARKERS):
        return Branch.DIRECT
    if any(marker in normalized for marker in PATERNAL_MARKERS):
        return Branch.PATERNAL
    if any(marker in normalized for marker in MATERNAL_MARKERS):
        return Branch.MATERNAL
    return Branch.EXTENDED


def classify_kinship(label: Optional[str]) -> Kinship:
    """Parentesco fino según la primera palabra reconocida.

    English: Fine kinship from the first recognized word, left to right, so
    "PRIMO HERMANO" is a cousin and "MEDIO HERMANO" a sibling. Plural and
    step forms ("HIJOS", "HERMANASTRO") match by their longest known prefix.
    """
    normalized = _strip_accents(_normalize_label(label))
    for word in _WORD_PATTERN.findall(normalized):
        kinship = _KINSHIP_WORDS.get(word) or _kinship_by_prefix(word)
        if kinship is not None:
            return kinship
    return Kinship.OTHER


def _kinship_by_prefix(word: str) -> Optional[Kinship]:
    matches = [known for known in _KINSHIP_WORDS if word.startswith(known)]
    if not matches:
        return None
    return _KINSHIP_WORDS[max(matches, key=len)]


def deduplicate(relatives: Iterable[Person]) -> List[Person]:
    """Elimina duplicados por DNI conservando la primera aparición.

    English: Drop repeated document ids, first occurrence wins. Records
    without a document id cannot collide and are always kept.
    """
    seen: set[str] = set()
    unique: List[Person] = []
    for person in relatives:
        if person.document_id:
            if person.document_id in seen:
                logger.debug("classifier_duplicate_dropped document_id=%s", person.document_id)
                continue
            seen.add(person.document_id)
        unique.append(person)
    return unique


def relatives_of(principal: Optional[Person], relatives: Iterable[Person]) -> List[Person]:
    """Familiares deduplicados sin el titular. / De-duplicated relatives minus the principal."""
    principal_id = principal.document_id if principal else ""
    unique = deduplicate(relatives)
    if not principal_id:
        return unique
    return [person for person in unique if person.document_id != principal_id]


def classify_relatives(principal: Optional[Person], relatives: Iterable[Person]) -> FamilyGroup:
    """Agrupa familiares por rama.

    Args:
        principal (Optional[Person]): Titular; nunca aparece en una rama.
        relatives (Iterable[Person]): Familiares normalizados en orden de origen.

    Returns:
        FamilyGroup: Rama -> familiares, con todas las ramas presentes.

    English:
        Group relatives by branch. Deterministic for a given input order.
    """
    buckets: Dict[Branch, List[Person]] = {branch: [] for branch in Branch}
    for person in relatives_of(principal, relatives):
        buckets[classify_label(person.relationship_label)].append(person)
    grouped: Dict[Branch, Tuple[Person, ...]] = {branch: tuple(people) for branch, people in buckets.items()}
    logger.info(
        "classifier_grouped direct=%s paternal=%s maternal=%s extended=%s",
        len(grouped[Branch.DIRECT]),
        len(grouped[Branch.PATERNAL]),
        len(grouped[Branch.MATERNAL]),
        len(grouped[Branch.EXTENDED]),
    )
    return FamilyGroup(grouped)
