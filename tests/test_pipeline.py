"""Pruebas del flujo registro crudo -> clasificación -> estadísticas.

English: Raw record to classification to statistics, end to end.
"""

from __future__ import annotations

from arbol.classifier import classify_relatives
from arbol.models import Branch
from arbol.normalize import normalize_principal, normalize_record
from arbol.statistics import compute_statistics

PRINCIPAL = {"dni": "12345678", "nom": "ANA", "ap": "LOPEZ", "am": "DIAZ"}
RELATIVES = [
    {"tipo": "MADRE", "dni": "1"},
    {"tipo": "TIO PATERNO", "dni": "2"},
    {"tipo": "PRIMA MATERNA", "dni": "3"},
    {"tipo": "CUÑADO", "dni": "4"},
]


def _run(principal_raw, relatives_raw):
    principal = normalize_principal(principal_raw)
    relatives = [normalize_record(raw) for raw in relatives_raw]
    group = classify_relatives(principal, relatives)
    return group, compute_statistics(group, relatives, principal=principal)


def _ids(people):
    return [person.document_id for person in people]


def test_raw_records_flow_into_one_relative_per_branch() -> None:
    group, stats = _run(PRINCIPAL, RELATIVES)

    assert _ids(group[Branch.DIRECT]) == ["1"]
    assert _ids(group[Branch.PATERNAL]) == ["2"]
    assert _ids(group[Branch.MATERNAL]) == ["3"]
    assert _ids(group[Branch.EXTENDED]) == ["4"]
    assert stats.count_by_branch == {branch: 1 for branch in Branch}
    assert stats.total == 4


def test_same_input_yields_identical_group_and_statistics() -> None:
    first_group, first_stats = _run(PRINCIPAL, RELATIVES)
    second_group, second_stats = _run(PRINCIPAL, RELATIVES)

    assert first_group == second_group
    assert first_stats == second_stats
