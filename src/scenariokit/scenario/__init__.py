"""Scenario membership, MX resolution and assembly."""

from scenariokit.scenario.assembler import ScenarioAssembler
from scenariokit.scenario.models import (
    AddRequest,
    AddResult,
    Scenario,
    SearchType,
    StudyType,
)
from scenariokit.scenario.mx import (
    MXOutcome,
    are_mx,
    compare_preference,
    is_operating,
    resolve_mx,
    sort_by_preference,
)

__all__ = [
    "AddRequest",
    "AddResult",
    "MXOutcome",
    "Scenario",
    "ScenarioAssembler",
    "SearchType",
    "StudyType",
    "are_mx",
    "compare_preference",
    "is_operating",
    "resolve_mx",
    "sort_by_preference",
]
