"""Scenario assembler - turns candidate records into scenario memberships.

Pipeline for one add-records operation:
    applicability -> lock check -> culling -> MX -> derive -> commit -> membership

Nothing is committed to the record store until every survivor has been
derived, so a derivation failure leaves the study unchanged apart from ids
marked in use.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from scenariokit.config.models import ScenarioKitConfig
from scenariokit.core.errors import DerivationError, ScenarioError
from scenariokit.core.logging import get_logger
from scenariokit.rules.culling import CullRole, cull
from scenariokit.rules.models import RuleTable
from scenariokit.scenario.models import AddRequest, AddResult, Scenario, SearchType, StudyType
from scenariokit.scenario.mx import resolve_mx
from scenariokit.sources.models import Source, SourceListItem
from scenariokit.sources.records import ExternalRecord, derive_replication, derive_source
from scenariokit.sources.registry import IdentifierRegistry
from scenariokit.sources.store import SourceStore

log = get_logger(__name__)


@dataclass
class _Resolved:
    """Source a survivor resolves to, and the new Sources it needs committed."""

    source: Source
    new_sources: list[Source]
    reused: bool


class ScenarioAssembler:
    """Adds candidate external records to scenarios of one study.

    Holds no lock of its own; the owning session serializes calls.
    """

    def __init__(
        self,
        study_type: StudyType,
        registry: IdentifierRegistry,
        store: SourceStore,
        rule_table: RuleTable | None,
        config: ScenarioKitConfig,
    ) -> None:
        self.study_type = study_type
        self.registry = registry
        self.store = store
        self.rule_table = rule_table
        self.config = config

    def is_applicable(self, records: Sequence[ExternalRecord], search_type: SearchType) -> bool:
        """Whether the study type admits these record types for this search."""
        admitted = self.study_type.record_types
        if search_type is not SearchType.UNDESIREDS:
            admitted = self.study_type.desired_record_types
        return all(record.record_type in admitted for record in records)

    def _members(self, scenario: Scenario, source_ids: Sequence[int]) -> list[Source]:
        members: list[Source] = []
        for source_id in source_ids:
            source = self.store.get(source_id)
            if source is None:
                raise ScenarioError.unknown_source(source_id)
            members.append(source)
        return members

    def _cull(
        self,
        scenario: Scenario,
        records: Sequence[ExternalRecord],
        search_type: SearchType,
    ) -> list[ExternalRecord]:
        if search_type is SearchType.DESIREDS:
            return list(records)

        if search_type is SearchType.UNDESIREDS:
            role = CullRole.UNDESIRED
            references = self._members(scenario, scenario.desired_ids)
        else:
            role = CullRole.DESIRED
            references = self._members(scenario, scenario.undesired_ids)

        # Cull on the channel each candidate will occupy in the scenario
        placed = [record.as_replicated() for record in records]
        by_placed = {id(p): record for p, record in zip(placed, records)}
        survivors = cull(
            placed,
            references,
            self.rule_table,
            self.config.study,
            role,
            scenario_key=scenario.key,
        )
        return [by_placed[id(p)] for p in survivors]

    def _resolve(self, record: ExternalRecord) -> _Resolved:
        new_sources: list[Source] = []
        namespace, record_id = record.dataset_id, record.record_id

        original = self.store.find_shared(namespace, record_id)
        original_reused = original is not None
        if original is None:
            original = derive_source(record, self.registry.allocate())
            new_sources.append(original)

        channel = record.replication_channel
        if channel is None:
            return _Resolved(original, new_sources, original_reused)

        replication = None
        if original_reused:
            replication = self.store.find_shared_replication(namespace, record_id, channel)
        if replication is not None:
            return _Resolved(replication, new_sources, True)

        replication = derive_replication(original, self.registry.allocate(), channel)
        new_sources.append(replication)
        return _Resolved(replication, new_sources, False)

    def add_to_scenario(
        self,
        scenario: Scenario,
        records: Sequence[ExternalRecord],
        request: AddRequest,
    ) -> AddResult:
        """Add candidate records to a scenario.

        Returns:
            AddResult with the count of newly appended memberships, or
            AddResult.inapplicable() when the study does not admit the
            records for this search.

        Raises:
            ScenarioError: Missing desired/undesired stations or rule table.
            DerivationError: A candidate is not locked or fails validation.
            IdentityError: Source ids are exhausted.
        """
        if not self.is_applicable(records, request.search_type):
            log.info(
                "scenario_add_not_applicable",
                scenario_key=scenario.key,
                study_type=self.study_type.value,
                search_type=request.search_type.value,
            )
            return AddResult.inapplicable()

        for record in records:
            if not record.is_locked:
                raise DerivationError.invalid_record(
                    record.dataset_id, record.record_id, "candidate is not a locked primary record"
                )

        mx_disabled = (
            self.config.mx.disable_mx if request.disable_mx is None else request.disable_mx
        )

        survivors = self._cull(scenario, records, request.search_type)
        existing = self._members(scenario, scenario.source_ids)
        outcome = resolve_mx(
            survivors,
            existing,
            self.config.mx,
            self.config.study.km_per_degree,
            disable_mx=mx_disabled,
        )

        resolved = [self._resolve(record) for record in outcome.survivors]

        for entry in resolved:
            for source in entry.new_sources:
                self.store.put(source)

        is_desired, is_undesired = request.item_flags(mx_disabled)
        added = 0
        for entry in resolved:
            item = SourceListItem(entry.source.id, is_desired, is_undesired)
            if scenario.add_or_replace(item):
                added += 1

        result = AddResult(
            added=added,
            reused=sum(1 for entry in resolved if entry.reused),
            culled=len(records) - len(survivors),
            mx_removed=len(outcome.mx_removed) + len(outcome.duplicates),
            source_ids=tuple(entry.source.id for entry in resolved),
        )
        log.info(
            "scenario_records_added",
            scenario_key=scenario.key,
            search_type=request.search_type.value,
            candidates=len(records),
            added=result.added,
            reused=result.reused,
            culled=result.culled,
            mx_removed=result.mx_removed,
        )
        return result
