"""Study edit session.

One StudySession owns the registry, record store and scenarios of one study
while it is being edited. The containing application holds an advisory study
lock so only one session edits a study at a time; within the session every
mutating call is serialized on a single re-entrant lock.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from scenariokit.config.models import ScenarioKitConfig
from scenariokit.core.errors import InternalError, ScenarioError
from scenariokit.core.logging import get_logger, set_session_id
from scenariokit.rules.models import RuleTable
from scenariokit.scenario.assembler import ScenarioAssembler
from scenariokit.scenario.models import AddRequest, AddResult, Scenario, StudyType
from scenariokit.sources.models import (
    Country,
    GeoPoint,
    Payload,
    RecordType,
    Service,
    Source,
    SourceListItem,
    StatusType,
)
from scenariokit.sources.records import ExternalRecord
from scenariokit.sources.registry import IdentifierRegistry
from scenariokit.sources.store import SourceStore

log = get_logger(__name__)

# Fields an edit may never touch, identity and sharing stay fixed for a record's life
_FIXED_FIELDS = frozenset(
    {"id", "is_locked", "external_key", "user_record_id", "original_id", "mod_count"}
)


@dataclass(frozen=True)
class SaveBatch:
    """Everything a persistence backend needs to write for one save."""

    upserts: tuple[Source, ...]
    deleted_ids: tuple[int, ...]
    scenarios: tuple[Scenario, ...]


class PersistenceBackend(Protocol):
    """Durable store for a study. Writes are delete-then-insert in one transaction."""

    def commit(self, batch: SaveBatch) -> Sequence[int]:
        """Write the batch and return the ids of every Source now persisted."""
        ...


@dataclass(frozen=True)
class ScenarioEntry:
    """One membership with its resolved Source, as handed to the study engine."""

    item: SourceListItem
    source: Source


@dataclass
class ScenarioExport:
    key: int
    name: str
    entries: list[ScenarioEntry] = field(default_factory=list)


class StudySession:
    """Single-editor session over one study."""

    def __init__(
        self,
        study_type: StudyType,
        *,
        config: ScenarioKitConfig | None = None,
        rule_table: RuleTable | None = None,
        sources: Iterable[Source] = (),
        scenarios: Iterable[Scenario] = (),
        session_id: str | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self.study_type = study_type
        self.config = config or ScenarioKitConfig()
        self.session_id = set_session_id(session_id)

        self.store = SourceStore(sources)
        self.registry = IdentifierRegistry(self.store.live_ids())
        self._scenarios: dict[int, Scenario] = {}
        for scenario in scenarios:
            for source_id in scenario.source_ids:
                if source_id not in self.store:
                    raise ScenarioError.unknown_source(source_id)
            self._scenarios[scenario.key] = scenario

        self.assembler = ScenarioAssembler(
            study_type, self.registry, self.store, rule_table, self.config
        )
        log.info(
            "study_session_opened",
            study_type=study_type.value,
            sources=len(self.store),
            scenarios=len(self._scenarios),
        )

    # -------------------------------------------------------------------------
    # Scenarios
    # -------------------------------------------------------------------------

    @property
    def scenarios(self) -> list[Scenario]:
        return list(self._scenarios.values())

    def scenario(self, key: int) -> Scenario:
        scenario = self._scenarios.get(key)
        if scenario is None:
            raise ScenarioError.not_found(key)
        return scenario

    def add_scenario(self, key: int, name: str = "") -> Scenario:
        with self._lock:
            scenario = self._scenarios.get(key)
            if scenario is None:
                scenario = Scenario(key=key, name=name)
                self._scenarios[key] = scenario
            return scenario

    def _referenced_ids(self) -> list[int]:
        return [sid for scenario in self._scenarios.values() for sid in scenario.source_ids]

    def add_records(
        self, scenario_key: int, records: Sequence[ExternalRecord], request: AddRequest
    ) -> AddResult:
        with self._lock:
            return self.assembler.add_to_scenario(self.scenario(scenario_key), records, request)

    def add_source_to_scenario(
        self,
        scenario_key: int,
        source_id: int,
        *,
        is_desired: bool,
        is_undesired: bool,
        is_permanent: bool = False,
    ) -> bool:
        """Add an existing Source directly. Returns True if a membership was appended."""
        with self._lock:
            scenario = self.scenario(scenario_key)
            source = self.store.get(source_id)
            if source is None:
                raise ScenarioError.unknown_source(source_id)
            if is_desired and source.record_type is RecordType.WIRELESS:
                raise ScenarioError.not_desirable(source_id)
            item = SourceListItem(source_id, is_desired, is_undesired, is_permanent)
            return scenario.add_or_replace(item)

    def remove_from_scenario(self, scenario_key: int, source_id: int) -> list[int]:
        """Remove a membership, releasing the Source if nothing else needs it.

        Returns:
            Ids removed from the record store.

        Raises:
            ScenarioError: Unknown scenario, or the item is permanent.
        """
        with self._lock:
            if self.scenario(scenario_key).remove(source_id) is None:
                return []
            referenced = set(self._referenced_ids())
            if source_id in referenced:
                return []
            released = self.store.release(source_id, keep=referenced)
            log.debug("source_released", source_id=source_id, removed=released)
            return released

    def set_is_desired(self, scenario_key: int, source_id: int, flag: bool) -> None:
        with self._lock:
            source = self.store.get(source_id)
            if source is None:
                raise ScenarioError.unknown_source(source_id)
            if flag and source.record_type is RecordType.WIRELESS:
                raise ScenarioError.not_desirable(source_id)
            self.scenario(scenario_key).set_is_desired(source_id, flag)

    def set_is_undesired(self, scenario_key: int, source_id: int, flag: bool) -> None:
        with self._lock:
            self.scenario(scenario_key).set_is_undesired(source_id, flag)

    # -------------------------------------------------------------------------
    # Sources
    # -------------------------------------------------------------------------

    def create_source(
        self,
        *,
        payload: Payload,
        service: Service,
        country: Country,
        location: GeoPoint,
        peak_erp_kw: float = 0.0,
        haat_m: float | None = None,
        status_type: StatusType = StatusType.OTHER,
        user_record_id: int | None = None,
        attributes: Mapping[str, str] | None = None,
    ) -> Source:
        """Create a user Source. With a user_record_id it is locked and shareable."""
        with self._lock:
            source = Source(
                id=self.registry.allocate(),
                payload=payload,
                service=service,
                country=country,
                location=location,
                peak_erp_kw=peak_erp_kw,
                haat_m=haat_m,
                status_type=status_type,
                is_locked=user_record_id is not None,
                user_record_id=user_record_id,
                attributes=dict(attributes or {}),
            )
            self.store.put(source)
            log.info("source_created", source_id=source.id, record_type=source.record_type.value)
            return source

    def edit_source(self, source_id: int, **changes: object) -> Source:
        """Revise an unlocked Source.

        Raises:
            ScenarioError: Unknown or locked source, or the edit touches
                identity fields or changes record type.
        """
        with self._lock:
            source = self.store.get(source_id)
            if source is None:
                raise ScenarioError.unknown_source(source_id)
            if source.is_locked:
                raise ScenarioError.source_locked(source_id)
            fixed = _FIXED_FIELDS.intersection(changes)
            if fixed:
                raise ScenarioError.fields_fixed(source_id, sorted(fixed))
            payload = changes.get("payload")
            if payload is not None and type(payload) is not type(source.payload):
                raise ScenarioError.record_type_fixed(source_id)
            revised = source.revise(**changes)
            self.store.put(revised)
            return revised

    def unused_count(self) -> int:
        with self._lock:
            return self.store.unused_count(self._referenced_ids())

    def remove_all_unused(self) -> list[int]:
        with self._lock:
            return self.store.remove_all_unused(self._referenced_ids())

    # -------------------------------------------------------------------------
    # Persistence and export
    # -------------------------------------------------------------------------

    def save(self, backend: PersistenceBackend) -> list[int]:
        """Write pending changes, then recycle ids no longer live.

        Returns:
            Live ids reported by the backend.
        """
        with self._lock:
            pending = self.store.pending
            upserts = tuple(
                source
                for source_id in sorted(pending.added | pending.changed)
                if (source := self.store.get(source_id)) is not None
            )
            batch = SaveBatch(
                upserts=upserts,
                deleted_ids=tuple(sorted(pending.deleted)),
                scenarios=tuple(self._scenarios.values()),
            )
            live_ids = list(backend.commit(batch))
            missing = sorted({s.id for s in upserts} - set(live_ids))
            if missing:
                raise InternalError.unexpected("backend did not persist sources", missing=missing)
            self.registry.rebuild(live_ids)
            self.store.mark_saved()
            log.info(
                "study_saved",
                upserts=len(batch.upserts),
                deleted=len(batch.deleted_ids),
                live=len(live_ids),
            )
            return live_ids

    def export_scenario(self, key: int) -> ScenarioExport:
        with self._lock:
            scenario = self.scenario(key)
            export = ScenarioExport(key=scenario.key, name=scenario.name)
            for item in scenario.items:
                source = self.store.get(item.source_id)
                if source is None:
                    raise ScenarioError.unknown_source(item.source_id)
                export.entries.append(ScenarioEntry(item=item, source=source))
            return export
