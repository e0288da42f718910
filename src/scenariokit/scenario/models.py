"""Scenario models - membership lists, study types and add requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from scenariokit.core.errors import ScenarioError
from scenariokit.sources.models import RecordType, SourceListItem


class StudyType(Enum):
    """Kind of study, fixes which record types a scenario may hold."""

    TV = "tv"
    TV_IX = "tv_ix"
    TV_OET74 = "tv_oet74"
    TV6_FM = "tv6_fm"
    FM = "fm"

    @property
    def record_types(self) -> frozenset[RecordType]:
        return _RECORD_TYPES[self]

    @property
    def desired_record_types(self) -> frozenset[RecordType]:
        return _DESIRED_RECORD_TYPES[self]


_RECORD_TYPES = {
    StudyType.TV: frozenset({RecordType.TV}),
    StudyType.TV_IX: frozenset({RecordType.TV}),
    StudyType.TV_OET74: frozenset({RecordType.TV, RecordType.WIRELESS}),
    StudyType.TV6_FM: frozenset({RecordType.TV, RecordType.FM}),
    StudyType.FM: frozenset({RecordType.FM}),
}

_DESIRED_RECORD_TYPES = {
    StudyType.TV: frozenset({RecordType.TV}),
    StudyType.TV_IX: frozenset({RecordType.TV}),
    StudyType.TV_OET74: frozenset({RecordType.TV}),
    StudyType.TV6_FM: frozenset({RecordType.TV, RecordType.FM}),
    StudyType.FM: frozenset({RecordType.FM}),
}


class SearchType(Enum):
    """What an add-records search is looking for."""

    DESIREDS = "desireds"
    UNDESIREDS = "undesireds"
    PROTECTEDS = "protecteds"


@dataclass(frozen=True, slots=True)
class AddRequest:
    """Flags for one add-records operation."""

    search_type: SearchType
    set_undesired: bool = False
    disable_mx: bool | None = None  # None uses the study MX config

    def item_flags(self, mx_disabled: bool) -> tuple[bool, bool]:
        """(is_desired, is_undesired) for the items this request adds."""
        if self.search_type is SearchType.UNDESIREDS:
            return False, not mx_disabled
        return True, self.set_undesired and not mx_disabled


@dataclass(frozen=True, slots=True)
class AddResult:
    """Outcome of adding candidate records to a scenario."""

    added: int
    applicable: bool = True
    reused: int = 0
    culled: int = 0
    mx_removed: int = 0
    source_ids: tuple[int, ...] = ()

    @classmethod
    def inapplicable(cls) -> AddResult:
        return cls(added=0, applicable=False)


@dataclass
class Scenario:
    """Ordered list of source memberships."""

    key: int
    name: str = ""
    items: list[SourceListItem] = field(default_factory=list)

    def find(self, source_id: int) -> SourceListItem | None:
        for item in self.items:
            if item.source_id == source_id:
                return item
        return None

    def add_or_replace(self, item: SourceListItem) -> bool:
        """Add an item or update the existing one for the same source.

        A permanent existing item keeps its flags.

        Returns:
            True when a new membership was appended.
        """
        existing = self.find(item.source_id)
        if existing is None:
            self.items.append(item)
            return True
        if not existing.is_permanent:
            existing.is_desired = item.is_desired
            existing.is_undesired = item.is_undesired
            existing.is_permanent = item.is_permanent
        return False

    def remove(self, source_id: int) -> SourceListItem | None:
        """Remove a membership.

        Raises:
            ScenarioError: The item is permanent.
        """
        item = self.find(source_id)
        if item is None:
            return None
        if item.is_permanent:
            raise ScenarioError.permanent_item(self.key, source_id)
        self.items.remove(item)
        return item

    def set_is_desired(self, source_id: int, flag: bool) -> None:
        self._editable(source_id).is_desired = flag

    def set_is_undesired(self, source_id: int, flag: bool) -> None:
        self._editable(source_id).is_undesired = flag

    def _editable(self, source_id: int) -> SourceListItem:
        item = self.find(source_id)
        if item is None:
            raise ScenarioError.unknown_source(source_id)
        if item.is_permanent:
            raise ScenarioError.permanent_item(self.key, source_id)
        return item

    @property
    def source_ids(self) -> list[int]:
        return [item.source_id for item in self.items]

    @property
    def desired_ids(self) -> list[int]:
        return [item.source_id for item in self.items if item.is_desired]

    @property
    def undesired_ids(self) -> list[int]:
        return [item.source_id for item in self.items if item.is_undesired]
