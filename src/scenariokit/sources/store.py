"""Canonical record store.

Holds the one Source per id for a study, keeps the sharing index over locked
Sources, and tracks the changes made since the last save.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Collection, Iterable, Iterator
from dataclasses import dataclass, field

from scenariokit.core.logging import get_logger
from scenariokit.sources.index import SharingIndex
from scenariokit.sources.models import Source

log = get_logger(__name__)


@dataclass
class PendingChanges:
    """Ids touched since the last save."""

    added: set[int] = field(default_factory=set)
    changed: set[int] = field(default_factory=set)
    deleted: set[int] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.changed or self.deleted)


class SourceStore:
    """Mapping from source id to the canonical Source, plus the sharing index.

    Not thread-safe on its own; the owning session serializes access.
    """

    def __init__(self, sources: Iterable[Source] = ()) -> None:
        self._sources: dict[int, Source] = {}
        self._index = SharingIndex()
        # Reference counts of originals, one per replication in the store
        self._replication_originals: Counter[int] = Counter()
        self._pending = PendingChanges()
        for source in sources:
            self._sources[source.id] = source
        self.rebuild_index()

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def get(self, source_id: int) -> Source | None:
        return self._sources.get(source_id)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._sources

    def __len__(self) -> int:
        return len(self._sources)

    def __iter__(self) -> Iterator[Source]:
        return iter(list(self._sources.values()))

    def live_ids(self) -> list[int]:
        return sorted(self._sources)

    def _resolve(self, found: Source | None) -> Source | None:
        # Index entries may be stale after remove(); only return what the store holds
        if found is None or self._sources.get(found.id) is not found:
            return None
        return found

    def find_shared(self, namespace: int, external_id: str) -> Source | None:
        return self._resolve(self._index.find(namespace, external_id))

    def find_shared_replication(
        self, namespace: int, external_id: str, channel: int
    ) -> Source | None:
        return self._resolve(self._index.find_replication(namespace, external_id, channel))

    def is_shared(self, source: Source) -> bool:
        """True when the index currently resolves to exactly this Source."""
        namespace = source.namespace
        shared_id = source.shared_id
        if namespace is None or shared_id is None:
            return False
        if source.is_replication and source.channel is not None:
            return self.find_shared_replication(namespace, shared_id, source.channel) is source
        return self.find_shared(namespace, shared_id) is source

    def is_replication_original(self, source_id: int) -> bool:
        return self._replication_originals[source_id] > 0

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def put(self, source: Source) -> None:
        """Insert or replace a Source and file it in the index when shareable."""
        previous = self._sources.get(source.id)
        if previous is None:
            if source.id in self._pending.deleted:
                self._pending.deleted.discard(source.id)
                self._pending.changed.add(source.id)
            else:
                self._pending.added.add(source.id)
        else:
            if previous.original_id is not None:
                self._replication_originals[previous.original_id] -= 1
            if source.id not in self._pending.added:
                self._pending.changed.add(source.id)

        self._sources[source.id] = source
        if source.original_id is not None:
            self._replication_originals[source.original_id] += 1
        self._file(source)

    def _file(self, source: Source) -> None:
        if not source.is_locked:
            return
        if source.original_id is not None:
            original = self._sources.get(source.original_id)
            if original is None or not original.is_locked:
                return
        self._index.file(source)

    def remove(self, source_id: int) -> Source | None:
        """Delete from the store. Index entries stay until rebuild_index()."""
        source = self._sources.pop(source_id, None)
        if source is None:
            return None
        if source.original_id is not None:
            self._replication_originals[source.original_id] -= 1
        if source_id in self._pending.added:
            self._pending.added.discard(source_id)
        else:
            self._pending.changed.discard(source_id)
            self._pending.deleted.add(source_id)
        return source

    def release(self, source_id: int, keep: Collection[int] = ()) -> list[int]:
        """Remove a Source no scenario references any more, if it may go.

        Shared Sources and replication originals stay for reuse. Releasing a
        replication also releases its original when the original was kept
        only for that replication. Ids in keep are never removed.

        Returns:
            Ids actually removed.
        """
        source = self._sources.get(source_id)
        if (
            source is None
            or source_id in keep
            or self.is_shared(source)
            or self.is_replication_original(source_id)
        ):
            return []

        self.remove(source_id)
        removed = [source_id]

        if source.original_id is not None:
            original = self._sources.get(source.original_id)
            if (
                original is not None
                and original.id not in keep
                and not self.is_shared(original)
                and not self.is_replication_original(original.id)
            ):
                self.remove(original.id)
                removed.append(original.id)
        return removed

    def rebuild_index(self) -> None:
        """Rebuild every index map and the replication originals from scratch."""
        self._index.clear()
        self._replication_originals.clear()
        for source in self._sources.values():
            if source.original_id is not None:
                self._replication_originals[source.original_id] += 1
        # Originals first, a replication is filed only over a locked original
        for source in sorted(self._sources.values(), key=lambda s: s.is_replication):
            self._file(source)
        log.debug("source_index_rebuilt", sources=len(self._sources), indexed=len(self._index))

    def referenced_ids(self, scenario_ids: Iterable[int]) -> set[int]:
        """Ids in use by scenarios, including originals of referenced replications."""
        in_use: set[int] = set()
        for source_id in scenario_ids:
            in_use.add(source_id)
            source = self._sources.get(source_id)
            if source is not None and source.original_id is not None:
                in_use.add(source.original_id)
        return in_use

    def unused_count(self, scenario_ids: Iterable[int]) -> int:
        in_use = self.referenced_ids(scenario_ids)
        return sum(1 for source_id in self._sources if source_id not in in_use)

    def remove_all_unused(self, scenario_ids: Iterable[int]) -> list[int]:
        """Delete every Source no scenario references, then rebuild the index."""
        in_use = self.referenced_ids(scenario_ids)
        removed = [source_id for source_id in sorted(self._sources) if source_id not in in_use]
        for source_id in removed:
            self.remove(source_id)
        self.rebuild_index()
        log.info("unused_sources_removed", count=len(removed))
        return removed

    # -------------------------------------------------------------------------
    # Persistence bookkeeping
    # -------------------------------------------------------------------------

    @property
    def pending(self) -> PendingChanges:
        return self._pending

    def mark_saved(self) -> None:
        self._pending = PendingChanges()

    def index_entries(self) -> list[tuple[int, str, int | None, int]]:
        return self._index.entries()
