"""Sharing index - lookup of shared locked Sources by external identity.

One namespace exists per external data set id, plus USER_RECORDS_NAMESPACE for
user-entered records. Within a namespace, primary Sources are keyed by record
id, and replications are bucketed by the channel they were replicated onto.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from scenariokit.sources.models import Source


@dataclass
class _NamespaceIndex:
    shared: dict[str, Source] = field(default_factory=dict)
    replications: dict[int, dict[str, Source]] = field(default_factory=dict)


class SharingIndex:
    """Maps (namespace, record id[, channel]) to a shared Source.

    Holds no ownership of Sources. The record store decides what is filed
    and when the index is rebuilt.
    """

    def __init__(self) -> None:
        self._namespaces: dict[int, _NamespaceIndex] = {}

    def file(self, source: Source) -> None:
        namespace = source.namespace
        shared_id = source.shared_id
        if namespace is None or shared_id is None:
            return
        index = self._namespaces.setdefault(namespace, _NamespaceIndex())
        channel = source.channel
        if source.is_replication and channel is not None:
            index.replications.setdefault(channel, {})[shared_id] = source
        else:
            index.shared[shared_id] = source

    def find(self, namespace: int, external_id: str) -> Source | None:
        index = self._namespaces.get(namespace)
        if index is None:
            return None
        return index.shared.get(external_id)

    def find_replication(self, namespace: int, external_id: str, channel: int) -> Source | None:
        index = self._namespaces.get(namespace)
        if index is None:
            return None
        bucket = index.replications.get(channel)
        if bucket is None:
            return None
        return bucket.get(external_id)

    def clear(self) -> None:
        self._namespaces.clear()

    def entries(self) -> list[tuple[int, str, int | None, int]]:
        """All filed entries as (namespace, record id, replication channel, source id)."""
        result: list[tuple[int, str, int | None, int]] = []
        for namespace, index in self._namespaces.items():
            for external_id, source in index.shared.items():
                result.append((namespace, external_id, None, source.id))
            for channel, bucket in index.replications.items():
                for external_id, source in bucket.items():
                    result.append((namespace, external_id, channel, source.id))
        return sorted(result, key=lambda e: (e[0], e[1], e[2] or 0, e[3]))

    def __len__(self) -> int:
        return sum(
            len(index.shared) + sum(len(b) for b in index.replications.values())
            for index in self._namespaces.values()
        )
