"""Source identity, canonical records and sharing."""

from scenariokit.sources.index import SharingIndex
from scenariokit.sources.models import (
    Country,
    DTSSite,
    ExternalKey,
    FMClass,
    FMPayload,
    GeoPoint,
    RecordType,
    Service,
    ServiceType,
    Source,
    SourceListItem,
    StatusType,
    TVPayload,
    WirelessPayload,
)
from scenariokit.sources.records import ExternalRecord, derive_replication, derive_source
from scenariokit.sources.registry import IdentifierRegistry
from scenariokit.sources.store import PendingChanges, SourceStore

__all__ = [
    "Country",
    "DTSSite",
    "ExternalKey",
    "ExternalRecord",
    "FMClass",
    "FMPayload",
    "GeoPoint",
    "IdentifierRegistry",
    "PendingChanges",
    "RecordType",
    "Service",
    "ServiceType",
    "SharingIndex",
    "Source",
    "SourceListItem",
    "SourceStore",
    "StatusType",
    "TVPayload",
    "WirelessPayload",
    "derive_replication",
    "derive_source",
]
