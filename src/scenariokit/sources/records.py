"""External station records and derivation of Sources from them.

An ExternalRecord is one candidate returned by the external station data
search. It is always a locked primary record: the core never edits it, it only
derives a Source that mirrors it.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field

from scenariokit.config.constants import (
    FM_CHANNEL_MAX,
    FM_CHANNEL_MIN,
    TV_CHANNEL_MAX,
    TV_CHANNEL_MIN,
)
from scenariokit.core.errors import DerivationError
from scenariokit.sources.models import (
    Country,
    ExternalKey,
    FMPayload,
    GeoPoint,
    Payload,
    RecordType,
    Service,
    Source,
    StatusType,
    TVPayload,
    WirelessPayload,
)


@dataclass(frozen=True)
class ExternalRecord:
    """A candidate record from an external station data set."""

    dataset_id: int
    record_id: str
    payload: Payload
    service: Service
    country: Country
    location: GeoPoint
    peak_erp_kw: float = 0.0
    haat_m: float | None = None
    status_type: StatusType = StatusType.OTHER
    is_locked: bool = True
    is_archived: bool = False
    # A license application for the facility is pending in the data set
    has_license_app: bool = False
    # TV only, channel to re-host the facility on
    replicate_to_channel: int | None = None
    attributes: Mapping[str, str] = field(default_factory=dict, hash=False)

    @property
    def record_type(self) -> RecordType:
        return self.payload.record_type

    @property
    def external_key(self) -> ExternalKey:
        return ExternalKey(self.dataset_id, self.record_id)

    @property
    def replication_channel(self) -> int | None:
        """Channel of the replication to build, None when no replication applies."""
        if self.replicate_to_channel is None or not isinstance(self.payload, TVPayload):
            return None
        if self.replicate_to_channel == self.payload.channel:
            return None
        return self.replicate_to_channel

    def as_replicated(self) -> ExternalRecord:
        """This record as it will stand once moved to its replication channel.

        MX and culling see a replicating candidate on its new channel.
        """
        channel = self.replication_channel
        if channel is None:
            return self
        payload = dataclasses.replace(self.payload, channel=channel)  # type: ignore[type-var]
        return dataclasses.replace(self, payload=payload, replicate_to_channel=None)


def _check_record(record: ExternalRecord) -> None:
    def fail(reason: str) -> DerivationError:
        return DerivationError.invalid_record(record.dataset_id, record.record_id, reason)

    if not record.record_id:
        raise fail("empty record id")
    if record.service.record_type is not record.record_type:
        raise fail(
            f"service {record.service.code} does not apply to {record.record_type.value} records"
        )
    if not (-90.0 <= record.location.latitude <= 90.0):
        raise fail(f"latitude {record.location.latitude} out of range")
    if not (-180.0 <= record.location.longitude <= 180.0):
        raise fail(f"longitude {record.location.longitude} out of range")
    if record.peak_erp_kw < 0:
        raise fail(f"negative ERP {record.peak_erp_kw}")

    payload = record.payload
    if isinstance(payload, TVPayload):
        if not (TV_CHANNEL_MIN <= payload.channel <= TV_CHANNEL_MAX):
            raise fail(f"TV channel {payload.channel} out of range")
    elif isinstance(payload, FMPayload):
        if not (FM_CHANNEL_MIN <= payload.channel <= FM_CHANNEL_MAX):
            raise fail(f"FM channel {payload.channel} out of range")
    elif isinstance(payload, WirelessPayload) and not payload.cell_site_id:
        raise fail("empty cell site id")

    channel = record.replication_channel
    if channel is not None and not (TV_CHANNEL_MIN <= channel <= TV_CHANNEL_MAX):
        raise fail(f"replication channel {channel} out of range")


def derive_source(record: ExternalRecord, source_id: int) -> Source:
    """Build the locked Source mirroring a candidate record.

    Raises:
        DerivationError: The record fails validation.
    """
    _check_record(record)
    return Source(
        id=source_id,
        payload=record.payload,
        service=record.service,
        country=record.country,
        location=record.location,
        peak_erp_kw=record.peak_erp_kw,
        haat_m=record.haat_m,
        status_type=record.status_type,
        is_locked=True,
        external_key=record.external_key,
        is_archived=record.is_archived,
        attributes=dict(record.attributes),
    )


def derive_replication(original: Source, source_id: int, channel: int) -> Source:
    """Build a replication of a TV Source on another channel."""
    payload = original.payload
    if not isinstance(payload, TVPayload):
        key = original.external_key
        raise DerivationError.invalid_record(
            key.dataset_id if key else 0,
            key.record_id if key else str(original.id),
            f"{original.record_type.value} records cannot be replicated",
        )
    return dataclasses.replace(
        original,
        id=source_id,
        payload=dataclasses.replace(payload, channel=channel),
        original_id=original.id,
        mod_count=0,
    )
