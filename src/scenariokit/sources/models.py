"""Source models - canonical station records and their record-type payloads.

A Source is a tagged variant: engineering fields common to every station live
on the Source itself, record-type specific fields live in exactly one payload
(TVPayload, FMPayload, WirelessPayload). The payload class fixes the record
type for the life of the record.
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import ClassVar, Protocol

from scenariokit.config.constants import (
    SOURCE_ID_MAX,
    SOURCE_ID_MIN,
    USER_RECORDS_NAMESPACE,
)
from scenariokit.core.errors import IdentityError


class RecordType(Enum):
    """Station record type."""

    TV = "tv"
    FM = "fm"
    WIRELESS = "wireless"


class Country(IntEnum):
    """Country of a station, keys match the study parameter tables."""

    US = 1
    CA = 2
    MX = 3


class ServiceType(Enum):
    """Broad service category of a station."""

    DTV_FULL = "dtv_full"
    NTSC_FULL = "ntsc_full"
    DTV_CLASS_A = "dtv_class_a"
    DTV_LPTV = "dtv_lptv"
    NTSC_CLASS_A = "ntsc_class_a"
    NTSC_LPTV = "ntsc_lptv"
    FM_FULL = "fm_full"
    FM_LP = "fm_lp"
    FM_TX = "fm_tx"
    WIRELESS = "wireless"

    @property
    def record_type(self) -> RecordType:
        if self.value.startswith(("dtv", "ntsc")):
            return RecordType.TV
        if self.value.startswith("fm"):
            return RecordType.FM
        return RecordType.WIRELESS

    @property
    def is_digital(self) -> bool:
        return self.value.startswith("dtv")

    @property
    def is_low_power(self) -> bool:
        return self.value.endswith(("class_a", "lptv"))


class StatusType(IntEnum):
    """Record status, values match the stored status type codes."""

    STA = 0
    CP = 1
    LIC = 2
    APP = 3
    OTHER = 4
    EXP = 5
    AMD = 6

    @property
    def rank(self) -> int:
        """Preference rank in an MX group, lower is preferred."""
        return _STATUS_RANK[self]


_STATUS_RANK = {
    StatusType.CP: 10,
    StatusType.LIC: 20,
    StatusType.STA: 30,
    StatusType.APP: 40,
    StatusType.AMD: 50,
    StatusType.EXP: 60,
    StatusType.OTHER: 70,
}


class FMClass(Enum):
    """FM station class."""

    A = "A"
    B = "B"
    B1 = "B1"
    C = "C"
    C0 = "C0"
    C1 = "C1"
    C2 = "C2"
    C3 = "C3"
    D = "D"
    L1 = "L1"


@dataclass(frozen=True, slots=True)
class Service:
    """A service table entry."""

    code: str
    service_type: ServiceType
    preference_rank: int = 0  # higher is preferred in an MX group
    is_operating: bool = True  # False for allotments, rule-makings, etc.
    is_dts: bool = False

    @property
    def record_type(self) -> RecordType:
        return self.service_type.record_type


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """Geographic coordinates in decimal degrees, north and east positive."""

    latitude: float
    longitude: float

    def distance_to(self, other: GeoPoint, km_per_degree: float) -> float:
        """Great-circle distance in km on a sphere of the given km per degree."""
        lat1 = math.radians(self.latitude)
        lat2 = math.radians(other.latitude)
        delta_lon = math.radians(self.longitude - other.longitude)
        while delta_lon < -math.pi:
            delta_lon += 2.0 * math.pi
        while delta_lon > math.pi:
            delta_lon -= 2.0 * math.pi

        cos_d = (math.sin(lat1) * math.sin(lat2)) + (
            math.cos(lat1) * math.cos(lat2) * math.cos(delta_lon)
        )
        cos_d = min(1.0, max(-1.0, cos_d))
        return math.degrees(math.acos(cos_d)) * km_per_degree


@dataclass(frozen=True, slots=True)
class ExternalKey:
    """Identity of a primary record in an external station data set."""

    dataset_id: int
    record_id: str


@dataclass(frozen=True, slots=True)
class DTSSite:
    """One transmitter of a distributed transmission system."""

    location: GeoPoint
    peak_erp_kw: float


@dataclass(frozen=True, slots=True)
class TVPayload:
    """TV-specific fields."""

    record_type: ClassVar[RecordType] = RecordType.TV

    channel: int
    facility_id: int
    city: str = ""
    state: str = ""
    is_drt: bool = False
    # Transmitter sites of a distributed transmission system, empty otherwise
    dts_sites: tuple[DTSSite, ...] = ()


@dataclass(frozen=True, slots=True)
class FMPayload:
    """FM-specific fields."""

    record_type: ClassVar[RecordType] = RecordType.FM

    channel: int
    facility_id: int
    city: str = ""
    state: str = ""
    station_class: FMClass = FMClass.A
    is_iboc: bool = False


@dataclass(frozen=True, slots=True)
class WirelessPayload:
    """Wireless base station fields."""

    record_type: ClassVar[RecordType] = RecordType.WIRELESS

    cell_site_id: str
    sector_id: str = ""


Payload = TVPayload | FMPayload | WirelessPayload


class Station(Protocol):
    """Fields shared by Source and ExternalRecord, used by culling and MX."""

    @property
    def payload(self) -> Payload: ...

    @property
    def service(self) -> Service: ...

    @property
    def country(self) -> Country: ...

    @property
    def location(self) -> GeoPoint: ...

    @property
    def peak_erp_kw(self) -> float: ...

    @property
    def haat_m(self) -> float | None: ...

    @property
    def status_type(self) -> StatusType: ...

    @property
    def is_archived(self) -> bool: ...

    @property
    def external_key(self) -> ExternalKey | None: ...


def channel_of(station: Station) -> int | None:
    """Channel of a TV or FM station, None for wireless."""
    payload = station.payload
    if isinstance(payload, WirelessPayload):
        return None
    return payload.channel


def reference_points(station: Station) -> tuple[GeoPoint, ...]:
    """Points distance checks are made from, DTS sites when the station has them."""
    payload = station.payload
    if isinstance(payload, TVPayload) and payload.dts_sites:
        return tuple(site.location for site in payload.dts_sites)
    return (station.location,)


@dataclass(frozen=True)
class Source:
    """Canonical engineering record for one station within a study."""

    id: int
    payload: Payload
    service: Service
    country: Country
    location: GeoPoint
    peak_erp_kw: float = 0.0
    haat_m: float | None = None
    status_type: StatusType = StatusType.OTHER
    is_locked: bool = False
    external_key: ExternalKey | None = None
    user_record_id: int | None = None
    original_id: int | None = None  # set only on replication sources
    is_archived: bool = False
    mod_count: int = 0
    attributes: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not (SOURCE_ID_MIN <= self.id <= SOURCE_ID_MAX):
            raise IdentityError.out_of_range(self.id)
        if self.external_key is not None and self.user_record_id is not None:
            raise IdentityError.conflicting_identity(self.id)
        if self.original_id is not None and not isinstance(self.payload, TVPayload):
            raise IdentityError.invalid_replication(self.id, self.payload.record_type.value)

    @property
    def record_type(self) -> RecordType:
        return self.payload.record_type

    @property
    def channel(self) -> int | None:
        return channel_of(self)

    @property
    def is_replication(self) -> bool:
        return self.original_id is not None

    @property
    def namespace(self) -> int | None:
        """Sharing index namespace, None when the record can never be shared."""
        if self.user_record_id is not None:
            return USER_RECORDS_NAMESPACE
        if self.external_key is not None:
            return self.external_key.dataset_id
        return None

    @property
    def shared_id(self) -> str | None:
        """Record id within the sharing namespace."""
        if self.user_record_id is not None:
            return str(self.user_record_id)
        if self.external_key is not None:
            return self.external_key.record_id
        return None

    def revise(self, **changes: object) -> Source:
        """Return an edited copy with the revision counter bumped."""
        return dataclasses.replace(self, mod_count=self.mod_count + 1, **changes)  # type: ignore[arg-type]


@dataclass
class SourceListItem:
    """Membership of one source in a scenario."""

    source_id: int
    is_desired: bool
    is_undesired: bool
    is_permanent: bool = False
