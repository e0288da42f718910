"""YAML study description used by the ``skit build`` command.

A study file describes a study's type, rule table, service table, existing
Sources and scenarios, and batches of candidate records to add. It stands in
for the study database and the external station data search so a scenario
build can be run and inspected from the command line.

Example::

    study_type: tv6_fm
    services:
      DT: {service_type: dtv_full, preference_rank: 10}
      FM: {service_type: fm_full, preference_rank: 5}
    rules:
      - {service_type: dtv_full, undesired_service_type: fm_full,
         channel_delta: 3, distance_km: 50}
    sources:
      - {id: 1, service: DT, country: US, latitude: 40.0, longitude: -75.0,
         peak_erp_kw: 0.1, tv: {channel: 6, facility_id: 100},
         dataset_id: 1, record_id: "D-1"}
    scenarios:
      - key: 1
        items: [{source_id: 1, desired: true, permanent: true}]
    batches:
      - scenario: 1
        search_type: undesireds
        records:
          - {dataset_id: 2, record_id: "F-1", service: FM, country: US,
             latitude: 40.36, longitude: -75.0, peak_erp_kw: 6,
             fm: {channel: 202, facility_id: 7}}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from scenariokit.config.models import ScenarioKitConfig
from scenariokit.core.errors import ConfigError
from scenariokit.rules.models import InterferenceRule, RuleTable
from scenariokit.scenario.models import AddRequest, Scenario, SearchType, StudyType
from scenariokit.session import StudySession
from scenariokit.sources.models import (
    Country,
    DTSSite,
    ExternalKey,
    FMClass,
    FMPayload,
    GeoPoint,
    Payload,
    Service,
    ServiceType,
    Source,
    SourceListItem,
    StatusType,
    TVPayload,
    WirelessPayload,
)
from scenariokit.sources.records import ExternalRecord


class ServiceSpec(BaseModel):
    service_type: ServiceType
    preference_rank: int = 0
    is_operating: bool = True
    is_dts: bool = False


class DTSSiteSpec(BaseModel):
    latitude: float
    longitude: float
    peak_erp_kw: float | None = None  # None takes the station's ERP


class TVSpec(BaseModel):
    channel: int
    facility_id: int
    city: str = ""
    state: str = ""
    is_drt: bool = False
    dts_sites: list[DTSSiteSpec] = Field(default_factory=list)


class FMSpec(BaseModel):
    channel: int
    facility_id: int
    city: str = ""
    state: str = ""
    station_class: FMClass = FMClass.A
    is_iboc: bool = False


class WirelessSpec(BaseModel):
    cell_site_id: str
    sector_id: str = ""


def _parse_enum_name(enum_cls: Any, v: object) -> object:
    if isinstance(v, str):
        try:
            return enum_cls[v.upper()]
        except KeyError:
            raise ValueError(f"Unknown {enum_cls.__name__}: {v}") from None
    return v


class StationSpec(BaseModel):
    """Fields shared by stored Sources and candidate records."""

    service: str
    country: Country = Country.US
    latitude: float
    longitude: float
    peak_erp_kw: float = 0.0
    haat_m: float | None = None
    status: StatusType = StatusType.OTHER
    archived: bool = False
    tv: TVSpec | None = None
    fm: FMSpec | None = None
    wireless: WirelessSpec | None = None
    attributes: dict[str, str] = Field(default_factory=dict)

    @field_validator("country", mode="before")
    @classmethod
    def parse_country(cls, v: object) -> object:
        return _parse_enum_name(Country, v)

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: object) -> object:
        return _parse_enum_name(StatusType, v)

    @model_validator(mode="after")
    def validate_payload(self) -> StationSpec:
        given = [p for p in (self.tv, self.fm, self.wireless) if p is not None]
        if len(given) != 1:
            raise ValueError("Exactly one of tv, fm, wireless must be given")
        return self

    def build_payload(self) -> Payload:
        if self.tv is not None:
            return TVPayload(
                channel=self.tv.channel,
                facility_id=self.tv.facility_id,
                city=self.tv.city,
                state=self.tv.state,
                is_drt=self.tv.is_drt,
                dts_sites=tuple(
                    DTSSite(
                        GeoPoint(site.latitude, site.longitude),
                        self.peak_erp_kw if site.peak_erp_kw is None else site.peak_erp_kw,
                    )
                    for site in self.tv.dts_sites
                ),
            )
        if self.fm is not None:
            return FMPayload(
                channel=self.fm.channel,
                facility_id=self.fm.facility_id,
                city=self.fm.city,
                state=self.fm.state,
                station_class=self.fm.station_class,
                is_iboc=self.fm.is_iboc,
            )
        assert self.wireless is not None
        return WirelessPayload(
            cell_site_id=self.wireless.cell_site_id, sector_id=self.wireless.sector_id
        )


class SourceSpec(StationSpec):
    id: int
    locked: bool = True
    dataset_id: int | None = None
    record_id: str | None = None
    user_record_id: int | None = None
    original_id: int | None = None


class RecordSpec(StationSpec):
    dataset_id: int
    record_id: str
    locked: bool = True
    has_license_app: bool = False
    replicate_to_channel: int | None = None


class ItemSpec(BaseModel):
    source_id: int
    desired: bool = False
    undesired: bool = False
    permanent: bool = False


class ScenarioSpec(BaseModel):
    key: int
    name: str = ""
    items: list[ItemSpec] = Field(default_factory=list)


class BatchSpec(BaseModel):
    scenario: int
    search_type: SearchType = SearchType.UNDESIREDS
    set_undesired: bool = False
    disable_mx: bool | None = None
    records: list[RecordSpec] = Field(default_factory=list)


class StudyFile(BaseModel):
    """Parsed study description."""

    study_type: StudyType
    services: dict[str, ServiceSpec] = Field(default_factory=dict)
    rules: list[InterferenceRule] | None = None
    sources: list[SourceSpec] = Field(default_factory=list)
    scenarios: list[ScenarioSpec] = Field(default_factory=list)
    batches: list[BatchSpec] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_services(self) -> StudyFile:
        stations: list[StationSpec] = [*self.sources]
        for batch in self.batches:
            stations.extend(batch.records)
        for station in stations:
            if station.service not in self.services:
                raise ValueError(f"Unknown service code: {station.service}")
        return self

    def service(self, code: str) -> Service:
        spec = self.services[code]
        return Service(
            code=code,
            service_type=spec.service_type,
            preference_rank=spec.preference_rank,
            is_operating=spec.is_operating,
            is_dts=spec.is_dts,
        )

    def build_source(self, spec: SourceSpec) -> Source:
        external_key = None
        if spec.dataset_id is not None and spec.record_id is not None:
            external_key = ExternalKey(spec.dataset_id, spec.record_id)
        return Source(
            id=spec.id,
            payload=spec.build_payload(),
            service=self.service(spec.service),
            country=spec.country,
            location=GeoPoint(spec.latitude, spec.longitude),
            peak_erp_kw=spec.peak_erp_kw,
            haat_m=spec.haat_m,
            status_type=spec.status,
            is_locked=spec.locked,
            external_key=external_key,
            user_record_id=spec.user_record_id,
            original_id=spec.original_id,
            is_archived=spec.archived,
            attributes=dict(spec.attributes),
        )

    def build_record(self, spec: RecordSpec) -> ExternalRecord:
        return ExternalRecord(
            dataset_id=spec.dataset_id,
            record_id=spec.record_id,
            payload=spec.build_payload(),
            service=self.service(spec.service),
            country=spec.country,
            location=GeoPoint(spec.latitude, spec.longitude),
            peak_erp_kw=spec.peak_erp_kw,
            haat_m=spec.haat_m,
            status_type=spec.status,
            is_locked=spec.locked,
            is_archived=spec.archived,
            has_license_app=spec.has_license_app,
            replicate_to_channel=spec.replicate_to_channel,
            attributes=dict(spec.attributes),
        )

    def open_session(self, config: ScenarioKitConfig | None = None) -> StudySession:
        scenarios = [
            Scenario(
                key=spec.key,
                name=spec.name,
                items=[
                    SourceListItem(i.source_id, i.desired, i.undesired, i.permanent)
                    for i in spec.items
                ],
            )
            for spec in self.scenarios
        ]
        return StudySession(
            self.study_type,
            config=config,
            rule_table=RuleTable(self.rules) if self.rules is not None else None,
            sources=[self.build_source(spec) for spec in self.sources],
            scenarios=scenarios,
        )

    def batch_request(self, batch: BatchSpec) -> AddRequest:
        return AddRequest(
            search_type=batch.search_type,
            set_undesired=batch.set_undesired,
            disable_mx=batch.disable_mx,
        )


def load_study_file(path: Path) -> StudyFile:
    """Parse and validate a study description.

    Raises:
        ConfigError: Missing file, bad YAML, or invalid content.
    """
    if not path.exists():
        raise ConfigError.file_not_found(str(path))
    try:
        with path.open() as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "top level must be a mapping")
    try:
        return StudyFile.model_validate(data)
    except ValidationError as e:
        err = e.errors()[0]
        field = ".".join(str(loc) for loc in err["loc"])
        raise ConfigError.invalid_value(field or "study", err.get("input"), err["msg"]) from e
