"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages, and
provides factories for stations, records and sessions.
"""

import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

# Insert local src directory at the beginning of sys.path
# This ensures that the local scenariokit package is used, not any installed one
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

# Force reimport of scenariokit modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("scenariokit"):
        del sys.modules[module_name]

from scenariokit.config.models import ScenarioKitConfig  # noqa: E402
from scenariokit.rules.models import InterferenceRule, RuleTable  # noqa: E402
from scenariokit.scenario.models import Scenario, StudyType  # noqa: E402
from scenariokit.session import SaveBatch, StudySession  # noqa: E402
from scenariokit.sources.models import (  # noqa: E402
    Country,
    ExternalKey,
    FMPayload,
    Service,
    ServiceType,
    Source,
    SourceListItem,
    StatusType,
    TVPayload,
    WirelessPayload,
)
from scenariokit.sources.records import ExternalRecord  # noqa: E402

from tests.helpers import DTV, FM, WIRELESS, point_north  # noqa: E402


class MemoryBackend:
    """Persistence backend keeping committed rows in memory."""

    def __init__(self) -> None:
        self.rows: dict[int, Source] = {}
        self.batches: list[SaveBatch] = []

    def commit(self, batch: SaveBatch) -> Sequence[int]:
        self.batches.append(batch)
        for source_id in batch.deleted_ids:
            self.rows.pop(source_id, None)
        for source in batch.upserts:
            self.rows[source.id] = source
        return sorted(self.rows)


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture
def tv_record() -> Callable[..., ExternalRecord]:
    """Factory for TV candidate records."""

    def make(
        record_id: str = "TV-1",
        *,
        dataset_id: int = 1,
        channel: int = 20,
        facility_id: int = 1000,
        km: float = 0.0,
        service: Service = DTV,
        country: Country = Country.US,
        erp_kw: float = 100.0,
        status: StatusType = StatusType.LIC,
        city: str = "",
        state: str = "",
        is_drt: bool = False,
        replicate_to_channel: int | None = None,
        **kwargs: Any,
    ) -> ExternalRecord:
        return ExternalRecord(
            dataset_id=dataset_id,
            record_id=record_id,
            payload=TVPayload(
                channel=channel,
                facility_id=facility_id,
                city=city,
                state=state,
                is_drt=is_drt,
            ),
            service=service,
            country=country,
            location=point_north(km),
            peak_erp_kw=erp_kw,
            status_type=status,
            replicate_to_channel=replicate_to_channel,
            **kwargs,
        )

    return make


@pytest.fixture
def fm_record() -> Callable[..., ExternalRecord]:
    """Factory for FM candidate records."""

    def make(
        record_id: str = "FM-1",
        *,
        dataset_id: int = 2,
        channel: int = 250,
        facility_id: int = 2000,
        km: float = 0.0,
        service: Service = FM,
        erp_kw: float = 6.0,
        status: StatusType = StatusType.LIC,
        city: str = "",
        state: str = "",
        **kwargs: Any,
    ) -> ExternalRecord:
        return ExternalRecord(
            dataset_id=dataset_id,
            record_id=record_id,
            payload=FMPayload(channel=channel, facility_id=facility_id, city=city, state=state),
            service=service,
            country=Country.US,
            location=point_north(km),
            peak_erp_kw=erp_kw,
            status_type=status,
            **kwargs,
        )

    return make


@pytest.fixture
def wireless_record() -> Callable[..., ExternalRecord]:
    """Factory for wireless base station records."""

    def make(
        record_id: str = "WL-1",
        *,
        dataset_id: int = 3,
        km: float = 0.0,
        erp_kw: float = 2.0,
        haat_m: float | None = 120.0,
    ) -> ExternalRecord:
        return ExternalRecord(
            dataset_id=dataset_id,
            record_id=record_id,
            payload=WirelessPayload(cell_site_id=f"site-{record_id}"),
            service=WIRELESS,
            country=Country.US,
            location=point_north(km),
            peak_erp_kw=erp_kw,
            haat_m=haat_m,
        )

    return make


@pytest.fixture
def tv_source() -> Callable[..., Source]:
    """Factory for stored TV Sources."""

    def make(
        source_id: int = 1,
        *,
        channel: int = 20,
        facility_id: int = 1,
        km: float = 0.0,
        erp_kw: float = 100.0,
        service: Service = DTV,
        locked: bool = True,
        dataset_id: int | None = 1,
        record_id: str | None = None,
        **kwargs: Any,
    ) -> Source:
        external_key = None
        if locked and dataset_id is not None and "user_record_id" not in kwargs:
            external_key = ExternalKey(dataset_id, record_id or f"S-{source_id}")
        return Source(
            id=source_id,
            payload=TVPayload(channel=channel, facility_id=facility_id),
            service=service,
            country=Country.US,
            location=point_north(km),
            peak_erp_kw=erp_kw,
            status_type=StatusType.LIC,
            is_locked=locked,
            external_key=external_key,
            **kwargs,
        )

    return make


@pytest.fixture
def tv_rules() -> RuleTable:
    """Co-channel and first-adjacent DTV rules."""
    return RuleTable(
        [
            InterferenceRule(
                service_type=ServiceType.DTV_FULL,
                undesired_service_type=ServiceType.DTV_FULL,
                channel_delta=0,
                distance_km=100.0,
            ),
            InterferenceRule(
                service_type=ServiceType.DTV_FULL,
                undesired_service_type=ServiceType.DTV_FULL,
                channel_delta=1,
                distance_km=40.0,
            ),
            InterferenceRule(
                service_type=ServiceType.DTV_FULL,
                undesired_service_type=ServiceType.DTV_FULL,
                channel_delta=-1,
                distance_km=40.0,
            ),
        ]
    )


@pytest.fixture
def config() -> ScenarioKitConfig:
    return ScenarioKitConfig()


@pytest.fixture
def make_session(
    config: ScenarioKitConfig, tv_rules: RuleTable
) -> Callable[..., StudySession]:
    """Factory for a session with one scenario holding the given desired Sources."""

    def make(
        *desired: Source,
        study_type: StudyType = StudyType.TV,
        rule_table: RuleTable | None = tv_rules,
        session_config: ScenarioKitConfig | None = None,
        permanent: bool = True,
    ) -> StudySession:
        scenario = Scenario(
            key=1,
            name="Baseline",
            items=[SourceListItem(s.id, True, False, permanent) for s in desired],
        )
        return StudySession(
            study_type,
            config=session_config or config,
            rule_table=rule_table,
            sources=desired,
            scenarios=[scenario],
        )

    return make
