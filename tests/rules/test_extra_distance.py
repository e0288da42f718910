"""Tests for the rule extra distance."""

from collections.abc import Callable

import pytest

from scenariokit.config.models import (
    CountryParameters,
    RuleExtraDistanceConfig,
    StudyParameters,
)
from scenariokit.rules.extra_distance import (
    FMContourPolicy,
    TVContourPolicy,
    policy_for,
    rule_extra_distance,
)
from scenariokit.sources.models import Country, FMClass, FMPayload, GeoPoint, Service, ServiceType
from scenariokit.sources.records import ExternalRecord

from tests.helpers import FM

RecordFactory = Callable[..., ExternalRecord]

NTSC = Service("TV", ServiceType.NTSC_FULL)


@pytest.fixture
def params() -> StudyParameters:
    return StudyParameters()


class TestDigitalTV:
    @pytest.mark.parametrize(
        ("erp_kw", "expected_km"),
        [
            (0.1, 72.0),
            (1.0, 95.0),
            (5.0, 120.0),
            (100.0, 163.0),
        ],
    )
    def test_erp_bands(
        self, tv_record: RecordFactory, params: StudyParameters, erp_kw: float, expected_km: float
    ) -> None:
        station = tv_record(channel=20, erp_kw=erp_kw)
        assert rule_extra_distance(station, params) == expected_km

    def test_band_edge_is_upper_band(
        self, tv_record: RecordFactory, params: StudyParameters
    ) -> None:
        station = tv_record(channel=20, erp_kw=15.0)
        assert rule_extra_distance(station, params) == 163.0

    def test_monotonic_in_erp(self, tv_record: RecordFactory, params: StudyParameters) -> None:
        erps = [0.01, 0.2, 0.5, 1.5, 3.0, 15.0, 1000.0]
        distances = [rule_extra_distance(tv_record(erp_kw=erp), params) for erp in erps]
        assert distances == sorted(distances)


class TestAnalogAndFM:
    def test_analog_uses_higher_contour_and_curve_adjustment(
        self, tv_record: RecordFactory, params: StudyParameters
    ) -> None:
        # 0 dBk - 23 dB contour difference + 8 dB curve set adjustment
        station = tv_record(channel=20, erp_kw=1.0, service=NTSC)
        assert rule_extra_distance(station, params) == 72.0

    def test_fm_class_a(self, fm_record: RecordFactory, params: StudyParameters) -> None:
        assert rule_extra_distance(fm_record(channel=250, erp_kw=6.0), params) == 95.0

    def test_fm_class_b_uses_lower_contour(self, params: StudyParameters) -> None:
        level, curve_set = FMContourPolicy().contour(
            _fm_station(FMClass.B, channel=250), params.for_country("US")
        )
        assert level == 54.0
        assert curve_set == "F50_50"

    def test_reserved_band_uses_educational_contour(self) -> None:
        country = CountryParameters()
        country.fm.fm_ed = 66.0
        level, _ = FMContourPolicy().contour(_fm_station(FMClass.B, channel=210), country)
        assert level == 66.0


def _fm_station(station_class: FMClass, channel: int) -> ExternalRecord:
    return ExternalRecord(
        dataset_id=1,
        record_id="F",
        payload=FMPayload(channel=channel, facility_id=1, station_class=station_class),
        service=FM,
        country=Country.US,
        location=GeoPoint(40.0, -75.0),
        peak_erp_kw=6.0,
    )


class TestDefaultsAndOverrides:
    def test_no_study_parameters_uses_record_type_default(
        self, tv_record: RecordFactory, fm_record: RecordFactory
    ) -> None:
        assert rule_extra_distance(tv_record(), None) == 163.0
        assert rule_extra_distance(fm_record(), None) == 125.0

    def test_zero_erp_uses_default(
        self, tv_record: RecordFactory, params: StudyParameters
    ) -> None:
        assert rule_extra_distance(tv_record(erp_kw=0.0), params) == 163.0

    def test_use_maximum(self, tv_record: RecordFactory) -> None:
        params = StudyParameters(
            maximum_distance_km=250.0,
            rule_extra=RuleExtraDistanceConfig(use_maximum=True),
        )
        assert rule_extra_distance(tv_record(erp_kw=0.01), params) == 250.0

    def test_f50_10_curve_set(self, tv_record: RecordFactory) -> None:
        params = StudyParameters(
            countries={"US": CountryParameters(digital_curve_set="F50_10")}
        )
        assert rule_extra_distance(tv_record(), params) == 300.0

    def test_wireless_is_zero(self, wireless_record: RecordFactory, params: StudyParameters) -> None:
        assert rule_extra_distance(wireless_record(), params) == 0.0
        assert policy_for(wireless_record()) is None


class TestTVContour:
    @pytest.mark.parametrize(
        ("channel", "expected"),
        [(2, 28.0), (6, 28.0), (7, 36.0), (13, 36.0), (14, 41.0), (51, 41.0)],
    )
    def test_band_levels(self, tv_record: RecordFactory, channel: int, expected: float) -> None:
        level, _ = TVContourPolicy().contour(tv_record(channel=channel), CountryParameters())
        assert level == expected

    def test_dipole_correction(self, tv_record: RecordFactory) -> None:
        country = CountryParameters(use_dipole_correction=True)

        low, _ = TVContourPolicy().contour(tv_record(channel=14), country)
        high, _ = TVContourPolicy().contour(tv_record(channel=51), country)

        # 473 MHz and 695 MHz against a 615 MHz center
        assert low == pytest.approx(41.0 - 2.2806, abs=1e-3)
        assert high == pytest.approx(41.0 + 1.0621, abs=1e-3)

    def test_dipole_correction_changes_band(self, tv_record: RecordFactory) -> None:
        params = StudyParameters(countries={"US": CountryParameters(use_dipole_correction=True)})
        station = tv_record(channel=14, erp_kw=10.0)

        assert rule_extra_distance(station, StudyParameters()) == 120.0
        assert rule_extra_distance(station, params) == 163.0

    def test_dipole_correction_not_applied_below_uhf(self, tv_record: RecordFactory) -> None:
        country = CountryParameters(use_dipole_correction=True)
        level, _ = TVContourPolicy().contour(tv_record(channel=10), country)
        assert level == 36.0
