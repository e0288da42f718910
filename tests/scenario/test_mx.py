"""Tests for mutual-exclusivity resolution."""

import itertools
from collections.abc import Callable

import pytest

from scenariokit.config.models import MXConfig
from scenariokit.scenario.mx import (
    are_mx,
    compare_preference,
    is_operating,
    resolve_mx,
    sort_by_preference,
)
from scenariokit.sources.models import Country, Service, ServiceType, StatusType
from scenariokit.sources.records import ExternalRecord, derive_source

from tests.helpers import DTV, DTV_LPTV, KM_PER_DEGREE

RecordFactory = Callable[..., ExternalRecord]

ALLOTMENT = Service("AL", ServiceType.DTV_FULL, preference_rank=10, is_operating=False)


def _mx(a: ExternalRecord, b: ExternalRecord, config: MXConfig | None = None) -> bool:
    return are_mx(a, b, config or MXConfig(), KM_PER_DEGREE)


class TestAreMX:
    def test_same_facility_is_mx(self, tv_record: RecordFactory) -> None:
        a = tv_record("A", channel=20, facility_id=1)
        b = tv_record("B", channel=35, facility_id=1, km=200.0)
        assert _mx(a, b)

    @pytest.mark.parametrize(
        ("channel", "km", "expected"),
        [(20, 10.0, True), (20, 40.0, False), (21, 10.0, False)],
    )
    def test_drt_same_facility(
        self, tv_record: RecordFactory, channel: int, km: float, expected: bool
    ) -> None:
        main = tv_record("A", channel=20, facility_id=1)
        drt = tv_record("B", channel=channel, facility_id=1, km=km, is_drt=True)
        assert _mx(main, drt) is expected

    def test_drt_not_mx_with_facility_id_only(self, tv_record: RecordFactory) -> None:
        main = tv_record("A", channel=20, facility_id=1)
        drt = tv_record("B", channel=20, facility_id=1, km=1.0, is_drt=True)
        assert not _mx(main, drt, MXConfig(facility_id_only=True))

    def test_same_city_and_state_case_insensitive(self, tv_record: RecordFactory) -> None:
        a = tv_record("A", facility_id=1, city="Dover", state="DE")
        b = tv_record("B", facility_id=2, city="DOVER", state="de", km=80.0)
        assert _mx(a, b)

    def test_empty_city_never_matches(self, tv_record: RecordFactory) -> None:
        a = tv_record("A", facility_id=1)
        b = tv_record("B", facility_id=2, km=80.0)
        assert not _mx(a, b)

    def test_co_channel_distance(self, tv_record: RecordFactory) -> None:
        a = tv_record("A", facility_id=1)
        near = tv_record("B", facility_id=2, km=4.0)
        far = tv_record("C", facility_id=3, km=6.0)

        assert _mx(a, near)
        assert not _mx(a, far)
        assert not _mx(a, near, MXConfig(co_channel_distance_km=0.0))

    def test_backup_tests_need_channel_and_country(self, tv_record: RecordFactory) -> None:
        a = tv_record("A", facility_id=1, channel=20)
        other_channel = tv_record("B", facility_id=2, channel=21, km=1.0)
        other_country = tv_record("C", facility_id=3, km=1.0, country=Country.CA)

        assert not _mx(a, other_channel)
        assert not _mx(a, other_country)

    def test_facility_id_only_skips_backup_tests(self, tv_record: RecordFactory) -> None:
        a = tv_record("A", facility_id=1)
        b = tv_record("B", facility_id=2, km=1.0)
        assert not _mx(a, b, MXConfig(facility_id_only=True))

    def test_fm(self, fm_record: RecordFactory) -> None:
        a = fm_record("A", facility_id=1)
        b = fm_record("B", facility_id=1, km=300.0)
        c = fm_record("C", facility_id=2, km=2.0)
        assert _mx(a, b)
        assert _mx(a, c)

    def test_different_record_types_never_mx(
        self, tv_record: RecordFactory, fm_record: RecordFactory, wireless_record: RecordFactory
    ) -> None:
        assert not _mx(tv_record(facility_id=1), fm_record(facility_id=1))
        assert not _mx(wireless_record("A"), wireless_record("B"))

    def test_symmetric(self, tv_record: RecordFactory) -> None:
        a = tv_record("A", facility_id=1, city="Dover", state="DE")
        b = tv_record("B", facility_id=2, city="dover", state="DE", km=30.0)
        assert _mx(a, b) == _mx(b, a)


class TestIsOperating:
    def test_license_operates(self, tv_record: RecordFactory) -> None:
        assert is_operating(tv_record(status=StatusType.LIC))

    def test_us_permit_does_not_operate(self, tv_record: RecordFactory) -> None:
        assert not is_operating(tv_record(status=StatusType.CP))
        assert is_operating(tv_record(status=StatusType.CP, country=Country.CA))

    def test_us_permit_with_pending_license_app_operates(self, tv_record: RecordFactory) -> None:
        assert is_operating(tv_record(status=StatusType.CP, has_license_app=True))
        assert not is_operating(tv_record(status=StatusType.OTHER, has_license_app=True))

    def test_non_operating_service_and_archived(self, tv_record: RecordFactory) -> None:
        assert not is_operating(tv_record(service=ALLOTMENT))
        assert not is_operating(tv_record(is_archived=True))


class TestPreference:
    def test_higher_service_rank_first(self, tv_record: RecordFactory) -> None:
        full = tv_record("A", service=DTV)
        low_power = tv_record("B", service=DTV_LPTV)
        assert sort_by_preference([low_power, full]) == [full, low_power]

    def test_status_rank_after_service(self, tv_record: RecordFactory) -> None:
        permit = tv_record("A", status=StatusType.CP)
        license_ = tv_record("B", status=StatusType.LIC)
        assert sort_by_preference([license_, permit]) == [permit, license_]

    def test_record_id_then_dataset_descending(self, tv_record: RecordFactory) -> None:
        a = tv_record("A", dataset_id=1)
        b = tv_record("B", dataset_id=1)
        b2 = tv_record("B", dataset_id=2)
        assert sort_by_preference([a, b, b2]) == [b2, b, a]

    def test_prefer_operating(self, tv_record: RecordFactory) -> None:
        # Given a US permit on a better service than an operating license
        permit = tv_record("A", service=DTV, status=StatusType.CP)
        license_ = tv_record("B", service=DTV_LPTV, status=StatusType.LIC)

        # Then the operating record wins only when prefer_operating is set
        assert sort_by_preference([permit, license_]) == [permit, license_]
        assert sort_by_preference([permit, license_], True) == [license_, permit]

    def test_prefer_operating_counts_permit_with_pending_license_app(
        self, tv_record: RecordFactory
    ) -> None:
        permit = tv_record("A", service=DTV, status=StatusType.CP, has_license_app=True)
        license_ = tv_record("B", service=DTV_LPTV, status=StatusType.LIC)
        assert sort_by_preference([license_, permit], True) == [permit, license_]

    def test_prefer_operating_favors_sta(self, tv_record: RecordFactory) -> None:
        sta = tv_record("A", status=StatusType.STA)
        license_ = tv_record("B", status=StatusType.LIC)
        assert sort_by_preference([license_, sta], True) == [sta, license_]
        assert sort_by_preference([license_, sta]) == [license_, sta]

    def test_order_is_total_and_antisymmetric(self, tv_record: RecordFactory) -> None:
        records = [
            tv_record(rid, dataset_id=ds, service=svc, status=st)
            for rid, ds, svc, st in [
                ("A", 1, DTV, StatusType.LIC),
                ("A", 2, DTV, StatusType.LIC),
                ("B", 1, DTV_LPTV, StatusType.CP),
                ("C", 1, DTV, StatusType.APP),
                ("D", 3, DTV, StatusType.STA),
            ]
        ]
        for a, b in itertools.permutations(records, 2):
            for prefer_operating in (False, True):
                ab = compare_preference(a, b, prefer_operating)
                assert ab != 0
                assert ab == -compare_preference(b, a, prefer_operating)


class TestResolveMX:
    def test_duplicates_of_existing_members_dropped(self, tv_record: RecordFactory) -> None:
        member = derive_source(tv_record("A", facility_id=1), 1)
        again = tv_record("A", facility_id=1)

        outcome = resolve_mx([again], [member], MXConfig(), KM_PER_DEGREE)

        assert outcome.survivors == []
        assert outcome.duplicates == [again]

    def test_repeated_candidates_dropped_even_without_mx(self, tv_record: RecordFactory) -> None:
        first = tv_record("A", facility_id=1)
        repeat = tv_record("A", facility_id=1)

        outcome = resolve_mx(
            [first, repeat], [], MXConfig(), KM_PER_DEGREE, disable_mx=True
        )

        assert outcome.survivors == [first]
        assert outcome.duplicates == [repeat]

    def test_existing_members_win(self, tv_record: RecordFactory) -> None:
        member = derive_source(tv_record("A", facility_id=1, service=DTV_LPTV), 1)
        better = tv_record("B", facility_id=1, service=DTV)

        outcome = resolve_mx([better], [member], MXConfig(), KM_PER_DEGREE)

        assert outcome.survivors == []
        assert outcome.mx_removed == [better]

    def test_greedy_scan_keeps_non_conflicting(self, tv_record: RecordFactory) -> None:
        # Given A mx B (same facility) and B mx C (co-channel, 3 km) but not A mx C
        a = tv_record("C-A", facility_id=1, km=0.0, service=DTV)
        b = tv_record("B-B", facility_id=1, km=7.0, service=DTV_LPTV)
        c = tv_record("A-C", facility_id=2, km=10.0, service=DTV_LPTV)

        # When resolved
        outcome = resolve_mx([c, b, a], [], MXConfig(), KM_PER_DEGREE)

        # Then the most preferred record of each conflict is kept
        assert outcome.survivors == [a, c]
        assert outcome.mx_removed == [b]

    def test_no_two_survivors_are_mx(self, tv_record: RecordFactory) -> None:
        config = MXConfig()
        candidates = [
            tv_record(f"R{i}", facility_id=i % 3, km=float(i)) for i in range(12)
        ]

        survivors = resolve_mx(candidates, [], config, KM_PER_DEGREE).survivors

        for a, b in itertools.combinations(survivors, 2):
            assert not _mx(a, b, config)

    def test_disable_mx_keeps_input_order(self, tv_record: RecordFactory) -> None:
        a = tv_record("A", facility_id=1)
        b = tv_record("B", facility_id=1)
        member = derive_source(tv_record("M", facility_id=1), 1)

        outcome = resolve_mx([a, b], [member], MXConfig(disable_mx=True), KM_PER_DEGREE)

        assert outcome.survivors == [a, b]
        assert outcome.mx_removed == []

    def test_replicating_candidate_compared_on_new_channel(
        self, tv_record: RecordFactory
    ) -> None:
        member = derive_source(tv_record("M", facility_id=1, channel=30), 1)
        moving = tv_record("R", facility_id=2, channel=20, km=1.0, replicate_to_channel=30)
        staying = tv_record("S", facility_id=3, channel=20, km=1.0)

        outcome = resolve_mx([moving, staying], [member], MXConfig(), KM_PER_DEGREE)

        assert outcome.mx_removed == [moving]
        assert outcome.survivors == [staying]
