"""Tests for scenario membership lists and add requests."""

import pytest

from scenariokit.core.errors import ErrorCode, ScenarioError
from scenariokit.scenario.models import AddRequest, Scenario, SearchType, StudyType
from scenariokit.sources.models import RecordType, SourceListItem


@pytest.fixture
def scenario() -> Scenario:
    return Scenario(
        key=1,
        name="Baseline",
        items=[
            SourceListItem(1, True, False, True),
            SourceListItem(2, False, True),
        ],
    )


class TestAddOrReplace:
    def test_new_item_appended(self, scenario: Scenario) -> None:
        assert scenario.add_or_replace(SourceListItem(3, False, True))
        assert scenario.source_ids == [1, 2, 3]

    def test_existing_item_updated_not_counted(self, scenario: Scenario) -> None:
        assert not scenario.add_or_replace(SourceListItem(2, True, False))
        assert scenario.desired_ids == [1, 2]
        assert scenario.undesired_ids == []

    def test_permanent_item_keeps_flags(self, scenario: Scenario) -> None:
        # Given a permanent desired item
        # When an add requests it as undesired only
        appended = scenario.add_or_replace(SourceListItem(1, False, True))

        # Then nothing changes
        assert not appended
        item = scenario.find(1)
        assert item is not None
        assert (item.is_desired, item.is_undesired, item.is_permanent) == (True, False, True)


class TestRemove:
    def test_remove_item(self, scenario: Scenario) -> None:
        removed = scenario.remove(2)
        assert removed is not None
        assert scenario.source_ids == [1]

    def test_remove_missing_returns_none(self, scenario: Scenario) -> None:
        assert scenario.remove(99) is None

    def test_remove_permanent_raises(self, scenario: Scenario) -> None:
        with pytest.raises(ScenarioError) as exc_info:
            scenario.remove(1)
        assert exc_info.value.code == ErrorCode.SCENARIO_PERMANENT_ITEM
        assert scenario.source_ids == [1, 2]


class TestSetFlags:
    def test_set_flags(self, scenario: Scenario) -> None:
        scenario.set_is_desired(2, True)
        scenario.set_is_undesired(2, False)
        assert scenario.desired_ids == [1, 2]

    def test_permanent_flags_locked(self, scenario: Scenario) -> None:
        with pytest.raises(ScenarioError) as exc_info:
            scenario.set_is_undesired(1, True)
        assert exc_info.value.code == ErrorCode.SCENARIO_PERMANENT_ITEM

    def test_unknown_source(self, scenario: Scenario) -> None:
        with pytest.raises(ScenarioError) as exc_info:
            scenario.set_is_desired(42, True)
        assert exc_info.value.code == ErrorCode.SCENARIO_UNKNOWN_SOURCE


class TestAddRequest:
    @pytest.mark.parametrize(
        ("request_", "mx_disabled", "expected"),
        [
            (AddRequest(SearchType.UNDESIREDS), False, (False, True)),
            (AddRequest(SearchType.UNDESIREDS), True, (False, False)),
            (AddRequest(SearchType.DESIREDS), False, (True, False)),
            (AddRequest(SearchType.DESIREDS, set_undesired=True), False, (True, True)),
            (AddRequest(SearchType.PROTECTEDS, set_undesired=True), True, (True, False)),
        ],
    )
    def test_item_flags(
        self, request_: AddRequest, mx_disabled: bool, expected: tuple[bool, bool]
    ) -> None:
        assert request_.item_flags(mx_disabled) == expected


class TestStudyType:
    def test_record_types(self) -> None:
        assert StudyType.TV.record_types == {RecordType.TV}
        assert StudyType.TV6_FM.record_types == {RecordType.TV, RecordType.FM}

    def test_wireless_only_undesired(self) -> None:
        assert RecordType.WIRELESS in StudyType.TV_OET74.record_types
        assert RecordType.WIRELESS not in StudyType.TV_OET74.desired_record_types
