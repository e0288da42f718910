"""Distance and rule culling of candidate records.

A candidate survives when it is within the protection distance of at least
one reference station for at least one applicable channel delta. For an
undesireds search the references are the scenario's desired stations; for a
protecteds search they are its undesired stations and the candidate plays
the desired role.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Sequence
from enum import Enum
from typing import TypeVar

from scenariokit.config.constants import (
    TV6_CHANNEL,
    TV6_FM_EQUIVALENT_CHANNEL,
    TV_BAND_GROUP_STARTS,
    WIRELESS_CULL_ERP_KW,
    WIRELESS_CULL_HAAT_M,
)
from scenariokit.config.models import StudyParameters
from scenariokit.core.errors import ScenarioError
from scenariokit.core.logging import get_logger
from scenariokit.rules.extra_distance import rule_extra_distance
from scenariokit.rules.models import RuleTable
from scenariokit.sources.models import (
    GeoPoint,
    RecordType,
    Station,
    TVPayload,
    WirelessPayload,
    channel_of,
    reference_points,
)

log = get_logger(__name__)

S = TypeVar("S", bound=Station)

# Point a desired station is checked from, with the extra distance that applies there
Site = tuple[GeoPoint, float]


class CullRole(Enum):
    """Role the candidates play against the reference stations."""

    UNDESIRED = "undesired"  # candidates may interfere with the references
    DESIRED = "desired"  # candidates may be interfered with by the references


def _as_fm_channel(tv_channel: int) -> int | None:
    if tv_channel == TV6_CHANNEL:
        return TV6_FM_EQUIVALENT_CHANNEL
    return None


def channel_delta(desired: Station, undesired: Station) -> int | None:
    """Undesired channel minus desired channel, None when the pair has no delta.

    TV and FM pair only through TV channel 6, which is treated as FM channel
    199. Every other cross-type pair has no delta.
    """
    desired_channel = channel_of(desired)
    undesired_channel = channel_of(undesired)
    if desired_channel is None or undesired_channel is None:
        return None
    desired_type = desired.payload.record_type
    if desired_type is undesired.payload.record_type:
        return undesired_channel - desired_channel
    if desired_type is RecordType.TV:
        desired_channel = _as_fm_channel(desired_channel)
    else:
        undesired_channel = _as_fm_channel(undesired_channel)
    if desired_channel is None or undesired_channel is None:
        return None
    return undesired_channel - desired_channel


def tv_band_group(channel: int) -> int:
    """Index of the TV band group holding the channel: 2-4, 5-6, 7-13, 14 and up."""
    return bisect_right(TV_BAND_GROUP_STARTS, channel) - 1


def _break_index(value: float | None, break_points: Sequence[float]) -> int:
    if value is None:
        return 0
    for i in range(1, len(break_points)):
        if value > break_points[i]:
            return i - 1
    return len(break_points) - 1


def wireless_cull_distance(station: Station, params: StudyParameters) -> float:
    """Cull distance for a wireless base station by HAAT and ERP break points."""
    row = _break_index(station.haat_m, WIRELESS_CULL_HAAT_M)
    column = _break_index(station.peak_erp_kw, WIRELESS_CULL_ERP_KW)
    return params.wireless_cull_distances_km[row][column]


def rule_distance(
    desired: Station,
    undesired: Station,
    rule_table: RuleTable,
    params: StudyParameters,
) -> float | None:
    """Rule distance for one pairing, before the extra distance.

    None when no rule applies, which means the undesired is never in range.
    """
    if isinstance(undesired.payload, WirelessPayload):
        return wireless_cull_distance(undesired, params)
    delta = channel_delta(desired, undesired)
    if delta is None:
        return None
    if isinstance(desired.payload, TVPayload) and isinstance(undesired.payload, TVPayload):
        if tv_band_group(desired.payload.channel) != tv_band_group(undesired.payload.channel):
            return None
    return rule_table.max_distance(
        desired.service.service_type,
        undesired.service.service_type,
        desired.country,
        delta,
    )


def desired_sites(desired: Station, params: StudyParameters) -> list[Site]:
    """Check points of a desired station. A DTS uses each sub-site's own ERP."""
    payload = desired.payload
    if isinstance(payload, TVPayload) and payload.dts_sites:
        return [
            (site.location, rule_extra_distance(desired, params, peak_erp_kw=site.peak_erp_kw))
            for site in payload.dts_sites
        ]
    return [(desired.location, rule_extra_distance(desired, params))]


def within_range(
    sites: Sequence[Site], undesired: Station, distance_km: float, km_per_degree: float
) -> bool:
    """True if any desired site is within distance plus its extra of any undesired site."""
    undesired_points = reference_points(undesired)
    for point, extra_km in sites:
        limit = distance_km + extra_km
        for undesired_point in undesired_points:
            if point.distance_to(undesired_point, km_per_degree) <= limit:
                return True
    return False


def cull(
    candidates: Sequence[S],
    references: Sequence[Station],
    rule_table: RuleTable | None,
    params: StudyParameters,
    role: CullRole = CullRole.UNDESIRED,
    *,
    scenario_key: int = 0,
) -> list[S]:
    """Return the candidates within interference-relevant range, in input order.

    Raises:
        ScenarioError: No reference stations, or no rule table.
    """
    if rule_table is None:
        raise ScenarioError.rules_unavailable()
    if not references:
        if role is CullRole.UNDESIRED:
            raise ScenarioError.no_desired(scenario_key)
        raise ScenarioError.no_undesired(scenario_key)

    km_per_degree = params.km_per_degree
    # Extra distance always belongs to the desired side of the pairing
    reference_sites = (
        [desired_sites(ref, params) for ref in references]
        if role is CullRole.UNDESIRED
        else []
    )

    survivors: list[S] = []
    for candidate in candidates:
        candidate_sites = desired_sites(candidate, params) if role is CullRole.DESIRED else []
        keep = False
        for i, reference in enumerate(references):
            if role is CullRole.UNDESIRED:
                desired, undesired, sites = reference, candidate, reference_sites[i]
            else:
                desired, undesired, sites = candidate, reference, candidate_sites
            distance = rule_distance(desired, undesired, rule_table, params)
            if distance is not None and within_range(sites, undesired, distance, km_per_degree):
                keep = True
                break
        if keep:
            survivors.append(candidate)
        else:
            log.debug("candidate_culled", candidate=_describe(candidate), role=role.value)

    log.debug(
        "cull_complete",
        candidates=len(candidates),
        survivors=len(survivors),
        references=len(references),
    )
    return survivors


def _describe(station: Station) -> str:
    key = station.external_key
    if key is None:
        return station.service.code
    return f"{key.dataset_id}:{key.record_id}"
