"""Mutual-exclusivity (MX) resolution.

Two records are MX when they describe facilities that cannot both exist,
for example two applications for the same facility, or two co-channel
proposals for the same community. A scenario keeps exactly one record of
each MX group, chosen by a deterministic preference order.
"""

from __future__ import annotations

import functools
from collections.abc import Sequence
from dataclasses import dataclass, field

from scenariokit.config.constants import DRT_MX_DISTANCE_KM
from scenariokit.config.models import MXConfig
from scenariokit.core.logging import get_logger
from scenariokit.sources.models import (
    Country,
    ExternalKey,
    FMPayload,
    Station,
    StatusType,
    TVPayload,
)
from scenariokit.sources.records import ExternalRecord

log = get_logger(__name__)


def is_operating(record: ExternalRecord) -> bool:
    """True if the record describes an operating facility.

    Non-operating services and archived records never operate. LIC and STA
    always do. OTHER operates only outside the U.S. A CP operates outside the
    U.S., and in the U.S. only while a license application is pending.
    """
    if not record.service.is_operating or record.is_archived:
        return False
    if record.status_type in (StatusType.LIC, StatusType.STA):
        return True
    if record.status_type is StatusType.CP:
        return record.country is not Country.US or record.has_license_app
    if record.status_type is StatusType.OTHER:
        return record.country is not Country.US
    return False


def compare_preference(a: ExternalRecord, b: ExternalRecord, prefer_operating: bool) -> int:
    """Negative if a is preferred over b, positive if b is preferred, 0 only for equal keys."""
    if prefer_operating:
        a_op, b_op = is_operating(a), is_operating(b)
        if a_op != b_op:
            return -1 if a_op else 1

    if a.service.preference_rank != b.service.preference_rank:
        return -1 if a.service.preference_rank > b.service.preference_rank else 1

    if prefer_operating:
        a_sta = a.status_type is StatusType.STA
        b_sta = b.status_type is StatusType.STA
        if a_sta != b_sta:
            return -1 if a_sta else 1

    if a.status_type.rank != b.status_type.rank:
        return -1 if a.status_type.rank < b.status_type.rank else 1

    if a.record_id != b.record_id:
        return -1 if a.record_id > b.record_id else 1

    if a.dataset_id != b.dataset_id:
        return -1 if a.dataset_id > b.dataset_id else 1
    return 0


def sort_by_preference(
    records: Sequence[ExternalRecord], prefer_operating: bool = False
) -> list[ExternalRecord]:
    """Most preferred first."""
    key = functools.cmp_to_key(lambda a, b: compare_preference(a, b, prefer_operating))
    return sorted(records, key=key)


def are_mx(a: Station, b: Station, config: MXConfig, km_per_degree: float) -> bool:
    """MX predicate between two records of the same record type.

    Wireless records and records of different types are never MX.
    """
    pa, pb = a.payload, b.payload
    if isinstance(pa, TVPayload) and isinstance(pb, TVPayload):
        is_drt = pa.is_drt or pb.is_drt
    elif isinstance(pa, FMPayload) and isinstance(pb, FMPayload):
        is_drt = False
    else:
        return False

    backup_tests = not config.facility_id_only

    if pa.facility_id == pb.facility_id:
        if is_drt:
            if pa.channel != pb.channel or not backup_tests:
                return False
            return a.location.distance_to(b.location, km_per_degree) < DRT_MX_DISTANCE_KM
        return True

    if not backup_tests:
        return False
    if pa.channel != pb.channel or a.country is not b.country:
        return False
    if (
        pa.state
        and pa.city
        and pa.state.casefold() == pb.state.casefold()
        and pa.city.casefold() == pb.city.casefold()
    ):
        return True
    distance_km = config.co_channel_distance_km
    return distance_km > 0.0 and a.location.distance_to(b.location, km_per_degree) < distance_km


@dataclass
class MXOutcome:
    """Survivors of MX resolution and what was dropped at each step."""

    survivors: list[ExternalRecord] = field(default_factory=list)
    duplicates: list[ExternalRecord] = field(default_factory=list)
    mx_removed: list[ExternalRecord] = field(default_factory=list)


def resolve_mx(
    candidates: Sequence[ExternalRecord],
    existing: Sequence[Station],
    config: MXConfig,
    km_per_degree: float,
    *,
    disable_mx: bool | None = None,
) -> MXOutcome:
    """Drop duplicates of existing members and resolve MX groups.

    Candidates are compared as they will stand in the scenario, so a
    replicating TV candidate is tested on its replication channel.

    Args:
        candidates: Records surviving culling.
        existing: Current scenario members.
        config: MX options.
        km_per_degree: Study spherical earth distance.
        disable_mx: Overrides config.disable_mx when not None.

    Returns:
        Survivors in preference order when MX is enabled, else input order.
    """
    mx_disabled = config.disable_mx if disable_mx is None else disable_mx
    outcome = MXOutcome()

    seen: set[ExternalKey] = {
        source.external_key for source in existing if source.external_key is not None
    }
    remaining: list[ExternalRecord] = []
    for candidate in candidates:
        key = candidate.external_key
        if key in seen:
            outcome.duplicates.append(candidate)
            continue
        seen.add(key)
        if not mx_disabled and any(
            are_mx(candidate.as_replicated(), member, config, km_per_degree) for member in existing
        ):
            outcome.mx_removed.append(candidate)
            continue
        remaining.append(candidate)

    if mx_disabled:
        outcome.survivors = remaining
        return outcome

    ordered = sort_by_preference(remaining, config.prefer_operating)
    for candidate in ordered:
        placed = candidate.as_replicated()
        if any(
            are_mx(kept.as_replicated(), placed, config, km_per_degree)
            for kept in outcome.survivors
        ):
            outcome.mx_removed.append(candidate)
            log.debug(
                "mx_candidate_removed",
                dataset_id=candidate.dataset_id,
                record_id=candidate.record_id,
            )
        else:
            outcome.survivors.append(candidate)

    log.debug(
        "mx_resolved",
        candidates=len(candidates),
        survivors=len(outcome.survivors),
        duplicates=len(outcome.duplicates),
        mx_removed=len(outcome.mx_removed),
    )
    return outcome
