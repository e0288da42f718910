"""Rule extra distance.

A station-specific distance added to every interference rule distance. The
station's ERP is normalized to what it would take to reach the US UHF digital
service contour, so stations of different classes and curve sets compare on a
common scale, then placed into one of four distance bands.
"""

from __future__ import annotations

import math
from typing import Protocol

from scenariokit.config.constants import (
    CURVE_SET_ADJUSTMENT_DB,
    F10_RULE_EXTRA_DISTANCE_KM,
    FM_CHANNEL_MAX_NCE,
    FM_DEFAULT_RULE_EXTRA_DISTANCE_KM,
    TV_DEFAULT_RULE_EXTRA_DISTANCE_KM,
    TV_UHF_MIN,
    TV_VHF_HIGH_MIN,
    UHF_BASE_FREQUENCY_MHZ,
    UHF_CHANNEL_WIDTH_MHZ,
)
from scenariokit.config.models import (
    ContourLevels,
    CountryParameters,
    CurveSet,
    StudyParameters,
)
from scenariokit.sources.models import (
    FMClass,
    FMPayload,
    ServiceType,
    Station,
    TVPayload,
    WirelessPayload,
)


class ContourPolicy(Protocol):
    """Record-type specific contour selection."""

    default_distance_km: float

    def contour(
        self, station: Station, country: CountryParameters
    ) -> tuple[float, CurveSet]: ...


def _kw_to_dbk(kw: float) -> float:
    return 10.0 * math.log10(kw)


class TVContourPolicy:
    default_distance_km = TV_DEFAULT_RULE_EXTRA_DISTANCE_KM

    def contour(self, station: Station, country: CountryParameters) -> tuple[float, CurveSet]:
        payload = station.payload
        assert isinstance(payload, TVPayload)
        service_type = station.service.service_type

        levels: ContourLevels
        if service_type is ServiceType.NTSC_FULL:
            levels, curve_set = country.analog, country.analog_curve_set
        elif service_type in (ServiceType.DTV_CLASS_A, ServiceType.DTV_LPTV):
            levels, curve_set = country.digital_lptv, country.digital_curve_set
        elif service_type in (ServiceType.NTSC_CLASS_A, ServiceType.NTSC_LPTV):
            levels, curve_set = country.analog_lptv, country.analog_curve_set
        else:
            levels, curve_set = country.digital, country.digital_curve_set

        channel = payload.channel
        if channel < TV_VHF_HIGH_MIN:
            return levels.vlo, curve_set
        if channel < TV_UHF_MIN:
            return levels.vhi, curve_set

        dipole = 0.0
        if country.use_dipole_correction:
            frequency = UHF_BASE_FREQUENCY_MHZ + (channel - TV_UHF_MIN) * UHF_CHANNEL_WIDTH_MHZ
            dipole = 20.0 * math.log10(frequency / country.dipole_center_frequency_mhz)
        return levels.uhf + dipole, curve_set


class FMContourPolicy:
    default_distance_km = FM_DEFAULT_RULE_EXTRA_DISTANCE_KM

    def contour(self, station: Station, country: CountryParameters) -> tuple[float, CurveSet]:
        payload = station.payload
        assert isinstance(payload, FMPayload)
        levels = country.fm
        service_type = station.service.service_type

        if service_type is ServiceType.FM_LP:
            level = levels.fm_lp
        elif service_type is ServiceType.FM_TX:
            level = levels.fm_tx
        elif payload.channel > FM_CHANNEL_MAX_NCE:
            if payload.station_class is FMClass.B:
                level = levels.fm_b
            elif payload.station_class is FMClass.B1:
                level = levels.fm_b1
            else:
                level = levels.fm
        else:
            level = levels.fm_ed
        return level, country.fm_curve_set


def policy_for(station: Station) -> ContourPolicy | None:
    """Contour policy of a station's record type, None for wireless."""
    payload = station.payload
    if isinstance(payload, TVPayload):
        return TVContourPolicy()
    if isinstance(payload, FMPayload):
        return FMContourPolicy()
    if isinstance(payload, WirelessPayload):
        return None
    raise TypeError(f"Unknown payload type: {type(payload).__name__}")


def rule_extra_distance(
    station: Station, params: StudyParameters | None, *, peak_erp_kw: float | None = None
) -> float:
    """Extra distance in km to add to rule distances protecting or checking a station.

    Args:
        station: Desired station for an undesireds search, candidate for a
            protecteds search.
        params: Study parameters, None when there is no study context.
        peak_erp_kw: ERP to use instead of the station's, for a DTS sub-site.

    Returns:
        Distance in km, 0 for wireless stations.
    """
    policy = policy_for(station)
    if policy is None:
        return 0.0
    if params is None:
        return policy.default_distance_km

    cfg = params.rule_extra
    if cfg.use_maximum:
        return params.maximum_distance_km
    erp_kw = station.peak_erp_kw if peak_erp_kw is None else peak_erp_kw
    if erp_kw <= 0.0:
        return policy.default_distance_km

    contour_level, curve_set = policy.contour(station, params.for_country(station.country.name))
    if curve_set == "F50_10":
        return F10_RULE_EXTRA_DISTANCE_KM

    reference = params.for_country("US")
    erp_dbk = _kw_to_dbk(erp_kw) + (reference.digital.uhf - contour_level)

    reference_curve_set = reference.digital_curve_set
    if reference_curve_set == "F50_90" and curve_set == "F50_50":
        erp_dbk += CURVE_SET_ADJUSTMENT_DB
    elif reference_curve_set == "F50_50" and curve_set == "F50_90":
        erp_dbk -= CURVE_SET_ADJUSTMENT_DB

    if erp_dbk < _kw_to_dbk(cfg.low_erp_kw):
        return cfg.low_km
    if erp_dbk < _kw_to_dbk(cfg.medium_erp_kw):
        return cfg.low_medium_km
    if erp_dbk < _kw_to_dbk(cfg.high_erp_kw):
        return cfg.medium_high_km
    return cfg.high_km
