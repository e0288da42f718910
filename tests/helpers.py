"""Shared station values for tests."""

from scenariokit.sources.models import GeoPoint, Service, ServiceType

KM_PER_DEGREE = 111.15

DTV = Service("DT", ServiceType.DTV_FULL, preference_rank=10)
DTV_LPTV = Service("LD", ServiceType.DTV_LPTV, preference_rank=5)
FM = Service("FM", ServiceType.FM_FULL, preference_rank=10)
WIRELESS = Service("WL", ServiceType.WIRELESS)


def point_north(km: float, origin: GeoPoint = GeoPoint(40.0, -75.0)) -> GeoPoint:
    """Point km kilometers due north of origin on the study sphere."""
    return GeoPoint(origin.latitude + km / KM_PER_DEGREE, origin.longitude)
