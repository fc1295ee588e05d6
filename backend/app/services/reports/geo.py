"""
Geo-Duplicate Detector

Finds existing reports within the duplicate radius of a coordinate.
Pure query: never writes.

A latitude/longitude bounding box narrows the candidates in SQL, then the
great-circle (haversine) distance decides membership.
"""
from dataclasses import dataclass
from math import radians, degrees, sin, cos, atan2, sqrt
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ...config import DUPLICATE_RADIUS_METERS, EARTH_RADIUS_METERS
from ...models.db_models import ReportDB


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two decimal-degree points."""
    phi1, phi2 = radians(lat1), radians(lat2)
    d_phi = radians(lat2 - lat1)
    d_lambda = radians(lon2 - lon1)
    a = sin(d_phi / 2) ** 2 + cos(phi1) * cos(phi2) * sin(d_lambda / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


@dataclass
class NearbyReport:
    """A report inside the duplicate radius and its distance from the query point."""
    report: ReportDB
    distance_meters: float


class DuplicateDetector:
    """
    Finds the duplicate cluster around a coordinate.

    Reports of every status count; a resolved report nearby still marks a
    recurring problem location.
    """

    def __init__(self, db_session: Session, radius_meters: float = DUPLICATE_RADIUS_METERS):
        """Initialize with database session."""
        self.db = db_session
        self.radius_meters = radius_meters

    def find_nearby(
        self,
        latitude: float,
        longitude: float,
        exclude_id: Optional[str] = None,
    ) -> List[NearbyReport]:
        """
        Return all reports within the radius, nearest first.

        Args:
            latitude: Query latitude in decimal degrees
            longitude: Query longitude in decimal degrees
            exclude_id: Report to leave out (the report being recomputed)
        """
        query = self.db.query(ReportDB)
        for criterion in self._bounding_box(latitude, longitude):
            query = query.filter(criterion)
        if exclude_id is not None:
            query = query.filter(ReportDB.id != exclude_id)

        nearby = []
        for report in query.all():
            distance = haversine(latitude, longitude, report.latitude, report.longitude)
            if distance <= self.radius_meters:
                nearby.append(NearbyReport(report=report, distance_meters=distance))

        nearby.sort(key=lambda n: (n.distance_meters, n.report.id))
        return nearby

    def count_nearby(self, latitude: float, longitude: float, exclude_id: Optional[str] = None) -> int:
        return len(self.find_nearby(latitude, longitude, exclude_id=exclude_id))

    def _bounding_box(self, latitude: float, longitude: float) -> list:
        """SQL pre-filter; slightly wider than the radius so no true neighbour is lost."""
        lat_delta = degrees(self.radius_meters / EARTH_RADIUS_METERS) * 1.01
        criteria = [
            ReportDB.latitude >= latitude - lat_delta,
            ReportDB.latitude <= latitude + lat_delta,
        ]

        cos_lat = cos(radians(latitude))
        # Near the poles every longitude is close; skip the longitude filter
        if cos_lat > 1e-6:
            lon_delta = lat_delta / cos_lat
            if lon_delta < 180:
                criteria.append(self._longitude_band(longitude - lon_delta, longitude + lon_delta))
        return criteria

    @staticmethod
    def _longitude_band(west: float, east: float):
        """Longitude range, split in two when it crosses the antimeridian."""
        if west < -180:
            return or_(ReportDB.longitude >= west + 360, ReportDB.longitude <= east)
        if east > 180:
            return or_(ReportDB.longitude >= west, ReportDB.longitude <= east - 360)
        return and_(ReportDB.longitude >= west, ReportDB.longitude <= east)
