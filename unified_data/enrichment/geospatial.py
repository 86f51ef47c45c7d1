"""
Geospatial enrichment: governorate lookup, region classification, proximity.

Governorates are approximated by rectangular bounding boxes. The tables are
plain data handed to GeospatialEnricher so they can be replaced by polygon
data without touching callers.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..models import Region, RegionType

EARTH_RADIUS_M = 6_371_000
# Rough conversion used for distance-to-envelope-edge
METERS_PER_DEGREE = 111_000


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    def contains(self, lon: float, lat: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lon <= lon <= self.max_lon

    def distance_to_edge_m(self, lon: float, lat: float) -> float:
        edges = (
            abs(lat - self.min_lat),
            abs(lat - self.max_lat),
            abs(lon - self.min_lon),
            abs(lon - self.max_lon),
        )
        return min(edges) * METERS_PER_DEGREE


@dataclass(frozen=True)
class Governorate:
    name: str
    region: str
    bounds: BoundingBox


@dataclass(frozen=True)
class ReferencePoint:
    name: str
    lon: float
    lat: float


# Declaration order is the tie-break for overlapping boxes
DEFAULT_GOVERNORATES: Tuple[Governorate, ...] = (
    Governorate("Gaza", Region.GAZA.value, BoundingBox(31.45, 31.55, 34.40, 34.50)),
    Governorate("North Gaza", Region.GAZA.value, BoundingBox(31.50, 31.60, 34.45, 34.55)),
    Governorate("Deir al-Balah", Region.GAZA.value, BoundingBox(31.40, 31.50, 34.30, 34.40)),
    Governorate("Khan Yunis", Region.GAZA.value, BoundingBox(31.30, 31.40, 34.25, 34.35)),
    Governorate("Rafah", Region.GAZA.value, BoundingBox(31.25, 31.35, 34.20, 34.30)),
    Governorate("Jenin", Region.WEST_BANK.value, BoundingBox(32.40, 32.50, 35.25, 35.35)),
    Governorate("Tubas", Region.WEST_BANK.value, BoundingBox(32.30, 32.40, 35.35, 35.45)),
    Governorate("Tulkarm", Region.WEST_BANK.value, BoundingBox(32.25, 32.35, 35.00, 35.10)),
    Governorate("Nablus", Region.WEST_BANK.value, BoundingBox(32.15, 32.25, 35.20, 35.30)),
    Governorate("Qalqilya", Region.WEST_BANK.value, BoundingBox(32.10, 32.20, 34.95, 35.05)),
    Governorate("Salfit", Region.WEST_BANK.value, BoundingBox(32.05, 32.15, 35.10, 35.20)),
    Governorate("Ramallah", Region.WEST_BANK.value, BoundingBox(31.85, 31.95, 35.15, 35.25)),
    Governorate("Jericho", Region.WEST_BANK.value, BoundingBox(31.80, 31.90, 35.40, 35.50)),
    Governorate("Jerusalem", Region.EAST_JERUSALEM.value, BoundingBox(31.75, 31.85, 35.15, 35.25)),
    Governorate("Bethlehem", Region.WEST_BANK.value, BoundingBox(31.65, 31.75, 35.15, 35.25)),
    Governorate("Hebron", Region.WEST_BANK.value, BoundingBox(31.45, 31.55, 35.05, 35.15)),
)

DEFAULT_CITIES: Tuple[ReferencePoint, ...] = (
    ReferencePoint("Gaza City", 34.45, 31.50),
    ReferencePoint("Khan Yunis", 34.30, 31.35),
    ReferencePoint("Rafah", 34.25, 31.30),
    ReferencePoint("Ramallah", 35.20, 31.90),
    ReferencePoint("Nablus", 35.25, 32.20),
    ReferencePoint("Hebron", 35.10, 31.50),
    ReferencePoint("Bethlehem", 35.20, 31.70),
    ReferencePoint("Jenin", 35.30, 32.45),
)

# Outer envelopes used for distance_to_border, checked in order
DEFAULT_BORDER_ENVELOPES: Tuple[Tuple[str, BoundingBox], ...] = (
    (Region.GAZA.value, BoundingBox(31.2, 31.6, 34.2, 34.6)),
    (Region.WEST_BANK.value, BoundingBox(31.3, 32.6, 34.9, 35.6)),
)

REGION_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ("gaza", Region.GAZA.value),
    ("west bank", Region.WEST_BANK.value),
    ("westbank", Region.WEST_BANK.value),
    ("jerusalem", Region.EAST_JERUSALEM.value),
)

CAMP_KEYWORDS = ("camp", "refugee")
URBAN_KEYWORDS = ("city", "gaza city", "ramallah")
RURAL_KEYWORDS = ("village", "rural")
URBAN_AREAS = ("gaza", "khan yunis", "rafah", "jenin", "nablus", "hebron", "bethlehem", "ramallah")


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def parse_coordinates(coordinates: Any) -> Optional[Tuple[float, float]]:
    """
    Read a [lon, lat] pair.

    Returns:
        (lon, lat) floats, or None for anything that is not two finite numbers
    """
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) != 2:
        return None
    try:
        lon, lat = float(coordinates[0]), float(coordinates[1])
    except (TypeError, ValueError):
        return None
    if math.isnan(lon) or math.isnan(lat) or math.isinf(lon) or math.isinf(lat):
        return None
    return lon, lat


def _name_text(location_name: Any) -> Optional[str]:
    if isinstance(location_name, dict):
        location_name = location_name.get("value")
    if not isinstance(location_name, str) or not location_name.strip():
        return None
    return location_name.lower()


class GeospatialEnricher:
    """Classifies locations and computes proximity context."""

    def __init__(
        self,
        governorates: Sequence[Governorate] = DEFAULT_GOVERNORATES,
        cities: Sequence[ReferencePoint] = DEFAULT_CITIES,
        border_envelopes: Sequence[Tuple[str, BoundingBox]] = DEFAULT_BORDER_ENVELOPES,
    ):
        self.governorates: List[Governorate] = list(governorates)
        self.cities: List[ReferencePoint] = list(cities)
        self.border_envelopes = list(border_envelopes)
        self._by_name = {g.name: g for g in self.governorates}

    def enrich_location(self, location: Any) -> Any:
        """
        Return an enriched copy of a location dict.

        Never raises; non-dict input is returned unchanged.
        """
        if not isinstance(location, dict):
            return location

        enriched = dict(location)
        coords = parse_coordinates(location.get("coordinates"))
        matched: Optional[Governorate] = None

        if coords is not None:
            lon, lat = coords
            matched = self._match_governorate(lon, lat)
            admin_levels = location.get("admin_levels")
            admin_levels = dict(admin_levels) if isinstance(admin_levels, dict) else {}
            if not admin_levels.get("level1"):
                admin_levels["level1"] = matched.name if matched else None
            enriched["admin_levels"] = admin_levels

        if not enriched.get("region"):
            region = self.classify_region(location.get("name"))
            if region == Region.UNKNOWN.value and matched is not None:
                region = matched.region
            enriched["region"] = region

        if not enriched.get("region_type"):
            enriched["region_type"] = self.classify_region_type(location.get("name"))

        if coords is not None:
            enriched["proximity"] = self.calculate_proximity(list(coords))

        return enriched

    def _match_governorate(self, lon: float, lat: float) -> Optional[Governorate]:
        for gov in self.governorates:
            if gov.bounds.contains(lon, lat):
                return gov
        return None

    def find_governorate(self, lon: float, lat: float) -> Optional[str]:
        """First governorate (declaration order) whose box contains the point."""
        gov = self._match_governorate(lon, lat)
        return gov.name if gov else None

    def classify_region(self, location_name: Any) -> str:
        name = _name_text(location_name)
        if name is None:
            return Region.UNKNOWN.value

        for keyword, region in REGION_KEYWORDS:
            if keyword in name:
                return region

        for gov in self.governorates:
            if gov.name.lower() in name:
                return gov.region

        return Region.UNKNOWN.value

    def classify_region_type(self, location_name: Any) -> Optional[str]:
        name = _name_text(location_name)
        if name is None:
            return None

        if any(k in name for k in CAMP_KEYWORDS):
            return RegionType.CAMP.value
        if any(k in name for k in URBAN_KEYWORDS):
            return RegionType.URBAN.value
        if any(k in name for k in RURAL_KEYWORDS):
            return RegionType.RURAL.value
        if any(city in name for city in URBAN_AREAS):
            return RegionType.URBAN.value
        return None

    def calculate_proximity(self, coordinates: Any) -> Optional[Dict[str, Any]]:
        coords = parse_coordinates(coordinates)
        if coords is None:
            return None
        lon, lat = coords
        nearest, distance = self.find_nearest_city(lon, lat)
        return {
            "nearest_city": nearest,
            "nearest_city_distance_m": distance,
            "distance_to_border": self.calculate_distance_to_border(lon, lat),
        }

    def find_nearest_city(self, lon: float, lat: float) -> Tuple[Optional[str], Optional[float]]:
        nearest_city = None
        min_distance = math.inf
        for city in self.cities:
            distance = haversine_distance(lat, lon, city.lat, city.lon)
            if distance < min_distance:
                min_distance = distance
                nearest_city = city.name
        if nearest_city is None:
            return None, None
        return nearest_city, min_distance

    def calculate_distance_to_border(self, lon: float, lat: float) -> Optional[float]:
        """Meters to the nearest edge of the containing envelope; None outside all envelopes."""
        for _, envelope in self.border_envelopes:
            if envelope.contains(lon, lat):
                return envelope.distance_to_edge_m(lon, lat)
        return None

    def governorate_region(self, governorate_name: str) -> Optional[str]:
        gov = self._by_name.get(governorate_name)
        return gov.region if gov else None
