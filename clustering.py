"""
Map placement and proximity clustering for listing markers.

Listings carry a zone name, not coordinates. Each one is placed at its
zone's center plus a small random offset, then nearby markers are merged
into count badges so dense zones stay readable.

Distances are Euclidean in degree space. That is not geodesic distance,
but the city is small enough for it not to matter.
"""

import logging
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from config import MapSettings
from models import Listing

logger = logging.getLogger(__name__)

# Zone centers (lat, lng)
ZONE_COORDINATES: dict[str, tuple[float, float]] = {
    "Roma Norte": (19.4125, -99.1625),
    "Roma Sur":   (19.4050, -99.1600),
    "Condesa":    (19.4100, -99.1700),
    "Polanco":    (19.4350, -99.1950),
    "Santa Fe":   (19.3600, -99.2700),
    "Coyoacán":   (19.3500, -99.1600),
    "Del Valle":  (19.3800, -99.1650),
    "Doctores":   (19.4200, -99.1450),
    "Narvarte":   (19.3950, -99.1550),
    "Juárez":     (19.4250, -99.1550),
}

DEFAULT_CENTER = (19.4326, -99.1332)


@dataclass(frozen=True)
class MapPoint:
    listing: Listing
    lat: float
    lng: float


@dataclass
class Bounds:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    @classmethod
    def around(cls, point: MapPoint) -> "Bounds":
        return cls(point.lat, point.lat, point.lng, point.lng)

    def extend(self, point: MapPoint) -> None:
        self.min_lat = min(self.min_lat, point.lat)
        self.max_lat = max(self.max_lat, point.lat)
        self.min_lng = min(self.min_lng, point.lng)
        self.max_lng = max(self.max_lng, point.lng)

    @property
    def midpoint(self) -> tuple[float, float]:
        return ((self.min_lat + self.max_lat) / 2, (self.min_lng + self.max_lng) / 2)


class BadgeTier(Enum):
    """Marker style by cluster size: (color, size step)."""
    SINGLE = ("blue", 0)
    SMALL = ("orange", 0)
    MEDIUM = ("red", 1)
    LARGE = ("purple", 2)

    @property
    def color(self) -> str:
        return self.value[0]

    @property
    def size_step(self) -> int:
        return self.value[1]


@dataclass
class ClusterGroup:
    points: list = field(default_factory=list)
    center: tuple = (0.0, 0.0)
    bounds: Optional[Bounds] = None

    @property
    def size(self) -> int:
        return len(self.points)

    @property
    def listings(self) -> list[Listing]:
        return [p.listing for p in self.points]

    @property
    def tier(self) -> BadgeTier:
        return badge_tier(self.size)

    @property
    def badge(self) -> str:
        return badge_label(self.size)


# ── Placement ───────────────────────────────────────────────────────────────

def zone_center(zone: str) -> tuple[float, float]:
    return ZONE_COORDINATES.get(zone, DEFAULT_CENTER)


def place_listings(
    listings: list[Listing],
    jitter: float,
    rng: Optional[random.Random] = None,
) -> list[MapPoint]:
    """
    Give each listing a coordinate near its zone center.

    The offset on each axis is uniform in [-jitter/2, jitter/2). Call this
    once per listing set; clustering never re-jitters.
    """
    rng = rng or random.Random()
    points = []
    for listing in listings:
        lat, lng = zone_center(listing.zone)
        points.append(MapPoint(
            listing=listing,
            lat=lat + (rng.random() - 0.5) * jitter,
            lng=lng + (rng.random() - 0.5) * jitter,
        ))
    return points


# ── Clustering ──────────────────────────────────────────────────────────────

def cluster_points(points: list[MapPoint], radius: float) -> list[ClusterGroup]:
    """
    Greedy single-pass clustering in input order.

    Each unclaimed point seeds a cluster and absorbs every later unclaimed
    point within radius of the seed itself, not of the growing cluster, so
    results depend on input order. Multi-point clusters are centered on the
    midpoint of their bounding box.
    """
    claimed: set[int] = set()
    clusters: list[ClusterGroup] = []

    for i, seed in enumerate(points):
        if i in claimed:
            continue
        claimed.add(i)
        group = ClusterGroup(points=[seed], center=(seed.lat, seed.lng), bounds=Bounds.around(seed))

        for j in range(i + 1, len(points)):
            if j in claimed:
                continue
            other = points[j]
            # NaN coordinates compare False and stay unclustered
            if _distance(seed, other) <= radius:
                group.points.append(other)
                group.bounds.extend(other)
                claimed.add(j)

        if group.size > 1:
            group.center = group.bounds.midpoint
        clusters.append(group)

    logger.debug(f"Clustered {len(points)} points into {len(clusters)} markers (r={radius})")
    return clusters


def _distance(a: MapPoint, b: MapPoint) -> float:
    return math.sqrt((a.lat - b.lat) ** 2 + (a.lng - b.lng) ** 2)


def badge_tier(count: int) -> BadgeTier:
    if count <= 1:
        return BadgeTier.SINGLE
    if count < 5:
        return BadgeTier.SMALL
    if count < 10:
        return BadgeTier.MEDIUM
    return BadgeTier.LARGE


def badge_label(count: int) -> str:
    return "99+" if count > 99 else str(count)


def radius_for(mobile: bool, settings: Optional[MapSettings] = None) -> float:
    settings = settings or MapSettings()
    return settings.mobile_radius if mobile else settings.desktop_radius


def jitter_for(mobile: bool, settings: Optional[MapSettings] = None) -> float:
    settings = settings or MapSettings()
    return settings.mobile_jitter if mobile else settings.desktop_jitter
