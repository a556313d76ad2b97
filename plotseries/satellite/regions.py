"""
Regions of interest (plots).

Coordinates are in a projected, metre-based CRS shared with the scene grids.
Best tool for drawing geometries: https://geojson.io
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from shapely.geometry import Point, Polygon, box
from shapely.ops import unary_union


@dataclass(frozen=True)
class Region:
    """A plot with a stable identifier."""
    region_id: str
    geometry: Polygon

    def __str__(self):
        return f"{self.region_id} {[round(v, 2) for v in self.geometry.bounds]}"


def regions_from_points(
    points: Sequence[Tuple[float, float]],
    buffer: float,
    prefix: str = "polygon_"
) -> List[Region]:
    """
    Build square plots around point centroids.

    Args:
        points: (x, y) centroids
        buffer: Half-width of each square in metres
        prefix: Identifier prefix; ids are prefix + point index

    Returns:
        Regions in input order
    """
    return [
        Region(region_id=f"{prefix}{i}", geometry=Point(x, y).buffer(buffer).envelope)
        for i, (x, y) in enumerate(points)
    ]


def regions_from_bboxes(bboxes: dict) -> List[Region]:
    """Regions from {region_id: [x_min, y_min, x_max, y_max]}."""
    return [Region(region_id=rid, geometry=box(*b)) for rid, b in bboxes.items()]


def regions_union(regions: Iterable[Region]):
    """Union of all region geometries, or None if there are none."""
    geoms = [r.geometry for r in regions]
    if not geoms:
        return None
    return unary_union(geoms)


def check_unique_ids(regions: Iterable[Region]) -> None:
    seen = set()
    for r in regions:
        if r.region_id in seen:
            raise ValueError(f"Duplicate region id: {r.region_id}")
        seen.add(r.region_id)
