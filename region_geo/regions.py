"""
Geographic region grid and coordinate conversions.

Regions are latitude/longitude cells of ``degrees_per_region`` on a side,
numbered row-major from the south-west corner. Points on the globe are also
handled as unit vectors in cartesian space, where directional means live.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from region_geo.errors import DimensionMismatch


def geographic_to_cartesian(lat: float, lon: float) -> np.ndarray:
    """Unit vector for a (lat, lon) pair in degrees."""
    phi = math.radians(lat)
    lam = math.radians(lon)
    return np.array([
        math.cos(phi) * math.cos(lam),
        math.cos(phi) * math.sin(lam),
        math.sin(phi),
    ])


def cartesian_to_geographic(vec: np.ndarray) -> tuple[float, float]:
    """(lat, lon) in degrees for a non-zero vector; the norm is ignored."""
    x, y, z = (float(v) for v in vec)
    lat = math.degrees(math.atan2(z, math.hypot(x, y)))
    lon = math.degrees(math.atan2(y, x))
    return lat, lon


@dataclass(frozen=True)
class RegionGrid:
    degrees_per_region: float = 3.0

    @property
    def n_lat(self) -> int:
        return math.ceil(180.0 / self.degrees_per_region)

    @property
    def n_lon(self) -> int:
        return math.ceil(360.0 / self.degrees_per_region)

    @property
    def n_regions(self) -> int:
        return self.n_lat * self.n_lon

    def region_of(self, lat: float, lon: float) -> int:
        if not -90.0 <= lat <= 90.0:
            raise DimensionMismatch(f"latitude out of range: {lat}")
        lon = ((lon + 180.0) % 360.0) - 180.0
        row = min(int((lat + 90.0) // self.degrees_per_region), self.n_lat - 1)
        col = min(int((lon + 180.0) // self.degrees_per_region), self.n_lon - 1)
        return row * self.n_lon + col

    def center(self, region: int) -> tuple[float, float]:
        row, col = divmod(region, self.n_lon)
        d = self.degrees_per_region
        lat = min(-90.0 + (row + 0.5) * d, 90.0)
        lon = min(-180.0 + (col + 0.5) * d, 180.0)
        return lat, lon
