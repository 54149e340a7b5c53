"""Region area and planting layout."""

from __future__ import annotations

import math

from forest_impact.models.schemas import PlantingData, Region

KM_PER_DEGREE = 111.32

# Spacing (m) between trees; 3 m gives the 1111 trees/ha fallback density
STANDARD_SPACING_M = 3.0
MIN_SPACING_M = 2.5
MAX_SPACING_M = 6.0


def calculate_region_area(region: Region) -> float:
    """Approximate area of a lat/lon box in hectares."""
    height_km = abs(region.north - region.south) * KM_PER_DEGREE
    lon_span = (region.east - region.west) % 360
    mid_lat = math.radians((region.north + region.south) / 2)
    width_km = lon_span * KM_PER_DEGREE * math.cos(mid_lat)
    return max(0.0, height_km * width_km * 100)


def planting_density(spacing_m: float) -> float:
    """Trees per hectare on a square grid: 10 000 m² / spacing²."""
    return 10000 / (spacing_m ** 2)


def plan_planting(area_hectares: float, spacing_m: float = STANDARD_SPACING_M) -> PlantingData:
    spacing = max(MIN_SPACING_M, min(MAX_SPACING_M, spacing_m))
    density = planting_density(spacing)
    return PlantingData(
        area=area_hectares,
        total_trees=int(area_hectares * density),
        spacing=spacing,
        density=round(density),
    )
