"""Impact engine: species mix + site conditions + mode + horizon -> metrics.

The five headline metrics are:
- carbon sequestration (kg CO2/yr, per tree or for the whole area)
- biodiversity impact and forest resilience (0-5 scores)
- water retention (0-95 %)
- air quality improvement (0-95 % when planting, down to -80 % when cutting)

Planting and clear-cutting share the same formulas with different
coefficients; each mode is a ``ModeProfile`` carrying its own set, so signs
are decided in one place.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

from forest_impact.config import settings
from forest_impact.models.schemas import (
    CalculationMode,
    ClimateData,
    EnvironmentalSample,
    ImpactResult,
    SimulationMode,
    SimulationParameters,
    TreeSpecies,
)
from forest_impact.services.clear_cutting import compute_release
from forest_impact.services.climate import has_projectable_climate, project_climate
from forest_impact.services.growth import carbon_growth_factor, ecological_growth_factor
from forest_impact.services.planting import calculate_region_area

logger = logging.getLogger(__name__)

SOIL_CARBON_FACTOR = 0.1        # kg CO2/yr per g/kg soil organic carbon
PRECIP_RESILIENCE_FACTOR = 0.001  # resilience points per mm/yr
SIZE_BONUS_PER_DECADE = 0.2     # score points per order of magnitude of trees


# ── Mode profiles ────────────────────────────────────────────────────


@dataclass(frozen=True)
class ModeProfile(ABC):
    time_sign: float
    biodiversity_time_rate: float
    resilience_time_rate: float
    water_time_rate: float          # % per year, signed
    water_size_per_decade: float
    water_size_cap: float
    air_time_rate: float            # % per year
    air_size_per_decade: float
    air_size_cap: float

    def time_bonus(self, years: int, rate: float) -> float:
        """Score drift over the horizon, capped at one point either way."""
        return self.time_sign * min(1.0, years * rate)

    def water_adjustment(self, years: int, size_decades: float) -> float:
        return self.water_time_rate * years + min(
            self.water_size_cap, size_decades * self.water_size_per_decade
        )

    @abstractmethod
    def air_quality(self, base: float, years: int, size_decades: float, per_area: bool) -> float:
        ...


@dataclass(frozen=True)
class PlantingProfile(ModeProfile):
    def air_quality(self, base: float, years: int, size_decades: float, per_area: bool) -> float:
        size_bonus = min(self.air_size_cap, size_decades * self.air_size_per_decade)
        return min(95.0, max(0.0, base + years * self.air_time_rate + size_bonus))


@dataclass(frozen=True)
class ClearCuttingProfile(ModeProfile):
    per_tree_air_damage: float = 10.0

    def air_quality(self, base: float, years: int, size_decades: float, per_area: bool) -> float:
        # Cutting starts below zero regardless of the site's planting potential
        if per_area:
            immediate = min(self.air_size_cap, size_decades * self.air_size_per_decade)
        else:
            immediate = self.per_tree_air_damage
        return max(-80.0, -(immediate + years * self.air_time_rate))


MODE_PROFILES: dict[SimulationMode, ModeProfile] = {
    SimulationMode.PLANTING: PlantingProfile(
        time_sign=1.0,
        biodiversity_time_rate=0.05,
        resilience_time_rate=0.03,
        water_time_rate=0.3,
        water_size_per_decade=2.0,
        water_size_cap=10.0,
        air_time_rate=0.7,
        air_size_per_decade=3.0,
        air_size_cap=15.0,
    ),
    SimulationMode.CLEAR_CUTTING: ClearCuttingProfile(
        time_sign=-1.0,
        biodiversity_time_rate=0.05,
        resilience_time_rate=0.03,
        water_time_rate=-0.5,
        water_size_per_decade=3.0,
        water_size_cap=15.0,
        air_time_rate=1.0,
        air_size_per_decade=5.0,
        air_size_cap=30.0,
    ),
}


# ── Building blocks ──────────────────────────────────────────────────


@dataclass(frozen=True)
class BaseAttributes:
    carbon: float = 0.0
    biodiversity: float = 0.0
    resilience: float = 0.0


def base_attributes(
    species: list[TreeSpecies],
    percentages: dict[str, float] | None = None,
    tolerance: float | None = None,
) -> BaseAttributes:
    """Blend species attributes into one representative tree.

    Several species whose percentages add up to 100 are weighted by share;
    any other mix falls back to an equal-weight average.
    """
    if not species:
        return BaseAttributes()
    if len(species) == 1:
        tree = species[0]
        return BaseAttributes(tree.carbon_sequestration, tree.biodiversity_value, tree.resilience_score)

    tolerance = settings.percentage_tolerance if tolerance is None else tolerance
    percentages = percentages or {}
    total_pct = sum(percentages.get(tree.id, 0.0) for tree in species)

    if percentages and abs(total_pct - 100) <= tolerance:
        weights = [percentages.get(tree.id, 0.0) / 100 for tree in species]
    else:
        if percentages:
            logger.debug("Species percentages sum to %.2f, using equal weights", total_pct)
        weights = [1 / len(species)] * len(species)

    return BaseAttributes(
        carbon=sum(t.carbon_sequestration * w for t, w in zip(species, weights)),
        biodiversity=sum(t.biodiversity_value * w for t, w in zip(species, weights)),
        resilience=sum(t.resilience_score * w for t, w in zip(species, weights)),
    )


def count_trees(params: SimulationParameters) -> float:
    """Trees on the site: planting layout, else naive region density, else one."""
    if params.planting is not None and params.planting.total_trees > 0:
        return float(params.planting.total_trees)
    if params.region is not None:
        return calculate_region_area(params.region) * settings.trees_per_hectare_fallback
    return 1.0


def size_decades(tree_count: float) -> float:
    """Orders of magnitude of trees; zero for a single tree or fewer."""
    return math.log10(tree_count) if tree_count > 1 else 0.0


def water_retention_base(climate: ClimateData | None, latitude: float) -> float:
    if climate is None or climate.precipitation is None:
        abs_lat = abs(latitude)
        if abs_lat < 30:
            return 85.0
        elif abs_lat < 60:
            return 75.0
        return 70.0

    precip = climate.precipitation
    if precip > 1500:
        precip_bonus = 15
    elif precip > 1000:
        precip_bonus = 10
    elif precip > 500:
        precip_bonus = 5
    else:
        precip_bonus = 0
    return max(60.0, min(90.0, 70.0 + precip_bonus))


def air_quality_base(climate: ClimateData | None, latitude: float) -> float:
    if climate is None or climate.temperature is None or climate.precipitation is None:
        abs_lat = abs(latitude)
        if abs_lat < 30:
            return 70.0  # year-round growth
        elif abs_lat < 60:
            return 60.0
        return 50.0  # short growing season

    temp, precip = climate.temperature, climate.precipitation
    temp_bonus = 5 if temp > 20 else 0 if temp > 10 else -5
    precip_bonus = 3 if precip > 1000 else 0 if precip > 500 else -3
    return max(40.0, min(80.0, 60.0 + temp_bonus + precip_bonus))


# ── Cumulative totals ────────────────────────────────────────────────


def climate_modifiers(climate: ClimateData | None, years: int, latitude: float) -> list[float]:
    """Per-year growth modifier for years 1..``years`` (1.0 without usable data)."""
    if not has_projectable_climate(climate):
        return [1.0] * years
    return [
        project_climate(
            climate.temperature,
            climate.precipitation,
            climate.historical_data,
            year,
            latitude,
        ).growth_modifier
        for year in range(1, years + 1)
    ]


def cumulative_carbon(
    annual_rate: float,
    years: int,
    climate: ClimateData | None = None,
    latitude: float = 0.0,
) -> float:
    """Total kg CO2 sequestered over ``years`` following the growth curve."""
    modifiers = climate_modifiers(climate, years, latitude)
    return sum(
        annual_rate * carbon_growth_factor(year) * modifiers[year - 1]
        for year in range(1, years + 1)
    )


def average_ecological_impact(
    annual_value: float,
    years: int,
    climate: ClimateData | None = None,
    latitude: float = 0.0,
) -> float:
    """Mean biodiversity/resilience score over ``years`` as the stand establishes."""
    if years <= 0:
        return 0.0
    modifiers = climate_modifiers(climate, years, latitude)
    total = sum(
        annual_value * ecological_growth_factor(year) * modifiers[year - 1]
        for year in range(1, years + 1)
    )
    return total / years


# ── Engine ───────────────────────────────────────────────────────────


def compute_impact(
    params: SimulationParameters,
    sample: EnvironmentalSample | None = None,
) -> ImpactResult:
    """Compute headline metrics and cumulative totals for one simulation."""
    profile = MODE_PROFILES[params.mode]
    soil = sample.soil if sample is not None else None
    climate = sample.climate if sample is not None else None
    latitude, _ = params.location()
    years = params.years

    attrs = base_attributes(params.species, params.percentages)
    carbon_base = attrs.carbon
    resilience_base = attrs.resilience
    if soil is not None and soil.carbon is not None:
        carbon_base += soil.carbon * SOIL_CARBON_FACTOR
    if climate is not None and climate.precipitation is not None:
        resilience_base += climate.precipitation * PRECIP_RESILIENCE_FACTOR

    total_trees = count_trees(params)
    per_area = params.calculation_mode == CalculationMode.PER_AREA
    scale = total_trees if per_area else 1.0
    decades = size_decades(scale)
    size_bonus = min(1.0, decades * SIZE_BONUS_PER_DECADE)

    carbon = max(0.0, carbon_base * scale)
    biodiversity = _clamp_score(
        attrs.biodiversity + profile.time_bonus(years, profile.biodiversity_time_rate) + size_bonus
    )
    resilience = _clamp_score(
        resilience_base + profile.time_bonus(years, profile.resilience_time_rate) + size_bonus
    )
    water = min(95.0, max(0.0, water_retention_base(climate, latitude) + profile.water_adjustment(years, decades)))
    air = profile.air_quality(air_quality_base(climate, latitude), years, decades, per_area)

    release = None
    if params.mode == SimulationMode.CLEAR_CUTTING:
        age = params.average_tree_age or settings.default_tree_age
        per_tree = compute_release(carbon_base, age, years)
        release = per_tree.model_copy(update={
            "immediate": per_tree.immediate * scale,
            "lost_future": per_tree.lost_future * scale,
            "total": per_tree.total * scale,
        })

    logger.debug(
        "Impact for %s/%s over %d years: carbon=%.2f trees=%.0f",
        params.mode.value, params.calculation_mode.value, years, carbon, total_trees,
    )

    return ImpactResult(
        carbon_sequestration=carbon,
        biodiversity_impact=biodiversity,
        forest_resilience=resilience,
        water_retention=water,
        air_quality_improvement=air,
        total_carbon=cumulative_carbon(carbon, years, climate, latitude),
        average_biodiversity=average_ecological_impact(biodiversity, years, climate, latitude),
        average_resilience=average_ecological_impact(resilience, years, climate, latitude),
        total_trees=total_trees,
        carbon_release=release,
    )


def _clamp_score(value: float) -> float:
    return min(5.0, max(0.0, value))
