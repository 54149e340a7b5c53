"""Social, land-use and economic side effects, plus everyday carbon comparisons.

Coarse planning heuristics shown next to the headline metrics. They read the
same parameters as the impact engine and never feed back into it.
"""

from __future__ import annotations

from forest_impact.models.schemas import LandUseImpact, SimulationMode

# kg CO2 equivalents (EPA / ICAO averages)
CAR_KG_PER_YEAR = 4600
FLIGHT_KG_NY_LONDON = 986
HOUSEHOLD_KG_PER_YEAR = 7500

# (upper bound in hectares, jobs)
PLANTING_JOBS = [(0.1, 2), (0.5, 2), (1, 3), (5, 4), (20, 6), (50, 10), (100, 15)]
CLEAR_CUTTING_JOBS = [(0.1, 3), (0.5, 4), (1, 5), (5, 8), (20, 15), (50, 30), (100, 50)]


def social_impact(mode: SimulationMode, species_count: int, years: int, area_hectares: float) -> float:
    """Community benefit score (1-5)."""
    mixed = species_count > 1
    if mode == SimulationMode.PLANTING:
        diversity = min(species_count * 0.2, 1.0) if mixed else 0.0
        time_bonus = min(years * 0.02, 1.0)
        area_bonus = min(area_hectares * 0.1, 1.0)
        return min(3.5 + diversity + time_bonus + area_bonus, 5.0)

    diversity = min(species_count * 0.1, 0.5) if mixed else 0.0
    time_penalty = min(years * 0.01, 0.5)
    area_penalty = min(area_hectares * 0.05, 0.5)
    return max(2.0 - diversity - time_penalty - area_penalty, 1.0)


def land_use_impact(mode: SimulationMode, area_hectares: float, years: int) -> LandUseImpact:
    if mode == SimulationMode.PLANTING:
        return LandUseImpact(
            erosion=min(area_hectares * 0.5, 95),
            soil_quality=min(years * 1.5, 80),
            habitat=min(area_hectares * 2, 90),
            water_quality=min(years * 1.2, 85),
        )
    return LandUseImpact(
        erosion=min(area_hectares * 0.8, 95),
        soil_quality=min(years * 2.0, 80),
        habitat=min(area_hectares * 3, 90),
        water_quality=min(years * 1.8, 85),
    )


def job_creation(mode: SimulationMode, area_hectares: float) -> int:
    """Crew size for the operation. Cutting is more labour-intensive but short-lived."""
    if mode == SimulationMode.PLANTING:
        table, hectares_per_job = PLANTING_JOBS, 10
    else:
        table, hectares_per_job = CLEAR_CUTTING_JOBS, 2

    for upper, jobs in table:
        if area_hectares < upper:
            return jobs
    return int(area_hectares // hectares_per_job)


def _plural(value: float, word: str, suffix: str = "s") -> str:
    return f"{value:.1f} {word}{'' if value == 1 else suffix}"


def carbon_comparisons(
    total_carbon_kg: float,
    years: int,
    per_area: bool = False,
    area_hectares: float = 0.0,
) -> list[str]:
    comparisons = []

    car_years = total_carbon_kg / CAR_KG_PER_YEAR
    if car_years >= 0.1:
        comparisons.append(f"{_plural(car_years, 'year')} of average car emissions")

    flights = total_carbon_kg / FLIGHT_KG_NY_LONDON
    if flights >= 0.1:
        comparisons.append(f"{_plural(flights, 'round-trip flight')} (NY-London)")

    household_years = total_carbon_kg / HOUSEHOLD_KG_PER_YEAR
    if household_years >= 0.1:
        comparisons.append(f"{_plural(household_years, 'year')} of average household electricity")

    if per_area and area_hectares > 0:
        tonnes_per_ha = (total_carbon_kg / 1000) / area_hectares
        comparisons.append(f"{tonnes_per_ha:.1f} metric tons CO₂ per hectare over {years} years")

    return comparisons
