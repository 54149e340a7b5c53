"""Carbon released by clear-cutting.

Two parts: the carbon held in the trunk, released right away, and the
sequestration the tree would still have delivered over the simulation horizon.
"""

from __future__ import annotations

from forest_impact.models.schemas import ClearCuttingRelease
from forest_impact.services.growth import age_growth_factor

CARBON_TO_CO2 = 3.67  # molecular mass ratio CO2 / C


def trunk_carbon_kg(tree_age: float) -> float:
    """Carbon stored in the trunk (kg C) for a tree of ``tree_age`` years.

    Accumulation slows with age and caps at 47.5 kg for trees over 50.
    """
    if tree_age <= 5:
        return tree_age * 2
    elif tree_age <= 20:
        return 10 + (tree_age - 5) * 1.5
    elif tree_age <= 50:
        return 32.5 + (tree_age - 20) * 0.5
    return 47.5


def lost_future_sequestration(mature_rate: float, tree_age: int, simulation_years: int) -> float:
    return sum(
        mature_rate * age_growth_factor(tree_age + year)
        for year in range(1, simulation_years + 1)
    )


def compute_release(mature_rate: float, tree_age: int, simulation_years: int) -> ClearCuttingRelease:
    """Per-tree CO2 release (kg) from cutting a tree of ``tree_age``."""
    immediate = trunk_carbon_kg(tree_age) * CARBON_TO_CO2
    lost_future = lost_future_sequestration(mature_rate, tree_age, simulation_years)
    return ClearCuttingRelease(
        immediate=immediate,
        lost_future=lost_future,
        total=immediate + lost_future,
    )
