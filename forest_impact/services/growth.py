"""Tree growth curves.

Each table maps an elapsed simulation year (or a tree age) to the fraction of
the mature rate a tree delivers at that stage: slow start, rapid growth, then
a plateau. The age table also declines after maturity (senescence).
"""

from __future__ import annotations

from bisect import bisect_left


class GrowthTable:
    """Step lookup over sorted upper bounds.

    ``breakpoints[i]`` is the largest index that still gets ``factors[i]``;
    anything past the last breakpoint gets ``tail``.
    """

    def __init__(self, breakpoints: list[int], factors: list[float], tail: float):
        if len(breakpoints) != len(factors):
            raise ValueError("breakpoints and factors must have the same length")
        self.breakpoints = breakpoints
        self.factors = factors
        self.tail = tail

    def __call__(self, index: float) -> float:
        i = bisect_left(self.breakpoints, index)
        if i < len(self.factors):
            return self.factors[i]
        return self.tail


# Carbon and canopy size, by elapsed simulation year
CARBON_GROWTH = GrowthTable(
    [1, 2, 3, 4, 5, 6],
    [0.05, 0.15, 0.30, 0.50, 0.70, 0.85],
    tail=0.95,
)

# Biodiversity and resilience establish faster than biomass
ECOLOGICAL_GROWTH = GrowthTable(
    [1, 2, 3, 4, 5, 6],
    [0.10, 0.25, 0.45, 0.65, 0.80, 0.90],
    tail=0.95,
)

# By tree age, used for the sequestration a cut tree would have delivered
AGE_GROWTH = GrowthTable(
    [1, 2, 3, 4, 5, 6, 20, 50],
    [0.05, 0.15, 0.30, 0.50, 0.70, 0.85, 0.95, 0.90],
    tail=0.85,
)


def carbon_growth_factor(year: int) -> float:
    return CARBON_GROWTH(year)


def ecological_growth_factor(year: int) -> float:
    return ECOLOGICAL_GROWTH(year)


def age_growth_factor(age: float) -> float:
    return AGE_GROWTH(age)


def annual_carbon_with_growth(mature_rate: float, year: int) -> float:
    """Annual sequestration in simulation year ``year``, without climate effects.

    Legacy display helper for "kg CO2/yr at the end of the horizon". It does
    not agree with ``impact.cumulative_carbon`` once a live climate sample is
    present; totals must come from there.
    """
    return mature_rate * carbon_growth_factor(year)
