"""Climate trend extraction and projection.

Fits an ordinary-least-squares trend to the historical yearly series and
extrapolates it linearly. The projected change in temperature and
precipitation is turned into a growth modifier: moderate warming and wetting
help growth, and the modifier is clamped so long horizons cannot run away.
"""

from __future__ import annotations

import numpy as np

from forest_impact.models.schemas import ClimateData, ClimateProjection, HistoricalClimatePoint

DEFAULT_PRECIPITATION_MM = 1000.0

# Minimum yearly points before a trend is trusted
MIN_TREND_POINTS = 6

TEMP_GROWTH_PER_DEGREE = 0.02
PRECIP_GROWTH_PER_MM = 0.0001
MIN_GROWTH_MODIFIER = 0.5
MAX_GROWTH_MODIFIER = 1.5


def estimate_current_temperature(latitude: float) -> float:
    """Latitude-banded mean temperature (°C) used when no reading exists."""
    abs_lat = abs(latitude)
    if abs_lat < 30:
        return 25.0
    elif abs_lat < 60:
        return 15.0
    elif abs_lat < 70:
        return 5.0
    return -5.0


def calculate_linear_trend(xs, ys) -> float:
    """OLS slope of ``ys`` against ``xs``.

    Returns 0 when the series is too short, the lengths disagree, or every x
    is identical.
    """
    x = np.asarray(xs, dtype=np.float64)
    y = np.asarray(ys, dtype=np.float64)
    if x.shape != y.shape or x.size < 2:
        return 0.0

    n = x.size
    denominator = n * np.sum(x * x) - np.sum(x) ** 2
    if denominator == 0:
        return 0.0
    return float((n * np.sum(x * y) - np.sum(x) * np.sum(y)) / denominator)


def calculate_growth_modifier(
    predicted_temp: float,
    predicted_precip: float,
    current_temp: float,
    current_precip: float,
) -> float:
    temp_modifier = 1 + (predicted_temp - current_temp) * TEMP_GROWTH_PER_DEGREE
    precip_modifier = 1 + (predicted_precip - current_precip) * PRECIP_GROWTH_PER_MM
    return max(MIN_GROWTH_MODIFIER, min(MAX_GROWTH_MODIFIER, temp_modifier * precip_modifier))


def project_climate(
    current_temp: float | None,
    current_precip: float | None,
    historical: list[HistoricalClimatePoint] | None,
    year_offset: int,
    latitude: float,
) -> ClimateProjection:
    """Project temperature and precipitation ``year_offset`` years ahead."""
    base_temp = current_temp if current_temp is not None else estimate_current_temperature(latitude)
    base_precip = current_precip if current_precip is not None else DEFAULT_PRECIPITATION_MM

    predicted_temp = base_temp
    predicted_precip = base_precip

    if historical and len(historical) >= MIN_TREND_POINTS:
        years = [p.year for p in historical]
        temp_trend = calculate_linear_trend(years, [p.temperature for p in historical])
        precip_trend = calculate_linear_trend(years, [p.precipitation for p in historical])
        predicted_temp = base_temp + temp_trend * year_offset
        predicted_precip = max(0.0, base_precip + precip_trend * year_offset)

    return ClimateProjection(
        temperature=predicted_temp,
        precipitation=predicted_precip,
        growth_modifier=calculate_growth_modifier(
            predicted_temp, predicted_precip, base_temp, base_precip
        ),
    )


def has_projectable_climate(climate: ClimateData | None) -> bool:
    """Whether a climate sample may drive projections.

    Estimated or partially missing data must not be read as a trend input.
    """
    return (
        climate is not None
        and climate.temperature is not None
        and climate.precipitation is not None
        and not climate.is_estimated
    )
