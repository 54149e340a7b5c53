"""Tests for climate trend extraction and projection."""

import pytest

from forest_impact.models.schemas import ClimateData, HistoricalClimatePoint
from forest_impact.services.climate import (
    calculate_growth_modifier,
    calculate_linear_trend,
    estimate_current_temperature,
    has_projectable_climate,
    project_climate,
)


def _history(temps, precips):
    return [
        HistoricalClimatePoint(year=i + 1, temperature=t, precipitation=p)
        for i, (t, p) in enumerate(zip(temps, precips))
    ]


class TestEstimateTemperature:
    @pytest.mark.parametrize("lat,expected", [
        (0, 25), (-29.9, 25), (45, 15), (-59, 15), (65, 5), (75, -5), (-89, -5),
    ])
    def test_latitude_bands(self, lat, expected):
        assert estimate_current_temperature(lat) == expected


class TestLinearTrend:
    def test_perfect_line(self):
        assert calculate_linear_trend([1, 2, 3], [2, 4, 6]) == pytest.approx(2.0)

    def test_noisy_series(self):
        # OLS slope for y = [1, 3, 2, 5] against x = [1, 2, 3, 4]
        assert calculate_linear_trend([1, 2, 3, 4], [1, 3, 2, 5]) == pytest.approx(1.1)

    def test_single_point(self):
        assert calculate_linear_trend([1], [5]) == 0.0

    def test_length_mismatch(self):
        assert calculate_linear_trend([1, 2, 3], [1, 2]) == 0.0

    def test_degenerate_x(self):
        assert calculate_linear_trend([3, 3, 3], [1, 2, 3]) == 0.0


class TestGrowthModifier:
    def test_no_change(self):
        assert calculate_growth_modifier(15, 1000, 15, 1000) == pytest.approx(1.0)

    def test_warming(self):
        assert calculate_growth_modifier(17, 1000, 15, 1000) == pytest.approx(1.04)

    def test_combined(self):
        # (1 + 1*0.02) * (1 + 100*0.0001)
        assert calculate_growth_modifier(16, 1100, 15, 1000) == pytest.approx(1.02 * 1.01)

    def test_clamped_high(self):
        assert calculate_growth_modifier(60, 1000, 15, 1000) == 1.5

    def test_clamped_low(self):
        assert calculate_growth_modifier(-20, 1000, 15, 1000) == 0.5


class TestProjectClimate:
    def test_without_history_keeps_current(self):
        proj = project_climate(12.0, 800.0, None, 10, 45.0)
        assert proj.temperature == 12.0
        assert proj.precipitation == 800.0
        assert proj.growth_modifier == pytest.approx(1.0)

    def test_short_history_ignored(self):
        history = _history([10, 11, 12, 13, 14], [800] * 5)
        proj = project_climate(12.0, 800.0, history, 10, 45.0)
        assert proj.temperature == 12.0

    def test_trend_extrapolated(self):
        history = _history([10, 11, 12, 13, 14, 15], [1000] * 6)
        proj = project_climate(12.0, 1000.0, history, 5, 45.0)
        assert proj.temperature == pytest.approx(17.0)
        assert proj.precipitation == pytest.approx(1000.0)
        assert proj.growth_modifier == pytest.approx(1.1)

    def test_precipitation_floored_at_zero(self):
        history = _history([12] * 6, [3000, 2500, 2000, 1500, 1000, 500])
        proj = project_climate(12.0, 1000.0, history, 5, 45.0)
        assert proj.precipitation == 0.0
        assert proj.growth_modifier == pytest.approx(0.9)

    def test_missing_current_uses_latitude_estimate(self):
        proj = project_climate(None, None, None, 3, 10.0)
        assert proj.temperature == 25.0
        assert proj.precipitation == 1000.0

    def test_zero_degrees_is_a_reading(self):
        proj = project_climate(0.0, 500.0, None, 3, 10.0)
        assert proj.temperature == 0.0


class TestProjectableClimate:
    def test_live_data(self):
        assert has_projectable_climate(ClimateData(temperature=10, precipitation=700))

    def test_estimated_data(self):
        assert not has_projectable_climate(
            ClimateData(temperature=10, precipitation=700, is_estimated=True)
        )

    def test_missing_field(self):
        assert not has_projectable_climate(ClimateData(temperature=10))

    def test_no_sample(self):
        assert not has_projectable_climate(None)
