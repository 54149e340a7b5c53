"""Tests for the soil/climate collaborator using a mocked HTTP transport."""

from datetime import date

import httpx
import pytest

from forest_impact.models.schemas import EnvironmentalSample, SimulationParameters, TreeSpecies
from forest_impact.models.store import InMemoryStore
from forest_impact.services.cache import EnvCache
from forest_impact.services.climate import project_climate
from forest_impact.services.environment import (
    SOIL_RETRY,
    RetryPolicy,
    estimate_climate_data,
    estimate_soil_data,
    fetch_climate_data,
    fetch_soil_data,
    get_environmental_sample,
    process_daily_to_yearly,
)
from forest_impact.services.impact import compute_impact

SOIL_OK = {
    "properties": {
        "layers": [
            {"name": "soc", "depths": [{"label": "0-5cm", "values": {"mean": 250}}]},
            {"name": "phh2o", "depths": [{"label": "0-5cm", "values": {"mean": 65}}]},
        ]
    }
}

FORECAST_OK = {"current": {"temperature_2m": 14.2, "precipitation": 0.1}}

ARCHIVE_OK = {
    "daily": {
        "temperature_2m_mean": [10.0] * 730,
        "precipitation_sum": [2.0] * 730,
    }
}


class FakeApi:
    """Routes requests by host; each route is a status code and JSON body."""

    def __init__(self, routes=None):
        self.routes = {
            "rest.isric.org": (200, SOIL_OK),
            "api.open-meteo.com": (200, FORECAST_OK),
            "archive-api.open-meteo.com": (200, ARCHIVE_OK),
        }
        self.routes.update(routes or {})
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request.url.host)
        status, body = self.routes[request.url.host]
        return httpx.Response(status, json=body)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


class Sleeps(list):
    def __call__(self, seconds):
        self.append(seconds)


class TestEstimates:
    @pytest.mark.parametrize("lat,temp,precip", [
        (0, 25, 2000), (-30, 20, 1000), (45, 12, 800), (60, 3, 500), (-80, -5, 300),
    ])
    def test_climate_bands(self, lat, temp, precip):
        climate = estimate_climate_data(lat)
        assert (climate.temperature, climate.precipitation) == (temp, precip)
        assert climate.is_estimated

    @pytest.mark.parametrize("lat,carbon,ph", [
        (10, 15, 6.0), (35, 18, 6.5), (50, 25, 6.5), (-70, 30, 5.5),
    ])
    def test_soil_bands(self, lat, carbon, ph):
        soil = estimate_soil_data(lat)
        assert (soil.carbon, soil.ph) == (carbon, ph)
        assert soil.is_estimated


class TestRetryPolicy:
    def test_wait_after(self):
        assert SOIL_RETRY.max_attempts == 3
        assert SOIL_RETRY.wait_after(1) == 2.0
        assert SOIL_RETRY.wait_after(2) == 4.0

    def test_no_backoff(self):
        assert RetryPolicy(timeouts=(1.0,), backoff=()).wait_after(1) == 0.0


class TestSoil:
    def test_success_converts_units(self):
        api = FakeApi()
        soil = fetch_soil_data(45.0, -122.0, api.client(), sleep=Sleeps())
        assert soil.carbon == pytest.approx(25.0)
        assert soil.ph == pytest.approx(6.5)
        assert not soil.is_estimated

    def test_no_coverage_skips_retries(self):
        api = FakeApi({"rest.isric.org": (404, {})})
        sleeps = Sleeps()
        soil = fetch_soil_data(45.0, -122.0, api.client(), sleep=sleeps)
        assert soil == estimate_soil_data(45.0)
        assert len(api.calls) == 1
        assert sleeps == []

    def test_server_error_retries_with_backoff(self):
        api = FakeApi({"rest.isric.org": (500, {})})
        sleeps = Sleeps()
        soil = fetch_soil_data(45.0, -122.0, api.client(), sleep=sleeps)
        assert soil.is_estimated
        assert len(api.calls) == 3
        assert sleeps == [2.0, 4.0]

    def test_partial_values_filled_from_estimate(self):
        body = {"properties": {"layers": [
            {"name": "soc", "depths": [{"values": {"mean": 120}}]},
            {"name": "phh2o", "depths": [{"values": {"mean": None}}]},
        ]}}
        api = FakeApi({"rest.isric.org": (200, body)})
        soil = fetch_soil_data(45.0, -122.0, api.client(), sleep=Sleeps())
        assert soil.carbon == pytest.approx(12.0)
        assert soil.ph == estimate_soil_data(45.0).ph
        assert soil.is_estimated

    def test_all_null_values(self):
        api = FakeApi({"rest.isric.org": (200, {"properties": {"layers": []}})})
        soil = fetch_soil_data(45.0, -122.0, api.client(), sleep=Sleeps())
        assert soil == estimate_soil_data(45.0)
        assert len(api.calls) == 1

    def test_invalid_coordinates_make_no_calls(self):
        api = FakeApi()
        soil = fetch_soil_data(95.0, 0.0, api.client(), sleep=Sleeps())
        assert soil.is_estimated
        assert api.calls == []


class TestClimate:
    def test_live_with_history(self):
        api = FakeApi()
        climate = fetch_climate_data(45.0, -122.0, api.client(), sleep=Sleeps())
        assert climate.temperature == pytest.approx(14.2)
        assert not climate.is_estimated
        assert len(climate.historical_data) == 2
        # mean of two 365-day totals of 2 mm/day
        assert climate.precipitation == pytest.approx(730.0)

    def test_history_unavailable_estimates_precipitation(self):
        api = FakeApi({"archive-api.open-meteo.com": (500, {})})
        climate = fetch_climate_data(45.0, -122.0, api.client(), sleep=Sleeps())
        assert climate.temperature == pytest.approx(14.2)
        assert climate.precipitation == 800.0
        assert climate.is_estimated
        assert climate.historical_data == []

    def test_missing_temperature_falls_back(self):
        api = FakeApi({"api.open-meteo.com": (200, {"current": {}})})
        sleeps = Sleeps()
        climate = fetch_climate_data(45.0, -122.0, api.client(), sleep=sleeps)
        assert climate == estimate_climate_data(45.0)
        assert sleeps == []

    def test_forecast_errors_retry(self):
        api = FakeApi({"api.open-meteo.com": (503, {})})
        sleeps = Sleeps()
        climate = fetch_climate_data(45.0, -122.0, api.client(), sleep=sleeps)
        assert climate.is_estimated
        assert sleeps == [1.5, 3.0]


class TestClimateHistoryWindow:
    @staticmethod
    def _archive(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.open-meteo.com":
            return httpx.Response(200, json=FORECAST_OK)
        start = date.fromisoformat(request.url.params["start_date"])
        end = date.fromisoformat(request.url.params["end_date"])
        days = (end - start).days + 1
        # warms by 1 °C a year
        return httpx.Response(200, json={"daily": {
            "temperature_2m_mean": [10 + i / 365 for i in range(days)],
            "precipitation_sum": [2.0] * days,
        }})

    def test_default_window_supports_trend(self):
        client = httpx.Client(transport=httpx.MockTransport(self._archive))
        climate = fetch_climate_data(45.0, 10.0, client, sleep=Sleeps())
        assert not climate.is_estimated
        assert len(climate.historical_data) >= 6

        projection = project_climate(
            climate.temperature, climate.precipitation, climate.historical_data, 5, 45.0
        )
        assert projection.growth_modifier > 1.0

    def test_live_history_changes_cumulative_carbon(self):
        client = httpx.Client(transport=httpx.MockTransport(self._archive))
        climate = fetch_climate_data(45.0, 10.0, client, sleep=Sleeps())
        params = SimulationParameters(
            years=10,
            latitude=45.0,
            longitude=10.0,
            species=[TreeSpecies(id="oak", carbon_sequestration=20, biodiversity_value=3, resilience_score=3)],
        )
        with_climate = compute_impact(params, EnvironmentalSample(climate=climate))
        without_climate = compute_impact(params)
        assert with_climate.total_carbon > without_climate.total_carbon


class TestDailyToYearly:
    def test_full_years(self):
        points = process_daily_to_yearly([1.0] * 365 + [3.0] * 365, [1.0] * 730)
        assert [p.year for p in points] == [1, 2]
        assert points[1].temperature == pytest.approx(3.0)
        assert points[0].precipitation == pytest.approx(365.0)

    def test_partial_year_dropped(self):
        assert len(process_daily_to_yearly([1.0] * 500, [1.0] * 500)) == 1

    def test_sparse_year_dropped(self):
        temps = [1.0] * 300 + [None] * 65
        assert process_daily_to_yearly(temps, [1.0] * 365) == []

    def test_missing_days_ignored(self):
        temps = [2.0] * 350 + [None] * 15
        points = process_daily_to_yearly(temps, [1.0] * 365)
        assert points[0].temperature == pytest.approx(2.0)

    def test_empty(self):
        assert process_daily_to_yearly([], []) == []


class TestEnvironmentalSample:
    def test_demo_mode_uses_estimates(self):
        api = FakeApi()
        sample = get_environmental_sample(45.0, -122.0, client=api.client(), demo_mode=True)
        assert sample.soil == estimate_soil_data(45.0)
        assert sample.climate == estimate_climate_data(45.0)
        assert api.calls == []

    def test_live_sample(self):
        api = FakeApi()
        sample = get_environmental_sample(45.0, -122.0, client=api.client(), demo_mode=False, sleep=Sleeps())
        assert sample.soil.carbon == pytest.approx(25.0)
        assert not sample.climate.is_estimated

    def test_cache_hit_skips_network(self):
        api = FakeApi()
        cache = EnvCache(InMemoryStore())
        first = get_environmental_sample(45.0, -122.0, cache=cache, client=api.client(), demo_mode=False)
        calls = len(api.calls)

        second = get_environmental_sample(45.00001, -122.00001, cache=cache, client=api.client(), demo_mode=False)

        assert second == first
        assert len(api.calls) == calls
