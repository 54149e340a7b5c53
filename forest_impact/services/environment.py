"""Soil (ISRIC SoilGrids) and climate (Open-Meteo) data for a location.

Every fetch resolves to a sample: when a source has no coverage, keeps failing
or demo mode is on, latitude-band estimates are returned with
``is_estimated=True``. Retries follow an explicit ``RetryPolicy``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, Optional, TypeVar

import httpx
import numpy as np
from pydantic import ValidationError

from forest_impact.config import settings
from forest_impact.errors import EnvironmentalDataUnavailable
from forest_impact.models.schemas import (
    ClimateData,
    EnvironmentalSample,
    HistoricalClimatePoint,
    SoilData,
)
from forest_impact.services.cache import EnvCache, environment_cache_key

logger = logging.getLogger(__name__)

T = TypeVar("T")

DAYS_PER_YEAR = 365
MIN_DAYS_PER_YEAR = 300


@dataclass(frozen=True)
class RetryPolicy:
    """Per-attempt timeouts (s) and the waits (s) between attempts."""
    timeouts: tuple[float, ...]
    backoff: tuple[float, ...]

    @property
    def max_attempts(self) -> int:
        return len(self.timeouts)

    def wait_after(self, attempt: int) -> float:
        if not self.backoff:
            return 0.0
        return self.backoff[min(attempt - 1, len(self.backoff) - 1)]


SOIL_RETRY = RetryPolicy(timeouts=(15.0, 25.0, 35.0), backoff=(2.0, 4.0))
CLIMATE_RETRY = RetryPolicy(timeouts=(10.0, 15.0, 20.0), backoff=(1.5, 3.0))


# ── Latitude-band estimates ──────────────────────────────────────────


def estimate_climate_data(lat: float) -> ClimateData:
    abs_lat = abs(lat)
    if abs_lat < 23.5:
        temperature, precipitation = 25.0, 2000.0  # tropical
    elif abs_lat < 35:
        temperature, precipitation = 20.0, 1000.0  # subtropical
    elif abs_lat < 55:
        temperature, precipitation = 12.0, 800.0   # temperate
    elif abs_lat < 66.5:
        temperature, precipitation = 3.0, 500.0    # boreal
    else:
        temperature, precipitation = -5.0, 300.0   # arctic
    return ClimateData(temperature=temperature, precipitation=precipitation, is_estimated=True)


def estimate_soil_data(lat: float) -> SoilData:
    abs_lat = abs(lat)
    if abs_lat < 23.5:
        carbon, ph = 15.0, 6.0  # fast decomposition
    elif abs_lat < 40:
        carbon, ph = 18.0, 6.5
    elif abs_lat < 60:
        carbon, ph = 25.0, 6.5
    else:
        carbon, ph = 30.0, 5.5  # slow decomposition, acidic
    return SoilData(carbon=carbon, ph=ph, is_estimated=True)


def _valid_coordinates(lat: float, lon: float) -> bool:
    return -90 <= lat <= 90 and -180 <= lon <= 180


# ── Retry loop ───────────────────────────────────────────────────────


def _with_retries(
    label: str,
    attempt_fn: Callable[[float], T],
    policy: RetryPolicy,
    fallback: Callable[[], T],
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    for attempt, timeout in enumerate(policy.timeouts, start=1):
        try:
            return attempt_fn(timeout)
        except EnvironmentalDataUnavailable as e:
            logger.info("[%s] %s. Using estimates.", label, e)
            return fallback()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(
                "[%s] Attempt %d of %d failed: %s", label, attempt, policy.max_attempts, e
            )
            if attempt < policy.max_attempts:
                sleep(policy.wait_after(attempt))

    logger.info("[%s] All attempts exhausted. Using estimates.", label)
    return fallback()


# ── Soil ─────────────────────────────────────────────────────────────


def _parse_soilgrids(payload: dict) -> tuple[Optional[float], Optional[float]]:
    """Extract (organic carbon g/kg, pH) from a SoilGrids properties response."""
    carbon = ph = None
    layers = (payload.get("properties") or {}).get("layers") or []
    for layer in layers:
        depths = layer.get("depths") or []
        if not depths:
            continue
        raw = (depths[0].get("values") or {}).get("mean")
        if raw is None:
            continue
        # soc in dg/kg, phh2o in pH*10
        if layer.get("name") == "soc":
            carbon = raw / 10
        elif layer.get("name") == "phh2o":
            ph = raw / 10
    return carbon, ph


def fetch_soil_data(
    lat: float,
    lon: float,
    client: httpx.Client,
    policy: RetryPolicy = SOIL_RETRY,
    sleep: Callable[[float], None] = time.sleep,
) -> SoilData:
    """Topsoil (0-5 cm) organic carbon and pH."""
    if not _valid_coordinates(lat, lon):
        logger.warning("Invalid coordinates for soil data: %s, %s", lat, lon)
        return estimate_soil_data(lat)

    def attempt(timeout: float) -> SoilData:
        resp = client.get(
            settings.soilgrids_url,
            params=[
                ("lon", lon), ("lat", lat),
                ("property", "soc"), ("property", "phh2o"),
                ("depth", "0-5cm"), ("value", "mean"),
            ],
            headers={"Accept": "application/json"},
            timeout=timeout,
        )
        # No coverage for this location; retrying will not help
        if resp.status_code in (400, 404):
            raise EnvironmentalDataUnavailable(f"No soil data available ({resp.status_code})")
        resp.raise_for_status()

        carbon, ph = _parse_soilgrids(resp.json())
        if carbon is None and ph is None:
            raise EnvironmentalDataUnavailable("Soil API returned null values")

        estimate = estimate_soil_data(lat)
        logger.info("[SOIL API] Success: carbon=%s ph=%s", carbon, ph)
        return SoilData(
            carbon=carbon if carbon is not None else estimate.carbon,
            ph=ph if ph is not None else estimate.ph,
            is_estimated=carbon is None or ph is None,
        )

    return _with_retries("SOIL API", attempt, policy, lambda: estimate_soil_data(lat), sleep)


# ── Climate ──────────────────────────────────────────────────────────


def process_daily_to_yearly(
    temperatures: list[Optional[float]],
    precipitations: list[Optional[float]],
) -> list[HistoricalClimatePoint]:
    """Collapse daily series into yearly mean temperature and total precipitation.

    Years are consecutive 365-day chunks numbered from 1; a chunk is kept only
    when both series have more than 300 valid days in it.
    """
    temps = np.array(temperatures, dtype=np.float64)
    precips = np.array(precipitations, dtype=np.float64)
    n_years = min(len(temps), len(precips)) // DAYS_PER_YEAR

    points = []
    for year in range(n_years):
        chunk = slice(year * DAYS_PER_YEAR, (year + 1) * DAYS_PER_YEAR)
        t = temps[chunk]
        p = precips[chunk]
        t = t[~np.isnan(t)]
        p = p[~np.isnan(p)]
        if len(t) > MIN_DAYS_PER_YEAR and len(p) > MIN_DAYS_PER_YEAR:
            points.append(HistoricalClimatePoint(
                year=year + 1,
                temperature=float(t.mean()),
                precipitation=float(p.sum()),
            ))
    return points


def _fetch_historical(
    client: httpx.Client, lat: float, lon: float, timeout: float
) -> list[HistoricalClimatePoint]:
    end = date.today()
    start = end - timedelta(days=DAYS_PER_YEAR * settings.historical_years)
    try:
        resp = client.get(
            settings.open_meteo_archive_url,
            params={
                "latitude": lat,
                "longitude": lon,
                "start_date": start.isoformat(),
                "end_date": end.isoformat(),
                "daily": "temperature_2m_mean,precipitation_sum",
                "timezone": "auto",
            },
            timeout=timeout,
        )
        resp.raise_for_status()
        daily = resp.json().get("daily") or {}
    except (httpx.HTTPError, ValueError) as e:
        logger.info("[CLIMATE API] Historical data unavailable: %s", e)
        return []

    return process_daily_to_yearly(
        daily.get("temperature_2m_mean") or [],
        daily.get("precipitation_sum") or [],
    )


def fetch_climate_data(
    lat: float,
    lon: float,
    client: httpx.Client,
    policy: RetryPolicy = CLIMATE_RETRY,
    sleep: Callable[[float], None] = time.sleep,
) -> ClimateData:
    """Current temperature plus yearly history; precipitation as mm/yr."""
    if not _valid_coordinates(lat, lon):
        logger.warning("Invalid coordinates for climate data: %s, %s", lat, lon)
        return estimate_climate_data(lat)

    def attempt(timeout: float) -> ClimateData:
        resp = client.get(
            settings.open_meteo_forecast_url,
            params={
                "latitude": lat,
                "longitude": lon,
                "current": "temperature_2m,precipitation",
                "timezone": "auto",
            },
            timeout=timeout,
        )
        resp.raise_for_status()
        current = resp.json().get("current") or {}
        temperature = current.get("temperature_2m")
        if temperature is None:
            raise EnvironmentalDataUnavailable("No temperature data")

        historical = _fetch_historical(client, lat, lon, timeout)
        if historical:
            precipitation = sum(p.precipitation for p in historical) / len(historical)
            is_estimated = False
        else:
            # Current precipitation is an hourly amount, not an annual total
            precipitation = estimate_climate_data(lat).precipitation
            is_estimated = True

        logger.info(
            "[CLIMATE API] Success: temperature=%s precipitation=%.0f historical_years=%d",
            temperature, precipitation, len(historical),
        )
        return ClimateData(
            temperature=temperature,
            precipitation=precipitation,
            is_estimated=is_estimated,
            historical_data=historical,
        )

    return _with_retries("CLIMATE API", attempt, policy, lambda: estimate_climate_data(lat), sleep)


# ── Cached lookup ────────────────────────────────────────────────────


def get_environmental_sample(
    lat: float,
    lon: float,
    cache: EnvCache | None = None,
    client: httpx.Client | None = None,
    demo_mode: bool | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> EnvironmentalSample:
    """Soil and climate for a location, served from the cache when fresh."""
    key = environment_cache_key(lat, lon)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            try:
                return EnvironmentalSample.model_validate(cached)
            except ValidationError as e:
                logger.warning("Discarding malformed cached sample for %s: %s", key, e)

    demo = settings.demo_mode if demo_mode is None else demo_mode
    if demo:
        sample = EnvironmentalSample(soil=estimate_soil_data(lat), climate=estimate_climate_data(lat))
    else:
        owns_client = client is None
        client = client or httpx.Client()
        try:
            sample = EnvironmentalSample(
                soil=fetch_soil_data(lat, lon, client, sleep=sleep),
                climate=fetch_climate_data(lat, lon, client, sleep=sleep),
            )
        finally:
            if owns_client:
                client.close()

    if cache is not None:
        cache.set(key, sample.model_dump(mode="json"), settings.env_cache_ttl_ms)
    return sample
