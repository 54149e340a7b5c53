from fastapi import APIRouter, Depends, HTTPException

from forest_impact.models.schemas import EnvironmentalSample
from forest_impact.services.cache import EnvCache, create_cache
from forest_impact.services.environment import get_environmental_sample

router = APIRouter(tags=["environment"])

_cache = create_cache()


def get_cache() -> EnvCache:
    return _cache


@router.get("/api/environment", response_model=EnvironmentalSample)
def get_environment(lat: float, lon: float, cache: EnvCache = Depends(get_cache)):
    """Soil and climate for a point; estimates when live data is unavailable."""
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        raise HTTPException(400, "Invalid coordinates")
    return get_environmental_sample(lat, lon, cache)


@router.get("/api/environment/cache")
def get_cache_stats(cache: EnvCache = Depends(get_cache)):
    return cache.stats()


@router.delete("/api/environment/cache")
def clear_cache(cache: EnvCache = Depends(get_cache)):
    return {"removed": cache.clear_all()}
