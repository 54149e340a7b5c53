from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Serve latitude-band estimates instead of calling SoilGrids/Open-Meteo
    demo_mode: bool = True

    # Species percentages within this distance of 100 count as a full mix
    percentage_tolerance: float = 0.01

    # Naive density when no planting layout is supplied (3 m spacing)
    trees_per_hectare_fallback: float = 1111.0

    # Tree age assumed for clear-cutting when none is given
    default_tree_age: int = 20

    # Local cache
    cache_namespace: str = "forest-sim-cache"
    cache_version: str = "v1"
    env_cache_ttl_ms: int = 60 * 60 * 1000
    cache_file: str = ""

    # Environmental data sources
    soilgrids_url: str = "https://rest.isric.org/soilgrids/v2.0/properties/query"
    open_meteo_forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    open_meteo_archive_url: str = "https://archive-api.open-meteo.com/v1/archive"
    # Years of daily archive history; trend projection needs at least 6 full
    # years and the archive lags a few days behind today
    historical_years: int = 7

    # Prefix for generated share links, e.g. https://example.org/simulator
    share_base_url: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
