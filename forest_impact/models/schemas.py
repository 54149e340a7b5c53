from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class SimulationMode(str, Enum):
    PLANTING = "planting"
    CLEAR_CUTTING = "clear-cutting"


class CalculationMode(str, Enum):
    PER_TREE = "perTree"
    PER_AREA = "perArea"


# ── Reference data ───────────────────────────────────────────────────


class TreeSpecies(BaseModel):
    """Species attributes as published by the species catalog."""
    id: str
    name: str = ""
    carbon_sequestration: float = Field(
        ge=0, description="Mature annual sequestration rate (kg CO2/yr)"
    )
    biodiversity_value: float = Field(ge=1, le=5)
    resilience_score: float = Field(ge=1, le=5)
    climate_zones: list[str] = []


class Region(BaseModel):
    north: float
    south: float
    east: float
    west: float

    def center(self) -> tuple[float, float]:
        return (self.north + self.south) / 2, (self.east + self.west) / 2


class PlantingData(BaseModel):
    """Planting layout for an area: hectares, spacing and resulting tree count."""
    area: float = Field(ge=0, description="Area in hectares")
    total_trees: int = Field(ge=0)
    spacing: float = Field(gt=0, description="Distance between trees (m)")
    density: float = Field(ge=0, description="Trees per hectare")


# ── Simulation input ─────────────────────────────────────────────────


class SimulationParameters(BaseModel):
    mode: SimulationMode = SimulationMode.PLANTING
    years: int = Field(ge=1, le=100)
    calculation_mode: CalculationMode = CalculationMode.PER_TREE
    average_tree_age: Optional[int] = Field(
        None, gt=0, description="Age of the trees being cut (clear-cutting only)"
    )
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    region: Optional[Region] = None
    species: list[TreeSpecies] = []
    percentages: dict[str, float] = Field(
        default_factory=dict, description="Species id -> share of the mix (0-100)"
    )
    planting: Optional[PlantingData] = None

    def location(self) -> tuple[float, float]:
        """Point used for latitude-dependent defaults.

        The explicit location wins; otherwise the region center; otherwise
        the origin.
        """
        if self.latitude is not None and self.longitude is not None:
            return self.latitude, self.longitude
        if self.region is not None:
            return self.region.center()
        return 0.0, 0.0


# ── Environmental samples ────────────────────────────────────────────


class SoilData(BaseModel):
    carbon: Optional[float] = Field(None, description="Soil organic carbon (g/kg)")
    ph: Optional[float] = None
    is_estimated: bool = False


class HistoricalClimatePoint(BaseModel):
    year: int
    temperature: float
    precipitation: float


class ClimateData(BaseModel):
    temperature: Optional[float] = Field(None, description="Mean temperature (°C)")
    precipitation: Optional[float] = Field(None, description="Precipitation (mm/yr)")
    is_estimated: bool = False
    historical_data: list[HistoricalClimatePoint] = []


class EnvironmentalSample(BaseModel):
    soil: Optional[SoilData] = None
    climate: Optional[ClimateData] = None


class ClimateProjection(BaseModel):
    temperature: float
    precipitation: float
    growth_modifier: float


# ── Results ──────────────────────────────────────────────────────────


class ClearCuttingRelease(BaseModel):
    """CO2 released by cutting, in kg CO2."""
    immediate: float
    lost_future: float
    total: float


class ImpactResult(BaseModel):
    carbon_sequestration: float = Field(description="Annual rate (kg CO2/yr)")
    biodiversity_impact: float = Field(ge=0, le=5)
    forest_resilience: float = Field(ge=0, le=5)
    water_retention: float = Field(ge=0, le=95)
    air_quality_improvement: float = Field(ge=-80, le=95)
    total_carbon: float = Field(description="Cumulative sequestration (kg CO2)")
    average_biodiversity: float
    average_resilience: float
    total_trees: float
    carbon_release: Optional[ClearCuttingRelease] = None

    model_config = {"frozen": True}


class LandUseImpact(BaseModel):
    """Percentages; reductions in planting mode, damage in clear-cutting mode."""
    erosion: float = 0.0
    soil_quality: float = 0.0
    habitat: float = 0.0
    water_quality: float = 0.0


class ImpactRequest(BaseModel):
    parameters: SimulationParameters
    sample: Optional[EnvironmentalSample] = None


class ImpactReport(BaseModel):
    impact: ImpactResult
    social_score: float
    land_use: LandUseImpact
    job_creation: int
    comparisons: list[str] = []


class ClearCuttingRequest(BaseModel):
    mature_rate: float = Field(ge=0)
    tree_age: int = Field(gt=0)
    simulation_years: int = Field(ge=1, le=100)


# ── Sharing ──────────────────────────────────────────────────────────


class ShareableState(BaseModel):
    """Reduced projection of SimulationParameters; species by id only."""
    mode: SimulationMode
    years: int
    calculation_mode: CalculationMode
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    region: Optional[Region] = None
    average_tree_age: Optional[int] = None
    tree_ids: list[str] = []
    tree_percentages: dict[str, float] = {}


class ShareLink(BaseModel):
    code: str
    url: str


# ── Cache ────────────────────────────────────────────────────────────


class CacheEntry(BaseModel):
    data: Any
    timestamp: int = Field(description="Write time (ms since epoch)")
    ttl: int = Field(description="Time to live (ms)")


class CacheStats(BaseModel):
    count: int = 0
    size: int = 0
