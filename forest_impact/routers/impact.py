from fastapi import APIRouter, HTTPException, Query

from forest_impact.models.schemas import (
    CalculationMode,
    ClearCuttingRelease,
    ClearCuttingRequest,
    ImpactReport,
    ImpactRequest,
    PlantingData,
)
from forest_impact.services import co_benefits
from forest_impact.services.clear_cutting import compute_release
from forest_impact.services.impact import compute_impact
from forest_impact.services.planting import STANDARD_SPACING_M, calculate_region_area, plan_planting

router = APIRouter(tags=["impact"])


@router.post("/api/impact", response_model=ImpactReport)
async def simulate_impact(req: ImpactRequest):
    params = req.parameters
    if params.region is not None and params.region.north <= params.region.south:
        raise HTTPException(400, "Invalid region: north > south required")

    impact = compute_impact(params, req.sample)

    if params.planting is not None:
        area = params.planting.area
    elif params.region is not None:
        area = calculate_region_area(params.region)
    else:
        area = 0.0

    return ImpactReport(
        impact=impact,
        social_score=co_benefits.social_impact(params.mode, len(params.species), params.years, area),
        land_use=co_benefits.land_use_impact(params.mode, area, params.years),
        job_creation=co_benefits.job_creation(params.mode, area),
        comparisons=co_benefits.carbon_comparisons(
            impact.total_carbon,
            params.years,
            per_area=params.calculation_mode == CalculationMode.PER_AREA,
            area_hectares=area,
        ),
    )


@router.post("/api/clear-cutting/release", response_model=ClearCuttingRelease)
async def clear_cutting_release(req: ClearCuttingRequest):
    """Per-tree CO2 released by cutting: trunk carbon plus lost sequestration."""
    return compute_release(req.mature_rate, req.tree_age, req.simulation_years)


@router.get("/api/planting/plan", response_model=PlantingData)
async def planting_plan(
    area: float = Query(..., ge=0, description="Area in hectares"),
    spacing: float = Query(STANDARD_SPACING_M, gt=0, description="Distance between trees (m)"),
):
    return plan_planting(area, spacing)
