"""Forest Impact Simulator — FastAPI application."""

import logging

from fastapi import FastAPI

from forest_impact.routers import environment, health, impact, share

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Forest Impact Simulator",
    description="Estimate the environmental impact of planting or clear-cutting trees",
    version="0.1.0",
)

# Register routers
app.include_router(health.router)
app.include_router(impact.router)
app.include_router(share.router)
app.include_router(environment.router)
