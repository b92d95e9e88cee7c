"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from app.api.v1 import compute, health, rulesets

api_router = APIRouter()

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

# Compute
api_router.include_router(
    compute.router,
    tags=["compute"],
)

# Ruleset inspection
api_router.include_router(
    rulesets.router,
    prefix="/rulesets",
    tags=["rulesets"],
)
