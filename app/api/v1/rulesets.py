"""Ruleset inspection endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.deps import get_rules_engine
from app.rules.engine import RulesEngine
from app.schemas.ruleset import RulesetDetail, RulesetSummary

router = APIRouter()


@router.get(
    "",
    response_model=list[RulesetSummary],
    status_code=status.HTTP_200_OK,
    summary="List selectors",
    description="Lists every selector bound to a ruleset, Base first",
)
def list_rulesets(
    engine: Annotated[RulesEngine, Depends(get_rules_engine)],
) -> list[RulesetSummary]:
    """List selector bindings with ruleset version and hash."""
    registry = engine.registry
    summaries = []
    for selector in registry.selectors:
        ruleset = registry.resolve(selector)
        summaries.append(
            RulesetSummary(
                selector=selector,
                name=ruleset.name,
                version=ruleset.version,
                hash=ruleset.content_hash,
            )
        )
    return summaries


@router.get(
    "/{selector}",
    response_model=RulesetDetail,
    status_code=status.HTTP_200_OK,
    summary="Show resolved ruleset",
    description="Shows the effective rules for a selector; unknown selectors show Base",
)
def get_ruleset(
    selector: str,
    engine: Annotated[RulesEngine, Depends(get_rules_engine)],
) -> RulesetDetail:
    """Show the resolved classification rules and formulas for a selector."""
    return RulesetDetail.from_ruleset(selector, engine.registry.resolve(selector))
