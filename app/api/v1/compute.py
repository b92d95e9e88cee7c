"""Compute endpoints."""

import json
import math
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse

from app.api.deps import get_rules_engine
from app.rules.engine import RulesEngine
from app.rules.exceptions import FormulaEvaluationError
from app.schemas.compute import ComputeRequest, ComputeResponse, ErrorMessage

router = APIRouter()

EXAMPLE_REQUEST = {"a": True, "b": True, "c": True, "d": 4.7, "e": 5, "f": 2, "case": "B"}


@router.post(
    "/compute",
    response_model=ComputeResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Classify input and compute value",
    responses={
        400: {"model": ErrorMessage, "description": "Invalid params or no matching classification"},
        413: {"model": ErrorMessage, "description": "Request body too large"},
        422: {"model": ErrorMessage, "description": "Formula could not be evaluated"},
        500: {"model": ErrorMessage, "description": "Ruleset has no formula for the label"},
    },
)
def compute(
    payload: ComputeRequest,
    engine: Annotated[RulesEngine, Depends(get_rules_engine)],
    explain: bool = Query(False, description="Include ruleset name and fired rule id"),
) -> ComputeResponse:
    """Classify the input booleans and compute the label's formula.

    The ``case`` field selects an overlay ruleset. Unknown selectors fall
    back to the Base ruleset rather than being rejected.

    Declared as a sync endpoint so evaluations run in the threadpool; the
    engine holds no mutable state.
    """
    result = engine.compute(payload.to_record())

    if not math.isfinite(result.value):
        raise FormulaEvaluationError(
            result.label.value, result.expression, f"non-finite result {result.value}"
        )

    if explain:
        return ComputeResponse(
            h=result.label,
            k=result.value,
            ruleset=result.ruleset,
            rule_id=result.rule_id,
        )
    return ComputeResponse(h=result.label, k=result.value)


@router.get(
    "/help",
    response_class=PlainTextResponse,
    summary="Usage hint",
)
def help_text() -> str:
    """Describe the expected compute parameters."""
    return (
        "API expects all of these params: a, b, c (bool), d (number), "
        "e, f (integer) and case (ruleset selector: B, C1 or C2; anything "
        "else uses B). If you got an error, check the parameter types. "
        f"Example: {json.dumps(EXAMPLE_REQUEST)}"
    )
