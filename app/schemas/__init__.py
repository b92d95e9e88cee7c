"""Pydantic schemas for request/response validation."""

from app.schemas.compute import ComputeRequest, ComputeResponse, ErrorMessage
from app.schemas.ruleset import (
    ClassificationRuleRead,
    RulesetDetail,
    RulesetSummary,
)

__all__ = [
    "ComputeRequest",
    "ComputeResponse",
    "ErrorMessage",
    "ClassificationRuleRead",
    "RulesetSummary",
    "RulesetDetail",
]
