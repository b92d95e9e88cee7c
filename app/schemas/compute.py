"""Compute request/response schemas."""

from pydantic import BaseModel, ConfigDict, Field

from app.rules.models import InputRecord, Label

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class ComputeRequest(BaseModel):
    """Schema for a compute request.

    Every field is required. Booleans and integers are strict, so ``"true"``,
    ``1`` or ``5.0`` are rejected where a bool or int is expected. ``d``
    accepts any JSON number.
    """

    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")

    a: bool
    b: bool
    c: bool
    d: float = Field(allow_inf_nan=False)
    e: int = Field(ge=INT64_MIN, le=INT64_MAX)
    f: int = Field(ge=INT64_MIN, le=INT64_MAX)
    case: str = Field(description="Ruleset selector, e.g. B, C1 or C2")

    def to_record(self) -> InputRecord:
        """Convert to the engine's input record."""
        return InputRecord(
            a=self.a,
            b=self.b,
            c=self.c,
            d=self.d,
            e=self.e,
            f=self.f,
            selector=self.case,
        )


class ComputeResponse(BaseModel):
    """Result of a compute request."""

    h: Label
    k: float
    ruleset: str | None = None
    rule_id: str | None = None


class ErrorMessage(BaseModel):
    """Error envelope shared by every failing response."""

    code: int
    message: str
