"""Ruleset inspection schemas."""

from pydantic import BaseModel

from app.rules.models import Label, RuleSet


class ClassificationRuleRead(BaseModel):
    """One classification rule in evaluation order."""

    id: str
    when: dict[str, bool]
    predicate: str
    label: Label


class RulesetSummary(BaseModel):
    """Selector binding summary."""

    selector: str
    name: str
    version: str
    hash: str


class RulesetDetail(RulesetSummary):
    """Resolved ruleset for a selector."""

    description: str
    classification: list[ClassificationRuleRead]
    formulas: dict[str, str]

    @classmethod
    def from_ruleset(cls, selector: str, ruleset: RuleSet) -> "RulesetDetail":
        data = ruleset.to_dict()
        return cls(
            selector=selector,
            name=data["name"],
            version=data["version"],
            hash=data["hash"],
            description=data["description"],
            classification=[ClassificationRuleRead(**rule) for rule in data["classification"]],
            formulas=data["formulas"],
        )
