"""Rule and ruleset data models.

Everything here is immutable once built so a single ruleset instance can be
shared by concurrent evaluations without locking.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional

from app.rules.expressions import Formula


class Label(str, Enum):
    """Classification outcome."""

    M = "M"
    P = "P"
    T = "T"


@dataclass(frozen=True)
class InputRecord:
    """Validated input for one evaluation."""

    a: bool
    b: bool
    c: bool
    d: float
    e: int
    f: int
    selector: str


@dataclass(frozen=True)
class Predicate:
    """Conjunction of literals over a, b and c.

    A literal set to None is absent from the conjunction.
    Two predicates are the same rule slot when all three literals match.
    """

    a: Optional[bool] = None
    b: Optional[bool] = None
    c: Optional[bool] = None

    def matches(self, record: InputRecord) -> bool:
        """Evaluate the conjunction against a record."""
        for name in ("a", "b", "c"):
            expected = getattr(self, name)
            if expected is not None and getattr(record, name) != expected:
                return False
        return True

    def describe(self) -> str:
        """Human-readable form, e.g. ``a ∧ b ∧ ¬c``."""
        literals = []
        for name in ("a", "b", "c"):
            expected = getattr(self, name)
            if expected is None:
                continue
            literals.append(name if expected else f"¬{name}")
        return " ∧ ".join(literals) if literals else "⊤"

    def to_dict(self) -> dict[str, bool]:
        """Literals present in the conjunction."""
        return {
            name: getattr(self, name)
            for name in ("a", "b", "c")
            if getattr(self, name) is not None
        }


@dataclass(frozen=True)
class ClassificationRule:
    """An ordered (predicate, label) pair."""

    id: str
    predicate: Predicate
    label: Label


@dataclass(frozen=True)
class FormulaRule:
    """Numeric formula bound to a label."""

    label: Label
    expression: str
    formula: Formula = field(compare=False, repr=False)

    def apply(self, d: float, e: int, f: int) -> float:
        return self.formula(d, e, f)


@dataclass(frozen=True)
class RuleSet:
    """Ordered classification rules plus a label to formula mapping.

    Also used for resolved rulesets: the result of merging an overlay onto
    Base is a plain RuleSet.
    """

    name: str
    version: str
    content_hash: str
    classification: tuple[ClassificationRule, ...]
    formulas: Mapping[Label, FormulaRule]
    description: str = ""

    def __post_init__(self) -> None:
        # Freeze the mapping regardless of what the caller passed in
        object.__setattr__(self, "classification", tuple(self.classification))
        object.__setattr__(self, "formulas", MappingProxyType(dict(self.formulas)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict."""
        return {
            "name": self.name,
            "version": self.version,
            "hash": self.content_hash,
            "description": self.description,
            "classification": [
                {
                    "id": rule.id,
                    "when": rule.predicate.to_dict(),
                    "predicate": rule.predicate.describe(),
                    "label": rule.label.value,
                }
                for rule in self.classification
            ],
            "formulas": {
                label.value: rule.expression
                for label, rule in sorted(self.formulas.items(), key=lambda i: i[0].value)
            },
        }


@dataclass(frozen=True)
class Overlay:
    """Named partial ruleset that shadows or extends Base.

    Classification rules are keyed by predicate, formulas by label. An
    overlay never removes a Base rule.
    """

    name: str
    selector: str
    version: str
    content_hash: str
    classification: tuple[ClassificationRule, ...] = ()
    formulas: Mapping[Label, FormulaRule] = field(default_factory=dict)
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "classification", tuple(self.classification))
        object.__setattr__(self, "formulas", MappingProxyType(dict(self.formulas)))


@dataclass(frozen=True)
class EvaluationResult:
    """Successful engine output."""

    label: Label
    value: float
    ruleset: str = ""
    rule_id: str = ""
    expression: str = ""
