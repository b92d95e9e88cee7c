"""Deterministic rule evaluation engine.

This package classifies an input record with ordered boolean rules and
computes a label-specific formula value. Rulesets are YAML files loaded
once at startup; named overlays shadow or extend the Base ruleset.
"""

from app.rules.classifier import classify
from app.rules.engine import RulesEngine, compute_result, get_engine
from app.rules.exceptions import (
    EngineError,
    FormulaEvaluationError,
    NoMatchingClassification,
    NoMatchingFormula,
    RulesetError,
)
from app.rules.formulas import evaluate
from app.rules.loader import RulesetLoader, compute_ruleset_hash, load_ruleset
from app.rules.models import (
    ClassificationRule,
    EvaluationResult,
    FormulaRule,
    InputRecord,
    Label,
    Overlay,
    Predicate,
    RuleSet,
)
from app.rules.resolver import BASE_SELECTOR, RulesetRegistry, merge_overlay

__all__ = [
    "BASE_SELECTOR",
    "ClassificationRule",
    "EngineError",
    "EvaluationResult",
    "FormulaEvaluationError",
    "FormulaRule",
    "InputRecord",
    "Label",
    "NoMatchingClassification",
    "NoMatchingFormula",
    "Overlay",
    "Predicate",
    "RuleSet",
    "RulesEngine",
    "RulesetError",
    "RulesetLoader",
    "RulesetRegistry",
    "classify",
    "compute_result",
    "compute_ruleset_hash",
    "evaluate",
    "get_engine",
    "load_ruleset",
    "merge_overlay",
]
