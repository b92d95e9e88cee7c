"""Deterministic rules engine.

Evaluates an input record against the ruleset selected by its selector:

    selector -> resolved ruleset -> classification label -> formula value

Every evaluation is:
- Pure (no I/O, no shared mutable state)
- Deterministic (same input = bit-identical output)
- All or nothing (any failure aborts the call with a typed EngineError)

Failures are never retried because retrying a pure function reproduces
the same failure.
"""

import logging
from functools import lru_cache

from app.core.config import settings
from app.rules.classifier import classify
from app.rules.exceptions import EngineError
from app.rules.formulas import evaluate
from app.rules.models import EvaluationResult, InputRecord
from app.rules.resolver import RulesetRegistry

logger = logging.getLogger(__name__)


class RulesEngine:
    """Rules engine bound to a read-only ruleset registry."""

    def __init__(self, registry: RulesetRegistry) -> None:
        """Initialize engine.

        Args:
            registry: Base ruleset and overlays, shared read-only
        """
        self.registry = registry

    def compute(self, record: InputRecord) -> EvaluationResult:
        """Classify a record and compute its value.

        Args:
            record: Validated input record

        Returns:
            EvaluationResult with label and value

        Raises:
            NoMatchingClassification: If no classification rule matches
            NoMatchingFormula: If the label has no formula
            FormulaEvaluationError: If the formula arithmetic fails
        """
        rules = self.registry.resolve(record.selector)

        try:
            rule = classify(record, rules)
            value = evaluate(rule.label, record, rules)
        except EngineError as exc:
            logger.info(
                f"Evaluation failed with {exc.code}: {exc}",
                extra={"selector": record.selector, "ruleset": rules.name},
            )
            raise

        logger.debug(
            f"Evaluated selector={record.selector!r} ruleset={rules.name} "
            f"rule={rule.id} label={rule.label.value}",
            extra={
                "selector": record.selector,
                "ruleset": rules.name,
                "rule_id": rule.id,
                "label": rule.label.value,
            },
        )

        return EvaluationResult(
            label=rule.label,
            value=value,
            ruleset=rules.name,
            rule_id=rule.id,
            expression=rules.formulas[rule.label].expression,
        )


@lru_cache
def get_engine() -> RulesEngine:
    """Get the process-wide engine, loading configured rulesets once."""
    registry = RulesetRegistry.from_files(
        settings.base_ruleset,
        settings.overlay_rulesets,
        rulesets_dir=settings.rulesets_dir,
    )
    return RulesEngine(registry)


def compute_result(record: InputRecord) -> EvaluationResult:
    """Convenience function to evaluate a record with the configured rulesets.

    Args:
        record: Validated input record

    Returns:
        EvaluationResult
    """
    return get_engine().compute(record)
