"""Label formula evaluation."""

from app.rules.exceptions import FormulaEvaluationError, NoMatchingFormula
from app.rules.models import InputRecord, Label, RuleSet


def evaluate(label: Label, record: InputRecord, rules: RuleSet) -> float:
    """Compute the numeric result for a classified label.

    e and f are widened to float before use, so division is never truncating.

    Args:
        label: Classified label
        record: Input record
        rules: Resolved ruleset, the same one used to classify

    Returns:
        Formula result

    Raises:
        NoMatchingFormula: If the ruleset binds no formula to the label
        FormulaEvaluationError: If the arithmetic fails
    """
    rule = rules.formulas.get(label)
    if rule is None:
        raise NoMatchingFormula(label.value, rules.name)

    try:
        return rule.apply(record.d, record.e, record.f)
    except (ZeroDivisionError, OverflowError) as exc:
        raise FormulaEvaluationError(label.value, rule.expression, str(exc)) from exc
