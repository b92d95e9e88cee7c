"""First-match-wins classification."""

from app.rules.exceptions import NoMatchingClassification
from app.rules.models import ClassificationRule, InputRecord, RuleSet


def classify(record: InputRecord, rules: RuleSet) -> ClassificationRule:
    """Find the first classification rule whose predicate holds.

    Rules are walked top to bottom whether or not the predicates are
    mutually exclusive.

    Args:
        record: Input record
        rules: Resolved ruleset

    Returns:
        The matching rule; its label is the classification

    Raises:
        NoMatchingClassification: If no predicate holds
    """
    for rule in rules.classification:
        if rule.predicate.matches(record):
            return rule

    raise NoMatchingClassification(record.a, record.b, record.c, rules.name)
