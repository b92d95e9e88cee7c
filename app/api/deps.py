"""FastAPI dependency injection utilities."""

from app.rules.engine import RulesEngine, get_engine


def get_rules_engine() -> RulesEngine:
    """Get the shared, read-only rules engine.

    Tests override this dependency to inject an engine built from
    fixture rulesets.
    """
    return get_engine()
