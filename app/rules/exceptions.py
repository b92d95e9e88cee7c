"""Errors raised by the rules engine and the ruleset loader."""


class RulesetError(Exception):
    """Raised when a ruleset file is malformed.

    Only raised while loading rulesets at startup, never per request.
    """

    pass


class EngineError(Exception):
    """Base class for every failure of a single evaluation."""

    #: Stable machine-readable code reported to API consumers
    code = "ENGINE_ERROR"


class NoMatchingClassification(EngineError):
    """Raised when no classification rule matches the input booleans."""

    code = "NO_MATCHING_CLASSIFICATION"

    def __init__(self, a: bool, b: bool, c: bool, ruleset: str) -> None:
        self.a = a
        self.b = b
        self.c = c
        self.ruleset = ruleset
        super().__init__(
            f"No classification rule in ruleset '{ruleset}' matches "
            f"a={a} b={b} c={c}"
        )


class NoMatchingFormula(EngineError):
    """Raised when a classified label has no bound formula.

    Unreachable with the shipped rulesets, but reported as its own kind
    rather than an assertion failure.
    """

    code = "NO_MATCHING_FORMULA"

    def __init__(self, label: str, ruleset: str) -> None:
        self.label = label
        self.ruleset = ruleset
        super().__init__(f"No formula bound to label {label} in ruleset '{ruleset}'")


class FormulaEvaluationError(EngineError):
    """Raised when formula arithmetic fails (e.g. division by zero)."""

    code = "FORMULA_EVALUATION_FAILED"

    def __init__(self, label: str, expression: str, reason: str) -> None:
        self.label = label
        self.expression = expression
        self.reason = reason
        super().__init__(f"Formula for {label} ({expression}) failed: {reason}")
