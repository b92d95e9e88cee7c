"""Arithmetic formula expressions.

Formulas in ruleset files are written as plain arithmetic over the numeric
inputs, e.g. ``d + (d * (e - f) / 25.5)``. They are parsed with :mod:`ast`
once at load time and checked against a small whitelist:

- names: ``d``, ``e``, ``f``
- numeric literals
- binary ``+ - * /`` and unary ``+ -``

Anything else (calls, attribute access, ``**``, ``//``, comparisons) is a
:class:`RulesetError`. Every operand is a float by the time it is used, so
``/`` is always true division even when ``e`` and ``f`` come in as ints.
"""

import ast
from typing import Callable

from app.rules.exceptions import RulesetError

FORMULA_VARIABLES = ("d", "e", "f")

Formula = Callable[[float, int, int], float]


def _check_node(node: ast.AST, source: str) -> None:
    """Reject any node outside the arithmetic whitelist."""
    if isinstance(node, ast.BinOp):
        if not isinstance(node.op, (ast.Add, ast.Sub, ast.Mult, ast.Div)):
            raise RulesetError(
                f"Unsupported operator {type(node.op).__name__} in formula: {source}"
            )
        _check_node(node.left, source)
        _check_node(node.right, source)
    elif isinstance(node, ast.UnaryOp):
        if not isinstance(node.op, (ast.UAdd, ast.USub)):
            raise RulesetError(
                f"Unsupported operator {type(node.op).__name__} in formula: {source}"
            )
        _check_node(node.operand, source)
    elif isinstance(node, ast.Name):
        if node.id not in FORMULA_VARIABLES:
            raise RulesetError(f"Unknown name '{node.id}' in formula: {source}")
    elif isinstance(node, ast.Constant):
        # bool is an int subclass, reject it explicitly
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise RulesetError(f"Non-numeric literal {node.value!r} in formula: {source}")
    else:
        raise RulesetError(
            f"Unsupported expression {type(node).__name__} in formula: {source}"
        )


def _evaluate_node(node: ast.AST, variables: dict[str, float]) -> float:
    """Evaluate a checked expression node."""
    if isinstance(node, ast.Constant):
        return float(node.value)
    if isinstance(node, ast.Name):
        return variables[node.id]
    if isinstance(node, ast.UnaryOp):
        operand = _evaluate_node(node.operand, variables)
        return -operand if isinstance(node.op, ast.USub) else operand

    left = _evaluate_node(node.left, variables)
    right = _evaluate_node(node.right, variables)
    if isinstance(node.op, ast.Add):
        return left + right
    elif isinstance(node.op, ast.Sub):
        return left - right
    elif isinstance(node.op, ast.Mult):
        return left * right
    # Only Div remains after _check_node
    return left / right


def compile_expression(source: str) -> Formula:
    """Compile a formula expression into a pure callable.

    Args:
        source: Expression text over d, e and f

    Returns:
        Callable ``(d, e, f) -> float``

    Raises:
        RulesetError: If the expression is empty, unparsable or uses
            anything outside the arithmetic whitelist
    """
    if not isinstance(source, str) or not source.strip():
        raise RulesetError(f"Formula expression must be a non-empty string, got {source!r}")

    try:
        tree = ast.parse(source.strip(), mode="eval")
    except SyntaxError as exc:
        raise RulesetError(f"Invalid formula syntax: {source}") from exc

    body = tree.body
    _check_node(body, source)

    def formula(d: float, e: int, f: int) -> float:
        return _evaluate_node(body, {"d": float(d), "e": float(e), "f": float(f)})

    return formula
