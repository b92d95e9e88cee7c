"""YAML ruleset loader with integrity verification."""

import hashlib
from pathlib import Path
from typing import Any

import yaml

from app.core.config import DEFAULT_RULESETS_DIR
from app.rules.exceptions import RulesetError
from app.rules.expressions import compile_expression
from app.rules.models import (
    ClassificationRule,
    FormulaRule,
    Label,
    Overlay,
    Predicate,
    RuleSet,
)

# Default rulesets directory
RULESETS_DIR = DEFAULT_RULESETS_DIR

PREDICATE_VARIABLES = ("a", "b", "c")


def compute_ruleset_hash(content: str) -> str:
    """Compute SHA256 hash of ruleset content.

    Used in logs and API output to identify which ruleset revision
    produced a result.

    Args:
        content: Raw YAML content string

    Returns:
        SHA256 hex digest
    """
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def load_ruleset(
    filename: str,
    rulesets_dir: Path | None = None,
) -> tuple[dict[str, Any], str]:
    """Load a ruleset YAML file and compute its hash.

    Args:
        filename: Name of the ruleset file (e.g., "base.yaml")
        rulesets_dir: Directory containing rulesets (defaults to app/rulesets)

    Returns:
        Tuple of (parsed ruleset dict, SHA256 hash)

    Raises:
        FileNotFoundError: If ruleset file doesn't exist
        RulesetError: If the YAML is invalid or not a mapping
    """
    if rulesets_dir is None:
        rulesets_dir = RULESETS_DIR

    filepath = Path(rulesets_dir) / filename

    if not filepath.exists():
        raise FileNotFoundError(f"Ruleset not found: {filepath}")

    content = filepath.read_text(encoding="utf-8")
    ruleset_hash = compute_ruleset_hash(content)
    try:
        ruleset = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise RulesetError(f"Invalid YAML in ruleset {filename}: {exc}") from exc

    if not isinstance(ruleset, dict):
        raise RulesetError(f"Ruleset {filename} must be a mapping at top level")

    return ruleset, ruleset_hash


def _parse_label(value: Any, source: str) -> Label:
    try:
        return Label(str(value).upper())
    except ValueError:
        raise RulesetError(f"Unknown label {value!r} in {source}") from None


def _parse_predicate(when: Any, source: str) -> Predicate:
    """Build a predicate from a ``when`` mapping such as ``{a: true, c: false}``."""
    if not isinstance(when, dict) or not when:
        raise RulesetError(f"'when' must be a non-empty mapping in {source}")

    unknown = set(when) - set(PREDICATE_VARIABLES)
    if unknown:
        raise RulesetError(f"Unknown predicate variables {sorted(unknown)} in {source}")

    for name, value in when.items():
        if not isinstance(value, bool):
            raise RulesetError(f"Literal {name} must be true or false in {source}")

    return Predicate(**when)


def _parse_classification(
    entries: Any, filename: str
) -> tuple[ClassificationRule, ...]:
    if entries is None:
        return ()
    if not isinstance(entries, list):
        raise RulesetError(f"'classification' must be a list in {filename}")

    rules: list[ClassificationRule] = []
    seen_ids: set[str] = set()
    seen_predicates: set[Predicate] = set()

    for index, entry in enumerate(entries):
        source = f"{filename} classification[{index}]"
        if not isinstance(entry, dict):
            raise RulesetError(f"Rule must be a mapping in {source}")

        rule_id = str(entry.get("id") or f"rule_{index}")
        predicate = _parse_predicate(entry.get("when"), source)
        label = _parse_label(entry.get("label"), source)

        if rule_id in seen_ids:
            raise RulesetError(f"Duplicate rule id '{rule_id}' in {filename}")
        if predicate in seen_predicates:
            raise RulesetError(
                f"Duplicate predicate {predicate.describe()} in {filename}"
            )
        seen_ids.add(rule_id)
        seen_predicates.add(predicate)

        rules.append(ClassificationRule(id=rule_id, predicate=predicate, label=label))

    return tuple(rules)


def _parse_formulas(entries: Any, filename: str) -> dict[Label, FormulaRule]:
    if entries is None:
        return {}
    if not isinstance(entries, dict):
        raise RulesetError(f"'formulas' must be a mapping in {filename}")

    formulas: dict[Label, FormulaRule] = {}
    for key, expression in entries.items():
        source = f"{filename} formulas.{key}"
        label = _parse_label(key, source)
        try:
            compiled = compile_expression(expression)
        except RulesetError as exc:
            raise RulesetError(f"{exc} ({source})") from exc
        formulas[label] = FormulaRule(
            label=label,
            expression=str(expression).strip(),
            formula=compiled,
        )
    return formulas


def parse_base_ruleset(data: dict[str, Any], ruleset_hash: str, filename: str) -> RuleSet:
    """Parse a Base ruleset document.

    Base must bind a formula to every label.
    """
    if "selector" in data:
        raise RulesetError(f"Base ruleset {filename} must not declare a selector")

    classification = _parse_classification(data.get("classification"), filename)
    formulas = _parse_formulas(data.get("formulas"), filename)

    missing = [label.value for label in Label if label not in formulas]
    if missing:
        raise RulesetError(f"Base ruleset {filename} has no formula for {missing}")

    return RuleSet(
        name=str(data.get("id", "base")),
        version=str(data.get("version", "unknown")),
        content_hash=ruleset_hash,
        classification=classification,
        formulas=formulas,
        description=str(data.get("description", "")).strip(),
    )


def parse_overlay(data: dict[str, Any], ruleset_hash: str, filename: str) -> Overlay:
    """Parse an overlay document. Overlays must declare their selector."""
    selector = data.get("selector")
    if not isinstance(selector, str) or not selector:
        raise RulesetError(f"Overlay {filename} must declare a non-empty selector")

    return Overlay(
        name=str(data.get("id", selector)),
        selector=selector,
        version=str(data.get("version", "unknown")),
        content_hash=ruleset_hash,
        classification=_parse_classification(data.get("classification"), filename),
        formulas=_parse_formulas(data.get("formulas"), filename),
        description=str(data.get("description", "")).strip(),
    )


class RulesetLoader:
    """Stateful ruleset loader with caching."""

    def __init__(self, rulesets_dir: Path | None = None) -> None:
        """Initialize loader.

        Args:
            rulesets_dir: Directory containing rulesets
        """
        self.rulesets_dir = Path(rulesets_dir) if rulesets_dir else RULESETS_DIR
        self._cache: dict[str, tuple[dict[str, Any], str]] = {}

    def load(self, filename: str, use_cache: bool = True) -> tuple[dict[str, Any], str]:
        """Load a ruleset with optional caching.

        Args:
            filename: Ruleset filename
            use_cache: Whether to use cached version if available

        Returns:
            Tuple of (ruleset dict, hash)
        """
        if use_cache and filename in self._cache:
            return self._cache[filename]

        ruleset, ruleset_hash = load_ruleset(filename, self.rulesets_dir)
        self._cache[filename] = (ruleset, ruleset_hash)

        return ruleset, ruleset_hash

    def load_base(self, filename: str) -> RuleSet:
        """Load and parse the Base ruleset."""
        data, ruleset_hash = self.load(filename)
        return parse_base_ruleset(data, ruleset_hash, filename)

    def load_overlay(self, filename: str) -> Overlay:
        """Load and parse an overlay ruleset."""
        data, ruleset_hash = self.load(filename)
        return parse_overlay(data, ruleset_hash, filename)

    def clear_cache(self) -> None:
        """Clear the ruleset cache."""
        self._cache.clear()

    def list_rulesets(self) -> list[str]:
        """List available ruleset files.

        Returns:
            List of ruleset filenames
        """
        return sorted(f.name for f in self.rulesets_dir.glob("*.yaml"))

    def get_ruleset_info(self, filename: str) -> dict[str, Any]:
        """Get metadata about a ruleset.

        Args:
            filename: Ruleset filename

        Returns:
            Dict with id, selector, version, description, hash
        """
        ruleset, ruleset_hash = self.load(filename)

        return {
            "filename": filename,
            "id": ruleset.get("id", "unknown"),
            "selector": ruleset.get("selector"),
            "version": str(ruleset.get("version", "unknown")),
            "description": str(ruleset.get("description", "")).strip(),
            "hash": ruleset_hash,
        }
