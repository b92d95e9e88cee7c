"""Overlay resolution.

An overlay is merged onto Base with a plain function over data:

1. walk Base's classification rules in order, replacing in place any rule
   whose predicate the overlay also defines;
2. append the overlay's remaining (new) predicates in overlay order;
3. overlay formulas shadow Base formulas label by label.

Selectors that name no overlay resolve to Base. This is deliberate: an
unknown selector is not an error.
"""

import hashlib
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

from app.rules.exceptions import RulesetError
from app.rules.loader import RulesetLoader
from app.rules.models import ClassificationRule, Overlay, Predicate, RuleSet

logger = logging.getLogger(__name__)

# Selector that names Base explicitly
BASE_SELECTOR = "B"


def merge_overlay(base: RuleSet, overlay: Overlay) -> RuleSet:
    """Merge an overlay onto Base, producing the effective ruleset.

    Args:
        base: Base ruleset
        overlay: Overlay to apply

    Returns:
        New RuleSet; neither input is modified
    """
    pending: dict[Predicate, ClassificationRule] = {
        rule.predicate: rule for rule in overlay.classification
    }

    classification: list[ClassificationRule] = []
    for rule in base.classification:
        classification.append(pending.pop(rule.predicate, rule))
    # Whatever is left is new to Base, in overlay order
    classification.extend(pending.values())

    formulas = dict(base.formulas)
    formulas.update(overlay.formulas)

    combined_hash = hashlib.sha256(
        f"{base.content_hash}:{overlay.content_hash}".encode("utf-8")
    ).hexdigest()

    return RuleSet(
        name=f"{base.name}+{overlay.name}",
        version=f"{base.version}+{overlay.version}",
        content_hash=combined_hash,
        classification=tuple(classification),
        formulas=formulas,
        description=overlay.description,
    )


class RulesetRegistry:
    """Base ruleset plus every overlay, resolved once per selector.

    Built once at startup and read-only afterwards, so it can be shared by
    any number of concurrent evaluations.
    """

    def __init__(self, base: RuleSet, overlays: Iterable[Overlay] = ()) -> None:
        self.base = base

        resolved: dict[str, RuleSet] = {BASE_SELECTOR: base}
        overlays_by_selector: dict[str, Overlay] = {}
        for overlay in overlays:
            if overlay.selector in resolved:
                raise RulesetError(
                    f"Selector '{overlay.selector}' of overlay '{overlay.name}' "
                    "is already bound"
                )
            overlays_by_selector[overlay.selector] = overlay
            resolved[overlay.selector] = merge_overlay(base, overlay)

        self._overlays: Mapping[str, Overlay] = MappingProxyType(overlays_by_selector)
        self._resolved: Mapping[str, RuleSet] = MappingProxyType(resolved)

    @classmethod
    def from_files(
        cls,
        base_filename: str,
        overlay_filenames: Iterable[str] = (),
        rulesets_dir: Path | None = None,
    ) -> "RulesetRegistry":
        """Load Base and overlays from ruleset files.

        Raises:
            FileNotFoundError: If a file is missing
            RulesetError: If a file is malformed
        """
        loader = RulesetLoader(rulesets_dir)
        base = loader.load_base(base_filename)
        overlays = [loader.load_overlay(name) for name in overlay_filenames]

        registry = cls(base, overlays)
        logger.info(
            f"Loaded ruleset '{base.name}' v{base.version} with overlays "
            f"{sorted(registry.overlays)}"
        )
        return registry

    @property
    def selectors(self) -> list[str]:
        """Selectors bound to a ruleset, Base first."""
        return list(self._resolved)

    @property
    def overlays(self) -> Mapping[str, Overlay]:
        return self._overlays

    def is_known(self, selector: str) -> bool:
        return selector in self._resolved

    def resolve(self, selector: str) -> RuleSet:
        """Return the effective ruleset for a selector.

        Unknown selectors, including the empty string, fall back to Base.
        """
        resolved = self._resolved.get(selector)
        if resolved is None:
            logger.warning(
                f"Unknown selector {selector!r}, falling back to Base",
                extra={"selector": selector},
            )
            return self.base
        return resolved
