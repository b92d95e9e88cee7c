"""Tests for the rules engine orchestration.

Scenario values follow the documented examples: the sample request
(a=b=c=true, d=4.7, e=5, f=2) under Base and C1, and the overlay/fallback
cases.
"""

import itertools
from concurrent.futures import ThreadPoolExecutor

import pytest

from app.rules.engine import RulesEngine
from app.rules.exceptions import NoMatchingClassification, NoMatchingFormula
from app.rules.expressions import compile_expression
from app.rules.models import (
    ClassificationRule,
    EvaluationResult,
    FormulaRule,
    Label,
    Predicate,
    RuleSet,
)
from app.rules.resolver import RulesetRegistry
from tests.conftest import make_record

SAMPLE_NUMBERS = [(4.7, 5, 2), (3.0, 4, 1), (-2.5, 0, 7), (100.0, -3, 12)]


class TestScenarios:
    """Documented end-to-end scenarios."""

    def test_base_sample_request(self, engine: RulesEngine) -> None:
        """Test a ∧ b ∧ c under Base gives P with the Base P formula."""
        result = engine.compute(make_record(a=True, b=True, c=True, d=4.7, e=5, f=2, selector="B"))

        assert result.label == Label.P
        assert result.value == pytest.approx(5.252941, abs=1e-6)
        assert result.value == 4.7 + (4.7 * (5 - 2) / 25.5)

    def test_overlay_one_sample_request(self, engine: RulesEngine) -> None:
        """Test the same input under C1 keeps P but uses the C1 formula."""
        result = engine.compute(make_record(a=True, b=True, c=True, d=4.7, e=5, f=2, selector="C1"))

        assert result.label == Label.P
        assert result.value == pytest.approx(9.635)

    def test_overlay_two_reclassifies_a_b_not_c(self, engine: RulesEngine) -> None:
        """Test a ∧ b ∧ ¬c under C2 gives T, not M."""
        result = engine.compute(make_record(a=True, b=True, c=False, d=3.0, e=4, f=1, selector="C2"))

        assert result.label == Label.T
        assert result.value == pytest.approx(2.9)
        assert result.rule_id == "T_A_B_NOT_C"

    def test_unknown_selector_uses_base(self, engine: RulesEngine) -> None:
        """Test an unrecognized selector silently falls back to Base."""
        result = engine.compute(make_record(a=False, b=True, c=True, d=1.0, e=1, f=1, selector="zzz"))

        assert result.label == Label.T
        assert result.value == pytest.approx(0.9667, abs=1e-4)
        assert result.ruleset == "base"

    def test_no_predicate_matches(self, engine: RulesEngine) -> None:
        """Test all-false booleans under Base fail classification."""
        with pytest.raises(NoMatchingClassification):
            engine.compute(make_record(a=False, b=False, c=False, selector="B"))


class TestBaseProperties:
    """Properties that hold for Base and unrecognized selectors."""

    @pytest.mark.parametrize("selector", ["B", "", "unknown"])
    @pytest.mark.parametrize(("d", "e", "f"), SAMPLE_NUMBERS)
    def test_labels_and_values(self, engine: RulesEngine, selector, d, e, f) -> None:
        """Test each Base predicate's label and formula."""
        m = engine.compute(make_record(a=True, b=True, c=False, d=d, e=e, f=f, selector=selector))
        p = engine.compute(make_record(a=True, b=True, c=True, d=d, e=e, f=f, selector=selector))
        t = engine.compute(make_record(a=False, b=True, c=True, d=d, e=e, f=f, selector=selector))

        assert (m.label, p.label, t.label) == (Label.M, Label.P, Label.T)
        assert m.value == pytest.approx(d + d * e / 10)
        assert p.value == pytest.approx(d + d * (e - f) / 25.5)
        assert t.value == pytest.approx(d - d * f / 30)

    def test_other_combinations_fail(self, engine: RulesEngine) -> None:
        """Test every unlisted (a, b, c) combination fails under Base."""
        matched = {(True, True, False), (True, True, True), (False, True, True)}

        for a, b, c in itertools.product([True, False], repeat=3):
            if (a, b, c) in matched:
                continue
            with pytest.raises(NoMatchingClassification):
                engine.compute(make_record(a=a, b=b, c=c))


class TestOverlayProperties:
    """Properties of C1 and C2."""

    @pytest.mark.parametrize(("d", "e", "f"), SAMPLE_NUMBERS)
    def test_overlay_one_classification_matches_base(self, engine: RulesEngine, d, e, f) -> None:
        """Test C1 classifies every combination the way Base does."""
        for a, b, c in itertools.product([True, False], repeat=3):
            base_record = make_record(a=a, b=b, c=c, d=d, e=e, f=f, selector="B")
            c1_record = make_record(a=a, b=b, c=c, d=d, e=e, f=f, selector="C1")
            try:
                expected = engine.compute(base_record).label
            except NoMatchingClassification:
                with pytest.raises(NoMatchingClassification):
                    engine.compute(c1_record)
                continue

            result = engine.compute(c1_record)
            assert result.label == expected
            if result.label == Label.P:
                assert result.value == pytest.approx(2 * d + d * e / 100)
            else:
                assert result.value == engine.compute(base_record).value

    @pytest.mark.parametrize(("d", "e", "f"), SAMPLE_NUMBERS)
    def test_overlay_two(self, engine: RulesEngine, d, e, f) -> None:
        """Test C2 labels and its M formula."""
        a_b_not_c = engine.compute(make_record(a=True, b=True, c=False, d=d, e=e, f=f, selector="C2"))
        a_not_b_c = engine.compute(make_record(a=True, b=False, c=True, d=d, e=e, f=f, selector="C2"))
        not_a_b_c = engine.compute(make_record(a=False, b=True, c=True, d=d, e=e, f=f, selector="C2"))

        assert a_b_not_c.label == Label.T
        assert a_not_b_c.label == Label.M
        assert a_not_b_c.value == pytest.approx(f + d + d * e / 100)
        assert not_a_b_c.label == Label.T
        assert not_a_b_c.value == pytest.approx(d - d * f / 30)

    def test_overlay_two_does_not_add_not_a_not_b_c(self, engine: RulesEngine) -> None:
        """Test C2's added predicate is a ∧ ¬b ∧ c only."""
        with pytest.raises(NoMatchingClassification):
            engine.compute(make_record(a=False, b=False, c=True, selector="C2"))


class TestEngineBehaviour:
    """General engine behaviour."""

    def test_idempotent(self, engine: RulesEngine) -> None:
        """Test identical records give bit-identical results."""
        record = make_record(d=0.1, e=7, f=3, selector="C1")

        first = engine.compute(record)
        second = engine.compute(record)

        assert first == second
        assert first.value.hex() == second.value.hex()

    def test_result_type(self, engine: RulesEngine) -> None:
        """Test compute returns an EvaluationResult with a float value."""
        result = engine.compute(make_record())

        assert isinstance(result, EvaluationResult)
        assert isinstance(result.value, float)

    def test_missing_formula_propagates(self) -> None:
        """Test a label without formula aborts the whole call."""
        base = RuleSet(
            name="no-formulas",
            version="0",
            content_hash="",
            classification=(
                ClassificationRule(
                    id="P_ALL", predicate=Predicate(a=True, b=True, c=True), label=Label.P
                ),
            ),
            formulas={
                Label.M: FormulaRule(label=Label.M, expression="d", formula=compile_expression("d")),
            },
        )
        engine = RulesEngine(RulesetRegistry(base))

        with pytest.raises(NoMatchingFormula):
            engine.compute(make_record(a=True, b=True, c=True))

    def test_failure_does_not_affect_next_call(self, engine: RulesEngine) -> None:
        """Test a failed evaluation leaves the engine usable."""
        with pytest.raises(NoMatchingClassification):
            engine.compute(make_record(a=False, b=False, c=False))

        assert engine.compute(make_record()).label == Label.P

    def test_rulesets_are_read_only(self, engine: RulesEngine) -> None:
        """Test shared rulesets cannot be mutated."""
        base = engine.registry.base

        with pytest.raises(TypeError):
            base.formulas[Label.M] = base.formulas[Label.P]  # type: ignore[index]
        with pytest.raises(AttributeError):
            base.name = "changed"  # type: ignore[misc]

    def test_result_carries_formula_expression(self, engine: RulesEngine) -> None:
        """Test the result names the formula expression that produced it."""
        assert engine.compute(make_record()).expression == "d + (d * (e - f) / 25.5)"
        assert engine.compute(make_record(selector="C1")).expression == "2 * d + (d * e / 100)"

    def test_concurrent_compute_matches_serial(self, engine: RulesEngine) -> None:
        """Test parallel calls give the same results as serial calls."""
        combos = {
            "B": [(True, True, False), (True, True, True), (False, True, True)],
            "C1": [(True, True, False), (True, True, True), (False, True, True)],
            "C2": [
                (True, True, False),
                (True, True, True),
                (False, True, True),
                (True, False, True),
            ],
            "zzz": [(True, True, False), (True, True, True), (False, True, True)],
        }
        records = [
            make_record(a=a, b=b, c=c, d=d, e=e, f=f, selector=selector)
            for selector, flags in combos.items()
            for a, b, c in flags
            for d, e, f in SAMPLE_NUMBERS
        ] * 10
        before = {
            selector: engine.registry.resolve(selector).to_dict()
            for selector in engine.registry.selectors
        }

        serial = [engine.compute(record) for record in records]
        with ThreadPoolExecutor(max_workers=8) as executor:
            parallel = list(executor.map(engine.compute, records))

        assert parallel == serial
        assert [r.value.hex() for r in parallel] == [r.value.hex() for r in serial]
        assert list(before) == engine.registry.selectors
        for selector, snapshot in before.items():
            assert engine.registry.resolve(selector).to_dict() == snapshot
