"""
Unit tests for ConditionEvaluator.
"""
import pytest
from chatflow.flow.evaluator import ConditionEvaluator
from chatflow.models.flow import FlowCondition


def rule(operator: str, value="", field: str = "message", label: str = None) -> FlowCondition:
    return FlowCondition(id=label or operator, field=field, operator=operator, value=value, label=label)


class TestOperators:
    """Tests for each operator and its aliases."""

    def test_equals_is_case_insensitive(self):
        assert ConditionEvaluator.evaluate(rule("equals", "Sim"), "  sim ", {})

    def test_igual_alias(self):
        assert ConditionEvaluator.evaluate(rule("igual", "1"), "1", {})

    def test_equals_mismatch(self):
        assert not ConditionEvaluator.evaluate(rule("equals", "1"), "2", {})

    def test_contains(self):
        assert ConditionEvaluator.evaluate(rule("contains", "preço"), "Qual o PREÇO do plano?", {})

    def test_contem_alias(self):
        assert ConditionEvaluator.evaluate(rule("contem", "plano"), "quero um plano", {})

    def test_greater_numeric(self):
        assert ConditionEvaluator.evaluate(rule("greater", "18"), "25", {})
        assert not ConditionEvaluator.evaluate(rule("maior", "18"), "9", {})

    def test_less_numeric(self):
        assert ConditionEvaluator.evaluate(rule("less_than", 100), "99.5", {})

    def test_numeric_with_leading_number(self):
        assert ConditionEvaluator.evaluate(rule("maior_que", "18"), "20 anos", {})

    def test_numeric_comparison_with_text_is_false(self):
        assert not ConditionEvaluator.evaluate(rule("greater", "18"), "muitos", {})

    def test_exists(self):
        assert ConditionEvaluator.evaluate(rule("exists", field="email"), "", {"email": "a@b.com"})
        assert not ConditionEvaluator.evaluate(rule("existe", field="email"), "", {})

    def test_regex_keeps_pattern_case(self):
        assert ConditionEvaluator.evaluate(rule("regex", r"^\d{5}-?\d{3}$"), "01310-100", {})
        assert not ConditionEvaluator.evaluate(rule("regex", r"^\D+$"), "123", {})

    def test_regex_ignores_text_case(self):
        assert ConditionEvaluator.evaluate(rule("corresponde", "^sim"), "SIM, quero", {})

    def test_invalid_regex_never_matches(self):
        assert not ConditionEvaluator.evaluate(rule("regex", "(unclosed"), "(unclosed", {})

    def test_unknown_operator_is_false(self):
        assert not ConditionEvaluator.evaluate(rule("starts_with", "a"), "abc", {})

    def test_operator_spelling_is_normalized(self):
        assert ConditionEvaluator.evaluate(rule("Greater Than", "1"), "2", {})


class TestFieldResolution:
    """Tests for resolving the tested field."""

    def test_message_aliases(self):
        for field in ("message", "user_message", "mensagem"):
            assert ConditionEvaluator.resolve_field(field, " oi ", {}) == "oi"

    def test_user_name(self):
        assert ConditionEvaluator.resolve_field("nome", "x", {"userName": "Ana"}) == "Ana"

    def test_phone(self):
        assert ConditionEvaluator.resolve_field("telefone", "x", {"phoneNumber": "5511999998888"}) == "5511999998888"

    def test_variable(self):
        assert ConditionEvaluator.resolve_field("plano", "x", {"plano": "premium"}) == "premium"

    def test_missing_variable_falls_back_to_message(self):
        assert ConditionEvaluator.resolve_field("plano", "básico", {"plano": ""}) == "básico"

    def test_boolean_variable(self):
        assert ConditionEvaluator.evaluate(rule("equals", True, field="vip"), "", {"vip": True})


class TestSelectBranch:
    """Tests for choosing among several rules."""

    def test_first_matching_rule_wins(self):
        rules = [
            rule("contains", "a", label="first"),
            rule("contains", "ab", label="second"),
        ]
        chosen = ConditionEvaluator.select_branch(rules, "abc", {})
        assert chosen.label == "first"

    def test_no_match(self):
        assert ConditionEvaluator.select_branch([rule("equals", "1")], "2", {}) is None

    def test_empty_rules(self):
        assert ConditionEvaluator.select_branch([], "anything", {}) is None
