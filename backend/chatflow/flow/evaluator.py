"""
Condition Evaluator - Deterministic evaluation of CONDITION node rules.

Pure Python logic for predictable results.
Supports both English and Portuguese operator names.
"""
import re
import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from ..models.flow import FlowCondition

logger = logging.getLogger(__name__)


# Fields resolved from fixed sources instead of the variable set
MESSAGE_FIELDS = {"message", "user_message", "mensagem"}
USER_NAME_FIELDS = {"user_name", "nome"}
PHONE_FIELDS = {"phone", "telefone"}

# Operators that compare numerically when the rule value is a number
NUMERIC_OPERATORS = {"equals", "greater", "less"}


class ConditionEvaluator:
    """
    Deterministic evaluator for CONDITION node rules.

    Supports:
    - equals / igual
    - contains / contem
    - greater / maior, less / menor (numeric)
    - exists / existe
    - regex / corresponde
    """

    # Canonical name for every accepted spelling
    ALIASES: Dict[str, str] = {
        "equals": "equals",
        "equal": "equals",
        "eq": "equals",
        "igual": "equals",
        "igual_a": "equals",

        "contains": "contains",
        "contain": "contains",
        "contem": "contains",
        "inclui": "contains",

        "greater": "greater",
        "greater_than": "greater",
        "gt": "greater",
        "maior": "greater",
        "maior_que": "greater",

        "less": "less",
        "less_than": "less",
        "lt": "less",
        "menor": "less",
        "menor_que": "less",

        "exists": "exists",
        "exist": "exists",
        "existe": "exists",
        "preenchido": "exists",

        "regex": "regex",
        "matches": "regex",
        "match": "regex",
        "corresponde": "regex",
        "padrao": "regex",
    }

    OPERATORS: Dict[str, Callable[[str, str], bool]] = {
        "equals": lambda actual, expected: actual == expected,
        "contains": lambda actual, expected: expected in actual,
        "greater": lambda actual, expected: ConditionEvaluator._safe_compare(actual, expected, lambda a, b: a > b),
        "less": lambda actual, expected: ConditionEvaluator._safe_compare(actual, expected, lambda a, b: a < b),
        "exists": lambda actual, _: actual.strip() != "",
        "regex": lambda actual, expected: ConditionEvaluator._safe_regex_match(actual, expected),
    }

    # =========================================================================
    # MAIN EVALUATION METHODS
    # =========================================================================

    @classmethod
    def evaluate(
        cls,
        rule: FlowCondition,
        user_message: str,
        variables: Mapping[str, Any]
    ) -> bool:
        """
        Evaluate a single rule against the user's message and variables.

        Example:
            >>> rule = FlowCondition(field="message", operator="maior", value="18")
            >>> ConditionEvaluator.evaluate(rule, "25", {})
            True
        """
        operator = cls.ALIASES.get(cls._normalize_operator(rule.operator))
        if operator is None:
            logger.warning(f"Unknown operator: '{rule.operator}' (rule {rule.id})")
            return False

        field_value = cls.resolve_field(rule.field, user_message, variables)
        expected = rule.value or ""

        # Numbers are compared as typed, everything else case-insensitively.
        # Patterns keep their case (\D is not \d) and match with IGNORECASE.
        if operator == "regex":
            actual = field_value
        elif operator in NUMERIC_OPERATORS and cls._coerce_to_number(expected) is not None:
            actual = field_value.strip()
            expected = expected.strip()
        else:
            actual = field_value.lower()
            expected = expected.lower()

        result = cls.OPERATORS[operator](actual, expected)

        logger.debug(
            f"Condition evaluated: field='{rule.field}', value={repr(field_value)}, "
            f"operator='{rule.operator}', expected={repr(rule.value)} -> {result}"
        )
        return result

    @classmethod
    def select_branch(
        cls,
        rules: Iterable[FlowCondition],
        user_message: str,
        variables: Mapping[str, Any]
    ) -> Optional[FlowCondition]:
        """Return the first matching rule in declaration order"""
        for rule in rules:
            if cls.evaluate(rule, user_message, variables):
                return rule
        return None

    @staticmethod
    def resolve_field(field: str, user_message: str, variables: Mapping[str, Any]) -> str:
        """Resolve a rule's field to the string it is tested against"""
        message = (user_message or "").strip()
        name = (field or "message").strip()

        if name in MESSAGE_FIELDS:
            return message
        if name in USER_NAME_FIELDS:
            return ConditionEvaluator._to_text(variables.get("userName"))
        if name in PHONE_FIELDS:
            return ConditionEvaluator._to_text(variables.get("phoneNumber"))

        value = variables.get(name)
        if value is None or value == "":
            return message
        return ConditionEvaluator._to_text(value)

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    @staticmethod
    def _normalize_operator(operator: str) -> str:
        """
        Normalize operator name for lookup.
        Converts to lowercase and replaces spaces with underscores.
        """
        if not operator:
            return ""
        return operator.strip().lower().replace(" ", "_").replace("-", "_")

    @staticmethod
    def _to_text(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    @staticmethod
    def _coerce_to_number(value: Any) -> Optional[float]:
        """Parse a leading number (``"18 anos"`` -> 18.0), None when absent"""
        if value is None:
            return None
        match = re.match(r"\s*([+-]?(\d+(\.\d*)?|\.\d+))", str(value))
        if not match:
            return None
        return float(match.group(1))

    @staticmethod
    def _safe_compare(
        actual: str,
        expected: str,
        comparator: Callable[[float, float], bool]
    ) -> bool:
        """
        Safe numeric comparison.

        Returns False if either value cannot be converted to a number.
        """
        actual_num = ConditionEvaluator._coerce_to_number(actual)
        expected_num = ConditionEvaluator._coerce_to_number(expected)

        if actual_num is None or expected_num is None:
            logger.debug(
                f"Numeric comparison failed: actual={repr(actual)} -> {actual_num}, "
                f"expected={repr(expected)} -> {expected_num}"
            )
            return False

        return comparator(actual_num, expected_num)

    @staticmethod
    def _safe_regex_match(actual: str, pattern: str) -> bool:
        """Regex search; a malformed pattern never matches"""
        try:
            return re.search(pattern, actual, re.IGNORECASE) is not None
        except re.error as e:
            logger.warning(f"Invalid regex pattern '{pattern}': {e}")
            return False
