"""
Flow Module - Conversational flow execution

This module provides:
- The flow interpreter (start / resume / delay continuation)
- Graph validation of authored flows
- Condition evaluation and input validation
- Template rendering for messages and webhook payloads
"""

from .executor import FlowInterpreter
from .evaluator import ConditionEvaluator
from .validator import (
    FlowValidator,
    FlowValidationError,
    FlowDefinitionError
)
from .input_validators import (
    InputValidator,
    ValidationResult,
    ValidationErrorCode,
    input_validator,
    validate_input
)
from .context import TurnContext
from .result import (
    NodeResult,
    Outcome,
    ExecutionResult,
    continue_result,
    wait_result,
    park_result,
    finish_result,
    failure_result
)
from .templating import render, render_payload, parse_custom_payload

__all__ = [
    # Interpreter
    "FlowInterpreter",

    # Evaluator
    "ConditionEvaluator",

    # Validator
    "FlowValidator",
    "FlowValidationError",
    "FlowDefinitionError",

    # Input validation
    "InputValidator",
    "ValidationResult",
    "ValidationErrorCode",
    "input_validator",
    "validate_input",

    # Context
    "TurnContext",

    # Result
    "NodeResult",
    "Outcome",
    "ExecutionResult",
    "continue_result",
    "wait_result",
    "park_result",
    "finish_result",
    "failure_result",

    # Templating
    "render",
    "render_payload",
    "parse_custom_payload",
]
