"""
Template rendering - ``{{variable}}`` interpolation for messages and payloads
"""
import json
import logging
import re
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def render(template: Optional[str], variables: Mapping[str, Any]) -> str:
    """Replace {{name}} with the variable's value; unknown names stay as typed"""
    if not template:
        return ""

    def replace(match: re.Match) -> str:
        value = variables.get(match.group(1))
        if value is None:
            return match.group(0)
        return _to_text(value)

    return PLACEHOLDER.sub(replace, template)


def render_payload(payload: Any, variables: Mapping[str, Any]) -> Any:
    """
    Render every string inside a JSON structure.

    A string that is exactly one placeholder takes the variable's JSON value,
    so ``"{{age}}"`` stays a number.
    """
    if isinstance(payload, str):
        match = PLACEHOLDER.fullmatch(payload.strip())
        if match and variables.get(match.group(1)) is not None:
            return variables[match.group(1)]
        return render(payload, variables)

    if isinstance(payload, list):
        return [render_payload(item, variables) for item in payload]

    if isinstance(payload, dict):
        return {key: render_payload(value, variables) for key, value in payload.items()}

    return payload


def parse_custom_payload(raw: Any, variables: Mapping[str, Any]) -> Optional[Any]:
    """
    Parse a webhook node's custom payload and render its placeholders.

    Returns None (and logs) when the template is not valid JSON.
    """
    if raw is None or raw == "":
        return None

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring invalid custom payload: {e}")
            return None

    return render_payload(raw, variables)
