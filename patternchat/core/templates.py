"""
Template variable substitution.

Placeholders use the ``{{name}}`` form. ``{{input}}`` is reserved for the
user's input and is substituted last so that text inside the input is
never treated as a template.
"""

import re
from typing import Dict, Optional

from patternchat.core.errors import TemplateError

INPUT_PLACEHOLDER = "{{input}}"

_VARIABLE_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_\-]*)\s*\}\}")


def apply_template(
    text: str,
    variables: Optional[Dict[str, str]] = None,
    user_input: str = "",
) -> str:
    """
    Substitute ``{{name}}`` placeholders with values from `variables`.

    Raises TemplateError listing every placeholder without a value.
    """
    variables = variables or {}
    missing = []

    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name == "input":
            return match.group(0)
        if name not in variables:
            missing.append(name)
            return match.group(0)
        return str(variables[name])

    result = _VARIABLE_RE.sub(_replace, text)
    if missing:
        names = ", ".join(sorted(set(missing)))
        raise TemplateError(f"missing required variable(s): {names}")

    return result.replace(INPUT_PLACEHOLDER, user_input)


def ensure_input_placeholder(text: str) -> str:
    """Append an ``{{input}}`` placeholder on its own line when absent."""
    if INPUT_PLACEHOLDER in text:
        return text
    if text and not text.endswith("\n"):
        text += "\n"
    return text + INPUT_PLACEHOLDER
