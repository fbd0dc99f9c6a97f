"""Prompt template rendering with optional variables.

Supported syntax:

* ``{{name}}`` is replaced by the string form of ``variables["name"]``;
  ``None`` and missing variables render as an empty string.
* ``{{#if name}}...{{/if}}`` keeps its inner text only when ``name`` is present
  (not ``None``, not ``""`` and not ``False``).

Conditional blocks are matched in a single non-greedy pass, so nested
``{{#if}}`` blocks are not supported: the first ``{{/if}}`` closes the
outermost open block. Any ``{{...}}`` token left after substitution is dropped
and reported through a warning, never raised.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

_VARIABLE_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}")
_CONDITIONAL_PATTERN = re.compile(r"\{\{#if\s+(\w+)\s*\}\}([\s\S]*?)\{\{/if\}\}")
_UNRESOLVED_PATTERN = re.compile(r"\{\{[^}]*\}\}")


def render_prompt(template: str, variables: Mapping[str, Any]) -> str:
    """Render ``template`` with ``variables`` and return the trimmed prompt."""

    def _substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        return _stringify(variables[name])

    def _conditional(match: re.Match[str]) -> str:
        return match.group(2) if is_present(variables.get(match.group(1))) else ""

    rendered = _VARIABLE_PATTERN.sub(_substitute, template)
    rendered = _CONDITIONAL_PATTERN.sub(_conditional, rendered)

    unresolved = find_unresolved_placeholders(rendered)
    if unresolved:
        logger.warning("prompts.unresolved_variables tokens=%s", ", ".join(unresolved))
        while _UNRESOLVED_PATTERN.search(rendered):
            rendered = _UNRESOLVED_PATTERN.sub("", rendered)

    return rendered.strip()


def find_unresolved_placeholders(text: str) -> list[str]:
    """Return every ``{{...}}`` token still present in ``text``."""

    return _UNRESOLVED_PATTERN.findall(text)


def is_present(value: Any) -> bool:
    """Return whether a conditional block guarded by ``value`` should render."""

    return value is not None and value != "" and value is not False


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)
