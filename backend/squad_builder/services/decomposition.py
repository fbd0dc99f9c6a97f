"""Decompose a structure proposal payload into reviewable suggestion units."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal, get_args

logger = logging.getLogger(__name__)

SuggestionType = Literal[
    "decision_context",
    "problem_maturity",
    "persona",
    "governance",
    "squad_structure_role",
    "phase",
    "critical_unknown",
    "execution_model",
    "validation_strategy",
    "readiness_assessment",
]
SUGGESTION_TYPES: tuple[str, ...] = get_args(SuggestionType)


@dataclass(slots=True, frozen=True)
class SuggestionUnit:
    """One suggestion extracted from a proposal, in review order."""

    type: SuggestionType
    payload: Any
    display_order: int


def decompose_proposal(payload: Any) -> list[SuggestionUnit]:
    """Walk the fixed proposal sections and emit one unit per reviewable item.

    Singular sections yield one unit, list sections one unit per element, and
    ``recommended_flow.phases`` a single unit holding the whole list. Missing
    or malformed sections are skipped so a partial payload still decomposes.
    """

    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError:
            logger.warning("decomposition.unparseable_payload length=%d", len(payload))
            return []
    if not isinstance(payload, dict):
        return []

    collected: list[tuple[SuggestionType, Any]] = []

    def _single(suggestion_type: SuggestionType, value: Any) -> None:
        if value is not None:
            collected.append((suggestion_type, value))

    def _each(suggestion_type: SuggestionType, values: Any) -> None:
        if values is None:
            return
        if not isinstance(values, list):
            logger.warning("decomposition.section_not_a_list type=%s", suggestion_type)
            return
        for value in values:
            collected.append((suggestion_type, value))

    _single("decision_context", payload.get("decision_context"))
    _single("problem_maturity", payload.get("problem_maturity"))
    _each("persona", payload.get("personas"))
    _single("governance", payload.get("governance"))
    _each("squad_structure_role", _nested(payload, "squad_structure", "roles"))

    phases = _nested(payload, "recommended_flow", "phases")
    if isinstance(phases, list):
        collected.append(("phase", phases))
    elif phases is not None:
        logger.warning("decomposition.section_not_a_list type=phase")

    _each("critical_unknown", payload.get("critical_unknowns"))
    _single("execution_model", payload.get("execution_model"))
    _single("validation_strategy", payload.get("validation_strategy"))
    _single("readiness_assessment", payload.get("readiness_assessment"))

    return [
        SuggestionUnit(type=suggestion_type, payload=value, display_order=order)
        for order, (suggestion_type, value) in enumerate(collected)
    ]


def _nested(payload: dict[str, Any], section: str, key: str) -> Any:
    container = payload.get(section)
    if not isinstance(container, dict):
        return None
    return container.get(key)
