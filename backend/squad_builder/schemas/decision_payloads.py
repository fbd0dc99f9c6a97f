"""Typed bodies stored in decision records, keyed by decision title."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

HUMAN_AI_ROLE = "Human + AI"

DECISION_CONTEXT_TITLE = "Squad Initial Context"
GOVERNANCE_TITLE = "Governance Rules"
CRITICAL_UNKNOWN_TITLE = "Critical Unknown"
EXECUTION_MODEL_TITLE = "Execution Model"
VALIDATION_STRATEGY_TITLE = "Validation Strategy"
PROPOSAL_CONFIRMED_TITLE = "AI Structure Proposal Confirmed"


class _DecisionBody(BaseModel):
    """Lenient body: model output fields may be any JSON value or absent."""

    model_config = ConfigDict(extra="ignore")


class DecisionContextBody(_DecisionBody):
    why_now: Any = None
    what_is_at_risk: Any = None
    decision_horizon: Any = None


class GovernanceBody(_DecisionBody):
    decision_rules: Any = None
    non_negotiables: Any = None


class CriticalUnknownBody(_DecisionBody):
    question: Any = None
    why_it_matters: Any = None
    how_to_reduce: Any = None


class ExecutionModelBody(_DecisionBody):
    approach: Any = None
    constraints: Any = None
    responsibilities: Any = None


class ValidationStrategyBody(_DecisionBody):
    signals_to_stop: Any = None
    signals_of_confidence: Any = None


class ProposalConfirmedBody(BaseModel):
    """Body of the decision appended when a structure proposal is confirmed."""

    type: Literal["AI_STRUCTURE_PROPOSAL_CONFIRMED"] = "AI_STRUCTURE_PROPOSAL_CONFIRMED"
    proposal_id: int
    confirmed_by: str = HUMAN_AI_ROLE
    proposal: Any
    confirmed_at: datetime


DECISION_BODIES: dict[str, type[_DecisionBody]] = {
    DECISION_CONTEXT_TITLE: DecisionContextBody,
    GOVERNANCE_TITLE: GovernanceBody,
    CRITICAL_UNKNOWN_TITLE: CriticalUnknownBody,
    EXECUTION_MODEL_TITLE: ExecutionModelBody,
    VALIDATION_STRATEGY_TITLE: ValidationStrategyBody,
}
