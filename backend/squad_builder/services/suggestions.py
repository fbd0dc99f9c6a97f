"""Suggestion lifecycle: breakdown, review queue, approve and reject."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from time import perf_counter
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from squad_builder.models.structure_proposal import AIStructureProposal
from squad_builder.models.suggestion import (
    SUGGESTION_STATUS_APPROVED,
    SUGGESTION_STATUS_APPROVED_WITH_EDITS,
    SUGGESTION_STATUS_PENDING,
    SUGGESTION_STATUS_REJECTED,
    SuggestionDecision,
    SuggestionProposal,
)
from squad_builder.services.access import ensure_workspace_member, get_accessible_squad
from squad_builder.services.decomposition import decompose_proposal
from squad_builder.services.errors import ResourceNotFoundError, StateConflictError
from squad_builder.services.suggestion_persistence import persist_suggestion

logger = logging.getLogger(__name__)


def breakdown_proposal(db: Session, proposal_id: int, user_id: str) -> list[SuggestionProposal]:
    """Decompose a stored proposal into pending suggestions. Runs once per proposal."""

    started = perf_counter()
    proposal = db.scalar(select(AIStructureProposal).where(AIStructureProposal.id == proposal_id))
    if proposal is None:
        raise ResourceNotFoundError("Proposal not found")
    ensure_workspace_member(db, proposal.workspace_id, user_id)

    existing = db.scalar(
        select(func.count(SuggestionProposal.id)).where(SuggestionProposal.proposal_id == proposal_id)
    )
    if existing:
        raise StateConflictError("Proposal has already been broken down into suggestions")

    suggestions = create_suggestions_for_proposal(db, proposal)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("suggestions.breakdown_conflict proposal_id=%s", proposal_id)
        raise StateConflictError("Proposal has already been broken down into suggestions") from exc

    logger.info(
        "suggestions.breakdown_completed proposal_id=%s count=%d duration_ms=%d",
        proposal_id,
        len(suggestions),
        int((perf_counter() - started) * 1000),
    )
    return suggestions


def create_suggestions_for_proposal(db: Session, proposal: AIStructureProposal) -> list[SuggestionProposal]:
    """Add one pending row per decomposed unit and flush. The caller commits."""

    suggestions = [
        SuggestionProposal(
            proposal_id=proposal.id,
            squad_id=proposal.squad_id,
            workspace_id=proposal.workspace_id,
            suggestion_type=unit.type,
            suggestion_payload=unit.payload,
            display_order=unit.display_order,
            status=SUGGESTION_STATUS_PENDING,
        )
        for unit in decompose_proposal(proposal.proposal_payload)
    ]
    db.add_all(suggestions)
    db.flush()
    return suggestions


def list_pending_suggestions(db: Session, squad_id: int, user_id: str) -> list[SuggestionProposal]:
    """Return the squad's pending suggestions in review order."""

    get_accessible_squad(db, squad_id, user_id)
    stmt = (
        select(SuggestionProposal)
        .where(
            SuggestionProposal.squad_id == squad_id,
            SuggestionProposal.status == SUGGESTION_STATUS_PENDING,
        )
        .order_by(SuggestionProposal.display_order, SuggestionProposal.id)
    )
    return list(db.scalars(stmt).all())


def approve_suggestion(
    db: Session,
    suggestion_id: int,
    user_id: str,
    edited_payload: Any = None,
    reason: str | None = None,
) -> SuggestionProposal:
    """Approve a pending suggestion and persist its payload in one transaction.

    Supplying ``edited_payload`` marks the approval as edited and persists the
    edited payload instead of the stored one. If persisting fails, nothing is
    committed and the suggestion stays pending.
    """

    suggestion = _get_accessible_suggestion(db, suggestion_id, user_id)
    was_edited = edited_payload is not None
    status = SUGGESTION_STATUS_APPROVED_WITH_EDITS if was_edited else SUGGESTION_STATUS_APPROVED
    final_payload = edited_payload if was_edited else suggestion.suggestion_payload
    suggestion_type = suggestion.suggestion_type
    squad_id = suggestion.squad_id

    try:
        _transition_from_pending(
            db,
            suggestion_id,
            status=status,
            decided_by_user_id=user_id,
            **({"edited_payload": edited_payload} if was_edited else {}),
        )
        persist_suggestion(
            db,
            suggestion_type,
            final_payload,
            squad_id=squad_id,
            workspace_id=suggestion.workspace_id,
            user_id=user_id,
        )
        db.add(
            SuggestionDecision(
                suggestion_proposal_id=suggestion_id,
                action=status,
                user_id=user_id,
                reason=reason,
                changes_summary={"edited": True} if was_edited else None,
            )
        )
        db.commit()
    except StateConflictError:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception(
            "suggestions.approve_failed suggestion_id=%s type=%s squad_id=%s",
            suggestion_id,
            suggestion_type,
            squad_id,
        )
        raise

    db.refresh(suggestion)
    logger.info(
        "suggestions.approved suggestion_id=%s type=%s edited=%s",
        suggestion_id,
        suggestion.suggestion_type,
        was_edited,
    )
    return suggestion


def reject_suggestion(
    db: Session,
    suggestion_id: int,
    user_id: str,
    reason: str | None = None,
) -> SuggestionProposal:
    """Reject a pending suggestion without persisting anything."""

    suggestion = _get_accessible_suggestion(db, suggestion_id, user_id)
    try:
        _transition_from_pending(
            db,
            suggestion_id,
            status=SUGGESTION_STATUS_REJECTED,
            decided_by_user_id=user_id,
            rejection_reason=reason,
        )
        db.add(
            SuggestionDecision(
                suggestion_proposal_id=suggestion_id,
                action=SUGGESTION_STATUS_REJECTED,
                user_id=user_id,
                reason=reason,
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(suggestion)
    logger.info("suggestions.rejected suggestion_id=%s type=%s", suggestion_id, suggestion.suggestion_type)
    return suggestion


def _get_accessible_suggestion(db: Session, suggestion_id: int, user_id: str) -> SuggestionProposal:
    suggestion = db.scalar(select(SuggestionProposal).where(SuggestionProposal.id == suggestion_id))
    if suggestion is None:
        raise ResourceNotFoundError("Suggestion not found")
    ensure_workspace_member(db, suggestion.workspace_id, user_id)
    return suggestion


def _transition_from_pending(db: Session, suggestion_id: int, *, status: str, **values: Any) -> None:
    """Move a suggestion out of ``pending``; only one concurrent caller can succeed."""

    result = db.execute(
        update(SuggestionProposal)
        .where(
            SuggestionProposal.id == suggestion_id,
            SuggestionProposal.status == SUGGESTION_STATUS_PENDING,
        )
        .values(status=status, decided_at=datetime.now(timezone.utc), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info("suggestions.transition_rejected suggestion_id=%s target=%s", suggestion_id, status)
        raise StateConflictError("Only pending suggestions can be approved or rejected")
