"""Suggestion review routes."""

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.orm import Session

from squad_builder.db.dependencies import get_db
from squad_builder.identity import get_current_user_id
from squad_builder.routers.errors import ERROR_RESPONSES, to_http_exception
from squad_builder.schemas.common import ApiResponse
from squad_builder.schemas.suggestion import (
    ApproveSuggestionRequest,
    BreakdownRequest,
    BreakdownResult,
    RejectSuggestionRequest,
    SuggestionDecisionResult,
    SuggestionRead,
)
from squad_builder.services.errors import ServiceError
from squad_builder.services.suggestion_persistence import SuggestionPersistenceError
from squad_builder.services.suggestions import (
    approve_suggestion,
    breakdown_proposal,
    list_pending_suggestions,
    reject_suggestion,
)

router = APIRouter(prefix="/suggestion-approvals", responses=ERROR_RESPONSES)


@router.get("", response_model=ApiResponse[list[SuggestionRead]])
def list_suggestions(
    squad_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> ApiResponse[list[SuggestionRead]]:
    """List pending suggestions for a squad in review order."""

    try:
        rows = list_pending_suggestions(db, squad_id, user_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return ApiResponse(data=[SuggestionRead.model_validate(row) for row in rows])


@router.post("/breakdown", status_code=201, response_model=ApiResponse[BreakdownResult])
def breakdown(
    payload: BreakdownRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> ApiResponse[BreakdownResult]:
    """Decompose a stored proposal into pending suggestions."""

    try:
        rows = breakdown_proposal(db, payload.proposal_id, user_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return ApiResponse(
        data=BreakdownResult(
            proposal_id=payload.proposal_id,
            count=len(rows),
            suggestions=[SuggestionRead.model_validate(row) for row in rows],
        )
    )


@router.post("/{suggestion_id}/approve", response_model=ApiResponse[SuggestionDecisionResult])
def approve(
    payload: ApproveSuggestionRequest | None = Body(default=None),
    suggestion_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> ApiResponse[SuggestionDecisionResult]:
    """Approve a pending suggestion and persist it."""

    body = payload or ApproveSuggestionRequest()
    try:
        suggestion = approve_suggestion(
            db,
            suggestion_id,
            user_id,
            edited_payload=body.edited_payload,
            reason=body.reason,
        )
    except (ServiceError, SuggestionPersistenceError) as exc:
        raise to_http_exception(exc) from exc
    return ApiResponse(
        data=SuggestionDecisionResult(
            suggestion=SuggestionRead.model_validate(suggestion),
            was_edited=body.edited_payload is not None,
        )
    )


@router.post("/{suggestion_id}/reject", response_model=ApiResponse[SuggestionDecisionResult])
def reject(
    payload: RejectSuggestionRequest | None = Body(default=None),
    suggestion_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> ApiResponse[SuggestionDecisionResult]:
    """Reject a pending suggestion."""

    reason = payload.reason if payload is not None else None
    try:
        suggestion = reject_suggestion(db, suggestion_id, user_id, reason=reason)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return ApiResponse(data=SuggestionDecisionResult(suggestion=SuggestionRead.model_validate(suggestion)))
