"""AI structure proposal routes."""

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.orm import Session

from squad_builder.db.dependencies import get_db
from squad_builder.identity import get_current_user_id
from squad_builder.routers.errors import ERROR_RESPONSES, to_http_exception
from squad_builder.schemas.common import ApiResponse
from squad_builder.schemas.structure_proposal import (
    LatestStructureProposal,
    StructureProposalConfirmRequest,
    StructureProposalCreated,
    StructureProposalCreateRequest,
    StructureProposalRead,
)
from squad_builder.schemas.suggestion import SuggestionRead
from squad_builder.services.errors import ServiceError
from squad_builder.services.structure_proposals import (
    confirm_structure_proposal,
    discard_structure_proposal,
    generate_structure_proposal,
    get_latest_draft_proposal,
)

router = APIRouter(prefix="/ai/structure-proposal", responses=ERROR_RESPONSES)


@router.post("", status_code=201, response_model=ApiResponse[StructureProposalCreated])
def create_structure_proposal(
    payload: StructureProposalCreateRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> ApiResponse[StructureProposalCreated]:
    """Generate a draft structure proposal for a squad."""

    try:
        result = generate_structure_proposal(db, payload.squad_id, user_id, breakdown=payload.breakdown)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return ApiResponse(
        data=StructureProposalCreated(
            proposal=StructureProposalRead.model_validate(result.proposal),
            suggestions=[SuggestionRead.model_validate(row) for row in result.suggestions],
        )
    )


@router.get("", response_model=ApiResponse[LatestStructureProposal])
def read_latest_structure_proposal(
    squad_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> ApiResponse[LatestStructureProposal]:
    """Return the latest draft proposal for a squad, or null."""

    try:
        proposal = get_latest_draft_proposal(db, squad_id, user_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return ApiResponse(
        data=LatestStructureProposal(
            proposal=StructureProposalRead.model_validate(proposal) if proposal is not None else None
        )
    )


@router.post("/{proposal_id}/confirm", response_model=ApiResponse[StructureProposalRead])
def confirm_proposal(
    payload: StructureProposalConfirmRequest | None = Body(default=None),
    proposal_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> ApiResponse[StructureProposalRead]:
    """Confirm a draft proposal, optionally with human edits."""

    edited = payload.edited_proposal if payload is not None else None
    try:
        proposal = confirm_structure_proposal(db, proposal_id, user_id, edited_proposal=edited)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return ApiResponse(data=StructureProposalRead.model_validate(proposal))


@router.post("/{proposal_id}/discard", response_model=ApiResponse[StructureProposalRead])
def discard_proposal(
    proposal_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> ApiResponse[StructureProposalRead]:
    """Discard a draft proposal."""

    try:
        proposal = discard_structure_proposal(db, proposal_id, user_id)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc
    return ApiResponse(data=StructureProposalRead.model_validate(proposal))
