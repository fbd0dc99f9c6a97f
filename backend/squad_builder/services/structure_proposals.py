"""AI structure proposal generation and review."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import perf_counter
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from squad_builder.config import get_settings
from squad_builder.llm.client import (
    ModelGeneration,
    StructureModelClient,
    StructureModelError,
    get_default_model_client,
)
from squad_builder.models.decision import PROBLEM_STATEMENT_TITLE, Decision
from squad_builder.models.persona import Persona, SquadPersona
from squad_builder.models.prompt import AIPromptVersion
from squad_builder.models.role import Role, SquadRole, WorkspaceRole
from squad_builder.models.squad import Issue, Squad
from squad_builder.models.structure_proposal import (
    PROPOSAL_STATUS_CONFIRMED,
    PROPOSAL_STATUS_DISCARDED,
    PROPOSAL_STATUS_DRAFT,
    AIStructureProposal,
)
from squad_builder.models.suggestion import SuggestionProposal
from squad_builder.models.workspace import Workspace
from squad_builder.prompts.rendering import render_prompt
from squad_builder.schemas.decision_payloads import (
    HUMAN_AI_ROLE,
    PROPOSAL_CONFIRMED_TITLE,
    ProposalConfirmedBody,
)
from squad_builder.services.access import ensure_workspace_member, get_accessible_squad
from squad_builder.services.errors import (
    InvalidRequestError,
    PromptNotConfiguredError,
    ProposalGenerationError,
    ResourceNotFoundError,
    StateConflictError,
)
from squad_builder.services.prompt_executions import log_prompt_execution
from squad_builder.services.prompts import get_active_prompt
from squad_builder.services.suggestions import create_suggestions_for_proposal

logger = logging.getLogger(__name__)

SOURCE_CONTEXT_PROBLEM = "PROBLEM"
SOURCE_CONTEXT_BOTH = "BOTH"
BACKLOG_CONTEXT_LIMIT = 20
TEXT_PREVIEW_CHARS = 2000


@dataclass(slots=True)
class StructureProposalResult:
    """Stored proposal plus the suggestions created when breakdown was requested."""

    proposal: AIStructureProposal
    suggestions: list[SuggestionProposal] = field(default_factory=list)


@dataclass(slots=True)
class _SquadContext:
    squad: Squad
    workspace_name: str
    problem: Decision
    issues: list[dict[str, Any]]
    roles: list[dict[str, Any]]
    personas: list[dict[str, Any]]

    @property
    def problem_statement(self) -> dict[str, Any]:
        body = self.problem.decision_json
        return body if isinstance(body, dict) else {}

    @property
    def source_context(self) -> str:
        return SOURCE_CONTEXT_BOTH if self.issues else SOURCE_CONTEXT_PROBLEM


def generate_structure_proposal(
    db: Session,
    squad_id: int,
    user_id: str,
    client: StructureModelClient | None = None,
    *,
    breakdown: bool = False,
) -> StructureProposalResult:
    """Ask the model for a structure proposal and store it as a draft.

    Every model call is recorded in the execution log, successful or not.
    """

    total_started = perf_counter()
    context = _load_squad_context(db, squad_id, user_id)
    squad = context.squad
    workspace_id = squad.workspace_id

    settings = get_settings()
    prompt_version = _require_active_prompt(db, settings.structure_prompt_name)
    prompt_version_id = prompt_version.id
    prompt_model_name = prompt_version.model_name
    prompt_name = settings.structure_prompt_name

    input_snapshot = _build_input_snapshot(context)
    user_prompt = render_prompt(prompt_version.prompt_text, _prompt_variables(context, input_snapshot))
    log_input = _build_log_input(context, prompt_version_id, prompt_name)

    generation: ModelGeneration | None = None
    output_snapshot: dict[str, Any] | None = None
    try:
        active_client = client or get_default_model_client()
        generation = active_client.generate(
            prompt_version.system_instructions,
            user_prompt,
            model=prompt_version.model_name,
            temperature=prompt_version.temperature,
            json_mode=True,
        )
        output_snapshot = {
            "ok": True,
            "model": generation.model,
            "execution_time_ms": generation.execution_time_ms,
            "usage": generation.usage.as_dict(),
            "text_preview": generation.content[:TEXT_PREVIEW_CHARS],
            "finish_reason": generation.finish_reason,
        }
        proposal_payload = _parse_generation(generation.content, output_snapshot)
        output_snapshot["parsed_json"] = proposal_payload

        if proposal_payload.get("needs_clarification"):
            logger.info(
                "structure_proposal.needs_clarification squad_id=%s question=%s",
                squad_id,
                proposal_payload.get("clarification_question"),
            )

        proposal_body = proposal_payload["proposal"]
        uncertainties = proposal_body.get("uncertainties")
        proposal = AIStructureProposal(
            squad_id=squad.id,
            problem_id=context.problem.id,
            workspace_id=workspace_id,
            source_context=context.source_context,
            input_snapshot=input_snapshot,
            proposal_payload=proposal_body,
            uncertainties=uncertainties if isinstance(uncertainties, list) else [],
            status=PROPOSAL_STATUS_DRAFT,
            model_name=generation.model,
            prompt_version_id=prompt_version_id,
            created_by_user_id=user_id,
        )
        db.add(proposal)
        db.flush()
        suggestions = create_suggestions_for_proposal(db, proposal) if breakdown else []
        db.commit()
    except (StructureModelError, ProposalGenerationError) as exc:
        db.rollback()
        execution_time_ms = generation.execution_time_ms if generation else getattr(exc, "execution_time_ms", 0)
        if output_snapshot is None:
            output_snapshot = {
                "ok": False,
                "model": generation.model if generation else prompt_model_name,
                "execution_time_ms": execution_time_ms,
                "usage": generation.usage.as_dict() if generation else None,
                "validation_error": str(exc),
                "raw_error": repr(exc),
            }
        logger.exception(
            "structure_proposal.generation_failed squad_id=%s prompt_version_id=%s elapsed_ms=%.2f",
            squad_id,
            prompt_version_id,
            (perf_counter() - total_started) * 1000.0,
        )
        log_prompt_execution(
            db,
            prompt_version_id=prompt_version_id,
            workspace_id=workspace_id,
            related_entity_type="squad",
            related_entity_id=squad_id,
            input_snapshot=log_input,
            output_snapshot=output_snapshot,
            input_tokens=generation.usage.input_tokens if generation else 0,
            output_tokens=generation.usage.output_tokens if generation else 0,
            total_tokens=generation.usage.total_tokens if generation else 0,
            execution_time_ms=execution_time_ms,
            success=False,
            error_message=str(exc),
            user_id=user_id,
        )
        if isinstance(exc, ProposalGenerationError):
            raise
        raise ProposalGenerationError(f"Structure proposal generation failed: {exc}") from exc

    log_prompt_execution(
        db,
        prompt_version_id=prompt_version_id,
        proposal_id=proposal.id,
        workspace_id=workspace_id,
        related_entity_type="squad",
        related_entity_id=squad_id,
        input_snapshot=log_input,
        output_snapshot=output_snapshot,
        input_tokens=generation.usage.input_tokens,
        output_tokens=generation.usage.output_tokens,
        total_tokens=generation.usage.total_tokens,
        execution_time_ms=generation.execution_time_ms,
        success=True,
        user_id=user_id,
    )
    logger.info(
        (
            "structure_proposal.generated proposal_id=%s squad_id=%s source_context=%s "
            "suggestions=%d total_tokens=%d total_ms=%.2f"
        ),
        proposal.id,
        squad_id,
        proposal.source_context,
        len(suggestions),
        generation.usage.total_tokens,
        (perf_counter() - total_started) * 1000.0,
    )
    return StructureProposalResult(proposal=proposal, suggestions=suggestions)


def get_latest_draft_proposal(db: Session, squad_id: int, user_id: str) -> AIStructureProposal | None:
    """Return the newest draft proposal for the squad, if any."""

    get_accessible_squad(db, squad_id, user_id)
    stmt = (
        select(AIStructureProposal)
        .where(
            AIStructureProposal.squad_id == squad_id,
            AIStructureProposal.status == PROPOSAL_STATUS_DRAFT,
        )
        .order_by(AIStructureProposal.created_at.desc(), AIStructureProposal.id.desc())
        .limit(1)
    )
    return db.scalar(stmt)


def confirm_structure_proposal(
    db: Session,
    proposal_id: int,
    user_id: str,
    edited_proposal: dict[str, Any] | None = None,
) -> AIStructureProposal:
    """Confirm a draft proposal and record the final version as a decision."""

    proposal = _get_accessible_proposal(db, proposal_id, user_id)
    confirmed_at = datetime.now(timezone.utc)
    final_proposal = edited_proposal if edited_proposal is not None else proposal.proposal_payload
    squad_id = proposal.squad_id

    try:
        _close_draft(db, proposal_id, status=PROPOSAL_STATUS_CONFIRMED, confirmed_at=confirmed_at)
        body = ProposalConfirmedBody(proposal_id=proposal_id, proposal=final_proposal, confirmed_at=confirmed_at)
        db.add(
            Decision(
                squad_id=squad_id,
                title=PROPOSAL_CONFIRMED_TITLE,
                decision_json=body.model_dump(mode="json"),
                created_by_user_id=user_id,
                created_by_role=HUMAN_AI_ROLE,
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(proposal)
    logger.info(
        "structure_proposal.confirmed proposal_id=%s squad_id=%s edited=%s",
        proposal_id,
        squad_id,
        edited_proposal is not None,
    )
    return proposal


def discard_structure_proposal(db: Session, proposal_id: int, user_id: str) -> AIStructureProposal:
    """Discard a draft proposal."""

    proposal = _get_accessible_proposal(db, proposal_id, user_id)
    try:
        _close_draft(
            db,
            proposal_id,
            status=PROPOSAL_STATUS_DISCARDED,
            discarded_at=datetime.now(timezone.utc),
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(proposal)
    logger.info("structure_proposal.discarded proposal_id=%s", proposal_id)
    return proposal


def _get_accessible_proposal(db: Session, proposal_id: int, user_id: str) -> AIStructureProposal:
    proposal = db.scalar(select(AIStructureProposal).where(AIStructureProposal.id == proposal_id))
    if proposal is None:
        raise ResourceNotFoundError("Proposal not found")
    ensure_workspace_member(db, proposal.workspace_id, user_id)
    return proposal


def _close_draft(db: Session, proposal_id: int, *, status: str, **values: Any) -> None:
    result = db.execute(
        update(AIStructureProposal)
        .where(
            AIStructureProposal.id == proposal_id,
            AIStructureProposal.status == PROPOSAL_STATUS_DRAFT,
        )
        .values(status=status, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise StateConflictError("Only draft proposals can be confirmed or discarded")


def _require_active_prompt(db: Session, prompt_name: str) -> AIPromptVersion:
    prompt_version = get_active_prompt(db, prompt_name)
    if prompt_version is None:
        raise PromptNotConfiguredError(f"No active prompt version found for '{prompt_name}'")
    return prompt_version


def _load_squad_context(db: Session, squad_id: int, user_id: str) -> _SquadContext:
    squad = get_accessible_squad(db, squad_id, user_id)

    problem = db.scalar(
        select(Decision)
        .where(Decision.squad_id == squad_id, Decision.title == PROBLEM_STATEMENT_TITLE)
        .order_by(Decision.created_at.desc(), Decision.id.desc())
        .limit(1)
    )
    if problem is None:
        raise InvalidRequestError("A Problem Statement must be defined before generating a structure proposal")

    workspace_name = db.scalar(select(Workspace.name).where(Workspace.id == squad.workspace_id)) or ""

    issues = [
        {"title": row.title, "description": row.description, "status": row.status}
        for row in db.execute(
            select(Issue.title, Issue.description, Issue.status)
            .where(Issue.squad_id == squad_id)
            .order_by(Issue.created_at.desc(), Issue.id.desc())
            .limit(BACKLOG_CONTEXT_LIMIT)
        )
    ]

    roles = [
        {"label": row.label, "description": row.description}
        for row in db.execute(
            select(
                func.coalesce(SquadRole.name, Role.label, WorkspaceRole.label).label("label"),
                func.coalesce(SquadRole.description, Role.description, WorkspaceRole.description, "").label(
                    "description"
                ),
            )
            .select_from(SquadRole)
            .outerjoin(Role, Role.id == SquadRole.role_id)
            .outerjoin(WorkspaceRole, WorkspaceRole.id == SquadRole.workspace_role_id)
            .where(SquadRole.squad_id == squad_id, SquadRole.active.is_(True))
            .order_by(SquadRole.id)
        )
    ]

    personas = [
        {"name": row.name, "type": row.type, "goals": row.goals, "pain_points": row.pain_points}
        for row in db.execute(
            select(Persona.name, Persona.type, Persona.goals, Persona.pain_points)
            .join(SquadPersona, SquadPersona.persona_id == Persona.id)
            .where(SquadPersona.squad_id == squad_id, Persona.active.is_(True))
            .order_by(Persona.id)
        )
    ]

    logger.info(
        "structure_proposal.context_loaded squad_id=%s issues=%d roles=%d personas=%d",
        squad_id,
        len(issues),
        len(roles),
        len(personas),
    )
    return _SquadContext(
        squad=squad,
        workspace_name=workspace_name,
        problem=problem,
        issues=issues,
        roles=roles,
        personas=personas,
    )


def _build_input_snapshot(context: _SquadContext) -> dict[str, Any]:
    squad = context.squad
    return {
        "squad": {
            "id": squad.id,
            "name": squad.name,
            "description": squad.description,
            "workspace_name": context.workspace_name,
        },
        "problem_statement": context.problem_statement,
        "existing_backlog": context.issues,
        "existing_roles": context.roles,
        "existing_personas": context.personas,
        "captured_at": datetime.now(timezone.utc).isoformat(),
    }


def _build_log_input(context: _SquadContext, prompt_version_id: int, prompt_name: str) -> dict[str, Any]:
    problem = context.problem_statement
    return {
        "prompt_version_id": prompt_version_id,
        "prompt_name": prompt_name,
        "workspace_id": context.squad.workspace_id,
        "squad_id": context.squad.id,
        "squad_name": context.squad.name,
        "problem_statement_summary": {
            "title": problem.get("title") or "N/A",
            "has_narrative": bool(problem.get("narrative")),
            "has_success_metrics": bool(problem.get("success_metrics")),
        },
        "context_counts": {
            "existing_issues": len(context.issues),
            "existing_roles": len(context.roles),
            "existing_personas": len(context.personas),
        },
        "source_context": context.source_context,
        "captured_at": datetime.now(timezone.utc).isoformat(),
    }


def _prompt_variables(context: _SquadContext, input_snapshot: dict[str, Any]) -> dict[str, Any]:
    """Template variables; empty collections become ``None`` so their ``{{#if}}`` blocks drop."""

    squad = context.squad
    problem = context.problem_statement
    return {
        "squad_context": (
            f"Squad: {squad.name}\n"
            f"Workspace: {context.workspace_name}\n"
            f"Description: {squad.description or 'Not defined'}"
        ),
        "problem_statement": (
            f"Title: {_text(problem.get('title'))}\n\n"
            f"Narrative: {_text(problem.get('narrative'))}\n\n"
            f"Success metrics: {_text(problem.get('success_metrics')) or 'Not defined'}\n\n"
            f"Constraints: {_text(problem.get('constraints')) or 'None'}\n\n"
            f"Assumptions: {_text(problem.get('assumptions')) or 'None'}\n\n"
            f"Open questions: {_text(problem.get('open_questions')) or 'None'}"
        ),
        "existing_backlog": "\n".join(
            f"- {issue['title']}: {issue['description'] or ''}" for issue in context.issues
        )
        or None,
        "existing_roles": "\n".join(f"- {role['label']}: {role['description'] or ''}" for role in context.roles)
        or None,
        "existing_personas": "\n".join(
            f"- {persona['name']} ({persona['type']}): {_text(persona['goals'])}" for persona in context.personas
        )
        or None,
        "input_snapshot": json.dumps(input_snapshot, ensure_ascii=False, indent=2, default=str),
    }


def _parse_generation(content: str, output_snapshot: dict[str, Any]) -> dict[str, Any]:
    """Decode the model output and require a ``proposal`` object."""

    try:
        parsed = json.loads(content)
    except ValueError as exc:
        output_snapshot["ok"] = False
        output_snapshot["validation_error"] = "Failed to parse JSON response"
        output_snapshot["parse_error"] = str(exc)
        raise ProposalGenerationError("The model returned an invalid response. Please try again.") from exc

    if not isinstance(parsed, dict) or not isinstance(parsed.get("proposal"), dict) or not parsed["proposal"]:
        output_snapshot["ok"] = False
        output_snapshot["validation_error"] = "The model did not return a valid proposal"
        raise ProposalGenerationError("The model did not return a valid proposal")
    return parsed


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "; ".join(str(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)
