"""Persist approved suggestions into their domain tables.

Each suggestion type has exactly one handler. Handlers are idempotent where
the target has an identity (personas by name, roles by label, phases by name,
link rows by composite key) and append-only where the target is the decision
log. Handlers only flush; the caller owns the transaction.
"""

from __future__ import annotations

import json
import logging
import random
import re
import string
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import ColumnElement, func, insert, literal, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from squad_builder.models.decision import PROBLEM_STATEMENT_TITLE, Decision
from squad_builder.models.persona import DEFAULT_PERSONA_TYPE, Persona, SquadPersona
from squad_builder.models.phase import Phase
from squad_builder.models.role import Role, SquadRole, WorkspaceRole
from squad_builder.models.squad import SQUAD_STATUS_ACTIVE, SQUAD_STATUS_DRAFT, Squad
from squad_builder.schemas.decision_payloads import (
    CRITICAL_UNKNOWN_TITLE,
    DECISION_BODIES,
    DECISION_CONTEXT_TITLE,
    EXECUTION_MODEL_TITLE,
    GOVERNANCE_TITLE,
    HUMAN_AI_ROLE,
    VALIDATION_STRATEGY_TITLE,
)
from squad_builder.services.decomposition import SUGGESTION_TYPES, SuggestionType

logger = logging.getLogger(__name__)

_ROLE_CODE_STRIP = re.compile(r"[^a-z0-9\s_-]")
_ROLE_CODE_SEPARATORS = re.compile(r"[\s_-]+")
_BASE36 = string.digits + string.ascii_lowercase


class SuggestionPersistenceError(RuntimeError):
    """Raised when an approved suggestion cannot be persisted."""

    reason = "persistence_failed"


class UnknownSuggestionTypeError(SuggestionPersistenceError):
    """The suggestion type has no handler; decomposer and dispatcher disagree."""

    reason = "unknown_type"


class InvalidSuggestionPayloadError(SuggestionPersistenceError):
    """The payload does not have the shape its suggestion type requires."""

    reason = "invalid_payload"


class LinkVerificationError(SuggestionPersistenceError):
    """A squad link row was not found after it should have been written."""

    reason = "link_verification_failed"


@dataclass(slots=True, frozen=True)
class PersistContext:
    """Ownership of the suggestion being persisted."""

    squad_id: int
    workspace_id: int
    user_id: str


_Handler = Callable[[Session, Any, PersistContext], None]


def persist_suggestion(
    db: Session,
    suggestion_type: str,
    payload: Any,
    *,
    squad_id: int,
    workspace_id: int,
    user_id: str,
) -> None:
    """Dispatch an approved payload to the handler for its type."""

    handler = _HANDLERS.get(suggestion_type)
    if handler is None:
        logger.error("suggestions.unknown_type type=%s squad_id=%s", suggestion_type, squad_id)
        raise UnknownSuggestionTypeError(f"Unknown suggestion type: {suggestion_type}")

    context = PersistContext(squad_id=squad_id, workspace_id=workspace_id, user_id=user_id)
    logger.info("suggestions.persist_started type=%s squad_id=%s", suggestion_type, squad_id)
    handler(db, _decode_payload(payload), context)
    db.flush()
    logger.info("suggestions.persist_completed type=%s squad_id=%s", suggestion_type, squad_id)


def derive_role_code(label: str | None) -> str:
    """Build a machine code from a role label, e.g. ``"Tech Lead!"`` -> ``"tech_lead"``.

    Labels that reduce to nothing get a timestamp plus random suffix code.
    """

    code = _ROLE_CODE_STRIP.sub("", (label or "").strip().lower())
    code = _ROLE_CODE_SEPARATORS.sub("_", code).strip("_")
    if code:
        return code
    suffix = "".join(random.choices(_BASE36, k=6))
    return f"unknown_role_{int(time.time() * 1000)}_{suffix}"


def _append_decision(title: str) -> _Handler:
    body_model = DECISION_BODIES[title]

    def _handler(db: Session, data: Any, context: PersistContext) -> None:
        body = body_model.model_validate(_require_mapping(data, title))
        db.add(
            Decision(
                squad_id=context.squad_id,
                title=title,
                decision_json=body.model_dump(mode="json"),
                created_by_user_id=context.user_id,
                created_by_role=HUMAN_AI_ROLE,
            )
        )

    return _handler


def _persist_problem_maturity(db: Session, data: Any, context: PersistContext) -> None:
    data = _require_mapping(data, "problem_maturity")
    statements = list(
        db.scalars(
            select(Decision).where(
                Decision.squad_id == context.squad_id,
                Decision.title == PROBLEM_STATEMENT_TITLE,
            )
        ).all()
    )
    if not statements:
        logger.warning("suggestions.problem_statement_missing squad_id=%s", context.squad_id)
        return
    for statement in statements:
        patched = dict(statement.decision_json or {})
        patched["current_stage"] = data.get("current_stage")
        patched["confidence_level"] = data.get("confidence_level")
        statement.decision_json = patched


def _persist_persona(db: Session, data: Any, context: PersistContext) -> None:
    data = _require_mapping(data, "persona")
    name = _clean_text(data.get("name"))
    if not name:
        raise InvalidSuggestionPayloadError("Persona suggestion has no name")

    persona_id = db.scalar(
        select(Persona.id)
        .where(
            Persona.workspace_id == context.workspace_id,
            func.lower(func.trim(Persona.name)) == _folded(data.get("name")),
        )
        .order_by(Persona.id.asc())
        .limit(1)
    )
    if persona_id is None:
        persona = Persona(
            workspace_id=context.workspace_id,
            name=name,
            type=_clean_text(data.get("type")) or DEFAULT_PERSONA_TYPE,
            description=_as_text(data.get("description")),
            goals=_as_text(data.get("goals")),
            pain_points=_as_text(data.get("pain_points")),
            active=True,
        )
        db.add(persona)
        db.flush()
        persona_id = persona.id
        logger.info("suggestions.persona_created persona_id=%s workspace_id=%s", persona_id, context.workspace_id)
    else:
        logger.info("suggestions.persona_reused persona_id=%s workspace_id=%s", persona_id, context.workspace_id)

    inserted = _insert_ignoring_conflict(
        db,
        SquadPersona,
        {"squad_id": context.squad_id, "persona_id": persona_id},
        conflict_columns=("squad_id", "persona_id"),
    )
    logger.info(
        "suggestions.persona_linked squad_id=%s persona_id=%s created=%s",
        context.squad_id,
        persona_id,
        inserted,
    )

    link_id = db.scalar(
        select(SquadPersona.id).where(
            SquadPersona.squad_id == context.squad_id,
            SquadPersona.persona_id == persona_id,
        )
    )
    if link_id is None:
        raise LinkVerificationError(f"Failed to link persona {persona_id} to squad {context.squad_id}")


def _persist_role(db: Session, data: Any, context: PersistContext) -> None:
    data = _require_mapping(data, "squad_structure_role")
    raw_label = data.get("role") or data.get("label")
    label = _clean_text(raw_label)
    folded_label = _folded(raw_label)

    role_id = db.scalar(
        select(Role.id)
        .where(func.lower(func.trim(Role.label)) == folded_label)
        .order_by(Role.id.asc())
        .limit(1)
    )
    workspace_role_id: int | None = None
    if role_id is None:
        workspace_role_id = db.scalar(
            select(WorkspaceRole.id)
            .where(
                WorkspaceRole.workspace_id == context.workspace_id,
                func.lower(func.trim(WorkspaceRole.label)) == folded_label,
            )
            .order_by(WorkspaceRole.id.asc())
            .limit(1)
        )
    if role_id is None and workspace_role_id is None:
        workspace_role_id = _create_workspace_role(db, data, label, context)

    if role_id is not None:
        link_filter = SquadRole.role_id == role_id
    else:
        link_filter = SquadRole.workspace_role_id == workspace_role_id
    link_stmt = select(SquadRole.id).where(SquadRole.squad_id == context.squad_id, link_filter).limit(1)

    existing_link_id = db.scalar(link_stmt)
    if existing_link_id is None:
        link = SquadRole(
            squad_id=context.squad_id,
            role_id=role_id,
            workspace_role_id=workspace_role_id,
            active=True,
        )
        db.add(link)
        db.flush()
        logger.info("suggestions.role_linked squad_id=%s squad_role_id=%s", context.squad_id, link.id)
    else:
        logger.info("suggestions.role_link_exists squad_id=%s squad_role_id=%s", context.squad_id, existing_link_id)

    if db.scalar(link_stmt) is None:
        raise LinkVerificationError(f"Failed to link role '{label}' to squad {context.squad_id}")


def _create_workspace_role(db: Session, data: dict[str, Any], label: str, context: PersistContext) -> int:
    code = derive_role_code(label)
    # Different labels can reduce to the same code ("Tech-Lead" / "Tech Lead").
    same_code_id = db.scalar(
        select(WorkspaceRole.id).where(
            WorkspaceRole.workspace_id == context.workspace_id,
            WorkspaceRole.code == code,
        )
    )
    if same_code_id is not None:
        logger.info("suggestions.workspace_role_reused_by_code code=%s workspace_role_id=%s", code, same_code_id)
        return same_code_id

    role = WorkspaceRole(
        workspace_id=context.workspace_id,
        code=code,
        label=label,
        description=_as_text(data.get("description")),
        responsibilities=_as_text(data.get("accountability") or data.get("responsibility")),
    )
    db.add(role)
    db.flush()
    logger.info("suggestions.workspace_role_created code=%s workspace_role_id=%s", code, role.id)
    return role.id


def _persist_phases(db: Session, data: Any, context: PersistContext) -> None:
    phases = data if isinstance(data, list) else [data]

    existing = db.execute(
        select(Phase.name, Phase.order_index)
        .where(Phase.squad_id == context.squad_id)
        .order_by(Phase.order_index.desc())
    ).all()
    max_order_index = existing[0].order_index if existing else 0
    known_names = {_clean_text(row.name).lower() for row in existing}

    inserted = 0
    for item in phases:
        if isinstance(item, dict):
            name = _clean_text(item.get("name"))
            description = _as_text(item.get("description") or item.get("objective"))
        else:
            name = _clean_text(item)
            description = None
        if not name:
            logger.warning("suggestions.phase_without_name squad_id=%s", context.squad_id)
            continue
        if name.lower() in known_names:
            logger.info("suggestions.phase_duplicate_skipped squad_id=%s name=%s", context.squad_id, name)
            continue

        db.add(
            Phase(
                squad_id=context.squad_id,
                name=name,
                description=description,
                order_index=max_order_index + inserted + 1,
            )
        )
        known_names.add(name.lower())
        inserted += 1

    logger.info(
        "suggestions.phases_persisted squad_id=%s inserted=%d skipped=%d",
        context.squad_id,
        inserted,
        len(phases) - inserted,
    )


def _persist_readiness(db: Session, data: Any, context: PersistContext) -> None:
    data = _require_mapping(data, "readiness_assessment")
    squad = db.scalar(select(Squad).where(Squad.id == context.squad_id))
    if squad is None:
        logger.warning("suggestions.readiness_squad_missing squad_id=%s", context.squad_id)
        return
    squad.status = SQUAD_STATUS_ACTIVE if data.get("is_ready_to_build_product") else SQUAD_STATUS_DRAFT


_HANDLERS: dict[SuggestionType, _Handler] = {
    "decision_context": _append_decision(DECISION_CONTEXT_TITLE),
    "problem_maturity": _persist_problem_maturity,
    "persona": _persist_persona,
    "governance": _append_decision(GOVERNANCE_TITLE),
    "squad_structure_role": _persist_role,
    "phase": _persist_phases,
    "critical_unknown": _append_decision(CRITICAL_UNKNOWN_TITLE),
    "execution_model": _append_decision(EXECUTION_MODEL_TITLE),
    "validation_strategy": _append_decision(VALIDATION_STRATEGY_TITLE),
    "readiness_assessment": _persist_readiness,
}
if set(_HANDLERS) != set(SUGGESTION_TYPES):
    raise RuntimeError("Suggestion handlers do not cover the suggestion type enumeration")


def _insert_ignoring_conflict(
    db: Session,
    model: type[SquadPersona],
    values: dict[str, Any],
    *,
    conflict_columns: tuple[str, ...],
) -> bool:
    """Insert a row unless one with the same conflict key exists; return whether it was inserted."""

    table = model.__table__
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql_insert(table).values(**values).on_conflict_do_nothing(index_elements=list(conflict_columns))
    elif dialect == "sqlite":
        stmt = sqlite_insert(table).values(**values).on_conflict_do_nothing(index_elements=list(conflict_columns))
    else:
        existing = db.scalar(
            select(model.id).where(*(getattr(model, column) == values[column] for column in conflict_columns))
        )
        if existing is not None:
            return False
        stmt = insert(table).values(**values)
    result = db.execute(stmt)
    return bool(result.rowcount)


def _decode_payload(payload: Any) -> Any:
    if not isinstance(payload, str):
        return payload
    try:
        return json.loads(payload)
    except ValueError:
        # Plain strings are valid payloads for some types (a single phase name).
        return payload


def _require_mapping(data: Any, suggestion_type: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise InvalidSuggestionPayloadError(f"{suggestion_type} suggestion payload must be an object")
    return data


def _folded(value: Any) -> ColumnElement[str]:
    """SQL expression folding ``value`` the same way stored names are folded."""

    return func.lower(func.trim(literal("" if value is None else str(value))))


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        return "\n".join(str(item).strip() for item in value if item is not None) or None
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value).strip() or None
