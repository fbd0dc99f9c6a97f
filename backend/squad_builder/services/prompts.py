"""Prompt registry lookups."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from squad_builder.models.prompt import AIPrompt, AIPromptVersion

logger = logging.getLogger(__name__)


def get_active_prompt(db: Session, prompt_name: str) -> AIPromptVersion | None:
    """Return the active version of ``prompt_name``, or ``None`` when there is none."""

    stmt = (
        select(AIPromptVersion)
        .join(AIPrompt, AIPrompt.id == AIPromptVersion.prompt_id)
        .where(AIPrompt.name == prompt_name, AIPromptVersion.is_active.is_(True))
        .order_by(AIPromptVersion.id.desc())
        .limit(1)
    )
    version = db.scalar(stmt)
    if version is not None:
        logger.info(
            "prompts.active_found name=%s version=%s prompt_version_id=%s",
            prompt_name,
            version.version,
            version.id,
        )
        return version

    prompt = db.scalar(select(AIPrompt).where(AIPrompt.name == prompt_name))
    if prompt is None:
        logger.warning("prompts.not_found name=%s", prompt_name)
        return None

    versions = db.execute(
        select(AIPromptVersion.version, AIPromptVersion.is_active)
        .where(AIPromptVersion.prompt_id == prompt.id)
        .order_by(AIPromptVersion.id)
    ).all()
    logger.warning(
        "prompts.no_active_version name=%s versions=%s",
        prompt_name,
        ",".join(f"{row.version}:{'active' if row.is_active else 'inactive'}" for row in versions) or "none",
    )
    return None
