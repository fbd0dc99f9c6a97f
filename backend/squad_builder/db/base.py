"""SQLAlchemy metadata registry import for Alembic."""

from squad_builder.models import (
    AIPrompt,
    AIPromptExecution,
    AIPromptVersion,
    AIStructureProposal,
    Decision,
    Issue,
    Persona,
    Phase,
    Role,
    Squad,
    SquadPersona,
    SquadRole,
    SuggestionDecision,
    SuggestionProposal,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
)
from squad_builder.models.base import Base

__all__ = [
    "Base",
    "Workspace",
    "WorkspaceMember",
    "Squad",
    "Issue",
    "Decision",
    "Persona",
    "SquadPersona",
    "Role",
    "WorkspaceRole",
    "SquadRole",
    "Phase",
    "AIPrompt",
    "AIPromptVersion",
    "AIPromptExecution",
    "AIStructureProposal",
    "SuggestionProposal",
    "SuggestionDecision",
]
