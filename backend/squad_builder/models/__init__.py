"""ORM models package exports."""

from squad_builder.models.decision import Decision
from squad_builder.models.persona import Persona, SquadPersona
from squad_builder.models.phase import Phase
from squad_builder.models.prompt import AIPrompt, AIPromptExecution, AIPromptVersion
from squad_builder.models.role import Role, SquadRole, WorkspaceRole
from squad_builder.models.squad import Issue, Squad
from squad_builder.models.structure_proposal import AIStructureProposal
from squad_builder.models.suggestion import SuggestionDecision, SuggestionProposal
from squad_builder.models.workspace import Workspace, WorkspaceMember

__all__ = [
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
