"""Workspace membership checks shared by the proposal and suggestion services."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from squad_builder.models.squad import Squad
from squad_builder.models.workspace import WorkspaceMember
from squad_builder.services.errors import AccessDeniedError, ResourceNotFoundError


def is_workspace_member(db: Session, workspace_id: int, user_id: str) -> bool:
    """Return whether ``user_id`` belongs to the workspace."""

    stmt = (
        select(WorkspaceMember.id)
        .where(WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.user_id == user_id)
        .limit(1)
    )
    return db.scalar(stmt) is not None


def ensure_workspace_member(db: Session, workspace_id: int, user_id: str) -> None:
    """Raise ``AccessDeniedError`` unless ``user_id`` belongs to the workspace."""

    if not is_workspace_member(db, workspace_id, user_id):
        raise AccessDeniedError("Access to the workspace was denied")


def get_accessible_squad(db: Session, squad_id: int, user_id: str) -> Squad:
    """Load a squad and verify the caller can access its workspace."""

    squad = db.scalar(select(Squad).where(Squad.id == squad_id))
    if squad is None:
        raise ResourceNotFoundError("Squad not found")
    ensure_workspace_member(db, squad.workspace_id, user_id)
    return squad
