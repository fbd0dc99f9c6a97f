"""initial schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:00:01
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Integer(), autoincrement=True, nullable=False)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "workspaces",
        _id(),
        sa.Column("name", sa.String(length=255), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "workspace_members",
        _id(),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_members_workspace_user"),
    )
    op.create_index("ix_workspace_members_workspace_id", "workspace_members", ["workspace_id"], unique=False)
    op.create_index("ix_workspace_members_user_id", "workspace_members", ["user_id"], unique=False)

    op.create_table(
        "squads",
        _id(),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="draft"),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_squads_workspace_id", "squads", ["workspace_id"], unique=False)

    op.create_table(
        "issues",
        _id(),
        sa.Column("squad_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=512), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="open"),
        _created_at(),
        sa.ForeignKeyConstraint(["squad_id"], ["squads.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_issues_squad_id", "issues", ["squad_id"], unique=False)

    op.create_table(
        "decisions",
        _id(),
        sa.Column("squad_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("decision_json", sa.JSON(), nullable=False),
        sa.Column("created_by_user_id", sa.String(length=255), nullable=True),
        sa.Column("created_by_role", sa.String(length=64), nullable=False, server_default="Human"),
        _created_at(),
        sa.ForeignKeyConstraint(["squad_id"], ["squads.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_decisions_squad_id", "decisions", ["squad_id"], unique=False)
    op.create_index("ix_decisions_title", "decisions", ["title"], unique=False)

    op.create_table(
        "personas",
        _id(),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=64), nullable=False, server_default="customer"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("goals", sa.Text(), nullable=True),
        sa.Column("pain_points", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_personas_workspace_id", "personas", ["workspace_id"], unique=False)

    op.create_table(
        "squad_personas",
        _id(),
        sa.Column("squad_id", sa.Integer(), nullable=False),
        sa.Column("persona_id", sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["squad_id"], ["squads.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["persona_id"], ["personas.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("squad_id", "persona_id", name="uq_squad_personas_squad_persona"),
    )
    op.create_index("ix_squad_personas_squad_id", "squad_personas", ["squad_id"], unique=False)
    op.create_index("ix_squad_personas_persona_id", "squad_personas", ["persona_id"], unique=False)

    op.create_table(
        "roles",
        _id(),
        sa.Column("code", sa.String(length=128), nullable=False),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("responsibilities", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )

    op.create_table(
        "workspace_roles",
        _id(),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=128), nullable=False),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("responsibilities", sa.Text(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("workspace_id", "code", name="uq_workspace_roles_workspace_code"),
    )
    op.create_index("ix_workspace_roles_workspace_id", "workspace_roles", ["workspace_id"], unique=False)

    op.create_table(
        "squad_roles",
        _id(),
        sa.Column("squad_id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=True),
        sa.Column("workspace_role_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        sa.CheckConstraint(
            "(role_id IS NULL) <> (workspace_role_id IS NULL)",
            name="ck_squad_roles_exactly_one_role",
        ),
        sa.ForeignKeyConstraint(["squad_id"], ["squads.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["roles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["workspace_role_id"], ["workspace_roles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_squad_roles_squad_id", "squad_roles", ["squad_id"], unique=False)
    op.create_index("ix_squad_roles_role_id", "squad_roles", ["role_id"], unique=False)
    op.create_index("ix_squad_roles_workspace_role_id", "squad_roles", ["workspace_role_id"], unique=False)

    op.create_table(
        "phases",
        _id(),
        sa.Column("squad_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("order_index", sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["squad_id"], ["squads.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_phases_squad_id", "phases", ["squad_id"], unique=False)

    op.create_table(
        "ai_prompts",
        _id(),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "ai_prompt_versions",
        _id(),
        sa.Column("prompt_id", sa.Integer(), nullable=False),
        sa.Column("version", sa.String(length=32), nullable=False),
        sa.Column("prompt_text", sa.Text(), nullable=False),
        sa.Column("system_instructions", sa.Text(), nullable=False, server_default=""),
        sa.Column("model_name", sa.String(length=128), nullable=False),
        sa.Column("temperature", sa.Float(), nullable=False, server_default=sa.text("0.7")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        sa.ForeignKeyConstraint(["prompt_id"], ["ai_prompts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("prompt_id", "version", name="uq_ai_prompt_versions_prompt_version"),
    )
    op.create_index("ix_ai_prompt_versions_prompt_id", "ai_prompt_versions", ["prompt_id"], unique=False)

    op.create_table(
        "ai_prompt_executions",
        _id(),
        sa.Column("prompt_version_id", sa.Integer(), nullable=False),
        sa.Column("proposal_id", sa.Integer(), nullable=True),
        sa.Column("workspace_id", sa.Integer(), nullable=True),
        sa.Column("related_entity_type", sa.String(length=64), nullable=True),
        sa.Column("related_entity_id", sa.Integer(), nullable=True),
        sa.Column("input_snapshot", sa.JSON(), nullable=True),
        sa.Column("output_snapshot", sa.JSON(), nullable=True),
        sa.Column("input_tokens", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("output_tokens", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_tokens", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("execution_time_ms", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("executed_by_user_id", sa.String(length=255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["prompt_version_id"], ["ai_prompt_versions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_ai_prompt_executions_prompt_version_id",
        "ai_prompt_executions",
        ["prompt_version_id"],
        unique=False,
    )
    op.create_index("ix_ai_prompt_executions_workspace_id", "ai_prompt_executions", ["workspace_id"], unique=False)

    op.create_table(
        "ai_structure_proposals",
        _id(),
        sa.Column("squad_id", sa.Integer(), nullable=False),
        sa.Column("problem_id", sa.Integer(), nullable=True),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("source_context", sa.String(length=16), nullable=False),
        sa.Column("input_snapshot", sa.JSON(), nullable=False),
        sa.Column("proposal_payload", sa.JSON(), nullable=False),
        sa.Column("uncertainties", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="DRAFT"),
        sa.Column("model_name", sa.String(length=128), nullable=True),
        sa.Column("prompt_version_id", sa.Integer(), nullable=True),
        sa.Column("created_by_user_id", sa.String(length=255), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("discarded_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["squad_id"], ["squads.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["problem_id"], ["decisions.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["prompt_version_id"], ["ai_prompt_versions.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ai_structure_proposals_squad_id", "ai_structure_proposals", ["squad_id"], unique=False)
    op.create_index(
        "ix_ai_structure_proposals_workspace_id",
        "ai_structure_proposals",
        ["workspace_id"],
        unique=False,
    )

    op.create_table(
        "suggestion_proposals",
        _id(),
        sa.Column("proposal_id", sa.Integer(), nullable=False),
        sa.Column("squad_id", sa.Integer(), nullable=False),
        sa.Column("workspace_id", sa.Integer(), nullable=False),
        sa.Column("suggestion_type", sa.String(length=64), nullable=False),
        sa.Column("suggestion_payload", sa.JSON(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="pending"),
        sa.Column("edited_payload", sa.JSON(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("decided_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("decided_by_user_id", sa.String(length=255), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["proposal_id"], ["ai_structure_proposals.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["squad_id"], ["squads.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["workspace_id"], ["workspaces.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("proposal_id", "display_order", name="uq_suggestion_proposals_proposal_order"),
    )
    op.create_index("ix_suggestion_proposals_proposal_id", "suggestion_proposals", ["proposal_id"], unique=False)
    op.create_index("ix_suggestion_proposals_squad_id", "suggestion_proposals", ["squad_id"], unique=False)
    op.create_index("ix_suggestion_proposals_status", "suggestion_proposals", ["status"], unique=False)

    op.create_table(
        "suggestion_decisions",
        _id(),
        sa.Column("suggestion_proposal_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=32), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("changes_summary", sa.JSON(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["suggestion_proposal_id"], ["suggestion_proposals.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_suggestion_decisions_suggestion_proposal_id",
        "suggestion_decisions",
        ["suggestion_proposal_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_suggestion_decisions_suggestion_proposal_id", table_name="suggestion_decisions")
    op.drop_table("suggestion_decisions")
    op.drop_index("ix_suggestion_proposals_status", table_name="suggestion_proposals")
    op.drop_index("ix_suggestion_proposals_squad_id", table_name="suggestion_proposals")
    op.drop_index("ix_suggestion_proposals_proposal_id", table_name="suggestion_proposals")
    op.drop_table("suggestion_proposals")
    op.drop_index("ix_ai_structure_proposals_workspace_id", table_name="ai_structure_proposals")
    op.drop_index("ix_ai_structure_proposals_squad_id", table_name="ai_structure_proposals")
    op.drop_table("ai_structure_proposals")
    op.drop_index("ix_ai_prompt_executions_workspace_id", table_name="ai_prompt_executions")
    op.drop_index("ix_ai_prompt_executions_prompt_version_id", table_name="ai_prompt_executions")
    op.drop_table("ai_prompt_executions")
    op.drop_index("ix_ai_prompt_versions_prompt_id", table_name="ai_prompt_versions")
    op.drop_table("ai_prompt_versions")
    op.drop_table("ai_prompts")
    op.drop_index("ix_phases_squad_id", table_name="phases")
    op.drop_table("phases")
    op.drop_index("ix_squad_roles_workspace_role_id", table_name="squad_roles")
    op.drop_index("ix_squad_roles_role_id", table_name="squad_roles")
    op.drop_index("ix_squad_roles_squad_id", table_name="squad_roles")
    op.drop_table("squad_roles")
    op.drop_index("ix_workspace_roles_workspace_id", table_name="workspace_roles")
    op.drop_table("workspace_roles")
    op.drop_table("roles")
    op.drop_index("ix_squad_personas_persona_id", table_name="squad_personas")
    op.drop_index("ix_squad_personas_squad_id", table_name="squad_personas")
    op.drop_table("squad_personas")
    op.drop_index("ix_personas_workspace_id", table_name="personas")
    op.drop_table("personas")
    op.drop_index("ix_decisions_title", table_name="decisions")
    op.drop_index("ix_decisions_squad_id", table_name="decisions")
    op.drop_table("decisions")
    op.drop_index("ix_issues_squad_id", table_name="issues")
    op.drop_table("issues")
    op.drop_index("ix_squads_workspace_id", table_name="squads")
    op.drop_table("squads")
    op.drop_index("ix_workspace_members_user_id", table_name="workspace_members")
    op.drop_index("ix_workspace_members_workspace_id", table_name="workspace_members")
    op.drop_table("workspace_members")
    op.drop_table("workspaces")
