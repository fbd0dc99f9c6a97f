"""Seed a demo workspace, squad, problem statement and structure prompt.

Usage (from repository root):
    python backend/scripts/seed_demo.py

Usage (from backend directory):
    python scripts/seed_demo.py
    # or
    python -m scripts.seed_demo
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from sqlalchemy import select

# Make `squad_builder` imports work whether the script is run from repo root or backend/.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from squad_builder.config import get_settings
from squad_builder.db.session import SessionLocal
from squad_builder.models.decision import PROBLEM_STATEMENT_TITLE, Decision
from squad_builder.models.prompt import AIPrompt, AIPromptVersion
from squad_builder.models.squad import Issue, Squad
from squad_builder.models.workspace import Workspace, WorkspaceMember


DEFAULT_USER_ID = "demo-user"
DEMO_PROMPT_VERSION = "1"

DEMO_SYSTEM_INSTRUCTIONS = (
    "You are an organizational design assistant. Answer with a single JSON object "
    'of the form {"needs_clarification": bool, "clarification_question": str | null, '
    '"proposal": {...}}.'
)

DEMO_PROMPT_TEXT = """\
Propose a squad structure for the context below.

{{squad_context}}

Problem statement:
{{problem_statement}}

{{#if existing_backlog}}Existing backlog:
{{existing_backlog}}
{{/if}}
{{#if existing_roles}}Existing roles:
{{existing_roles}}
{{/if}}
{{#if existing_personas}}Existing personas:
{{existing_personas}}
{{/if}}
The proposal object must contain: decision_context, problem_maturity, personas,
governance, squad_structure.roles, recommended_flow.phases, critical_unknowns,
execution_model, validation_strategy, readiness_assessment and uncertainties.
"""

DEMO_PROBLEM_STATEMENT = {
    "title": "Onboarding drop-off",
    "narrative": "New customers abandon setup before connecting their first data source.",
    "success_metrics": "Activation rate above 60% within 7 days",
    "constraints": "No additional headcount this quarter",
    "assumptions": "Most drop-off happens at the credentials step",
    "open_questions": "Is the drop-off higher for self-serve accounts?",
}

DEMO_ISSUES = [
    ("Instrument setup funnel", "Track each onboarding step as an analytics event."),
    ("Simplify credentials form", "Reduce required fields to the minimum."),
]


def ensure_prompt(db, prompt_name: str, model_name: str) -> AIPromptVersion:
    """Create the structure prompt and an active version if missing."""

    prompt = db.scalar(select(AIPrompt).where(AIPrompt.name == prompt_name))
    if prompt is None:
        prompt = AIPrompt(name=prompt_name, category="structure")
        db.add(prompt)
        db.flush()

    version = db.scalar(
        select(AIPromptVersion).where(
            AIPromptVersion.prompt_id == prompt.id,
            AIPromptVersion.is_active.is_(True),
        )
    )
    if version is None:
        version = AIPromptVersion(
            prompt_id=prompt.id,
            version=DEMO_PROMPT_VERSION,
            prompt_text=DEMO_PROMPT_TEXT,
            system_instructions=DEMO_SYSTEM_INSTRUCTIONS,
            model_name=model_name,
            temperature=0.4,
            is_active=True,
        )
        db.add(version)
        db.flush()
    return version


def seed_squad(db, user_id: str, with_backlog: bool) -> Squad:
    """Create a workspace the user belongs to, a squad and its problem statement."""

    workspace = Workspace(name="Demo Workspace")
    db.add(workspace)
    db.flush()
    db.add(WorkspaceMember(workspace_id=workspace.id, user_id=user_id))

    squad = Squad(
        workspace_id=workspace.id,
        name="Activation Squad",
        description="Owns first-week customer activation.",
    )
    db.add(squad)
    db.flush()

    db.add(
        Decision(
            squad_id=squad.id,
            title=PROBLEM_STATEMENT_TITLE,
            decision_json=DEMO_PROBLEM_STATEMENT,
            created_by_user_id=user_id,
        )
    )
    if with_backlog:
        for title, description in DEMO_ISSUES:
            db.add(Issue(squad_id=squad.id, title=title, description=description))
    return squad


def parse_args() -> argparse.Namespace:
    """Parse script CLI arguments."""

    parser = argparse.ArgumentParser(description="Seed a demo squad ready for structure proposals.")
    parser.add_argument(
        "--user-id",
        default=DEFAULT_USER_ID,
        help=f"Member user id to create (default: {DEFAULT_USER_ID})",
    )
    parser.add_argument(
        "--no-backlog",
        action="store_true",
        help="Do not create backlog issues for the squad.",
    )
    return parser.parse_args()


def main() -> None:
    """Seed demo data and print a short summary."""

    args = parse_args()
    settings = get_settings()

    with SessionLocal() as db:
        prompt_version = ensure_prompt(db, settings.structure_prompt_name, settings.openai_model)
        squad = seed_squad(db, args.user_id, with_backlog=not args.no_backlog)
        db.commit()
        squad_id = squad.id
        workspace_id = squad.workspace_id
        prompt_version_id = prompt_version.id

    print("Seed complete")
    print(f"workspace_id={workspace_id}")
    print(f"squad_id={squad_id}")
    print(f"user_id={args.user_id}")
    print(f"prompt_version_id={prompt_version_id}")
    print()
    print("Try:")
    print(f"  POST /ai/structure-proposal  X-User-Id: {args.user_id}  body: {{\"squad_id\": {squad_id}}}")
    print(f"  GET  /suggestion-approvals?squad_id={squad_id}")


if __name__ == "__main__":
    main()
