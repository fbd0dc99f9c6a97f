"""Integration tests for structure proposal generation and review."""

from __future__ import annotations

import json
import unittest

from sqlalchemy import select
from sqlalchemy.orm import Session

from squad_builder.llm.client import StructureModelError
from squad_builder.models.decision import Decision
from squad_builder.models.persona import Persona, SquadPersona
from squad_builder.models.prompt import AIPromptExecution
from squad_builder.models.role import Role, SquadRole
from squad_builder.models.squad import Issue
from squad_builder.models.structure_proposal import AIStructureProposal
from squad_builder.services.errors import (
    AccessDeniedError,
    InvalidRequestError,
    PromptNotConfiguredError,
    ProposalGenerationError,
    ResourceNotFoundError,
    StateConflictError,
)
from squad_builder.services.structure_proposals import (
    confirm_structure_proposal,
    discard_structure_proposal,
    generate_structure_proposal,
    get_latest_draft_proposal,
)

from squad_fixtures import (
    MEMBER_ID,
    OUTSIDER_ID,
    SAMPLE_PROPOSAL,
    StubModelClient,
    create_session_factory,
    create_test_engine,
    reset_tables,
    seed_prompt,
    seed_squad,
)


def _model_output(**extra: object) -> str:
    return json.dumps({"needs_clarification": False, "proposal": SAMPLE_PROPOSAL, **extra})


class StructureProposalGenerationTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_test_engine()
        cls.SessionLocal = create_session_factory(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        cls.engine.dispose()

    def setUp(self) -> None:
        self.db: Session = self.SessionLocal()
        reset_tables(self.db)
        squad = seed_squad(self.db)
        self.squad_id = squad.id
        self.workspace_id = squad.workspace_id
        self.prompt_version_id = seed_prompt(self.db).id

    def tearDown(self) -> None:
        self.db.close()

    def _executions(self) -> list[AIPromptExecution]:
        return list(self.db.scalars(select(AIPromptExecution).order_by(AIPromptExecution.id)).all())

    def test_generates_draft_and_logs_successful_execution(self) -> None:
        client = StubModelClient(_model_output())

        result = generate_structure_proposal(self.db, self.squad_id, MEMBER_ID, client=client)

        proposal = result.proposal
        self.assertEqual(proposal.status, "DRAFT")
        self.assertEqual(proposal.source_context, "PROBLEM")
        self.assertEqual(proposal.proposal_payload, SAMPLE_PROPOSAL)
        self.assertEqual(proposal.uncertainties, ["Pricing data is incomplete"])
        self.assertEqual(proposal.prompt_version_id, self.prompt_version_id)
        self.assertEqual(proposal.input_snapshot["squad"]["name"], "Retention Squad")
        self.assertEqual(proposal.input_snapshot["existing_backlog"], [])
        self.assertEqual(result.suggestions, [])

        self.assertEqual(len(client.calls), 1)
        call = client.calls[0]
        self.assertTrue(call["json_mode"])
        self.assertEqual(call["model"], "stub-model")
        self.assertEqual(call["system_instructions"], "Answer in JSON.")
        self.assertIn("Squad: Retention Squad", call["user_prompt"])
        self.assertIn("Narrative: Customers leave after trial", call["user_prompt"])
        self.assertNotIn("Backlog:", call["user_prompt"])
        self.assertNotIn("{{", call["user_prompt"])

        executions = self._executions()
        self.assertEqual(len(executions), 1)
        execution = executions[0]
        self.assertTrue(execution.success)
        self.assertEqual(execution.proposal_id, proposal.id)
        self.assertEqual(execution.total_tokens, 200)
        self.assertEqual(execution.related_entity_type, "squad")
        self.assertEqual(execution.input_snapshot["context_counts"]["existing_issues"], 0)
        self.assertEqual(execution.output_snapshot["parsed_json"]["proposal"], SAMPLE_PROPOSAL)

    def test_existing_context_is_rendered_and_marks_both_sources(self) -> None:
        self.db.add(Issue(squad_id=self.squad_id, title="Fix trial emails", description="Emails bounce"))
        role = Role(code="product_manager", label="Product Manager", description="Owns outcomes")
        persona = Persona(workspace_id=self.workspace_id, name="Ops Manager", type="customer", goals="Fewer tickets")
        self.db.add_all([role, persona])
        self.db.flush()
        self.db.add(SquadRole(squad_id=self.squad_id, role_id=role.id))
        self.db.add(SquadPersona(squad_id=self.squad_id, persona_id=persona.id))
        self.db.commit()
        client = StubModelClient(_model_output())

        result = generate_structure_proposal(self.db, self.squad_id, MEMBER_ID, client=client)

        self.assertEqual(result.proposal.source_context, "BOTH")
        prompt = client.calls[0]["user_prompt"]
        self.assertIn("Backlog:\n- Fix trial emails: Emails bounce", prompt)
        self.assertIn("- Product Manager: Owns outcomes", prompt)
        self.assertIn("- Ops Manager (customer): Fewer tickets", prompt)

    def test_breakdown_flag_creates_suggestions(self) -> None:
        result = generate_structure_proposal(
            self.db,
            self.squad_id,
            MEMBER_ID,
            client=StubModelClient(_model_output()),
            breakdown=True,
        )
        self.assertEqual(len(result.suggestions), 11)
        self.assertEqual({row.proposal_id for row in result.suggestions}, {result.proposal.id})

    def test_clarification_request_is_logged_and_proposal_still_stored(self) -> None:
        client = StubModelClient(_model_output(needs_clarification=True, clarification_question="Which market?"))
        with self.assertLogs("squad_builder.services.structure_proposals", level="INFO") as captured:
            generate_structure_proposal(self.db, self.squad_id, MEMBER_ID, client=client)
        self.assertTrue(any("needs_clarification" in line for line in captured.output))
        self.assertEqual(len(self.db.scalars(select(AIStructureProposal)).all()), 1)

    def test_invalid_json_fails_and_logs_failed_execution(self) -> None:
        with self.assertRaises(ProposalGenerationError):
            generate_structure_proposal(self.db, self.squad_id, MEMBER_ID, client=StubModelClient("not json"))

        self.assertEqual(self.db.scalars(select(AIStructureProposal)).all(), [])
        executions = self._executions()
        self.assertEqual(len(executions), 1)
        self.assertFalse(executions[0].success)
        self.assertIsNone(executions[0].proposal_id)
        self.assertEqual(executions[0].output_snapshot["validation_error"], "Failed to parse JSON response")
        self.assertEqual(executions[0].total_tokens, 200)

    def test_missing_proposal_object_fails(self) -> None:
        client = StubModelClient(json.dumps({"needs_clarification": True, "proposal": None}))
        with self.assertRaises(ProposalGenerationError):
            generate_structure_proposal(self.db, self.squad_id, MEMBER_ID, client=client)
        executions = self._executions()
        self.assertEqual(len(executions), 1)
        self.assertFalse(executions[0].success)
        self.assertEqual(executions[0].error_message, "The model did not return a valid proposal")

    def test_model_error_is_wrapped_and_logged(self) -> None:
        client = StubModelClient(error=StructureModelError("OpenAI HTTP 500: boom", execution_time_ms=17))
        with self.assertRaises(ProposalGenerationError):
            generate_structure_proposal(self.db, self.squad_id, MEMBER_ID, client=client)
        execution = self._executions()[0]
        self.assertFalse(execution.success)
        self.assertEqual(execution.execution_time_ms, 17)
        self.assertIn("boom", execution.error_message)
        self.assertEqual(execution.output_snapshot["model"], "stub-model")

    def test_preconditions(self) -> None:
        client = StubModelClient(_model_output())
        with self.assertRaises(ResourceNotFoundError):
            generate_structure_proposal(self.db, 999_999, MEMBER_ID, client=client)
        with self.assertRaises(AccessDeniedError):
            generate_structure_proposal(self.db, self.squad_id, OUTSIDER_ID, client=client)

        no_problem = seed_squad(self.db, with_problem=False)
        with self.assertRaises(InvalidRequestError):
            generate_structure_proposal(self.db, no_problem.id, MEMBER_ID, client=client)
        self.assertEqual(client.calls, [])

    def test_missing_active_prompt(self) -> None:
        reset_tables(self.db)
        squad = seed_squad(self.db)
        seed_prompt(self.db, active=False)
        with self.assertRaises(PromptNotConfiguredError):
            generate_structure_proposal(self.db, squad.id, MEMBER_ID, client=StubModelClient(_model_output()))


class StructureProposalReviewTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_test_engine()
        cls.SessionLocal = create_session_factory(cls.engine)

    @classmethod
    def tearDownClass(cls) -> None:
        cls.engine.dispose()

    def setUp(self) -> None:
        self.db: Session = self.SessionLocal()
        reset_tables(self.db)
        self.squad_id = seed_squad(self.db).id
        seed_prompt(self.db)
        result = generate_structure_proposal(
            self.db, self.squad_id, MEMBER_ID, client=StubModelClient(_model_output())
        )
        self.proposal_id = result.proposal.id

    def tearDown(self) -> None:
        self.db.close()

    def test_confirm_records_hybrid_decision(self) -> None:
        edited = {"governance": {"decision_rules": ["Monthly review"]}}

        proposal = confirm_structure_proposal(self.db, self.proposal_id, MEMBER_ID, edited_proposal=edited)

        self.assertEqual(proposal.status, "CONFIRMED")
        self.assertIsNotNone(proposal.confirmed_at)
        decision = self.db.scalar(select(Decision).where(Decision.title == "AI Structure Proposal Confirmed"))
        assert decision is not None
        self.assertEqual(decision.created_by_role, "Human + AI")
        self.assertEqual(decision.decision_json["type"], "AI_STRUCTURE_PROPOSAL_CONFIRMED")
        self.assertEqual(decision.decision_json["proposal_id"], self.proposal_id)
        self.assertEqual(decision.decision_json["proposal"], edited)

        with self.assertRaises(StateConflictError):
            confirm_structure_proposal(self.db, self.proposal_id, MEMBER_ID)
        with self.assertRaises(StateConflictError):
            discard_structure_proposal(self.db, self.proposal_id, MEMBER_ID)

    def test_confirm_without_edits_uses_stored_payload(self) -> None:
        confirm_structure_proposal(self.db, self.proposal_id, MEMBER_ID)
        decision = self.db.scalar(select(Decision).where(Decision.title == "AI Structure Proposal Confirmed"))
        assert decision is not None
        self.assertEqual(decision.decision_json["proposal"], SAMPLE_PROPOSAL)

    def test_discard_hides_latest_draft(self) -> None:
        latest = get_latest_draft_proposal(self.db, self.squad_id, MEMBER_ID)
        assert latest is not None
        self.assertEqual(latest.id, self.proposal_id)

        proposal = discard_structure_proposal(self.db, self.proposal_id, MEMBER_ID)

        self.assertEqual(proposal.status, "DISCARDED")
        self.assertIsNotNone(proposal.discarded_at)
        self.assertIsNone(get_latest_draft_proposal(self.db, self.squad_id, MEMBER_ID))
        with self.assertRaises(StateConflictError):
            confirm_structure_proposal(self.db, self.proposal_id, MEMBER_ID)

    def test_review_requires_membership(self) -> None:
        with self.assertRaises(AccessDeniedError):
            confirm_structure_proposal(self.db, self.proposal_id, OUTSIDER_ID)
        with self.assertRaises(AccessDeniedError):
            get_latest_draft_proposal(self.db, self.squad_id, OUTSIDER_ID)
        with self.assertRaises(ResourceNotFoundError):
            discard_structure_proposal(self.db, 999_999, MEMBER_ID)


if __name__ == "__main__":
    unittest.main()
