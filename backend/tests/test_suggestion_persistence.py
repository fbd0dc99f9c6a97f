"""Integration tests for type-dispatched suggestion persistence."""

from __future__ import annotations

import re
import unittest

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from squad_builder.models.decision import PROBLEM_STATEMENT_TITLE, Decision
from squad_builder.models.persona import Persona, SquadPersona
from squad_builder.models.phase import Phase
from squad_builder.models.role import Role, SquadRole, WorkspaceRole
from squad_builder.models.squad import SQUAD_STATUS_ACTIVE, SQUAD_STATUS_DRAFT, Squad
from squad_builder.services.decomposition import SUGGESTION_TYPES
from squad_builder.services.suggestion_persistence import (
    _HANDLERS,
    InvalidSuggestionPayloadError,
    UnknownSuggestionTypeError,
    derive_role_code,
    persist_suggestion,
)

from squad_fixtures import MEMBER_ID, create_session_factory, create_test_engine, reset_tables, seed_squad


class SuggestionPersistenceTests(unittest.TestCase):
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
        self.squad = seed_squad(self.db)
        self.squad_id = self.squad.id
        self.workspace_id = self.squad.workspace_id

    def tearDown(self) -> None:
        self.db.close()

    def _persist(self, suggestion_type: str, payload, *, squad_id: int | None = None) -> None:  # noqa: ANN001
        persist_suggestion(
            self.db,
            suggestion_type,
            payload,
            squad_id=squad_id or self.squad_id,
            workspace_id=self.workspace_id,
            user_id=MEMBER_ID,
        )
        self.db.commit()

    def _count(self, model) -> int:  # noqa: ANN001
        return self.db.scalar(select(func.count()).select_from(model)) or 0

    def test_every_suggestion_type_has_a_handler(self) -> None:
        self.assertEqual(set(_HANDLERS), set(SUGGESTION_TYPES))

    def test_unknown_type_is_rejected(self) -> None:
        with self.assertRaises(UnknownSuggestionTypeError) as ctx:
            persist_suggestion(
                self.db,
                "mystery",
                {},
                squad_id=self.squad_id,
                workspace_id=self.workspace_id,
                user_id=MEMBER_ID,
            )
        self.assertEqual(ctx.exception.reason, "unknown_type")

    def test_decision_backed_types_append_typed_decisions(self) -> None:
        self._persist("governance", {"decision_rules": ["Weekly review"], "ignored": "x"})
        self._persist("critical_unknown", {"question": "Is pricing the cause?"})
        self._persist("critical_unknown", {"question": "Is pricing the cause?"})

        governance = self.db.scalar(select(Decision).where(Decision.title == "Governance Rules"))
        assert governance is not None
        self.assertEqual(governance.created_by_role, "Human + AI")
        self.assertEqual(governance.created_by_user_id, MEMBER_ID)
        self.assertEqual(governance.decision_json, {"decision_rules": ["Weekly review"], "non_negotiables": None})

        unknowns = self.db.scalars(
            select(Decision).where(Decision.title == "Critical Unknown").order_by(Decision.id)
        ).all()
        self.assertEqual(len(unknowns), 2)
        self.assertEqual(unknowns[0].decision_json["question"], "Is pricing the cause?")

    def test_decision_context_requires_an_object(self) -> None:
        with self.assertRaises(InvalidSuggestionPayloadError) as ctx:
            self._persist("decision_context", ["not", "an", "object"])
        self.assertEqual(ctx.exception.reason, "invalid_payload")

    def test_persona_is_reused_case_insensitively_and_linked_once(self) -> None:
        self._persist("persona", {"name": "Ops Manager", "goals": ["Fewer tickets", "Faster onboarding"]})
        self._persist("persona", {"name": "  ops manager "})

        personas = self.db.scalars(select(Persona)).all()
        self.assertEqual(len(personas), 1)
        self.assertEqual(personas[0].name, "Ops Manager")
        self.assertEqual(personas[0].type, "customer")
        self.assertEqual(personas[0].goals, "Fewer tickets\nFaster onboarding")
        self.assertEqual(self._count(SquadPersona), 1)

    def test_non_ascii_persona_name_is_reused(self) -> None:
        self._persist("persona", {"name": "ÉLODIE"})
        self._persist("persona", {"name": "ÉLODIE"})

        self.assertEqual(self._count(Persona), 1)
        self.assertEqual(self._count(SquadPersona), 1)

    def test_stored_name_with_trailing_tab_is_matched(self) -> None:
        self.db.add(Persona(workspace_id=self.workspace_id, name="Ops Manager\t"))
        self.db.commit()

        self._persist("persona", {"name": "ops manager\t"})

        self.assertEqual(self._count(Persona), 1)
        self.assertEqual(self._count(SquadPersona), 1)

    def test_existing_workspace_persona_is_linked_to_another_squad(self) -> None:
        self._persist("persona", {"name": "Finance Lead", "type": "stakeholder"})
        other = Squad(workspace_id=self.workspace_id, name="Billing Squad")
        self.db.add(other)
        self.db.commit()

        self._persist("persona", {"name": "finance lead"}, squad_id=other.id)

        self.assertEqual(self._count(Persona), 1)
        links = self.db.scalars(select(SquadPersona).order_by(SquadPersona.squad_id)).all()
        self.assertEqual([link.squad_id for link in links], [self.squad_id, other.id])

    def test_persona_without_name_is_invalid(self) -> None:
        with self.assertRaises(InvalidSuggestionPayloadError):
            self._persist("persona", {"name": "   "})
        self.db.rollback()
        self.assertEqual(self._count(Persona), 0)

    def test_role_matching_global_catalog_links_global_role(self) -> None:
        self.db.add(Role(code="product_manager", label="Product Manager"))
        self.db.commit()

        self._persist("squad_structure_role", {"role": "product manager"})
        self._persist("squad_structure_role", {"label": "Product Manager"})

        links = self.db.scalars(select(SquadRole)).all()
        self.assertEqual(len(links), 1)
        self.assertIsNotNone(links[0].role_id)
        self.assertIsNone(links[0].workspace_role_id)
        self.assertEqual(self._count(WorkspaceRole), 0)

    def test_new_role_creates_workspace_role_with_derived_code(self) -> None:
        self._persist("squad_structure_role", {"role": "Tech Lead!", "accountability": "Architecture"})
        self._persist("squad_structure_role", {"role": "tech lead!"})

        role = self.db.scalar(select(WorkspaceRole))
        assert role is not None
        self.assertEqual(role.code, "tech_lead")
        self.assertEqual(role.label, "Tech Lead!")
        self.assertEqual(role.responsibilities, "Architecture")
        links = self.db.scalars(select(SquadRole)).all()
        self.assertEqual(len(links), 1)
        self.assertEqual(links[0].workspace_role_id, role.id)

    def test_non_ascii_role_labels_match_existing_roles(self) -> None:
        self.db.add(Role(code="production_manager", label="GESTOR DE PRODUÇÃO"))
        self.db.add(WorkspaceRole(workspace_id=self.workspace_id, code="area_lead", label="LÍDER DE ÁREA"))
        self.db.commit()

        self._persist("squad_structure_role", {"role": "GESTOR DE PRODUÇÃO"})
        self._persist("squad_structure_role", {"role": "LÍDER DE ÁREA"})

        self.assertEqual(self._count(WorkspaceRole), 1)
        links = self.db.scalars(select(SquadRole).order_by(SquadRole.id)).all()
        self.assertEqual(len(links), 2)
        self.assertIsNotNone(links[0].role_id)
        self.assertIsNotNone(links[1].workspace_role_id)

    def test_labels_with_the_same_code_share_a_workspace_role(self) -> None:
        self._persist("squad_structure_role", {"role": "Tech Lead"})
        self._persist("squad_structure_role", {"role": "Tech-Lead"})

        self.assertEqual(self._count(WorkspaceRole), 1)
        self.assertEqual(self._count(SquadRole), 1)

    def test_derive_role_code(self) -> None:
        self.assertEqual(derive_role_code("Tech Lead!"), "tech_lead")
        self.assertEqual(derive_role_code("  UX -- Researcher__II "), "ux_researcher_ii")
        self.assertEqual(derive_role_code("Ops/DevOps"), "opsdevops")
        for empty in ("", "!!!", None):
            with self.subTest(label=empty):
                self.assertRegex(derive_role_code(empty), re.compile(r"^unknown_role_\d+_[0-9a-z]{6}$"))

    def test_phases_append_after_existing_and_skip_known_names(self) -> None:
        self.db.add(Phase(squad_id=self.squad_id, name="Discovery", order_index=1))
        self.db.commit()

        self._persist(
            "phase",
            [
                {"name": "discovery"},
                {"name": "Build", "objective": "Ship the MVP"},
                {"name": "BUILD"},
                {"name": ""},
                "Launch",
            ],
        )

        phases = self.db.scalars(select(Phase).order_by(Phase.order_index)).all()
        self.assertEqual(
            [(phase.name, phase.order_index) for phase in phases],
            [("Discovery", 1), ("Build", 2), ("Launch", 3)],
        )
        self.assertEqual(phases[1].description, "Ship the MVP")

    def test_single_phase_object_is_accepted(self) -> None:
        self._persist("phase", {"name": "Discovery"})
        phase = self.db.scalar(select(Phase))
        assert phase is not None
        self.assertEqual((phase.name, phase.order_index), ("Discovery", 1))

    def test_problem_maturity_patches_every_problem_statement(self) -> None:
        self.db.add(Decision(squad_id=self.squad_id, title=PROBLEM_STATEMENT_TITLE, decision_json={"title": "v2"}))
        self.db.commit()

        self._persist("problem_maturity", {"current_stage": "validated", "confidence_level": "high"})

        statements = self.db.scalars(
            select(Decision).where(Decision.title == PROBLEM_STATEMENT_TITLE).order_by(Decision.id)
        ).all()
        self.assertEqual(len(statements), 2)
        for statement in statements:
            self.assertEqual(statement.decision_json["current_stage"], "validated")
            self.assertEqual(statement.decision_json["confidence_level"], "high")
        self.assertEqual(statements[0].decision_json["narrative"], "Customers leave after trial")

    def test_problem_maturity_without_problem_statement_is_a_no_op(self) -> None:
        other = seed_squad(self.db, with_problem=False)
        before = self._count(Decision)
        with self.assertLogs("squad_builder.services.suggestion_persistence", level="WARNING"):
            persist_suggestion(
                self.db,
                "problem_maturity",
                {"current_stage": "idea"},
                squad_id=other.id,
                workspace_id=other.workspace_id,
                user_id=MEMBER_ID,
            )
        self.db.commit()
        self.assertEqual(self._count(Decision), before)

    def test_readiness_assessment_sets_squad_status(self) -> None:
        self._persist("readiness_assessment", {"is_ready_to_build_product": True})
        self.assertEqual(self.db.scalar(select(Squad.status).where(Squad.id == self.squad_id)), SQUAD_STATUS_ACTIVE)

        self._persist("readiness_assessment", {"is_ready_to_build_product": False})
        self.assertEqual(self.db.scalar(select(Squad.status).where(Squad.id == self.squad_id)), SQUAD_STATUS_DRAFT)

    def test_json_string_payload_is_decoded(self) -> None:
        self._persist("persona", '{"name": "Analyst"}')
        self.assertEqual(self.db.scalar(select(Persona.name)), "Analyst")


if __name__ == "__main__":
    unittest.main()
