"""HTTP contract tests for the proposal and suggestion routes."""

from __future__ import annotations

import json
import unittest
from collections.abc import Generator
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from squad_builder.db.dependencies import get_db
from squad_builder.main import app

from squad_fixtures import (
    MEMBER_ID,
    OUTSIDER_ID,
    SAMPLE_PROPOSAL,
    StubModelClient,
    create_session_factory,
    create_test_engine,
    reset_tables,
    seed_prompt,
    seed_proposal,
    seed_squad,
)

MEMBER_HEADERS = {"X-User-Id": MEMBER_ID}
OUTSIDER_HEADERS = {"X-User-Id": OUTSIDER_ID}
MODEL_CLIENT_TARGET = "squad_builder.services.structure_proposals.get_default_model_client"


class ApiRouteTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls.engine = create_test_engine()
        cls.SessionLocal = create_session_factory(cls.engine)

        def _override_get_db() -> Generator[Session, None, None]:
            db = cls.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = _override_get_db
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls) -> None:
        app.dependency_overrides.pop(get_db, None)
        cls.engine.dispose()

    def setUp(self) -> None:
        with self.SessionLocal() as db:
            reset_tables(db)
            squad = seed_squad(db)
            self.squad_id = squad.id
            self.proposal_id = seed_proposal(db, squad).id
            seed_prompt(db)

    def _breakdown(self) -> list[dict]:
        response = self.client.post(
            "/suggestion-approvals/breakdown",
            json={"proposal_id": self.proposal_id},
            headers=MEMBER_HEADERS,
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()["data"]["suggestions"]

    def test_health_and_missing_identity(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

        response = self.client.get("/suggestion-approvals", params={"squad_id": self.squad_id})
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["detail"], "Not authenticated")

    def test_generate_structure_proposal(self) -> None:
        stub = StubModelClient(json.dumps({"needs_clarification": False, "proposal": SAMPLE_PROPOSAL}))
        with patch(MODEL_CLIENT_TARGET, return_value=stub):
            response = self.client.post(
                "/ai/structure-proposal",
                json={"squad_id": self.squad_id, "breakdown": True},
                headers=MEMBER_HEADERS,
            )

        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()["data"]
        self.assertEqual(data["proposal"]["status"], "DRAFT")
        self.assertEqual(data["proposal"]["source_context"], "PROBLEM")
        self.assertEqual(len(data["suggestions"]), 11)

        latest = self.client.get(
            "/ai/structure-proposal",
            params={"squad_id": self.squad_id},
            headers=MEMBER_HEADERS,
        )
        self.assertEqual(latest.status_code, 200)
        self.assertEqual(latest.json()["data"]["proposal"]["id"], data["proposal"]["id"])

    def test_generate_error_statuses(self) -> None:
        stub = StubModelClient("not json")
        with patch(MODEL_CLIENT_TARGET, return_value=stub):
            missing = self.client.post("/ai/structure-proposal", json={"squad_id": 999_999}, headers=MEMBER_HEADERS)
            denied = self.client.post(
                "/ai/structure-proposal",
                json={"squad_id": self.squad_id},
                headers=OUTSIDER_HEADERS,
            )
            failed = self.client.post(
                "/ai/structure-proposal",
                json={"squad_id": self.squad_id},
                headers=MEMBER_HEADERS,
            )

        self.assertEqual(missing.status_code, 404)
        self.assertEqual(denied.status_code, 403)
        self.assertEqual(failed.status_code, 500)
        self.assertIn("invalid response", failed.json()["detail"])

        with self.SessionLocal() as db:
            bare_squad_id = seed_squad(db, with_problem=False).id
        response = self.client.post("/ai/structure-proposal", json={"squad_id": bare_squad_id}, headers=MEMBER_HEADERS)
        self.assertEqual(response.status_code, 400)

    def test_breakdown_runs_once(self) -> None:
        suggestions = self._breakdown()
        self.assertEqual([row["display_order"] for row in suggestions], list(range(len(suggestions))))
        self.assertTrue(all(row["status"] == "pending" for row in suggestions))

        again = self.client.post(
            "/suggestion-approvals/breakdown",
            json={"proposal_id": self.proposal_id},
            headers=MEMBER_HEADERS,
        )
        self.assertEqual(again.status_code, 409)

        listed = self.client.get(
            "/suggestion-approvals",
            params={"squad_id": self.squad_id},
            headers=MEMBER_HEADERS,
        )
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(len(listed.json()["data"]), len(suggestions))

    def test_approve_and_reject(self) -> None:
        suggestions = self._breakdown()
        personas = [row for row in suggestions if row["suggestion_type"] == "persona"]
        roles = [row for row in suggestions if row["suggestion_type"] == "squad_structure_role"]

        approved = self.client.post(f"/suggestion-approvals/{personas[0]['id']}/approve", headers=MEMBER_HEADERS)
        self.assertEqual(approved.status_code, 200, approved.text)
        self.assertEqual(approved.json()["data"]["suggestion"]["status"], "approved")
        self.assertFalse(approved.json()["data"]["was_edited"])

        repeat = self.client.post(f"/suggestion-approvals/{personas[0]['id']}/approve", headers=MEMBER_HEADERS)
        self.assertEqual(repeat.status_code, 409)

        invalid = self.client.post(
            f"/suggestion-approvals/{personas[1]['id']}/approve",
            json={"edited_payload": {"name": "  "}},
            headers=MEMBER_HEADERS,
        )
        self.assertEqual(invalid.status_code, 400)

        edited = self.client.post(
            f"/suggestion-approvals/{personas[1]['id']}/approve",
            json={"edited_payload": {"name": "Finance Director"}, "reason": "Renamed"},
            headers=MEMBER_HEADERS,
        )
        self.assertEqual(edited.status_code, 200, edited.text)
        self.assertEqual(edited.json()["data"]["suggestion"]["status"], "approved_with_edits")
        self.assertTrue(edited.json()["data"]["was_edited"])

        rejected = self.client.post(
            f"/suggestion-approvals/{roles[0]['id']}/reject",
            json={"reason": "Already staffed"},
            headers=MEMBER_HEADERS,
        )
        self.assertEqual(rejected.status_code, 200)
        self.assertEqual(rejected.json()["data"]["suggestion"]["rejection_reason"], "Already staffed")

        denied = self.client.post(f"/suggestion-approvals/{roles[0]['id']}/reject", headers=OUTSIDER_HEADERS)
        self.assertEqual(denied.status_code, 403)
        missing = self.client.post("/suggestion-approvals/999999/approve", headers=MEMBER_HEADERS)
        self.assertEqual(missing.status_code, 404)

    def test_confirm_and_discard(self) -> None:
        confirmed = self.client.post(
            f"/ai/structure-proposal/{self.proposal_id}/confirm",
            json={"edited_proposal": {"uncertainties": []}},
            headers=MEMBER_HEADERS,
        )
        self.assertEqual(confirmed.status_code, 200, confirmed.text)
        self.assertEqual(confirmed.json()["data"]["status"], "CONFIRMED")

        discarded = self.client.post(f"/ai/structure-proposal/{self.proposal_id}/discard", headers=MEMBER_HEADERS)
        self.assertEqual(discarded.status_code, 409)

        latest = self.client.get(
            "/ai/structure-proposal",
            params={"squad_id": self.squad_id},
            headers=MEMBER_HEADERS,
        )
        self.assertIsNone(latest.json()["data"]["proposal"])


if __name__ == "__main__":
    unittest.main()
