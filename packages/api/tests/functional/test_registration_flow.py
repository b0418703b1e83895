# This project was developed with assistance from AI tools.
"""Functional tests: a buyer applies to become a bank agent and an admin reviews."""

import base64

import pytest

from tests.factories import PDF_BYTES, bank_info, pdf_data_url, personal_info

from .personas import BUYER_USER_ID, admin, buyer, seller

pytestmark = pytest.mark.functional


def _payload(**documents):
    return {"personal_info": personal_info(), "bank_info": bank_info(), "documents": documents}


async def test_submit_review_and_directory(client_factory, cast):
    applicant = await client_factory(buyer())
    resp = await applicant.post(
        "/api/bank-agents/registrations",
        json=_payload(
            national_id_document=pdf_data_url(),
            bank_employment_letter=base64.b64encode(PDF_BYTES).decode(),
        ),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "pending"
    assert body["documents_failed"] == 0
    registration_id = body["registration_id"]

    duplicate = await applicant.post("/api/bank-agents/registrations", json=_payload())
    assert duplicate.status_code == 409
    assert duplicate.json()["title"] == "Conflict"

    mine = await applicant.get("/api/bank-agents/registrations/mine")
    history = mine.json()
    assert [r["id"] for r in history] == [registration_id]
    assert history[0]["national_id_document"].startswith("http://storage.test/bank-documents/")
    await applicant.aclose()

    reviewer = await client_factory(admin())
    queue = await reviewer.get("/api/admin/registrations", params={"status": "pending"})
    assert queue.status_code == 200
    assert queue.json()["status_counts"] == {"pending": 1, "approved": 1, "rejected": 0}

    resp = await reviewer.patch(
        f"/api/admin/registrations/{registration_id}",
        json={"decision": "approved", "admin_notes": "Employment confirmed"},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"

    agents = await reviewer.get("/api/bank-agents/approved")
    assert BUYER_USER_ID in {a["user_id"] for a in agents.json()["data"]}

    users = await reviewer.get("/api/admin/users", params={"role": "bank_agent"})
    assert BUYER_USER_ID in {u["id"] for u in users.json()["data"]}
    await reviewer.aclose()


async def test_rejection_needs_reason_then_allows_resubmission(client_factory, cast):
    applicant = await client_factory(seller())
    resp = await applicant.post("/api/bank-agents/registrations", json=_payload())
    registration_id = resp.json()["registration_id"]

    reviewer = await client_factory(admin())
    resp = await reviewer.patch(
        f"/api/admin/registrations/{registration_id}", json={"decision": "rejected"}
    )
    assert resp.status_code == 422

    resp = await reviewer.patch(
        f"/api/admin/registrations/{registration_id}",
        json={"decision": "rejected", "rejection_reason": "Letter not signed"},
    )
    assert resp.json()["rejection_reason"] == "Letter not signed"

    resp = await reviewer.patch(
        f"/api/admin/registrations/{registration_id}", json={"decision": "approved"}
    )
    assert resp.status_code == 409
    await reviewer.aclose()

    resp = await applicant.post("/api/bank-agents/registrations", json=_payload())
    assert resp.status_code == 201
    await applicant.aclose()


async def test_invalid_document_payload_is_422(client_factory, cast):
    client = await client_factory(buyer())
    resp = await client.post(
        "/api/bank-agents/registrations",
        json=_payload(national_id_document="data:application/pdf;base64,%%%"),
    )
    assert resp.status_code == 422
    assert resp.json()["errors"][0]["field"] == "national_id_document"
    await client.aclose()


async def test_admin_routes_reject_other_roles(client_factory, cast):
    client = await client_factory(buyer())
    assert (await client.get("/api/admin/registrations")).status_code == 403
    assert (await client.get("/api/admin/users")).status_code == 403
    resp = await client.patch(
        f"/api/admin/users/{BUYER_USER_ID}/role", json={"role": "admin"}
    )
    assert resp.status_code == 403
    await client.aclose()


async def test_admin_changes_role(client_factory, cast):
    client = await client_factory(admin())
    resp = await client.patch(f"/api/admin/users/{BUYER_USER_ID}/role", json={"role": "seller"})
    assert resp.status_code == 200
    assert resp.json()["role"] == "seller"
    await client.aclose()
