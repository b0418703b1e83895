# This project was developed with assistance from AI tools.
"""Tests for the loan application workflow service."""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from db.enums import AgentDecision, LoanStatus, RegistrationStatus, UserRole

from src.core.errors import AuthorizationError, NotFoundError, StorageError, ValidationError
from src.services import loan_application as loan_service
from tests.factories import (
    make_application,
    make_profile,
    make_property,
    make_registration,
    pdf_blob,
    png_blob,
)
from tests.functional.personas import (
    AGENT_USER_ID,
    BUYER_USER_ID,
    OTHER_AGENT_USER_ID,
    SELLER_USER_ID,
    admin,
    bank_agent,
    buyer,
    other_bank_agent,
    other_buyer,
)

_FIELDS = {
    "loan_amount": "250000",
    "loan_term_years": "20",
    "employment_status": "employed",
    "annual_income": "60000",
}


@pytest.fixture
async def world(db_session):
    """Buyer, a seller's active listing, and one approved bank agent."""
    await make_profile(db_session, BUYER_USER_ID)
    await make_profile(db_session, SELLER_USER_ID, role=UserRole.SELLER)
    await make_profile(db_session, AGENT_USER_ID, role=UserRole.BANK_AGENT)
    listing = await make_property(db_session, SELLER_USER_ID, images=["http://img/1.jpg"])
    agent = await make_registration(db_session, AGENT_USER_ID, status=RegistrationStatus.APPROVED)
    return SimpleNamespace(listing=listing, agent=agent)


# ---------------------------------------------------------------------------
# create
# ---------------------------------------------------------------------------


async def test_create_minimal_application(db_session, world):
    application, failed, warnings = await loan_service.create_application(
        db_session, BUYER_USER_ID, _FIELDS
    )

    assert application.status == LoanStatus.PENDING
    assert application.bank_agent_decision is None
    assert application.loan_amount == Decimal("250000")
    assert application.loan_term_years == 20
    assert application.annual_income == Decimal("60000")
    assert application.interest_rate is None
    assert application.monthly_payment is None
    assert application.property is None
    assert (failed, warnings) == (0, [])


@pytest.mark.parametrize("amount", ["0", "-1000", "abc"])
async def test_create_rejects_bad_loan_amount(db_session, world, amount):
    with pytest.raises(ValidationError, match="loan_amount"):
        await loan_service.create_application(
            db_session, BUYER_USER_ID, {**_FIELDS, "loan_amount": amount}
        )


@pytest.mark.parametrize(
    ("field", "value", "message"),
    [
        ("loan_amount", "1e13", "too large"),
        ("loan_amount", "1.005", "decimal places"),
        ("annual_income", "1000000000000", "too large"),
        ("interest_rate", "1000", "too large"),
        ("interest_rate", "4.2505", "decimal places"),
        ("monthly_payment", "10000000000", "too large"),
    ],
)
async def test_create_rejects_amounts_that_do_not_fit(db_session, world, field, value, message):
    with pytest.raises(ValidationError, match=message) as exc_info:
        await loan_service.create_application(
            db_session, BUYER_USER_ID, {**_FIELDS, field: value}
        )
    assert exc_info.value.errors[0]["field"] == field
    assert await loan_service.list_applicant_applications(db_session, BUYER_USER_ID) == []


async def test_insurance_amount_must_fit(db_session, world):
    with pytest.raises(ValidationError, match="monthly_insurance_amount"):
        await loan_service.create_application(
            db_session,
            BUYER_USER_ID,
            {**_FIELDS, "include_insurance": True, "monthly_insurance_amount": "100000000"},
        )


async def test_update_rejects_oversized_loan_amount(db_session, world):
    application = await make_application(db_session, BUYER_USER_ID)
    with pytest.raises(ValidationError, match="too large"):
        await loan_service.update_application(
            db_session, admin(), application.id, {"loan_amount": "99999999999999"}
        )


@pytest.mark.parametrize("missing", list(_FIELDS))
async def test_create_requires_fields(db_session, world, missing):
    fields = {k: v for k, v in _FIELDS.items() if k != missing}
    with pytest.raises(ValidationError):
        await loan_service.create_application(db_session, BUYER_USER_ID, fields)


async def test_create_rejects_zero_term(db_session, world):
    with pytest.raises(ValidationError, match="loan_term_years"):
        await loan_service.create_application(
            db_session, BUYER_USER_ID, {**_FIELDS, "loan_term_years": "0"}
        )


async def test_create_unknown_applicant(db_session, world):
    with pytest.raises(NotFoundError):
        await loan_service.create_application(db_session, "stranger", _FIELDS)


async def test_create_with_property_and_agent(db_session, world):
    application, _, _ = await loan_service.create_application(
        db_session,
        BUYER_USER_ID,
        {
            **_FIELDS,
            "property_id": str(world.listing.id),
            "selected_bank_agent_id": str(world.agent.id),
            "interest_rate": "5.25",
            "monthly_payment": "1684.55",
        },
    )

    assert application.property.id == world.listing.id
    assert application.selected_bank_agent.user_id == AGENT_USER_ID
    assert application.interest_rate == Decimal("5.25")
    assert application.monthly_payment == Decimal("1684.55")


async def test_create_inactive_property_not_found(db_session, world):
    hidden = await make_property(db_session, SELLER_USER_ID, is_active=False)
    with pytest.raises(NotFoundError):
        await loan_service.create_application(
            db_session, BUYER_USER_ID, {**_FIELDS, "property_id": hidden.id}
        )


async def test_create_unknown_agent_not_found(db_session, world):
    with pytest.raises(NotFoundError):
        await loan_service.create_application(
            db_session, BUYER_USER_ID, {**_FIELDS, "selected_bank_agent_id": 999}
        )


@pytest.mark.parametrize("status", [RegistrationStatus.PENDING, RegistrationStatus.REJECTED])
async def test_create_rejects_unapproved_agent(db_session, world, status):
    await make_profile(db_session, OTHER_AGENT_USER_ID)
    registration = await make_registration(
        db_session, OTHER_AGENT_USER_ID, status=status, rejection_reason="x"
    )
    with pytest.raises(ValidationError, match="not approved"):
        await loan_service.create_application(
            db_session, BUYER_USER_ID, {**_FIELDS, "selected_bank_agent_id": registration.id}
        )


async def test_insurance_without_amount_is_flagged(db_session, world):
    application, _, warnings = await loan_service.create_application(
        db_session, BUYER_USER_ID, {**_FIELDS, "include_insurance": "true"}
    )
    assert application.include_insurance is True
    assert application.monthly_insurance_amount is None
    assert len(warnings) == 1
    assert "monthly_insurance_amount" in warnings[0]


async def test_insurance_with_amount_is_described(db_session, world):
    application, _, warnings = await loan_service.create_application(
        db_session,
        BUYER_USER_ID,
        {**_FIELDS, "include_insurance": True, "monthly_insurance_amount": "45.50"},
    )
    assert warnings == []
    assert application.monthly_insurance_amount == Decimal("45.50")
    assert application.submitted_documents == ["Insurance: 45.50 per month"]


async def test_amount_discarded_without_insurance(db_session, world):
    application, _, _ = await loan_service.create_application(
        db_session,
        BUYER_USER_ID,
        {**_FIELDS, "include_insurance": "false", "monthly_insurance_amount": "45"},
    )
    assert application.monthly_insurance_amount is None


async def test_create_uploads_documents(db_session, world, mock_storage):
    application, failed, _ = await loan_service.create_application(
        db_session,
        BUYER_USER_ID,
        _FIELDS,
        {"identity_card": png_blob("cin.png"), "proof_of_income": pdf_blob("payslip.pdf")},
    )

    assert failed == 0
    assert application.identity_card_document.startswith(
        f"http://storage.test/loan-application-documents/loan-{application.id}/identity-card_"
    )
    assert application.submitted_documents[0] == (
        f"Identity Card: cin.png - {application.identity_card_document}"
    )
    assert application.submitted_documents[1] == (
        f"Proof of Income: payslip.pdf - {application.proof_of_income_document}"
    )


async def test_document_failure_keeps_application(db_session, world, mock_storage):
    mock_storage.upload_file.side_effect = StorageError("down")

    application, failed, _ = await loan_service.create_application(
        db_session, BUYER_USER_ID, _FIELDS, {"identity_card": png_blob()}
    )

    assert failed == 1
    assert application.identity_card_document is None
    assert application.submitted_documents == []
    fetched = await loan_service.get_application(db_session, application.id)
    assert fetched.status == LoanStatus.PENDING


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------


async def test_agent_decision_drives_status(db_session, world):
    application = await make_application(
        db_session, BUYER_USER_ID, selected_bank_agent_id=world.agent.id
    )

    updated, _ = await loan_service.update_application(
        db_session,
        bank_agent(),
        application.id,
        {"bank_agent_decision": "approved", "bank_agent_notes": "Solid income", "interest_rate": "4.9"},
    )

    assert updated.status == LoanStatus.APPROVED
    assert updated.bank_agent_decision == AgentDecision.APPROVED
    assert updated.bank_agent_notes == "Solid income"
    assert updated.interest_rate == Decimal("4.9")


async def test_only_assigned_agent_may_decide(db_session, world):
    await make_profile(db_session, OTHER_AGENT_USER_ID, role=UserRole.BANK_AGENT)
    application = await make_application(
        db_session, BUYER_USER_ID, selected_bank_agent_id=world.agent.id
    )

    for actor in (other_bank_agent(), admin(), buyer()):
        with pytest.raises(AuthorizationError):
            await loan_service.update_application(
                db_session, actor, application.id, {"bank_agent_decision": "approved"}
            )

    fetched = await loan_service.get_application(db_session, application.id)
    assert fetched.bank_agent_decision is None


async def test_admin_may_move_to_under_review(db_session, world):
    application = await make_application(db_session, BUYER_USER_ID)
    updated, _ = await loan_service.update_application(
        db_session, admin(), application.id, {"status": "under_review"}
    )
    assert updated.status == LoanStatus.UNDER_REVIEW
    assert updated.bank_agent_decision is None


async def test_applicant_may_not_change_financial_terms(db_session, world):
    application = await make_application(db_session, BUYER_USER_ID)
    with pytest.raises(AuthorizationError):
        await loan_service.update_application(
            db_session, buyer(), application.id, {"loan_amount": "1"}
        )


async def test_applicant_may_amend_documents_and_insurance(db_session, world):
    application = await make_application(db_session, BUYER_USER_ID)
    updated, warnings = await loan_service.update_application(
        db_session,
        buyer(),
        application.id,
        {"submitted_documents": ["Bank statement - http://x/1.pdf"], "include_insurance": True},
    )
    assert updated.submitted_documents == ["Bank statement - http://x/1.pdf"]
    assert updated.include_insurance is True
    assert len(warnings) == 1


async def test_status_approved_without_decision_is_rejected(db_session, world):
    application = await make_application(db_session, BUYER_USER_ID)
    with pytest.raises(ValidationError, match="requires bank_agent_decision"):
        await loan_service.update_application(
            db_session, admin(), application.id, {"status": "approved"}
        )


async def test_decided_application_is_terminal(db_session, world):
    application = await make_application(
        db_session,
        BUYER_USER_ID,
        selected_bank_agent_id=world.agent.id,
        status=LoanStatus.REJECTED,
        bank_agent_decision=AgentDecision.REJECTED,
    )
    with pytest.raises(loan_service.InvalidTransitionError):
        await loan_service.update_application(
            db_session, bank_agent(), application.id, {"bank_agent_decision": "approved"}
        )
    with pytest.raises(loan_service.InvalidTransitionError):
        await loan_service.update_application(
            db_session, admin(), application.id, {"status": "pending"}
        )


async def test_reassign_requires_approved_agent(db_session, world):
    await make_profile(db_session, OTHER_AGENT_USER_ID)
    pending = await make_registration(db_session, OTHER_AGENT_USER_ID)
    application = await make_application(db_session, BUYER_USER_ID)

    with pytest.raises(ValidationError, match="not approved"):
        await loan_service.update_application(
            db_session, buyer(), application.id, {"selected_bank_agent_id": pending.id}
        )

    updated, _ = await loan_service.update_application(
        db_session, buyer(), application.id, {"selected_bank_agent_id": world.agent.id}
    )
    assert updated.selected_bank_agent.id == world.agent.id


@pytest.mark.parametrize(
    ("status", "decision"),
    [
        (LoanStatus.UNDER_REVIEW, None),
        (LoanStatus.REJECTED, AgentDecision.REJECTED),
        (LoanStatus.APPROVED, AgentDecision.APPROVED),
    ],
)
async def test_reassign_only_while_pending(db_session, world, status, decision):
    await make_profile(db_session, OTHER_AGENT_USER_ID, role=UserRole.BANK_AGENT)
    second = await make_registration(
        db_session, OTHER_AGENT_USER_ID, status=RegistrationStatus.APPROVED
    )
    application = await make_application(
        db_session,
        BUYER_USER_ID,
        selected_bank_agent_id=world.agent.id,
        status=status,
        bank_agent_decision=decision,
    )

    for actor in (buyer(), admin()):
        with pytest.raises(loan_service.InvalidTransitionError, match="pending"):
            await loan_service.update_application(
                db_session, actor, application.id, {"selected_bank_agent_id": second.id}
            )

    fetched = await loan_service.get_application(db_session, application.id)
    assert fetched.selected_bank_agent_id == world.agent.id
    assert fetched.status == status
    assert await loan_service.list_agent_applications(db_session, OTHER_AGENT_USER_ID) == []


async def test_update_unknown_field_rejected(db_session, world):
    application = await make_application(db_session, BUYER_USER_ID)
    with pytest.raises(ValidationError, match="applicant_id"):
        await loan_service.update_application(
            db_session, admin(), application.id, {"applicant_id": OTHER_AGENT_USER_ID}
        )


async def test_update_unknown_application(db_session, world):
    with pytest.raises(NotFoundError):
        await loan_service.update_application(db_session, admin(), 999, {"status": "under_review"})


# ---------------------------------------------------------------------------
# read / delete
# ---------------------------------------------------------------------------


async def test_get_enforces_read_capability(db_session, world):
    application = await make_application(db_session, BUYER_USER_ID)
    assert (await loan_service.get_application(db_session, application.id, actor=buyer())).id
    with pytest.raises(AuthorizationError):
        await loan_service.get_application(db_session, application.id, actor=other_buyer())


async def test_delete_then_get_not_found(db_session, world):
    application = await make_application(db_session, BUYER_USER_ID)

    await loan_service.delete_application(db_session, buyer(), application.id)

    with pytest.raises(NotFoundError):
        await loan_service.get_application(db_session, application.id)


async def test_delete_unknown_application(db_session, world):
    with pytest.raises(NotFoundError):
        await loan_service.delete_application(db_session, admin(), 12345)


async def test_agent_may_not_delete(db_session, world):
    application = await make_application(
        db_session, BUYER_USER_ID, selected_bank_agent_id=world.agent.id
    )
    with pytest.raises(AuthorizationError):
        await loan_service.delete_application(db_session, bank_agent(), application.id)


async def test_applicant_listing_newest_first_with_property(db_session, world):
    first = await make_application(db_session, BUYER_USER_ID, property_id=world.listing.id)
    second = await make_application(db_session, BUYER_USER_ID)

    applications = await loan_service.list_applicant_applications(db_session, BUYER_USER_ID)

    assert [a.id for a in applications] == [second.id, first.id]
    assert applications[1].property.images == ["http://img/1.jpg"]


async def test_agent_work_queue(db_session, world):
    mine = await make_application(
        db_session, BUYER_USER_ID, selected_bank_agent_id=world.agent.id
    )
    await make_application(db_session, BUYER_USER_ID)

    queue = await loan_service.list_agent_applications(db_session, AGENT_USER_ID)
    assert [a.id for a in queue] == [mine.id]

    approved = await loan_service.list_agent_applications(
        db_session, AGENT_USER_ID, LoanStatus.APPROVED
    )
    assert approved == []


# ---------------------------------------------------------------------------
# two-track state table
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("status", "decision", "patch", "expected"),
    [
        (LoanStatus.PENDING, None, {"status": "under_review"}, (LoanStatus.UNDER_REVIEW, None)),
        (LoanStatus.UNDER_REVIEW, None, {"status": "pending"}, (LoanStatus.PENDING, None)),
        (
            LoanStatus.PENDING,
            None,
            {"bank_agent_decision": "rejected"},
            (LoanStatus.REJECTED, AgentDecision.REJECTED),
        ),
        (
            LoanStatus.UNDER_REVIEW,
            None,
            {"bank_agent_decision": "approved", "status": "approved"},
            (LoanStatus.APPROVED, AgentDecision.APPROVED),
        ),
        (LoanStatus.UNDER_REVIEW, None, {}, (LoanStatus.UNDER_REVIEW, None)),
    ],
)
def test_next_state_allowed(status, decision, patch, expected):
    assert loan_service.next_state(status, decision, patch) == expected


def test_next_state_status_must_match_decision():
    with pytest.raises(loan_service.InvalidTransitionError, match="does not match"):
        loan_service.next_state(
            LoanStatus.PENDING, None, {"bank_agent_decision": "approved", "status": "rejected"}
        )


def test_next_state_terminal_has_no_exits():
    with pytest.raises(loan_service.InvalidTransitionError, match="terminal"):
        loan_service.next_state(
            LoanStatus.APPROVED, AgentDecision.APPROVED, {"status": "under_review"}
        )


def test_next_state_clearing_decision_on_decided_application():
    with pytest.raises(loan_service.InvalidTransitionError):
        loan_service.next_state(
            LoanStatus.REJECTED, AgentDecision.REJECTED, {"bank_agent_decision": None}
        )


def test_next_state_rejects_unknown_values():
    with pytest.raises(ValidationError, match="status must be one of"):
        loan_service.next_state(LoanStatus.PENDING, None, {"status": "archived"})


def test_every_status_has_exactly_one_decision():
    for status in LoanStatus:
        allowed = [d for d in (None, *AgentDecision) if loan_service.is_consistent(status, d)]
        assert len(allowed) == 1
