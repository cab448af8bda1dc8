"""End-to-end flows across the messaging components, over in-memory stores."""

from uuid import uuid4

import pytest

from internship_messaging.errors import AccessDeniedError, NotFoundError
from internship_messaging.models.api.business import (
    AdoptionConversationRequest,
    AdoptionRequestRecord,
    ApplicationRecord,
)
from internship_messaging.models.enums import (
    AdoptionRequestStatus,
    ApplicationStatus,
    BusinessObjectKind,
    ConversationContext,
    ConversationStatus,
    DenialReason,
    Role,
)
from tests.fakes import Harness


@pytest.fixture
def harness() -> Harness:
    return Harness()


async def test_adoption_request_flow(harness: Harness) -> None:
    company = harness.db.users.add(Role.COMPANY)
    student = harness.db.users.add(Role.STUDENT)
    request = harness.db.adoption_requests.add(
        AdoptionRequestRecord(
            id=uuid4(), company_user_id=company, student_id=student, company_name="Acme"
        )
    )

    conversation = await harness.lifecycle.open_adoption_conversation(
        AdoptionConversationRequest(
            adoption_request_id=request.id,
            company_user_id=company,
            student_id=student,
            company_name="Acme",
            message="Interested?",
        )
    )
    assert conversation.status == ConversationStatus.PENDING_APPROVAL
    assert conversation.context == ConversationContext.ADOPTION_REQUEST
    assert set(await harness.participants.list_participants(conversation.id)) == {company, student}

    with pytest.raises(AccessDeniedError) as exc_info:
        await harness.gateway.post_message(company, Role.COMPANY, conversation.id, "Hello again?")
    assert exc_info.value.reason == DenialReason.ADOPTION_PENDING

    await harness.gateway.post_message(student, Role.STUDENT, conversation.id, "Yes")

    assert harness.db.adoption_requests.rows[request.id].status == AdoptionRequestStatus.ACCEPTED
    stored = harness.db.conversations.rows[conversation.id]
    assert stored.status == ConversationStatus.ACTIVE
    assert stored.is_read_only is False

    await harness.gateway.post_message(company, Role.COMPANY, conversation.id, "Great, welcome aboard")
    detail = await harness.queries.get_conversation_for_user(company, conversation.id)
    assert [m.content for m in detail.messages] == ["Interested?", "Yes", "Great, welcome aboard"]


async def test_broadcast_to_five_hundred_students(harness: Harness) -> None:
    admin_id = harness.db.users.add(Role.ADMIN)
    students = [harness.db.users.add(Role.STUDENT) for _ in range(500)]
    harness.db.users.add(Role.COMPANY)

    result = await harness.broadcasts.create_broadcast(admin_id, "Maintenance tonight", Role.STUDENT)

    assert result.sent_to == 500
    assert len(harness.db.conversations.rows) == 1
    assert await harness.db.messages.count(result.conversation_id) == 1
    assert len(await harness.participants.list_participants(result.conversation_id)) == 501
    assert len(harness.db.participants.add_calls) == 51

    with pytest.raises(AccessDeniedError) as exc_info:
        await harness.gateway.post_message(students[0], Role.STUDENT, result.conversation_id, "Thanks!")
    assert exc_info.value.reason == DenialReason.READ_ONLY_ADMIN_ONLY

    await harness.gateway.post_message(admin_id, Role.ADMIN, result.conversation_id, "Back online at 2am")
    assert await harness.db.messages.count(result.conversation_id) == 2


async def test_new_application_has_no_conversation(harness: Harness) -> None:
    student = harness.db.users.add(Role.STUDENT)
    application = harness.db.applications.add(
        ApplicationRecord(id=uuid4(), student_id=student, company_user_id=uuid4())
    )

    assert await harness.lifecycle.on_business_status_changed(
        BusinessObjectKind.APPLICATION, application.id, "NEW"
    ) is None
    assert await harness.db.conversations.get_by_context(ConversationContext.OFFER, application.id) is None

    with pytest.raises(NotFoundError):
        await harness.gateway.post_message(student, Role.STUDENT, uuid4(), "Hello?")


async def test_rejected_application_locks_its_conversation(harness: Harness) -> None:
    student = harness.db.users.add(Role.STUDENT)
    company = harness.db.users.add(Role.COMPANY)
    application = harness.db.applications.add(
        ApplicationRecord(
            id=uuid4(),
            student_id=student,
            company_user_id=company,
            offer_title="Marketing intern",
        )
    )

    assert await harness.db.applications.set_status(
        application.id, ApplicationStatus.INTERVIEW, expected=ApplicationStatus.NEW
    )
    conversation = await harness.lifecycle.on_business_status_changed(
        BusinessObjectKind.APPLICATION, application.id, "INTERVIEW"
    )
    await harness.gateway.post_message(company, Role.COMPANY, conversation.id, "See you Monday")

    assert await harness.db.applications.set_status(
        application.id, ApplicationStatus.REJECTED, expected=ApplicationStatus.INTERVIEW
    )
    await harness.lifecycle.on_business_status_changed(
        BusinessObjectKind.APPLICATION, application.id, "REJECTED"
    )

    for user_id, role in ((student, Role.STUDENT), (company, Role.COMPANY)):
        with pytest.raises(AccessDeniedError) as exc_info:
            await harness.gateway.post_message(user_id, role, conversation.id, "One more question")
        assert exc_info.value.reason == DenialReason.APPLICATION_REJECTED
    assert harness.db.conversations.rows[conversation.id].status == ConversationStatus.ACTIVE
