import asyncio
from typing import Any
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from internship_messaging.errors import (
    BroadcastFailedError,
    ConnectivityError,
    ContentValidationError,
    NoRecipientsError,
)
from internship_messaging.models.enums import BroadcastTarget, ConversationStatus, Role
from internship_messaging.repositories.participant_repository import ParticipantRepository
from internship_messaging.services.broadcast_service import BroadcastFanout
from internship_messaging.services.participant_directory import ParticipantDirectory
from tests.fakes import Harness, InMemoryDatabase


def seed_users(harness: Harness, students: int = 0, companies: int = 0, admins: int = 0):
    users = harness.db.users
    return (
        [users.add(Role.STUDENT) for _ in range(students)],
        [users.add(Role.COMPANY) for _ in range(companies)],
        [users.add(Role.ADMIN) for _ in range(admins)],
    )


class TestCreateBroadcast:
    """Successful fan-out."""

    @pytest.fixture
    def harness(self) -> Harness:
        return Harness()

    async def test_student_broadcast(self, harness: Harness) -> None:
        students, companies, (admin_id,) = seed_users(harness, students=25, companies=3, admins=1)

        result = await harness.broadcasts.create_broadcast(admin_id, "Career fair on Friday", "STUDENT")

        assert result.sent_to == 25
        conversation = harness.db.conversations.rows[result.conversation_id]
        assert conversation.is_broadcast is True
        assert conversation.is_read_only is True
        assert conversation.status == ConversationStatus.ACTIVE
        assert conversation.broadcast_target == BroadcastTarget.STUDENTS
        assert conversation.created_by_id == admin_id
        assert conversation.topic == "Broadcast Message"

        members = await harness.participants.list_participants(result.conversation_id)
        assert set(members) == {admin_id, *students}
        assert not set(companies) & set(members)

        messages = await harness.db.messages.list_by_conversation(result.conversation_id)
        assert [(m.sender_id, m.content) for m in messages] == [(admin_id, "Career fair on Friday")]

    async def test_participants_are_added_in_batches_of_ten(self, harness: Harness) -> None:
        _, _, (admin_id,) = seed_users(harness, students=25, admins=1)
        await harness.broadcasts.create_broadcast(admin_id, "Hello", Role.STUDENT)
        assert [len(batch) for batch in harness.db.participants.add_calls] == [10, 10, 6]
        assert harness.db.participants.add_calls[0][0] == admin_id

    async def test_company_broadcast(self, harness: Harness) -> None:
        _, companies, (admin_id,) = seed_users(harness, students=4, companies=2, admins=1)
        result = await harness.broadcasts.create_broadcast(admin_id, "Update your profile", Role.COMPANY)
        assert result.sent_to == 2
        assert harness.db.conversations.rows[result.conversation_id].broadcast_target == BroadcastTarget.COMPANIES

    @pytest.mark.parametrize("target_role", [None, "ADMIN", "SOMETHING"])
    async def test_everyone_else_targets_all_active_users_but_the_sender(
        self, harness: Harness, target_role
    ) -> None:
        _, _, (admin_id, other_admin) = seed_users(harness, students=3, companies=2, admins=2)
        harness.db.users.add(Role.STUDENT, is_active=False)

        result = await harness.broadcasts.create_broadcast(admin_id, "Maintenance tonight", target_role)

        assert result.sent_to == 6
        assert harness.db.conversations.rows[result.conversation_id].broadcast_target == BroadcastTarget.ALL
        assert other_admin in await harness.participants.list_participants(result.conversation_id)

    async def test_subject_becomes_topic(self, harness: Harness) -> None:
        _, _, (admin_id,) = seed_users(harness, students=1, admins=1)
        result = await harness.broadcasts.create_broadcast(
            admin_id, "Hello", Role.STUDENT, subject="Welcome week"
        )
        assert harness.db.conversations.rows[result.conversation_id].topic == "Welcome week"

    async def test_empty_cohort(self, harness: Harness) -> None:
        _, _, (admin_id,) = seed_users(harness, companies=2, admins=1)
        with pytest.raises(NoRecipientsError):
            await harness.broadcasts.create_broadcast(admin_id, "Hello", Role.STUDENT)
        assert harness.db.conversations.rows == {}

    async def test_blank_content(self, harness: Harness) -> None:
        _, _, (admin_id,) = seed_users(harness, students=1, admins=1)
        with pytest.raises(ContentValidationError):
            await harness.broadcasts.create_broadcast(admin_id, " \n ", Role.STUDENT)
        assert harness.db.conversations.rows == {}


class TestBroadcastFailures:
    """Any failed batch rolls the whole broadcast back."""

    @pytest.fixture
    def harness(self) -> Harness:
        return Harness(batch_timeout=0.05)

    @pytest.fixture
    def admin_id(self, harness: Harness):
        _, _, (admin_id,) = seed_users(harness, students=29, admins=1)
        return admin_id

    def assert_rolled_back(self, harness: Harness) -> None:
        assert harness.db.conversations.rows == {}
        assert harness.db.messages.rows == []
        assert harness.db.participants.members == {}

    async def test_one_failed_batch(self, harness: Harness, admin_id) -> None:
        harness.db.participants.failures[2] = RuntimeError("constraint blew up")

        with pytest.raises(BroadcastFailedError) as exc_info:
            await harness.broadcasts.create_broadcast(admin_id, "Hello", Role.STUDENT)

        assert exc_info.value.failed_batches == 1
        assert exc_info.value.total_batches == 3
        assert exc_info.value.compensated is True
        assert exc_info.value.retryable is True
        # Later batches still ran so every error is collected
        assert len(harness.db.participants.add_calls) == 3
        self.assert_rolled_back(harness)

    async def test_every_batch_lost_connection(self, harness: Harness, admin_id) -> None:
        for call in (1, 2, 3):
            harness.db.participants.failures[call] = ConnectivityError("connection reset")

        with pytest.raises(ConnectivityError):
            await harness.broadcasts.create_broadcast(admin_id, "Hello", Role.STUDENT)
        self.assert_rolled_back(harness)

    async def test_mixed_failures_are_a_broadcast_failure(self, harness: Harness, admin_id) -> None:
        harness.db.participants.failures[1] = ConnectivityError("connection reset")
        harness.db.participants.failures[3] = RuntimeError("boom")

        with pytest.raises(BroadcastFailedError) as exc_info:
            await harness.broadcasts.create_broadcast(admin_id, "Hello", Role.STUDENT)
        assert exc_info.value.failed_batches == 2
        self.assert_rolled_back(harness)

    async def test_batch_timeout_counts_as_failure(self, harness: Harness, admin_id) -> None:
        harness.db.participants.delays[2] = 1.0

        with pytest.raises(BroadcastFailedError) as exc_info:
            await harness.broadcasts.create_broadcast(admin_id, "Hello", Role.STUDENT)
        assert exc_info.value.failed_batches == 1
        # Once after the timed-out batch, once before the compensating delete
        assert harness.db.participants.reset_calls == 2
        self.assert_rolled_back(harness)

    async def test_failed_compensation_is_reported(self, harness: Harness, admin_id) -> None:
        harness.db.participants.failures[1] = RuntimeError("boom")
        harness.db.fail_delete = RuntimeError("delete failed too")

        with pytest.raises(BroadcastFailedError) as exc_info:
            await harness.broadcasts.create_broadcast(admin_id, "Hello", Role.STUDENT)
        assert exc_info.value.compensated is False
        assert len(harness.db.conversations.rows) == 1


async def test_sender_missing_from_directory_is_not_counted() -> None:
    harness = Harness()
    seed_users(harness, students=2)
    result = await harness.broadcasts.create_broadcast(uuid4(), "Hello", None)
    assert result.sent_to == 2


class TestBroadcastOverSession:
    """Participant batches running on a real repository over a mocked session."""

    async def test_timed_out_batch_is_rolled_back_before_the_next(self, mock_db: Any) -> None:
        db = InMemoryDatabase()
        admin_id = db.users.add(Role.ADMIN)
        for _ in range(3):
            db.users.add(Role.STUDENT)
        calls = []

        async def execute(statement: Any) -> MagicMock:
            calls.append(statement)
            if len(calls) == 1:
                await asyncio.sleep(1)
            result = MagicMock()
            result.rowcount = 2
            return result

        mock_db.execute.side_effect = execute
        fanout = BroadcastFanout(
            db.conversations,
            db.messages,
            ParticipantDirectory(ParticipantRepository(mock_db), db.users),
            db.users,
            batch_size=2,
            batch_timeout=0.05,
            clock=db.clock,
        )

        with pytest.raises(BroadcastFailedError) as exc_info:
            await fanout.create_broadcast(admin_id, "Hello", Role.STUDENT)

        session_calls = [name for name, _, _ in mock_db.mock_calls]
        assert session_calls == ["execute", "rollback", "execute", "commit", "rollback"]
        assert exc_info.value.compensated is True
        assert db.conversations.rows == {}
