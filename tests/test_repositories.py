from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from internship_messaging.errors import (
    ConcurrentUpdateError,
    ConnectivityError,
    DuplicateConversationError,
)
from internship_messaging.models.api.conversations import ConversationResponse
from internship_messaging.models.db.conversation_model import ConversationModel
from internship_messaging.models.db.message_model import MessageModel
from internship_messaging.models.enums import (
    AdoptionRequestStatus,
    ApplicationStatus,
    BroadcastTarget,
    ConversationContext,
    ConversationStatus,
    Role,
)
from internship_messaging.repositories.base_repository import BaseRepository
from internship_messaging.repositories.business_repository import (
    AdoptionRequestRepository,
    ApplicationRepository,
)
from internship_messaging.repositories.conversation_repository import ConversationRepository
from internship_messaging.repositories.message_repository import MessageRepository
from internship_messaging.repositories.participant_repository import ParticipantRepository
from internship_messaging.repositories.user_repository import UserRepository


def make_conversation(**fields: Any) -> ConversationResponse:
    now = datetime.now(timezone.utc)
    fields.setdefault("id", uuid4())
    fields.setdefault("topic", "Conversation")
    return ConversationResponse(created_at=now, updated_at=now, **fields)


def mock_conversation_row(**fields: Any) -> MagicMock:
    now = datetime.now(timezone.utc)
    row = MagicMock(spec=ConversationModel)
    row.id = fields.get("id", uuid4())
    row.topic = fields.get("topic", "Conversation")
    row.context = fields.get("context", "NONE")
    row.context_id = fields.get("context_id")
    row.status = fields.get("status", "ACTIVE")
    row.is_read_only = fields.get("is_read_only", False)
    row.is_broadcast = fields.get("is_broadcast", False)
    row.broadcast_target = fields.get("broadcast_target")
    row.expires_at = None
    row.created_by_id = fields.get("created_by_id")
    row.version = fields.get("version", 1)
    row.created_at = now
    row.updated_at = now
    return row


def db_error(error_type: type) -> Exception:
    return error_type("INSERT INTO conversations ...", {}, Exception("driver error"))


class TestBaseRepository:
    """Unit tests for BaseRepository functionality."""

    def test_base_repository_creation(self, mock_db: Any) -> None:
        """Test that BaseRepository can be instantiated."""
        repo: BaseRepository[ConversationModel, ConversationResponse] = BaseRepository(
            mock_db, ConversationModel
        )
        assert repo.db is mock_db
        assert repo.model_class is ConversationModel

    async def test_get_by_id_with_mock(self, mock_db: Any) -> None:
        """Test get_by_id method with mocked database."""
        repo: BaseRepository[ConversationModel, ConversationResponse] = BaseRepository(
            mock_db, ConversationModel
        )
        conversation = make_conversation()

        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = MagicMock(spec=ConversationModel)
        mock_db.execute.return_value = mock_result

        with patch.object(repo, "_to_pydantic", return_value=conversation):
            result = await repo.get_by_id(conversation.id)

        assert result == conversation
        mock_db.execute.assert_called_once()

    async def test_get_by_id_not_found(self, mock_db: Any) -> None:
        """Test get_by_id when record is not found."""
        repo: BaseRepository[ConversationModel, ConversationResponse] = BaseRepository(
            mock_db, ConversationModel
        )
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_db.execute.return_value = mock_result

        assert await repo.get_by_id(uuid4()) is None

    async def test_create(self, mock_db: Any) -> None:
        """Test create adds, commits and refreshes."""
        repo: BaseRepository[ConversationModel, ConversationResponse] = BaseRepository(
            mock_db, ConversationModel
        )
        conversation = make_conversation()
        mock_db_model = MagicMock(spec=ConversationModel)

        with (
            patch.object(repo, "_from_pydantic", return_value=mock_db_model),
            patch.object(repo, "_to_pydantic", return_value=conversation),
        ):
            result = await repo.create(conversation)

        assert result == conversation
        mock_db.add.assert_called_once_with(mock_db_model)
        mock_db.commit.assert_called_once()
        mock_db.refresh.assert_called_once_with(mock_db_model)

    async def test_lost_connection_on_execute(self, mock_db: Any) -> None:
        """Test that a dropped connection surfaces as ConnectivityError."""
        repo: BaseRepository[ConversationModel, ConversationResponse] = BaseRepository(
            mock_db, ConversationModel
        )
        mock_db.execute.side_effect = db_error(OperationalError)

        with pytest.raises(ConnectivityError) as exc_info:
            await repo.get_by_id(uuid4())

        assert exc_info.value.retryable is True
        mock_db.rollback.assert_called_once()

    async def test_refused_connection_on_commit(self, mock_db: Any) -> None:
        repo: BaseRepository[ConversationModel, ConversationResponse] = BaseRepository(
            mock_db, ConversationModel
        )
        mock_db.commit.side_effect = ConnectionRefusedError("connection refused")

        with patch.object(repo, "_from_pydantic", return_value=MagicMock(spec=ConversationModel)):
            with pytest.raises(ConnectivityError):
                await repo.create(make_conversation())
        mock_db.rollback.assert_called_once()

    async def test_integrity_error_rolls_back_and_propagates(self, mock_db: Any) -> None:
        repo: BaseRepository[ConversationModel, ConversationResponse] = BaseRepository(
            mock_db, ConversationModel
        )
        mock_db.commit.side_effect = db_error(IntegrityError)

        with patch.object(repo, "_from_pydantic", return_value=MagicMock(spec=ConversationModel)):
            with pytest.raises(IntegrityError):
                await repo.create(make_conversation())
        mock_db.rollback.assert_called_once()


class TestConversationRepository:
    """Unit tests for ConversationRepository."""

    @pytest.fixture
    def repo(self, mock_db: Any) -> ConversationRepository:
        return ConversationRepository(mock_db)

    def test_to_pydantic_parses_enums(self, repo: ConversationRepository) -> None:
        row = mock_conversation_row(
            context="BROADCAST",
            is_broadcast=True,
            broadcast_target="STUDENTS",
            status="ARCHIVED",
            version=4,
        )
        conversation = repo._to_pydantic(row)
        assert conversation.context == ConversationContext.BROADCAST
        assert conversation.status == ConversationStatus.ARCHIVED
        assert conversation.broadcast_target == BroadcastTarget.STUDENTS
        assert conversation.version == 4

    def test_from_pydantic_stores_enum_values(self, repo: ConversationRepository) -> None:
        conversation = make_conversation(
            context=ConversationContext.OFFER,
            context_id=uuid4(),
            status=ConversationStatus.PENDING_APPROVAL,
        )
        row = repo._from_pydantic(conversation)
        assert row.context == "OFFER"
        assert row.status == "PENDING_APPROVAL"
        assert row.broadcast_target is None
        assert row.context_id == conversation.context_id

    async def test_duplicate_context_is_translated(self, repo: ConversationRepository, mock_db: Any) -> None:
        mock_db.commit.side_effect = db_error(IntegrityError)
        conversation = make_conversation(context=ConversationContext.OFFER, context_id=uuid4())

        with pytest.raises(DuplicateConversationError):
            await repo.create(conversation)
        mock_db.rollback.assert_called_once()

    async def test_update_status_with_current_version(
        self, repo: ConversationRepository, mock_db: Any
    ) -> None:
        row = mock_conversation_row(status="ACTIVE", version=2)
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = row
        mock_db.execute.return_value = mock_result

        updated = await repo.update_status(row.id, 1, ConversationStatus.ACTIVE, is_read_only=False)

        assert updated.version == 2
        mock_db.commit.assert_called_once()

    async def test_update_status_with_stale_version(
        self, repo: ConversationRepository, mock_db: Any
    ) -> None:
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_db.execute.return_value = mock_result

        with pytest.raises(ConcurrentUpdateError):
            await repo.update_status(uuid4(), 1, ConversationStatus.ARCHIVED)
        mock_db.rollback.assert_called_once()
        mock_db.commit.assert_not_called()

    async def test_delete(self, repo: ConversationRepository, mock_db: Any) -> None:
        mock_result = MagicMock()
        mock_result.rowcount = 1
        mock_db.execute.return_value = mock_result

        assert await repo.delete(uuid4()) is True
        mock_db.commit.assert_called_once()

    async def test_list_for_user_returns_page_and_total(
        self, repo: ConversationRepository, mock_db: Any
    ) -> None:
        count_result = MagicMock()
        count_result.scalar_one.return_value = 7
        rows_result = MagicMock()
        rows_result.scalars.return_value.all.return_value = [mock_conversation_row()]
        mock_db.execute.side_effect = [count_result, rows_result]

        conversations, total = await repo.list_for_user(uuid4(), Role.STUDENT, limit=1)

        assert total == 7
        assert len(conversations) == 1
        assert mock_db.execute.call_count == 2


class TestMessageRepository:
    """Unit tests for MessageRepository."""

    async def test_create_message(self, mock_db: Any) -> None:
        repo = MessageRepository(mock_db)
        conversation_id, sender_id = uuid4(), uuid4()

        async def assign_created_at(db_model: MessageModel) -> None:
            db_model.created_at = datetime.now(timezone.utc)

        mock_db.refresh.side_effect = assign_created_at

        message = await repo.create(conversation_id, sender_id, "Hello")

        assert message.conversation_id == conversation_id
        assert message.sender_id == sender_id
        assert message.content == "Hello"
        mock_db.add.assert_called_once()
        mock_db.commit.assert_called_once()

    async def test_latest_without_messages(self, mock_db: Any) -> None:
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_db.execute.return_value = mock_result

        assert await MessageRepository(mock_db).latest(uuid4()) is None

    async def test_count(self, mock_db: Any) -> None:
        mock_result = MagicMock()
        mock_result.scalar_one.return_value = 3
        mock_db.execute.return_value = mock_result

        assert await MessageRepository(mock_db).count(uuid4()) == 3


class TestParticipantRepository:
    """Unit tests for ParticipantRepository."""

    async def test_add_members_with_no_users(self, mock_db: Any) -> None:
        assert await ParticipantRepository(mock_db).add_members(uuid4(), []) == 0
        mock_db.execute.assert_not_called()

    async def test_add_members_returns_inserted_rows(self, mock_db: Any) -> None:
        mock_result = MagicMock()
        mock_result.rowcount = 2
        mock_db.execute.return_value = mock_result

        inserted = await ParticipantRepository(mock_db).add_members(uuid4(), [uuid4(), uuid4(), uuid4()])

        assert inserted == 2
        mock_db.commit.assert_called_once()

    async def test_is_member(self, mock_db: Any) -> None:
        mock_result = MagicMock()
        mock_result.scalar.return_value = True
        mock_db.execute.return_value = mock_result

        assert await ParticipantRepository(mock_db).is_member(uuid4(), uuid4()) is True

    async def test_reset_rolls_back_the_session(self, mock_db: Any) -> None:
        await ParticipantRepository(mock_db).reset()
        mock_db.rollback.assert_awaited_once()

    async def test_reset_on_a_dead_connection_does_not_raise(self, mock_db: Any) -> None:
        mock_db.rollback.side_effect = db_error(OperationalError)
        await ParticipantRepository(mock_db).reset()
        mock_db.rollback.assert_awaited_once()


class TestUserRepository:
    async def test_get_role(self, mock_db: Any) -> None:
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = "COMPANY"
        mock_db.execute.return_value = mock_result

        assert await UserRepository(mock_db).get_role(uuid4()) == Role.COMPANY

    async def test_get_role_for_inactive_or_unknown_user(self, mock_db: Any) -> None:
        mock_result = MagicMock()
        mock_result.scalar_one_or_none.return_value = None
        mock_db.execute.return_value = mock_result

        assert await UserRepository(mock_db).get_role(uuid4()) is None

    async def test_list_active_ids(self, mock_db: Any) -> None:
        ids = [uuid4(), uuid4()]
        mock_result = MagicMock()
        mock_result.scalars.return_value.all.return_value = ids
        mock_db.execute.return_value = mock_result

        assert await UserRepository(mock_db).list_active_ids(Role.STUDENT) == ids


class TestAdoptionRequestRepository:
    @pytest.mark.parametrize("rowcount,expected", [(1, True), (0, False)])
    async def test_set_status_reports_whether_it_applied(
        self, mock_db: Any, rowcount: int, expected: bool
    ) -> None:
        mock_result = MagicMock()
        mock_result.rowcount = rowcount
        mock_db.execute.return_value = mock_result

        applied = await AdoptionRequestRepository(mock_db).set_status(
            uuid4(), AdoptionRequestStatus.ACCEPTED, expected=AdoptionRequestStatus.PENDING
        )

        assert applied is expected


class TestApplicationRepository:
    async def test_set_status_guarded_by_expected_status(self, mock_db: Any) -> None:
        mock_result = MagicMock()
        mock_result.rowcount = 1
        mock_db.execute.return_value = mock_result

        applied = await ApplicationRepository(mock_db).set_status(
            uuid4(), ApplicationStatus.INTERVIEW, expected=ApplicationStatus.SEEN
        )

        assert applied is True
        statement = str(mock_db.execute.call_args.args[0])
        assert statement.startswith("UPDATE applications SET status=")
        assert "applications.status = " in statement
        mock_db.commit.assert_called_once()

    async def test_set_status_unguarded(self, mock_db: Any) -> None:
        mock_result = MagicMock()
        mock_result.rowcount = 0
        mock_db.execute.return_value = mock_result

        applied = await ApplicationRepository(mock_db).set_status(uuid4(), ApplicationStatus.HIRED)

        assert applied is False
        assert "applications.status = " not in str(mock_db.execute.call_args.args[0])
