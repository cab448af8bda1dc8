"""create messaging schema

Revision ID: 5c1e7a2f9b3d
Revises:
Create Date: 2026-10-19 09:12:41.204118

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c1e7a2f9b3d'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute('''
        CREATE OR REPLACE FUNCTION update_updated_at_column()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ language 'plpgsql'
    ''')

    # Tables owned by the auth, adoption and application services; created
    # here only when missing so a fresh database can run the messaging core
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email VARCHAR(255) NOT NULL UNIQUE,
            role VARCHAR(10) NOT NULL CHECK (role IN ('STUDENT', 'COMPANY', 'ADMIN')),
            is_active BOOLEAN NOT NULL DEFAULT TRUE
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS adoption_requests (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            company_user_id UUID NOT NULL,
            student_id UUID NOT NULL,
            company_name VARCHAR(255) NOT NULL,
            status VARCHAR(20) NOT NULL DEFAULT 'PENDING'
                CHECK (status IN ('PENDING', 'ACCEPTED', 'REJECTED')),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS applications (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            student_id UUID NOT NULL,
            company_user_id UUID NOT NULL,
            offer_title VARCHAR(255),
            status VARCHAR(20) NOT NULL DEFAULT 'NEW'
                CHECK (status IN ('NEW', 'SEEN', 'INTERVIEW', 'REJECTED', 'HIRED')),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE conversations (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            topic VARCHAR(255) NOT NULL,
            context VARCHAR(20) NOT NULL DEFAULT 'NONE'
                CHECK (context IN ('NONE', 'ADOPTION_REQUEST', 'OFFER', 'BROADCAST')),
            context_id UUID,
            status VARCHAR(20) NOT NULL DEFAULT 'ACTIVE'
                CHECK (status IN ('PENDING_APPROVAL', 'ACTIVE', 'ARCHIVED', 'EXPIRED')),
            is_read_only BOOLEAN NOT NULL DEFAULT FALSE,
            is_broadcast BOOLEAN NOT NULL DEFAULT FALSE,
            broadcast_target VARCHAR(20)
                CHECK (broadcast_target IN ('ALL', 'STUDENTS', 'COMPANIES')),
            expires_at TIMESTAMP WITH TIME ZONE,
            created_by_id UUID,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            CHECK (NOT is_broadcast OR broadcast_target IS NOT NULL)
        )
    """)

    op.execute("""
        CREATE TABLE messages (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            conversation_id UUID NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
            sender_id UUID NOT NULL,
            content TEXT NOT NULL CHECK (char_length(content) > 0),
            created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
        )
    """)

    op.execute("""
        CREATE TABLE conversation_participants (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            conversation_id UUID NOT NULL REFERENCES conversations(id) ON DELETE CASCADE,
            user_id UUID NOT NULL,
            joined_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
            CONSTRAINT uq_participant_conversation_user UNIQUE (conversation_id, user_id)
        )
    """)

    op.execute(
        'CREATE UNIQUE INDEX idx_unique_conversation_context '
        'ON conversations(context, context_id) WHERE context_id IS NOT NULL'
    )
    op.execute('CREATE INDEX idx_conversations_status_expires ON conversations(status, expires_at)')
    op.execute('CREATE INDEX idx_conversations_broadcast ON conversations(broadcast_target) WHERE is_broadcast')
    op.execute('CREATE INDEX idx_messages_conversation_created ON messages(conversation_id, created_at)')
    op.execute('CREATE INDEX idx_participants_user ON conversation_participants(user_id)')

    op.execute('''
        CREATE TRIGGER update_conversations_updated_at
            BEFORE UPDATE ON conversations
            FOR EACH ROW EXECUTE FUNCTION update_updated_at_column()
    ''')


def downgrade() -> None:
    """Downgrade schema; tables owned by other services are left in place."""
    op.execute('DROP TABLE IF EXISTS conversation_participants')
    op.execute('DROP TABLE IF EXISTS messages')
    op.execute('DROP TABLE IF EXISTS conversations')
    op.execute('DROP FUNCTION IF EXISTS update_updated_at_column()')
