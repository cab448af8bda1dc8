"""Read/write permission evaluation for conversations.

The engine is pure: it never touches a store. Membership is looked up by
the caller (see ``load_membership``) and passed in, and an expiration seen
during evaluation is reported on the decision so the lifecycle coordinator
can persist it.

Write rules, first match wins:

  broadcast      terminal status / past expires_at  -> Archived / Expired
                 creator                             -> allowed
                 ADMIN whose role matches the target -> allowed
                 role outside the target             -> BroadcastAudienceMismatch
                 any other reader                    -> ReadOnlyAdminOnly
  non-broadcast  not a participant                   -> NotParticipant
                 ARCHIVED / EXPIRED                  -> Archived / Expired
                 past expires_at                     -> Expired (observed)
                 is_read_only and not ADMIN          -> ReadOnlyAdminOnly
                 context rule (adoption / offer)     -> context-specific reason
                 otherwise                           -> allowed
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Type
from uuid import UUID

from internship_messaging.models.api.conversations import ConversationResponse
from internship_messaging.models.enums import (
    AdoptionRequestStatus,
    ApplicationStatus,
    BroadcastTarget,
    ConversationStatus,
    DenialReason,
    Role,
)
from internship_messaging.services.context_resolver import (
    AdoptionRequestContext,
    OfferContext,
    ResolvedContext,
)
from internship_messaging.services.participant_directory import ParticipantDirectory


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Actor:
    """The user asking to read or write, with the role they act in."""

    user_id: UUID
    role: Role


@dataclass(frozen=True)
class Membership:
    is_participant: bool
    is_creator: bool


@dataclass(frozen=True)
class AccessDecision:
    can_read: bool
    can_write: bool
    denial_reason: Optional[DenialReason] = None
    read_denial_reason: Optional[DenialReason] = None
    expiration_observed: bool = False


async def load_membership(
    directory: ParticipantDirectory, actor: Actor, conversation: ConversationResponse
) -> Membership:
    """Look up whether the actor participates in, or created, the conversation."""
    is_participant = await directory.is_participant(actor.user_id, conversation.id)
    if conversation.created_by_id is not None:
        is_creator = (
            conversation.created_by_id == actor.user_id and actor.role == Role.ADMIN
        )
    else:
        # Rows without a recorded creator: the admin participant created it
        is_creator = (
            conversation.is_broadcast and actor.role == Role.ADMIN and is_participant
        )
    return Membership(is_participant=is_participant, is_creator=is_creator)


def _adoption_request_rule(actor: Actor, context: AdoptionRequestContext) -> Optional[DenialReason]:
    if context.status == AdoptionRequestStatus.REJECTED:
        return DenialReason.ADOPTION_REJECTED
    if context.status == AdoptionRequestStatus.PENDING and actor.role != Role.STUDENT:
        # Only the invited student can open the channel by replying
        return DenialReason.ADOPTION_PENDING
    return None


def _offer_rule(actor: Actor, context: OfferContext) -> Optional[DenialReason]:
    if context.status == ApplicationStatus.REJECTED:
        return DenialReason.APPLICATION_REJECTED
    if context.status == ApplicationStatus.NEW:
        return DenialReason.APPLICATION_NEW
    return None


CONTEXT_RULES: Dict[Type, Callable[[Actor, object], Optional[DenialReason]]] = {
    AdoptionRequestContext: _adoption_request_rule,
    OfferContext: _offer_rule,
}


class AccessControlEngine:
    """Decides whether an actor may read and write a conversation."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    def can_read(
        self, actor: Actor, conversation: ConversationResponse, membership: Membership
    ) -> bool:
        if membership.is_participant:
            return True
        if not conversation.is_broadcast:
            return False
        target = conversation.broadcast_target or BroadcastTarget.ALL
        if target.matches(actor.role):
            return True
        return actor.role == Role.ADMIN and membership.is_creator

    def is_past_expiry(self, conversation: ConversationResponse) -> bool:
        if conversation.expires_at is None:
            return False
        return self.clock() > _as_aware(conversation.expires_at)

    def evaluate(
        self,
        actor: Actor,
        conversation: ConversationResponse,
        context: ResolvedContext,
        membership: Membership,
    ) -> AccessDecision:
        can_read = self.can_read(actor, conversation, membership)
        read_denial = None
        if not can_read:
            read_denial = (
                DenialReason.BROADCAST_AUDIENCE_MISMATCH
                if conversation.is_broadcast
                else DenialReason.NOT_PARTICIPANT
            )

        if conversation.is_broadcast:
            decision = self._evaluate_broadcast_write(actor, conversation, membership, can_read)
        else:
            decision = self._evaluate_write(actor, conversation, context, membership)

        return AccessDecision(
            can_read=can_read,
            can_write=decision.can_write,
            denial_reason=decision.denial_reason,
            read_denial_reason=read_denial,
            expiration_observed=decision.expiration_observed,
        )

    def _terminal_denial(self, conversation: ConversationResponse) -> Optional[AccessDecision]:
        if conversation.status == ConversationStatus.ARCHIVED:
            return _deny(DenialReason.ARCHIVED)
        if conversation.status == ConversationStatus.EXPIRED:
            return _deny(DenialReason.EXPIRED)
        if self.is_past_expiry(conversation):
            return _deny(DenialReason.EXPIRED, expiration_observed=True)
        return None

    def _evaluate_broadcast_write(
        self,
        actor: Actor,
        conversation: ConversationResponse,
        membership: Membership,
        can_read: bool,
    ) -> AccessDecision:
        # Terminal status dominates the creator override
        terminal = self._terminal_denial(conversation)
        if terminal is not None:
            return terminal

        if membership.is_creator:
            return _allow()

        target = conversation.broadcast_target or BroadcastTarget.ALL
        if actor.role == Role.ADMIN and target.matches(actor.role):
            return _allow()

        if not can_read:
            return _deny(DenialReason.BROADCAST_AUDIENCE_MISMATCH)
        return _deny(DenialReason.READ_ONLY_ADMIN_ONLY)

    def _evaluate_write(
        self,
        actor: Actor,
        conversation: ConversationResponse,
        context: ResolvedContext,
        membership: Membership,
    ) -> AccessDecision:
        if not membership.is_participant:
            return _deny(DenialReason.NOT_PARTICIPANT)

        terminal = self._terminal_denial(conversation)
        if terminal is not None:
            return terminal

        if conversation.is_read_only and actor.role != Role.ADMIN:
            return _deny(DenialReason.READ_ONLY_ADMIN_ONLY)

        rule = CONTEXT_RULES.get(type(context))
        if rule is not None:
            reason = rule(actor, context)
            if reason is not None:
                return _deny(reason)

        return _allow()


def _allow() -> AccessDecision:
    return AccessDecision(can_read=True, can_write=True)


def _deny(reason: DenialReason, expiration_observed: bool = False) -> AccessDecision:
    return AccessDecision(
        can_read=True,
        can_write=False,
        denial_reason=reason,
        expiration_observed=expiration_observed,
    )
