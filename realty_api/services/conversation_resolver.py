"""Conversation Resolver - find or lazily create the thread between two users

Rules:
    - One conversation per (participant pair, property). Lookup always happens
      before create, and a unique constraint catches concurrent creators.
    - Existing conversations are always returned, whoever asks.
    - The conversation type follows from the two roles and is never coerced.
    - Restricted mode (settings.RESTRICTED_MODE) limits who may *start* a thread:
      sellers cannot initiate, and direct buyer <-> seller threads are refused.
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from realty_api.config import settings
from realty_api.models.conversation import Conversation, ConversationType, canonical_pair
from realty_api.models.user import User, UserRole
from realty_api.utils.errors import BusinessRuleError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Unordered role pair -> conversation type
ROLE_PAIR_TYPES: dict[frozenset[str], ConversationType] = {
    frozenset({UserRole.BUYER.value, UserRole.AGENT.value}): ConversationType.BUYER_AGENT,
    frozenset({UserRole.AGENT.value, UserRole.SELLER.value}): ConversationType.AGENT_SELLER,
    frozenset({UserRole.BUYER.value, UserRole.SELLER.value}): ConversationType.BUYER_SELLER,
}


def derive_conversation_type(first_role: str, second_role: str) -> ConversationType:
    """Conversation type for two participant roles

    Raises:
        ValidationError: the pairing is not a supported conversation (e.g. two buyers)
    """
    first_role, second_role = UserRole(first_role).value, UserRole(second_role).value
    conversation_type = ROLE_PAIR_TYPES.get(frozenset({first_role, second_role}))
    if conversation_type is None:
        raise ValidationError(
            f"Conversations between a {first_role} and a {second_role} are not supported",
            code="unsupported_participants",
        )
    return conversation_type


def parse_user_id(raw: UUID | str | None, field: str = "counterpartyId") -> UUID:
    if isinstance(raw, UUID):
        return raw
    if not raw:
        raise ValidationError(f"{field} is required")
    try:
        return UUID(str(raw))
    except ValueError as e:
        raise ValidationError(f"{field} is not a valid id") from e


def normalize_property_id(property_id: str | None) -> str:
    return (property_id or "").strip()


async def find_conversation(
    db: AsyncSession, first_id: UUID, second_id: UUID, property_id: str | None = None
) -> Conversation | None:
    """Existing conversation for a pair and property, in either participant order"""
    low_id, high_id = canonical_pair(first_id, second_id)
    result = await db.execute(
        select(Conversation).where(
            Conversation.participant_low_id == low_id,
            Conversation.participant_high_id == high_id,
            Conversation.property_id == normalize_property_id(property_id),
        )
    )
    return result.scalar_one_or_none()


async def load_counterparty(db: AsyncSession, actor: User, counterparty_id: UUID | str | None) -> User:
    """Validate and load the other participant

    Raises:
        ValidationError: malformed id, or the actor named themselves
        NotFoundError: no such (active) user
    """
    counterparty_uuid = parse_user_id(counterparty_id)
    if counterparty_uuid == actor.id:
        raise ValidationError("Cannot start a conversation with yourself", code="self_conversation")

    counterparty = await db.get(User, counterparty_uuid)
    if counterparty is None or not counterparty.is_active:
        raise NotFoundError(f"User {counterparty_uuid} not found", code="user_not_found")
    return counterparty


async def resolve_conversation(
    db: AsyncSession,
    actor: User,
    counterparty_id: UUID | str | None,
    property_id: str | None = None,
    conversation_type: ConversationType | None = None,
    restricted: bool | None = None,
) -> Conversation:
    """Return the conversation between actor and counterparty, creating it if allowed

    Args:
        db: Database session
        actor: Authenticated user asking for the thread
        counterparty_id: The other participant
        property_id: Optional property context (threads are per property)
        conversation_type: Expected type; must match the one implied by the roles
        restricted: Override settings.RESTRICTED_MODE

    Returns:
        Existing or newly created conversation

    Raises:
        ValidationError: bad counterparty id, self-conversation, unsupported or mismatched type
        NotFoundError: counterparty does not exist
        BusinessRuleError: restricted mode forbids creating this thread
    """
    restricted = settings.RESTRICTED_MODE if restricted is None else restricted
    counterparty = await load_counterparty(db, actor, counterparty_id)
    property_key = normalize_property_id(property_id)

    existing = await find_conversation(db, actor.id, counterparty.id, property_key)
    if existing is not None:
        return existing

    # Seller rule wins over any participant or type error
    if restricted and UserRole(actor.role) == UserRole.SELLER:
        raise BusinessRuleError("Sellers cannot initiate conversations", code="seller_cannot_initiate")

    derived_type = derive_conversation_type(actor.role, counterparty.role)
    if conversation_type is not None and ConversationType(conversation_type) != derived_type:
        raise ValidationError(
            f"Conversation type {ConversationType(conversation_type).value} does not match "
            f"participants ({derived_type.value})",
            code="type_mismatch",
        )

    if restricted and derived_type == ConversationType.BUYER_SELLER:
        raise BusinessRuleError("Buyers and sellers communicate through an agent", code="direct_buyer_seller_forbidden")

    actor_id, counterparty_uuid = actor.id, counterparty.id
    low_id, high_id = canonical_pair(actor_id, counterparty_uuid)
    conversation = Conversation(
        type=derived_type.value,
        participant_low_id=low_id,
        participant_high_id=high_id,
        initiator_id=actor_id,
        property_id=property_key,
        unread_counts={str(low_id): 0, str(high_id): 0},
    )
    db.add(conversation)
    try:
        await db.commit()
    except IntegrityError:
        # Another request created the same thread first
        await db.rollback()
        if actor in db:
            await db.refresh(actor)
        existing = await find_conversation(db, actor_id, counterparty_uuid, property_key)
        if existing is None:
            raise
        logger.info(f"Conversation race resolved to existing {existing.id}")
        return existing

    await db.refresh(conversation)
    logger.info(
        f"Created {conversation.type} conversation {conversation.id} "
        f"({actor_id} -> {counterparty_uuid}, property={property_key or '-'})"
    )
    return conversation
