"""Study group membership rules and chat delivery."""

import logging
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from studpal.db.models import (
    GroupMember,
    GroupMessage,
    GroupRole,
    Notification,
    NotificationKind,
    StudyGroup,
    User,
)
from studpal.errors import ConflictError, ForbiddenError, NotFoundError
from studpal.schemas.groups import GroupRead, MessageRead
from studpal.services.pubsub import ChannelBroker, group_channel

logger = logging.getLogger(__name__)

NEW_MESSAGE_EVENT = "new-message"


async def get_membership(db: AsyncSession, group_id: UUID, user_id: UUID) -> GroupMember | None:
    result = await db.execute(
        select(GroupMember).where(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_visible_group(db: AsyncSession, group_id: UUID, user_id: UUID) -> StudyGroup:
    """Return a group the user may see: public ones, or private ones they belong to."""
    group = await db.get(StudyGroup, group_id)
    if group is None:
        raise NotFoundError("Group not found")
    if group.is_private and await get_membership(db, group_id, user_id) is None:
        raise NotFoundError("Group not found")
    return group


async def require_member(db: AsyncSession, group_id: UUID, user_id: UUID) -> GroupMember:
    """Membership gate for chat and files: 404 for unknown groups, 403 for non-members."""
    if await db.get(StudyGroup, group_id) is None:
        raise NotFoundError("Group not found")
    membership = await get_membership(db, group_id, user_id)
    if membership is None:
        raise ForbiddenError("Not a member of this group")
    return membership


async def describe_groups(db: AsyncSession, groups: list[StudyGroup], user_id: UUID) -> list[GroupRead]:
    """Attach member counts and the caller's membership flag."""
    ids = [g.id for g in groups]
    if not ids:
        return []

    result = await db.execute(
        select(GroupMember.group_id, func.count())
        .where(GroupMember.group_id.in_(ids))
        .group_by(GroupMember.group_id)
    )
    counts = dict(result.all())

    result = await db.execute(
        select(GroupMember.group_id).where(GroupMember.group_id.in_(ids), GroupMember.user_id == user_id)
    )
    mine = set(result.scalars())

    return [
        GroupRead.model_validate(g).model_copy(
            update={"member_count": counts.get(g.id, 0), "is_member": g.id in mine}
        )
        for g in groups
    ]


async def search_groups(db: AsyncSession, user_id: UUID, query: str | None = None) -> list[StudyGroup]:
    """Public groups plus private groups the user belongs to, newest first."""
    my_groups = select(GroupMember.group_id).where(GroupMember.user_id == user_id)
    stmt = select(StudyGroup).where(
        or_(StudyGroup.is_private.is_(False), StudyGroup.id.in_(my_groups))
    )
    if query:
        stmt = stmt.where(
            or_(
                StudyGroup.name.icontains(query, autoescape=True),
                StudyGroup.description.icontains(query, autoescape=True),
            )
        )
    stmt = stmt.order_by(StudyGroup.created_at.desc(), StudyGroup.id.asc())
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def create_group(
    db: AsyncSession, owner: User, name: str, description: str | None, is_private: bool
) -> StudyGroup:
    group = StudyGroup(owner_id=owner.id, name=name, description=description, is_private=is_private)
    db.add(group)
    await db.flush()
    db.add(GroupMember(group_id=group.id, user_id=owner.id, role=GroupRole.OWNER.value))
    await db.commit()
    logger.info("User %s created group %s", owner.id, group.id)
    return group


async def join_group(db: AsyncSession, group_id: UUID, user: User) -> GroupMember:
    """
    Join a public group and notify its owner.

    Private groups cannot be joined directly (403); joining twice is a 409.
    """
    group = await db.get(StudyGroup, group_id)
    if group is None:
        raise NotFoundError("Group not found")
    if group.is_private:
        raise ForbiddenError("Cannot join private group directly")
    if await get_membership(db, group_id, user.id) is not None:
        raise ConflictError("Already a member")

    membership = GroupMember(group_id=group_id, user_id=user.id, role=GroupRole.MEMBER.value)
    db.add(membership)
    db.add(
        Notification(
            user_id=group.owner_id,
            kind=NotificationKind.GROUP_JOIN.value,
            title="New Member",
            content=f"A new member has joined your study group: {group.name}",
            group_id=group_id,
        )
    )
    await db.commit()
    return membership


async def post_message(
    db: AsyncSession,
    broker: ChannelBroker,
    group_id: UUID,
    author: User,
    content: str,
) -> MessageRead:
    """
    Store a chat message, then publish it on the group's channel.

    The message is committed first; publishing is at-most-once and a
    publish failure is logged without failing the request.
    """
    message = GroupMessage(group_id=group_id, user_id=author.id, content=content)
    message.author = author
    db.add(message)
    await db.commit()

    payload = MessageRead.model_validate(message)
    try:
        await broker.publish(group_channel(group_id), NEW_MESSAGE_EVENT, payload.model_dump(mode="json"))
    except Exception:
        logger.exception("Failed to publish message %s to group %s", message.id, group_id)
    return payload
