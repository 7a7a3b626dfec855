"""API routes for study groups: membership, chat and shared files."""

import json
import logging
from uuid import UUID

from fastapi import APIRouter, Query, status
from sqlalchemy import select
from sse_starlette.sse import EventSourceResponse

from studpal.api.deps import Broker, CurrentUser, DbSession, Storage
from studpal.config import get_settings
from studpal.db.models import GroupMessage, GroupRole, SharedFile, StudyGroup
from studpal.errors import ForbiddenError, NotFoundError, ValidationError
from studpal.schemas.groups import (
    GroupCreate,
    GroupRead,
    MemberRead,
    MessageCreate,
    MessageRead,
    SharedFileCreate,
    SharedFileRead,
)
from studpal.services import groups as group_service
from studpal.services import materials as material_service
from studpal.services.pubsub import group_channel
from studpal.services.s3 import StorageError, user_prefix

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/groups", tags=["groups"])


# =============================================================================
# GROUPS & MEMBERSHIP
# =============================================================================


@router.post("/", response_model=GroupRead, status_code=status.HTTP_201_CREATED)
async def create_group(data: GroupCreate, current_user: CurrentUser, db: DbSession):
    """Create a study group; the creator becomes its owner."""
    group = await group_service.create_group(
        db, current_user, name=data.name, description=data.description, is_private=data.is_private
    )
    [read] = await group_service.describe_groups(db, [group], current_user.id)
    return read


@router.get("/", response_model=list[GroupRead])
async def list_groups(
    current_user: CurrentUser,
    db: DbSession,
    query: str | None = Query(None, max_length=255),
):
    """List public groups and the user's own groups, optionally searched by name or description."""
    groups = await group_service.search_groups(db, current_user.id, query.strip() if query else None)
    return await group_service.describe_groups(db, groups, current_user.id)


@router.get("/{group_id}", response_model=GroupRead)
async def get_group(group_id: UUID, current_user: CurrentUser, db: DbSession):
    group = await group_service.get_visible_group(db, group_id, current_user.id)
    [read] = await group_service.describe_groups(db, [group], current_user.id)
    return read


@router.post("/{group_id}/join", response_model=MemberRead, status_code=status.HTTP_201_CREATED)
async def join_group(group_id: UUID, current_user: CurrentUser, db: DbSession):
    return await group_service.join_group(db, group_id, current_user)


@router.delete("/{group_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(group_id: UUID, user_id: UUID, current_user: CurrentUser, db: DbSession):
    """
    Remove a member from a group.

    Members may remove themselves; the owner may remove anyone but
    themselves.
    """
    group = await db.get(StudyGroup, group_id)
    if group is None:
        raise NotFoundError("Group not found")

    if user_id != current_user.id and group.owner_id != current_user.id:
        raise ForbiddenError("Only the group owner can remove other members")
    if user_id == group.owner_id:
        raise ValidationError("The group owner cannot leave the group")

    membership = await group_service.get_membership(db, group_id, user_id)
    if membership is None:
        raise NotFoundError("Member not found")

    await db.delete(membership)
    await db.commit()
    logger.info("User %s removed from group %s by %s", user_id, group_id, current_user.id)


# =============================================================================
# CHAT
# =============================================================================


@router.get("/{group_id}/messages", response_model=list[MessageRead])
async def list_messages(
    group_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    limit: int = Query(50, ge=1, le=200),
):
    """Most recent messages, returned oldest first."""
    await group_service.require_member(db, group_id, current_user.id)

    result = await db.execute(
        select(GroupMessage)
        .where(GroupMessage.group_id == group_id)
        .order_by(GroupMessage.created_at.desc(), GroupMessage.id.desc())
        .limit(limit)
    )
    messages = list(result.scalars().all())
    messages.reverse()
    return messages


@router.post("/{group_id}/messages", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def send_message(
    group_id: UUID,
    data: MessageCreate,
    current_user: CurrentUser,
    db: DbSession,
    broker: Broker,
):
    await group_service.require_member(db, group_id, current_user.id)
    return await group_service.post_message(db, broker, group_id, current_user, data.content)


@router.get("/{group_id}/messages/stream")
async def stream_messages(group_id: UUID, current_user: CurrentUser, db: DbSession, broker: Broker):
    """
    Live chat over Server-Sent Events.

    Emits one `new-message` event per message posted after the client
    connects. Earlier history comes from GET /messages.
    """
    await group_service.require_member(db, group_id, current_user.id)
    # The stream outlives the request; release the connection now.
    await db.close()
    channel = group_channel(group_id)

    async def event_generator():
        async with broker.subscribe(channel) as queue:
            logger.debug("User %s subscribed to %s", current_user.id, channel)
            while True:
                message = await queue.get()
                yield {"event": message["event"], "data": json.dumps(message["data"])}

    return EventSourceResponse(event_generator())


# =============================================================================
# SHARED FILES
# =============================================================================


@router.get("/{group_id}/files", response_model=list[SharedFileRead])
async def list_files(group_id: UUID, current_user: CurrentUser, db: DbSession):
    await group_service.require_member(db, group_id, current_user.id)
    result = await db.execute(
        select(SharedFile)
        .where(SharedFile.group_id == group_id)
        .order_by(SharedFile.created_at.desc(), SharedFile.id.asc())
    )
    return result.scalars().all()


@router.post("/{group_id}/files", response_model=SharedFileRead, status_code=status.HTTP_201_CREATED)
async def share_file(group_id: UUID, data: SharedFileCreate, current_user: CurrentUser, db: DbSession):
    """
    Share an uploaded file with the group.

    The file must already be in storage under the uploader's own prefix
    (see POST /files/upload-url).
    """
    await group_service.require_member(db, group_id, current_user.id)

    if data.file_type not in settings.allowed_upload_types:
        raise ValidationError(f"Unsupported file type '{data.file_type}'")
    if data.file_size > settings.max_upload_size_bytes:
        raise ValidationError("File exceeds the maximum upload size")
    if not data.file_id.startswith(user_prefix(current_user.id)):
        raise ValidationError("Invalid file_id")

    shared = SharedFile(group_id=group_id, user_id=current_user.id, **data.model_dump())
    db.add(shared)
    await db.commit()
    logger.info("User %s shared %s with group %s", current_user.id, shared.id, group_id)
    return shared


@router.delete("/{group_id}/files/{shared_file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_shared_file(
    group_id: UUID,
    shared_file_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
):
    """Unshare a file. Allowed for the uploader and the group owner."""
    membership = await group_service.require_member(db, group_id, current_user.id)

    result = await db.execute(
        select(SharedFile).where(SharedFile.id == shared_file_id, SharedFile.group_id == group_id)
    )
    shared = result.scalar_one_or_none()
    if shared is None:
        raise NotFoundError("Shared file not found")

    if shared.user_id != current_user.id and membership.role != GroupRole.OWNER.value:
        raise ForbiddenError("Only the uploader or the group owner can remove this file")

    await db.delete(shared)
    await db.flush()

    if not await material_service.blob_in_use(db, shared.file_id):
        try:
            await storage.delete_object(shared.file_id)
        except StorageError:
            logger.warning("Failed to delete blob %s, removing record anyway", shared.file_id, exc_info=True)

    await db.commit()
