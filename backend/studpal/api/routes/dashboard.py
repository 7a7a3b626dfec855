"""Dashboard counters and storage usage."""

import logging
from datetime import timedelta

from fastapi import APIRouter
from sqlalchemy import func, select

from studpal.api.deps import CurrentUser, DbSession, Storage
from studpal.config import get_settings
from studpal.db.models import GroupMember, Material, SharedFile, utcnow
from studpal.schemas.files import StatsResponse, StorageUsageResponse
from studpal.services.s3 import StorageError

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(tags=["dashboard"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(current_user: CurrentUser, db: DbSession) -> StatsResponse:
    """Counters for the dashboard welcome banner."""
    now = utcnow()

    async def count_materials(*conditions) -> int:
        result = await db.execute(
            select(func.count()).select_from(Material).where(
                Material.user_id == current_user.id, *conditions
            )
        )
        return result.scalar() or 0

    total_materials = await count_materials()
    due_this_week = await count_materials(
        Material.priority == "high", Material.created_at >= now - timedelta(days=7)
    )
    recent_activity = await count_materials(Material.created_at >= now - timedelta(days=1))

    my_groups = select(GroupMember.group_id).where(GroupMember.user_id == current_user.id)
    result = await db.execute(
        select(func.count())
        .select_from(SharedFile)
        .where(SharedFile.group_id.in_(my_groups), SharedFile.user_id != current_user.id)
    )
    shared_with_me = result.scalar() or 0

    return StatsResponse(
        total_materials=total_materials,
        due_this_week=due_this_week,
        shared_with_me=shared_with_me,
        recent_activity=recent_activity,
    )


@router.get("/storage", response_model=StorageUsageResponse)
async def get_storage_usage(
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
) -> StorageUsageResponse:
    """
    Bytes used by the user's PDF materials.

    Sizes missing from the database are read from storage and cached on the
    material; files storage cannot report are skipped.
    """
    result = await db.execute(
        select(Material).where(Material.user_id == current_user.id, Material.file_id.is_not(None))
    )
    used = 0
    for material in result.scalars():
        if material.file_size is None:
            try:
                material.file_size = await storage.get_object_size(material.file_id)
            except StorageError:
                logger.warning("Could not read size of %s", material.file_id, exc_info=True)
                continue
        used += material.file_size

    await db.commit()
    total = settings.storage_quota_bytes
    return StorageUsageResponse(used=used, total=total, percentage=used / total * 100)
