"""Tag catalogue routes."""

from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import select

from studpal.api.deps import CurrentUser, DbSession, get_user_resource_or_404
from studpal.db.models import Tag
from studpal.errors import ConflictError
from studpal.schemas.tags import TagCreate, TagRead, TagUpdate
from studpal.services.tags import rename_tag

router = APIRouter(prefix="/tags", tags=["tags"])


async def _ensure_name_free(db, user_id: UUID, name: str) -> None:
    result = await db.execute(select(Tag.id).where(Tag.user_id == user_id, Tag.name == name))
    if result.scalar_one_or_none() is not None:
        raise ConflictError(f"Tag '{name}' already exists")


@router.get("/", response_model=list[TagRead])
async def list_tags(current_user: CurrentUser, db: DbSession) -> list[TagRead]:
    """List the user's tags, most used first."""
    result = await db.execute(
        select(Tag).where(Tag.user_id == current_user.id).order_by(Tag.count.desc(), Tag.name)
    )
    return [TagRead.model_validate(t) for t in result.scalars()]


@router.post("/", response_model=TagRead, status_code=status.HTTP_201_CREATED)
async def create_tag(data: TagCreate, current_user: CurrentUser, db: DbSession) -> TagRead:
    """Create a tag. Names are unique per user."""
    await _ensure_name_free(db, current_user.id, data.name)
    tag = Tag(user_id=current_user.id, name=data.name, color=data.color, count=0)
    db.add(tag)
    await db.commit()
    return TagRead.model_validate(tag)


@router.patch("/{tag_id}", response_model=TagRead)
async def update_tag(
    tag_id: UUID,
    data: TagUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> TagRead:
    """Rename or recolor a tag. A rename carries over to tagged materials."""
    tag = await get_user_resource_or_404(db, Tag, tag_id, current_user.id)
    updates = data.model_dump(exclude_unset=True)
    new_name = updates.pop("name", None)
    if new_name and new_name != tag.name:
        await _ensure_name_free(db, current_user.id, new_name)
        await rename_tag(db, tag, new_name)
    for key, value in updates.items():
        if value is not None or key == "color":
            setattr(tag, key, value)
    await db.commit()
    return TagRead.model_validate(tag)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(tag_id: UUID, current_user: CurrentUser, db: DbSession) -> None:
    """Delete a tag from the catalogue. Materials keep their tag names."""
    tag = await get_user_resource_or_404(db, Tag, tag_id, current_user.id)
    await db.delete(tag)
    await db.commit()
