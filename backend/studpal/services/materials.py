"""
Material validation, storage and querying.

Layers, leaves first:
- validate_submission: pure rule checks producing a MaterialDraft
- find_duplicate / build_material_query: owner-scoped SQL
- create/update/delete_material: the operations routes call
"""

import logging
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import Select, case, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from studpal.api.deps import get_user_resource_or_404
from studpal.db.models import Material, MaterialTag, MaterialType, Priority, SharedFile, User, utcnow
from studpal.errors import ConflictError, ValidationError
from studpal.schemas.materials import (
    MaterialDraft,
    MaterialFilters,
    MaterialSubmission,
    MaterialUpdate,
    check_url,
    material_draft_adapter,
)
from studpal.services.profiles import ensure_profile
from studpal.services.s3 import S3Service, StorageError, user_prefix
from studpal.services.tags import adjust_tag_counts, normalize_tags

logger = logging.getLogger(__name__)

MATERIAL_TYPES = tuple(t.value for t in MaterialType)
PRIORITIES = tuple(p.value for p in Priority)
PRIORITY_RANK = {Priority.HIGH.value: 3, Priority.MEDIUM.value: 2, Priority.LOW.value: 1}

# Field each material type requires, with the message used when it is missing
_REQUIRED_PAYLOAD = {
    "note": ("content", "Content is required for notes"),
    "pdf": ("file_id", "A file reference is required for PDF materials"),
    "link": ("url", "A URL is required for links"),
}


def _first_error(error: PydanticValidationError) -> str:
    detail = error.errors()[0]
    field = ".".join(str(part) for part in detail["loc"][1:] or detail["loc"])
    return f"{field}: {detail['msg']}" if field else detail["msg"]


# =============================================================================
# VALIDATION
# =============================================================================


def validate_submission(submission: MaterialSubmission, owner_id: UUID) -> MaterialDraft:
    """
    Turn a raw submission into a validated, normalized draft.

    Rules, in order:
    1. title, type and priority are present; priority is high/medium/low
    2. the type's own payload field is present (note->content,
       pdf->file_id, link->url); unknown types are rejected; a link's url
       must be an http(s) URL; a pdf's file must be in the owner's storage
    3. tags are normalized (see normalize_tags)

    Fields that belong to other types are dropped. Raises ValidationError.
    """
    missing = [name for name in ("title", "type", "priority") if not getattr(submission, name)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    if submission.priority not in PRIORITIES:
        raise ValidationError(
            f"Invalid priority '{submission.priority}'. Expected one of: {', '.join(PRIORITIES)}"
        )

    if submission.type not in MATERIAL_TYPES:
        raise ValidationError(
            f"Invalid material type '{submission.type}'. Expected one of: {', '.join(MATERIAL_TYPES)}"
        )
    field, message = _REQUIRED_PAYLOAD[submission.type]
    if not getattr(submission, field):
        raise ValidationError(message)
    if submission.type == "pdf" and not submission.file_id.startswith(user_prefix(owner_id)):
        raise ValidationError("File reference does not belong to the current user")

    data = {
        "title": submission.title,
        "type": submission.type,
        "priority": submission.priority,
        "tags": normalize_tags(submission.tags),
        field: getattr(submission, field),
    }
    if submission.type == "pdf":
        data["file_size"] = submission.file_size

    try:
        return material_draft_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e)) from e


def parse_filters(**params: str | None) -> MaterialFilters:
    """Build MaterialFilters from query parameters, rejecting unknown values with a 400."""
    try:
        return MaterialFilters.model_validate({k: v for k, v in params.items() if v is not None})
    except PydanticValidationError as e:
        raise ValidationError(_first_error(e)) from e


# =============================================================================
# QUERIES
# =============================================================================


async def find_duplicate(
    db: AsyncSession,
    owner_id: UUID,
    title: str,
    file_id: str | None = None,
    exclude_id: UUID | None = None,
) -> Material | None:
    """Find an owner's material sharing the title, or the file reference when given."""
    match = Material.title == title
    if file_id:
        match = or_(match, Material.file_id == file_id)

    query = select(Material).where(Material.user_id == owner_id, match)
    if exclude_id is not None:
        query = query.where(Material.id != exclude_id)

    result = await db.execute(query.limit(1))
    return result.scalars().first()


async def blob_in_use(db: AsyncSession, file_id: str) -> bool:
    """Whether any material or group share still references the stored file."""
    result = await db.execute(
        select(Material.id)
        .where(Material.file_id == file_id)
        .union_all(select(SharedFile.id).where(SharedFile.file_id == file_id))
        .limit(1)
    )
    return result.first() is not None


def build_material_query(owner_id: UUID, filters: MaterialFilters) -> Select:
    """
    Build the owner-scoped, filtered and sorted material query.

    Filters compose with AND. Every sort ends with id as tie-break so the
    order is deterministic.
    """
    query = select(Material).where(Material.user_id == owner_id)

    if filters.type:
        query = query.where(Material.type == filters.type)
    if filters.priority:
        query = query.where(Material.priority == filters.priority)
    if filters.tag:
        query = query.where(Material.tag_links.any(MaterialTag.name == filters.tag))
    if filters.q:
        query = query.where(
            or_(
                Material.title.icontains(filters.q, autoescape=True),
                Material.content.icontains(filters.q, autoescape=True),
                Material.url.icontains(filters.q, autoescape=True),
            )
        )

    if filters.sort == "oldest":
        return query.order_by(Material.created_at.asc(), Material.id.asc())
    if filters.sort == "priority":
        rank = case(PRIORITY_RANK, value=Material.priority, else_=0)
        return query.order_by(rank.desc(), Material.created_at.desc(), Material.id.asc())
    return query.order_by(Material.created_at.desc(), Material.id.asc())


async def list_materials(db: AsyncSession, owner_id: UUID, filters: MaterialFilters) -> list[Material]:
    result = await db.execute(build_material_query(owner_id, filters))
    return list(result.scalars().all())


# =============================================================================
# MUTATIONS
# =============================================================================


def _set_tags(material: Material, names: list[str]) -> None:
    # Reuse surviving rows so the (material_id, name) constraint never sees a
    # delete and an insert of the same name in one flush.
    existing = {link.name: link for link in material.tag_links}
    links = []
    for position, name in enumerate(names):
        link = existing.pop(name, None) or MaterialTag(name=name)
        link.position = position
        links.append(link)
    material.tag_links = links


async def create_material(db: AsyncSession, user: User, submission: MaterialSubmission) -> Material:
    """
    Validate and store a new material for the user.

    Raises ValidationError for malformed submissions and ConflictError when
    the owner already has a material with this title or file.
    """
    draft = validate_submission(submission, user.id)

    duplicate = await find_duplicate(db, user.id, draft.title, getattr(draft, "file_id", None))
    if duplicate is not None:
        raise ConflictError(f"A material titled '{duplicate.title}' or using this file already exists")

    await ensure_profile(db, user)

    material = Material(user_id=user.id, **draft.model_dump(exclude={"tags"}))
    _set_tags(material, draft.tags)
    db.add(material)
    await adjust_tag_counts(db, user.id, added=draft.tags)
    await db.commit()

    logger.info("Created %s material %s for user %s", material.type, material.id, user.id)
    return material


async def update_material(
    db: AsyncSession, user: User, material_id: UUID, update: MaterialUpdate
) -> Material:
    """
    Apply a partial update. Type is immutable and only the type's own
    payload field may change.
    """
    material = await get_user_resource_or_404(db, Material, material_id, user.id)
    data = update.model_dump(exclude_unset=True)

    if "type" in data and data.pop("type") != material.type:
        raise ValidationError("Material type cannot be changed")
    if "file_id" in data:
        raise ValidationError("file_id: a material's file cannot be changed")

    if "title" in data:
        title = data.pop("title")
        if not title:
            raise ValidationError("title: must not be empty")
        if len(title) > 255:
            raise ValidationError("title: must be at most 255 characters")
        if title != material.title and await find_duplicate(db, user.id, title, exclude_id=material.id):
            raise ConflictError(f"A material titled '{title}' already exists")
        material.title = title

    if "priority" in data:
        priority = data.pop("priority")
        if priority not in PRIORITIES:
            raise ValidationError(
                f"Invalid priority '{priority}'. Expected one of: {', '.join(PRIORITIES)}"
            )
        material.priority = priority

    if "content" in data:
        content = data.pop("content")
        if material.type != "note":
            raise ValidationError("Only notes have content")
        if not content:
            raise ValidationError(_REQUIRED_PAYLOAD["note"][1])
        material.content = content

    if "url" in data:
        url = data.pop("url")
        if material.type != "link":
            raise ValidationError("Only links have a URL")
        if not url:
            raise ValidationError(_REQUIRED_PAYLOAD["link"][1])
        try:
            material.url = check_url(url)
        except ValueError as e:
            raise ValidationError(f"url: {e}") from e

    if "file_size" in data:
        file_size = data.pop("file_size")
        if material.type != "pdf":
            raise ValidationError("Only PDF materials have a file size")
        if file_size is not None and file_size < 0:
            raise ValidationError("file_size: must be greater than or equal to 0")
        material.file_size = file_size

    if "tags" in data:
        names = normalize_tags(data.pop("tags"))
        previous = material.tags
        _set_tags(material, names)
        await adjust_tag_counts(
            db,
            user.id,
            added=[n for n in names if n not in previous],
            removed=[n for n in previous if n not in names],
        )

    material.updated_at = utcnow()
    await db.commit()
    return material


async def delete_material(db: AsyncSession, user: User, material_id: UUID, storage: S3Service) -> None:
    """
    Delete a material and its stored file.

    The file is kept while a group share still references it. The file
    delete is best-effort: a storage failure is logged with the orphaned
    key and the record is still removed.
    """
    material = await get_user_resource_or_404(db, Material, material_id, user.id)

    await adjust_tag_counts(db, user.id, removed=material.tags)
    await db.delete(material)
    await db.flush()

    if material.file_id and not await blob_in_use(db, material.file_id):
        try:
            await storage.delete_object(material.file_id)
        except StorageError:
            logger.warning(
                "Orphaned stored file %s while deleting material %s",
                material.file_id,
                material.id,
                exc_info=True,
            )

    await db.commit()
    logger.info("Deleted material %s for user %s", material_id, user.id)
