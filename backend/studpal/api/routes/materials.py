"""Material CRUD routes."""

from uuid import UUID

from fastapi import APIRouter, status

from studpal.api.deps import CurrentUser, DbSession, Storage, get_user_resource_or_404
from studpal.db.models import Material
from studpal.schemas.materials import MaterialRead, MaterialSubmission, MaterialUpdate
from studpal.services import materials as material_service

router = APIRouter(prefix="/materials", tags=["materials"])


@router.get("/", response_model=list[MaterialRead])
async def list_materials(
    current_user: CurrentUser,
    db: DbSession,
    type: str | None = None,
    tag: str | None = None,
    priority: str | None = None,
    q: str | None = None,
    sort: str | None = None,
) -> list[MaterialRead]:
    """
    List materials for the current user.

    Filters (combined with AND):
    - type: note, pdf or link
    - tag: materials carrying this tag
    - priority: high, medium or low
    - q: case-insensitive search in title, content and url
    - sort: newest (default), oldest or priority

    Always returns a list, empty when nothing matches.
    """
    filters = material_service.parse_filters(type=type, tag=tag, priority=priority, q=q, sort=sort)
    materials = await material_service.list_materials(db, current_user.id, filters)
    return [MaterialRead.model_validate(m) for m in materials]


@router.post("/", response_model=MaterialRead, status_code=status.HTTP_201_CREATED)
async def create_material(
    data: MaterialSubmission,
    current_user: CurrentUser,
    db: DbSession,
) -> MaterialRead:
    """
    Create a note, PDF or link.

    - note requires content, pdf requires file_id (from /files/upload-url),
      link requires an http(s) url
    - tags may be a list or a comma-separated string
    - 400 on validation failure, 409 when the title or file is already used
    """
    material = await material_service.create_material(db, current_user, data)
    return MaterialRead.model_validate(material)


@router.get("/{material_id}", response_model=MaterialRead)
async def get_material(
    material_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> MaterialRead:
    """Get a specific material by ID."""
    material = await get_user_resource_or_404(db, Material, material_id, current_user.id)
    return MaterialRead.model_validate(material)


@router.patch("/{material_id}", response_model=MaterialRead)
async def update_material(
    material_id: UUID,
    data: MaterialUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> MaterialRead:
    """Update a material. The type cannot change."""
    material = await material_service.update_material(db, current_user, material_id, data)
    return MaterialRead.model_validate(material)


@router.delete("/{material_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_material(
    material_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    storage: Storage,
) -> None:
    """Delete a material and its stored file, if any."""
    await material_service.delete_material(db, current_user, material_id, storage)
