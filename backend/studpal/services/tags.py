"""Tag bookkeeping shared by materials and onboarding."""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studpal.db.models import Material, MaterialTag, Tag
from studpal.errors import ValidationError

MAX_TAG_LENGTH = 100


def normalize_tags(raw: str | list[str] | None) -> list[str]:
    """
    Normalize tag input to a deduplicated list of trimmed, non-empty names.

    Accepts a comma-separated string or a list; first occurrence wins:

        >>> normalize_tags("a, b, ,a")
        ['a', 'b']
    """
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else raw

    names: dict[str, None] = {}
    for item in items:
        name = item.strip()
        if not name:
            continue
        if len(name) > MAX_TAG_LENGTH:
            raise ValidationError(f"Tag '{name[:20]}...' exceeds {MAX_TAG_LENGTH} characters")
        names.setdefault(name, None)
    return list(names)


async def adjust_tag_counts(
    db: AsyncSession,
    user_id: UUID,
    added: Iterable[str] = (),
    removed: Iterable[str] = (),
) -> None:
    """
    Keep the per-user tag catalogue in step with material tagging.

    Unknown tags are created on first use. Counts are advisory: they are
    never decremented below zero and are not reconciled after failures.
    """
    added = list(added)
    removed = list(removed)
    names = set(added) | set(removed)
    if not names:
        return

    result = await db.execute(select(Tag).where(Tag.user_id == user_id, Tag.name.in_(names)))
    tags = {tag.name: tag for tag in result.scalars()}

    for name in added:
        tag = tags.get(name)
        if tag is None:
            tag = Tag(user_id=user_id, name=name, count=0)
            db.add(tag)
            tags[name] = tag
        tag.count += 1

    for name in removed:
        tag = tags.get(name)
        if tag is not None and tag.count > 0:
            tag.count -= 1


async def create_missing_tags(db: AsyncSession, user_id: UUID, names: Iterable[str]) -> list[Tag]:
    """Create catalogue entries for names the user does not have yet."""
    names = list(dict.fromkeys(names))
    result = await db.execute(select(Tag.name).where(Tag.user_id == user_id, Tag.name.in_(names)))
    existing = set(result.scalars())

    created = [Tag(user_id=user_id, name=name, count=0) for name in names if name not in existing]
    db.add_all(created)
    return created


async def rename_tag(db: AsyncSession, tag: Tag, new_name: str) -> None:
    """
    Rename a catalogue tag and the matching tags on the owner's materials.

    A material already tagged with the new name keeps its existing entry
    and drops the old one. The count is recomputed from the materials.
    """
    owned = select(Material.id).where(Material.user_id == tag.user_id)
    has_new_name = select(MaterialTag.material_id).where(
        MaterialTag.name == new_name, MaterialTag.material_id.in_(owned)
    )

    await db.execute(
        delete(MaterialTag)
        .where(MaterialTag.name == tag.name, MaterialTag.material_id.in_(has_new_name))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(MaterialTag)
        .where(MaterialTag.name == tag.name, MaterialTag.material_id.in_(owned))
        .values(name=new_name)
        .execution_options(synchronize_session=False)
    )

    result = await db.execute(
        select(func.count()).select_from(MaterialTag).where(
            MaterialTag.name == new_name, MaterialTag.material_id.in_(owned)
        )
    )
    tag.name = new_name
    tag.count = result.scalar_one()
