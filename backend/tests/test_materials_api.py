"""Material endpoints."""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update

from studpal.db.models import Material, Tag, UserProfile
from studpal.services.s3 import user_prefix


async def create(client, headers, **fields):
    payload = {"priority": "medium", **fields}
    return await client.post("/materials/", json=payload, headers=headers)


async def test_requires_authentication(client):
    response = await client.get("/materials/")
    assert response.status_code == 401


async def test_create_note(client, auth_headers, user):
    response = await create(
        client, auth_headers, title="Lecture 1", type="note", content="Limits", tags="calc, week1, calc"
    )
    assert response.status_code == 201
    body = response.json()
    assert body["title"] == "Lecture 1"
    assert body["user_id"] == str(user.id)
    assert body["tags"] == ["calc", "week1"]
    assert body["url"] is None
    assert body["file_id"] is None


async def test_create_rejects_invalid_submission(client, auth_headers):
    response = await create(client, auth_headers, title="No body", type="note")
    assert response.status_code == 400
    assert "Content is required" in response.json()["detail"]

    response = await create(client, auth_headers, title="Bad link", type="link", url="ftp//nope")
    assert response.status_code == 400


async def test_duplicate_title_conflicts(client, auth_headers, other_headers):
    first = await create(client, auth_headers, title="Syllabus", type="link", url="https://example.com")
    assert first.status_code == 201

    again = await create(client, auth_headers, title="Syllabus", type="note", content="copy")
    assert again.status_code == 409

    # Titles are unique per owner only
    elsewhere = await create(client, other_headers, title="Syllabus", type="note", content="mine")
    assert elsewhere.status_code == 201


async def test_duplicate_file_conflicts(client, auth_headers, user):
    file_id = f"{user_prefix(user.id)}files/abc_slides.pdf"
    first = await create(client, auth_headers, title="Slides", type="pdf", file_id=file_id)
    assert first.status_code == 201

    again = await create(client, auth_headers, title="Slides v2", type="pdf", file_id=file_id)
    assert again.status_code == 409


async def test_list_is_owner_scoped_and_filtered_by_type(client, auth_headers, other_headers):
    await create(client, auth_headers, title="Note", type="note", content="x")
    await create(client, auth_headers, title="Link", type="link", url="https://example.com")
    await create(client, other_headers, title="Their note", type="note", content="y")

    response = await client.get("/materials/", params={"type": "note"}, headers=auth_headers)
    assert response.status_code == 200
    assert [m["title"] for m in response.json()] == ["Note"]

    response = await client.get("/materials/", headers=auth_headers)
    assert sorted(m["title"] for m in response.json()) == ["Link", "Note"]


async def test_priority_sort(client, auth_headers):
    await create(client, auth_headers, title="A", type="note", content="a", priority="low")
    await create(client, auth_headers, title="B", type="note", content="b", priority="high")

    response = await client.get("/materials/", params={"sort": "priority"}, headers=auth_headers)
    assert [m["title"] for m in response.json()] == ["B", "A"]


async def test_sorts_order_ties_by_creation_time(client, auth_headers, session_factory):
    ids = {}
    for title, priority in [("H1", "high"), ("L", "low"), ("H2", "high")]:
        created = await create(client, auth_headers, title=title, type="note", content="x", priority=priority)
        ids[title] = UUID(created.json()["id"])

    async with session_factory() as session:
        for day, title in enumerate(["H1", "L", "H2"], start=1):
            await session.execute(
                update(Material)
                .where(Material.id == ids[title])
                .values(created_at=datetime(2030, 1, day, tzinfo=timezone.utc))
            )
        await session.commit()

    async def titles(**params):
        response = await client.get("/materials/", params=params, headers=auth_headers)
        assert response.status_code == 200
        return [m["title"] for m in response.json()]

    assert await titles() == ["H2", "L", "H1"]
    assert await titles(sort="newest") == ["H2", "L", "H1"]
    assert await titles(sort="oldest") == ["H1", "L", "H2"]
    assert await titles(sort="priority") == ["H2", "H1", "L"]
    assert await titles(priority="high") == ["H2", "H1"]
    assert await titles(priority="low", sort="priority") == ["L"]


async def test_tag_and_search_filters_combine(client, auth_headers):
    await create(client, auth_headers, title="Derivatives", type="note", content="chain rule", tags=["calc"])
    await create(client, auth_headers, title="Integrals", type="note", content="by parts", tags=["calc"])
    await create(client, auth_headers, title="Essay", type="note", content="chain of events", tags=["history"])

    response = await client.get("/materials/", params={"tag": "calc", "q": "CHAIN"}, headers=auth_headers)
    assert [m["title"] for m in response.json()] == ["Derivatives"]

    response = await client.get("/materials/", params={"q": "100%"}, headers=auth_headers)
    assert response.json() == []


async def test_invalid_filter_is_bad_request(client, auth_headers):
    response = await client.get("/materials/", params={"sort": "alphabetical"}, headers=auth_headers)
    assert response.status_code == 400


async def test_other_users_material_is_not_found(client, auth_headers, other_headers):
    created = await create(client, auth_headers, title="Private", type="note", content="x")
    material_id = created.json()["id"]

    assert (await client.get(f"/materials/{material_id}", headers=other_headers)).status_code == 404
    assert (await client.delete(f"/materials/{material_id}", headers=other_headers)).status_code == 404
    assert (await client.get(f"/materials/{material_id}", headers=auth_headers)).status_code == 200


async def test_update_keeps_type_and_retags(client, auth_headers, session_factory, user):
    created = await create(client, auth_headers, title="Draft", type="note", content="x", tags="a, b")
    material_id = created.json()["id"]

    response = await client.patch(
        f"/materials/{material_id}", json={"type": "link"}, headers=auth_headers
    )
    assert response.status_code == 400

    response = await client.patch(
        f"/materials/{material_id}", json={"url": "https://example.com"}, headers=auth_headers
    )
    assert response.status_code == 400

    response = await client.patch(
        f"/materials/{material_id}",
        json={"title": "Final", "tags": ["b", "c"], "priority": "high"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Final"
    assert body["tags"] == ["b", "c"]
    assert body["priority"] == "high"

    async with session_factory() as session:
        result = await session.execute(select(Tag).where(Tag.user_id == user.id))
        counts = {tag.name: tag.count for tag in result.scalars()}
    assert counts == {"a": 0, "b": 1, "c": 1}


async def test_update_rejects_file_change(client, auth_headers, user):
    file_id = f"{user_prefix(user.id)}files/abc_notes.pdf"
    created = await create(client, auth_headers, title="Notes", type="pdf", file_id=file_id)
    material_id = created.json()["id"]

    response = await client.patch(
        f"/materials/{material_id}",
        json={"file_id": f"{user_prefix(user.id)}files/def_other.pdf"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert "file_id" in response.json()["detail"]

    fetched = await client.get(f"/materials/{material_id}", headers=auth_headers)
    assert fetched.json()["file_id"] == file_id


async def test_delete_removes_stored_file(client, auth_headers, user, storage):
    file_id = f"{user_prefix(user.id)}files/abc_notes.pdf"
    storage.objects[file_id] = 1024
    created = await create(client, auth_headers, title="Notes", type="pdf", file_id=file_id)

    response = await client.delete(f"/materials/{created.json()['id']}", headers=auth_headers)
    assert response.status_code == 204
    assert storage.deleted == [file_id]
    assert (await client.get(f"/materials/{created.json()['id']}", headers=auth_headers)).status_code == 404


async def test_delete_survives_storage_failure(client, auth_headers, user, storage):
    storage.fail_deletes = True
    file_id = f"{user_prefix(user.id)}files/abc_notes.pdf"
    created = await create(client, auth_headers, title="Notes", type="pdf", file_id=file_id)

    response = await client.delete(f"/materials/{created.json()['id']}", headers=auth_headers)
    assert response.status_code == 204
    assert (await client.get("/materials/", headers=auth_headers)).json() == []


async def test_first_material_provisions_profile(client, auth_headers, session_factory, user):
    await create(client, auth_headers, title="First", type="note", content="x")

    async with session_factory() as session:
        profile = await session.get(UserProfile, user.id)
    assert profile is not None
    assert profile.display_name == user.name
    assert profile.onboarded is False
