"""Study groups: membership, chat and shared files."""

from uuid import UUID

from sqlalchemy import select
from sse_starlette.sse import EventSourceResponse

from studpal.api.routes import groups as groups_routes
from studpal.db.models import Notification
from studpal.services.pubsub import group_channel
from studpal.services.s3 import user_prefix


async def create_group(client, headers, **fields):
    response = await client.post("/groups/", json={"name": "Calc study", **fields}, headers=headers)
    assert response.status_code == 201
    return response.json()


async def test_create_makes_owner_a_member(client, auth_headers, user):
    group = await create_group(client, auth_headers, description="Weekly problem sets")
    assert group["owner_id"] == str(user.id)
    assert group["member_count"] == 1
    assert group["is_member"] is True


async def test_search_hides_other_users_private_groups(client, auth_headers, other_headers):
    await create_group(client, auth_headers, name="Organic chemistry")
    await create_group(client, auth_headers, name="Secret chem club", is_private=True)
    await create_group(client, other_headers, name="History")

    mine = await client.get("/groups/", params={"query": "chem"}, headers=auth_headers)
    assert sorted(g["name"] for g in mine.json()) == ["Organic chemistry", "Secret chem club"]

    theirs = await client.get("/groups/", params={"query": "chem"}, headers=other_headers)
    assert [g["name"] for g in theirs.json()] == ["Organic chemistry"]


async def test_private_group_is_not_found_for_outsiders(client, auth_headers, other_headers):
    group = await create_group(client, auth_headers, is_private=True)
    assert (await client.get(f"/groups/{group['id']}", headers=other_headers)).status_code == 404
    assert (await client.post(f"/groups/{group['id']}/join", headers=other_headers)).status_code == 403


async def test_join_notifies_owner(client, auth_headers, other_headers, session_factory, user):
    group = await create_group(client, auth_headers)

    joined = await client.post(f"/groups/{group['id']}/join", headers=other_headers)
    assert joined.status_code == 201
    assert joined.json()["role"] == "member"

    again = await client.post(f"/groups/{group['id']}/join", headers=other_headers)
    assert again.status_code == 409

    detail = await client.get(f"/groups/{group['id']}", headers=other_headers)
    assert detail.json()["member_count"] == 2

    async with session_factory() as session:
        result = await session.execute(select(Notification).where(Notification.user_id == user.id))
        [notification] = result.scalars().all()
    assert notification.kind == "group_join"
    assert "Calc study" in notification.content


async def test_members_can_leave_but_owner_cannot(client, auth_headers, other_headers, user, other_user):
    group = await create_group(client, auth_headers)
    await client.post(f"/groups/{group['id']}/join", headers=other_headers)

    owner_leaves = await client.delete(f"/groups/{group['id']}/members/{user.id}", headers=auth_headers)
    assert owner_leaves.status_code == 400

    kicked_by_member = await client.delete(
        f"/groups/{group['id']}/members/{user.id}", headers=other_headers
    )
    assert kicked_by_member.status_code == 403

    leaves = await client.delete(f"/groups/{group['id']}/members/{other_user.id}", headers=other_headers)
    assert leaves.status_code == 204
    assert (await client.get(f"/groups/{group['id']}/messages", headers=other_headers)).status_code == 403


async def test_non_members_cannot_use_chat(client, auth_headers, other_headers):
    group = await create_group(client, auth_headers)
    url = f"/groups/{group['id']}/messages"

    assert (await client.get(url, headers=other_headers)).status_code == 403
    assert (await client.post(url, json={"content": "hi"}, headers=other_headers)).status_code == 403
    assert (await client.get(f"{url}/stream", headers=other_headers)).status_code == 403


async def test_chat_unknown_group_is_not_found(client, auth_headers):
    url = "/groups/00000000-0000-0000-0000-000000000000/messages"
    assert (await client.get(url, headers=auth_headers)).status_code == 404


async def test_message_is_stored_then_published(client, auth_headers, broker, user):
    group = await create_group(client, auth_headers)
    url = f"/groups/{group['id']}/messages"

    async with broker.subscribe(group_channel(group["id"])) as queue:
        first = await client.post(url, json={"content": "hello"}, headers=auth_headers)
        second = await client.post(url, json={"content": "anyone?"}, headers=auth_headers)
        assert first.status_code == second.status_code == 201

        published = [queue.get_nowait(), queue.get_nowait()]

    assert [m["event"] for m in published] == ["new-message", "new-message"]
    assert [m["data"]["content"] for m in published] == ["hello", "anyone?"]
    assert published[0]["data"]["id"] == first.json()["id"]
    assert published[0]["data"]["author_name"] == user.name

    history = await client.get(url, headers=auth_headers)
    assert [m["content"] for m in history.json()] == ["hello", "anyone?"]


async def test_empty_message_is_rejected(client, auth_headers):
    group = await create_group(client, auth_headers)
    response = await client.post(
        f"/groups/{group['id']}/messages", json={"content": "   "}, headers=auth_headers
    )
    assert response.status_code == 400


async def test_shared_files(client, auth_headers, other_headers, user, other_user, storage):
    group = await create_group(client, auth_headers)
    await client.post(f"/groups/{group['id']}/join", headers=other_headers)
    url = f"/groups/{group['id']}/files"

    file_id = f"{user_prefix(other_user.id)}files/abc_notes.pdf"
    shared = await client.post(
        url,
        json={"file_id": file_id, "file_name": "notes.pdf", "file_type": "application/pdf", "file_size": 2048},
        headers=other_headers,
    )
    assert shared.status_code == 201

    foreign = await client.post(
        url,
        json={"file_id": file_id, "file_name": "notes.pdf", "file_type": "application/pdf", "file_size": 2048},
        headers=auth_headers,
    )
    assert foreign.status_code == 400

    listed = await client.get(url, headers=auth_headers)
    assert [f["file_name"] for f in listed.json()] == ["notes.pdf"]

    # Members may download files shared with the group
    download = await client.get("/files/download-url", params={"file_id": file_id}, headers=auth_headers)
    assert download.status_code == 200

    stats = await client.get("/stats", headers=auth_headers)
    assert stats.json()["shared_with_me"] == 1

    # The group owner may remove any shared file
    removed = await client.delete(f"{url}/{shared.json()['id']}", headers=auth_headers)
    assert removed.status_code == 204
    assert storage.deleted == [file_id]
    assert (await client.get(url, headers=auth_headers)).json() == []


async def test_shared_file_limits(client, auth_headers, user):
    group = await create_group(client, auth_headers)
    url = f"/groups/{group['id']}/files"
    base = {"file_id": f"{user_prefix(user.id)}files/x", "file_name": "x", "file_size": 10}

    bad_type = await client.post(url, json={**base, "file_type": "application/x-msdownload"}, headers=auth_headers)
    assert bad_type.status_code == 400

    too_big = await client.post(
        url, json={**base, "file_type": "application/pdf", "file_size": 50 * 1024 * 1024}, headers=auth_headers
    )
    assert too_big.status_code == 400


async def test_deleting_material_keeps_blob_shared_with_group(client, auth_headers, user, storage):
    file_id = f"{user_prefix(user.id)}files/abc_notes.pdf"
    material = await client.post(
        "/materials/",
        json={"title": "Notes", "type": "pdf", "priority": "medium", "file_id": file_id, "file_size": 2048},
        headers=auth_headers,
    )
    assert material.status_code == 201

    group = await create_group(client, auth_headers)
    url = f"/groups/{group['id']}/files"
    shared = await client.post(
        url,
        json={"file_id": file_id, "file_name": "notes.pdf", "file_type": "application/pdf", "file_size": 2048},
        headers=auth_headers,
    )
    assert shared.status_code == 201

    removed = await client.delete(f"/materials/{material.json()['id']}", headers=auth_headers)
    assert removed.status_code == 204
    assert storage.deleted == []
    assert [f["file_id"] for f in (await client.get(url, headers=auth_headers)).json()] == [file_id]

    # The last reference going away removes the blob
    unshared = await client.delete(f"{url}/{shared.json()['id']}", headers=auth_headers)
    assert unshared.status_code == 204
    assert storage.deleted == [file_id]


async def test_stream_releases_database_session(client, auth_headers, user, session_factory, broker):
    group = await create_group(client, auth_headers)

    async with session_factory() as session:
        response = await groups_routes.stream_messages(UUID(group["id"]), user, session, broker)
        assert isinstance(response, EventSourceResponse)
        assert not session.in_transaction()
