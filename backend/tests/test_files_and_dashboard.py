"""Presigned uploads, downloads, storage usage and dashboard stats."""

from studpal.services.s3 import StorageError, user_prefix


async def test_upload_url_is_scoped_to_user(client, auth_headers, user):
    response = await client.post(
        "/files/upload-url",
        json={"filename": "week 1 notes.pdf", "content_type": "application/pdf"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["file_id"].startswith(f"{user_prefix(user.id)}files/")
    assert body["file_id"].endswith("_week_1_notes.pdf")
    assert body["fields"]["key"] == body["file_id"]


async def test_upload_url_rejects_unknown_type(client, auth_headers):
    response = await client.post(
        "/files/upload-url",
        json={"filename": "setup.exe", "content_type": "application/x-msdownload"},
        headers=auth_headers,
    )
    assert response.status_code == 400


async def test_upload_url_storage_failure(client, auth_headers, storage):
    async def broken(*args, **kwargs):
        raise StorageError("bucket missing")

    storage.generate_presigned_upload_url = broken
    response = await client.post("/files/upload-url", json={"filename": "a.pdf"}, headers=auth_headers)
    assert response.status_code == 500


async def test_download_url_for_other_users_file_is_not_found(client, auth_headers, other_user):
    response = await client.get(
        "/files/download-url",
        params={"file_id": f"{user_prefix(other_user.id)}files/x.pdf"},
        headers=auth_headers,
    )
    assert response.status_code == 404


async def test_storage_usage_sums_pdf_sizes(client, auth_headers, user, storage):
    known = f"{user_prefix(user.id)}files/a.pdf"
    looked_up = f"{user_prefix(user.id)}files/b.pdf"
    missing = f"{user_prefix(user.id)}files/c.pdf"
    storage.objects[looked_up] = 3000

    for title, file_id, size in [("A", known, 1000), ("B", looked_up, None), ("C", missing, None)]:
        payload = {"title": title, "type": "pdf", "priority": "low", "file_id": file_id}
        if size is not None:
            payload["file_size"] = size
        assert (await client.post("/materials/", json=payload, headers=auth_headers)).status_code == 201

    response = await client.get("/storage", headers=auth_headers)
    body = response.json()
    assert body["used"] == 4000
    assert body["total"] == 5 * 1024 * 1024 * 1024
    assert 0 < body["percentage"] < 1

    # Looked-up sizes are cached on the material
    materials = (await client.get("/materials/", params={"q": "B"}, headers=auth_headers)).json()
    assert {m["title"]: m["file_size"] for m in materials}["B"] == 3000


async def test_stats(client, auth_headers):
    for title, priority in [("One", "high"), ("Two", "high"), ("Three", "low")]:
        await client.post(
            "/materials/",
            json={"title": title, "type": "note", "content": "x", "priority": priority},
            headers=auth_headers,
        )

    response = await client.get("/stats", headers=auth_headers)
    assert response.json() == {
        "total_materials": 3,
        "due_this_week": 2,
        "shared_with_me": 0,
        "recent_activity": 3,
    }
