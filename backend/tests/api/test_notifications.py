"""HTTP tests for the /notifications endpoints (in-memory document store)."""

from __future__ import annotations

from shelter_admin.core.exceptions import IndexMissingError, PersistenceError


class TestListNotifications:
    async def test_requires_auth(self, client):
        assert (await client.get("/api/v1/notifications")).status_code == 401

    async def test_roster(self, client, admin_user, auth_headers, create_notification):
        await create_notification(user_id=admin_user["id"], minutes=1, title="older", read=True)
        await create_notification(user_id=admin_user["id"], minutes=2, title="newer")
        await create_notification(user_id="someone-else", title="not mine")

        response = await client.get("/api/v1/notifications", headers=auth_headers(admin_user))

        assert response.status_code == 200
        body = response.json()
        assert [n["title"] for n in body["items"]] == ["newer", "older"]
        assert body["unread_count"] == 1
        assert body["source"] == "ordered"

    async def test_index_missing_still_served(
        self, client, admin_user, auth_headers, create_notification, store
    ):
        await create_notification(user_id=admin_user["id"], minutes=1, title="a")
        await create_notification(user_id=admin_user["id"], minutes=2, title="b")
        store.query_failures.append(IndexMissingError("index required"))

        body = (await client.get("/api/v1/notifications", headers=auth_headers(admin_user))).json()

        assert body["source"] == "client_sorted"
        assert [n["title"] for n in body["items"]] == ["b", "a"]

    async def test_store_failure_gives_empty_roster(
        self, client, admin_user, auth_headers, create_notification, store
    ):
        await create_notification(user_id=admin_user["id"])
        store.query_failures.append(PersistenceError("down"))

        response = await client.get("/api/v1/notifications", headers=auth_headers(admin_user))

        assert response.status_code == 200
        assert response.json() == {"items": [], "unread_count": 0, "source": "empty"}

    async def test_malformed_record_does_not_break_roster(
        self, client, admin_user, auth_headers, create_notification, store
    ):
        await create_notification(user_id=admin_user["id"], title="ok")
        await store.create(
            "notifications",
            {"title": "bad", "message": "", "type": "critical", "user_id": admin_user["id"]},
        )

        response = await client.get("/api/v1/notifications", headers=auth_headers(admin_user))

        assert response.status_code == 200
        assert [n["title"] for n in response.json()["items"]] == ["ok"]


class TestUnreadCount:
    async def test_count(self, client, admin_user, auth_headers, create_notification):
        await create_notification(user_id=admin_user["id"], minutes=1)
        await create_notification(user_id=admin_user["id"], minutes=2, read=True)
        response = await client.get(
            "/api/v1/notifications/unread-count", headers=auth_headers(admin_user)
        )
        assert response.json() == {"count": 1}


class TestMarkRead:
    async def test_mark_read(self, client, admin_user, auth_headers, create_notification):
        doc_id = await create_notification(user_id=admin_user["id"])
        headers = auth_headers(admin_user)

        response = await client.patch(f"/api/v1/notifications/{doc_id}/read", headers=headers)

        assert response.status_code == 200
        count = await client.get("/api/v1/notifications/unread-count", headers=headers)
        assert count.json() == {"count": 0}

    async def test_other_users_notification(
        self, client, admin_user, auth_headers, create_notification, store
    ):
        doc_id = await create_notification(user_id="someone-else")
        response = await client.patch(
            f"/api/v1/notifications/{doc_id}/read", headers=auth_headers(admin_user)
        )
        assert response.status_code == 404
        assert store.updates == []

    async def test_store_failure(self, client, admin_user, auth_headers, create_notification, store):
        doc_id = await create_notification(user_id=admin_user["id"])
        store.write_failure = PersistenceError("down")
        response = await client.patch(
            f"/api/v1/notifications/{doc_id}/read", headers=auth_headers(admin_user)
        )
        assert response.status_code == 503


class TestMarkAllRead:
    async def test_mark_all(self, client, admin_user, auth_headers, create_notification, store):
        for minute in range(3):
            await create_notification(user_id=admin_user["id"], minutes=minute)
        await create_notification(user_id=admin_user["id"], minutes=9, read=True)
        headers = auth_headers(admin_user)

        response = await client.post("/api/v1/notifications/mark-all-read", headers=headers)

        assert response.json() == {"marked": 3}
        assert len(store.batches) == 1
        count = await client.get("/api/v1/notifications/unread-count", headers=headers)
        assert count.json() == {"count": 0}

    async def test_nothing_to_mark(self, client, admin_user, auth_headers, store):
        response = await client.post(
            "/api/v1/notifications/mark-all-read", headers=auth_headers(admin_user)
        )
        assert response.json() == {"marked": 0}
        assert store.batches == []
