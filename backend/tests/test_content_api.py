"""
HTTP tests for forums, posts, replies and search.
"""

import asyncio

import pytest


@pytest.fixture
async def forum(admin_client) -> dict:
    response = await admin_client.post(
        "/api/forums",
        json={"title": "General", "description": "General discussion"},
    )
    assert response.status_code == 201
    return response.json()


async def create_post(client, forum_id: str, title: str = "Hello", content: str = "World"):
    return await client.post(
        "/api/posts", data={"forumId": forum_id, "title": title, "content": content}
    )


# ==================== Forums ====================


async def test_forum_listing_is_public(client, forum):
    response = await client.get("/api/forums")
    assert response.status_code == 200
    assert [f["slug"] for f in response.json()] == ["general"]
    assert response.json()[0]["postCount"] == 0


async def test_forum_create_validation(admin_client):
    response = await admin_client.post("/api/forums", json={"title": "", "description": ""})
    assert response.status_code == 400
    assert {e["field"] for e in response.json()["errors"]} == {"title", "description"}


async def test_forum_duplicate_explicit_slug(admin_client, forum):
    response = await admin_client.post(
        "/api/forums",
        json={"title": "Another", "description": "Dup", "slug": "general"},
    )
    assert response.status_code == 400


async def test_forum_slug_without_usable_characters(admin_client):
    response = await admin_client.post(
        "/api/forums",
        json={"title": "Symbols", "description": "Only symbols", "slug": "!!!"},
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "slug"
    assert (await admin_client.get("/api/forums")).json() == []


async def test_get_unknown_forum(client):
    response = await client.get("/api/forums/nowhere")
    assert response.status_code == 404
    assert response.json()["message"] == "Forum not found"


async def test_concurrent_views_are_all_counted(make_client, forum):
    first, second = make_client(), make_client()
    responses = await asyncio.gather(
        first.get("/api/forums/general"),
        second.get("/api/forums/general"),
    )
    assert all(r.status_code == 200 for r in responses)

    listing = await first.get("/api/forums")
    assert listing.json()[0]["views"] == 2


async def test_forum_delete_requires_admin(register, admin_client, forum):
    member_client, _ = await register("member@example.com")
    assert (await member_client.delete(f"/api/forums/{forum['id']}")).status_code == 403

    response = await admin_client.delete(f"/api/forums/{forum['id']}")
    assert response.status_code == 200
    assert (await admin_client.get("/api/forums")).json() == []


# ==================== Posts ====================


async def test_create_post_requires_login(client, forum):
    response = await create_post(client, forum["id"])
    assert response.status_code == 401


async def test_create_post_validation(register, forum):
    member_client, _ = await register("member@example.com")
    response = await create_post(member_client, forum["id"], title="", content="")
    assert response.status_code == 400
    assert {e["field"] for e in response.json()["errors"]} == {"title", "content"}


async def test_create_post_unknown_forum(register):
    member_client, _ = await register("member@example.com")
    response = await create_post(member_client, "missing-forum")
    assert response.status_code == 404


async def test_post_lifecycle(register, client, forum):
    member_client, user = await register("member@example.com")

    created = await create_post(member_client, forum["id"])
    assert created.status_code == 201
    post = created.json()
    assert post["authorId"] == user["id"]
    assert post["forum"]["slug"] == "general"
    assert post["attachments"] == []

    fetched = await client.get(f"/api/posts/{post['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["views"] == 1

    listing = await client.get("/api/posts", params={"forumId": forum["id"]})
    assert [p["id"] for p in listing.json()] == [post["id"]]

    updated = await member_client.put(f"/api/posts/{post['id']}", json={"title": "Hi"})
    assert updated.status_code == 200
    assert updated.json()["title"] == "Hi"
    assert updated.json()["content"] == "World"

    deleted = await member_client.delete(f"/api/posts/{post['id']}")
    assert deleted.status_code == 200
    assert (await client.get(f"/api/posts/{post['id']}")).status_code == 404
    assert (await client.get("/api/forums/general")).json()["postCount"] == 0


async def test_update_unknown_post(register):
    member_client, _ = await register("member@example.com")
    response = await member_client.put("/api/posts/missing", json={"content": "x"})
    assert response.status_code == 404


async def test_update_post_forbidden_for_others(register, forum):
    author_client, _ = await register("author@example.com")
    other_client, _ = await register("other@example.com")
    post = (await create_post(author_client, forum["id"])).json()

    response = await other_client.put(f"/api/posts/{post['id']}", json={"content": "Mine"})
    assert response.status_code == 403
    assert response.json()["message"] == "Access denied"


# ==================== Replies ====================


async def test_reply_lifecycle(register, client, forum):
    member_client, _ = await register("member@example.com")
    post = (await create_post(member_client, forum["id"])).json()

    parent = await member_client.post(
        f"/api/posts/{post['id']}/replies", json={"content": "First"}
    )
    assert parent.status_code == 201

    child = await member_client.post(
        f"/api/posts/{post['id']}/replies",
        json={"content": "Second", "parentId": parent.json()["id"]},
    )
    assert child.json()["parentId"] == parent.json()["id"]

    orphan = await member_client.post(
        f"/api/posts/{post['id']}/replies",
        json={"content": "Third", "parentId": "no-such-reply"},
    )
    assert orphan.status_code == 201
    assert orphan.json()["parentId"] is None

    replies = await client.get(f"/api/posts/{post['id']}/replies")
    assert [r["content"] for r in replies.json()] == ["First", "Second", "Third"]
    assert (await client.get(f"/api/posts/{post['id']}")).json()["replyCount"] == 3

    edited = await member_client.put(
        f"/api/replies/{parent.json()['id']}", json={"content": "First (edited)"}
    )
    assert edited.json()["content"] == "First (edited)"

    removed = await member_client.delete(f"/api/replies/{parent.json()['id']}")
    assert removed.status_code == 200
    assert (await client.get(f"/api/posts/{post['id']}")).json()["replyCount"] == 2


async def test_reply_requires_content(register, forum):
    member_client, _ = await register("member@example.com")
    post = (await create_post(member_client, forum["id"])).json()
    response = await member_client.post(
        f"/api/posts/{post['id']}/replies", json={"content": "   "}
    )
    assert response.status_code == 400


async def test_replies_of_unknown_post_are_empty(client):
    response = await client.get("/api/posts/missing/replies")
    assert response.status_code == 200
    assert response.json() == []


async def test_delete_unknown_reply(register):
    member_client, _ = await register("member@example.com")
    assert (await member_client.delete("/api/replies/missing")).status_code == 404


# ==================== Search ====================


async def test_search(register, client, forum):
    member_client, _ = await register("member@example.com")
    await create_post(member_client, forum["id"], title="FastAPI tips", content="Use Depends")
    await create_post(member_client, forum["id"], title="Cooking", content="fastapi? no, pasta")
    await create_post(member_client, forum["id"], title="Gardening", content="Tomatoes")

    results = await client.get("/api/search", params={"q": "FASTAPI"})
    assert {p["title"] for p in results.json()} == {"FastAPI tips", "Cooking"}

    assert (await client.get("/api/search", params={"q": ""})).json() == []
    assert (await client.get("/api/search")).json() == []
