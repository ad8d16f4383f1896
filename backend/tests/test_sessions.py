"""
Tests for session stores and the session resolver.
"""

from datetime import datetime, timedelta

import pytest
from fakeredis import FakeAsyncRedis
from sqlalchemy import func, select, update

from agora.models.session import UserSession
from agora.modules.auth.sessions import (
    ANONYMOUS,
    DatabaseSessionStore,
    RedisSessionStore,
    SessionResolver,
)
from agora.modules.users.service import UserService

TTL = 3600


@pytest.fixture
def db_store(app) -> DatabaseSessionStore:
    return DatabaseSessionStore(app.state.session_factory, TTL)


@pytest.fixture
async def redis_store():
    store = RedisSessionStore(FakeAsyncRedis(decode_responses=True), TTL)
    yield store
    await store.close()


async def expire_all(db) -> None:
    await db.execute(
        update(UserSession).values(expires_at=datetime.utcnow() - timedelta(seconds=1))
    )
    await db.commit()


# ==================== Database store ====================


async def test_database_store_round_trip(db_store, member):
    sid = await db_store.create(member.id)
    data = await db_store.get(sid)
    assert data.user_id == member.id
    assert data.auth_type == "local"


async def test_database_store_ids_are_unique(db_store, member):
    sids = {await db_store.create(member.id) for _ in range(5)}
    assert len(sids) == 5


async def test_database_store_destroy(db_store, member):
    sid = await db_store.create(member.id)
    await db_store.destroy(sid)
    assert await db_store.get(sid) is None


async def test_database_store_expired_session_is_removed(db, db_store, member):
    sid = await db_store.create(member.id)
    await expire_all(db)

    assert await db_store.get(sid) is None
    result = await db.execute(select(func.count()).select_from(UserSession))
    assert result.scalar_one() == 0


async def test_purge_expired(db, db_store, member):
    await db_store.create(member.id)
    await db_store.create(member.id)
    await expire_all(db)
    live = await db_store.create(member.id)

    assert await db_store.purge_expired() == 2
    assert await db_store.get(live) is not None


# ==================== Redis store ====================


async def test_redis_store_round_trip(redis_store):
    sid = await redis_store.create("user_1", "local")
    data = await redis_store.get(sid)
    assert data.user_id == "user_1"
    assert data.auth_type == "local"


async def test_redis_store_sets_ttl(redis_store):
    sid = await redis_store.create("user_1")
    ttl = await redis_store._redis.ttl(f"session:{sid}")
    assert 0 < ttl <= TTL


async def test_redis_store_destroy(redis_store):
    sid = await redis_store.create("user_1")
    await redis_store.destroy(sid)
    assert await redis_store.get(sid) is None


async def test_redis_store_ignores_garbage_payload(redis_store):
    await redis_store._redis.set("session:broken", "not json")
    assert await redis_store.get("broken") is None


# ==================== Resolver ====================


async def test_resolver_without_cookie_is_anonymous(db, db_store):
    identity = await SessionResolver(db_store, db).resolve(None)
    assert identity is ANONYMOUS
    assert not identity.is_authenticated


async def test_resolver_unknown_session_is_anonymous(db, db_store):
    identity = await SessionResolver(db_store, db).resolve("nope")
    assert not identity.is_authenticated


async def test_resolver_returns_user(db, db_store, member):
    sid = await db_store.create(member.id)
    identity = await SessionResolver(db_store, db).resolve(sid)
    assert identity.is_authenticated
    assert identity.user.id == member.id


async def test_resolver_rejects_non_local_sessions(db, redis_store, member):
    sid = await redis_store.create(member.id, "replit")
    identity = await SessionResolver(redis_store, db).resolve(sid)
    assert not identity.is_authenticated


async def test_resolver_rejects_session_without_user(db, redis_store):
    await redis_store._redis.set("session:empty", '{"authType": "local"}')
    identity = await SessionResolver(redis_store, db).resolve("empty")
    assert not identity.is_authenticated


async def test_resolver_rejects_deleted_user(db, redis_store):
    sid = await redis_store.create("user_gone")
    identity = await SessionResolver(redis_store, db).resolve(sid)
    assert not identity.is_authenticated


async def test_resolver_rejects_banned_user(db, db_store, admin, member):
    sid = await db_store.create(member.id)
    await UserService(db).ban(admin, member.id)

    identity = await SessionResolver(db_store, db).resolve(sid)
    assert not identity.is_authenticated


async def test_resolver_rejects_expired_session(db, db_store, member):
    sid = await db_store.create(member.id)
    await expire_all(db)
    identity = await SessionResolver(db_store, db).resolve(sid)
    assert not identity.is_authenticated
