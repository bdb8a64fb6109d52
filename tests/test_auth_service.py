import asyncio
from datetime import timedelta

import jwt
import pytest
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from money_matters.core.config import settings
from money_matters.core.exceptions import BadRequest, Conflict, NotFound, Unauthorized
from money_matters.core.jwt_config import create_refresh_token, decode_access_token, decode_refresh_token
from money_matters.core.utils import as_utc, utcnow
from money_matters.db.base import Base
from money_matters.models.refresh_token import RefreshToken
from money_matters.models.user import User
from money_matters.services import auth_service, refresh_token_service


async def count_tokens(db, user_id):
    res = await db.execute(select(func.count(RefreshToken.id)).where(RefreshToken.user_id == user_id))
    return res.scalar_one()


async def test_register_returns_bundle_and_stores_hashed_password(db):
    bundle = await auth_service.register(db, "dana@example.com", "hunter22", "Dana")

    assert bundle["user"]["email"] == "dana@example.com"
    assert bundle["user"]["name"] == "Dana"
    assert bundle["token_type"] == "bearer"

    user = (await db.execute(select(User).where(User.email == "dana@example.com"))).scalar_one()
    assert user.password_hash != "hunter22"
    assert await count_tokens(db, user.id) == 1


async def test_register_duplicate_email_conflicts(db, alice):
    with pytest.raises(Conflict):
        await auth_service.register(db, alice.email, "whatever1", "Alice Again")


async def test_tokens_carry_claims_and_use_distinct_secrets(db, alice):
    bundle = await auth_service.login(db, alice.email, "secret123")

    access = decode_access_token(bundle["access_token"])
    assert access["sub"] == str(alice.id)
    assert access["email"] == alice.email
    assert access["name"] == alice.name

    refresh = decode_refresh_token(bundle["refresh_token"])
    assert refresh["sub"] == str(alice.id)

    # a refresh token is not accepted as an access token and vice versa
    with pytest.raises(jwt.InvalidSignatureError):
        decode_access_token(bundle["refresh_token"])
    with pytest.raises(jwt.InvalidSignatureError):
        decode_refresh_token(bundle["access_token"])


async def test_stored_refresh_token_is_hashed(db, alice):
    bundle = await auth_service.login(db, alice.email, "secret123")

    records = await refresh_token_service.find_by_user_id(db, alice.id)
    assert len(records) == 1
    assert records[0].token_hash != bundle["refresh_token"]


async def test_login_failures_are_indistinguishable(db, alice):
    with pytest.raises(Unauthorized) as wrong_password:
        await auth_service.login(db, alice.email, "not-the-password")
    with pytest.raises(Unauthorized) as unknown_email:
        await auth_service.login(db, "nobody@example.com", "secret123")

    assert wrong_password.value.detail == unknown_email.value.detail
    assert wrong_password.value.status_code == unknown_email.value.status_code


async def test_every_login_creates_a_new_session(db, alice):
    first = await auth_service.login(db, alice.email, "secret123")
    second = await auth_service.login(db, alice.email, "secret123")

    assert first["refresh_token"] != second["refresh_token"]
    assert await count_tokens(db, alice.id) == 2


async def test_refresh_rotates_and_is_single_use(db, alice):
    bundle = await auth_service.login(db, alice.email, "secret123")
    original = bundle["refresh_token"]

    rotated = await auth_service.refresh(db, original)
    assert rotated["refresh_token"] != original
    assert rotated["user"]["id"] == alice.id
    assert await count_tokens(db, alice.id) == 1

    with pytest.raises(Unauthorized):
        await auth_service.refresh(db, original)

    # the new token still works
    again = await auth_service.refresh(db, rotated["refresh_token"])
    assert again["refresh_token"] != rotated["refresh_token"]


async def test_refresh_rejects_garbage_and_access_tokens(db, alice):
    bundle = await auth_service.login(db, alice.email, "secret123")

    with pytest.raises(Unauthorized):
        await auth_service.refresh(db, "not-a-jwt")
    with pytest.raises(Unauthorized):
        await auth_service.refresh(db, bundle["access_token"])


async def test_refresh_rejects_expired_jwt(db, alice):
    token = create_refresh_token({"sub": str(alice.id), "email": alice.email, "name": alice.name}, expires_days=-1)
    await refresh_token_service.create_refresh_token_record(db, alice.id, token, utcnow() + timedelta(days=1))

    with pytest.raises(Unauthorized):
        await auth_service.refresh(db, token)


async def test_refresh_rejects_expired_stored_record(db, alice):
    token = create_refresh_token({"sub": str(alice.id), "email": alice.email, "name": alice.name})
    await refresh_token_service.create_refresh_token_record(db, alice.id, token, utcnow() - timedelta(minutes=1))

    with pytest.raises(Unauthorized):
        await auth_service.refresh(db, token)


async def test_refresh_without_stored_record_fails(db, alice):
    # validly signed but never issued through a login
    token = create_refresh_token({"sub": str(alice.id), "email": alice.email, "name": alice.name})

    with pytest.raises(Unauthorized):
        await auth_service.refresh(db, token)


async def test_losing_rotation_race_is_unauthorized(db, alice, monkeypatch):
    bundle = await auth_service.login(db, alice.email, "secret123")
    stored = await refresh_token_service.validate_refresh_token(db, alice.id, bundle["refresh_token"])

    # another request deleted the record between lookup and revoke
    async def already_matched(db_, user_id, token):
        return stored

    await refresh_token_service.revoke_token(db, stored.id)
    monkeypatch.setattr(refresh_token_service, "validate_refresh_token", already_matched)

    with pytest.raises(Unauthorized):
        await auth_service.refresh(db, bundle["refresh_token"])


async def test_revoke_token_reports_missing_record(db, alice):
    record = await refresh_token_service.create_refresh_token_record(
        db, alice.id, "some-token", utcnow() + timedelta(days=1)
    )

    assert await refresh_token_service.revoke_token(db, record.id) is True
    assert await refresh_token_service.revoke_token(db, record.id) is False


async def test_logout_revokes_session_and_is_idempotent(db, alice):
    bundle = await auth_service.login(db, alice.email, "secret123")
    other = await auth_service.login(db, alice.email, "secret123")

    await auth_service.logout(db, alice.id, bundle["refresh_token"])
    assert await count_tokens(db, alice.id) == 1

    # second logout with the same token is not an error
    await auth_service.logout(db, alice.id, bundle["refresh_token"])

    with pytest.raises(Unauthorized):
        await auth_service.refresh(db, bundle["refresh_token"])

    # the other session is untouched
    await auth_service.refresh(db, other["refresh_token"])


async def test_logout_rejects_invalid_token(db, alice):
    with pytest.raises(BadRequest):
        await auth_service.logout(db, alice.id, "garbage")


async def test_logout_rejects_someone_elses_token(db, alice, bob):
    bobs = await auth_service.login(db, bob.email, "secret123")

    with pytest.raises(BadRequest) as exc:
        await auth_service.logout(db, alice.id, bobs["refresh_token"])
    assert exc.value.detail == "Token does not match user"

    assert await count_tokens(db, bob.id) == 1


async def test_logout_all_clears_every_session(db, alice, bob):
    for _ in range(3):
        await auth_service.login(db, alice.email, "secret123")
    await auth_service.login(db, bob.email, "secret123")

    await auth_service.logout_all(db, alice.id)

    assert await count_tokens(db, alice.id) == 0
    assert await count_tokens(db, bob.id) == 1


async def test_clean_expired_tokens_only_removes_expired(db, alice):
    await refresh_token_service.create_refresh_token_record(db, alice.id, "old", utcnow() - timedelta(days=1))
    await refresh_token_service.create_refresh_token_record(db, alice.id, "new", utcnow() + timedelta(days=1))

    removed = await refresh_token_service.clean_expired_tokens(db)

    assert removed == 1
    assert await count_tokens(db, alice.id) == 1


async def test_validate_user(db, alice):
    user = await auth_service.validate_user(db, alice.id)
    assert user.id == alice.id

    with pytest.raises(NotFound):
        await auth_service.validate_user(db, 9999)


async def test_refresh_record_lifetime_matches_setting(db, alice):
    await auth_service.login(db, alice.email, "secret123")
    record = (await refresh_token_service.find_by_user_id(db, alice.id))[0]

    lifetime = as_utc(record.expires_at) - utcnow()
    assert timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS - 1) < lifetime <= timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


async def test_concurrent_registrations_of_one_email(tmp_path):
    # separate connections so both requests can pass the existence check
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'register.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    try:
        async with factory() as first, factory() as second:
            results = await asyncio.gather(
                auth_service.register(first, "race@example.com", "secret123", "First"),
                auth_service.register(second, "race@example.com", "secret123", "Second"),
                return_exceptions=True,
            )

        winners = [r for r in results if isinstance(r, dict)]
        losers = [r for r in results if isinstance(r, BaseException)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], Conflict)

        async with factory() as check:
            count = await check.execute(select(func.count(User.id)).where(User.email == "race@example.com"))
            assert count.scalar_one() == 1
    finally:
        await engine.dispose()


async def test_refresh_token_hashing_runs_off_the_event_loop(db, alice, monkeypatch):
    offloaded = []
    real_to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(func.__name__)
        return await real_to_thread(func, *args, **kwargs)

    monkeypatch.setattr(refresh_token_service.asyncio, "to_thread", recording_to_thread)

    bundle = await auth_service.login(db, alice.email, "secret123")
    assert "hash_secret" in offloaded

    rotated = await auth_service.refresh(db, bundle["refresh_token"])
    assert "verify_secret" in offloaded
    assert rotated["refresh_token"] != bundle["refresh_token"]


async def test_validation_skips_expired_records_before_hash_check(db, alice):
    stale = await refresh_token_service.create_refresh_token_record(
        db, alice.id, "shared-token", utcnow() - timedelta(minutes=1)
    )
    live = await refresh_token_service.create_refresh_token_record(
        db, alice.id, "shared-token", utcnow() + timedelta(days=1)
    )

    found = await refresh_token_service.validate_refresh_token(db, alice.id, "shared-token")

    assert found is not None
    assert found.id == live.id != stale.id
