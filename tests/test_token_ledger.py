"""Refresh token ledger tests."""
from datetime import timedelta, timezone

import pytest
from sqlalchemy import delete
from sqlmodel import select

from userhub.core.exceptions import NotFoundError
from userhub.core.security import hash_password, verify_token
from userhub.models.token import RefreshToken
from userhub.models.user import User, as_utc, utc_now
from userhub.repositories.token_repo import RefreshTokenRepository
from userhub.repositories.user_repo import UserRepository


async def create_user(session, email="alice@example.com") -> User:
    return await UserRepository(session).create({
        "name": "Alice",
        "email": email,
        "password_hash": hash_password("secret123"),
    })


async def expire(session, token: str) -> None:
    row = await session.get(RefreshToken, token)
    row.expires_at = utc_now() - timedelta(seconds=1)
    session.add(row)
    await session.commit()


def one_hour_ahead(offset_hours: int):
    """An aware time one hour from now, expressed in a non-UTC offset."""
    return (utc_now() + timedelta(hours=1)).astimezone(timezone(timedelta(hours=offset_hours)))


@pytest.mark.asyncio
async def test_issue_records_signed_token(database):
    async with database.session() as session:
        user = await create_user(session)
        ledger = RefreshTokenRepository(session)

        token = await ledger.issue(user.id)

        payload = verify_token(token, "refresh")
        assert payload["id"] == user.id
        row = await ledger.validate(token)
        assert row is not None
        assert row.user.email == "alice@example.com"
        remaining = as_utc(row.expires_at) - utc_now()
        assert timedelta(days=29, hours=23) < remaining <= timedelta(days=30)


@pytest.mark.asyncio
async def test_issue_for_missing_user_writes_nothing(database):
    async with database.session() as session:
        ledger = RefreshTokenRepository(session)
        with pytest.raises(NotFoundError):
            await ledger.issue("no-such-user")

        result = await session.exec(select(RefreshToken))
        assert result.all() == []


@pytest.mark.asyncio
async def test_issue_keeps_other_sessions(database):
    async with database.session() as session:
        user = await create_user(session)
        ledger = RefreshTokenRepository(session)

        first = await ledger.issue(user.id)
        second = await ledger.issue(user.id)

        assert first != second
        assert await ledger.validate(first) is not None
        assert await ledger.validate(second) is not None
        assert await ledger.count_for_user(user.id) == 2


@pytest.mark.asyncio
async def test_validate_unknown_token(database):
    async with database.session() as session:
        assert await RefreshTokenRepository(session).validate("unknown") is None


@pytest.mark.asyncio
async def test_validate_expired_row_is_not_pruned(database):
    async with database.session() as session:
        user = await create_user(session)
        ledger = RefreshTokenRepository(session)
        token = await ledger.issue(user.id)
        await expire(session, token)

        assert await ledger.validate(token) is None
        assert await ledger.count_for_user(user.id) == 1


@pytest.mark.asyncio
async def test_expiry_round_trips_as_aware_utc(database):
    async with database.session() as session:
        user = await create_user(session)
        token = await RefreshTokenRepository(session).issue(user.id)
        row = await session.get(RefreshToken, token)
        row.expires_at = one_hour_ahead(offset_hours=7)
        session.add(row)
        await session.commit()

    async with database.session() as session:
        ledger = RefreshTokenRepository(session)
        row = await ledger.validate(token)
        assert row is not None
        assert row.expires_at.tzinfo is not None
        assert row.expires_at > utc_now()
        assert row.created_at.tzinfo is not None

        row.expires_at = utc_now() - timedelta(minutes=5)
        session.add(row)
        await session.commit()

    async with database.session() as session:
        ledger = RefreshTokenRepository(session)
        assert await ledger.validate(token) is None
        assert await ledger.purge_expired() == 1


@pytest.mark.asyncio
async def test_revoke_reports_whether_a_row_was_removed(database):
    async with database.session() as session:
        user = await create_user(session)
        ledger = RefreshTokenRepository(session)
        token = await ledger.issue(user.id)

        assert await ledger.revoke(token) is True
        assert await ledger.revoke(token) is False
        assert await ledger.validate(token) is None


@pytest.mark.asyncio
async def test_revoke_unknown_token_does_not_raise(database):
    async with database.session() as session:
        assert await RefreshTokenRepository(session).revoke("never-issued") is False


@pytest.mark.asyncio
async def test_revoke_all_for_user(database):
    async with database.session() as session:
        alice = await create_user(session)
        bob = await create_user(session, email="bob@example.com")
        ledger = RefreshTokenRepository(session)
        await ledger.issue(alice.id)
        await ledger.issue(alice.id)
        bob_token = await ledger.issue(bob.id)

        assert await ledger.revoke_all_for_user(alice.id) == 2
        assert await ledger.count_for_user(alice.id) == 0
        assert await ledger.validate(bob_token) is not None


@pytest.mark.asyncio
async def test_purge_expired_only_removes_expired(database):
    async with database.session() as session:
        user = await create_user(session)
        ledger = RefreshTokenRepository(session)
        stale = await ledger.issue(user.id)
        fresh = await ledger.issue(user.id)
        await expire(session, stale)

        assert await ledger.purge_expired() == 1
        result = await session.exec(select(RefreshToken).where(RefreshToken.token == stale))
        assert result.first() is None
        assert await ledger.validate(fresh) is not None


@pytest.mark.asyncio
async def test_deleting_user_through_orm_removes_tokens(database):
    async with database.session() as session:
        user = await create_user(session)
        ledger = RefreshTokenRepository(session)
        await ledger.issue(user.id)
        await ledger.issue(user.id)

        assert await UserRepository(session).delete(user.id) is True
        result = await session.exec(select(RefreshToken))
        assert result.all() == []


@pytest.mark.asyncio
async def test_deleting_user_row_cascades_in_database(database):
    async with database.session() as session:
        user = await create_user(session)
        user_id = user.id
        await RefreshTokenRepository(session).issue(user_id)

    async with database.session() as session:
        await session.execute(delete(User).where(User.id == user_id))
        await session.commit()

        result = await session.exec(select(RefreshToken).where(RefreshToken.user_id == user_id))
        assert result.all() == []
