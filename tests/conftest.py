"""Shared fixtures: a throwaway sqlite database per test.

Each scenario runs on its own event loop through ``run``; the engine uses
``NullPool`` so no connection outlives the loop that opened it.
"""
import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from splitledger.core.jwt_config import create_access_token
from splitledger.db.session import get_db, init_models
from splitledger.main import app
from splitledger.models.group import Group
from splitledger.models.group_member import GroupMember, ROLE_ADMIN, ROLE_MEMBER


@pytest.fixture
def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", poolclass=NullPool)
    asyncio.run(init_models(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def run(session_factory):
    def _run(scenario):
        async def main():
            async with session_factory() as db:
                return await scenario(db)

        return asyncio.run(main())

    return _run


@pytest.fixture
def make_group(run):
    """Create a group; the first user is its admin, the rest plain members."""

    def _make_group(user_ids, name="Trip", currency="USD"):
        async def scenario(db):
            group = Group(name=name, currency=currency, created_by=user_ids[0])
            db.add(group)
            await db.flush()

            for i, uid in enumerate(user_ids):
                db.add(GroupMember(
                    group_id=group.id,
                    user_id=uid,
                    role=ROLE_ADMIN if i == 0 else ROLE_MEMBER,
                ))

            await db.commit()
            return group.id

        return run(scenario)

    return _make_group


@pytest.fixture
def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    def _auth(user_id):
        token = create_access_token({"sub": str(user_id)})
        return {"Authorization": f"Bearer {token}"}

    return _auth
