"""Shared fixtures: an isolated seeded database, tokens and an HTTP client."""

from typing import Dict, List, Optional

import pytest

from rbacd.api.app import create_app
from rbacd.auth.jwt_handler import JWTHandler
from rbacd.config import Settings
from rbacd.storage.database import ROLE, USER, Database
from rbacd.storage.defaults import init_db
from rbacd.storage.models import Record


TEST_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        jwt_secret=TEST_SECRET,
        database_path=tmp_path / "rbacd.db",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def db(settings):
    database = Database(settings.database_path)
    init_db(database, settings)
    return database


@pytest.fixture
def jwt_handler(settings):
    return JWTHandler(settings.resolve_jwt_secret())


@pytest.fixture
def app(settings, db):
    return create_app(settings, db=db, seed=False)


@pytest.fixture
async def client(aiohttp_client, app):
    return await aiohttp_client(app)


def make_user(
    db: Database,
    username: str,
    role_codes: Optional[List[str]] = None,
    password: str = "hashed-password",
    **extra,
) -> Record:
    data = {"username": username, "password": password, **extra}
    if role_codes is not None:
        data["role_codes"] = role_codes
    return db.insert(USER, data)


def make_role(
    db: Database,
    code: str,
    permission_codes: Optional[List[str]] = None,
    type: str = "custom",
) -> Record:
    return db.insert(ROLE, {
        "name": code.replace("_", " ").title(),
        "code": code,
        "permission_codes": permission_codes or [],
        "type": type,
    })


def bearer(jwt_handler: JWTHandler, user: Record) -> Dict[str, str]:
    token = jwt_handler.issue({"user_id": user.id}).access_token
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(db, settings) -> Record:
    return db.find_one(USER, "username", settings.admin_username)


@pytest.fixture
def admin_headers(jwt_handler, admin) -> Dict[str, str]:
    return bearer(jwt_handler, admin)
