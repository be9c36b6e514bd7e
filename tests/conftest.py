from __future__ import annotations

import importlib

import pytest

from perizinan.core.enums import Role
from perizinan.identity.memory_provider import InMemoryIdentityProvider
from perizinan.storage.memory_store import InMemoryRecordStore


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def provider():
    return InMemoryIdentityProvider()


@pytest.fixture
def make_user(store, provider):
    """Create an identity and, unless ``role`` is None, its role record."""

    async def _make(email: str, password: str = "secret1", role=Role.SUBMITTER):
        identity = await provider.create_account(email, password)
        if role is not None:
            await store.write(f"/users/{identity.identity_id}", {"email": email, "role": getattr(role, "value", role)})
        return identity

    return _make


@pytest.fixture
def app(monkeypatch, tmp_path):
    monkeypatch.setenv("APP_ENV", "testing")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    importlib.reload(importlib.import_module("config.testing"))

    from perizinan.main import create_app

    flask_app = create_app()
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture
def container(app):
    return app.extensions["perizinan"]
