from __future__ import annotations

import asyncio

import pytest

from perizinan.auth.roles import RoleResolver
from perizinan.auth.session import Session, SessionStore
from perizinan.core.enums import Role
from perizinan.core.exceptions import AccountNotProvisioned, InvalidCredentials
from perizinan.identity.gateway import IdentityGateway


pytestmark = pytest.mark.anyio


async def _no_sleep(seconds):
    return None


def make_store(store, provider, *, sleep=_no_sleep):
    gateway = IdentityGateway(provider)
    resolver = RoleResolver(store, retry_delay=0, sleep=sleep)
    return gateway, SessionStore(gateway, resolver)


async def test_starts_loading_and_settles_signed_out(store, provider):
    _, sessions = make_store(store, provider)
    assert sessions.loading is True
    assert sessions.session is None

    await sessions.start()

    assert sessions.loading is False
    assert sessions.session is None


async def test_login_sets_session_from_role_record(store, provider, make_user):
    identity = await make_user("wakil@school.id", role=Role.APPROVER)
    _, sessions = make_store(store, provider)
    await sessions.start()

    current = await sessions.login("wakil@school.id", "secret1")

    assert current == Session(identity.identity_id, "wakil@school.id", Role.APPROVER)
    assert sessions.session == current


async def test_login_without_role_record_is_reversed(store, provider, make_user):
    await make_user("u1@x.id", role=None)
    gateway, sessions = make_store(store, provider)
    await sessions.start()
    events = []

    async def record(identity):
        events.append(identity)

    gateway.on_identity_change(record)

    with pytest.raises(AccountNotProvisioned):
        await sessions.login("u1@x.id", "secret1")

    assert gateway.current_identity is None
    assert sessions.session is None
    assert events[-1] is None
    assert sessions.loading is False


async def test_login_with_bad_password_raises_invalid_credentials(store, provider, make_user):
    await make_user("guru@school.id")
    _, sessions = make_store(store, provider)
    await sessions.start()

    with pytest.raises(InvalidCredentials):
        await sessions.login("guru@school.id", "wrong-pw")
    assert sessions.session is None


async def test_unresolved_role_keeps_existing_session(store, provider, make_user):
    await make_user("admin@school.id", role=Role.ADMIN)
    ghost = await make_user("ghost@school.id", role=None)
    gateway, sessions = make_store(store, provider)
    await sessions.start()
    admin_session = await sessions.login("admin@school.id", "secret1")

    # Identity change straight from the gateway, as after a provider-side switch.
    await gateway.sign_in("ghost@school.id", "secret1")

    assert gateway.current_identity.identity_id == ghost.identity_id
    assert sessions.session == admin_session
    assert sessions.loading is False


async def test_same_identity_is_not_resolved_again(store, provider, make_user):
    identity = await make_user("guru@school.id")
    gateway, sessions = make_store(store, provider)
    await sessions.start()
    await sessions.login("guru@school.id", "secret1")

    # Role changes are not picked up while the same identity stays signed in.
    await store.write(f"/users/{identity.identity_id}", {"email": "guru@school.id", "role": "wakil"})
    await gateway.sign_in("guru@school.id", "secret1")

    assert sessions.session.role == Role.SUBMITTER


async def test_login_again_after_role_record_was_deleted_is_refused(store, provider, make_user):
    identity = await make_user("guru@school.id")
    gateway, sessions = make_store(store, provider)
    await sessions.start()
    await sessions.login("guru@school.id", "secret1")
    await store.remove(f"/users/{identity.identity_id}")

    with pytest.raises(AccountNotProvisioned):
        await sessions.login("guru@school.id", "secret1")

    assert sessions.session is None
    assert gateway.current_identity is None


async def test_logout_clears_session_and_signs_out(store, provider, make_user):
    await make_user("guru@school.id")
    gateway, sessions = make_store(store, provider)
    await sessions.start()
    await sessions.login("guru@school.id", "secret1")
    seen = []
    sessions.add_listener(seen.append)

    await sessions.logout()

    assert sessions.session is None
    assert gateway.current_identity is None
    assert seen == [None]


async def test_stale_resolution_is_discarded(store, provider, make_user):
    await make_user("first@school.id", role=None)
    await make_user("second@school.id", role=Role.APPROVER)
    gateway = IdentityGateway(provider)
    release = asyncio.Event()
    entered = asyncio.Event()

    async def slow_sleep(seconds):
        entered.set()
        await release.wait()

    sessions = SessionStore(gateway, RoleResolver(store, retry_delay=2.0, sleep=slow_sleep))
    await sessions.start()

    first = asyncio.ensure_future(gateway.sign_in("first@school.id", "secret1"))
    await entered.wait()

    # While the first resolution waits for its retry, the role record appears
    # and a different identity signs in.
    first_id = gateway.current_identity.identity_id
    await store.write(f"/users/{first_id}", {"email": "first@school.id", "role": "admin"})
    second = await gateway.sign_in("second@school.id", "secret1")
    assert sessions.session.identity_id == second.identity_id

    release.set()
    await first

    # The first identity's late resolution must not overwrite the second session.
    assert sessions.session.identity_id == second.identity_id
    assert sessions.session.role == Role.APPROVER


async def test_close_stops_listening(store, provider, make_user):
    await make_user("guru@school.id")
    gateway, sessions = make_store(store, provider)
    await sessions.start()
    sessions.close()

    await gateway.sign_in("guru@school.id", "secret1")

    assert sessions.session is None
    assert sessions.started is False
