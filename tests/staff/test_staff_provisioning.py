from __future__ import annotations

import pytest

from perizinan.core.enums import Role
from perizinan.core.exceptions import InvalidCredentials, PartialProvisioning, Unauthorized, ValidationError
from perizinan.identity.gateway import IdentityGateway
from perizinan.staff.model import NewStaff
from perizinan.staff.provisioning import STEP_ACCOUNT_RECORD, STEP_ROLE_RECORD, ProvisioningCoordinator
from perizinan.staff.service import StaffService
from perizinan.storage.memory_store import InMemoryRecordStore


pytestmark = pytest.mark.anyio


class FailingStore(InMemoryRecordStore):
    """Memory store whose writes under chosen collections fail."""

    def __init__(self, *, fail_write=(), fail_push=(), fail_remove=()):
        super().__init__()
        self.fail_write = set(fail_write)
        self.fail_push = set(fail_push)
        self.fail_remove = set(fail_remove)

    @staticmethod
    def _collection(path):
        return path.strip("/").split("/")[0]

    async def write(self, path, value):
        if self._collection(path) in self.fail_write:
            raise ConnectionError("write failed")
        await super().write(path, value)

    async def push(self, collection, value):
        if self._collection(collection) in self.fail_push:
            raise ConnectionError("push failed")
        return await super().push(collection, value)

    async def remove(self, path):
        if self._collection(path) in self.fail_remove:
            raise ConnectionError("remove failed")
        await super().remove(path)


class FakeAccounts:
    def __init__(self, provider, *, fail_delete=False):
        self._provider = provider
        self.fail_delete = fail_delete
        self.deleted = []

    async def create_account(self, email, password):
        return await self._provider.create_account(email, password)

    async def delete_account(self, identity_id):
        if self.fail_delete:
            raise ConnectionError("identity service down")
        self.deleted.append(identity_id)
        await self._provider.delete_account(identity_id)


async def _signed_in_admin(store, provider):
    admin = await provider.create_account("admin@school.id", "secret1")
    await store.write(f"/users/{admin.identity_id}", {"email": "admin@school.id", "role": "admin"})
    gateway = IdentityGateway(provider)
    await gateway.sign_in("admin@school.id", "secret1")
    return gateway


async def test_provision_writes_identity_role_and_account(store, provider):
    gateway = await _signed_in_admin(store, provider)
    service = StaffService(store, provider)

    account = await service.create(
        acting_role=Role.ADMIN,
        gateway=gateway,
        data=NewStaff(name="Pak Joko", email="joko@school.id", password="secret2", role="wakil"),
    )

    assert await store.read(f"/users/{account.identity_id}") == {"email": "joko@school.id", "role": "wakil"}
    assert (await store.read(f"/teachers/{account.account_id}"))["uid"] == account.identity_id
    assert gateway.current_identity.email == "admin@school.id"


@pytest.mark.parametrize(
    "data",
    [
        NewStaff(name="", email="a@school.id", password="secret2", role="wakil"),
        NewStaff(name="A", email="not-an-email", password="secret2", role="wakil"),
        NewStaff(name="A", email="a@school.id", password="12345", role="wakil"),
        NewStaff(name="A", email="a@school.id", password="secret2", role="kepala"),
    ],
)
async def test_create_validates_input(store, provider, data):
    gateway = await _signed_in_admin(store, provider)
    with pytest.raises(ValidationError):
        await StaffService(store, provider).create(acting_role=Role.ADMIN, gateway=gateway, data=data)


async def test_only_admins_provision(store, provider):
    with pytest.raises(Unauthorized):
        await StaffService(store, provider).create(
            acting_role=Role.APPROVER,
            gateway=IdentityGateway(provider),
            data=NewStaff(name="A", email="a@school.id", password="secret2", role="wakil"),
        )


async def test_failed_role_record_deletes_identity(provider):
    store = FailingStore(fail_write={"users"})
    accounts = FakeAccounts(provider)

    with pytest.raises(ConnectionError):
        await ProvisioningCoordinator(store, accounts).provision(
            name="A", email="a@school.id", password="secret2", role=Role.SUBMITTER
        )

    assert len(accounts.deleted) == 1
    assert not provider.has_account(accounts.deleted[0])


async def test_failed_account_record_removes_role_record_and_identity(provider):
    store = FailingStore(fail_push={"teachers"})
    accounts = FakeAccounts(provider)

    with pytest.raises(ConnectionError):
        await ProvisioningCoordinator(store, accounts).provision(
            name="A", email="a@school.id", password="secret2", role=Role.SUBMITTER
        )

    assert await store.read("/users") is None
    assert await store.read("/teachers") is None
    assert len(accounts.deleted) == 1


async def test_failed_compensation_raises_partial_provisioning(provider):
    store = FailingStore(fail_write={"users"})
    accounts = FakeAccounts(provider, fail_delete=True)

    with pytest.raises(PartialProvisioning) as exc:
        await ProvisioningCoordinator(store, accounts).provision(
            name="A", email="a@school.id", password="secret2", role=Role.SUBMITTER
        )

    assert exc.value.failed_step == STEP_ROLE_RECORD
    assert provider.has_account(exc.value.identity_id)
    assert isinstance(exc.value.cause, ConnectionError)


async def test_role_record_left_behind_is_partial_provisioning(provider):
    store = FailingStore(fail_push={"teachers"}, fail_remove={"users"})
    accounts = FakeAccounts(provider)

    with pytest.raises(PartialProvisioning) as exc:
        await ProvisioningCoordinator(store, accounts).provision(
            name="A", email="a@school.id", password="secret2", role=Role.SUBMITTER
        )

    assert exc.value.failed_step == STEP_ACCOUNT_RECORD
    # The identity itself was still cleaned up.
    assert accounts.deleted == [exc.value.identity_id]


async def test_role_edit_is_mirrored_to_role_record(store, provider):
    gateway = await _signed_in_admin(store, provider)
    service = StaffService(store, provider)
    account = await service.create(
        acting_role=Role.ADMIN,
        gateway=gateway,
        data=NewStaff(name="Bu Sri", email="sri@school.id", password="secret2", role="gurupiket"),
    )

    await service.update_field(acting_role=Role.ADMIN, account_id=account.account_id, field="role", value="wakil")

    assert (await store.read(f"/users/{account.identity_id}"))["role"] == "wakil"
    assert (await service.get(account.account_id)).role == Role.APPROVER


async def test_delete_requires_reauthentication(store, provider):
    gateway = await _signed_in_admin(store, provider)
    service = StaffService(store, provider)
    account = await service.create(
        acting_role=Role.ADMIN,
        gateway=gateway,
        data=NewStaff(name="Bu Sri", email="sri@school.id", password="secret2", role="gurupiket"),
    )

    with pytest.raises(InvalidCredentials):
        await service.delete(acting_role=Role.ADMIN, gateway=gateway, account_id=account.account_id, password="wrong1")
    assert await service.get(account.account_id) is not None

    await service.delete(acting_role=Role.ADMIN, gateway=gateway, account_id=account.account_id, password="secret1")

    assert await service.get(account.account_id) is None
    assert await store.read(f"/users/{account.identity_id}") is None
    assert provider.has_account(account.identity_id)


async def test_seed_admin_only_once(store, provider):
    service = StaffService(store, provider)

    first = await service.ensure_admin_account(email="root@school.id", password="secret1")
    second = await service.ensure_admin_account(email="root@school.id", password="secret1")

    assert first.role == Role.ADMIN
    assert second is None
    assert len(await service.list_staff()) == 1
