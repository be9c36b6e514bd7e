from __future__ import annotations

import pytest

from perizinan.core.exceptions import StoreUnavailable, ValidationError
from perizinan.storage.base import PushIdGenerator, sorted_items, split_path
from perizinan.storage.memory_store import InMemoryRecordStore


pytestmark = pytest.mark.anyio


async def test_update_merges_and_write_overwrites(store):
    await store.write("/students/s1", {"namasiswa": "Ana", "kelas": "X-1"})
    await store.update("/students/s1", {"kelas": "X-2", "asrama": "Melati"})
    assert await store.read("/students/s1") == {"namasiswa": "Ana", "kelas": "X-2", "asrama": "Melati"}

    await store.write("/students/s1", {"namasiswa": "Ana"})
    assert await store.read("/students/s1") == {"namasiswa": "Ana"}


async def test_remove_is_idempotent_and_prunes_empty_collections(store):
    await store.write("/perizinan/p1", {"status": "pending"})

    await store.remove("/perizinan/p1")
    await store.remove("/perizinan/p1")

    assert await store.read("/perizinan/p1") is None
    assert await store.read("/perizinan") is None
    assert await store.read("/") is None


async def test_push_keys_follow_creation_order():
    ticks = iter([1.000, 1.000, 1.001])
    store = InMemoryRecordStore(push_ids=PushIdGenerator(clock=lambda: next(ticks)))

    keys = [await store.push("/perizinan", {"n": i}) for i in range(3)]

    assert keys == sorted(keys)
    assert [k for k, _ in sorted_items(await store.read("/perizinan"))] == keys


async def test_subscribe_delivers_initial_and_every_change(store):
    snapshots = []
    unsubscribe = await store.subscribe("/perizinan", snapshots.append)

    await store.push("/perizinan", {"status": "pending"})
    await store.write("/students/s1", {"namasiswa": "Ana"})

    assert snapshots[0] is None
    assert len(snapshots) == 2

    unsubscribe()
    await store.push("/perizinan", {"status": "pending"})
    assert len(snapshots) == 2
    assert store.subscriber_count == 0


async def test_subscribers_get_independent_copies(store):
    await store.write("/perizinan/p1", {"status": "pending"})
    received = []

    def mutate(snapshot):
        snapshot["p1"]["status"] = "hacked"
        received.append(snapshot)

    await store.subscribe("/perizinan", mutate)

    assert (await store.read("/perizinan/p1"))["status"] == "pending"


async def test_broken_handler_does_not_block_other_subscribers(store):
    seen = []

    def broken(_):
        raise RuntimeError("boom")

    await store.subscribe("/perizinan", broken)
    await store.subscribe("/perizinan", seen.append)
    await store.write("/perizinan/p1", {"status": "pending"})

    assert seen[-1] == {"p1": {"status": "pending"}}


async def test_read_failure_is_reported_as_disconnected():
    class FlakyStore(InMemoryRecordStore):
        fail = False

        async def _read(self, parts):
            if self.fail:
                raise ConnectionError("socket closed")
            return await super()._read(parts)

    store = FlakyStore()
    errors = []
    await store.subscribe("/perizinan", lambda s: None, errors.append)

    store.fail = True
    await store.write("/perizinan/p1", {"status": "pending"})

    assert len(errors) == 1
    assert isinstance(errors[0], StoreUnavailable)


def test_split_path_rejects_parent_segments():
    assert split_path("/perizinan/p1/") == ("perizinan", "p1")
    with pytest.raises(ValidationError):
        split_path("/perizinan/../users")
