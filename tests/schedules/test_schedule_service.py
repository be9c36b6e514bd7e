from __future__ import annotations

import pytest

from perizinan.core.enums import Role
from perizinan.core.exceptions import RecordNotFound, Unauthorized, ValidationError
from perizinan.schedules.service import ScheduleService


pytestmark = pytest.mark.anyio


@pytest.fixture
def schedules(store):
    return ScheduleService(store)


async def test_create_and_look_up_by_date(schedules, store):
    created = await schedules.create(
        acting_role=Role.ADMIN, date="2024-03-01", submitter_ids=["t1", "t2"], approver_id="t9"
    )
    await schedules.create(acting_role=Role.ADMIN, date="2024-03-02", submitter_ids="t3", approver_id="t9")

    assert await store.read(f"/schedules/{created.schedule_id}") == {
        "date": "2024-03-01",
        "guruPiket": ["t1", "t2"],
        "wakil": "t9",
    }
    assert [s.submitter_ids for s in await schedules.for_date("2024-03-02")] == [["t3"]]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"date": "01-03-2024", "submitter_ids": ["t1"], "approver_id": "t9"},
        {"date": "2024-03-01", "submitter_ids": [], "approver_id": "t9"},
        {"date": "2024-03-01", "submitter_ids": ["t1"], "approver_id": ""},
    ],
)
async def test_create_validates(schedules, kwargs):
    with pytest.raises(ValidationError):
        await schedules.create(acting_role=Role.ADMIN, **kwargs)


async def test_schedules_are_admin_only(schedules):
    with pytest.raises(Unauthorized):
        await schedules.create(acting_role=Role.APPROVER, date="2024-03-01", submitter_ids=["t1"], approver_id="t9")
    with pytest.raises(Unauthorized):
        await schedules.remove(acting_role=Role.SUBMITTER, schedule_id="x")


async def test_update_and_remove(schedules):
    created = await schedules.create(acting_role=Role.ADMIN, date="2024-03-01", submitter_ids=["t1"], approver_id="t9")

    await schedules.update_field(acting_role=Role.ADMIN, schedule_id=created.schedule_id, field="wakil", value="t8")
    assert (await schedules.get(created.schedule_id)).approver_id == "t8"

    await schedules.remove(acting_role=Role.ADMIN, schedule_id=created.schedule_id)
    assert await schedules.get(created.schedule_id) is None

    with pytest.raises(RecordNotFound):
        await schedules.update_field(acting_role=Role.ADMIN, schedule_id=created.schedule_id, field="date", value="2024-03-05")
