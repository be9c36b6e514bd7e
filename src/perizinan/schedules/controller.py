from __future__ import annotations

from flask import Flask, request

from ..auth.guard import acting_role, protected
from ..common.http import domain_error, ok, payload, system_error
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError
from ..requests.query import paginate, parse_page


def register(app: Flask, container: Container) -> None:
    schedules = container.schedule_service
    clients = container.clients

    @app.route("/admin/schedules", methods=["GET"], endpoint="admin_schedules")
    @protected(clients, Role.ADMIN)
    async def admin_schedules():
        try:
            page = paginate(await schedules.list_schedules(), parse_page(request.args.get("page")))
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("loading schedules")
        return ok(
            items=[s.to_dict() for s in page.items],
            page=page.page,
            total_pages=page.total_pages,
            total_items=page.total_items,
        )

    @app.route("/admin/schedules", methods=["POST"], endpoint="add_schedule")
    @protected(clients, Role.ADMIN)
    async def add_schedule():
        data = payload()
        submitters = data.get("submitter_ids")
        if submitters is None:
            submitters = request.form.getlist("submitter_ids") or data.get("guruPiket") or []
        try:
            schedule = await schedules.create(
                acting_role=acting_role(),
                date=data.get("date", ""),
                submitter_ids=submitters,
                approver_id=data.get("approver_id") or data.get("wakil") or "",
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("adding the schedule")
        return ok(201, message="Schedule added", item=schedule.to_dict())

    @app.route("/admin/schedules/<schedule_id>", methods=["PATCH"], endpoint="edit_schedule")
    @protected(clients, Role.ADMIN)
    async def edit_schedule(schedule_id: str):
        data = payload()
        try:
            await schedules.update_field(
                acting_role=acting_role(),
                schedule_id=schedule_id,
                field=data.get("field") or "",
                value=data.get("value"),
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("updating the schedule")
        return ok(message="Schedule updated")

    @app.route("/admin/schedules/<schedule_id>", methods=["DELETE"], endpoint="delete_schedule")
    @protected(clients, Role.ADMIN)
    async def delete_schedule(schedule_id: str):
        try:
            await schedules.remove(acting_role=acting_role(), schedule_id=schedule_id)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("deleting the schedule")
        return ok(message="Schedule deleted")
