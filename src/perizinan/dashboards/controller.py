from __future__ import annotations

from collections import Counter
from datetime import date

from flask import Flask, g

from ..auth.guard import protected
from ..common.http import ok, system_error
from ..container import Container
from ..core.enums import RequestStatus, Role
from ..requests.service import enrich


def _user() -> dict:
    return {"id": g.session.identity_id, "email": g.session.email, "role": g.session.role.value}


def register(app: Flask, container: Container) -> None:
    clients = container.clients

    async def _status_counts() -> dict:
        counts = Counter(r.status.value for r in await container.request_manager.list_all())
        return {s.value: counts.get(s.value, 0) for s in RequestStatus}

    @app.route("/admin", methods=["GET"], endpoint="admin_dashboard")
    @protected(clients, Role.ADMIN)
    async def admin_dashboard():
        try:
            data = {
                "students": len(await container.roster_service.list_students()),
                "teachers": len(await container.staff_service.list_staff()),
                "schedules": len(await container.schedule_service.list_schedules()),
                "requests": await _status_counts(),
            }
        except Exception:
            return system_error("loading the admin dashboard")
        return ok(view="admin", user=_user(), summary=data)

    @app.route("/deputy", methods=["GET"], endpoint="deputy_dashboard")
    @protected(clients, Role.APPROVER)
    async def deputy_dashboard():
        try:
            pending = [
                r
                for r in enrich(await container.request_manager.list_all(), await container.roster_service.list_students())
                if r.status == RequestStatus.PENDING
            ]
            today = await container.schedule_service.for_date(date.today().isoformat())
        except Exception:
            return system_error("loading the deputy dashboard")
        return ok(
            view="deputy",
            user=_user(),
            pending=[r.to_dict() for r in pending],
            schedules_today=[s.to_dict() for s in today],
        )

    @app.route("/teacher", methods=["GET"], endpoint="teacher_dashboard")
    @protected(clients, Role.SUBMITTER)
    async def teacher_dashboard():
        try:
            summary = await _status_counts()
            today = await container.schedule_service.for_date(date.today().isoformat())
        except Exception:
            return system_error("loading the teacher dashboard")
        return ok(
            view="teacher",
            user=_user(),
            requests=summary,
            schedules_today=[s.to_dict() for s in today],
        )
