from __future__ import annotations

from flask import Flask, g, request

from ..auth.guard import acting_role, protected
from ..common.http import domain_error, fail, ok, payload, system_error
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError, PartialProvisioning
from ..requests.query import paginate, parse_page
from .model import NewStaff


def register(app: Flask, container: Container) -> None:
    staff = container.staff_service
    clients = container.clients

    @app.route("/admin/teachers", methods=["GET"], endpoint="admin_teachers")
    @protected(clients, Role.ADMIN)
    async def admin_teachers():
        try:
            accounts = sorted(await staff.list_staff(), key=lambda a: a.name.lower())
            page = paginate(accounts, parse_page(request.args.get("page")))
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("loading teachers")
        return ok(
            items=[a.to_dict() for a in page.items],
            page=page.page,
            total_pages=page.total_pages,
            total_items=page.total_items,
        )

    @app.route("/admin/teachers", methods=["POST"], endpoint="add_teacher")
    @protected(clients, Role.ADMIN)
    async def add_teacher():
        data = payload()
        try:
            account = await staff.create(
                acting_role=acting_role(),
                gateway=g.client.gateway,
                data=NewStaff(
                    name=data.get("name", ""),
                    email=data.get("email", ""),
                    password=data.get("password", ""),
                    role=data.get("role") or Role.SUBMITTER.value,
                ),
            )
        except PartialProvisioning as e:
            return fail(str(e), 500, identity_id=e.identity_id, failed_step=e.failed_step)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("adding the teacher")
        return ok(201, message="Teacher added successfully", item=account.to_dict())

    @app.route("/admin/teachers/<account_id>", methods=["PATCH"], endpoint="edit_teacher")
    @protected(clients, Role.ADMIN)
    async def edit_teacher(account_id: str):
        data = payload()
        try:
            await staff.update_field(
                acting_role=acting_role(),
                account_id=account_id,
                field=data.get("field") or "",
                value=data.get("value"),
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("updating the teacher")
        return ok(message="Teacher updated successfully")

    @app.route("/admin/teachers/<account_id>", methods=["DELETE"], endpoint="delete_teacher")
    @protected(clients, Role.ADMIN)
    async def delete_teacher(account_id: str):
        data = payload()
        try:
            await staff.delete(
                acting_role=acting_role(),
                gateway=g.client.gateway,
                account_id=account_id,
                password=data.get("password") or "",
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("deleting the teacher")
        return ok(message="Teacher deleted successfully")
