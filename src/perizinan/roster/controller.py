from __future__ import annotations

import pandas as pd
from flask import Flask, Response, request

from ..auth.guard import acting_role, protected
from ..common.http import domain_error, fail, ok, payload, system_error
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError
from ..requests.query import paginate, parse_page
from .service import CSV_HEADER, NewStudent


def register(app: Flask, container: Container) -> None:
    roster = container.roster_service
    clients = container.clients

    @app.route("/api/students", methods=["GET"], endpoint="list_students")
    @protected(clients, Role.ADMIN, Role.APPROVER, Role.SUBMITTER)
    async def list_students():
        try:
            students = await roster.list_students()
        except Exception:
            return system_error("loading students")
        return ok(items=[s.to_dict() for s in students])

    @app.route("/admin/students", methods=["GET"], endpoint="admin_students")
    @protected(clients, Role.ADMIN)
    async def admin_students():
        try:
            page = paginate(await roster.list_students(), parse_page(request.args.get("page")))
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("loading students")
        return ok(
            items=[s.to_dict() for s in page.items],
            page=page.page,
            total_pages=page.total_pages,
            total_items=page.total_items,
        )

    @app.route("/admin/students", methods=["POST"], endpoint="add_student")
    @protected(clients, Role.ADMIN)
    async def add_student():
        data = payload()
        try:
            student = await roster.create(
                acting_role=acting_role(),
                data=NewStudent(
                    nisn=data.get("nisn", ""),
                    name=data.get("name") or data.get("namasiswa", ""),
                    class_name=data.get("class_name") or data.get("kelas", ""),
                    gender=data.get("gender", ""),
                    dormitory=data.get("dormitory") or data.get("asrama", ""),
                ),
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("adding the student")
        return ok(201, message="Student added", item=student.to_dict())

    @app.route("/admin/students/<student_id>", methods=["PATCH"], endpoint="edit_student")
    @protected(clients, Role.ADMIN)
    async def edit_student(student_id: str):
        data = payload()
        try:
            await roster.update_field(
                acting_role=acting_role(),
                student_id=student_id,
                field=data.get("field") or "",
                value=data.get("value"),
            )
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("updating the student")
        return ok(message="Student updated")

    @app.route("/admin/students/<student_id>", methods=["DELETE"], endpoint="delete_student")
    @protected(clients, Role.ADMIN)
    async def delete_student(student_id: str):
        try:
            await roster.remove(acting_role=acting_role(), student_id=student_id)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("deleting the student")
        return ok(message="Student deleted")

    @app.route("/admin/students/import", methods=["POST"], endpoint="import_students")
    @protected(clients, Role.ADMIN)
    async def import_students():
        upload = request.files.get("file")
        if upload is not None:
            text = upload.read().decode("utf-8-sig", errors="replace")
        else:
            text = request.get_data(as_text=True)
        if not text.strip():
            return fail("No CSV data was uploaded", 400)
        try:
            result = await roster.import_csv(acting_role=acting_role(), text=text)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("importing students")
        return ok(message="CSV file imported successfully!", imported=result.imported, skipped=result.skipped)

    @app.route("/admin/students/export", methods=["GET"], endpoint="export_students")
    @protected(clients, Role.ADMIN)
    async def export_students():
        try:
            students = await roster.list_students()
        except Exception:
            return system_error("exporting students")
        df = pd.DataFrame([s.to_record() for s in students], columns=CSV_HEADER)
        return Response(
            df.to_csv(index=False),
            mimetype="text/csv",
            headers={"Content-Disposition": "attachment; filename=students.csv"},
        )
