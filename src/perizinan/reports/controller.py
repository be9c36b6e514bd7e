from __future__ import annotations

from dataclasses import asdict
from datetime import date, datetime

from flask import Flask, Response, request

from ..auth.guard import acting_role, protected
from ..common.http import domain_error, fail, ok, system_error
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError
from ..requests.query import RequestFilter
from .backup import backup_filename
from .pdf import render_pdf
from .service import render_text


def _attachment(body, mimetype: str, filename: str) -> Response:
    return Response(body, mimetype=mimetype, headers={"Content-Disposition": f"attachment; filename={filename}"})


def register(app: Flask, container: Container) -> None:
    reports = container.report_service
    backups = container.backup_service
    clients = container.clients

    @app.route("/admin/reports/analytics", methods=["GET"], endpoint="report_analytics")
    @protected(clients, Role.ADMIN)
    async def report_analytics():
        try:
            data = await reports.analytics(RequestFilter.from_args(request.args))
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("building analytics")
        return ok(**data)

    @app.route("/admin/reports/csv", methods=["GET"], endpoint="report_csv")
    @protected(clients, Role.ADMIN)
    async def report_csv():
        try:
            body = await reports.csv_report(RequestFilter.from_args(request.args))
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("exporting CSV")
        return _attachment(body, "text/csv", "perizinan_report.csv")

    @app.route("/admin/reports/excel", methods=["GET"], endpoint="report_excel")
    @protected(clients, Role.ADMIN)
    async def report_excel():
        try:
            body = await reports.excel_report(RequestFilter.from_args(request.args))
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("exporting Excel")
        return _attachment(
            body,
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "perizinan_report.xlsx",
        )

    @app.route("/admin/reports/layout", methods=["GET"], endpoint="report_layout")
    @protected(clients, Role.ADMIN)
    async def report_layout():
        try:
            layout = await reports.layout(RequestFilter.from_args(request.args), today=date.today())
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("building the report")

        if request.args.get("format") == "text":
            return _attachment(render_text(layout), "text/plain", "perizinan_report.txt")
        data = asdict(layout)
        for page, raw in zip(layout.pages, data["pages"]):
            raw["footer"] = page.footer
        return ok(report=data)

    @app.route("/admin/reports/pdf", methods=["GET"], endpoint="report_pdf")
    @protected(clients, Role.ADMIN)
    async def report_pdf():
        try:
            layout = await reports.layout(RequestFilter.from_args(request.args), today=date.today())
            body = render_pdf(layout)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("building the PDF report")
        return _attachment(body, "application/pdf", f"perizinan_report_{layout.generated_on}.pdf")

    @app.route("/admin/backup", methods=["GET"], endpoint="backup")
    @protected(clients, Role.ADMIN)
    async def backup():
        try:
            body = await backups.backup(acting_role=acting_role())
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("backing up data")
        return _attachment(body, "application/json", backup_filename(datetime.now()))

    @app.route("/admin/restore", methods=["POST"], endpoint="restore")
    @protected(clients, Role.ADMIN)
    async def restore():
        upload = request.files.get("file")
        raw = upload.read() if upload is not None else request.get_data()
        if not raw.strip():
            return fail("No backup file was uploaded", 400)
        try:
            counts = await backups.restore(acting_role=acting_role(), raw=raw)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("restoring data")
        return ok(message="Data restored successfully", collections=counts)
