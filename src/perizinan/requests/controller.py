from __future__ import annotations

import json
import logging
import queue

from flask import Flask, Response, g, request, send_from_directory

from ..auth.guard import acting_role, protected
from ..common.http import domain_error, fail, ok, payload, system_error
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import DomainError, ValidationError
from .model import RequestDraft
from .query import RequestFilter, apply_filter, paginate, parse_page, sort_requests
from .service import available_transitions, enrich

logger = logging.getLogger(__name__)

ALL_ROLES = (Role.ADMIN, Role.APPROVER, Role.SUBMITTER)

# Seconds between keep-alive comments on an idle event stream.
STREAM_KEEPALIVE = 15


def _sse(event: str, data) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


def register(app: Flask, container: Container) -> None:
    manager = container.request_manager
    clients = container.clients

    @app.route("/api/perizinan", methods=["GET"], endpoint="list_requests")
    @protected(clients, *ALL_ROLES)
    async def list_requests():
        try:
            f = RequestFilter.from_args(request.args)
            items = enrich(await manager.list_all(), await container.roster_service.list_students())
            items = apply_filter(items, f)
            if request.args.get("sort"):
                items = sort_requests(items, request.args["sort"], request.args.get("direction", "asc"))
            page = paginate(items, parse_page(request.args.get("page")))
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("loading permission requests")

        return ok(
            items=[
                {**r.to_dict(), "transitions": sorted(s.value for s in available_transitions(r.status))}
                for r in page.items
            ],
            page=page.page,
            total_pages=page.total_pages,
            total_items=page.total_items,
        )

    @app.route("/api/perizinan", methods=["POST"], endpoint="create_request")
    @protected(clients, Role.SUBMITTER)
    async def create_request():
        data = payload()
        try:
            student_id = (data.get("student_id") or "").strip()
            if student_id:
                student = await container.roster_service.get(student_id)
                if student is None:
                    raise ValidationError("Student not found")
                draft = RequestDraft.for_student(
                    student,
                    reason=(data.get("reason") or "").strip(),
                    depart_time=(data.get("depart_time") or "").strip(),
                    return_time=(data.get("return_time") or "").strip(),
                    document_url=(data.get("document_url") or "").strip() or None,
                )
            else:
                draft = RequestDraft.from_payload(data)
            created = await manager.create(acting_role(), draft)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("creating the permission request")
        return ok(201, message="Permission request submitted", item=created.to_dict())

    @app.route("/api/perizinan/<request_id>", methods=["PATCH"], endpoint="edit_request")
    @protected(clients, *ALL_ROLES)
    async def edit_request(request_id: str):
        data = payload()
        try:
            await manager.set_field(acting_role(), request_id, data.get("field") or "", data.get("value"))
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("updating the permission request")
        return ok(message="Permission request updated")

    @app.route("/api/perizinan/<request_id>/status", methods=["POST"], endpoint="decide_request")
    @protected(clients, *ALL_ROLES)
    async def decide_request(request_id: str):
        data = payload()
        try:
            await manager.set_status(acting_role(), request_id, data.get("status"))
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("changing the request status")
        return ok(message="Status updated")

    @app.route("/api/perizinan/<request_id>", methods=["DELETE"], endpoint="delete_request")
    @protected(clients, *ALL_ROLES)
    async def delete_request(request_id: str):
        try:
            await manager.remove(acting_role(), request_id)
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("deleting the permission request")
        return ok(message="Permission request deleted")

    @app.route("/api/perizinan/stream", methods=["GET"], endpoint="stream_requests")
    @protected(clients, *ALL_ROLES)
    async def stream_requests():
        events: "queue.Queue[str]" = queue.Queue()

        def on_change(requests) -> None:
            events.put(_sse("requests", [r.to_dict() for r in requests]))

        def on_error(e) -> None:
            events.put(_sse("disconnected", {"message": str(e)}))

        try:
            unsubscribe = await manager.listen(on_change, on_error)
        except Exception:
            return system_error("opening the live feed")
        who = g.session.email

        def generate():
            try:
                while True:
                    try:
                        yield events.get(timeout=STREAM_KEEPALIVE)
                    except queue.Empty:
                        yield ": keepalive\n\n"
            finally:
                unsubscribe()
                logger.debug("live feed closed for %s", who)

        return Response(generate(), mimetype="text/event-stream", headers={"Cache-Control": "no-cache"})

    @app.route("/api/documents", methods=["POST"], endpoint="upload_document")
    @protected(clients, Role.SUBMITTER)
    async def upload_document():
        f = request.files.get("file")
        if f is None:
            return fail("No file was uploaded", 400)
        try:
            url = await container.uploader.upload(f.filename or "", f.read())
        except DomainError as e:
            return domain_error(e)
        except Exception:
            return system_error("uploading the document")
        return ok(201, message="Document uploaded", url=url)

    @app.route("/uploads/<path:filename>", methods=["GET"], endpoint="uploaded_file")
    @protected(clients, *ALL_ROLES)
    async def uploaded_file(filename: str):
        return send_from_directory(container.blobs.root, filename)
