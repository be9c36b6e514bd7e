from __future__ import annotations

import asyncio
import io

import pytest


ADMIN = {"email": "admin@example.com", "password": "admin123"}


def _login(client, email, password):
    return client.post("/login", json={"email": email, "password": password})


@pytest.fixture
def admin_client(app):
    client = app.test_client()
    assert _login(client, **ADMIN).status_code == 200
    return client


def _add_staff(admin_client, name, email, role):
    resp = admin_client.post(
        "/admin/teachers", json={"name": name, "email": email, "password": "secret1", "role": role}
    )
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["item"]


def test_anonymous_users_are_sent_to_login(app):
    client = app.test_client()

    resp = client.get("/admin")

    assert resp.status_code == 302
    assert "/login" in resp.headers["Location"]
    assert "next=" in resp.headers["Location"]


def test_wrong_password_is_rejected(app):
    resp = _login(app.test_client(), "admin@example.com", "nope")

    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_seeded_admin_lands_on_admin_dashboard(admin_client):
    resp = admin_client.get("/dashboard")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/admin")

    body = admin_client.get("/admin").get_json()
    assert body["view"] == "admin"
    assert body["user"]["role"] == "admin"


def test_login_follows_safe_next_only(app):
    client = app.test_client()

    assert _login(client, **ADMIN).get_json()["redirect"] == "/dashboard"
    resp = client.post("/login", json={**ADMIN, "next": "//evil.example/x"})
    assert resp.get_json()["redirect"] == "/dashboard"
    resp = client.post("/login", json={**ADMIN, "next": "/admin/teachers"})
    assert resp.get_json()["redirect"] == "/admin/teachers"


def test_wrong_role_is_redirected_through_default_dashboard(app, admin_client):
    _add_staff(admin_client, "Bu Sri", "sri@school.id", "gurupiket")
    teacher = app.test_client()
    assert _login(teacher, "sri@school.id", "secret1").status_code == 200

    resp = teacher.get("/admin")

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")

    resp = teacher.get("/dashboard")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/teacher")


def test_request_flow_from_submission_to_decision(app, admin_client):
    _add_staff(admin_client, "Bu Sri", "sri@school.id", "gurupiket")
    _add_staff(admin_client, "Pak Joko", "joko@school.id", "wakil")
    admin_client.post(
        "/admin/students",
        json={"nisn": "001", "name": "Ana", "class_name": "X-1", "gender": "female", "dormitory": "Melati"},
    )
    student_id = admin_client.get("/api/students").get_json()["items"][0]["id"]

    teacher = app.test_client()
    _login(teacher, "sri@school.id", "secret1")
    resp = teacher.post(
        "/api/perizinan",
        json={
            "student_id": student_id,
            "reason": "Sakit",
            "depart_time": "2024-03-01T08:00",
            "return_time": "2024-03-01T12:00",
        },
    )
    assert resp.status_code == 201, resp.get_json()
    request_id = resp.get_json()["item"]["id"]

    # Submitters cannot decide.
    assert teacher.post(f"/api/perizinan/{request_id}/status", json={"status": "approved"}).status_code == 403

    deputy = app.test_client()
    _login(deputy, "joko@school.id", "secret1")
    pending = deputy.get("/deputy").get_json()["pending"]
    assert [p["id"] for p in pending] == [request_id]

    resp = deputy.post(f"/api/perizinan/{request_id}/status", json={"status": "approved"})
    assert resp.status_code == 200

    listing = admin_client.get("/api/perizinan?status=approved").get_json()
    assert [i["id"] for i in listing["items"]] == [request_id]
    assert listing["items"][0]["transitions"] == []


def test_logout_ends_the_session(admin_client):
    resp = admin_client.post("/logout")
    assert resp.status_code == 200

    resp = admin_client.get("/admin")
    assert resp.status_code == 302
    assert "/login" in resp.headers["Location"]


def test_user_without_role_record_cannot_sign_in(app, container):
    asyncio.run(container.identity_provider.create_account("ghost@school.id", "secret1"))

    resp = _login(app.test_client(), "ghost@school.id", "secret1")

    assert resp.status_code == 401


def test_only_signed_in_browsers_are_remembered(app, container):
    for _ in range(50):
        app.test_client().get("/dashboard")
    assert len(container.clients) == 0

    client = app.test_client()
    _login(client, **ADMIN)
    assert len(container.clients) == 1

    _login(client, **ADMIN)
    assert len(container.clients) == 1

    client.post("/logout")
    assert len(container.clients) == 0


def test_failed_login_is_not_remembered(app, container):
    _login(app.test_client(), "admin@example.com", "wrong-password")

    assert len(container.clients) == 0


def test_restore_rejects_undecodable_file(admin_client, container):
    resp = admin_client.post(
        "/admin/restore",
        data={"file": (io.BytesIO(b"\xff\xfe\x00garbage"), "backup.json")},
        content_type="multipart/form-data",
    )

    assert resp.status_code == 400
    assert resp.get_json() == {"success": False, "message": "Backup file is not valid JSON"}
    assert asyncio.run(container.store.read("/users")) is not None


def test_restore_from_uploaded_backup(admin_client):
    backup = admin_client.get("/admin/backup")
    assert backup.status_code == 200
    assert backup.mimetype == "application/json"

    resp = admin_client.post(
        "/admin/restore",
        data={"file": (io.BytesIO(backup.data), "backup.json")},
        content_type="multipart/form-data",
    )

    assert resp.status_code == 200
    assert resp.get_json()["collections"]["users"] == 1


def test_live_feed_releases_its_subscription_on_close(admin_client, container):
    before = container.store.subscriber_count

    resp = admin_client.get("/api/perizinan/stream", buffered=False)
    assert resp.mimetype == "text/event-stream"
    assert container.store.subscriber_count == before + 1

    first = next(iter(resp.response))
    if isinstance(first, bytes):
        first = first.decode("utf-8")
    assert first.startswith("event: requests\n")

    resp.close()
    assert container.store.subscriber_count == before


def test_pdf_report_download(admin_client):
    resp = admin_client.get("/admin/reports/pdf")

    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert resp.data.startswith(b"%PDF-")
    assert "attachment" in resp.headers["Content-Disposition"]
