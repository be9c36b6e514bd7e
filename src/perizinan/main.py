from __future__ import annotations

import asyncio
import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .container import build_container
from .core.constants import DEFAULT_CLIENT_IDLE_SECONDS
from .core.exceptions import ValidationError
from .database.connection import DBConfig
from .database.bootstrap import apply_schema, list_tables
from .auth.controller import register as register_auth
from .dashboards.controller import register as register_dashboards
from .requests.controller import register as register_requests
from .roster.controller import register as register_roster
from .staff.controller import register as register_staff
from .schedules.controller import register as register_schedules
from .reports.controller import register as register_reports

logger = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[2]


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=logging.DEBUG if app.config["DEBUG"] else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store_backend = str(getattr(settings, "STORE_BACKEND", "mysql")).lower()
    logger.info("settings=%s store=%s", settings_module, store_backend)
    if store_backend == "mysql":
        # Helpful startup info to avoid "connected but no tables" confusion.
        logger.info("db=%s", DBConfig.from_dict(db_config).describe())

    upload_dir = Path(getattr(settings, "UPLOAD_DIR", "uploads"))
    if not upload_dir.is_absolute():
        upload_dir = REPO_ROOT / upload_dir

    container = build_container(
        db_config=db_config,
        store_backend=store_backend,
        role_retry_seconds=float(getattr(settings, "ROLE_RETRY_SECONDS", 2.0)),
        client_idle_seconds=float(getattr(settings, "SESSION_IDLE_SECONDS", DEFAULT_CLIENT_IDLE_SECONDS)),
        upload_dir=str(upload_dir),
        school_name=str(getattr(settings, "SCHOOL_NAME", "School")),
    )

    if store_backend == "mysql" and bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(container.conn, schema_path=REPO_ROOT / "database" / "schema.sql")
        logger.info("schema ready (tables=%s)", len(list_tables(container.conn)))

    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        email = getattr(settings, "ADMIN_EMAIL", "")
        password = getattr(settings, "ADMIN_PASSWORD", "")
        if email and password:
            try:
                asyncio.run(container.staff_service.ensure_admin_account(email=email, password=password))
            except ValidationError as e:
                logger.warning("admin seed skipped: %s", e)

    app.extensions["perizinan"] = container

    register_auth(app, container)
    register_dashboards(app, container)
    register_requests(app, container)
    register_roster(app, container)
    register_staff(app, container)
    register_schedules(app, container)
    register_reports(app, container)

    return app
