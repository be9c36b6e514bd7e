"""Create the first administrator account in the MySQL backend.

Usage: ADMIN_EMAIL=... ADMIN_PASSWORD=... python scripts/seed_db.py
"""
from __future__ import annotations

import asyncio
import importlib
import os
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for p in (REPO_ROOT, REPO_ROOT / "src"):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from dotenv import load_dotenv

from config import get_settings_module

from perizinan.container import build_container


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    email = os.getenv("ADMIN_EMAIL") or getattr(settings, "ADMIN_EMAIL", "")
    password = os.getenv("ADMIN_PASSWORD") or getattr(settings, "ADMIN_PASSWORD", "")
    if not email or not password:
        raise SystemExit("Set ADMIN_EMAIL and ADMIN_PASSWORD first.")

    container = build_container(db_config=dict(settings.DB_CONFIG), store_backend="mysql")
    account = asyncio.run(container.staff_service.ensure_admin_account(email=email, password=password))
    if account is None:
        print(f"OK: {email} already has an account")
    else:
        print(f"OK: admin {email} created (uid={account.identity_id})")


if __name__ == "__main__":
    main()
