"""Backup the record store as JSON.

The file has the same shape as the admin "Backup" download, so it can be
restored through /admin/restore.
"""

from __future__ import annotations

import asyncio
import importlib
import sys
from datetime import datetime
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for p in (REPO_ROOT, REPO_ROOT / "src"):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from dotenv import load_dotenv

from config import get_settings_module

from perizinan.container import build_container
from perizinan.core.enums import Role
from perizinan.reports.backup import backup_filename


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=dict(settings.DB_CONFIG), store_backend="mysql")

    out_dir = REPO_ROOT / "backups"
    out_dir.mkdir(parents=True, exist_ok=True)
    out_file = out_dir / backup_filename(datetime.now())

    body = asyncio.run(container.backup_service.backup(acting_role=Role.ADMIN))
    out_file.write_text(body, encoding="utf-8")
    print(f"OK: Backup created: {out_file}")


if __name__ == "__main__":
    main()
