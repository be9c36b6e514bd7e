from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, Union

from ..core.enums import Role
from ..core.exceptions import Unauthorized, ValidationError
from ..storage.base import RecordStore

logger = logging.getLogger(__name__)


def backup_filename(now: datetime) -> str:
    return f"backup_{now.strftime('%Y%m%dT%H%M%S')}.json"


class BackupService:
    """Dump the whole record tree as JSON and restore it by overwriting the root."""

    def __init__(self, store: RecordStore):
        self._store = store

    @staticmethod
    def _require_admin(acting_role: Role) -> None:
        if Role.parse(acting_role) != Role.ADMIN:
            raise Unauthorized("Only admins can back up or restore data")

    async def backup(self, *, acting_role: Role) -> str:
        self._require_admin(acting_role)
        tree = await self._store.read("/") or {}
        return json.dumps(tree, ensure_ascii=False)

    async def restore(self, *, acting_role: Role, raw: Union[str, bytes]) -> Dict[str, int]:
        self._require_admin(acting_role)
        try:
            if isinstance(raw, (bytes, bytearray)):
                raw = bytes(raw).decode("utf-8-sig")
            tree: Any = json.loads(raw or "")
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise ValidationError("Backup file is not valid JSON")
        if not isinstance(tree, dict) or not all(isinstance(v, dict) for v in tree.values()):
            raise ValidationError("Backup file must map collections to records")

        await self._store.write("/", tree)
        counts = {name: len(records) for name, records in tree.items()}
        logger.warning("store restored from backup: %s", counts)
        return counts
