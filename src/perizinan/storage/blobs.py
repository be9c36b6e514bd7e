from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, Protocol

from werkzeug.utils import secure_filename

from ..common.validators import require_non_empty
from ..core.constants import DOCUMENTS_PREFIX
from ..core.exceptions import ValidationError
from .base import PushIdGenerator

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    async def upload(self, path: str, data: bytes) -> str:
        """Store ``data`` at ``path`` and return a URL the browser can fetch."""

        raise NotImplementedError


class LocalBlobStore:
    """Blob store on local disk, served back by the app under ``base_url``."""

    def __init__(self, root: str | Path, *, base_url: str = "/uploads"):
        self._root = Path(root).resolve()
        self._base_url = base_url.rstrip("/")

    @property
    def root(self) -> Path:
        return self._root

    async def upload(self, path: str, data: bytes) -> str:
        target = (self._root / path).resolve()
        if self._root not in target.parents:
            raise ValidationError("Invalid upload path")
        await asyncio.to_thread(self._write, target, data)
        return f"{self._base_url}/{target.relative_to(self._root).as_posix()}"

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)


class DocumentUploader:
    """Upload supporting documents for permission requests.

    ``on_start`` fires before the transfer so a dependent form can disable its
    submit button; there is no mid-upload cancellation.
    """

    def __init__(self, blobs: BlobStore, *, upload_ids: Optional[Callable[[], str]] = None):
        self._blobs = blobs
        self._upload_ids = upload_ids or PushIdGenerator()
        self._in_flight = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight > 0

    async def upload(self, filename: str, data: bytes, *, on_start: Optional[Callable[[], None]] = None) -> str:
        name = secure_filename(require_non_empty(filename, "File name"))
        if not name:
            raise ValidationError("File name is not valid")
        if not data:
            raise ValidationError("File is empty")

        self._in_flight += 1
        if on_start is not None:
            on_start()
        try:
            # One folder per upload; equal file names never overwrite each other.
            url = await self._blobs.upload(f"{DOCUMENTS_PREFIX}/{self._upload_ids()}/{name}", data)
        finally:
            self._in_flight -= 1
        logger.info("document uploaded: %s", url)
        return url
