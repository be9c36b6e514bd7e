from __future__ import annotations

import pytest

from perizinan.core.exceptions import ValidationError
from perizinan.storage.blobs import DocumentUploader, LocalBlobStore


pytestmark = pytest.mark.anyio


async def test_upload_returns_retrievable_url(tmp_path):
    blobs = LocalBlobStore(tmp_path)
    uploader = DocumentUploader(blobs, upload_ids=lambda: "u1")

    url = await uploader.upload("surat izin.pdf", b"%PDF-1.4")

    assert url == "/uploads/documents/u1/surat_izin.pdf"
    assert (tmp_path / "documents" / "u1" / "surat_izin.pdf").read_bytes() == b"%PDF-1.4"


async def test_same_file_name_twice_keeps_both_documents(tmp_path):
    uploader = DocumentUploader(LocalBlobStore(tmp_path))

    first = await uploader.upload("surat.pdf", b"first")
    second = await uploader.upload("surat.pdf", b"second")

    assert first != second
    for url, body in ((first, b"first"), (second, b"second")):
        assert (tmp_path / url.removeprefix("/uploads/")).read_bytes() == body


async def test_on_start_fires_while_upload_is_in_flight(tmp_path):
    uploader = DocumentUploader(LocalBlobStore(tmp_path))
    states = []

    await uploader.upload("note.txt", b"x", on_start=lambda: states.append(uploader.in_flight))

    assert states == [True]
    assert uploader.in_flight is False


async def test_in_flight_is_reset_when_upload_fails(tmp_path):
    class FailingBlobs:
        async def upload(self, path, data):
            raise OSError("disk full")

    uploader = DocumentUploader(FailingBlobs())

    with pytest.raises(OSError):
        await uploader.upload("note.txt", b"x")
    assert uploader.in_flight is False


@pytest.mark.parametrize("name, data", [("", b"x"), ("../..", b"x"), ("note.txt", b"")])
async def test_rejects_bad_names_and_empty_files(tmp_path, name, data):
    uploader = DocumentUploader(LocalBlobStore(tmp_path))
    with pytest.raises(ValidationError):
        await uploader.upload(name, data)
