import pytest

from chgk_portal.config import settings
from chgk_portal.services import storage
from tests.api_helpers import register

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def test_sanitize_filename():
    assert storage.sanitize_filename("my photo (1).PNG") == "my_photo__1.png"
    assert storage.sanitize_filename("Фото котика.jpg") == "image.jpg"
    assert storage.sanitize_filename("../../etc/passwd") == "passwd"


def test_storage_path_is_namespaced_by_user():
    assert storage.storage_path(7, "a.png", now=1.5) == "7/1500_a.png"


def test_validate_upload():
    storage.validate_upload("image/png", 10)
    with pytest.raises(storage.UploadRejected):
        storage.validate_upload("text/plain", 10)
    with pytest.raises(storage.UploadRejected):
        storage.validate_upload("image/png", 0)
    with pytest.raises(storage.UploadRejected):
        storage.validate_upload("image/png", settings.MAX_UPLOAD_BYTES + 1)


def test_upload_writes_file(tmp_path):
    assert storage.upload(None, "a.png", "image/png", PNG, media_root=str(tmp_path)) is None

    url = storage.upload(3, "avatar.png", "image/png", PNG, media_root=str(tmp_path))
    assert url.startswith(f"{settings.PUBLIC_BASE_URL}{settings.MEDIA_URL}/3/")
    assert url.endswith("_avatar.png")
    stored = list((tmp_path / "3").iterdir())
    assert len(stored) == 1
    assert stored[0].read_bytes() == PNG


@pytest.mark.asyncio
async def test_upload_endpoint(client, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "MEDIA_ROOT", str(tmp_path))
    files = {"file": ("avatar.png", PNG, "image/png")}

    assert (await client.post("/uploads", files=files)).status_code == 401

    await register(client)
    resp = await client.post("/uploads", files=files)
    assert resp.status_code == 201
    assert resp.json()["url"].endswith("_avatar.png")

    resp = await client.post("/uploads", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_upload_endpoint_rejects_oversized_file(client, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "MEDIA_ROOT", str(tmp_path))
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 16)
    await register(client)

    resp = await client.post("/uploads", files={"file": ("big.png", PNG, "image/png")})
    assert resp.status_code == 400
    assert "16 bytes" in resp.json()["detail"]
    assert list(tmp_path.iterdir()) == []
