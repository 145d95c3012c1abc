"""Unit tests for the local-disk object store substrate."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from urllib.parse import parse_qsl, urlsplit

import pytest

import resources.substrates.object_store.local_object_store as local_store_module
from resources.substrates.object_store import (
    InvalidUploadSignatureError,
    LocalObjectStoreSubstrate,
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
    ObjectStoreSubstrateSettings,
)

_UPLOADER = "02" + "ab" * 32
_CUSTOM_TIME = datetime(2030, 1, 1, 0, 5, tzinfo=UTC)


def _store(tmp_path: Path, *, domain: str = "storage.example.com") -> LocalObjectStoreSubstrate:
    return LocalObjectStoreSubstrate(
        settings=ObjectStoreSubstrateSettings(
            root_dir=str(tmp_path),
            hosting_domain=domain,
            upload_signing_secret="test-secret",
            fsync_writes=False,
        )
    )


def test_write_then_get_metadata_reports_name_size_and_type(tmp_path: Path) -> None:
    store = _store(tmp_path)

    store.write_object(
        object_path="cdn/abc123",
        content=b"x" * 4096,
        content_type="image/png",
        uploader_identity_key=_UPLOADER,
        custom_time=_CUSTOM_TIME,
    )
    metadata = store.get_metadata(object_path="cdn/abc123")

    assert metadata.name == "cdn/abc123"
    assert metadata.size == 4096
    assert metadata.content_type == "image/png"
    assert metadata.uploader_identity_key == _UPLOADER
    assert metadata.custom_time == _CUSTOM_TIME
    assert (tmp_path / "cdn" / "abc123").read_bytes() == b"x" * 4096


def test_write_refuses_to_overwrite_existing_object(tmp_path: Path) -> None:
    store = _store(tmp_path)
    kwargs = dict(
        object_path="cdn/abc123",
        content=b"one",
        content_type="text/plain",
        uploader_identity_key=_UPLOADER,
        custom_time=None,
    )
    store.write_object(**kwargs)

    with pytest.raises(ObjectAlreadyExistsError):
        store.write_object(**kwargs)
    assert store.read_head(object_path="cdn/abc123", length=10) == b"one"


def test_get_metadata_raises_not_found_for_missing_object(tmp_path: Path) -> None:
    with pytest.raises(ObjectNotFoundError):
        _store(tmp_path).get_metadata(object_path="cdn/missing")


def test_set_custom_time_is_idempotent(tmp_path: Path) -> None:
    store = _store(tmp_path)
    store.write_object(
        object_path="cdn/abc123",
        content=b"data",
        content_type="text/plain",
        uploader_identity_key=_UPLOADER,
        custom_time=None,
    )
    later = datetime(2031, 6, 1, tzinfo=UTC)

    store.set_custom_time(object_path="cdn/abc123", custom_time=later)
    store.set_custom_time(object_path="cdn/abc123", custom_time=later)

    assert store.get_metadata(object_path="cdn/abc123").custom_time == later


def test_rejects_paths_outside_cdn_prefix(tmp_path: Path) -> None:
    store = _store(tmp_path)

    with pytest.raises(ValueError):
        store.resolve_path(object_path="cdn/../secrets")
    with pytest.raises(ValueError):
        store.resolve_path(object_path="private/abc")


def test_signed_upload_url_verifies_round_trip(tmp_path: Path) -> None:
    store = _store(tmp_path)

    signed = store.signed_upload_url(
        object_id="abc123",
        size_bytes=4096,
        custom_time=_CUSTOM_TIME,
        uploader_identity_key=_UPLOADER,
    )
    parts = urlsplit(signed.upload_url)
    grant = store.verify_upload(params=dict(parse_qsl(parts.query)))

    assert parts.scheme == "https"
    assert parts.netloc == "storage.example.com"
    assert parts.path == "/put"
    assert signed.required_headers == {"content-length": "4096"}
    assert grant.object_id == "abc123"
    assert grant.size_bytes == 4096
    assert grant.custom_time == _CUSTOM_TIME
    assert grant.uploader_identity_key == _UPLOADER


def test_signed_upload_url_uses_plain_http_for_localhost(tmp_path: Path) -> None:
    store = _store(tmp_path, domain="localhost:8080")

    signed = store.signed_upload_url(
        object_id="abc123",
        size_bytes=1,
        custom_time=_CUSTOM_TIME,
        uploader_identity_key=_UPLOADER,
    )

    assert signed.upload_url.startswith("http://localhost:8080/put?")


def test_public_url_uses_hosting_domain(tmp_path: Path) -> None:
    assert (
        _store(tmp_path).public_url(object_path="cdn/abc123")
        == "https://storage.example.com/cdn/abc123"
    )


def test_verify_upload_rejects_tampered_size(tmp_path: Path) -> None:
    store = _store(tmp_path)
    signed = store.signed_upload_url(
        object_id="abc123",
        size_bytes=10,
        custom_time=_CUSTOM_TIME,
        uploader_identity_key=_UPLOADER,
    )
    params = dict(parse_qsl(urlsplit(signed.upload_url).query))
    params["fileSize"] = "11"

    with pytest.raises(InvalidUploadSignatureError):
        store.verify_upload(params=params)


def test_verify_upload_rejects_missing_signature(tmp_path: Path) -> None:
    with pytest.raises(InvalidUploadSignatureError):
        _store(tmp_path).verify_upload(params={"objectID": "abc123"})


def test_failed_replace_cleans_temp_files(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    store = _store(tmp_path)

    def _boom(*_args: object, **_kwargs: object) -> None:
        raise OSError("replace failed")

    monkeypatch.setattr(local_store_module.os, "replace", _boom)

    with pytest.raises(OSError):
        store.write_object(
            object_path="cdn/abc123",
            content=b"data",
            content_type="text/plain",
            uploader_identity_key=_UPLOADER,
            custom_time=None,
        )

    assert list(tmp_path.rglob("*.tmp")) == []
