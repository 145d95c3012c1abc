"""Behavior tests for Hosting Gateway Service."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl, urlsplit

import base58
import pytest

from packages.uhrp_shared.envelope import EnvelopeKind, failure, new_meta, success
from packages.uhrp_shared.errors import ErrorCategory, dependency_error
from packages.uhrp_shared.uhrp_url import url_for_content
from resources.substrates.object_store import (
    LocalObjectStoreSubstrate,
    ObjectStoreSubstrateSettings,
)
from services.action.hosting_gateway import codes
from services.action.hosting_gateway.config import HostingGatewaySettings
from services.action.hosting_gateway.implementation import (
    DefaultHostingGatewayService,
    mint_object_id,
)
from services.state.advertisement_authority.domain import IssueResult

_ALICE = "02" + "ab" * 32
_NOW = 1_900_000_000
_CONTENT = b"\x89PNG\r\n\x1a\n" + b"\x01" * 120


class _FakeAdvertisements:
    def __init__(self) -> None:
        self.issued: list[dict[str, Any]] = []
        self.fail = False

    def issue(self, *, meta: object, **kwargs: Any) -> object:
        if self.fail:
            return failure(
                meta=meta,
                errors=[dependency_error("relay down", code="ERR_RELAY_FAILED")],
            )
        self.issued.append(kwargs)
        return success(
            meta=meta,
            payload=IssueResult(
                transaction_id="ab" * 32,
                uhrp_url=kwargs["uhrp_url"],
                object_id=kwargs["object_id"],
                expiry_time=kwargs["expiry_time"],
            ),
        )


class _FakePricing:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail

    def price(self, *, size_bytes: int, retention_minutes: int) -> int:
        if self.fail:
            raise RuntimeError("rate source exploded")
        return max(size_bytes * retention_minutes // 100, 10)


def _meta() -> object:
    """Return valid envelope metadata for gateway test requests."""
    return new_meta(kind=EnvelopeKind.COMMAND, source="test", principal=_ALICE)


def _gateway(
    tmp_path: Path,
    *,
    domain: str = "storage.example.com",
    pricing: _FakePricing | None = None,
    **settings: object,
) -> tuple[DefaultHostingGatewayService, LocalObjectStoreSubstrate, _FakeAdvertisements]:
    store = LocalObjectStoreSubstrate(
        settings=ObjectStoreSubstrateSettings(
            root_dir=str(tmp_path),
            hosting_domain=domain,
            upload_signing_secret="test-secret",
            fsync_writes=False,
        )
    )
    advertisements = _FakeAdvertisements()
    service = DefaultHostingGatewayService(
        settings=HostingGatewaySettings.model_validate(settings),
        advertisements=advertisements,  # type: ignore[arg-type]
        object_store=store,
        pricing=pricing or _FakePricing(),
        clock=lambda: float(_NOW),
        object_ids=lambda: "obj123",
    )
    return service, store, advertisements


def _upload_params(service: DefaultHostingGatewayService, size: int) -> dict[str, str]:
    authorized = service.authorize_upload(
        meta=_meta(), uploader_identity_key=_ALICE, file_size=size, retention_minutes=60
    )
    assert authorized.payload is not None
    return dict(parse_qsl(urlsplit(authorized.payload.value.upload_url).query))


def test_quote_prices_size_and_retention(tmp_path: Path) -> None:
    service, _store, _ads = _gateway(tmp_path)

    result = service.quote(meta=_meta(), file_size=1000, retention_minutes=30)

    assert result.ok is True
    assert result.payload is not None
    assert result.payload.value.amount == 300


@pytest.mark.parametrize(
    ("file_size", "retention", "code"),
    [
        (None, 10, codes.NO_SIZE),
        (100, None, codes.NO_RETENTION_PERIOD),
        ("abc", 10, codes.INVALID_SIZE),
        (-1, 10, codes.INVALID_SIZE),
        (1.5, 10, codes.INVALID_SIZE),
        (100, 0, codes.INVALID_RETENTION_PERIOD),
        (100, 2.5, codes.INVALID_RETENTION_PERIOD),
        (100, 5, codes.INVALID_RETENTION_PERIOD),
        (100, 1_000_001, codes.INVALID_RETENTION_PERIOD),
    ],
)
def test_quote_validation_codes(
    tmp_path: Path, file_size: object, retention: object, code: str
) -> None:
    service, _store, _ads = _gateway(
        tmp_path, min_hosting_minutes=10, max_hosting_minutes=1_000_000
    )

    result = service.quote(meta=_meta(), file_size=file_size, retention_minutes=retention)

    assert result.ok is False
    assert result.errors[0].code == code
    assert result.errors[0].category == ErrorCategory.VALIDATION


def test_quote_pricing_failure_is_internal(tmp_path: Path) -> None:
    service, _store, _ads = _gateway(tmp_path, pricing=_FakePricing(fail=True))

    result = service.quote(meta=_meta(), file_size=10, retention_minutes=10)

    assert result.errors[0].code == codes.INTERNAL
    assert result.errors[0].category == ErrorCategory.INTERNAL


def test_authorize_upload_signs_url_with_expiry_plus_grace(tmp_path: Path) -> None:
    service, store, _ads = _gateway(tmp_path)

    result = service.authorize_upload(
        meta=_meta(), uploader_identity_key=_ALICE, file_size=128, retention_minutes=60
    )

    assert result.payload is not None
    authorization = result.payload.value
    assert authorization.object_id == "obj123"
    assert authorization.expiry_time == _NOW + 3600
    assert authorization.amount == 128 * 60 // 100
    assert authorization.required_headers == {"content-length": "128"}
    grant = store.verify_upload(
        params=dict(parse_qsl(urlsplit(authorization.upload_url).query))
    )
    assert grant.object_id == "obj123"
    assert grant.size_bytes == 128
    assert grant.uploader_identity_key == _ALICE
    assert grant.custom_time == datetime.fromtimestamp(_NOW + 3600 + 300, tz=UTC)


def test_authorize_upload_rejects_oversized_file_and_bad_key(tmp_path: Path) -> None:
    service, _store, _ads = _gateway(tmp_path, max_file_size_bytes=1000)

    too_big = service.authorize_upload(
        meta=_meta(), uploader_identity_key=_ALICE, file_size=1001, retention_minutes=1
    )
    no_key = service.authorize_upload(
        meta=_meta(), uploader_identity_key="", file_size=10, retention_minutes=1
    )

    assert too_big.errors[0].code == codes.INVALID_SIZE
    assert no_key.errors[0].code == codes.MISSING_IDENTITY_KEY


def test_accept_upload_stores_and_advertises(tmp_path: Path) -> None:
    service, store, ads = _gateway(tmp_path)
    params = _upload_params(service, len(_CONTENT))

    result = service.accept_upload(
        meta=_meta(),
        params=params,
        content=_CONTENT,
        content_type="image/png; charset=binary",
    )

    assert result.ok is True, result.errors
    assert result.payload is not None
    accepted = result.payload.value
    assert accepted.uhrp_url == url_for_content(_CONTENT)
    assert accepted.object_id == "obj123"
    assert accepted.transaction_id == "ab" * 32
    assert store.get_metadata(object_path="cdn/obj123").content_type == "image/png"
    assert ads.issued == [
        {
            "uhrp_url": url_for_content(_CONTENT),
            "object_id": "obj123",
            "url": "https://storage.example.com/cdn/obj123",
            "uploader_identity_key": _ALICE,
            "expiry_time": _NOW + 3600,
            "content_length": len(_CONTENT),
            "content_type": "image/png",
        }
    ]


def test_accept_upload_rejects_tampering_and_size_mismatch(tmp_path: Path) -> None:
    service, store, ads = _gateway(tmp_path)
    params = _upload_params(service, len(_CONTENT))
    tampered = {**params, "uploader": "03" + "cd" * 32}

    forged = service.accept_upload(meta=_meta(), params=tampered, content=_CONTENT)
    short = service.accept_upload(meta=_meta(), params=params, content=_CONTENT[:-1])

    assert forged.errors[0].code == codes.INVALID_SIGNATURE
    assert forged.errors[0].category == ErrorCategory.POLICY
    assert short.errors[0].code == codes.SIZE_MISMATCH
    assert store.exists(object_path="cdn/obj123") is False
    assert ads.issued == []


def test_accept_upload_refuses_existing_object(tmp_path: Path) -> None:
    service, _store, ads = _gateway(tmp_path)
    params = _upload_params(service, len(_CONTENT))

    first = service.accept_upload(meta=_meta(), params=params, content=_CONTENT)
    second = service.accept_upload(meta=_meta(), params=params, content=_CONTENT)

    assert first.ok is True
    assert second.errors[0].code == codes.ALREADY_EXISTS
    assert second.errors[0].category == ErrorCategory.CONFLICT
    assert len(ads.issued) == 1


def test_accept_upload_skips_advertisement_on_localhost(tmp_path: Path) -> None:
    service, store, ads = _gateway(tmp_path, domain="localhost:8080")
    params = _upload_params(service, len(_CONTENT))

    result = service.accept_upload(meta=_meta(), params=params, content=_CONTENT)

    assert result.payload is not None
    assert result.payload.value.transaction_id is None
    assert store.get_metadata(object_path="cdn/obj123").content_type == (
        "application/octet-stream"
    )
    assert ads.issued == []


def test_accept_upload_advertises_on_localhost_when_enabled(tmp_path: Path) -> None:
    service, _store, ads = _gateway(
        tmp_path, domain="localhost:8080", advertise_on_localhost=True
    )
    params = _upload_params(service, len(_CONTENT))

    service.accept_upload(meta=_meta(), params=params, content=_CONTENT)

    assert ads.issued[0]["url"] == "http://localhost:8080/cdn/obj123"


def test_accept_upload_surfaces_advertisement_failure(tmp_path: Path) -> None:
    service, store, ads = _gateway(tmp_path)
    ads.fail = True
    params = _upload_params(service, len(_CONTENT))

    result = service.accept_upload(meta=_meta(), params=params, content=_CONTENT)

    assert result.errors[0].code == "ERR_RELAY_FAILED"
    assert store.exists(object_path="cdn/obj123") is True


def test_mint_object_id_is_base58_of_sixteen_bytes() -> None:
    first, second = mint_object_id(), mint_object_id()

    assert first != second
    assert len(base58.b58decode(first)) == 16
