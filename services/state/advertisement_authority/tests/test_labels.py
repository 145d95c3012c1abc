"""Unit tests for the advertisement label scheme."""

from __future__ import annotations

from packages.uhrp_shared.uhrp_url import url_for_hash
from services.state.advertisement_authority.domain import AdvertisementRecord
from services.state.advertisement_authority.labels import (
    LabelKind,
    format_label,
    labels_for,
    parse_label,
    parse_labels,
)

_UPLOADER = "02" + "ab" * 32
_HASH = bytes(range(32))


def _record(content_type: str | None = None) -> AdvertisementRecord:
    return AdvertisementRecord(
        host_identity=bytes.fromhex("02" + "11" * 32),
        content_hash=_HASH,
        url="https://storage.example.com/cdn/abc123",
        expiry_time=1_900_000_000,
        content_length=4096,
        content_type=content_type,
    )


def test_text_labels_are_hex_encoded() -> None:
    assert format_label(LabelKind.OBJECT_ID, "abc123") == "object_identifier_616263313233"
    assert format_label(LabelKind.EXPIRY_TIME, 42) == "expiry_time_42"
    assert (
        format_label(LabelKind.UPLOADER_IDENTITY, _UPLOADER)
        == f"uploader_identity_key_{_UPLOADER}"
    )


def test_parse_label_inverts_format_label() -> None:
    for kind, value in (
        (LabelKind.UHRP_URL, url_for_hash(_HASH)),
        (LabelKind.OBJECT_ID, "abc123"),
        (LabelKind.CONTENT_TYPE, "image/png"),
        (LabelKind.CONTENT_LENGTH, 0),
    ):
        parsed = parse_label(format_label(kind, value))
        assert parsed is not None
        assert parsed.kind is kind
        assert parsed.value == value


def test_parse_label_ignores_unknown_and_bad_values() -> None:
    assert parse_label("something_else_1") is None
    assert parse_label("expiry_time_") is None
    assert parse_label("expiry_time_12a") is None
    assert parse_label("expiry_time_١٢") is None
    assert parse_label("object_identifier_zz") is None
    assert parse_label("object_identifier_ff") is None


def test_parse_labels_keeps_first_value_per_kind() -> None:
    parsed = parse_labels(["expiry_time_10", "junk", "expiry_time_20"])

    assert parsed == {LabelKind.EXPIRY_TIME: 10}


def test_labels_for_derives_url_from_content_hash() -> None:
    labels = labels_for(_record(), object_id="abc123", uploader_identity=_UPLOADER)

    parsed = parse_labels(labels)
    assert parsed[LabelKind.UHRP_URL] == url_for_hash(_HASH)
    assert parsed[LabelKind.OBJECT_ID] == "abc123"
    assert parsed[LabelKind.UPLOADER_IDENTITY] == _UPLOADER
    assert parsed[LabelKind.EXPIRY_TIME] == 1_900_000_000
    assert parsed[LabelKind.CONTENT_LENGTH] == 4096
    assert LabelKind.CONTENT_TYPE not in parsed


def test_labels_for_prefers_record_content_type() -> None:
    with_field = labels_for(
        _record("image/png"),
        object_id="abc123",
        uploader_identity=_UPLOADER,
        content_type="text/plain",
    )
    carried = labels_for(
        _record(), object_id="abc123", uploader_identity=_UPLOADER, content_type="text/plain"
    )

    assert parse_labels(with_field)[LabelKind.CONTENT_TYPE] == "image/png"
    assert parse_labels(carried)[LabelKind.CONTENT_TYPE] == "text/plain"
