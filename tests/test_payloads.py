"""Message body decoding: text comments and jetton transfer notifications."""

from __future__ import annotations

import base64

import pytest
from pytoniq_core import Cell, begin_cell

from ton_watcher.ton.codec import parse_address, parse_comment, parse_transfer_notification

from tests.factories import SENDER, comment_body, transfer_notification_body

# op 0 + "hello", serialized by hand
HELLO_BOC = bytes.fromhex("b5ee9c7201010101000b0000120000000068656c6c6f")


def boc(builder) -> bytes:
    return builder.end_cell().to_boc()


# ── Comments ──────────────────────────────────────────────────────


def test_known_boc_is_a_comment():
    assert parse_comment(HELLO_BOC) == "hello"


def test_factory_body_matches_hand_serialized_boc():
    assert comment_body("hello") == HELLO_BOC


def test_parsed_cell_accepted():
    assert parse_comment(Cell.one_from_boc(HELLO_BOC)) == "hello"
    assert parse_comment(Cell.one_from_boc(base64.b64encode(HELLO_BOC).decode())) == "hello"


def test_parse_comment():
    assert parse_comment(comment_body("invoice-123")) == "invoice-123"


def test_parse_long_snake_comment():
    text = "x" * 300 + "ü"
    body = comment_body(text)
    assert Cell.one_from_boc(body).refs  # spills into child cells
    assert parse_comment(body) == text


def test_non_comment_opcode_is_not_a_comment():
    body = boc(begin_cell().store_uint(0x12345678, 32).store_uint(0, 64))
    assert parse_comment(body) is None


@pytest.mark.parametrize("body", [None, b"", b"not a boc", HELLO_BOC[:10]])
def test_malformed_comment_is_none(body):
    assert parse_comment(body) is None


def test_short_body_is_not_a_comment():
    assert parse_comment(boc(begin_cell().store_uint(0, 8))) is None


def test_invalid_utf8_comment_is_none():
    body = boc(begin_cell().store_uint(0, 32).store_bytes(b"\xff\xfe"))
    assert parse_comment(body) is None


# ── Jetton transfer notifications ─────────────────────────────────


def test_transfer_notification_inline_comment():
    body = transfer_notification_body(5_000_000, comment="order-7", query_id=99)
    note = parse_transfer_notification(body)

    assert note is not None
    assert note.query_id == 99
    assert note.amount == 5_000_000
    assert note.sender == parse_address(SENDER)
    assert note.comment == "order-7"


def test_transfer_notification_comment_in_ref():
    body = transfer_notification_body(10**20, comment="in-ref", payload_in_ref=True)
    note = parse_transfer_notification(body)

    assert note is not None
    assert note.amount == 10**20
    assert note.comment == "in-ref"


def test_transfer_notification_without_payload():
    note = parse_transfer_notification(transfer_notification_body(1, comment=None))
    assert note is not None
    assert note.comment is None


def test_transfer_notification_from_unknown_sender():
    note = parse_transfer_notification(transfer_notification_body(1, sender=None))
    assert note is not None
    assert note.sender is None


def test_other_opcode_is_not_a_notification():
    assert parse_transfer_notification(comment_body("hi")) is None


def test_truncated_notification_is_none():
    body = boc(begin_cell().store_uint(0x7362D09C, 32).store_uint(1, 16))
    assert parse_transfer_notification(body) is None


def test_notification_with_broken_address_is_none():
    body = boc(
        begin_cell()
        .store_uint(0x7362D09C, 32)
        .store_uint(0, 64)
        .store_coins(1)
        .store_uint(0b10, 2)
        .store_uint(0, 4)  # address cut short
    )
    assert parse_transfer_notification(body) is None
