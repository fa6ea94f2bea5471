"""Chain data decoding: account addresses and the message bodies deposits carry.

Cells, slices and addresses come from pytoniq-core; this module only knows
which fields a deposit needs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pytoniq_core import Address, AddressError, Cell, Slice

from ton_watcher.errors import InvalidAddressError

log = logging.getLogger(__name__)

COMMENT_OPCODE = 0
TRANSFER_NOTIFICATION_OPCODE = 0x7362D09C


# ── Addresses ──────────────────────────────────────────────────────


def parse_address(value: str) -> Address:
    """Parse a raw ``wc:hex`` or user-friendly address. Raises InvalidAddressError."""
    try:
        address = Address(value.strip())
    except (AddressError, ValueError, IndexError) as exc:
        raise InvalidAddressError(f"invalid address: {value!r}") from exc
    # pytoniq accepts raw forms with any hash length
    if len(address.hash_part) != 32 or not -128 <= address.wc <= 127:
        raise InvalidAddressError(f"invalid address: {value!r}")
    return address


def is_valid_address(value: str) -> bool:
    try:
        parse_address(value)
    except InvalidAddressError:
        return False
    return True


def normalize(value: str) -> str:
    """Canonical raw form of any address string, for use as a lookup key."""
    return parse_address(value).to_str(is_user_friendly=False)


def to_raw(address: Address) -> str:
    return address.to_str(is_user_friendly=False)


# ── Message bodies ─────────────────────────────────────────────────


@dataclass(frozen=True)
class TransferNotification:
    """Jetton transfer_notification sent by our jetton wallet."""

    query_id: int
    amount: int
    sender: Address | None
    comment: str | None


def _load_cell(body: bytes | Cell) -> Cell:
    return body if isinstance(body, Cell) else Cell.one_from_boc(body)


def _read_comment(s: Slice) -> str | None:
    if s.remaining_bits < 32:
        return None
    if s.load_uint(32) != COMMENT_OPCODE:
        return None
    return s.load_snake_string()


def parse_comment(body: bytes | Cell | None) -> str | None:
    """Text comment of a message body, or None.

    Malformed bodies are chain noise, not errors: they also yield None.
    """
    if not body:
        return None
    try:
        return _read_comment(_load_cell(body).begin_parse())
    except Exception as exc:
        log.debug("Unparseable comment body: %s", exc)
        return None


def parse_transfer_notification(body: bytes | Cell | None) -> TransferNotification | None:
    """Decode a jetton transfer_notification, or None if it is not one."""
    if not body:
        return None
    try:
        s = _load_cell(body).begin_parse()
        if s.remaining_bits < 32 or s.load_uint(32) != TRANSFER_NOTIFICATION_OPCODE:
            return None
        # query_id + coins length prefix + addr_none at the very least
        if s.remaining_bits < 64 + 4 + 2:
            log.warning("Truncated jetton transfer notification")
            return None

        query_id = s.load_uint(64)
        amount = s.load_coins()
        sender = s.load_address()
        if not isinstance(sender, Address):
            sender = None
        elif len(sender.hash_part) != 32:
            # pytoniq reads short bit strings without complaint
            log.warning("Truncated sender address in jetton transfer notification")
            return None

        # forward_payload: Either Cell ^Cell
        comment = None
        payload_in_ref = s.load_bool() if s.remaining_bits else False
        payload = s.load_ref().begin_parse() if payload_in_ref else s
        try:
            comment = _read_comment(payload)
        except Exception as exc:
            log.warning("Failed to parse comment from transfer notification payload: %s", exc)

        return TransferNotification(
            query_id=query_id, amount=amount, sender=sender, comment=comment,
        )
    except Exception as exc:
        log.warning("Failed to decode jetton transfer notification: %s", exc)
        return None
