"""TON chain decoding and the toncenter query client."""

from ton_watcher.ton.client import ToncenterClient
from ton_watcher.ton.codec import (
    TransferNotification,
    is_valid_address,
    normalize,
    parse_address,
    parse_comment,
    parse_transfer_notification,
)
from ton_watcher.ton.links import from_nano, new_payment_id, payment_link, to_nano

__all__ = [
    "ToncenterClient",
    "TransferNotification", "is_valid_address", "normalize", "parse_address",
    "parse_comment", "parse_transfer_notification",
    "from_nano", "new_payment_id", "payment_link", "to_nano",
]
