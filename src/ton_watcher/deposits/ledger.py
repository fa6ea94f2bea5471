"""Invoice ledger - idempotent bookkeeping for classified deposits."""

from __future__ import annotations

import logging

from ton_watcher.interfaces.store import StateStore
from ton_watcher.models.records import TON, Deposit, DepositOutcome, InvoiceRecord
from ton_watcher.ton.links import from_nano, new_payment_id

log = logging.getLogger(__name__)


class InvoiceLedger:
    """Matches deposits to invoices by comment and records the result.

    Every transaction hash is processed at most once, which makes the
    ledger safe against the redelivery a subscription can produce after a
    crash or a failed block.

    ``credit_uncommented`` accepts deposits without a comment as credited;
    that is the unique-address flow, where the receiving address already
    identifies the user.
    """

    def __init__(self, store: StateStore, credit_uncommented: bool = False) -> None:
        self._store = store
        self._credit_uncommented = credit_uncommented

    async def create_invoice(
        self, user_id: int, expected_amount: int, asset: str = TON,
    ) -> InvoiceRecord:
        invoice = InvoiceRecord(
            invoice_id=new_payment_id(),
            user_id=user_id,
            asset=asset,
            expected_amount=expected_amount,
        )
        await self._store.save_invoice(invoice)
        log.info("Created invoice %s for user %d (%d %s)",
                 invoice.invoice_id, user_id, expected_amount, asset)
        return invoice

    async def process(self, deposit: Deposit) -> DepositOutcome:
        if await self._store.is_deposit_processed(deposit.tx_hash):
            log.info("Transaction %s already processed, skipping", deposit.tx_hash)
            return DepositOutcome.DUPLICATE

        outcome, invoice_id = await self._match(deposit)

        await self._store.save_deposit(deposit, outcome.value, invoice_id=invoice_id)
        await self._store.log_activity(
            f"deposit_{outcome.value}",
            f"{deposit.asset} deposit of {self._human(deposit)} from {deposit.sender}: "
            f"{outcome.value}",
            tx_hash=deposit.tx_hash,
            amount=deposit.amount,
        )
        return outcome

    async def _match(self, deposit: Deposit) -> tuple[DepositOutcome, str | None]:
        if not deposit.comment:
            if self._credit_uncommented:
                log.info("Credited %s %s to %s",
                         self._human(deposit), deposit.asset, deposit.destination)
                return DepositOutcome.CREDITED, None
            log.info("Deposit %s has no comment", deposit.tx_hash)
            return DepositOutcome.UNKNOWN_INVOICE, None

        invoice = await self._store.get_invoice(deposit.comment)
        if invoice is None:
            log.info("Payment not found for comment %r", deposit.comment)
            return DepositOutcome.UNKNOWN_INVOICE, None

        if invoice.status == "paid":
            log.info("Invoice %s already paid", invoice.invoice_id)
            return DepositOutcome.ALREADY_PAID, invoice.invoice_id

        if invoice.asset != deposit.asset or invoice.expected_amount != deposit.amount:
            log.warning(
                "Amount mismatch for invoice %s: expected %d %s, received %d %s",
                invoice.invoice_id, invoice.expected_amount, invoice.asset,
                deposit.amount, deposit.asset,
            )
            return DepositOutcome.AMOUNT_MISMATCH, invoice.invoice_id

        await self._store.mark_invoice_paid(invoice.invoice_id, deposit.tx_hash)
        log.info("Invoice %s paid: credited %s %s to user %d",
                 invoice.invoice_id, self._human(deposit), deposit.asset, invoice.user_id)
        return DepositOutcome.CREDITED, invoice.invoice_id

    @staticmethod
    def _human(deposit: Deposit) -> str:
        if deposit.asset == TON:
            return from_nano(deposit.amount)
        return str(deposit.amount)
