"""Invoice ledger outcomes and idempotency."""

from __future__ import annotations

from ton_watcher.deposits.ledger import InvoiceLedger
from ton_watcher.models.records import TON, Deposit, DepositOutcome

from tests.factories import SENDER, WALLET


def make_deposit(
    comment: str | None,
    amount: int = 1_500_000_000,
    tx_hash: str = "hash-1",
    asset: str = TON,
) -> Deposit:
    return Deposit(
        asset=asset,
        amount=amount,
        sender=SENDER,
        destination=WALLET,
        comment=comment,
        tx_hash=tx_hash,
        tx_lt=100,
        timestamp=1_700_000_000,
    )


async def test_create_invoice(store):
    ledger = InvoiceLedger(store)
    invoice = await ledger.create_invoice(user_id=7, expected_amount=1_500_000_000)

    saved = await store.get_invoice(invoice.invoice_id)
    assert saved is not None
    assert saved.user_id == 7
    assert saved.expected_amount == 1_500_000_000
    assert saved.asset == TON
    assert saved.status == "pending"


async def test_matching_deposit_credits_invoice(store):
    ledger = InvoiceLedger(store)
    invoice = await ledger.create_invoice(7, 1_500_000_000)

    outcome = await ledger.process(make_deposit(invoice.invoice_id))

    assert outcome == DepositOutcome.CREDITED
    saved = await store.get_invoice(invoice.invoice_id)
    assert saved.status == "paid"
    assert saved.tx_hash == "hash-1"
    assert saved.paid_at

    deposits = await store.get_deposits()
    assert [(d.tx_hash, d.outcome, d.invoice_id) for d in deposits] == [
        ("hash-1", "credited", invoice.invoice_id),
    ]


async def test_redelivered_transaction_is_duplicate(store):
    ledger = InvoiceLedger(store)
    invoice = await ledger.create_invoice(7, 1_500_000_000)
    deposit = make_deposit(invoice.invoice_id)

    assert await ledger.process(deposit) == DepositOutcome.CREDITED
    assert await ledger.process(deposit) == DepositOutcome.DUPLICATE
    assert len(await store.get_deposits()) == 1


async def test_second_payment_for_paid_invoice(store):
    ledger = InvoiceLedger(store)
    invoice = await ledger.create_invoice(7, 1_500_000_000)
    await ledger.process(make_deposit(invoice.invoice_id, tx_hash="first"))

    outcome = await ledger.process(make_deposit(invoice.invoice_id, tx_hash="second"))

    assert outcome == DepositOutcome.ALREADY_PAID
    assert (await store.get_invoice(invoice.invoice_id)).tx_hash == "first"


async def test_wrong_amount(store):
    ledger = InvoiceLedger(store)
    invoice = await ledger.create_invoice(7, 1_500_000_000)

    outcome = await ledger.process(make_deposit(invoice.invoice_id, amount=1_000_000_000))

    assert outcome == DepositOutcome.AMOUNT_MISMATCH
    assert (await store.get_invoice(invoice.invoice_id)).status == "pending"


async def test_wrong_asset_is_a_mismatch(store):
    ledger = InvoiceLedger(store)
    invoice = await ledger.create_invoice(7, 1_500_000_000, asset="USDT")

    outcome = await ledger.process(make_deposit(invoice.invoice_id))

    assert outcome == DepositOutcome.AMOUNT_MISMATCH


async def test_unknown_comment(store):
    outcome = await InvoiceLedger(store).process(make_deposit("no-such-invoice"))
    assert outcome == DepositOutcome.UNKNOWN_INVOICE


async def test_missing_comment_on_shared_wallet(store):
    outcome = await InvoiceLedger(store).process(make_deposit(None))
    assert outcome == DepositOutcome.UNKNOWN_INVOICE


async def test_missing_comment_on_unique_address_is_credited(store):
    ledger = InvoiceLedger(store, credit_uncommented=True)
    outcome = await ledger.process(make_deposit(None))

    assert outcome == DepositOutcome.CREDITED
    deposits = await store.get_deposits()
    assert deposits[0].invoice_id is None


async def test_every_outcome_is_logged(store):
    ledger = InvoiceLedger(store)
    await ledger.process(make_deposit("nope", tx_hash="a"))
    await ledger.process(make_deposit("nope", tx_hash="a"))

    activity = await store.get_recent_activity()
    assert [a.event_type for a in activity] == ["deposit_unknown_invoice"]
    assert activity[0].amount == 1_500_000_000
    assert "1.5" in activity[0].message
