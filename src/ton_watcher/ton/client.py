"""toncenter HTTP API v2 client implementing the ChainQueryPort protocol."""

from __future__ import annotations

import base64
import binascii
import logging
from contextlib import contextmanager
from typing import Any, Iterator

import httpx
from pytoniq_core import Address, Cell, begin_cell

from ton_watcher.errors import ChainQueryError
from ton_watcher.models.chain import AccountCursor, Message, ShardDescriptor, Transaction, TransactionRef
from ton_watcher.ton.codec import parse_address, to_raw

log = logging.getLogger(__name__)

BLOCK_PAGE_SIZE = 256


def _is_transient(status: int) -> bool:
    return status == 429 or status >= 500


@contextmanager
def _response_shape(method: str) -> Iterator[None]:
    """Missing or mistyped fields in a response are not worth retrying."""
    try:
        yield
    except (KeyError, TypeError, ValueError, IndexError) as exc:
        raise ChainQueryError(
            f"{method}: malformed response ({type(exc).__name__}: {exc})", transient=False,
        ) from exc


def _parse_message(raw: dict | None) -> Message | None:
    if not raw:
        return None

    body: bytes | None = None
    text: str | None = None
    msg_data = raw.get("msg_data") or {}
    kind = msg_data.get("@type")
    try:
        if kind == "msg.dataRaw" and msg_data.get("body"):
            body = base64.b64decode(msg_data["body"])
        elif kind == "msg.dataText" and msg_data.get("text"):
            text = base64.b64decode(msg_data["text"]).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        log.debug("Undecodable msg_data in message from %s", raw.get("source"))

    return Message(
        source=raw.get("source") or None,  # "" for external messages
        destination=raw.get("destination") or None,
        value=int(raw.get("value") or 0),
        body=body,
        text=text,
    )


def _parse_transaction(raw: dict) -> Transaction:
    tx_id = raw["transaction_id"]
    address = raw.get("address") or {}
    return Transaction(
        account=address.get("account_address", ""),
        lt=int(tx_id["lt"]),
        hash=tx_id["hash"],
        now=int(raw.get("utime") or 0),
        in_msg=_parse_message(raw.get("in_msg")),
        out_msg_count=len(raw.get("out_msgs") or []),
        fee=int(raw.get("fee") or 0),
    )


class ToncenterClient:
    """Read-only chain queries against a toncenter v2 endpoint.

    Every failure is raised as ChainQueryError; ``transient`` tells the retry
    policy whether trying again can help (timeouts, 429, 5xx). A response
    with missing or mistyped fields is never transient.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"X-API-Key": api_key} if api_key else {}
        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=10),
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, method: str, **params: Any) -> Any:
        query = {k: v for k, v in params.items() if v is not None}
        return await self._request("GET", method, params=query)

    async def _post(self, method: str, /, **body: Any) -> Any:
        return await self._request("POST", method, json=body)

    async def _request(self, verb: str, method: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(verb, f"/{method}", **kwargs)
        except httpx.TimeoutException as exc:
            raise ChainQueryError(f"{method}: timeout") from exc
        except httpx.TransportError as exc:
            raise ChainQueryError(f"{method}: {exc}") from exc

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ChainQueryError(
                f"{method}: HTTP {resp.status_code} with non-JSON body",
                transient=_is_transient(resp.status_code),
                status=resp.status_code,
            ) from exc

        if not isinstance(payload, dict):
            raise ChainQueryError(
                f"{method}: unexpected response shape",
                transient=False,
                status=resp.status_code,
            )
        if resp.status_code >= 400 or not payload.get("ok", False):
            code = payload.get("code")
            code = code if isinstance(code, int) else resp.status_code
            raise ChainQueryError(
                f"{method}: {payload.get('error') or f'HTTP {resp.status_code}'}",
                transient=_is_transient(code),
                status=code,
            )
        with _response_shape(method):
            return payload["result"]

    # ── ChainQueryPort ─────────────────────────────────────

    async def get_latest_sequence_number(self) -> int:
        info = await self._get("getMasterchainInfo")
        with _response_shape("getMasterchainInfo"):
            return int(info["last"]["seqno"])

    async def get_shards_at(self, seqno: int) -> list[ShardDescriptor]:
        result = await self._get("shards", seqno=seqno)
        with _response_shape("shards"):
            return [
                ShardDescriptor(
                    workchain=int(s["workchain"]),
                    shard=int(s["shard"]),
                    seqno=int(s["seqno"]),
                )
                for s in result.get("shards", [])
            ]

    async def get_transactions_in_shard(
        self, workchain: int, seqno: int, shard: int,
    ) -> list[TransactionRef]:
        refs: list[TransactionRef] = []
        after_lt: int | None = None
        after_hash: str | None = None
        while True:
            result = await self._get(
                "getBlockTransactions",
                workchain=workchain,
                shard=str(shard),
                seqno=seqno,
                count=BLOCK_PAGE_SIZE,
                after_lt=after_lt,
                after_hash=after_hash,
            )
            with _response_shape("getBlockTransactions"):
                page = [
                    TransactionRef(account=t["account"], lt=int(t["lt"]), hash=t["hash"])
                    for t in result.get("transactions", [])
                ]
                incomplete = bool(result.get("incomplete"))
            refs.extend(page)
            if not incomplete or not page:
                return refs
            after_lt, after_hash = page[-1].lt, page[-1].hash
            log.debug("Block %d:%d:%d incomplete, continuing after lt %d",
                      workchain, shard, seqno, after_lt)

    async def get_full_transaction(
        self, account: str, lt: int, tx_hash: str,
    ) -> Transaction | None:
        result = await self._get(
            "getTransactions", address=account, lt=lt, hash=tx_hash, limit=1,
        )
        with _response_shape("getTransactions"):
            for raw in result:
                tx = _parse_transaction(raw)
                if tx.lt == lt:
                    return tx
        return None

    async def get_account_transactions(
        self,
        account: str,
        limit: int,
        before: AccountCursor | None = None,
        archival: bool = True,
    ) -> list[Transaction]:
        if before is None:
            result = await self._get(
                "getTransactions", address=account, limit=limit, archival=archival,
            )
            with _response_shape("getTransactions"):
                return [_parse_transaction(raw) for raw in result][:limit]

        # toncenter includes the transaction at (lt, hash) itself; ask for one
        # more and drop it so the page is strictly older than the offset
        result = await self._get(
            "getTransactions",
            address=account,
            limit=limit + 1,
            lt=before.lt,
            hash=before.hash,
            archival=archival,
        )
        with _response_shape("getTransactions"):
            txs = [_parse_transaction(raw) for raw in result]
        return [tx for tx in txs if tx.lt < before.lt][:limit]

    # ── Get-methods ────────────────────────────────────────

    async def get_jetton_wallet_address(self, master: str, owner: str) -> str:
        """Address of ``owner``'s jetton wallet, asked of the jetton minter."""
        owner_cell = begin_cell().store_address(parse_address(owner)).end_cell()
        result = await self._post(
            "runGetMethod",
            address=master,
            method="get_wallet_address",
            stack=[["tvm.Slice", base64.b64encode(owner_cell.to_boc()).decode()]],
        )
        exit_code = result.get("exit_code", 0) if isinstance(result, dict) else 0
        if exit_code not in (0, 1):
            raise ChainQueryError(
                f"get_wallet_address on {master} exited with code {exit_code}",
                transient=False,
            )
        with _response_shape("runGetMethod"):
            _kind, entry = result["stack"][0]
            boc = base64.b64decode(entry["bytes"])
        try:
            wallet = Cell.one_from_boc(boc).begin_parse().load_address()
        except Exception as exc:
            raise ChainQueryError(
                f"runGetMethod: undecodable address from {master}: {exc}", transient=False,
            ) from exc
        if not isinstance(wallet, Address):
            raise ChainQueryError(f"runGetMethod: {master} returned no wallet", transient=False)
        return to_raw(wallet)
