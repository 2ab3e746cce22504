"""Shared test fixtures for the spatial-memo test suite."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
import pytest

from spatial_memo.config.settings import DEFAULT_PROGRAM_ID
from spatial_memo.ledger.keys import base58_encode
from spatial_memo.ledger.transaction import Transaction

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

FAKE_NODE_URL = "http://fake-node.test"
FAKE_BLOCKHASH = "EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N"


@pytest.fixture
def app_config():
    """Provide a test AppConfig with safe defaults."""
    from spatial_memo.config.settings import AppConfig, RPCConfig

    return AppConfig(
        debug=True,
        rpc=RPCConfig(url=FAKE_NODE_URL, confirm_timeout=2.0, poll_interval=0.01),
    )


@pytest.fixture
def payer():
    """Deterministic payer keypair."""
    from spatial_memo.ledger.keys import Keypair

    return Keypair.from_seed(bytes(range(32)))


@pytest.fixture
def sf_record():
    """The San Francisco example record."""
    from spatial_memo.record.models import Record

    return Record.create(
        "San Francisco",
        "city",
        -122.4194,
        37.7749,
        recorded_at="2025-02-27T15:42:33.251Z",
    )


# ---------------------------------------------------------------------------
# Fake ledger node
# ---------------------------------------------------------------------------


@dataclass
class StoredTx:
    """A transaction the fake node has accepted."""

    account_keys: list[str]
    instructions: list[dict[str, Any]]
    logs: list[str]
    err: Any = None


@dataclass
class FakeLedgerNode:
    """In-memory JSON-RPC ledger node for httpx.MockTransport.

    Knobs:
        balance: Lamports returned by getBalance.
        reject: Error message returned by sendTransaction, if set.
        exec_err: Execution error recorded for accepted transactions.
        pending: When True, signature statuses stay at ``processed``.
        garble_data: When True, parsed instruction data is not a valid record.
        drop_memo_from_logs: When True, logs omit the memo text.
        drop_meta: When True, getTransaction returns no execution metadata.
    """

    balance: int = 2_000_000_000
    reject: str | None = None
    exec_err: Any = None
    pending: bool = False
    garble_data: bool = False
    drop_memo_from_logs: bool = False
    drop_meta: bool = False
    transactions: dict[str, StoredTx] = field(default_factory=dict)
    calls: list[tuple[str, list[Any]]] = field(default_factory=list)

    def calls_to(self, method: str, encoding: str | None = None) -> int:
        return sum(
            1
            for name, params in self.calls
            if name == method
            and (encoding is None or (len(params) > 1 and params[1].get("encoding") == encoding))
        )

    def store(self, signature: str, tx: StoredTx) -> None:
        self.transactions[signature] = tx

    def add_transaction(
        self,
        signature: str,
        *,
        account_keys: list[str],
        instructions: list[dict[str, Any]],
        logs: list[str],
        err: Any = None,
    ) -> None:
        """Record a transaction as if some other client had submitted it."""
        self.store(signature, StoredTx(account_keys, instructions, logs, err))

    # -- JSON-RPC --------------------------------------------------------

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        self.calls.append((method, params))
        try:
            result = getattr(self, f"_rpc_{method}")(params)
        except _RPCFailure as exc:
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": body["id"], "error": exc.error},
            )
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def _rpc_getBalance(self, params: list[Any]) -> dict[str, Any]:
        return {"context": {"slot": 1}, "value": self.balance}

    def _rpc_getLatestBlockhash(self, params: list[Any]) -> dict[str, Any]:
        return {
            "context": {"slot": 1},
            "value": {"blockhash": FAKE_BLOCKHASH, "lastValidBlockHeight": 300},
        }

    def _rpc_sendTransaction(self, params: list[Any]) -> str:
        if self.reject:
            raise _RPCFailure({"code": -32002, "message": self.reject})

        tx = Transaction.from_base64(params[0])
        keys = [str(k) for k in tx.message.account_keys]
        instructions = []
        logs = []
        for ix in tx.message.instructions:
            program = keys[ix.program_id_index]
            instructions.append(
                {
                    "programId": program,
                    "accounts": [keys[i] for i in ix.account_indexes],
                    "data": base58_encode(ix.data),
                }
            )
            logs.append(f"Program {program} invoke [1]")
            if not self.drop_memo_from_logs:
                text = ix.data.decode("utf-8", errors="replace")
                logs.append(f'Program log: Memo (len {len(ix.data)}): "{text}"')
            logs.append(f"Program {program} consumed 3124 of 200000 compute units")
            logs.append(f"Program {program} success")
        message = tx.message.serialize()
        for key, sig in zip(tx.message.signer_keys, tx.signatures, strict=True):
            if not key.verify(sig, message):
                raise _RPCFailure(
                    {"code": -32003, "message": "Transaction signature verification failure"}
                )
        self.store(tx.signature, StoredTx(keys, instructions, logs, self.exec_err))
        return tx.signature

    def _rpc_getSignatureStatuses(self, params: list[Any]) -> dict[str, Any]:
        stored = self.transactions.get(params[0][0])
        if stored is None:
            return {"context": {"slot": 9}, "value": [None]}
        return {
            "context": {"slot": 9},
            "value": [
                {
                    "slot": 7,
                    "confirmations": 1,
                    "err": stored.err,
                    "confirmationStatus": "processed" if self.pending else "confirmed",
                }
            ],
        }

    def _rpc_getTransaction(self, params: list[Any]) -> dict[str, Any] | None:
        signature, options = params
        stored = self.transactions.get(signature)
        if stored is None:
            return None
        meta = {"err": stored.err, "fee": 5000, "logMessages": stored.logs}
        if self.drop_meta:
            meta = None
        if options["encoding"] == "jsonParsed":
            instructions = [dict(ix, stackHeight=None) for ix in stored.instructions]
            if self.garble_data:
                for ix in instructions:
                    ix["data"] = base58_encode(b"\xff\xfe garbled")
            return {
                "slot": 7,
                "blockTime": 1740670953,
                "meta": meta,
                "transaction": {
                    "signatures": [signature],
                    "message": {
                        "accountKeys": [
                            {"pubkey": k, "signer": i == 0, "writable": i == 0}
                            for i, k in enumerate(stored.account_keys)
                        ],
                        "instructions": instructions,
                        "recentBlockhash": FAKE_BLOCKHASH,
                    },
                },
            }
        return {
            "slot": 7,
            "meta": meta,
            "transaction": {
                "signatures": [signature],
                "message": {
                    "accountKeys": stored.account_keys,
                    "instructions": [
                        {
                            "programIdIndex": stored.account_keys.index(ix["programId"]),
                            "accounts": [stored.account_keys.index(a) for a in ix["accounts"]],
                            "data": ix["data"],
                        }
                        for ix in stored.instructions
                    ],
                    "recentBlockhash": FAKE_BLOCKHASH,
                },
            },
        }


class _RPCFailure(Exception):
    def __init__(self, error: dict[str, Any]) -> None:
        super().__init__(error["message"])
        self.error = error


@pytest.fixture
def ledger_node() -> FakeLedgerNode:
    return FakeLedgerNode()


@pytest.fixture
async def rpc_client(app_config, ledger_node) -> AsyncIterator:
    """LedgerRPCClient wired to the fake node via MockTransport."""
    from spatial_memo.chain.rpc.client import LedgerRPCClient

    client = LedgerRPCClient(app_config.rpc, cluster=app_config.cluster)
    client._client = httpx.AsyncClient(
        transport=httpx.MockTransport(ledger_node.handler),
        base_url=FAKE_NODE_URL,
    )
    yield client
    await client.close()


@pytest.fixture
def program_id() -> str:
    return DEFAULT_PROGRAM_ID

