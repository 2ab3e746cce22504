"""Ledger RPC data models — transactions, instructions, metadata, statuses.

Data classes representing JSON-RPC response objects for the
``getTransaction``, ``getSignatureStatuses`` and ``getLatestBlockhash``
methods. Parsed (``jsonParsed``) and raw (``json``) transaction encodings
get separate models because their instruction shapes differ.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from spatial_memo.config.settings import Commitment

# ---------------------------------------------------------------------------
# Transaction metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TransactionMeta:
    """Execution metadata attached to a confirmed transaction.

    Attributes:
        err: Execution error object, or None when execution succeeded.
        log_messages: Ordered execution log lines.
        fee: Fee charged, in lamports.
    """

    err: Any = None
    log_messages: tuple[str, ...] = ()
    fee: int = 0

    @property
    def succeeded(self) -> bool:
        return self.err is None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransactionMeta:
        return cls(
            err=data.get("err"),
            log_messages=tuple(data.get("logMessages") or ()),
            fee=data.get("fee", 0),
        )


def _meta_from_dict(data: dict[str, Any] | None) -> TransactionMeta | None:
    return TransactionMeta.from_dict(data) if data else None


# ---------------------------------------------------------------------------
# jsonParsed encoding
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedInstruction:
    """One instruction from a ``jsonParsed`` transaction.

    Programs the node knows how to parse come back with ``parsed`` set and
    no ``data``; everything else carries base58 ``data``.
    """

    program_id: str
    accounts: tuple[str, ...] = ()
    data: str | None = None
    parsed: Any = None
    program: str | None = None
    stack_height: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParsedInstruction:
        return cls(
            program_id=data.get("programId", ""),
            accounts=tuple(data.get("accounts") or ()),
            data=data.get("data"),
            parsed=data.get("parsed"),
            program=data.get("program"),
            stack_height=data.get("stackHeight"),
        )


@dataclass(frozen=True)
class ParsedTransaction:
    """A confirmed transaction fetched with ``encoding=jsonParsed``.

    ``meta`` is None when the node returned no execution metadata; the
    execution outcome is then unknown.
    """

    signatures: tuple[str, ...]
    account_keys: tuple[str, ...]
    instructions: tuple[ParsedInstruction, ...]
    meta: TransactionMeta | None
    slot: int = 0
    block_time: int | None = None

    @property
    def program_ids(self) -> tuple[str, ...]:
        return tuple(ix.program_id for ix in self.instructions)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ParsedTransaction:
        tx = data.get("transaction") or {}
        message = tx.get("message") or {}
        keys = tuple(
            k.get("pubkey", "") if isinstance(k, dict) else str(k)
            for k in message.get("accountKeys") or ()
        )
        return cls(
            signatures=tuple(tx.get("signatures") or ()),
            account_keys=keys,
            instructions=tuple(
                ParsedInstruction.from_dict(ix) for ix in message.get("instructions") or ()
            ),
            meta=_meta_from_dict(data.get("meta")),
            slot=data.get("slot", 0),
            block_time=data.get("blockTime"),
        )


# ---------------------------------------------------------------------------
# json (raw) encoding
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RawInstruction:
    """One compiled instruction from a ``json``-encoded transaction."""

    program_id_index: int
    accounts: tuple[int, ...] = ()
    data: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawInstruction:
        return cls(
            program_id_index=data.get("programIdIndex", 0),
            accounts=tuple(data.get("accounts") or ()),
            data=data.get("data", ""),
        )


@dataclass(frozen=True)
class RawTransaction:
    """A confirmed transaction fetched with ``encoding=json``."""

    signatures: tuple[str, ...]
    account_keys: tuple[str, ...]
    instructions: tuple[RawInstruction, ...]
    meta: TransactionMeta | None
    slot: int = 0

    @property
    def log_messages(self) -> tuple[str, ...]:
        return self.meta.log_messages if self.meta is not None else ()

    @property
    def program_ids(self) -> tuple[str, ...]:
        return tuple(
            self.account_keys[ix.program_id_index]
            for ix in self.instructions
            if ix.program_id_index < len(self.account_keys)
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RawTransaction:
        tx = data.get("transaction") or {}
        message = tx.get("message") or {}
        return cls(
            signatures=tuple(tx.get("signatures") or ()),
            account_keys=tuple(message.get("accountKeys") or ()),
            instructions=tuple(
                RawInstruction.from_dict(ix) for ix in message.get("instructions") or ()
            ),
            meta=_meta_from_dict(data.get("meta")),
            slot=data.get("slot", 0),
        )


# ---------------------------------------------------------------------------
# Signature status / blockhash
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignatureStatus:
    """Result entry of ``getSignatureStatuses``."""

    slot: int = 0
    confirmations: int | None = None
    err: Any = None
    confirmation_status: str | None = None

    @property
    def commitment(self) -> Commitment | None:
        """Parse the confirmation status, or None when the node omits it."""
        try:
            return Commitment(self.confirmation_status) if self.confirmation_status else None
        except ValueError:
            return None

    def reached(self, required: Commitment) -> bool:
        """Whether the transaction has reached the *required* commitment."""
        level = self.commitment
        if level is None:
            # Older nodes report only a confirmation count; None means rooted.
            return self.confirmations is None
        return level.satisfies(required)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SignatureStatus:
        return cls(
            slot=data.get("slot", 0),
            confirmations=data.get("confirmations"),
            err=data.get("err"),
            confirmation_status=data.get("confirmationStatus"),
        )


@dataclass(frozen=True)
class LatestBlockhash:
    """Result of ``getLatestBlockhash``."""

    blockhash: str
    last_valid_block_height: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LatestBlockhash:
        value = data.get("value", data)
        return cls(
            blockhash=value["blockhash"],
            last_valid_block_height=value.get("lastValidBlockHeight", 0),
        )


@dataclass
class RPCRequest:
    """A JSON-RPC 2.0 request envelope."""

    method: str
    params: list[Any] = field(default_factory=list)
    id: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "id": self.id, "method": self.method, "params": self.params}
