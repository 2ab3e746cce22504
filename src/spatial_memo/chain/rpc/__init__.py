"""Ledger JSON-RPC — transaction submission, confirmation and lookup."""

from spatial_memo.chain.rpc.client import LedgerRPCClient
from spatial_memo.chain.rpc.models import (
    LatestBlockhash,
    ParsedInstruction,
    ParsedTransaction,
    RawInstruction,
    RawTransaction,
    SignatureStatus,
    TransactionMeta,
)

__all__ = [
    "LatestBlockhash",
    "LedgerRPCClient",
    "ParsedInstruction",
    "ParsedTransaction",
    "RawInstruction",
    "RawTransaction",
    "SignatureStatus",
    "TransactionMeta",
]
