"""Ledger-side errors — RPC transport, signing and submission."""

from __future__ import annotations

from spatial_memo.errors.memo_errors import MemoError


class LedgerError(MemoError):
    """Base class for errors raised at the ledger boundary."""


class RPCError(LedgerError):
    """Error from the ledger node's JSON-RPC endpoint."""

    def __init__(self, message: str, *, rpc_code: int | None = None) -> None:
        super().__init__(message, code="rpc-error")
        self.rpc_code = rpc_code


class SubmissionError(LedgerError):
    """Transaction was rejected, failed, or never reached confirmation.

    ``signature`` is set when the node accepted the transaction but it later
    failed or timed out, so the caller can still inspect it.
    """

    def __init__(self, message: str, *, signature: str | None = None) -> None:
        super().__init__(message, code="submission-error")
        self.signature = signature


class KeypairError(LedgerError):
    """Signing keypair could not be loaded or is malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="keypair-error")


class InsufficientFundsError(LedgerError):
    """Payer account has no balance to cover transaction fees."""

    def __init__(self, message: str, *, balance: int = 0) -> None:
        super().__init__(message, code="insufficient-funds")
        self.balance = balance
