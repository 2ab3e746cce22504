"""Exception taxonomy for spatial-memo."""

from spatial_memo.errors.codec_errors import (
    CodecError,
    DecodingError,
    EncodingError,
    SchemaError,
)
from spatial_memo.errors.ledger_errors import (
    InsufficientFundsError,
    KeypairError,
    LedgerError,
    RPCError,
    SubmissionError,
)
from spatial_memo.errors.memo_errors import MemoError

__all__ = [
    "CodecError",
    "DecodingError",
    "EncodingError",
    "InsufficientFundsError",
    "KeypairError",
    "LedgerError",
    "MemoError",
    "RPCError",
    "SchemaError",
    "SubmissionError",
]
