"""Memo pipeline — submission, recovery and verification of point records."""

from spatial_memo.memo.pipeline import MemoPipeline, RoundTripReport, explorer_url
from spatial_memo.memo.recovery import (
    MemoRecoverer,
    NotFound,
    RecoveryResult,
    RecoveryStrategy,
    Verification,
    decode_instruction_data,
    match_log_text,
)
from spatial_memo.memo.submission import MemoSubmitter, build_memo_instruction

__all__ = [
    "MemoPipeline",
    "MemoRecoverer",
    "MemoSubmitter",
    "NotFound",
    "RecoveryResult",
    "RecoveryStrategy",
    "RoundTripReport",
    "Verification",
    "build_memo_instruction",
    "decode_instruction_data",
    "explorer_url",
    "match_log_text",
]
