"""Memo recovery and verification.

Recovers a record from a confirmed transaction by running extraction
strategies in a fixed order, first hit wins:

1. ``decode_instruction_data`` — decode the data of an instruction addressed
   to the memo program, as returned by the ``jsonParsed`` fetch.
2. ``match_log_text`` — only if (1) misses: fetch the raw transaction and
   look for the expected record's marker text in the execution logs. A hit
   returns the caller's own record flagged ``degraded``; the ledger bytes
   were never decoded, so it proves only that matching text was logged.

Each strategy is a plain function returning a Record, or None for a miss.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from spatial_memo.errors.codec_errors import CodecError
from spatial_memo.ledger.keys import base58_decode
from spatial_memo.record.codec import decode
from spatial_memo.record.models import Record

if TYPE_CHECKING:
    from collections.abc import Iterable

    from spatial_memo.chain.rpc.client import LedgerRPCClient
    from spatial_memo.chain.rpc.models import ParsedInstruction
    from spatial_memo.config.settings import ProgramConfig

logger = logging.getLogger(__name__)

TRANSACTION_MISSING = "transaction missing"
NO_MEMO_NO_LOG = "no memo instruction / no matching log"
UNDECODABLE_NO_LOG = "memo data undecodable / no matching log"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


class RecoveryStrategy(enum.StrEnum):
    """Which extraction strategy produced a recovered record."""

    INSTRUCTION_DATA = "instruction-data"
    LOG_TEXT = "log-text"


@dataclass(frozen=True)
class NotFound:
    """Recovery found nothing; *reason* says why."""

    reason: str


@dataclass(frozen=True)
class Verification:
    """Verdict computed from the transaction independently of recovery.

    Attributes:
        program_matched: The memo program was invoked (instruction list or logs).
        execution_succeeded: The transaction's execution error is empty.
    """

    program_matched: bool = False
    execution_succeeded: bool = False

    @property
    def ok(self) -> bool:
        return self.program_matched and self.execution_succeeded


@dataclass(frozen=True)
class RecoveryResult:
    """Outcome of one ``recover`` call.

    Attributes:
        outcome: The recovered record, or NotFound.
        verification: Program / execution verdict.
        strategy: Strategy that produced the record, None when not found.
        degraded: True when the record came from log text rather than
            decoded ledger bytes.
    """

    outcome: Record | NotFound
    verification: Verification
    strategy: RecoveryStrategy | None = None
    degraded: bool = False

    @property
    def found(self) -> bool:
        return isinstance(self.outcome, Record)

    @property
    def record(self) -> Record | None:
        return self.outcome if isinstance(self.outcome, Record) else None

    @property
    def reason(self) -> str | None:
        return self.outcome.reason if isinstance(self.outcome, NotFound) else None


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------


def _instruction_payload(ix: ParsedInstruction) -> bytes | None:
    if ix.data is not None:
        try:
            return base58_decode(ix.data)
        except ValueError:
            logger.debug("Instruction data is not base58: %.40r", ix.data)
            return None
    # Nodes that recognise a memo program return its text already parsed.
    if isinstance(ix.parsed, str):
        return ix.parsed.encode("utf-8")
    return None


def decode_instruction_data(instructions: Iterable[ParsedInstruction]) -> Record | None:
    """Decode the first memo instruction whose payload is a valid record."""
    for ix in instructions:
        payload = _instruction_payload(ix)
        if payload is None:
            continue
        try:
            return decode(payload)
        except CodecError as exc:
            logger.debug("Memo instruction data did not decode: %s", exc)
    return None


def match_log_text(
    log_lines: Iterable[str], expected: Record | None, marker_field: str = "name"
) -> Record | None:
    """Return *expected* if its marker property appears verbatim in a log line."""
    if expected is None:
        return None
    marker = expected.properties.get(marker_field)
    if not isinstance(marker, str) or not marker:
        return None
    for line in log_lines:
        if marker in line:
            return expected
    return None


# ---------------------------------------------------------------------------
# Recoverer
# ---------------------------------------------------------------------------


class MemoRecoverer:
    """Reads memo records back from confirmed transactions.

    Usage::

        recoverer = MemoRecoverer(rpc, config.program)
        result = await recoverer.recover(signature, expected=record)
        if result.found and not result.degraded:
            ...
    """

    def __init__(self, client: LedgerRPCClient, program: ProgramConfig) -> None:
        self._client = client
        self._program_id = program.program_id
        self._marker_field = program.log_marker_field

    @property
    def program_id(self) -> str:
        return self._program_id

    async def recover(self, signature: str, expected: Record | None = None) -> RecoveryResult:
        """Recover the memo record carried by transaction *signature*.

        Makes at most two fetches: the parsed transaction, then the raw
        transaction only if no instruction data decoded.

        Args:
            signature: Transaction signature returned by submission.
            expected: The originally submitted record, enabling the
                log-text fallback.

        Returns:
            A RecoveryResult; absence is reported as NotFound, never raised.

        Raises:
            RPCError: If the node cannot be reached.
        """
        parsed = await self._client.get_parsed_transaction(signature)
        if parsed is None:
            logger.info("Transaction %s not found", signature)
            return RecoveryResult(NotFound(TRANSACTION_MISSING), Verification())
        if parsed.meta is None:
            logger.info("Transaction %s has no execution metadata", signature)
            return RecoveryResult(NotFound(TRANSACTION_MISSING), Verification())

        matched = [ix for ix in parsed.instructions if ix.program_id == self._program_id]
        log_lines: list[str] = list(parsed.meta.log_messages)

        record = decode_instruction_data(matched)
        if record is not None:
            return RecoveryResult(
                record,
                self._verify(parsed.program_ids, log_lines, parsed.meta.err),
                RecoveryStrategy.INSTRUCTION_DATA,
            )

        raw = await self._client.get_raw_transaction(signature)
        raw_logs = list(raw.log_messages) if raw is not None else []
        verification = self._verify(parsed.program_ids, log_lines + raw_logs, parsed.meta.err)

        record = match_log_text(raw_logs, expected, self._marker_field)
        if record is not None:
            logger.warning(
                "Recovered %r for %s from log text only; on-ledger bytes were not decoded",
                record.name,
                signature,
            )
            return RecoveryResult(record, verification, RecoveryStrategy.LOG_TEXT, degraded=True)

        reason = UNDECODABLE_NO_LOG if matched else NO_MEMO_NO_LOG
        logger.info("No memo recovered from %s: %s", signature, reason)
        return RecoveryResult(NotFound(reason), verification)

    def _verify(
        self, program_ids: Iterable[str], log_lines: Iterable[str], err: object
    ) -> Verification:
        in_instructions = self._program_id in program_ids
        in_logs = any(self._program_id in line for line in log_lines)
        return Verification(
            program_matched=in_instructions or in_logs,
            execution_succeeded=err is None,
        )
