"""Memo submission — one record, one instruction, one confirmed transaction."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from spatial_memo.ledger.keys import PublicKey
from spatial_memo.ledger.transaction import AccountMeta, Instruction, Transaction
from spatial_memo.record.codec import encode

if TYPE_CHECKING:
    from spatial_memo.chain.rpc.client import LedgerRPCClient
    from spatial_memo.config.settings import ProgramConfig
    from spatial_memo.ledger.keys import Keypair
    from spatial_memo.record.models import Record

logger = logging.getLogger(__name__)

# Replaced with a fresh blockhash at submission time.
_UNSET_BLOCKHASH = "11111111111111111111111111111111"


def build_memo_instruction(program_id: PublicKey, payer: PublicKey, data: bytes) -> Instruction:
    """Build the memo instruction: payer as sole read-only signer, payload as data."""
    return Instruction(
        program_id=program_id,
        accounts=[AccountMeta(payer, is_signer=True, is_writable=False)],
        data=data,
    )


class MemoSubmitter:
    """Publishes records to the memo program.

    Usage::

        submitter = MemoSubmitter(rpc, payer, config.program)
        signature = await submitter.submit(record)
    """

    def __init__(self, client: LedgerRPCClient, payer: Keypair, program: ProgramConfig) -> None:
        self._client = client
        self._payer = payer
        self._program_id = PublicKey.from_string(program.program_id)

    @property
    def payer(self) -> PublicKey:
        return self._payer.public_key

    def build_transaction(self, record: Record) -> Transaction:
        """Encode *record* and wrap it in an unsigned single-instruction transaction.

        Raises:
            SchemaError: If the record shape is invalid.
            EncodingError: If the record cannot be serialised.
        """
        payload = encode(record)
        instruction = build_memo_instruction(self._program_id, self.payer, payload)
        return Transaction.build(self.payer, [instruction], _UNSET_BLOCKHASH)

    async def submit(self, record: Record) -> str:
        """Submit *record* and block until the network confirms it.

        Not retried: a resubmission is a new transaction.

        Returns:
            The transaction signature.

        Raises:
            SchemaError: If the record shape is invalid.
            EncodingError: If the record cannot be serialised.
            SubmissionError: If the network rejects the transaction, it fails,
                or confirmation times out.
        """
        tx = self.build_transaction(record)
        logger.info(
            "Submitting memo for %r (%d instruction bytes) to %s",
            record.name,
            len(tx.message.instructions[0].data),
            self._program_id,
        )
        return await self._client.submit_and_confirm(tx, [self._payer])
