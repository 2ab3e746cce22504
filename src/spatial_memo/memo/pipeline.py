"""Round-trip pipeline — balance check, submit, recover, verify.

Composes MemoSubmitter and MemoRecoverer into the single diagnostic run
used by the ``roundtrip`` command.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from spatial_memo.config.settings import Cluster
from spatial_memo.errors.ledger_errors import InsufficientFundsError
from spatial_memo.memo.recovery import MemoRecoverer, RecoveryResult
from spatial_memo.memo.submission import MemoSubmitter

if TYPE_CHECKING:
    from spatial_memo.chain.rpc.client import LedgerRPCClient
    from spatial_memo.config.settings import AppConfig
    from spatial_memo.ledger.keys import Keypair
    from spatial_memo.record.models import Record

logger = logging.getLogger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000

_EXPLORER_URL = "https://explorer.solana.com/tx"


def explorer_url(signature: str, cluster: Cluster) -> str:
    """Block explorer link for a transaction."""
    if cluster is Cluster.MAINNET_BETA:
        return f"{_EXPLORER_URL}/{signature}"
    if cluster is Cluster.LOCALNET:
        return f"{_EXPLORER_URL}/{signature}?cluster=custom"
    return f"{_EXPLORER_URL}/{signature}?cluster={cluster.value}"


@dataclass(frozen=True)
class RoundTripReport:
    """Everything one round trip observed."""

    signature: str
    balance_lamports: int
    submitted: Record
    result: RecoveryResult
    explorer_url: str

    @property
    def matches(self) -> bool:
        """Recovered record deep-equals the submitted one."""
        return self.result.record == self.submitted

    @property
    def ok(self) -> bool:
        return self.matches and not self.result.degraded and self.result.verification.ok


class MemoPipeline:
    """Submit a record and read it straight back.

    Usage::

        async with LedgerRPCClient(config.rpc, cluster=config.cluster) as rpc:
            report = await MemoPipeline(config, rpc, payer).run(record)
    """

    def __init__(self, config: AppConfig, client: LedgerRPCClient, payer: Keypair) -> None:
        self._config = config
        self._client = client
        self._payer = payer
        self.submitter = MemoSubmitter(client, payer, config.program)
        self.recoverer = MemoRecoverer(client, config.program)

    async def check_balance(self) -> int:
        """Return the payer balance in lamports.

        Raises:
            InsufficientFundsError: If the payer has no balance.
        """
        balance = await self._client.get_balance(self._payer.public_key)
        logger.info(
            "Payer %s balance: %.9f SOL", self._payer.public_key, balance / LAMPORTS_PER_SOL
        )
        if balance == 0:
            msg = f"Account {self._payer.public_key} has no balance; fund it first"
            raise InsufficientFundsError(msg, balance=balance)
        return balance

    async def run(self, record: Record) -> RoundTripReport:
        """Check funds, submit *record*, then recover and verify it.

        Raises:
            InsufficientFundsError: If the payer is unfunded.
            SubmissionError: If the transaction is not confirmed.
        """
        balance = await self.check_balance()
        signature = await self.submitter.submit(record)
        result = await self.recoverer.recover(signature, expected=record)
        report = RoundTripReport(
            signature=signature,
            balance_lamports=balance,
            submitted=record,
            result=result,
            explorer_url=explorer_url(signature, self._config.cluster),
        )
        if report.ok:
            logger.info("Round trip verified for %s", signature)
        else:
            logger.warning(
                "Round trip for %s incomplete: matches=%s degraded=%s verification=%s",
                signature,
                report.matches,
                result.degraded,
                result.verification,
            )
        return report
