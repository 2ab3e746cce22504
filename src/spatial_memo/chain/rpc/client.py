"""Ledger JSON-RPC client — submit, confirm, fetch transactions, balances.

Provides an async HTTP client for the ledger node's JSON-RPC 2.0 API:
- getBalance — lamport balance of an account
- getLatestBlockhash — blockhash to sign new transactions against
- sendTransaction — submit a signed, base64-encoded transaction
- getSignatureStatuses — confirmation progress of a submitted transaction
- getTransaction — confirmed transaction in ``jsonParsed`` or ``json`` form
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import TYPE_CHECKING, Any, Self

import httpx

from spatial_memo.chain.rpc.models import (
    LatestBlockhash,
    ParsedTransaction,
    RawTransaction,
    RPCRequest,
    SignatureStatus,
)
from spatial_memo.config.settings import Cluster, Commitment
from spatial_memo.errors.ledger_errors import RPCError, SubmissionError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from spatial_memo.config.settings import RPCConfig
    from spatial_memo.ledger.keys import Keypair, PublicKey
    from spatial_memo.ledger.transaction import Transaction

logger = logging.getLogger(__name__)


class LedgerRPCClient:
    """Async JSON-RPC client for a ledger node.

    Usage::

        async with LedgerRPCClient(config.rpc, cluster=config.cluster) as rpc:
            signature = await rpc.submit_and_confirm(tx, [payer])
            parsed = await rpc.get_parsed_transaction(signature)
    """

    def __init__(self, config: RPCConfig, *, cluster: Cluster = Cluster.DEVNET) -> None:
        """Initialize the RPC client.

        Args:
            config: RPC configuration (url, commitment, timeouts).
            cluster: Cluster whose public endpoint is used when ``config.url`` is empty.
        """
        self._config = config
        self._url = config.endpoint(cluster)
        self._client: httpx.AsyncClient | None = None
        self._ids = itertools.count(1)

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self._url,
            headers={"Content-Type": "application/json"},
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    @property
    def url(self) -> str:
        return self._url

    @property
    def commitment(self) -> Commitment:
        return self._config.commitment

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_balance(self, pubkey: PublicKey | str) -> int:
        """Get an account balance.

        Returns:
            Balance in lamports.
        """
        result = await self._call(
            "getBalance", [str(pubkey), {"commitment": self.commitment.value}]
        )
        return int(result.get("value", 0))

    async def get_latest_blockhash(self) -> LatestBlockhash:
        """Get the blockhash new transactions should be signed against."""
        result = await self._call("getLatestBlockhash", [{"commitment": self.commitment.value}])
        return LatestBlockhash.from_dict(result)

    async def send_transaction(self, tx: Transaction) -> str:
        """Submit a signed transaction without waiting for confirmation.

        Returns:
            The transaction signature reported by the node.

        Raises:
            RPCError: If the node rejects the transaction (including
                preflight simulation failures).
        """
        result = await self._call(
            "sendTransaction",
            [
                tx.to_base64(),
                {"encoding": "base64", "preflightCommitment": self.commitment.value},
            ],
        )
        return str(result)

    async def get_signature_status(self, signature: str) -> SignatureStatus | None:
        """Get the confirmation status of a signature, None if the node has not seen it."""
        result = await self._call(
            "getSignatureStatuses", [[signature], {"searchTransactionHistory": False}]
        )
        values = result.get("value") or [None]
        return SignatureStatus.from_dict(values[0]) if values[0] else None

    async def confirm_transaction(
        self, signature: str, *, timeout: float | None = None
    ) -> SignatureStatus:
        """Wait until *signature* reaches the configured commitment.

        Polls ``getSignatureStatuses`` every ``poll_interval`` seconds. A
        status carrying an execution error is returned as soon as it appears.

        Raises:
            SubmissionError: If the commitment is not reached within *timeout*
                (default ``confirm_timeout``), or the node cannot be polled.
                Carries *signature* either way.
        """
        limit = timeout if timeout is not None else self._config.confirm_timeout
        try:
            async with asyncio.timeout(limit):
                while True:
                    status = await self.get_signature_status(signature)
                    if status is not None and (
                        status.err is not None or status.reached(self.commitment)
                    ):
                        return status
                    await asyncio.sleep(self._config.poll_interval)
        except TimeoutError as exc:
            msg = f"Transaction {signature} not {self.commitment.value} after {limit}s"
            raise SubmissionError(msg, signature=signature) from exc
        except RPCError as exc:
            msg = f"Transaction {signature} confirmation failed: {exc.message}"
            raise SubmissionError(msg, signature=signature) from exc

    async def submit_and_confirm(self, tx: Transaction, signers: Sequence[Keypair]) -> str:
        """Sign *tx* against a fresh blockhash, submit it and wait for confirmation.

        Returns:
            The confirmed transaction signature.

        Raises:
            SubmissionError: On rejection, execution failure or confirmation timeout.
        """
        try:
            latest = await self.get_latest_blockhash()
            tx.message.recent_blockhash = latest.blockhash
            tx.sign(*signers)
            signature = await self.send_transaction(tx)
        except RPCError as exc:
            raise SubmissionError(f"Transaction submission failed: {exc.message}") from exc

        logger.info("Submitted transaction %s, awaiting %s", signature, self.commitment.value)
        status = await self.confirm_transaction(signature)
        if status.err is not None:
            msg = f"Transaction {signature} failed: {status.err}"
            raise SubmissionError(msg, signature=signature)
        logger.info("Transaction %s confirmed in slot %d", signature, status.slot)
        return signature

    async def get_parsed_transaction(self, signature: str) -> ParsedTransaction | None:
        """Fetch a confirmed transaction in ``jsonParsed`` form.

        Returns:
            The transaction, or None if it is unknown or not yet confirmed.
        """
        result = await self._call("getTransaction", [signature, self._fetch_options("jsonParsed")])
        return ParsedTransaction.from_dict(result) if result else None

    async def get_raw_transaction(self, signature: str) -> RawTransaction | None:
        """Fetch a confirmed transaction in ``json`` form, logs included.

        Returns:
            The transaction, or None if it is unknown or not yet confirmed.
        """
        result = await self._call("getTransaction", [signature, self._fetch_options("json")])
        return RawTransaction.from_dict(result) if result else None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _fetch_options(self, encoding: str) -> dict[str, Any]:
        # getTransaction does not serve "processed".
        commitment = self.commitment
        if commitment is Commitment.PROCESSED:
            commitment = Commitment.CONFIRMED
        return {
            "encoding": encoding,
            "commitment": commitment.value,
            "maxSupportedTransactionVersion": 0,
        }

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, raising if not connected."""
        if self._client is None:
            msg = "RPC client not connected. Call connect() first."
            raise RPCError(msg)
        return self._client

    async def _call(self, method: str, params: list[Any]) -> Any:
        """Issue one JSON-RPC request and return its ``result`` member."""
        client = self._ensure_connected()
        request = RPCRequest(method=method, params=params, id=next(self._ids))
        logger.debug("RPC %s %s", method, params[:1])

        try:
            response = await client.post("", json=request.to_dict())
        except httpx.HTTPError as exc:
            raise RPCError(f"RPC {method} failed: {exc}") from exc

        if response.status_code != 200:
            msg = f"RPC {method} failed ({response.status_code}): {response.text}"
            raise RPCError(msg)

        try:
            body = response.json()
        except ValueError as exc:
            raise RPCError(f"RPC {method} returned invalid JSON") from exc

        error = body.get("error")
        if error:
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            raise RPCError(f"RPC {method} error: {message}", rpc_code=code)
        return body.get("result")
