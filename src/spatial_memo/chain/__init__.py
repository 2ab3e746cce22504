"""Chain access — JSON-RPC client for the ledger node."""

from spatial_memo.chain.rpc.client import LedgerRPCClient

__all__ = ["LedgerRPCClient"]
