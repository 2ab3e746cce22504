"""Ledger primitives — base58, ed25519 keypairs, transaction wire format."""

from spatial_memo.ledger.keys import Keypair, PublicKey, load_keypair
from spatial_memo.ledger.transaction import AccountMeta, Instruction, Message, Transaction

__all__ = [
    "AccountMeta",
    "Instruction",
    "Keypair",
    "Message",
    "PublicKey",
    "Transaction",
    "load_keypair",
]
