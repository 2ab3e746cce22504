"""Ed25519 keypairs and base58 addresses.

Implements the account identity layer used to sign memo transactions:
- Base58 encoding / decoding (Bitcoin alphabet, no checksum)
- 32-byte public keys rendered as base58 addresses
- Ed25519 signing and verification
- Loading the Solana CLI keypair file (JSON array of 64 integers)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Self

from ecdsa import BadSignatureError, Ed25519, SigningKey, VerifyingKey
from ecdsa.errors import MalformedPointError

from spatial_memo.errors.ledger_errors import KeypairError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PUBLIC_KEY_LENGTH = 32
SEED_LENGTH = 32
SECRET_KEY_LENGTH = 64
SIGNATURE_LENGTH = 64

DEFAULT_KEYPAIR_PATH = Path("~/.config/solana/id.json")


# ---------------------------------------------------------------------------
# Base58 encoding / decoding
# ---------------------------------------------------------------------------

_B58_ALPHABET = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


def base58_encode(payload: bytes) -> str:
    """Encode raw bytes to Base58 (no checksum)."""
    n = int.from_bytes(payload, "big")
    result: list[int] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(_B58_ALPHABET[remainder])
    # Preserve leading zero bytes
    for byte in payload:
        if byte == 0:
            result.append(_B58_ALPHABET[0])
        else:
            break
    return bytes(reversed(result)).decode("ascii")


def base58_decode(s: str) -> bytes:
    """Decode a Base58 string to raw bytes (no checksum).

    Raises:
        ValueError: If *s* contains a character outside the alphabet.
    """
    n = 0
    for char in s:
        index = _B58_ALPHABET.find(ord(char)) if char.isascii() else -1
        if index < 0:
            msg = f"Invalid base58 character: {char!r}"
            raise ValueError(msg)
        n = n * 58 + index
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    # Leading '1' chars are 0x00 bytes
    pad_count = len(s) - len(s.lstrip("1"))
    return b"\x00" * pad_count + result


# ---------------------------------------------------------------------------
# Public key
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PublicKey:
    """A 32-byte ed25519 public key / account address."""

    raw: bytes

    def __post_init__(self) -> None:
        # ecdsa hands back bytearray for Ed25519 keys; keys must stay hashable.
        object.__setattr__(self, "raw", bytes(self.raw))
        if len(self.raw) != PUBLIC_KEY_LENGTH:
            msg = f"Public key must be {PUBLIC_KEY_LENGTH} bytes, got {len(self.raw)}"
            raise ValueError(msg)

    @classmethod
    def from_string(cls, address: str) -> Self:
        """Parse a base58 address."""
        return cls(base58_decode(address))

    def to_string(self) -> str:
        return base58_encode(self.raw)

    def __str__(self) -> str:
        return self.to_string()

    def __bytes__(self) -> bytes:
        return self.raw

    def verify(self, signature: bytes, message: bytes) -> bool:
        """Check an ed25519 signature made by this key."""
        try:
            vk = VerifyingKey.from_string(self.raw, curve=Ed25519)
            return bool(vk.verify(signature, message))
        except (BadSignatureError, MalformedPointError):
            return False


# ---------------------------------------------------------------------------
# Keypair
# ---------------------------------------------------------------------------


class Keypair:
    """An ed25519 signing keypair.

    Usage::

        payer = load_keypair("~/.config/solana/id.json")
        signature = payer.sign(message_bytes)
    """

    def __init__(self, signing_key: SigningKey) -> None:
        self._signing_key = signing_key
        self._verifying_key: VerifyingKey = signing_key.get_verifying_key()
        self._public_key = PublicKey(bytes(self._verifying_key.to_string()))

    @classmethod
    def generate(cls) -> Self:
        """Create a fresh random keypair."""
        return cls(SigningKey.generate(curve=Ed25519))

    @classmethod
    def from_seed(cls, seed: bytes) -> Self:
        """Build a keypair from a 32-byte ed25519 seed."""
        if len(seed) != SEED_LENGTH:
            msg = f"Seed must be {SEED_LENGTH} bytes, got {len(seed)}"
            raise KeypairError(msg)
        return cls(SigningKey.from_string(seed, curve=Ed25519))

    @classmethod
    def from_secret_key(cls, secret_key: bytes) -> Self:
        """Build a keypair from the 64-byte ``seed || public key`` layout.

        Raises:
            KeypairError: If the length is wrong or the embedded public key
                does not match the seed.
        """
        if len(secret_key) != SECRET_KEY_LENGTH:
            msg = f"Secret key must be {SECRET_KEY_LENGTH} bytes, got {len(secret_key)}"
            raise KeypairError(msg)
        keypair = cls.from_seed(secret_key[:SEED_LENGTH])
        if keypair.public_key.raw != secret_key[SEED_LENGTH:]:
            msg = "Secret key public half does not match its seed"
            raise KeypairError(msg)
        return keypair

    @property
    def public_key(self) -> PublicKey:
        return self._public_key

    @property
    def secret_key(self) -> bytes:
        """The 64-byte ``seed || public key`` form."""
        return bytes(self._signing_key.to_string()) + self._public_key.raw

    def sign(self, message: bytes) -> bytes:
        """Sign *message*, returning the 64-byte ed25519 signature."""
        return bytes(self._signing_key.sign(message))

    def verify(self, signature: bytes, message: bytes) -> bool:
        """Check an ed25519 signature against this keypair's public key."""
        return self._public_key.verify(signature, message)

    def __repr__(self) -> str:
        return f"Keypair({self._public_key})"


def load_keypair(path: str | Path = DEFAULT_KEYPAIR_PATH) -> Keypair:
    """Load a keypair file written by the Solana CLI.

    Raises:
        KeypairError: If the file is missing or not a 64-byte JSON array.
    """
    p = Path(path).expanduser()
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except OSError as exc:
        raise KeypairError(f"Cannot read keypair file {p}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise KeypairError(f"Keypair file {p} is not JSON: {exc}") from exc
    if not isinstance(data, list) or not all(
        isinstance(b, int) and 0 <= b <= 255 for b in data
    ):
        msg = f"Keypair file {p} must contain a JSON array of byte values"
        raise KeypairError(msg)
    return Keypair.from_secret_key(bytes(data))
