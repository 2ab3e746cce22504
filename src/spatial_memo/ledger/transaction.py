"""Transaction serialisation — legacy message and signed transaction format.

Provides pure-Python ledger transaction serialization and deserialization:
- compact-u16 length prefixes
- AccountMeta / Instruction (caller-facing) and CompiledInstruction (wire)
- Message compilation with the account ordering rule
- Transaction signing, serialize / deserialize, base64 wire form
"""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from io import BytesIO

from spatial_memo.errors.ledger_errors import KeypairError
from spatial_memo.ledger.keys import (
    PUBLIC_KEY_LENGTH,
    SIGNATURE_LENGTH,
    Keypair,
    PublicKey,
    base58_decode,
    base58_encode,
)

# ---------------------------------------------------------------------------
# compact-u16 encoding / decoding
# ---------------------------------------------------------------------------

_COMPACT_U16_MAX = 0xFFFF


def encode_compact_u16(n: int) -> bytes:
    """Encode an integer as a compact-u16 (7 bits per byte, high bit = more)."""
    if not 0 <= n <= _COMPACT_U16_MAX:
        msg = f"compact-u16 value out of range: {n}"
        raise ValueError(msg)
    out = bytearray()
    while True:
        byte = n & 0x7F
        n >>= 7
        if n:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def read_compact_u16(stream: BytesIO) -> int:
    """Read a compact-u16 from a byte stream."""
    value = 0
    for shift in (0, 7, 14):
        raw = stream.read(1)
        if len(raw) == 0:
            msg = "Unexpected end of stream reading compact-u16"
            raise ValueError(msg)
        byte = raw[0]
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value
    msg = "compact-u16 longer than 3 bytes"
    raise ValueError(msg)


def _read_exact(stream: BytesIO, n: int, what: str) -> bytes:
    data = stream.read(n)
    if len(data) != n:
        msg = f"Unexpected end of stream reading {what}"
        raise ValueError(msg)
    return data


# ---------------------------------------------------------------------------
# Instructions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountMeta:
    """An account referenced by an instruction."""

    pubkey: PublicKey
    is_signer: bool
    is_writable: bool


@dataclass
class Instruction:
    """A single unit of work addressed to a program.

    Attributes:
        program_id: The program that executes the instruction.
        accounts: Accounts the program reads, writes, or requires signatures from.
        data: Opaque instruction data.
    """

    program_id: PublicKey
    accounts: list[AccountMeta] = field(default_factory=list)
    data: bytes = b""


@dataclass
class CompiledInstruction:
    """An instruction with accounts replaced by indexes into the message keys."""

    program_id_index: int
    account_indexes: list[int] = field(default_factory=list)
    data: bytes = b""

    def serialize(self) -> bytes:
        result = bytes([self.program_id_index])
        result += encode_compact_u16(len(self.account_indexes))
        result += bytes(self.account_indexes)
        result += encode_compact_u16(len(self.data))
        result += self.data
        return result

    @classmethod
    def deserialize(cls, stream: BytesIO) -> CompiledInstruction:
        program_id_index = _read_exact(stream, 1, "program id index")[0]
        n_accounts = read_compact_u16(stream)
        account_indexes = list(_read_exact(stream, n_accounts, "account indexes"))
        data_len = read_compact_u16(stream)
        data = _read_exact(stream, data_len, "instruction data")
        return cls(
            program_id_index=program_id_index,
            account_indexes=account_indexes,
            data=data,
        )


# ---------------------------------------------------------------------------
# Message
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MessageHeader:
    """Counts that classify the message's account keys."""

    num_required_signatures: int
    num_readonly_signed: int
    num_readonly_unsigned: int

    def serialize(self) -> bytes:
        return bytes(
            [self.num_required_signatures, self.num_readonly_signed, self.num_readonly_unsigned]
        )


@dataclass
class Message:
    """A legacy transaction message.

    Attributes:
        header: Signer / read-only account counts.
        account_keys: Ordered account keys; signers first.
        recent_blockhash: Base58 blockhash the message is valid against.
        instructions: Compiled instructions.
    """

    header: MessageHeader
    account_keys: list[PublicKey]
    recent_blockhash: str
    instructions: list[CompiledInstruction] = field(default_factory=list)

    @classmethod
    def compile(
        cls,
        payer: PublicKey,
        instructions: list[Instruction],
        recent_blockhash: str,
    ) -> Message:
        """Compile instructions into a message paid for by *payer*.

        Keys are ordered writable signers, read-only signers, writable
        non-signers, read-only non-signers; the payer is always first.
        Repeated keys are merged with their signer/writable flags OR-ed.
        """
        metas: dict[bytes, AccountMeta] = {
            payer.raw: AccountMeta(payer, is_signer=True, is_writable=True),
        }

        def _add(meta: AccountMeta) -> None:
            existing = metas.get(meta.pubkey.raw)
            if existing is None:
                metas[meta.pubkey.raw] = meta
                return
            metas[meta.pubkey.raw] = AccountMeta(
                existing.pubkey,
                is_signer=existing.is_signer or meta.is_signer,
                is_writable=existing.is_writable or meta.is_writable,
            )

        for ix in instructions:
            for meta in ix.accounts:
                _add(meta)
            _add(AccountMeta(ix.program_id, is_signer=False, is_writable=False))

        ordered = sorted(
            metas.values(),
            key=lambda m: (not m.is_signer, not m.is_writable),
        )
        keys = [m.pubkey for m in ordered]
        index = {k.raw: i for i, k in enumerate(keys)}

        header = MessageHeader(
            num_required_signatures=sum(1 for m in ordered if m.is_signer),
            num_readonly_signed=sum(1 for m in ordered if m.is_signer and not m.is_writable),
            num_readonly_unsigned=sum(
                1 for m in ordered if not m.is_signer and not m.is_writable
            ),
        )
        compiled = [
            CompiledInstruction(
                program_id_index=index[ix.program_id.raw],
                account_indexes=[index[m.pubkey.raw] for m in ix.accounts],
                data=ix.data,
            )
            for ix in instructions
        ]
        return cls(
            header=header,
            account_keys=keys,
            recent_blockhash=recent_blockhash,
            instructions=compiled,
        )

    @property
    def signer_keys(self) -> list[PublicKey]:
        """Keys whose signatures the transaction must carry, in order."""
        return self.account_keys[: self.header.num_required_signatures]

    def serialize(self) -> bytes:
        """Serialize the message to the bytes that get signed."""
        result = self.header.serialize()
        result += encode_compact_u16(len(self.account_keys))
        for key in self.account_keys:
            result += key.raw
        result += base58_decode(self.recent_blockhash).rjust(32, b"\x00")
        result += encode_compact_u16(len(self.instructions))
        for ix in self.instructions:
            result += ix.serialize()
        return result

    @classmethod
    def deserialize(cls, stream: BytesIO) -> Message:
        raw_header = _read_exact(stream, 3, "message header")
        header = MessageHeader(*raw_header)
        n_keys = read_compact_u16(stream)
        keys = [
            PublicKey(_read_exact(stream, PUBLIC_KEY_LENGTH, "account key")) for _ in range(n_keys)
        ]
        blockhash = base58_encode(_read_exact(stream, 32, "recent blockhash"))
        n_ix = read_compact_u16(stream)
        instructions = [CompiledInstruction.deserialize(stream) for _ in range(n_ix)]
        return cls(
            header=header,
            account_keys=keys,
            recent_blockhash=blockhash,
            instructions=instructions,
        )


# ---------------------------------------------------------------------------
# Transaction
# ---------------------------------------------------------------------------


@dataclass
class Transaction:
    """A message plus one signature per required signer."""

    message: Message
    signatures: list[bytes] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        payer: PublicKey,
        instructions: list[Instruction],
        recent_blockhash: str,
    ) -> Transaction:
        """Compile an unsigned transaction."""
        return cls(message=Message.compile(payer, instructions, recent_blockhash))

    def sign(self, *signers: Keypair) -> None:
        """Sign the message with every required signer.

        Raises:
            KeypairError: If a required signer is not among *signers*.
        """
        by_key = {kp.public_key.raw: kp for kp in signers}
        payload = self.message.serialize()
        signatures: list[bytes] = []
        for key in self.message.signer_keys:
            keypair = by_key.get(key.raw)
            if keypair is None:
                msg = f"Missing signer for required key {key}"
                raise KeypairError(msg)
            signatures.append(keypair.sign(payload))
        self.signatures = signatures

    @property
    def is_signed(self) -> bool:
        return len(self.signatures) == self.message.header.num_required_signatures > 0

    @property
    def signature(self) -> str:
        """The transaction id: base58 of the fee payer's signature."""
        if not self.signatures:
            msg = "Transaction is not signed"
            raise ValueError(msg)
        return base58_encode(self.signatures[0])

    def serialize(self) -> bytes:
        """Serialize the signed transaction to raw bytes."""
        result = encode_compact_u16(len(self.signatures))
        for sig in self.signatures:
            result += sig
        result += self.message.serialize()
        return result

    def to_base64(self) -> str:
        return base64.b64encode(self.serialize()).decode("ascii")

    @classmethod
    def deserialize(cls, stream: BytesIO) -> Transaction:
        n_sigs = read_compact_u16(stream)
        signatures = [_read_exact(stream, SIGNATURE_LENGTH, "signature") for _ in range(n_sigs)]
        message = Message.deserialize(stream)
        return cls(message=message, signatures=signatures)

    @classmethod
    def from_bytes(cls, data: bytes) -> Transaction:
        return cls.deserialize(BytesIO(data))

    @classmethod
    def from_base64(cls, data: str) -> Transaction:
        return cls.from_bytes(base64.b64decode(data))

    @property
    def size(self) -> int:
        """Transaction size in bytes."""
        return len(self.serialize())
