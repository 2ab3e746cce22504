"""Record codec errors — local failures the caller must fix, never retried."""

from __future__ import annotations

from spatial_memo.errors.memo_errors import MemoError


class CodecError(MemoError):
    """Base class for record encoding/decoding failures."""


class EncodingError(CodecError):
    """Record contains a value that cannot be serialised."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="encoding-error")


class DecodingError(CodecError):
    """Payload bytes are not syntactically valid UTF-8 JSON."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="decoding-error")


class SchemaError(CodecError):
    """Value does not have the point-feature record shape."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="schema-error")
