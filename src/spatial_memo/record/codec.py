"""Record codec — compact UTF-8 JSON in, validated Record out.

``decode(encode(r)) == r`` for every valid record. Decoding is all or
nothing: malformed input raises, it never yields a partial record.
"""

from __future__ import annotations

import json

from spatial_memo.errors.codec_errors import DecodingError, EncodingError
from spatial_memo.record.models import EncodedPayload, Record, is_json_scalar


def encode(record: Record) -> EncodedPayload:
    """Serialise a record to its on-ledger bytes.

    Raises:
        SchemaError: If the record shape is invalid.
        EncodingError: If a property value cannot be serialised.
    """
    record.validate()
    for key, value in record.properties.items():
        if not is_json_scalar(value):
            msg = f"property {key!r} is not serialisable ({type(value).__name__})"
            raise EncodingError(msg)
    try:
        text = json.dumps(
            record.to_dict(),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"record is not serialisable: {exc}") from exc
    return text.encode("utf-8")


def decode(data: bytes | str) -> Record:
    """Parse on-ledger bytes back into a record.

    Raises:
        DecodingError: If *data* is not valid UTF-8 JSON.
        SchemaError: If the JSON value is not a point-feature record.
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodingError(f"payload is not UTF-8: {exc}") from exc
    else:
        text = data
    try:
        value = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DecodingError(f"payload is not JSON: {exc}") from exc
    return Record.from_dict(value)
