"""Record codec — point-feature records and their canonical byte encoding."""

from spatial_memo.record.codec import decode, encode
from spatial_memo.record.models import EncodedPayload, PointGeometry, Record

__all__ = ["EncodedPayload", "PointGeometry", "Record", "decode", "encode"]
