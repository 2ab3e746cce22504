"""Tests for the record codec — round trips and all-or-nothing rejection."""

from __future__ import annotations

import json
import math

import pytest

from spatial_memo.errors.codec_errors import CodecError, DecodingError, EncodingError, SchemaError
from spatial_memo.record.codec import decode, encode
from spatial_memo.record.models import PointGeometry, Record

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _feature(**overrides) -> dict:
    data = {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [-122.4194, 37.7749]},
        "properties": {
            "name": "San Francisco",
            "category": "city",
            "recordedAt": "2025-02-27T15:42:33.251Z",
        },
    }
    data.update(overrides)
    return data


def _raw(data) -> bytes:
    return json.dumps(data).encode("utf-8")


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


class TestEncode:
    def test_compact_geojson(self, sf_record) -> None:
        payload = encode(sf_record)
        assert isinstance(payload, bytes)
        assert payload.startswith(b'{"type":"Feature","geometry":{"type":"Point"')
        assert b" " not in payload.replace(b"San Francisco", b"")

    def test_deterministic(self, sf_record) -> None:
        assert encode(sf_record) == encode(sf_record)

    def test_non_ascii_kept_as_utf8(self) -> None:
        record = Record.create("Zürich", "city", 8.5417, 47.3769, recorded_at="2025-01-01T00:00:00Z")
        assert "Zürich".encode() in encode(record)

    def test_circular_property_rejected(self, sf_record) -> None:
        loop: dict = {}
        loop["self"] = loop
        record = Record(sf_record.geometry, {**sf_record.properties, "loop": loop})
        with pytest.raises(EncodingError, match="loop"):
            encode(record)

    def test_object_property_rejected(self, sf_record) -> None:
        record = Record(sf_record.geometry, {**sf_record.properties, "when": object()})
        with pytest.raises(EncodingError):
            encode(record)

    def test_nan_property_rejected(self, sf_record) -> None:
        record = Record(sf_record.geometry, {**sf_record.properties, "score": math.nan})
        with pytest.raises(EncodingError):
            encode(record)

    def test_invalid_shape_is_schema_error(self, sf_record) -> None:
        record = Record(PointGeometry(200.0, 0.0), sf_record.properties)
        with pytest.raises(SchemaError, match="longitude"):
            encode(record)


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------


class TestRoundTrip:
    def test_example_record(self, sf_record) -> None:
        assert decode(encode(sf_record)) == sf_record

    @pytest.mark.parametrize(
        ("lon", "lat"),
        [(0, 0), (180.0, 90.0), (-180.0, -90.0), (151.2093, -33.8688), (1e-9, -1e-9)],
    )
    def test_coordinates(self, lon, lat) -> None:
        record = Record.create("p", "test", lon, lat, recorded_at="2024-06-01T12:00:00Z")
        assert decode(encode(record)) == record

    def test_extra_scalar_properties(self) -> None:
        record = Record.create(
            "Golden Gate",
            "landmark",
            -122.4783,
            37.8199,
            recorded_at="2025-02-27T15:42:33.251+00:00",
            elevation=67,
            height_m=227.4,
            open=True,
            note=None,
            label="橋",
        )
        recovered = decode(encode(record))
        assert recovered == record
        assert recovered.properties["elevation"] == 67
        assert recovered.properties["open"] is True

    def test_decode_accepts_str(self, sf_record) -> None:
        assert decode(encode(sf_record).decode("utf-8")) == sf_record


# ---------------------------------------------------------------------------
# Decode rejection
# ---------------------------------------------------------------------------


class TestDecodeRejects:
    def test_truncated(self, sf_record) -> None:
        payload = encode(sf_record)
        for cut in (1, len(payload) // 2, len(payload) - 1):
            with pytest.raises(DecodingError):
                decode(payload[:cut])

    def test_empty(self) -> None:
        with pytest.raises(DecodingError):
            decode(b"")

    def test_not_utf8(self) -> None:
        with pytest.raises(DecodingError, match="UTF-8"):
            decode(b"\xff\xfe\x00")

    def test_not_an_object(self) -> None:
        with pytest.raises(SchemaError):
            decode(b"[1, 2]")

    def test_wrong_discriminator(self) -> None:
        with pytest.raises(SchemaError, match="Feature"):
            decode(_raw(_feature(type="FeatureCollection")))

    def test_wrong_geometry_type(self) -> None:
        data = _feature(geometry={"type": "LineString", "coordinates": [[0, 0], [1, 1]]})
        with pytest.raises(SchemaError, match="Point"):
            decode(_raw(data))

    @pytest.mark.parametrize(
        "coords",
        [[1.0], [1.0, 2.0, 3.0], ["1", 2.0], [True, 2.0], [181.0, 0.0], [0.0, -90.5], None],
    )
    def test_bad_coordinates(self, coords) -> None:
        data = _feature(geometry={"type": "Point", "coordinates": coords})
        with pytest.raises(SchemaError):
            decode(_raw(data))

    def test_nan_coordinate(self) -> None:
        payload = (
            b'{"type":"Feature","geometry":{"type":"Point","coordinates":[NaN,0]},'
            b'"properties":{"name":"a","category":"b","recordedAt":"2025-01-01T00:00:00Z"}}'
        )
        with pytest.raises(SchemaError, match="finite"):
            decode(payload)

    @pytest.mark.parametrize("missing", ["name", "category", "recordedAt"])
    def test_missing_required_property(self, missing) -> None:
        data = _feature()
        del data["properties"][missing]
        with pytest.raises(SchemaError, match=missing):
            decode(_raw(data))

    def test_bad_timestamp(self) -> None:
        data = _feature()
        data["properties"]["recordedAt"] = "yesterday"
        with pytest.raises(SchemaError, match="ISO-8601"):
            decode(_raw(data))

    def test_nested_property(self) -> None:
        data = _feature()
        data["properties"]["tags"] = ["a", "b"]
        with pytest.raises(SchemaError, match="tags"):
            decode(_raw(data))

    def test_all_errors_are_codec_errors(self) -> None:
        for payload in (b"{", b"{}", b"\x80"):
            with pytest.raises(CodecError):
                decode(payload)
