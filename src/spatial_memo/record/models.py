"""Point-feature record — the unit written to and recovered from the ledger.

A record is GeoJSON-shaped on the wire::

    {"type": "Feature",
     "geometry": {"type": "Point", "coordinates": [lon, lat]},
     "properties": {"name": ..., "category": ..., "recordedAt": ...}}
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from spatial_memo.errors.codec_errors import SchemaError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

FEATURE_KIND = "Feature"
POINT_KIND = "Point"

REQUIRED_PROPERTIES = ("name", "category", "recordedAt")

# Bytes placed on the ledger.
EncodedPayload = bytes


def utc_timestamp(moment: datetime | None = None) -> str:
    """Format a UTC moment as ISO-8601 with millisecond precision and ``Z``."""
    moment = moment or datetime.now(UTC)
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_json_scalar(value: Any) -> bool:
    if value is None or isinstance(value, (str, bool, int)):
        return True
    return isinstance(value, float) and math.isfinite(value)


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PointGeometry:
    """A WGS84 point.

    Attributes:
        longitude: Degrees east, in ``[-180, 180]``.
        latitude: Degrees north, in ``[-90, 90]``.
    """

    longitude: float
    latitude: float

    def validate(self) -> None:
        """Raise SchemaError unless both coordinates are finite and in range."""
        for axis, value, bound in (
            ("longitude", self.longitude, 180),
            ("latitude", self.latitude, 90),
        ):
            if not _is_number(value) or not math.isfinite(value):
                msg = f"geometry {axis} must be a finite number, got {value!r}"
                raise SchemaError(msg)
            if not -bound <= value <= bound:
                msg = f"geometry {axis} {value} outside [-{bound}, {bound}]"
                raise SchemaError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {"type": POINT_KIND, "coordinates": [self.longitude, self.latitude]}

    @classmethod
    def from_dict(cls, data: Any) -> PointGeometry:
        """Build a validated point from its GeoJSON dict form."""
        if not isinstance(data, dict):
            msg = "geometry must be an object"
            raise SchemaError(msg)
        if data.get("type") != POINT_KIND:
            msg = f"geometry type must be {POINT_KIND!r}, got {data.get('type')!r}"
            raise SchemaError(msg)
        coords = data.get("coordinates")
        if not isinstance(coords, list) or len(coords) != 2:
            msg = "geometry coordinates must be a [longitude, latitude] pair"
            raise SchemaError(msg)
        point = cls(longitude=coords[0], latitude=coords[1])
        point.validate()
        return point


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Record:
    """A geotagged point-feature record.

    Attributes:
        geometry: The point location.
        properties: Open mapping of scalar properties. Always carries
            ``name``, ``category`` and ``recordedAt``. Copied on
            construction, so later changes to the caller's dict do not
            reach the record.

    Records compare by value but are not hashable.
    """

    geometry: PointGeometry
    properties: dict[str, Any] = field(default_factory=dict)

    kind = FEATURE_KIND

    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if isinstance(self.properties, dict):
            object.__setattr__(self, "properties", dict(self.properties))

    @classmethod
    def create(
        cls,
        name: str,
        category: str,
        longitude: float,
        latitude: float,
        recorded_at: str | None = None,
        **extra: Any,
    ) -> Record:
        """Build and validate a record, stamping ``recordedAt`` with now if omitted."""
        properties: dict[str, Any] = {
            "name": name,
            "category": category,
            "recordedAt": recorded_at or utc_timestamp(),
        }
        properties.update(extra)
        record = cls(geometry=PointGeometry(longitude, latitude), properties=properties)
        record.validate()
        return record

    @property
    def name(self) -> str:
        return self.properties["name"]

    @property
    def category(self) -> str:
        return self.properties["category"]

    @property
    def recorded_at(self) -> str:
        return self.properties["recordedAt"]

    def validate(self) -> None:
        """Check the record shape.

        Raises:
            SchemaError: If geometry or the required properties are malformed.
        """
        if not isinstance(self.geometry, PointGeometry):
            msg = "record geometry must be a PointGeometry"
            raise SchemaError(msg)
        self.geometry.validate()
        _validate_properties(self.properties, check_scalars=False)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the GeoJSON dict form."""
        return {
            "type": self.kind,
            "geometry": self.geometry.to_dict(),
            "properties": dict(self.properties),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Record:
        """Build a validated record from its GeoJSON dict form.

        Raises:
            SchemaError: If any part of *data* does not conform.
        """
        if not isinstance(data, dict):
            msg = f"record must be an object, got {type(data).__name__}"
            raise SchemaError(msg)
        if data.get("type") != FEATURE_KIND:
            msg = f"record type must be {FEATURE_KIND!r}, got {data.get('type')!r}"
            raise SchemaError(msg)
        geometry = PointGeometry.from_dict(data.get("geometry"))
        properties = data.get("properties")
        _validate_properties(properties, check_scalars=True)
        return cls(geometry=geometry, properties=dict(properties))


def _validate_properties(properties: Any, *, check_scalars: bool) -> None:
    if not isinstance(properties, dict):
        msg = "record properties must be an object"
        raise SchemaError(msg)
    for key in REQUIRED_PROPERTIES:
        if not isinstance(properties.get(key), str):
            msg = f"record property {key!r} must be a string"
            raise SchemaError(msg)
    try:
        datetime.fromisoformat(properties["recordedAt"])
    except ValueError as exc:
        msg = f"recordedAt is not an ISO-8601 timestamp: {properties['recordedAt']!r}"
        raise SchemaError(msg) from exc
    for key, value in properties.items():
        if not isinstance(key, str):
            msg = f"property keys must be strings, got {key!r}"
            raise SchemaError(msg)
        if check_scalars and not is_json_scalar(value):
            msg = f"property {key!r} must be a scalar value"
            raise SchemaError(msg)
