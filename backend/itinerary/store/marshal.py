"""Conversion between Python values and the document store's typed wire values.

Each Python value maps to exactly one wire shape and back:

    str      <-> {"stringValue": "..."}
    bool     <-> {"booleanValue": true}
    int      <-> {"integerValue": "42"}          (decimal string on the wire)
    float    <-> {"doubleValue": 1.5}
    datetime <-> {"timestampValue": "...Z"}      (UTC, RFC 3339)
    None     <-> {"nullValue": null}
    list     <-> {"arrayValue": {"values": [...]}}
    dict     <-> {"mapValue": {"fields": {...}}}
"""

from datetime import UTC, datetime
from typing import Any


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _parse_timestamp(raw: str) -> datetime:
    return datetime.fromisoformat(raw.replace("Z", "+00:00")).astimezone(UTC)


def encode_value(value: Any) -> dict[str, Any]:
    """Encode one Python value as a typed wire value."""
    if value is None:
        return {"nullValue": None}
    # bool is a subclass of int, check it first
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        return {"timestampValue": _format_timestamp(value)}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(item) for item in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot encode value of type {type(value).__name__}")


def decode_value(wire: dict[str, Any]) -> Any:
    """Decode one typed wire value back to its Python value."""
    if "nullValue" in wire:
        return None
    if "booleanValue" in wire:
        return bool(wire["booleanValue"])
    if "integerValue" in wire:
        return int(wire["integerValue"])
    if "doubleValue" in wire:
        return float(wire["doubleValue"])
    if "stringValue" in wire:
        return wire["stringValue"]
    if "timestampValue" in wire:
        return _parse_timestamp(wire["timestampValue"])
    if "arrayValue" in wire:
        # Empty arrays come back without a "values" key
        return [decode_value(item) for item in wire["arrayValue"].get("values", [])]
    if "mapValue" in wire:
        return decode_fields(wire["mapValue"].get("fields", {}))
    raise ValueError(f"Unsupported wire value: {sorted(wire)}")


def encode_fields(fields: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Encode a record of named fields."""
    return {key: encode_value(value) for key, value in fields.items()}


def decode_fields(fields: dict[str, dict[str, Any]]) -> dict[str, Any]:
    """Decode a record of named wire fields."""
    return {key: decode_value(value) for key, value in fields.items()}
