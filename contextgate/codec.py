"""
Column codecs shared by the relational repositories.

Timestamps are RFC3339 text; list fields are JSON array text. Decode
fallbacks are logged at WARNING so lost fidelity is visible.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional, Sequence, Type

import contextgate.config as config
from contextgate.domain import CodedEnum
from contextgate.errors import EncodingFailure, UnrecognizedValue

logger = config.logger


def encode_timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def decode_timestamp(value: Optional[str], column: str) -> Optional[datetime]:
    """Lenient decode for optional columns: bad text becomes None."""
    if not value:
        return None
    try:
        return _parse_timestamp(value)
    except (TypeError, ValueError):
        logger.warning(
            "timestamp_decode_fallback",
            extra={"column": column, "raw_value": value},
        )
        return None


def decode_required_timestamp(value: Optional[str], column: str) -> datetime:
    if not value:
        raise EncodingFailure(column, value, reason="missing timestamp")
    try:
        return _parse_timestamp(value)
    except (TypeError, ValueError) as exc:
        raise EncodingFailure(column, value, reason="unparsable timestamp") from exc


def encode_list(values: Optional[Sequence]) -> str:
    return json.dumps(list(values or []))


def decode_list(value: Optional[str], column: str) -> list:
    if value is None or value == "":
        return []
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        logger.warning("list_decode_fallback", extra={"column": column, "raw_value": value})
        return []
    if not isinstance(parsed, list):
        logger.warning("list_decode_fallback", extra={"column": column, "raw_value": value})
        return []
    return parsed


def decode_enum(enum_cls: Type[CodedEnum], value: Optional[str], column: str):
    try:
        return enum_cls.parse(value, field=column)
    except UnrecognizedValue:
        fallback = enum_cls.fallback()
        logger.warning(
            "enum_decode_fallback",
            extra={
                "column": column,
                "raw_value": value,
                "enum": enum_cls.__name__,
                "fallback": fallback.value,
            },
        )
        return fallback


def decode_optional_enum(enum_cls: Type[CodedEnum], value: Optional[str], column: str):
    if value is None:
        return None
    return decode_enum(enum_cls, value, column)


__all__ = [
    "encode_timestamp",
    "decode_timestamp",
    "decode_required_timestamp",
    "encode_list",
    "decode_list",
    "decode_enum",
    "decode_optional_enum",
]
