"""ActivityWatch export adapter."""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timedelta, timezone

from activity_engine.schema import BucketExport, BucketType, RawEvent

logger = logging.getLogger(__name__)


class ImportParseError(ValueError):
    """Raised when an export document does not have the expected shape."""


def _parse_timestamp(value, context: str) -> datetime:
    if not isinstance(value, str) or not value.strip():
        raise ImportParseError(f"{context}: missing timestamp")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        timestamp = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ImportParseError(f"{context}: malformed timestamp '{value}'") from exc
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def _parse_duration(value, context: str) -> float:
    if isinstance(value, bool):
        raise ImportParseError(f"{context}: invalid duration")
    try:
        duration = float(value if value is not None else 0.0)
    except (TypeError, ValueError) as exc:
        raise ImportParseError(f"{context}: invalid duration") from exc
    if not math.isfinite(duration):
        raise ImportParseError(f"{context}: invalid duration")
    if duration < 0:
        raise ImportParseError(f"{context}: negative duration")
    return duration


def _parse_event(item, bucket: BucketExport, index: int) -> RawEvent:
    context = f"Bucket '{bucket.id}' event {index}"
    if not isinstance(item, dict):
        raise ImportParseError(f"{context}: expected an object")

    data = item.get("data") or {}
    if not isinstance(data, dict):
        raise ImportParseError(f"{context}: data must be an object")

    timestamp = _parse_timestamp(item.get("timestamp"), context)
    duration = _parse_duration(item.get("duration"), context)
    try:
        timestamp + timedelta(seconds=duration)
    except OverflowError as exc:
        raise ImportParseError(f"{context}: duration out of range") from exc

    return RawEvent(
        timestamp=timestamp,
        duration_seconds=duration,
        bucket_id=bucket.id,
        bucket_type=bucket.bucket_type,
        type_name=bucket.type_name,
        data=data,
    )


def _parse_bucket(key: str, raw) -> BucketExport:
    if not isinstance(raw, dict):
        raise ImportParseError(f"Bucket '{key}': expected an object")

    type_name = str(raw.get("type") or "other")
    bucket = BucketExport(
        id=str(raw.get("id") or key),
        type_name=type_name,
        bucket_type=BucketType.from_raw(type_name),
    )

    events = raw.get("events")
    if events is None:
        return bucket
    if not isinstance(events, list):
        raise ImportParseError(f"Bucket '{key}': events must be a list")

    bucket.events = [_parse_event(item, bucket, i) for i, item in enumerate(events, start=1)]
    return bucket


def parse_document(payload) -> dict[str, BucketExport]:
    """Validate an already decoded export document.

    Either every bucket parses or ``ImportParseError`` is raised; a bad
    document never yields a partial result.
    """

    if not isinstance(payload, dict):
        raise ImportParseError("Export document must be an object")

    buckets = payload.get("buckets")
    if not isinstance(buckets, dict):
        raise ImportParseError("Invalid ActivityWatch export: missing buckets")

    parsed = {key: _parse_bucket(key, raw) for key, raw in buckets.items()}
    logger.info(
        "Parsed export with %d buckets and %d events",
        len(parsed),
        sum(len(bucket.events) for bucket in parsed.values()),
    )
    return parsed


def parse(file_path: str) -> dict[str, BucketExport]:
    """Parse an ActivityWatch JSON export file."""

    try:
        with open(file_path, encoding="utf-8") as handle:
            payload = json.load(handle)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ImportParseError(f"Failed to parse JSON: {exc}") from exc

    return parse_document(payload)
