"""Helpers for converting between MongoDB documents and API payloads."""

from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId


def to_object_id(value: Any) -> Optional[ObjectId]:
    """
    Parse a document ID.

    Returns:
        ObjectId, or None when the value is not a valid ID
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        return None


def serialize_document(document: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """Replace ``_id`` with a string ``id`` so documents map onto response schemas."""
    if document is None:
        return None
    result = {key: value for key, value in document.items() if key != "_id"}
    result["id"] = str(document["_id"])
    return result


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
