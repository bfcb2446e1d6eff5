"""Snapshot codec for the wire format exchanged with the remote store.

Wire shape::

    {
        "users": [...],
        "records": [...],
        "meetings": [...],
        "notifications": [...],
        "config": {...},
        "lastUpdated": 1700000000000
    }

A field missing from an incoming payload decodes to ``None``, meaning "no update
for that collection", never "clear it".
"""

import json
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from ...models import AppConfig, Meeting, Notification, Record, Syncable, User

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Syncable)

# Keys written by earlier releases of the app
LEGACY_KEYS = {
    "lmras": "records",
    "kickoffs": "meetings",
    "appConfig": "config",
}


class SnapshotDecodeError(Exception):
    """Raised when a payload is not a decodable snapshot."""


class Snapshot(BaseModel):
    """Full dataset exchanged with the remote store in one pull or push."""

    users: Optional[List[User]] = None
    records: Optional[List[Record]] = None
    meetings: Optional[List[Meeting]] = None
    notifications: Optional[List[Notification]] = None
    config: Optional[AppConfig] = None
    last_updated: int = 0

    def is_empty(self) -> bool:
        """Whether the snapshot carries no data at all."""
        return (
            self.users is None
            and self.records is None
            and self.meetings is None
            and self.notifications is None
            and self.config is None
        )


def _decode_items(raw: Any, model: Type[S], name: str) -> Optional[List[S]]:
    if raw is None:
        return None
    if not isinstance(raw, list):
        logger.warning("Ignoring %s: expected a list, got %s", name, type(raw).__name__)
        return None
    items: List[S] = []
    for index, entry in enumerate(raw):
        try:
            items.append(model.model_validate(entry))
        except ValidationError as e:
            logger.warning(
                "Skipping invalid %s item at index %d: %s",
                name,
                index,
                e.errors()[0]["msg"] if e.errors() else e,
            )
    return items


def _decode_config(raw: Any) -> Optional[AppConfig]:
    if not isinstance(raw, dict) or not raw:
        return None
    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        logger.warning("Ignoring invalid config in snapshot: %s", e)
        return None


def _coerce_int(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def parse_payload(payload: Union[str, bytes, Dict[str, Any], None]) -> Dict[str, Any]:
    """Turn a raw payload into a dict, raising on anything that is not an object.

    Args:
        payload: Response body or already decoded JSON

    Returns:
        Decoded object, empty for blank bodies and JSON null

    Raises:
        SnapshotDecodeError: If the payload is not JSON or not an object
    """
    if payload is None:
        return {}
    if isinstance(payload, dict):
        return payload
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SnapshotDecodeError("payload is not valid UTF-8") from e
    if not payload.strip():
        return {}
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise SnapshotDecodeError(f"payload is not JSON: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise SnapshotDecodeError(
            f"payload must be an object, got {type(data).__name__}"
        )
    return data


def decode_snapshot(
    payload: Union[str, bytes, Dict[str, Any], None],
) -> Optional[Snapshot]:
    """Decode a remote payload.

    Args:
        payload: Response body or already decoded JSON

    Returns:
        Snapshot, or None when the remote holds no data yet

    Raises:
        SnapshotDecodeError: If the payload is malformed
    """
    data = parse_payload(payload)
    if not data:
        return None

    for legacy, current in LEGACY_KEYS.items():
        if current not in data and legacy in data:
            data = {**data, current: data[legacy]}

    snapshot = Snapshot(
        users=_decode_items(data.get("users"), User, "users"),
        records=_decode_items(data.get("records"), Record, "records"),
        meetings=_decode_items(data.get("meetings"), Meeting, "meetings"),
        notifications=_decode_items(
            data.get("notifications"), Notification, "notifications"
        ),
        config=_decode_config(data.get("config")),
        last_updated=_coerce_int(data.get("lastUpdated")),
    )
    if snapshot.is_empty():
        return None
    return snapshot


def snapshot_to_dict(snapshot: Snapshot) -> Dict[str, Any]:
    """Convert a snapshot to its wire dict; absent collections are omitted."""
    data: Dict[str, Any] = {}
    for name in ("users", "records", "meetings", "notifications"):
        items = getattr(snapshot, name)
        if items is not None:
            data[name] = [item.to_wire() for item in items]
    if snapshot.config is not None:
        data["config"] = snapshot.config.to_wire()
    data["lastUpdated"] = snapshot.last_updated
    return data


def encode_snapshot(snapshot: Snapshot) -> str:
    """Serialize a snapshot to the JSON wire format."""
    return json.dumps(snapshot_to_dict(snapshot), ensure_ascii=False)
