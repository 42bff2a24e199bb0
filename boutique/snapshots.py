"""
Snapshot codec shared by the cart and wishlist.

Current layout is a JSON object {"version": 1, "items": [...], ...}.
Older storefront builds wrote a bare JSON list of items; that shape is
read as version 0. Malformed entries are skipped, an unreadable snapshot
is treated as absent.
"""
import json
from typing import Any, Callable, List, Optional, TypeVar

from boutique.logging import get_logger

logger = get_logger(__name__)

SNAPSHOT_VERSION = 1
LEGACY_VERSION = 0

T = TypeVar("T")


def encode_snapshot(items: List[dict], **extra: Any) -> str:
    """Serialize a collection snapshot."""
    payload = {"version": SNAPSHOT_VERSION, "items": items}
    payload.update(extra)
    return json.dumps(payload, ensure_ascii=False)


def decode_snapshot(raw: Optional[str], label: str = "snapshot") -> Optional[dict]:
    """Parse a stored snapshot into {"version", "items", ...} or None."""
    if not raw:
        return None

    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning("Corrupted %s, starting empty: %s", label, type(e).__name__)
        return None

    if isinstance(data, list):
        return {"version": LEGACY_VERSION, "items": data}

    if not isinstance(data, dict):
        logger.warning("Unexpected %s layout (%s), starting empty", label, type(data).__name__)
        return None

    items = data.get("items")
    data["items"] = items if isinstance(items, list) else []
    data.setdefault("version", SNAPSHOT_VERSION)
    return data


def load_entries(entries: List[Any], factory: Callable[[dict], T], label: str = "item") -> List[T]:
    """Build entries one by one, dropping the ones that cannot be read."""
    loaded: List[T] = []
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            logger.warning("Skipping %s #%d: not an object", label, index)
            continue
        try:
            loaded.append(factory(entry))
        except (KeyError, ValueError, TypeError) as e:
            logger.warning("Skipping malformed %s #%d: %s", label, index, type(e).__name__)
    return loaded
