"""
Single-language reference book.

Implements an in-memory id -> name lookup table with:
- Cached JSON snapshot and 64-bit content hash, recomputed only by optimize()
- Parallel upper-case name index for case-insensitive substring search
- Optional readers-writer locking for concurrent use

Layout: ``_items`` (serialization source) and ``_upper`` (search source) are
parallel lists aligned by position; ``_positions`` maps an id to that position.
"""

import hashlib
import json
import logging
import struct
from typing import Any, Callable, List, Optional, Tuple, Union

import polars as pl

from refbook.adapters import coerce_id, coerce_name, extract_fields, frame_records, items_to_frame
from refbook.config import get_not_found_name
from refbook.exceptions import MalformedInputError, SerializationError
from refbook.locking import make_lock
from refbook.models import Item

logger = logging.getLogger(__name__)

HASH_BYTES = 8


def content_hash(items: List[Item]) -> int:
    """
    Compute a stable 64-bit hash over the item sequence (ids and names, in order).

    Uses MD5 so the value is the same across processes and sessions.
    """
    h = hashlib.md5()
    for item in items:
        raw = item.name.encode("utf-8")
        h.update(struct.pack(">qI", item.id, len(raw)))
        h.update(raw)
    return int.from_bytes(h.digest()[:HASH_BYTES], "big")


def encode_snapshot(items: List[Item], hash_value: int) -> bytes:
    """Serialize ``{"items": [...], "hash": "<decimal>"}`` as compact UTF-8 JSON."""
    payload = {
        "items": [item.to_dict() for item in items],
        "hash": str(hash_value),
    }
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def build_snapshot(items: List[Item]) -> Tuple[int, bytes]:
    """
    Return ``(hash, snapshot)`` for ``items``.

    Raises:
        SerializationError: an id or name cannot be encoded
    """
    try:
        hash_value = content_hash(items)
        return hash_value, encode_snapshot(items, hash_value)
    except (UnicodeError, struct.error, OverflowError, TypeError, ValueError) as e:
        raise SerializationError(f"cannot serialize reference book: {e}") from e


def decode_items(data: Union[bytes, str]) -> List[Item]:
    """
    Decode ``[{"id": 1, "name": "A"}, ...]`` into items.

    The snapshot envelope produced by ``Book.json()`` is accepted too.
    """
    try:
        decoded = json.loads(data)
    except (ValueError, TypeError) as e:
        raise MalformedInputError(f"invalid JSON: {e}") from e
    if isinstance(decoded, dict) and "items" in decoded:
        decoded = decoded["items"]
    if not isinstance(decoded, list):
        raise MalformedInputError("expected JSON array of items")
    return [Item.from_dict(element) for element in decoded]


class Book:
    """
    In-memory reference book in a single language.

    Mutations (set, parse, load_*) mark the cache stale. Reads never
    recompute it: json() and hash() return the last snapshot taken by
    optimize(), which parse() and the load_* methods call themselves.

    Thread-safety: only when built with ``thread_safe=True``.
    """

    def __init__(self, thread_safe: bool = False):
        self._thread_safe = thread_safe
        self._lock = make_lock(thread_safe)

        self._names: dict[int, str] = {}
        self._positions: dict[int, int] = {}
        self._items: List[Item] = []
        self._upper: List[str] = []

        # Cache
        self._stale = True
        self._hash = 0
        self._json = b""

    def __repr__(self) -> str:
        return f"Book(len={len(self._names)}, thread_safe={self._thread_safe})"

    @property
    def thread_safe(self) -> bool:
        return self._thread_safe

    @property
    def is_stale(self) -> bool:
        """True when content changed since the last optimize()."""
        with self._lock.read():
            return self._stale

    # =========================================================================
    # Mutation
    # =========================================================================

    def _set(self, item_id: int, name: str) -> bool:
        """Insert or update one entry. Caller holds the write lock."""
        pos = self._positions.get(item_id)
        if pos is not None:
            if self._items[pos].name == name:
                return False
            self._items[pos] = Item(id=item_id, name=name)
            self._upper[pos] = name.upper()
        else:
            self._positions[item_id] = len(self._items)
            self._items.append(Item(id=item_id, name=name))
            self._upper.append(name.upper())
        self._names[item_id] = name
        self._stale = True
        self._hash = 0
        return True

    def _clear(self) -> None:
        self._names.clear()
        self._positions.clear()
        self._items.clear()
        self._upper.clear()
        self._stale = True
        self._hash = 0

    def set(self, item_id: int, name: str) -> None:
        """
        Insert or update an entry.

        Setting the name an id already has is a no-op and keeps the cache
        (and therefore hash()) valid.
        """
        item_id = coerce_id(item_id)
        if not isinstance(name, str):
            raise TypeError(f"name must be str, not {type(name).__name__}")
        with self._lock.write():
            self._set(item_id, name)

    def _optimize(self) -> None:
        """Recompute hash and snapshot. Caller holds the write lock."""
        hash_value, snapshot = build_snapshot(self._items)
        self._hash = hash_value
        self._json = snapshot
        self._stale = False
        logger.debug(f"Optimized book: {len(self._items)} items, hash {hash_value}")

    def optimize(self) -> None:
        """
        Calculate the content hash and pre-generate the JSON snapshot.

        Raises:
            SerializationError: content cannot be encoded; the previous
                snapshot is kept and the book stays stale
        """
        with self._lock.write():
            self._optimize()

    def parse(self, data: Union[bytes, str]) -> None:
        """
        Replace all content with the items of a JSON array, then optimize.

        Accepts ``[{"id": 1, "name": "Hello"}, ...]``; a missing name becomes "".
        A repeated id keeps its first position and its last name. When the
        input cannot be decoded or serialized the current content, snapshot
        and hash are left untouched.

        Raises:
            MalformedInputError: invalid JSON, element types or id range
            SerializationError: a name cannot be encoded
        """
        items = decode_items(data)
        latest: dict[int, Item] = {}
        for item in items:
            latest[item.id] = item
        fresh = list(latest.values())
        hash_value, snapshot = build_snapshot(fresh)

        with self._lock.write():
            self._clear()
            for item in fresh:
                self._set(item.id, item.name)
            self._hash = hash_value
            self._json = snapshot
            self._stale = False
        logger.info(f"Parsed {len(items)} items into book ({len(fresh)} unique ids)")

    def _load_pairs(self, records) -> None:
        pairs = [(item_id, coerce_name(value)) for item_id, value in records]
        if not pairs:
            return
        with self._lock.write():
            for item_id, name in pairs:
                self._set(item_id, name)
            self._optimize()

    def load_from_slice(self, collection: Any, id_field: str, name_field: str) -> None:
        """
        Set id/name pairs read from any collection of records, then optimize.

        Raises:
            ShapeMismatchError: ``collection`` is not a collection
            MissingAttributeError: a field is absent from the records
        """
        self._load_pairs(extract_fields(collection, id_field, name_field))

    def load_from_frame(self, frame: pl.DataFrame, id_column: str = "id", name_column: str = "name") -> None:
        """Set id/name pairs read from two DataFrame columns, then optimize."""
        self._load_pairs(frame_records(frame, id_column, name_column))

    # =========================================================================
    # Lookup methods (read-only)
    # =========================================================================

    def is_exist(self, item_id: int) -> bool:
        """Return True if an item with ``item_id`` exists."""
        with self._lock.read():
            return item_id in self._names

    def get(self, item_id: int, default: Optional[str] = None) -> Optional[str]:
        with self._lock.read():
            return self._names.get(item_id, default)

    def name(self, item_id: int) -> str:
        """Return the name of ``item_id``, or the not-found sentinel."""
        with self._lock.read():
            name = self._names.get(item_id)
        if name is None:
            return get_not_found_name()
        return name

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._names)

    def json(self) -> bytes:
        """Return the last snapshot taken by optimize() (b"" if never taken)."""
        with self._lock.read():
            return self._json

    def hash(self) -> int:
        """Return the hash computed by the last optimize() (0 if none)."""
        with self._lock.read():
            return self._hash

    def traverse(self, visit: Callable[[int, str], Optional[bool]]) -> None:
        """
        Call ``visit(id, name)`` for every item; stop when it returns False.

        ``visit`` runs under the read lock and must not modify this book.
        """
        with self._lock.read():
            for item in self._items:
                if visit(item.id, item.name) is False:
                    break

    def contains(self, substring: str, dst: Optional[List[int]] = None) -> List[int]:
        """
        Collect ids whose name contains ``substring``, ignoring case.

        ``dst`` is cleared and filled in place when given. An empty substring
        matches nothing.
        """
        if dst is None:
            dst = []
        else:
            dst.clear()
        if not substring:
            return dst

        needle = substring.upper()
        with self._lock.read():
            for pos, upper in enumerate(self._upper):
                if needle in upper:
                    dst.append(self._items[pos].id)
        return dst

    def items(self) -> List[Item]:
        """Return a copy of the items in positional order."""
        with self._lock.read():
            return list(self._items)

    def to_frame(self) -> pl.DataFrame:
        """Export the items as a DataFrame with ``id`` and ``name`` columns."""
        return items_to_frame([(item.id, item.name) for item in self.items()])
