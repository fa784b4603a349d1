"""
Ingestion adapters.

Turns arbitrary record shapes into typed ``(id, value)`` pairs that the books
feed through ``set`` / ``add_item`` / ``add_multi_lang_item``:

- record collections: fields read by attribute name or mapping key
- polars DataFrames: fields read by column name
- DB-API connections: ``select id, name from <table>``

Every adapter validates the whole input before returning, so a failing load
never leaves a book half-written.
"""

from __future__ import annotations

import json
import logging
import operator
import re
from collections.abc import Iterable, Mapping
from typing import Any, Dict, List, Tuple

import polars as pl

from refbook.exceptions import (
    MalformedInputError,
    MissingAttributeError,
    ShapeMismatchError,
)

logger = logging.getLogger(__name__)

# (id, raw name value) pairs produced by every adapter
Records = List[Tuple[int, Any]]

# ids are signed 64-bit integers
MIN_ID = -(1 << 63)
MAX_ID = (1 << 63) - 1

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


# =============================================================================
# Record collections
# =============================================================================

def _has_field(record: Any, name: str) -> bool:
    if isinstance(record, Mapping):
        return name in record
    return hasattr(record, name)


def _get_field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record[name]
    return getattr(record, name)


def coerce_id(value: Any) -> int:
    """Return ``value`` as an int id, rejecting bools, non-integers and values outside int64."""
    if isinstance(value, bool):
        raise MalformedInputError(f"id must be an integer, got {value!r}")
    try:
        item_id = operator.index(value)
    except TypeError:
        raise MalformedInputError(f"id must be an integer, got {value!r}") from None
    if not MIN_ID <= item_id <= MAX_ID:
        raise MalformedInputError(f"id {item_id} does not fit in 64 bits")
    return item_id


def coerce_name(value: Any) -> str:
    """Return a plain text name; None (SQL NULL) becomes ""."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise MalformedInputError(f"name must be a string, got {type(value).__name__}")
    return value


def decode_lang_names(value: Any) -> Dict[str, str]:
    """
    Decode a language tag -> name mapping.

    Accepts JSON text or bytes, or an already decoded mapping. Entries whose
    value is None are dropped (polars struct rows report absent fields as None).
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode("utf-8")
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError as e:
            raise MalformedInputError(f"invalid language mapping: {e}") from e
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise MalformedInputError(f"expected language mapping, got {type(value).__name__}")
    names = {}
    for lang, name in value.items():
        if name is None:
            continue
        if not isinstance(name, str):
            raise MalformedInputError(f"name[{lang!r}] must be a string")
        names[str(lang)] = name
    return names


def extract_fields(collection: Any, id_field: str, name_field: str) -> Records:
    """
    Read ``id_field`` and ``name_field`` from every record of ``collection``.

    Records may be objects (fields read as attributes) or mappings (fields read
    as keys). The record shape is checked on the first element, like a
    homogeneous collection.

    Raises:
        ShapeMismatchError: ``collection`` is not a collection of records
        MissingAttributeError: a field is absent from the record shape
    """
    if collection is None:
        return []
    if isinstance(collection, (str, bytes, bytearray, Mapping)) or not isinstance(collection, Iterable):
        raise ShapeMismatchError("expected argument as a collection of records")

    rows = list(collection)
    if not rows:
        return []

    first = rows[0]
    if not _has_field(first, id_field):
        raise MissingAttributeError(id_field)
    if not _has_field(first, name_field):
        raise MissingAttributeError(name_field)

    records: Records = []
    for row in rows:
        try:
            raw_id = _get_field(row, id_field)
            raw_name = _get_field(row, name_field)
        except (KeyError, AttributeError):
            raise ShapeMismatchError("records in the collection have different shapes") from None
        records.append((coerce_id(raw_id), raw_name))
    return records


# =============================================================================
# Polars DataFrames
# =============================================================================

def frame_records(frame: Any, id_column: str = "id", name_column: str = "name") -> Records:
    """
    Read ``(id, name)`` pairs from a polars DataFrame.

    String columns yield text names; struct columns yield dicts and binary
    columns yield raw JSON, both usable as language mappings.
    """
    if not isinstance(frame, pl.DataFrame):
        raise ShapeMismatchError(f"expected polars DataFrame, got {type(frame).__name__}")
    for column in (id_column, name_column):
        if column not in frame.columns:
            raise MissingAttributeError(column)
    if frame.height == 0:
        return []
    if not frame.schema[id_column].is_integer():
        raise MalformedInputError(f"column {id_column} must have an integer type")
    return [
        (coerce_id(item_id), name)
        for item_id, name in frame.select([id_column, name_column]).iter_rows()
    ]


def items_to_frame(pairs: List[Tuple[int, str]]) -> pl.DataFrame:
    """
    Export ``(id, name)`` pairs as a DataFrame.

    Schema:
    - id: i64
    - name: string
    """
    if not pairs:
        return pl.DataFrame({
            "id": pl.Series([], dtype=pl.Int64),
            "name": pl.Series([], dtype=pl.Utf8),
        })
    ids, names = zip(*pairs)
    return pl.DataFrame({
        "id": pl.Series(list(ids), dtype=pl.Int64),
        "name": pl.Series(list(names), dtype=pl.Utf8),
    })


# =============================================================================
# DB-API
# =============================================================================

def read_sql_rows(
    connection: Any,
    table: str,
    id_column: str = "id",
    name_column: str = "name",
) -> List[Dict[str, Any]]:
    """
    Read all rows of ``table`` through a DB-API connection.

    Returns records usable with ``load_from_slice(rows, id_column, name_column)``.
    Text name columns feed single-language books; JSON (bytes) name columns
    feed multi-language books.
    """
    for identifier in (table, id_column, name_column):
        if not _IDENTIFIER.match(identifier):
            raise MalformedInputError(f"invalid SQL identifier: {identifier!r}")

    cursor = connection.cursor()
    try:
        cursor.execute(f"select {id_column}, {name_column} from {table}")
        rows = [{id_column: item_id, name_column: name} for item_id, name in cursor.fetchall()]
    finally:
        cursor.close()

    logger.debug(f"Read {len(rows)} rows from {table}")
    return rows


def load_from_sql(
    target: Any,
    connection: Any,
    table: str,
    id_column: str = "id",
    name_column: str = "name",
) -> int:
    """
    Load every row of ``table`` into ``target`` (a Book or FlexBook).

    Returns the number of rows read.
    """
    rows = read_sql_rows(connection, table, id_column, name_column)
    target.load_from_slice(rows, id_column, name_column)
    return len(rows)
