"""
Ingestion units for reference books.

``Item`` carries one name, ``MultiLangItem`` carries a name per language tag.
Both decode from the JSON objects accepted by ``parse``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from refbook.adapters import coerce_id
from refbook.exceptions import MalformedInputError


def _decode_id(data: Dict[str, Any]) -> int:
    return coerce_id(data.get("id", 0))


@dataclass(frozen=True, slots=True)
class Item:
    """Single-language reference book entry."""
    id: int
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Any) -> "Item":
        """Decode ``{"id": 1, "name": "A"}``. Missing or null name becomes ""."""
        if not isinstance(data, dict):
            raise MalformedInputError(f"expected JSON object, got {type(data).__name__}")
        name = data.get("name")
        if name is None:
            name = ""
        elif not isinstance(name, str):
            raise MalformedInputError(f"name of item {data.get('id')!r} must be a string")
        return cls(id=_decode_id(data), name=name)


@dataclass(frozen=True, slots=True)
class MultiLangItem:
    """Multi-language reference book entry: language tag -> name."""
    id: int
    name: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": dict(self.name)}

    @classmethod
    def from_dict(cls, data: Any) -> "MultiLangItem":
        """Decode ``{"id": 1, "name": {"en": "Hello", "ru": "Привет"}}``."""
        if not isinstance(data, dict):
            raise MalformedInputError(f"expected JSON object, got {type(data).__name__}")
        names = data.get("name")
        if names is None:
            names = {}
        if not isinstance(names, dict):
            raise MalformedInputError(f"name of item {data.get('id')!r} must be an object")
        for lang, value in names.items():
            if not isinstance(value, str):
                raise MalformedInputError(
                    f"name[{lang!r}] of item {data.get('id')!r} must be a string"
                )
        return cls(id=_decode_id(data), name=dict(names))
