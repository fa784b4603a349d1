"""
refbook: in-memory reference books.

Resolves stable integer ids to display names, optionally per language, with
cached JSON snapshots and content hashes for cheap client revalidation.
"""

__version__ = "0.1.0"

from refbook.book import Book
from refbook.flexbook import FlexBook
from refbook.models import Item, MultiLangItem
from refbook.lang import LangCode, to_lang_code, lang_code_to_text
from refbook.config import (
    RefBookConfig,
    apply_global_config,
    get_default_lang_code,
    get_not_found_name,
    set_default_lang,
    set_not_found_name,
)
from refbook.exceptions import (
    RefBookError,
    RefBookInputError,
    MalformedInputError,
    ShapeMismatchError,
    MissingAttributeError,
    SerializationError,
    ModeConflictError,
    ConfigValidationError,
)

__all__ = [
    "Book",
    "FlexBook",
    "Item",
    "MultiLangItem",
    "LangCode",
    "to_lang_code",
    "lang_code_to_text",
    # Configuration
    "RefBookConfig",
    "apply_global_config",
    "get_default_lang_code",
    "get_not_found_name",
    "set_default_lang",
    "set_not_found_name",
    # Errors
    "RefBookError",
    "RefBookInputError",
    "MalformedInputError",
    "ShapeMismatchError",
    "MissingAttributeError",
    "SerializationError",
    "ModeConflictError",
    "ConfigValidationError",
    # HTTP router
    "create_refbook_router",
]


# Lazy import keeps fastapi out of plain store usage
def __getattr__(name):
    if name == "create_refbook_router":
        from refbook.api import create_refbook_router
        return create_refbook_router
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
