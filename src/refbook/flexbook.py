"""
Multi-language reference book.

A FlexBook owns one Book per language. Index 0 always holds the default
language; books for other languages are appended as multi-language items
mention them and are never removed.

Lock order: the FlexBook lock (guarding the language/book lists) is taken
before any Book lock, never the reverse.
"""

import json
import logging
from typing import Any, Iterable, List, Optional, Tuple, Union

import polars as pl

from refbook.adapters import coerce_id, coerce_name, decode_lang_names, extract_fields, frame_records
from refbook.book import Book
from refbook.config import RefBookConfig, get_default_lang_code, get_not_found_name
from refbook.exceptions import MalformedInputError, ModeConflictError, ShapeMismatchError
from refbook.lang import DEFAULT_LANG_CODE, LangCode, as_lang_code, lang_code_to_text, to_lang_code
from refbook.locking import make_lock
from refbook.models import Item, MultiLangItem

logger = logging.getLogger(__name__)


class FlexBook:
    """
    Reference book with an optional language dimension.

    Single-language content goes through add_item()/add_items(); multi-language
    content through add_multi_lang_item(). Once a second language exists the
    single-language entry points raise ModeConflictError.

    Example:
        fb = FlexBook(default_lang="en")
        fb.add_multi_lang_item(MultiLangItem(1, {"en": "Open", "ru": "Открыт"}))
        fb.name("ru", 1)   # "Открыт"
    """

    def __init__(self, default_lang: Optional[str] = None, thread_safe: bool = False):
        """
        Args:
            default_lang: Language of the index-0 book; the process-wide
                default language when omitted
            thread_safe: Guard the book with readers-writer locks
        """
        code = get_default_lang_code()
        if default_lang:
            code = to_lang_code(default_lang)

        self._default_code: LangCode = code
        self._thread_safe = thread_safe
        self._lock = make_lock(thread_safe)
        self._languages: List[LangCode] = [code]
        self._books: List[Book] = [Book(thread_safe=thread_safe)]

    @classmethod
    def from_config(cls, config: RefBookConfig) -> "FlexBook":
        """Create a book from instance configuration."""
        config.validate()
        return cls(default_lang=config.default_lang, thread_safe=config.thread_safe)

    def __repr__(self) -> str:
        langs = ",".join(lang_code_to_text(code) or "-" for code in self.languages)
        return f"FlexBook(languages=[{langs}], len={len(self)})"

    @property
    def default_lang_code(self) -> LangCode:
        return self._default_code

    @property
    def thread_safe(self) -> bool:
        return self._thread_safe

    @property
    def languages(self) -> Tuple[LangCode, ...]:
        """Language codes in book order; index 0 is the default language."""
        with self._lock.read():
            return tuple(self._languages)

    # =========================================================================
    # Book resolution
    # =========================================================================

    def _language_index(self, code: LangCode) -> int:
        """Index of the book for ``code``, 0 if unknown. Caller holds the lock."""
        if code == DEFAULT_LANG_CODE:
            return 0
        for i, c in enumerate(self._languages):
            if c == code:
                return i
        return 0

    def _book_index(self, code: LangCode) -> int:
        for i, c in enumerate(self._languages):
            if c == code:
                return i
        return -1

    def book(self, lang: Union[LangCode, str, None] = None) -> Book:
        """
        Return the book associated with ``lang``.

        Falls back to the default-language book when ``lang`` is empty or unknown.
        """
        code = as_lang_code(lang)
        with self._lock.read():
            return self._books[self._language_index(code)]

    # =========================================================================
    # Lookup methods (read-only)
    # =========================================================================

    def name(self, lang: Union[LangCode, str, None], item_id: int) -> str:
        """
        Return the name of ``item_id`` in ``lang``.

        A miss in a non-default language retries the default-language book.
        Unknown languages and absent ids give the not-found sentinel.
        """
        code = as_lang_code(lang)
        with self._lock.read():
            if len(self._books) == 1:
                return self._books[0].name(item_id)

            for i, c in enumerate(self._languages):
                if c != code:
                    continue
                name = self._books[i].get(item_id)
                if name is None and code != self._default_code:
                    name = self._books[0].get(item_id)
                if name is not None:
                    return name
                break
        return get_not_found_name()

    def is_exist(self, item_id: int) -> bool:
        """Return True if ``item_id`` exists in the default-language book."""
        with self._lock.read():
            return self._books[0].is_exist(item_id)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._books[0])

    def json(self, lang: Union[LangCode, str, None] = None) -> bytes:
        """Return the cached snapshot of the book for ``lang``."""
        return self.book(lang).json()

    def hash(self, lang: Union[LangCode, str, None] = None) -> int:
        """Return the cached hash of the book for ``lang``."""
        return self.book(lang).hash()

    def contains(self, lang: Union[LangCode, str, None], substring: str, dst: Optional[List[int]] = None) -> List[int]:
        """Case-insensitive substring search in the book for ``lang``."""
        return self.book(lang).contains(substring, dst)

    # =========================================================================
    # Mutation
    # =========================================================================

    def optimize(self) -> None:
        """Recompute hash and snapshot of every language book."""
        with self._lock.read():
            for book in self._books:
                book.optimize()

    def add_items(self, items: Iterable[Item]) -> None:
        """
        Add single-language items to the default-language book.

        Raises:
            ModeConflictError: the book already holds several languages
        """
        pairs = [(coerce_id(item.id), item.name) for item in items]
        with self._lock.read():
            if len(self._books) > 1:
                raise ModeConflictError("add_items called on a multi-language book")
            book = self._books[0]
            for item_id, name in pairs:
                book.set(item_id, name)

    def add_item(self, item: Item) -> None:
        """Add one single-language item. See add_items()."""
        self.add_items([item])

    def add_multi_lang_item(self, item: MultiLangItem) -> None:
        """
        Add an item named in several languages.

        Invalid language tags are ignored. Books are created for new languages.
        Then every known language receives a value: the item's own name for
        that language, else its default-language name, else the not-found
        sentinel.
        """
        item_id = coerce_id(item.id)
        names: dict[LangCode, str] = {}
        for lang, name in item.name.items():
            code = to_lang_code(lang)
            if code == DEFAULT_LANG_CODE:
                logger.warning(f"Ignoring invalid language tag {lang!r} of item {item_id}")
                continue
            names[code] = name

        not_found = get_not_found_name()
        with self._lock.write():
            for code in names:
                if self._book_index(code) == -1:
                    self._languages.append(code)
                    self._books.append(Book(thread_safe=self._thread_safe))
                    logger.debug(f"Created book for language {lang_code_to_text(code)!r}")

            for code, book in zip(self._languages, self._books):
                name = names.get(code)
                if name is None:
                    name = names.get(self._default_code, "")
                    if name == "":
                        name = not_found
                book.set(item_id, name)

    def add_multi_lang_items(self, items: Iterable[MultiLangItem]) -> None:
        for item in items:
            self.add_multi_lang_item(item)

    def parse(self, data: Union[bytes, str, None]) -> None:
        """
        Add items from a JSON array, then optimize.

        Accepts ``[{"id": 1, "name": "Hello"}, ...]`` or
        ``[{"id": 1, "name": {"en": "Hello", "ru": "Привет"}}, ...]``.
        Arrays mixing both name shapes are rejected, and an array where no
        element has a name adds nothing. Nothing is added unless the whole
        array is valid.

        Raises:
            MalformedInputError: invalid JSON or element types
            ShapeMismatchError: string and object names in one array
            ModeConflictError: single-language array for a multi-language book
        """
        if not data:
            return
        try:
            decoded = json.loads(data)
        except (ValueError, TypeError) as e:
            raise MalformedInputError(f"invalid JSON: {e}") from e
        if not isinstance(decoded, list):
            raise MalformedInputError("src is not json array")
        if not decoded:
            return

        multi_lang, single_lang = 0, 0
        for element in decoded:
            if not isinstance(element, dict):
                raise MalformedInputError(f"expected JSON object, got {type(element).__name__}")
            name = element.get("name")
            if name is None:
                continue
            if isinstance(name, dict):
                multi_lang += 1
            else:
                single_lang += 1
        if multi_lang and single_lang:
            raise ShapeMismatchError("name column has different types")
        if not multi_lang and not single_lang:
            logger.debug(f"Skipped {len(decoded)} items without names")
            return

        if multi_lang:
            self.add_multi_lang_items([MultiLangItem.from_dict(e) for e in decoded])
        else:
            self.add_items([Item.from_dict(e) for e in decoded])
        self.optimize()
        logger.info(f"Parsed {len(decoded)} {'multi' if multi_lang else 'single'}-language items")

    def _load_records(self, records) -> None:
        if not records:
            return
        first = next((value for _, value in records if value is not None), None)
        if first is None or isinstance(first, str):
            self.add_items([Item(id=item_id, name=coerce_name(value)) for item_id, value in records])
        else:
            self.add_multi_lang_items(
                [MultiLangItem(id=item_id, name=decode_lang_names(value)) for item_id, value in records]
            )
        self.optimize()

    def load_from_slice(self, collection: Any, id_field: str, name_field: str) -> None:
        """
        Add items read from any collection of records, then optimize.

        Text name fields are added as single-language items. Bytes (JSON) and
        mapping name fields are decoded as language tag -> name and added as
        multi-language items.
        """
        self._load_records(extract_fields(collection, id_field, name_field))

    def load_from_frame(self, frame: pl.DataFrame, id_column: str = "id", name_column: str = "name") -> None:
        """Add items read from two DataFrame columns (string, struct or binary names)."""
        self._load_records(frame_records(frame, id_column, name_column))
