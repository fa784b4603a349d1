"""
Language codes.

A language tag such as ``"en"`` is packed into a 16-bit integer by placing
the first byte in the high 8 bits and the second byte in the low 8 bits.
The packing is the same in every process, so codes can be stored and
exchanged. ``0`` is reserved for "no specific language / default".
"""

from typing import Union

# Type alias for packed language tags (u16)
LangCode = int

DEFAULT_LANG_CODE: LangCode = 0

TAG_LENGTH = 2
BYTE_SHIFT = 8
BYTE_MASK = 0xFF


def to_lang_code(text: str) -> LangCode:
    """
    Pack a 2-character language tag into a LangCode.

    Returns 0 when the tag is not exactly two single-byte characters.
    """
    if not isinstance(text, str) or len(text) != TAG_LENGTH:
        return DEFAULT_LANG_CODE
    raw = text.encode("utf-8", errors="replace")
    if len(raw) != TAG_LENGTH:
        return DEFAULT_LANG_CODE
    return (raw[0] << BYTE_SHIFT) | raw[1]


def lang_code_to_text(code: LangCode) -> str:
    """Unpack a LangCode back into its tag. Returns "" for 0."""
    if code == DEFAULT_LANG_CODE:
        return ""
    return bytes([(code >> BYTE_SHIFT) & BYTE_MASK, code & BYTE_MASK]).decode("latin-1")


def as_lang_code(lang: Union[LangCode, str, None]) -> LangCode:
    """Accept either a tag or an already packed code."""
    if lang is None:
        return DEFAULT_LANG_CODE
    if isinstance(lang, str):
        return to_lang_code(lang)
    return int(lang)
