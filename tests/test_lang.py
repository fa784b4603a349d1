"""Tests for language codes."""
import pytest

from refbook.lang import (
    DEFAULT_LANG_CODE,
    as_lang_code,
    lang_code_to_text,
    to_lang_code,
)


class TestToLangCode:
    def test_packs_two_bytes(self):
        assert to_lang_code("en") == (ord("e") << 8) | ord("n")
        assert to_lang_code("ru") == 0x7275

    @pytest.mark.parametrize("tag", ["", "e", "eng", "en-US"])
    def test_wrong_length_is_default(self, tag):
        assert to_lang_code(tag) == DEFAULT_LANG_CODE

    def test_multibyte_characters_are_default(self):
        """Two characters that do not fit in two bytes cannot be packed."""
        assert to_lang_code("ру") == DEFAULT_LANG_CODE

    def test_non_string_is_default(self):
        assert to_lang_code(None) == DEFAULT_LANG_CODE

    def test_distinct_tags_do_not_collide(self):
        tags = ["en", "ne", "EN", "ru", "de", "ed"]
        codes = {to_lang_code(tag) for tag in tags}
        assert len(codes) == len(tags)

    def test_fits_in_16_bits(self):
        assert 0 < to_lang_code("zz") <= 0xFFFF


class TestLangCodeToText:
    @pytest.mark.parametrize("tag", ["en", "ru", "EL", "pt"])
    def test_inverse(self, tag):
        assert lang_code_to_text(to_lang_code(tag)) == tag

    def test_default_is_empty(self):
        assert lang_code_to_text(DEFAULT_LANG_CODE) == ""


class TestAsLangCode:
    def test_accepts_tag(self):
        assert as_lang_code("en") == to_lang_code("en")

    def test_accepts_code(self):
        assert as_lang_code(to_lang_code("ru")) == to_lang_code("ru")

    def test_none_is_default(self):
        assert as_lang_code(None) == DEFAULT_LANG_CODE
