"""
Configuration for refbook.

Provides:
- Process-wide default language, read by books created without an explicit one
- Process-wide not-found sentinel returned by lookups for absent ids
- Per-instance configuration (thread safety, default language override)

Global values live behind a dedicated lock so they can be changed at runtime.
"""
from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from refbook.exceptions import ConfigValidationError
from refbook.lang import LangCode, to_lang_code, TAG_LENGTH

logger = logging.getLogger(__name__)

INITIAL_DEFAULT_LANG = "en"
INITIAL_NOT_FOUND_NAME = "?"

ENV_DEFAULT_LANG = "REFBOOK_DEFAULT_LANG"
ENV_THREAD_SAFE = "REFBOOK_THREAD_SAFE"
ENV_NOT_FOUND_NAME = "REFBOOK_NOT_FOUND_NAME"

_TRUE_VALUES = ("1", "true", "yes", "on")

_lock = threading.RLock()
_default_lang_code: LangCode = to_lang_code(INITIAL_DEFAULT_LANG)
_not_found_name: str = INITIAL_NOT_FOUND_NAME


def set_default_lang(lang: str) -> None:
    """Change the process-wide default language."""
    global _default_lang_code
    with _lock:
        _default_lang_code = to_lang_code(lang)
    logger.debug(f"Default language set to {lang!r}")


def get_default_lang_code() -> LangCode:
    """Return the process-wide default language code."""
    with _lock:
        return _default_lang_code


def set_not_found_name(name: str) -> None:
    """Change the sentinel returned by lookups for absent ids."""
    global _not_found_name
    with _lock:
        _not_found_name = name


def get_not_found_name() -> str:
    with _lock:
        return _not_found_name


@dataclass
class RefBookConfig:
    """
    Configuration for a reference book instance.

    ``default_lang`` of None means "use the process-wide default".
    ``not_found_name`` of None leaves the process-wide sentinel alone.
    """
    default_lang: Optional[str] = None
    thread_safe: bool = False
    not_found_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "default_lang": self.default_lang,
            "thread_safe": self.thread_safe,
            "not_found_name": self.not_found_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RefBookConfig":
        return cls(
            default_lang=data.get("default_lang"),
            thread_safe=bool(data.get("thread_safe", False)),
            not_found_name=data.get("not_found_name"),
        )

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "RefBookConfig":
        """Build configuration from REFBOOK_* environment variables."""
        env = os.environ if environ is None else environ
        thread_safe = env.get(ENV_THREAD_SAFE, "").strip().lower() in _TRUE_VALUES
        return cls(
            default_lang=env.get(ENV_DEFAULT_LANG) or None,
            thread_safe=thread_safe,
            not_found_name=env.get(ENV_NOT_FOUND_NAME),
        )

    @classmethod
    def load(cls, path: Path) -> "RefBookConfig":
        """Load configuration from a JSON file. Missing file gives defaults."""
        path = Path(path)
        if not path.exists():
            return cls()
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigValidationError(f"{path} must contain a JSON object")
        return cls.from_dict(data)

    def save(self, path: Path) -> None:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    def errors(self) -> List[str]:
        """Return list of validation error messages (empty if valid)."""
        errors = []
        if self.default_lang is not None and len(self.default_lang) != TAG_LENGTH:
            errors.append(f"default_lang must have {TAG_LENGTH} characters: {self.default_lang!r}")
        elif self.default_lang is not None and to_lang_code(self.default_lang) == 0:
            errors.append(f"default_lang is not a valid language tag: {self.default_lang!r}")
        if self.not_found_name is not None and not isinstance(self.not_found_name, str):
            errors.append("not_found_name must be a string")
        return errors

    def validate(self) -> None:
        """Validate configuration, raising on errors."""
        errors = self.errors()
        if errors:
            raise ConfigValidationError("; ".join(errors))


def apply_global_config(config: RefBookConfig) -> None:
    """Push the process-wide values of ``config``."""
    config.validate()
    if config.default_lang is not None:
        set_default_lang(config.default_lang)
    if config.not_found_name is not None:
        set_not_found_name(config.not_found_name)
