# -*- coding: utf-8 -*-
"""Exception hierarchy for gettext_mapper."""
from __future__ import annotations

from typing import Iterable, Optional

__all__ = [
    "GettextMapperError",
    "ConfigurationMissing",
    "InvalidTranslationMap",
    "CatalogError",
]


class GettextMapperError(Exception):
    """Base exception for gettext_mapper."""


class ConfigurationMissing(GettextMapperError):
    """Raised when no backend can be resolved from flags, config or the working tree."""


class InvalidTranslationMap(GettextMapperError, ValueError):
    """Raised when a translation map does not match the supported locales."""

    def __init__(self, message: str, locales: Optional[Iterable[str]] = None) -> None:
        super().__init__(message)
        self.locales = sorted(locales or [])


class CatalogError(GettextMapperError):
    """Raised when a catalog file exists but cannot be read or written."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path
