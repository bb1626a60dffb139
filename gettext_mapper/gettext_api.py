"""
Unified access to the active backend and the current locale.

The configuration is resolved once (on first use, or explicitly via
``configure``) and then reused; nothing here re-reads the config file.
The current locale lives in a ``ContextVar`` so threads and tasks do not
leak it into each other.
"""
from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path
from typing import List, Optional

from gettext_mapper.config import (
    Backend,
    GettextMapperConfig,
    load_config,
    resolve_backend,
)

_config: Optional[GettextMapperConfig] = None
_backend: Optional[Backend] = None
_locale: ContextVar[Optional[str]] = ContextVar("gettext_mapper_locale", default=None)


def configure(
    config: Optional[GettextMapperConfig] = None,
    backend: Optional[Backend] = None,
) -> GettextMapperConfig:
    """Install the configuration (and optionally the backend) used at runtime."""
    global _config, _backend
    _config = config if config is not None else load_config()
    _backend = backend
    return _config


def reset() -> None:
    """Forget the installed configuration and the current locale."""
    global _config, _backend
    _config = None
    _backend = None
    _locale.set(None)


def get_config() -> GettextMapperConfig:
    if _config is None:
        configure()
    return _config  # type: ignore[return-value]


def gettext_backend() -> Backend:
    """The active backend; a default ``priv/gettext`` backend when nothing is configured.

    Raises ConfigurationMissing when the config names a backend it does not define.
    """
    global _backend
    if _backend is None:
        _backend = resolve_backend(get_config(), allow_missing_priv=True)
    return _backend


def default_locale() -> str:
    return gettext_backend().default_locale


def default_domain() -> str:
    return gettext_backend().default_domain


def known_locales(backend: Optional[Backend] = None) -> List[str]:
    """Configured ``supported_locales``, else locale directories found under the backend's priv dir."""
    config = get_config()
    if config.supported_locales is not None:
        return list(config.supported_locales)
    priv: Path = (backend or gettext_backend()).priv_dir
    if not priv.is_dir():
        return []
    return sorted(p.name for p in priv.iterdir() if (p / "LC_MESSAGES").is_dir())


def get_locale() -> str:
    """Current locale, falling back to the backend's default locale."""
    return _locale.get() or default_locale()


def set_locale(locale: Optional[str]) -> None:
    _locale.set(locale)


@contextmanager
def with_locale(locale: str):
    """
    Run a block with ``locale`` as the current locale.

    Example:
        with with_locale("de"):
            lgettext_mapper({"en": "Hello", "de": "Hallo"})  # "Hallo"
    """
    token = _locale.set(locale)
    try:
        yield locale
    finally:
        _locale.reset(token)


def default_translation() -> str:
    return get_config().default_translation
