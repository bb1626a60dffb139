"""
Serializes a translation map back into a ``gettext_mapper(...)`` call.

The unformatted candidate is run through ``ruff format``; if that fails for
any reason the candidate is returned as is.
"""
from __future__ import annotations

import functools
import subprocess
import sys
from typing import Callable, Iterable, List, Mapping, Optional

from gettext_mapper.code_parser import GETTEXT_MAPPER
from gettext_mapper.config import DEFAULT_DOMAIN
from gettext_mapper.utils.logging import get_logger

logger = get_logger(__name__)

Formatter = Callable[[str], str]

RUFF_TIMEOUT = 30
_ruff_missing = False


class FormatterError(RuntimeError):
    """The external formatter rejected the input or could not run."""


def escape_string(s: str) -> str:
    """Escape for a double-quoted Python literal or a .po string.

    Backslash first, so the escapes introduced for quotes are not doubled.
    """
    return (
        s.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )


def _quote(value: Optional[str]) -> str:
    return "None" if value is None else f'"{escape_string(value)}"'


def order_locales(translations: Mapping[str, object], locale_order: Optional[Iterable[str]] = None) -> List[str]:
    """Hinted locales first (in hint order), the rest sorted; only keys present in the map."""
    if locale_order is None:
        return sorted(translations)
    hinted: List[str] = []
    for locale in locale_order:
        if locale in translations and locale not in hinted:
            hinted.append(locale)
    return hinted + sorted(k for k in translations if k not in hinted)


def format_translation_map(translations: Mapping[str, Optional[str]], locale_order: Optional[Iterable[str]] = None) -> str:
    entries = [f"{_quote(locale)}: {_quote(translations[locale])}" for locale in order_locales(translations, locale_order)]
    return "{" + ", ".join(entries) + "}"


def render_call(
    translations: Mapping[str, Optional[str]],
    domain: Optional[str] = None,
    custom_msgid: Optional[str] = None,
    macro_name: str = GETTEXT_MAPPER,
    locale_order: Optional[Iterable[str]] = None,
    default_domain: str = DEFAULT_DOMAIN,
    extra_args: Optional[Iterable[str]] = None,
) -> str:
    """The unformatted call text."""
    opts: List[str] = []
    if domain is not None and domain != default_domain:
        opts.append(f"domain={_quote(domain)}")
    if custom_msgid is not None:
        opts.append(f"msgid={_quote(custom_msgid)}")
    args = [format_translation_map(translations, locale_order)] + opts + list(extra_args or ())
    return f"{macro_name}({', '.join(args)})"


@functools.lru_cache(maxsize=1024)
def ruff_format(source: str) -> str:
    """Format ``source`` with ``python -m ruff format -``.

    Raises FormatterError when ruff is unavailable or rejects the input.
    """
    global _ruff_missing
    if _ruff_missing:
        raise FormatterError("ruff is not installed")
    try:
        proc = subprocess.run(
            [sys.executable, "-m", "ruff", "format", "-"],
            input=source,
            capture_output=True,
            text=True,
            timeout=RUFF_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise FormatterError(f"ruff format could not run: {e}") from e
    if proc.returncode != 0:
        if "No module named ruff" in proc.stderr:
            _ruff_missing = True
            logger.info("ruff is not installed; calls are written unformatted")
        raise FormatterError(proc.stderr.strip() or f"ruff format exited with {proc.returncode}")
    return proc.stdout


def format_gettext_mapper_call(
    translations: Mapping[str, Optional[str]],
    domain: Optional[str] = None,
    custom_msgid: Optional[str] = None,
    macro_name: str = GETTEXT_MAPPER,
    locale_order: Optional[Iterable[str]] = None,
    default_domain: str = DEFAULT_DOMAIN,
    extra_args: Optional[Iterable[str]] = None,
    formatter: Optional[Formatter] = ruff_format,
) -> str:
    """Call text for ``translations``; never raises because of the formatter.

    >>> format_gettext_mapper_call({"en": "Hello", "de": "Hallo"}, formatter=None)
    'gettext_mapper({"de": "Hallo", "en": "Hello"})'
    >>> format_gettext_mapper_call({"en": "Hello"}, "admin", "greeting.hello", formatter=None)
    'gettext_mapper({"en": "Hello"}, domain="admin", msgid="greeting.hello")'
    """
    unformatted = render_call(
        translations,
        domain=domain,
        custom_msgid=custom_msgid,
        macro_name=macro_name,
        locale_order=list(locale_order) if locale_order is not None else None,
        default_domain=default_domain,
        extra_args=extra_args,
    )
    if formatter is None:
        return unformatted
    try:
        formatted = formatter(unformatted)
    except Exception as e:  # noqa: BLE001
        logger.debug("Formatter failed, using unformatted call: %s", e)
        return unformatted
    if not isinstance(formatted, str) or not formatted.strip():
        return unformatted
    return formatted.rstrip("\n")
