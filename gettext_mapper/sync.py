"""
Sync: catalog → code.

Every ``gettext_mapper``/``lgettext_mapper`` call in a file is re-rendered
from the current catalog state and spliced back over its original text.
Values the catalog does not have (or has empty) keep what the call already
says, so a sync never erases text a developer wrote by hand.
"""
from __future__ import annotations

import pathlib
from typing import Dict, List, Mapping, Optional, Tuple

from gettext_mapper.catalog import PoCatalog
from gettext_mapper.code_parser import CallRecord, find_gettext_mapper_calls
from gettext_mapper.config import Backend
from gettext_mapper.formatter import Formatter, format_gettext_mapper_call, ruff_format
from gettext_mapper.utils.files import atomic_write, unified_diff
from gettext_mapper.utils.logging import compact_json, get_logger

logger = get_logger(__name__)

# Looked up when the call has neither an explicit msgid nor a default-locale value
FALLBACK_LOCALE = "en"


def lookup_msgid(call: CallRecord, default_locale: str) -> Optional[str]:
    """Catalog key for a call: explicit msgid, default-locale text, then the "en" text."""
    return call.msgid or call.translations.get(default_locale) or call.translations.get(FALLBACK_LOCALE)


def generate_translation_map(
    message: str,
    store: PoCatalog,
    domain: Optional[str],
    default_locale: str,
    existing: Optional[Mapping[str, Optional[str]]] = None,
) -> Dict[str, Optional[str]]:
    """
    Translation map for ``message`` from the catalogs of ``domain``.

    One entry per locale that has a catalog file (or just the default locale
    when there is none). Per locale: a non-empty msgstr, else the value in
    ``existing``, else ``message`` itself. Locales only ``existing`` knows
    about are carried over unchanged.
    """
    existing = existing or {}
    locales = store.locales(domain) or [default_locale]
    result: Dict[str, Optional[str]] = {}
    for locale in locales:
        value = store.lookup(locale, domain, message)
        if value:
            result[locale] = value
        elif existing.get(locale):
            result[locale] = existing[locale]
        else:
            result[locale] = message
    for locale, value in existing.items():
        result.setdefault(locale, value)
    return result


def reindent(formatted: str, first_line_indent: str, continuation_indent: str) -> str:
    """Put the replacement at the call's indentation.

    The formatter's own leading whitespace on the first line is dropped; later
    lines get the indentation of the source line the call sits on.
    """
    lines = formatted.split("\n")
    out = [first_line_indent + lines[0].lstrip()]
    out.extend(continuation_indent + line if line.strip() else line for line in lines[1:])
    return "\n".join(out)


def _leading_whitespace(text: str) -> str:
    return text[: len(text) - len(text.lstrip(" \t"))]


def build_replacement(
    call: CallRecord,
    store: PoCatalog,
    backend: Backend,
    content: str,
    formatter: Optional[Formatter] = ruff_format,
) -> Optional[str]:
    """New source text for ``call``, or None when the call has to be skipped."""
    if call.raw_span is None:
        logger.debug("Line %d: no source span recovered, skipping", call.line)
        return None

    msgid = lookup_msgid(call, backend.default_locale)
    if not msgid:
        logger.warning(
            "Line %d: cannot determine a msgid for %s (no msgid, no %r or %r value), skipping",
            call.line,
            compact_json(call.translations, limit=200),
            backend.default_locale,
            FALLBACK_LOCALE,
        )
        return None

    domain = call.domain or backend.default_domain
    translations = generate_translation_map(msgid, store, domain, backend.default_locale, existing=call.translations)
    formatted = format_gettext_mapper_call(
        translations,
        domain=call.call_domain,
        custom_msgid=call.msgid,
        macro_name=call.macro_name,
        default_domain=backend.default_domain,
        extra_args=call.extra_args,
        formatter=formatter,
    )

    first_indent = _leading_whitespace(call.raw_span)
    offset = call.offset if call.offset is not None else 0
    line_start = content.rfind("\n", 0, offset) + 1
    line_end = content.find("\n", line_start)
    source_line = content[line_start:] if line_end == -1 else content[line_start:line_end]
    return reindent(formatted, first_indent, _leading_whitespace(source_line))


def sync_translation_maps(
    content: str,
    store: PoCatalog,
    backend: Backend,
    formatter: Optional[Formatter] = ruff_format,
) -> str:
    """Return ``content`` with every recognized call re-rendered from the catalog."""
    calls: List[CallRecord] = list(find_gettext_mapper_calls(content, default_domain=backend.default_domain))
    if not calls:
        return content

    result = content
    delta = 0
    cursor = 0
    for call in calls:
        replacement = build_replacement(call, store, backend, content, formatter=formatter)
        if replacement is None:
            continue

        raw = call.raw_span or ""
        start = call.offset + delta if call.offset is not None else -1
        # Nested or overlapping calls: the outer rewrite already covered this one
        if start < cursor or result[start:start + len(raw)] != raw:
            logger.debug("Line %d: original call text not at its offset, skipping", call.line)
            continue

        if replacement != raw:
            result = result[:start] + replacement + result[start + len(raw):]
            delta += len(replacement) - len(raw)
        cursor = start + len(replacement)

    return result


def process_file(
    p: pathlib.Path,
    store: PoCatalog,
    backend: Backend,
    dry: bool = False,
    formatter: Optional[Formatter] = ruff_format,
) -> Tuple[int, Optional[str]]:
    """Sync one file. Returns ``(changed, diff)``; the diff is only produced on a dry run."""
    try:
        text = p.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError) as e:
        logger.error("Error processing %s: %s", p, e)
        return 0, None

    try:
        new_text = sync_translation_maps(text, store, backend, formatter=formatter)
    except Exception as e:
        logger.error("Error processing %s: %s", p, e)
        return 0, None

    if new_text == text:
        return 0, None
    if dry:
        return 1, unified_diff(text, new_text, p)

    try:
        atomic_write(p, new_text)
    except OSError as e:
        logger.error("Failed to write %s: %s", p, e)
        return 0, None
    logger.debug("Wrote %s", p)
    return 1, None
