"""
Catalog - .po message catalogs on disk.

Layout::

    <priv_dir>/<locale>/LC_MESSAGES/<domain>.po

Entries are read with a small line-based parser (continuation lines,
msgctxt and plural entries are understood, plural and context entries are
never touched). Upserts replace an existing ``msgid``/``msgstr`` block in
place or append a new block; everything else in the file is left as is.
"""
from __future__ import annotations

import pathlib
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from gettext_mapper.exceptions import CatalogError
from gettext_mapper.formatter import escape_string
from gettext_mapper.utils.files import atomic_write
from gettext_mapper.utils.logging import get_logger, shorten

logger = get_logger(__name__)

_KEYWORD_LINE = re.compile(r'^(msgctxt|msgid|msgid_plural|msgstr(?:\[\d+\])?)\s+"((?:[^"\\]|\\.)*)"\s*$')
_STRING_LINE = re.compile(r'^\s*"((?:[^"\\]|\\.)*)"\s*$')
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\"}


def unescape_po(s: str) -> str:
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), s)


@dataclass
class PoEntry:
    """One msgid block with its character span in the file."""
    start: int
    end: int
    fields: Dict[str, List[str]] = field(default_factory=dict)

    def get(self, name: str) -> Optional[str]:
        parts = self.fields.get(name)
        return unescape_po("".join(parts)) if parts is not None else None

    @property
    def msgid(self) -> Optional[str]:
        return self.get("msgid")

    @property
    def msgstr(self) -> Optional[str]:
        return self.get("msgstr")

    @property
    def is_plain(self) -> bool:
        """No context, no plural forms, not the header."""
        return (
            "msgctxt" not in self.fields
            and "msgid_plural" not in self.fields
            and "msgstr" in self.fields
            and bool(self.msgid)
        )


def parse_po_entries(text: str) -> List[PoEntry]:
    """Parse .po text into entries; comments and obsolete (``#~``) entries are skipped."""
    entries: List[PoEntry] = []
    cur: Optional[PoEntry] = None
    cur_field: Optional[str] = None
    offset = 0

    for line in text.splitlines(keepends=True):
        stripped = line.rstrip("\r\n")
        line_end = offset + len(stripped)
        m = _KEYWORD_LINE.match(stripped)
        if m:
            keyword, value = m.group(1), m.group(2)
            starts_entry = keyword == "msgctxt" or (
                keyword == "msgid" and (cur is None or "msgid" in cur.fields)
            )
            if starts_entry or cur is None:
                if cur is not None:
                    entries.append(cur)
                cur = PoEntry(start=offset, end=line_end)
            cur.fields[keyword] = [value]
            cur.end = line_end
            cur_field = keyword
        elif cur is not None and cur_field is not None and _STRING_LINE.match(stripped):
            cur.fields[cur_field].append(_STRING_LINE.match(stripped).group(1))
            cur.end = line_end
        else:
            cur_field = None
        offset += len(line)

    if cur is not None:
        entries.append(cur)
    return entries


def read_msgids(po_path: pathlib.Path) -> List[str]:
    """All non-empty msgids of a .po file, in file order."""
    text = po_path.read_text(encoding="utf-8")
    return [e.msgid for e in parse_po_entries(text) if e.msgid]


def render_entry(msgid: str, msgstr: str) -> str:
    return f'msgid "{escape_string(msgid)}"\nmsgstr "{escape_string(msgstr)}"'


def po_header(locale: str) -> str:
    return (
        f"# {locale} translations\n"
        'msgid ""\n'
        'msgstr ""\n'
        f'"Language: {locale}\\n"\n'
        '"Content-Type: text/plain; charset=UTF-8\\n"\n'
    )


class PoCatalog:
    """
    Per-locale, per-domain .po catalogs under one priv directory.

    Reads are cached per file for the lifetime of the instance; upserts keep
    the cache in sync. One instance serves one sync/extract invocation.
    """

    def __init__(self, priv_dir: pathlib.Path, default_domain: str = "default"):
        self.priv_dir = pathlib.Path(priv_dir)
        self.default_domain = default_domain
        self._cache: Dict[pathlib.Path, Tuple[str, List[PoEntry]]] = {}

    def po_path(self, locale: str, domain: Optional[str] = None) -> pathlib.Path:
        return self.priv_dir / locale / "LC_MESSAGES" / f"{domain or self.default_domain}.po"

    def locales(self, domain: Optional[str] = None) -> List[str]:
        """Locales that have a catalog file for ``domain``."""
        if not self.priv_dir.is_dir():
            return []
        filename = f"{domain or self.default_domain}.po"
        return sorted(
            item.name
            for item in self.priv_dir.iterdir()
            if item.is_dir() and (item / "LC_MESSAGES" / filename).is_file()
        )

    def _load(self, path: pathlib.Path) -> Tuple[str, List[PoEntry]]:
        if path not in self._cache:
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise CatalogError(f"Cannot read catalog {path}: {e}", path=str(path)) from e
            self._cache[path] = (text, parse_po_entries(text))
        return self._cache[path]

    def _find(self, entries: List[PoEntry], msgid: str) -> Optional[PoEntry]:
        for entry in entries:
            if entry.is_plain and entry.msgid == msgid:
                return entry
        return None

    def entries(self, locale: str, domain: Optional[str] = None) -> Dict[str, str]:
        """msgid → msgstr for the plain entries of one catalog file."""
        path = self.po_path(locale, domain)
        if not path.is_file():
            return {}
        _text, entries = self._load(path)
        return {e.msgid: e.msgstr or "" for e in entries if e.is_plain}  # type: ignore[misc]

    def lookup(self, locale: str, domain: Optional[str], msgid: str) -> Optional[str]:
        """The msgstr stored for ``msgid``; None when the file or the entry is missing."""
        path = self.po_path(locale, domain)
        if not path.is_file():
            return None
        _text, entries = self._load(path)
        entry = self._find(entries, msgid)
        return entry.msgstr if entry is not None else None

    def ensure_po_file(self, locale: str, domain: Optional[str] = None) -> pathlib.Path:
        path = self.po_path(locale, domain)
        if not path.exists():
            logger.info("Creating catalog %s", path)
            atomic_write(path, po_header(locale))
            self._cache.pop(path, None)
        return path

    def upsert(
        self,
        locale: str,
        domain: Optional[str],
        msgid: str,
        msgstr: str,
        dry_run: bool = False,
    ) -> bool:
        """Insert or update one entry. Returns True when the file changes (or would, on a dry run)."""
        path = self.po_path(locale, domain)
        if path.is_file():
            text, entries = self._load(path)
        elif dry_run:
            return True
        else:
            self.ensure_po_file(locale, domain)
            text, entries = self._load(path)

        existing = self._find(entries, msgid)
        if existing is not None and existing.msgstr == msgstr:
            return False
        if dry_run:
            return True

        block = render_entry(msgid, msgstr)
        if existing is not None:
            updated = text[: existing.start] + block + text[existing.end:]
            logger.debug("Updating %s: %s", path, shorten(msgid))
        else:
            if text and not text.endswith("\n"):
                text += "\n"
            updated = text + "\n" + block + "\n"
            logger.debug("Adding to %s: %s", path, shorten(msgid))

        atomic_write(path, updated)
        self._cache[path] = (updated, parse_po_entries(updated))
        return True
