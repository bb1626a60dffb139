"""
Extract: code → catalog.

Static translation maps are collected from source files, grouped by
``(msgid, domain)`` and written into the per-locale ``.po`` files. When the
msgid is the default-locale text itself, the default-locale entry is left
out (it would only repeat the msgid).
"""
from __future__ import annotations

import pathlib
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from gettext_mapper.catalog import PoCatalog
from gettext_mapper.code_parser import find_gettext_mapper_calls
from gettext_mapper.exceptions import CatalogError
from gettext_mapper.utils.logging import compact_json, get_logger, shorten

logger = get_logger(__name__)

GroupKey = Tuple[str, str]


@dataclass
class ExtractedMap:
    """One static translation map, tagged with where it was found."""
    translations: Dict[str, Optional[str]]
    domain: str
    msgid: Optional[str]
    source: str


@dataclass
class MapGroup:
    msgid: str
    domain: str
    translations: Dict[str, Optional[str]] = field(default_factory=dict)
    sources: List[str] = field(default_factory=list)
    default_values: List[str] = field(default_factory=list)


@dataclass
class ExtractStats:
    maps: int = 0
    groups: int = 0
    entries_changed: int = 0
    skipped: int = 0


def extract_maps_from_content(content: str, source: str, default_domain: str) -> List[ExtractedMap]:
    """Translation maps in ``content``; ``source`` is used as ``<source>:<line>`` tag."""
    return [
        ExtractedMap(
            translations=dict(call.translations),
            domain=call.domain or default_domain,
            msgid=call.msgid,
            source=f"{source}:{call.line}",
        )
        for call in find_gettext_mapper_calls(content, default_domain=default_domain)
    ]


def collect_translation_maps(files: Iterable[pathlib.Path], default_domain: str) -> List[ExtractedMap]:
    maps: List[ExtractedMap] = []
    for p in files:
        try:
            content = p.read_text(encoding="utf-8")
        except (UnicodeDecodeError, OSError) as e:
            logger.error("Error reading %s: %s", p, e)
            continue
        found = extract_maps_from_content(content, str(p), default_domain)
        if found:
            logger.debug("%s: %d translation maps", p, len(found))
        maps.extend(found)
    return maps


def group_translation_maps(maps: Iterable[ExtractedMap], default_locale: str) -> Dict[GroupKey, MapGroup]:
    """
    Group maps by ``(msgid, domain)`` and merge their translations.

    Later maps overwrite earlier ones per locale. Conflicting values are
    logged at INFO with both sources.
    """
    groups: Dict[GroupKey, MapGroup] = {}
    for m in maps:
        default_value = m.translations.get(default_locale)
        msgid = m.msgid or default_value
        if not msgid:
            logger.warning(
                "%s: no msgid and no %r translation in %s, skipping",
                m.source,
                default_locale,
                compact_json(m.translations, limit=200),
            )
            continue

        key = (msgid, m.domain)
        group = groups.get(key)
        if group is None:
            group = groups[key] = MapGroup(msgid=msgid, domain=m.domain)
        for locale, value in m.translations.items():
            previous = group.translations.get(locale)
            if locale in group.translations and previous != value:
                logger.info(
                    "msgid %r (%s): %s overrides %r with %r from %s",
                    shorten(msgid),
                    m.domain,
                    locale,
                    previous,
                    value,
                    m.source,
                )
            group.translations[locale] = value
        group.sources.append(m.source)
        if default_value is not None:
            group.default_values.append(default_value)
    return groups


def entries_to_write(group: MapGroup, default_locale: str) -> List[Tuple[str, str]]:
    """``(locale, msgstr)`` pairs for one group.

    The default locale is skipped when the msgid is one of the group's
    default-locale texts; otherwise every locale is written.
    """
    skip_default = group.msgid in group.default_values
    return [
        (locale, value)
        for locale, value in sorted(group.translations.items())
        if value is not None and not (skip_default and locale == default_locale)
    ]


def populate_po_files(
    maps: List[ExtractedMap],
    store: PoCatalog,
    default_locale: str,
    dry_run: bool = False,
) -> ExtractStats:
    stats = ExtractStats(maps=len(maps))
    groups = group_translation_maps(maps, default_locale)
    stats.groups = len(groups)
    stats.skipped = len(maps) - sum(len(g.sources) for g in groups.values())

    for (msgid, domain), group in groups.items():
        for locale, msgstr in entries_to_write(group, default_locale):
            try:
                changed = store.upsert(locale, domain, msgid, msgstr, dry_run=dry_run)
            except (CatalogError, OSError) as e:
                logger.error("Failed to update %s: %s", store.po_path(locale, domain), e)
                continue
            if not changed:
                continue
            stats.entries_changed += 1
            if dry_run:
                print(f'Would update {store.po_path(locale, domain)}: msgid "{msgid}" -> msgstr "{msgstr}"')
            else:
                logger.info("Updated %s: %s", store.po_path(locale, domain), shorten(msgid))
    return stats
