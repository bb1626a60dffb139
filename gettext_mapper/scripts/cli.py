#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
gettext-mapper - keep inline translation maps and .po catalogs in sync.

Commands
--------
extract   code → catalog: write every static ``gettext_mapper({...})`` map into
          ``<priv>/<locale>/LC_MESSAGES/<domain>.po``.
sync      catalog → code: rewrite every call from the current catalog values.

Usage Examples
--------------

1. Preview what extract would write:
   gettext-mapper extract --dry-run

2. Extract a single package into a custom catalog directory:
   gettext-mapper extract myapp/ --priv locale

3. Pull translator edits back into the code (preview first):
   gettext-mapper sync --dry-run
   gettext-mapper sync

4. Show the map sync would generate for one message:
   gettext-mapper sync --message "Hello"

Backend selection: --backend NAME > "gettext" in gettext_mapper.json > a
priv/gettext (or locale/) directory in the working tree.
"""
from __future__ import annotations

import argparse
import logging
import pathlib
import sys
from typing import List, Optional, Sequence

from gettext_mapper.catalog import PoCatalog
from gettext_mapper.config import Backend, GettextMapperConfig, load_config, resolve_backend
from gettext_mapper.exceptions import ConfigurationMissing
from gettext_mapper.extract import collect_translation_maps, populate_po_files
from gettext_mapper.formatter import format_translation_map
from gettext_mapper.sync import generate_translation_map, process_file
from gettext_mapper.utils.files import DEFAULT_IGNORES, discover_files, is_ignored
from gettext_mapper.utils.logging import get_logger, level_from_string, level_from_verbosity, set_level

logger = get_logger(__name__)


def _configure_logging(args: argparse.Namespace, config: GettextMapperConfig) -> None:
    level = level_from_string(config.log_level, default=logging.WARNING)
    set_level(level_from_verbosity(getattr(args, "verbose", 0), default=level))


def _explicitly_ignored(base: pathlib.Path, p: pathlib.Path, ignore_globs: Sequence[str]) -> bool:
    try:
        p.relative_to(base)
    except ValueError:
        return False
    return is_ignored(base, p, list(ignore_globs))


def resolve_files(paths: Sequence[str], ignore_globs: Sequence[str], cwd: Optional[pathlib.Path] = None) -> List[pathlib.Path]:
    """Expand CLI paths into ``.py`` files; no paths means the whole working tree."""
    base = (cwd or pathlib.Path.cwd()).resolve()
    globs = list(DEFAULT_IGNORES) + list(ignore_globs)
    if not paths:
        return discover_files(base, ignore_globs=globs)

    files: List[pathlib.Path] = []
    for raw in paths:
        p = pathlib.Path(raw)
        if not p.is_absolute():
            p = base / p
        if p.is_dir():
            files.extend(discover_files(p, ignore_globs=globs))
        elif p.is_file():
            if not _explicitly_ignored(base, p, ignore_globs):
                files.append(p)
        else:
            logger.warning("Path not found: %s", raw)
    # Keep order, drop duplicates
    return list(dict.fromkeys(files))


def run_sync(args: argparse.Namespace, config: GettextMapperConfig, backend: Backend) -> int:
    store = PoCatalog(backend.priv_dir, backend.default_domain)

    if args.message:
        translations = generate_translation_map(args.message, store, backend.default_domain, backend.default_locale)
        print(f'Original message: "{args.message}"')
        print("Updated translation map:")
        print(format_translation_map(translations))
        return 0

    if args.dry_run:
        print("Running in dry-run mode. No files will be modified.")

    files = resolve_files(args.paths, args.ignore)
    updated = 0
    for p in files:
        try:
            changed, diff = process_file(p, store, backend, dry=args.dry_run)
        except Exception as e:
            # Log and continue with the remaining files
            logger.error("Error processing %s: %s", p, e)
            continue
        if not changed:
            continue
        updated += 1
        if args.dry_run:
            print(f"Would update: {p}")
            if diff:
                sys.stdout.write(diff if diff.endswith("\n") else diff + "\n")
        else:
            print(f"Updated: {p}")

    print(f"Processed {len(files)} files, updated {updated} files with translation changes.")
    return 0


def run_extract(args: argparse.Namespace, config: GettextMapperConfig, backend: Backend) -> int:
    if args.dry_run:
        print("Running in dry-run mode. No .po files will be modified.")

    store = PoCatalog(backend.priv_dir, backend.default_domain)
    files = resolve_files(args.paths, args.ignore)
    maps = collect_translation_maps(files, backend.default_domain)
    if not maps:
        print("No static translation maps found in specified files.")
        return 0

    stats = populate_po_files(maps, store, backend.default_locale, dry_run=args.dry_run)
    logger.info(
        "%d groups, %d catalog entries %s, %d maps skipped",
        stats.groups,
        stats.entries_changed,
        "to update" if args.dry_run else "updated",
        stats.skipped,
    )
    print(f"Processed {stats.maps} translation maps and updated .po files.")
    return 0


def run(args: argparse.Namespace) -> int:
    try:
        config = load_config(getattr(args, "config", None))
        _configure_logging(args, config)
        priv = getattr(args, "priv", None)
        backend = resolve_backend(config, args.backend, allow_missing_priv=bool(priv))
        if priv:
            backend = backend.with_priv_dir(pathlib.Path(priv).resolve())
    except ConfigurationMissing as e:
        logger.error("%s", e)
        return 2

    logger.debug("Using backend %s (%s)", backend.name, backend.priv_dir)
    if args.command == "sync":
        return run_sync(args, config, backend)
    return run_extract(args, config, backend)


def _add_common(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("paths", nargs="*", help="Files or directories to scan (default: all *.py under the working directory)")
    ap.add_argument("-d", "--dry-run", action="store_true", help="Report only; no writes")
    ap.add_argument("-b", "--backend", help="Backend name from the config file")
    ap.add_argument("--config", help="Path to gettext_mapper.json (default: ./gettext_mapper.json or $GETTEXT_MAPPER_CONFIG)")
    ap.add_argument("--ignore", action="append", default=[], help="Glob patterns to exclude (repeatable)")
    ap.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="gettext-mapper", description="Keep inline translation maps and .po catalogs in sync")
    sub = ap.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="Rewrite translation maps in code from the .po catalogs")
    _add_common(sync)
    sync.add_argument("-m", "--message", help="Print the translation map for MESSAGE and exit; no files are touched")

    extract = sub.add_parser("extract", help="Write translation maps from code into the .po catalogs")
    _add_common(extract)
    extract.add_argument("-p", "--priv", help="Catalog root directory (overrides the backend's priv_dir)")

    return ap


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_arg_parser().parse_args(argv)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
