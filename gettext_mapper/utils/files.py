"""Filesystem helpers: atomic writes, diffs, file discovery and ignore globs."""
from __future__ import annotations

import difflib
import fnmatch
import os
import pathlib
import tempfile
from typing import Iterable, List, Optional, Sequence

from gettext_mapper.utils.logging import get_logger

NEWLINE = "\n"

logger = get_logger(__name__)

DEFAULT_IGNORES = [
    "**/.git/**",
    "**/__pycache__/**",
    "**/.venv/**",
    "**/venv/**",
    "**/.tox/**",
    "**/node_modules/**",
    "**/build/**",
    "**/dist/**",
]


def is_ignored(base: pathlib.Path, path: pathlib.Path, ignore_globs: Sequence[str]) -> bool:
    try:
        rel = str(path.relative_to(base)).replace("\\", "/")
    except ValueError:
        return True
    # "**/x/**" should also match top-level "x/..."
    rel_rooted = "/" + rel
    return any(fnmatch.fnmatch(rel, pat) or fnmatch.fnmatch(rel_rooted, pat) for pat in ignore_globs)


def discover_files(
    base: pathlib.Path,
    include_exts: Iterable[str] = (".py",),
    ignore_globs: Optional[Sequence[str]] = None,
) -> List[pathlib.Path]:
    """All files under ``base`` with one of ``include_exts``, sorted, minus ignored ones."""
    ignore_globs = DEFAULT_IGNORES if ignore_globs is None else list(ignore_globs)
    found = set()
    for ext in include_exts:
        for p in base.rglob(f"*{ext}"):
            if p.is_file() and not is_ignored(base, p, ignore_globs):
                found.add(p)
    return sorted(found)


def atomic_write(path: pathlib.Path, data: str) -> None:
    """Atomically write ``data`` to ``path``.

    This function writes to a temporary file in the same directory, fsyncs,
    then replaces the target. If the target exists, its permissions are
    preserved when possible.
    """
    tmp_dir = path.parent
    tmp_dir.mkdir(parents=True, exist_ok=True)
    orig_mode = None
    try:
        orig_mode = path.stat().st_mode & 0o777
    except OSError:
        orig_mode = None

    tmp_name = None
    try:
        with tempfile.NamedTemporaryFile("w", delete=False, dir=tmp_dir, encoding="utf-8", newline=NEWLINE) as tf:
            tmp_name = tf.name
            tf.write(data)
            tf.flush()
            os.fsync(tf.fileno())
        os.replace(tmp_name, str(path))
        tmp_name = None
        if orig_mode is not None:
            try:
                os.chmod(str(path), orig_mode)
            except OSError:
                logger.debug("Failed to chmod %s", path)
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            try:
                os.unlink(tmp_name)
            except OSError:
                logger.debug("Failed to remove temp file %s", tmp_name)


def unified_diff(a: str, b: str, path: pathlib.Path) -> str:
    return "".join(
        difflib.unified_diff(
            a.splitlines(keepends=True),
            b.splitlines(keepends=True),
            fromfile=f"a/{path}",
            tofile=f"b/{path}",
        )
    )
