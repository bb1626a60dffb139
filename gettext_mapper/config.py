"""
Configuration for gettext_mapper.

Read once per invocation from a JSON file (``gettext_mapper.json`` in the
working directory by default, ``--config`` or ``GETTEXT_MAPPER_CONFIG``)::

    {
      "gettext": "default",
      "backends": {
        "default": {"priv_dir": "priv/gettext", "default_locale": "en", "default_domain": "default"}
      },
      "supported_locales": ["en", "de"],
      "default_translation": "NO TRANSLATION",
      "log_level": "INFO"
    }

A backend names one catalog location plus its default locale and domain.
Precedence when picking one: explicit flag > ``gettext`` key > a catalog
directory discovered in the working tree.
"""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from gettext_mapper.exceptions import ConfigurationMissing
from gettext_mapper.utils.logging import get_logger

logger = get_logger(__name__)

CONFIG_FILENAME = "gettext_mapper.json"
ENV_CONFIG = "GETTEXT_MAPPER_CONFIG"

DEFAULT_LOCALE = "en"
DEFAULT_DOMAIN = "default"
DEFAULT_PRIV_DIR = "priv/gettext"
DEFAULT_TRANSLATION = "NO TRANSLATION"

# Searched in order when nothing is configured
FALLBACK_PRIV_DIRS = ("priv/gettext", "locale", "locales")


@dataclass(frozen=True)
class Backend:
    name: str
    priv_dir: Path
    default_locale: str = DEFAULT_LOCALE
    default_domain: str = DEFAULT_DOMAIN

    def with_priv_dir(self, priv_dir: Optional[os.PathLike]) -> "Backend":
        if not priv_dir:
            return self
        return replace(self, priv_dir=Path(priv_dir))


@dataclass
class GettextMapperConfig:
    gettext: Optional[str] = None
    backends: Dict[str, Backend] = field(default_factory=dict)
    supported_locales: Optional[List[str]] = None
    default_translation: str = DEFAULT_TRANSLATION
    log_level: Optional[str] = None
    base_dir: Path = field(default_factory=Path.cwd)
    source: Optional[Path] = None


def _backend_from_dict(name: str, data: Dict[str, Any], base_dir: Path) -> Backend:
    if not isinstance(data, dict):
        raise ConfigurationMissing(f"Backend {name!r} must be an object")
    priv = Path(str(data.get("priv_dir") or DEFAULT_PRIV_DIR))
    if not priv.is_absolute():
        priv = base_dir / priv
    return Backend(
        name=name,
        priv_dir=priv,
        default_locale=str(data.get("default_locale") or DEFAULT_LOCALE),
        default_domain=str(data.get("default_domain") or DEFAULT_DOMAIN),
    )


def config_from_dict(data: Dict[str, Any], base_dir: Optional[Path] = None) -> GettextMapperConfig:
    base_dir = Path(base_dir) if base_dir else Path.cwd()
    backends = {
        str(name): _backend_from_dict(str(name), value, base_dir)
        for name, value in (data.get("backends") or {}).items()
    }
    supported = data.get("supported_locales")
    if supported is not None and not isinstance(supported, list):
        logger.warning("Ignoring supported_locales: expected a list, got %r", supported)
        supported = None
    return GettextMapperConfig(
        gettext=data.get("gettext"),
        backends=backends,
        supported_locales=[str(x) for x in supported] if supported is not None else None,
        default_translation=str(data.get("default_translation", DEFAULT_TRANSLATION)),
        log_level=data.get("log_level"),
        base_dir=base_dir,
    )


def load_config(path: Optional[os.PathLike] = None, cwd: Optional[Path] = None) -> GettextMapperConfig:
    """Load the JSON config; a missing default file yields an empty config."""
    cwd = Path(cwd) if cwd else Path.cwd()
    explicit = path or os.environ.get(ENV_CONFIG)
    cfg_path = Path(explicit) if explicit else cwd / CONFIG_FILENAME
    if not cfg_path.is_absolute():
        cfg_path = cwd / cfg_path

    if not cfg_path.exists():
        if explicit:
            raise ConfigurationMissing(f"Config file not found: {cfg_path}")
        return GettextMapperConfig(base_dir=cwd)

    try:
        data = json.loads(cfg_path.read_text(encoding="utf-8") or "{}")
    except (OSError, ValueError) as e:
        raise ConfigurationMissing(f"Failed to read/parse {cfg_path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationMissing(f"Config {cfg_path} must contain a JSON object")

    config = config_from_dict(data, base_dir=cfg_path.parent)
    config.source = cfg_path
    logger.debug("Loaded config from %s (%d backends)", cfg_path, len(config.backends))
    return config


def discover_fallback_backend(cwd: Optional[Path] = None) -> Optional[Backend]:
    cwd = Path(cwd) if cwd else Path.cwd()
    for candidate in FALLBACK_PRIV_DIRS:
        priv = cwd / candidate
        if priv.is_dir():
            logger.info("No backend configured, using catalog directory %s", priv)
            return Backend(name="default", priv_dir=priv)
    return None


def resolve_backend(
    config: GettextMapperConfig,
    backend_name: Optional[str] = None,
    cwd: Optional[Path] = None,
    allow_missing_priv: bool = False,
) -> Backend:
    """Resolve the active backend: flag > config ``gettext`` > discovered fallback.

    ``allow_missing_priv`` lets ``extract`` start from an empty tree, where
    the catalog directory is created on first write.
    """
    if backend_name:
        if backend_name in config.backends:
            return config.backends[backend_name]
        raise ConfigurationMissing(
            f"Unknown backend {backend_name!r}. Configured backends: {sorted(config.backends) or 'none'}"
        )

    if config.gettext:
        if config.gettext in config.backends:
            return config.backends[config.gettext]
        raise ConfigurationMissing(f"Configured gettext backend {config.gettext!r} is not defined in 'backends'")

    if len(config.backends) == 1:
        return next(iter(config.backends.values()))

    fallback = discover_fallback_backend(cwd or config.base_dir)
    if fallback is not None:
        return fallback

    if allow_missing_priv:
        base = Path(cwd) if cwd else config.base_dir
        return Backend(name="default", priv_dir=base / DEFAULT_PRIV_DIR)

    raise ConfigurationMissing(
        "No gettext backend configured. Add a 'gettext' entry to "
        f"{CONFIG_FILENAME} or use --backend NAME"
    )
