"""
gettext_mapper - translation maps in code, kept in sync with .po catalogs.

Runtime:

    from gettext_mapper import gettext_mapper, lgettext_mapper, localize

Tooling: ``gettext-mapper extract`` (code → catalog) and
``gettext-mapper sync`` (catalog → code).
"""
from gettext_mapper.exceptions import (
    CatalogError,
    ConfigurationMissing,
    GettextMapperError,
    InvalidTranslationMap,
)
from gettext_mapper.mapper import (
    GettextMapper,
    gettext_mapper,
    lgettext_mapper,
    localize,
    translate,
    use_gettext_mapper,
    validate_translation_map,
)
from gettext_mapper.translated import Translated

__version__ = "0.1.0"

__all__ = [
    "CatalogError",
    "ConfigurationMissing",
    "GettextMapper",
    "GettextMapperError",
    "InvalidTranslationMap",
    "Translated",
    "gettext_mapper",
    "lgettext_mapper",
    "localize",
    "translate",
    "use_gettext_mapper",
    "validate_translation_map",
]
