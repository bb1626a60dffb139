"""
Runtime helpers for translation maps.

    from gettext_mapper import use_gettext_mapper

    gettext_mapper, lgettext_mapper = use_gettext_mapper(domain="admin")

    TITLE = gettext_mapper({"en": "Admin Panel", "de": "Verwaltung"})
    lgettext_mapper({"en": "Hello", "de": "Hallo"})  # "Hallo" under locale "de"

Literal maps passed to these functions are what ``gettext-mapper extract``
and ``gettext-mapper sync`` read and rewrite; at runtime they only validate
and localize.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from gettext_mapper import gettext_api
from gettext_mapper.config import Backend, resolve_backend
from gettext_mapper.exceptions import InvalidTranslationMap

TranslationMap = Mapping[str, Optional[str]]


def validate_translation_map(value: Any, supported_locales: Iterable[str]) -> None:
    """
    Check that ``value`` has exactly ``supported_locales`` as keys, all with string values.

    Raises InvalidTranslationMap otherwise.
    """
    if not isinstance(value, Mapping):
        raise InvalidTranslationMap(f"Expected a dict for translation validation, got: {value!r}")

    supported = set(supported_locales)
    keys = set(value)
    missing = supported - keys
    if missing:
        raise InvalidTranslationMap(
            f"Translation map is missing required locales: {sorted(missing)}", locales=missing
        )
    extra = keys - supported
    if extra:
        raise InvalidTranslationMap(
            f"Translation map contains unsupported locales: {sorted(extra)}", locales=extra
        )
    non_string = [locale for locale, text in value.items() if not isinstance(text, str)]
    if non_string:
        raise InvalidTranslationMap(
            f"Translation map contains non-string values for locales: {sorted(non_string)}",
            locales=non_string,
        )


def localize(value: Optional[TranslationMap], default: str = "", backend: Optional[Backend] = None) -> str:
    """
    Text for the current locale, then the default locale, then ``default``.

    ``None`` localizes to ``""``.
    """
    if value is None:
        return ""
    default_locale = backend.default_locale if backend is not None else gettext_api.default_locale()
    return value.get(gettext_api.get_locale()) or value.get(default_locale) or default


def translate(values: TranslationMap, locale: str) -> str:
    """Text for ``locale``, then the default locale, then the configured default translation."""
    return values.get(locale) or values.get(gettext_api.default_locale()) or gettext_api.default_translation()


class GettextMapper:
    """
    ``gettext_mapper``/``lgettext_mapper`` bound to one domain and backend.

    Unpacks into the two functions::

        gettext_mapper, lgettext_mapper = GettextMapper(domain="admin")
    """

    def __init__(self, domain: Optional[str] = None, backend: Optional[str] = None):
        self.domain = domain
        self.backend_name = backend

    @property
    def backend(self) -> Backend:
        if self.backend_name:
            return resolve_backend(gettext_api.get_config(), self.backend_name)
        return gettext_api.gettext_backend()

    def supported_locales(self) -> List[str]:
        """Configured ``supported_locales``, else the locale directories of the active catalog."""
        return gettext_api.known_locales(self.backend if self.backend_name else None)

    def gettext_mapper(
        self,
        translations: TranslationMap,
        domain: Optional[str] = None,
        msgid: Optional[str] = None,
    ) -> Dict[str, Optional[str]]:
        """Validated copy of ``translations``.

        Keys are checked against the known locales; when none are known the map
        only has to hold string values. ``domain`` and ``msgid`` only matter to
        extract and sync.
        """
        if not isinstance(translations, Mapping):
            raise InvalidTranslationMap(
                f"gettext_mapper expects a translation map, got: {translations!r}"
            )
        supported = self.supported_locales()
        validate_translation_map(translations, supported if supported else list(translations))
        return dict(translations)

    def lgettext_mapper(
        self,
        translations: TranslationMap,
        domain: Optional[str] = None,
        msgid: Optional[str] = None,
        default: str = "",
        locale: Optional[str] = None,
    ) -> str:
        """The text of ``translations`` for ``locale`` (current locale when omitted)."""
        mapped = self.gettext_mapper(translations, domain=domain, msgid=msgid)
        if locale is not None:
            with gettext_api.with_locale(locale):
                return localize(mapped, default, backend=self.backend)
        return localize(mapped, default, backend=self.backend)

    def __iter__(self) -> Iterator:
        return iter((self.gettext_mapper, self.lgettext_mapper))

    def __repr__(self) -> str:
        return f"GettextMapper(domain={self.domain!r}, backend={self.backend_name!r})"


def use_gettext_mapper(domain: Optional[str] = None, backend: Optional[str] = None) -> GettextMapper:
    """Mapper for one module; a ``domain`` given here is inherited by the module's calls."""
    return GettextMapper(domain=domain, backend=backend)


_default_mapper = GettextMapper()


def gettext_mapper(
    translations: TranslationMap,
    domain: Optional[str] = None,
    msgid: Optional[str] = None,
) -> Dict[str, Optional[str]]:
    return _default_mapper.gettext_mapper(translations, domain=domain, msgid=msgid)


def lgettext_mapper(
    translations: TranslationMap,
    domain: Optional[str] = None,
    msgid: Optional[str] = None,
    default: str = "",
    locale: Optional[str] = None,
) -> str:
    return _default_mapper.lgettext_mapper(translations, domain=domain, msgid=msgid, default=default, locale=locale)
