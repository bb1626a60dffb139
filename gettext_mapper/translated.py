"""
Translated - a translation map as a stored value.

Mirrors what a database field type needs: ``cast`` validates input from the
outside world, ``load`` accepts what storage hands back, ``dump`` what goes
into storage. Each returns ``(ok, value)``. Stored as a JSON object.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional, Tuple

from gettext_mapper import gettext_api

Result = Tuple[bool, Any]


class Translated:
    """Validation and (de)serialization for ``{"locale": "text" | None}`` maps."""

    @staticmethod
    def type() -> str:
        return "map"

    @staticmethod
    def cast(value: Any) -> Result:
        """
        ``(True, value)`` when ``value`` is a dict whose keys are supported locales
        (any string when none are configured) and whose values are ``str`` or ``None``.
        """
        if not isinstance(value, dict):
            return False, None
        supported = gettext_api.known_locales()
        if supported:
            valid_keys = all(key in supported for key in value)
        else:
            valid_keys = all(isinstance(key, str) for key in value)
        valid_values = all(v is None or isinstance(v, str) for v in value.values())
        if valid_keys and valid_values:
            return True, value
        return False, None

    @staticmethod
    def load(value: Any) -> Result:
        if value is None or isinstance(value, dict):
            return True, value
        return False, None

    @staticmethod
    def dump(value: Any) -> Result:
        if isinstance(value, dict):
            return True, value
        return False, None

    @classmethod
    def dumps(cls, value: Dict[str, Optional[str]]) -> str:
        ok, data = cls.dump(value)
        if not ok:
            raise ValueError(f"Cannot store {value!r} as a translation map")
        return json.dumps(data, ensure_ascii=False, sort_keys=True)

    @classmethod
    def loads(cls, raw: Optional[str]) -> Optional[Dict[str, Optional[str]]]:
        ok, data = cls.load(json.loads(raw) if raw else None)
        if not ok:
            raise ValueError(f"Stored value is not a translation map: {raw!r}")
        return data
