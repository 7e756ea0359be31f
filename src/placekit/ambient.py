"""
Ambient environment capabilities.

The client never reads the host environment directly. Locale and device
position are obtained through the two capabilities below so they can be
replaced in tests or wired to a real platform API.
"""

import os
from typing import Any, Callable, Mapping, Optional, Protocol

# Returns a locale tag such as "fr_FR.UTF-8" or "en-US", or None
AmbientLocale = Callable[[], Optional[str]]

# Environment variables consulted by environment_locale(), by precedence
LOCALE_ENV_VARS = ("LC_ALL", "LC_MESSAGES", "LANG", "LANGUAGE")


class DeviceLocation(Protocol):
    """
    Callback-based device position lookup.

    Implementations call exactly one of the callbacks, either synchronously
    or later from any thread:

    - ``on_success(position)`` with a mapping holding ``latitude`` and
      ``longitude`` (either at top level or under ``coords``)
    - ``on_error(error)`` with a mapping holding ``code`` and ``message``
    """

    def __call__(
        self,
        on_success: Callable[[Mapping[str, Any]], None],
        on_error: Callable[[Mapping[str, Any]], None],
        options: Mapping[str, Any],
    ) -> None:
        ...


def environment_locale() -> Optional[str]:
    """Read the process locale from the usual POSIX environment variables."""
    for name in LOCALE_ENV_VARS:
        value = os.environ.get(name, "").strip()
        # LANGUAGE may hold a colon-separated priority list
        value = value.split(":")[0]
        if value and value not in ("C", "POSIX") and not value.startswith("C."):
            return value
    return None


def language_from_locale(locale_tag: Optional[str]) -> Optional[str]:
    """
    Reduce a locale tag to its two-letter language code.

    >>> language_from_locale("fr_FR.UTF-8")
    'fr'
    >>> language_from_locale("en-US")
    'en'
    """
    if not locale_tag:
        return None
    language = locale_tag.strip()[:2].lower()
    if len(language) != 2 or not language.isalpha():
        return None
    return language
