"""
Client-wide default options.

``ConfigurationStore`` holds the parameters merged into every search and
reverse geocoding call. It is mutated only through ``configure`` and read
through ``options``, which hands out a read-only snapshot.

Configuration is eventually consistent, not transactional: an operation
copies the options when it is called, so a concurrent ``configure`` only
affects operations started after it.
"""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Optional

import structlog

from placekit.ambient import AmbientLocale, language_from_locale
from placekit.exceptions import InvalidArgument


logger = structlog.get_logger(__name__)


def ensure_mapping(value: Any, where: str, name: str = "opts") -> Mapping:
    """Return ``value`` as a mapping, treating ``None`` as empty.

    Raises:
        InvalidArgument: ``value`` is neither ``None`` nor a mapping, or
            has a key that is not a string
    """
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidArgument(
            f"PlaceKit.{where}: `{name}` argument is invalid, expected a mapping.",
            details={"received_type": type(value).__name__},
        )
    bad_keys = [key for key in value if not isinstance(key, str)]
    if bad_keys:
        raise InvalidArgument(
            f"PlaceKit.{where}: `{name}` argument is invalid, keys must be strings.",
            details={"keys": [repr(key) for key in bad_keys]},
        )
    return value


def ensure_string(value: Any, where: str, name: str = "id") -> str:
    """Return ``value`` if it is a non-empty string.

    Raises:
        InvalidArgument: ``value`` is empty or not a string
    """
    if not isinstance(value, str) or not value:
        raise InvalidArgument(
            f"PlaceKit.{where}: `{name}` argument is invalid, expected a non-empty string.",
            details={"received_type": type(value).__name__},
        )
    return value


class ConfigurationStore:
    """
    Default parameters for one client instance.

    Attributes:
        options: Read-only snapshot of the current parameters
    """

    def __init__(
        self,
        defaults: Optional[Mapping[str, Any]] = None,
        ambient_locale: Optional[AmbientLocale] = None,
    ):
        """
        Initialize the store.

        Args:
            defaults: Initial parameters (e.g. ``{"maxResults": 5}``)
            ambient_locale: Locale lookup used to seed ``language`` when the
                defaults do not set it
        """
        self._params: dict[str, Any] = dict(ensure_mapping(defaults, "configure"))

        if "language" not in self._params and ambient_locale is not None:
            language = self._detect_language(ambient_locale)
            if language:
                self._params["language"] = language

    @staticmethod
    def _detect_language(ambient_locale: AmbientLocale) -> Optional[str]:
        # Best effort: a failing lookup leaves language unset
        try:
            return language_from_locale(ambient_locale())
        except Exception as e:
            logger.debug("Ambient locale detection failed", error=str(e))
            return None

    @property
    def options(self) -> Mapping[str, Any]:
        return MappingProxyType(dict(self._params))

    def configure(self, patch: Optional[Mapping[str, Any]] = None) -> None:
        """
        Shallow-merge ``patch`` over the stored parameters.

        Existing keys are overwritten, other keys are left untouched.

        Raises:
            InvalidArgument: ``patch`` is not a mapping with string keys
        """
        patch = ensure_mapping(patch, "configure")
        self._params.update(patch)
        if patch:
            logger.debug("Options configured", keys=sorted(patch))

    def discard(self, key: str) -> None:
        """Remove ``key`` if present."""
        self._params.pop(key, None)

    def merged(self, *overrides: Mapping[str, Any]) -> dict[str, Any]:
        """Build the parameters of one call: stored options, then each override."""
        params = dict(self._params)
        for override in overrides:
            params.update(override)
        return params

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._params!r})"
