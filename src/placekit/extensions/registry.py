"""
Extension registry.

Client features (search, patch records, key management, ...) are
registered as factories. A factory receives the request primitive and the
client, and returns the object exposed as ``client.<name>``. Registration
happens once per registry; instantiation happens once per client.
"""

from typing import Any, Awaitable, Callable, Iterator, Optional, TYPE_CHECKING

import structlog

from placekit.exceptions import InvalidArgument

if TYPE_CHECKING:
    from placekit.client import PlaceKit

logger = structlog.get_logger(__name__)

# request(method, resource, params) -> awaitable parsed body
RequestFunc = Callable[..., Awaitable[Any]]
ExtensionFactory = Callable[[RequestFunc, "PlaceKit"], Any]


class ExtensionRegistry:
    """Ordered mapping of extension name to factory."""

    def __init__(self, extensions: Optional[dict[str, ExtensionFactory]] = None):
        self._factories: dict[str, ExtensionFactory] = {}
        for name, factory in (extensions or {}).items():
            self.register(name, factory)

    def register(self, name: str, factory: ExtensionFactory) -> None:
        """
        Register ``factory`` under ``name``, replacing a previous one.

        Raises:
            InvalidArgument: ``name`` is not an identifier or ``factory``
                is not callable
        """
        if not isinstance(name, str) or not name.isidentifier() or name.startswith("_"):
            raise InvalidArgument(
                "PlaceKit extend: `name` argument is invalid, expected a public identifier.",
                details={"name": repr(name)},
            )
        if not callable(factory):
            raise InvalidArgument(
                "PlaceKit extend: `init` argument is invalid, expected a callable.",
                details={"name": name},
            )
        self._factories[name] = factory
        logger.debug("Extension registered", extension=name)

    def extend(self, name: str) -> Callable[[ExtensionFactory], ExtensionFactory]:
        """Decorator form of :meth:`register`."""
        def decorator(factory: ExtensionFactory) -> ExtensionFactory:
            self.register(name, factory)
            return factory
        return decorator

    def copy(self) -> "ExtensionRegistry":
        return ExtensionRegistry(dict(self._factories))

    def build(self, request: RequestFunc, client: "PlaceKit") -> dict[str, Any]:
        """Instantiate every extension for ``client``."""
        return {name: factory(request, client) for name, factory in self._factories.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __iter__(self) -> Iterator[str]:
        return iter(self._factories)

    def __len__(self) -> int:
        return len(self._factories)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({list(self._factories)})"
