"""Search and reverse geocoding extensions.

Both merge the client options with per-call options, so anything set
through ``client.configure`` applies unless overridden.
"""

from typing import Any, Awaitable, Mapping, Optional, TYPE_CHECKING

from placekit.exceptions import InvalidArgument
from placekit.extensions.registry import RequestFunc
from placekit.options import ensure_mapping

if TYPE_CHECKING:
    from placekit.client import PlaceKit


def search_extension(request: RequestFunc, client: "PlaceKit"):
    def search(query: Optional[str] = None, opts: Optional[Mapping[str, Any]] = None) -> Awaitable[Any]:
        """
        Search places matching ``query``.

        Returns an awaitable resolving to ``{results, resultsCount,
        maxResults, query}``.
        """
        if query is not None and not isinstance(query, str):
            raise InvalidArgument(
                "PlaceKit.search: `query` argument is invalid, expected a string.",
                details={"received_type": type(query).__name__},
            )
        opts = ensure_mapping(opts, "search")
        return request("POST", "search", client.store.merged(opts, {"query": query}))

    return search


def reverse_extension(request: RequestFunc, client: "PlaceKit"):
    def reverse(opts: Optional[Mapping[str, Any]] = None) -> Awaitable[Any]:
        """Reverse geocode ``opts["coordinates"]`` (or the configured ones)."""
        opts = ensure_mapping(opts, "reverse")
        return request("POST", "reverse", client.store.merged(opts))

    return reverse
