"""API keys management extension (``client.keys``)."""

from typing import Any, Awaitable, Mapping, Optional

from placekit.exceptions import InvalidArgument
from placekit.extensions.registry import RequestFunc
from placekit.options import ensure_mapping, ensure_string

KEY_ROLES = ("public", "private")


def _key_options(opts: Optional[Mapping[str, Any]], where: str) -> dict[str, Any]:
    opts = ensure_mapping(opts, where)
    domains = opts.get("domains")
    if domains is not None and (
        not isinstance(domains, (list, tuple)) or not all(isinstance(d, str) for d in domains)
    ):
        raise InvalidArgument(
            f"PlaceKit.{where}: `domains` option is invalid, expected a list of strings.",
            details={"domains": repr(domains)},
        )
    return {"domains": list(domains) if domains is not None else None}


class KeysAPI:
    """Operations exposed as ``client.keys``."""

    def __init__(self, request: RequestFunc):
        self._request = request

    def list(self) -> Awaitable[Any]:
        return self._request("GET", "keys")

    def create(self, role: str, opts: Optional[Mapping[str, Any]] = None) -> Awaitable[Any]:
        """Create a ``public`` or ``private`` key, optionally restricted to ``domains``."""
        if role not in KEY_ROLES:
            raise InvalidArgument(
                f"PlaceKit.keys.create: `role` argument is invalid, expected one of {KEY_ROLES}.",
                details={"role": repr(role)},
            )
        return self._request("POST", "keys", {"role": role, **_key_options(opts, "keys.create")})

    def get(self, id: str) -> Awaitable[Any]:
        ensure_string(id, "keys.get")
        return self._request("GET", f"keys/{id}")

    def update(self, id: str, opts: Optional[Mapping[str, Any]] = None) -> Awaitable[Any]:
        ensure_string(id, "keys.update")
        return self._request("PATCH", f"keys/{id}", _key_options(opts, "keys.update"))

    def delete(self, id: str) -> Awaitable[Any]:
        ensure_string(id, "keys.delete")
        return self._request("DELETE", f"keys/{id}")


def keys_extension(request: RequestFunc, client) -> KeysAPI:
    return KeysAPI(request)
