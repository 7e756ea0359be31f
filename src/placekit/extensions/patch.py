"""
Patch records extension.

Patches let an application override or add records of the PlaceKit
dataset. Creating a patch from scratch sends the full record; patching an
existing place sends the original result (``origin``) and the changed
fields (``update``).
"""

from typing import Any, Awaitable, Mapping, Optional

from placekit.exceptions import InvalidArgument
from placekit.extensions.registry import RequestFunc
from placekit.options import ensure_mapping, ensure_string

PATCH_STATUSES = ("pending", "approved")


def _patch_options(opts: Optional[Mapping[str, Any]], where: str) -> dict[str, Any]:
    opts = ensure_mapping(opts, where)
    status = opts.get("status")
    if status is not None and status not in PATCH_STATUSES:
        raise InvalidArgument(
            f"PlaceKit.{where}: `status` option is invalid, expected one of {PATCH_STATUSES}.",
            details={"status": status},
        )
    return {"status": status, "language": opts.get("language")}


class PatchAPI:
    """Operations exposed as ``client.patch``."""

    def __init__(self, request: RequestFunc):
        self._request = request

    def list(self, opts: Optional[Mapping[str, Any]] = None) -> Awaitable[Any]:
        """List or search patch records."""
        opts = ensure_mapping(opts, "patch.list")
        return self._request("POST", "patch/search", dict(opts))

    def create(
        self,
        update: Mapping[str, Any],
        opts: Optional[Mapping[str, Any]] = None,
        origin: Optional[Mapping[str, Any]] = None,
    ) -> Awaitable[Any]:
        """
        Create a patch record.

        Without ``origin`` a new record is added (``POST patch``); with it,
        the existing place ``origin`` is overridden by ``update``
        (``PUT patch``).
        """
        update = ensure_mapping(update, "patch.create", "update")
        options = _patch_options(opts, "patch.create")
        if origin is None:
            return self._request("POST", "patch", {"record": dict(update), **options})
        origin = ensure_mapping(origin, "patch.create", "origin")
        return self._request(
            "PUT",
            "patch",
            {"origin": dict(origin), "update": dict(update), **options},
        )

    def get(self, id: str, language: Optional[str] = None) -> Awaitable[Any]:
        """Retrieve a patch record, optionally in one ``language``."""
        ensure_string(id, "patch.get")
        if language is not None and not isinstance(language, str):
            raise InvalidArgument(
                "PlaceKit.patch.get: `language` argument is invalid, expected a string.",
                details={"received_type": type(language).__name__},
            )
        return self._request("GET", f"patch/{id}", {"language": language})

    def update(
        self,
        id: str,
        update: Optional[Mapping[str, Any]] = None,
        opts: Optional[Mapping[str, Any]] = None,
    ) -> Awaitable[Any]:
        """Update a patch record's fields, status or translation."""
        ensure_string(id, "patch.update")
        update = ensure_mapping(update, "patch.update", "update")
        options = _patch_options(opts, "patch.update")
        return self._request(
            "PATCH",
            f"patch/{id}",
            {"update": dict(update) or None, **options},
        )

    def delete(self, id: str) -> Awaitable[Any]:
        """Delete a patch record."""
        ensure_string(id, "patch.delete")
        return self._request("DELETE", f"patch/{id}")

    def delete_lang(self, id: str, language: str) -> Awaitable[Any]:
        """Delete one translation of a patch record."""
        ensure_string(id, "patch.delete_lang")
        ensure_string(language, "patch.delete_lang", "language")
        return self._request("DELETE", f"patch/{id}/language/{language}")


def patch_extension(request: RequestFunc, client) -> PatchAPI:
    return PatchAPI(request)
