"""
Client extensions.

Components:
- ExtensionRegistry: name -> factory mapping instantiated per client
- search / reverse: place search and reverse geocoding
- patch: patch records CRUD
- keys: API keys management
"""

from placekit.extensions.keys import KeysAPI, keys_extension
from placekit.extensions.patch import PatchAPI, patch_extension
from placekit.extensions.registry import ExtensionFactory, ExtensionRegistry, RequestFunc
from placekit.extensions.search import reverse_extension, search_extension


def lite_extensions() -> ExtensionRegistry:
    """Registry with search and reverse geocoding only."""
    return ExtensionRegistry({
        "search": search_extension,
        "reverse": reverse_extension,
    })


def default_extensions() -> ExtensionRegistry:
    """Registry with every built-in extension."""
    registry = lite_extensions()
    registry.register("patch", patch_extension)
    registry.register("keys", keys_extension)
    return registry


__all__ = [
    "ExtensionRegistry",
    "ExtensionFactory",
    "RequestFunc",
    "PatchAPI",
    "KeysAPI",
    "search_extension",
    "reverse_extension",
    "patch_extension",
    "keys_extension",
    "lite_extensions",
    "default_extensions",
]
