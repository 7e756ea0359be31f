"""
Integration tests against the live PlaceKit API.

Skipped unless PLACEKIT_API_KEY is set.
"""
