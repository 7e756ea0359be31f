"""
Unit tests for the PlaceKit client.

Test individual components in isolation:
- Configuration store (merge, snapshots, locale seeding)
- Request engine (failover, timeouts, headers, classification)
- Extensions (registry, search, patch, keys)
- Client surface (construction, geolocation)
"""
