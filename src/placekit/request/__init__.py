"""
Request engine and attempt outcome classification.

Components:
- RequestEngine: sends operations to the host cascade with failover
- Outcome: closed classification of one attempt's result
"""

from placekit.request.engine import RequestEngine
from placekit.request.outcome import Outcome, classify_exception, classify_status

__all__ = [
    "RequestEngine",
    "Outcome",
    "classify_status",
    "classify_exception",
]
