"""
Backend Access

Client and retry policy for the external school-inventory API.
"""

from .client import BackendClient, BODY_METHODS
from .retry import BackendTimeoutError, fetch_with_retry

__all__ = [
    "BackendClient",
    "BODY_METHODS",
    "BackendTimeoutError",
    "fetch_with_retry",
]
