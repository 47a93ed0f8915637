"""
Kayron Dashboard Gateway Core Package

Configuration, authorization domain, backend access and observability.
"""

from . import auth
from . import backend

__all__ = ["auth", "backend"]
