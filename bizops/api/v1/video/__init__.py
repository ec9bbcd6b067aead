"""Video call API endpoints"""

from . import rooms

__all__ = ["rooms"]
