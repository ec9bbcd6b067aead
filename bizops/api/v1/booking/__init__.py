"""Scheduling API endpoints"""

from . import bookings, master_data, settings

__all__ = ["bookings", "master_data", "settings"]
