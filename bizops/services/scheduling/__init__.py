"""
Scheduling Engine
Booking conflict detection and time-slot generation
"""
from .availability import intervals_overlap, generate_slots
from .booking_service import BookingService
from .master_data import MasterDataService

__all__ = ["intervals_overlap", "generate_slots", "BookingService", "MasterDataService"]
