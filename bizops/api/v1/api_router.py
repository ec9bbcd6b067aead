"""
Main API Router - Consolidates all module routes
"""

from fastapi import APIRouter

from bizops.api.v1 import booking, finance, pos, video

api_router = APIRouter()

# Scheduling routes
api_router.include_router(booking.settings.router, tags=["booking-settings"])
api_router.include_router(booking.bookings.router, prefix="/booking", tags=["bookings"])
api_router.include_router(booking.master_data.router, prefix="/booking", tags=["booking-master-data"])

# Finance routes
api_router.include_router(finance.accounts.router, prefix="/finance/accounts", tags=["finance-accounts"])
api_router.include_router(finance.journals.router, prefix="/finance/journal-entries", tags=["finance-journals"])
api_router.include_router(finance.reports.router, prefix="/finance/reports", tags=["finance-reports"])

# Point of sale and inventory routes
api_router.include_router(pos.transactions.router, prefix="/pos/transactions", tags=["pos-transactions"])
api_router.include_router(pos.cash_drawers.router, prefix="/pos/cash-drawers", tags=["pos-cash-drawers"])
api_router.include_router(pos.inventory.router, prefix="/inventory", tags=["inventory"])

# Video call routes
api_router.include_router(video.rooms.router, prefix="/video", tags=["video"])
