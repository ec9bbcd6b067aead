"""
Commerce Transaction Engine
Inventory movements, point-of-sale transactions and cash drawers
"""
from .inventory_service import InventoryService, record_movement
from .sale_service import SaleService
from .cash_drawer import CashDrawerService

__all__ = ["InventoryService", "record_movement", "SaleService", "CashDrawerService"]
