"""Point of sale and inventory API endpoints"""

from . import cash_drawers, inventory, transactions

__all__ = ["cash_drawers", "inventory", "transactions"]
