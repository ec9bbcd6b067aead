"""Finance API endpoints"""

from . import accounts, journals, reports

__all__ = ["accounts", "journals", "reports"]
