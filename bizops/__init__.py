"""
BizOps Backend
Multi-tenant business operations API
"""

__version__ = "1.0.0"
