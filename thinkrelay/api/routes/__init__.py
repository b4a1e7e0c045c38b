"""
API Routes Package
"""

from thinkrelay.api.routes import compat, gateway, health

__all__ = ["compat", "gateway", "health"]
