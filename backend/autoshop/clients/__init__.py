"""Clients for remote services."""

from autoshop.clients.shop_api import AuthContext, ShopApiClient

__all__ = ["AuthContext", "ShopApiClient"]
