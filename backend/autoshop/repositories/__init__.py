"""Storage backends implementing the workflow data-access protocol."""

from autoshop.repositories.sql import SqlShopRepository

__all__ = ["SqlShopRepository"]
