"""Database module."""

from .base import Base, get_engine, get_session_factory, init_db
from .models import Mall, OrderRow, Product, Promotion, Settlement, SettlementOrderLink
from .repository import (
    MallRepository,
    OrderRowRepository,
    ProductCatalog,
    PromotionRepository,
    SettlementLinkRepository,
    SettlementRepository,
)

__all__ = [
    "Base",
    "get_engine",
    "get_session_factory",
    "init_db",
    "Mall",
    "OrderRow",
    "Product",
    "Promotion",
    "Settlement",
    "SettlementOrderLink",
    "MallRepository",
    "OrderRowRepository",
    "ProductCatalog",
    "PromotionRepository",
    "SettlementLinkRepository",
    "SettlementRepository",
]
