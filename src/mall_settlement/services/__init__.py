"""Settlement services."""

from .aggregator import SettlementAggregator, aggregate_orders, load_source_orders
from .promotion_overlay import PromotionOverlay, business_today, promoted_price
from .promotion_service import PromotionService, list_catalog_products
from .reconciler import ReconcileAction, SettlementFigures, SettlementReconciler, decide
from .settlement_listing import list_settlements
from .snapshot_reader import SnapshotReader
from .statement import build_statement

__all__ = [
    "SettlementAggregator",
    "aggregate_orders",
    "load_source_orders",
    "PromotionOverlay",
    "business_today",
    "promoted_price",
    "PromotionService",
    "list_catalog_products",
    "ReconcileAction",
    "SettlementFigures",
    "SettlementReconciler",
    "decide",
    "list_settlements",
    "SnapshotReader",
    "build_statement",
]
