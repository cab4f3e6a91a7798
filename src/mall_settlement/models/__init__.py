"""Request and response models."""

from .settlement import PromotionCreate, RefreshRequest, SettlementOrderView

__all__ = ["PromotionCreate", "RefreshRequest", "SettlementOrderView"]
