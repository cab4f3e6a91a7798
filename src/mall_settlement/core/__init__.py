"""Core module - Logging, error monitoring, field resolution and validation."""

from mall_settlement.core.logger import setup_logger
from mall_settlement.core.errors import (
    NotFoundError,
    SettlementError,
    TransientStoreError,
    ValidationError,
)

__all__ = [
    "setup_logger",
    "SettlementError",
    "ValidationError",
    "NotFoundError",
    "TransientStoreError",
]
