"""
GlitchTip Error Monitoring Utilities

Helper functions for error tracking and context management.
"""

from datetime import date
from typing import Dict, Any, Optional

import sentry_sdk

from mall_settlement.core.logger import setup_logger

logger = setup_logger(__name__)


def set_settlement_context(
    company_id: int,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
    mall_id: Optional[int] = None,
    **extra_tags
) -> None:
    """
    Set settlement-specific context for error tracking.

    Args:
        company_id: Company owning the settlements
        period_start: First day of the settlement period
        period_end: Last day of the settlement period
        mall_id: Mall being processed, if a single one
        **extra_tags: Additional tags to add
    """
    try:
        sentry_sdk.set_tag("settlement.company_id", company_id)
        if mall_id:
            sentry_sdk.set_tag("settlement.mall_id", mall_id)

        for key, value in extra_tags.items():
            sentry_sdk.set_tag(key, value)

        context_data = {
            "company_id": company_id,
            "period_start": str(period_start) if period_start else None,
            "period_end": str(period_end) if period_end else None,
            "mall_id": mall_id,
        }
        context_data.update(extra_tags)
        sentry_sdk.set_context("settlement", context_data)

    except Exception as e:
        logger.warning(f"Failed to set settlement context: {e}")


def capture_exception(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error"
) -> None:
    """
    Capture an exception and send to GlitchTip.

    Args:
        error: The exception to capture
        context: Additional context data
        level: Error level (error, warning, info)
    """
    try:
        if context:
            with sentry_sdk.new_scope() as scope:
                scope.set_context("custom", context)
                scope.set_level(level)
                sentry_sdk.capture_exception(error)
        else:
            sentry_sdk.capture_exception(error)

    except Exception as e:
        logger.warning(f"Failed to capture exception in GlitchTip: {e}")
