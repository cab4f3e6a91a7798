"""
Company Resolution

Resolves the calling company from the X-Company-Id header.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from mall_settlement.core.errors import ValidationError
from mall_settlement.core.validation import require_company_id


async def get_company_id(
    x_company_id: Optional[str] = Header(None, description="Company of the caller")
) -> int:
    """
    Read the company id from the X-Company-Id header.

    Args:
        x_company_id: Raw header value

    Raises:
        HTTPException: If the header is missing or not a positive integer

    Returns:
        Company id
    """
    try:
        return require_company_id(x_company_id)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.message,
        )
