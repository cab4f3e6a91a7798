"""Input validation shared by services and routes."""

from datetime import date, datetime
from typing import Any, Optional, Tuple

from mall_settlement.config.constants import DATE_FORMAT
from mall_settlement.core.errors import ValidationError


def parse_date(value: Any, field_name: str) -> date:
    """Parse YYYY-MM-DD, truncating ISO datetimes to their date part."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or not str(value).strip():
        raise ValidationError(f"{field_name} is required")

    text = str(value).strip()
    text = text.split("T")[0].split(" ")[0]
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid date format for {field_name}: {value}")


def parse_period(start: Any, end: Any) -> Tuple[date, date]:
    """Validate an inclusive [start, end] period."""
    if start is None or end is None or not str(start).strip() or not str(end).strip():
        raise ValidationError("start_date and end_date are required")

    period_start = parse_date(start, "start_date")
    period_end = parse_date(end, "end_date")
    if period_start > period_end:
        raise ValidationError(
            f"start_date {period_start} is after end_date {period_end}"
        )
    return period_start, period_end


def parse_positive_id(value: Any, field_name: str) -> int:
    """Parse a database id; rejects booleans, fractions and non-positive values."""
    if value is None or isinstance(value, bool) or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_name} is required")
    try:
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(value)
        parsed = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {field_name}: {value}")
    if parsed <= 0:
        raise ValidationError(f"Invalid {field_name}: {value}")
    return parsed


def require_company_id(value: Any) -> int:
    """Company id supplied by the caller's session."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("company_id is required")
    return parse_positive_id(value, "company_id")


def optional_id(value: Any, field_name: str) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_positive_id(value, field_name)
