"""
Centralized application constants.

This file acts as the single point of truth for business logic constants
shared by the aggregator, the snapshot reader and the promotion overlay.
"""

# ==============================================================================
# ORDER ROW FIELDS
# ==============================================================================

# Order status value that marks a row as cancelled; every other value is active
CANCELLED_STATUS = "취소"

# Row payload aliases, tried in order. Uploaded spreadsheets name the same
# column differently per mall, so no logical field has a single fixed key.
STATUS_ALIASES = ("주문상태", "orderStatus")
MAPPING_CODE_ALIASES = ("매핑코드", "mappingCode")
PRODUCT_ID_ALIASES = ("productId",)
SUPPLY_PRICE_ALIASES = ("공급단가", "공급가", "sale_price", "supplyPrice")
QUANTITY_ALIASES = ("수량", "주문수량", "quantity")
COST_PRICE_ALIASES = ("원가", "가격", "costPrice")
ORDER_NUMBER_ALIASES = ("주문번호", "주문번호(사방넷)", "주문번호(쇼핑몰)")
INTERNAL_CODE_ALIASES = ("내부코드",)
PRODUCT_NAME_ALIASES = ("상품명",)
DISPLAY_NAME_ALIASES = ("사방넷명", "sabangName", "sabang_name", "상품명")
ORDER_DATE_ALIASES = ("주문일시",)

# Field defaults when every alias is missing or unparsable
DEFAULT_SUPPLY_PRICE = 0
DEFAULT_QUANTITY = 1
DEFAULT_COST_PRICE = 0

# ==============================================================================
# PRODUCT CATALOG
# ==============================================================================

# Catalog columns copied into the link snapshot at reconciliation time
PRODUCT_SNAPSHOT_FIELDS = (
    "id",
    "code",
    "name",
    "price",
    "sale_price",
    "sabang_name",
    "bill_type",
    "post_type",
    "category",
    "product_type",
)

BILL_TYPE_TAXABLE = "과세"
BILL_TYPE_TAX_FREE = "면세"

# ==============================================================================
# SETTLEMENT
# ==============================================================================

# Decimal places kept for profit rates (percent)
RATE_DECIMAL_PLACES = 2

# Date format accepted for periods
DATE_FORMAT = "%Y-%m-%d"
