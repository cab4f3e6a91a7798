"""Settlement API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy import text

from mall_settlement.core.errors import SettlementError
from mall_settlement.core.logger import setup_logger
from mall_settlement.models.settlement import PromotionCreate, RefreshRequest
from mall_settlement.server.company import get_company_id
from mall_settlement.services.promotion_service import PromotionService, list_catalog_products
from mall_settlement.services.reconciler import SettlementReconciler
from mall_settlement.services.settlement_listing import list_settlements
from mall_settlement.services.snapshot_reader import SnapshotReader, views_to_dicts
from mall_settlement.services.statement import build_statement

logger = setup_logger(__name__)
router = APIRouter()

# Global session factory (initialized in app.py on startup)
session_factory = None


def set_session_factory(factory):
    """Set the global session factory.

    Called by app.py during startup event.

    Args:
        factory: Session factory bound to the settlement database
    """
    global session_factory
    session_factory = factory


def _error_response(error: SettlementError) -> JSONResponse:
    return JSONResponse(
        status_code=error.status_code,
        content={"success": False, "error": error.message},
    )


def _not_initialized() -> JSONResponse:
    logger.error("Session factory not initialized")
    return JSONResponse(
        status_code=503,
        content={"success": False, "error": "Database not initialized"},
    )


def _internal_error(e: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"success": False, "error": str(e)})


# ==============================================================================
# SETTLEMENT ENDPOINTS
# ==============================================================================

@router.post("/api/settlements/refresh")
async def refresh_settlements(
    body: RefreshRequest,
    company_id: int = Depends(get_company_id),
):
    """Recompute and save settlements for a period.

    Body:
        {"start_date": "2024-01-01", "end_date": "2024-01-31", "mall_id": 3}

    Returns:
        Summary with processed_malls (inserted or updated only),
        total_orders_processed and per-action counts
    """
    if not session_factory:
        return _not_initialized()

    try:
        async with session_factory() as session:
            summary = await SettlementReconciler(session).reconcile(
                company_id, body.start_date, body.end_date, body.mall_id
            )

        return {
            "success": True,
            "message": summary.message,
            "result": summary.to_dict(),
        }

    except SettlementError as e:
        logger.warning(f"Settlement refresh rejected: {e.message}")
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error in settlement refresh: {e}", exc_info=True)
        return _internal_error(e)


@router.get("/api/settlements")
async def get_settlements(
    start_date: Optional[str] = Query(None, description="Start date YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="End date YYYY-MM-DD"),
    mall_id: Optional[str] = Query(None, description="Restrict to one mall"),
    company_id: int = Depends(get_company_id),
):
    """List saved settlements of an exact period."""
    if not session_factory:
        return _not_initialized()

    try:
        async with session_factory() as session:
            settlements = await list_settlements(
                session, company_id, start_date, end_date, mall_id
            )
        return {"success": True, "settlements": settlements}

    except SettlementError as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error listing settlements: {e}", exc_info=True)
        return _internal_error(e)


@router.get("/api/settlements/orders")
async def get_settlement_orders(
    settlement_id: Optional[str] = Query(None, description="Frozen view of a settlement"),
    mall_id: Optional[str] = Query(None, description="Live view: mall"),
    start_date: Optional[str] = Query(None, description="Live view: start date"),
    end_date: Optional[str] = Query(None, description="Live view: end date"),
    company_id: int = Depends(get_company_id),
):
    """Order lines of a settlement (frozen) or of a mall and period (live).

    Returns:
        {"success": true, "orders": [...], "count": n}
    """
    if not session_factory:
        return _not_initialized()

    try:
        async with session_factory() as session:
            views = await SnapshotReader(session).read_settlement_orders(
                company_id,
                settlement_id=settlement_id,
                mall_id=mall_id,
                period_start=start_date,
                period_end=end_date,
            )
        orders = views_to_dicts(views)
        return {"success": True, "orders": orders, "count": len(orders)}

    except SettlementError as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error reading settlement orders: {e}", exc_info=True)
        return _internal_error(e)


@router.get("/api/settlements/{settlement_id}/statement")
async def get_settlement_statement(
    settlement_id: str,
    company_id: int = Depends(get_company_id),
):
    """Statement of one settlement: lines grouped by mapping code with tax totals."""
    if not session_factory:
        return _not_initialized()

    try:
        async with session_factory() as session:
            statement = await build_statement(session, company_id, settlement_id)

        if statement is None:
            return JSONResponse(
                status_code=404,
                content={"success": False, "error": f"Settlement {settlement_id} not found"},
            )
        return {"success": True, "statement": statement.to_dict()}

    except SettlementError as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error building statement: {e}", exc_info=True)
        return _internal_error(e)


# ==============================================================================
# PROMOTION ENDPOINTS
# ==============================================================================

@router.get("/api/promotions")
async def get_promotions(
    mall_id: Optional[str] = Query(None, description="Restrict to one mall"),
):
    """List promotions ordered by mall name and product code."""
    if not session_factory:
        return _not_initialized()

    try:
        async with session_factory() as session:
            promotions = await PromotionService(session).list_promotions(mall_id)
        return {"success": True, "promotions": [p.to_dict() for p in promotions]}

    except SettlementError as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error listing promotions: {e}", exc_info=True)
        return _internal_error(e)


@router.post("/api/promotions")
async def create_promotion(body: PromotionCreate):
    """Create a promotion, or overwrite the one set for the same mall and code."""
    if not session_factory:
        return _not_initialized()

    try:
        async with session_factory() as session:
            promotion = await PromotionService(session).upsert_promotion(
                body.mall_id,
                body.product_code,
                discount_rate=body.discount_rate,
                event_price=body.event_price,
                start_date=body.start_date,
                end_date=body.end_date,
            )
        return {"success": True, "promotion": promotion.to_dict()}

    except SettlementError as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error saving promotion: {e}", exc_info=True)
        return _internal_error(e)


@router.delete("/api/promotions/{promotion_id}")
async def remove_promotion(promotion_id: str):
    """Delete a promotion."""
    if not session_factory:
        return _not_initialized()

    try:
        async with session_factory() as session:
            await PromotionService(session).delete_promotion(promotion_id)
        return {"success": True}

    except SettlementError as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error deleting promotion: {e}", exc_info=True)
        return _internal_error(e)


@router.get("/api/promotions/products")
async def get_promotion_products(company_id: int = Depends(get_company_id)):
    """Catalog products to pick from when entering a promotion."""
    if not session_factory:
        return _not_initialized()

    try:
        async with session_factory() as session:
            products = await list_catalog_products(session, company_id)
        return {"success": True, "products": products}

    except SettlementError as e:
        return _error_response(e)
    except Exception as e:
        logger.error(f"Error listing catalog products: {e}", exc_info=True)
        return _internal_error(e)


# ==============================================================================
# SERVICE ENDPOINTS
# ==============================================================================

@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        {
            "status": "healthy|degraded|unhealthy",
            "service": "mall-settlement",
            "database": "ok|error"
        }
    """
    if not session_factory:
        return {
            "status": "unhealthy",
            "service": "mall-settlement",
            "error": "Database not initialized"
        }

    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        database_ok = True
    except Exception as e:
        logger.error(f"Health check error: {e}")
        database_ok = False

    return {
        "status": "healthy" if database_ok else "degraded",
        "service": "mall-settlement",
        "database": "ok" if database_ok else "error"
    }


@router.get("/")
async def root() -> dict:
    """Root endpoint."""
    return {
        "service": "Mall Sales Settlement",
        "description": "Per-mall sales settlements with order snapshots and promotions",
        "endpoints": {
            "health": "/health",
            "settlements_refresh": "/api/settlements/refresh",
            "settlements": "/api/settlements",
            "settlement_orders": "/api/settlements/orders",
            "settlement_statement": "/api/settlements/{settlement_id}/statement",
            "promotions": "/api/promotions",
            "promotion_products": "/api/promotions/products",
        }
    }
