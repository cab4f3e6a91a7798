"""FastAPI application setup and configuration."""

from fastapi import FastAPI

from mall_settlement.config.settings import settings
from mall_settlement.core.logger import setup_logger
from mall_settlement.db.base import get_engine, get_session_factory, init_db
from mall_settlement.server.routes import router, set_session_factory

logger = setup_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="Mall Sales Settlement",
        description="Per-mall sales settlements with order snapshots and promotions",
        version="1.0.0"
    )

    # Initialize GlitchTip error monitoring
    if settings.glitchtip_dsn:
        try:
            import logging
            import sentry_sdk
            from sentry_sdk.integrations.fastapi import FastApiIntegration
            from sentry_sdk.integrations.logging import LoggingIntegration

            sentry_sdk.init(
                dsn=settings.glitchtip_dsn,
                environment=settings.environment,
                integrations=[
                    FastApiIntegration(transaction_style="endpoint"),
                    LoggingIntegration(
                        level=None,  # Capture all log levels as breadcrumbs
                        event_level=logging.ERROR  # Send ERROR logs as events
                    ),
                ],
                traces_sample_rate=0.1,
                profiles_sample_rate=0.0,
                send_default_pii=False,
            )
            logger.info("GlitchTip error monitoring initialized")
        except Exception as e:
            logger.error(f"Failed to initialize GlitchTip: {e}")

    @app.on_event("startup")
    async def startup():
        """Initialize the database engine and session factory on startup."""
        try:
            logger.info("=" * 60)
            logger.info("Starting Mall Sales Settlement...")
            logger.info("=" * 60)

            engine = get_engine(settings.database_url, echo=settings.database_echo)
            app.state.engine = engine

            if settings.auto_create_tables:
                logger.info("Creating missing tables...")
                await init_db(engine)
                logger.info("✓ Tables ready")

            set_session_factory(get_session_factory(engine))
            logger.info("✓ Session factory initialized")

            logger.info("=" * 60)
            logger.info("Mall Sales Settlement started successfully!")
            logger.info(f"Business timezone: {settings.business_timezone}")
            logger.info("=" * 60)

        except Exception as e:
            logger.error(f"Failed to start settlement service: {e}", exc_info=True)
            raise

    @app.on_event("shutdown")
    async def shutdown():
        """Dispose the database engine."""
        logger.info("Shutting down Mall Sales Settlement...")
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            await engine.dispose()
            logger.info("✓ Database engine disposed")

    # Include routes
    app.include_router(router)

    return app
