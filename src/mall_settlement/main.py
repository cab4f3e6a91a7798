"""Mall Sales Settlement - Main Entry Point."""

import os

from dotenv import load_dotenv

load_dotenv()

from mall_settlement.config.settings import settings  # noqa: E402
from mall_settlement.server.app import create_app  # noqa: E402

# Create FastAPI application
app = create_app()

if __name__ == "__main__":
    import uvicorn

    reload = os.getenv("RELOAD", "false").lower() == "true"

    uvicorn.run(
        "mall_settlement.main:app",
        host=settings.host,
        port=settings.port,
        reload=reload,
        log_level=settings.log_level.lower(),
        timeout_keep_alive=5,
        access_log=False,  # Structured logging instead of uvicorn access log
    )
