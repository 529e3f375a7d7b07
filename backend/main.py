#backend/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import uvicorn
import logging

from config import settings
from routes.predictions import router as predictions_router
from routes.teams import router as teams_router
from routes.cache import router as cache_router
from routes.health import router as health_router
from services.pipeline import build_pipeline

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting StatShark backend...")
    app.state.pipeline = build_pipeline(settings)
    logger.info(f"StatShark backend started with config: {settings.get_config()}")

    yield

    # Shutdown
    logger.info("Shutting down StatShark backend...")
    app.state.pipeline.cache_clear()


def create_app(lifespan_handler=lifespan) -> FastAPI:
    app = FastAPI(
        title="StatShark API",
        description="NFL game predictions from records, injuries, news and betting odds",
        version="1.0.0",
        lifespan=lifespan_handler
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix="/api")
    app.include_router(predictions_router, prefix="/api/v1")
    app.include_router(teams_router, prefix="/api/v1")
    app.include_router(cache_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "message": "StatShark API",
            "version": "1.0.0",
            "endpoints": {
                "health": "/api/health",
                "teams": "/api/v1/teams",
                "games": "/api/v1/games",
                "upcoming": "/api/v1/upcoming",
                "news": "/api/v1/news",
                "predictions": "/api/v1/predictions",
                "cache": "/api/v1/cache/stats",
            }
        }

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL.lower()
    )
