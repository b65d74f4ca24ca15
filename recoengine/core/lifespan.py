# recoengine/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from recoengine.db import mongo
from recoengine.core.config import get_settings
from recoengine.domain.engine import RecommendationEngine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    engine = None
    if settings.MONGO_URI:
        await mongo.connect(settings)
        try:
            engine = RecommendationEngine.from_db(mongo.get_db(), settings)
            logger.info("Recommendation engine ready")
        except AssertionError:
            logger.error("Mongo unavailable, recommendation routes will answer 503")
    else:
        logger.warning("No MONGO_URI provided, skipping Mongo connection")

    # Tests may install their own engine before startup
    if getattr(app.state, "engine", None) is None:
        app.state.engine = engine

    # Application runs
    yield

    # --- Shutdown ---
    if app.state.engine is not None:
        await app.state.engine.aclose()
    if settings.MONGO_URI:
        await mongo.disconnect()
        logger.info("Mongo disconnected")
