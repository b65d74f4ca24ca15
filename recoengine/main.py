from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from recoengine.core.config import get_settings
from recoengine.core.exceptions import RecoEngineError
from recoengine.core.lifespan import lifespan
from recoengine.api.v1.routers.health import router as health_router
from recoengine.api.v1.routers.interactions import router as interactions_router
from recoengine.api.v1.routers.users import router as users_router
from recoengine.api.v1.routers.trending import router as trending_router
from recoengine.api.v1.routers.similar import router as similar_router
from recoengine.api.v1.routers.cache import router as cache_router
from recoengine.core.logging import configure_logging

from fastapi.middleware.cors import CORSMiddleware
import os

settings = get_settings()
configure_logging(settings.LOG_LEVEL, debug=settings.DEBUG)

app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# ------- CORS -------
# ALLOWED_ORIGINS is a CSV list, e.g. "https://shop.example.com,https://admin.example.com"
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
allowed_origins = [o.strip() for o in allowed_origins_env.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=False,                        # keep False to simplify preflight
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=86400,
)

# ------- Errors -------
@app.exception_handler(RecoEngineError)
async def reco_engine_error_handler(request: Request, exc: RecoEngineError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "details": exc.details},
    )

# ------- Routes -------
app.include_router(health_router)
app.include_router(interactions_router)      # event tracking
app.include_router(users_router)             # hybrid / collaborative / content / personalized
app.include_router(trending_router)          # trending
app.include_router(similar_router)           # similar
app.include_router(cache_router)             # result cache invalidation
