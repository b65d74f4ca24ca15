# recoengine/api/v1/routers/health.py
import time
import subprocess
from fastapi import APIRouter, Request
from recoengine.core.config import get_settings
from recoengine.db import mongo

router = APIRouter(tags=["health"])
START_TIME = time.time()


def _git_sha(short: bool = True) -> str:
    try:
        cmd = ["git", "rev-parse", "--short" if short else "HEAD"]
        return subprocess.check_output(cmd, stderr=subprocess.DEVNULL).decode().strip()
    except Exception:
        return "unknown"


@router.get("/health")
async def health(request: Request):
    """
    Tolerant health check:
    - ping Mongo via Motor (async), 'skipped' when no URI is configured
    - engine presence and result cache size
    """
    settings = get_settings()
    checks: dict[str, object] = {
        "app_name": settings.APP_NAME,
        "env": settings.APP_ENV,
        "debug": settings.DEBUG,
        "version": settings.GIT_SHA if settings.GIT_SHA != "unknown" else _git_sha(),
        "uptime_seconds": int(time.time() - START_TIME),
    }

    # --- Mongo ---
    if not settings.MONGO_URI:
        checks["mongodb"] = "skipped"
    else:
        try:
            db = mongo.get_db()
            await db.command("ping")
            checks["mongodb"] = "ok"
        except Exception as e:
            checks["mongodb"] = f"error: {e}"

    # --- Engine ---
    engine = getattr(request.app.state, "engine", None)
    checks["engine"] = "ok" if engine is not None else "missing"
    if engine is not None:
        checks["result_cache_entries"] = len(engine.cache)
        checks["background_tasks"] = engine.pending_tasks

    health_keys = ("mongodb", "engine")
    status = "ok" if all(checks.get(k) in ("ok", "skipped") for k in health_keys) else "error"

    return {"status": status, "checks": checks, "timestamp": int(time.time())}
