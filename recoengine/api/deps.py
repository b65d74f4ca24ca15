# recoengine/api/deps.py
from fastapi import HTTPException, Request
from recoengine.domain.engine import RecommendationEngine

# Dependency for injecting the process-wide engine into endpoints
def engine_dep(request: Request) -> RecommendationEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Recommendation engine not initialized")
    return engine
