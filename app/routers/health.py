# app/routers/health.py
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health(request: Request):
    db = request.app.state.db
    if not db.ping():
        return JSONResponse(status_code=503, content={"status": "degraded", "database": db.backend})
    return {"status": "ok", "database": db.backend}
