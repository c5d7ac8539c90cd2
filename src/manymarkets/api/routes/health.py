"""Liveness/readiness probe."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from manymarkets.database import get_db
from manymarkets.version import __version__

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Report service health; the database must answer ``SELECT 1``."""
    db_status = "connected"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"[HEALTH] DB health check failed: {e}", exc_info=True)
        db_status = f"error: {str(e)[:50]}"

    healthy = db_status == "connected"
    payload = {
        "status": "healthy" if healthy else "degraded",
        "database": db_status,
        "version": __version__,
        "service": "manymarkets",
    }
    return JSONResponse(content=payload, status_code=200 if healthy else 503)
