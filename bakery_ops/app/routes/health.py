from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Config
from ...data.database import get_db
from ...utils.logger import get_logger

logger = get_logger()

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Database ping plus build information."""
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=500,
            content={"status": "unhealthy", "timestamp": timestamp, "error": "Database connection failed"},
        )
    return {
        "status": "healthy",
        "timestamp": timestamp,
        "version": Config.APP_VERSION,
        "environment": Config.ENVIRONMENT,
        "database": "connected",
    }
