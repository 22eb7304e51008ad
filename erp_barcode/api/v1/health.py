"""
==============================================================================
Health Check Endpoints
==============================================================================

System health status endpoints for monitoring and orchestration.

==============================================================================
"""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from erp_barcode.db.database import get_db


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


class HealthController:
    """Controller for health check operations."""

    def __init__(self, db: Session, state):
        self._db = db
        self._state = state

    def check_database(self) -> str:
        """Check database connectivity."""
        try:
            self._db.execute(text("SELECT 1"))
            return "healthy"
        except SQLAlchemyError as e:
            logger.warning(f"Database health check failed: {e}")
            return "unhealthy"

    def check_scan_log(self) -> dict:
        """Scan log queue status."""
        queue = self._state.scan_log
        return {
            "status": "running" if queue.is_running else "inline",
            "pending": queue.pending,
            "dropped": queue.dropped,
        }

    def get_health(self) -> dict:
        """Get full health status."""
        db_status = self.check_database()
        scan_log = self.check_scan_log()

        overall = "healthy" if db_status == "healthy" else "degraded"

        return {
            "status": overall,
            "components": {
                "api": "healthy",
                "database": db_status,
                "scan_log": scan_log["status"]
            },
            "details": {
                "scan_log_pending": scan_log["pending"],
                "scan_log_dropped": scan_log["dropped"]
            }
        }


@router.get("")
async def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Health check endpoint.

    Returns system status including API, database, and scan log queue.
    """
    controller = HealthController(db, request.app.state)
    return controller.get_health()


@router.get("/ready")
async def readiness_check():
    """Readiness probe for container orchestration."""
    return {"ready": True}


@router.get("/live")
async def liveness_check():
    """Liveness probe for container orchestration."""
    return {"alive": True}
