# trapcam/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + animal recognition reachability.
"""

import requests
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from trapcam.database import get_db
from trapcam.config import settings
from trapcam.models.types import utcnow

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Animal recognition server reachability (if configured)
    - Whether push notifications are configured
    """
    result = {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "detection": "disabled",
        "push": "enabled" if settings.push_enabled else "disabled",
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    # Ping the recognition server; detection is optional so this never degrades status
    if settings.detection_enabled:
        try:
            resp = requests.get(settings.ANIMAL_RECOGNITION_SERVER, timeout=3)
            result["detection"] = "ok" if resp.status_code < 500 else f"http_{resp.status_code}"
        except requests.exceptions.ConnectionError:
            result["detection"] = "unreachable"
        except requests.exceptions.RequestException as e:
            result["detection"] = f"error: {str(e)}"

    return result
