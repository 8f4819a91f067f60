# trapcam/services/camera_service.py
"""
Camera lookup and telemetry updates.

Cameras are found by their generated inbound address, matched
case-insensitively. Telemetry writes are last-writer-wins and never raise
for a camera that has vanished in the meantime.
"""

import secrets
import string
from datetime import datetime
from email.utils import parseaddr
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from trapcam.config import settings
from trapcam.models.battery import BatteryInfo
from trapcam.models.camera import Camera
from trapcam.models.types import as_utc, utcnow
from trapcam.utils.logger import get_logger

logger = get_logger(__name__)

ADDRESS_ALPHABET = string.ascii_lowercase + string.digits


def normalize_address(address: Optional[str]) -> str:
    """'Cam 1 <ABC@app.trapcam.net> ' -> 'abc@app.trapcam.net'"""
    if not address:
        return ""
    _, parsed = parseaddr(address.strip())
    return (parsed or address).strip().lower()


def find_camera_by_email(db: Session, address: str) -> Optional[Camera]:
    normalized = normalize_address(address)
    if not normalized:
        return None
    return db.query(Camera).filter(func.lower(Camera.inbound_email_address) == normalized).first()


def generate_unique_email_address(db: Session) -> str:
    while True:
        local = "".join(secrets.choice(ADDRESS_ALPHABET)
                        for _ in range(settings.INBOUND_EMAIL_ID_LENGTH))
        address = f"{local}@{settings.INBOUND_EMAIL_DOMAIN}"
        if find_camera_by_email(db, address) is None:
            return address
        logger.debug(f"[CAMERA] Address collision on {address}, regenerating")


def create_camera(db: Session, user_id: str, name: str, location_id=None) -> Camera:
    camera = Camera(
        name=name,
        user_id=user_id,
        location_id=location_id,
        inbound_email_address=generate_unique_email_address(db),
    )
    db.add(camera)
    db.commit()
    db.refresh(camera)
    logger.info(f"[CAMERA] Created {camera.id} '{name}' -> {camera.inbound_email_address}")
    return camera


def list_cameras(db: Session, user_id: str, search: Optional[str] = None) -> list[Camera]:
    query = db.query(Camera).filter(Camera.user_id == user_id)
    if search:
        query = query.filter(Camera.name.ilike(f"%{search}%"))
    return query.order_by(Camera.name).all()


def get_camera(db: Session, camera_id, user_id: str) -> Optional[Camera]:
    return db.query(Camera).filter(Camera.id == camera_id, Camera.user_id == user_id).first()


def update_camera_battery_info(db: Session, camera_id, battery_info: Optional[BatteryInfo]) -> bool:
    camera = db.get(Camera, camera_id)
    if camera is None:
        logger.warning(f"[CAMERA] Cannot update battery, camera {camera_id} not found")
        return False
    camera.battery_info = battery_info
    if not _commit_update(db, camera_id):
        return False
    logger.info(f"[CAMERA] {camera_id} battery -> "
                f"{battery_info.describe() if battery_info else 'cleared'}")
    return True


def update_camera_last_contact(db: Session, camera_id, contact_time: Optional[datetime] = None) -> bool:
    camera = db.get(Camera, camera_id)
    if camera is None:
        logger.warning(f"[CAMERA] Cannot update last contact, camera {camera_id} not found")
        return False
    camera.last_contact = as_utc(contact_time) if contact_time else utcnow()
    return _commit_update(db, camera_id)


def _commit_update(db: Session, camera_id) -> bool:
    """Commit a telemetry write; a camera deleted mid-update counts as not found."""
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning(f"[CAMERA] Camera {camera_id} no longer exists, update dropped")
        return False
    return True
