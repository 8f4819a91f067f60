# trapcam/services/email_archive_service.py
"""
Email archive — stores each inbound email body in the blob store and keeps
one EmailArchive row per email.

Bodies are gzipped on upload, so the object lands under "<key>.gz". The row
keeps the plain key; downloads resolve it through the blob store's ".gz"
fallback.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from trapcam.models.email_archive import EmailArchive
from trapcam.models.types import as_utc, utcnow
from trapcam.services.blob_store import get_blob_store
from trapcam.utils.logger import get_logger

logger = get_logger(__name__)


def email_archive_key(camera_id) -> str:
    return f"{camera_id}/{uuid.uuid4()}.email.html"


def archive_email(db: Session, request, camera, image_key: Optional[str],
                  date_time: Optional[datetime] = None) -> EmailArchive:
    """
    Upload the body and persist the archive row. Blob store and DB errors
    propagate: an email that cannot be archived is a failed ingestion.
    """
    store = get_blob_store()
    key = email_archive_key(camera.id)
    stored_key = store.upload_text(store.email_archive_bucket, key, request.body or "",
                                   compress_data=True)

    archive = EmailArchive(
        camera_id=camera.id,
        date_time=as_utc(date_time) if date_time else utcnow(),
        from_email=request.from_email,
        from_name=request.from_name,
        s3_key=key,
        image_s3_key=image_key,
    )
    db.add(archive)
    db.commit()
    db.refresh(archive)
    logger.info(f"[ARCHIVE] Email {archive.id} archived for camera {camera.id} ({stored_key})")
    return archive


def list_email_archives(db: Session, camera_id) -> list[EmailArchive]:
    return (
        db.query(EmailArchive)
        .filter(EmailArchive.camera_id == camera_id)
        .order_by(EmailArchive.date_time.desc())
        .all()
    )


def get_email_archive(db: Session, camera_id, email_id) -> Optional[EmailArchive]:
    return (
        db.query(EmailArchive)
        .filter(EmailArchive.id == email_id, EmailArchive.camera_id == camera_id)
        .first()
    )


def get_email_body(archive: EmailArchive) -> str:
    store = get_blob_store()
    return store.download_text(store.email_archive_bucket, archive.s3_key)
