# trapcam/routers/cameras.py
"""
Camera management and archived emails.
Every route is scoped to the user in X-User-Id.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from trapcam.database import get_db
from trapcam.exceptions import BlobStoreError
from trapcam.routers.deps import get_current_user_id
from trapcam.schemas.camera import CameraCreate, CameraOut
from trapcam.schemas.email_archive import EmailArchiveOut, EmailContentOut, ImageUrlOut
from trapcam.services import camera_service, email_archive_service
from trapcam.services.image_service import image_url
from trapcam.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _user_camera(db: Session, camera_id: UUID, user_id: str):
    camera = camera_service.get_camera(db, camera_id, user_id)
    if not camera:
        raise HTTPException(status_code=404, detail="Camera not found")
    return camera


@router.get("/cameras", response_model=list[CameraOut], summary="List the user's cameras")
def list_cameras(search: Optional[str] = None, db: Session = Depends(get_db),
                 user_id: str = Depends(get_current_user_id)):
    return camera_service.list_cameras(db, user_id, search)


@router.post("/cameras", response_model=CameraOut, status_code=201,
             summary="Create a camera with a fresh inbound address")
def create_camera(body: CameraCreate, db: Session = Depends(get_db),
                  user_id: str = Depends(get_current_user_id)):
    return camera_service.create_camera(db, user_id, body.name, body.location_id)


@router.get("/cameras/{camera_id}", response_model=CameraOut)
def get_camera(camera_id: UUID, db: Session = Depends(get_db),
               user_id: str = Depends(get_current_user_id)):
    return _user_camera(db, camera_id, user_id)


@router.get("/cameras/{camera_id}/emails", response_model=list[EmailArchiveOut],
            summary="Archived emails for a camera, newest first")
def list_camera_emails(camera_id: UUID, db: Session = Depends(get_db),
                       user_id: str = Depends(get_current_user_id)):
    _user_camera(db, camera_id, user_id)
    return email_archive_service.list_email_archives(db, camera_id)


@router.get("/cameras/{camera_id}/emails/{email_id}/content", response_model=EmailContentOut,
            summary="Decompressed body of an archived email")
def get_camera_email_content(camera_id: UUID, email_id: UUID, db: Session = Depends(get_db),
                             user_id: str = Depends(get_current_user_id)):
    _user_camera(db, camera_id, user_id)
    archive = email_archive_service.get_email_archive(db, camera_id, email_id)
    if not archive:
        raise HTTPException(status_code=404, detail="Email not found")
    try:
        body = email_archive_service.get_email_body(archive)
    except BlobStoreError as e:
        logger.warning(f"Email body unavailable for {email_id}: {e}")
        raise HTTPException(status_code=404, detail="Email content not found")
    return EmailContentOut(id=archive.id, body=body)


@router.get("/cameras/{camera_id}/emails/{email_id}/image", response_model=ImageUrlOut,
            summary="Presigned URL of the image attached to an archived email")
def get_camera_email_image(camera_id: UUID, email_id: UUID, db: Session = Depends(get_db),
                           user_id: str = Depends(get_current_user_id)):
    _user_camera(db, camera_id, user_id)
    archive = email_archive_service.get_email_archive(db, camera_id, email_id)
    if not archive or not archive.image_s3_key:
        raise HTTPException(status_code=404, detail="Image not found")
    url = image_url(archive.image_s3_key)
    if not url:
        raise HTTPException(status_code=404, detail="Image not available")
    return ImageUrlOut(id=archive.id, url=url)
