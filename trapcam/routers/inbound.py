# trapcam/routers/inbound.py
"""
Inbound email endpoints — called by the mail relay for every email sent to a
camera's generated address. No API key or user id: relays are anonymous.

POST /inbound/addemail       — JSON body, image as base64 (optional)
POST /inbound/addemail/form  — multipart form, image as a binary file (optional)
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from trapcam.database import get_db
from trapcam.exceptions import CameraNotFoundError, InboundValidationError
from trapcam.schemas.inbound import AddEmailRequest, InboundResponse
from trapcam.services.inbound_service import ingest_email
from trapcam.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


async def _ingest(db: Session, request: AddEmailRequest, image_bytes: Optional[bytes] = None):
    logger.info(f"Inbound email to={request.to_email} from={request.from_email} "
                f"dateTime={request.date_time}")
    try:
        archive = await ingest_email(db, request, image_bytes)
    except InboundValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CameraNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return InboundResponse(id=archive.id, message="Email archived successfully")


@router.post("/inbound/addemail", response_model=InboundResponse,
             summary="Archive an inbound camera email (JSON)")
async def add_email(body: AddEmailRequest, db: Session = Depends(get_db)):
    return await _ingest(db, body)


@router.post("/inbound/addemail/form", response_model=InboundResponse,
             summary="Archive an inbound camera email (multipart, binary image)")
async def add_email_form(
    toEmail: Optional[str] = Form(None),
    fromEmail: Optional[str] = Form(None),
    fromName: Optional[str] = Form(None),
    dateTime: Optional[datetime] = Form(None),
    body: Optional[str] = Form(None),
    imageBase64: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
):
    image_bytes = await image.read() if image is not None else None
    request = AddEmailRequest(
        to_email=toEmail,
        from_email=fromEmail,
        from_name=fromName,
        date_time=dateTime,
        body=body,
        image_base64=imageBase64,
    )
    return await _ingest(db, request, image_bytes or None)
