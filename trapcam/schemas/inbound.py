# trapcam/schemas/inbound.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from uuid import UUID


class AddEmailRequest(BaseModel):
    """Inbound email as posted by the mail relay. Required fields are checked by the service."""
    to_email: Optional[str] = Field(None, alias="toEmail")
    from_email: Optional[str] = Field(None, alias="fromEmail")
    from_name: Optional[str] = Field(None, alias="fromName")
    date_time: Optional[datetime] = Field(None, alias="dateTime")
    body: Optional[str] = None
    image_base64: Optional[str] = Field(None, alias="imageBase64")

    class Config:
        populate_by_name = True


class InboundResponse(BaseModel):
    id: UUID
    message: str
