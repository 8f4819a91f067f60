# trapcam/schemas/email_archive.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional
from uuid import UUID


class EmailArchiveOut(BaseModel):
    id: UUID
    camera_id: UUID
    date_time: datetime
    from_email: str
    from_name: Optional[str]
    image_s3_key: Optional[str]

    class Config:
        from_attributes = True


class EmailContentOut(BaseModel):
    id: UUID
    body: str


class ImageUrlOut(BaseModel):
    id: UUID
    url: str
