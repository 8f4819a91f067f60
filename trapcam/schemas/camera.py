# trapcam/schemas/camera.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from uuid import UUID


class CameraCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    location_id: Optional[UUID] = None


class CameraOut(BaseModel):
    id: UUID
    name: str
    inbound_email_address: str
    battery_raw_match: Optional[str]
    battery_percentage: Optional[float]
    battery_voltage: Optional[float]
    last_battery_state: int
    last_contact: Optional[datetime]
    location_id: Optional[UUID]
    created: datetime

    class Config:
        from_attributes = True
