# trapcam/schemas/device.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from uuid import UUID


class DeviceRegister(BaseModel):
    fcm_token: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    notify_only_on_animal_detection: bool = False
    camera_ids: Optional[list[UUID]] = None


class DeviceSubscriptionsUpdate(BaseModel):
    camera_ids: list[UUID] = []
    notify_only_on_animal_detection: Optional[bool] = None


class DeviceOut(BaseModel):
    id: UUID
    name: str
    notify_only_on_animal_detection: bool
    camera_ids: list[UUID]
    created: datetime

    @classmethod
    def from_device(cls, device) -> "DeviceOut":
        return cls(
            id=device.id,
            name=device.name,
            notify_only_on_animal_detection=device.notify_only_on_animal_detection,
            camera_ids=[camera.id for camera in device.subscribed_cameras],
            created=device.created,
        )
