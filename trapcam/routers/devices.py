# trapcam/routers/devices.py
"""Push notification devices and their camera subscriptions."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from trapcam.database import get_db
from trapcam.exceptions import DeviceNotFoundError
from trapcam.routers.deps import get_current_user_id
from trapcam.schemas.device import DeviceOut, DeviceRegister, DeviceSubscriptionsUpdate
from trapcam.services import notification_service

router = APIRouter()


@router.get("/notifications/devices", response_model=list[DeviceOut])
def list_devices(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)):
    return [DeviceOut.from_device(d) for d in notification_service.list_user_devices(db, user_id)]


@router.post("/notifications/devices", response_model=DeviceOut,
             summary="Register a device (idempotent per user and token)")
def register_device(body: DeviceRegister, db: Session = Depends(get_db),
                    user_id: str = Depends(get_current_user_id)):
    device = notification_service.register_device(
        db, user_id, body.fcm_token, body.name,
        notify_only_on_animal_detection=body.notify_only_on_animal_detection,
        camera_ids=body.camera_ids,
    )
    return DeviceOut.from_device(device)


@router.put("/notifications/devices/{device_id}/subscriptions", response_model=DeviceOut)
def update_subscriptions(device_id: UUID, body: DeviceSubscriptionsUpdate,
                         db: Session = Depends(get_db),
                         user_id: str = Depends(get_current_user_id)):
    try:
        device = notification_service.update_device_subscriptions(
            db, user_id, device_id, body.camera_ids,
            notify_only_on_animal_detection=body.notify_only_on_animal_detection,
        )
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return DeviceOut.from_device(device)


@router.delete("/notifications/devices/{device_id}", summary="Unregister a device")
def delete_device(device_id: UUID, db: Session = Depends(get_db),
                  user_id: str = Depends(get_current_user_id)):
    try:
        notification_service.delete_device(db, user_id, device_id)
    except DeviceNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"status": "deleted", "id": str(device_id)}
