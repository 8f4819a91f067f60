# trapcam/services/notification_service.py
"""
Notification fan-out — tells every device subscribed to a camera that a new
image arrived, and manages the devices themselves.

Devices flagged notify_only_on_animal_detection are skipped for images
without detected animals. Delivery is one multicast per image; per-token
failures are logged and counted, never raised.

The image pipeline does not wait for delivery: it builds the message while
it still holds the DB session, then hands it to the NotificationDispatcher,
which sends it on a bounded background task and only logs failures.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from trapcam.config import settings
from trapcam.exceptions import DeviceNotFoundError
from trapcam.models.camera import Camera
from trapcam.models.device import Device
from trapcam.models.types import as_utc
from trapcam.services.push_transport import get_push_transport
from trapcam.utils.logger import get_logger, mask_token

logger = get_logger(__name__)


@dataclass
class PushMessage:
    tokens: list[str]
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)


def _animal_names(image) -> list[str]:
    names = []
    for animal in image.animals or []:
        if animal.common_name and animal.common_name not in names:
            names.append(animal.common_name)
    return names


def build_new_image_message(db: Session, camera, image) -> Optional[PushMessage]:
    """Message for the camera's subscribed devices, or None if nobody should get one."""
    has_animals = bool(image.animals)
    devices = list(camera.subscribed_devices or [])
    if not devices:
        logger.info(f"[NOTIFY] No devices subscribed to camera {camera.id}")
        return None

    tokens = []
    for device in devices:
        if device.notify_only_on_animal_detection and not has_animals:
            logger.debug(f"[NOTIFY] Skipping device {device.id}: animal-only and no animals")
            continue
        if device.fcm_token and device.fcm_token not in tokens:
            tokens.append(device.fcm_token)

    if not tokens:
        logger.info(f"[NOTIFY] No devices to notify for image {image.id}")
        return None

    names = _animal_names(image)
    body = f"Animals detected: {', '.join(names)}" if names else "New image received"
    captured = as_utc(image.image_date)
    return PushMessage(
        tokens=tokens,
        title=f"New image from {camera.name}",
        body=body,
        data={
            "cameraId": str(camera.id),
            "imageId": str(image.id),
            "timestamp": captured.isoformat() if captured else "",
        },
    )


async def send_push_message(message: PushMessage, transport=None) -> int:
    """Deliver one multicast. Returns the number of successful deliveries."""
    transport = transport or get_push_transport()
    if transport is None:
        logger.warning("[NOTIFY] Push transport not configured, notification not sent")
        return 0

    result = await asyncio.wait_for(
        transport.send_multicast(message.tokens, message.title, message.body, message.data),
        timeout=settings.PUSH_TIMEOUT_SECONDS,
    )
    for token, error in result.errors:
        logger.warning(f"[NOTIFY] Failed to send to {mask_token(token)}: {error}")

    logger.info(
        f"[NOTIFY] Sent '{message.title}': {result.success_count} ok, "
        f"{result.failure_count} failed"
    )
    return result.success_count


async def notify_new_image(db: Session, camera, image, transport=None) -> int:
    message = build_new_image_message(db, camera, image)
    if message is None:
        return 0
    return await send_push_message(message, transport)


class NotificationDispatcher:
    """Runs push sends as background tasks, at most max_concurrency at a time."""

    def __init__(self, max_concurrency: int, transport=None):
        self._semaphore = asyncio.Semaphore(max(1, max_concurrency))
        self._transport = transport
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, message: PushMessage) -> asyncio.Task:
        task = asyncio.create_task(self._run(message))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, message: PushMessage) -> int:
        async with self._semaphore:
            try:
                return await send_push_message(message, self._transport)
            except Exception as e:
                logger.error(f"[NOTIFY] Push delivery failed for '{message.title}': {e!r}")
                return 0

    async def drain(self):
        """Wait for every outstanding send (used at shutdown)."""
        if not self._tasks:
            return
        logger.info(f"[NOTIFY] Waiting for {len(self._tasks)} pending notification(s)")
        await asyncio.gather(*list(self._tasks), return_exceptions=True)


_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(settings.NOTIFICATION_MAX_CONCURRENCY)
    return _dispatcher


# ── Device management ────────────────────────────────────────────────────

def list_user_devices(db: Session, user_id: str) -> list[Device]:
    return db.query(Device).filter(Device.user_id == user_id).order_by(Device.created).all()


def _get_user_device(db: Session, user_id: str, device_id) -> Device:
    device = db.query(Device).filter(Device.id == device_id, Device.user_id == user_id).first()
    if device is None:
        raise DeviceNotFoundError(device_id, user_id)
    return device


def _user_cameras(db: Session, user_id: str, camera_ids) -> list[Camera]:
    """Only cameras the user owns; foreign ids are dropped silently."""
    if not camera_ids:
        return []
    cameras = db.query(Camera).filter(Camera.user_id == user_id, Camera.id.in_(camera_ids)).all()
    if len(cameras) != len(set(camera_ids)):
        logger.warning(f"[DEVICE] Ignoring {len(set(camera_ids)) - len(cameras)} camera id(s) "
                       f"not owned by user {user_id}")
    return cameras


def register_device(db: Session, user_id: str, fcm_token: str, name: str,
                    notify_only_on_animal_detection: bool = False,
                    camera_ids=None) -> Device:
    """Create or update the device for (user, token)."""
    device = db.query(Device).filter(
        Device.user_id == user_id, Device.fcm_token == fcm_token
    ).first()

    if device is None:
        device = Device(user_id=user_id, fcm_token=fcm_token, name=name,
                        notify_only_on_animal_detection=notify_only_on_animal_detection)
        db.add(device)
        logger.info(f"[DEVICE] Registering {mask_token(fcm_token)} for user {user_id}")
    else:
        device.name = name
        device.notify_only_on_animal_detection = notify_only_on_animal_detection
        logger.info(f"[DEVICE] Updating {device.id} for user {user_id}")

    if camera_ids is not None:
        device.subscribed_cameras = _user_cameras(db, user_id, camera_ids)

    db.commit()
    db.refresh(device)
    return device


def update_device_subscriptions(db: Session, user_id: str, device_id, camera_ids,
                                notify_only_on_animal_detection: Optional[bool] = None) -> Device:
    device = _get_user_device(db, user_id, device_id)
    device.subscribed_cameras = _user_cameras(db, user_id, camera_ids)
    if notify_only_on_animal_detection is not None:
        device.notify_only_on_animal_detection = notify_only_on_animal_detection
    db.commit()
    db.refresh(device)
    logger.info(f"[DEVICE] {device.id} subscribed to {len(device.subscribed_cameras)} camera(s)")
    return device


def delete_device(db: Session, user_id: str, device_id) -> None:
    device = _get_user_device(db, user_id, device_id)
    db.delete(device)
    db.commit()
    logger.info(f"[DEVICE] Deleted {device_id} for user {user_id}")
