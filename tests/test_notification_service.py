# tests/test_notification_service.py
"""Unit tests for notification fan-out and device management."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import uuid
import pytest
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from trapcam.exceptions import DeviceNotFoundError
from trapcam.models import Camera
from trapcam.services.notification_service import (
    NotificationDispatcher,
    PushMessage,
    build_new_image_message,
    delete_device,
    list_user_devices,
    notify_new_image,
    register_device,
    send_push_message,
    update_device_subscriptions,
)
from trapcam.services.push_transport import MulticastResult

CAPTURED = datetime(2025, 7, 1, 5, 30, tzinfo=timezone.utc)


def make_device(token, animal_only=False):
    return SimpleNamespace(id=uuid.uuid4(), fcm_token=token,
                           notify_only_on_animal_detection=animal_only)


def make_camera(*devices):
    return SimpleNamespace(id=uuid.uuid4(), name="Forest edge", subscribed_devices=list(devices))


def make_image(*names):
    animals = [SimpleNamespace(common_name=n) for n in names]
    return SimpleNamespace(id=uuid.uuid4(), image_date=CAPTURED, animals=animals)


def make_transport(success=1, failure=0, errors=None):
    transport = MagicMock()
    transport.send_multicast = AsyncMock(return_value=MulticastResult(success, failure, errors or []))
    return transport


class TestBuildMessage:
    def test_no_subscribers(self):
        assert build_new_image_message(MagicMock(), make_camera(), make_image()) is None

    def test_animal_only_device_skipped_without_animals(self):
        camera = make_camera(make_device("always"), make_device("animals-only", animal_only=True))
        message = build_new_image_message(MagicMock(), camera, make_image())

        assert message.tokens == ["always"]
        assert message.body == "New image received"

    def test_animal_only_device_included_with_animals(self):
        camera = make_camera(make_device("animals-only", animal_only=True))
        message = build_new_image_message(MagicMock(), camera, make_image("Red fox"))
        assert message.tokens == ["animals-only"]

    def test_body_lists_distinct_names_in_order(self):
        camera = make_camera(make_device("t1"))
        image = make_image("Roe deer", "Red fox", "Roe deer")
        message = build_new_image_message(MagicMock(), camera, image)

        assert message.title == "New image from Forest edge"
        assert message.body == "Animals detected: Roe deer, Red fox"
        assert message.data == {
            "cameraId": str(camera.id),
            "imageId": str(image.id),
            "timestamp": "2025-07-01T05:30:00+00:00",
        }

    def test_only_animal_only_devices_and_no_animals(self):
        camera = make_camera(make_device("a", animal_only=True), make_device("b", animal_only=True))
        assert build_new_image_message(MagicMock(), camera, make_image()) is None


class TestSend:
    @pytest.mark.asyncio
    async def test_per_token_failures_counted_not_raised(self):
        transport = make_transport(success=2, failure=1, errors=[("stale-token-123456", "Unregistered")])
        message = PushMessage(tokens=["a", "b", "stale-token-123456"], title="t", body="b")

        assert await send_push_message(message, transport) == 2
        transport.send_multicast.assert_awaited_once_with(["a", "b", "stale-token-123456"], "t", "b", {})

    @pytest.mark.asyncio
    async def test_unconfigured_transport_sends_nothing(self):
        with patch("trapcam.services.notification_service.get_push_transport", return_value=None):
            assert await send_push_message(PushMessage(["a"], "t", "b")) == 0

    @pytest.mark.asyncio
    async def test_transport_failure_propagates(self):
        transport = MagicMock()
        transport.send_multicast = AsyncMock(side_effect=RuntimeError("FCM down"))
        with pytest.raises(RuntimeError):
            await send_push_message(PushMessage(["a"], "t", "b"), transport)

    @pytest.mark.asyncio
    async def test_notify_without_qualifying_devices_skips_transport(self):
        transport = make_transport()
        camera = make_camera(make_device("a", animal_only=True))

        assert await notify_new_image(MagicMock(), camera, make_image(), transport) == 0
        transport.send_multicast.assert_not_called()

    @pytest.mark.asyncio
    async def test_notify_returns_success_count(self):
        transport = make_transport(success=1)
        camera = make_camera(make_device("a"))
        assert await notify_new_image(MagicMock(), camera, make_image("Badger"), transport) == 1


class TestDispatcher:
    @pytest.mark.asyncio
    async def test_failed_send_is_only_logged(self):
        transport = MagicMock()
        transport.send_multicast = AsyncMock(side_effect=RuntimeError("FCM down"))
        dispatcher = NotificationDispatcher(max_concurrency=2, transport=transport)

        task = dispatcher.submit(PushMessage(["a"], "t", "b"))
        await dispatcher.drain()

        assert task.result() == 0
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        running = 0
        peak = 0

        async def slow_send(tokens, title, body, data):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return MulticastResult(len(tokens), 0)

        transport = MagicMock()
        transport.send_multicast = slow_send
        dispatcher = NotificationDispatcher(max_concurrency=2, transport=transport)

        tasks = [dispatcher.submit(PushMessage([f"t{i}"], "t", "b")) for i in range(5)]
        await dispatcher.drain()

        assert peak == 2
        assert [t.result() for t in tasks] == [1] * 5


class TestDevices:
    def _camera(self, db, user_id, address):
        cam = Camera(name=address, inbound_email_address=address, user_id=user_id)
        db.add(cam)
        db.commit()
        return cam

    def test_register_is_idempotent_per_user_and_token(self, db):
        first = register_device(db, "user-1", "tok", "Phone")
        second = register_device(db, "user-1", "tok", "Renamed phone",
                                 notify_only_on_animal_detection=True)

        assert first.id == second.id
        assert second.name == "Renamed phone"
        assert second.notify_only_on_animal_detection is True
        assert len(list_user_devices(db, "user-1")) == 1

    def test_subscriptions_limited_to_own_cameras(self, db):
        own = self._camera(db, "user-1", "own@app.trapcam.net")
        foreign = self._camera(db, "user-2", "foreign@app.trapcam.net")

        device = register_device(db, "user-1", "tok", "Phone", camera_ids=[own.id, foreign.id])
        assert [c.id for c in device.subscribed_cameras] == [own.id]

        device = update_device_subscriptions(db, "user-1", device.id, [])
        assert device.subscribed_cameras == []

    def test_other_users_device_not_found(self, db):
        device = register_device(db, "user-1", "tok", "Phone")
        with pytest.raises(DeviceNotFoundError):
            delete_device(db, "user-2", device.id)
        with pytest.raises(DeviceNotFoundError):
            update_device_subscriptions(db, "user-2", device.id, [])

    def test_delete(self, db):
        device = register_device(db, "user-1", "tok", "Phone")
        delete_device(db, "user-1", device.id)
        assert list_user_devices(db, "user-1") == []
