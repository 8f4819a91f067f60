# tests/test_image_service.py
"""Tests for the image ingestion pipeline: upload -> persist -> detect -> notify."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import base64
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from botocore.exceptions import ClientError
from trapcam.models import Device, Image
from trapcam.services.image_service import decode_image_base64, ingest_image
from trapcam.services.species_detection import Detection

JPEG = b"\xff\xd8\xff\xe0fake-jpeg-bytes\xff\xd9"
FOX_ID = "6f1c1f6e-8d43-4c39-9a51-2a1f0c9d2b11"
CAPTURED = datetime(2025, 7, 1, 5, 30, tzinfo=timezone.utc)

DISPATCHER = "trapcam.services.image_service.get_dispatcher"


def fox(confidence=87.5):
    return Detection(species_id="12", confidence=confidence, external_id=FOX_ID,
                     common_name="Red fox", class_name="mammalia")


class TestDecode:
    def test_data_url_prefix_stripped(self):
        text = "data:image/jpeg;base64," + base64.b64encode(JPEG).decode()
        assert decode_image_base64(text) == JPEG

    def test_plain_base64(self):
        assert decode_image_base64(base64.b64encode(JPEG).decode()) == JPEG

    @pytest.mark.parametrize("text", ["", "   ", "data:image/jpeg;base64,!!!not-base64!!!"])
    def test_invalid_raises_value_error(self, text):
        with pytest.raises(ValueError):
            decode_image_base64(text)


class TestIngestImage:
    @pytest.mark.asyncio
    async def test_detected_animal_sets_highlight(self, db, camera, blob_store, s3_client,
                                                  fake_detection):
        client = fake_detection([fox(), fox(confidence=60.0)])
        with patch(DISPATCHER) as dispatcher:
            image = await ingest_image(db, camera, JPEG, CAPTURED, detection_client=client)

        assert image.highlight is True
        assert [a.common_name for a in image.animals] == ["Red fox"]
        assert image.image_date == CAPTURED
        assert image.s3_key.startswith(f"{camera.id}/") and image.s3_key.endswith(".image.jpg")
        assert s3_client.objects[("image", image.s3_key)] == JPEG
        assert client.calls == [(JPEG, "SE")]
        dispatcher.return_value.submit.assert_not_called()   # nobody subscribed

    @pytest.mark.asyncio
    async def test_no_detections_leaves_highlight_false(self, db, camera, blob_store,
                                                        fake_detection):
        image = await ingest_image(db, camera, JPEG, CAPTURED, detection_client=fake_detection())
        assert image.highlight is False
        assert image.animals == []

    @pytest.mark.asyncio
    async def test_detection_failure_returns_image_unmodified(self, db, camera, blob_store,
                                                              fake_detection):
        client = fake_detection(error=RuntimeError("recognition server exploded"))
        with patch(DISPATCHER) as dispatcher:
            image = await ingest_image(db, camera, JPEG, CAPTURED, detection_client=client)

        assert image is not None
        assert image.highlight is False
        assert image.animals == []
        assert db.query(Image).count() == 1
        dispatcher.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_failure_returns_none(self, db, camera, blob_store, s3_client,
                                               fake_detection):
        s3_client.put_object = MagicMock(side_effect=ClientError(
            {"Error": {"Code": "ServiceUnavailable", "Message": "down"}}, "PutObject"))
        client = fake_detection([fox()])

        assert await ingest_image(db, camera, JPEG, CAPTURED, detection_client=client) is None
        assert db.query(Image).count() == 0
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_notification_handed_to_dispatcher(self, db, camera, blob_store, fake_detection):
        db.add(Device(fcm_token="token-abcdefghijkl", name="Phone", user_id="user-1",
                      subscribed_cameras=[camera]))
        db.commit()

        with patch(DISPATCHER) as dispatcher:
            await ingest_image(db, camera, JPEG, CAPTURED, detection_client=fake_detection([fox()]))

        message = dispatcher.return_value.submit.call_args.args[0]
        assert message.tokens == ["token-abcdefghijkl"]
        assert message.title == "New image from Meadow cam"
        assert message.body == "Animals detected: Red fox"
