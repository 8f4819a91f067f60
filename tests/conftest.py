# tests/conftest.py
"""
Shared fixtures. The environment is pinned before anything from trapcam is
imported so the settings object never points at a real database, bucket,
recognition server or Firebase project.
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

os.environ["DATABASE_URL"] = "sqlite://"
for _name in ("API_KEY", "ANIMAL_RECOGNITION_SERVER", "FIREBASE_PROJECT_ID",
              "FIREBASE_SERVICE_ACCOUNT_KEY_PATH", "S3_PUBLIC_URL"):
    os.environ.pop(_name, None)

import io
import pytest
from botocore.exceptions import ClientError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from trapcam.database import create_tables
from trapcam.models import Camera, Location
from trapcam.services.blob_store import BlobStore


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client calls BlobStore makes."""

    def __init__(self):
        self.objects = {}
        self.buckets = set()
        self.lifecycles = {}

    def put_object(self, Bucket, Key, Body, ContentType=None):
        self.objects[(Bucket, Key)] = Body

    def get_object(self, Bucket, Key):
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}

    def delete_object(self, Bucket, Key):
        self.objects.pop((Bucket, Key), None)

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return (f"http://minio:9000/{Params['Bucket']}/{Params['Key']}"
                f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=abc")

    def head_bucket(self, Bucket):
        if Bucket not in self.buckets:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadBucket")

    def create_bucket(self, Bucket):
        self.buckets.add(Bucket)

    def put_bucket_lifecycle_configuration(self, Bucket, LifecycleConfiguration):
        self.lifecycles[Bucket] = LifecycleConfiguration


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def blob_store(s3_client, monkeypatch):
    """BlobStore over the in-memory client, wired into every service that uploads."""
    store = BlobStore(s3_client, email_archive_bucket="emailarchive", image_bucket="image",
                      ttl_days={"emailarchive": 3, "image": 3})
    monkeypatch.setattr("trapcam.services.image_service.get_blob_store", lambda: store)
    monkeypatch.setattr("trapcam.services.email_archive_service.get_blob_store", lambda: store)
    return store


@pytest.fixture
def db_engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False},
                           poolclass=StaticPool)
    create_tables(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(db_engine):
    session = sessionmaker(bind=db_engine, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def camera(db):
    location = Location(name="North meadow", country_code="se", user_id="user-1")
    cam = Camera(name="Meadow cam", inbound_email_address="cam1@app.trapcam.net",
                 user_id="user-1", location=location)
    db.add(cam)
    db.commit()
    db.refresh(cam)
    return cam


class FakeDetectionClient:
    def __init__(self, detections=None, error=None):
        self.detections = detections or []
        self.error = error
        self.calls = []

    async def detect(self, image_bytes, country_hint):
        self.calls.append((image_bytes, country_hint))
        if self.error:
            raise self.error
        return list(self.detections)


@pytest.fixture
def fake_detection():
    return FakeDetectionClient
