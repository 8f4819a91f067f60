# trapcam/exceptions.py
"""
Domain errors raised by the services. Routers map them to HTTP status codes;
anything else reaches the global handler in main.py as a 500.
"""


class TrapCamError(Exception):
    """Base class for all TrapCam domain errors."""


class InboundValidationError(TrapCamError):
    """Inbound email is missing a required field."""


class CameraNotFoundError(TrapCamError):
    def __init__(self, lookup: str):
        super().__init__(f"No camera found with email: {lookup}")
        self.lookup = lookup


class DeviceNotFoundError(TrapCamError):
    def __init__(self, device_id, user_id: str):
        super().__init__(f"Device with ID {device_id} not found for user {user_id}")
        self.device_id = device_id
        self.user_id = user_id


class BlobStoreError(TrapCamError):
    """Upload, download or presign against the blob store failed."""


class BlobNotFoundError(BlobStoreError):
    def __init__(self, bucket: str, key: str):
        super().__init__(f"Object not found: {bucket}/{key}")
        self.bucket = bucket
        self.key = key
