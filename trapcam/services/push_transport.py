# trapcam/services/push_transport.py
"""
Push transport — Firebase Cloud Messaging multicast.

The firebase-admin SDK is blocking, so send_multicast() runs it in a worker
thread. Credentials come from FIREBASE_SERVICE_ACCOUNT_KEY_PATH, or from
Application Default Credentials when only FIREBASE_PROJECT_ID is set.
"""

import asyncio
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

import firebase_admin
from firebase_admin import credentials, messaging

from trapcam.config import settings
from trapcam.utils.logger import get_logger

logger = get_logger(__name__)

FIREBASE_APP_NAME = "trapcam"


@dataclass
class MulticastResult:
    success_count: int
    failure_count: int
    errors: list[tuple[str, str]] = field(default_factory=list)   # (token, error)


class FcmPushTransport:
    def __init__(self, app):
        self.app = app

    def _send_blocking(self, tokens: list[str], title: str, body: str,
                       data: dict[str, str]) -> MulticastResult:
        message = messaging.MulticastMessage(
            tokens=tokens,
            notification=messaging.Notification(title=title, body=body),
            data=data,
        )
        response = messaging.send_each_for_multicast(message, app=self.app)

        errors = []
        for token, item in zip(tokens, response.responses):
            if not item.success:
                errors.append((token, str(item.exception)))
        return MulticastResult(
            success_count=response.success_count,
            failure_count=response.failure_count,
            errors=errors,
        )

    async def send_multicast(self, tokens: list[str], title: str, body: str,
                             data: dict[str, str]) -> MulticastResult:
        return await asyncio.to_thread(self._send_blocking, tokens, title, body, data)


def _firebase_app():
    try:
        return firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        pass

    if settings.FIREBASE_SERVICE_ACCOUNT_KEY_PATH:
        cred = credentials.Certificate(settings.FIREBASE_SERVICE_ACCOUNT_KEY_PATH)
    else:
        cred = credentials.ApplicationDefault()
    options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
    logger.info(f"[PUSH] Initialising Firebase app (project={settings.FIREBASE_PROJECT_ID})")
    return firebase_admin.initialize_app(cred, options, name=FIREBASE_APP_NAME)


@lru_cache(maxsize=1)
def get_push_transport() -> Optional[FcmPushTransport]:
    """FCM transport, or None when Firebase is not configured or fails to initialise."""
    if not settings.push_enabled:
        return None
    try:
        return FcmPushTransport(_firebase_app())
    except (ValueError, OSError) as e:
        logger.error(f"[PUSH] Firebase initialisation failed, push disabled: {e}")
        return None
