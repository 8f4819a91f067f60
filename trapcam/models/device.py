# trapcam/models/device.py
"""
Push notification targets (FCM tokens) and their camera subscriptions.
A device is identified by (user_id, fcm_token).
"""

from sqlalchemy import Boolean, Column, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from trapcam.database import Base
from trapcam.models.camera import device_cameras
from trapcam.models.types import UtcDateTime, new_id, utcnow


class Device(Base):
    __tablename__ = "devices"
    __table_args__ = (UniqueConstraint("user_id", "fcm_token", name="uq_devices_user_token"),)

    id = Column(Uuid, primary_key=True, default=new_id)
    fcm_token = Column(String(512), nullable=False)
    name = Column(String(100), nullable=False)
    user_id = Column(String(128), nullable=False, index=True)
    notify_only_on_animal_detection = Column(Boolean, nullable=False, default=False)
    created = Column(UtcDateTime, nullable=False, default=utcnow)
    updated = Column(UtcDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    subscribed_cameras = relationship("Camera", secondary=device_cameras,
                                      back_populates="subscribed_devices")

    def __repr__(self):
        return f"<Device {self.id} user={self.user_id} name={self.name}>"
