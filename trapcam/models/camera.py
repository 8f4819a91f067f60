# trapcam/models/camera.py
"""
Trail cameras. Each camera owns a generated inbound email address, its
latest battery reading and last-contact time. Images and archived emails
are deleted together with the camera.
"""

from sqlalchemy import Column, Float, ForeignKey, String, Table, Uuid
from sqlalchemy.orm import relationship
from trapcam.database import Base
from trapcam.models.battery import BatteryInfo
from trapcam.models.types import UtcDateTime, new_id, utcnow

device_cameras = Table(
    "device_cameras",
    Base.metadata,
    Column("device_id", Uuid, ForeignKey("devices.id", ondelete="CASCADE"), primary_key=True),
    Column("camera_id", Uuid, ForeignKey("cameras.id", ondelete="CASCADE"), primary_key=True),
)


class Camera(Base):
    __tablename__ = "cameras"

    id = Column(Uuid, primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    inbound_email_address = Column(String(100), unique=True, nullable=False, index=True)
    battery_raw_match = Column(String(200))
    battery_percentage = Column(Float)
    battery_voltage = Column(Float)
    last_contact = Column(UtcDateTime)
    user_id = Column(String(128), index=True)
    location_id = Column(Uuid, ForeignKey("locations.id", ondelete="SET NULL"))
    created = Column(UtcDateTime, nullable=False, default=utcnow)
    updated = Column(UtcDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    location = relationship("Location", lazy="joined")
    images = relationship("Image", back_populates="camera", cascade="all, delete-orphan")
    email_archives = relationship("EmailArchive", back_populates="camera",
                                  cascade="all, delete-orphan")
    subscribed_devices = relationship("Device", secondary=device_cameras,
                                      back_populates="subscribed_cameras")

    @property
    def battery_info(self):
        if self.battery_raw_match is None and self.battery_percentage is None \
                and self.battery_voltage is None:
            return None
        return BatteryInfo(
            raw_match=self.battery_raw_match or "",
            percentage=self.battery_percentage,
            voltage=self.battery_voltage,
        )

    @battery_info.setter
    def battery_info(self, info):
        self.battery_raw_match = info.raw_match if info else None
        self.battery_percentage = info.percentage if info else None
        self.battery_voltage = info.voltage if info else None

    @property
    def last_battery_state(self) -> int:
        """Legacy 0-100 integer view of the battery percentage."""
        return int(round(self.battery_percentage)) if self.battery_percentage is not None else 0

    def __repr__(self):
        return f"<Camera {self.id} name={self.name} address={self.inbound_email_address}>"
