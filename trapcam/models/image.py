# trapcam/models/image.py
"""
Images captured by a camera, with the animals detected on them.
highlight is set once at least one animal cleared the confidence threshold.
"""

from sqlalchemy import Boolean, Column, ForeignKey, String, Table, Uuid
from sqlalchemy.orm import relationship
from trapcam.database import Base
from trapcam.models.types import UtcDateTime, new_id, utcnow

image_animals = Table(
    "image_animals",
    Base.metadata,
    Column("image_id", Uuid, ForeignKey("images.id", ondelete="CASCADE"), primary_key=True),
    Column("animal_id", Uuid, ForeignKey("animals.id"), primary_key=True),
)


class Image(Base):
    __tablename__ = "images"

    id = Column(Uuid, primary_key=True, default=new_id)
    camera_id = Column(Uuid, ForeignKey("cameras.id", ondelete="CASCADE"), nullable=False, index=True)
    s3_key = Column(String(512), nullable=False)
    image_date = Column(UtcDateTime, nullable=False, index=True)
    highlight = Column(Boolean, nullable=False, default=False)
    created = Column(UtcDateTime, nullable=False, default=utcnow)
    updated = Column(UtcDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    camera = relationship("Camera", back_populates="images")
    animals = relationship("Animal", secondary=image_animals, lazy="selectin")

    def __repr__(self):
        return f"<Image {self.id} cam={self.camera_id} highlight={self.highlight}>"
