# trapcam/models/email_archive.py
"""
One row per ingested email. The body itself lives gzip-compressed in the
email archive bucket; s3_key is the unsuffixed key (reads fall back to .gz).
"""

from sqlalchemy import Column, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship
from trapcam.database import Base
from trapcam.models.types import UtcDateTime, new_id, utcnow


class EmailArchive(Base):
    __tablename__ = "email_archives"

    id = Column(Uuid, primary_key=True, default=new_id)
    camera_id = Column(Uuid, ForeignKey("cameras.id", ondelete="CASCADE"), nullable=False, index=True)
    date_time = Column(UtcDateTime, nullable=False, index=True)
    from_email = Column(String(256), nullable=False)
    from_name = Column(String(256))
    s3_key = Column(String(512), nullable=False)
    image_s3_key = Column(String(512))
    created = Column(UtcDateTime, nullable=False, default=utcnow)
    updated = Column(UtcDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    camera = relationship("Camera", back_populates="email_archives")

    def __repr__(self):
        return f"<EmailArchive {self.id} cam={self.camera_id} from={self.from_email}>"
