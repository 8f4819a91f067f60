# trapcam/models/animal.py
"""
Animal taxonomy catalog. The primary key may come from the recognition
service (its stable species uuid) so repeated detections reuse one row.
"""

from sqlalchemy import Column, String, Uuid
from trapcam.database import Base
from trapcam.models.types import UtcDateTime, new_id, utcnow

UNKNOWN = "unknown"


class Animal(Base):
    __tablename__ = "animals"

    id = Column(Uuid, primary_key=True, default=new_id)
    animal_class = Column("class", String(100), nullable=False)
    order = Column(String(100), nullable=False)
    family = Column(String(100), nullable=False)
    genus = Column(String(100))
    species_name = Column(String(200))
    common_name = Column(String(200), nullable=False)
    created = Column(UtcDateTime, nullable=False, default=utcnow)
    updated = Column(UtcDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Animal {self.id} {self.common_name}>"
