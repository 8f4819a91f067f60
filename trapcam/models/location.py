# trapcam/models/location.py
"""
Camera locations. Only the country code matters to ingestion: it is the
country hint sent to the animal recognition service.
"""

from sqlalchemy import Column, String, Numeric, Uuid
from trapcam.database import Base
from trapcam.models.types import UtcDateTime, new_id, utcnow


class Location(Base):
    __tablename__ = "locations"

    id = Column(Uuid, primary_key=True, default=new_id)
    name = Column(String(100), nullable=False)
    note = Column(String(500), nullable=False, default="")
    lat = Column(Numeric(9, 6), nullable=False, default=0)
    long = Column(Numeric(9, 6), nullable=False, default=0)
    country_code = Column(String(2))          # ISO 3166-1 alpha-2, e.g. DK
    user_id = Column(String(128), index=True)
    created = Column(UtcDateTime, nullable=False, default=utcnow)
    updated = Column(UtcDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Location {self.id} name={self.name} country={self.country_code}>"
