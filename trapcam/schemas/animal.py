# trapcam/schemas/animal.py
from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID


class AnimalOut(BaseModel):
    id: UUID
    animal_class: str = Field(..., serialization_alias="class")
    order: str
    family: str
    genus: Optional[str]
    species_name: Optional[str]
    common_name: str

    class Config:
        from_attributes = True


class AnimalImportRequest(BaseModel):
    lines: list[str]


class AnimalImportResult(BaseModel):
    imported: int
    total: int
