# trapcam/routers/animals.py
"""Animal taxonomy catalog."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from trapcam.database import get_db
from trapcam.routers.deps import get_current_user_id
from trapcam.schemas.animal import AnimalImportRequest, AnimalImportResult, AnimalOut
from trapcam.services import animal_service

router = APIRouter(dependencies=[Depends(get_current_user_id)])


@router.get("/animals", response_model=list[AnimalOut])
def list_animals(db: Session = Depends(get_db)):
    return animal_service.list_animals(db)


@router.get("/animals/{animal_id}", response_model=AnimalOut)
def get_animal(animal_id: UUID, db: Session = Depends(get_db)):
    animal = animal_service.get_animal(db, animal_id)
    if not animal:
        raise HTTPException(status_code=404, detail="Animal not found")
    return animal


@router.post("/animals/import", response_model=AnimalImportResult,
             summary="Bulk import 'id;class;order;family;genus;species;common name' lines")
def import_animals(body: AnimalImportRequest, db: Session = Depends(get_db)):
    lines = [line for line in body.lines if line.strip()]
    if not lines:
        raise HTTPException(status_code=400, detail="No data provided")
    imported = animal_service.import_animals(db, lines)
    return AnimalImportResult(imported=imported, total=len(lines))
