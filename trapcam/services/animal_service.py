# trapcam/services/animal_service.py
"""
Animal catalog — maps detections onto Animal rows and handles bulk import.

A detection carrying the service's species uuid reuses the Animal with that
id. Two ingestions may race to create the same new species; the primary key
decides, and the loser re-reads the winner's row.
"""

import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from trapcam.models.animal import UNKNOWN, Animal
from trapcam.services.species_detection import Detection
from trapcam.utils.logger import get_logger

logger = get_logger(__name__)

IMPORT_FIELD_COUNT = 7


def animal_id_from_external(external_id: Optional[str]) -> Optional[uuid.UUID]:
    if not external_id:
        return None
    try:
        return uuid.UUID(str(external_id))
    except ValueError:
        return None


def resolve_detection(db: Session, detection: Detection) -> Animal:
    """Existing Animal for the detection's species, or a newly created one."""
    animal_id = animal_id_from_external(detection.external_id)

    if animal_id is not None:
        animal = db.get(Animal, animal_id)
        if animal is not None:
            logger.debug(f"[ANIMAL] Found existing animal {animal_id}")
            return animal

    animal = Animal(
        id=animal_id or uuid.uuid4(),
        animal_class=detection.class_name or UNKNOWN,
        order=detection.order_name or UNKNOWN,
        family=detection.family_name or UNKNOWN,
        genus=detection.genus,
        species_name=detection.species_id,
        common_name=detection.common_name or UNKNOWN,
    )
    db.add(animal)
    try:
        db.commit()
    except IntegrityError:
        # Another ingestion created this species first
        db.rollback()
        existing = db.get(Animal, animal.id)
        if existing is None:
            raise
        logger.info(f"[ANIMAL] {animal.id} created concurrently, reusing existing row")
        return existing

    logger.info(f"[ANIMAL] Created new animal: {animal.common_name} ({animal.id})")
    return animal


def list_animals(db: Session) -> list[Animal]:
    return db.query(Animal).order_by(Animal.common_name).all()


def get_animal(db: Session, animal_id: uuid.UUID) -> Optional[Animal]:
    return db.get(Animal, animal_id)


def import_animals(db: Session, lines: list[str]) -> int:
    """
    Bulk import "id;class;order;family;genus;species;common name" lines.
    Existing ids are updated in place. Returns the number of imported lines.
    """
    imported = 0
    for line in lines:
        parts = [p.strip() for p in line.split(";")]
        if len(parts) < IMPORT_FIELD_COUNT:
            logger.warning(f"[ANIMAL] Skipping line with insufficient data: {line!r}")
            continue
        try:
            animal_id = uuid.UUID(parts[0])
        except ValueError:
            logger.warning(f"[ANIMAL] Skipping line with invalid id: {line!r}")
            continue

        fields = dict(
            animal_class=parts[1],
            order=parts[2],
            family=parts[3],
            genus=parts[4] or None,
            species_name=parts[5] or None,
            common_name=parts[6],
        )
        animal = db.get(Animal, animal_id)
        if animal is not None:
            logger.debug(f"[ANIMAL] {animal_id} already exists, updating")
            for name, value in fields.items():
                setattr(animal, name, value)
        else:
            db.add(Animal(id=animal_id, **fields))
        imported += 1

    db.commit()
    logger.info(f"[ANIMAL] Imported {imported}/{len(lines)} lines")
    return imported
