# tests/test_animal_service.py
"""Unit tests for the animal catalog (detection -> Animal resolution, import)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import uuid
import pytest
from unittest.mock import MagicMock
from sqlalchemy.exc import IntegrityError
from trapcam.models.animal import Animal
from trapcam.services.animal_service import (
    animal_id_from_external,
    import_animals,
    list_animals,
    resolve_detection,
)
from trapcam.services.species_detection import Detection

FOX_ID = "6f1c1f6e-8d43-4c39-9a51-2a1f0c9d2b11"


def make_detection(external_id=FOX_ID, **kwargs):
    fields = dict(species_id="12", confidence=90.0, external_id=external_id,
                  common_name="Red fox", class_name="mammalia")
    fields.update(kwargs)
    return Detection(**fields)


class TestResolveDetection:
    def test_existing_animal_reused(self):
        existing = Animal(id=uuid.UUID(FOX_ID), common_name="Red fox")
        db = MagicMock()
        db.get.return_value = existing

        assert resolve_detection(db, make_detection()) is existing
        db.add.assert_not_called()

    def test_new_animal_gets_unknown_substitutes(self, db):
        animal = resolve_detection(db, make_detection(class_name=None, common_name=None))

        assert animal.id == uuid.UUID(FOX_ID)
        assert animal.animal_class == "unknown"
        assert animal.order == "unknown"
        assert animal.family == "unknown"
        assert animal.common_name == "unknown"
        assert animal.species_name == "12"

    def test_unparseable_external_id_gets_fresh_key(self, db):
        animal = resolve_detection(db, make_detection(external_id="species-12"))
        assert animal.id != uuid.UUID(FOX_ID)
        assert db.query(Animal).count() == 1

    def test_same_species_twice_creates_one_row(self, db):
        first = resolve_detection(db, make_detection())
        second = resolve_detection(db, make_detection(confidence=55.0))

        assert first.id == second.id
        assert db.query(Animal).count() == 1

    def test_concurrent_insert_refetches_winner(self):
        winner = Animal(id=uuid.UUID(FOX_ID), common_name="Red fox")
        db = MagicMock()
        db.get.side_effect = [None, winner]
        db.commit.side_effect = IntegrityError("INSERT INTO animals", {}, Exception("duplicate key"))

        assert resolve_detection(db, make_detection()) is winner
        db.rollback.assert_called_once()

    def test_integrity_error_without_winner_propagates(self):
        db = MagicMock()
        db.get.return_value = None
        db.commit.side_effect = IntegrityError("INSERT INTO animals", {}, Exception("other"))

        with pytest.raises(IntegrityError):
            resolve_detection(db, make_detection())


class TestImport:
    def test_import_creates_updates_and_skips(self, db):
        lines = [
            f"{FOX_ID};mammalia;carnivora;canidae;vulpes;vulpes;Red fox",
            "not-a-uuid;mammalia;carnivora;canidae;vulpes;vulpes;Fox",
            "too;few;fields",
            "1b9d6bcd-bbfd-4b2d-9b5d-ab8dfbbd4bed;aves;strigiformes;strigidae;bubo;bubo;Eurasian eagle-owl",
        ]
        assert import_animals(db, lines) == 2

        updated = [f"{FOX_ID};mammalia;carnivora;canidae;vulpes;vulpes;Fox (updated)"]
        assert import_animals(db, updated) == 1

        names = [a.common_name for a in list_animals(db)]
        assert names == ["Eurasian eagle-owl", "Fox (updated)"]


def test_animal_id_from_external():
    assert animal_id_from_external(FOX_ID) == uuid.UUID(FOX_ID)
    assert animal_id_from_external("12") is None
    assert animal_id_from_external(None) is None
