import pytest

from amanuensis.errors import ReferenceDataError
from amanuensis.reference import CreatureTable, TrainerTable


def test_creature_value_boss_fallback():
    table = CreatureTable({"Ramandu": 666, "Greater Death": 300, "the Ramandu": 2620})

    assert table.value("the Ramandu") == 2620
    assert table.value("the Greater Death") == 300
    assert table.value("Unicorn") is None


def test_creature_csv_rejects_bad_value():
    with pytest.raises(ReferenceDataError):
        CreatureTable.from_csv_bytes(b"Rat,2\nVermine,lots\n")


def test_trainer_table_rejects_invalid_json():
    with pytest.raises(ReferenceDataError):
        TrainerTable.from_json_bytes(b"{not json")


def test_trainer_metadata(trainers):
    # Act
    evus = trainers.info("Evus")

    # Assert
    assert evus is not None
    assert evus.is_combo
    assert trainers.combo_components("Evus") == ("Aktur", "Atkia")
    assert trainers.multiplier("Evus") == pytest.approx(1.1436)
    assert trainers.multiplier("Regia") == 1.0
    assert trainers.profession("Seel") == "Mystic"
    assert trainers.profession("Nobody") is None


def test_trainer_lookup_period_fallback(trainers):
    assert trainers.trainer_for("Things appear a bit more clearly, now") == "Seel"
    assert trainers.trainer_for("¥Your combat ability improves") == "Bangus Anmash"
    assert trainers.trainer_for("You feel hungry.") is None


def test_catalog_filters_by_profession(trainers):
    names = [t.name for t in trainers.catalog("fighter")]

    assert names == ["Evus", "Regia"]


def test_bundled_tables_load():
    """Os arquivos empacotados precisam carregar e conter os treinadores base."""
    # Act
    trainers = TrainerTable.bundled()
    creatures = CreatureTable.bundled()

    # Assert
    assert trainers.trainer_for("¥You seem to fight more effectively now.") == "Evus"
    assert trainers.profession("Faustus") == "Healer"
    assert creatures.value("Rat") == 2
    assert creatures.value("the Ramandu") == 2620
