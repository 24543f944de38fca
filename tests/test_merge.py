import pytest

from amanuensis.errors import DataError, MergeError
from amanuensis.events import LastyType
from amanuensis.store import KillField
from conftest import add_character

pytestmark = pytest.mark.store


def _snapshot(store):
    rows = store.conn.execute("SELECT id, merged_into, logins, coin_level FROM characters ORDER BY id")
    return [tuple(row) for row in rows]


def test_merge_unmerge_round_trip(store):
    """
    T.logins=10 e S.logins=5: depois do merge a visao agregada de T mostra 15;
    depois do unmerge cada um volta a mostrar os proprios valores.
    """
    # Arrange
    target = add_character(store, "Fen", logins=10)
    source = add_character(store, "Fenny", logins=5)

    # Act
    store.merge_characters([source], target)
    merged = store.get_character_merged(target)

    # Assert
    assert merged.logins == 15
    assert store.get_character_by_id(target).logins == 10

    # Act
    store.unmerge_character(source)

    # Assert
    assert store.get_character_merged(target).logins == 10
    assert store.get_character_merged(source).logins == 5
    assert store.get_merge_sources(target) == []


@pytest.mark.parametrize("case", ["self", "source_already_merged", "target_merged"])
def test_merge_validation_leaves_rows_untouched(store, case):
    # Arrange
    a = add_character(store, "Aria", logins=1)
    b = add_character(store, "Bran", logins=2)
    c = add_character(store, "Cole", logins=3)
    store.merge_characters([b], a)
    before = _snapshot(store)
    sources, target = {
        "self": ([c, a], a),
        "source_already_merged": ([c, b], a),
        "target_merged": ([c], b),
    }[case]

    # Act
    with pytest.raises(MergeError):
        store.merge_characters(sources, target)

    # Assert
    assert _snapshot(store) == before


def test_merge_rejects_source_that_is_a_target(store):
    a = add_character(store, "Aria")
    b = add_character(store, "Bran")
    c = add_character(store, "Cole")
    store.merge_characters([c], b)

    with pytest.raises(MergeError):
        store.merge_characters([b], a)


def test_merge_errors_are_data_errors(store):
    a = add_character(store, "Aria")

    with pytest.raises(DataError):
        store.merge_characters([a], a)
    with pytest.raises(MergeError):
        store.unmerge_character(a)
    with pytest.raises(MergeError):
        store.merge_characters([], a)


def test_merged_reads_combine_per_entity(store):
    """Kills somam, ranks somam, lasty faz OR no finished, pets deduplicam pelo nome."""
    # Arrange
    fen = add_character(store, "Fen")
    alt = add_character(store, "Fen Alt")
    for char_id, date in [(fen, "2024-01-05 10:00:00"), (alt, "2023-06-01 10:00:00")]:
        store.upsert_kill(char_id, "Rat", KillField.KILLED, 2, date)
        store.upsert_trainer_rank(char_id, "Evus", date)
        store.upsert_pet(char_id, "Squeak", "Rat")
        store.update_start_date(char_id, date)
    store.upsert_lasty(fen, "Vermine", LastyType.BEFRIEND, "2024-01-05 10:00:00")
    store.finish_lasty(alt, "Vermine", LastyType.BEFRIEND, "2023-06-01 10:00:00")

    # Act
    store.merge_characters([alt], fen)

    # Assert
    (kill,) = store.get_kills_merged(fen)
    assert kill.killed_count == 2
    assert kill.date_first == "2023-06-01 10:00:00"
    assert kill.date_last == "2024-01-05 10:00:00"

    (trainer,) = store.get_trainers_merged(fen)
    assert trainer.ranks == 2
    assert trainer.date_of_last_rank == "2024-01-05 10:00:00"

    (lasty,) = store.get_lastys_merged(fen)
    assert lasty.finished
    assert lasty.message_count == 2
    assert lasty.first_seen_date == "2023-06-01 10:00:00"

    assert [p.pet_name for p in store.get_pets_merged(fen)] == ["Squeak"]
    assert store.get_character_merged(fen).start_date == "2023-06-01 10:00:00"
    assert store.get_character_by_id(fen).coin_level == 2


def test_unmerge_recomputes_former_target(store):
    fen = add_character(store, "Fen")
    alt = add_character(store, "Fen Alt")
    store.upsert_trainer_rank(fen, "Evus", None)
    store.set_modified_ranks(alt, "Regia", 30)
    store.merge_characters([alt], fen)
    assert store.get_character_by_id(fen).coin_level == 31

    store.unmerge_character(alt)

    assert store.get_character_by_id(fen).coin_level == 1
    assert store.get_character_by_id(alt).coin_level == 30


def test_merged_character_is_hidden_and_redirected(store):
    fen = add_character(store, "Fen")
    alt = add_character(store, "Fen Alt")
    store.merge_characters([alt], fen)

    assert [c.name for c in store.list_characters()] == ["Fen"]
    assert store.get_merged_into_name(alt) == "Fen"
    with pytest.raises(DataError, match="merged into 'Fen'"):
        store.require_character("fen alt")
