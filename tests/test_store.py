import sqlite3

import pytest

from amanuensis.errors import DataError
from amanuensis.events import KillVerb, LastyType
from amanuensis.schema import SCAN_PRAGMAS
from amanuensis.store import CharacterCounter, KillField, Store
from conftest import add_character

pytestmark = pytest.mark.store


def test_character_lookup_ignores_case(store):
    char_id = store.get_or_create_character("Fen")

    assert store.get_or_create_character("fen") == char_id
    assert store.get_character("FEN").id == char_id


def test_increment_counter_rejects_unknown_field(store):
    """Um contador fora do enum e erro de dados e nada e alterado."""
    # Arrange
    char_id = store.get_or_create_character("Fen")

    # Act / Assert
    with pytest.raises(DataError):
        store.increment_counter(char_id, "name", 1)
    assert store.get_character_by_id(char_id).name == "Fen"


def test_increment_counter_accepts_enum_and_column_name(store):
    char_id = store.get_or_create_character("Fen")

    store.increment_counter(char_id, CharacterCounter.DEATHS)
    store.increment_counter(char_id, "deaths", 2)

    assert store.get_character_by_id(char_id).deaths == 3


def test_depart_absolute_and_first_depart_increment(store):
    char_id = store.get_or_create_character("Fen")

    store.increment_counter(char_id, CharacterCounter.DEPARTS)
    store.set_departs(char_id, 40)
    store.set_departs(char_id, 12)

    assert store.get_character_by_id(char_id).departs == 12


def test_start_date_keeps_earliest(store):
    char_id = store.get_or_create_character("Fen")

    store.update_start_date(char_id, "2024-03-01 10:00:00")
    store.update_start_date(char_id, "2023-01-01 09:00:00")
    store.update_start_date(char_id, "2025-01-01 09:00:00")

    assert store.get_character_by_id(char_id).start_date == "2023-01-01 09:00:00"


def test_upsert_kill_counts_and_dates(store):
    # Arrange
    char_id = store.get_or_create_character("Fen")
    solo = KillField.for_verb(KillVerb.SLAUGHTERED, assisted=False)
    assisted = KillField.for_verb(KillVerb.KILLED, assisted=True)

    # Act
    store.upsert_kill(char_id, "Rat", solo, 2, "2024-01-02 10:00:00")
    store.upsert_kill(char_id, "Rat", solo, 2, "2024-01-01 10:00:00")
    store.upsert_kill(char_id, "Rat", assisted, 2, None)

    # Assert
    (kill,) = store.get_kills(char_id)
    assert kill.slaughtered_count == 2
    assert kill.assisted_kill_count == 1
    assert kill.solo_total == 2
    assert kill.total == 3
    assert kill.date_first == "2024-01-01 10:00:00"
    assert kill.date_last == "2024-01-02 10:00:00"
    assert kill.date_last_slaughtered == "2024-01-02 10:00:00"


def test_highest_kill_uses_solo_count_times_value(store):
    """Rat (2) x10 = 20 vence Vermine (5) x3 = 15."""
    # Arrange
    char_id = store.get_or_create_character("Fen")
    for _ in range(10):
        store.upsert_kill(char_id, "Rat", KillField.KILLED, 2, None)
    for _ in range(3):
        store.upsert_kill(char_id, "Vermine", KillField.KILLED, 5, None)

    # Act
    highest = store.get_highest_kill(char_id)

    # Assert
    assert highest.creature_name == "Rat"
    assert highest.score == 20


def test_nemesis(store):
    char_id = store.get_or_create_character("Fen")
    store.upsert_kill(char_id, "Orga Anger", KillField.KILLED_BY, 0, None)
    store.upsert_kill(char_id, "Orga Anger", KillField.KILLED_BY, 0, None)
    store.upsert_kill(char_id, "Rat", KillField.KILLED_BY, 0, None)

    nemesis = store.get_nemesis(char_id)

    assert (nemesis.creature_name, nemesis.score) == ("Orga Anger", 2)
    assert store.get_highest_kill(char_id) is None


def test_apply_learning_full_and_unknown(store):
    char_id = store.get_or_create_character("Fen")

    store.upsert_trainer_rank(char_id, "Evus", "2024-01-01 10:00:00")
    store.upsert_apply_learning(char_id, "Evus", "2024-01-02 10:00:00", full=True)
    store.upsert_apply_learning(char_id, "Evus", None, full=False)

    (record,) = store.get_trainers(char_id)
    assert record.ranks == 1
    assert record.apply_learning_ranks == 10
    assert record.apply_learning_unknown_count == 1
    assert record.total_ranks == 11
    assert record.date_of_last_rank == "2024-01-02 10:00:00"
    assert record.effective_ranks(2.0) == 22


def test_set_modified_ranks_recomputes_coin_level(store):
    char_id = store.get_or_create_character("Fen")
    store.upsert_trainer_rank(char_id, "Evus", None)

    store.set_modified_ranks(char_id, "Evus", 40)
    store.set_modified_ranks(char_id, "Regia", 9)

    assert store.get_character_by_id(char_id).coin_level == 50


def test_set_modified_ranks_unknown_character(store):
    with pytest.raises(DataError):
        store.set_modified_ranks(999, "Evus", 1)


def test_lasty_lifecycle(store):
    """Estudo abandonado e retomado perde a marca de abandono; o completed fecha o mais recente."""
    # Arrange
    char_id = store.get_or_create_character("Fen")
    store.upsert_lasty(char_id, "Vermine", LastyType.BEFRIEND, "2024-01-01 10:00:00")
    store.abandon_lasty(char_id, "Vermine", "2024-01-02 10:00:00")
    store.upsert_lasty(char_id, "Vermine", LastyType.BEFRIEND, "2024-01-03 10:00:00")
    store.upsert_lasty(char_id, "Orga Anger", LastyType.MOVEMENTS, "2024-01-04 10:00:00")

    # Act
    completed = store.complete_latest_lasty(char_id, "2024-01-05 10:00:00")

    # Assert
    assert completed
    lastys = {lasty.creature_name: lasty for lasty in store.get_lastys(char_id)}
    assert lastys["Vermine"].abandoned_date is None
    assert lastys["Vermine"].message_count == 2
    assert not lastys["Vermine"].finished
    assert lastys["Orga Anger"].finished
    assert lastys["Orga Anger"].completed_date == "2024-01-05 10:00:00"


def test_finish_lasty_creates_row(store):
    char_id = store.get_or_create_character("Fen")

    store.finish_lasty(char_id, "Vermine", LastyType.MORPH, "2024-01-01 10:00:00")

    (lasty,) = store.get_lastys(char_id)
    assert lasty.finished
    assert lasty.lasty_type == "Morph"
    assert lasty.message_count == 1
    assert not store.complete_latest_lasty(char_id, None)


def test_finish_lasty_counts_the_finishing_message(store):
    char_id = store.get_or_create_character("Fen")

    store.upsert_lasty(char_id, "Vermine", LastyType.BEFRIEND, "2024-01-01 10:00:00")
    store.finish_lasty(char_id, "Vermine", LastyType.BEFRIEND, "2024-01-02 10:00:00")

    (lasty,) = store.get_lastys(char_id)
    assert lasty.finished
    assert lasty.message_count == 2
    assert lasty.completed_date == "2024-01-02 10:00:00"


def test_log_ledger_path_and_hash(store):
    char_id = store.get_or_create_character("Fen")

    store.mark_log_scanned(char_id, "/logs/Fen/CL Log 1.txt", "abc", "2024-01-01 00:00:00")

    assert store.is_log_scanned("/logs/Fen/CL Log 1.txt")
    assert not store.is_log_scanned("/logs/Fen/CL Log 2.txt")
    assert store.is_hash_scanned("abc")
    assert not store.is_hash_scanned("def")
    assert store.count_scanned_logs() == 1


def test_search_log_lines(store):
    if not store.fts_enabled:
        pytest.skip("SQLite sem FTS5")
    fen = store.get_or_create_character("Fen")
    other = store.get_or_create_character("Aria")
    store.insert_log_lines(
        [
            ("1/1/24 1:00:00p You killed a Rat.", fen, "2024-01-01 13:00:00", "a.txt"),
            ("1/1/24 1:00:01p You killed a Vermine.", other, "2024-01-01 13:00:01", "b.txt"),
        ]
    )

    everyone = store.search_log_lines("killed a")
    only_fen = store.search_log_lines("killed a", character_id=fen)

    assert len(everyone) == 2
    assert [hit.character_name for hit in only_fen] == ["Fen"]
    assert "<mark>" in only_fen[0].snippet


def test_transaction_rolls_back_on_error(store):
    char_id = store.get_or_create_character("Fen")

    with pytest.raises(RuntimeError):
        with store.transaction():
            store.increment_counter(char_id, CharacterCounter.LOGINS, 5)
            raise RuntimeError("boom")

    assert store.get_character_by_id(char_id).logins == 0
    assert not store.conn.in_transaction


def _pragmas(store):
    return {name: store.conn.execute(f"PRAGMA {name}").fetchone()[0] for name in SCAN_PRAGMAS}


def test_scan_transaction_restores_pragmas_after_commit(store):
    """Os cinco pragmas de escrita em lote voltam aos valores de antes do scan."""
    # Arrange
    before = _pragmas(store)

    # Act
    with store.scan_transaction():
        during = _pragmas(store)
        store.get_or_create_character("Fen")

    # Assert
    assert during["journal_mode"] == "wal"
    assert during["temp_store"] == 2
    assert _pragmas(store) == before
    assert store.get_character("Fen") is not None


def test_scan_transaction_restores_pragmas_on_error(store):
    before = _pragmas(store)

    with pytest.raises(sqlite3.OperationalError):
        with store.scan_transaction():
            store.conn.execute("SELECT * FROM no_such_table")

    assert _pragmas(store) == before
    assert not store.conn.in_transaction


def test_reset_keeps_rank_overrides(store):
    """Reset preserva personagens, merge e ranks informados; zera o resto."""
    # Arrange
    fen = add_character(store, "Fen", logins=10, deaths=3)
    alt = add_character(store, "Fen Alt", logins=5)
    store.upsert_kill(fen, "Rat", KillField.KILLED, 2, None)
    store.upsert_trainer_rank(fen, "Evus", None)
    store.upsert_trainer_rank(fen, "Faustus", None)
    store.set_modified_ranks(fen, "Evus", 20)
    store.update_profession(fen, "Fighter")
    store.update_profession(alt, "Healer")
    store.merge_characters([alt], fen)
    store.mark_log_scanned(fen, "x.txt", "h", "2024-01-01 00:00:00")

    # Act
    store.reset_log_data(preserve_rank_overrides=True)

    # Assert
    character = store.get_character_by_id(fen)
    assert character.logins == 0
    assert character.deaths == 0
    assert character.profession == "Fighter"
    assert character.coin_level == 20
    assert store.get_character_by_id(alt).profession == "Unknown"
    assert store.get_merge_sources(fen) == [alt]
    assert store.get_kills(fen) == []
    assert [(t.trainer_name, t.ranks, t.modified_ranks) for t in store.get_trainers(fen)] == [
        ("Evus", 0, 20)
    ]
    assert not store.is_log_scanned("x.txt")


def test_reset_everything(store):
    fen = add_character(store, "Fen", logins=1)
    store.set_modified_ranks(fen, "Evus", 20)

    store.reset_log_data(preserve_rank_overrides=False)

    assert store.list_characters() == []
    assert store.get_trainers(fen) == []


def test_store_reopens_existing_database(tmp_path):
    path = tmp_path / "again.db"
    with Store(path) as first:
        add_character(first, "Fen", logins=3)

    with Store(path) as second:
        assert second.get_character("Fen").logins == 3
