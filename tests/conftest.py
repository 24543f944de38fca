from collections.abc import Callable, Iterator
from pathlib import Path

import orjson
import pytest

from amanuensis.reference import CreatureTable, TrainerTable
from amanuensis.scanner import LogScanner
from amanuensis.store import Store

TRAINER_FIXTURE = {
    "¥You seem to fight more effectively now.": {
        "trainer": "Evus",
        "profession": "Fighter",
        "effective_rank_multiplier": 1.1436,
        "combo_components": ["Aktur", "Atkia"],
    },
    "¥You notice your balance recovering more quickly.": {
        "trainer": "Regia",
        "profession": "Fighter",
    },
    "¥You notice yourself healing others faster.": {
        "trainer": "Faustus",
        "profession": "Healer",
    },
    "Things appear a bit more clearly, now.": {"trainer": "Seel", "profession": "Mystic"},
    "¥Your combat ability improves.": {"trainer": "Bangus Anmash", "profession": "Ranger"},
    "¥You feel the blood answer your call.": {"trainer": "Posuhm", "profession": "Bloodmage"},
    "¥You feel your resolve strengthen.": {"trainer": "Forvyola", "profession": "Champion"},
    "¥You feel more fluent.": {"trainer": "ParTroon", "profession": "Language"},
}

CREATURE_FIXTURE = {
    "Rat": 2,
    "Vermine": 5,
    "Orga Anger": 60,
    "Ramandu": 666,
    "the Ramandu": 2620,
}

type LogWriter = Callable[..., Path]


@pytest.fixture
def trainers() -> TrainerTable:
    return TrainerTable.from_json_bytes(orjson.dumps(TRAINER_FIXTURE))


@pytest.fixture
def creatures() -> CreatureTable:
    return CreatureTable(CREATURE_FIXTURE)


@pytest.fixture
def store(tmp_path: Path) -> Iterator[Store]:
    db = Store(tmp_path / "amanuensis.db")
    yield db
    db.close()


@pytest.fixture
def scanner(store: Store, creatures: CreatureTable, trainers: TrainerTable) -> LogScanner:
    return LogScanner(store, creatures=creatures, trainers=trainers)


@pytest.fixture
def logs_root(tmp_path: Path) -> Path:
    root = tmp_path / "Text Logs"
    root.mkdir()
    return root


@pytest.fixture
def write_log(logs_root: Path) -> LogWriter:
    """Cria ``<logs_root>/<pasta>/CL Log <data>.txt`` com as linhas dadas.

    ``lines`` pode ser uma lista de str (gravada em UTF-8) ou bytes ja prontos.
    """

    def _write(
        folder: str,
        lines: list[str] | bytes,
        stamp: str = "2024-01-01 10.00.00",
        root: Path | None = None,
    ) -> Path:
        char_dir = (root or logs_root) / folder
        char_dir.mkdir(parents=True, exist_ok=True)
        path = char_dir / f"CL Log {stamp}.txt"
        data = lines if isinstance(lines, bytes) else ("\n".join(lines) + "\n").encode("utf-8")
        path.write_bytes(data)
        return path

    return _write


def add_character(store: Store, name: str, **counters: int) -> int:
    """Cria um personagem com contadores ja preenchidos."""
    char_id = store.get_or_create_character(name)
    for counter, amount in counters.items():
        store.increment_counter(char_id, counter, amount)
    return char_id
