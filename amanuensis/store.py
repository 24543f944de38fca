"""
Armazenamento SQLite das estatisticas por personagem.

Alem das primitivas de escrita usadas pelo scanner, expoe a relacao de
merge (``merged_into``) e as leituras "merged" que somam as linhas do
personagem principal com as de todos os personagens fundidos nele.
Merge/unmerge so mexem no ponteiro; nenhuma linha troca de dono.
"""

import logging
import sqlite3
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, replace
from enum import StrEnum
from itertools import batched
from pathlib import Path

from amanuensis import schema
from amanuensis.errors import DataError, MergeError
from amanuensis.events import KillVerb, LastyType

logger = logging.getLogger("amanuensis.store")

UNKNOWN_PROFESSION = "Unknown"
LOG_LINE_BATCH_SIZE = 1000
APPLY_LEARNING_FULL_RANKS = 10


class CharacterCounter(StrEnum):
    """Contadores incrementaveis da tabela ``characters`` (valor = coluna)."""

    LOGINS = "logins"
    DEPARTS = "departs"
    DEATHS = "deaths"
    ESTEEM = "esteem"
    COINS_PICKED_UP = "coins_picked_up"
    CHEST_COINS = "chest_coins"
    BOUNTY_COINS = "bounty_coins"
    FUR_COINS = "fur_coins"
    MANDIBLE_COINS = "mandible_coins"
    BLOOD_COINS = "blood_coins"
    FUR_WORTH = "fur_worth"
    MANDIBLE_WORTH = "mandible_worth"
    BLOOD_WORTH = "blood_worth"
    BELLS_USED = "bells_used"
    BELLS_BROKEN = "bells_broken"
    CHAINS_USED = "chains_used"
    CHAINS_BROKEN = "chains_broken"
    SHIELDSTONES_USED = "shieldstones_used"
    SHIELDSTONES_BROKEN = "shieldstones_broken"
    ETHEREAL_PORTALS = "ethereal_portals"
    EPS_BROKEN = "eps_broken"
    GOOD_KARMA = "good_karma"
    BAD_KARMA = "bad_karma"
    UNTRAINING_COUNT = "untraining_count"


class KillField(StrEnum):
    KILLED = "killed_count"
    SLAUGHTERED = "slaughtered_count"
    VANQUISHED = "vanquished_count"
    DISPATCHED = "dispatched_count"
    ASSISTED_KILL = "assisted_kill_count"
    ASSISTED_SLAUGHTER = "assisted_slaughter_count"
    ASSISTED_VANQUISH = "assisted_vanquish_count"
    ASSISTED_DISPATCH = "assisted_dispatch_count"
    KILLED_BY = "killed_by_count"

    @classmethod
    def for_verb(cls, verb: KillVerb, *, assisted: bool) -> "KillField":
        return _ASSISTED_FIELDS[verb] if assisted else _SOLO_FIELDS[verb]

    @property
    def date_column(self) -> str | None:
        """Coluna ``date_last_<verbo>`` atualizada junto (so kills solo)."""
        return _SOLO_DATE_COLUMNS.get(self)


_SOLO_FIELDS = {
    KillVerb.KILLED: KillField.KILLED,
    KillVerb.SLAUGHTERED: KillField.SLAUGHTERED,
    KillVerb.VANQUISHED: KillField.VANQUISHED,
    KillVerb.DISPATCHED: KillField.DISPATCHED,
}
_ASSISTED_FIELDS = {
    KillVerb.KILLED: KillField.ASSISTED_KILL,
    KillVerb.SLAUGHTERED: KillField.ASSISTED_SLAUGHTER,
    KillVerb.VANQUISHED: KillField.ASSISTED_VANQUISH,
    KillVerb.DISPATCHED: KillField.ASSISTED_DISPATCH,
}
_SOLO_DATE_COLUMNS = {field: f"date_last_{verb.value}" for verb, field in _SOLO_FIELDS.items()}

_SOLO_COLUMNS = tuple(f.value for f in _SOLO_FIELDS.values())
_ASSISTED_COLUMNS = tuple(f.value for f in _ASSISTED_FIELDS.values())
_KILL_COUNT_COLUMNS = tuple(f.value for f in KillField)
_KILL_TOTAL = " + ".join(_SOLO_COLUMNS + _ASSISTED_COLUMNS)
_SOLO_TOTAL = " + ".join(_SOLO_COLUMNS)
_COUNTER_COLUMNS = tuple(c.value for c in CharacterCounter)
_RANK_SUM = "COALESCE(SUM(ranks + modified_ranks + apply_learning_ranks), 0)"


@dataclass(slots=True)
class Character:
    id: int
    name: str
    profession: str
    logins: int
    departs: int
    deaths: int
    esteem: int
    coins_picked_up: int
    chest_coins: int
    bounty_coins: int
    fur_coins: int
    mandible_coins: int
    blood_coins: int
    fur_worth: int
    mandible_worth: int
    blood_worth: int
    bells_used: int
    bells_broken: int
    chains_used: int
    chains_broken: int
    shieldstones_used: int
    shieldstones_broken: int
    ethereal_portals: int
    eps_broken: int
    good_karma: int
    bad_karma: int
    untraining_count: int
    coin_level: int
    start_date: str | None
    merged_into: int | None

    @property
    def total_loot_coins(self) -> int:
        return self.fur_coins + self.blood_coins + self.mandible_coins + self.bounty_coins


@dataclass(slots=True)
class Kill:
    id: int | None
    character_id: int
    creature_name: str
    killed_count: int
    slaughtered_count: int
    vanquished_count: int
    dispatched_count: int
    assisted_kill_count: int
    assisted_slaughter_count: int
    assisted_vanquish_count: int
    assisted_dispatch_count: int
    killed_by_count: int
    creature_value: int
    date_first: str | None
    date_last: str | None
    date_last_killed: str | None
    date_last_slaughtered: str | None
    date_last_vanquished: str | None
    date_last_dispatched: str | None

    @property
    def solo_total(self) -> int:
        return sum(getattr(self, c) for c in _SOLO_COLUMNS)

    @property
    def assisted_total(self) -> int:
        return sum(getattr(self, c) for c in _ASSISTED_COLUMNS)

    @property
    def total(self) -> int:
        return self.solo_total + self.assisted_total


@dataclass(slots=True)
class TrainerRecord:
    id: int | None
    character_id: int
    trainer_name: str
    ranks: int
    modified_ranks: int
    apply_learning_ranks: int
    apply_learning_unknown_count: int
    date_of_last_rank: str | None

    @property
    def total_ranks(self) -> int:
        return self.ranks + self.modified_ranks + self.apply_learning_ranks

    def effective_ranks(self, multiplier: float = 1.0) -> float:
        return self.total_ranks * multiplier


@dataclass(slots=True)
class Lasty:
    id: int | None
    character_id: int
    creature_name: str
    lasty_type: str
    finished: bool
    message_count: int
    first_seen_date: str | None
    last_seen_date: str | None
    completed_date: str | None
    abandoned_date: str | None


@dataclass(slots=True)
class Pet:
    id: int | None
    character_id: int
    pet_name: str
    creature_name: str


@dataclass(frozen=True, slots=True)
class CreatureScore:
    creature_name: str
    score: int


@dataclass(frozen=True, slots=True)
class LogLineHit:
    character_name: str
    snippet: str
    timestamp: str
    file_path: str


def _in_clause(ids: Sequence[int]) -> str:
    return ", ".join("?" for _ in ids)


def _as_counter(counter: CharacterCounter | str) -> CharacterCounter:
    try:
        return CharacterCounter(counter)
    except ValueError as exc:
        raise DataError(f"Unknown character counter: {counter!r}") from exc


class Store:
    def __init__(self, path: str | Path = ":memory:") -> None:
        self.path = str(path)
        self.conn = sqlite3.connect(self.path, isolation_level=None)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self.fts_enabled = False
        self._create_schema()

    def _create_schema(self) -> None:
        for statement in schema.ALL_CREATE_STATEMENTS:
            self.conn.execute(statement)
        self.conn.execute(
            "INSERT OR IGNORE INTO schema_meta (key, value) VALUES ('version', ?)",
            (str(schema.SCHEMA_VERSION),),
        )
        try:
            self.conn.execute(schema.CREATE_LOG_LINES_FTS)
            self.fts_enabled = True
        except sqlite3.OperationalError as exc:
            logger.warning("FTS5 indisponivel; indice de linhas desativado: %s", exc)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -------------------- Transacoes --------------------

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """BEGIN/COMMIT, ROLLBACK em qualquer erro. Reentrante: dentro de outra transacao so repassa."""
        if self.conn.in_transaction:
            yield self.conn
            return
        self.conn.execute("BEGIN")
        try:
            yield self.conn
        except BaseException:
            self.conn.execute("ROLLBACK")
            raise
        self.conn.execute("COMMIT")

    @contextmanager
    def scan_transaction(self) -> Iterator["Store"]:
        """Transacao de scan com pragmas de escrita em lote, revertidos em sucesso ou falha."""
        saved: dict[str, object] = {}
        try:
            for name, value in schema.SCAN_PRAGMAS.items():
                if (row := self.conn.execute(f"PRAGMA {name}").fetchone()) is not None:
                    saved[name] = row[0]
                self.conn.execute(f"PRAGMA {name} = {value}")
            with self.transaction():
                yield self
        finally:
            for name, value in saved.items():
                self.conn.execute(f"PRAGMA {name} = {value}")

    # -------------------- Personagens --------------------

    def get_or_create_character(self, name: str) -> int:
        self.conn.execute("INSERT OR IGNORE INTO characters (name) VALUES (?)", (name,))
        row = self.conn.execute("SELECT id FROM characters WHERE name = ?", (name,)).fetchone()
        return row["id"]

    def get_character(self, name: str) -> Character | None:
        row = self.conn.execute("SELECT * FROM characters WHERE name = ?", (name,)).fetchone()
        return Character(**row) if row else None

    def get_character_by_id(self, char_id: int) -> Character | None:
        row = self.conn.execute("SELECT * FROM characters WHERE id = ?", (char_id,)).fetchone()
        return Character(**row) if row else None

    def require_character(self, name: str) -> Character:
        """Personagem pelo nome; recusa personagens fundidos em outro."""
        if (character := self.get_character(name)) is None:
            raise DataError(f"Character {name!r} not found")
        if (target := self.get_merged_into_name(character.id)) is not None:
            raise DataError(
                f"Character {name!r} is merged into {target!r}. "
                f"Use {target!r} instead, or unmerge {name!r} first."
            )
        return character

    def list_characters(self) -> list[Character]:
        """Personagens principais (fundidos ficam de fora)."""
        rows = self.conn.execute(
            "SELECT * FROM characters WHERE merged_into IS NULL ORDER BY name"
        ).fetchall()
        return [Character(**row) for row in rows]

    def increment_counter(
        self, char_id: int, counter: CharacterCounter | str, amount: int = 1
    ) -> None:
        column = _as_counter(counter).value
        self.conn.execute(
            f"UPDATE characters SET {column} = {column} + ? WHERE id = ?", (amount, char_id)
        )

    def set_departs(self, char_id: int, count: int) -> None:
        """Valor absoluto: a mensagem do jogo ja traz o total acumulado."""
        self.conn.execute("UPDATE characters SET departs = ? WHERE id = ?", (count, char_id))

    def update_start_date(self, char_id: int, date: str) -> None:
        self.conn.execute(
            "UPDATE characters SET start_date = ? "
            "WHERE id = ? AND (start_date IS NULL OR start_date > ?)",
            (date, char_id, date),
        )

    def update_profession(self, char_id: int, profession: str) -> None:
        self.conn.execute(
            "UPDATE characters SET profession = ? WHERE id = ?", (profession, char_id)
        )

    def update_coin_level(self, char_id: int, coin_level: int) -> None:
        self.conn.execute(
            "UPDATE characters SET coin_level = ? WHERE id = ?", (coin_level, char_id)
        )

    # -------------------- Kills --------------------

    def upsert_kill(
        self,
        char_id: int,
        creature: str,
        field: KillField,
        value: int,
        date: str | None,
    ) -> None:
        field = KillField(field)
        column = field.value
        date_update = ""
        if date_column := field.date_column:
            date_update = (
                f", {date_column} = COALESCE(MAX({date_column}, excluded.date_last), "
                f"{date_column}, excluded.date_last)"
            )
        insert_date_columns = f", {date_column}" if date_column else ""
        insert_date_values = ", ?" if date_column else ""
        params: list[object] = [char_id, creature, value, date, date]
        if date_column:
            params.append(date)
        self.conn.execute(
            f"""
            INSERT INTO kills (character_id, creature_name, {column}, creature_value,
                               date_first, date_last{insert_date_columns})
            VALUES (?, ?, 1, ?, ?, ?{insert_date_values})
            ON CONFLICT(character_id, creature_name) DO UPDATE SET
                {column} = {column} + 1,
                creature_value = MAX(creature_value, excluded.creature_value),
                date_first = COALESCE(MIN(date_first, excluded.date_first), date_first, excluded.date_first),
                date_last = COALESCE(MAX(date_last, excluded.date_last), date_last, excluded.date_last)
                {date_update}
            """,
            params,
        )

    def get_kills(self, char_id: int) -> list[Kill]:
        rows = self.conn.execute(
            f"SELECT * FROM kills WHERE character_id = ? "
            f"ORDER BY ({_KILL_TOTAL}) DESC, creature_name",
            (char_id,),
        ).fetchall()
        return [Kill(**row) for row in rows]

    def get_kills_merged(self, char_id: int) -> list[Kill]:
        ids = self.char_ids_for_merged(char_id)
        sums = ", ".join(f"SUM({c}) AS {c}" for c in _KILL_COUNT_COLUMNS)
        verb_dates = ", ".join(f"MAX({c}) AS {c}" for c in _SOLO_DATE_COLUMNS.values())
        rows = self.conn.execute(
            f"""
            SELECT NULL AS id, ? AS character_id, creature_name, {sums},
                   MAX(creature_value) AS creature_value,
                   MIN(date_first) AS date_first, MAX(date_last) AS date_last, {verb_dates}
            FROM kills WHERE character_id IN ({_in_clause(ids)})
            GROUP BY creature_name
            ORDER BY SUM({_KILL_TOTAL}) DESC, creature_name
            """,
            (char_id, *ids),
        ).fetchall()
        return [Kill(**row) for row in rows]

    def get_highest_kill(self, char_id: int) -> CreatureScore | None:
        """Criatura com maior (kills solo x valor), considerando personagens fundidos."""
        ids = self.char_ids_for_merged(char_id)
        row = self.conn.execute(
            f"""
            SELECT creature_name, SUM({_SOLO_TOTAL}) * MAX(creature_value) AS score
            FROM kills WHERE character_id IN ({_in_clause(ids)})
            GROUP BY creature_name
            HAVING MAX(creature_value) > 0 AND SUM({_SOLO_TOTAL}) > 0
            ORDER BY score DESC, creature_name
            LIMIT 1
            """,
            ids,
        ).fetchone()
        return CreatureScore(row["creature_name"], row["score"]) if row else None

    def get_nemesis(self, char_id: int) -> CreatureScore | None:
        """Criatura que mais derrubou o personagem."""
        ids = self.char_ids_for_merged(char_id)
        row = self.conn.execute(
            f"""
            SELECT creature_name, SUM(killed_by_count) AS score
            FROM kills WHERE character_id IN ({_in_clause(ids)})
            GROUP BY creature_name
            HAVING score > 0
            ORDER BY score DESC, creature_name
            LIMIT 1
            """,
            ids,
        ).fetchone()
        return CreatureScore(row["creature_name"], row["score"]) if row else None

    # -------------------- Treinadores --------------------

    def upsert_trainer_rank(self, char_id: int, trainer: str, date: str | None) -> None:
        self.conn.execute(
            """
            INSERT INTO trainers (character_id, trainer_name, ranks, date_of_last_rank)
            VALUES (?, ?, 1, ?)
            ON CONFLICT(character_id, trainer_name) DO UPDATE SET
                ranks = ranks + 1,
                date_of_last_rank = COALESCE(MAX(date_of_last_rank, excluded.date_of_last_rank),
                                             date_of_last_rank, excluded.date_of_last_rank)
            """,
            (char_id, trainer, date),
        )

    def upsert_apply_learning(
        self, char_id: int, trainer: str, date: str | None, *, full: bool
    ) -> None:
        """Bonus confirmado soma 10 ranks; o parcial (1-9) so e contado como ocorrencia."""
        ranks, unknown = (APPLY_LEARNING_FULL_RANKS, 0) if full else (0, 1)
        self.conn.execute(
            """
            INSERT INTO trainers (character_id, trainer_name, apply_learning_ranks,
                                  apply_learning_unknown_count, date_of_last_rank)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(character_id, trainer_name) DO UPDATE SET
                apply_learning_ranks = apply_learning_ranks + excluded.apply_learning_ranks,
                apply_learning_unknown_count =
                    apply_learning_unknown_count + excluded.apply_learning_unknown_count,
                date_of_last_rank = COALESCE(MAX(date_of_last_rank, excluded.date_of_last_rank),
                                             date_of_last_rank, excluded.date_of_last_rank)
            """,
            (char_id, trainer, ranks, unknown, date),
        )

    def set_modified_ranks(self, char_id: int, trainer: str, ranks: int) -> None:
        """Ranks informados pelo usuario (anteriores aos logs); recalcula o coin level."""
        if self.get_character_by_id(char_id) is None:
            raise DataError(f"Character id {char_id} not found")
        with self.transaction():
            self.conn.execute(
                """
                INSERT INTO trainers (character_id, trainer_name, modified_ranks)
                VALUES (?, ?, ?)
                ON CONFLICT(character_id, trainer_name) DO UPDATE SET
                    modified_ranks = excluded.modified_ranks
                """,
                (char_id, trainer, ranks),
            )
            self.refresh_coin_level(char_id)

    def get_trainers(self, char_id: int) -> list[TrainerRecord]:
        rows = self.conn.execute(
            "SELECT * FROM trainers WHERE character_id = ? ORDER BY trainer_name", (char_id,)
        ).fetchall()
        return [TrainerRecord(**row) for row in rows]

    def get_trainers_merged(self, char_id: int) -> list[TrainerRecord]:
        ids = self.char_ids_for_merged(char_id)
        rows = self.conn.execute(
            f"""
            SELECT NULL AS id, ? AS character_id, trainer_name,
                   SUM(ranks) AS ranks, SUM(modified_ranks) AS modified_ranks,
                   SUM(apply_learning_ranks) AS apply_learning_ranks,
                   SUM(apply_learning_unknown_count) AS apply_learning_unknown_count,
                   MAX(date_of_last_rank) AS date_of_last_rank
            FROM trainers WHERE character_id IN ({_in_clause(ids)})
            GROUP BY trainer_name
            ORDER BY trainer_name
            """,
            (char_id, *ids),
        ).fetchall()
        return [TrainerRecord(**row) for row in rows]

    def rank_sum(self, char_ids: Sequence[int]) -> int:
        row = self.conn.execute(
            f"SELECT {_RANK_SUM} AS total FROM trainers "
            f"WHERE character_id IN ({_in_clause(char_ids)})",
            tuple(char_ids),
        ).fetchone()
        return row["total"]

    def compute_coin_level(self, char_id: int) -> int:
        """Soma de ranks + modified_ranks + apply_learning_ranks, incluindo fundidos."""
        return self.rank_sum(self.char_ids_for_merged(char_id))

    def refresh_coin_level(self, char_id: int) -> int:
        """Recalcula o coin level do principal (o proprio personagem ou seu alvo de merge)."""
        character = self.get_character_by_id(char_id)
        if character is None:
            raise DataError(f"Character id {char_id} not found")
        target_id = character.merged_into or char_id
        coin_level = self.compute_coin_level(target_id)
        self.update_coin_level(target_id, coin_level)
        return coin_level

    # -------------------- Lastys e pets --------------------

    def upsert_lasty(
        self, char_id: int, creature: str, lasty_type: LastyType, date: str | None
    ) -> None:
        """Nova mensagem de estudo: conta, atualiza datas e desfaz um abandono anterior."""
        self.conn.execute(
            """
            INSERT INTO lastys (character_id, creature_name, lasty_type, message_count,
                                first_seen_date, last_seen_date)
            VALUES (?, ?, ?, 1, ?, ?)
            ON CONFLICT(character_id, creature_name) DO UPDATE SET
                lasty_type = excluded.lasty_type,
                message_count = message_count + 1,
                first_seen_date = COALESCE(MIN(first_seen_date, excluded.first_seen_date),
                                           first_seen_date, excluded.first_seen_date),
                last_seen_date = COALESCE(MAX(last_seen_date, excluded.last_seen_date),
                                          last_seen_date, excluded.last_seen_date),
                abandoned_date = NULL
            """,
            (char_id, creature, str(lasty_type), date, date),
        )

    def finish_lasty(
        self, char_id: int, creature: str, lasty_type: LastyType, date: str | None
    ) -> None:
        self.conn.execute(
            """
            INSERT INTO lastys (character_id, creature_name, lasty_type, finished,
                                message_count, first_seen_date, last_seen_date, completed_date)
            VALUES (?, ?, ?, 1, 1, ?, ?, ?)
            ON CONFLICT(character_id, creature_name) DO UPDATE SET
                lasty_type = excluded.lasty_type,
                finished = 1,
                message_count = message_count + 1,
                last_seen_date = COALESCE(MAX(last_seen_date, excluded.last_seen_date),
                                          last_seen_date, excluded.last_seen_date),
                completed_date = COALESCE(completed_date, excluded.completed_date),
                abandoned_date = NULL
            """,
            (char_id, creature, str(lasty_type), date, date, date),
        )

    def complete_latest_lasty(self, char_id: int, date: str | None) -> bool:
        """Marca como concluido o lasty em aberto mais recente; False se nao ha nenhum."""
        cursor = self.conn.execute(
            """
            UPDATE lastys SET finished = 1, completed_date = COALESCE(completed_date, ?)
            WHERE id = (
                SELECT id FROM lastys WHERE character_id = ? AND finished = 0
                ORDER BY id DESC LIMIT 1
            )
            """,
            (date, char_id),
        )
        return cursor.rowcount > 0

    def abandon_lasty(self, char_id: int, creature: str, date: str | None) -> None:
        self.conn.execute(
            "UPDATE lastys SET abandoned_date = ? "
            "WHERE character_id = ? AND creature_name = ? AND finished = 0",
            (date, char_id, creature),
        )

    def get_lastys(self, char_id: int) -> list[Lasty]:
        rows = self.conn.execute(
            "SELECT * FROM lastys WHERE character_id = ? ORDER BY creature_name", (char_id,)
        ).fetchall()
        return [Lasty(**row) for row in rows]

    def get_lastys_merged(self, char_id: int) -> list[Lasty]:
        ids = self.char_ids_for_merged(char_id)
        rows = self.conn.execute(
            f"""
            SELECT NULL AS id, ? AS character_id, creature_name,
                   MAX(lasty_type) AS lasty_type, MAX(finished) AS finished,
                   SUM(message_count) AS message_count,
                   MIN(first_seen_date) AS first_seen_date,
                   MAX(last_seen_date) AS last_seen_date,
                   MAX(completed_date) AS completed_date,
                   MAX(abandoned_date) AS abandoned_date
            FROM lastys WHERE character_id IN ({_in_clause(ids)})
            GROUP BY creature_name
            ORDER BY creature_name
            """,
            (char_id, *ids),
        ).fetchall()
        return [Lasty(**row) for row in rows]

    def upsert_pet(self, char_id: int, pet_name: str, creature: str) -> None:
        self.conn.execute(
            """
            INSERT INTO pets (character_id, pet_name, creature_name) VALUES (?, ?, ?)
            ON CONFLICT(character_id, pet_name) DO UPDATE SET creature_name = excluded.creature_name
            """,
            (char_id, pet_name, creature),
        )

    def get_pets(self, char_id: int) -> list[Pet]:
        rows = self.conn.execute(
            "SELECT * FROM pets WHERE character_id = ? ORDER BY pet_name", (char_id,)
        ).fetchall()
        return [Pet(**row) for row in rows]

    def get_pets_merged(self, char_id: int) -> list[Pet]:
        """Pets sao deduplicados pelo nome, nao somados."""
        ids = self.char_ids_for_merged(char_id)
        rows = self.conn.execute(
            f"""
            SELECT NULL AS id, ? AS character_id, pet_name, MIN(creature_name) AS creature_name
            FROM pets WHERE character_id IN ({_in_clause(ids)})
            GROUP BY pet_name
            ORDER BY pet_name
            """,
            (char_id, *ids),
        ).fetchall()
        return [Pet(**row) for row in rows]

    # -------------------- Ledger de arquivos e indice de linhas --------------------

    def is_log_scanned(self, file_path: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM log_files WHERE file_path = ?", (file_path,)
        ).fetchone()
        return row is not None

    def is_hash_scanned(self, content_hash: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM log_files WHERE content_hash = ? LIMIT 1", (content_hash,)
        ).fetchone()
        return row is not None

    def mark_log_scanned(
        self, char_id: int, file_path: str, content_hash: str, date_read: str
    ) -> None:
        self.conn.execute(
            """
            INSERT INTO log_files (character_id, file_path, content_hash, date_read)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(file_path) DO UPDATE SET
                character_id = excluded.character_id,
                content_hash = excluded.content_hash,
                date_read = excluded.date_read
            """,
            (char_id, file_path, content_hash, date_read),
        )

    def count_scanned_logs(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM log_files").fetchone()[0]

    def insert_log_lines(self, rows: Iterable[tuple[str, int, str, str]]) -> int:
        """Insere (conteudo, character_id, timestamp, arquivo) no indice FTS em lotes."""
        if not self.fts_enabled:
            return 0
        inserted = 0
        for batch in batched(rows, LOG_LINE_BATCH_SIZE):
            self.conn.executemany(
                "INSERT INTO log_lines (content, character_id, timestamp, file_path) "
                "VALUES (?, ?, ?, ?)",
                batch,
            )
            inserted += len(batch)
        return inserted

    def search_log_lines(
        self, query: str, character_id: int | None = None, limit: int = 50
    ) -> list[LogLineHit]:
        """Busca frase exata no indice; com personagem, inclui os fundidos nele."""
        if not self.fts_enabled:
            raise DataError("Full-text index is not available in this SQLite build")
        phrase = '"' + query.replace('"', '""') + '"'
        sql = """
            SELECT c.name AS character_name,
                   snippet(log_lines, 0, '<mark>', '</mark>', '...', 24) AS snippet,
                   log_lines.timestamp AS timestamp,
                   log_lines.file_path AS file_path
            FROM log_lines JOIN characters c ON c.id = log_lines.character_id
            WHERE log_lines MATCH ?
        """
        params: list[object] = [phrase]
        if character_id is not None:
            ids = self.char_ids_for_merged(character_id)
            sql += f" AND log_lines.character_id IN ({_in_clause(ids)})"
            params.extend(ids)
        sql += " ORDER BY rank LIMIT ?"
        params.append(limit)
        rows = self.conn.execute(sql, params).fetchall()
        return [LogLineHit(**row) for row in rows]

    # -------------------- Merge --------------------

    def get_merge_sources(self, char_id: int) -> list[int]:
        rows = self.conn.execute(
            "SELECT id FROM characters WHERE merged_into = ? ORDER BY id", (char_id,)
        ).fetchall()
        return [row["id"] for row in rows]

    def char_ids_for_merged(self, char_id: int) -> list[int]:
        """O proprio id seguido dos ids fundidos nele (relacao de um nivel so)."""
        return [char_id, *self.get_merge_sources(char_id)]

    def get_merged_into_name(self, char_id: int) -> str | None:
        row = self.conn.execute(
            """
            SELECT target.name FROM characters source
            JOIN characters target ON target.id = source.merged_into
            WHERE source.id = ?
            """,
            (char_id,),
        ).fetchone()
        return row["name"] if row else None

    def merge_characters(self, source_ids: Iterable[int], target_id: int) -> None:
        """Funde ``source_ids`` em ``target_id``. Toda validacao acontece antes de qualquer escrita."""
        sources = list(dict.fromkeys(source_ids))
        if not sources:
            raise MergeError("No source characters given")
        target = self.get_character_by_id(target_id)
        if target is None:
            raise MergeError(f"Target character id {target_id} not found")
        if target.merged_into is not None:
            raise MergeError(f"Target {target.name!r} is itself merged into another character")
        for source_id in sources:
            if source_id == target_id:
                raise MergeError(f"Cannot merge {target.name!r} into itself")
            source = self.get_character_by_id(source_id)
            if source is None:
                raise MergeError(f"Source character id {source_id} not found")
            if source.merged_into is not None:
                raise MergeError(f"Source {source.name!r} is already merged")
            if self.get_merge_sources(source_id):
                raise MergeError(f"Source {source.name!r} has characters merged into it")

        with self.transaction():
            self.conn.executemany(
                "UPDATE characters SET merged_into = ? WHERE id = ?",
                [(target_id, source_id) for source_id in sources],
            )
            self.refresh_coin_level(target_id)
        logger.info("Personagens %s fundidos em %s", sources, target.name)

    def unmerge_character(self, source_id: int) -> None:
        source = self.get_character_by_id(source_id)
        if source is None:
            raise MergeError(f"Character id {source_id} not found")
        if (former_target := source.merged_into) is None:
            raise MergeError(f"Character {source.name!r} is not merged")
        with self.transaction():
            self.conn.execute(
                "UPDATE characters SET merged_into = NULL WHERE id = ?", (source_id,)
            )
            self.refresh_coin_level(former_target)
            self.refresh_coin_level(source_id)
        logger.info("Personagem %s separado de %s", source.name, former_target)

    def get_character_merged(self, char_id: int) -> Character | None:
        """Totais do personagem somados aos fundidos; start_date e o mais antigo."""
        if (own := self.get_character_by_id(char_id)) is None:
            return None
        ids = self.char_ids_for_merged(char_id)
        if len(ids) == 1:
            return own
        sums = ", ".join(f"SUM({c}) AS {c}" for c in _COUNTER_COLUMNS)
        row = self.conn.execute(
            f"SELECT {sums}, MIN(start_date) AS start_date FROM characters "
            f"WHERE id IN ({_in_clause(ids)})",
            ids,
        ).fetchone()
        return replace(own, **dict(row), coin_level=self.rank_sum(ids))

    # -------------------- Reset --------------------

    def reset_log_data(self, *, preserve_rank_overrides: bool = True) -> None:
        """Apaga tudo que veio dos logs.

        Com ``preserve_rank_overrides`` os personagens, merges e ``modified_ranks``
        ficam; sem ele o banco volta a ficar vazio.
        """
        with self.transaction():
            for table in ("kills", "lastys", "pets", "log_files"):
                self.conn.execute(f"DELETE FROM {table}")
            if self.fts_enabled:
                self.conn.execute("DELETE FROM log_lines")
            if not preserve_rank_overrides:
                self.conn.execute("DELETE FROM trainers")
                self.conn.execute("UPDATE characters SET merged_into = NULL")
                self.conn.execute("DELETE FROM characters")
                logger.info("Banco zerado")
                return
            self.conn.execute("DELETE FROM trainers WHERE modified_ranks = 0")
            self.conn.execute(
                "UPDATE trainers SET ranks = 0, apply_learning_ranks = 0, "
                "apply_learning_unknown_count = 0, date_of_last_rank = NULL"
            )
            zeroed = ", ".join(f"{c} = 0" for c in _COUNTER_COLUMNS)
            self.conn.execute(f"UPDATE characters SET {zeroed}, start_date = NULL")
            # profissao so sobrevive onde ainda ha ranks informados pelo usuario
            self.conn.execute(
                "UPDATE characters SET profession = ? "
                "WHERE id NOT IN (SELECT character_id FROM trainers)",
                (UNKNOWN_PROFESSION,),
            )
            for character in self.list_characters():
                self.refresh_coin_level(character.id)
        logger.info("Dados de log apagados (overrides de ranks preservados)")
