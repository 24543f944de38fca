"""
Orquestrador de scan dos logs do Clan Lord.

Descobre os arquivos ``CL Log *.txt``, pula os ja lidos (por caminho e
por hash do conteudo), decodifica, classifica linha a linha e aplica os
eventos no ``Store``. Cada chamada publica roda numa unica transacao:
erro de leitura de um arquivo e contado e o scan segue; erro do banco
desfaz o scan inteiro.
"""

import hashlib
import logging
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from amanuensis.classifier import classify
from amanuensis.encoding import decode_log_bytes
from amanuensis.errors import DataError
from amanuensis.events import (
    ApplyLearningRank,
    AssistedKill,
    CoinsPickedUp,
    Depart,
    Equipment,
    EquipmentChange,
    EsteemGain,
    Event,
    Fallen,
    FirstDepart,
    Ignored,
    KarmaReceived,
    LastyBeginStudy,
    LastyCompleted,
    LastyFinished,
    LastyProgress,
    Login,
    LootShare,
    LootType,
    ProfessionAnnouncement,
    Reconnect,
    SoloKill,
    StudyAbandon,
    StudyCharge,
    TrainerRank,
    Untrained,
)
from amanuensis.patterns import RE_WELCOME_BACK, RE_WELCOME_LOGIN
from amanuensis.reference import CreatureTable, TrainerTable
from amanuensis.store import UNKNOWN_PROFESSION, CharacterCounter, KillField, Store
from amanuensis.timestamp import format_timestamp, parse_timestamp

logger = logging.getLogger("amanuensis.scanner")

LOG_GLOB = "CL Log *.txt"
SKIPPED_DIRS = frozenset({"CL_Movies"})
UNKNOWN_CHARACTER = "Unknown"
ROMAN_NUMERAL_CHARS = frozenset("IVXLCDM")
SPECIALIZATIONS = ("Ranger", "Bloodmage", "Champion")
BASE_PROFESSIONS = ("Fighter", "Healer", "Mystic")

type ProgressCallback = Callable[[int, int, str], None]

_EQUIPMENT_COUNTERS: dict[Equipment, tuple[CharacterCounter, ...]] = {
    Equipment.BELL_USED: (CharacterCounter.BELLS_USED,),
    Equipment.BELL_BROKEN: (CharacterCounter.BELLS_BROKEN,),
    Equipment.CHAIN_USED: (CharacterCounter.CHAINS_USED,),
    Equipment.CHAIN_BROKEN: (CharacterCounter.CHAINS_BROKEN,),
    Equipment.SHIELDSTONE_USED: (CharacterCounter.SHIELDSTONES_USED,),
    Equipment.SHIELDSTONE_BROKEN: (CharacterCounter.SHIELDSTONES_BROKEN,),
    Equipment.PORTAL_OPENED: (CharacterCounter.ETHEREAL_PORTALS,),
    Equipment.PORTAL_STONE_USED: (CharacterCounter.ETHEREAL_PORTALS, CharacterCounter.EPS_BROKEN),
}

# tipo de loot -> (parte do personagem, valor total do item)
_LOOT_COUNTERS: dict[LootType, tuple[CharacterCounter, CharacterCounter | None]] = {
    LootType.FUR: (CharacterCounter.FUR_COINS, CharacterCounter.FUR_WORTH),
    LootType.BLOOD: (CharacterCounter.BLOOD_COINS, CharacterCounter.BLOOD_WORTH),
    LootType.MANDIBLE: (CharacterCounter.MANDIBLE_COINS, CharacterCounter.MANDIBLE_WORTH),
    LootType.OTHER: (CharacterCounter.BOUNTY_COINS, None),
}


@dataclass(slots=True)
class ScanResult:
    characters: int = 0
    files_scanned: int = 0
    skipped: int = 0
    lines_parsed: int = 0
    events_found: int = 0
    errors: int = 0
    error_messages: list[str] = field(default_factory=list)

    def add_error(self, msg: str) -> None:
        self.errors += 1
        self.error_messages.append(msg)


@dataclass(slots=True)
class FileResult:
    lines_parsed: int = 0
    events_found: int = 0


@dataclass(slots=True)
class FileState:
    """Estado de um arquivo durante a aplicacao dos eventos."""

    char_id: int
    char_name: str
    file_path: str
    found_login: bool = False
    first_date: str | None = None
    result: FileResult = field(default_factory=FileResult)


@dataclass(slots=True)
class CharacterBatch:
    name: str
    files: list[Path]


def find_log_files(folder: Path) -> list[Path]:
    """Logs diretamente dentro de ``folder``, em ordem (o nome carrega a data)."""
    try:
        return sorted(p for p in folder.glob(LOG_GLOB) if p.is_file())
    except OSError:
        logger.warning("Nao foi possivel listar %s", folder)
        return []


def _is_candidate_dir(path: Path) -> bool:
    return path.is_dir() and not path.name.startswith(".") and path.name not in SKIPPED_DIRS


def _child_dirs(folder: Path) -> list[Path]:
    try:
        return sorted(d for d in folder.iterdir() if _is_candidate_dir(d))
    except OSError:
        logger.warning("Nao foi possivel listar %s", folder)
        return []


def discover_log_folders(root: Path) -> list[Path]:
    """Pastas que tem ao menos um filho direto com logs; nao desce abaixo de uma raiz encontrada."""
    roots: list[Path] = []
    pending = [root]
    while pending:
        folder = pending.pop()
        children = _child_dirs(folder)
        if any(find_log_files(child) for child in children):
            roots.append(folder)
        else:
            pending.extend(reversed(children))
    return sorted(roots)


def is_roman_numeral(word: str) -> bool:
    return bool(word) and all(c in ROMAN_NUMERAL_CHARS for c in word)


def titlecase_name(name: str) -> str:
    """"gandalf the grey II" -> "Gandalf The Grey II"."""
    return " ".join(
        word if is_roman_numeral(word) else word[:1].upper() + word[1:].lower()
        for word in name.split()
    )


def extract_character_name(text: str) -> str | None:
    """Nome da primeira linha de boas-vindas do texto, se houver."""
    for line in text.splitlines():
        _, message = parse_timestamp(line)
        if found := RE_WELCOME_LOGIN.search(message) or RE_WELCOME_BACK.search(message):
            return found[1]
    return None


def _name_from_files(files: Iterable[Path]) -> str | None:
    for path in files:
        try:
            data = path.read_bytes()
        except OSError:
            continue
        if name := extract_character_name(decode_log_bytes(data)):
            return titlecase_name(name)
    return None


def _split_lines(text: str) -> list[str]:
    lines = text.split("\n")
    if lines and not lines[-1]:
        lines.pop()
    return [line.rstrip("\r") for line in lines]


class LogScanner:
    def __init__(
        self,
        store: Store,
        creatures: CreatureTable | None = None,
        trainers: TrainerTable | None = None,
    ) -> None:
        self.store = store
        self.creatures = creatures if creatures is not None else CreatureTable.bundled()
        self.trainers = trainers if trainers is not None else TrainerTable.bundled()

    # -------------------- Operacoes publicas --------------------

    def scan_folder(
        self,
        folder: str | Path,
        *,
        force: bool = False,
        index_lines: bool = True,
        progress: ProgressCallback | None = None,
    ) -> ScanResult:
        """Uma pasta de logs: cada subpasta com logs e um personagem."""
        folder = _require_dir(folder)
        return self._run(self._collect_batches(folder), force, index_lines, progress)

    def scan_recursive(
        self,
        root: str | Path,
        *,
        force: bool = False,
        index_lines: bool = True,
        progress: ProgressCallback | None = None,
    ) -> ScanResult:
        """Procura pastas de logs em qualquer profundidade abaixo de ``root``."""
        root = _require_dir(root)
        roots = discover_log_folders(root) or [root]
        logger.info("Pastas de log encontradas: %s", len(roots))
        batches = [batch for folder in roots for batch in self._collect_batches(folder)]
        return self._run(batches, force, index_lines, progress)

    def scan_files(
        self,
        paths: Iterable[str | Path],
        *,
        force: bool = False,
        index_lines: bool = True,
        progress: ProgressCallback | None = None,
    ) -> ScanResult:
        """Arquivos avulsos; o personagem vem do conteudo ou da pasta de cada arquivo."""
        # um lote por arquivo, na ordem recebida
        batches = []
        for path in map(Path, paths):
            name = _name_from_files([path]) or titlecase_name(path.parent.name) or UNKNOWN_CHARACTER
            batches.append(CharacterBatch(name, [path]))
        return self._run(batches, force, index_lines, progress)

    def finalize_characters(self) -> None:
        """Profissao (quando ainda desconhecida) e coin level de todo personagem principal."""
        for character in self.store.list_characters():
            if character.profession == UNKNOWN_PROFESSION:
                profession = self.determine_profession(character.id)
                if profession != UNKNOWN_PROFESSION:
                    self.store.update_profession(character.id, profession)
            if (coin_level := self.compute_coin_level(character.id)) > 0:
                self.store.update_coin_level(character.id, coin_level)

    def determine_profession(self, char_id: int) -> str:
        """Especializacao com mais ranks vence; senao maioria entre as classes base."""
        totals: dict[str, int] = defaultdict(int)
        for trainer in self.store.get_trainers_merged(char_id):
            profession = self.trainers.profession(trainer.trainer_name)
            ranks = trainer.ranks + trainer.modified_ranks
            if profession and ranks > 0:
                totals[profession] += ranks

        if any(totals[p] > 0 for p in SPECIALIZATIONS):
            # max() devolve o primeiro em empate: a ordem da tupla e a prioridade
            return max(SPECIALIZATIONS, key=lambda p: totals[p])
        best = max(BASE_PROFESSIONS, key=lambda p: totals[p])
        return best if totals[best] > 0 else UNKNOWN_PROFESSION

    def compute_coin_level(self, char_id: int) -> int:
        return self.store.compute_coin_level(char_id)

    # -------------------- Pipeline --------------------

    def _collect_batches(self, folder: Path) -> list[CharacterBatch]:
        batches: list[CharacterBatch] = []
        dirs = _child_dirs(folder)
        # logs soltos na propria pasta tambem formam um personagem
        if find_log_files(folder):
            dirs.insert(0, folder)
        for char_dir in dirs:
            if not (files := find_log_files(char_dir)):
                continue
            name = _name_from_files(files) or titlecase_name(char_dir.name)
            batches.append(CharacterBatch(name, files))
        return batches

    def _run(
        self,
        batches: list[CharacterBatch],
        force: bool,
        index_lines: bool,
        progress: ProgressCallback | None,
    ) -> ScanResult:
        result = ScanResult()
        total = sum(len(batch.files) for batch in batches)
        current = 0
        seen: set[int] = set()
        with self.store.scan_transaction():
            for batch in batches:
                char_id = self.store.get_or_create_character(batch.name)
                seen.add(char_id)
                for path in batch.files:
                    current += 1
                    self._scan_path(path, char_id, batch.name, result, force, index_lines)
                    if progress is not None:
                        progress(current, total, path.name)
            self.finalize_characters()
        result.characters = len(seen)

        logger.info(
            "Scan concluido: %s arquivo(s) lidos, %s pulados, %s erro(s)",
            result.files_scanned,
            result.skipped,
            result.errors,
        )
        return result

    def _scan_path(
        self,
        path: Path,
        char_id: int,
        char_name: str,
        result: ScanResult,
        force: bool,
        index_lines: bool,
    ) -> None:
        file_key = str(path.resolve())
        if not force and self.store.is_log_scanned(file_key):
            result.skipped += 1
            return
        try:
            data = path.read_bytes()
        except OSError as exc:
            msg = f"Erro ao ler {path.name} [{exc.__class__.__name__}]: {exc}"
            logger.exception("%s", msg)
            result.add_error(msg)
            return

        content_hash = hashlib.blake2s(data).hexdigest()
        if not force and self.store.is_hash_scanned(content_hash):
            logger.info("Conteudo ja lido em outro caminho, pulando %s", path.name)
            result.skipped += 1
            return

        file_result = self.scan_bytes(data, char_id, char_name, file_key, index_lines=index_lines)
        self.store.mark_log_scanned(
            char_id, file_key, content_hash, format_timestamp(datetime.now())
        )
        result.files_scanned += 1
        result.lines_parsed += file_result.lines_parsed
        result.events_found += file_result.events_found

    def scan_bytes(
        self,
        data: bytes,
        char_id: int,
        char_name: str,
        file_path: str,
        *,
        index_lines: bool = True,
    ) -> FileResult:
        """Aplica o conteudo de um arquivo ao personagem. Cada arquivo conta como um login."""
        state = FileState(char_id=char_id, char_name=char_name, file_path=file_path)
        indexed: list[tuple[str, int, str, str]] = []

        for line in _split_lines(decode_log_bytes(data)):
            state.result.lines_parsed += 1
            dt, message = parse_timestamp(line)
            date = format_timestamp(dt) or None
            if index_lines and line.strip():
                indexed.append((line, char_id, date or "", file_path))
            if state.first_date is None and date:
                state.first_date = date
            self._apply_event(state, classify(message, self.trainers), date)

        self.store.increment_counter(char_id, CharacterCounter.LOGINS)
        if not state.found_login and state.first_date:
            self.store.update_start_date(char_id, state.first_date)
        if indexed:
            self.store.insert_log_lines(indexed)
        return state.result

    def _is_current(self, state: FileState, name: str | None) -> bool:
        return name is None or name.casefold() == state.char_name.casefold()

    def _apply_event(self, state: FileState, event: Event, date: str | None) -> None:
        store = self.store
        char_id = state.char_id
        match event:
            case Ignored():
                return
            case Login() | Reconnect():
                state.found_login = True
                if date:
                    store.update_start_date(char_id, date)
            case SoloKill(creature, verb):
                kill_field = KillField.for_verb(verb, assisted=False)
                store.upsert_kill(char_id, creature, kill_field, self.creatures.value(creature) or 0, date)
            case AssistedKill(creature, verb):
                kill_field = KillField.for_verb(verb, assisted=True)
                store.upsert_kill(char_id, creature, kill_field, self.creatures.value(creature) or 0, date)
            case Fallen(name, cause):
                if not self._is_current(state, name):
                    return
                store.upsert_kill(char_id, cause, KillField.KILLED_BY, 0, date)
                store.increment_counter(char_id, CharacterCounter.DEATHS)
            case FirstDepart():
                store.increment_counter(char_id, CharacterCounter.DEPARTS)
            case Depart(count):
                store.set_departs(char_id, count)
            case TrainerRank(trainer_name):
                store.upsert_trainer_rank(char_id, trainer_name, date)
            case CoinsPickedUp(amount):
                store.increment_counter(char_id, CharacterCounter.COINS_PICKED_UP, amount)
            case LootShare(loot_type=loot_type, worth=worth, amount=amount):
                share, worth_counter = _LOOT_COUNTERS[loot_type]
                store.increment_counter(char_id, share, amount)
                if worth_counter is not None:
                    store.increment_counter(char_id, worth_counter, worth)
            case StudyCharge(amount):
                store.increment_counter(char_id, CharacterCounter.CHEST_COINS, amount)
            case EquipmentChange(item):
                for counter in _EQUIPMENT_COUNTERS[item]:
                    store.increment_counter(char_id, counter)
            case KarmaReceived(good):
                counter = CharacterCounter.GOOD_KARMA if good else CharacterCounter.BAD_KARMA
                store.increment_counter(char_id, counter)
            case EsteemGain():
                store.increment_counter(char_id, CharacterCounter.ESTEEM)
            case Untrained():
                store.increment_counter(char_id, CharacterCounter.UNTRAINING_COUNT)
            case ProfessionAnnouncement(name, profession):
                # anuncio de outro personagem tambem conta como evento
                if self._is_current(state, name):
                    store.update_profession(char_id, profession)
            case ApplyLearningRank(character_name, trainer_name, full):
                if not self._is_current(state, character_name):
                    return
                store.upsert_apply_learning(char_id, trainer_name, date, full=full)
            case LastyBeginStudy(creature, lasty_type) | LastyProgress(creature, lasty_type):
                store.upsert_lasty(char_id, creature, lasty_type, date)
            case LastyFinished(creature, lasty_type):
                store.finish_lasty(char_id, creature, lasty_type, date)
            case LastyCompleted():
                store.complete_latest_lasty(char_id, date)
            case StudyAbandon(creature):
                store.abandon_lasty(char_id, creature, date)
            case _:
                # saldo, clanning, desconexao, experiencia, progresso de estudo
                return
        state.result.events_found += 1


def _require_dir(folder: str | Path) -> Path:
    path = Path(folder)
    if not path.is_dir():
        raise DataError(f"Not a directory: {path}")
    return path
