"""
Tabelas de referencia somente-leitura: valor das criaturas e mensagens
de treinadores.

Carregadas uma vez (``bundled()``) e passadas explicitamente ao
classificador e ao scanner; nada aqui e estado global mutavel.
"""

import csv
import io
import logging
from dataclasses import dataclass
from functools import cache
from pathlib import Path
from types import MappingProxyType
from typing import Any

import orjson

from amanuensis.errors import ReferenceDataError
from amanuensis.patterns import SYSTEM_PREFIXES

logger = logging.getLogger("amanuensis.reference")
DATA_DIR = Path(__file__).resolve().parent / "data"
CREATURES_PATH = DATA_DIR / "creatures.csv"
TRAINERS_PATH = DATA_DIR / "trainers.json"


@dataclass(frozen=True, slots=True)
class TrainerInfo:
    name: str
    profession: str | None
    multiplier: float
    combo_components: tuple[str, ...]

    @property
    def is_combo(self) -> bool:
        return bool(self.combo_components)


class CreatureTable:
    """Nome da criatura -> valor inteiro."""

    def __init__(self, values: dict[str, int]) -> None:
        self._values = MappingProxyType(dict(values))

    @classmethod
    def from_csv_bytes(cls, data: bytes) -> "CreatureTable":
        """CSV sem cabecalho, ``nome,valor`` por linha."""
        values: dict[str, int] = {}
        reader = csv.reader(io.StringIO(data.decode("utf-8")))
        for row_no, row in enumerate(reader, start=1):
            if len(row) < 2:
                continue
            name = row[0].strip()
            try:
                value = int(row[1].strip())
            except ValueError as exc:
                raise ReferenceDataError(
                    f"Bad creature value for {name!r} (row {row_no}): {row[1]!r}"
                ) from exc
            if name:
                values[name] = value
        logger.info("Carregadas %s criaturas", len(values))
        return cls(values)

    @classmethod
    def bundled(cls) -> "CreatureTable":
        return _bundled_creatures()

    def value(self, name: str) -> int | None:
        """Valor da criatura; "the X" cai para "X" quando o chefe nao tem entrada propria."""
        if (found := self._values.get(name)) is not None:
            return found
        if name.startswith("the "):
            return self._values.get(name[4:])
        return None

    def __len__(self) -> int:
        return len(self._values)


class TrainerTable:
    """Mensagem de rank -> treinador, mais metadados por treinador."""

    def __init__(self, messages: dict[str, str], info: dict[str, TrainerInfo]) -> None:
        self._messages = MappingProxyType(dict(messages))
        self._info = MappingProxyType(dict(info))

    @classmethod
    def from_json_bytes(cls, data: bytes) -> "TrainerTable":
        try:
            raw: dict[str, Any] = orjson.loads(data)
        except orjson.JSONDecodeError as exc:
            raise ReferenceDataError(f"Invalid trainer table: {exc}") from exc

        messages: dict[str, str] = {}
        info: dict[str, TrainerInfo] = {}
        for key, entry in raw.items():
            if not isinstance(entry, dict) or not (trainer := entry.get("trainer")):
                logger.warning("Entrada de treinador ignorada: %s", key)
                continue
            messages[_strip_prefix(key)] = trainer
            if trainer not in info:
                info[trainer] = TrainerInfo(
                    name=trainer,
                    profession=entry.get("profession"),
                    multiplier=float(entry.get("effective_rank_multiplier", 1.0)),
                    combo_components=tuple(entry.get("combo_components", ())),
                )
        combos = sum(1 for t in info.values() if t.is_combo)
        logger.info(
            "Carregadas %s mensagens de %s treinadores (%s combos)",
            len(messages),
            len(info),
            combos,
        )
        return cls(messages, info)

    @classmethod
    def bundled(cls) -> "TrainerTable":
        return _bundled_trainers()

    def trainer_for(self, message: str) -> str | None:
        """Busca exata; depois tenta com/sem ponto final."""
        text = _strip_prefix(message)
        if found := self._messages.get(text):
            return found
        alternate = text[:-1] if text.endswith(".") else f"{text}."
        return self._messages.get(alternate)

    def info(self, name: str) -> TrainerInfo | None:
        return self._info.get(name)

    def profession(self, name: str) -> str | None:
        return t.profession if (t := self._info.get(name)) else None

    def multiplier(self, name: str) -> float:
        return t.multiplier if (t := self._info.get(name)) else 1.0

    def is_combo(self, name: str) -> bool:
        return bool((t := self._info.get(name)) and t.is_combo)

    def combo_components(self, name: str) -> tuple[str, ...]:
        return t.combo_components if (t := self._info.get(name)) else ()

    def catalog(self, profession: str | None = None) -> list[TrainerInfo]:
        entries = sorted(self._info.values(), key=lambda t: t.name)
        if profession is None:
            return entries
        wanted = profession.lower()
        return [t for t in entries if (t.profession or "").lower() == wanted]

    def __len__(self) -> int:
        return len(self._messages)


def _strip_prefix(message: str) -> str:
    text = message.strip()
    for prefix in SYSTEM_PREFIXES:
        if text.startswith(prefix):
            return text[len(prefix):].strip()
    return text


@cache
def _bundled_creatures() -> CreatureTable:
    return CreatureTable.from_csv_bytes(CREATURES_PATH.read_bytes())


@cache
def _bundled_trainers() -> TrainerTable:
    return TrainerTable.from_json_bytes(TRAINERS_PATH.read_bytes())
