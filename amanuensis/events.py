"""
Conjunto fechado de eventos produzidos pelo classificador de linhas.

Cada linha de log vira exatamente um destes eventos; linhas nao
reconhecidas viram ``Ignored``.
"""

from dataclasses import dataclass
from enum import StrEnum


class KillVerb(StrEnum):
    KILLED = "killed"
    SLAUGHTERED = "slaughtered"
    VANQUISHED = "vanquished"
    DISPATCHED = "dispatched"


# Forma usada depois de "You helped ..."
ASSISTED_VERBS: dict[str, KillVerb] = {
    "kill": KillVerb.KILLED,
    "slaughter": KillVerb.SLAUGHTERED,
    "vanquish": KillVerb.VANQUISHED,
    "dispatch": KillVerb.DISPATCHED,
}


class LootType(StrEnum):
    FUR = "fur"
    BLOOD = "blood"
    MANDIBLE = "mandible"
    OTHER = "other"

    @classmethod
    def from_text(cls, raw: str) -> "LootType":
        match raw:
            case "fur":
                return cls.FUR
            case "blood":
                return cls.BLOOD
            case "mandible" | "mandibles":
                return cls.MANDIBLE
            case _:
                return cls.OTHER


class LastyType(StrEnum):
    BEFRIEND = "Befriend"
    MORPH = "Morph"
    MOVEMENTS = "Movements"

    @classmethod
    def from_study(cls, study: str) -> "LastyType":
        """ways -> Befriend, movements -> Movements, essence -> Morph."""
        return _STUDY_TYPES[study]


_STUDY_TYPES = {
    "ways": LastyType.BEFRIEND,
    "movements": LastyType.MOVEMENTS,
    "essence": LastyType.MORPH,
}


class Equipment(StrEnum):
    BELL_USED = "bell_used"
    BELL_BROKEN = "bell_broken"
    CHAIN_USED = "chain_used"
    CHAIN_BROKEN = "chain_broken"
    SHIELDSTONE_USED = "shieldstone_used"
    SHIELDSTONE_BROKEN = "shieldstone_broken"
    PORTAL_OPENED = "portal_opened"
    PORTAL_STONE_USED = "portal_stone_used"


@dataclass(frozen=True, slots=True)
class Login:
    name: str


@dataclass(frozen=True, slots=True)
class Reconnect:
    name: str


@dataclass(frozen=True, slots=True)
class SoloKill:
    creature: str
    verb: KillVerb


@dataclass(frozen=True, slots=True)
class AssistedKill:
    creature: str
    verb: KillVerb


@dataclass(frozen=True, slots=True)
class Fallen:
    name: str
    cause: str


@dataclass(frozen=True, slots=True)
class Recovered:
    name: str


@dataclass(frozen=True, slots=True)
class FirstDepart:
    pass


@dataclass(frozen=True, slots=True)
class Depart:
    count: int


@dataclass(frozen=True, slots=True)
class TrainerRank:
    trainer_name: str
    message: str


@dataclass(frozen=True, slots=True)
class CoinsPickedUp:
    amount: int


@dataclass(frozen=True, slots=True)
class CoinBalance:
    amount: int


@dataclass(frozen=True, slots=True)
class LootShare:
    """``amount`` e a parte do personagem; ``worth`` o valor total do item."""

    item: str
    loot_type: LootType
    worth: int
    amount: int


@dataclass(frozen=True, slots=True)
class StudyCharge:
    amount: int


@dataclass(frozen=True, slots=True)
class StudyProgress:
    creature: str
    progress: str


@dataclass(frozen=True, slots=True)
class StudyAbandon:
    creature: str


@dataclass(frozen=True, slots=True)
class EquipmentChange:
    item: Equipment
    target: str | None = None


@dataclass(frozen=True, slots=True)
class KarmaReceived:
    good: bool


@dataclass(frozen=True, slots=True)
class EsteemGain:
    pass


@dataclass(frozen=True, slots=True)
class ExperienceGain:
    pass


@dataclass(frozen=True, slots=True)
class ClanningChange:
    name: str
    clanning: bool


@dataclass(frozen=True, slots=True)
class Disconnect:
    pass


@dataclass(frozen=True, slots=True)
class ProfessionAnnouncement:
    name: str
    profession: str


@dataclass(frozen=True, slots=True)
class Untrained:
    pass


@dataclass(frozen=True, slots=True)
class ApplyLearningRank:
    """Bonus de "apply learning"; ``full`` = +10 confirmado, senao 1-9 desconhecido.

    ``character_name`` e None quando a mensagem nao traz o destinatario.
    """

    character_name: str | None
    trainer_name: str
    full: bool


@dataclass(frozen=True, slots=True)
class LastyBeginStudy:
    creature: str
    lasty_type: LastyType


@dataclass(frozen=True, slots=True)
class LastyProgress:
    creature: str
    lasty_type: LastyType


@dataclass(frozen=True, slots=True)
class LastyFinished:
    creature: str
    lasty_type: LastyType


@dataclass(frozen=True, slots=True)
class LastyCompleted:
    trainer: str


@dataclass(frozen=True, slots=True)
class Ignored:
    pass


type Event = (
    Login
    | Reconnect
    | SoloKill
    | AssistedKill
    | Fallen
    | Recovered
    | FirstDepart
    | Depart
    | TrainerRank
    | CoinsPickedUp
    | CoinBalance
    | LootShare
    | StudyCharge
    | StudyProgress
    | StudyAbandon
    | EquipmentChange
    | KarmaReceived
    | EsteemGain
    | ExperienceGain
    | ClanningChange
    | Disconnect
    | ProfessionAnnouncement
    | Untrained
    | ApplyLearningRank
    | LastyBeginStudy
    | LastyProgress
    | LastyFinished
    | LastyCompleted
    | Ignored
)

IGNORED = Ignored()
