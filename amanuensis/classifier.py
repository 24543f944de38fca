"""
Classificador de linhas: texto (ja sem timestamp) -> um ``Event``.

A ordem das regras importa: varias mensagens se sobrepoem textualmente
("much more" contem "more", karma e anuncios de NPC parecem fala, etc.).
Cada lista abaixo e avaliada em sequencia e a primeira regra que casa vence.
"""

import logging
import re
from collections.abc import Callable

from amanuensis import patterns as p
from amanuensis.events import (
    ASSISTED_VERBS,
    IGNORED,
    ApplyLearningRank,
    AssistedKill,
    ClanningChange,
    CoinBalance,
    CoinsPickedUp,
    Depart,
    Disconnect,
    Equipment,
    EquipmentChange,
    EsteemGain,
    Event,
    ExperienceGain,
    Fallen,
    FirstDepart,
    KarmaReceived,
    KillVerb,
    LastyBeginStudy,
    LastyCompleted,
    LastyFinished,
    LastyProgress,
    LastyType,
    Login,
    LootShare,
    LootType,
    ProfessionAnnouncement,
    Reconnect,
    Recovered,
    SoloKill,
    StudyAbandon,
    StudyCharge,
    StudyProgress,
    TrainerRank,
    Untrained,
)
from amanuensis.reference import TrainerTable

logger = logging.getLogger("amanuensis.classifier")

type Rule = tuple[re.Pattern[str], Callable[[re.Match[str]], Event]]

KNOWN_PROFESSIONS = ("Fighter", "Healer", "Mystic", "Ranger", "Bloodmage", "Champion")


def strip_article(name: str) -> str:
    """Remove "a "/"an " do inicio; "the " e mantido (variante chefe da criatura)."""
    for article in ("an ", "a "):
        if name.startswith(article):
            return name[len(article):]
    return name


def normalize_profession(raw: str) -> str:
    lowered = raw.lower()
    for known in KNOWN_PROFESSIONS:
        if known.lower() == lowered:
            return known
    return lowered[:1].upper() + lowered[1:]


def _loot_share(m: re.Match[str]) -> Event:
    return LootShare(
        item=m[1], loot_type=LootType.from_text(m[2]), worth=int(m[3]), amount=int(m[4])
    )


def _self_recovery(m: re.Match[str]) -> Event:
    worth = int(m[3])
    return LootShare(item=m[1], loot_type=LootType.from_text(m[2]), worth=worth, amount=worth)


def _equipment(item: Equipment) -> Callable[[re.Match[str]], Event]:
    return lambda _m: EquipmentChange(item)


# Mensagens de NPC/sistema que precisam vencer o filtro de fala.
SPEECH_OVERRIDE_RULES: list[Rule] = [
    (p.RE_KARMA, lambda m: KarmaReceived(good=m[1] == "good")),
    (p.RE_APPLY_LEARNING_FULL, lambda m: ApplyLearningRank(m[1], m[2], full=True)),
    (p.RE_APPLY_LEARNING_PARTIAL, lambda m: ApplyLearningRank(m[1], m[2], full=False)),
    (
        p.RE_PROFESSION_CIRCLE_TEST,
        lambda m: ProfessionAnnouncement(m[1], normalize_profession(m[2])),
    ),
    (
        p.RE_PROFESSION_BECOME,
        lambda m: ProfessionAnnouncement(m[1], normalize_profession(m[2])),
    ),
    (p.RE_UNTRAINED, lambda _m: Untrained()),
]

DISCARD_PATTERNS = (p.RE_SPEECH, p.RE_EMOTE)

WORLD_RULES: list[Rule] = [
    (p.RE_WELCOME_LOGIN, lambda m: Login(m[1])),
    (p.RE_WELCOME_BACK, lambda m: Reconnect(m[1])),
    (p.RE_SOLO_KILL, lambda m: SoloKill(strip_article(m[2]), KillVerb(m[1]))),
    (p.RE_ASSISTED_KILL, lambda m: AssistedKill(strip_article(m[2]), ASSISTED_VERBS[m[1]])),
    (p.RE_FALLEN, lambda m: Fallen(m[1], m[2])),
    (p.RE_RECOVERED, lambda m: Recovered(m[1])),
    (p.RE_FIRST_DEPART, lambda _m: FirstDepart()),
    (p.RE_DEPART_COUNT, lambda m: Depart(int(m[1]))),
    (p.RE_COINS_PICKED_UP, lambda m: CoinsPickedUp(int(m[1]))),
    (p.RE_COIN_BALANCE, lambda m: CoinBalance(int(m[1]))),
    (p.RE_LOOT_SHARE, _loot_share),
    (p.RE_SELF_RECOVERY, _self_recovery),
    (p.RE_BELL_BROKEN, _equipment(Equipment.BELL_BROKEN)),
    (p.RE_BELL_USED, _equipment(Equipment.BELL_USED)),
    (p.RE_CHAIN_BROKEN, _equipment(Equipment.CHAIN_BROKEN)),
    (p.RE_CHAIN_DRAG, lambda m: EquipmentChange(Equipment.CHAIN_USED, target=m[1])),
    (p.RE_SHIELDSTONE_USED, _equipment(Equipment.SHIELDSTONE_USED)),
    (p.RE_SHIELDSTONE_BROKEN, _equipment(Equipment.SHIELDSTONE_BROKEN)),
    (p.RE_ETHEREAL_PORTAL, _equipment(Equipment.PORTAL_OPENED)),
    (p.RE_ETHEREAL_STONE_USED, _equipment(Equipment.PORTAL_STONE_USED)),
    # esteem antes de experience: ambos comecam com "* You gain"
    (p.RE_ESTEEM_GAIN, lambda _m: EsteemGain()),
    (p.RE_EXPERIENCE_GAIN, lambda _m: ExperienceGain()),
    (p.RE_CLANNING_ON, lambda m: ClanningChange(m[1], clanning=True)),
    (p.RE_CLANNING_OFF, lambda m: ClanningChange(m[1], clanning=False)),
    (p.RE_DISCONNECT, lambda _m: Disconnect()),
]

SYSTEM_RULES: list[Rule] = [
    (p.RE_STUDY_CHARGE, lambda m: StudyCharge(int(m[1]))),
    (p.RE_STUDY_PROGRESS, lambda m: StudyProgress(m[1], m[2])),
    (p.RE_STUDY_ABANDON, lambda m: StudyAbandon(m[1])),
    (p.RE_LASTY_BEGIN_STUDY, lambda m: LastyBeginStudy(m[2], LastyType.from_study(m[1]))),
    (p.RE_LASTY_LEARN_PROGRESS, lambda m: LastyProgress(m[2], LastyType.from_study(m[1]))),
    (p.RE_LASTY_BEFRIEND, lambda m: LastyFinished(m[1], LastyType.BEFRIEND)),
    (p.RE_LASTY_MORPH, lambda m: LastyFinished(m[1], LastyType.MORPH)),
    (p.RE_LASTY_MOVEMENTS, lambda m: LastyFinished(m[1], LastyType.MOVEMENTS)),
    (p.RE_LASTY_COMPLETED, lambda m: LastyCompleted(m[1])),
]


def _first_match(rules: list[Rule], text: str) -> Event | None:
    for pattern, build in rules:
        if m := pattern.search(text):
            return build(m)
    return None


def system_body(message: str) -> str | None:
    """Corpo de uma linha de sistema (sem ¥/• e espacos), ou None se nao for uma."""
    for prefix in p.SYSTEM_PREFIXES:
        if message.startswith(prefix):
            return message[len(prefix):].strip()
    return None


def classify_system(body: str, trainers: TrainerTable) -> Event:
    if event := _first_match(SYSTEM_RULES, body):
        return event
    if any(pattern.search(body) for pattern in p.RE_SYSTEM_IGNORED):
        return IGNORED
    if trainer_name := trainers.trainer_for(body):
        return TrainerRank(trainer_name=trainer_name, message=body)
    logger.debug("Mensagem de sistema desconhecida: %s", body)
    return IGNORED


def classify(message: str, trainers: TrainerTable) -> Event:
    """Classifica uma mensagem em exatamente um evento; nunca falha."""
    if not message:
        return IGNORED
    if event := _first_match(SPEECH_OVERRIDE_RULES, message):
        return event
    if any(pattern.search(message) for pattern in DISCARD_PATTERNS):
        return IGNORED
    if (body := system_body(message)) is not None:
        return classify_system(body, trainers)
    return _first_match(WORLD_RULES, message) or IGNORED
