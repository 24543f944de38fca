"""Regex pre-compiladas das mensagens do Clan Lord."""

import re

SYSTEM_PREFIXES = ("¥", "•")  # cliente Mac, cliente Windows

# Personagem
RE_WELCOME_LOGIN = re.compile(r"^Welcome to Clan Lord, (.+)!$")
RE_WELCOME_BACK = re.compile(r"^Welcome back, (.+)!$")

# Mortes de criaturas
RE_SOLO_KILL = re.compile(r"^You (killed|slaughtered|vanquished|dispatched) (.+)\.$")
RE_ASSISTED_KILL = re.compile(r"^You helped (kill|slaughter|vanquish|dispatch) (.+)\.$")

# Queda / partida
RE_FALLEN = re.compile(r"^(.+) has fallen to (?:an? )?(.+)\.$")
RE_RECOVERED = re.compile(r"^(.+) is no longer fallen\.$")
RE_FIRST_DEPART = re.compile(r"^This is the first time your spirit has departed your body\.$")
RE_DEPART_COUNT = re.compile(r"^Your spirit has departed your body (\d+) times?\.$")

# Moedas e loot
RE_COINS_PICKED_UP = re.compile(r"^\* You pick up (\d+) coins?\.$")
RE_COIN_BALANCE = re.compile(r"^You have (\d+) coins?\.$")
RE_LOOT_SHARE = re.compile(
    r"^\* (?:.+) recovers? the (.+) (fur|blood|mandibles?), worth (\d+)c\. Your share is (\d+)c\.$"
)
RE_SELF_RECOVERY = re.compile(r"^\* You recover the (.+) (fur|blood|mandibles?), worth (\d+)c\.$")

# Equipamentos
RE_BELL_BROKEN = re.compile(r"^\* Your bell crumbles to dust\.$")
RE_BELL_USED = re.compile(r"^\* The bell rings soundlessly into the void, summoning")
RE_CHAIN_BROKEN = re.compile(
    r"^(?:Your chain breaks as you try to use it|A link in your chain shatters"
    r"|Your chain snaps as you try to use it)\.$"
)
RE_CHAIN_DRAG = re.compile(r"^You start dragging (.+)\.$")
RE_SHIELDSTONE_USED = re.compile(r"^\* You activate your shieldstone\.$")
RE_SHIELDSTONE_BROKEN = re.compile(r"^Your Shieldstone goes inert\.$")
RE_ETHEREAL_PORTAL = re.compile(r"^You open an ethereal portal\.$")
RE_ETHEREAL_STONE_USED = re.compile(r"^Your ethereal portal stone disappears into the ether\.$")

# Fala e emotes (descartados)
RE_SPEECH = re.compile(r'^.+ (says|exclaims|yells|ponders|thinks|asks), "')
RE_EMOTE = re.compile(r"^\(.+ .+\)$")

# Mensagens de NPC que parecem fala mas carregam evento
RE_KARMA = re.compile(r"^You just received (?:anonymous )?(good|bad) karma")
RE_APPLY_LEARNING_FULL = re.compile(
    r"(?:Congratulations, (\w+)\. )?You should now understand much more of (.+?)['’]s teachings"
)
RE_APPLY_LEARNING_PARTIAL = re.compile(
    r"(?:Congratulations, (\w+)\. )?You should now understand more of (.+?)['’]s teachings"
)
RE_PROFESSION_CIRCLE_TEST = re.compile(
    r"Congratulations go out to (.+?), who has just passed the \w+ circle (\w+) test"
)
RE_PROFESSION_BECOME = re.compile(r"Congratulations to (.+?), who has just become an? (\w+)")
RE_UNTRAINED = re.compile(r'^Untrainus says, ".+, your mind is less cluttered now\.')

# Clanning / conexao / experiencia
RE_CLANNING_ON = re.compile(r"^(.+) is now Clanning\.$")
RE_CLANNING_OFF = re.compile(r"^(.+) is no longer Clanning\.$")
RE_DISCONNECT = re.compile(
    r"^\*\*\* We are no longer connected to the Clan Lord game server\. \*\*\*$"
)
RE_ESTEEM_GAIN = re.compile(r"^\* You gain (?:experience and )?esteem")
RE_EXPERIENCE_GAIN = re.compile(r"^\* You (grow more mindful|gain experience|gain morale)")

# Mensagens de sistema (corpo ja sem o prefixo ¥/•)
RE_STUDY_CHARGE = re.compile(r"^You have been charged (\d+) coins? for advanced studies\.$")
RE_STUDY_PROGRESS = re.compile(
    r"^You are (?:currently studying|remembering your studies of) the (.+), "
    r"and have (.+) left to learn\.$"
)
RE_STUDY_ABANDON = re.compile(r"^You abandon your study of the (.+)\.$")
RE_LASTY_BEGIN_STUDY = re.compile(r"^You begin studying the (ways|movements|essence) of the (.+)\.$")
RE_LASTY_LEARN_PROGRESS = re.compile(
    r"^You have .+ left to learn about the (ways|movements|essence) of the (.+)\.$"
)
RE_LASTY_BEFRIEND = re.compile(r"^You learn to befriend the (.+)\.$")
RE_LASTY_MORPH = re.compile(r"^You learn to assume the form of the (.+)\.$")
RE_LASTY_MOVEMENTS = re.compile(r"^You learn to fight the (.+) more effectively\.$")
RE_LASTY_COMPLETED = re.compile(r"^You have completed your training with (.+)\.$")

RE_SYSTEM_IGNORED = (
    re.compile(r"^You sense healing energy from .+\.$"),
    re.compile(r"^The Sun (rises|sets)\.$"),
    re.compile(r"^You gain experience from your"),
    re.compile(r"^You can study up to \d+ creatures? concurrently\.$"),
)
