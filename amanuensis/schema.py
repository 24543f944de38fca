"""Schema do banco - DDL para SQLite."""

SCHEMA_VERSION = 1

CREATE_CHARACTERS = """
CREATE TABLE IF NOT EXISTS characters (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
    profession TEXT NOT NULL DEFAULT 'Unknown',
    logins INTEGER NOT NULL DEFAULT 0,
    departs INTEGER NOT NULL DEFAULT 0,
    deaths INTEGER NOT NULL DEFAULT 0,
    esteem INTEGER NOT NULL DEFAULT 0,
    coins_picked_up INTEGER NOT NULL DEFAULT 0,
    chest_coins INTEGER NOT NULL DEFAULT 0,
    bounty_coins INTEGER NOT NULL DEFAULT 0,
    fur_coins INTEGER NOT NULL DEFAULT 0,
    mandible_coins INTEGER NOT NULL DEFAULT 0,
    blood_coins INTEGER NOT NULL DEFAULT 0,
    fur_worth INTEGER NOT NULL DEFAULT 0,
    mandible_worth INTEGER NOT NULL DEFAULT 0,
    blood_worth INTEGER NOT NULL DEFAULT 0,
    bells_used INTEGER NOT NULL DEFAULT 0,
    bells_broken INTEGER NOT NULL DEFAULT 0,
    chains_used INTEGER NOT NULL DEFAULT 0,
    chains_broken INTEGER NOT NULL DEFAULT 0,
    shieldstones_used INTEGER NOT NULL DEFAULT 0,
    shieldstones_broken INTEGER NOT NULL DEFAULT 0,
    ethereal_portals INTEGER NOT NULL DEFAULT 0,
    eps_broken INTEGER NOT NULL DEFAULT 0,
    good_karma INTEGER NOT NULL DEFAULT 0,
    bad_karma INTEGER NOT NULL DEFAULT 0,
    untraining_count INTEGER NOT NULL DEFAULT 0,
    coin_level INTEGER NOT NULL DEFAULT 0,
    start_date TEXT,
    merged_into INTEGER REFERENCES characters(id)
)
"""

CREATE_KILLS = """
CREATE TABLE IF NOT EXISTS kills (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    character_id INTEGER NOT NULL REFERENCES characters(id),
    creature_name TEXT NOT NULL,
    killed_count INTEGER NOT NULL DEFAULT 0,
    slaughtered_count INTEGER NOT NULL DEFAULT 0,
    vanquished_count INTEGER NOT NULL DEFAULT 0,
    dispatched_count INTEGER NOT NULL DEFAULT 0,
    assisted_kill_count INTEGER NOT NULL DEFAULT 0,
    assisted_slaughter_count INTEGER NOT NULL DEFAULT 0,
    assisted_vanquish_count INTEGER NOT NULL DEFAULT 0,
    assisted_dispatch_count INTEGER NOT NULL DEFAULT 0,
    killed_by_count INTEGER NOT NULL DEFAULT 0,
    creature_value INTEGER NOT NULL DEFAULT 0,
    date_first TEXT,
    date_last TEXT,
    date_last_killed TEXT,
    date_last_slaughtered TEXT,
    date_last_vanquished TEXT,
    date_last_dispatched TEXT,
    UNIQUE(character_id, creature_name)
)
"""

CREATE_TRAINERS = """
CREATE TABLE IF NOT EXISTS trainers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    character_id INTEGER NOT NULL REFERENCES characters(id),
    trainer_name TEXT NOT NULL,
    ranks INTEGER NOT NULL DEFAULT 0,
    modified_ranks INTEGER NOT NULL DEFAULT 0,
    apply_learning_ranks INTEGER NOT NULL DEFAULT 0,
    apply_learning_unknown_count INTEGER NOT NULL DEFAULT 0,
    date_of_last_rank TEXT,
    UNIQUE(character_id, trainer_name)
)
"""

CREATE_LASTYS = """
CREATE TABLE IF NOT EXISTS lastys (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    character_id INTEGER NOT NULL REFERENCES characters(id),
    creature_name TEXT NOT NULL,
    lasty_type TEXT NOT NULL,
    finished INTEGER NOT NULL DEFAULT 0,
    message_count INTEGER NOT NULL DEFAULT 0,
    first_seen_date TEXT,
    last_seen_date TEXT,
    completed_date TEXT,
    abandoned_date TEXT,
    UNIQUE(character_id, creature_name)
)
"""

CREATE_PETS = """
CREATE TABLE IF NOT EXISTS pets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    character_id INTEGER NOT NULL REFERENCES characters(id),
    pet_name TEXT NOT NULL,
    creature_name TEXT NOT NULL,
    UNIQUE(character_id, pet_name)
)
"""

# Ledger de arquivos lidos: dedup por caminho e por hash do conteudo
CREATE_LOG_FILES = """
CREATE TABLE IF NOT EXISTS log_files (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    character_id INTEGER NOT NULL REFERENCES characters(id),
    file_path TEXT NOT NULL UNIQUE,
    content_hash TEXT NOT NULL,
    date_read TEXT NOT NULL
)
"""

CREATE_LOG_FILES_HASH_INDEX = """
CREATE INDEX IF NOT EXISTS idx_log_files_hash ON log_files(content_hash)
"""

CREATE_MERGED_INTO_INDEX = """
CREATE INDEX IF NOT EXISTS idx_characters_merged_into ON characters(merged_into)
"""

CREATE_SCHEMA_META = """
CREATE TABLE IF NOT EXISTS schema_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
)
"""

# Indice full-text opcional das linhas brutas
CREATE_LOG_LINES_FTS = """
CREATE VIRTUAL TABLE IF NOT EXISTS log_lines USING fts5(
    content,
    character_id UNINDEXED,
    timestamp UNINDEXED,
    file_path UNINDEXED
)
"""

ALL_CREATE_STATEMENTS = [
    CREATE_SCHEMA_META,
    CREATE_CHARACTERS,
    CREATE_MERGED_INTO_INDEX,
    CREATE_KILLS,
    CREATE_TRAINERS,
    CREATE_LASTYS,
    CREATE_PETS,
    CREATE_LOG_FILES,
    CREATE_LOG_FILES_HASH_INDEX,
]

# Pragmas de escrita em lote, ativos so durante um scan; os valores anteriores sao restaurados
SCAN_PRAGMAS: dict[str, str] = {
    "journal_mode": "WAL",
    "synchronous": "NORMAL",
    "cache_size": "-64000",
    "temp_store": "MEMORY",
    "mmap_size": "268435456",
}
