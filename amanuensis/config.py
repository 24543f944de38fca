"""Configuracao por variaveis de ambiente e setup de logging."""

import logging
import os
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

logger = logging.getLogger("amanuensis")

LOG_FILE_NAME = "amanuensis.log"
DEFAULT_DB_PATH = Path("amanuensis.db")
DEFAULT_LOG_DIR = Path("logs")
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(slots=True)
class Config:
    db_path: Path
    log_dir: Path
    index_lines: bool


def load_config_from_env() -> Config:
    index_env = os.getenv("AMANUENSIS_INDEX_LINES", "1").strip().lower()
    return Config(
        db_path=Path(os.getenv("AMANUENSIS_DB", DEFAULT_DB_PATH)),
        log_dir=Path(os.getenv("AMANUENSIS_LOG_DIR", DEFAULT_LOG_DIR)),
        index_lines=index_env not in _FALSE_VALUES,
    )


def configure_stdout() -> None:
    if str(getattr(sys.stdout, "encoding", "")).lower() != "utf-8" and hasattr(
        sys.stdout, "reconfigure"
    ):
        try:
            sys.stdout.reconfigure(encoding="utf-8")
        except AttributeError:
            logger.warning("Nao foi possivel reconfigurar stdout para utf-8")


def configure_logging(log_dir: Path = DEFAULT_LOG_DIR) -> None:
    """Erros vao para ``<log_dir>/amanuensis.log`` (rotativo); o resto para stdout."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_level = os.getenv("AMANUENSIS_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, log_level, logging.WARNING)
    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    file_handler = RotatingFileHandler(
        log_dir / LOG_FILE_NAME,
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
        delay=True,
    )
    file_handler.setLevel(logging.ERROR)
    handlers: list[logging.Handler] = [file_handler, logging.StreamHandler(sys.stdout)]
    logging.basicConfig(level=level, format=fmt, handlers=handlers, force=True)
    logger.setLevel(level)


def log_aggregated_errors(messages: list[str]) -> None:
    """Loga cada mensagem uma vez, com a contagem de repeticoes."""
    counts: dict[str, int] = {}
    for msg in messages:
        counts[msg] = counts.get(msg, 0) + 1
    for msg, count in counts.items():
        if count > 1:
            logger.error("%s (repetido %s vezes)", msg, count)
        else:
            logger.error("%s", msg)
