"""
Interface de linha de comando do amanuensis.

Subcomandos para escanear logs, consultar estatisticas por personagem,
fundir personagens e manter o banco. Saida em tabelas ``rich``; o scan
mostra uma barra ``tqdm`` colorida com ``colorama``.
"""

import argparse
import logging
import sqlite3
import sys
from collections.abc import Callable
from pathlib import Path

import orjson
from colorama import Fore, Style, init
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text
from rich.theme import Theme
from tqdm import tqdm  # type: ignore[import-untyped]

from amanuensis.config import (
    configure_logging,
    configure_stdout,
    load_config_from_env,
    log_aggregated_errors,
)
from amanuensis.errors import AmanuensisError, DataError
from amanuensis.reference import TrainerTable
from amanuensis.scanner import LogScanner, ScanResult
from amanuensis.store import Kill, Store

init(autoreset=True)

logger = logging.getLogger("amanuensis.cli")

THEME = Theme(
    {
        "ok": "bold green",
        "warn": "bold yellow",
        "error": "bold red",
        "muted": "grey50",
    }
)

_KILL_SORTS: dict[str, Callable[[Kill], tuple]] = {
    "total": lambda k: (-k.total, k.creature_name),
    "solo": lambda k: (-k.solo_total, k.creature_name),
    "assisted": lambda k: (-k.assisted_total, k.creature_name),
    "value": lambda k: (-k.creature_value, k.creature_name),
    "name": lambda k: (k.creature_name.lower(),),
}

type Handler = Callable[[argparse.Namespace, Store, Console], int]


class ScanProgress:
    """Callback de progresso do scanner; a barra so nasce quando o total e conhecido."""

    def __init__(self, desc: str) -> None:
        self.desc = desc
        self.bar: tqdm | None = None

    def __call__(self, current: int, total: int, filename: str) -> None:
        if self.bar is None:
            self.bar = tqdm(
                total=total,
                desc=f"{Fore.GREEN}{self.desc}{Style.RESET_ALL}",
                bar_format="{l_bar}%s{bar}%s{r_bar}" % (Fore.LIGHTGREEN_EX, Style.RESET_ALL),
                unit="arquivo",
            )
        self.bar.set_postfix_str(filename, refresh=False)
        self.bar.update(current - self.bar.n)

    def close(self) -> None:
        if self.bar is not None:
            self.bar.close()


def _new_table(title: str, *columns: str) -> Table:
    table = Table(title=title, box=box.SIMPLE_HEAVY, show_header=True, header_style="yellow3")
    for col in columns:
        table.add_column(col, justify="left" if col in {"Name", "Creature", "Trainer"} else "right")
    return table


def _print_scan_result(console: Console, result: ScanResult) -> None:
    table = _new_table("Scan", "Characters", "Scanned", "Skipped", "Lines", "Events", "Errors")
    table.add_row(
        str(result.characters),
        str(result.files_scanned),
        str(result.skipped),
        str(result.lines_parsed),
        str(result.events_found),
        f"[error]{result.errors}[/error]" if result.errors else "0",
    )
    console.print(table)
    if result.error_messages:
        log_aggregated_errors(result.error_messages)


# -------------------- Scan --------------------


def cmd_scan(args: argparse.Namespace, store: Store, console: Console) -> int:
    scanner = LogScanner(store)
    progress = ScanProgress("Escaneando logs")
    scan = scanner.scan_recursive if args.recursive else scanner.scan_folder
    try:
        result = scan(args.folder, force=args.force, index_lines=args.index_lines, progress=progress)
    finally:
        progress.close()
    _print_scan_result(console, result)
    return 0


def cmd_scan_files(args: argparse.Namespace, store: Store, console: Console) -> int:
    progress = ScanProgress("Escaneando arquivos")
    try:
        result = LogScanner(store).scan_files(
            args.files, force=args.force, index_lines=args.index_lines, progress=progress
        )
    finally:
        progress.close()
    _print_scan_result(console, result)
    return 0


# -------------------- Consultas --------------------


def cmd_characters(args: argparse.Namespace, store: Store, console: Console) -> int:
    characters = store.list_characters()
    if not characters:
        console.print("[warn]Nenhum personagem. Rode `amanuensis scan` primeiro.[/warn]")
        return 0
    table = _new_table("Characters", "Name", "Profession", "Logins", "Deaths", "Coin level", "Merged")
    for character in characters:
        merged = store.get_character_merged(character.id) or character
        sources = store.get_merge_sources(character.id)
        table.add_row(
            character.name,
            character.profession,
            str(merged.logins),
            str(merged.deaths),
            str(character.coin_level),
            str(len(sources)) if sources else "",
        )
    console.print(table)
    return 0


def cmd_summary(args: argparse.Namespace, store: Store, console: Console) -> int:
    character = store.require_character(args.name)
    merged = store.get_character_merged(character.id) or character
    table = _new_table(merged.name, "Stat", "Value")
    rows = [
        ("Profession", merged.profession),
        ("Coin level", merged.coin_level),
        ("Start date", merged.start_date or "-"),
        ("Logins", merged.logins),
        ("Departs", merged.departs),
        ("Deaths", merged.deaths),
        ("Esteem", merged.esteem),
        ("Coins picked up", merged.coins_picked_up),
        ("Loot coins", merged.total_loot_coins),
        ("Study charges", merged.chest_coins),
        ("Bells used/broken", f"{merged.bells_used}/{merged.bells_broken}"),
        ("Chains used/broken", f"{merged.chains_used}/{merged.chains_broken}"),
        ("Shieldstones used/broken", f"{merged.shieldstones_used}/{merged.shieldstones_broken}"),
        ("Ethereal portals", merged.ethereal_portals),
        ("Karma good/bad", f"{merged.good_karma}/{merged.bad_karma}"),
        ("Untrainings", merged.untraining_count),
    ]
    if highest := store.get_highest_kill(character.id):
        rows.append(("Highest kill", f"{highest.creature_name} ({highest.score})"))
    if nemesis := store.get_nemesis(character.id):
        rows.append(("Nemesis", f"{nemesis.creature_name} ({nemesis.score})"))
    if sources := store.get_merge_sources(character.id):
        names = [c.name for sid in sources if (c := store.get_character_by_id(sid))]
        rows.append(("Merged from", ", ".join(names)))
    for label, value in rows:
        table.add_row(label, str(value))
    console.print(table)
    return 0


def cmd_kills(args: argparse.Namespace, store: Store, console: Console) -> int:
    character = store.require_character(args.name)
    kills = sorted(store.get_kills_merged(character.id), key=_KILL_SORTS[args.sort])
    if args.limit:
        kills = kills[: args.limit]
    table = _new_table(f"Kills - {character.name}", "Creature", "Solo", "Assisted", "Total", "Value", "Killed by", "Last")
    for kill in kills:
        table.add_row(
            kill.creature_name,
            str(kill.solo_total),
            str(kill.assisted_total),
            str(kill.total),
            str(kill.creature_value),
            str(kill.killed_by_count),
            kill.date_last or "-",
        )
    console.print(table)
    return 0


def cmd_trainers(args: argparse.Namespace, store: Store, console: Console) -> int:
    character = store.require_character(args.name)
    trainers = TrainerTable.bundled()
    table = _new_table(
        f"Trainers - {character.name}",
        "Trainer", "Profession", "Ranks", "Modified", "Applied", "Unknown", "Total", "Effective",
    )
    for record in store.get_trainers_merged(character.id):
        name = record.trainer_name
        label = f"{name} [muted](combo)[/muted]" if trainers.is_combo(name) else name
        table.add_row(
            label,
            trainers.profession(name) or "-",
            str(record.ranks),
            str(record.modified_ranks),
            str(record.apply_learning_ranks),
            str(record.apply_learning_unknown_count),
            str(record.total_ranks),
            f"{record.effective_ranks(trainers.multiplier(name)):.1f}",
        )
    console.print(table)
    return 0


def cmd_lastys(args: argparse.Namespace, store: Store, console: Console) -> int:
    character = store.require_character(args.name)
    table = _new_table(f"Lastys - {character.name}", "Creature", "Type", "Status", "Messages", "First", "Last")
    for lasty in store.get_lastys_merged(character.id):
        if lasty.finished:
            status = "[ok]done[/ok]"
        elif lasty.abandoned_date:
            status = "[warn]abandoned[/warn]"
        else:
            status = "studying"
        table.add_row(
            lasty.creature_name,
            lasty.lasty_type,
            status,
            str(lasty.message_count),
            lasty.first_seen_date or "-",
            lasty.last_seen_date or "-",
        )
    console.print(table)
    return 0


def cmd_pets(args: argparse.Namespace, store: Store, console: Console) -> int:
    character = store.require_character(args.name)
    table = _new_table(f"Pets - {character.name}", "Name", "Creature")
    for pet in store.get_pets_merged(character.id):
        table.add_row(pet.pet_name, pet.creature_name)
    console.print(table)
    return 0


def cmd_search(args: argparse.Namespace, store: Store, console: Console) -> int:
    character_id = store.require_character(args.character).id if args.character else None
    hits = store.search_log_lines(args.query, character_id=character_id, limit=args.limit)
    if not hits:
        console.print("[warn]Nada encontrado.[/warn]")
        return 0
    table = _new_table(f"Search: {args.query}", "Name", "Timestamp", "Line")
    for hit in hits:
        table.add_row(Text(hit.character_name), hit.timestamp or "-", Text(hit.snippet))
    console.print(table)
    return 0


def cmd_trainer_catalog(args: argparse.Namespace, store: Store, console: Console) -> int:
    table = _new_table("Trainer catalog", "Trainer", "Profession", "Multiplier", "Combo of")
    for info in TrainerTable.bundled().catalog(args.profession):
        table.add_row(
            info.name,
            info.profession or "-",
            f"{info.multiplier:g}",
            ", ".join(info.combo_components),
        )
    console.print(table)
    return 0


def cmd_export(args: argparse.Namespace, store: Store, console: Console) -> int:
    character = store.require_character(args.name)
    payload = {
        "character": store.get_character_merged(character.id),
        "kills": store.get_kills_merged(character.id),
        "trainers": store.get_trainers_merged(character.id),
        "lastys": store.get_lastys_merged(character.id),
        "pets": store.get_pets_merged(character.id),
        "highest_kill": store.get_highest_kill(character.id),
        "nemesis": store.get_nemesis(character.id),
    }
    data = orjson.dumps(payload, option=orjson.OPT_INDENT_2)
    if args.output:
        args.output.write_bytes(data)
        console.print(f"[ok]Exportado para {args.output}[/ok]")
    else:
        sys.stdout.write(data.decode("utf-8") + "\n")
    return 0


# -------------------- Manutencao --------------------


def cmd_merge(args: argparse.Namespace, store: Store, console: Console) -> int:
    target = store.require_character(args.target)
    source_ids = []
    for name in args.sources:
        if (source := store.get_character(name)) is None:
            raise DataError(f"Character {name!r} not found")
        source_ids.append(source.id)
    store.merge_characters(source_ids, target.id)
    console.print(f"[ok]Fundidos em {target.name}: {', '.join(args.sources)}[/ok]")
    return 0


def cmd_unmerge(args: argparse.Namespace, store: Store, console: Console) -> int:
    if (character := store.get_character(args.name)) is None:
        raise DataError(f"Character {args.name!r} not found")
    store.unmerge_character(character.id)
    console.print(f"[ok]{character.name} separado.[/ok]")
    return 0


def cmd_set_ranks(args: argparse.Namespace, store: Store, console: Console) -> int:
    character = store.require_character(args.name)
    if args.ranks < 0:
        raise DataError("Ranks must be zero or positive")
    if TrainerTable.bundled().info(args.trainer) is None:
        console.print(f"[warn]Treinador desconhecido: {args.trainer}[/warn]")
    store.set_modified_ranks(character.id, args.trainer, args.ranks)
    console.print(f"[ok]{character.name}: {args.trainer} = {args.ranks} ranks informados[/ok]")
    return 0


def cmd_reset(args: argparse.Namespace, store: Store, console: Console) -> int:
    if not args.yes:
        answer = input("Apagar todos os dados lidos dos logs? [y/N] ")
        if answer.strip().lower() not in {"y", "yes", "s", "sim"}:
            console.print("[warn]Cancelado.[/warn]")
            return 1
    store.reset_log_data(preserve_rank_overrides=args.keep_overrides)
    console.print("[ok]Dados de log apagados.[/ok]")
    return 0


COMMANDS: dict[str, Handler] = {
    "scan": cmd_scan,
    "scan-files": cmd_scan_files,
    "characters": cmd_characters,
    "summary": cmd_summary,
    "kills": cmd_kills,
    "trainers": cmd_trainers,
    "lastys": cmd_lastys,
    "pets": cmd_pets,
    "merge": cmd_merge,
    "unmerge": cmd_unmerge,
    "set-ranks": cmd_set_ranks,
    "search": cmd_search,
    "reset": cmd_reset,
    "trainer-catalog": cmd_trainer_catalog,
    "export": cmd_export,
}


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="amanuensis", description="Clan Lord log parser and stat tracker")
    p.add_argument("--db", type=Path, help="SQLite path (default: $AMANUENSIS_DB or amanuensis.db)")
    p.add_argument("--log-dir", type=Path, help="Directory for the error log file")

    sp = p.add_subparsers(dest="cmd", required=True)

    scan = sp.add_parser("scan", help="Scan a folder of character log directories")
    scan.add_argument("folder", type=Path)
    scan.add_argument("--force", action="store_true", help="Re-scan files already read")
    scan.add_argument("-r", "--recursive", action="store_true", help="Find log folders at any depth")
    scan.add_argument("--no-index", dest="index_lines", action="store_false", default=None,
                      help="Skip full-text indexing of log lines")

    scan_files = sp.add_parser("scan-files", help="Scan individual log files")
    scan_files.add_argument("files", type=Path, nargs="+")
    scan_files.add_argument("--force", action="store_true")
    scan_files.add_argument("--no-index", dest="index_lines", action="store_false", default=None)

    sp.add_parser("characters", help="List characters")

    for name, help_text in [
        ("summary", "Show a character summary"),
        ("trainers", "Show trainer ranks"),
        ("lastys", "Show lasty progress"),
        ("pets", "Show pets"),
    ]:
        sp.add_parser(name, help=help_text).add_argument("name")

    kills = sp.add_parser("kills", help="Show kill statistics")
    kills.add_argument("name")
    kills.add_argument("--sort", choices=sorted(_KILL_SORTS), default="total")
    kills.add_argument("--limit", type=int)

    merge = sp.add_parser("merge", help="Merge characters into a target")
    merge.add_argument("target")
    merge.add_argument("sources", nargs="+")

    sp.add_parser("unmerge", help="Undo a merge").add_argument("name")

    set_ranks = sp.add_parser("set-ranks", help="Set ranks trained before the logs began")
    set_ranks.add_argument("name")
    set_ranks.add_argument("trainer")
    set_ranks.add_argument("ranks", type=int)

    search = sp.add_parser("search", help="Full-text search over indexed log lines")
    search.add_argument("query")
    search.add_argument("--character")
    search.add_argument("--limit", type=int, default=50)

    reset = sp.add_parser("reset", help="Delete all log-derived data")
    reset.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    reset.add_argument("--keep-overrides", action="store_true",
                       help="Keep characters, merges and user-entered ranks")

    catalog = sp.add_parser("trainer-catalog", help="List known trainers")
    catalog.add_argument("--profession")

    export = sp.add_parser("export", help="Export a character (merged view) as JSON")
    export.add_argument("name")
    export.add_argument("-o", "--output", type=Path)

    return p


def main(argv: list[str] | None = None) -> int:
    configure_stdout()
    args = build_parser().parse_args(argv)
    cfg = load_config_from_env()
    configure_logging(args.log_dir or cfg.log_dir)
    if getattr(args, "index_lines", False) is None:
        args.index_lines = cfg.index_lines

    console = Console(theme=THEME)
    err_console = Console(theme=THEME, stderr=True)
    db_path = args.db or cfg.db_path
    try:
        with Store(db_path) as store:
            return COMMANDS[args.cmd](args, store, console)
    except (AmanuensisError, sqlite3.Error) as exc:
        logger.debug("Comando %s falhou", args.cmd, exc_info=True)
        err_console.print(f"[error]Error:[/error] {escape(str(exc))}", highlight=False)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
