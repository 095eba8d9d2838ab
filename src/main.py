"""
Runeforge - Main Entry Point
Command-line front end: refresh the Eastern Sun Resurrected data and query
runewords, socketables and unique items from the local store.
"""

import argparse
import logging
import sys
from typing import Dict, List, Optional

from config import APP_NAME, APP_VERSION, LOG_FILE, LOG_LEVEL
from core import SyncEngine
from games.esr import create_esr_config

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False):
    """Configure logging.

    Console shows INFO+ only so query output stays readable.
    File gets DEBUG when --debug is used (skipped rows, cache hits, ...).
    """
    LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter("%(asctime)s %(message)s", datefmt="%H:%M:%S"))

    file_handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    ))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug else LOG_LEVEL.upper())
    root_logger.addHandler(console)
    root_logger.addHandler(file_handler)


# ─── Facet parsing ──────────────────────────────────

def parse_tier_ceilings(values: Optional[List[str]]) -> Dict[str, Optional[int]]:
    """["esr:1=12", "lod:2=40"] → {"esr:1": 12, "lod:2": 40}."""
    ceilings: Dict[str, Optional[int]] = {}
    for value in values or []:
        key, sep, limit = value.partition("=")
        if not sep or not limit.strip().isdigit():
            raise argparse.ArgumentTypeError(f"expected CATEGORY:TIER=POINTS, got {value!r}")
        ceilings[key.strip()] = int(limit)
    return ceilings


def build_rune_selection(engine: SyncEngine, names: Optional[List[str]]) -> Dict[str, bool]:
    """Everything off except the named runes; "Ko Rune" selects every family, "esr:Ko Rune" one."""
    from filter_engine import build_rune_groups, select_all_runes

    if not names:
        return {}
    parsed = engine.load_socketables()
    selection = select_all_runes(build_rune_groups(parsed.esr_runes, parsed.lod_runes, parsed.kanji_runes),
                                 selected=False)
    wanted = set(names)
    for key in selection:
        bare = key.split(":", 1)[1]
        if key in wanted or bare in wanted:
            selection[key] = True
    return selection


# ─── Commands ───────────────────────────────────────

def ensure_data(engine: SyncEngine) -> bool:
    if engine.data_version is not None:
        return True
    logger.info("No local data yet, running a refresh first")
    return engine.refresh()


def cmd_sync(engine: SyncEngine, args) -> int:
    ok = engine.refresh(force=args.force)
    if ok and args.txt:
        ok = engine.refresh_txt(force=args.force)
    if ok:
        print(f"{APP_NAME}: data version {engine.data_version}")
    return 0 if ok else 1


def cmd_runewords(engine: SyncEngine, args) -> int:
    from column_expansion import expand_runewords_by_column
    from filter_engine import RunewordFilters, filter_runewords

    if not ensure_data(engine):
        return 1

    filters = RunewordFilters(
        search_text=args.search or "",
        sockets=args.sockets,
        max_req_level=args.max_level,
        item_types={t: True for t in args.item_type or []},
        runes=build_rune_selection(engine, args.rune),
        max_tier_points=parse_tier_ceilings(args.max_points),
    )
    runewords = filter_runewords(engine.load_runewords(), filters, engine.context())
    if args.expand:
        runewords = expand_runewords_by_column(runewords)

    for rw in runewords[:args.limit] if args.limit else runewords:
        print(f"{rw.name} (v{rw.variant}, {rw.sockets} sockets, level {rw.req_level})")
        print(f"  Runes: {' + '.join(rw.runes)}")
        print(f"  Items: {', '.join(rw.allowed_items)}"
              + (f"  (excluded: {', '.join(rw.excluded_items)})" if rw.excluded_items else ""))
        for affix in rw.affixes:
            print(f"    {affix.raw_text}")
        if rw.tier_point_totals:
            points = ", ".join(f"{t.category.value} T{t.tier}: {t.total_points}" for t in rw.tier_point_totals)
            print(f"  Points: {points}")
    print(f"\n{len(runewords)} runewords")
    return 0


def cmd_socketables(engine: SyncEngine, args) -> int:
    from filter_engine import SocketableCategory, build_unified_socketables, filter_socketables

    if not ensure_data(engine):
        return 1

    categories = [SocketableCategory(c) for c in args.category] if args.category else None
    items = filter_socketables(build_unified_socketables(engine.load_socketables()),
                               categories, args.search or "")
    for item in items:
        print(f"{item.name} [{item.category.value}] level {item.req_level}")
        for affix in item.bonuses.all_affixes():
            print(f"    {affix.raw_text}")
    print(f"\n{len(items)} socketables")
    return 0


def cmd_uniques(engine: SyncEngine, args) -> int:
    from unique_items import UniqueItemFilters, filter_unique_items

    items = engine.load_unique_items()
    if not items:
        if not engine.refresh_txt():
            return 1
        items = engine.load_unique_items()

    filters = UniqueItemFilters(
        search_text=args.search or "",
        max_req_level=args.max_level,
        type_codes=frozenset(args.type or []),
        include_coupon_items=not args.no_coupons,
    )
    results = filter_unique_items(items, filters, engine.item_type_context())
    for display in results:
        item = display.item
        print(f"{item.index} - {item.item_name} ({display.type_info.label}, level {item.level_req})")
        for text in item.resolved_properties:
            print(f"    {text}")
    print(f"\n{len(results)} unique items")
    return 0


COMMANDS = {
    "sync": cmd_sync,
    "runewords": cmd_runewords,
    "socketables": cmd_socketables,
    "uniques": cmd_uniques,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="runeforge",
        description=f"{APP_NAME} {APP_VERSION} - Eastern Sun Resurrected runeword reference",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  runeforge sync                                  # Refresh when a new version is out
  runeforge sync --force --txt                    # Re-download everything, game tables too
  runeforge runewords --search '"life stolen"' --sockets 3
  runeforge runewords --rune "esr:Ko Rune" --max-points esr:3=12 --expand
  runeforge socketables --category esr --search fire
  runeforge uniques --search "cold damage" --max-level 40
        """
    )
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument("--base-url", help="Override the documentation site URL")
    parser.add_argument("--cache-dir", help="Override the cache directory")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("sync", help="Fetch and store the latest data")
    p.add_argument("--force", "-f", action="store_true", help="Ignore the version check and cache")
    p.add_argument("--txt", action="store_true", help="Also refresh the game tables (unique items, sets)")

    p = sub.add_parser("runewords", help="Search runewords")
    p.add_argument("--search", "-s", help='Search text; "quoted phrases" match exactly')
    p.add_argument("--sockets", type=int, help="Exact socket count")
    p.add_argument("--max-level", type=int, help="Highest required level")
    p.add_argument("--item-type", action="append", help="Allowed item type (repeatable)")
    p.add_argument("--rune", action="append", help='Rune to allow, e.g. "Ko Rune" or "lod:Ko Rune" (repeatable)')
    p.add_argument("--max-points", action="append", help="Tier point ceiling CATEGORY:TIER=POINTS (repeatable)")
    p.add_argument("--expand", action="store_true", help="One entry per item category when bonuses differ")
    p.add_argument("--limit", type=int, default=0, help="Show at most N results")

    p = sub.add_parser("socketables", help="Search gems, runes and crystals")
    p.add_argument("--search", "-s", help="Search text")
    p.add_argument("--category", action="append",
                   choices=["gems", "esr", "lod", "kanji", "crystals"], help="Category (repeatable)")

    p = sub.add_parser("uniques", help="Search unique items")
    p.add_argument("--search", "-s", help='Search text; "quoted phrases" match exactly')
    p.add_argument("--max-level", type=int, help="Highest required level")
    p.add_argument("--type", action="append", help="Item type code, e.g. swor (repeatable)")
    p.add_argument("--no-coupons", action="store_true", help="Hide Ancient Coupon items")
    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(debug=args.debug)

    try:
        engine = SyncEngine(create_esr_config(base_url=args.base_url, cache_dir=args.cache_dir))
        sys.exit(COMMANDS[args.command](engine, args))
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except KeyboardInterrupt:
        print("\nInterrupted")
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
