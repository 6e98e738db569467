"""Command-line front door for docsearch.

``build`` turns symbol records (JSON or Doxygen ``searchData`` files) into a
shard directory, ``query`` searches one, ``show`` prints a shard with syntax
highlighting, ``export-doxygen`` writes Doxygen-compatible JS shards, and
``config`` reads or updates the persisted defaults.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from . import config
from .config import SETTING_KEYS, Settings, load_settings, save_settings, update_setting
from .errors import DocsearchError, ShardFormatError
from .highlight import colorize_json, format_result_groups, pretty_shard_text
from .index.builder import build_index, load_records, write_index
from .index.doxygen import dumps_searchdata_js, parse_searchdata_js, searchdata_filename
from .index.partition import SCHEMES, SCHEME_ALPHA, Partitioner
from .index.shard_format import loads_shard
from .index.types import SymbolRecord
from .search.matching import MATCH_PREFIX, MATCH_SUBSTRING
from .search.runtime import SearchRuntime
from .search.sources import DirectoryShardSource

logger = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def _read_inputs(paths: list[Path], doxygen: bool) -> list[SymbolRecord]:
    records: list[SymbolRecord] = []
    for path in paths:
        if not path.exists():
            raise SystemExit(f"Path not found: {path}")
        if doxygen or path.suffix == ".js":
            try:
                records.extend(parse_searchdata_js(path.read_text(encoding="utf-8")))
            except UnicodeDecodeError as exc:
                raise DocsearchError(f"{path}: not valid UTF-8: {exc}") from exc
            except ShardFormatError as exc:
                raise DocsearchError(f"{path}: unreadable searchData file: {exc}") from exc
        else:
            records.extend(load_records(path))
        logger.debug("read %s (%d records so far)", path, len(records))
    return records


def _cmd_build(args: argparse.Namespace, settings: Settings) -> int:
    strict = settings.strict if args.lenient is None else not args.lenient
    scheme = args.scheme or settings.scheme
    shard_count = args.shard_count if args.shard_count is not None else settings.shard_count
    if scheme == SCHEME_ALPHA:
        shard_count = None

    records = _read_inputs(args.inputs, args.doxygen)
    result = build_index(records, strict=strict, partitioner=Partitioner(scheme=scheme, shard_count=shard_count))
    write_index(result, args.out)
    sys.stdout.write(
        f"{result.entry_count()} entries in {len(result.shards)} shards written to {args.out}"
        f" ({len(result.rejected)} records rejected)\n"
    )
    return 0


def _cmd_query(args: argparse.Namespace, settings: Settings) -> int:
    match_mode = MATCH_PREFIX if args.prefix else settings.match_mode
    limit = args.limit if args.limit is not None else settings.result_limit
    text = " ".join(args.text)
    with SearchRuntime(
        DirectoryShardSource(args.index),
        match_mode=match_mode,
        limit=limit,
        load_workers=settings.load_workers,
    ) as runtime:
        response = runtime.query(text)
    for warning in response.warnings:
        sys.stderr.write(f"warning: shard {warning.shard_id} unavailable: {warning.reason}\n")
    sys.stdout.write(format_result_groups(response.groups()))
    return 0 if response.results else 1


def _cmd_show(args: argparse.Namespace, settings: Settings) -> int:
    source = DirectoryShardSource(args.index)
    try:
        document = source.fetch(args.shard)
    except FileNotFoundError:
        raise SystemExit(f"Shard not found: {args.shard}") from None
    loads_shard(document)
    style = args.style or settings.style
    sys.stdout.write(colorize_json(pretty_shard_text(document), style=style, no_color=args.no_color))
    return 0


def _cmd_export_doxygen(args: argparse.Namespace, settings: Settings) -> int:
    source = DirectoryShardSource(args.index)
    args.out.mkdir(parents=True, exist_ok=True)
    for shard_id in source.manifest().shard_ids():
        shard = loads_shard(source.fetch(shard_id))
        (args.out / searchdata_filename(shard_id)).write_text(dumps_searchdata_js(shard), encoding="utf-8")
    return 0


def _cmd_config(args: argparse.Namespace, settings: Settings) -> int:
    if args.path:
        sys.stdout.write(f"{config.CONFIG_PATH}\n")
        return 0
    if args.key is None:
        sys.stdout.write(json.dumps(asdict(settings), indent=2, sort_keys=True) + "\n")
        return 0
    if args.value is None:
        if args.key not in SETTING_KEYS:
            raise SystemExit(f"Unknown setting: {args.key}")
        sys.stdout.write(json.dumps(getattr(settings, args.key)) + "\n")
        return 0

    try:
        updated = update_setting(settings, args.key, args.value)
    except ValueError as exc:
        raise SystemExit(f"docsearch: {exc}") from None
    save_settings(updated)
    logger.debug("saved %s to %s", args.key, config.CONFIG_PATH)
    sys.stdout.write(f"{args.key} = {json.dumps(getattr(updated, args.key))}\n")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsearch",
        description="Build and query sharded symbol-search indexes for generated documentation.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    build = sub.add_parser("build", help="Build shards from symbol records.")
    build.add_argument("inputs", nargs="+", type=Path, help="JSON record files or Doxygen searchData .js files.")
    build.add_argument("--out", type=Path, required=True, help="Output directory for shards.")
    build.add_argument(
        "--lenient",
        action="store_true",
        default=None,
        help="Skip malformed records instead of failing the build.",
    )
    build.add_argument("--scheme", choices=SCHEMES, default=None, help="Shard partition scheme.")
    build.add_argument("--shard-count", type=_positive_int, default=None, help="Shard count for the hashed scheme.")
    build.add_argument("--doxygen", action="store_true", help="Treat every input as a Doxygen searchData file.")
    build.set_defaults(handler=_cmd_build)

    query = sub.add_parser("query", help="Search a built index.")
    query.add_argument("index", type=Path, help="Index directory.")
    query.add_argument("text", nargs="+", help="Query text.")
    query.add_argument(
        "--prefix",
        action="store_true",
        help=f"Use prefix matching instead of {MATCH_SUBSTRING} matching.",
    )
    query.add_argument("--limit", type=_positive_int, default=None, help="Maximum number of entries.")
    query.set_defaults(handler=_cmd_query)

    show = sub.add_parser("show", help="Print one shard with syntax highlighting.")
    show.add_argument("index", type=Path, help="Index directory.")
    show.add_argument("shard", help="Shard id.")
    show.add_argument("--style", default=None, help="Pygments style name.")
    show.add_argument("--no-color", action="store_true", help="Disable color output.")
    show.set_defaults(handler=_cmd_show)

    export = sub.add_parser("export-doxygen", help="Write Doxygen searchData JS files for a built index.")
    export.add_argument("index", type=Path, help="Index directory.")
    export.add_argument("--out", type=Path, required=True, help="Output directory for .js files.")
    export.set_defaults(handler=_cmd_export_doxygen)

    settings = sub.add_parser("config", help="Show or change persisted defaults.")
    settings.add_argument("key", nargs="?", default=None, help=f"Setting name: {', '.join(SETTING_KEYS)}.")
    settings.add_argument("value", nargs="?", default=None, help="New value to store.")
    settings.add_argument("--path", action="store_true", help="Print the config file location.")
    settings.set_defaults(handler=_cmd_config)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and dispatch to the selected subcommand."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    try:
        return args.handler(args, load_settings())
    except (DocsearchError, OSError) as exc:
        raise SystemExit(f"docsearch: {exc}") from exc


if __name__ == "__main__":
    sys.exit(main())
