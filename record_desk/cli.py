from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from record_desk.apps import create_default_registry
from record_desk.config.loader import load_global_config
from record_desk.context import AppContext, build_context
from record_desk.core.exceptions import RecordDeskError
from record_desk.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="record-desk", description="Local-first record keeping")
    parser.add_argument("--config", default="config", help="directory holding global.json")
    parser.add_argument("--app", default=None, help="app id (defaults to global.json default_app)")
    parser.add_argument("--log-level", default="WARNING")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("apps", help="list available apps")

    p_list = sub.add_parser("list", help="print the visible records of a collection")
    p_list.add_argument("collection")
    p_list.add_argument("--search", default="")
    p_list.add_argument("--filter", action="append", default=[], metavar="FIELD=VALUE")
    p_list.add_argument("--sort", action="append", default=[], metavar="KEY",
                        help="repeat a key to flip its direction")

    p_show = sub.add_parser("show", help="print one record")
    p_show.add_argument("collection")
    p_show.add_argument("record_id")

    p_export = sub.add_parser("export", help="export a collection")
    p_export.add_argument("collection")
    p_export.add_argument("--format", choices=("csv", "json"), default="csv")
    p_export.add_argument("--output", default=None)

    p_import = sub.add_parser("import", help="import a .csv or .json file into a collection")
    p_import.add_argument("collection")
    p_import.add_argument("file")

    p_template = sub.add_parser("template", help="print the CSV import template")
    p_template.add_argument("collection")

    sub.add_parser("summary", help="print dashboard figures")

    p_backup = sub.add_parser("backup", help="export every collection (and settings) as one JSON file")
    p_backup.add_argument("--output", default=None)

    p_dark = sub.add_parser("dark-mode", help="show or set the dark mode preference")
    p_dark.add_argument("value", nargs="?", choices=("on", "off"))

    return parser


def _print_notices(ctx: AppContext) -> int:
    status = 0
    for notice in ctx.controller.drain_notices():
        stream = sys.stderr if notice.level.value in ("error", "warning") else sys.stdout
        print(f"[{notice.level.value}] {notice.message}", file=stream)
        if notice.level.value == "error":
            status = 1
    return status


def _run(args: argparse.Namespace, ctx: AppContext) -> int:
    controller = ctx.controller

    if args.command == "list":
        controller.set_search(args.collection, args.search)
        for item in args.filter:
            field_name, _, value = item.partition("=")
            controller.set_filter(args.collection, field_name, value)
        for key in args.sort:
            controller.request_sort(args.collection, key)
        print(json.dumps(controller.visible_records(args.collection), indent=2))

    elif args.command == "show":
        record = ctx.store.get(args.collection, args.record_id)
        if record is None:
            print(f"No record '{args.record_id}' in '{args.collection}'", file=sys.stderr)
            return 1
        print(json.dumps(record, indent=2))

    elif args.command == "export":
        text = controller.export(args.collection, args.format)
        if args.output:
            Path(args.output).write_text(text, encoding="utf-8")
        else:
            print(text, end="")

    elif args.command == "import":
        path = Path(args.file)
        controller.import_text(args.collection, path.name, path.read_text(encoding="utf-8"))

    elif args.command == "template":
        print(controller.template(args.collection), end="")

    elif args.command == "backup":
        text = controller.export_backup()
        if args.output:
            Path(args.output).write_text(text, encoding="utf-8")
        else:
            print(text)

    elif args.command == "summary":
        print(json.dumps(ctx.app.summary(ctx.store), indent=2))

    elif args.command == "dark-mode":
        if args.value is not None:
            controller.set_dark_mode(args.value == "on")
        print("on" if controller.state.dark_mode else "off")

    return _print_notices(ctx)


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.command == "apps":
        for app_cls in create_default_registry().all_classes():
            print(f"{app_cls.id}\t{app_cls.label}")
        return 0

    try:
        config = load_global_config(Path(args.config))
        configure_logging(getattr(logging, str(args.log_level).upper(), logging.WARNING), config.log_format)
        ctx = build_context(config, args.app)
        return _run(args, ctx)
    except (RecordDeskError, KeyError, OSError) as exc:
        logger.exception("Command failed")
        print(f"Error: {exc}", file=sys.stderr)
        return 2
