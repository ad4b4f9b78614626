"""Command-line interface for typedprefs save files."""

import argparse
import json
import logging
import os
import sys

from typedprefs.codecs.rows import FieldParseError, parse_value
from typedprefs.core.diagnostics import DiagnosticKind
from typedprefs.core.errors import (
    InvalidKeyError,
    KeyNotFoundError,
    MalformedFramingError,
    ReservedKeyError,
    SettingsError,
)
from typedprefs.core.saves import SaveFile
from typedprefs.core.settings import SaveSettings
from typedprefs.models.values import Kind, Value

KIND_CHOICES = [kind.value for kind in Kind]


def get_save(
    path: str | None = None,
    format: str | None = None,
    delimiter: str | None = None,
) -> SaveFile:
    """Load a save file (the configured default save when no path is given)."""
    settings = SaveSettings.from_env(format=format, delimiter=delimiter)
    save = SaveFile(settings)
    save.load(path)
    return save


def _json_value(value: Value) -> object:
    python = value.to_python()
    return list(python) if isinstance(python, tuple) else python


def cmd_show(args: argparse.Namespace) -> int:
    """Handle the show command."""
    save = get_save(args.file, args.format, args.delimiter)
    items = sorted(save.store.items(), key=lambda item: item[0])

    if args.json:
        print(
            json.dumps(
                {
                    "path": str(save.current_path),
                    "entries": [
                        {"key": key, "type": value.tag, "value": _json_value(value)}
                        for key, value in items
                    ],
                    "diagnostics": [str(d) for d in save.diagnostics],
                },
                indent=2,
            )
        )
        return 0

    if not items:
        print(f"No entries in {save.current_path}")
        return 0

    print(f"{save.current_path} ({len(items)} entries)")
    print("=" * 40)
    width = max(len(key) for key, _ in items)
    for key, value in items:
        print(f"  {key:<{width}}  {value.tag:<7}  {value.format()}")
    return 0


def cmd_get(args: argparse.Namespace) -> int:
    """Handle the get command."""
    save = get_save(args.file, args.format, args.delimiter)
    value = save.store.get(args.key, None)

    if value is None:
        if args.json:
            print(json.dumps({"error": "Key not found"}))
        else:
            print(f"Key {args.key} not found")
        return 1

    if args.json:
        print(json.dumps({"key": args.key, "type": value.tag, "value": _json_value(value)}))
    else:
        print(value.format())
    return 0


def cmd_set(args: argparse.Namespace) -> int:
    """Handle the set command."""
    save = get_save(args.file, args.format, args.delimiter)

    try:
        value = parse_value(Kind(args.type), args.value)
        save.store.set(args.key, value)
    except (FieldParseError, InvalidKeyError, ReservedKeyError) as e:
        if args.json:
            print(json.dumps({"success": False, "error": str(e)}))
        else:
            print(f"Error: {e}")
        return 1

    path = save.save()
    dropped = [
        d
        for d in save.save_diagnostics
        if d.kind is DiagnosticKind.UNENCODABLE_ENTRY and d.key == args.key
    ]
    if dropped:
        if args.json:
            print(json.dumps({"success": False, "error": dropped[0].message}))
        else:
            print(f"Error: {dropped[0].message}")
        return 1

    if args.json:
        print(json.dumps({"success": True, "path": str(path)}))
    else:
        print(f"Set {args.key} = {value.format()} ({value.tag})")
    return 0


def cmd_delete(args: argparse.Namespace) -> int:
    """Handle the delete command."""
    save = get_save(args.file, args.format, args.delimiter)
    existed = save.store.has(args.key)
    save.store.delete(args.key)
    path = save.save() if existed else save.current_path

    if args.json:
        print(json.dumps({"success": existed, "deleted_file": existed and path is None}))
    elif existed:
        print(f"Key {args.key} has been deleted")
        if path is None:
            print(f"Save is now empty, removed {save.current_path}")
    else:
        print(f"Key {args.key} not found")
    return 0 if existed else 1


def cmd_date(args: argparse.Namespace) -> int:
    """Handle the date command."""
    save = get_save(args.file, args.format, args.delimiter)

    try:
        saved_at = save.saved_at(save.current_path)
    except (FileNotFoundError, KeyNotFoundError) as e:
        if args.json:
            print(json.dumps({"error": str(e)}))
        else:
            print(f"Error: {e}")
        return 1

    if args.json:
        print(json.dumps({"path": str(save.current_path), "date": saved_at.isoformat()}))
    else:
        print(saved_at.isoformat(sep=" ", timespec="seconds"))
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    """Handle the convert command."""
    save = get_save(args.file, args.format, args.delimiter)
    codec = save.settings.codec(args.to)
    path = save.export(args.output, codec)

    if args.json:
        print(json.dumps({"success": True, "path": str(path) if path else None}))
    elif path is None:
        print(f"Nothing to export, {save.current_path} is empty")
    else:
        print(f"Exported {save.current_path} to {path} ({codec.name})")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="typedprefs",
        description="Inspect and edit typed key-value save files",
    )
    parser.add_argument(
        "--file",
        "-f",
        help="Path to the save file (default: TYPEDPREFS_SAVE_LOCATION/game.sav)",
    )
    parser.add_argument(
        "--format",
        choices=["binary", "text"],
        help="Encoding of the save file (default: binary)",
    )
    parser.add_argument(
        "--delimiter",
        help="Field delimiter of the text format",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output in JSON format",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.environ.get("TYPEDPREFS_LOG_LEVEL", "WARNING"),
        help="Logging level",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # show command
    show_parser = subparsers.add_parser(
        "show",
        help="List every entry",
    )
    show_parser.set_defaults(func=cmd_show)

    # get command
    get_parser = subparsers.add_parser(
        "get",
        help="Print the value of a key",
    )
    get_parser.add_argument("key", help="Key to read")
    get_parser.set_defaults(func=cmd_get)

    # set command
    set_parser = subparsers.add_parser(
        "set",
        help="Set a key and save",
    )
    set_parser.add_argument("key", help="Key to write")
    set_parser.add_argument("value", help="Value, written as it appears in a save")
    set_parser.add_argument(
        "--type",
        "-t",
        default="string",
        choices=KIND_CHOICES,
        help="Value type",
    )
    set_parser.set_defaults(func=cmd_set)

    # delete command
    delete_parser = subparsers.add_parser(
        "delete",
        help="Delete a key and save",
    )
    delete_parser.add_argument("key", help="Key to delete")
    delete_parser.set_defaults(func=cmd_delete)

    # date command
    date_parser = subparsers.add_parser(
        "date",
        help="Show when the save was written",
    )
    date_parser.set_defaults(func=cmd_date)

    # convert command
    convert_parser = subparsers.add_parser(
        "convert",
        help="Export the save to another format",
    )
    convert_parser.add_argument("output", help="Destination file")
    convert_parser.add_argument(
        "--to",
        required=True,
        choices=["binary", "text"],
        help="Target format",
    )
    convert_parser.set_defaults(func=cmd_convert)

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except (MalformedFramingError, SettingsError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
