"""Command-line access to short codes and shareable lists.

Sub-commands
------------
registry   (Re)generate the short-code registry from the catalog.  An existing
           artifact is extended, never renumbered.
encode     Print a share URL for the given keys.
decode     Print the keys carried by a share token or URL.
import     Validate a shared list against a saved selection file and, with
           ``--write``, replace it.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from src.catalog.catalog_store import load_catalog
from src.catalog.settings import settings as catalog_settings
from src.common.log_setup import configure_logging
from src.common.settings import settings as common_settings
from src.sharing.codec import ListCodec, RegistryCache
from src.sharing.registry import generate_registry, load_registry, save_registry
from src.sharing.settings import settings
from src.sharing.share_link import build_share_url, parse_share_query
from src.sharing.validator import ImportStatus, PersistedItem, plan_import


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Short codes and shareable lists.")
    parser.add_argument(
        "--registry-file", type=Path, default=settings.registry_file, help="Registry artifact"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("registry", help="Generate or extend the registry")
    gen.add_argument("--catalog-file", type=Path, default=catalog_settings.catalog_file)
    gen.add_argument("--fresh", action="store_true", help="Ignore the existing artifact")
    gen.add_argument(
        "--include-legacy", action="store_true", help="Also issue codes for legacy keys"
    )

    enc = sub.add_parser("encode", help="Encode keys into a share URL")
    enc.add_argument("keys", nargs="+")
    enc.add_argument("--priority", nargs="*", default=[], help="Keys to flag")
    enc.add_argument("--name", default=None, help="List name shown to the recipient")

    dec = sub.add_parser("decode", help="Decode a share token or URL")
    dec.add_argument("token")

    imp = sub.add_parser("import", help="Import a shared list into a selection file")
    imp.add_argument("token")
    imp.add_argument("--selection", type=Path, required=True, help="Saved selection JSON")
    imp.add_argument("--catalog-file", type=Path, default=catalog_settings.catalog_file)
    imp.add_argument("--confirm", action="store_true", help="Allow replacing a saved list")
    imp.add_argument("--write", action="store_true", help="Save when the import is ready")
    return parser.parse_args()


def _token_of(value: str) -> str:
    return parse_share_query(value).token if "=" in value else value


def _cmd_registry(args: argparse.Namespace) -> None:
    catalog = load_catalog(args.catalog_file)
    keys = catalog.keys() if args.include_legacy else catalog.ids()
    previous = None
    if args.registry_file.exists() and not args.fresh:
        previous = load_registry(args.registry_file)
    registry = generate_registry(keys, previous=previous)
    save_registry(registry, args.registry_file)
    print(f"{len(registry)} codes, capacity {registry.capacity}")


def _cmd_encode(codec: ListCodec, args: argparse.Namespace) -> None:
    flags = {key: True for key in args.priority}
    print(build_share_url(codec.encode(args.keys, flags), name=args.name))


def _cmd_decode(codec: ListCodec, args: argparse.Namespace) -> None:
    result = codec.decode(_token_of(args.token))
    if not result.ok:
        raise SystemExit(f"Invalid share token ({result.reason.value}) {result.detail}")
    print(json.dumps({"keys": list(result.keys), "flags": dict(result.flags)}, indent=2))


def _cmd_import(codec: ListCodec, args: argparse.Namespace) -> None:
    existing: list[PersistedItem] = []
    if args.selection.exists():
        raw = json.loads(args.selection.read_text(encoding="utf-8"))
        existing = [PersistedItem.model_validate(r) for r in raw]

    plan = plan_import(
        codec.decode(_token_of(args.token)),
        catalog=load_catalog(args.catalog_file),
        existing=existing,
        confirm_overwrite=args.confirm,
    )
    print(plan.message)
    for error in plan.errors:
        print(f"  record {error['index']} ({error['key']}): {error['errors']}")
    if plan.unrecognized:
        print(f"  unrecognized keys: {', '.join(plan.unrecognized)}")
    if plan.status is ImportStatus.READY and args.write:
        records = [item.to_record() for item in plan.items]
        args.selection.write_text(json.dumps(records, indent=2), encoding="utf-8")
        print(f"Saved {len(records)} entries to {args.selection}")
    elif plan.status is not ImportStatus.READY:
        raise SystemExit(1)


def main() -> None:
    args = _parse_args()
    configure_logging(common_settings.log_level)

    if args.command == "registry":
        _cmd_registry(args)
        return

    codec = ListCodec(RegistryCache(args.registry_file))
    if args.command == "encode":
        _cmd_encode(codec, args)
    elif args.command == "decode":
        _cmd_decode(codec, args)
    else:
        _cmd_import(codec, args)


if __name__ == "__main__":
    main()
