"""CLI: virtual-pager pages, show, index, config validate."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from ..config import load_config, validate_config
from ..storage.helpers import page_to_dict
from ..storage.page_store import PageStore


def _get_store(config_path: str | None = None):
    config = load_config(config_path)
    return PageStore(config.storage.pages_dir, config.storage.index_filename), config


def cmd_pages(args):
    """List persisted pages."""
    store, config = _get_store(args.config)
    pages = store.load_pages()

    if not pages:
        print(f"No pages in {config.storage.pages_dir}.")
        return

    print(f"Pages dir: {config.storage.pages_dir}")
    print(f"Pages:     {len(pages)}")
    print()
    print(f"{'Page':<20} {'Msgs':>5} {'Retrieval':<10} {'Created':<20} Label")
    print("-" * 90)
    for page in sorted(pages.values(), key=lambda p: p.created_at):
        retrieval = page.metadata.get("retrieval", "fragment" if "parent" in page.metadata else "")
        created = page.created_at.strftime("%Y-%m-%d %H:%M:%S")
        print(f"{page.id:<20} {len(page.messages):>5} {retrieval:<10} {created:<20} {page.label}")


def cmd_show(args):
    """Print a single page as JSON."""
    store, _ = _get_store(args.config)
    page = store.read_page(args.page_id)
    if page is None:
        print(f"Page not found: {args.page_id}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(page_to_dict(page), indent=2, ensure_ascii=False))


def cmd_index(args):
    """Show semantic index snapshot stats."""
    store, _ = _get_store(args.config)
    try:
        snapshot = store.load_snapshot()
    except (OSError, ValueError, KeyError, TypeError) as e:
        print(f"Unreadable index snapshot {store.index_path}: {e}", file=sys.stderr)
        sys.exit(1)

    if snapshot is None:
        print("No index snapshot yet.")
        return

    print(f"Snapshot:   {store.index_path}")
    print(f"Saved at:   {snapshot.saved_at.isoformat()}")
    print(f"Messages:   {len(snapshot.messages)}")
    print(f"Embeddings: {len(snapshot.embeddings)} cached")
    if snapshot.config:
        cfg = snapshot.config
        print(
            f"Index:      dimensions={cfg.dimensions} max_elements={cfg.max_elements} "
            f"ef_construction={cfg.ef_construction} M={cfg.M}"
        )


def cmd_config_validate(args):
    """Validate the config file."""
    config = load_config(args.config)
    errors = validate_config(config)
    if errors:
        print("Config errors:")
        for e in errors:
            print(f"  - {e}")
        sys.exit(1)
    print("Config is valid.")


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="virtual-pager",
        description="Inspect pages evicted from LLM conversation context",
    )
    parser.add_argument("--config", "-c", help="Path to config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command")

    # pages
    subparsers.add_parser("pages", help="List persisted pages")

    # show
    show_parser = subparsers.add_parser("show", help="Print one page as JSON")
    show_parser.add_argument("page_id", help="Page id (e.g. frag_0123456789ab)")

    # index
    subparsers.add_parser("index", help="Show semantic index snapshot stats")

    # config validate
    config_parser = subparsers.add_parser("config", help="Config operations")
    config_sub = config_parser.add_subparsers(dest="config_command")
    config_sub.add_parser("validate", help="Validate config file")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "pages":
        cmd_pages(args)
    elif args.command == "show":
        cmd_show(args)
    elif args.command == "index":
        cmd_index(args)
    elif args.command == "config":
        if args.config_command == "validate":
            cmd_config_validate(args)
        else:
            print("Usage: virtual-pager config validate")
            sys.exit(1)


if __name__ == "__main__":
    main()
