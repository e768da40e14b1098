"""CLI entrypoint."""

from __future__ import annotations

import argparse
import io
from dataclasses import replace
import sys

from mime_view.config import AppConfig, load_config
from mime_view.errors import MimeViewError
from mime_view.render.console import ConsoleImageView, ConsoleTextView, image_support_available
from mime_view.signature.verifier import GpgBackend, PgpMimeVerifier
from mime_view.tree.flatten import row_columns, row_depth
from mime_view.util.logging import configure_logging
from mime_view.view.mimeview import MimeView


def _build_config(base: AppConfig, args: argparse.Namespace) -> AppConfig:
    return replace(
        base,
        tmp_dir=args.tmp_dir or base.tmp_dir,
        log_level=args.log_level or base.log_level,
        auto_check_signatures=args.auto_check or base.auto_check_signatures,
        image_preview=base.image_preview and not args.no_images,
    )


def _build_view(config: AppConfig, quiet: bool = False) -> MimeView:
    # Commands that only act on a part still select it; keep its rendering off stdout.
    stream = io.StringIO() if quiet else None
    image_view = ConsoleImageView(stream) if image_support_available() else None
    return MimeView(
        config,
        text_view=ConsoleTextView(stream),
        image_view=image_view,
        verifier=PgpMimeVerifier(GpgBackend(config.gpg_binary)),
        reporter=lambda message: print(f"error: {message}", file=sys.stderr),
    )


def _print_tree(view: MimeView) -> None:
    for position, row in enumerate(view.rows):
        columns = row_columns(view.graph, row)
        indent = "  " * row_depth(view.rows, position)
        marker = "*" if position == view.open_position else " "
        print(f"{marker}{position:3d} {indent}{columns.mime_type:<32} {columns.size:>9}  {columns.name}")


def _open_row(view: MimeView, args: argparse.Namespace) -> None:
    view.show_message(args.file, select_first=False)
    view.select_row(args.row)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="mimeview")
    parser.add_argument("--tmp-dir", help="Directory for temporary artifacts")
    parser.add_argument("--log-level", help="Log level override")
    parser.add_argument("--verbose", action="store_true", help="Log to stderr at the configured level")
    parser.add_argument("--auto-check", action="store_true", help="Verify signatures when a message is opened")
    parser.add_argument("--no-images", action="store_true", help="Disable inline image preview")
    subparsers = parser.add_subparsers(dest="command", required=True)

    tree_parser = subparsers.add_parser("tree", help="List the parts of a message")
    tree_parser.add_argument("file")

    show_parser = subparsers.add_parser("show", help="Display one part")
    show_parser.add_argument("file")
    show_parser.add_argument("--row", type=int, default=0, help="Row number from `tree`")
    show_parser.add_argument("--as-text", action="store_true", help="Force the text view")

    save_parser = subparsers.add_parser("save", help="Save a part to a file")
    save_parser.add_argument("file")
    save_parser.add_argument("row", type=int)
    save_parser.add_argument("output")
    save_parser.add_argument("--force", action="store_true", help="Overwrite an existing output file")

    launch_parser = subparsers.add_parser("launch", help="Open a part in an external viewer")
    launch_parser.add_argument("file")
    launch_parser.add_argument("row", type=int)
    launch_parser.add_argument("--with", dest="cmdline", help="Command line, %%s is replaced with the file name")

    export_parser = subparsers.add_parser("export-uri", help="Extract a part and print its file URI")
    export_parser.add_argument("file")
    export_parser.add_argument("row", type=int)

    check_parser = subparsers.add_parser("check-signature", help="Verify the signatures in a message")
    check_parser.add_argument("file")
    check_parser.add_argument("--row", type=int, default=0)

    args = parser.parse_args(argv)
    config = _build_config(load_config(), args)
    configure_logging(config.log_level, config.log_file, verbose=args.verbose)
    view = _build_view(config, quiet=args.command != "show")

    try:
        if args.command == "tree":
            view.show_message(args.file, select_first=False)
            _print_tree(view)
        elif args.command == "show":
            _open_row(view, args)
            if args.as_text:
                view.display_as_text()
        elif args.command == "save":
            _open_row(view, args)
            saved = view.save_as(args.output, confirm_overwrite=lambda _path: args.force)
            if saved is None:
                print(f"{args.output} exists; use --force to overwrite", file=sys.stderr)
                return 1
            print(saved)
        elif args.command == "launch":
            _open_row(view, args)
            if not view.launch(args.cmdline):
                print("No viewer configured for this part", file=sys.stderr)
                return 1
        elif args.command == "export-uri":
            _open_row(view, args)
            uri = view.drag_uri()
            if uri is None:
                print("Part has no file name to export", file=sys.stderr)
                return 1
            print(uri)
        elif args.command == "check-signature":
            _open_row(view, args)
            view.check_signature()
            _print_tree(view)
    except (MimeViewError, IndexError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
