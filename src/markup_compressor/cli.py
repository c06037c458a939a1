"""Command line interface.

Usage:
    markup-compress page.html -o page.min.html
    markup-compress --type xml --preserve-comments < feed.xml
    markup-compress --compress-js --compress-css --line-break 200 page.jsp
"""

from __future__ import annotations

import argparse
import codecs
import io
import logging
import sys
from pathlib import Path

from markup_compressor.compressor import (
    DIALECTS,
    HtmlOptions,
    XmlOptions,
    detect_dialect,
    get_compressor,
)
from markup_compressor.errors import CompressorError

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on bad options."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="markup-compress",
        description="Minify HTML, JSP and XML documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "If JavaScript or CSS compression is enabled, script and style\n"
            "bodies are minified with rjsmin and rcssmin."
        ),
    )
    parser.add_argument(
        "input",
        nargs="?",
        default=None,
        help="Input file (default: stdin)",
    )

    general = parser.add_argument_group("Global Options")
    general.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Output file (default: stdout)",
    )
    general.add_argument(
        "--type",
        type=str.lower,
        choices=DIALECTS,
        default=None,
        help="Document type; detected from the file extension when omitted",
    )
    general.add_argument(
        "--charset",
        default="utf-8",
        help="Encoding used to read and write (default: utf-8)",
    )
    general.add_argument(
        "--verbose",
        "-v",
        action="count",
        default=0,
        help="Log progress (-vv for debug output)",
    )

    markup = parser.add_argument_group("HTML and XML Options")
    markup.add_argument("--preserve-comments", action="store_true", help="Preserve comments")
    markup.add_argument(
        "--preserve-multi-spaces", action="store_true", help="Preserve multiple spaces (HTML)"
    )
    markup.add_argument(
        "--remove-intertag-spaces", action="store_true", help="Remove intertag spaces (HTML)"
    )
    markup.add_argument(
        "--preserve-intertag-spaces", action="store_true", help="Preserve intertag spaces (XML)"
    )
    markup.add_argument(
        "--remove-quotes", action="store_true", help="Remove unneeded attribute quotes (HTML)"
    )
    markup.add_argument(
        "--compress-js", action="store_true", help="Minify JavaScript inside <script> blocks"
    )
    markup.add_argument(
        "--compress-css", action="store_true", help="Minify CSS inside <style> blocks"
    )

    jsp = parser.add_argument_group("JSP Options")
    jsp.add_argument(
        "--remove-jsp-comments",
        action="store_true",
        help="Remove <%%-- --%%> comments (the default, kept for old scripts)",
    )
    jsp.add_argument(
        "--preserve-jsp-comments", action="store_true", help="Preserve <%%-- --%%> comments"
    )
    jsp.add_argument(
        "--preserve-struts-comments",
        action="store_true",
        help="Preserve comments around <html:form> tags",
    )

    code = parser.add_argument_group("JavaScript and CSS Options")
    code.add_argument(
        "--nomunge",
        action="store_true",
        help="Minify only, do not obfuscate (no effect: rjsmin never renames identifiers)",
    )
    code.add_argument("--preserve-semi", action="store_true", help="Preserve all semicolons")
    code.add_argument(
        "--disable-optimizations", action="store_true", help="Disable all micro optimizations"
    )
    code.add_argument(
        "--line-break",
        type=int,
        default=-1,
        metavar="COLUMN",
        help="Insert a line break after the specified column",
    )
    return parser


def _options_from_args(args: argparse.Namespace, dialect: str) -> HtmlOptions | XmlOptions:
    if dialect == "xml":
        return XmlOptions(
            remove_comments=not args.preserve_comments,
            remove_intertag_spaces=not args.preserve_intertag_spaces,
        )
    return HtmlOptions(
        remove_comments=not args.preserve_comments,
        remove_multi_spaces=not args.preserve_multi_spaces,
        remove_intertag_spaces=args.remove_intertag_spaces,
        remove_quotes=args.remove_quotes,
        compress_js=args.compress_js,
        compress_css=args.compress_css,
        remove_jsp_comments=not args.preserve_jsp_comments,
        preserve_struts_comments=args.preserve_struts_comments,
        js_line_break=args.line_break,
        css_line_break=args.line_break,
        js_no_munge=args.nomunge,
        js_preserve_semi=args.preserve_semi,
        js_disable_optimizations=args.disable_optimizations,
    )


def _resolve_charset(charset: str) -> str:
    try:
        return codecs.lookup(charset).name
    except LookupError:
        logger.warning("Unsupported charset %r, falling back to utf-8", charset)
        return "utf-8"


def _read_input(path: str | None, encoding: str) -> str:
    if path is not None:
        return Path(path).read_text(encoding=encoding)
    if not hasattr(sys.stdin, "buffer"):
        return sys.stdin.read()
    stream = io.TextIOWrapper(sys.stdin.buffer, encoding=encoding)
    try:
        return stream.read()
    finally:
        stream.detach()


def _write_output(path: Path | None, text: str, encoding: str) -> None:
    if path is not None:
        path.write_text(text, encoding=encoding)
        return
    if not hasattr(sys.stdout, "buffer"):
        sys.stdout.write(text)
        sys.stdout.flush()
        return
    sys.stdout.flush()
    stream = io.TextIOWrapper(sys.stdout.buffer, encoding=encoding)
    try:
        stream.write(text)
        stream.flush()
    finally:
        stream.detach()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s - %(levelname)s - %(message)s")

    charset = _resolve_charset(args.charset)
    dialect = args.type
    if dialect is None:
        dialect = detect_dialect(args.input) if args.input else "html"

    compressor = get_compressor(dialect, _options_from_args(args, dialect))

    try:
        source = _read_input(args.input, charset)
    except (OSError, UnicodeDecodeError) as e:
        logger.error("Cannot read %s: %s", args.input or "stdin", e)
        return 1

    try:
        result = compressor.compress(source)
    except CompressorError as e:
        logger.error("%s", e)
        return 1

    try:
        _write_output(args.output, result, charset)
    except OSError as e:
        logger.error("Cannot write %s: %s", args.output, e)
        return 1

    logger.info("Compressed %s: %d -> %d chars", args.input or "stdin", len(source), len(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
