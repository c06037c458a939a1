"""Core compression logic."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Union

from markup_compressor import blocks, patterns
from markup_compressor.blocks import BlockEngine, BlockStore
from markup_compressor.errors import CompressorError, MinificationError
from markup_compressor.minifiers import Minifier, MinifierOptions, default_minifier
from markup_compressor.transforms import transform

logger = logging.getLogger(__name__)

DIALECTS = ("html", "xml")


@dataclasses.dataclass(frozen=True, slots=True)
class HtmlOptions:
    """Settings for :class:`HtmlCompressor`.

    The defaults remove comments and collapse whitespace runs; everything
    that changes more than whitespace is opt-in.
    """

    enabled: bool = True
    remove_comments: bool = True
    remove_multi_spaces: bool = True
    remove_intertag_spaces: bool = False
    remove_quotes: bool = False
    compress_js: bool = False
    compress_css: bool = False
    # JSP
    remove_jsp_comments: bool = True
    preserve_struts_comments: bool = False
    # External minifier
    js_line_break: int = -1
    css_line_break: int = -1
    js_no_munge: bool = False
    js_preserve_semi: bool = False
    js_disable_optimizations: bool = False

    def minifier_options(self) -> MinifierOptions:
        return MinifierOptions(
            js_line_break=self.js_line_break,
            css_line_break=self.css_line_break,
            no_munge=self.js_no_munge,
            preserve_semi=self.js_preserve_semi,
            disable_optimizations=self.js_disable_optimizations,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class XmlOptions:
    """Settings for :class:`XmlCompressor`."""

    enabled: bool = True
    remove_comments: bool = True
    remove_intertag_spaces: bool = True


Options = Union[HtmlOptions, XmlOptions]


@dataclasses.dataclass(frozen=True, slots=True)
class PreservedBlock:
    """A protected block as it was put back into the output."""

    kind: str      # "pre", "script", "style", "template", "textarea", "cdata"
    index: int     # position among blocks of the same kind
    text: str      # block content, minified if script/style compression ran


@dataclasses.dataclass(frozen=True, slots=True)
class CompressionResult:
    """Result of compression with detailed statistics."""

    text: str                              # the compressed document
    original_length: int                   # len(original input)
    compressed_length: int                 # len(text)
    ratio: float                           # compressed_length / original_length (0.0–1.0)
    savings_pct: float                     # (1 - ratio) * 100
    dialect: str                           # "html" or "xml"
    preserved_blocks: tuple[PreservedBlock, ...]
    extracted: Mapping[str, int]           # blocks cut out, per kind
    restored: Mapping[str, int]            # placeholders put back, per kind

    def __str__(self) -> str:
        return self.text


def _minify_store(store: BlockStore, minify: Minifier) -> None:
    """Replace the body of every non-empty block in *store* with its minified form."""
    kind = store.category.kind

    for index, block in enumerate(store.blocks):
        parts = patterns.BLOCK_PARTS_RE.fullmatch(block)
        if parts is None or not parts.group(2).strip():
            continue

        open_tag, body, close_tag = parts.groups()
        try:
            minified = minify(kind, body)
        except CompressorError:
            raise
        except Exception as e:
            raise MinificationError(kind, str(e)) from e

        store.blocks[index] = open_tag + minified + close_tag


class HtmlCompressor:
    """Compress HTML and JSP pages.

    ``<pre>``, ``<script>``, ``<style>``, ``<% %>`` scriptlets and
    ``<textarea>`` blocks are kept verbatim; script and style bodies can
    optionally be passed through a minifier.

    Args:
        options: Default settings, used when :meth:`compress` gets none.
        minifier: ``minify(kind, body)`` callable. Defaults to rjsmin/rcssmin
            configured from the options of each call.
    """

    dialect = "html"

    def __init__(
        self,
        options: HtmlOptions | None = None,
        minifier: Minifier | None = None,
    ) -> None:
        self.options = options or HtmlOptions()
        self.minifier = minifier
        self.engine = BlockEngine(blocks.HTML_EXTRACTION_ORDER, blocks.HTML_RESTORATION_ORDER)

    def compress(self, html: str, options: HtmlOptions | None = None) -> str:
        """Return the compressed document.

        Raises:
            MinificationError: If script/style compression is on and the
                minifier fails on a block.
        """
        return self.run(html, options)[0]

    def run(
        self,
        html: str,
        options: HtmlOptions | None = None,
    ) -> tuple[str, dict[str, BlockStore]]:
        """Compress *html* and also return the block stores used on the way."""
        options = options or self.options
        if not options.enabled or not html:
            return html, {}

        shell, stores = self.engine.extract(html)

        shell = transform(
            shell,
            remove_comments=options.remove_comments,
            remove_jsp_comments=options.remove_jsp_comments,
            keep_struts_comments=options.preserve_struts_comments,
            remove_intertag_spaces=options.remove_intertag_spaces,
            remove_multi_spaces=options.remove_multi_spaces,
            remove_quotes=options.remove_quotes,
        )

        if options.compress_js or options.compress_css:
            minify = self.minifier or default_minifier(options.minifier_options())
            if options.compress_js:
                _minify_store(stores["script"], minify)
            if options.compress_css:
                _minify_store(stores["style"], minify)

        html = self.engine.restore(shell, stores)
        return html.strip(), stores


class XmlCompressor:
    """Compress XML documents; ``<![CDATA[ ]]>`` sections are kept verbatim."""

    dialect = "xml"

    def __init__(self, options: XmlOptions | None = None) -> None:
        self.options = options or XmlOptions()
        self.engine = BlockEngine(blocks.XML_EXTRACTION_ORDER, blocks.XML_RESTORATION_ORDER)

    def compress(self, xml: str, options: XmlOptions | None = None) -> str:
        return self.run(xml, options)[0]

    def run(
        self,
        xml: str,
        options: XmlOptions | None = None,
    ) -> tuple[str, dict[str, BlockStore]]:
        options = options or self.options
        if not options.enabled or not xml:
            return xml, {}

        shell, stores = self.engine.extract(xml)
        shell = transform(
            shell,
            remove_comments=options.remove_comments,
            keep_conditional_comments=False,
            remove_intertag_spaces=options.remove_intertag_spaces,
        )
        xml = self.engine.restore(shell, stores)
        return xml.strip(), stores


Compressor = Union[HtmlCompressor, XmlCompressor]


def detect_dialect(file_path: str | Path) -> str:
    """Guess the dialect from a file extension: ``.xml`` is XML, anything else HTML."""
    return "xml" if Path(file_path).suffix.lower() == ".xml" else "html"


def get_compressor(
    dialect: str = "html",
    options: Options | None = None,
    minifier: Minifier | None = None,
) -> Compressor:
    """Build the compressor for *dialect*.

    Raises:
        ValueError: If the dialect is unknown or *options* belong to another dialect.
    """
    dialect = dialect.lower()
    if dialect not in DIALECTS:
        raise ValueError(f"Dialect must be one of {', '.join(DIALECTS)}, got {dialect!r}")

    if dialect == "html":
        if options is not None and not isinstance(options, HtmlOptions):
            raise ValueError(f"HTML compression needs HtmlOptions, got {type(options).__name__}")
        return HtmlCompressor(options, minifier)

    if options is not None and not isinstance(options, XmlOptions):
        raise ValueError(f"XML compression needs XmlOptions, got {type(options).__name__}")
    if minifier is not None:
        raise ValueError("XML compression does not use a script/style minifier")
    return XmlCompressor(options)


def compress(
    text: str,
    dialect: str = "html",
    options: Options | None = None,
    minifier: Minifier | None = None,
) -> str:
    """Minify a markup document.

    Comments and redundant whitespace are removed from the markup while
    ``<pre>``, ``<textarea>``, ``<script>``, ``<style>`` and ``<% %>`` blocks
    (``<![CDATA[ ]]>`` for XML) come out unchanged, unless script/style
    compression is switched on.

    Args:
        text: Input document.
        dialect: ``"html"`` (HTML and JSP) or ``"xml"``.
        options: :class:`HtmlOptions` or :class:`XmlOptions` matching *dialect*.
        minifier: Optional ``minify(kind, body)`` replacing rjsmin/rcssmin.

    Returns:
        Compressed document.

    Raises:
        ValueError: If the dialect is unknown or the options do not match it.
        MinificationError: If the minifier fails on a script or style block.
    """
    return get_compressor(dialect, options, minifier).compress(text)


def compress_with_stats(
    text: str,
    dialect: str = "html",
    options: Options | None = None,
    minifier: Minifier | None = None,
) -> CompressionResult:
    """Compress a document and return statistics about the compression.

    Args:
        text: Input document.
        dialect: ``"html"`` or ``"xml"``.
        options: Options matching *dialect*.
        minifier: Optional ``minify(kind, body)`` replacing rjsmin/rcssmin.

    Returns:
        CompressionResult with the compressed text, ratios and block counts.

    Raises:
        ValueError: If the dialect is unknown or the options do not match it.
        MinificationError: If the minifier fails on a script or style block.
    """
    compressor = get_compressor(dialect, options, minifier)
    compressed_text, stores = compressor.run(text)

    original_length = len(text) if text else 0
    compressed_length = len(compressed_text) if compressed_text else 0
    ratio = compressed_length / original_length if original_length > 0 else 1.0

    preserved_blocks = tuple(
        PreservedBlock(kind=kind, index=index, text=block)
        for kind, store in stores.items()
        for index, block in enumerate(store.blocks)
    )

    logger.debug(
        "Compressed %s document: %d -> %d chars",
        compressor.dialect, original_length, compressed_length,
    )

    return CompressionResult(
        text=compressed_text,
        original_length=original_length,
        compressed_length=compressed_length,
        ratio=ratio,
        savings_pct=(1 - ratio) * 100,
        dialect=compressor.dialect,
        preserved_blocks=preserved_blocks,
        extracted={kind: len(store) for kind, store in stores.items()},
        restored={kind: store.restored for kind, store in stores.items()},
    )


def compress_file(
    file_path: str | Path,
    dialect: str | None = None,
    options: Options | None = None,
    minifier: Minifier | None = None,
    encoding: str = "utf-8",
) -> str:
    """Read a whole file and compress it.

    Protected blocks can span any distance, so the document is compressed in
    one piece rather than in chunks.

    Args:
        file_path: Path to the document.
        dialect: ``"html"`` or ``"xml"``; detected from the extension when omitted.
        options: Options matching the dialect.
        minifier: Optional ``minify(kind, body)`` replacing rjsmin/rcssmin.
        encoding: File encoding (default: utf-8).

    Raises:
        FileNotFoundError: If the file does not exist.
        OSError: If there's an error reading the file.
    """
    if dialect is None:
        dialect = detect_dialect(file_path)
    text = Path(file_path).read_text(encoding=encoding)
    return compress(text, dialect=dialect, options=options, minifier=minifier)
