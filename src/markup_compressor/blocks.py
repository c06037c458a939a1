"""Extraction and restoration of protected blocks.

A protected block is a region of the document whose whitespace must survive
compression verbatim (``<pre>``, ``<script>`` ...). Before the shell is
transformed every block is cut out, stored, and replaced by a placeholder
token; after the transforms the tokens are swapped back for the (possibly
minified) blocks.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Iterable, Sequence

from markup_compressor import patterns
from markup_compressor.errors import PlaceholderError

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True, slots=True)
class Category:
    """A kind of protected block and how to find it."""

    kind: str                  # "pre", "script", "style", "template", "textarea", "cdata"
    pattern: re.Pattern[str]   # matches the whole block, tags included
    label: str                 # placeholder label, e.g. "PRE"

    def token(self, index: int) -> str:
        return patterns.placeholder(self.label, index)

    @property
    def token_re(self) -> re.Pattern[str]:
        return patterns.placeholder_re(self.label)


PRE = Category("pre", patterns.PRE_RE, "PRE")
SCRIPT = Category("script", patterns.SCRIPT_RE, "SCRIPT")
STYLE = Category("style", patterns.STYLE_RE, "STYLE")
TEMPLATE = Category("template", patterns.TEMPLATE_RE, "TEMPLATE")
TEXTAREA = Category("textarea", patterns.TEXTAREA_RE, "TEXTAREA")
CDATA = Category("cdata", patterns.CDATA_RE, "CDATA")

# <pre> goes first so literal "<script>" text inside it is never matched by a later category.
HTML_EXTRACTION_ORDER: tuple[Category, ...] = (PRE, SCRIPT, STYLE, TEMPLATE, TEXTAREA)

# Not the reverse of the extraction order. A block restored early may carry
# tokens of a category restored later (a <pre> inside a <script> string),
# so <pre> must come last and <textarea> first.
HTML_RESTORATION_ORDER: tuple[Category, ...] = (TEXTAREA, STYLE, TEMPLATE, SCRIPT, PRE)

XML_EXTRACTION_ORDER: tuple[Category, ...] = (CDATA,)
XML_RESTORATION_ORDER: tuple[Category, ...] = (CDATA,)


@dataclasses.dataclass(slots=True)
class BlockStore:
    """Blocks of one category, indexed by the number in their placeholder."""

    category: Category
    blocks: list[str] = dataclasses.field(default_factory=list)
    restored: int = 0

    def add(self, block: str) -> str:
        """Store *block* and return the token that replaces it."""
        self.blocks.append(block)
        return self.category.token(len(self.blocks) - 1)

    def get(self, index: int) -> str:
        if not 0 <= index < len(self.blocks):
            raise PlaceholderError(
                f"No {self.category.kind} block #{index} "
                f"(store holds {len(self.blocks)})"
            )
        return self.blocks[index]

    def __len__(self) -> int:
        return len(self.blocks)


def extract(
    document: str,
    categories: Iterable[Category],
) -> tuple[str, dict[str, BlockStore]]:
    """Replace every protected block in *document* with a placeholder.

    Categories are applied one after another, each on the output of the
    previous one.

    Returns:
        The shell text and one store per category kind.
    """
    shell = document
    stores: dict[str, BlockStore] = {}

    for category in categories:
        store = BlockStore(category)
        shell = category.pattern.sub(lambda m: store.add(m.group(0)), shell)
        stores[category.kind] = store
        if store.blocks:
            logger.debug("Extracted %d %s block(s)", len(store), category.kind)

    return shell, stores


def restore(
    shell: str,
    stores: dict[str, BlockStore],
    order: Sequence[Category],
    extraction_order: Sequence[Category],
) -> str:
    """Put stored blocks back in place of their placeholders.

    Categories are restored in *order*. A restored block is only searched
    for tokens of the categories extracted before its own, as nothing else
    can have been cut out of it, and restored text is never scanned again.
    Token-like text inside a ``<pre>`` therefore stays as it is, while a
    ``<style>`` inside a ``<% %>`` scriptlet is resolved by a later pass.

    Raises:
        PlaceholderError: If a token refers to a block that was never stored,
            or two tokens refer to the same block.
    """
    active = [c for c in order if c.kind in stores]
    active_kinds = {c.kind for c in active}
    kinds = [c.kind for c in extraction_order if c.kind in active_kinds]
    earlier = {kind: frozenset(kinds[:position]) for position, kind in enumerate(kinds)}
    consumed: set[tuple[str, int]] = set()

    # Each segment carries the kinds whose tokens may still be inside it
    segments: list[tuple[str, frozenset[str]]] = [(shell, frozenset(kinds))]

    while any(pending for _, pending in segments):
        for category in active:
            store = stores[category.kind]
            next_segments: list[tuple[str, frozenset[str]]] = []

            for text, pending in segments:
                if category.kind not in pending:
                    next_segments.append((text, pending))
                    continue

                rest = pending - {category.kind}
                position = 0
                for match in category.token_re.finditer(text):
                    index = int(match.group(1))
                    if (category.kind, index) in consumed:
                        raise PlaceholderError(
                            f"{category.kind} block #{index} is referenced more than once"
                        )
                    block = store.get(index)
                    consumed.add((category.kind, index))
                    store.restored += 1
                    next_segments.append((text[position:match.start()], rest))
                    next_segments.append((block, earlier[category.kind]))
                    position = match.end()
                next_segments.append((text[position:], rest))

            segments = [(text, pending) for text, pending in next_segments if text]

    return "".join(text for text, _ in segments)


class BlockEngine:
    """Extract/restore pair bound to one dialect's category orders."""

    def __init__(
        self,
        extraction_order: Sequence[Category],
        restoration_order: Sequence[Category],
    ) -> None:
        if {c.kind for c in extraction_order} != {c.kind for c in restoration_order}:
            raise ValueError("Extraction and restoration orders must cover the same categories")
        self.extraction_order = tuple(extraction_order)
        self.restoration_order = tuple(restoration_order)

    def extract(self, document: str) -> tuple[str, dict[str, BlockStore]]:
        return extract(document, self.extraction_order)

    def restore(self, shell: str, stores: dict[str, BlockStore]) -> str:
        return restore(shell, stores, self.restoration_order, self.extraction_order)
