"""Script and style minification for the bodies of protected blocks.

The compressor only depends on the :data:`Minifier` call signature; any
callable taking ``(kind, body)`` and returning the minified body can be
injected. :func:`default_minifier` builds one on top of ``rjsmin`` and
``rcssmin``.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Callable

import rcssmin
import rjsmin

from markup_compressor.errors import MinificationError

logger = logging.getLogger(__name__)

Minifier = Callable[[str, str], str]
"""``minify(kind, body) -> body`` where *kind* is ``"script"`` or ``"style"``."""


@dataclasses.dataclass(frozen=True, slots=True)
class MinifierOptions:
    """Tuning knobs for the default script/style minifier."""

    js_line_break: int = -1                # break after ";" or "}" past this column, -1 = never
    css_line_break: int = -1               # break after "}" past this column, -1 = never
    no_munge: bool = False                 # rjsmin never renames identifiers
    preserve_semi: bool = False            # keep ";" directly before "}"
    disable_optimizations: bool = False    # skip every post-pass micro optimization
    keep_bang_comments: bool = False       # keep /*! ... */ license comments


# A "/" after one of these starts a regex literal rather than a division
_REGEX_PRECEDERS = set("(,=:[!&|?{};+-*%<>~^")
_REGEX_KEYWORDS_RE = re.compile(r"(?:^|[^\w$])(?:return|typeof|case|do|else|in|new|void|throw|delete|instanceof)$")
_STATEMENT_KEYWORD_RE = re.compile(r"(?:^|[^\w$])(?:else|do)$")


def _starts_regex(head: str) -> bool:
    """Tell whether a "/" following *head* opens a regex literal."""
    if not head:
        return True
    # "i++ / 2" and "a-- / b" divide
    if head.endswith(("++", "--")):
        return False
    return head[-1] in _REGEX_PRECEDERS or bool(_REGEX_KEYWORDS_RE.search(head))


def _read_quoted(code: str, i: int, quote: str, kind: str) -> int:
    """Return the index just past the literal that opens at ``code[i]``."""
    j = i + 1
    while j < len(code):
        ch = code[j]
        if ch == "\\":
            j += 2
            continue
        if ch == quote:
            return j + 1
        if ch == "\n" and quote != "`":
            break
        j += 1
    raise MinificationError(kind, f"unterminated string literal at offset {i}")


def _read_regex(code: str, i: int) -> int:
    j = i + 1
    in_class = False
    while j < len(code):
        ch = code[j]
        if ch == "\\":
            j += 2
            continue
        if ch == "\n":
            break
        if ch == "[":
            in_class = True
        elif ch == "]":
            in_class = False
        elif ch == "/" and not in_class:
            return j + 1
        j += 1
    raise MinificationError("script", f"unterminated regular expression at offset {i}")


def _read_comment(code: str, i: int, kind: str) -> int:
    if code.startswith("/*", i):
        end = code.find("*/", i + 2)
        if end == -1:
            raise MinificationError(kind, f"unterminated comment at offset {i}")
        return end + 2
    end = code.find("\n", i)
    return len(code) if end == -1 else end


def _post_process(
    code: str,
    kind: str,
    line_break: int,
    drop_semicolons: bool,
) -> str:
    """Break long lines and drop redundant semicolons outside of literals.

    Args:
        code: Output of the underlying minifier.
        kind: ``"script"`` or ``"style"``.
        line_break: Column after which a line is broken, -1 to disable.
        drop_semicolons: Remove ``;`` directly before ``}`` (scripts only).

    Raises:
        MinificationError: If a string, comment or regex literal is unterminated.
    """
    is_script = kind == "script"
    breakers = ";}" if is_script else "}"
    out: list[str] = []
    tail = ""  # last emitted characters, enough for keyword checks
    col = 0
    i = 0

    def emit(chunk: str) -> None:
        nonlocal col, tail
        out.append(chunk)
        tail = (tail + chunk)[-32:]
        newline = chunk.rfind("\n")
        col = len(chunk) - newline - 1 if newline != -1 else col + len(chunk)

    while i < len(code):
        ch = code[i]

        if ch in "\"'" or (is_script and ch == "`"):
            end = _read_quoted(code, i, ch, kind)
            emit(code[i:end])
            i = end
            continue

        if ch == "/" and code.startswith("/*", i):
            end = _read_comment(code, i, kind)
            emit(code[i:end])
            i = end
            continue

        if is_script and ch == "/":
            if code.startswith("//", i):
                end = _read_comment(code, i, kind)
                emit(code[i:end])
                i = end
                continue
            if _starts_regex(tail.rstrip()):
                end = _read_regex(code, i)
                emit(code[i:end])
                i = end
                continue

        if drop_semicolons and ch == ";" and code[i + 1:i + 2] == "}":
            head = tail.rstrip()
            if head and head[-1] != ")" and not _STATEMENT_KEYWORD_RE.search(head):
                i += 1
                continue

        emit(ch)
        i += 1

        if line_break >= 0 and ch in breakers and col >= line_break:
            emit("\n")

    return "".join(out)


def minify_js(body: str, options: MinifierOptions | None = None) -> str:
    """Minify a script body with rjsmin and apply the post-pass options."""
    options = options or MinifierOptions()
    result = rjsmin.jsmin(body, keep_bang_comments=options.keep_bang_comments)
    drop = not (options.preserve_semi or options.disable_optimizations)
    if drop or options.js_line_break >= 0:
        result = _post_process(result, "script", options.js_line_break, drop)
    return result


def minify_css(body: str, options: MinifierOptions | None = None) -> str:
    """Minify a style body with rcssmin, optionally breaking long lines."""
    options = options or MinifierOptions()
    result = rcssmin.cssmin(body, keep_bang_comments=options.keep_bang_comments)
    if options.css_line_break >= 0:
        result = _post_process(result, "style", options.css_line_break, False)
    return result


def default_minifier(options: MinifierOptions | None = None) -> Minifier:
    """Build a ``minify(kind, body)`` callable backed by rjsmin/rcssmin."""
    options = options or MinifierOptions()

    def minify(kind: str, body: str) -> str:
        if kind == "script":
            result = minify_js(body, options)
        elif kind == "style":
            result = minify_css(body, options)
        else:
            raise ValueError(f"Cannot minify {kind!r} blocks")
        logger.debug("Minified %s block: %d -> %d chars", kind, len(body), len(result))
        return result

    return minify
