"""Whitespace, comment and quote transforms applied to the shell.

The shell is the document with every protected block replaced by a
placeholder token, so nothing here can reach inside ``<pre>``, ``<script>``
and friends.
"""

from __future__ import annotations

import re

from markup_compressor import patterns


def strip_comments(
    text: str,
    jsp_comments: bool = False,
    keep_struts_comments: bool = False,
    keep_conditional_comments: bool = True,
) -> str:
    """Strip ``<!-- -->`` comments.

    Args:
        text: Shell text.
        jsp_comments: Also strip ``<%-- --%>`` comments.
        keep_struts_comments: Keep comments that wrap Struts ``<html:form>`` tags.
        keep_conditional_comments: Leave ``<!--[if IE]>`` style comments alone.
    """
    comment_re = patterns.COMMENT_RE if keep_conditional_comments else patterns.ANY_COMMENT_RE

    if keep_struts_comments:
        def _drop(match: re.Match[str]) -> str:
            return match.group(0) if patterns.STRUTS_FORM_RE.search(match.group(0)) else ""

        text = comment_re.sub(_drop, text)
    else:
        text = comment_re.sub("", text)

    if jsp_comments:
        text = patterns.JSP_COMMENT_RE.sub("", text)
    return text


def strip_intertag_spaces(text: str) -> str:
    """``</td>  \\n <td>`` -> ``</td><td>``."""
    return patterns.INTERTAG_RE.sub("><", text)


def collapse_multi_spaces(text: str) -> str:
    """Replace every run of two or more whitespace characters with one space."""
    return patterns.MULTISPACE_RE.sub(" ", text)


def _unquote_tag(match: re.Match[str]) -> str:
    tag = match.group(0)
    parts: list[str] = []
    prev_end = 0

    # Each value is consumed whole, so quotes nested in another value are never seen.
    for attr in patterns.ATTR_VALUE_RE.finditer(tag):
        value = attr.group(1)
        following = tag[attr.end():attr.end() + 1]
        if (
            value[0] in "\"'"
            and patterns.UNQUOTED_VALUE_RE.fullmatch(value[1:-1])
            and (following == ">" or following.isspace())
        ):
            parts.append(tag[prev_end:attr.start()])
            parts.append("=" + value[1:-1])
            prev_end = attr.end()

    if not parts:
        return tag
    parts.append(tag[prev_end:])
    return "".join(parts)


def unquote_attributes(text: str) -> str:
    """Drop quotes around attribute values that do not need them.

    ``<div class="nav" id='top'>`` -> ``<div class=nav id=top>``. A value is
    only unquoted if it is made of letters, digits, ``-`` and ``_`` and is
    followed by whitespace or ``>`` (never ``/>``).
    """
    return patterns.START_TAG_RE.sub(_unquote_tag, text)


def transform(
    shell: str,
    *,
    remove_comments: bool = False,
    remove_jsp_comments: bool = False,
    keep_struts_comments: bool = False,
    keep_conditional_comments: bool = True,
    remove_intertag_spaces: bool = False,
    remove_multi_spaces: bool = False,
    remove_quotes: bool = False,
) -> str:
    """Apply the enabled shell transforms in their fixed order.

    Order: comments, inter-tag whitespace, multi-space runs, attribute quotes.
    """
    if remove_comments:
        shell = strip_comments(
            shell, remove_jsp_comments, keep_struts_comments, keep_conditional_comments
        )
    if remove_intertag_spaces:
        shell = strip_intertag_spaces(shell)
    if remove_multi_spaces:
        shell = collapse_multi_spaces(shell)
    if remove_quotes:
        shell = unquote_attributes(shell)
    return shell
