"""Compiled patterns shared by every compressor."""

from __future__ import annotations

import re

_FLAGS = re.DOTALL | re.IGNORECASE

# --- Protected blocks: full tag pair including contents, non-greedy ---
PRE_RE = re.compile(r"<pre(?:\s[^>]*)?>.*?</pre\s*>", _FLAGS)
TEXTAREA_RE = re.compile(r"<textarea(?:\s[^>]*)?>.*?</textarea\s*>", _FLAGS)
SCRIPT_RE = re.compile(r"<script(?:\s[^>]*)?>.*?</script\s*>", _FLAGS)
STYLE_RE = re.compile(r"<style(?:\s[^>]*)?>.*?</style\s*>", _FLAGS)
# Scriptlets and declarations; <%-- comments, <%= expressions and <%@ directives are left in the shell
TEMPLATE_RE = re.compile(r"<%[^-=@].*?%>", _FLAGS)
CDATA_RE = re.compile(r"<!\[CDATA\[.*?\]\]>", re.DOTALL)

# Splits a script/style block into (open tag, body, close tag)
BLOCK_PARTS_RE = re.compile(r"(<[a-z]+(?:\s[^>]*)?>)(.*)(</[a-z]+\s*>)", _FLAGS)

# --- Comments ---
# "<!--[" starts a conditional comment, which browsers still read
COMMENT_RE = re.compile(r"<!--[^\[].*?-->", _FLAGS)
ANY_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
JSP_COMMENT_RE = re.compile(r"<%--.*?--%>", _FLAGS)
# Struts <html:form> markers that some pages keep in comments
STRUTS_FORM_RE = re.compile(r"</?html:form\b", re.IGNORECASE)

# --- Whitespace ---
INTERTAG_RE = re.compile(r">\s+<")
MULTISPACE_RE = re.compile(r"\s{2,}")

# --- Attribute quotes ---
START_TAG_RE = re.compile(
    r"<[a-z][^\s/>]*"
    r"(?:\s+[^\s\"'=/>]+(?:\s*=\s*(?:\"[^\"]*\"|'[^']*'|[^\s\"'>]+))?)*"
    r"\s*/?>",
    re.IGNORECASE,
)
ATTR_VALUE_RE = re.compile(r"\s*=\s*(\"[^\"]*\"|'[^']*'|[^\s\"'>]+)")
UNQUOTED_VALUE_RE = re.compile(r"[a-z0-9_\-]+", re.IGNORECASE)

# --- Placeholder tokens ---
# None of these characters are whitespace, quotes, "<", ">" or "=",
# so no shell transform can rewrite a token.
PLACEHOLDER_FORMAT = "%%%COMPRESS~{label}~{index}%%%"


def placeholder(label: str, index: int) -> str:
    """Build the token that stands in for block *index* of *label*."""
    return PLACEHOLDER_FORMAT.format(label=label, index=index)


def placeholder_re(label: str) -> re.Pattern[str]:
    """Pattern matching every token of *label*, capturing the index."""
    return re.compile(r"%%%COMPRESS~" + re.escape(label) + r"~(\d+)%%%")
