"""
core/sanitizer.py -- Neutralizes unsafe markup in user-supplied text.

Every `content`, `title` and review `text` value passes through sanitize()
before it leaves the API. The approach is an allow-list:

  - Tags on _ALLOWED_TAGS survive, rebuilt in a canonical form that keeps only
    the attributes listed for that tag. Event handlers (on*) are never listed,
    and URL attributes with script-capable schemes are dropped.
  - Every other tag, comment, doctype or stray angle bracket is escaped
    (< -> &lt;, > -> &gt;), so it renders as visible text instead of markup.
  - Text between tags is otherwise left byte-for-byte intact. '&' is not
    escaped, which keeps existing entities stable.

Idempotence: escaped output contains no angle brackets, and rebuilt tags are
already in canonical form, so sanitize(sanitize(x)) == sanitize(x).

Layer rule: pure functions, no imports from api/, auth/, or catalog/.
"""

from __future__ import annotations

import html
import re

_TAG_RE = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9]*)([^<>]*)>")
_ATTR_RE = re.compile(r"""([^\s"'<>/=]+)(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?""")

_FORMATTING_TAGS = (
    "b blockquote br code em h1 h2 h3 h4 h5 h6 hr i li ol p pre s small span strong sub sup u ul"
).split()

_ALLOWED_TAGS: dict[str, frozenset[str]] = {tag: frozenset() for tag in _FORMATTING_TAGS}
_ALLOWED_TAGS["a"] = frozenset({"href", "title", "target"})
_ALLOWED_TAGS["img"] = frozenset({"src", "alt", "title", "width", "height"})

_URL_ATTRS = frozenset({"href", "src"})
_UNSAFE_SCHEMES = ("javascript:", "vbscript:", "data:")
_CONTROL_AND_SPACE_RE = re.compile(r"[\x00-\x20\x7f]+")


def _escape_brackets(text: str) -> str:
    return text.replace("<", "&lt;").replace(">", "&gt;")


def _is_safe_url(value: str) -> bool:
    """Reject script-capable schemes, including entity-encoded or whitespace-split ones."""
    normalized = _CONTROL_AND_SPACE_RE.sub("", html.unescape(value)).lower()
    return not normalized.startswith(_UNSAFE_SCHEMES)


def _render_attrs(tag: str, raw_attrs: str) -> str:
    allowed = _ALLOWED_TAGS[tag]
    seen: set[str] = set()
    parts: list[str] = []
    for match in _ATTR_RE.finditer(raw_attrs):
        name = match.group(1).lower()
        value = next((g for g in match.group(2, 3, 4) if g is not None), None)
        if name not in allowed or name in seen or value is None:
            continue
        if name in _URL_ATTRS and not _is_safe_url(value):
            continue
        seen.add(name)
        parts.append(f' {name}="{value.replace(chr(34), "&quot;")}"')
    return "".join(parts)


def _render_tag(match: re.Match) -> str:
    closing, tag, raw_attrs = match.group(1), match.group(2).lower(), match.group(3)
    if tag not in _ALLOWED_TAGS:
        return _escape_brackets(match.group(0))
    if closing:
        return f"</{tag}>"
    self_closing = " /" if raw_attrs.rstrip().endswith("/") else ""
    return f"<{tag}{_render_attrs(tag, raw_attrs)}{self_closing}>"


def sanitize(text: str) -> str:
    """Return `text` with executable markup neutralized.

    Never raises; any string (including "") is valid input.
    """
    if not text:
        return ""
    out: list[str] = []
    pos = 0
    for match in _TAG_RE.finditer(text):
        out.append(_escape_brackets(text[pos : match.start()]))
        out.append(_render_tag(match))
        pos = match.end()
    out.append(_escape_brackets(text[pos:]))
    return "".join(out)
