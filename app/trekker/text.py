"""
Helpers for the rich HTML stored by the dashboard editor.
"""
from __future__ import annotations

import re

_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")
_WS_RE = re.compile(r"\s+")
_DEC_ENTITY_RE = re.compile(r"&#(\d+);")
_HEX_ENTITY_RE = re.compile(r"&#x([0-9a-fA-F]+);")

_LI_OPEN_P_RE = re.compile(r"<li([^>]*)>\s*<p([^>]*)>", re.IGNORECASE)
_P_BREAK_RE = re.compile(r"</p>\s*<p([^>]*)>", re.IGNORECASE)
_P_CLOSE_LI_RE = re.compile(r"</p>\s*</li>", re.IGNORECASE)

_SLUG_RE = re.compile(r"[^a-z0-9]+")

# &amp; last so "&amp;lt;" decodes to "&lt;" and not "<"
NAMED_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&apos;", "'"),
    ("&mdash;", "—"),
    ("&ndash;", "–"),
    ("&hellip;", "..."),
    ("&copy;", "©"),
    ("&reg;", "®"),
    ("&trade;", "™"),
    ("&amp;", "&"),
)


def _safe_chr(code: int) -> str:
    try:
        return chr(code)
    except (ValueError, OverflowError):
        return ""


def strip_html_tags(html: str | None) -> str:
    """Plain text from an HTML fragment: drops script/style blocks and tags, decodes entities."""
    if not html:
        return ""
    text = _SCRIPT_RE.sub("", html)
    text = _STYLE_RE.sub("", text)
    text = _TAG_RE.sub("", text)
    for entity, repl in NAMED_ENTITIES:
        text = text.replace(entity, repl)
    text = _DEC_ENTITY_RE.sub(lambda m: _safe_chr(int(m.group(1))), text)
    text = _HEX_ENTITY_RE.sub(lambda m: _safe_chr(int(m.group(1), 16)), text)
    return _WS_RE.sub(" ", text).strip()


def strip_p_from_list_items(html: str | None) -> str:
    """
    Unwrap <p> tags inside <li>. The editor wraps list item content in
    paragraphs; multiple paragraphs in one item are joined with <br>.
    """
    if not html:
        return ""
    result = _LI_OPEN_P_RE.sub(r"<li\1>", html)
    result = _P_BREAK_RE.sub("<br>", result)
    result = _P_CLOSE_LI_RE.sub("</li>", result)
    return result


def normalize_rich_html(html: str | None) -> str | None:
    """Editor output as stored: list paragraphs unwrapped, None when there is no visible text."""
    if html is None:
        return None
    cleaned = strip_p_from_list_items(html).strip()
    if not cleaned or not strip_html_tags(cleaned):
        return None
    return cleaned


def slugify(name: str | None) -> str:
    if not name:
        return ""
    return _SLUG_RE.sub("-", name.lower()).strip("-")
