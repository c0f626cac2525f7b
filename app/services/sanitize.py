from __future__ import annotations

import re
from bs4 import BeautifulSoup, Comment

ALLOWED_TAGS = frozenset({
    "p", "h2", "h3", "h4", "ul", "ol", "li",
    "strong", "em", "b", "i", "blockquote", "br",
})

# Removed together with their text
DROPPED_TAGS = ("script", "style", "iframe", "object", "embed", "noscript", "template")

WS_RE = re.compile(r"\s+")

def _soup(html: str) -> BeautifulSoup:
    soup = BeautifulSoup(html, "lxml")
    for tag in soup.find_all(DROPPED_TAGS):
        tag.decompose()
    for c in soup.find_all(string=lambda s: isinstance(s, Comment)):
        c.extract()
    return soup

def sanitize_html(html: str | None) -> str:
    """Restrict ``html`` to the allow-list: unknown tags are unwrapped, attributes dropped."""
    if not html or not html.strip():
        return ""
    soup = _soup(html)
    body = soup.body
    if body is None:
        return ""
    for tag in body.find_all(True):
        if tag.name in ALLOWED_TAGS:
            tag.attrs = {}
        else:
            tag.unwrap()
    return body.decode_contents().strip()

def strip_markup(html: str | None) -> str:
    if not html:
        return ""
    text = _soup(html).get_text(" ")
    return WS_RE.sub(" ", text).strip()

def truncate_words(text: str, max_chars: int) -> str:
    # Cut at the last whitespace before the limit so no word is split
    if len(text) <= max_chars:
        return text
    cut = text[:max_chars]
    space = cut.rfind(" ")
    if space > max_chars // 2:
        cut = cut[:space]
    return cut.rstrip()
