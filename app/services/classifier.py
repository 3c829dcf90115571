"""Per-anchor heuristics evaluated once at analysis time.

The keyword and tag tables below are plain data so they can be extended
without touching the predicates that use them.
"""

import re
from typing import Optional

from bs4 import Comment, NavigableString, Tag

from app.config import settings
from app.services.dom import class_string

# Anchor class names that mark a call-to-action button (whole words)
CTA_CLASS_KEYWORDS = ("btn", "button", "cta", "shop-now", "buy-now", "add-to-cart")

# Leading phrases of call-to-action anchor text
CTA_TEXT_PHRASES = (
    "shop",
    "buy",
    "order",
    "add to cart",
    "get it",
    "check price",
    "see price",
    "view deal",
    "view product",
    "learn more",
)

# Single-verb phrases also open ordinary prose ("Buy the Widget"), so they
# count only when followed by at most this many words ("Buy now").
# Multi-word phrases ("Learn more about it") match whatever follows.
CTA_TEXT_MAX_EXTRA_WORDS = 1

# Class names on the anchor's parent that wrap a button
CTA_PARENT_CLASS_KEYWORDS = ("btn", "button", "cta", "shop", "call-to-action")

# Block-level content containers reported as a link's parent tag
CONTAINER_TAGS = (
    "p", "li", "td", "th",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "blockquote", "figcaption", "dd", "dt",
)

DEFAULT_PARENT_TAG = "div"

_HEADING_RE = re.compile(r"^h[1-6]$")


def _words_re(keywords) -> "re.Pattern[str]":
    alternatives = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


_CTA_CLASS_RE = _words_re(CTA_CLASS_KEYWORDS)
_CTA_PARENT_CLASS_RE = _words_re(CTA_PARENT_CLASS_KEYWORDS)
_CTA_TEXT_RE = re.compile(
    r"^(?:" + "|".join(re.escape(p) for p in CTA_TEXT_PHRASES) + r")\b",
    re.IGNORECASE,
)


def _is_text_node(node) -> bool:
    return isinstance(node, NavigableString) and not isinstance(node, Comment)


def is_image_link(a: Tag) -> bool:
    """True when the anchor wraps an image and no visible text of its own."""
    if a.find("img") is None:
        return False
    text = ""
    for node in a.children:
        if _is_text_node(node):
            text += node.strip()
        elif isinstance(node, Tag) and node.name != "img" and node.find("img") is None:
            text += node.get_text().strip()
    return not text


def is_cta_text(text: str) -> bool:
    """True for button wording that opens with an action phrase."""
    text = " ".join(text.lower().split())
    match = _CTA_TEXT_RE.match(text)
    if match is None:
        return False
    if " " in match.group(0):
        return True
    return len(text[match.end():].split()) <= CTA_TEXT_MAX_EXTRA_WORDS


def is_cta_link(a: Tag) -> bool:
    """True when class names or wording mark the anchor as a button."""
    if _CTA_CLASS_RE.search(class_string(a)):
        return True
    if is_cta_text(a.get_text()):
        return True
    return bool(_CTA_PARENT_CLASS_RE.search(class_string(a.parent)))


def is_in_heading(el: Tag) -> bool:
    node: Optional[Tag] = el
    while node is not None:
        if node.name and _HEADING_RE.match(node.name):
            return True
        node = node.parent
    return False


def parent_tag(a: Tag) -> str:
    container = a.find_parent(list(CONTAINER_TAGS))
    return container.name if container is not None else DEFAULT_PARENT_TAG


def context(a: Tag, window: Optional[int] = None) -> str:
    """Return the text around the anchor inside its enclosing block.

    Truncated sides are marked with ``...``.  When the anchor's own text
    cannot be found in the block, the first 80 characters are returned.
    """
    if window is None:
        window = settings.context_window
    block = a.find_parent(list(CONTAINER_TAGS)) or a.parent
    if block is None:
        return ""
    text = block.get_text()
    link_text = a.get_text()
    idx = text.find(link_text)
    if idx == -1:
        return text[:80]
    start = max(0, idx - window)
    end = min(len(text), idx + len(link_text) + window)
    excerpt = text[start:end].strip()
    if start > 0:
        excerpt = "..." + excerpt
    if end < len(text):
        excerpt += "..."
    return excerpt
