"""Href canonicalisation: grouping keys and internal/external checks."""

import logging
import re
from typing import Optional
from urllib.parse import urljoin, urlparse

logger = logging.getLogger(__name__)

# Schemes that never point at a navigable page
_NON_NAVIGATIONAL = ("javascript:", "mailto:", "tel:")

# http(s):// or scheme-relative //
_ABSOLUTE_RE = re.compile(r"^(?:https?:)?//", re.IGNORECASE)

# Relative paths are resolved against this root so "a/", "./a" and "/a" agree
_ROOT = "https://placeholder.invalid/"


def _strip_trailing_slash(path: str) -> str:
    if len(path) > 1 and path.endswith("/"):
        return path[:-1]
    return path


def _literal_path(href: str) -> str:
    return href.split("?", 1)[0].split("#", 1)[0]


def normalize(href: Optional[str]) -> Optional[str]:
    """Return the canonical grouping key for *href*, or ``None``.

    ``None`` means the href is not a real navigational link (empty, a bare
    ``#``, or a ``javascript:`` / ``mailto:`` / ``tel:`` URI) and must be
    left out of grouping and classification.

    Two hrefs that differ only by scheme, host, trailing slash, query string,
    fragment or letter case produce the same key.  This function never
    raises: a URL that cannot be parsed degrades to a literal
    strip-and-lowercase key.
    """
    if href is None:
        return None
    href = href.strip()
    if not href or href == "#" or href.lower().startswith(_NON_NAVIGATIONAL):
        return None

    try:
        if _ABSOLUTE_RE.match(href):
            path = urlparse(href).path or "/"
        else:
            path = _literal_path(href)
            if path:
                path = urlparse(urljoin(_ROOT, path)).path
        path = _strip_trailing_slash(path.lower())
        return path or href.lower()
    except ValueError:
        logger.debug("Falling back to literal normalisation for %r", href)
        return _literal_path(href.lower()) or href.lower()


def clean_domain(value: Optional[str]) -> Optional[str]:
    """Return the lower-cased host of a configured site domain.

    Accepts a bare domain (``example.com``) or a pasted URL
    (``https://www.example.com/blog``).
    """
    if not value:
        return None
    value = value.strip().lower()
    if "//" in value:
        try:
            value = urlparse(value).hostname or ""
        except ValueError:
            return None
    else:
        value = value.split("/", 1)[0]
    return value or None


def is_external(href: Optional[str], domain: Optional[str]) -> bool:
    """Return True when *href* points at a host outside *domain*.

    Without a configured domain nothing is external.  Root-relative,
    fragment-only and document-relative hrefs have no host of their own
    and are always internal.  A URL that cannot be parsed is treated as
    internal.
    """
    domain = clean_domain(domain)
    if not domain or not href:
        return False
    href = href.strip()
    if href.startswith(("/", "#", "?")) and not href.startswith("//"):
        return False
    try:
        host = urlparse(href).hostname
    except ValueError:
        return False
    if not host:
        return False
    return domain not in host.lower()
