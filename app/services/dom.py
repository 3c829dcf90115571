"""Element-tree helpers shared by the analyzer, regenerator and preview.

BeautifulSoup is the element-tree interface used throughout (tag name,
attributes, children, text); the concrete tree builder is configurable via
``settings.html_parser``.  All code that pairs anchors with Links walks the
document through :func:`iter_links`, so analysis and regeneration see the
same anchors in the same order.
"""

import re
from dataclasses import dataclass, field
from typing import Iterator, List, NamedTuple, Optional

from bs4 import BeautifulSoup, Tag
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

from app.config import settings
from app.services.template_guard import PLACEHOLDER_PREFIX, protect, restore
from app.services.url_normalizer import normalize

# Input that carries its own document skeleton is serialised whole;
# anything else is treated as a body fragment.
_DOCUMENT_RE = re.compile(r"<\s*(?:!doctype|html|body)\b", re.IGNORECASE)


def _escape_text(value: str) -> str:
    # Same escaping a browser applies when reading innerHTML
    return EntitySubstitution.substitute_xml(value).replace("\xa0", "&nbsp;")


# Void elements come out as <br>, not <br/>; other characters stay as typed
OUTPUT_FORMATTER = HTMLFormatter(entity_substitution=_escape_text, void_element_close_prefix=None)


@dataclass
class Document:
    """A parsed, template-guarded copy of some article markup."""

    soup: BeautifulSoup
    full_document: bool = False
    placeholders: List[str] = field(default_factory=list)
    prefix: str = PLACEHOLDER_PREFIX

    def restore(self, text: str) -> str:
        """Put template expressions back into a string taken from the tree."""
        return restore(text, self.placeholders, self.prefix)

    def markup(self) -> str:
        """Return the guarded markup, template tokens still in place.

        Fragments come back as the inner HTML of ``<body>`` so the parser's
        implied ``<html>/<body>`` wrapper never leaks into the output.
        """
        if self.full_document:
            return self.soup.decode(formatter=OUTPUT_FORMATTER)
        if self.soup.body is not None:
            return self.soup.body.decode_contents(formatter=OUTPUT_FORMATTER)
        return self.soup.decode_contents(formatter=OUTPUT_FORMATTER)

    def serialize(self) -> str:
        """Return the document markup with template expressions restored."""
        return self.restore(self.markup())


class LinkedAnchor(NamedTuple):
    """An ``<a href>`` element met during the shared traversal."""

    tag: Tag
    raw_index: int
    href: str
    normalized: Optional[str]


def parse(html: str, parser: Optional[str] = None) -> BeautifulSoup:
    """Parse *html* with the configured tree builder."""
    return BeautifulSoup(html, parser or settings.html_parser)


def load(html: str) -> Document:
    """Guard the template expressions in *html* and parse the result."""
    guarded = protect(html)
    return Document(
        soup=parse(guarded.html),
        full_document=bool(_DOCUMENT_RE.search(html)),
        placeholders=guarded.placeholders,
        prefix=guarded.prefix,
    )


def iter_anchors(doc: Document) -> Iterator[LinkedAnchor]:
    """Yield every anchor carrying an ``href`` attribute, in document order.

    Template expressions inside the href are put back before normalising so
    the Link records carry the verbatim attribute value.
    """
    for raw_index, tag in enumerate(doc.soup.find_all("a", href=True)):
        href = doc.restore(str(tag["href"]))
        yield LinkedAnchor(tag, raw_index, href, normalize(href))


def iter_links(doc: Document) -> Iterator[LinkedAnchor]:
    """Yield only the anchors that become Links (href normalises to a key).

    The Nth anchor yielded here is the Nth Link of an analysis of the same
    source; every consumer that pairs anchors with Links must use this.
    """
    for anchor in iter_anchors(doc):
        if anchor.normalized is not None:
            yield anchor


def class_string(tag: Optional[Tag]) -> str:
    """Return the element's class attribute as one lower-cased string."""
    if not isinstance(tag, Tag):
        return ""
    classes = tag.get("class") or []
    if isinstance(classes, str):
        return classes.lower()
    return " ".join(classes).lower()


def strip_target_self(soup: BeautifulSoup) -> int:
    """Remove the no-op ``target="_self"`` from every anchor; return the count."""
    removed = 0
    for tag in soup.find_all("a"):
        target = tag.get("target")
        if isinstance(target, str) and target.strip().lower() == "_self":
            del tag["target"]
            removed += 1
    return removed
