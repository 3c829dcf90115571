"""Regenerate article markup with keep/remove decisions applied."""

import logging
from typing import List, NamedTuple, Optional

from bs4 import Tag

from app.models.link import Link
from app.services import dom
from app.services.template_guard import PLACEHOLDER_PREFIX, restore

logger = logging.getLogger(__name__)

# Attributes the preview surface adds to anchors; none may reach the output
PREVIEW_LINK_ID = "data-link-id"
PREVIEW_PROTECTED = "data-srlc-protected"
PREVIEW_HINT_CLASS = "srlc-hint"
SNAPSHOT_ATTRS = (("style", "data-orig-style"), ("title", "data-orig-title"))


class CleanResult(NamedTuple):
    html: str
    unwrapped: int
    target_self_removed: int


def generate_clean(original_html: str, links: List[Link]) -> CleanResult:
    """Re-parse *original_html* and unwrap every anchor whose Link is not kept.

    The Nth anchor of :func:`dom.iter_links` is paired with ``links[N]``;
    analysis builds its Link list from the same traversal, so the pairing
    holds as long as *links* came from analysing the same source.
    ``target="_self"`` is stripped from every anchor, kept or not.
    """
    doc = dom.load(original_html)
    doomed = [anchor.tag for anchor, link in zip(dom.iter_links(doc), links) if not link.keep]
    for tag in doomed:
        tag.unwrap()
    target_self = dom.strip_target_self(doc.soup)

    logger.debug(
        "Regenerated article: %d unwrapped, %d target=_self removed",
        len(doomed),
        target_self,
    )
    return CleanResult(doc.serialize(), len(doomed), target_self)


def _restore_snapshots(a: Tag) -> None:
    for attr, snapshot in SNAPSHOT_ATTRS:
        original = a.get(snapshot)
        if original:
            a[attr] = original
        elif attr in a.attrs:
            del a[attr]
        a.attrs.pop(snapshot, None)
    for scaffold in (PREVIEW_LINK_ID, PREVIEW_PROTECTED, "contenteditable"):
        a.attrs.pop(scaffold, None)


def _link_for(a: Tag, links: List[Link]) -> Optional[Link]:
    try:
        link_id = int(a.get(PREVIEW_LINK_ID, ""))
    except ValueError:
        return None
    if 0 <= link_id < len(links):
        return links[link_id]
    return None


def generate_clean_from_preview(
    edited_html: Optional[str],
    links: List[Link],
    original_html: str,
    placeholders: Optional[List[str]] = None,
    prefix: str = PLACEHOLDER_PREFIX,
) -> CleanResult:
    """Produce clean markup from the body of a live-edited preview surface.

    The preview keeps text edits the user made around links, so it is the
    better source once it exists.  When there is no edited surface yet this
    falls back to :func:`generate_clean` on the untouched original.

    *placeholders* and *prefix* are the template guard the preview was
    rendered with; its tokens are restored last.
    """
    if edited_html is None:
        return generate_clean(original_html, links)

    doc = dom.load(edited_html)
    doc.full_document = False

    for hint in doc.soup.find_all(class_=PREVIEW_HINT_CLASS):
        hint.decompose()
    for script in doc.soup.find_all("script"):
        script.decompose()

    unwrapped = 0
    for a in doc.soup.find_all("a", attrs={PREVIEW_LINK_ID: True}):
        link = _link_for(a, links)
        if link is not None and not link.keep:
            a.unwrap()
            unwrapped += 1
        else:
            _restore_snapshots(a)
    for a in doc.soup.find_all("a", attrs={PREVIEW_PROTECTED: True}):
        _restore_snapshots(a)
    for tag in doc.soup.find_all(attrs={"contenteditable": True}):
        del tag["contenteditable"]

    target_self = dom.strip_target_self(doc.soup)
    html = restore(doc.serialize(), placeholders or [], prefix)
    return CleanResult(html, unwrapped, target_self)
