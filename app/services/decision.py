"""Keep/remove decisions for every Link of an analysis.

Auto-strip policy, applied to each destination group on its own:

* Image and call-to-action occurrences are always kept.
* Exactly two text occurrences with different anchor text are both kept;
  that is a judgement call for a human.
* Otherwise the first text occurrence is kept and every later one is
  marked for removal.
"""

import logging
from typing import Dict, Iterable, List, Optional

from app.models.link import Group, Link

logger = logging.getLogger(__name__)


def _has_different_anchors(text_links: List[Link]) -> bool:
    if len(text_links) < 2:
        return False
    return len({link.anchor_text.strip().lower() for link in text_links}) > 1


def auto_strip(groups: Iterable[Group]) -> int:
    """Apply the auto-strip policy in place; return how many Links are removed.

    Running it again without changes in between yields the same flags.
    """
    removed = 0
    for group in groups:
        text_links = [link for link in group.links if link.toggleable]
        if len(text_links) == 2 and _has_different_anchors(text_links):
            for link in group.links:
                link.keep = True
            continue

        first_text_kept = False
        for link in group.links:
            if not link.toggleable:
                link.keep = True
            elif not first_text_kept:
                link.keep = True
                first_text_kept = True
            else:
                link.keep = False
                removed += 1
    logger.debug("Auto-strip marked %d links for removal", removed)
    return removed


def keep_all(links: Iterable[Link]) -> None:
    for link in links:
        link.keep = True


def toggle(links: List[Link], link_id: int) -> Optional[Link]:
    """Flip ``keep`` on one text Link.

    Returns the Link, or ``None`` when the id is unknown or the Link is an
    image/CTA occurrence (those are always kept).
    """
    if not 0 <= link_id < len(links):
        return None
    link = links[link_id]
    if not link.toggleable:
        return None
    link.keep = not link.keep
    return link


def apply_updates(links: List[Link], updates: Dict[int, bool]) -> int:
    """Bulk-set ``keep`` from an ``id -> keep`` mapping; return how many changed.

    Unknown ids and image/CTA Links are left untouched.
    """
    changed = 0
    for link_id, keep in updates.items():
        if not 0 <= link_id < len(links):
            continue
        link = links[link_id]
        if not link.toggleable or link.keep == keep:
            continue
        link.keep = keep
        changed += 1
    return changed
