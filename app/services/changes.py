"""Audit report of what a clean pass changes in the article."""

from typing import Dict, List

from app.models.changes import ChangesReport, ChangesSection, RemovedLink
from app.models.link import Link


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def build_changes(links: List[Link], target_self_removed: int) -> ChangesReport:
    """Summarise unwrapped links per destination plus stripped ``target="_self"``."""
    removed = [link for link in links if not link.keep]
    total = len(removed) + target_self_removed

    if total == 0:
        summary = "No changes - all links are being kept."
    else:
        summary = f"{_plural(total, 'change')}: {_plural(len(removed), 'link')} unwrapped"
        if target_self_removed:
            summary += f', {target_self_removed} target="_self" removed'

    by_url: Dict[str, List[RemovedLink]] = {}
    for link in removed:
        by_url.setdefault(link.normalized_href, []).append(
            RemovedLink(id=link.id, anchor_text=link.anchor_text, context=link.context)
        )

    return ChangesReport(
        total_changes=total,
        unwrapped=len(removed),
        target_self_removed=target_self_removed,
        summary=summary,
        sections=[
            ChangesSection(normalized_href=url, removals=items) for url, items in by_url.items()
        ],
    )
