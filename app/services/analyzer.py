"""Link inventory: walk an article, classify its anchors and group them."""

import logging
from typing import Dict, List, Optional, Set

from app.config import settings
from app.models.analysis import AnalysisResult, LinkWarning, Stats
from app.models.link import Group, Link
from app.services import classifier, dom
from app.services.url_normalizer import is_external

logger = logging.getLogger(__name__)

IMAGE_TEXT = "[image]"
EMPTY_TEXT = "[empty]"


def _build_link(anchor: dom.LinkedAnchor, link_id: int, doc: dom.Document, domain: Optional[str]) -> Link:
    a = anchor.tag
    image = classifier.is_image_link(a)
    # Image check takes precedence over the CTA heuristics
    cta = not image and classifier.is_cta_link(a)
    if image:
        text = IMAGE_TEXT
    else:
        text = doc.restore(a.get_text().strip()) or EMPTY_TEXT
    rel = a.get("rel") or ""
    if isinstance(rel, list):
        rel = " ".join(rel)
    return Link(
        id=link_id,
        raw_index=anchor.raw_index,
        href=anchor.href,
        normalized_href=anchor.normalized,
        anchor_text=text,
        is_image_link=image,
        is_cta_link=cta,
        is_in_heading=classifier.is_in_heading(a),
        is_external=is_external(anchor.href, domain),
        parent_tag=classifier.parent_tag(a),
        context=doc.restore(classifier.context(a)),
        rel=rel,
    )


def _group_warnings(groups: Dict[str, Group]) -> List[LinkWarning]:
    warnings: List[LinkWarning] = []
    for url, group in groups.items():
        if group.text_count == 0 and group.cta_count == 0 and group.image_count > 0:
            warnings.append(
                LinkWarning(
                    type="image-only",
                    message=(
                        f'"{url}" only appears as image links ({group.image_count}). '
                        "Consider adding a text link for SEO."
                    ),
                )
            )
        if group.in_heading_count > 0:
            warnings.append(
                LinkWarning(
                    type="heading",
                    message=(
                        f'"{url}" has {group.in_heading_count} link(s) inside heading tags, '
                        "consider removing."
                    ),
                )
            )
    return warnings


def _density_warnings(doc: dom.Document, linked: Set[int]) -> List[LinkWarning]:
    """Flag paragraphs crowded with links; *linked* holds ids of Link anchors."""
    warnings: List[LinkWarning] = []
    for p in doc.soup.find_all("p"):
        count = sum(1 for a in p.find_all("a") if id(a) in linked)
        if count >= settings.density_threshold:
            lead = doc.restore(p.get_text())[:60].strip()
            warnings.append(
                LinkWarning(
                    type="density",
                    message=f'High link density ({count} links) in paragraph: "{lead}..."',
                )
            )
    return warnings


def compute_stats(links: List[Link], groups: Dict[str, Group]) -> Stats:
    total = len(links)
    image = sum(1 for link in links if link.is_image_link)
    cta = sum(1 for link in links if link.is_cta_link)
    return Stats(
        total_links=total,
        unique_urls=len(groups),
        image_links=image,
        cta_links=cta,
        text_links=total - image - cta,
        external_links=sum(1 for link in links if link.is_external),
    )


def analyze(html: str, domain: Optional[str] = None) -> AnalysisResult:
    """Build the Link inventory, destination groups, warnings and stats for *html*.

    Anchors whose href is not navigational (empty, ``#``, ``javascript:``,
    ``mailto:``, ``tel:``) never become Links.  A present but blank href is
    reported as a ``broken`` warning.
    """
    domain = domain or settings.default_domain
    doc = dom.load(html)
    links: List[Link] = []
    groups: Dict[str, Group] = {}
    warnings: List[LinkWarning] = []
    linked: Set[int] = set()

    for anchor in dom.iter_anchors(doc):
        if anchor.normalized is None:
            if anchor.href and not anchor.href.strip():
                text = anchor.tag.get_text().strip()[:40]
                warnings.append(
                    LinkWarning(
                        type="broken",
                        message=f'Broken/invalid link: href="{anchor.href}" - "{doc.restore(text)}"',
                    )
                )
            continue

        link = _build_link(anchor, len(links), doc, domain)
        links.append(link)
        linked.add(id(anchor.tag))
        group = groups.get(link.normalized_href)
        if group is None:
            group = Group(normalized_href=link.normalized_href, original_href=link.href)
            groups[link.normalized_href] = group
        group.add(link)

    warnings.extend(_group_warnings(groups))
    warnings.extend(_density_warnings(doc, linked))
    stats = compute_stats(links, groups)

    logger.info(
        "Analysed %d links across %d destinations",
        stats.total_links,
        stats.unique_urls,
        extra={"warnings": len(warnings), "domain": domain},
    )
    return AnalysisResult(links=links, groups=groups, warnings=warnings, stats=stats)
