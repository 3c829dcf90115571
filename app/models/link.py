from typing import List

from pydantic import BaseModel


class Link(BaseModel):
    """One anchor occurrence found during analysis.

    Every field except ``keep`` is fixed when the Link is created.
    """

    id: int  # position in the session's Link list
    raw_index: int  # position among all <a href> elements (diagnostic)
    href: str
    normalized_href: str
    anchor_text: str
    is_image_link: bool = False
    is_cta_link: bool = False
    is_in_heading: bool = False
    is_external: bool = False
    parent_tag: str = "div"
    context: str = ""
    keep: bool = True
    rel: str = ""

    @property
    def toggleable(self) -> bool:
        """Image and CTA links are always kept and cannot be toggled."""
        return not (self.is_image_link or self.is_cta_link)


class Group(BaseModel):
    """All Links that share a normalized href, in document order."""

    normalized_href: str
    original_href: str  # first-seen href, for display
    links: List[Link] = []
    image_count: int = 0
    text_count: int = 0
    cta_count: int = 0
    in_heading_count: int = 0

    def add(self, link: Link) -> None:
        self.links.append(link)
        if link.is_image_link:
            self.image_count += 1
        elif link.is_cta_link:
            self.cta_count += 1
        else:
            self.text_count += 1
        if link.is_in_heading:
            self.in_heading_count += 1
