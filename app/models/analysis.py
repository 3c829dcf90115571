from typing import Dict, List, Literal

from pydantic import BaseModel

from app.models.link import Group, Link

WarningType = Literal["broken", "image-only", "heading", "density"]


class LinkWarning(BaseModel):
    type: WarningType
    message: str


class Stats(BaseModel):
    total_links: int = 0
    unique_urls: int = 0
    image_links: int = 0
    cta_links: int = 0
    text_links: int = 0
    external_links: int = 0


class AnalysisResult(BaseModel):
    """Everything one analysis pass derives from an article."""

    links: List[Link] = []
    groups: Dict[str, Group] = {}  # keyed by normalized href, first-seen order
    warnings: List[LinkWarning] = []
    stats: Stats = Stats()
