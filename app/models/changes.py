from typing import List

from pydantic import BaseModel


class RemovedLink(BaseModel):
    id: int
    anchor_text: str
    context: str


class ChangesSection(BaseModel):
    """Removed occurrences of one destination."""

    normalized_href: str
    removals: List[RemovedLink]


class ChangesReport(BaseModel):
    total_changes: int
    unwrapped: int
    target_self_removed: int
    summary: str
    sections: List[ChangesSection] = []
