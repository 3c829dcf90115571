from typing import Dict, List

from pydantic import BaseModel

from app.models.analysis import LinkWarning, Stats
from app.models.changes import ChangesReport
from app.models.link import Group, Link


class AnalyzeResponse(BaseModel):
    stats: Stats
    warnings: List[LinkWarning]
    links: List[Link]
    groups: Dict[str, Group]
    clean_html: str
    changes: ChangesReport
    is_clean: bool
    """True when no link had to be unwrapped."""


class SessionResponse(BaseModel):
    id: str
    stats: Stats
    warnings: List[LinkWarning]
    links: List[Link]
    groups: Dict[str, Group]
    kept: int
    removed: int
    is_clean: bool
    preview_ready: bool


class ToggleResponse(BaseModel):
    link: Link
    kept: int
    removed: int


class SyncResponse(BaseModel):
    changed: int
    kept: int
    removed: int
