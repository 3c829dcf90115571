from typing import List, Literal, Optional

from pydantic import BaseModel, Field

MessageType = Literal["srlc-toggle", "srlc-update", "srlc-update-all", "srlc-ready"]


class LinkUpdate(BaseModel):
    id: int = Field(ge=0)
    keep: bool


class PreviewMessage(BaseModel):
    """One message on the channel between a session and its preview surface.

    ``srlc-toggle`` and ``srlc-ready`` travel from the surface to the
    session; ``srlc-update`` and ``srlc-update-all`` travel the other way.
    """

    type: MessageType
    id: Optional[int] = None
    keep: Optional[bool] = None
    updates: Optional[List[LinkUpdate]] = None


class PreviewEdit(BaseModel):
    body_html: str = Field(description="Inner HTML of the edited preview <body>.")
