from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.models.preview import LinkUpdate


class AnalyzeRequest(BaseModel):
    html: str = Field(description="Article HTML; `{{ ... }}` template expressions are preserved.")
    domain: Optional[str] = Field(
        default=None,
        description="Site domain used to classify external links.",
        examples=["example.com"],
    )
    policy: Literal["auto", "keep_all"] = "auto"
    """Decision policy applied after analysis.

    ``"auto"`` (default)
        Keep the first text link per destination, drop redundant repeats,
        always keep image and call-to-action links.

    ``"keep_all"``
        Keep every link; only the no-op ``target="_self"`` is stripped.
    """


class SessionRequest(BaseModel):
    html: str
    domain: Optional[str] = None


class BulkUpdateRequest(BaseModel):
    updates: List[LinkUpdate]
