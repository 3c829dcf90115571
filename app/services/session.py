"""Editing sessions: one article's analysis, decisions and preview state.

A :class:`Session` is owned explicitly by whoever holds it; nothing here is
global except the in-memory :data:`store` the HTTP routers look sessions up
in.  Sessions are never persisted.

FastAPI runs the sync handlers in a thread pool, so two requests can reach
the same session at once.  Every public method that reads or changes the
session's state holds the session's reentrant lock.
"""

import logging
import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.config import settings
from app.models.analysis import LinkWarning, Stats
from app.models.changes import ChangesReport
from app.models.link import Group, Link
from app.models.preview import PreviewMessage
from app.services import decision
from app.services.analyzer import analyze
from app.services.changes import build_changes
from app.services.preview import PreviewChannel, PreviewDocument
from app.services.regenerator import CleanResult, generate_clean, generate_clean_from_preview

logger = logging.getLogger(__name__)


class EmptyInputError(ValueError):
    """Raised when an analysis is requested for blank input."""


class PreviewNotRenderedError(RuntimeError):
    """Raised when surface edits arrive before any preview was rendered."""


@dataclass
class Session:
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    original_html: str = ""
    domain: Optional[str] = None
    links: List[Link] = field(default_factory=list)
    groups: Dict[str, Group] = field(default_factory=dict)
    warnings: List[LinkWarning] = field(default_factory=list)
    stats: Stats = field(default_factory=Stats)
    target_self_count: int = 0
    preview: PreviewChannel = field(default_factory=PreviewChannel)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    # -- lifecycle ------------------------------------------------------------

    def load(self, html: str, domain: Optional[str] = None) -> int:
        """Analyse *html* and apply auto-strip; return the number of removals.

        Replaces everything the session held before.

        Raises:
            EmptyInputError: if *html* is blank.
        """
        html = (html or "").strip()
        if not html:
            raise EmptyInputError("Paste some HTML first")

        result = analyze(html, domain)
        with self.lock:
            self.reset()
            self.original_html = html
            self.domain = domain
            self.links = result.links
            self.groups = result.groups
            self.warnings = result.warnings
            self.stats = result.stats
            removed = decision.auto_strip(self.groups.values())
        logger.info(
            "Session %s loaded: %d links, %d unique URLs, %d marked for removal",
            self.id,
            self.stats.total_links,
            self.stats.unique_urls,
            removed,
        )
        return removed

    def reset(self) -> None:
        """Discard the article and everything derived from it."""
        with self.lock:
            self.original_html = ""
            self.domain = None
            self.links = []
            self.groups = {}
            self.warnings = []
            self.stats = Stats()
            self.target_self_count = 0
            self.preview.reset()

    @property
    def removed_count(self) -> int:
        with self.lock:
            return sum(1 for link in self.links if not link.keep)

    @property
    def is_clean(self) -> bool:
        """True when no link is marked for removal."""
        return self.removed_count == 0

    # -- decisions ------------------------------------------------------------

    def auto_strip(self) -> int:
        with self.lock:
            removed = decision.auto_strip(self.groups.values())
            self._resync_preview()
            return removed

    def keep_all(self) -> None:
        with self.lock:
            decision.keep_all(self.links)
            self._resync_preview()

    def toggle(self, link_id: int) -> Optional[Link]:
        """Flip one text link; image/CTA links and unknown ids are ignored."""
        with self.lock:
            link = decision.toggle(self.links, link_id)
            if link is not None:
                self.preview.send_update(link)
            return link

    def sync(self, updates: Dict[int, bool]) -> int:
        """Bulk-resynchronise keep flags from ``id -> keep`` pairs."""
        with self.lock:
            changed = decision.apply_updates(self.links, updates)
            if changed:
                self.preview.send_bulk(self.links)
            return changed

    def _resync_preview(self) -> None:
        # A ready surface keeps the user's text edits and is repainted in
        # place; one still loading is simply rendered again.
        if self.preview.ready:
            self.preview.send_bulk(self.links)
        elif self.preview.rendered:
            self.preview.render(self.original_html, self.links)

    # -- preview surface ------------------------------------------------------

    def render_preview(self) -> PreviewDocument:
        with self.lock:
            return self.preview.render(self.original_html, self.links)

    def update_surface(self, body_html: str) -> None:
        """Store the surface's edited body.

        Raises:
            PreviewNotRenderedError: if no preview was rendered yet.
        """
        with self.lock:
            if not self.preview.rendered:
                raise PreviewNotRenderedError("No preview has been rendered yet.")
            self.preview.update_surface(body_html)

    def handle_message(self, message: PreviewMessage) -> Optional[Link]:
        """Apply a message coming from the preview surface."""
        with self.lock:
            if message.type == "srlc-toggle" and message.id is not None:
                return self.toggle(message.id)
            if message.type == "srlc-ready":
                self.preview.mark_ready(self.links)
                return None
        logger.debug("Ignoring %s message from preview surface", message.type)
        return None

    def drain_messages(self) -> List[PreviewMessage]:
        with self.lock:
            return self.preview.drain()

    # -- output ---------------------------------------------------------------

    def clean(self) -> CleanResult:
        """Regenerate the article with the current decisions applied.

        Reads the edited preview surface once it is ready, otherwise the
        untouched original.
        """
        with self.lock:
            if self.preview.ready:
                result = generate_clean_from_preview(
                    self.preview.surface_html,
                    self.links,
                    self.original_html,
                    self.preview.placeholders,
                    self.preview.prefix,
                )
            else:
                result = generate_clean(self.original_html, self.links)
            self.target_self_count = result.target_self_removed
            return result

    def changes(self) -> ChangesReport:
        with self.lock:
            self.clean()
            return build_changes(self.links, self.target_self_count)


class SessionStore:
    """Bounded in-memory registry of sessions; the oldest is evicted first."""

    def __init__(self, max_sessions: int) -> None:
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()
        self._lock = threading.Lock()

    def create(self) -> Session:
        session = Session()
        with self._lock:
            self._sessions[session.id] = session
            while len(self._sessions) > self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.info("Evicted session %s", evicted)
        return session

    def get(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)


store = SessionStore(settings.max_sessions)
