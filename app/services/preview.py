"""Interactive preview surface: markup generation and the message channel.

The preview is an editable copy of the article in which every Link is
highlighted (green kept, red removed) and text links can be clicked to
toggle them.  Template expressions stay guarded inside the preview because
restoring them would let the browser's parser mangle them; they come back
when clean markup is extracted (see
:func:`app.services.regenerator.generate_clean_from_preview`).

The session and the surface talk over a two-way, at-most-once, best-effort
channel.  A message sent before the surface reports ready is dropped; when
the ready signal arrives the channel queues one bulk resynchronisation so
nothing dropped earlier is lost.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, NamedTuple, Optional

from app.models.link import Link
from app.models.preview import LinkUpdate, PreviewMessage
from app.services import dom
from app.services.regenerator import PREVIEW_LINK_ID, PREVIEW_PROTECTED
from app.services.template_guard import PLACEHOLDER_PREFIX

logger = logging.getLogger(__name__)

KEEP_STYLE = "background:#bbf7d0;padding:1px 3px;border-radius:3px;outline:1px solid #86efac;"
REMOVE_STYLE = (
    "background:#fecaca;padding:1px 3px;border-radius:3px;"
    "text-decoration:line-through;color:#991b1b;cursor:pointer;"
)
KEEP_TITLE = "Click to remove this link"
REMOVE_TITLE = "Click to keep this link"
PROTECTED_TITLE = "Image/CTA link (always kept)"

_PAGE_HEAD = """<!DOCTYPE html><html><head><style>
body{font-family:-apple-system,system-ui,sans-serif;padding:24px;line-height:1.7;font-size:14px;color:#333;max-width:800px;}
body:focus{outline:none;}
img{max-width:100%;height:auto;}
table{border-collapse:collapse;width:100%;margin:1em 0;}
td,th{border:1px solid #ddd;padding:8px;text-align:left;}
a[data-link-id]:hover{opacity:0.7;transition:opacity 0.1s;}
.srlc-hint{background:#f0f1f5;padding:6px 12px;border-radius:6px;font-size:11px;color:#6c7281;margin-bottom:16px;line-height:1.4;}
</style></head><body contenteditable="true">
<div class="srlc-hint" contenteditable="false">Click green or red links to toggle. Text around links is editable.</div>
"""

_PAGE_SCRIPT = """<script>
(function () {
  var KEEP = '%(keep)s', REMOVE = '%(remove)s';
  function paint(link, keep) {
    link.style.cssText = keep ? KEEP + 'cursor:pointer;' : REMOVE;
    link.setAttribute('title', keep ? '%(keep_title)s' : '%(remove_title)s');
  }
  function find(id) { return document.querySelector('a[data-link-id="' + id + '"]'); }
  document.addEventListener('click', function (e) {
    var link = e.target.closest('a[data-link-id]');
    if (link) {
      e.preventDefault();
      e.stopPropagation();
      parent.postMessage({type: 'srlc-toggle', id: parseInt(link.getAttribute('data-link-id'))}, '*');
    }
  });
  window.addEventListener('message', function (e) {
    if (!e.data) return;
    if (e.data.type === 'srlc-update') {
      var one = find(e.data.id);
      if (one) paint(one, e.data.keep);
    }
    if (e.data.type === 'srlc-update-all') {
      e.data.updates.forEach(function (u) { var l = find(u.id); if (l) paint(l, u.keep); });
    }
  });
  window.addEventListener('load', function () { parent.postMessage({type: 'srlc-ready'}, '*'); });
})();
</script>
""" % {
    "keep": KEEP_STYLE,
    "remove": REMOVE_STYLE,
    "keep_title": KEEP_TITLE,
    "remove_title": REMOVE_TITLE,
}

_PAGE_TAIL = "</body></html>"


class PreviewDocument(NamedTuple):
    html: str  # full preview page
    body_html: str  # article part of the page, template tokens still guarded
    placeholders: List[str]
    prefix: str


def generate_preview(original_html: str, links: List[Link]) -> PreviewDocument:
    """Render the editable preview page for *links* over *original_html*.

    Each paired anchor gets its ``style``/``title`` snapshotted into
    ``data-orig-*`` attributes before being restyled, so extraction can put
    the author's values back.
    """
    doc = dom.load(original_html)
    doc.full_document = False
    for anchor, link in zip(dom.iter_links(doc), links):
        a = anchor.tag
        a["data-orig-style"] = a.get("style", "")
        a["data-orig-title"] = a.get("title", "")
        if link.keep:
            a["style"] = KEEP_STYLE + ("cursor:pointer;" if link.toggleable else "")
            a["title"] = KEEP_TITLE if link.toggleable else PROTECTED_TITLE
        else:
            a["style"] = REMOVE_STYLE
            a["title"] = REMOVE_TITLE
        # Clicks toggle instead of placing the caret
        a["contenteditable"] = "false"
        if link.toggleable:
            a[PREVIEW_LINK_ID] = str(link.id)
        else:
            a[PREVIEW_PROTECTED] = "1"

    body = doc.markup()
    page = _PAGE_HEAD + body + "\n" + _PAGE_SCRIPT + _PAGE_TAIL
    return PreviewDocument(page, body, doc.placeholders, doc.prefix)


def _updates_for(links: Iterable[Link]) -> List[LinkUpdate]:
    return [LinkUpdate(id=link.id, keep=link.keep) for link in links if link.toggleable]


@dataclass
class PreviewChannel:
    """Session side of the preview surface.

    ``ready`` is a one-shot signal: it goes true once the surface has
    finished loading and stays true until the preview is re-rendered.
    ``surface_html`` is the latest known body of the surface, edits included.
    """

    ready: bool = False
    rendered: bool = False
    surface_html: Optional[str] = None
    placeholders: List[str] = field(default_factory=list)
    prefix: str = PLACEHOLDER_PREFIX
    outbox: List[PreviewMessage] = field(default_factory=list)
    dropped: int = 0

    def render(self, original_html: str, links: List[Link]) -> PreviewDocument:
        """Render a fresh surface; it is not interactive until :meth:`mark_ready`."""
        preview = generate_preview(original_html, links)
        self.ready = False
        self.rendered = True
        self.surface_html = preview.body_html
        self.placeholders = preview.placeholders
        self.prefix = preview.prefix
        self.outbox.clear()
        return preview

    def mark_ready(self, links: List[Link]) -> None:
        if not self.rendered:
            logger.warning("Ready signal received before any preview was rendered")
            return
        first = not self.ready
        self.ready = True
        if first:
            self.send_bulk(links)

    def update_surface(self, body_html: str) -> None:
        self.surface_html = body_html

    def send(self, message: PreviewMessage) -> bool:
        """Queue *message* for the surface; return False when it was dropped."""
        if not self.ready:
            self.dropped += 1
            logger.debug("Dropped %s: preview surface not ready", message.type)
            return False
        self.outbox.append(message)
        return True

    def send_update(self, link: Link) -> bool:
        return self.send(PreviewMessage(type="srlc-update", id=link.id, keep=link.keep))

    def send_bulk(self, links: Iterable[Link]) -> bool:
        return self.send(PreviewMessage(type="srlc-update-all", updates=_updates_for(links)))

    def drain(self) -> List[PreviewMessage]:
        """Hand over every queued message; each is delivered at most once."""
        messages, self.outbox = self.outbox, []
        return messages

    def reset(self) -> None:
        self.ready = False
        self.rendered = False
        self.surface_html = None
        self.placeholders = []
        self.prefix = PLACEHOLDER_PREFIX
        self.outbox = []
        self.dropped = 0
