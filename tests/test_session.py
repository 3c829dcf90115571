"""Tests for app.services.session: session lifecycle, preview wiring and store."""

import threading

import pytest

from app.models.preview import PreviewMessage
from app.services.regenerator import generate_clean
from app.services.session import EmptyInputError, PreviewNotRenderedError, Session, SessionStore

_WIDGET_ARTICLE = (
    '<p><a href="/product">Buy the Widget</a> is our top pick.</p>'
    '<p><a href="/product"><img src="widget.jpg" alt="Widget"></a></p>'
    '<p>Again: <a href="/product">Buy the Widget</a></p>'
)


@pytest.fixture
def session():
    s = Session()
    s.load(_WIDGET_ARTICLE)
    return s


class TestLoad:
    @pytest.mark.parametrize("html", ["", "   \n\t "])
    def test_blank_input_rejected(self, html):
        with pytest.raises(EmptyInputError, match="Paste some HTML first"):
            Session().load(html)

    def test_returns_removed_count(self):
        assert Session().load(_WIDGET_ARTICLE) == 1

    def test_state_after_load(self, session):
        assert session.stats.total_links == 3
        assert session.removed_count == 1
        assert not session.is_clean

    def test_reload_replaces_previous_article(self, session):
        session.render_preview()
        session.load('<p><a href="/solo">Solo</a></p>')
        assert [link.href for link in session.links] == ["/solo"]
        assert session.is_clean
        assert not session.preview.rendered

    def test_reset(self, session):
        session.reset()
        assert session.original_html == ""
        assert session.links == []
        assert session.groups == {}
        assert session.stats.total_links == 0


class TestDecisions:
    def test_keep_all_then_auto_strip(self, session):
        session.keep_all()
        assert session.is_clean
        assert session.auto_strip() == 1
        assert not session.links[2].keep

    def test_toggle_text_link(self, session):
        link = session.toggle(2)
        assert link is session.links[2]
        assert session.is_clean

    def test_toggle_image_link_ignored(self, session):
        assert session.toggle(1) is None

    def test_sync(self, session):
        assert session.sync({0: False, 2: True}) == 2
        assert [link.keep for link in session.links] == [False, True, True]


class TestPreviewWiring:
    def test_toggle_before_ready_is_dropped_then_resynced(self, session):
        session.render_preview()
        session.toggle(2)
        assert session.preview.dropped == 1
        assert session.preview.drain() == []

        session.handle_message(PreviewMessage(type="srlc-ready"))
        (bulk,) = session.preview.drain()
        assert bulk.type == "srlc-update-all"
        assert [(u.id, u.keep) for u in bulk.updates] == [(0, True), (2, True)]

    def test_toggle_after_ready_sends_single_update(self, session):
        session.render_preview()
        session.handle_message(PreviewMessage(type="srlc-ready"))
        session.preview.drain()
        session.handle_message(PreviewMessage(type="srlc-toggle", id=2))
        (update,) = session.preview.drain()
        assert (update.type, update.id, update.keep) == ("srlc-update", 2, True)

    def test_policy_while_loading_rerenders(self, session):
        session.render_preview()
        session.keep_all()
        assert session.preview.rendered
        assert not session.preview.ready
        assert session.preview.drain() == []

    def test_policy_when_ready_sends_bulk(self, session):
        session.render_preview()
        session.handle_message(PreviewMessage(type="srlc-ready"))
        session.preview.drain()
        session.keep_all()
        (bulk,) = session.preview.drain()
        assert bulk.type == "srlc-update-all"


class TestClean:
    def test_uses_original_until_surface_ready(self, session):
        session.render_preview()
        assert session.clean() == generate_clean(_WIDGET_ARTICLE, session.links)

    def test_uses_edited_surface_once_ready(self, session):
        session.render_preview()
        session.handle_message(PreviewMessage(type="srlc-ready"))
        edited = session.preview.surface_html.replace("is our top pick", "is still our top pick")
        session.preview.update_surface(edited)
        html = session.clean().html
        assert "is still our top pick." in html
        assert "<p>Again: Buy the Widget</p>" in html
        assert "data-link-id" not in html

    def test_records_target_self_count(self):
        s = Session()
        s.load('<p><a href="/a" target="_self">A</a></p>')
        s.clean()
        assert s.target_self_count == 1

    def test_changes(self, session):
        report = session.changes()
        assert report.total_changes == 1
        assert report.summary == "1 change: 1 link unwrapped"
        (section,) = report.sections
        assert section.normalized_href == "/product"
        assert [r.id for r in section.removals] == [2]
        assert section.removals[0].anchor_text == "Buy the Widget"

    def test_no_changes_summary(self):
        s = Session()
        s.load('<p><a href="/solo">Solo</a></p>')
        assert s.changes().summary == "No changes - all links are being kept."


class TestSessionStore:
    def test_create_get_delete(self):
        store = SessionStore(max_sessions=5)
        s = store.create()
        assert store.get(s.id) is s
        assert store.delete(s.id)
        assert store.get(s.id) is None
        assert not store.delete(s.id)

    def test_oldest_evicted(self):
        store = SessionStore(max_sessions=2)
        first, second, third = store.create(), store.create(), store.create()
        assert len(store) == 2
        assert store.get(first.id) is None
        assert store.get(second.id) is second
        assert store.get(third.id) is third


class TestSurfaceEdits:
    def test_edit_before_render_rejected(self, session):
        with pytest.raises(PreviewNotRenderedError):
            session.update_surface("<p>edited</p>")

    def test_drain_messages_hands_over_queue(self, session):
        session.render_preview()
        session.handle_message(PreviewMessage(type="srlc-ready"))
        assert [m.type for m in session.drain_messages()] == ["srlc-update-all"]
        assert session.drain_messages() == []


class TestConcurrentRequests:
    def test_parallel_toggles_are_not_lost(self, session):
        # An even number of flips in total must leave the flag where it started
        def flip():
            for _ in range(200):
                session.toggle(2)

        threads = [threading.Thread(target=flip) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert session.links[2].keep is False

    def test_other_threads_wait_while_lock_is_held(self, session):
        done = threading.Event()
        worker = threading.Thread(target=lambda: (session.toggle(2), done.set()))
        with session.lock:
            worker.start()
            assert not done.wait(0.2)
            assert session.links[2].keep is False
        worker.join()
        assert done.is_set()
        assert session.links[2].keep is True

    def test_lock_is_reentrant(self, session):
        with session.lock:
            assert session.changes().unwrapped == 1
