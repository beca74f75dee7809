"""Tests for document sessions and the session manager."""

from __future__ import annotations

import pytest

from conftest import sample_analysis
from pagewise.services.page_analysis import PageAnalysis, PageIndexError, PageState
from pagewise.services.session import DocumentSession, SessionKey, SessionManager


def _session(owner: str = "student-1", **kwargs) -> DocumentSession:
    return DocumentSession(key=SessionKey("history.pdf", 2048), owner=owner, total_pages=5, **kwargs)


class TestDocumentSession:
    def test_cache_key(self):
        assert SessionKey("notes.pdf", 99).cache_key == "studyHistoryId_notes.pdf_99"

    def test_requires_at_least_one_page(self):
        with pytest.raises(ValueError):
            DocumentSession(key=SessionKey("a.pdf", 1), owner="x", total_pages=0)

    def test_prior_analyses_are_completed(self):
        session = _session(analyses={2: sample_analysis(2), 3: sample_analysis(3)})

        assert session.state_of(2) is PageState.COMPLETED
        assert session.state_of(1) is PageState.UNANALYZED
        assert session.completed_pages() == [2, 3]
        assert session.incomplete_pages() == [1, 4, 5]

    def test_resume_cursor_follows_last_completed_page(self):
        assert _session().cursor == 1
        assert _session(analyses={2: sample_analysis(2)}).cursor == 3
        assert _session(analyses={5: sample_analysis(5)}).cursor == 5

    def test_unfinished_prior_analysis_is_not_completed(self):
        session = _session(analyses={1: PageAnalysis(page_number=1, is_analyzed=False)})

        assert not session.is_completed(1)
        assert session.completed_analysis(1) is None

    def test_out_of_range_prior_analysis_rejected(self):
        with pytest.raises(PageIndexError):
            _session(analyses={9: sample_analysis(9)})

    def test_reset_clears_progress_and_bumps_generation(self):
        session = _session(analyses={1: sample_analysis(1)}, record_id="rec-1")
        session.failures[2] = "boom"

        session.reset()

        assert session.analyses == {}
        assert session.failures == {}
        assert session.record_id is None
        assert session.cursor == 1
        assert session.generation == 1

    def test_progress(self):
        progress = _session(analyses={1: sample_analysis(1)}).progress()

        assert progress.to_dict() == {"completed": 1, "total": 5, "percentage": 20.0}


class TestSessionManager:
    def test_activate_replaces_previous_session(self):
        manager = SessionManager()
        first = _session()
        second = _session()

        assert manager.activate(first) is None
        assert manager.activate(second) is first
        assert manager.is_active(second)
        assert not manager.is_active(first)

    def test_owners_are_independent(self):
        manager = SessionManager()
        mine = _session("student-1")
        theirs = _session("student-2")
        manager.activate(mine)
        manager.activate(theirs)

        assert manager.is_active(mine)
        assert manager.get("student-2") is theirs

    def test_close(self):
        manager = SessionManager()
        session = _session()
        manager.activate(session)

        assert manager.close("student-1") is session
        assert manager.close("student-1") is None
        assert not manager.is_active(session)
