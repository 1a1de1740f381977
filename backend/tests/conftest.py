"""Shared fixtures for Bug Release Analyzer tests."""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from services.bugzilla_client import BugRecord, BugSource, NetworkError


class FakeBugSource(BugSource):
    """In-memory BugSource recording every batch it is asked for."""

    def __init__(self, graph, fail_on_call=None, reverse=False):
        # graph: {id: {"summary": ..., "resolution": ..., "depends_on": [...]}}
        self.graph = graph
        self.calls = []
        self.searches = []
        self.fail_on_call = fail_on_call
        self.reverse = reverse

    def fetch(self, ids):
        self.calls.append(list(ids))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise NetworkError("connection reset")

        records = [self._record(bug_id) for bug_id in ids if bug_id in self.graph]
        if self.reverse:
            records.reverse()
        return records

    def search_changed(self, field, start, end=None, value=None):
        self.searches.append((field, start, end, value))
        return [self._record(bug_id) for bug_id, bug in self.graph.items()
                if field in bug.get("changed", [])]

    def _record(self, bug_id):
        bug = self.graph[bug_id]
        return BugRecord(
            id=bug_id,
            summary=bug.get("summary", f"Bug {bug_id}"),
            resolution=bug.get("resolution", ""),
            depends_on=bug.get("depends_on", [])
        )

    @property
    def fetched_ids(self):
        return [bug_id for batch in self.calls for bug_id in batch]


@pytest.fixture
def make_source():
    """Factory for FakeBugSource instances."""
    return FakeBugSource


@pytest.fixture
def release_graph():
    """A release tracked by a [meta] bug with a diamond underneath.

        1248602 [meta]
          ├── 1248603 (FIXED) ──┐
          └── 1248604 (open) ───┴── 1250107 (WONTFIX)
    """
    return {
        1248602: {"summary": "[meta] Hello 1.2 release", "depends_on": [1248603, 1248604]},
        1248603: {"summary": "Rooms list is slow", "resolution": "FIXED",
                  "depends_on": [1250107]},
        1248604: {"summary": "Copy link button misaligned", "depends_on": [1250107]},
        1250107: {"summary": "Update l10n strings", "resolution": "WONTFIX",
                  "depends_on": []},
    }


@pytest.fixture
def sample_bugzilla_response():
    """Raw /rest/bug response body."""
    return {
        "bugs": [
            {
                "id": 1248602,
                "summary": "[meta] Hello 1.2 release",
                "resolution": "",
                "depends_on": [1248603, 1248604]
            },
            {
                "id": 1248603,
                "summary": "Rooms list is slow",
                "resolution": "FIXED",
                "depends_on": []
            }
        ],
        "faults": []
    }


@pytest.fixture
def sample_releases():
    """Small release calendar."""
    return [
        {"type": "FF", "name": "44.2", "start": "2015-10-19", "end": "2015-11-02"},
        {"type": "FF", "name": "44.3", "start": "2015-11-02", "end": "2015-11-16"},
        {"type": "ADDON", "name": "1.2", "start": "2016-01-25", "end": None,
         "bug": 1248602},
    ]


@pytest.fixture
def app(sample_releases):
    """Create Flask test app."""
    from app import create_app
    app = create_app({
        "TESTING": True,
        "BUGZILLA_URL": "https://bugzilla.test",
        "BUGZILLA_PRODUCT": None,
        "RELEASES": sample_releases
    })
    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()
