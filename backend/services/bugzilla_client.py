"""Bugzilla REST client.

Fetches bug metadata (id, summary, resolution, dependencies) in batches.
This is the only place in the backend that talks to the bug tracker.
"""

import logging
from typing import Optional
import requests

logger = logging.getLogger(__name__)

DEFAULT_SERVER = "https://bugzilla.mozilla.org"

# Fields requested for every bug, nothing else is needed downstream
BUG_FIELDS = ["id", "summary", "resolution", "depends_on"]


class BugSourceError(Exception):
    """Base class for failures while fetching bug metadata."""


class NetworkError(BugSourceError):
    """The request to the bug tracker could not complete."""


class MalformedResponseError(BugSourceError):
    """The bug tracker answered with something that is not a bug list."""


class BugRecord:
    """A single bug as returned by the tracker."""

    __slots__ = ("id", "summary", "resolution", "depends_on")

    def __init__(self, id: int, summary: str = "", resolution: str = "",
                 depends_on: Optional[list] = None):
        self.id = id
        self.summary = summary or ""
        self.resolution = resolution or ""
        self.depends_on = list(depends_on or [])

    @classmethod
    def from_api(cls, data: dict) -> "BugRecord":
        """Build a record from one entry of the REST `bugs` list."""
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Bug entry is not an object: {data!r}")

        bug_id = data.get("id")
        if isinstance(bug_id, bool) or not isinstance(bug_id, int):
            raise MalformedResponseError(f"Bug entry has no valid id: {data!r}")

        depends_on = data.get("depends_on") or []
        if not isinstance(depends_on, list):
            raise MalformedResponseError(
                f"Bug {bug_id} has a non-list depends_on: {depends_on!r}"
            )

        try:
            depends_on = [int(dep) for dep in depends_on]
        except (TypeError, ValueError):
            raise MalformedResponseError(
                f"Bug {bug_id} has non-numeric dependencies: {depends_on!r}"
            )

        return cls(
            id=bug_id,
            summary=data.get("summary") or "",
            resolution=data.get("resolution") or "",
            depends_on=depends_on
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "summary": self.summary,
            "resolution": self.resolution,
            "dependsOn": list(self.depends_on)
        }

    def __eq__(self, other):
        if not isinstance(other, BugRecord):
            return NotImplemented
        return (self.id, self.summary, self.resolution, self.depends_on) == \
            (other.id, other.summary, other.resolution, other.depends_on)

    def __repr__(self):
        return f"BugRecord(id={self.id!r}, summary={self.summary!r}, " \
               f"resolution={self.resolution!r}, depends_on={self.depends_on!r})"


class BugSource:
    """Anything that can turn a batch of bug ids into BugRecords.

    Subclasses implement `fetch`. Ids unknown to the source are simply
    missing from the result, and the result order is not guaranteed to
    follow the request order.
    """

    def fetch(self, ids: list) -> list:
        raise NotImplementedError

    def search_changed(self, field: str, start: str, end: Optional[str] = None,
                       value: Optional[str] = None) -> list:
        raise NotImplementedError


class BugzillaBugSource(BugSource):
    """BugSource backed by the Bugzilla REST API (one GET per batch)."""

    def __init__(self, server: str = DEFAULT_SERVER, product: Optional[str] = None,
                 timeout: int = 30, session: Optional[requests.Session] = None):
        self.server = (server or DEFAULT_SERVER).rstrip("/")
        self.product = product
        self.timeout = timeout
        self.session = session

    def _request(self, params: dict) -> list:
        """Run one bug query and return the parsed records."""
        query = {"include_fields": ",".join(BUG_FIELDS)}
        if self.product:
            query["product"] = self.product
        query.update(params)

        try:
            http = self.session or requests
            response = http.get(
                f"{self.server}/rest/bug",
                headers={"Accept": "application/json"},
                params=query,
                timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"Failed to connect to Bugzilla: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Bugzilla returned invalid JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("bugs"), list):
            raise MalformedResponseError("Bugzilla response has no 'bugs' list")

        return [BugRecord.from_api(bug) for bug in data["bugs"]]

    def fetch(self, ids: list) -> list:
        """Fetch metadata for a batch of bug ids in a single request."""
        if not ids:
            raise ValueError("fetch() needs at least one bug id")

        logger.info(f"Fetching {len(ids)} bug(s) from {self.server}")
        return self._request({"id": ",".join(str(bug_id) for bug_id in ids)})

    def search(self, params: dict) -> list:
        """Run an arbitrary Bugzilla search, e.g. {"status": "NEW"}."""
        logger.info(f"Searching {self.server} with {params}")
        return self._request(params)

    def search_changed(self, field: str, start: str, end: Optional[str] = None,
                       value: Optional[str] = None) -> list:
        """Find bugs whose `field` changed inside [start, end].

        Args:
            field: Bugzilla field name, e.g. "assigned_to" or "resolution"
            start: ISO date (e.g., "2015-01-26")
            end: Optional ISO date; Bugzilla uses "Now" when omitted
            value: Optional value the field changed to (e.g., "FIXED")
        """
        params = {
            "chfield": field,
            "chfieldfrom": start,
            "chfieldto": end or "Now"
        }
        if value:
            params["chfieldvalue"] = value
        return self.search(params)
