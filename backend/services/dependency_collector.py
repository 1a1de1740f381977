"""Dependency closure of one or more bugs.

Walks the `depends_on` graph layer by layer: every layer is a single
batched fetch, and the next layer only starts once the previous fetch
has returned. Closed and [meta] bugs are part of the closure; filtering
them is up to the caller (see bug_classifier).
"""

import logging
from typing import Iterable
from services.bugzilla_client import BugSource

logger = logging.getLogger(__name__)


def normalize_bug_ids(roots) -> list:
    """Flatten roots into an ordered list of unique integer ids.

    Accepts a single id (int or numeric string), a comma separated
    string like "1248602,1248603", or any iterable of those.
    """
    if roots is None:
        return []

    if isinstance(roots, (int, str)):
        roots = [roots]

    ids = []
    seen = set()
    for item in roots:
        if isinstance(item, str):
            parts = [p.strip() for p in item.split(",") if p.strip()]
        else:
            parts = [item]

        for part in parts:
            if isinstance(part, bool):
                raise ValueError(f"Invalid bug id: {part!r}")
            try:
                bug_id = int(part)
            except (TypeError, ValueError):
                raise ValueError(f"Invalid bug id: {part!r}")
            if bug_id <= 0:
                raise ValueError(f"Invalid bug id: {part!r}")
            if bug_id not in seen:
                seen.add(bug_id)
                ids.append(bug_id)

    return ids


class VisitedSet:
    """Ids already requested during one traversal.

    Owned by a single `collect` call and thrown away afterwards.
    """

    def __init__(self):
        self._seen = set()

    def __contains__(self, bug_id) -> bool:
        return bug_id in self._seen

    def __len__(self) -> int:
        return len(self._seen)

    def claim(self, ids: Iterable) -> list:
        """Mark ids as visited, returning only the ones that were not.

        Check and mark happen together, in iteration order, so an id
        listed twice (or by two sibling bugs) is only returned once.
        """
        claimed = []
        for bug_id in ids:
            if bug_id in self._seen:
                continue
            self._seen.add(bug_id)
            claimed.append(bug_id)
        return claimed


class DependencyCollector:
    """Collects a bug and all of its transitive dependencies."""

    def __init__(self, source: BugSource):
        self.source = source

    def collect(self, roots) -> list:
        """Return the BugRecords reachable from roots, each exactly once.

        Order is layer by layer: the roots first, then their new
        dependencies, and so on. Any fetch error aborts the traversal and
        propagates unchanged; no partial result is returned.
        """
        visited = VisitedSet()
        result = []

        batch = visited.claim(normalize_bug_ids(roots))
        layer = 0

        while batch:
            records = self.source.fetch(batch)

            # Keep only records that answer this batch, first one wins
            pending = set(batch)
            new_records = []
            for record in records:
                if record.id in pending:
                    pending.discard(record.id)
                    new_records.append(record)

            logger.debug(
                f"Layer {layer}: requested {len(batch)}, got {len(new_records)} new bug(s)"
            )
            result.extend(new_records)

            batch = visited.claim(
                dep for record in new_records for dep in record.depends_on
            )
            layer += 1

        logger.info(f"Collected {len(result)} bug(s) in {layer} layer(s)")
        return result

    def collect_ids(self, roots) -> list:
        """Same as collect() but returns only the bug ids."""
        return [record.id for record in self.collect(roots)]
