"""Release metrics calculation service."""

import logging
import statistics
from datetime import date, datetime, timedelta
from typing import Optional
from services.bug_classifier import classify_bugs
from services.dependency_collector import DependencyCollector

logger = logging.getLogger(__name__)

# Two weeks of weekdays, used when a release has no end date
DEFAULT_RELEASE_DAYS = 10


def find_release(releases: list, name: str) -> Optional[dict]:
    """Look up a release of the calendar by name."""
    for release in releases:
        if str(release.get("name")) == str(name):
            return release
    return None


class ReleaseMetricsService:
    """Service for calculating release metrics from Bugzilla data.

    A release is scoped either by a tracking bug (its dependency closure)
    or by its date window (bugs assigned or fixed during the release).
    """

    def __init__(self, source, releases: Optional[list] = None):
        self.source = source
        self.releases = list(releases or [])
        self.collector = DependencyCollector(source)

    def get_release_bugs(self, release: dict) -> list:
        """Get every bug belonging to a release.

        Bug dependency:   closure of the release tracking bug, METAs and
                          CLOSED bugs included.
        Date dependency:  committed bugs (assigned during the release)
                          plus solved bugs (FIXED during the release).
        """
        if release.get("bug"):
            return self.collector.collect(release["bug"])

        start = release.get("start")
        if not start:
            logger.warning(f"Release {release.get('name')} has no tracking bug and no start date")
            return []

        end = release.get("end")
        committed = self.source.search_changed("assigned_to", start, end)
        solved = self.source.search_changed("resolution", start, end, value="FIXED")

        bugs = []
        seen = set()
        for bug in committed + solved:
            if bug.id not in seen:
                seen.add(bug.id)
                bugs.append(bug)
        return bugs

    def get_release_summary(self, release: dict) -> dict:
        """Classify the bugs of one release."""
        bugs = self.get_release_bugs(release)
        summary = classify_bugs(bugs)
        summary["release"] = self._release_info(release)

        logger.info(
            f"Release {release.get('name')}: total {summary['total']}, "
            f"meta {summary['metas']}, committed {summary['committed']}, "
            f"solved {summary['solved']}"
        )
        return summary

    def get_all_summaries(self) -> list:
        """Summaries for every release, one release after the other."""
        return [self.get_release_summary(release) for release in self.releases]

    def _release_info(self, release: dict) -> dict:
        return {
            "type": release.get("type"),
            "name": release.get("name"),
            "start": release.get("start"),
            "end": release.get("end"),
            "bug": release.get("bug")
        }

    def _parse_date(self, date_str: Optional[str]) -> Optional[date]:
        """Parse a release calendar date (YYYY-MM-DD)."""
        if not date_str:
            return None
        try:
            return datetime.strptime(date_str, "%Y-%m-%d").date()
        except ValueError:
            logger.warning(f"Ignoring invalid release date: {date_str!r}")
            return None

    def _count_working_days(self, start_date: str, end_date: str) -> int:
        """Weekdays in [start_date, end_date), 10 when the window is unknown."""
        start = self._parse_date(start_date)
        end = self._parse_date(end_date)
        if not start or not end:
            return DEFAULT_RELEASE_DAYS

        days = (end - start).days
        working_days = sum(
            1 for offset in range(days)
            if (start + timedelta(days=offset)).weekday() < 5
        )
        return working_days or DEFAULT_RELEASE_DAYS

    def get_velocity_metrics(self, release_count: Optional[int] = None) -> dict:
        """Solved bugs per release, scaled to the typical release length.

        Releases differ in length (two weeks, four weeks, open ended), so
        each release's solved-per-day rate is projected onto the median
        release length before averaging.
        """
        releases = self.releases
        if release_count is not None and release_count > 0:
            releases = releases[-release_count:]

        rows = []
        for release in releases:
            solved = classify_bugs(self.get_release_bugs(release))["solved"]
            rows.append({
                "releaseName": release.get("name"),
                "releaseType": release.get("type"),
                "startDate": release.get("start"),
                "endDate": release.get("end"),
                "solvedBugs": solved,
                "workingDays": self._count_working_days(release.get("start"), release.get("end"))
            })

        if rows:
            standard_days = int(statistics.median(r["workingDays"] for r in rows))
        else:
            standard_days = DEFAULT_RELEASE_DAYS

        for row in rows:
            row["bugsPerDay"] = round(row["solvedBugs"] / row["workingDays"], 2)
            row["normalizedSolved"] = round(
                row["solvedBugs"] * standard_days / row["workingDays"], 1
            )

        if rows:
            average = statistics.mean(r["normalizedSolved"] for r in rows)
            raw_average = statistics.mean(r["solvedBugs"] for r in rows)
        else:
            average = raw_average = 0

        return {
            "releases": rows,
            "averageVelocity": round(average, 1),
            "rawAverageVelocity": round(raw_average, 1),
            "standardReleaseDays": standard_days,
            "totalReleases": len(rows)
        }
