"""Classification of collected bugs for release dashboards."""

import re

# "[meta]", "(Meta)", "[ META ]" anywhere, or a leading "meta:"
META_PATTERN = re.compile(r"[\[(]\s*meta\s*[\])]|^\s*meta\s*:", re.IGNORECASE)

FIXED_RESOLUTION = "FIXED"


def is_meta(bug) -> bool:
    """Check if a bug is an umbrella/tracking [meta] bug."""
    return bool(META_PATTERN.search(bug.summary or ""))


def is_closed(bug) -> bool:
    """Check if a bug is closed, whatever the resolution."""
    return bool(bug.resolution)


def is_fixed(bug) -> bool:
    return bug.resolution == FIXED_RESOLUTION


def classify_bugs(bugs: list) -> dict:
    """Split a bug list into the dashboard counters.

    Returns:
        - total: every bug given
        - metas: [meta] bugs
        - committed: non-meta bugs (the real work)
        - solved: committed bugs that are closed
        - fixed: committed bugs resolved as FIXED
        - open: committed bugs without resolution
    """
    metas = []
    committed = []
    solved = []
    fixed = []
    still_open = []

    for bug in bugs:
        if is_meta(bug):
            metas.append(bug.id)
            continue

        committed.append(bug.id)
        if is_closed(bug):
            solved.append(bug.id)
            if is_fixed(bug):
                fixed.append(bug.id)
        else:
            still_open.append(bug.id)

    return {
        "total": len(bugs),
        "metas": len(metas),
        "committed": len(committed),
        "solved": len(solved),
        "fixed": len(fixed),
        "open": len(still_open),
        "bugs": {
            "metas": metas,
            "committed": committed,
            "solved": solved,
            "fixed": fixed,
            "open": still_open
        }
    }
