"""Note body transforms: local-only stripping and heading-range slicing."""

import re
from typing import List, Optional, Tuple
import inflection

LOCAL_ONLY_MARKER = "<!--LOCAL_ONLY_LINE-->"

HEADING_PATTERN = re.compile(r'^(#{1,6})[ \t]+(.*?)[ \t#]*$')
FENCE_PATTERN = re.compile(r'^[ \t]*(`{3,}|~{3,})')


def strip_local_only_tags(body: str) -> str:
    """Remove every line carrying the local-only marker."""
    return "\n".join(
        line for line in body.split("\n") if LOCAL_ONLY_MARKER not in line
    )


def find_headings(lines: List[str]) -> List[Tuple[int, int, str]]:
    """Find markdown headings outside fenced code.

    Returns:
        List of (line index, level, heading text)
    """
    headings = []
    fence = None
    for idx, line in enumerate(lines):
        fence_match = FENCE_PATTERN.match(line)
        if fence_match:
            marker = fence_match.group(1)
            if fence is None:
                fence = marker
            elif marker[0] == fence[0] and len(marker) >= len(fence):
                fence = None
            continue
        if fence is not None:
            continue
        match = HEADING_PATTERN.match(line)
        if match:
            headings.append((idx, len(match.group(1)), match.group(2)))
    return headings


def heading_matches(text: str, anchor: str) -> bool:
    """Match a heading by its text (case-insensitive) or by its slug."""
    if text.strip().lower() == anchor.strip().lower():
        return True
    return inflection.parameterize(text) == inflection.parameterize(anchor)


def slice_anchor_range(body: str, start: str, end: Optional[str] = None) -> Optional[str]:
    """Extract a heading-delimited slice of a body.

    Args:
        body: Note body
        start: Heading that opens the slice (included)
        end: Where the slice stops. None stops at the next heading of the
             same or higher level, ``*`` runs to the end of the body, digits
             take that many lines after the start heading, anything else
             names a later heading (excluded).

    Returns:
        The slice, or None if a named heading does not exist
    """
    lines = body.split("\n")
    headings = find_headings(lines)

    opener = next((h for h in headings if heading_matches(h[2], start)), None)
    if opener is None:
        return None
    first, level, _ = opener
    later = [h for h in headings if h[0] > first]

    if end is None:
        stop = next((idx for idx, lvl, _ in later if lvl <= level), len(lines))
    elif end == "*":
        stop = len(lines)
    elif end.isdigit():
        stop = min(len(lines), first + 1 + int(end))
    else:
        closer = next((h for h in later if heading_matches(h[2], end)), None)
        if closer is None:
            return None
        stop = closer[0]

    return "\n".join(lines[first:stop]).rstrip("\n")
