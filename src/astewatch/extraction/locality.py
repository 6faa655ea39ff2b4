"""Locality filter matching."""

from collections.abc import Iterable


def matches(locality: str, targets: Iterable[str]) -> bool:
    """Check whether an extracted locality satisfies the caller's filter.

    An empty filter accepts everything. Otherwise the match is a symmetric,
    case-insensitive substring test: a target contained in the locality, or the
    locality contained in a target. This tolerates abbreviated text on either
    side ("Rome" vs "rom") and accepts the false positives that come with it.

    Args:
        locality: Locality resolved from the listing
        targets: Requested localities (may be empty)

    Returns:
        True if the listing passes the filter
    """
    wanted = [t.strip().lower() for t in targets if t and t.strip()]
    if not wanted:
        return True
    name = locality.strip().lower()
    if not name:
        return False
    return any(t in name or name in t for t in wanted)
