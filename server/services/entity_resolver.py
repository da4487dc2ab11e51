"""
Canonical identity for names found in attendance records.

Team, player and artist names are grouped by a key built from the trimmed,
case-folded name and the sport. There is deliberately no fuzzy matching:
"Man United" and "Manchester United" remain two entities.
"""

from typing import Optional

from models.events import Sport

CanonicalKey = tuple[str, str]


def canonical_key(name: str, sport: Optional[Sport] = None) -> CanonicalKey:
    """
    Build the grouping key for a name within a sport.

    Args:
        name: Raw name as entered.
        sport: Sport scope. Artists have none.

    Returns:
        (sport tag, normalized name) tuple.
    """
    scope = Sport(sport).value if sport else ""
    return scope, (name or "").strip().casefold()


class EntityResolver:
    """
    Maps raw names to canonical keys and remembers a display spelling.

    The first spelling seen for a key wins, trimmed, so grouped output shows
    "Arsenal" rather than "arsenal " when both were entered.
    """

    def __init__(self):
        self._display: dict[CanonicalKey, str] = {}

    def resolve(self, name: str, sport: Optional[Sport] = None) -> CanonicalKey:
        key = canonical_key(name, sport)
        self._display.setdefault(key, (name or "").strip())
        return key

    def display_name(self, key: CanonicalKey) -> str:
        return self._display.get(key, key[1])

    def display_names(self) -> list[str]:
        return list(self._display.values())

    def __len__(self) -> int:
        return len(self._display)
