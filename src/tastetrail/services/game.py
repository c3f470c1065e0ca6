from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

DEFAULT_DECK: tuple[str, ...] = (
    "spicy",
    "grilled",
    "bland",
    "crispy",
    "creamy",
    "sweet",
    "tangy",
    "smoky",
    "fermented",
    "fresh herbs",
    "deep fried",
    "street food",
)


@dataclass
class SwipeGame:
    """A deck of food traits swiped left (dislike) or right (like)."""

    deck: Sequence[str] = DEFAULT_DECK
    likes: List[str] = field(default_factory=list)
    dislikes: List[str] = field(default_factory=list)
    position: int = 0

    @property
    def current(self) -> Optional[str]:
        if self.position >= len(self.deck):
            return None
        return self.deck[self.position]

    @property
    def is_complete(self) -> bool:
        return self.position >= len(self.deck)

    def swipe(self, liked: bool) -> Optional[str]:
        """Record a swipe on the current card and return the next one."""
        item = self.current
        if item is None:
            raise ValueError("game already complete")
        (self.likes if liked else self.dislikes).append(item)
        self.position += 1
        return self.current

    def results(self) -> tuple[list[str], list[str]]:
        return list(self.likes), list(self.dislikes)
