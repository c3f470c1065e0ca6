"""Screens, view modes and the priority-ordered back-action table."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional, Tuple


class Screen(str, Enum):
    LOGGED_OUT = "logged_out"
    RULES = "rules"
    TUTORIAL = "tutorial"
    GAME = "game"
    READY = "ready"
    SEARCHING = "searching"
    RESULTS = "results"


class ViewMode(str, Enum):
    LIST = "list"
    MAP = "map"
    BOOKINGS = "bookings"


class BackTarget(str, Enum):
    DISCARD_RESULTS = "discard_results"
    TUTORIAL = "tutorial"
    RULES = "rules"
    LOG_OUT = "log_out"
    GAME = "game"


# Screens where search results (or a pending search) are showing.
RESULT_SCREENS = frozenset({Screen.SEARCHING, Screen.RESULTS})

# Screens where the bottom navigation is active.
NAV_SCREENS = frozenset({Screen.READY, Screen.RESULTS})

# First matching guard wins; order matters.
BACK_RULES: Tuple[Tuple[str, Callable[[Screen], bool], BackTarget], ...] = (
    ("results", lambda s: s in RESULT_SCREENS, BackTarget.DISCARD_RESULTS),
    ("game", lambda s: s is Screen.GAME, BackTarget.TUTORIAL),
    ("tutorial", lambda s: s is Screen.TUTORIAL, BackTarget.RULES),
    ("rules", lambda s: s is Screen.RULES, BackTarget.LOG_OUT),
    ("ready", lambda s: s is Screen.READY, BackTarget.GAME),
)


def resolve_back(screen: Screen) -> Optional[BackTarget]:
    """Return where a back action leads from ``screen``; None when logged out."""
    for _name, guard, target in BACK_RULES:
        if guard(screen):
            return target
    return None


def screen_after_back(target: BackTarget) -> Screen:
    return {
        BackTarget.DISCARD_RESULTS: Screen.READY,
        BackTarget.TUTORIAL: Screen.TUTORIAL,
        BackTarget.RULES: Screen.RULES,
        BackTarget.LOG_OUT: Screen.LOGGED_OUT,
        BackTarget.GAME: Screen.GAME,
    }[target]
