from __future__ import annotations

import asyncio

import pytest

from fakes import ALICE, reach_ready
from tastetrail.errors import TransitionError
from tastetrail.models import TasteProfile
from tastetrail.services.navigation import BackTarget, Screen, ViewMode, resolve_back


@pytest.mark.parametrize(
    "screen,target",
    [
        (Screen.SEARCHING, BackTarget.DISCARD_RESULTS),
        (Screen.RESULTS, BackTarget.DISCARD_RESULTS),
        (Screen.GAME, BackTarget.TUTORIAL),
        (Screen.TUTORIAL, BackTarget.RULES),
        (Screen.RULES, BackTarget.LOG_OUT),
        (Screen.READY, BackTarget.GAME),
        (Screen.LOGGED_OUT, None),
    ],
)
def test_resolve_back_priority(screen: Screen, target) -> None:
    assert resolve_back(screen) is target


def test_back_walks_the_whole_journey(orch, store) -> None:
    reach_ready(orch)

    async def search() -> None:
        await orch.submit_search(TasteProfile())
        await orch.wait_background()

    asyncio.run(search())
    orch.set_view_mode(ViewMode.MAP)
    assert orch.screen is Screen.RESULTS

    assert orch.back() is BackTarget.DISCARD_RESULTS
    assert orch.screen is Screen.READY
    assert orch.restaurants == []
    assert orch.active_profile is None
    assert orch.view_mode is ViewMode.LIST

    assert orch.back() is BackTarget.GAME
    assert orch.screen is Screen.GAME

    # a returning player with a palate still leaves the game via the tutorial
    assert orch.palate is not None
    assert orch.back() is BackTarget.TUTORIAL
    assert orch.screen is Screen.TUTORIAL

    assert orch.back() is BackTarget.RULES
    assert orch.screen is Screen.RULES

    assert orch.back() is BackTarget.LOG_OUT
    assert orch.screen is Screen.LOGGED_OUT
    assert orch.user is None
    assert store.load_user() is None
    assert store.load_palate() is not None

    with pytest.raises(TransitionError):
        orch.back()


def test_logout_then_login_again(orch) -> None:
    orch.login(ALICE)
    orch.back()
    orch.login(ALICE)
    assert orch.screen is Screen.RULES
