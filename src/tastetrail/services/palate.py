from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from loguru import logger

from tastetrail.models import PalateProfile
from tastetrail.utils import dedupe

if TYPE_CHECKING:
    from tastetrail.services.gemini import TasteTrailAI


async def derive_palate(
    analyzer: "TasteTrailAI", likes: Iterable[str], dislikes: Iterable[str]
) -> PalateProfile:
    """Turn swipe-game outcomes into a palate profile.

    Each list is de-duplicated in order; an item present in both is passed on
    as-is and left to the analysis to weigh.
    """
    like_list = dedupe(likes)
    dislike_list = dedupe(dislikes)
    logger.debug("deriving palate likes={} dislikes={}", len(like_list), len(dislike_list))
    return await analyzer.analyze_taste_personality(like_list, dislike_list)
