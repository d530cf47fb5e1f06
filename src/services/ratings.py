"""Recipe rating aggregate, derived from approved, rated comments."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.comment_tables import CommentRow
from src.db.tables import RecipeRow
from src.models import CommentStatus

logger = logging.getLogger(__name__)


@dataclass
class RatingStats:
    avg: float
    count: int

    def to_dict(self) -> dict:
        return {"rating_avg": self.avg, "rating_count": self.count}


def _round_half_up(value) -> float:
    # half up: 4.25 -> 4.3
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


async def compute_recipe_rating(session: AsyncSession, recipe_id: str) -> RatingStats:
    """Average and count over the recipe's approved comments that carry a rating."""
    result = await session.execute(
        select(func.avg(CommentRow.rating), func.count(CommentRow.id)).where(
            CommentRow.recipe_id == recipe_id,
            CommentRow.status == CommentStatus.APPROVED.value,
            CommentRow.rating.is_not(None),
        )
    )
    avg, count = result.one()
    if not count:
        return RatingStats(avg=0.0, count=0)
    return RatingStats(avg=_round_half_up(avg), count=int(count))


async def recompute_recipe_rating(session: AsyncSession, recipe_id: str) -> RatingStats:
    """Recompute the aggregate from scratch and store it on the recipe.

    Idempotent: running it twice with no intervening comment change writes
    the same values.
    """
    stats = await compute_recipe_rating(session, recipe_id)
    await session.execute(
        update(RecipeRow)
        .where(RecipeRow.id == recipe_id)
        .values(rating_avg=stats.avg, rating_count=stats.count)
    )
    await session.commit()
    logger.debug("Recipe %s rating -> %.1f (%d)", recipe_id, stats.avg, stats.count)
    return stats
