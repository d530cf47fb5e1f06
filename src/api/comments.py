"""Comments API — user comments and star ratings on recipes.

New comments wait in the moderation queue; only approved comments are
listed publicly and count toward a recipe's rating.
"""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import actor_for, require_user
from src.db.engine import get_session
from src.db.tables import RecipeRow
from src.db.user_tables import UserRow
from src.models import CommentStatus
from src.services import comment_moderation
from src.services.errors import RecipeNotFound
from src.services.pagination import is_valid_id

logger = logging.getLogger(__name__)
router = APIRouter(tags=["comments"])


class CommentCreate(BaseModel):
    """Request to post a comment."""
    content: str = Field(..., min_length=1, max_length=2000, description="Comment text")
    rating: int | None = Field(None, ge=1, le=5, description="Optional 1-5 star rating")


@router.post("/api/v1/recipes/{recipe_id}/comments", status_code=201)
async def post_comment(
    recipe_id: str,
    req: CommentCreate,
    user: Annotated[UserRow, Depends(require_user)],
    session: AsyncSession = Depends(get_session),
):
    """Post a comment on a recipe. It stays pending until a moderator approves it."""
    comment = await comment_moderation.create_comment(
        session,
        recipe_id=recipe_id,
        author=actor_for(user),
        content=req.content,
        rating=req.rating,
    )
    logger.info("User %s posted comment %s on recipe %s", user.id, comment["id"], recipe_id)
    return comment


@router.get("/api/v1/recipes/{recipe_id}/comments")
async def get_comments(
    recipe_id: str,
    cursor: str | None = Query(None),
    limit: int | None = Query(None),
    sort: str = Query("newest", pattern="^(newest|oldest)$"),
    session: AsyncSession = Depends(get_session),
):
    """Approved comments on a recipe, cursor-paginated."""
    if not is_valid_id(recipe_id) or await session.get(RecipeRow, recipe_id) is None:
        raise RecipeNotFound()
    return await comment_moderation.list_comments(
        session,
        status=CommentStatus.APPROVED.value,
        recipe_id=recipe_id,
        sort=sort,
        cursor=cursor,
        limit=limit,
    )


@router.get("/api/v1/recipes/{recipe_id}/rating")
async def get_rating(recipe_id: str, session: AsyncSession = Depends(get_session)):
    """The stored rating aggregate for a recipe."""
    recipe = await session.get(RecipeRow, recipe_id) if is_valid_id(recipe_id) else None
    if recipe is None:
        raise RecipeNotFound()
    return {
        "recipe_id": recipe.id,
        "rating_avg": recipe.rating_avg or 0.0,
        "rating_count": recipe.rating_count or 0,
    }
