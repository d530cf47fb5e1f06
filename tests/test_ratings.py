"""Tests for the recipe rating aggregate."""
import pytest

from src.db.tables import RecipeRow
from src.services.ratings import compute_recipe_rating, recompute_recipe_rating
from tests.conftest import RECIPE_ID, get_test_session


async def _stored(recipe_id=RECIPE_ID):
    async with get_test_session() as session:
        recipe = await session.get(RecipeRow, recipe_id)
        return recipe.rating_avg, recipe.rating_count


@pytest.mark.asyncio
async def test_only_approved_rated_comments_count(db, make_comment):
    await make_comment(rating=5, status="approved")
    await make_comment(rating=4, status="approved")
    await make_comment(rating=1, status="pending")
    await make_comment(rating=1, status="hidden")
    await make_comment(rating=None, status="approved")

    stats = await recompute_recipe_rating(db, RECIPE_ID)
    assert stats.avg == 4.5
    assert stats.count == 2
    assert await _stored() == (4.5, 2)


@pytest.mark.asyncio
async def test_average_rounded_to_one_decimal(db, make_comment):
    for rating in (5, 4, 4):
        await make_comment(rating=rating, status="approved")
    stats = await recompute_recipe_rating(db, RECIPE_ID)
    assert stats.avg == 4.3
    assert stats.count == 3


@pytest.mark.asyncio
async def test_half_tenth_rounds_up(db, make_comment):
    for rating in (5, 4, 4, 4):
        await make_comment(rating=rating, status="approved")
    stats = await recompute_recipe_rating(db, RECIPE_ID)
    assert stats.avg == 4.3
    assert await _stored() == (4.3, 4)


@pytest.mark.asyncio
async def test_half_tenth_rounds_up_low_end(db, make_comment):
    for rating in (1, 1, 1, 2):
        await make_comment(rating=rating, status="approved")
    stats = await recompute_recipe_rating(db, RECIPE_ID)
    assert stats.avg == 1.3


@pytest.mark.asyncio
async def test_empty_set_is_zero(db, make_comment):
    await make_comment(rating=3, status="pending")
    stats = await recompute_recipe_rating(db, RECIPE_ID)
    assert (stats.avg, stats.count) == (0.0, 0)
    assert await _stored() == (0.0, 0)


@pytest.mark.asyncio
async def test_recompute_is_idempotent(db, make_comment):
    await make_comment(rating=2, status="approved")
    first = await recompute_recipe_rating(db, RECIPE_ID)
    second = await recompute_recipe_rating(db, RECIPE_ID)
    assert first == second
    assert await compute_recipe_rating(db, RECIPE_ID) == first


@pytest.mark.asyncio
async def test_rating_endpoint(client, db, make_comment):
    await make_comment(rating=3, status="approved")
    await recompute_recipe_rating(db, RECIPE_ID)
    resp = await client.get(f"/api/v1/recipes/{RECIPE_ID}/rating")
    assert resp.status_code == 200
    assert resp.json() == {"recipe_id": RECIPE_ID, "rating_avg": 3.0, "rating_count": 1}


@pytest.mark.asyncio
async def test_rating_endpoint_unknown_recipe(client):
    resp = await client.get("/api/v1/recipes/not-a-recipe/rating")
    assert resp.status_code == 404
    assert resp.json()["error"] == "RECIPE_NOT_FOUND"
