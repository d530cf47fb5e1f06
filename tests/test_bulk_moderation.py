"""Tests for bulk approve / hide."""
import pytest
from sqlalchemy import delete, select

from src.db.audit_tables import AuditLogRow
from src.db.comment_tables import CommentRow
from src.db.tables import RecipeRow
from src.services import comment_moderation, ratings
from src.services.comment_moderation import bulk_moderate
from src.services.errors import CommentsNotFound, InvalidAction, InvalidIds
from tests.conftest import OTHER_RECIPE_ID, RECIPE_ID, get_test_session

MISSING_ID = "99999999-9999-4999-8999-999999999999"


@pytest.fixture
def recompute_calls(monkeypatch):
    calls = []
    original = ratings.recompute_recipe_rating

    async def counting(session, recipe_id):
        calls.append(recipe_id)
        return await original(session, recipe_id)

    monkeypatch.setattr(ratings, "recompute_recipe_rating", counting)
    return calls


async def _statuses(ids):
    async with get_test_session() as session:
        result = await session.execute(select(CommentRow).where(CommentRow.id.in_(ids)))
        return {row.id: row.status for row in result.scalars().all()}


@pytest.mark.asyncio
async def test_five_comments_one_recipe_one_recompute(db, admin_actor, make_comment, recompute_calls):
    ids = [await make_comment(rating=r) for r in (1, 2, 3, 4, 5)]
    result = await bulk_moderate(db, ids, "approve", admin_actor)

    assert result["successful_count"] == 5
    assert result["failed_count"] == 0
    assert recompute_calls == [RECIPE_ID]
    assert result["updated_recipes"] == [RECIPE_ID]
    assert result["rating_updates"][RECIPE_ID] == {"rating_avg": 3.0, "rating_count": 5}
    assert set((await _statuses(ids)).values()) == {"approved"}


@pytest.mark.asyncio
async def test_recompute_once_per_distinct_recipe(db, admin_actor, make_comment, recompute_calls):
    ids = [
        await make_comment(RECIPE_ID, rating=5),
        await make_comment(OTHER_RECIPE_ID, rating=2),
        await make_comment(RECIPE_ID, rating=3),
        await make_comment(OTHER_RECIPE_ID, rating=None),
    ]
    result = await bulk_moderate(db, ids, "approve", admin_actor)
    assert sorted(recompute_calls) == sorted([RECIPE_ID, OTHER_RECIPE_ID])
    assert result["rating_updates"][RECIPE_ID]["rating_avg"] == 4.0
    assert result["rating_updates"][OTHER_RECIPE_ID]["rating_count"] == 1


@pytest.mark.asyncio
async def test_bulk_hide_only_recomputes_for_previously_approved(db, admin_actor, make_comment, recompute_calls):
    ids = [
        await make_comment(RECIPE_ID, rating=4, status="pending"),
        await make_comment(OTHER_RECIPE_ID, rating=4, status="approved"),
    ]
    result = await bulk_moderate(db, ids, "hide", admin_actor, reason="spam wave")
    assert result["successful_count"] == 2
    assert recompute_calls == [OTHER_RECIPE_ID]

    async with get_test_session() as session:
        hidden = await session.get(CommentRow, ids[0])
        assert hidden.moderation_reason == "spam wave"


@pytest.mark.asyncio
async def test_invalid_ids_are_dropped(db, admin_actor, make_comment):
    good1 = await make_comment(rating=5)
    good2 = await make_comment(rating=3)
    result = await bulk_moderate(db, [good1, "bad", good2, good1], "approve", admin_actor)

    assert result["requested"] == 2
    assert [s["id"] for s in result["successful"]] == [good1, good2]
    assert result["failed"] == []
    assert await _statuses([good1, good2]) == {good1: "approved", good2: "approved"}


@pytest.mark.asyncio
async def test_concurrently_deleted_item_fails_alone(db, admin_actor, make_comment, monkeypatch):
    good1 = await make_comment(rating=5)
    doomed = await make_comment(rating=1)
    good2 = await make_comment(rating=3)

    original_load = comment_moderation._load_comments

    async def load_then_delete(session, ids):
        snapshots = await original_load(session, ids)
        async with get_test_session() as other:
            await other.execute(delete(CommentRow).where(CommentRow.id == doomed))
            await other.commit()
        return snapshots

    monkeypatch.setattr(comment_moderation, "_load_comments", load_then_delete)

    result = await bulk_moderate(db, [good1, doomed, good2], "approve", admin_actor)

    assert result["successful_count"] == 2
    assert result["failed"] == [{"id": doomed, "error": "Comment not found"}]
    assert await _statuses([good1, good2]) == {good1: "approved", good2: "approved"}

    async with get_test_session() as session:
        recipe = await session.get(RecipeRow, RECIPE_ID)
        assert (recipe.rating_avg, recipe.rating_count) == (4.0, 2)


@pytest.mark.asyncio
async def test_unexpected_item_error_fails_alone(db, admin_actor, make_comment, monkeypatch):
    good1 = await make_comment(rating=5)
    broken = await make_comment(rating=1)
    good2 = await make_comment(rating=3)

    original_set = comment_moderation._set_status

    async def flaky_set_status(session, comment_id, *args, **kwargs):
        if comment_id == broken:
            raise TypeError("bad row")
        return await original_set(session, comment_id, *args, **kwargs)

    monkeypatch.setattr(comment_moderation, "_set_status", flaky_set_status)

    result = await bulk_moderate(db, [good1, broken, good2], "approve", admin_actor)

    assert result["successful_count"] == 2
    assert result["failed"] == [{"id": broken, "error": "bad row"}]
    assert result["rating_updates"] == {RECIPE_ID: {"rating_avg": 4.0, "rating_count": 2}}
    assert await _statuses([good1, broken, good2]) == {
        good1: "approved", broken: "pending", good2: "approved",
    }

    async with get_test_session() as session:
        entries = (await session.execute(select(AuditLogRow))).scalars().all()
    assert len(entries) == 1
    assert entries[0].details["failed"] == 1


@pytest.mark.asyncio
async def test_single_audit_entry(db, admin_actor, make_comment):
    ids = [await make_comment(rating=4) for _ in range(3)]
    await bulk_moderate(db, ids + [MISSING_ID], "approve", admin_actor, reason="batch")

    async with get_test_session() as session:
        entries = (await session.execute(select(AuditLogRow))).scalars().all()
    assert len(entries) == 1
    entry = entries[0]
    assert entry.action == "bulk"
    assert entry.entity_id is None
    assert entry.details["operation"] == "bulk_approve_comments"
    assert entry.details["requested_ids"] == ids + [MISSING_ID]
    assert entry.details["successful"] == 3
    assert entry.details["updated_recipes"] == [RECIPE_ID]
    assert entry.details["reason"] == "batch"


@pytest.mark.asyncio
async def test_invalid_action(db, admin_actor, make_comment):
    cid = await make_comment()
    with pytest.raises(InvalidAction):
        await bulk_moderate(db, [cid], "delete", admin_actor)
    assert (await _statuses([cid]))[cid] == "pending"


@pytest.mark.asyncio
async def test_no_valid_ids(db, admin_actor):
    with pytest.raises(InvalidIds):
        await bulk_moderate(db, ["nope", "also-nope"], "approve", admin_actor)
    with pytest.raises(InvalidIds):
        await bulk_moderate(db, [], "approve", admin_actor)


@pytest.mark.asyncio
async def test_no_matching_comments(db, admin_actor):
    with pytest.raises(CommentsNotFound):
        await bulk_moderate(db, [MISSING_ID], "hide", admin_actor)


@pytest.mark.asyncio
async def test_bulk_endpoint(client, admin_headers, make_comment):
    ids = [await make_comment(rating=5) for _ in range(2)]
    resp = await client.post("/api/v1/admin/comments/bulk", headers=admin_headers, json={
        "ids": ids, "action": "approve",
    })
    assert resp.status_code == 200
    assert resp.json()["successful_count"] == 2


@pytest.mark.asyncio
async def test_bulk_endpoint_error_codes(client, admin_headers):
    resp = await client.post("/api/v1/admin/comments/bulk", headers=admin_headers, json={
        "ids": [MISSING_ID], "action": "archive",
    })
    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_ACTION"

    resp = await client.post("/api/v1/admin/comments/bulk", headers=admin_headers, json={
        "ids": ["bad"], "action": "hide",
    })
    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_IDS"

    resp = await client.post("/api/v1/admin/comments/bulk", headers=admin_headers, json={
        "ids": [MISSING_ID], "action": "hide",
    })
    assert resp.status_code == 404
    assert resp.json()["error"] == "COMMENTS_NOT_FOUND"


@pytest.mark.asyncio
async def test_bulk_endpoint_caps_batch_size(client, admin_headers):
    resp = await client.post("/api/v1/admin/comments/bulk", headers=admin_headers, json={
        "ids": [MISSING_ID] * 51, "action": "approve",
    })
    assert resp.status_code == 422
