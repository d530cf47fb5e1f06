"""Tests for the audit trail."""
import pytest
from sqlalchemy import select

from src.db.audit_tables import AuditLogRow
from src.middleware.metrics import metrics
from src.middleware.request_id import Provenance, provenance_var
from src.services.audit import SYSTEM_ACTOR, Actor, record_audit
from tests.conftest import ADMIN_ID, get_test_session


@pytest.mark.asyncio
async def test_record_audit_stores_actor_and_provenance(db, admin_actor):
    token = provenance_var.set(Provenance(request_id="req-1", ip_address="10.0.0.7", user_agent="pytest"))
    try:
        entry = await record_audit(
            db, action="update", entity_type="comment", entity_id="c-1",
            actor=admin_actor, metadata={"operation": "approve_comment", "rating": 4},
        )
    finally:
        provenance_var.reset(token)

    assert entry is not None
    async with get_test_session() as session:
        stored = (await session.execute(select(AuditLogRow))).scalar_one()
    assert stored.user_id == ADMIN_ID
    assert stored.user_email == "admin@test.com"
    assert stored.user_role == "admin"
    assert stored.ip_address == "10.0.0.7"
    assert stored.user_agent == "pytest"
    assert stored.request_id == "req-1"
    assert stored.details == {"operation": "approve_comment", "rating": 4}


@pytest.mark.asyncio
async def test_record_audit_outside_request(db):
    entry = await record_audit(db, action="delete", entity_type="comment", entity_id=None, actor=SYSTEM_ACTOR)
    assert entry.ip_address is None
    assert entry.request_id is None
    assert entry.user_role == "admin"
    assert metrics.moderation_actions["delete_comment"] == 1


@pytest.mark.asyncio
async def test_record_audit_swallows_db_errors(db):
    broken = Actor(id=None, email=None, role=None)
    entry = await record_audit(db, action="update", entity_type="report", entity_id="r-1", actor=broken)
    assert entry is None
    assert metrics.audit_failures == 1
    async with get_test_session() as session:
        assert (await session.execute(select(AuditLogRow))).scalars().all() == []


def test_system_actor_is_explicit():
    assert SYSTEM_ACTOR.is_system is True
    assert SYSTEM_ACTOR.id == "00000000-0000-0000-0000-000000000001"
    assert Actor(id="u", email="e", role="user").is_system is False


@pytest.mark.asyncio
async def test_audit_log_endpoint(client, admin_headers, make_comment):
    cid = await make_comment(rating=5)
    await client.post(f"/api/v1/admin/comments/{cid}/approve", headers=admin_headers)
    await client.post(f"/api/v1/admin/comments/{cid}/hide", headers=admin_headers)

    resp = await client.get("/api/v1/admin/audit-logs?entity_type=comment&limit=1", headers=admin_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 2
    assert len(body["logs"]) == 1
    assert body["logs"][0]["metadata"]["operation"] == "hide_comment"
    assert body["pagination"]["has_next"] is True

    resp = await client.get("/api/v1/admin/audit-logs?action=bulk", headers=admin_headers)
    assert resp.json()["total"] == 0


@pytest.mark.asyncio
async def test_audit_log_endpoint_requires_admin(client, user_headers):
    resp = await client.get("/api/v1/admin/audit-logs", headers=user_headers)
    assert resp.status_code == 403
