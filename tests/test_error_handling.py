"""Tests for structured error responses."""
from __future__ import annotations

import pytest

from src.services.errors import (
    CommentNotFound,
    DuplicateReport,
    InvalidIds,
    ModerationError,
    NotFoundError,
    ReportAlreadyResolved,
    TargetNotFound,
)


def test_error_codes_and_statuses():
    assert CommentNotFound().code == "COMMENT_NOT_FOUND"
    assert CommentNotFound().status_code == 404
    assert isinstance(CommentNotFound(), NotFoundError)
    assert DuplicateReport().status_code == 409
    assert ReportAlreadyResolved().status_code == 400
    assert InvalidIds().code == "INVALID_IDS"
    assert TargetNotFound("Post").message == "Post not found"
    assert all(issubclass(cls, ModerationError) for cls in (CommentNotFound, DuplicateReport, InvalidIds))


@pytest.mark.asyncio
async def test_not_found_returns_structured_error(client, admin_headers):
    resp = await client.get("/api/v1/admin/reports/not-a-report", headers=admin_headers)
    assert resp.status_code == 404
    assert resp.json() == {"error": "REPORT_NOT_FOUND", "message": "Report not found"}


@pytest.mark.asyncio
async def test_validation_error_returns_structured_error(client, user_headers):
    resp = await client.post("/api/v1/reports", headers=user_headers, json={"target_type": "recipe"})
    assert resp.status_code == 422
    data = resp.json()
    assert data["error"] == "validation_error"
    assert isinstance(data["details"], list)
    assert any("target_id" in d["field"] for d in data["details"])


@pytest.mark.asyncio
async def test_invalid_sort_returns_structured_error(client, admin_headers):
    resp = await client.get("/api/v1/admin/comments?sort=sideways", headers=admin_headers)
    assert resp.status_code == 422
    assert resp.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_oversized_limit_is_clamped_not_rejected(client, admin_headers):
    resp = await client.get("/api/v1/admin/comments?limit=5000&page=1", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["pagination"]["limit"] == 100


@pytest.mark.asyncio
async def test_auth_errors_use_envelope(client):
    resp = await client.get("/api/v1/admin/comments")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Authentication required", "message": "Authentication required"}
