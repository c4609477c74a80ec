"""
Tests for audit sinks.
"""

import json
import logging

import httpx
import pytest

from a402.audit import LoggingAuditSink, SupabaseAuditSink, VERIFY_TABLE


@pytest.mark.anyio
async def test_supabase_sink_posts_row():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201)

    sink = SupabaseAuditSink(
        "https://project.supabase.co/", "service-key", transport=httpx.MockTransport(handler)
    )
    await sink.record(VERIFY_TABLE, {"payer": "0xabc", "is_valid": True})
    await sink.close()

    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://project.supabase.co/rest/v1/verify_requests"
    assert request.headers["apikey"] == "service-key"
    assert request.headers["Authorization"] == "Bearer service-key"
    assert json.loads(request.content) == {"payer": "0xabc", "is_valid": True}


@pytest.mark.anyio
async def test_supabase_sink_swallows_http_errors(caplog):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"message": "db down"})

    transport = httpx.MockTransport(handler)
    sink = SupabaseAuditSink("https://project.supabase.co", "key", transport=transport)
    with caplog.at_level(logging.ERROR, logger="a402.audit"):
        await sink.record(VERIFY_TABLE, {"payer": "0xabc"})
    await sink.close()

    assert "Supabase logging failed" in caplog.text


@pytest.mark.anyio
async def test_logging_sink(caplog):
    with caplog.at_level(logging.INFO, logger="a402.audit"):
        await LoggingAuditSink().record("settle_transactions", {"success": True})
    assert "settle_transactions" in caplog.text
