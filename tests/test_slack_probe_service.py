"""
Tests for the auth.test verification probe.
"""

import httpx
import pytest

from app.core.exceptions import ProbeUnavailable
from app.services.slack_probe_service import SlackProbeService


def _probe(handler):
    return SlackProbeService(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_valid_token():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/auth.test"
        assert request.headers["Authorization"] == "Bearer xoxb-tok"
        return httpx.Response(200, json={"ok": True, "team": "Acme", "team_id": "T1", "user_id": "US1"})

    result = await _probe(handler).verify_token("xoxb-tok")

    assert result.valid is True
    assert result.team_name == "Acme"
    assert result.team_id == "T1"
    assert result.slack_user_id == "US1"


@pytest.mark.asyncio
async def test_rejected_token_is_invalid_not_raised():
    def handler(request):
        return httpx.Response(200, json={"ok": False, "error": "token_revoked"})

    result = await _probe(handler).verify_token("xoxb-dead")

    assert result.valid is False
    assert result.error == "token_revoked"


@pytest.mark.asyncio
async def test_empty_token_is_invalid():
    def handler(request):
        raise AssertionError("no request expected")

    result = await _probe(handler).verify_token("")
    assert result.valid is False


@pytest.mark.asyncio
async def test_timeout_is_unavailable():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ProbeUnavailable):
        await _probe(handler).verify_token("xoxb-tok")


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [429, 500, 503])
async def test_server_side_failure_is_unavailable(status_code):
    def handler(request):
        return httpx.Response(status_code, text="unavailable")

    with pytest.raises(ProbeUnavailable):
        await _probe(handler).verify_token("xoxb-tok")
