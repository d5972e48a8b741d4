import sys
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import NetworkError
from core.net import HTTPClient, USER_AGENTS


@pytest.mark.asyncio
async def test_fetch_returns_body_with_korean_headers():
    seen = []

    def handler(request):
        seen.append(request.headers)
        return httpx.Response(200, text="<html>캠페인</html>")

    client = HTTPClient(transport=httpx.MockTransport(handler))
    html = await client.fetch("https://www.revu.net/campaign/1")

    assert "캠페인" in html
    assert seen[0]["accept-language"].startswith("ko-KR")
    assert seen[0]["user-agent"] in USER_AGENTS


@pytest.mark.asyncio
async def test_user_agent_rotates():
    agents = []

    def handler(request):
        agents.append(request.headers["user-agent"])
        return httpx.Response(200, text="ok")

    client = HTTPClient(transport=httpx.MockTransport(handler))
    await client.fetch("https://example.com/a")
    await client.fetch("https://example.com/b")

    assert agents[0] != agents[1]


@pytest.mark.asyncio
async def test_non_2xx_raises_network_error():
    client = HTTPClient(transport=httpx.MockTransport(lambda request: httpx.Response(404, text="missing")))

    with pytest.raises(NetworkError) as excinfo:
        await client.fetch("https://www.revu.net/campaign/404")

    assert excinfo.value.status_code == 404
    assert excinfo.value.url == "https://www.revu.net/campaign/404"


@pytest.mark.asyncio
async def test_timeout_raises_network_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = HTTPClient(timeout=0.1, transport=httpx.MockTransport(handler))

    with pytest.raises(NetworkError):
        await client.fetch("https://www.revu.net/slow")
