import asyncio

import httpx
import pytest

from adlens.core.exceptions import GraphAPIError, MalformedResponse, TransportFailure
from adlens.services.meta.graph_client import MetaGraphClient, normalize_ad_account_id
from adlens.services.meta.rate_limiter import RateLimiter


def test_normalize_ad_account_id():
    assert normalize_ad_account_id("1234567890") == "act_1234567890"
    assert normalize_ad_account_id("act_1234567890") == "act_1234567890"
    assert normalize_ad_account_id(" 42 ") == "act_42"
    assert normalize_ad_account_id(987) == "act_987"
    with pytest.raises(ValueError):
        normalize_ad_account_id("  ")


def test_get_sends_token_and_passes_rate_limiter(services, graph, clock):
    graph.add("me", {"id": "1", "name": "Jane"})

    async def run():
        first = await services.client.get("me", "tok", {"fields": "id,name"})
        second = await services.client.get("me", "tok")
        return first, second

    first, _ = asyncio.run(run())

    assert first == {"id": "1", "name": "Jane"}
    request = graph.requests[0]
    assert request.url.params["access_token"] == "tok"
    assert request.url.params["fields"] == "id,name"
    assert services.rate_limiter.window_requests == 2
    # minimum spacing between the two calls (after the retry cooldown)
    assert 1.5 in clock.sleeps


def test_get_paginated_follows_next_links(services, graph):
    def insights(url: httpx.URL):
        if url.params.get("after") == "page2":
            return {"data": [{"n": 3}]}
        return {
            "data": [{"n": 1}, {"n": 2}],
            "paging": {"next": "https://graph.facebook.com/v19.0/act_1/insights?after=page2&access_token=tok"},
        }

    graph.add("act_1/insights", insights)

    rows = asyncio.run(services.client.get_paginated("act_1/insights", "tok"))

    assert [r["n"] for r in rows] == [1, 2, 3]
    assert len(graph.requests) == 2


def test_get_paginated_stops_at_max_items(services, graph):
    graph.add("act_1/ads", {
        "data": [{"id": str(i)} for i in range(5)],
        "paging": {"next": "https://graph.facebook.com/v19.0/act_1/ads?after=x"},
    })

    rows = asyncio.run(services.client.get_paginated("act_1/ads", "tok", max_items=3))

    assert [r["id"] for r in rows] == ["0", "1", "2"]
    assert len(graph.requests) == 1


def test_error_payload_raises_graph_api_error(services, graph):
    graph.add("act_1", (400, {"error": {"message": "Unsupported get request", "code": 100, "type": "GraphMethodException"}}))

    with pytest.raises(GraphAPIError) as exc_info:
        asyncio.run(services.client.get("act_1", "tok"))

    assert exc_info.value.code == 100
    assert exc_info.value.status_code == 400
    assert len(graph.requests) == 1


def test_rate_limited_call_is_retried(services, graph, clock):
    calls = {"count": 0}

    def throttled_once(url):
        calls["count"] += 1
        if calls["count"] == 1:
            return 400, {"error": {"message": "User request limit reached", "code": 17}}
        return {"id": "act_1"}

    graph.add("act_1", throttled_once)

    assert asyncio.run(services.client.get("act_1", "tok")) == {"id": "act_1"}
    assert calls["count"] == 2
    assert 1.0 in clock.sleeps


def test_transport_errors_and_bad_bodies_are_classified(clock):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/down"):
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.path.endswith("/html"):
            return httpx.Response(200, text="<html>oops</html>")
        return httpx.Response(502, text="Bad Gateway")

    client = MetaGraphClient(
        RateLimiter(min_interval=0, clock=clock, sleep=clock.sleep),
        base_url="https://graph.facebook.com/v19.0",
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(TransportFailure):
        asyncio.run(client.get("down", "tok"))
    with pytest.raises(MalformedResponse):
        asyncio.run(client.get("html", "tok"))
    with pytest.raises(GraphAPIError) as exc_info:
        asyncio.run(client.get("gateway", "tok"))
    assert exc_info.value.status_code == 502
