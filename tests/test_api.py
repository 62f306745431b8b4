import json
from datetime import date, timedelta
from urllib.parse import parse_qs, unquote, urlparse

import pytest
from fastapi.testclient import TestClient

from adlens.core.deps import get_meta_services
from adlens.main import create_app

TOKEN_RESPONSE = {"access_token": "user-token", "token_type": "bearer", "expires_in": 5183944}
THROTTLED = (400, {"error": {"message": "Application request limit reached", "code": 4}})


@pytest.fixture()
def api_client(services):
    app = create_app()
    app.dependency_overrides[get_meta_services] = lambda: services
    with TestClient(app) as client:
        yield client


def _seed_direct_account(graph):
    graph.add("me", {"id": "42", "name": "Jane"})
    graph.add("me/adaccounts", {"data": [{"id": "act_2", "account_id": "2", "name": "Store", "currency": "USD"}]})
    graph.add("me/businesses", {"data": []})


def _query(response):
    location = urlparse(response.headers["location"])
    return location, {k: v[0] for k, v in parse_qs(location.query).items()}


def _set_cookie(response, name):
    for header in response.headers.get_list("set-cookie"):
        if header.startswith(f"{name}="):
            return header
    return None


# ============================================
# OAuth
# ============================================

def test_login_redirects_to_meta_dialog_with_state(api_client):
    response = api_client.get("/api/v1/auth/meta/login", follow_redirects=False)

    assert response.status_code == 302
    location, query = _query(response)
    assert f"{location.scheme}://{location.netloc}{location.path}" == "https://www.facebook.com/v19.0/dialog/oauth"
    assert query["client_id"] == "test_app_id"
    assert query["response_type"] == "code"
    assert "ads_read" in query["scope"].split(",")
    assert query["state"] == response.cookies["meta_oauth_state"]


def test_callback_sets_cookies_and_redirects_to_dashboard(api_client, graph):
    graph.add("oauth/access_token", TOKEN_RESPONSE)
    _seed_direct_account(graph)
    api_client.cookies.set("meta_oauth_state", "s1")

    response = api_client.get(
        "/api/v1/auth/meta/callback",
        params={"code": "abc", "state": "s1"},
        follow_redirects=False,
    )

    assert response.status_code == 302
    location, query = _query(response)
    assert location.path == "/dashboard"
    assert query == {"platform": "meta", "status": "connected"}

    token_cookie = _set_cookie(response, "meta_access_token")
    assert token_cookie.startswith("meta_access_token=user-token")
    assert "httponly" in token_cookie.lower()
    assert "Max-Age=5183944" in token_cookie
    assert "httponly" not in _set_cookie(response, "meta_business_managers").lower()
    assert _set_cookie(response, "meta_connected").startswith("meta_connected=true")

    managers = json.loads(unquote(response.cookies["meta_business_managers"]))
    assert managers == [{"id": "direct", "name": "Direct Accounts",
                         "ad_accounts": [{"id": "act_2", "name": "Store", "currency": "USD"}]}]

    exchange = graph.requests[0]
    assert exchange.url.path == "/v19.0/oauth/access_token"
    assert exchange.url.params["code"] == "abc"
    assert exchange.url.params["client_secret"] == "test_app_secret"


def test_callback_rate_limited_redirect(api_client, graph):
    graph.add("oauth/access_token", TOKEN_RESPONSE)
    graph.add("", THROTTLED)
    api_client.cookies.set("meta_oauth_state", "s1")

    response = api_client.get(
        "/api/v1/auth/meta/callback",
        params={"code": "abc", "state": "s1"},
        follow_redirects=False,
    )

    _, query = _query(response)
    assert query["status"] == "error"
    assert query["error"] == "rate_limited"
    assert "try again in a few minutes" in query["message"]
    assert _set_cookie(response, "meta_access_token") is None


def test_callback_with_partial_hierarchy_connects_with_warning(api_client, graph):
    graph.add("oauth/access_token", TOKEN_RESPONSE)
    _seed_direct_account(graph)
    graph.add("me/businesses", THROTTLED)
    api_client.cookies.set("meta_oauth_state", "s1")

    response = api_client.get(
        "/api/v1/auth/meta/callback",
        params={"code": "abc", "state": "s1"},
        follow_redirects=False,
    )

    _, query = _query(response)
    assert query == {"platform": "meta", "status": "connected", "warning": "rate_limited"}
    assert _set_cookie(response, "meta_access_token") is not None


def test_callback_rejected_code_is_auth_failed(api_client, graph):
    graph.add("oauth/access_token", (400, {"error": {
        "message": "Invalid verification code format.", "type": "OAuthException", "code": 100,
    }}))
    api_client.cookies.set("meta_oauth_state", "s1")

    response = api_client.get(
        "/api/v1/auth/meta/callback",
        params={"code": "bad", "state": "s1"},
        follow_redirects=False,
    )

    _, query = _query(response)
    assert query["error"] == "auth_failed"
    assert "reconnect" in query["message"]


def test_callback_without_accounts(api_client, graph):
    graph.add("oauth/access_token", TOKEN_RESPONSE)
    graph.add("me", {"id": "42"})
    graph.add("me/adaccounts", {"data": []})
    graph.add("me/businesses", {"data": []})
    api_client.cookies.set("meta_oauth_state", "s1")

    response = api_client.get(
        "/api/v1/auth/meta/callback",
        params={"code": "abc", "state": "s1"},
        follow_redirects=False,
    )

    _, query = _query(response)
    assert query["error"] == "no_accounts"


def test_callback_state_mismatch_or_denial_never_calls_meta(api_client, graph):
    api_client.cookies.set("meta_oauth_state", "s1")

    mismatch = api_client.get(
        "/api/v1/auth/meta/callback",
        params={"code": "abc", "state": "forged"},
        follow_redirects=False,
    )
    denied = api_client.get(
        "/api/v1/auth/meta/callback",
        params={"error": "access_denied", "error_description": "Permissions error", "state": "s1"},
        follow_redirects=False,
    )

    assert _query(mismatch)[1]["error"] == "auth_failed"
    assert _query(denied)[1]["error"] == "auth_failed"
    assert graph.requests == []


def test_disconnect_clears_cookies_and_cache(api_client, services):
    services.cache.set(services.cache.make_key("businesses", "user-token"), ["bm"])
    services.cache.set(services.cache.make_key("businesses", "someone-else"), ["bm"])
    api_client.cookies.set("meta_access_token", "user-token")

    response = api_client.post("/api/v1/auth/meta/disconnect")

    assert response.status_code == 200
    assert response.json()["data"] == {"cleared_cache_entries": 1}
    assert "max-age=0" in _set_cookie(response, "meta_access_token").lower()
    assert "max-age=0" in _set_cookie(response, "meta_connected").lower()
    assert len(services.cache) == 1


# ============================================
# Dashboard data
# ============================================

def test_data_routes_require_meta_cookie(api_client):
    response = api_client.get("/api/v1/meta/businesses")

    assert response.status_code == 401


def test_performance_route(api_client, graph):
    graph.add("act_123/insights", {"data": [
        {"date_start": "2024-06-01", "spend": "10", "impressions": "1000", "inline_link_clicks": "20"},
    ]})
    api_client.cookies.set("meta_access_token", "user-token")

    response = api_client.get(
        "/api/v1/meta/accounts/123/performance",
        params={"start_date": "2024-06-01", "end_date": "2024-06-02"},
    )

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["total"] == 1
    assert body["data"][0]["date"] == "2024-06-01"
    assert body["data"][0]["ctr"] == pytest.approx(2.0)


def test_date_range_defaults_to_last_30_days(api_client, graph):
    graph.add("act_123/insights", {"data": []})
    api_client.cookies.set("meta_access_token", "user-token")

    api_client.get("/api/v1/meta/accounts/123/performance")

    time_range = json.loads(graph.requests[0].url.params["time_range"])
    today = date.today()
    assert time_range == {"since": (today - timedelta(days=29)).isoformat(), "until": today.isoformat()}


def test_reversed_date_range_is_rejected(api_client, graph):
    api_client.cookies.set("meta_access_token", "user-token")

    response = api_client.get(
        "/api/v1/meta/accounts/123/top-ads",
        params={"start_date": "2024-06-10", "end_date": "2024-06-01"},
    )

    assert response.status_code == 422
    assert graph.requests == []


def test_blank_account_id_is_rejected(api_client, graph):
    api_client.cookies.set("meta_access_token", "user-token")

    report = api_client.get("/api/v1/meta/accounts/%20/performance")
    details = api_client.get("/api/v1/meta/accounts/%20")

    assert report.status_code == 422
    assert details.status_code == 422
    assert graph.requests == []


def test_aggregator_failure_is_an_empty_flagged_list(api_client, graph):
    graph.add("act_123/ads", THROTTLED)
    api_client.cookies.set("meta_access_token", "user-token")

    response = api_client.get("/api/v1/meta/accounts/123/landing-pages")

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is False
    assert body["error"] == "rate_limited"
    assert body["data"] == []


def test_expired_token_is_401(api_client, graph):
    graph.add("act_123/ads", (400, {"error": {"message": "Error validating access token", "code": 190}}))
    api_client.cookies.set("meta_access_token", "user-token")

    response = api_client.get("/api/v1/meta/accounts/123/ad-copy")

    assert response.status_code == 401
    assert response.json()["error"] == "credential_expired"


def test_partial_hierarchy_is_served_with_error_flag(api_client, graph):
    graph.add("me", {"id": "42"})
    graph.add("me/adaccounts", {"data": [{"id": "act_2", "account_id": "2", "name": "Store"}]})
    graph.add("me/businesses", THROTTLED)
    api_client.cookies.set("meta_access_token", "user-token")

    body = api_client.get("/api/v1/meta/businesses").json()

    assert body["success"] is True
    assert body["error"] == "rate_limited"
    assert [m["id"] for m in body["data"]] == ["direct"]


def test_businesses_and_account_routes(api_client, graph):
    _seed_direct_account(graph)
    graph.add("act_2", {"id": "act_2", "account_id": "2", "name": "Store", "currency": "USD"})
    api_client.cookies.set("meta_access_token", "user-token")

    businesses = api_client.get("/api/v1/meta/businesses").json()
    account = api_client.get("/api/v1/meta/accounts/2").json()

    assert businesses["total"] == 1
    assert businesses["data"][0]["id"] == "direct"
    assert account["data"]["id"] == "act_2"


def test_account_selection_round_trip(api_client):
    saved = api_client.post("/api/v1/meta/selection", json={"business_id": "b1", "account_id": "act_2"})
    current = api_client.get("/api/v1/meta/selection")

    assert saved.status_code == 200
    assert _set_cookie(saved, "meta_selected_account") is not None
    assert current.json()["data"] == {"business_id": "b1", "account_id": "act_2"}


# ============================================
# Platforms / health
# ============================================

def test_platforms_reflect_meta_connection(api_client):
    before = {p["id"]: p for p in api_client.get("/api/v1/platforms").json()["data"]}

    api_client.cookies.set("meta_access_token", "user-token")
    api_client.cookies.set("meta_connected", "true")
    after = {p["id"]: p for p in api_client.get("/api/v1/platforms").json()["data"]}

    assert set(before) == {"facebook", "google", "tiktok"}
    assert before["facebook"]["status"] == "disconnected"
    assert after["facebook"]["status"] == "connected"
    assert after["google"] == {"id": "google", "name": "Google Ads", "status": "disconnected", "supported": False}


def test_health(api_client):
    body = api_client.get("/api/v1/health").json()

    assert body["status"] == "healthy"
    assert body["app"] == "AdLens"
