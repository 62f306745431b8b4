import json
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple, Union
from urllib.parse import parse_qs

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("META_APP_ID", "test_app_id")
os.environ.setdefault("META_APP_SECRET", "test_app_secret")
os.environ.setdefault("META_REDIRECT_URI", "http://testserver/api/v1/auth/meta/callback")
os.environ.setdefault("DASHBOARD_URL", "http://localhost:3000/dashboard")
os.environ.setdefault("FACEBOOK_API_VERSION", "v19.0")
os.environ.setdefault("FACEBOOK_API_BASE_URL", "https://graph.facebook.com")

import httpx  # noqa: E402
import pytest  # noqa: E402

from adlens.core.deps import build_meta_services  # noqa: E402

GRAPH_PREFIX = "/v19.0"

RouteValue = Union[Any, Tuple[int, Any], Callable[[httpx.URL], Any]]


class FakeClock:
    """Monotonic clock whose sleep() only advances time and records the delay"""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class GraphStub:
    """
    Fake Graph API keyed by path relative to the versioned root.

    A route is a payload (served with 200), a (status, payload) tuple, or a
    callable receiving the request URL and returning either of those.
    Batch POSTs to the root are answered item by item from the same routes.
    """

    def __init__(self):
        self.routes: Dict[str, RouteValue] = {}
        self.requests: List[httpx.Request] = []
        self.batches: List[List[Dict[str, str]]] = []

    def add(self, path: str, value: RouteValue) -> None:
        self.routes[path] = value

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> List[str]:
        return [self._relative(r.url) for r in self.requests]

    @staticmethod
    def _relative(url: httpx.URL) -> str:
        path = url.path
        if path.startswith(GRAPH_PREFIX):
            path = path[len(GRAPH_PREFIX):]
        return path.strip("/")

    def _resolve(self, url: httpx.URL) -> Tuple[int, Any]:
        path = self._relative(url)
        if path not in self.routes:
            return 404, {"error": {"message": f"Unknown path {path}", "code": 803}}
        value = self.routes[path]
        if callable(value):
            value = value(url)
        if isinstance(value, tuple):
            return value
        return 200, value

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST" and self._relative(request.url) == "":
            form = parse_qs(request.read().decode())
            items = json.loads(form["batch"][0])
            self.batches.append(items)
            if "" in self.routes:
                status, payload = self._resolve(request.url)
                return httpx.Response(status, json=payload)
            responses = []
            for item in items:
                url = httpx.URL(f"https://graph.facebook.com{GRAPH_PREFIX}/{item['relative_url']}")
                status, payload = self._resolve(url)
                if payload is None:
                    responses.append(None)
                else:
                    responses.append({"code": status, "body": json.dumps(payload)})
            return httpx.Response(200, json=responses)

        status, payload = self._resolve(request.url)
        return httpx.Response(status, json=payload)


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def graph():
    return GraphStub()


@pytest.fixture()
def services(graph, clock):
    return build_meta_services(transport=graph.transport, clock=clock, sleep=clock.sleep)


def insight(spend="0", impressions="0", clicks=None, **extra) -> Dict[str, Any]:
    row: Dict[str, Any] = {"spend": spend, "impressions": impressions}
    if clicks is not None:
        row["inline_link_clicks"] = clicks
    row.update(extra)
    return row


def ad(ad_id: str, creative: Dict[str, Any], row: Dict[str, Any] = None, status: str = "ACTIVE") -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "id": ad_id,
        "name": f"Ad {ad_id}",
        "effective_status": status,
        "creative": creative,
    }
    if row is not None:
        result["insights"] = {"data": [row]}
    return result
